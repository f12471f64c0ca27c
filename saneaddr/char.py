# Copyright (c) 2024 Jan Malakhovski <oxij@oxij.org>
#
# This file is a part of `saneaddr` project.
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program. If not, see <http://www.gnu.org/licenses/>.

"""Character classes and percent-encoding normalization."""

import typing as _t

from kisstdlib.exceptions import *

from .error import *

alpha_chars = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ")
digit_chars = frozenset("0123456789")
hex_chars = frozenset("0123456789abcdefABCDEF")
# RFC 3986, sections 2.2 and 2.3
unreserved_chars = alpha_chars | digit_chars | frozenset("-._~")
sub_delims_chars = frozenset("!$&'()*+,;=")
userinfo_chars = unreserved_chars | sub_delims_chars | frozenset(":")
pchar_chars = userinfo_chars | frozenset("@")
query_chars = pchar_chars | frozenset("/?")
# these structure `application/x-www-form-urlencoded` queries
query_delims_chars = frozenset("&=+")
fragment_chars = query_chars

CharClass = _t.Callable[[str], bool]

def is_alpha(c : str) -> bool:
    return c in alpha_chars

def is_digit(c : str) -> bool:
    return c in digit_chars

def is_digits(x : str) -> bool:
    """Non-empty and ASCII digits only, unlike `str.isdigit`."""
    return len(x) > 0 and all(c in digit_chars for c in x)

def is_unreserved(c : str) -> bool:
    return c in unreserved_chars

def is_userinfo_char(c : str) -> bool:
    return c in userinfo_chars

def is_path_char(c : str) -> bool:
    return c in pchar_chars

def is_query_char(c : str) -> bool:
    return c in query_chars

def is_query_literal(c : str) -> bool:
    return c in query_chars and c not in query_delims_chars

def is_fragment_char(c : str) -> bool:
    return c in fragment_chars

def percent_decode(x : str, pos : int = 0) -> int:
    """Decode `%XX` at `x[pos:]` into a byte value."""
    if pos + 3 > len(x):
        raise AddressError(pos, ErrorKind.INVALID_ENCODING, "incomplete percent-encoding")
    hi, lo = x[pos + 1], x[pos + 2]
    if hi not in hex_chars or lo not in hex_chars:
        raise AddressError(pos, ErrorKind.INVALID_ENCODING, "invalid percent-encoding %s", repr(x[pos:pos + 3]))
    return int(hi + lo, 16)

def sanitize_chars(x : str, allowed : CharClass, what : str,
                   literal : CharClass | None = None) -> str:
    """Check that `x` consists of `allowed` characters and `%XX` sequences.

    Sequences encoding a `literal` (by default, an `allowed`) character get
    decoded, all others get their hex digits uppercased. Error positions are
    relative to `x`.
    """
    if literal is None:
        literal = allowed
    res : list[str] | None = None
    i = 0
    xlen = len(x)
    while i < xlen:
        c = x[i]
        if allowed(c):
            if res is not None:
                res.append(c)
            i += 1
            continue
        if c != "%":
            raise invalid(i, "invalid character %s in %s", repr(c), what)

        b = percent_decode(x, i)
        d = chr(b)
        if res is None:
            res = [x[:i]]
        if b < 0x80 and literal(d):
            res.append(d)
        else:
            res.append("%" + x[i + 1:i + 3].upper())
        i += 3

    if res is None:
        return x
    return "".join(res)

_miniquoters : dict[tuple[str, CharClass], dict[int, str]] = {}

def miniquote(x : str, blacklist : str, allowed : CharClass = is_query_char) -> str:
    """Like `urllib.parse.quote`, with a blacklist on top of a character class.

    Quotes UTF-8 bytes of `x` that are not `allowed` or are in `blacklist`,
    thus the result always passes `sanitize_chars` with the same class.
    """
    miniquoter : dict[int, str]
    try:
        miniquoter = _miniquoters[(blacklist, allowed)]
    except KeyError:
        # build a dictionary from bytes to their quotes
        miniquoter = {}
        for b in range(0, 256):
            c = chr(b)
            if b >= 0x80 or not allowed(c) or c in blacklist:
                miniquoter[b] = "%{:02X}".format(b)
            else:
                miniquoter[b] = c
        _miniquoters[(blacklist, allowed)] = miniquoter

    return "".join([miniquoter[b] for b in x.encode("utf-8")])

def qsl_to_query(query : _t.Iterable[tuple[str, str]]) -> str:
    """Turn URL query components list into a minimally-quoted query."""
    l = []
    for k, v in query:
        k = miniquote(k, "#&=+")
        v = miniquote(v, "#&+")
        if v == "":
            l.append(k)
        else:
            l.append(k + "=" + v)
    return "&".join(l)

def test_sanitize_chars() -> None:
    def check(x : str, allowed : CharClass, value : str) -> None:
        res = sanitize_chars(x, allowed, "test")
        if res != value:
            raise CatastrophicFailure("while evaluating `sanitize_chars` on %s, expected %s, got %s", repr(x), repr(value), repr(res))
        again = sanitize_chars(res, allowed, "test")
        if again != res:
            raise CatastrophicFailure("`sanitize_chars` is not idempotent on %s: %s -> %s", repr(x), repr(res), repr(again))

    check("", is_path_char, "")
    check("abc", is_path_char, "abc")
    check("%41%42%43", is_path_char, "ABC")
    check("a%2fb", is_path_char, "a%2Fb")
    check("a%2fb", is_query_char, "a/b")
    check("%7e%7E", is_unreserved, "~~")
    check("%40", is_userinfo_char, "%40")
    check("%40", is_path_char, "@")
    check("%c3%a9", is_path_char, "%C3%A9")
    check("%25", is_path_char, "%25")
    check("%26%3d%2b%2f", is_query_char, "&=+/")
    res = sanitize_chars("a%26b%3dc%2bd%2fe", is_query_char, "query", is_query_literal)
    if res != "a%26b%3Dc%2Bd/e":
        raise CatastrophicFailure("unexpected `sanitize_chars` result %s", repr(res))

    check_fails(lambda x: sanitize_chars(x, is_path_char, "path"), "ab c", ErrorKind.INVALID_CHARACTER, 2, "invalid character ' ' in path")
    check_fails(lambda x: sanitize_chars(x, is_path_char, "path"), "ab/c", ErrorKind.INVALID_CHARACTER, 2)
    check_fails(lambda x: sanitize_chars(x, is_path_char, "path"), "abc%4", ErrorKind.INVALID_ENCODING, 3, "incomplete percent-encoding")
    check_fails(lambda x: sanitize_chars(x, is_path_char, "path"), "%4g", ErrorKind.INVALID_ENCODING, 0, "invalid percent-encoding")
    check_fails(lambda x: sanitize_chars(x, is_path_char, "path"), "café", ErrorKind.INVALID_CHARACTER, 3)

def test_miniquote() -> None:
    def check(x : str, blacklist : str, value : str) -> None:
        res = miniquote(x, blacklist)
        if res != value:
            raise CatastrophicFailure("while evaluating `miniquote` on %s, expected %s, got %s", repr(x), repr(value), repr(res))

    check("abc", "", "abc")
    check("a b", "", "a%20b")
    check("a&b=c", "&=", "a%26b%3Dc")
    check("a/b?c", "", "a/b?c")
    check("100%", "", "100%25")
    check("café", "", "caf%C3%A9")

    res = qsl_to_query([("q", "a b&c"), ("flag", ""), ("x=y", "1+1")])
    if res != "q=a%20b%26c&flag&x%3Dy=1%2B1":
        raise CatastrophicFailure("unexpected `qsl_to_query` result %s", repr(res))
