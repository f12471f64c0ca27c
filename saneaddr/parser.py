# Copyright (c) 2024 Jan Malakhovski <oxij@oxij.org>
#
# This file is a part of `saneaddr` project.
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.

"""Left-to-right scanner that knows where it is.

Every grammar in this package consumes its input with a `Parser`, so that
any failure, including failures of sub-grammars run on slices of the
input, gets reported at its offset in the original string.
"""

import typing as _t

from kisstdlib.exceptions import *

from .error import *

ParsedValueType = _t.TypeVar("ParsedValueType")

class Parser:
    """Scanner over a string buffer with a position."""

    def __init__(self, data : str, pos : int = 0) -> None:
        self.buffer = data
        self.pos = pos

    @property
    def leftovers(self) -> str:
        return self.buffer[self.pos:]

    def at_eof(self) -> bool:
        return self.pos >= len(self.buffer)

    def peek(self) -> str:
        return self.buffer[self.pos:self.pos + 1]

    def at_string(self, s : str) -> bool:
        return self.buffer.startswith(s, self.pos)

    def opt_string(self, s : str) -> bool:
        if self.at_string(s):
            self.pos += len(s)
            return True
        return False

    def at_string_in(self, ss : str) -> bool:
        """Is the next character one of `ss`?"""
        return self.pos < len(self.buffer) and self.buffer[self.pos] in ss

    def take_until_p(self, p : _t.Callable[[str], bool]) -> str:
        start = self.pos
        blen = len(self.buffer)
        while self.pos < blen:
            if p(self.buffer[self.pos]):
                break
            self.pos += 1
        return self.buffer[start:self.pos]

    def take_until_string_in(self, ss : str) -> str:
        """Take everything up to (but not including) any of the characters in `ss`."""
        return self.take_until_p(lambda c: c in ss)

    def take_rest(self) -> str:
        res = self.buffer[self.pos:]
        self.pos = len(self.buffer)
        return res

    def sub(self, start : int,
            parser : _t.Callable[[str], ParsedValueType],
            data : str) -> ParsedValueType:
        """Run a sub-grammar on `data`, which starts at `start` in our buffer."""
        try:
            return parser(data)
        except AddressError as exc:
            raise exc.accumulate(start)

    def fail(self, kind : ErrorKind, reason : str, *args : _t.Any,
             pos : int | None = None) -> _t.NoReturn:
        raise AddressError(self.pos if pos is None else pos, kind, reason, *args)

def test_Parser() -> None:
    p = Parser("scheme://host/path?query")
    scheme = p.take_until_string_in(":")
    if scheme != "scheme" or p.pos != 6:
        raise CatastrophicFailure("unexpected scheme %s at %d", repr(scheme), p.pos)
    if not p.opt_string("://") or p.opt_string("//"):
        raise CatastrophicFailure("unexpected separator handling at %d", p.pos)
    start = p.pos
    host = p.take_until_string_in("/?#")
    if host != "host" or start != 9 or p.peek() != "/":
        raise CatastrophicFailure("unexpected host %s at %d", repr(host), start)
    if p.take_rest() != "/path?query" or not p.at_eof() or p.peek() != "":
        raise CatastrophicFailure("unexpected leftovers at %d", p.pos)

    def bad(x : str) -> str:
        raise invalid(1, "bad %s", repr(x))

    try:
        p.sub(start, bad, host)
    except AddressError as exc:
        if exc.pos != 10 or str(exc) != "[10]: bad 'host'":
            raise CatastrophicFailure("unexpected error %s", repr(exc))
    else:
        raise CatastrophicFailure("expected an error")
