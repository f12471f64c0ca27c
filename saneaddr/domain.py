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

"""DNS-style host names."""

import dataclasses as _dc
import idna as _idna
import logging as _logging
from kisstdlib.exceptions import *

from .error import *

max_label_length = 63
max_domain_length = 253

_lower_chars = frozenset("abcdefghijklmnopqrstuvwxyz0123456789")
_upper_chars = frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZ")

def sanitize_domain(x : str) -> str:
    if x == "":
        raise missing(0, "domain cannot be empty")

    xlen = len(x)
    if xlen > max_domain_length + (1 if x.endswith(".") else 0):
        raise out_of_range(max_domain_length, "domain too long")

    l = 0         # length of the current label
    u = False     # seen an uppercase letter
    for i in range(0, xlen):
        c = x[i]
        if c == ".":
            if l == 0:
                raise invalid(i, "empty label")
            l = 0
            continue

        if l >= max_label_length:
            raise out_of_range(i, "label too long")

        if c in _lower_chars:
            pass
        elif c in _upper_chars:
            u = True
        elif c == "-":
            if l == 0:
                raise invalid(i, "label cannot start with a hyphen")
        else:
            raise invalid(i, "invalid character %s", repr(c))
        l += 1

    if u:
        return x.lower()
    return x

@_dc.dataclass(frozen=True)
class Domain:
    value : str

    @classmethod
    def sanitize(cls, x : str) -> "Domain":
        return cls(sanitize_domain(x))

    @property
    def labels(self) -> list[str]:
        return self.value.split(".")

    @property
    def unicode(self) -> str:
        """Display form with `xn--` labels decoded; does not normalize anything."""
        if "xn--" not in self.value:
            return self.value
        try:
            return _idna.decode(self.value)
        except _idna.IDNAError as err:
            _logging.warning("`Domain.unicode` left `%s` undecoded because `idna` module failed to decode it: %s", self.value, repr(err))
            return self.value

    def __str__(self) -> str:
        return self.value

def test_Domain() -> None:
    def check(x : str, value : str) -> None:
        res = Domain.sanitize(x)
        if res.value != value:
            raise CatastrophicFailure("while parsing `%s`, expected %s, got %s", x, repr(value), repr(res.value))
        if Domain.sanitize(res.value) != res:
            raise CatastrophicFailure("`Domain.sanitize` is not idempotent on %s", repr(x))

    for x in ["localhost", "com", "com.", "42", "42.", "example.com", "example.com.",
              "sub.domain.example.com", "xn--o70b819a.example.com", "a-b--c.d"]:
        check(x, x)
    check("Example.COM", "example.com")
    check("a" * 63 + ".com", "a" * 63 + ".com")

    if Domain.sanitize("sub.example.com.").labels != ["sub", "example", "com", ""]:
        raise CatastrophicFailure("unexpected labels")

    check_fails(Domain.sanitize, "", ErrorKind.MISSING_COMPONENT, 0, "domain cannot be empty")
    for x, pos in [(".", 0), (".example.com", 0), ("example..com", 8), ("a..", 2)]:
        check_fails(Domain.sanitize, x, ErrorKind.INVALID_CHARACTER, pos, "empty label")
    check_fails(Domain.sanitize, "a" * 64 + ".com", ErrorKind.RANGE_VIOLATION, 63, "label too long")
    check_fails(Domain.sanitize, ".".join(["a" * 50] * 6), ErrorKind.RANGE_VIOLATION, 253, "domain too long")
    for x, pos in [("-", 0), ("-.", 0), ("-com.", 0), ("-example.com", 0),
                   ("foo.-example.com", 4), ("foo.-example.com.", 4)]:
        check_fails(Domain.sanitize, x, ErrorKind.INVALID_CHARACTER, pos, "label cannot start with a hyphen")
    for x in ["a_.com", "a!.com", "a#.com", "a?.com", "a/.com", "a+.com"]:
        check_fails(Domain.sanitize, x, ErrorKind.INVALID_CHARACTER, 1, "invalid character")

def test_Domain_unicode() -> None:
    d = Domain.sanitize("xn--bcher-kva.example")
    if d.unicode != "bücher.example":
        raise CatastrophicFailure("unexpected `unicode` %s", repr(d.unicode))
    if Domain.sanitize("example.com").unicode != "example.com":
        raise CatastrophicFailure("unexpected `unicode` of an ASCII domain")
    # not valid punycode, kept as-is
    bad = Domain.sanitize("xn--a.example")
    if bad.unicode != bad.value:
        raise CatastrophicFailure("unexpected `unicode` of an invalid A-label")
