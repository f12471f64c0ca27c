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

"""Hosts, as they appear in authorities."""

import dataclasses as _dc
import enum as _enum

from kisstdlib.exceptions import *

from .error import *
from .char import is_digits
from .domain import Domain
from .ip import IPv4, IPv6, IP, parse_ipv4

class HostKind(_enum.Enum):
    IPV4 = "IPv4"
    IPV6 = "IPv6"
    DOMAIN = "domain"

@_dc.dataclass(frozen=True)
class Host:
    """An `IPv4`, a bracketed `IPv6`, or a `Domain`."""

    value : str
    kind : HostKind = _dc.field(compare=False)
    addr : IPv4 | IPv6 | Domain = _dc.field(compare=False, repr=False)

    @classmethod
    def sanitize(cls, x : str) -> "Host":
        if x.startswith("[") or ":" in x:
            return cls.of(IPv6.sanitize(x))

        labels = x.split(".")
        if len(labels) == 4 and all(is_digits(l) for l in labels):
            # looks like an IPv4 and thus must be one
            return cls.of(IPv4.from_octets(parse_ipv4(x)))

        return cls.of(Domain.sanitize(x))

    @classmethod
    def of(cls, addr : IPv4 | IPv6 | Domain) -> "Host":
        if isinstance(addr, IPv6):
            return cls(addr.bracketed, HostKind.IPV6, addr)
        elif isinstance(addr, IPv4):
            return cls(addr.value, HostKind.IPV4, addr)
        return cls(addr.value, HostKind.DOMAIN, addr)

    @property
    def is_ipv4(self) -> bool:
        return self.kind == HostKind.IPV4

    @property
    def is_ipv6(self) -> bool:
        return self.kind == HostKind.IPV6

    @property
    def is_domain(self) -> bool:
        return self.kind == HostKind.DOMAIN

    def ipv4(self) -> IPv4 | None:
        return self.addr if isinstance(self.addr, IPv4) else None

    def ipv6(self) -> IPv6 | None:
        return self.addr if isinstance(self.addr, IPv6) else None

    def domain(self) -> Domain | None:
        return self.addr if isinstance(self.addr, Domain) else None

    def ip(self) -> IP | None:
        if isinstance(self.addr, Domain):
            return None
        return IP(self.addr.value, self.addr)

    @property
    def bare(self) -> str:
        """Like `value`, but without brackets around IPv6 addresses."""
        return self.addr.value

    def __str__(self) -> str:
        return self.value

def test_Host() -> None:
    def check(x : str, value : str, kind : HostKind) -> None:
        res = Host.sanitize(x)
        if res.value != value or res.kind != kind:
            raise CatastrophicFailure("while parsing `%s`, expected %s (%s), got %s (%s)", x, repr(value), kind, repr(res.value), res.kind)
        if Host.sanitize(res.value) != res:
            raise CatastrophicFailure("`Host.sanitize` is not idempotent on %s", repr(x))

    check("127.0.0.1", "127.0.0.1", HostKind.IPV4)
    check("::1", "[::1]", HostKind.IPV6)
    check("[::1]", "[::1]", HostKind.IPV6)
    check("[0:0:0:0:0:0:0:1]", "[::1]", HostKind.IPV6)
    check("localhost", "localhost", HostKind.DOMAIN)
    check("Example.COM.", "example.com.", HostKind.DOMAIN)
    check("1.2.3", "1.2.3", HostKind.DOMAIN)
    check("1.2.3.4.5", "1.2.3.4.5", HostKind.DOMAIN)
    check("1.2.3.x", "1.2.3.x", HostKind.DOMAIN)

    h = Host.sanitize("[::ffff:1.2.3.4]")
    if h.bare != "::ffff:1.2.3.4" or h.ipv6() is None or h.ipv4() is not None or not h.is_ipv6:
        raise CatastrophicFailure("unexpected IPv6 host accessors")
    h = Host.sanitize("10.0.0.1")
    if h.bare != "10.0.0.1" or h.ipv4() is None or h.domain() is not None or not h.is_ipv4:
        raise CatastrophicFailure("unexpected IPv4 host accessors")
    ip = h.ip()
    if ip is None or ip.version != 4:
        raise CatastrophicFailure("unexpected `Host.ip`")
    h = Host.sanitize("example.org")
    if h.domain() is None or h.ip() is not None or not h.is_domain:
        raise CatastrophicFailure("unexpected domain host accessors")

    # IPv6 never falls back to a domain, and neither do things that look like IPv4
    check_fails(Host.sanitize, "[::1", ErrorKind.MISSING_COMPONENT, 4, "missing closing ']'")
    check_fails(Host.sanitize, "foo::bar", ErrorKind.INVALID_CHARACTER, 1, "not a valid hex number")
    check_fails(Host.sanitize, "1.2.3.256", ErrorKind.RANGE_VIOLATION, 6, "must be between 0 and 255")
    check_fails(Host.sanitize, "1.02.3.4", ErrorKind.INVALID_CHARACTER, 2, "leading zeros")
    check_fails(Host.sanitize, "exa mple.com", ErrorKind.INVALID_CHARACTER, 3, "invalid character")
    check_fails(Host.sanitize, "", ErrorKind.MISSING_COMPONENT, 0)
