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

"""IPv4 and IPv6 literals, and things made of them."""

import dataclasses as _dc
import typing as _t

from kisstdlib.exceptions import *

from .error import *
from .char import digit_chars, hex_chars, is_digits

max_port = 65535

def parse_port(x : str) -> int:
    """Parse a decimal port number, leading zeros allowed."""
    if x == "":
        raise missing(0, "missing port number")
    for i, c in enumerate(x):
        if c not in digit_chars:
            raise invalid(i, "invalid character %s in port number", repr(c))
    digits = x.lstrip("0")
    if len(digits) > len(str(max_port)):
        raise out_of_range(0, "port number must be between 0 and %d, got a %d-digit number", max_port, len(digits))
    n = int(digits or "0")
    if n > max_port:
        raise out_of_range(0, "port number must be between 0 and %d, got %d", max_port, n)
    return n

### IPv4

def parse_ipv4(x : str) -> tuple[int, int, int, int]:
    """Parse a dotted-quad, errors are at character offsets of `x`."""
    fields = x.split(".")
    if len(fields) < 4:
        raise missing(len(x), "must have 4 fields")
    if len(fields) > 4:
        raise invalid(sum(len(f) + 1 for f in fields[:4]), "must have 4 fields")

    res = []
    pos = 0
    for f in fields:
        if f == "":
            raise invalid(pos, "empty")
        if len(f) > 1 and f[0] == "0":
            raise invalid(pos, "leading zeros not allowed")
        for j, c in enumerate(f):
            if c not in digit_chars:
                raise invalid(pos + j, "not a valid number")
        if len(f) > 3:
            raise out_of_range(pos, "must be between 0 and 255, got a %d-digit number", len(f))
        n = int(f)
        if n > 255:
            raise out_of_range(pos, "must be between 0 and 255, got %d", n)
        res.append(n)
        pos += len(f) + 1
    return (res[0], res[1], res[2], res[3])

@_dc.dataclass(frozen=True)
class IPv4:
    value : str
    octets : tuple[int, int, int, int] = _dc.field(compare=False, repr=False)

    @classmethod
    def sanitize(cls, x : str) -> "IPv4":
        """Errors of this one are positioned at field indices, not characters."""
        try:
            octets = parse_ipv4(x)
        except AddressError as exc:
            raise AddressError(x.count(".", 0, exc.pos), exc.kind, "%s", exc.reason) from None
        return cls.from_octets(octets)

    @classmethod
    def from_octets(cls, octets : tuple[int, int, int, int]) -> "IPv4":
        return cls("%d.%d.%d.%d" % octets, octets)

    @classmethod
    def from_bytes(cls, b : bytes) -> "IPv4":
        if len(b) != 4:
            raise ValueError("IPv4 address must be 4 bytes long")
        return cls.from_octets((b[0], b[1], b[2], b[3]))

    def to_bytes(self) -> bytes:
        return bytes(self.octets)

    @property
    def is_unspecified(self) -> bool:
        return self.octets == (0, 0, 0, 0)

    @property
    def is_loopback(self) -> bool:
        # 127.0.0.0/8
        return self.octets[0] == 127

    @property
    def is_private(self) -> bool:
        a, b = self.octets[0], self.octets[1]
        # 10.0.0.0/8, 172.16.0.0/12, 192.168.0.0/16
        return a == 10 or a == 172 and 16 <= b <= 31 or a == 192 and b == 168

    def __str__(self) -> str:
        return self.value

### IPv6

def _parse_groups(x : str, pos : int, tail_ok : bool) -> tuple[list[int], list[int]]:
    """Parse a `:`-separated list of hex groups of `x` starting at `pos`.

    Returns the groups and the offsets of the fields they came from. If
    `tail_ok`, the last field can be a dotted-quad, giving two groups.
    """
    groups : list[int] = []
    offsets : list[int] = []
    if x == "":
        return groups, offsets

    fields = x.split(":")
    last = len(fields) - 1
    for i, f in enumerate(fields):
        if tail_ok and i == last and "." in f:
            try:
                a, b, c, d = parse_ipv4(f)
            except AddressError as exc:
                raise wrap(pos, "invalid embedded IPv4 address", exc) from None
            groups += [a << 8 | b, c << 8 | d]
            offsets += [pos, pos]
            break
        for j, c in enumerate(f):
            if c not in hex_chars:
                raise invalid(pos + j, "not a valid hex number")
        if len(f) > 4:
            raise out_of_range(pos, "block too long")
        groups.append(int(f, 16))
        offsets.append(pos)
        pos += len(f) + 1
    return groups, offsets

def parse_ipv6(x : str) -> list[int]:
    """Parse an optionally bracketed IPv6 literal into 8 groups.

    Errors are at character offsets of `x`.
    """
    if x == "":
        raise missing(0, "empty IPv6 address")

    off = 0
    if x[0] == "[":
        if x[-1] != "]":
            raise missing(len(x), "missing closing ']'")
        x = x[1:-1]
        off = 1
        if x == "":
            raise missing(off, "empty IPv6 address")

    xlen = len(x)
    if x.count(":") < 2:
        raise invalid(off + xlen, "must have at least 2 colons")
    if x[0] == ":" and x[1] != ":":
        raise invalid(off, "single ':' at the beginning is not allowed")
    if x[-1] == ":" and x[-2] != ":":
        raise invalid(off + xlen - 1, "single ':' at the end is not allowed")

    gap = x.find("::")
    if gap < 0:
        groups, offsets = _parse_groups(x, off, True)
        if len(groups) > 8:
            raise invalid(offsets[8], "must have at most 8 blocks")
        if len(groups) < 8:
            raise missing(off + xlen, "must have 8 blocks or a '::'")
        return groups

    again = x.find("::", gap + 1)
    if again >= 0:
        raise invalid(off + again, "only one '::' allowed")

    right_start = gap + 2
    left, left_offsets = _parse_groups(x[:gap], off, False)
    right, offsets = _parse_groups(x[right_start:], off + right_start, True)
    total = len(left) + len(right)
    if total > 7:
        if len(left) > 7:
            raise invalid(left_offsets[7], "must have at most 8 blocks")
        raise invalid(offsets[7 - len(left)], "must have at most 8 blocks")
    return left + [0] * (8 - total) + right

def is_ipv4_mapped(groups : list[int]) -> bool:
    return groups[5] == 0xffff and not any(groups[:5])

def format_ipv6(groups : list[int]) -> str:
    """Produce the canonical text form of 8 groups."""
    if is_ipv4_mapped(groups):
        g, h = groups[6], groups[7]
        return "::ffff:%d.%d.%d.%d" % (g >> 8, g & 0xff, h >> 8, h & 0xff)

    # find the leftmost longest run of zero groups
    best, best_len = 0, 0
    start, run = 0, 0
    for i, g in enumerate(groups):
        if g != 0:
            run = 0
            continue
        if run == 0:
            start = i
        run += 1
        if run > best_len:
            best, best_len = start, run

    if best_len < 2:
        return ":".join("%x" % g for g in groups)
    return ":".join("%x" % g for g in groups[:best]) \
        + "::" \
        + ":".join("%x" % g for g in groups[best + best_len:])

@_dc.dataclass(frozen=True)
class IPv6:
    """IPv6 address; `value` is never bracketed, see `bracketed`."""

    value : str
    groups : tuple[int, ...] = _dc.field(compare=False, repr=False)

    @classmethod
    def sanitize(cls, x : str) -> "IPv6":
        return cls.from_groups(parse_ipv6(x))

    @classmethod
    def from_groups(cls, groups : _t.Sequence[int]) -> "IPv6":
        groups = list(groups)
        return cls(format_ipv6(groups), tuple(groups))

    @classmethod
    def from_bytes(cls, b : bytes) -> "IPv6":
        if len(b) != 16:
            raise ValueError("IPv6 address must be 16 bytes long")
        return cls.from_groups([b[i] << 8 | b[i + 1] for i in range(0, 16, 2)])

    def to_bytes(self) -> bytes:
        return b"".join(g.to_bytes(2, "big") for g in self.groups)

    @property
    def bracketed(self) -> str:
        return "[" + self.value + "]"

    @property
    def ipv4_mapped(self) -> IPv4 | None:
        if not is_ipv4_mapped(list(self.groups)):
            return None
        return IPv4.from_bytes(self.to_bytes()[12:])

    @property
    def is_unspecified(self) -> bool:
        return not any(self.groups)

    @property
    def is_loopback(self) -> bool:
        return self.groups[7] == 1 and not any(self.groups[:7])

    @property
    def is_private(self) -> bool:
        # fc00::/7
        return self.groups[0] & 0xfe00 == 0xfc00

    def __str__(self) -> str:
        return self.value

### unions

@_dc.dataclass(frozen=True)
class IP:
    """Either an `IPv4` or an `IPv6`, or `""` for an unspecified address."""

    value : str
    addr : IPv4 | IPv6 | None = _dc.field(compare=False, repr=False)

    @classmethod
    def sanitize(cls, x : str) -> "IP":
        if x == "":
            return cls("", None)
        if ":" in x:
            addr : IPv4 | IPv6 = IPv6.sanitize(x)
        elif "." in x:
            addr = IPv4.from_octets(parse_ipv4(x))
        else:
            raise invalid(0, "invalid IP address")
        return cls(addr.value, addr)

    def v4(self) -> IPv4 | None:
        if self.addr is None:
            return IPv4.from_octets((0, 0, 0, 0))
        if isinstance(self.addr, IPv4):
            return self.addr
        return None

    def v6(self) -> IPv6 | None:
        if self.addr is None:
            return IPv6.from_groups([0] * 8)
        if isinstance(self.addr, IPv6):
            return self.addr
        return None

    @property
    def version(self) -> int | None:
        if isinstance(self.addr, IPv4):
            return 4
        elif isinstance(self.addr, IPv6):
            return 6
        return None

    def to_bytes(self) -> bytes:
        if self.addr is None:
            return bytes(4)
        return self.addr.to_bytes()

    @property
    def is_unspecified(self) -> bool:
        return self.addr is None or self.addr.is_unspecified

    @property
    def is_loopback(self) -> bool:
        return self.addr is not None and self.addr.is_loopback

    @property
    def is_private(self) -> bool:
        return self.addr is not None and self.addr.is_private

    def __str__(self) -> str:
        return self.value

def _split_ip(x : str, sep : str, what : str) -> tuple[str, str, int]:
    i = x.rfind(sep)
    if i < 0 or x.find("]") > i:
        raise missing(len(x), "missing %s separator for %s", repr(sep), what)
    return x[:i], x[i + 1:], i + 1

@_dc.dataclass(frozen=True)
class IPPort:
    """`ip:port` with IPv6 addresses in brackets and an empty `ip` meaning any."""

    value : str
    ip : IP = _dc.field(compare=False, repr=False)
    port : int = _dc.field(compare=False, repr=False)

    @classmethod
    def sanitize(cls, x : str) -> "IPPort":
        host, ports, port_start = _split_ip(x, ":", "port")
        if host.startswith("["):
            if not host.endswith("]"):
                raise missing(len(host), "missing closing ']'")
            v6 = IPv6.sanitize(host)
            ip = IP(v6.value, v6)
        elif ":" in host:
            raise conflict(0, "IPv6 address must be enclosed in brackets")
        else:
            ip = IP.sanitize(host)

        try:
            port = parse_port(ports)
        except AddressError as exc:
            raise exc.accumulate(port_start) from None
        return cls.make(ip, port)

    @classmethod
    def make(cls, ip : IP, port : int) -> "IPPort":
        if not 0 <= port <= max_port:
            raise out_of_range(0, "port number must be between 0 and %d, got %d", max_port, port)
        host = ip.value if ip.version != 6 else "[" + ip.value + "]"
        return cls(host + ":" + str(port), ip, port)

    def __str__(self) -> str:
        return self.value

@_dc.dataclass(frozen=True)
class IPWithCIDR:
    """`ip/prefix` network notation."""

    value : str
    ip : IP = _dc.field(compare=False, repr=False)
    prefix : int = _dc.field(compare=False, repr=False)

    @classmethod
    def sanitize(cls, x : str) -> "IPWithCIDR":
        host, ns, ns_start = _split_ip(x, "/", "CIDR")
        if host == "":
            raise missing(0, "missing IP address before '/'")
        ip = IP.sanitize(host)

        if not is_digits(ns):
            raise invalid(ns_start, "invalid network size")
        limit = 32 if ip.version == 4 else 128
        digits = ns.lstrip("0")
        n = int(digits or "0") if len(digits) <= 3 else limit + 1
        if n > limit:
            raise out_of_range(ns_start, "network size must be between 0 and %d for IPv%d", limit, ip.version)
        return cls(ip.value + "/" + str(n), ip, n)

    def to_bytes(self) -> bytes:
        return self.ip.to_bytes()

    @property
    def is_private(self) -> bool:
        return self.ip.is_private

    def __str__(self) -> str:
        return self.value

def test_IPv4() -> None:
    def check(x : str, octets : tuple[int, int, int, int]) -> None:
        res = IPv4.sanitize(x)
        if res.value != x or res.octets != octets or res.to_bytes() != bytes(octets):
            raise CatastrophicFailure("while parsing `%s`, expected %s, got %s", x, octets, res.octets)

    check("0.0.0.0", (0, 0, 0, 0))
    check("0.0.0.1", (0, 0, 0, 1))
    check("10.0.0.1", (10, 0, 0, 1))
    check("127.0.0.1", (127, 0, 0, 1))
    check("192.168.0.1", (192, 168, 0, 1))
    check("255.255.255.255", (255, 255, 255, 255))

    check_fails(IPv4.sanitize, "", ErrorKind.MISSING_COMPONENT, 0, "must have 4 fields")
    check_fails(IPv4.sanitize, "1.2.3", ErrorKind.MISSING_COMPONENT, 2, "must have 4 fields")
    check_fails(IPv4.sanitize, "1.2.3.4.5", ErrorKind.INVALID_CHARACTER, 4, "must have 4 fields")
    check_fails(IPv4.sanitize, "1.2..3", ErrorKind.INVALID_CHARACTER, 2, "empty")
    check_fails(IPv4.sanitize, "1.01.0.1", ErrorKind.INVALID_CHARACTER, 1, "leading zeros not allowed")
    check_fails(IPv4.sanitize, "255.1.2.X", ErrorKind.INVALID_CHARACTER, 3, "not a valid number")
    check_fails(IPv4.sanitize, "1.+2.3.4", ErrorKind.INVALID_CHARACTER, 1, "not a valid number")
    check_fails(IPv4.sanitize, "256.0.0.1", ErrorKind.RANGE_VIOLATION, 0, "must be between 0 and 255, got 256")
    check_fails(IPv4.sanitize, "1" * 5000 + ".1.1.1", ErrorKind.RANGE_VIOLATION, 0, "must be between 0 and 255")

    err = check_fails(IPv4.sanitize, "1.01.0.1")
    if str(err) != "[1]: leading zeros not allowed":
        raise CatastrophicFailure("unexpected rendering %s", str(err))

    # `parse_ipv4` reports characters
    check_fails(parse_ipv4, "1.2.3.04", ErrorKind.INVALID_CHARACTER, 6)
    check_fails(parse_ipv4, "1.2.3.4x", ErrorKind.INVALID_CHARACTER, 7)

def test_IPv4_predicates() -> None:
    ip = IPv4.sanitize
    if not ip("0.0.0.0").is_unspecified or ip("0.0.0.1").is_unspecified:
        raise CatastrophicFailure("`is_unspecified` is broken")
    if not ip("127.1.2.3").is_loopback or ip("128.0.0.1").is_loopback:
        raise CatastrophicFailure("`is_loopback` is broken")
    for x in ["10.1.2.3", "172.16.0.1", "172.31.255.255", "192.168.1.1"]:
        if not ip(x).is_private:
            raise CatastrophicFailure("`%s` must be private", x)
    for x in ["11.1.2.3", "172.15.0.1", "172.32.0.1", "192.169.1.1", "8.8.8.8"]:
        if ip(x).is_private:
            raise CatastrophicFailure("`%s` must not be private", x)

def test_IPv6() -> None:
    def check(x : str, value : str) -> None:
        for given in [x, "[" + x + "]"]:
            res = IPv6.sanitize(given)
            if res.value != value:
                raise CatastrophicFailure("while parsing `%s`, expected %s, got %s", given, repr(value), repr(res.value))
            if IPv6.sanitize(res.value) != res:
                raise CatastrophicFailure("`IPv6.sanitize` is not idempotent on %s", repr(given))

    check("::", "::")
    check("::1", "::1")
    check("1::", "1::")
    check("1::1", "1::1")
    check("::1:0:0:1", "::1:0:0:1")
    check("1:0:0:1::", "1:0:0:1::")
    check("1:0:0:1:0:0:0:0", "1:0:0:1::")
    check("::AbCd", "::abcd")
    check("1:0:1:0:1:2:3:4", "1:0:1:0:1:2:3:4")
    check("1:0:2:3:4:5:6:7", "1:0:2:3:4:5:6:7")
    check("1:2:3:4:5:6:7::", "1:2:3:4:5:6:7:0")
    check("::1:2:3:4:5:6:7", "0:1:2:3:4:5:6:7")
    check("1:0:0:2:3:4:5:0", "1::2:3:4:5:0")
    check("::ffff:192.0.2.128", "::ffff:192.0.2.128")
    check("::0:ffff:192.0.2.128", "::ffff:192.0.2.128")
    check("0::ffff:192.0.2.128", "::ffff:192.0.2.128")
    check("0::0:ffff:192.0.2.128", "::ffff:192.0.2.128")
    check("0:0:0:0:0:ffff:192.0.2.128", "::ffff:192.0.2.128")
    check("::ffff:c000:280", "::ffff:192.0.2.128")
    check("64:ff9b::192.0.2.128", "64:ff9b::c000:280")
    check("aaaa:0:0:bbbb:0:0:0:d", "aaaa:0:0:bbbb::d")
    check("aaaa:0:0:bbbb:0:0:c:d", "aaaa::bbbb:0:0:c:d")
    check("aaaa:0:0:bbbb::c:d", "aaaa::bbbb:0:0:c:d")
    check("0aaa:00bb:000c:000:00:0:d:e", "aaa:bb:c::d:e")
    check("1111:2222:3333:4444:5555:6666:7777:8888", "1111:2222:3333:4444:5555:6666:7777:8888")

def test_IPv6_errors() -> None:
    def check(reason : str, kind : ErrorKind, *values : str) -> None:
        for x in values:
            check_fails(IPv6.sanitize, x, kind, None, reason)

    check("empty", ErrorKind.MISSING_COMPONENT, "", "[]")
    check("missing closing ']'", ErrorKind.MISSING_COMPONENT, "[::1")
    check("must have at most 8 blocks", ErrorKind.INVALID_CHARACTER,
          "1:2:3:4:5:6:7:8:9", "1::2:3:4:5:6:7:8", "1:2:3:4:5:6:7:1.2.3.4")
    check("must have at least 2 colons", ErrorKind.INVALID_CHARACTER, "1", "1:", ":1", "1:2")
    check("must have 8 blocks", ErrorKind.MISSING_COMPONENT, "1:2:3", "1:2:3:4:5:6:7")
    check("single ':' at the beginning is not allowed", ErrorKind.INVALID_CHARACTER,
          ":2::", ":2:3::", ":2:3:4:5:6:7")
    check("single ':' at the end is not allowed", ErrorKind.INVALID_CHARACTER,
          "::7:", "::6:7:", "1:2:3:4:5:6:7:")
    check("only one '::' allowed", ErrorKind.INVALID_CHARACTER,
          "::0::", "::1::", "1::0::", "1::1::", "1:0::4::6", "1:2::4::6",
          "1::0:4::6", "1::3:4::6", "1:::2")
    check("invalid embedded IPv4 address", ErrorKind.MISSING_COMPONENT, "::ffff:1.2.3")
    check("invalid embedded IPv4 address", ErrorKind.INVALID_CHARACTER,
          "::ffff:1.2..3", "::ffff:1.01.0.1", "::ffff:255.1.2.X")
    check("invalid embedded IPv4 address", ErrorKind.RANGE_VIOLATION, "::ffff:256.0.0.1")
    check("block too long", ErrorKind.RANGE_VIOLATION, "12345::", "::23456", "::2:34567")
    check("not a valid hex number", ErrorKind.INVALID_CHARACTER,
          "::-1", "g::", "::h", "::1:z", "1.2.3.4::", "1.2.3.4::5")

    # offsets
    check_fails(IPv6.sanitize, "::1:z", pos=4)
    check_fails(IPv6.sanitize, "[::1:z]", pos=5)
    check_fails(IPv6.sanitize, "1::2::3", pos=4)
    check_fails(IPv6.sanitize, "::2:34567", pos=4)
    check_fails(IPv6.sanitize, "1.2.3.4::", pos=1)
    check_fails(IPv6.sanitize, "1:2:3:4:5:6:7:8:9", pos=16)
    check_fails(IPv6.sanitize, "1:2:3:4:5:6:7:", pos=13)
    check_fails(IPv6.sanitize, "::ffff:256.0.0.1", pos=7)
    check_fails(IPv6.sanitize, "::ffff:1.2.3.04", pos=13)

def test_IPv6_bytes() -> None:
    def check(x : str, data : bytes) -> None:
        res = IPv6.sanitize(x)
        if res.to_bytes() != data:
            raise CatastrophicFailure("while evaluating `to_bytes` of `%s`, expected %s, got %s", x, data, res.to_bytes())
        if IPv6.from_bytes(data) != res:
            raise CatastrophicFailure("`IPv6.from_bytes` does not invert `to_bytes` on `%s`", x)

    check("::", bytes(16))
    check("::1", bytes(15) + b"\x01")
    check("1::", b"\x00\x01" + bytes(14))
    check("1::1", b"\x00\x01" + bytes(12) + b"\x00\x01")
    check("::ffff:192.0.2.128", bytes(10) + b"\xff\xff\xc0\x00\x02\x80")
    check("aaaa:0:0:bbbb::cccc", b"\xaa\xaa" + bytes(4) + b"\xbb\xbb" + bytes(6) + b"\xcc\xcc")
    check("1111:2222:3333:4444:5555:6666:7777:8888", b"\x11\x11\x22\x22\x33\x33\x44\x44\x55\x55\x66\x66\x77\x77\x88\x88")

    mapped = IPv6.sanitize("::ffff:10.1.2.3").ipv4_mapped
    if mapped is None or mapped.value != "10.1.2.3":
        raise CatastrophicFailure("unexpected `ipv4_mapped` %s", mapped)
    if IPv6.sanitize("::1").ipv4_mapped is not None:
        raise CatastrophicFailure("`::1` is not IPv4-mapped")
    if not IPv6.sanitize("::").is_unspecified or not IPv6.sanitize("::1").is_loopback:
        raise CatastrophicFailure("IPv6 predicates are broken")
    if not IPv6.sanitize("fd00::1").is_private or IPv6.sanitize("fe80::1").is_private:
        raise CatastrophicFailure("`IPv6.is_private` is broken")

def test_IP() -> None:
    def check(x : str, value : str, version : int | None) -> None:
        res = IP.sanitize(x)
        if res.value != value or res.version != version:
            raise CatastrophicFailure("while parsing `%s`, expected %s (IPv%s), got %s (IPv%s)", x, repr(value), version, repr(res.value), res.version)

    check("", "", None)
    check("127.0.0.1", "127.0.0.1", 4)
    check("::1", "::1", 6)
    check("[::1]", "::1", 6)
    check("::FFFF:1.2.3.4", "::ffff:1.2.3.4", 6)

    unspec = IP.sanitize("")
    if unspec.v4() != IPv4.sanitize("0.0.0.0") or unspec.v6() != IPv6.sanitize("::") or not unspec.is_unspecified:
        raise CatastrophicFailure("unexpected unspecified IP")
    if IP.sanitize("10.0.0.1").v6() is not None or IP.sanitize("::1").v4() is not None:
        raise CatastrophicFailure("IP union accessors are broken")
    if not IP.sanitize("::1").is_loopback or not IP.sanitize("192.168.0.1").is_private:
        raise CatastrophicFailure("IP union predicates are broken")

    check_fails(IP.sanitize, "localhost", ErrorKind.INVALID_CHARACTER, 0, "invalid IP address")
    check_fails(IP.sanitize, "1.2.3.04", ErrorKind.INVALID_CHARACTER, 6, "leading zeros")

def test_IPPort() -> None:
    def check(x : str, value : str, port : int) -> None:
        res = IPPort.sanitize(x)
        if res.value != value or res.port != port:
            raise CatastrophicFailure("while parsing `%s`, expected %s, got %s", x, repr(value), repr(res.value))
        if IPPort.sanitize(res.value) != res:
            raise CatastrophicFailure("`IPPort.sanitize` is not idempotent on %s", repr(x))

    check("127.0.0.1:80", "127.0.0.1:80", 80)
    check("127.0.0.1:0080", "127.0.0.1:80", 80)
    check("[::1]:443", "[::1]:443", 443)
    check("[0:0::1]:0", "[::1]:0", 0)
    check(":8080", ":8080", 8080)

    check_fails(IPPort.sanitize, "127.0.0.1", ErrorKind.MISSING_COMPONENT, 9, "missing ':' separator")
    check_fails(IPPort.sanitize, "[::1]", ErrorKind.MISSING_COMPONENT, 5, "missing ':' separator")
    check_fails(IPPort.sanitize, "::1:80", ErrorKind.STRUCTURAL_CONFLICT, 0, "brackets")
    check_fails(IPPort.sanitize, "127.0.0.1:", ErrorKind.MISSING_COMPONENT, 10, "missing port number")
    check_fails(IPPort.sanitize, "127.0.0.1:8x", ErrorKind.INVALID_CHARACTER, 11)
    check_fails(IPPort.sanitize, "127.0.0.1:65536", ErrorKind.RANGE_VIOLATION, 10)
    check_fails(IPPort.sanitize, "127.0.0.1:" + "9" * 5000, ErrorKind.RANGE_VIOLATION, 10)
    check_fails(IPPort.sanitize, "[127.0.0.1]:80", ErrorKind.INVALID_CHARACTER, 10, "at least 2 colons")

def test_IPWithCIDR() -> None:
    def check(x : str, value : str, prefix : int) -> None:
        res = IPWithCIDR.sanitize(x)
        if res.value != value or res.prefix != prefix:
            raise CatastrophicFailure("while parsing `%s`, expected %s, got %s", x, repr(value), repr(res.value))

    check("10.0.0.0/8", "10.0.0.0/8", 8)
    check("10.0.0.0/08", "10.0.0.0/8", 8)
    check("0.0.0.0/0", "0.0.0.0/0", 0)
    check("fd00:0::/8", "fd00::/8", 8)
    check("::/128", "::/128", 128)
    check("10.0.0.0/000", "10.0.0.0/0", 0)
    check("10.0.0.0/" + "0" * 5000 + "8", "10.0.0.0/8", 8)

    if not IPWithCIDR.sanitize("192.168.0.0/16").is_private:
        raise CatastrophicFailure("`IPWithCIDR.is_private` is broken")

    check_fails(IPWithCIDR.sanitize, "10.0.0.0", ErrorKind.MISSING_COMPONENT, 8, "missing '/' separator")
    check_fails(IPWithCIDR.sanitize, "/8", ErrorKind.MISSING_COMPONENT, 0, "missing IP address")
    check_fails(IPWithCIDR.sanitize, "10.0.0.0/x", ErrorKind.INVALID_CHARACTER, 9, "invalid network size")
    check_fails(IPWithCIDR.sanitize, "10.0.0.0/", ErrorKind.INVALID_CHARACTER, 9, "invalid network size")
    check_fails(IPWithCIDR.sanitize, "10.0.0.0/33", ErrorKind.RANGE_VIOLATION, 9, "between 0 and 32")
    check_fails(IPWithCIDR.sanitize, "::/129", ErrorKind.RANGE_VIOLATION, 3, "between 0 and 128")
    check_fails(IPWithCIDR.sanitize, "10.0.0.0/" + "1" * 5000, ErrorKind.RANGE_VIOLATION, 9, "between 0 and 32")
