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

"""Local addresses, i.e. `network:address` pairs one can bind a socket to.

The `network` part decides what the `address` part is: `tcp`, `tcp4`,
`tcp6`, `udp`, `udp4`, and `udp6` take a `host:port` with the `4`/`6`
suffix following the family of the `host`, while `unix` takes a socket
path.
"""

import dataclasses as _dc
import enum as _enum
import logging as _logging
import os as _os
import socket as _socket
import tempfile as _tempfile
import typing as _t

from kisstdlib.exceptions import *

from .error import *
from .ip import IPv4, IPv6, parse_port
from .host import Host
from .authority import Authority

class Network(_enum.Enum):
    TCP = "tcp"
    TCP4 = "tcp4"
    TCP6 = "tcp6"
    UDP = "udp"
    UDP4 = "udp4"
    UDP6 = "udp6"
    UNIX = "unix"

    @classmethod
    def of(cls, family : str, version : int | None = None) -> "Network":
        return cls(family if version is None else family + str(version))

    @property
    def family(self) -> str:
        return self.value.rstrip("46")

    @property
    def version(self) -> int | None:
        last = self.value[-1]
        if last in "46":
            return int(last)
        return None

    @property
    def is_stream(self) -> bool:
        return self.family != "udp"

    @property
    def is_dgram(self) -> bool:
        return self.family == "udp"

networks = {n.value: n for n in Network}

max_unix_path_length = 107
any_ipv4 = Host.of(IPv4.from_octets((0, 0, 0, 0)))
any_ipv6 = Host.of(IPv6.from_groups([0] * 8))

def _resolve(network : Network, host : Host | None, pos : int) -> tuple[Network, Host | None]:
    """Make the version of `network` agree with the family of `host`."""
    version = network.version
    if host is None:
        if version == 4:
            host = any_ipv4
        elif version == 6:
            host = any_ipv6
    elif host.is_ipv4:
        if version == 6:
            raise conflict(pos, "IPv4 address with %s network", network.value)
        version = 4
    elif host.is_ipv6:
        if version == 4:
            raise conflict(pos, "IPv6 address with %s network", network.value)
        version = 6
    return Network.of(network.family, version), host

@_dc.dataclass(frozen=True)
class Local:
    """A validated local address.

    Exactly one of `authority` (`tcp*` and `udp*` networks) and `path`
    (`unix` network) is set.
    """

    value : str
    network : Network = _dc.field(compare=False)
    authority : Authority | None = _dc.field(compare=False, repr=False)
    path : str | None = _dc.field(compare=False, repr=False)

    @classmethod
    def sanitize(cls, x : str) -> "Local":
        return sanitize_local(x, ["tcp", "udp", "unix"])

    @classmethod
    def make_ip(cls, network : Network, host : Host | None, port : int | None, pos : int = 0) -> "Local":
        network, host = _resolve(network, host, pos)
        authority = Authority.build("", host, port)
        return cls(network.value + ":" + authority.value, network, authority, None)

    @classmethod
    def make_unix(cls, path : str, pos : int = 0) -> "Local":
        if path == "":
            raise missing(pos, "missing socket path")
        nul = path.find("\0")
        if nul >= 0:
            raise invalid(pos + nul, "NUL character in socket path")
        blen = len(path.encode("utf-8"))
        if blen > max_unix_path_length:
            raise out_of_range(pos, "socket path must be at most %d bytes long, got %d", max_unix_path_length, blen)
        return cls("unix:" + path, Network.UNIX, None, path)

    @property
    def address(self) -> str:
        return self.value.partition(":")[2]

    @property
    def host(self) -> Host | None:
        return self.authority.host if self.authority is not None else None

    @property
    def port(self) -> int | None:
        return self.authority.port if self.authority is not None else None

    def with_host(self, host : str, allow_unix : bool = False) -> "Local":
        if allow_unix and host[:1] in (".", "/"):
            return self.make_unix(host)
        if self.authority is None:
            raise conflict(0, "can not set a host of a %s address", self.network.value)
        return self.make_ip(Network.of(self.network.family), Host.sanitize(host), self.authority.port)

    def with_port(self, port : int) -> "Local":
        if self.authority is None:
            raise conflict(0, "can not set a port of a %s address", self.network.value)
        return self.make_ip(self.network, self.authority.host, port)

    def __str__(self) -> str:
        return self.value

def sanitize_ip_local(x : str, family : str) -> Local:
    if x == "":
        raise missing(0, "empty %s local address", family)

    net, _, addr = x.partition(":")
    start = len(net) + 1
    if net == "":
        # `:port`
        try:
            port = parse_port(addr)
        except AddressError as exc:
            raise exc.accumulate(start) from None
        return Local.make_ip(Network.of(family), None, port)

    network = networks.get(net, None)
    if network is None:
        _logging.debug("reinterpreting %s as a %s `host:port`", repr(x), family)
        network, addr, start = Network.of(family), x, 0
    elif network.family != family:
        raise conflict(0, "expected a %s network, got %s", family, repr(net))

    try:
        a = Authority.sanitize(addr)
    except AddressError as exc:
        raise exc.accumulate(start) from None
    if a.userinfo != "":
        raise conflict(start, "userinfo is not allowed in local addresses")
    if a.port is None:
        raise missing(len(x), "missing port number")
    return Local.make_ip(network, a.host, a.port, start)

def sanitize_unix_local(x : str) -> Local:
    if x[:1] in (".", "/"):
        return Local.make_unix(x)
    net, _, path = x.partition(":")
    if net not in ("", "unix"):
        raise conflict(0, "expected a unix network, got %s", repr(net))
    return Local.make_unix(path, len(net) + 1)

def sanitize_local(x : str, families : list[str]) -> Local:
    """Guess the family of `x` and sanitize it as such."""
    if x == "":
        raise missing(0, "empty local address")

    first = x[0]
    if first in ":[":
        family = "tcp"
    elif first in "./":
        family = "unix"
    else:
        network = networks.get(x.partition(":")[0], None)
        family = network.family if network is not None else "tcp"

    if family not in families:
        raise conflict(0, "expected %s address, got a %s one", " or ".join(families), family)
    elif family == "unix":
        return sanitize_unix_local(x)
    return sanitize_ip_local(x, family)

class LocalLike:
    """Things that are `Local` addresses with extra constraints."""

    local : Local

    # can `with_host` turn these into `unix` addresses?
    allows_unix = False

    @classmethod
    def of(cls, local : Local) -> _t.Any:
        """Wrap an already sanitized `local`, checking extra constraints."""
        return cls(local) # type: ignore

    @property
    def value(self) -> str:
        return self.local.value

    @property
    def network(self) -> Network:
        return self.local.network

    @property
    def address(self) -> str:
        return self.local.address

    @property
    def host(self) -> Host | None:
        return self.local.host

    @property
    def port(self) -> int | None:
        return self.local.port

    @property
    def path(self) -> str | None:
        return self.local.path

    def with_host(self, host : str) -> _t.Any:
        return self.of(self.local.with_host(host, self.allows_unix))

    def with_port(self, port : int) -> _t.Any:
        return self.of(self.local.with_port(port))

    def __str__(self) -> str:
        return self.local.value

@_dc.dataclass(frozen=True)
class TCPLocal(LocalLike):
    local : Local

    @classmethod
    def sanitize(cls, x : str) -> "TCPLocal":
        return cls.of(sanitize_ip_local(x, "tcp"))

@_dc.dataclass(frozen=True)
class UDPLocal(LocalLike):
    local : Local

    @classmethod
    def sanitize(cls, x : str) -> "UDPLocal":
        return cls.of(sanitize_ip_local(x, "udp"))

@_dc.dataclass(frozen=True)
class TCPUDPLocal(LocalLike):
    """A `tcp*` or a `udp*` address, the network must be explicit."""

    local : Local

    @classmethod
    def sanitize(cls, x : str) -> "TCPUDPLocal":
        net = x.partition(":")[0]
        network = networks.get(net, None)
        if net == "":
            raise missing(0, "missing network")
        elif network is None or network.family not in ("tcp", "udp"):
            raise conflict(0, "not a TCP or UDP network: %s", repr(net))
        return cls.of(sanitize_ip_local(x, network.family))

    @property
    def is_stream(self) -> bool:
        return self.network.is_stream

    @property
    def is_dgram(self) -> bool:
        return self.network.is_dgram

@_dc.dataclass(frozen=True)
class UnixLocal(LocalLike):
    local : Local

    @classmethod
    def sanitize(cls, x : str) -> "UnixLocal":
        return cls.of(sanitize_unix_local(x))

@_dc.dataclass(frozen=True)
class TCPUnixLocal(LocalLike):
    """A `tcp*` or a `unix` address."""

    local : Local
    allows_unix = True

    @classmethod
    def sanitize(cls, x : str) -> "TCPUnixLocal":
        return cls.of(sanitize_local(x, ["tcp", "unix"]))

AnyLocal = _t.Union[Local, LocalLike]

def _local_of(v : AnyLocal) -> Local:
    if isinstance(v, Local):
        return v
    return v.local

def network_of(v : AnyLocal) -> str:
    return _local_of(v).network.value

def address_of(v : AnyLocal) -> str:
    return _local_of(v).address

def listen(v : AnyLocal, backlog : int | None = None) -> _socket.socket:
    """Create a socket listening (or, for `udp*`, bound) at `v`."""
    local = _local_of(v)
    network = local.network

    if network == Network.UNIX:
        assert local.path is not None
        sock = _socket.socket(_socket.AF_UNIX, _socket.SOCK_STREAM)
        try:
            sock.bind(local.path)
            if backlog is None:
                sock.listen()
            else:
                sock.listen(backlog)
        except Exception:
            sock.close()
            raise
        return sock

    assert local.authority is not None and local.authority.port is not None
    host = local.authority.host
    hosts = host.bare if host is not None else ""
    port = local.authority.port
    family = _socket.AF_INET6 if network.version == 6 else _socket.AF_INET

    if network.is_stream:
        return _socket.create_server((hosts, port), family=family, backlog=backlog)

    sock = _socket.socket(family, _socket.SOCK_DGRAM)
    try:
        sock.bind((hosts, port))
    except Exception:
        sock.close()
        raise
    return sock

def test_Network() -> None:
    n = Network("tcp6")
    if n.family != "tcp" or n.version != 6 or not n.is_stream or n.is_dgram:
        raise CatastrophicFailure("unexpected `tcp6` properties")
    n = Network("udp")
    if n.family != "udp" or n.version is not None or n.is_stream or not n.is_dgram:
        raise CatastrophicFailure("unexpected `udp` properties")
    if Network.UNIX.family != "unix" or not Network.UNIX.is_stream or Network.of("udp", 4) != Network.UDP4:
        raise CatastrophicFailure("unexpected `unix` properties")

def test_TCPLocal() -> None:
    def check(x : str, value : str) -> None:
        res = TCPLocal.sanitize(x)
        if res.value != value:
            raise CatastrophicFailure("while parsing `%s`, expected %s, got %s", x, repr(value), repr(res.value))
        if TCPLocal.sanitize(res.value) != res:
            raise CatastrophicFailure("`TCPLocal.sanitize` is not idempotent on %s", repr(x))

    check(":80", "tcp::80")
    check(":0080", "tcp::80")
    check("0.0.0.0:80", "tcp4:0.0.0.0:80")
    check("[::]:80", "tcp6:[::]:80")
    check("tcp::80", "tcp::80")
    check("tcp4::80", "tcp4:0.0.0.0:80")
    check("tcp6::80", "tcp6:[::]:80")
    check("tcp:127.0.0.1:80", "tcp4:127.0.0.1:80")
    check("tcp:[::1]:80", "tcp6:[::1]:80")
    check("localhost:80", "tcp:localhost:80")
    check("tcp6:localhost:80", "tcp6:localhost:80")
    check("tcp4:Example.com:443", "tcp4:example.com:443")

    l = TCPLocal.sanitize("127.0.0.1:8080")
    if l.network != Network.TCP4 or l.address != "127.0.0.1:8080" or l.port != 8080 or l.host is None or not l.host.is_ipv4:
        raise CatastrophicFailure("unexpected accessors of %s", repr(l))
    if network_of(l) != "tcp4" or address_of(l) != "127.0.0.1:8080":
        raise CatastrophicFailure("unexpected `network_of` or `address_of`")

    check_fails(TCPLocal.sanitize, "", ErrorKind.MISSING_COMPONENT, 0)
    check_fails(TCPLocal.sanitize, ":", ErrorKind.MISSING_COMPONENT, 1, "missing port number")
    check_fails(TCPLocal.sanitize, ":8x", ErrorKind.INVALID_CHARACTER, 2)
    check_fails(TCPLocal.sanitize, ":65536", ErrorKind.RANGE_VIOLATION, 1)
    check_fails(TCPLocal.sanitize, ":" + "9" * 5000, ErrorKind.RANGE_VIOLATION, 1)
    check_fails(TCPLocal.sanitize, "localhost", ErrorKind.MISSING_COMPONENT, 9, "missing port number")
    check_fails(TCPLocal.sanitize, "tcp4:127.0.0.1", ErrorKind.MISSING_COMPONENT, 14, "missing port number")
    check_fails(TCPLocal.sanitize, "tcp6:127.0.0.1:80", ErrorKind.STRUCTURAL_CONFLICT, 5, "IPv4 address with tcp6 network")
    check_fails(TCPLocal.sanitize, "tcp4:[::1]:80", ErrorKind.STRUCTURAL_CONFLICT, 5, "IPv6 address with tcp4 network")
    check_fails(TCPLocal.sanitize, "tcp:user@host:80", ErrorKind.STRUCTURAL_CONFLICT, 4, "userinfo")
    check_fails(TCPLocal.sanitize, "udp::80", ErrorKind.STRUCTURAL_CONFLICT, 0, "expected a tcp network")
    check_fails(TCPLocal.sanitize, "tcp:exa mple:80", ErrorKind.INVALID_CHARACTER, 7, "invalid host")
    check_fails(TCPLocal.sanitize, "1.2.3.256:80", ErrorKind.RANGE_VIOLATION, 6)

def test_UDPLocal() -> None:
    def check(x : str, value : str) -> None:
        res = UDPLocal.sanitize(x)
        if res.value != value:
            raise CatastrophicFailure("while parsing `%s`, expected %s, got %s", x, repr(value), repr(res.value))

    check(":53", "udp::53")
    check("udp4::53", "udp4:0.0.0.0:53")
    check("[::1]:53", "udp6:[::1]:53")
    check_fails(UDPLocal.sanitize, "tcp::53", ErrorKind.STRUCTURAL_CONFLICT, 0)

def test_TCPUDPLocal() -> None:
    def check(x : str, value : str, stream : bool) -> None:
        res = TCPUDPLocal.sanitize(x)
        if res.value != value or res.is_stream != stream or res.is_dgram == stream:
            raise CatastrophicFailure("while parsing `%s`, expected %s, got %s", x, repr(value), repr(res.value))

    check("tcp::80", "tcp::80", True)
    check("udp:10.0.0.1:53", "udp4:10.0.0.1:53", False)
    check("udp6::53", "udp6:[::]:53", False)
    check_fails(TCPUDPLocal.sanitize, ":80", ErrorKind.MISSING_COMPONENT, 0, "missing network")
    check_fails(TCPUDPLocal.sanitize, "unix:/run/x", ErrorKind.STRUCTURAL_CONFLICT, 0)
    check_fails(TCPUDPLocal.sanitize, "127.0.0.1:80", ErrorKind.STRUCTURAL_CONFLICT, 0)

    l = TCPUDPLocal.sanitize("udp4:10.0.0.1:53")
    for res, value in [(l.with_host("::1"), "udp6:[::1]:53"),
                       (l.with_host("example.com"), "udp:example.com:53"),
                       (l.with_port(5353), "udp4:10.0.0.1:5353")]:
        if not isinstance(res, TCPUDPLocal) or res.value != value:
            raise CatastrophicFailure("expected %s, got %s", repr(value), repr(res))
    check_fails(l.with_host, "./sock", ErrorKind.INVALID_CHARACTER, 0)

def test_UnixLocal() -> None:
    def check(x : str, value : str, path : str) -> None:
        res = UnixLocal.sanitize(x)
        if res.value != value or res.path != path or res.network != Network.UNIX:
            raise CatastrophicFailure("while parsing `%s`, expected %s, got %s", x, repr(value), repr(res.value))
        if UnixLocal.sanitize(res.value) != res:
            raise CatastrophicFailure("`UnixLocal.sanitize` is not idempotent on %s", repr(x))

    check("/run/app.sock", "unix:/run/app.sock", "/run/app.sock")
    check("./app.sock", "unix:./app.sock", "./app.sock")
    check(":/run/app.sock", "unix:/run/app.sock", "/run/app.sock")
    check("unix:app.sock", "unix:app.sock", "app.sock")
    check("unix:/with:colon", "unix:/with:colon", "/with:colon")

    check_fails(UnixLocal.sanitize, "unix:", ErrorKind.MISSING_COMPONENT, 5, "missing socket path")
    check_fails(UnixLocal.sanitize, "", ErrorKind.MISSING_COMPONENT, 1, "missing socket path")
    check_fails(UnixLocal.sanitize, "unix:/a\0b", ErrorKind.INVALID_CHARACTER, 7, "NUL")
    check_fails(UnixLocal.sanitize, "/" + "a" * 107, ErrorKind.RANGE_VIOLATION, 0, "at most 107 bytes")
    check_fails(UnixLocal.sanitize, "tcp::80", ErrorKind.STRUCTURAL_CONFLICT, 0, "expected a unix network")

    l = UnixLocal.sanitize("/" + "a" * 106)
    check_fails(l.with_port, 80, ErrorKind.STRUCTURAL_CONFLICT, 0) # type: ignore

def test_TCPUnixLocal() -> None:
    def check(x : str, value : str) -> None:
        res = TCPUnixLocal.sanitize(x)
        if res.value != value:
            raise CatastrophicFailure("while parsing `%s`, expected %s, got %s", x, repr(value), repr(res.value))

    check(":80", "tcp::80")
    check("[::]:80", "tcp6:[::]:80")
    check("./sock", "unix:./sock")
    check("/run/sock", "unix:/run/sock")
    check("unix:sock", "unix:sock")
    check("tcp4::80", "tcp4:0.0.0.0:80")
    check("localhost:80", "tcp:localhost:80")
    check_fails(TCPUnixLocal.sanitize, "udp::80", ErrorKind.STRUCTURAL_CONFLICT, 0)

    def check_with(res : TCPUnixLocal, value : str) -> None:
        if not isinstance(res, TCPUnixLocal) or res.value != value:
            raise CatastrophicFailure("expected %s, got %s", repr(value), repr(res))

    t = TCPUnixLocal.sanitize
    check_with(t("tcp::80").with_host("localhost"), "tcp:localhost:80")
    check_with(t("tcp::80").with_host("192.0.2.1"), "tcp4:192.0.2.1:80")
    check_with(t("tcp::80").with_host("[2001:db8::1]"), "tcp6:[2001:db8::1]:80")
    check_with(t("tcp6:[::1]:80").with_host("./sock"), "unix:./sock")
    check_with(t("tcp::80").with_port(443), "tcp::443")
    check_with(t("tcp4:192.0.2.1:80").with_port(443), "tcp4:192.0.2.1:443")
    check_with(t("tcp6:[2001:db8::1]:80").with_port(443), "tcp6:[2001:db8::1]:443")

    check_fails(t("tcp::80").with_host, "", ErrorKind.MISSING_COMPONENT, 0)
    check_fails(t("unix:sock").with_host, "localhost", ErrorKind.STRUCTURAL_CONFLICT, 0)
    check_fails(t("tcp::80").with_port, 65536, ErrorKind.RANGE_VIOLATION, 0) # type: ignore

def test_Local() -> None:
    def check(x : str, value : str) -> None:
        res = Local.sanitize(x)
        if res.value != value:
            raise CatastrophicFailure("while parsing `%s`, expected %s, got %s", x, repr(value), repr(res.value))

    check(":80", "tcp::80")
    check("udp:[::1]:53", "udp6:[::1]:53")
    check("/run/sock", "unix:/run/sock")
    check("example.com:80", "tcp:example.com:80")
    check_fails(Local.sanitize, "", ErrorKind.MISSING_COMPONENT, 0)

def test_listen() -> None:
    with listen(TCPLocal.sanitize("tcp4:127.0.0.1:0")) as sock:
        if sock.type != _socket.SOCK_STREAM or sock.getsockname()[0] != "127.0.0.1":
            raise CatastrophicFailure("unexpected TCP socket %s", repr(sock))

    with listen(UDPLocal.sanitize("udp4:127.0.0.1:0")) as sock:
        if sock.type != _socket.SOCK_DGRAM:
            raise CatastrophicFailure("unexpected UDP socket %s", repr(sock))

    with _tempfile.TemporaryDirectory(prefix="saneaddr-") as tmp:
        path = _os.path.join(tmp, "test.sock")
        with listen(UnixLocal.sanitize(path)) as sock:
            if sock.family != _socket.AF_UNIX or not _os.path.exists(path):
                raise CatastrophicFailure("unexpected unix socket %s", repr(sock))
