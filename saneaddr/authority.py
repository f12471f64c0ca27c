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

"""`[userinfo@]host[:port]`."""

import dataclasses as _dc

from kisstdlib.exceptions import *

from .error import *
from .char import is_userinfo_char, sanitize_chars
from .parser import Parser
from .host import Host
from .ip import max_port, parse_port

password_mask = "****"

def sanitize_userinfo(x : str) -> str:
    return sanitize_chars(x, is_userinfo_char, "userinfo")

@_dc.dataclass(frozen=True)
class Authority:
    """A validated authority.

    `value` is the canonical form, `str()` of it is the same with the
    password masked, so that it could be logged.
    """

    value : str
    userinfo : str = _dc.field(compare=False)
    host : Host | None = _dc.field(compare=False)
    port : int | None = _dc.field(compare=False)

    @classmethod
    def sanitize(cls, x : str) -> "Authority":
        p = Parser(x)

        userinfo = ""
        at = x.find("@")
        if at >= 0:
            userinfo = p.sub(0, sanitize_userinfo, x[:at])
            p.pos = at + 1

        hp_start = p.pos
        if p.at_eof():
            p.fail(ErrorKind.MISSING_COMPONENT, "missing host")

        host : Host | None = None
        port : int | None = None
        ports : str | None = None
        if p.at_string("["):
            end = x.find("]", hp_start)
            if end < hp_start + 3:
                p.fail(ErrorKind.INVALID_CHARACTER, "invalid IPv6 address format")
            try:
                host = Host.sanitize(x[hp_start:end + 1])
            except AddressError as exc:
                raise wrap(hp_start, "invalid IPv6 address", exc) from None
            p.pos = end + 1
            if p.opt_string(":"):
                ports = p.take_rest()
            elif not p.at_eof():
                p.fail(ErrorKind.INVALID_CHARACTER, "unexpected character %s after IPv6 address", repr(p.peek()))
        else:
            hostport = p.take_rest()
            colon = hostport.rfind(":")
            hosts = hostport
            if colon >= 0:
                hosts, ports = hostport[:colon], hostport[colon + 1:]
            if ":" in hosts:
                raise conflict(hp_start, "IPv6 address must be enclosed in brackets")
            if hosts != "":
                try:
                    host = Host.sanitize(hosts)
                except AddressError as exc:
                    raise wrap(hp_start, "invalid host", exc) from None

        if ports is not None:
            port_start = len(x) - len(ports)
            if ports == "":
                raise missing(port_start, "missing port number")
            port = p.sub(port_start, parse_port, ports)

        return cls.build(userinfo, host, port)

    @classmethod
    def build(cls, userinfo : str, host : Host | None, port : int | None) -> "Authority":
        """Assemble from already validated parts."""
        if host is None and port is None:
            raise missing(0, "missing host")
        if port is not None and not 0 <= port <= max_port:
            raise out_of_range(0, "port number must be between 0 and %d, got %d", max_port, port)

        res = ""
        if userinfo != "":
            res = userinfo + "@"
        if host is not None:
            res += host.value
        if port is not None:
            res += ":" + str(port)
        return cls(res, userinfo, host, port)

    @property
    def username(self) -> str:
        return self.userinfo.partition(":")[0]

    @property
    def password(self) -> str | None:
        """`None` when there is no password, `""` when it is empty."""
        _, sep, password = self.userinfo.partition(":")
        if sep == "":
            return None
        return password

    @property
    def hostport(self) -> str:
        if self.userinfo == "":
            return self.value
        return self.value[len(self.userinfo) + 1:]

    @property
    def masked(self) -> str:
        if self.password is None:
            return self.value
        return self.username + ":" + password_mask + "@" + self.hostport

    def with_userinfo(self, userinfo : str) -> "Authority":
        return self.build(sanitize_userinfo(userinfo), self.host, self.port)

    def with_host(self, host : str) -> "Authority":
        return self.build(self.userinfo, Host.sanitize(host), self.port)

    def with_port(self, port : int | None) -> "Authority":
        return self.build(self.userinfo, self.host, port)

    def __str__(self) -> str:
        return self.masked

def test_Authority() -> None:
    def check(x : str, value : str, userinfo : str, host : str | None, port : int | None) -> None:
        res = Authority.sanitize(x)
        got_host = res.host.value if res.host is not None else None
        if res.value != value or res.userinfo != userinfo or got_host != host or res.port != port:
            raise CatastrophicFailure("while parsing `%s`, expected %s, got %s", x,
                                      repr((value, userinfo, host, port)),
                                      repr((res.value, res.userinfo, got_host, res.port)))
        if Authority.sanitize(res.value) != res:
            raise CatastrophicFailure("`Authority.sanitize` is not idempotent on %s", repr(x))

    check("127.0.0.1", "127.0.0.1", "", "127.0.0.1", None)
    check("[::1]", "[::1]", "", "[::1]", None)
    check("[0::1]:0", "[::1]:0", "", "[::1]", 0)
    check("host", "host", "", "host", None)
    check("HOST", "host", "", "host", None)
    check("@host", "host", "", "host", None)
    check(":80", ":80", "", None, 80)
    check("user:pass@host", "user:pass@host", "user:pass", "host", None)
    check("0.0.0.0:80", "0.0.0.0:80", "", "0.0.0.0", 80)
    check("[::]:80", "[::]:80", "", "[::]", 80)
    check("host:80", "host:80", "", "host", 80)
    check("host:0080", "host:80", "", "host", 80)
    check("host:0", "host:0", "", "host", 0)
    check("host:000", "host:0", "", "host", 0)
    check("@host:80", "host:80", "", "host", 80)
    check("user@:80", "user@:80", "user", None, 80)
    check("user:pass@host:80", "user:pass@host:80", "user:pass", "host", 80)
    check("us%65r:p%40ss@host", "user:p%40ss@host", "user:p%40ss", "host", None)
    check("us%2fer@host", "us%2Fer@host", "us%2Fer", "host", None)

def test_Authority_errors() -> None:
    def check(reason : str, kind : ErrorKind, pos : int, *values : str) -> None:
        for x in values:
            check_fails(Authority.sanitize, x, kind, pos, reason)

    check("invalid character ' ' in userinfo", ErrorKind.INVALID_CHARACTER, 2, "us er@localhost")
    check("invalid percent-encoding", ErrorKind.INVALID_ENCODING, 2, "us%zzer@localhost")
    check("missing host", ErrorKind.MISSING_COMPONENT, 0, "")
    check("missing host", ErrorKind.MISSING_COMPONENT, 1, "@")
    check("missing host", ErrorKind.MISSING_COMPONENT, 5, "user@")
    check("invalid IPv6 address format", ErrorKind.INVALID_CHARACTER, 0, "[:", "[:]", "[:]:42")
    check("invalid IPv6 address format", ErrorKind.INVALID_CHARACTER, 1, "@[:]", "@[:]:42")
    check("invalid IPv6 address", ErrorKind.INVALID_CHARACTER, 4, "[1:2]")
    check("unexpected character 'x' after IPv6 address", ErrorKind.INVALID_CHARACTER, 5, "[::1]x")
    check("enclosed in brackets", ErrorKind.STRUCTURAL_CONFLICT, 0, "::1", "::1:80")
    check("invalid host", ErrorKind.INVALID_CHARACTER, 3, "exa mple.com", "exa mple.com:80")
    check("invalid host", ErrorKind.RANGE_VIOLATION, 8, "u@1.2.3.256:80")
    check("missing port number", ErrorKind.MISSING_COMPONENT, 12, "example.com:")
    check("missing port number", ErrorKind.MISSING_COMPONENT, 13, "@example.com:")
    check("missing port number", ErrorKind.MISSING_COMPONENT, 6, "[::1]:")
    check("invalid character 'a' in port number", ErrorKind.INVALID_CHARACTER, 13, "example.com:8a")
    check("invalid character 'x' in port number", ErrorKind.INVALID_CHARACTER, 13, "example.com:0x42")
    check("invalid character 'x' in port number", ErrorKind.INVALID_CHARACTER, 8, "[::1]:00x")
    check("port number must be between 0 and 65535", ErrorKind.RANGE_VIOLATION, 5, "host:65536")
    check("port number must be between 0 and 65535", ErrorKind.RANGE_VIOLATION, 5, "host:" + "9" * 5000)
    if Authority.sanitize("host:" + "0" * 5000 + "80").value != "host:80":
        raise CatastrophicFailure("leading zeros in port numbers are broken")

    err = check_fails(Authority.sanitize, "[1:2]")
    if str(err) != "[4]: invalid IPv6 address: must have at least 2 colons":
        raise CatastrophicFailure("unexpected rendering %s", str(err))

def test_Authority_masked() -> None:
    def check(x : str, masked : str) -> None:
        res = Authority.sanitize(x)
        if str(res) != masked:
            raise CatastrophicFailure("while masking `%s`, expected %s, got %s", x, repr(masked), repr(str(res)))

    check("host", "host")
    check("user@host", "user@host")
    check("user:@host", "user:****@host")
    check("user:secret@host", "user:****@host")
    check("host:80", "host:80")
    check("user@host:80", "user@host:80")
    check("user:@host:80", "user:****@host:80")
    check("user:secret@host:80", "user:****@host:80")

    a = Authority.sanitize("user:se:cret@host")
    if a.username != "user" or a.password != "se:cret" or a.hostport != "host":
        raise CatastrophicFailure("unexpected userinfo split %s", repr((a.username, a.password, a.hostport)))
    if Authority.sanitize("user@host").password is not None or Authority.sanitize("user:@host").password != "":
        raise CatastrophicFailure("unexpected `password`")

def test_Authority_with() -> None:
    def check(res : Authority, value : str) -> None:
        if res.value != value:
            raise CatastrophicFailure("expected %s, got %s", repr(value), repr(res.value))

    a = Authority.sanitize
    check(a("host").with_userinfo("user:pass"), "user:pass@host")
    check(a("user@host").with_userinfo("admin"), "admin@host")
    check(a("user:pass@host").with_userinfo("admin:1234"), "admin:1234@host")
    check(a("user:pass@host").with_userinfo(""), "host")
    check(a("user:pass@host").with_host("example.com"), "user:pass@example.com")
    check(a("user:pass@host:80").with_host("example.com"), "user:pass@example.com:80")
    check(a("host:80").with_host("::1"), "[::1]:80")
    check(a(":80").with_host("Example.com"), "example.com:80")
    check(a("user:pass@host").with_port(80), "user:pass@host:80")
    check(a("user:pass@host:80").with_port(443), "user:pass@host:443")
    check(a("host:80").with_port(None), "host")

    check_fails(a("host").with_userinfo, "a b", ErrorKind.INVALID_CHARACTER, 1)
    check_fails(a("host").with_host, "-host", ErrorKind.INVALID_CHARACTER, 0)
    check_fails(lambda x: a(":80").with_port(None), "", ErrorKind.MISSING_COMPONENT, 0, "missing host")
    check_fails(lambda x: a("host").with_port(int(x)), "65536", ErrorKind.RANGE_VIOLATION, 0)
