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

"""URL-style file paths, e.g. `file:/absolute`, `file:./relative`, or `file://../relative`.

Unlike in a `URL`, everything after `scheme:` or `scheme://` is the path,
thus paths do not have to start with `/`.
"""

import dataclasses as _dc
import urllib.parse as _up

from kisstdlib.exceptions import *

from .error import *
from .url import URL, sanitize_scheme, sanitize_path

@_dc.dataclass(frozen=True)
class Filepath:
    value : str
    scheme : str = _dc.field(compare=False)
    hierarchical : bool = _dc.field(compare=False)
    path : str = _dc.field(compare=False)
    query : str = _dc.field(compare=False)
    fragment : str = _dc.field(compare=False)

    @classmethod
    def sanitize(cls, x : str) -> "Filepath":
        if x == "":
            return cls.build("file", True, ".")

        if ":" not in x or x[0] in "./":
            # a plain path
            scheme, hierarchical, start = "file", True, 0
        else:
            schemes = x[:x.index(":")]
            scheme = sanitize_scheme(schemes)
            start = len(schemes) + 1
            hierarchical = x.startswith("//", start)
            if hierarchical:
                start += 2

        # the placeholder authority stops `..` and `//` from being
        # misinterpreted
        prefix = scheme + "://z/"
        try:
            u = URL.sanitize(prefix + x[start:])
        except AddressError as exc:
            raise exc.accumulate(start - len(prefix)) from None

        return cls.build(scheme, hierarchical, u.path[1:], u.query, u.fragment)

    @classmethod
    def build(cls, scheme : str, hierarchical : bool, path : str,
              query : str = "", fragment : str = "") -> "Filepath":
        """Assemble from already validated parts."""
        if path == "":
            path = "/"
        res = [scheme, "://" if hierarchical else ":", path]
        if query != "":
            res += ["?", query]
        if fragment != "":
            res += ["#", fragment]
        return cls("".join(res), scheme, hierarchical, path, query, fragment)

    @property
    def os_path(self) -> str:
        """`path` with percent-encoding undone, usable with `open`."""
        return _up.unquote(self.path)

    def with_path(self, path : str) -> "Filepath":
        return self.build(self.scheme, self.hierarchical, sanitize_path(path), self.query, self.fragment)

    def __str__(self) -> str:
        return self.value

def test_Filepath() -> None:
    def check(x : str, value : str, scheme : str, path : str, query : str = "", fragment : str = "") -> None:
        res = Filepath.sanitize(x)
        got = (res.value, res.scheme, res.path, res.query, res.fragment)
        expected = (value, scheme, path, query, fragment)
        if got != expected:
            raise CatastrophicFailure("while parsing `%s`, expected %s, got %s", x, repr(expected), repr(got))
        if Filepath.sanitize(res.value) != res:
            raise CatastrophicFailure("`Filepath.sanitize` is not idempotent on %s", repr(x))

    check("", "file://.", "file", ".")
    check("/", "file:///", "file", "/")
    check("file:", "file:/", "file", "/")
    check("file:/", "file:/", "file", "/")
    check("file:.", "file:.", "file", ".")
    check("file:./", "file:./", "file", "./")
    check("file:../", "file:../", "file", "../")
    check("file:/absolute/path.txt", "file:/absolute/path.txt", "file", "/absolute/path.txt")
    check("file:./relative/path.txt", "file:./relative/path.txt", "file", "./relative/path.txt")
    check("file:../relative/path.txt", "file:../relative/path.txt", "file", "../relative/path.txt")
    check("file:///absolute/path.txt", "file:///absolute/path.txt", "file", "/absolute/path.txt")
    check("file://./relative/path.txt", "file://./relative/path.txt", "file", "./relative/path.txt")
    check("file://../relative/path.txt", "file://../relative/path.txt", "file", "../relative/path.txt")
    check("./relative/path.txt", "file://./relative/path.txt", "file", "./relative/path.txt")
    check("relative.txt", "file://relative.txt", "file", "relative.txt")
    check("FILE:/a%2fb%41?q#f", "file:/a%2FbA?q#f", "file", "/a%2FbA", "q", "f")
    check("sqlite:./db.sqlite?mode=ro", "sqlite:./db.sqlite?mode=ro", "sqlite", "./db.sqlite", "mode=ro")
    check("file:a:b", "file:a:b", "file", "a:b")

    p = Filepath.sanitize("file:/with%20space/%2e")
    if p.os_path != "/with space/.":
        raise CatastrophicFailure("unexpected `os_path` %s", repr(p.os_path))

    check_fails(Filepath.sanitize, "file:/a b", ErrorKind.INVALID_CHARACTER, 7)
    check_fails(Filepath.sanitize, "fi le:/a", ErrorKind.INVALID_CHARACTER, 2)
    check_fails(Filepath.sanitize, "file://a/%zz", ErrorKind.INVALID_ENCODING, 9)
    check_fails(Filepath.sanitize, "file:/a#b#c", ErrorKind.INVALID_CHARACTER, 9)

def test_Filepath_with_path() -> None:
    def check(res : Filepath, value : str) -> None:
        if res.value != value:
            raise CatastrophicFailure("expected %s, got %s", repr(value), repr(res.value))

    f = Filepath.sanitize
    check(f("file:/a?q#f").with_path("./b"), "file:./b?q#f")
    check(f("file:///a").with_path("/b%63"), "file:///bc")
    check(f("file:./a").with_path(""), "file:/")
    check_fails(f("file:/a").with_path, "/a?b", ErrorKind.INVALID_CHARACTER, 2)
