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

"""Errors carrying the position of the first offending character."""

import enum as _enum
import typing as _t

from kisstdlib.exceptions import *

class ErrorKind(_enum.Enum):
    MISSING_COMPONENT = "missing component"
    INVALID_CHARACTER = "invalid character"
    INVALID_ENCODING = "invalid encoding"
    RANGE_VIOLATION = "range violation"
    STRUCTURAL_CONFLICT = "structural conflict"

class AddressError(Failure, ValueError):
    """A validation failure at offset `pos` of the input.

    `reason` is a printf-style pattern, like all other `Failure`s.
    `cause` is the error of a sub-grammar this one wraps, if any.
    """

    def __init__(self, pos : int, kind : ErrorKind, reason : str, *args : _t.Any,
                 cause : _t.Optional["AddressError"] = None) -> None:
        if len(args) > 0:
            reason = reason % args
        super().__init__("%s", reason)
        self.pos = pos
        self.kind = kind
        self.reason = reason
        self.cause = cause

    def accumulate(self, offset : int) -> "AddressError":
        """Same error, but for an input embedding the original one at `offset`."""
        if offset == 0:
            return self
        return AddressError(self.pos + offset, self.kind, "%s", self.reason, cause=self.cause)

    def __str__(self) -> str:
        if self.cause is None:
            return f"[{self.pos}]: {self.reason}"
        return f"[{self.pos}]: {self.reason}: {self.cause.reason}"

    def __repr__(self) -> str:
        return f"<AddressError {self.kind.name} {str(self)!r}>"

def missing(pos : int, reason : str, *args : _t.Any) -> AddressError:
    return AddressError(pos, ErrorKind.MISSING_COMPONENT, reason, *args)

def invalid(pos : int, reason : str, *args : _t.Any) -> AddressError:
    return AddressError(pos, ErrorKind.INVALID_CHARACTER, reason, *args)

def out_of_range(pos : int, reason : str, *args : _t.Any) -> AddressError:
    return AddressError(pos, ErrorKind.RANGE_VIOLATION, reason, *args)

def conflict(pos : int, reason : str, *args : _t.Any) -> AddressError:
    return AddressError(pos, ErrorKind.STRUCTURAL_CONFLICT, reason, *args)

def wrap(pos : int, reason : str, cause : AddressError) -> AddressError:
    """Wrap `cause` (positioned relative to `pos`) keeping its kind."""
    return AddressError(pos + cause.pos, cause.kind, reason, cause=cause)

def check_fails(func : _t.Callable[[str], _t.Any], value : str,
                kind : ErrorKind | None = None,
                pos : int | None = None,
                reason : str | None = None) -> AddressError:
    """Used by tests: `func(value)` must raise a matching `AddressError`."""
    try:
        res = func(value)
    except AddressError as exc:
        if kind is not None and exc.kind != kind:
            raise CatastrophicFailure("while evaluating %s on %s, expected kind %s, got %s", func, repr(value), kind, exc.kind)
        if pos is not None and exc.pos != pos:
            raise CatastrophicFailure("while evaluating %s on %s, expected position %d, got %d (%s)", func, repr(value), pos, exc.pos, str(exc))
        if reason is not None and reason not in str(exc):
            raise CatastrophicFailure("while evaluating %s on %s, expected error like %s, got %s", func, repr(value), repr(reason), repr(str(exc)))
        return exc
    raise CatastrophicFailure("while evaluating %s on %s, expected an error, got %s", func, repr(value), repr(res))

def test_AddressError() -> None:
    inner = out_of_range(2, "must be between 0 and %d, got %d", 255, 256)
    outer = wrap(7, "invalid host", inner)
    if str(inner) != "[2]: must be between 0 and 255, got 256":
        raise CatastrophicFailure("unexpected rendering %s", str(inner))
    if outer.pos != 9 or outer.kind != ErrorKind.RANGE_VIOLATION or outer.cause is not inner:
        raise CatastrophicFailure("unexpected wrapping %s", repr(outer))
    if str(outer) != "[9]: invalid host: must be between 0 and 255, got 256":
        raise CatastrophicFailure("unexpected rendering %s", str(outer))

    moved = outer.accumulate(3)
    if moved.pos != 12 or moved.kind != outer.kind or moved.cause is not inner or outer.pos != 9:
        raise CatastrophicFailure("unexpected accumulation %s", repr(moved))
    if not isinstance(moved, ValueError) or not isinstance(moved, Failure):
        raise CatastrophicFailure("`AddressError` must be both a `ValueError` and a `Failure`")
