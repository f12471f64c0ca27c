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

"""Validation and canonicalization of network addresses.

Every address type here has a `sanitize` classmethod producing a value
holding the canonical string form (`value`) and its decomposition, or
raising an `AddressError` pointing at the offending offset of the input.
"""

from .error import AddressError, ErrorKind
from .domain import Domain
from .ip import IPv4, IPv6, IP, IPPort, IPWithCIDR
from .host import Host, HostKind
from .authority import Authority
from .url import URL, QueryParams
from .local import Network, Local, TCPLocal, UDPLocal, TCPUDPLocal, UnixLocal, TCPUnixLocal, \
    network_of, address_of, listen
from .scheme import HTTP, HTTPLocal, GRPC, GRPCLocal, ICE, ICELocal
from .filepath import Filepath
