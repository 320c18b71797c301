"""Socket addresses: IPv4, IPv6, Unix-domain and unknown families, plus name lookup."""

from __future__ import annotations

import functools
import ipaddress
import logging
import socket
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Tuple, Union

import psutil

_log = logging.getLogger(__name__)

_AF_UNIX = getattr(socket, "AF_UNIX", None)
_UNIX_PATH_SIZE = 108


@functools.total_ordering
class Address(ABC):
    """A socket address; ordered and compared by family and raw content."""

    @property
    @abstractmethod
    def family(self) -> int:
        """The address family constant."""

    @abstractmethod
    def sockaddr(self) -> Any:
        """The address in the form the socket module takes."""

    @abstractmethod
    def _packed(self) -> bytes:
        """Raw content used for comparisons."""

    @abstractmethod
    def __str__(self) -> str:
        """Human readable form."""

    def _key(self) -> Tuple[int, bytes]:
        return int(self.family), self._packed()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Address):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Address):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self)!r})"


def _check_port(port: int) -> int:
    if not 0 <= port <= 0xFFFF:
        raise ValueError(f"port {port} out of range")
    return port


def _host_mask(bits: int, prefix_len: int) -> int:
    if not 0 <= prefix_len <= bits:
        raise ValueError(f"prefix length {prefix_len} out of range")
    return (1 << (bits - prefix_len)) - 1


class IPAddress(Address):
    """An IP address with a port."""

    _BITS = 0

    def __init__(self, port: int) -> None:
        self._ip = 0
        self.port = port

    @property
    def port(self) -> int:
        return self._port

    @port.setter
    def port(self, value: int) -> None:
        self._port = _check_port(value)

    @property
    def ip(self) -> int:
        return self._ip

    @property
    @abstractmethod
    def host(self) -> str:
        """The address without port, in standard text form."""

    @abstractmethod
    def _with_ip(self, ip: int, port: int) -> "IPAddress":
        """A copy of this address with another IP value."""

    @property
    def _full(self) -> int:
        return (1 << self._BITS) - 1

    def broadcast_address(self, prefix_len: int) -> "IPAddress":
        """The address with every host bit set."""
        return self._with_ip(self._ip | _host_mask(self._BITS, prefix_len), self.port)

    def network_address(self, prefix_len: int) -> "IPAddress":
        """The address with every host bit cleared."""
        mask = self._full ^ _host_mask(self._BITS, prefix_len)
        return self._with_ip(self._ip & mask, self.port)

    def subnet_mask(self, prefix_len: int) -> "IPAddress":
        """The netmask for ``prefix_len``, with port 0."""
        return self._with_ip(self._full ^ _host_mask(self._BITS, prefix_len), 0)


class IPv4Address(IPAddress):
    _BITS = 32

    def __init__(self, ip: Union[int, str, bytes] = 0, port: int = 0) -> None:
        super().__init__(port)
        self._ip = int(ipaddress.IPv4Address(ip))

    @classmethod
    def create(cls, text: str, port: int = 0) -> "IPv4Address":
        """Parse dotted-quad text; ValueError if it is not one."""
        try:
            return cls(str(text), port)
        except ipaddress.AddressValueError as exc:
            raise ValueError(f"invalid IPv4 address: {text!r}") from exc

    @property
    def family(self) -> int:
        return socket.AF_INET

    @property
    def host(self) -> str:
        return str(ipaddress.IPv4Address(self._ip))

    def _with_ip(self, ip: int, port: int) -> "IPv4Address":
        return IPv4Address(ip, port)

    def broadcast_address(self, prefix_len: int) -> "IPv4Address":
        return super().broadcast_address(prefix_len)

    def network_address(self, prefix_len: int) -> "IPv4Address":
        return super().network_address(prefix_len)

    def subnet_mask(self, prefix_len: int) -> "IPv4Address":
        return super().subnet_mask(prefix_len)

    def sockaddr(self) -> Tuple[str, int]:
        return self.host, self.port

    def _packed(self) -> bytes:
        return self.port.to_bytes(2, "big") + self._ip.to_bytes(4, "big")

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


class IPv6Address(IPAddress):
    _BITS = 128

    def __init__(self, ip: Union[int, str, bytes] = 0, port: int = 0) -> None:
        super().__init__(port)
        if isinstance(ip, str):
            ip = ip.split("%", 1)[0]
        self._ip = int(ipaddress.IPv6Address(ip))
        self.flowinfo = 0
        self.scope_id = 0

    @classmethod
    def create(cls, text: str, port: int = 0) -> "IPv6Address":
        """Parse IPv6 text; ValueError if it is not an IPv6 address."""
        if not isinstance(text, str) or "%" in text:
            raise ValueError(f"invalid IPv6 address: {text!r}")
        try:
            return cls(text, port)
        except ipaddress.AddressValueError as exc:
            raise ValueError(f"invalid IPv6 address: {text!r}") from exc

    @property
    def family(self) -> int:
        return socket.AF_INET6

    @property
    def host(self) -> str:
        return str(ipaddress.IPv6Address(self._ip))

    def _with_ip(self, ip: int, port: int) -> "IPv6Address":
        result = IPv6Address(ip, port)
        result.flowinfo = self.flowinfo
        result.scope_id = self.scope_id
        return result

    def broadcast_address(self, prefix_len: int) -> "IPv6Address":
        return super().broadcast_address(prefix_len)

    def network_address(self, prefix_len: int) -> "IPv6Address":
        return super().network_address(prefix_len)

    def subnet_mask(self, prefix_len: int) -> "IPv6Address":
        mask = super().subnet_mask(prefix_len)
        mask.flowinfo = mask.scope_id = 0
        return mask

    def sockaddr(self) -> Tuple[str, int, int, int]:
        return self.host, self.port, self.flowinfo, self.scope_id

    def _packed(self) -> bytes:
        return (self.port.to_bytes(2, "big") + self.flowinfo.to_bytes(4, "big")
                + self._ip.to_bytes(16, "big") + self.scope_id.to_bytes(4, "big"))

    def __str__(self) -> str:
        words = [(self._ip >> shift) & 0xFFFF for shift in range(112, -1, -16)]
        parts: List[str] = []
        used_zeros = False
        for index, word in enumerate(words):
            if word == 0 and not used_zeros:
                continue
            if index and words[index - 1] == 0 and not used_zeros:
                parts.append(":")
                used_zeros = True
            if index:
                parts.append(":")
            parts.append(f"{word:x}")
        if not used_zeros and words[7] == 0:
            parts.append("::")
        return f"[{''.join(parts)}]:{self.port}"


class UnixAddress(Address):
    """A Unix-domain socket path; a leading NUL marks an abstract name."""

    def __init__(self, path: str = "") -> None:
        length = len(path.encode("utf-8")) + 1
        if path.startswith("\0"):
            length -= 1
        if length > _UNIX_PATH_SIZE:
            raise ValueError("path too long")
        self.path = path

    @property
    def family(self) -> int:
        if _AF_UNIX is None:
            raise OSError("Unix-domain sockets are not supported here")
        return _AF_UNIX

    def sockaddr(self) -> str:
        return self.path

    def _packed(self) -> bytes:
        return self.path.encode("utf-8")

    def _key(self) -> Tuple[int, bytes]:
        return int(_AF_UNIX or 1), self._packed()

    def __str__(self) -> str:
        if self.path.startswith("\0"):
            return "\\0" + self.path[1:]
        return self.path


class UnknownAddress(Address):
    """An address of a family this package does not interpret."""

    def __init__(self, family: int = socket.AF_UNSPEC) -> None:
        self._family = int(family)

    @property
    def family(self) -> int:
        return self._family

    def sockaddr(self) -> None:
        """Unknown families have no socket-module form."""
        return None

    def _packed(self) -> bytes:
        return b""

    def __str__(self) -> str:
        return f"[ UnknownAddress family={self._family} ]"


def address_from_sockaddr(family: int, sockaddr: Any) -> Address:
    """Build an Address from a socket-module address of the given family."""
    if family == socket.AF_INET:
        host, port = sockaddr[0], sockaddr[1]
        return IPv4Address(host, port)
    if family == socket.AF_INET6:
        host, port, *rest = sockaddr
        address = IPv6Address(host, port)
        if rest:
            address.flowinfo = rest[0]
        if len(rest) > 1:
            address.scope_id = rest[1]
        return address
    if _AF_UNIX is not None and family == _AF_UNIX:
        if isinstance(sockaddr, bytes):
            sockaddr = sockaddr.decode("utf-8", "surrogateescape")
        return UnixAddress(sockaddr)
    return UnknownAddress(family)


def _split_host(host: str) -> Tuple[str, Optional[str]]:
    node = ""
    service: Optional[str] = None
    if host.startswith("["):
        end = host.find("]", 1)
        if end != -1:
            if host[end + 1:end + 2] == ":":
                service = host[end + 2:]
            node = host[1:end]
    if not node:
        first = host.find(":")
        if first != -1 and host.find(":", first + 1) == -1:
            node, service = host[:first], host[first + 1:]
    if not node:
        node = host
    return node, service or None


def lookup(host: str, family: int = socket.AF_INET, type: int = 0,
           protocol: int = 0) -> List[Address]:
    """Resolve ``host`` (``name``, ``name:port`` or ``[v6]:port``); empty when it does not resolve."""
    node, service = _split_host(host)
    try:
        infos = socket.getaddrinfo(node, service, family, type, protocol)
    except (OSError, UnicodeError) as exc:
        _log.debug("lookup(%s, %s, %s) failed: %s", host, family, type, exc)
        return []
    return [address_from_sockaddr(info[0], info[4]) for info in infos]


def lookup_any(host: str, family: int = socket.AF_INET, type: int = 0,
               protocol: int = 0) -> Optional[Address]:
    """The first address ``host`` resolves to, or None."""
    return next(iter(lookup(host, family, type, protocol)), None)


def lookup_any_ip_address(host: str, family: int = socket.AF_INET, type: int = 0,
                          protocol: int = 0) -> Optional[IPAddress]:
    """The first IP address ``host`` resolves to, or None."""
    return next((address for address in lookup(host, family, type, protocol)
                 if isinstance(address, IPAddress)), None)


def create_ip_address(host: str, port: int = 0) -> Optional[IPAddress]:
    """Resolve ``host`` to its first address of any family and give it ``port``."""
    try:
        infos = socket.getaddrinfo(host, None, socket.AF_UNSPEC)
    except (OSError, UnicodeError) as exc:
        _log.debug("create_ip_address(%s, %s) failed: %s", host, port, exc)
        return None
    if not infos:
        return None
    address = address_from_sockaddr(infos[0][0], infos[0][4])
    if not isinstance(address, IPAddress):
        return None
    address.port = port
    return address


def _prefix_len(netmask: Optional[str]) -> int:
    if not netmask:
        return 0
    try:
        value = int(ipaddress.ip_address(netmask.split("%", 1)[0]))
    except ValueError:
        return 0
    return bin(value).count("1")


def interface_addresses(iface: str = "*", family: int = socket.AF_INET
                        ) -> List[Tuple[Address, int]]:
    """Addresses of a network interface with their prefix lengths.

    ``"*"`` or an empty name gives the wildcard address of each requested family.
    """
    if not iface or iface == "*":
        result: List[Tuple[Address, int]] = []
        if family in (socket.AF_INET, socket.AF_UNSPEC):
            result.append((IPv4Address(), 0))
        if family in (socket.AF_INET6, socket.AF_UNSPEC):
            result.append((IPv6Address(), 0))
        return result
    try:
        table = psutil.net_if_addrs()
    except (OSError, RuntimeError) as exc:
        _log.debug("interface_addresses(%s) failed: %s", iface, exc)
        return []
    result = []
    for entry in table.get(iface, []):
        if entry.family not in (socket.AF_INET, socket.AF_INET6):
            continue
        if family != socket.AF_UNSPEC and entry.family != family:
            continue
        if entry.family == socket.AF_INET:
            address: Address = IPv4Address(entry.address)
        else:
            address = IPv6Address(entry.address)
        result.append((address, _prefix_len(entry.netmask)))
    return result