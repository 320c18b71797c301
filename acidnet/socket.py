"""A socket wrapper that is created lazily, owns its descriptor and works with Address objects."""

from __future__ import annotations

import errno
import logging
import socket
from typing import Any, List, Optional, Sequence, Tuple, Union

from .address import Address, UnknownAddress, address_from_sockaddr
from .config import default_config

_log = logging.getLogger(__name__)

_AF_UNIX = getattr(socket, "AF_UNIX", None)

BytesLike = Union[bytes, bytearray, memoryview]
Buffers = Sequence[BytesLike]

_settings = {"connect_timeout": 5000}


def _on_connect_timeout(old: int, new: int) -> None:
    _log.info("tcp connect timeout changed from %s to %s", old, new)
    _settings["connect_timeout"] = int(new)


default_config.lookup("tcp.connect.timeout", 5000, "tcp connect timeout").add_listener(
    _on_connect_timeout)


def _seconds(timeout_ms: Optional[int]) -> Optional[float]:
    if timeout_ms is None or timeout_ms < 0:
        return None
    return timeout_ms / 1000


def _unix_family() -> int:
    if _AF_UNIX is None:
        raise OSError(errno.EAFNOSUPPORT, "Unix-domain sockets are not supported here")
    return _AF_UNIX


class Socket:
    """A network socket; the descriptor is created on the first bind or connect.

    ``send_timeout`` and ``recv_timeout`` are in milliseconds, None meaning no limit.
    """

    def __init__(self, family: int = socket.AF_INET, type: int = socket.SOCK_STREAM,
                 protocol: int = 0) -> None:
        self.family = family
        self.type = type
        self.protocol = protocol
        self.send_timeout: Optional[int] = None
        self.recv_timeout: Optional[int] = None
        self._sock: Optional[socket.socket] = None
        self._connected = False
        self._local: Optional[Address] = None
        self._remote: Optional[Address] = None

    # ------------------------------------------------------------ factories

    @classmethod
    def create_tcp(cls, address: Address) -> "Socket":
        return cls(address.family, socket.SOCK_STREAM, 0)

    @classmethod
    def create_udp(cls, address: Address) -> "Socket":
        return cls(address.family, socket.SOCK_DGRAM, 0)

    @classmethod
    def create_tcp_socket(cls) -> "Socket":
        return cls(socket.AF_INET, socket.SOCK_STREAM, 0)

    @classmethod
    def create_udp_socket(cls) -> "Socket":
        return cls(socket.AF_INET, socket.SOCK_DGRAM, 0)

    @classmethod
    def create_tcp_socket6(cls) -> "Socket":
        return cls(socket.AF_INET6, socket.SOCK_STREAM, 0)

    @classmethod
    def create_udp_socket6(cls) -> "Socket":
        return cls(socket.AF_INET6, socket.SOCK_DGRAM, 0)

    @classmethod
    def create_unix_tcp_socket(cls) -> "Socket":
        return cls(_unix_family(), socket.SOCK_STREAM, 0)

    @classmethod
    def create_unix_udp_socket(cls) -> "Socket":
        return cls(_unix_family(), socket.SOCK_DGRAM, 0)

    # ---------------------------------------------------------------- state

    @property
    def fd(self) -> int:
        return self._sock.fileno() if self._sock is not None else -1

    @property
    def is_valid(self) -> bool:
        return self._sock is not None

    @property
    def is_connected(self) -> bool:
        return self._connected

    def __enter__(self) -> "Socket":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------ internals

    def _init_socket(self) -> None:
        assert self._sock is not None
        try:
            self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        except OSError as exc:
            _log.error("setOption sock=%s SO_REUSEADDR failed: %s", self.fd, exc)
        if self.type == socket.SOCK_STREAM:
            try:
                self._sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            except OSError as exc:
                _log.error("setOption sock=%s TCP_NODELAY failed: %s", self.fd, exc)

    def _ensure_socket(self) -> socket.socket:
        if self._sock is None:
            try:
                self._sock = socket.socket(self.family, self.type, self.protocol)
            except OSError as exc:
                _log.error("socket(%s, %s, %s) failed: %s",
                           self.family, self.type, self.protocol, exc)
                raise
            self._init_socket()
        return self._sock

    def _check_family(self, address: Address, action: str) -> None:
        if address.family != self.family:
            raise ValueError(f"{action} sock.family({int(self.family)}) "
                             f"address.family({int(address.family)}) not equal, "
                             f"address={address}")

    def _require_connected(self, timeout_ms: Optional[int]) -> socket.socket:
        if not self._connected or self._sock is None:
            raise OSError(errno.ENOTCONN, "socket is not connected")
        self._sock.settimeout(_seconds(timeout_ms))
        return self._sock

    def _adopt(self, conn: socket.socket) -> None:
        self._sock = conn
        self._connected = True
        self._init_socket()
        self.local_address()
        self.remote_address()

    # ----------------------------------------------------------- operations

    def bind(self, address: Address) -> None:
        """Bind to ``address``; raises OSError on failure, ValueError on a family mismatch."""
        sock = self._ensure_socket()
        self._check_family(address, "bind")
        try:
            sock.bind(address.sockaddr())
        except OSError as exc:
            _log.error("bind address=%s error: %s", address, exc)
            raise
        self._local = None
        self.local_address()

    def connect(self, address: Address, timeout_ms: Optional[int] = None) -> None:
        """Connect to ``address``; the socket is closed again if that fails.

        Without ``timeout_ms`` the configured ``tcp.connect.timeout`` applies.
        """
        sock = self._ensure_socket()
        self._check_family(address, "connect")
        if timeout_ms is None:
            timeout_ms = _settings["connect_timeout"]
        sock.settimeout(_seconds(timeout_ms))
        try:
            sock.connect(address.sockaddr())
        except OSError as exc:
            _log.warning("sock=%s connect(%s) error, timeout=%s: %s",
                         self.fd, address, timeout_ms, exc)
            self.close()
            raise
        self._connected = True
        self._local = None
        self._remote = None
        self.local_address()
        self.remote_address()

    def listen(self, backlog: int = socket.SOMAXCONN) -> None:
        if self._sock is None:
            raise OSError(errno.EBADF, "listen error, sock=-1")
        try:
            self._sock.listen(backlog)
        except OSError as exc:
            _log.error("listen error: %s", exc)
            raise

    def accept(self) -> "Socket":
        """Wait for a connection, honouring ``recv_timeout``, and return it."""
        if self._sock is None:
            raise OSError(errno.EBADF, "accept on an invalid socket")
        self._sock.settimeout(_seconds(self.recv_timeout))
        try:
            conn, _peer = self._sock.accept()
        except OSError as exc:
            _log.debug("accept(%s) error: %s", self.fd, exc)
            raise
        client = Socket(self.family, self.type, self.protocol)
        client._adopt(conn)
        return client

    def close(self) -> None:
        self._connected = False
        if self._sock is not None:
            self._sock.close()
            self._sock = None

    def send(self, data: Union[BytesLike, Buffers], flags: int = 0) -> int:
        """Send bytes, or a list of buffers gathered into one message."""
        sock = self._require_connected(self.send_timeout)
        if isinstance(data, (list, tuple)):
            if hasattr(sock, "sendmsg"):
                return sock.sendmsg(data, [], flags)
            return sock.send(b"".join(bytes(part) for part in data), flags)
        return sock.send(data, flags)

    def send_to(self, data: Union[BytesLike, Buffers], to: Address, flags: int = 0) -> int:
        """Send to ``to``; like every transfer here, it needs a connected socket."""
        sock = self._require_connected(self.send_timeout)
        if isinstance(data, (list, tuple)):
            if hasattr(sock, "sendmsg"):
                return sock.sendmsg(data, [], flags, to.sockaddr())
            data = b"".join(bytes(part) for part in data)
        return sock.sendto(data, flags, to.sockaddr())

    def recv(self, length: int, flags: int = 0) -> bytes:
        """Up to ``length`` bytes; empty when the peer has closed."""
        return self._require_connected(self.recv_timeout).recv(length, flags)

    def recv_into(self, buffers: Union[BytesLike, Buffers], flags: int = 0) -> int:
        """Receive into one writable buffer or a list of them; returns the byte count."""
        sock = self._require_connected(self.recv_timeout)
        if not isinstance(buffers, (list, tuple)):
            return sock.recv_into(buffers, 0, flags)
        if not buffers:
            return 0
        if hasattr(sock, "recvmsg_into"):
            return sock.recvmsg_into(list(buffers), 0, flags)[0]
        total = 0
        for buffer in buffers:
            count = sock.recv_into(buffer, 0, flags)
            total += count
            if count < len(buffer):
                break
        return total

    def recv_from(self, length: int, flags: int = 0) -> Tuple[bytes, Address]:
        """Up to ``length`` bytes and the address they came from."""
        sock = self._require_connected(self.recv_timeout)
        data, peer = sock.recvfrom(length, flags)
        if peer is None:
            return data, self.remote_address()
        return data, address_from_sockaddr(self.family, peer)

    # ------------------------------------------------------------ addresses

    def local_address(self) -> Address:
        """The bound address; UnknownAddress when it cannot be read."""
        if self._local is not None:
            return self._local
        if self._sock is None:
            return UnknownAddress(self.family)
        try:
            self._local = address_from_sockaddr(self.family, self._sock.getsockname())
        except (OSError, ValueError):
            return UnknownAddress(self.family)
        return self._local

    def remote_address(self) -> Address:
        """The peer address; UnknownAddress when there is none."""
        if self._remote is not None:
            return self._remote
        if self._sock is None:
            return UnknownAddress(self.family)
        try:
            self._remote = address_from_sockaddr(self.family, self._sock.getpeername())
        except (OSError, ValueError):
            return UnknownAddress(self.family)
        return self._remote

    def error(self) -> int:
        """The pending socket error (SO_ERROR), 0 when there is none."""
        if self._sock is None:
            raise OSError(errno.EBADF, "socket is not open")
        return self._sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)

    def to_string(self) -> str:
        parts = [f"[socket sock={self.fd} isConnected={int(self._connected)}"
                 f" family={int(self.family)} type={int(self.type)} protocol={self.protocol}"]
        if self._local is not None:
            parts.append(f" localAddress={self._local}")
        if self._remote is not None:
            parts.append(f" remoteAddress={self._remote}")
        parts.append("]")
        return "".join(parts)

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return self.to_string()

    def fileno(self) -> int:
        return self.fd

    @property
    def raw(self) -> Optional[socket.socket]:
        """The underlying socket object, if one has been created."""
        return self._sock

    def buffers_length(self, buffers: Buffers) -> int:
        """Total size of a list of buffers."""
        return sum(len(memoryview(buffer)) for buffer in buffers)