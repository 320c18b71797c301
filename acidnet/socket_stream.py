"""A byte stream over a connected Socket."""

from __future__ import annotations

import errno
from typing import Any, Optional, Union

from .socket import Socket

BytesLike = Union[bytes, bytearray, memoryview]


class SocketStream:
    """Reads and writes a connected socket; closes it on ``close`` when it owns it."""

    def __init__(self, socket: Socket, owner: bool = True) -> None:
        self.socket = socket
        self.owner = owner

    @property
    def is_connected(self) -> bool:
        return self.socket is not None and self.socket.is_connected

    def _require(self) -> Socket:
        if not self.is_connected:
            raise OSError(errno.ENOTCONN, "stream is not connected")
        return self.socket

    def read(self, length: int) -> bytes:
        """Up to ``length`` bytes; empty when the peer has closed."""
        return self._require().recv(length)

    def read_into(self, buffer: Any, length: int) -> int:
        """Receive up to ``length`` bytes and append them to a ByteArray."""
        data = self.read(length)
        if data:
            buffer.write(data)
        return len(data)

    def read_fix_size(self, length: int) -> bytes:
        """Exactly ``length`` bytes; EOFError if the peer closes first."""
        parts = []
        remaining = length
        while remaining > 0:
            chunk = self.read(remaining)
            if not chunk:
                raise EOFError(f"connection closed with {remaining} of {length} bytes unread")
            parts.append(chunk)
            remaining -= len(chunk)
        return b"".join(parts)

    def write(self, data: BytesLike) -> int:
        """Send what the socket accepts at once; returns the count sent."""
        return self._require().send(data)

    def write_from(self, buffer: Any, length: int) -> int:
        """Send up to ``length`` readable bytes of a ByteArray and consume what was sent."""
        pending = buffer.to_bytes()[:length]
        if not pending:
            return 0
        sent = self.write(pending)
        if sent > 0:
            buffer.read(sent)
        return sent

    def write_fix_size(self, data: BytesLike) -> int:
        """Send all of ``data``; returns its length."""
        view = memoryview(data).cast("B")
        total = 0
        while total < len(view):
            sent = self.write(view[total:])
            if sent <= 0:
                raise ConnectionError("peer stopped accepting data")
            total += sent
        return total

    def close(self) -> None:
        if self.socket is not None:
            self.socket.close()

    def __enter__(self) -> "SocketStream":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if self.owner:
            self.close()

    def __repr__(self) -> str:
        socket: Optional[Socket] = self.socket
        return f"{type(self).__name__}({socket})"