"""A growable byte buffer built from fixed-size blocks, with typed read and write helpers."""

from __future__ import annotations

import struct
from typing import Iterator, List, Optional, Tuple, Union

BytesLike = Union[bytes, bytearray, memoryview]

_INT32_MIN, _INT32_MAX = -(1 << 31), (1 << 31) - 1
_INT64_MIN, _INT64_MAX = -(1 << 63), (1 << 63) - 1


def _encode_zigzag(value: int, low: int, high: int) -> int:
    if not low <= value <= high:
        raise OverflowError(f"value {value} out of range")
    return (-value) * 2 - 1 if value < 0 else value * 2


def _decode_zigzag(value: int) -> int:
    return (value >> 1) ^ -(value & 1)


def _as_bytes(value: Union[str, BytesLike]) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


class ByteArray:
    """A byte buffer with a read/write position, grown in blocks of ``base_size`` bytes.

    Fixed-width integers and floats follow the configured byte order (big endian
    by default); variable-width integers use 7-bit groups, signed ones zigzag encoded.
    """

    def __init__(self, base_size: int = 4096) -> None:
        if base_size <= 0:
            raise ValueError("base_size must be positive")
        self._base_size = base_size
        self._nodes: List[bytearray] = [bytearray(base_size)]
        self._position = 0
        self._size = 0
        self._order = "big"

    # ------------------------------------------------------------------ state

    @property
    def base_size(self) -> int:
        return self._base_size

    @property
    def position(self) -> int:
        return self._position

    @position.setter
    def position(self, value: int) -> None:
        if value < 0:
            raise ValueError("position must not be negative")
        if value > self._total_capacity:
            raise IndexError("set_position out of range")
        self._position = value
        if value > self._size:
            self._size = value

    @property
    def size(self) -> int:
        """Number of valid bytes held."""
        return self._size

    @property
    def read_size(self) -> int:
        """Number of bytes that can still be read from the current position."""
        return self._size - self._position

    @property
    def capacity(self) -> int:
        """Bytes that can be written from the current position without growing."""
        return self._total_capacity - self._position

    @property
    def little_endian(self) -> bool:
        return self._order == "little"

    @little_endian.setter
    def little_endian(self, value: bool) -> None:
        self._order = "little" if value else "big"

    @property
    def _total_capacity(self) -> int:
        return len(self._nodes) * self._base_size

    def __len__(self) -> int:
        return self._size

    # -------------------------------------------------------------- internals

    def _segments(self, position: int, length: int) -> Iterator[Tuple[bytearray, int, int]]:
        while length > 0:
            index, offset = divmod(position, self._base_size)
            count = min(length, self._base_size - offset)
            yield self._nodes[index], offset, offset + count
            position += count
            length -= count

    def _reserve(self, length: int) -> None:
        remaining = self.capacity
        if remaining >= length:
            return
        count = -(-(length - remaining) // self._base_size)
        self._nodes.extend(bytearray(self._base_size) for _ in range(count))

    def _write_int(self, value: int, width: int, signed: bool) -> None:
        self.write(value.to_bytes(width, self._order, signed=signed))

    def _read_int(self, width: int, signed: bool) -> int:
        return int.from_bytes(self.read(width), self._order, signed=signed)

    def _write_varint(self, value: int, bits: int) -> None:
        if not 0 <= value < (1 << bits):
            raise OverflowError(f"value {value} out of range")
        out = bytearray()
        while value >= 0x80:
            out.append((value & 0x7F) | 0x80)
            value >>= 7
        out.append(value)
        self.write(out)

    def _read_varint(self, bits: int) -> int:
        result = 0
        for shift in range(0, bits, 7):
            byte = self.read_fuint8()
            result |= (byte & 0x7F) << shift
            if byte < 0x80:
                break
        return result & ((1 << bits) - 1)

    @property
    def _float_prefix(self) -> str:
        return "<" if self.little_endian else ">"

    # --------------------------------------------------------- fixed writes

    def write_fint8(self, value: int) -> None:
        self._write_int(value, 1, True)

    def write_fuint8(self, value: int) -> None:
        self._write_int(value, 1, False)

    def write_fint16(self, value: int) -> None:
        self._write_int(value, 2, True)

    def write_fuint16(self, value: int) -> None:
        self._write_int(value, 2, False)

    def write_fint32(self, value: int) -> None:
        self._write_int(value, 4, True)

    def write_fuint32(self, value: int) -> None:
        self._write_int(value, 4, False)

    def write_fint64(self, value: int) -> None:
        self._write_int(value, 8, True)

    def write_fuint64(self, value: int) -> None:
        self._write_int(value, 8, False)

    # ------------------------------------------------------ variable writes

    def write_int32(self, value: int) -> None:
        self._write_varint(_encode_zigzag(value, _INT32_MIN, _INT32_MAX), 32)

    def write_uint32(self, value: int) -> None:
        self._write_varint(value, 32)

    def write_int64(self, value: int) -> None:
        self._write_varint(_encode_zigzag(value, _INT64_MIN, _INT64_MAX), 64)

    def write_uint64(self, value: int) -> None:
        self._write_varint(value, 64)

    def write_float(self, value: float) -> None:
        self.write(struct.pack(self._float_prefix + "f", value))

    def write_double(self, value: float) -> None:
        self.write(struct.pack(self._float_prefix + "d", value))

    def write_string_f16(self, value: Union[str, BytesLike]) -> None:
        data = _as_bytes(value)
        self.write_fuint16(len(data))
        self.write(data)

    def write_string_f32(self, value: Union[str, BytesLike]) -> None:
        data = _as_bytes(value)
        self.write_fuint32(len(data))
        self.write(data)

    def write_string_f64(self, value: Union[str, BytesLike]) -> None:
        data = _as_bytes(value)
        self.write_fuint64(len(data))
        self.write(data)

    def write_string_vint(self, value: Union[str, BytesLike]) -> None:
        data = _as_bytes(value)
        self.write_uint64(len(data))
        self.write(data)

    def write_string_without_length(self, value: Union[str, BytesLike]) -> None:
        self.write(_as_bytes(value))

    # ---------------------------------------------------------- fixed reads

    def read_fint8(self) -> int:
        return self._read_int(1, True)

    def read_fuint8(self) -> int:
        return self._read_int(1, False)

    def read_fint16(self) -> int:
        return self._read_int(2, True)

    def read_fuint16(self) -> int:
        return self._read_int(2, False)

    def read_fint32(self) -> int:
        return self._read_int(4, True)

    def read_fuint32(self) -> int:
        return self._read_int(4, False)

    def read_fint64(self) -> int:
        return self._read_int(8, True)

    def read_fuint64(self) -> int:
        return self._read_int(8, False)

    # ------------------------------------------------------- variable reads

    def read_int32(self) -> int:
        return _decode_zigzag(self.read_uint32())

    def read_uint32(self) -> int:
        return self._read_varint(32)

    def read_int64(self) -> int:
        return _decode_zigzag(self.read_uint64())

    def read_uint64(self) -> int:
        return self._read_varint(64)

    def read_float(self) -> float:
        return struct.unpack(self._float_prefix + "f", self.read(4))[0]

    def read_double(self) -> float:
        return struct.unpack(self._float_prefix + "d", self.read(8))[0]

    def read_string_f16(self) -> bytes:
        return self.read(self.read_fuint16())

    def read_string_f32(self) -> bytes:
        return self.read(self.read_fuint32())

    def read_string_f64(self) -> bytes:
        return self.read(self.read_fuint64())

    def read_string_vint(self) -> bytes:
        return self.read(self.read_uint64())

    # ------------------------------------------------------------- raw I/O

    def write(self, data: BytesLike) -> None:
        """Write raw bytes at the current position, growing as needed."""
        view = memoryview(data).cast("B")
        length = len(view)
        if length == 0:
            return
        self._reserve(length)
        done = 0
        for node, start, end in self._segments(self._position, length):
            node[start:end] = view[done:done + end - start]
            done += end - start
        self._position += length
        if self._position > self._size:
            self._size = self._position

    def read(self, size: int) -> bytes:
        """Read ``size`` bytes from the current position and advance past them."""
        if size < 0:
            raise ValueError("size must not be negative")
        if size > self.read_size:
            raise IndexError("not enough len")
        data = b"".join(bytes(node[start:end])
                        for node, start, end in self._segments(self._position, size))
        self._position += size
        return data

    def peek(self, size: int, position: Optional[int] = None) -> bytes:
        """Return ``size`` bytes starting at ``position`` without moving the position."""
        if position is None:
            position = self._position
        if size < 0 or position < 0:
            raise ValueError("size and position must not be negative")
        if position > self._size or size > self._size - position:
            raise IndexError("not enough len")
        return b"".join(bytes(node[start:end])
                        for node, start, end in self._segments(position, size))

    def clear(self) -> None:
        """Drop all content and every block but the first."""
        self._position = 0
        self._size = 0
        del self._nodes[1:]

    # --------------------------------------------------------------- files

    def write_to_file(self, name: str) -> None:
        """Write the readable bytes to ``name``, replacing its content."""
        with open(name, "wb") as handle:
            handle.write(self.to_bytes())

    def read_from_file(self, name: str) -> None:
        """Append the whole content of ``name`` at the current position."""
        with open(name, "rb") as handle:
            while chunk := handle.read(self._base_size):
                self.write(chunk)

    # ------------------------------------------------------------- views

    def to_bytes(self) -> bytes:
        """The readable bytes, without moving the position."""
        return self.peek(self.read_size, self._position)

    def __bytes__(self) -> bytes:
        return self.to_bytes()

    def to_hex_string(self) -> str:
        """Readable bytes as two-digit hex, 32 per line, each followed by a space."""
        data = self.to_bytes()
        return "\n".join(
            "".join(f"{byte:02x} " for byte in data[start:start + 32])
            for start in range(0, len(data), 32)
        )

    def read_buffers(self, length: Optional[int] = None,
                     position: Optional[int] = None) -> List[memoryview]:
        """Views over up to ``length`` readable bytes, split at block boundaries."""
        readable = self.read_size
        length = readable if length is None else min(length, readable)
        if length <= 0:
            return []
        if position is None:
            position = self._position
        if position < 0 or position + length > self._total_capacity:
            raise IndexError("not enough len")
        return [memoryview(node)[start:end]
                for node, start, end in self._segments(position, length)]

    def write_buffers(self, length: int) -> List[memoryview]:
        """Writable views over ``length`` bytes from the current position.

        The position is left unchanged; advance it once the views are filled.
        """
        if length <= 0:
            return []
        self._reserve(length)
        return [memoryview(node)[start:end]
                for node, start, end in self._segments(self._position, length)]