"""Parsing and formatting of URIs: [scheme:][//][userinfo@]host[:port][path][?query][#fragment]."""

from __future__ import annotations

import itertools
import re
import string
from typing import Generator, Optional, Union

from .address import IPAddress, lookup_any_ip_address

_VALID_CHARS = frozenset(string.ascii_letters + string.digits + "-_.~!*'();:@&=+$,/?#[]%")
_NUMBER = re.compile(r"\s*\+?(\d+)")

_Parser = Generator[None, Optional[str], bool]
_Step = Generator[None, Optional[str], Union[bool, str]]


def _is_valid(ch: Optional[str]) -> bool:
    return ch is not None and ch in _VALID_CHARS


def _is_digit(ch: Optional[str]) -> bool:
    return ch is not None and "0" <= ch <= "9"


def _parse_number(text: str) -> int:
    """Leading decimal digits of ``text`` as a port number."""
    match = _NUMBER.match(text)
    if not match:
        raise ValueError(f"no number in {text!r}")
    value = int(match.group(1))
    if value > 0xFFFF:
        raise ValueError(f"port {value} out of range")
    return value


class Uri:
    """A parsed URI; build one with :meth:`create`."""

    def __init__(self, scheme: str = "", userinfo: str = "", host: str = "",
                 path: str = "", query: str = "", fragment: str = "", port: int = 0) -> None:
        self.scheme = scheme
        self.userinfo = userinfo
        self.host = host
        self.query = query
        self.fragment = fragment
        self._path = path
        self._port = port

    @classmethod
    def create(cls, text: str) -> Optional["Uri"]:
        """Parse ``text``; None when it is empty or not a valid URI."""
        if not text:
            return None
        uri = cls()
        parser = uri._parse()
        next(parser)
        for ch in itertools.chain(text, (None,)):
            try:
                parser.send(ch)
            except StopIteration as stop:
                return uri if stop.value and ch is None else None
        parser.close()
        return None

    # ------------------------------------------------------------ accessors

    @property
    def path(self) -> str:
        """The path, "/" when empty except for magnet links."""
        if self.scheme == "magnet":
            return self._path
        return self._path or "/"

    @path.setter
    def path(self, value: str) -> None:
        self._path = value

    @property
    def port(self) -> int:
        """The explicit port, else the scheme's default, else 0."""
        if self._port:
            return self._port
        if self.scheme in ("http", "ws"):
            return 80
        if self.scheme in ("https", "wss"):
            return 443
        return self._port

    @port.setter
    def port(self, value: int) -> None:
        self._port = value

    def is_default_port(self) -> bool:
        if self._port == 0:
            return True
        if self.scheme in ("http", "ws"):
            return self._port == 80
        if self.scheme in ("https", "wss"):
            return self._port == 443
        return False

    def create_address(self) -> Optional[IPAddress]:
        """Resolve the host and give the result this URI's port."""
        address = lookup_any_ip_address(self.host)
        if address is not None:
            address.port = self.port
        return address

    def to_string(self) -> str:
        parts = [self.scheme]
        if self.scheme:
            parts.append(":")
            if self.scheme != "magnet":
                parts.append("//")
        parts.append(self.userinfo)
        if self.userinfo:
            parts.append("@")
        parts.append(self.host)
        if not self.is_default_port():
            parts.append(f":{self._port}")
        parts.append(self.path)
        if self.query:
            parts.append("?" + self.query)
        if self.fragment:
            parts.append("#" + self.fragment)
        return "".join(parts)

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"Uri({self.to_string()!r})"

    # -------------------------------------------------------------- parsing

    def _set_host_port(self, buff: str, port_idx: int) -> bool:
        if not port_idx:
            self.host = buff
            return True
        self.host = buff[:port_idx - 1]
        try:
            self._port = _parse_number(buff[port_idx:])
        except ValueError:
            return False
        return True

    def _parse_port(self, ch: Optional[str]) -> _Step:
        buff = ""
        while _is_digit(ch):
            buff += ch
            ch = yield
            if ch is None:
                try:
                    self._port = _parse_number(buff)
                except ValueError:
                    return False
                return True
        if ch != "/" or not buff:
            return False
        try:
            self._port = _parse_number(buff)
        except ValueError:
            return False
        return ch

    def _parse_path(self) -> _Step:
        buff = "/"
        ch = yield
        if ch is None:
            self._path = buff
            return True
        while ch not in ("?", "#") and _is_valid(ch):
            buff += ch
            ch = yield
            if ch is None:
                self._path = buff
                return True
            if not _is_valid(ch):
                return False
        self._path = buff
        return ch

    def _parse(self) -> _Parser:
        ch = yield
        buff = ""
        port_idx = 0
        while ch not in (":", "?", "#", "/") and _is_valid(ch):
            buff += ch
            ch = yield
            if ch is None:
                self.host = buff
                return True

        jump_path = jump_port = False
        if ch == "/":
            self.host = buff
            buff = ""
            jump_path = True
        else:
            ch = yield
            if ch is None:
                return False
            if _is_digit(ch):
                self.host = buff
                buff = ""
                jump_port = True
            else:
                self.scheme = buff
                buff = ""

        if jump_path or jump_port or ch == "/":
            if jump_port:
                result = yield from self._parse_port(ch)
                if isinstance(result, bool):
                    return result
                ch = result
            elif not jump_path:
                ch = yield
                if ch is None:
                    return False
                if ch != "/":
                    return False
                ch = yield
                if ch is None:
                    return False
                if ch != "/":
                    while ch not in ("@", "/") and _is_valid(ch):
                        buff += ch
                        if ch == ":" and not port_idx:
                            port_idx = len(buff)
                        ch = yield
                        if ch is None:
                            return self._set_host_port(buff, port_idx)
                    if not buff or not _is_valid(ch):
                        return False
                    if ch == "@":
                        self.userinfo = buff
                        buff = ""
                        ch = yield
                        if ch is None:
                            return False
                        while ch not in (":", "/") and _is_valid(ch):
                            buff += ch
                            ch = yield
                            if ch is None:
                                self.host = buff
                                return True
                        if not buff or not _is_valid(ch):
                            return False
                        self.host = buff
                        buff = ""
                        if ch == ":":
                            ch = yield
                            if ch is None:
                                return False
                            result = yield from self._parse_port(ch)
                            if isinstance(result, bool):
                                return result
                            ch = result
                    else:
                        if not self._set_host_port(buff, port_idx):
                            return False
                        buff = ""
            if ch == "/":
                result = yield from self._parse_path()
                if isinstance(result, bool):
                    return result
                ch = result

        if ch == "?":
            ch = yield
            if ch is None:
                return False
            while ch != "#" and _is_valid(ch):
                buff += ch
                ch = yield
                if ch is None:
                    self.query = buff
                    return True
                if not _is_valid(ch):
                    return False
            self.query = buff
            buff = ""
        if ch == "#":
            ch = yield
            if ch is None:
                return False
            while _is_valid(ch):
                buff += ch
                ch = yield
                if ch is None:
                    self.fragment = buff
                    return True
                if not _is_valid(ch):
                    return False
            self.fragment = buff
        return False