"""Incremental HTTP/1.x request and response parsers fed one byte at a time."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum, IntEnum
from typing import Dict, Generator, List, Optional, Union

from .config import default_config
from .http import HttpRequest, HttpResponse, HttpStatus, string_to_method, HttpMethod

_log = logging.getLogger(__name__)

BytesLike = Union[bytes, bytearray, memoryview]


class ParseError(IntEnum):
    NO_ERROR = 0
    INVALID_METHOD = 1
    INVALID_PATH = 2
    INVALID_VERSION = 3
    INVALID_LINE = 4
    INVALID_HEADER = 5
    INVALID_CODE = 6
    INVALID_REASON = 7
    INVALID_CHUNK = 8


class _CheckState(Enum):
    NO_CHECK = 0
    CHECK_LINE = 1
    CHECK_HEADER = 2
    CHECK_CHUNK = 3


_limits: Dict[str, int] = {}


def _track(name: str, key: str, default: int, description: str) -> None:
    _limits[key] = default
    var = default_config.lookup(name, default, description)

    def update(old: int, new: int) -> None:
        _limits[key] = int(new)

    var.add_listener(update)


_track("http.request.buffer_size", "request_buffer", 4 * 1024, "http request buffer size")
_track("http.request.max_body_size", "request_max_body", 64 * 1024 * 1024,
       "http request max body size")
_track("http.response.buffer_size", "response_buffer", 4 * 1024, "http response buffer size")
_track("http.response.max_body_size", "response_max_body", 64 * 1024 * 1024,
       "http response max body size")


def _isprint(ch: str) -> bool:
    return " " <= ch <= "~"


def _isalpha(ch: str) -> bool:
    return ch.isascii() and ch.isalpha()


def _isdigit(ch: str) -> bool:
    return "0" <= ch <= "9"


def _to_text(chars: List[str]) -> str:
    return "".join(chars).encode("latin-1").decode("utf-8", "replace")


Task = Generator[None, None, ParseError]


class HttpParser(ABC):
    """Common state machine: request/status line, then headers, then optional chunks."""

    def __init__(self) -> None:
        self._state = _CheckState.NO_CHECK
        self._error = ParseError.NO_ERROR
        self._finished = False
        self._cur = ""
        self._task: Optional[Task] = None
        self._task_result = ParseError.NO_ERROR

    @property
    def error(self) -> ParseError:
        return self._error

    @property
    def has_error(self) -> bool:
        return self._error is not ParseError.NO_ERROR

    @property
    def finished(self) -> bool:
        """True once the current part has been parsed completely without error."""
        return self._finished and not self.has_error

    def _set_error(self, error: ParseError) -> None:
        self._error = error

    def _start(self, task: Task) -> None:
        self._task = task
        self._task_result = ParseError.NO_ERROR

    def _resume(self) -> ParseError:
        if self._task is None:
            return self._task_result
        try:
            next(self._task)
            return ParseError.NO_ERROR
        except StopIteration as stop:
            self._task = None
            self._task_result = ParseError(stop.value) if stop.value is not None \
                else ParseError.NO_ERROR
            return self._task_result

    def execute(self, data: BytesLike, chunk: bool = False) -> int:
        """Feed bytes and return how many were consumed.

        Parsing stops right after the byte that completes the current part or
        that is found invalid; bytes after that are left to the caller.
        """
        if chunk and self._state is not _CheckState.CHECK_CHUNK:
            self._state = _CheckState.CHECK_CHUNK
            self._finished = False
            self._start(self._parse_chunk())
        if self._state is _CheckState.NO_CHECK:
            self._state = _CheckState.CHECK_LINE
            self._start(self._parse_line())
        consumed = 0
        for byte in bytes(data):
            self._cur = chr(byte)
            before = self._state
            self._error = self._resume()
            consumed += 1
            if self._error is not ParseError.NO_ERROR or self._finished:
                return consumed
            if before is _CheckState.CHECK_LINE and self._state is _CheckState.CHECK_HEADER:
                self._start(self._parse_header())
        return consumed

    @abstractmethod
    def _parse_line(self) -> Task:
        """Parse the first line of the message."""

    @abstractmethod
    def _parse_chunk(self) -> Task:
        """Parse a chunked body."""

    @abstractmethod
    def _on_header(self, key: str, value: str) -> None:
        """Record one header."""

    @abstractmethod
    def _on_header_done(self) -> None:
        """Called after the blank line that ends the headers."""

    def _parse_header(self) -> Task:
        key: List[str] = []
        val: List[str] = []
        while not (self._error is not ParseError.NO_ERROR or self._finished):
            while _isprint(self._cur) and self._cur != ":":
                key.append(self._cur)
                yield
            if self._cur != ":":
                return ParseError.INVALID_HEADER
            yield
            while self._cur == " ":
                yield
            while _isprint(self._cur):
                val.append(self._cur)
                yield
            if self._cur != "\r":
                return ParseError.INVALID_HEADER
            yield
            if self._cur != "\n":
                return ParseError.INVALID_HEADER
            yield
            if self._cur == "\r":
                yield
                if self._cur != "\n":
                    return ParseError.INVALID_HEADER
                self._on_header(_to_text(key), _to_text(val))
                self._on_header_done()
                self._finished = True
                self._state = _CheckState.NO_CHECK
            else:
                self._on_header(_to_text(key), _to_text(val))
                key = [self._cur]
                val = []
                yield
        self._state = _CheckState.NO_CHECK
        return ParseError.NO_ERROR

    def _parse_version(self, on_version) -> Task:
        for expected in "HTTP/1.":
            if self._cur != expected:
                return ParseError.INVALID_VERSION
            yield
        if self._cur not in ("1", "0"):
            return ParseError.INVALID_VERSION
        on_version("1." + self._cur)
        if self._error is not ParseError.NO_ERROR:
            return ParseError.INVALID_VERSION
        yield
        return ParseError.NO_ERROR

    def _version_value(self, text: str) -> Optional[int]:
        if text == "1.1":
            return 0x11
        if text == "1.0":
            return 0x10
        self._set_error(ParseError.INVALID_VERSION)
        return None

    @staticmethod
    def _content_length(message: Union[HttpRequest, HttpResponse]) -> int:
        try:
            value = int(message.headers.get("content-length", "0"))
        except ValueError:
            return 0
        return max(value, 0)


class HttpRequestParser(HttpParser):
    """Parses a request line and headers into ``data``, an HttpRequest."""

    def __init__(self) -> None:
        super().__init__()
        self.data = HttpRequest()

    @classmethod
    def buffer_size(cls) -> int:
        return _limits["request_buffer"]

    @classmethod
    def max_body_size(cls) -> int:
        return _limits["request_max_body"]

    def content_length(self) -> int:
        return self._content_length(self.data)

    def _on_method(self, text: str) -> None:
        method = string_to_method(text)
        if method is HttpMethod.INVALID_METHOD:
            _log.warning("invalid http request method: %s", text)
            self._set_error(ParseError.INVALID_METHOD)
            return
        self.data.method = method

    def _on_query(self, text: str) -> None:
        key = ""
        start = 0
        for index, ch in enumerate(text):
            if ch == "=":
                key = text[start:index]
                start = index + 1
            elif ch == "&":
                self.data.params[key] = text[start:index]
                start = index + 1
                key = ""
        if key:
            val = text[start:]
            if val:
                self.data.params[key] = val
        self.data.query = text

    def _on_version(self, text: str) -> None:
        version = self._version_value(text)
        if version is None:
            _log.warning("invalid http request version: %s", text)
            return
        self.data.version = version

    def _on_header(self, key: str, value: str) -> None:
        if not key:
            _log.warning("invalid http request field length == 0")
            return
        self.data.headers[key] = value

    def _on_header_done(self) -> None:
        self.data.close = self.data.headers.get("connection", "") != "keep-alive"

    def _parse_line(self) -> Task:
        buff: List[str] = []
        while _isalpha(self._cur):
            buff.append(self._cur)
            yield
        if not buff or self._cur != " ":
            return ParseError.INVALID_METHOD
        self._on_method("".join(buff))
        if self._error is not ParseError.NO_ERROR:
            return ParseError.INVALID_METHOD
        buff = []
        yield
        while _isprint(self._cur) and self._cur not in " ?":
            buff.append(self._cur)
            yield
        if not buff:
            return ParseError.INVALID_PATH
        if self._cur == "?":
            self.data.path = _to_text(buff)
            buff = []
            yield
            while _isprint(self._cur) and self._cur not in " #":
                buff.append(self._cur)
                yield
            if self._cur == "#":
                self._on_query(_to_text(buff))
                buff = []
                while _isprint(self._cur) and self._cur != " ":
                    buff.append(self._cur)
                    yield
                if self._cur != " ":
                    return ParseError.INVALID_PATH
                self.data.fragment = _to_text(buff)
                yield
            elif self._cur != " ":
                return ParseError.INVALID_PATH
            else:
                self._on_query(_to_text(buff))
                yield
        elif self._cur != " ":
            return ParseError.INVALID_PATH
        else:
            self.data.path = _to_text(buff)
            yield
        result = yield from self._parse_version(self._on_version)
        if result is not ParseError.NO_ERROR:
            return result
        if self._cur != "\r":
            return ParseError.INVALID_LINE
        yield
        if self._cur != "\n":
            return ParseError.INVALID_LINE
        self._state = _CheckState.CHECK_HEADER
        return ParseError.NO_ERROR

    def _parse_chunk(self) -> Task:
        # Chunked request bodies are not interpreted.
        return ParseError.NO_ERROR
        yield  # pragma: no cover


class HttpResponseParser(HttpParser):
    """Parses a status line, headers and chunked bodies into ``data``, an HttpResponse."""

    def __init__(self) -> None:
        super().__init__()
        self.data = HttpResponse()

    @classmethod
    def buffer_size(cls) -> int:
        return _limits["response_buffer"]

    @classmethod
    def max_body_size(cls) -> int:
        return _limits["response_max_body"]

    def content_length(self) -> int:
        return self._content_length(self.data)

    def is_chunked(self) -> bool:
        return bool(self.data.headers.get("Transfer-Encoding", ""))

    def _on_version(self, text: str) -> None:
        version = self._version_value(text)
        if version is None:
            _log.warning("invalid http response version: %s", text)
            return
        self.data.version = version

    def _on_status(self, text: str) -> None:
        code = int(text)
        try:
            self.data.status = HttpStatus(code)
        except ValueError:
            self.data.status = code

    def _on_header(self, key: str, value: str) -> None:
        if not key:
            _log.warning("invalid http response field length == 0")
            return
        self.data.headers[key] = value

    def _on_header_done(self) -> None:
        self.data.close = self.data.headers.get("connection", "") != "keep-alive"

    def _parse_line(self) -> Task:
        result = yield from self._parse_version(self._on_version)
        if result is not ParseError.NO_ERROR:
            return result
        while self._cur == " ":
            yield
        buff: List[str] = []
        while _isdigit(self._cur):
            buff.append(self._cur)
            yield
        if not buff or self._cur != " ":
            return ParseError.INVALID_CODE
        self._on_status("".join(buff))
        buff = []
        yield
        while self._cur == " ":
            yield
        while _isalpha(self._cur) or self._cur == " ":
            buff.append(self._cur)
            yield
        if not buff:
            return ParseError.INVALID_REASON
        if self._cur != "\r":
            return ParseError.INVALID_LINE
        yield
        if self._cur != "\n":
            return ParseError.INVALID_LINE
        self.data.reason = "".join(buff)
        self._state = _CheckState.CHECK_HEADER
        return ParseError.NO_ERROR

    def _parse_chunk(self) -> Task:
        body: List[str] = []
        while True:
            length = 0
            while True:
                ch = self._cur
                if _isdigit(ch):
                    length = length * 16 + ord(ch) - ord("0")
                elif "a" <= ch <= "f":
                    length = length * 16 + ord(ch) - ord("a") + 10
                elif "A" <= ch <= "F":
                    length = length * 16 + ord(ch) - ord("A") + 10
                else:
                    break
                yield
            if self._cur != "\r":
                return ParseError.INVALID_CHUNK
            yield
            if self._cur != "\n":
                return ParseError.INVALID_CHUNK
            yield
            for _ in range(length):
                body.append(self._cur)
                yield
            if self._cur != "\r":
                return ParseError.INVALID_CHUNK
            yield
            if self._cur != "\n":
                return ParseError.INVALID_CHUNK
            if not length:
                break
            yield
        self.data.body = _to_text(body)
        self._finished = True
        return ParseError.NO_ERROR