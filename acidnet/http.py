"""HTTP methods, status codes, content types, and request/response messages."""

from __future__ import annotations

import json
import logging
from enum import IntEnum
from typing import Any, Dict, Iterable, Iterator, List, Mapping, MutableMapping, Tuple, Union

_log = logging.getLogger(__name__)


class HttpMethod(IntEnum):
    DELETE = 0
    GET = 1
    HEAD = 2
    POST = 3
    PUT = 4
    CONNECT = 5
    OPTIONS = 6
    TRACE = 7
    COPY = 8
    LOCK = 9
    MKCOL = 10
    MOVE = 11
    PROPFIND = 12
    PROPPATCH = 13
    SEARCH = 14
    UNLOCK = 15
    BIND = 16
    REBIND = 17
    UNBIND = 18
    ACL = 19
    REPORT = 20
    MKACTIVITY = 21
    CHECKOUT = 22
    MERGE = 23
    MSEARCH = 24
    NOTIFY = 25
    SUBSCRIBE = 26
    UNSUBSCRIBE = 27
    PATCH = 28
    PURGE = 29
    MKCALENDAR = 30
    LINK = 31
    UNLINK = 32
    SOURCE = 33
    INVALID_METHOD = 34


_METHOD_NAMES: Dict[HttpMethod, str] = {
    method: ("M-SEARCH" if method is HttpMethod.MSEARCH else method.name)
    for method in HttpMethod
    if method is not HttpMethod.INVALID_METHOD
}
_METHODS_BY_NAME: Dict[str, HttpMethod] = {name: method for method, name in _METHOD_NAMES.items()}


class HttpStatus(IntEnum):
    CONTINUE = 100
    SWITCHING_PROTOCOLS = 101
    PROCESSING = 102
    OK = 200
    CREATED = 201
    ACCEPTED = 202
    NON_AUTHORITATIVE_INFORMATION = 203
    NO_CONTENT = 204
    RESET_CONTENT = 205
    PARTIAL_CONTENT = 206
    MULTI_STATUS = 207
    ALREADY_REPORTED = 208
    IM_USED = 226
    MULTIPLE_CHOICES = 300
    MOVED_PERMANENTLY = 301
    FOUND = 302
    SEE_OTHER = 303
    NOT_MODIFIED = 304
    USE_PROXY = 305
    TEMPORARY_REDIRECT = 307
    PERMANENT_REDIRECT = 308
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    PAYMENT_REQUIRED = 402
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    NOT_ACCEPTABLE = 406
    PROXY_AUTHENTICATION_REQUIRED = 407
    REQUEST_TIMEOUT = 408
    CONFLICT = 409
    GONE = 410
    LENGTH_REQUIRED = 411
    PRECONDITION_FAILED = 412
    PAYLOAD_TOO_LARGE = 413
    URI_TOO_LONG = 414
    UNSUPPORTED_MEDIA_TYPE = 415
    RANGE_NOT_SATISFIABLE = 416
    EXPECTATION_FAILED = 417
    MISDIRECTED_REQUEST = 421
    UNPROCESSABLE_ENTITY = 422
    LOCKED = 423
    FAILED_DEPENDENCY = 424
    UPGRADE_REQUIRED = 426
    PRECONDITION_REQUIRED = 428
    TOO_MANY_REQUESTS = 429
    REQUEST_HEADER_FIELDS_TOO_LARGE = 431
    UNAVAILABLE_FOR_LEGAL_REASONS = 451
    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503
    GATEWAY_TIMEOUT = 504
    HTTP_VERSION_NOT_SUPPORTED = 505
    VARIANT_ALSO_NEGOTIATES = 506
    INSUFFICIENT_STORAGE = 507
    LOOP_DETECTED = 508
    NOT_EXTENDED = 510
    NETWORK_AUTHENTICATION_REQUIRED = 511


_STATUS_PHRASES: Dict[int, str] = {
    100: "Continue", 101: "Switching Protocols", 102: "Processing",
    200: "OK", 201: "Created", 202: "Accepted", 203: "Non-Authoritative Information",
    204: "No Content", 205: "Reset Content", 206: "Partial Content", 207: "Multi-Status",
    208: "Already Reported", 226: "IM Used",
    300: "Multiple Choices", 301: "Moved Permanently", 302: "Found", 303: "See Other",
    304: "Not Modified", 305: "Use Proxy", 307: "Temporary Redirect", 308: "Permanent Redirect",
    400: "Bad Request", 401: "Unauthorized", 402: "Payment Required", 403: "Forbidden",
    404: "Not Found", 405: "Method Not Allowed", 406: "Not Acceptable",
    407: "Proxy Authentication Required", 408: "Request Timeout", 409: "Conflict",
    410: "Gone", 411: "Length Required", 412: "Precondition Failed",
    413: "Payload Too Large", 414: "URI Too Long", 415: "Unsupported Media Type",
    416: "Range Not Satisfiable", 417: "Expectation Failed", 421: "Misdirected Request",
    422: "Unprocessable Entity", 423: "Locked", 424: "Failed Dependency",
    426: "Upgrade Required", 428: "Precondition Required", 429: "Too Many Requests",
    431: "Request Header Fields Too Large", 451: "Unavailable For Legal Reasons",
    500: "Internal Server Error", 501: "Not Implemented", 502: "Bad Gateway",
    503: "Service Unavailable", 504: "Gateway Timeout", 505: "HTTP Version Not Supported",
    506: "Variant Also Negotiates", 507: "Insufficient Storage", 508: "Loop Detected",
    510: "Not Extended", 511: "Network Authentication Required",
}


class HttpContentType(IntEnum):
    TEXT_PLAIN = 0
    TEXT_HTML = 1
    TEXT_CSS = 2
    TEXT_XML = 3
    APPLICATION_JSON = 4
    APPLICATION_XML = 5
    APPLICATION_JAVASCRIPT = 6
    APPLICATION_OCTET_STREAM = 7
    APPLICATION_X_WWW_FORM_URLENCODED = 8
    MULTIPART_FORM_DATA = 9
    IMAGE_PNG = 10
    IMAGE_JPEG = 11
    IMAGE_GIF = 12
    INVALID_TYPE = 13


_CONTENT_TYPE_NAMES: Dict[HttpContentType, str] = {
    HttpContentType.TEXT_PLAIN: "text/plain",
    HttpContentType.TEXT_HTML: "text/html",
    HttpContentType.TEXT_CSS: "text/css",
    HttpContentType.TEXT_XML: "text/xml",
    HttpContentType.APPLICATION_JSON: "application/json",
    HttpContentType.APPLICATION_XML: "application/xml",
    HttpContentType.APPLICATION_JAVASCRIPT: "application/javascript",
    HttpContentType.APPLICATION_OCTET_STREAM: "application/octet-stream",
    HttpContentType.APPLICATION_X_WWW_FORM_URLENCODED: "application/x-www-form-urlencoded",
    HttpContentType.MULTIPART_FORM_DATA: "multipart/form-data",
    HttpContentType.IMAGE_PNG: "image/png",
    HttpContentType.IMAGE_JPEG: "image/jpeg",
    HttpContentType.IMAGE_GIF: "image/gif",
}
_CONTENT_TYPES_BY_NAME: Dict[str, HttpContentType] = {
    name: kind for kind, name in _CONTENT_TYPE_NAMES.items()
}


def string_to_method(text: str) -> HttpMethod:
    """Exact, case-sensitive method lookup; unknown text gives INVALID_METHOD."""
    return _METHODS_BY_NAME.get(text, HttpMethod.INVALID_METHOD)


def method_to_string(method: Union[HttpMethod, int]) -> str:
    try:
        return _METHOD_NAMES[HttpMethod(method)]
    except (ValueError, KeyError):
        return "<unknown>"


def status_to_string(status: Union[HttpStatus, int]) -> str:
    return _STATUS_PHRASES.get(int(status), "<unknown>")


def string_to_content_type(text: str) -> HttpContentType:
    return _CONTENT_TYPES_BY_NAME.get(text, HttpContentType.INVALID_TYPE)


def content_type_to_string(content_type: Union[HttpContentType, int]) -> str:
    """The MIME name; anything unknown is reported as text/plain."""
    try:
        return _CONTENT_TYPE_NAMES[HttpContentType(content_type)]
    except (ValueError, KeyError):
        return "text/plain"


class CaseInsensitiveDict(MutableMapping[str, str]):
    """A mapping whose keys compare without regard to case, iterated in case-folded order.

    The spelling of a key is the one it was first stored under.
    """

    def __init__(self, data: Union[Mapping[str, str], Iterable[Tuple[str, str]], None] = None,
                 **kwargs: str) -> None:
        self._store: Dict[str, Tuple[str, str]] = {}
        self.update(data or {}, **kwargs)

    def __setitem__(self, key: str, value: str) -> None:
        folded = key.lower()
        existing = self._store.get(folded)
        self._store[folded] = (existing[0] if existing else key, value)

    def __getitem__(self, key: str) -> str:
        return self._store[key.lower()][1]

    def __delitem__(self, key: str) -> None:
        del self._store[key.lower()]

    def __iter__(self) -> Iterator[str]:
        return (original for _, (original, _value) in sorted(self._store.items()))

    def __len__(self) -> int:
        return len(self._store)

    def __repr__(self) -> str:
        return f"CaseInsensitiveDict({dict(self.items())!r})"


def _version_text(version: int) -> str:
    return f"{version >> 4}.{version & 0xF}"


def _body_length(body: str) -> int:
    return len(body.encode("utf-8"))


def _parse_json_body(kind: str, body: str) -> Any:
    try:
        return json.loads(body)
    except ValueError:
        _log.info("%s.get_json() fail, body=%s", kind, body)
        return None


def _dump_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))


def _header_lines(headers: CaseInsensitiveDict, close: bool, websocket: bool) -> List[str]:
    lines: List[str] = []
    if not websocket:
        lines.append(f"connection: {'close' if close else 'keep-alive'}\r\n")
    for key, value in headers.items():
        if not websocket and key.lower() == "connection":
            continue
        lines.append(f"{key}: {value}\r\n")
    return lines


class HttpRequest:
    """An HTTP request; ``version`` is packed as major in the high nibble (0x11 is 1.1)."""

    def __init__(self, version: int = 0x11, close: bool = True) -> None:
        self.version = version
        self.close = close
        self.websocket = False
        self.body = ""
        self.headers = CaseInsensitiveDict()
        self.method: HttpMethod = HttpMethod.GET
        self.path = "/"
        self.query = ""
        self.fragment = ""
        self.params = CaseInsensitiveDict()
        self.cookies = CaseInsensitiveDict()

    def get_json(self) -> Any:
        """The body parsed as JSON, or None when it is not valid JSON."""
        return _parse_json_body("HttpRequest", self.body)

    def set_json(self, value: Any) -> None:
        self.set_content_type(HttpContentType.APPLICATION_JSON)
        self.body = _dump_json(value)

    def set_content_type(self, content_type: Union[HttpContentType, int]) -> None:
        self.headers["content-type"] = content_type_to_string(content_type)

    def dump(self) -> str:
        """The request as it goes on the wire."""
        parts = [
            method_to_string(self.method), " ", self.path,
            "?" + self.query if self.query else "",
            "#" + self.fragment if self.fragment else "",
            " HTTP/", _version_text(self.version), "\r\n",
        ]
        parts.extend(_header_lines(self.headers, self.close, self.websocket))
        if self.body:
            parts.append(f"content-length: {_body_length(self.body)}\r\n\r\n")
            parts.append(self.body)
        else:
            parts.append("\r\n")
        return "".join(parts)

    def __str__(self) -> str:
        return self.dump()


class HttpResponse:
    """An HTTP response; ``status`` may also be a plain integer code."""

    def __init__(self, version: int = 0x11, close: bool = True) -> None:
        self.version = version
        self.close = close
        self.websocket = False
        self.body = ""
        self.headers = CaseInsensitiveDict()
        self.status: Union[HttpStatus, int] = HttpStatus.OK
        self.reason = ""
        self.cookies: List[str] = []

    def get_json(self) -> Any:
        """The body parsed as JSON, or None when it is not valid JSON."""
        return _parse_json_body("HttpResponse", self.body)

    def set_json(self, value: Any) -> None:
        self.set_content_type(HttpContentType.APPLICATION_JSON)
        self.body = _dump_json(value)

    def set_content_type(self, content_type: Union[HttpContentType, int]) -> None:
        self.headers["content-type"] = content_type_to_string(content_type)

    def dump(self) -> str:
        """The response as it goes on the wire."""
        reason = self.reason or status_to_string(self.status)
        parts = [f"HTTP/{_version_text(self.version)} {int(self.status)} {reason}\r\n"]
        parts.extend(_header_lines(self.headers, self.close, self.websocket))
        parts.extend(f"Set-Cookie: {cookie}\r\n" for cookie in self.cookies)
        if self.body:
            if not self.headers.get("content-length", ""):
                parts.append(f"content-length: {_body_length(self.body)}\r\n")
            parts.append("\r\n")
            parts.append(self.body)
        else:
            parts.append("\r\n")
        return "".join(parts)

    def __str__(self) -> str:
        return self.dump()