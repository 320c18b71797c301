"""The server side of an HTTP connection: read requests, write responses."""

from __future__ import annotations

import logging
from typing import Optional

from .http import HttpRequest, HttpResponse
from .parse import HttpRequestParser
from .socket import Socket
from .socket_stream import SocketStream

_log = logging.getLogger(__name__)


class HttpSession(SocketStream):
    """Reads one HTTP request at a time from a client socket."""

    def __init__(self, socket: Socket, owner: bool = True) -> None:
        super().__init__(socket, owner)

    def recv_request(self) -> Optional[HttpRequest]:
        """The next request, or None (and the stream closed) on EOF, timeout or bad input."""
        parser = HttpRequestParser()
        buff_size = max(parser.buffer_size(), 1)
        pending = b""
        try:
            while not parser.finished:
                chunk = self.read(max(buff_size - len(pending), 1))
                if not chunk:
                    self.close()
                    return None
                pending += chunk
                consumed = parser.execute(pending)
                if parser.has_error or consumed == 0:
                    _log.debug("parser error code: %s", parser.error)
                    self.close()
                    return None
                pending = pending[consumed:]
            length = parser.content_length()
            body = pending[:length]
            if len(body) < length:
                body += self.read_fix_size(length - len(body))
        except (OSError, EOFError) as exc:
            _log.debug("recv request failed: %s", exc)
            self.close()
            return None
        request = parser.data
        request.body = body.decode("utf-8", "replace")
        return request

    def send_response(self, response: HttpResponse) -> int:
        """Write the whole response; returns the number of bytes sent."""
        return self.write_fix_size(response.dump().encode("utf-8"))