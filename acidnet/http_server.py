"""An HTTP server built on TcpServer that routes requests through a ServletDispatch."""

from __future__ import annotations

import logging

from .http import HttpResponse
from .http_session import HttpSession
from .servlet import NotFoundServlet, ServletDispatch
from .socket import Socket
from .tcp_server import TcpServer

_log = logging.getLogger(__name__)


class HttpServer(TcpServer):
    """Serves HTTP requests; ``dispatch`` decides how each one is answered."""

    def __init__(self, keepalive: bool = False) -> None:
        self.dispatch = ServletDispatch()
        self._name = ""
        super().__init__()
        self.keepalive = keepalive

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        self._name = value
        self.dispatch.default = NotFoundServlet(value)

    def handle_client(self, client: Socket) -> None:
        _log.debug("handleClient: %s", client)
        session = HttpSession(client)
        try:
            while True:
                request = session.recv_request()
                if request is None:
                    _log.debug("recv http request fail, client: %s keep_alive=%s",
                               client, self.keepalive)
                    break
                close = request.close or not self.keepalive
                response = HttpResponse(request.version, close)
                response.headers["Server"] = self.name
                if self.dispatch.handle(request, response, session) == 0:
                    try:
                        session.send_response(response)
                    except OSError as exc:
                        _log.debug("send response failed: %s", exc)
                        break
                if close:
                    break
        finally:
            session.close()