"""Request handlers and a dispatcher that routes by exact path or glob pattern."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from fnmatch import fnmatchcase
from typing import Any, Callable, Dict, Optional, Union

from .http import HttpRequest, HttpResponse, HttpStatus

Callback = Callable[[HttpRequest, HttpResponse, Any], int]

SERVER_NAME = "acid/1.0.0"


class Servlet(ABC):
    """Handles one request by filling in the response."""

    def __init__(self, name: str) -> None:
        self.name = name

    @abstractmethod
    def handle(self, request: HttpRequest, response: HttpResponse, session: Any) -> int:
        """Fill ``response`` for ``request``; returns a status code, 0 meaning send it."""


class FunctionServlet(Servlet):
    """A servlet that delegates to a callable."""

    def __init__(self, callback: Callback) -> None:
        super().__init__("FunctionServlet")
        self.callback = callback

    def handle(self, request: HttpRequest, response: HttpResponse, session: Any) -> int:
        return self.callback(request, response, session)


class NotFoundServlet(Servlet):
    """Answers with a 404 page naming the server."""

    def __init__(self, name: str = SERVER_NAME) -> None:
        super().__init__("NotFoundServlet")
        self.server_name = name
        self.content = ("<html>"
                        "<head><title>404 Not Found</title></head>"
                        "<body>"
                        "<center><h1>404 Not Found</h1></center>"
                        "<hr><center>" + name + "</center>"
                        "</body>"
                        "</html>")

    def handle(self, request: HttpRequest, response: HttpResponse, session: Any) -> int:
        response.status = HttpStatus.NOT_FOUND
        response.headers["Content-Type"] = "text/html"
        response.headers["Server"] = SERVER_NAME
        response.body = self.content
        return 0


def _as_servlet(servlet: Union[Servlet, Callback]) -> Servlet:
    return servlet if isinstance(servlet, Servlet) else FunctionServlet(servlet)


class ServletDispatch(Servlet):
    """Routes to an exact-path servlet, else the first matching glob, else ``default``."""

    def __init__(self) -> None:
        super().__init__("ServletDispatch")
        self._lock = threading.RLock()
        self._exact: Dict[str, Servlet] = {}
        self._globs: Dict[str, Servlet] = {}
        self.default: Optional[Servlet] = NotFoundServlet(SERVER_NAME)

    def handle(self, request: HttpRequest, response: HttpResponse, session: Any) -> int:
        servlet = self.get_matched_servlet(request.path)
        if servlet is not None:
            servlet.handle(request, response, session)
        return 0

    def add_servlet(self, uri: str, servlet: Union[Servlet, Callback]) -> None:
        with self._lock:
            self._exact[uri] = _as_servlet(servlet)

    def add_glob_servlet(self, uri: str, servlet: Union[Servlet, Callback]) -> None:
        with self._lock:
            self._globs[uri] = _as_servlet(servlet)

    def del_servlet(self, uri: str) -> None:
        with self._lock:
            self._exact.pop(uri, None)

    def del_glob_servlet(self, uri: str) -> None:
        with self._lock:
            self._globs.pop(uri, None)

    def get_servlet(self, uri: str) -> Optional[Servlet]:
        with self._lock:
            return self._exact.get(uri)

    def get_glob_servlet(self, uri: str) -> Optional[Servlet]:
        with self._lock:
            return self._globs.get(uri)

    def get_matched_servlet(self, uri: str) -> Optional[Servlet]:
        """Exact match first, then glob patterns in sorted order, then the default."""
        with self._lock:
            exact = self._exact.get(uri)
            if exact is not None:
                return exact
            for pattern in sorted(self._globs):
                if fnmatchcase(uri, pattern):
                    return self._globs[pattern]
            return self.default