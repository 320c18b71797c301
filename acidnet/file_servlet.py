"""A servlet that sends files from a directory."""

from __future__ import annotations

import os
import stat
from typing import Any

from .http import HttpRequest, HttpResponse, HttpStatus
from .servlet import SERVER_NAME, NotFoundServlet, Servlet

_CHUNK = 64 * 1024


class FileServlet(Servlet):
    """Serves ``path + request.path`` when it is a readable regular file."""

    def __init__(self, path: str) -> None:
        super().__init__("FileServlet")
        self.path = path

    def handle(self, request: HttpRequest, response: HttpResponse, session: Any) -> int:
        """Send the file itself; always returns 1 as the response is already written."""
        if ".." in request.path:
            NotFoundServlet("acid").handle(request, response, session)
            return 1
        filename = self.path + request.path
        try:
            info = os.stat(filename)
        except OSError:
            NotFoundServlet("acid").handle(request, response, session)
            return 1
        if not stat.S_ISREG(info.st_mode) or not info.st_mode & stat.S_IRUSR:
            NotFoundServlet("acid").handle(request, response, session)
            return 1

        response.status = HttpStatus.OK
        response.headers["Server"] = SERVER_NAME
        response.headers["Content-length"] = str(info.st_size)
        session.send_response(response)

        with open(filename, "rb") as handle:
            for chunk in iter(lambda: handle.read(_CHUNK), b""):
                session.write_fix_size(chunk)
        return 1