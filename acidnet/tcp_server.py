"""A threaded TCP server that accepts connections and hands each to ``handle_client``."""

from __future__ import annotations

import logging
import threading
from typing import Any, List, Sequence

from .address import Address
from .config import default_config
from .socket import Socket

_log = logging.getLogger(__name__)

_recv_timeout = default_config.lookup("tcp_server.recv_timeout", 60 * 1000 * 2,
                                      "tcp server recv timeout")

_ACCEPT_POLL_MS = 200


class TcpServer:
    """Listens on bound addresses; each client is served on its own thread."""

    def __init__(self) -> None:
        self.recv_timeout = _recv_timeout.value
        self.name = "acid/1.0.0"
        self._listens: List[Socket] = []
        self._threads: List[threading.Thread] = []
        self._stopped = threading.Event()
        self._stopped.set()
        self._lock = threading.Lock()

    @property
    def is_stop(self) -> bool:
        return self._stopped.is_set()

    @property
    def addresses(self) -> List[Address]:
        """The local addresses of the listening sockets."""
        return [sock.local_address() for sock in self._listens]

    def bind(self, address: Address) -> None:
        """Bind and listen on ``address``; OSError if that fails."""
        failed = self.bind_all([address])
        if failed:
            raise OSError(f"bind fail addr=[{address}]")

    def bind_all(self, addresses: Sequence[Address]) -> List[Address]:
        """Bind and listen on every address; returns those that failed.

        If any fails, no address is kept listening.
        """
        failed: List[Address] = []
        for address in addresses:
            sock = Socket.create_tcp(address)
            try:
                sock.bind(address)
                sock.listen()
            except (OSError, ValueError) as exc:
                _log.error("bind fail %s addr=[%s]", exc, address)
                sock.close()
                failed.append(address)
                continue
            self._listens.append(sock)
        if failed:
            for sock in self._listens:
                sock.close()
            self._listens.clear()
            return failed
        for sock in self._listens:
            _log.info("Server name=%s bind:%s success", self.name, sock)
        return failed

    def start(self) -> bool:
        """Begin accepting; False if the server is already running."""
        with self._lock:
            if not self.is_stop:
                return False
            self._stopped.clear()
            for sock in self._listens:
                thread = threading.Thread(target=self._accept_loop, args=(sock,), daemon=True)
                self._threads.append(thread)
                thread.start()
        _log.debug("TcpServer::start()")
        return True

    def stop(self) -> None:
        with self._lock:
            if self.is_stop:
                return
            self._stopped.set()
            threads = list(self._threads)
            self._threads.clear()
        for thread in threads:
            thread.join()
        for sock in self._listens:
            sock.close()
        self._listens.clear()

    def __enter__(self) -> "TcpServer":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.stop()

    def _accept_loop(self, sock: Socket) -> None:
        sock.recv_timeout = _ACCEPT_POLL_MS
        while not self.is_stop:
            try:
                client = sock.accept()
            except TimeoutError:
                continue
            except OSError as exc:
                if self.is_stop or not sock.is_valid:
                    break
                _log.error("accept fail: %s", exc)
                continue
            client.recv_timeout = self.recv_timeout
            threading.Thread(target=self._serve, args=(client,), daemon=True).start()

    def _serve(self, client: Socket) -> None:
        try:
            self.handle_client(client)
        except Exception:
            _log.exception("handle_client failed for %s", client)

    def handle_client(self, client: Socket) -> None:
        """Serve one connection; the default only logs it."""
        _log.info("handleClient: %s", client)
        client.close()