from acidnet.http_server import HttpServer


class FakeSocket:
    def __init__(self, chunks):
        self.incoming = list(chunks)
        self.sent = b""
        self.is_connected = True

    def recv(self, length, flags=0):
        if not self.incoming:
            return b""
        chunk = self.incoming.pop(0)
        if len(chunk) > length:
            self.incoming.insert(0, chunk[length:])
            chunk = chunk[:length]
        return chunk

    def send(self, data, flags=0):
        self.sent += bytes(data)
        return len(data)

    def close(self):
        self.is_connected = False


def _hello(request, response, session):
    response.body = "hello"
    return 0


def test_routes_to_servlet():
    server = HttpServer()
    server.dispatch.add_servlet("/hi", _hello)
    sock = FakeSocket([b"GET /hi HTTP/1.1\r\nHost: a\r\n\r\n"])
    server.handle_client(sock)
    assert sock.sent.startswith(b"HTTP/1.1 200 OK\r\n")
    assert b"Server: acid/1.0.0\r\n" in sock.sent
    assert sock.sent.endswith(b"hello")
    assert sock.is_connected is False


def test_unknown_path_is_404_with_server_name():
    server = HttpServer()
    server.name = "myserver"
    sock = FakeSocket([b"GET /nope HTTP/1.1\r\nHost: a\r\n\r\n"])
    server.handle_client(sock)
    assert b"404 Not Found" in sock.sent
    assert b"<hr><center>myserver</center>" in sock.sent


def test_keepalive_serves_several_requests():
    server = HttpServer(keepalive=True)
    server.dispatch.add_servlet("/hi", _hello)
    req = b"GET /hi HTTP/1.1\r\nconnection: keep-alive\r\n\r\n"
    sock = FakeSocket([req, req])
    server.handle_client(sock)
    assert sock.sent.count(b"HTTP/1.1 200 OK") == 2
    assert b"connection: keep-alive" in sock.sent


def test_without_keepalive_only_one_request():
    server = HttpServer(keepalive=False)
    server.dispatch.add_servlet("/hi", _hello)
    req = b"GET /hi HTTP/1.1\r\nconnection: keep-alive\r\n\r\n"
    sock = FakeSocket([req, req])
    server.handle_client(sock)
    assert sock.sent.count(b"HTTP/1.1 200 OK") == 1
    assert b"connection: close" in sock.sent