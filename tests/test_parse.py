import pytest

from acidnet.http import HttpMethod, HttpStatus
from acidnet.parse import HttpRequestParser, HttpResponseParser, ParseError


REQUEST = (b"GET /index.html?a=1&b=2 HTTP/1.1\r\n"
           b"Host: example.com\r\n"
           b"connection: keep-alive\r\n\r\nbody")


def test_request_parsed_whole():
    parser = HttpRequestParser()
    consumed = parser.execute(REQUEST)
    assert consumed == len(REQUEST) - len(b"body")
    assert parser.finished
    assert not parser.has_error
    data = parser.data
    assert data.method is HttpMethod.GET
    assert data.path == "/index.html"
    assert data.query == "a=1&b=2"
    assert dict(data.params) == {"a": "1", "b": "2"}
    assert data.headers["host"] == "example.com"
    assert data.close is False
    assert data.version == 0x11


def test_request_fed_byte_by_byte_matches_whole():
    raw = b"POST /a?x=1 HTTP/1.0\r\nHost: h\r\nContent-Length: 3\r\n\r\n"
    parser = HttpRequestParser()
    for byte in raw:
        assert not parser.finished
        assert parser.execute(bytes([byte])) == 1
    assert parser.finished
    assert parser.data.method is HttpMethod.POST
    assert parser.data.version == 0x10
    assert parser.data.path == "/a"
    assert parser.content_length() == 3
    assert parser.data.close is True


def test_query_without_value_is_dropped():
    parser = HttpRequestParser()
    parser.execute(b"GET /p?a=1&b HTTP/1.1\r\nHost: h\r\n\r\n")
    assert parser.finished
    assert dict(parser.data.params) == {"a": "1"}
    assert parser.data.query == "a=1&b"


@pytest.mark.parametrize("raw, error", [
    (b"123 / HTTP/1.1\r\n", ParseError.INVALID_METHOD),
    (b"FOO / HTTP/1.1\r\n", ParseError.INVALID_METHOD),
    (b"GET  HTTP/1.1\r\n", ParseError.INVALID_PATH),
    (b"GET / HTTP/2.0\r\n", ParseError.INVALID_VERSION),
    (b"GET / HTTP/1.1\n", ParseError.INVALID_LINE),
    (b"GET / HTTP/1.1\r\nHost\r\n\r\n", ParseError.INVALID_HEADER),
    (b"GET / HTTP/1.1\r\n\r\n", ParseError.INVALID_HEADER),
])
def test_request_errors(raw, error):
    parser = HttpRequestParser()
    parser.execute(raw)
    assert parser.has_error
    assert parser.error is error
    assert not parser.finished


def test_error_stops_consumption():
    parser = HttpRequestParser()
    raw = b"1GET / HTTP/1.1\r\n"
    assert parser.execute(raw) == 1


def test_invalid_content_length_is_zero():
    parser = HttpRequestParser()
    parser.execute(b"GET / HTTP/1.1\r\nContent-Length: abc\r\n\r\n")
    assert parser.content_length() == 0


def test_response_parsed():
    raw = b"HTTP/1.0 404 Not Found\r\nContent-Length: 5\r\n\r\nhello"
    parser = HttpResponseParser()
    consumed = parser.execute(raw)
    assert raw[consumed:] == b"hello"
    assert parser.finished
    assert parser.data.status is HttpStatus.NOT_FOUND
    assert parser.data.reason == "Not Found"
    assert parser.data.version == 0x10
    assert parser.content_length() == 5
    assert not parser.is_chunked()


def test_response_chunked_body():
    parser = HttpResponseParser()
    head = b"HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\n\r\n"
    assert parser.execute(head) == len(head)
    assert parser.is_chunked()
    chunks = b"5\r\nhello\r\n6\r\n world\r\n0\r\n\r\n"
    assert parser.execute(chunks, chunk=True) == len(chunks)
    assert parser.finished
    assert parser.data.body == "hello world"


def test_response_invalid_chunk():
    parser = HttpResponseParser()
    parser.execute(b"HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\n\r\n")
    parser.execute(b"5;ext\r\n", chunk=True)
    assert parser.error is ParseError.INVALID_CHUNK


@pytest.mark.parametrize("raw, error", [
    (b"HTTP/1.1 abc OK\r\n", ParseError.INVALID_CODE),
    (b"HTTP/1.1 200 \r\n", ParseError.INVALID_REASON),
    (b"HTTX/1.1 200 OK\r\n", ParseError.INVALID_VERSION),
    (b"HTTP/1.1 200 OK\n", ParseError.INVALID_LINE),
])
def test_response_errors(raw, error):
    parser = HttpResponseParser()
    parser.execute(raw)
    assert parser.error is error


def test_default_limits():
    assert HttpRequestParser.buffer_size() == 4 * 1024
    assert HttpResponseParser.buffer_size() == 4 * 1024
    assert HttpRequestParser.max_body_size() == 64 * 1024 * 1024
    assert HttpResponseParser.max_body_size() == 64 * 1024 * 1024