# acidnet

A small networking toolkit for building TCP and HTTP services in Python.

| Module | What it holds |
| --- | --- |
| `acidnet.byte_array` | `ByteArray`, a growable block-based byte buffer with typed reads and writes |
| `acidnet.lexical_cast` | `parse_bool`, a strict `"true"`/`"false"` parser |
| `acidnet.config` | `ConfigVar` and `Config`: named, typed settings loaded from YAML, with change listeners; `default_config` is the shared registry |
| `acidnet.log` | `Logger`, `LogManager`, `LogFormatter`, `StdoutLogAppender`, `FileLogAppender`, configured through the `logs` setting |
| `acidnet.address` | `IPv4Address`, `IPv6Address`, `UnixAddress`, `UnknownAddress`, host lookup and interface addresses |
| `acidnet.uri` | `Uri`, a parser and formatter for `scheme://userinfo@host:port/path?query#fragment` |
| `acidnet.http` | `HttpMethod`, `HttpStatus`, `HttpContentType`, `HttpRequest`, `HttpResponse` |
| `acidnet.parse` | `HttpRequestParser` and `HttpResponseParser`, incremental parsers (chunked response bodies included) |
| `acidnet.socket` | `Socket`, a wrapper working with the address classes |
| `acidnet.socket_stream` | `SocketStream`, reads and writes over a connected socket |
| `acidnet.tcp_server` | `TcpServer`, a threaded accept loop calling `handle_client` |
| `acidnet.http_session`, `acidnet.http_server` | `HttpSession` and `HttpServer` |
| `acidnet.servlet`, `acidnet.file_servlet` | `ServletDispatch` routing by exact path or glob, `NotFoundServlet`, `FunctionServlet`, `FileServlet` |

## Installing

```
pip install .
```

It needs PyYAML (configuration and logging) and psutil (interface addresses).

## Byte buffers

Fixed-width values follow the buffer's byte order (big endian unless
`little_endian` is set). `write_int32`/`write_int64` use zigzag varints and
`write_uint32`/`write_uint64` plain varints. Strings are written from `str` (as
UTF-8) or bytes and read back as `bytes`.

```python
from acidnet.byte_array import ByteArray

buf = ByteArray(16)
buf.write_int32(-5)
buf.write_string_vint("hello")
buf.write_double(1.5)
buf.position = 0
assert buf.read_int32() == -5
assert buf.read_string_vint() == b"hello"
assert buf.read_double() == 1.5
print(buf.to_hex_string())
```

Reading past the end raises `IndexError`. `write_to_file` and `read_from_file`
save and load the readable bytes.

## Configuration

```python
from acidnet.config import default_config

port = default_config.lookup("server.port", 8080, "listening port")
port.add_listener(lambda old, new: print("port", old, "->", new))
default_config.load_from_yaml("server:\n  port: 9090\n")
assert port.value == 9090
```

Names are lower case letters, digits, `.` and `_`. Values that do not convert
to the variable's type are reported through `logging` and left unchanged.

## Logging

```python
from acidnet.log import LogEvent, LogLevel, get_logger

logger = get_logger("app")
logger.info(LogEvent(logger, LogLevel.INFO, content="hello"))
```

A logger without appenders passes events to the root logger, which prints
coloured lines to standard output. Patterns use `%m` message, `%p` level,
`%c` logger name, `%d{fmt}` time, `%t` thread id, `%N` thread name,
`%F` fiber id, `%f` file, `%l` line, `%r` elapsed ms, `%T` tab, `%n` newline.
Loading a `logs:` sequence through `default_config` (each entry with `name`,
`level`, optional `formatter` and `appender` list of `StdoutLogAppender` or
`FileLogAppender` with `file`) reconfigures the named loggers.

## Addresses and URIs

```python
from acidnet.address import IPv4Address, lookup_any
from acidnet.uri import Uri

addr = IPv4Address.create("192.168.1.10", 80)
print(addr.network_address(24), addr.broadcast_address(24), addr.subnet_mask(24))

uri = Uri.create("http://user@localhost:8080/over/there?name=ferret#nose")
print(uri.host, uri.port, uri.path, uri.query, uri.fragment)
print(uri.to_string())
```

`Uri.create` returns `None` for text that does not parse. `lookup_any("host:port")`
returns the first resolved address or `None`.

## A small HTTP server

```python
from acidnet.address import lookup_any
from acidnet.http_server import HttpServer


def hello(request, response, session):
    response.body = "hi"
    return 0  # 0 means: send the response


server = HttpServer(keepalive=True)
server.dispatch.add_servlet("/hello", hello)
server.bind(lookup_any("127.0.0.1:8080"))
server.start()
```

`bind` raises `OSError` when the address cannot be bound. Every client is
served on its own thread; `stop` ends the accept loops and closes the
listening sockets. Paths that match no exact or glob route get a 404 page
naming the server (`name`, `acid/1.0.0` by default). A `FileServlet(root)` sends
regular files found under `root`.

## What it does not do

- There is no HTTP client or connection pool: the parser can read responses,
  but nothing here sends requests and waits for the answer.
- There is no coroutine scheduler or event loop; servers use one thread per
  connection and blocking sockets with timeouts.
- There is no command-line program; everything is used as a library.
- Chunked request bodies are not interpreted, and cookies sent by clients
  are not parsed.

## Running the tests

```
pip install .[test]
pytest
```