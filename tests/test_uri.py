import pytest

from acidnet.address import IPv4Address
from acidnet.uri import Uri


def test_full_uri_fields():
    text = "http://www.example.com:8080/over/there?name=ferret#nose"
    uri = Uri.create(text)
    assert uri.scheme == "http"
    assert uri.host == "www.example.com"
    assert uri.port == 8080
    assert uri.path == "/over/there"
    assert uri.query == "name=ferret"
    assert uri.fragment == "nose"
    assert uri.userinfo == ""


@pytest.mark.parametrize("text", [
    "http://www.example.com:8080/over/there?name=ferret#nose",
    "http://user@example.com:9000/a/b?x=1#frag",
    "https://example.com/index.html",
    "magnet:?xt=urn",
])
def test_round_trip(text):
    assert Uri.create(text).to_string() == text


def test_userinfo_and_default_port():
    uri = Uri.create("http://user@example.com/path")
    assert uri.userinfo == "user"
    assert uri.host == "example.com"
    assert uri.port == 80
    assert uri.is_default_port()


def test_https_default_port():
    uri = Uri.create("https://example.com")
    assert uri.port == 443
    assert uri.path == "/"
    assert uri.is_default_port()


def test_explicit_default_port_is_default():
    uri = Uri.create("http://example.com:80/")
    assert uri.is_default_port()
    assert uri.to_string() == "http://example.com/"


def test_host_only():
    uri = Uri.create("example.com")
    assert uri.host == "example.com"
    assert uri.scheme == ""
    assert uri.path == "/"
    assert uri.port == 0


def test_host_port_without_scheme():
    uri = Uri.create("localhost:8080/index")
    assert uri.host == "localhost"
    assert uri.port == 8080
    assert uri.path == "/index"
    assert uri.scheme == ""


def test_magnet_keeps_empty_path():
    uri = Uri.create("magnet:?xt=urn")
    assert uri.scheme == "magnet"
    assert uri.path == ""
    assert uri.query == "xt=urn"


@pytest.mark.parametrize("text", [
    "",
    "http:",
    "http:/x",
    "http://",
    "http://host:",
    "http://host:abc",
    "http://ho st",
    "http://example.com/pa th",
])
def test_invalid(text):
    assert Uri.create(text) is None


def test_create_address():
    uri = Uri.create("http://127.0.0.1:8080/")
    address = uri.create_address()
    assert isinstance(address, IPv4Address)
    assert address.host == "127.0.0.1"
    assert address.port == 8080


def test_create_address_uses_scheme_port():
    address = Uri.create("http://127.0.0.1/").create_address()
    assert address.port == 80


def test_port_setter_changes_output():
    uri = Uri.create("http://example.com/p")
    uri.port = 9000
    assert not uri.is_default_port()
    assert Uri.create(uri.to_string()).port == 9000