import ipaddress
import socket

import pytest

from acidnet.address import (
    IPv4Address,
    IPv6Address,
    UnixAddress,
    UnknownAddress,
    address_from_sockaddr,
    create_ip_address,
    interface_addresses,
    lookup,
    lookup_any,
    lookup_any_ip_address,
)


def test_ipv4_string_form():
    assert str(IPv4Address.create("127.0.0.1", 8080)) == "127.0.0.1:8080"


def test_ipv4_from_int_equals_parsed():
    assert IPv4Address(0x7F000001, 80) == IPv4Address.create("127.0.0.1", 80)


@pytest.mark.parametrize("text", ["1.2.3", "256.1.1.1", "abc", "::1"])
def test_ipv4_create_rejects_bad_text(text):
    with pytest.raises(ValueError):
        IPv4Address.create(text, 80)


@pytest.mark.parametrize("prefix", [0, 8, 20, 24, 31, 32])
def test_ipv4_masks_match_stdlib(prefix):
    address = IPv4Address.create("192.168.37.201", 99)
    network = ipaddress.ip_network(f"192.168.37.201/{prefix}", strict=False)
    assert address.network_address(prefix).host == str(network.network_address)
    assert address.broadcast_address(prefix).host == str(network.broadcast_address)
    assert address.subnet_mask(prefix).host == str(network.netmask)
    assert address.broadcast_address(prefix).port == 99


def test_ipv4_prefix_out_of_range():
    with pytest.raises(ValueError):
        IPv4Address().broadcast_address(33)


def test_port_out_of_range():
    with pytest.raises(ValueError):
        IPv4Address(0, 70000)
    address = IPv6Address()
    with pytest.raises(ValueError):
        address.port = -1


def test_ipv6_string_forms():
    assert str(IPv6Address.create("::1", 80)) == "[::1]:80"
    assert str(IPv6Address()) == "[::]:0"
    assert str(IPv6Address.create("fe80::1", 443)) == "[fe80::1]:443"


def test_ipv6_create_rejects_bad_text():
    with pytest.raises(ValueError):
        IPv6Address.create("127.0.0.1", 1)


@pytest.mark.parametrize("prefix", [0, 48, 64, 100, 128])
def test_ipv6_masks_match_stdlib(prefix):
    text = "2001:db8:1234:5678:9abc:def0:1111:2222"
    address = IPv6Address.create(text, 5)
    network = ipaddress.ip_network(f"{text}/{prefix}", strict=False)
    assert address.network_address(prefix).host == str(network.network_address)
    assert address.broadcast_address(prefix).host == str(network.broadcast_address)
    assert address.subnet_mask(prefix).host == str(network.netmask)


def test_unix_address_forms():
    assert str(UnixAddress("/tmp/sock")) == "/tmp/sock"
    assert str(UnixAddress("\0name")) == "\\0name"
    assert UnixAddress("/tmp/sock").sockaddr() == "/tmp/sock"


def test_unix_path_too_long():
    with pytest.raises(ValueError):
        UnixAddress("/" + "a" * 200)


def test_unknown_address():
    address = UnknownAddress(99)
    assert str(address) == "[ UnknownAddress family=99 ]"
    assert address.family == 99
    assert address.sockaddr() is None


def test_sockaddr_round_trip_v4():
    address = IPv4Address.create("10.1.2.3", 4321)
    assert address_from_sockaddr(socket.AF_INET, address.sockaddr()) == address


def test_sockaddr_round_trip_v6():
    address = IPv6Address.create("fe80::1", 4321)
    address.scope_id = 3
    rebuilt = address_from_sockaddr(socket.AF_INET6, address.sockaddr())
    assert rebuilt == address
    assert rebuilt.scope_id == 3


def test_unknown_family_from_sockaddr():
    address = address_from_sockaddr(12345, None)
    assert address.family == 12345
    assert str(address) == "[ UnknownAddress family=12345 ]"


def test_ordering_and_hashing():
    a = IPv4Address.create("10.0.0.1", 1)
    b = IPv4Address.create("10.0.0.2", 1)
    assert sorted([b, a]) == [a, b]
    assert len({a, IPv4Address.create("10.0.0.1", 1)}) == 1
    assert a != b


def test_bound_socket_address():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(IPv4Address.create("127.0.0.1", 0).sockaddr())
        local = address_from_sockaddr(socket.AF_INET, sock.getsockname())
    assert local.host == "127.0.0.1"
    assert local.port > 0


def test_lookup_host_and_port():
    address = lookup_any("127.0.0.1:8080")
    assert isinstance(address, IPv4Address)
    assert address.host == "127.0.0.1"
    assert address.port == 8080


def test_lookup_returns_only_requested_family():
    results = lookup("127.0.0.1:80", socket.AF_INET, socket.SOCK_STREAM)
    assert results
    assert all(isinstance(item, IPv4Address) and item.port == 80 for item in results)


def test_lookup_any_ip_address_without_port():
    address = lookup_any_ip_address("127.0.0.1")
    assert isinstance(address, IPv4Address)
    assert address.port == 0


def test_create_ip_address_sets_port():
    address = create_ip_address("127.0.0.1", 9000)
    assert address == IPv4Address.create("127.0.0.1", 9000)


def test_wildcard_interface_addresses():
    assert interface_addresses("*", socket.AF_UNSPEC) == [(IPv4Address(), 0), (IPv6Address(), 0)]
    assert interface_addresses("", socket.AF_INET6) == [(IPv6Address(), 0)]


def test_unknown_interface_gives_nothing():
    assert interface_addresses("no-such-iface-for-tests", socket.AF_UNSPEC) == []