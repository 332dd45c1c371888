import pytest

from proxyweave.permissions import (
    Permission,
    Permissions,
    PortRange,
    PortSet,
    StringSet,
    can,
    parse_permissions,
    parse_port_range,
    parse_port_set,
    parse_string_set,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("1", PortRange(1, 1)),
        ("1-3", PortRange(1, 3)),
        ("3-1", PortRange(1, 3)),
        ("0-100000", PortRange(0, 65535)),
        ("*", PortRange(0, 65535)),
    ],
)
def test_port_range_parse(text, expected):
    assert parse_port_range(text) == expected


def test_port_range_contains():
    port_range = parse_port_range("5-10")
    assert port_range.contains(5)
    assert port_range.contains(7)
    assert port_range.contains(10)
    assert not port_range.contains(4)
    assert not port_range.contains(11)


@pytest.mark.parametrize("text", ["70000", "1-2-3", "abc", "1-x", "", "-5"])
def test_port_range_parse_errors(text):
    with pytest.raises(ValueError):
        parse_port_range(text)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("*", StringSet(("*",))),
        ("google.pl,google.com", StringSet(("google.pl", "google.com"))),
    ],
)
def test_string_set_parse(text, expected):
    assert parse_string_set(text) == expected


def test_string_set_contains():
    patterns = parse_string_set("google.pl,*.google.com")
    assert patterns.contains("google.pl")
    assert patterns.contains("www.google.com")
    assert not patterns.contains("www.google.pl")
    assert not patterns.contains("foobar.com")


def test_string_set_parse_empty():
    with pytest.raises(ValueError):
        parse_string_set("")


@pytest.mark.parametrize(
    "text, expected",
    [
        ("1,3", PortSet((PortRange(1, 1), PortRange(3, 3)))),
        ("1-3,7-5", PortSet((PortRange(1, 3), PortRange(5, 7)))),
        ("0-100000", PortSet((PortRange(0, 65535),))),
        ("*", PortSet((PortRange(0, 65535),))),
    ],
)
def test_port_set_parse(text, expected):
    assert parse_port_set(text) == expected


def test_port_set_contains():
    ports = parse_port_set("5-10,20-30")
    for port in (5, 7, 10, 20, 27, 30):
        assert ports.contains(port)
    for port in (4, 11, 31):
        assert not ports.contains(port)


def test_port_set_parse_empty():
    with pytest.raises(ValueError, match="at least one port"):
        parse_port_set("")


@pytest.mark.parametrize(
    "text, expected",
    [
        ("", Permissions()),
        (
            "*:*:*",
            Permissions(
                (
                    Permission(
                        actions=StringSet(("*",)),
                        hosts=StringSet(("*",)),
                        ports=PortSet((PortRange(0, 65535),)),
                    ),
                )
            ),
        ),
        (
            "bind:127.0.0.1,localhost:80,443,8000-8100 connect:*.google.pl:80,443",
            Permissions(
                (
                    Permission(
                        actions=StringSet(("bind",)),
                        hosts=StringSet(("127.0.0.1", "localhost")),
                        ports=PortSet(
                            (
                                PortRange(80, 80),
                                PortRange(443, 443),
                                PortRange(8000, 8100),
                            )
                        ),
                    ),
                    Permission(
                        actions=StringSet(("connect",)),
                        hosts=StringSet(("*.google.pl",)),
                        ports=PortSet((PortRange(80, 80), PortRange(443, 443))),
                    ),
                )
            ),
        ),
    ],
)
def test_permissions_parse(text, expected):
    assert parse_permissions(text) == expected


@pytest.mark.parametrize("text", ["a:b", "a:b:c:d", ":host:80", "connect::80", "connect:host:"])
def test_permissions_parse_errors(text):
    with pytest.raises(ValueError):
        parse_permissions(text)


def test_permissions_can():
    rules = parse_permissions("connect:*.google.pl:80,443")
    assert rules.can("connect", "www.google.pl", 443)
    assert not rules.can("bind", "www.google.pl", 443)
    assert not rules.can("connect", "www.google.pl", 8080)
    assert not rules.can("connect", "google.com", 80)


def test_can_without_lists_allows():
    assert can("tcp", "example.com:443", None, None)


def test_can_default_port_is_80():
    whitelist = parse_permissions("tcp:example.com:80")
    assert can("tcp", "example.com", whitelist, None)
    assert not can("tcp", "example.com:81", whitelist, None)


def test_can_blacklist_denies():
    blacklist = parse_permissions("tcp:*.example.com:*")
    assert not can("tcp", "www.example.com:443", None, blacklist)
    assert can("tcp", "example.org:443", None, blacklist)


@pytest.mark.parametrize("addr", ["a:b:c", "host:port", "[::1", "[::1]x:80"])
def test_can_bad_address(addr):
    assert not can("tcp", addr, None, None)