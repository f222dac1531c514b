from __future__ import annotations

import pytest

from devchannel.address import (
    RESOLUTION_ORDER,
    ChannelConfig,
    PageOrigin,
    ResolutionError,
    normalize_path,
    parse_public_host,
    resolve,
    server_origin,
    static_candidates,
)
from devchannel.config import ServerOptions

P1, P2, P3 = 8101, 8102, 8103

PAGE = PageOrigin.from_url(f"http://localhost:{P2}/main")


def _resolve(page: PageOrigin = PAGE, **options) -> str:
    config = ServerOptions(host="0.0.0.0", port=P2, **options).channel_config()
    return resolve(config, page).url


def test_defaults_follow_page_origin() -> None:
    address = resolve(ChannelConfig(), PAGE)
    assert address.protocol == "ws"
    assert address.hostname == "localhost"
    assert address.port == str(P2)
    assert address.path == "/sockjs-node"


def test_https_page_gets_secure_socket() -> None:
    page = PageOrigin.from_url("https://dev.example.test/app")
    address = resolve(ChannelConfig(), page)
    assert address.protocol == "wss"
    assert address.port == ""
    assert address.url == "wss://dev.example.test/sockjs-node"


def test_sock_path_with_public_host() -> None:
    url = _resolve(public="myhost.test", sockPath="/foo/test/bar/")
    assert url == f"ws://myhost.test:{P2}/foo/test/bar/"


def test_sock_port_and_sock_path() -> None:
    url = _resolve(sockPath="/foo/test/bar/", sockPort=P3)
    assert url == f"ws://localhost:{P3}/foo/test/bar/"


@pytest.mark.parametrize("sock_port", [P3, str(P3), 1, 65535])
def test_sock_port_alone_keeps_default_path(sock_port) -> None:
    config = ChannelConfig(port=sock_port)
    assert resolve(config, PAGE).path == "/sockjs-node"
    assert _resolve(sockPort=P3) == f"ws://localhost:{P3}/sockjs-node"


def test_sock_host() -> None:
    assert _resolve(sockHost="myhost.test") == f"ws://myhost.test:{P2}/sockjs-node"


def test_public_host_only_sets_hostname() -> None:
    address = resolve(ChannelConfig(public_host="myhost.test"), PAGE)
    assert address.hostname == "myhost.test"
    assert address.port == str(P2)
    assert address.path == "/sockjs-node"


def test_explicit_fields_beat_public_host() -> None:
    config = ChannelConfig(
        host="sock.test", port=P3, path="/explicit",
        public_host="public.test:9000/public",
    )
    address = resolve(config, PAGE)
    assert (address.hostname, address.port, address.path) == ("sock.test", str(P3), "/explicit")


def test_public_host_components_beat_page() -> None:
    address = resolve(ChannelConfig(public_host="public.test:9000/ws/"), PAGE)
    assert (address.hostname, address.port, address.path) == ("public.test", "9000", "/ws")


def test_behind_proxy_connects_to_proxy_target_port() -> None:
    # server bound on 0.0.0.0:P1, page reached through a proxy on P2
    config = ServerOptions(host="0.0.0.0", port=P1).channel_config()
    page = PageOrigin.from_url(f"http://localhost:{P2}/main")
    assert resolve(config, page).url == f"ws://localhost:{P1}/sockjs-node"


def test_server_and_page_agree_on_matching_origin() -> None:
    options = ServerOptions(host="localhost", port=P2, sockPath="/foo/test/bar/", sockPort=P3)
    config = options.channel_config()
    server_side = resolve(config, server_origin(options.host, options.port))
    client_side = resolve(config, PageOrigin.from_url(f"http://localhost:{P2}/main"))
    assert server_side == client_side


def test_empty_port_means_page_port() -> None:
    for port in (None, "", "0", 0):
        address = resolve(ChannelConfig(port=port, public_host="myhost.test"), PAGE)
        assert address.port == str(P2)
    address = resolve(ChannelConfig(), PageOrigin(protocol="http:", hostname="localhost", port=""))
    assert address.url == "ws://localhost/sockjs-node"


def test_ipv6_hosts_are_bracketed_in_url() -> None:
    address = resolve(ChannelConfig(public_host="[::1]:9000"), PAGE)
    assert address.hostname == "::1"
    assert address.url == "ws://[::1]:9000/sockjs-node"


def test_wildcard_public_host_uses_page_hostname() -> None:
    for public in ("0.0.0.0:9000", "[::]:9000"):
        address = resolve(ChannelConfig(public_host=public), PAGE)
        assert address.hostname == "localhost"
        assert address.port == "9000"


@pytest.mark.parametrize(
    "value, expected",
    [
        ("myhost.test", ("myhost.test", "", "")),
        ("myhost.test/", ("myhost.test", "", "")),
        ("myhost.test:8080", ("myhost.test", "8080", "")),
        ("myhost.test:8080/", ("myhost.test", "8080", "")),
        ("myhost.test/a/b/", ("myhost.test", "", "/a/b/")),
        ("http://myhost.test:8080/a", ("myhost.test", "8080", "/a")),
        ("[::1]:8080", ("::1", "8080", "")),
    ],
)
def test_parse_public_host(value, expected) -> None:
    parsed = parse_public_host(value)
    assert (parsed.hostname, parsed.port, parsed.path) == expected


@pytest.mark.parametrize("value", ["", ":8080", "/path", "http://:80", "myhost.test:http"])
def test_parse_public_host_rejects_malformed(value) -> None:
    with pytest.raises(ResolutionError):
        parse_public_host(value)


def test_normalize_path() -> None:
    assert normalize_path(None) == ""
    assert normalize_path("  ") == ""
    assert normalize_path("/") == "/"
    assert normalize_path("foo") == "/foo"
    assert normalize_path("//foo//bar///") == "/foo/bar/"
    assert normalize_path("/foo/test/bar") == "/foo/test/bar"


def test_invalid_sock_port_is_a_resolution_error() -> None:
    with pytest.raises(ResolutionError):
        static_candidates(ChannelConfig(port="eighty"))


def test_resolution_order_covers_every_field_and_source() -> None:
    candidates = static_candidates(ChannelConfig())
    sources = {s for order in RESOLUTION_ORDER.values() for s in order}
    assert set(RESOLUTION_ORDER) == {"hostname", "port", "path"}
    assert sources - set(candidates) == {"page_hostname", "page_port"}


def test_page_origin_from_url_drops_default_port() -> None:
    assert PageOrigin.from_url("http://example.test:80/").port == ""
    assert PageOrigin.from_url("https://example.test:443/").port == ""
    assert PageOrigin.from_url("http://example.test:8443/").port == "8443"
    assert PageOrigin.from_url("https://example.test/").secure


def test_config_dict_round_trip_uses_option_names() -> None:
    config = ChannelConfig(host="h", port=1, path="/p", public_host="x:2", log_level="warn", hot=True)
    data = config.as_dict()
    assert data["sockHost"] == "h"
    assert data["clientLogLevel"] == "warn"
    assert ChannelConfig.from_dict(data) == config
