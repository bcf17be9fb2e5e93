from __future__ import annotations

import pytest

from core import server_url
from core.errors import InvalidServerURL
from core.server_url import is_disallowed_ip, validate_server_base_url


@pytest.fixture
def resolves_to(monkeypatch):
    def apply(*addresses: str) -> None:
        monkeypatch.setattr(server_url, "_resolve", lambda host: list(addresses))

    return apply


def test_normalizes_to_scheme_and_host(resolves_to) -> None:
    resolves_to("93.184.216.34")

    assert validate_server_base_url(" https://user:pw@keep.example.com:8443/api/v1?x=1 ") == "https://keep.example.com:8443"


@pytest.mark.parametrize(
    "raw",
    ["", "keep.example.com", "http://keep.example.com", "ftp://keep.example.com", "https://localhost", "https://LOCALHOST./"],
)
def test_rejects_malformed_or_local(raw, resolves_to) -> None:
    resolves_to("93.184.216.34")

    with pytest.raises(InvalidServerURL):
        validate_server_base_url(raw)


@pytest.mark.parametrize("address", ["127.0.0.1", "10.1.2.3", "192.168.0.10", "169.254.169.254", "::1", "fe80::1", "::ffff:10.0.0.1"])
def test_rejects_hosts_resolving_to_internal_addresses(address, resolves_to) -> None:
    resolves_to("93.184.216.34", address)

    with pytest.raises(InvalidServerURL):
        validate_server_base_url("https://keep.example.com")


def test_unresolvable_host_is_allowed(resolves_to) -> None:
    resolves_to()

    assert validate_server_base_url("https://keep.invalid") == "https://keep.invalid"


def test_is_disallowed_ip() -> None:
    assert is_disallowed_ip("224.0.0.1")
    assert is_disallowed_ip("0.0.0.0")
    assert is_disallowed_ip("not-an-ip")
    assert not is_disallowed_ip("8.8.8.8")
    assert not is_disallowed_ip("2606:4700:4700::1111")
