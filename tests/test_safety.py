"""Tests for the URL validator and SSRF safety gate.

DNS is never touched: the resolver is injected as a plain function returning
``getaddrinfo``-shaped tuples.
"""

from __future__ import annotations

import socket

import pytest

from sitetext.scraper.errors import BlockedURLError, InvalidURLError, NetworkError
from sitetext.scraper.models import SafetyVerdict
from sitetext.scraper.safety import SafetyGate, is_forbidden_ip, parse_ip


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _resolver_for(*addresses: str):
    """Return a fake ``getaddrinfo`` that always answers with *addresses*."""
    calls: list[str] = []

    def fake(host, port, type=0):  # noqa: A002 - mirrors socket.getaddrinfo
        calls.append(host)
        family = socket.AF_INET6 if ":" in addresses[0] else socket.AF_INET
        return [(family, socket.SOCK_STREAM, 6, "", (addr, port)) for addr in addresses]

    fake.calls = calls  # type: ignore[attr-defined]
    return fake


def _failing_resolver(host, port, type=0):  # noqa: A002
    raise socket.gaierror(-2, "Name or service not known")


@pytest.fixture()
def gate() -> SafetyGate:
    return SafetyGate(resolve_dns=False)


# ---------------------------------------------------------------------------
# validate(): pattern checks
# ---------------------------------------------------------------------------

class TestValidate:
    @pytest.mark.parametrize(
        "url",
        [
            "http://127.0.0.1/admin",
            "http://169.254.169.254/latest/meta-data",
            "http://10.0.0.5",
            "http://localhost:8080/",
            "http://0.0.0.0/",
            "http://[::1]/",
            "http://192.168.1.1/router",
            "http://172.16.4.2/",
            "http://[fe80::1]/",
            "http://[fd12:3456::1]/",
            "http://[::ffff:127.0.0.1]/",
            "http://metadata.google.internal/computeMetadata/v1/",
        ],
    )
    def test_internal_targets_are_blocked(self, gate: SafetyGate, url: str) -> None:
        verdict = gate.validate(url)
        assert verdict.allowed is False
        assert "not allowed" in verdict.reason

    @pytest.mark.parametrize(
        "url",
        ["https://example.com", "http://example.com/path?q=1", "https://sub.example.co.uk:8443/x"],
    )
    def test_public_urls_are_allowed(self, gate: SafetyGate, url: str) -> None:
        verdict = gate.validate(url)
        assert verdict == SafetyVerdict(allowed=True, reason="ok")
        assert bool(verdict) is True

    @pytest.mark.parametrize(
        "url",
        [
            "",
            "   ",
            "not a url",
            "example.com",
            "//example.com/path",
            "ftp://example.com/file",
            "javascript:alert(1)",
            "file:///etc/passwd",
            "http://",
            "http://intranet/",
            "http://exa mple.com/",
            "http://example.com:99999/",
            "http://-bad-.com/",
        ],
    )
    def test_malformed_urls_are_invalid(self, gate: SafetyGate, url: str) -> None:
        verdict = gate.validate(url)
        assert verdict.allowed is False
        assert "Invalid URL format" in verdict.reason

    @pytest.mark.parametrize("value", [None, 42, ["https://example.com"]])
    def test_non_string_input_is_invalid(self, gate: SafetyGate, value) -> None:
        assert gate.validate(value).allowed is False

    def test_validate_never_resolves(self) -> None:
        resolver = _resolver_for("10.0.0.1")
        gate = SafetyGate(resolve_dns=True, resolver=resolver)
        assert gate.validate("https://example.com").allowed is True
        assert resolver.calls == []


class TestCheck:
    def test_invalid_raises_invalid_url_error(self, gate: SafetyGate) -> None:
        with pytest.raises(InvalidURLError):
            gate.check("ftp://example.com")

    def test_blocked_raises_blocked_url_error(self, gate: SafetyGate) -> None:
        with pytest.raises(BlockedURLError):
            gate.check("http://127.0.0.1/")

    def test_returns_normalised_host(self, gate: SafetyGate) -> None:
        assert gate.check("https://Example.COM/Path") == "example.com"

    def test_custom_blocklist(self) -> None:
        gate = SafetyGate(blocked_hosts=["evil.example.com"], resolve_dns=False)
        with pytest.raises(BlockedURLError):
            gate.check("https://evil.example.com/")
        gate.check("https://good.example.com/")


# ---------------------------------------------------------------------------
# check_resolved(): DNS-aware checks
# ---------------------------------------------------------------------------

class TestCheckResolved:
    def test_public_resolution_passes(self) -> None:
        gate = SafetyGate(resolver=_resolver_for("93.184.216.34"))
        gate.check_resolved("https://example.com/")

    def test_private_resolution_is_blocked(self) -> None:
        gate = SafetyGate(resolver=_resolver_for("93.184.216.34", "10.1.2.3"))
        with pytest.raises(BlockedURLError, match="resolves to 10.1.2.3"):
            gate.check_resolved("https://sneaky.example.com/")

    def test_metadata_resolution_is_blocked(self) -> None:
        gate = SafetyGate(resolver=_resolver_for("169.254.169.254"))
        with pytest.raises(BlockedURLError):
            gate.check_resolved("http://metadata.example.net/")

    def test_resolution_failure_is_network_error(self) -> None:
        gate = SafetyGate(resolver=_failing_resolver)
        with pytest.raises(NetworkError, match="DNS resolution failed"):
            gate.check_resolved("https://does-not-exist.example/")

    def test_ip_literals_skip_resolution(self) -> None:
        resolver = _resolver_for("10.0.0.1")
        gate = SafetyGate(resolver=resolver)
        gate.check_resolved("http://93.184.216.34/")
        assert resolver.calls == []

    def test_disabled_resolution_skips_lookup(self) -> None:
        resolver = _resolver_for("10.0.0.1")
        gate = SafetyGate(resolve_dns=False, resolver=resolver)
        gate.check_resolved("https://example.com/")
        assert resolver.calls == []

    def test_cache_avoids_repeat_lookups(self) -> None:
        resolver = _resolver_for("93.184.216.34")
        gate = SafetyGate(resolver=resolver)
        cache: dict[str, bool] = {}
        gate.check_resolved("https://example.com/a", cache=cache)
        gate.check_resolved("https://example.com/b", cache=cache)
        assert resolver.calls == ["example.com"]
        assert cache == {"example.com": True}

    def test_cached_block_still_blocks(self) -> None:
        gate = SafetyGate(resolver=_resolver_for("192.168.0.10"))
        cache: dict[str, bool] = {}
        with pytest.raises(BlockedURLError):
            gate.check_resolved("https://lan.example.com/a", cache=cache)
        with pytest.raises(BlockedURLError):
            gate.check_resolved("https://lan.example.com/b", cache=cache)


# ---------------------------------------------------------------------------
# IP helpers
# ---------------------------------------------------------------------------

class TestIpHelpers:
    @pytest.mark.parametrize(
        "addr", ["10.0.0.1", "172.31.255.255", "192.168.0.1", "169.254.1.1", "127.0.0.2", "::1", "fc00::1", "fe80::1"]
    )
    def test_forbidden(self, addr: str) -> None:
        ip = parse_ip(addr)
        assert ip is not None
        assert is_forbidden_ip(ip) is True

    @pytest.mark.parametrize("addr", ["8.8.8.8", "93.184.216.34", "2606:4700:4700::1111"])
    def test_public(self, addr: str) -> None:
        ip = parse_ip(addr)
        assert ip is not None
        assert is_forbidden_ip(ip) is False

    def test_parse_ip_rejects_names(self) -> None:
        assert parse_ip("example.com") is None

    def test_parse_ip_unwraps_ipv4_mapped(self) -> None:
        assert str(parse_ip("::ffff:10.0.0.1")) == "10.0.0.1"
