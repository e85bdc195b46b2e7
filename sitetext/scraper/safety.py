"""URL validation and SSRF safety gate.

Two layers:

* :meth:`SafetyGate.check` is purely syntactic/pattern based: scheme, host
  shape, a static host blocklist and IP-literal classification.  It never
  touches the network.
* :meth:`SafetyGate.check_resolved` additionally resolves the host name and
  rejects it if *any* resolved address is non-public.  Fetchers call it before
  every connection, including each redirect hop, so a public-looking name that
  points at ``10.0.0.0/8`` or the cloud metadata service is still refused.

Verdicts are never cached across calls; DNS answers may change between them.
"""

from __future__ import annotations

import ipaddress
import logging
import re
import socket
from typing import Callable, Dict, Iterable, List, Optional, Union
from urllib.parse import urlsplit

from sitetext.config import DEFAULT_BLOCKED_HOSTS, ScraperConfig
from sitetext.scraper.errors import BlockedURLError, InvalidURLError, NetworkError, ScrapeError
from sitetext.scraper.models import SafetyVerdict

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = ("http", "https")

_IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
_Resolver = Callable[..., list]

_LABEL_RE = re.compile(r"^(?!-)[a-z0-9-]{1,63}(?<!-)$")
_TLD_RE = re.compile(r"^(?:[a-z]{2,63}|xn--[a-z0-9-]{1,59})$")


def parse_ip(host: str) -> Optional[_IPAddress]:
    """Return *host* as an IP address object, or ``None`` if it is a name."""
    try:
        ip = ipaddress.ip_address(host.split("%", 1)[0])
    except ValueError:
        return None
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        return ip.ipv4_mapped
    return ip


def is_forbidden_ip(ip: _IPAddress) -> bool:
    """``True`` for loopback, RFC1918, link-local, ULA, reserved and similar."""
    return (
        not ip.is_global
        or ip.is_multicast
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_unspecified
        or ip.is_reserved
    )


def _is_valid_hostname(host: str) -> bool:
    if len(host) > 253:
        return False
    labels = host.rstrip(".").split(".")
    if len(labels) < 2:
        return False
    if not all(_LABEL_RE.match(label) for label in labels):
        return False
    return bool(_TLD_RE.match(labels[-1]))


class SafetyGate:
    """Decides whether a URL may be fetched."""

    def __init__(
        self,
        blocked_hosts: Iterable[str] = DEFAULT_BLOCKED_HOSTS,
        resolve_dns: bool = True,
        resolver: Optional[_Resolver] = None,
    ) -> None:
        self.blocked_hosts = frozenset(h.lower() for h in blocked_hosts)
        self.resolve_dns = resolve_dns
        self._resolver = resolver or socket.getaddrinfo

    @classmethod
    def from_config(cls, config: ScraperConfig) -> "SafetyGate":
        return cls(blocked_hosts=config.blocked_hosts, resolve_dns=config.resolve_dns)

    # ------------------------------------------------------------------
    # Pattern checks
    # ------------------------------------------------------------------

    def check(self, url: object) -> str:
        """Validate *url* without any network access.

        Returns:
            The normalised (lower-case, IDNA-encoded) host name.

        Raises:
            InvalidURLError: Malformed input, bad scheme, bad host or port.
            BlockedURLError: Host is on the blocklist or a non-public IP.
        """
        if not isinstance(url, str) or not url.strip():
            raise InvalidURLError("Invalid URL format: URL must be a non-empty string")
        if url != url.strip() or any(ch.isspace() for ch in url):
            raise InvalidURLError("Invalid URL format: URL contains whitespace")

        try:
            parts = urlsplit(url)
            port = parts.port
        except ValueError as exc:
            raise InvalidURLError(f"Invalid URL format: {exc}") from exc

        scheme = parts.scheme.lower()
        if not scheme or url.startswith("//"):
            raise InvalidURLError("Invalid URL format: an explicit http(s) scheme is required")
        if scheme not in ALLOWED_SCHEMES:
            raise InvalidURLError(f"Invalid URL format: protocol {scheme!r} is not allowed")
        if port == 0:
            raise InvalidURLError("Invalid URL format: port 0")

        host = (parts.hostname or "").lower()
        if not host:
            raise InvalidURLError("Invalid URL format: missing host")

        if host in self.blocked_hosts:
            logger.warning("Blocked hostname: %s", host)
            raise BlockedURLError(f"URL is not allowed (security restriction): {host}")

        ip = parse_ip(host)
        if ip is not None:
            if is_forbidden_ip(ip):
                logger.warning("Blocked private address: %s", host)
                raise BlockedURLError(f"URL is not allowed (security restriction): {host}")
            return host

        try:
            ascii_host = host.encode("idna").decode("ascii")
        except UnicodeError as exc:
            raise InvalidURLError(f"Invalid URL format: bad host name {host!r}") from exc
        if not _is_valid_hostname(ascii_host):
            raise InvalidURLError(f"Invalid URL format: bad host name {host!r}")
        if ascii_host.rstrip(".") in self.blocked_hosts:
            logger.warning("Blocked hostname: %s", ascii_host)
            raise BlockedURLError(f"URL is not allowed (security restriction): {ascii_host}")
        return ascii_host

    def validate(self, url: object) -> SafetyVerdict:
        """Non-raising form of :meth:`check`."""
        try:
            self.check(url)
        except ScrapeError as exc:
            return SafetyVerdict(allowed=False, reason=str(exc))
        return SafetyVerdict(allowed=True, reason="ok")

    # ------------------------------------------------------------------
    # DNS-aware checks
    # ------------------------------------------------------------------

    def resolve(self, host: str, port: int) -> List[_IPAddress]:
        try:
            infos = self._resolver(host, port, type=socket.SOCK_STREAM)
        except (socket.gaierror, UnicodeError) as exc:
            raise NetworkError(f"DNS resolution failed for {host}: {exc}") from exc
        addresses = []
        for info in infos:
            ip = parse_ip(str(info[4][0]))
            if ip is not None and ip not in addresses:
                addresses.append(ip)
        if not addresses:
            raise NetworkError(f"DNS resolution failed for {host}: no addresses")
        return addresses

    def check_resolved(self, url: str, cache: Optional[Dict[str, bool]] = None) -> None:
        """Run :meth:`check`, then verify every resolved address is public.

        Args:
            url: URL about to be connected to.
            cache: Optional per-call memo of host → allowed, so a single
                browser page does not resolve the same host for every
                subresource.  Never share it between scrapes.
        """
        host = self.check(url)
        if not self.resolve_dns or parse_ip(host) is not None:
            return
        if cache is not None and host in cache:
            if not cache[host]:
                raise BlockedURLError(f"URL is not allowed (security restriction): {host}")
            return

        parts = urlsplit(url)
        port = parts.port or (443 if parts.scheme.lower() == "https" else 80)
        addresses = self.resolve(host, port)
        bad = [ip for ip in addresses if is_forbidden_ip(ip)]
        if cache is not None:
            cache[host] = not bad
        if bad:
            logger.warning("Blocked %s: resolves to non-public address %s", host, bad[0])
            raise BlockedURLError(
                f"URL is not allowed (security restriction): {host} resolves to {bad[0]}"
            )
