"""
DNS resolver adapters for MX lookups.
The real adapter wraps dnspython; the mock adapter answers deterministically
without network access. Neither caches: caching belongs to MXCache.
"""

import logging

import dns.exception
import dns.resolver

from mx_cache import MXRecord

logger = logging.getLogger(__name__)


class DNSResolver:
    """MX lookups through dnspython."""

    def __init__(self, nameservers: list[str] | None = None):
        """
        Args:
            nameservers: Optional nameserver IPs overriding the system configuration.
        """
        self.nameservers = nameservers or None

    def _make_resolver(self, timeout: float) -> dns.resolver.Resolver:
        # A fresh resolver per lookup; dnspython resolvers are not meant to be shared across threads
        resolver = dns.resolver.Resolver(configure=self.nameservers is None)
        if self.nameservers:
            resolver.nameservers = self.nameservers
        resolver.lifetime = timeout
        resolver.timeout = timeout
        return resolver

    def resolve_mx(self, domain: str, timeout: float) -> list[MXRecord]:
        """
        Resolve MX records for a domain.

        Args:
            domain: Domain to query.
            timeout: Lifetime of the whole query in seconds.

        Returns:
            Records sorted by priority; empty when the domain has no MX
            records or does not exist.

        Raises:
            dns.exception.Timeout, dns.resolver.NoNameservers and other
            dns.exception.DNSException subclasses on resolver failure.
        """
        resolver = self._make_resolver(timeout)
        try:
            answers = resolver.resolve(domain, "MX")
        except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
            logger.debug(f"No MX answer for {domain}")
            return []

        records = [
            MXRecord(exchange=str(r.exchange).rstrip("."), priority=int(r.preference))
            for r in answers
        ]
        # Null MX (RFC 7505) is an explicit "no mail accepted"
        records = [r for r in records if r.exchange]
        return sorted(records, key=lambda r: r.priority)

    __call__ = resolve_mx


class MockResolver:
    """
    Deterministic resolver for testing and mock mode.
    No network calls - uses simple rules for predictable results.
    """

    RESOLVABLE_DOMAINS = {
        "example.com",
        "example.org",
        "test.com",
        "gmail.com",
        "yahoo.com",
        "outlook.com",
        "hotmail.com",
        "icloud.com",
    }

    def resolve_mx(self, domain: str, timeout: float) -> list[MXRecord]:
        domain = domain.lower().rstrip(".")

        if domain.startswith("timeout."):
            raise dns.exception.Timeout(timeout=timeout)
        if domain.startswith("servfail."):
            raise dns.resolver.NoNameservers()

        if (
            domain in self.RESOLVABLE_DOMAINS
            or domain.endswith(".edu")
            or domain.endswith(".gov")
        ):
            return [
                MXRecord(exchange=f"mx1.{domain}", priority=10),
                MXRecord(exchange=f"mx2.{domain}", priority=20),
            ]

        # All other domains have no mail exchanger in mock mode
        return []

    __call__ = resolve_mx
