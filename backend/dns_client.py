"""
DNS lookups used by MX validation, on top of dnspython.

Distinguishes "the query completed and found nothing" (empty result) from
"the query could not be completed" (DnsLookupError), so callers can retry
only the latter.
"""

import logging
from dataclasses import dataclass
from typing import Any

import dns.exception
import dns.resolver

from config import Config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MxRecord:
    """A single mail exchanger: target host and preference value."""

    host: str
    priority: int


class DnsLookupError(Exception):
    """Raised when a DNS query times out or no nameserver answers."""


class DnsClient:
    """Resolves MX and A records through the platform resolver configuration."""

    def __init__(self, timeout: float | None = None, resolver: Any = None):
        """
        Initialize the DNS client.

        Args:
            timeout: Lifetime of a single query in seconds
            resolver: Pre-built dns.resolver.Resolver (for tests)
        """
        self._timeout = timeout or Config.DNS_TIMEOUT_SECONDS
        self._resolver = resolver

    def _get_resolver(self) -> Any:
        """Create the resolver on first use (reads /etc/resolv.conf)."""
        if self._resolver is None:
            resolver = dns.resolver.Resolver()
            resolver.timeout = self._timeout
            resolver.lifetime = self._timeout
            self._resolver = resolver
        return self._resolver

    def lookup_mx(self, domain: str) -> list[MxRecord]:
        """
        Query MX records for a domain.

        Args:
            domain: Normalized domain name

        Returns:
            Records in the order the resolver returned them; empty when the
            domain does not exist or has no MX records

        Raises:
            DnsLookupError: If the query could not be completed
        """
        try:
            answers = self._get_resolver().resolve(domain, "MX")
        except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
            return []
        except dns.exception.DNSException as e:
            raise DnsLookupError(f"MX query for '{domain}' failed: {e}") from e

        return [
            MxRecord(
                host=record.exchange.to_text(omit_final_dot=True),
                priority=int(record.preference),
            )
            for record in answers
        ]

    def has_address_record(self, host: str) -> bool:
        """
        Check whether a host resolves to at least one A record.

        Any DNS failure counts as "no address record".
        """
        try:
            answers = self._get_resolver().resolve(host, "A")
        except dns.exception.DNSException as e:
            logger.debug(f"A record lookup failed for {host}: {e}")
            return False
        return len(answers) > 0
