"""
MX (mail exchanger) validation with retries and a domain-level cache.

MX resolution is the most expensive stage of the pipeline, so verdicts are
cached per normalized domain (not per address) in the Redis Cluster, both
positive and negative, for MX_CACHE_TTL_SECONDS.
"""

import logging
import re
import time
from collections.abc import Callable

from config import Config
from dns_client import DnsClient, DnsLookupError, MxRecord
from redis_cache import RedisCacheAdapter
from validation_result import ValidationResult, ValidationStatus

logger = logging.getLogger(__name__)

# MX records with a higher preference value are ignored
MAX_MX_PRIORITY = 65535

# RFC 7505 "null MX" target: the domain accepts no mail
NULL_MX_HOST = "."

MAX_DOMAIN_LENGTH = 253
MAX_LABEL_LENGTH = 63
DOMAIN_CHARS_PATTERN = re.compile(r"^[a-z0-9.-]+$", re.IGNORECASE)


def normalize_domain(domain: str) -> str:
    """Trim and lowercase a domain for lookups and cache keys."""
    return domain.strip().lower()


def is_valid_domain_format(domain: str) -> bool:
    """
    Cheap structural pre-check run before any DNS round-trip.

    Allows letters, digits, dots and hyphens. Doubled hyphens are rejected,
    and every label must hold 1 to 63 characters and may not start or end
    with a hyphen.
    """
    if len(domain) > MAX_DOMAIN_LENGTH:
        return False
    if not DOMAIN_CHARS_PATTERN.match(domain):
        return False
    if "--" in domain:
        return False
    for label in domain.split("."):
        if not label or len(label) > MAX_LABEL_LENGTH:
            return False
        if label[0] == "-" or label[-1] == "-":
            return False
    return True


def filter_mx_records(records: list[MxRecord]) -> list[MxRecord]:
    """Drop records with out-of-range priority, empty hosts or null MX targets."""
    usable = []
    for record in records:
        if record.priority > MAX_MX_PRIORITY:
            continue
        host = record.host.strip()
        if not host or host == NULL_MX_HOST:
            continue
        usable.append(record)
    return usable


def select_best_mx(records: list[MxRecord]) -> MxRecord:
    """Lowest priority value wins; ties keep discovery order."""
    return min(records, key=lambda record: record.priority)


class MxValidator:
    """Validates that an email domain can plausibly receive mail."""

    def __init__(
        self,
        cache: RedisCacheAdapter | None = None,
        dns_client: DnsClient | None = None,
        cache_ttl: int | None = None,
        max_retries: int | None = None,
        retry_backoff_seconds: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the MX validator.

        Args:
            cache: Cache adapter (defaults to one under the mx_cache: prefix)
            dns_client: DNS lookup client (injectable for tests)
            cache_ttl: Lifetime of a cached verdict in seconds
            max_retries: Retries after the first MX query attempt
            retry_backoff_seconds: Fixed pause between attempts
            sleep: Sleep function (injectable for tests)
        """
        self._cache = cache if cache is not None else RedisCacheAdapter(Config.MX_CACHE_PREFIX)
        self._dns = dns_client if dns_client is not None else DnsClient()
        self._cache_ttl = cache_ttl or Config.MX_CACHE_TTL_SECONDS
        self._max_retries = max_retries if max_retries is not None else Config.DNS_RETRIES
        if retry_backoff_seconds is None:
            retry_backoff_seconds = Config.DNS_RETRY_BACKOFF_MS / 1000.0
        self._retry_backoff = retry_backoff_seconds
        self._sleep = sleep

    def validate(self, email: str) -> ValidationResult:
        """Validate the mail domain of a full email address."""
        if not email.strip():
            return ValidationResult.invalid_mx(email, "Email address cannot be empty")

        if email.count("@") != 1:
            return ValidationResult.invalid_mx(email, "Email must contain exactly one @ symbol")

        _, domain_part = email.split("@", 1)
        return self.validate_domain(domain_part, email)

    def validate_domain(self, domain: str, full_email: str) -> ValidationResult:
        """
        Validate that a domain has a usable mail exchanger.

        Args:
            domain: Domain part (e.g. "example.com")
            full_email: Full address for the result

        Returns:
            ValidationResult with status valid or invalid_mx
        """
        if not domain.strip():
            return ValidationResult.invalid_mx(
                full_email, "Domain part of the email cannot be empty"
            )

        domain = normalize_domain(domain)

        cached = self._get_cached_result(domain, full_email)
        if cached is not None:
            return cached

        start_time = time.monotonic()
        result = self._perform_full_validation(domain, full_email)
        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        logger.debug(
            f"MX validation for {domain}: {result.status.value}",
            extra={"domain": domain, "elapsed_ms": elapsed_ms},
        )

        self._cache_result(domain, result)
        return result

    def _get_cached_result(self, domain: str, full_email: str) -> ValidationResult | None:
        """Return the cached verdict re-labelled with the current address."""
        cache_data = self._cache.get(domain)
        if not isinstance(cache_data, dict):
            return None
        if "status" not in cache_data or "reason" not in cache_data:
            return None

        try:
            status = ValidationStatus(cache_data["status"])
        except ValueError:
            return None

        return ValidationResult(full_email, status, cache_data["reason"])

    def _cache_result(self, domain: str, result: ValidationResult) -> None:
        """Store a complete verdict, independent of the triggering address."""
        cache_data = {
            "status": result.status.value,
            "reason": result.reason,
            "cached_at": int(time.time()),
        }
        self._cache.set(domain, cache_data, self._cache_ttl)

    def _perform_full_validation(self, domain: str, full_email: str) -> ValidationResult:
        if not is_valid_domain_format(domain):
            return ValidationResult.invalid_mx(
                full_email,
                "Invalid domain format. The domain may only contain letters, digits, "
                "dots and hyphens",
            )

        mx_records = self.lookup_mx_with_retry(domain)

        if mx_records is None:
            return ValidationResult.invalid_mx(
                full_email,
                f"Could not complete the DNS query for domain '{domain}'. "
                f"The DNS server is unreachable or the query timed out",
            )

        if not mx_records:
            return self._check_address_record_fallback(domain, full_email)

        return self._analyze_mx_records(domain, mx_records, full_email)

    def lookup_mx_with_retry(self, domain: str) -> list[MxRecord] | None:
        """
        Query MX records, retrying when the query cannot be completed.

        Returns:
            MX records (possibly empty), or None if every attempt failed
        """
        attempts = self._max_retries + 1
        for attempt in range(attempts):
            try:
                return self._dns.lookup_mx(domain)
            except DnsLookupError as e:
                logger.debug(
                    f"MX lookup attempt {attempt + 1}/{attempts} failed: {e}",
                    extra={"domain": domain},
                )
                if attempt < self._max_retries:
                    self._sleep(self._retry_backoff)

        logger.warning(
            f"DNS unreachable for {domain} after {attempts} attempts",
            extra={"domain": domain},
        )
        return None

    def _check_address_record_fallback(self, domain: str, full_email: str) -> ValidationResult:
        """With no MX records, RFC 5321 allows delivery to the domain's A record."""
        if self._dns.has_address_record(domain):
            return ValidationResult.valid(
                full_email,
                "No MX records found, but an A record exists (RFC 5321 fallback)",
            )

        return ValidationResult.invalid_mx(
            full_email,
            f"Domain '{domain}' has no MX records and no A record. "
            f"Mail cannot be delivered to this domain",
        )

    def _analyze_mx_records(
        self, domain: str, mx_records: list[MxRecord], full_email: str
    ) -> ValidationResult:
        usable = filter_mx_records(mx_records)
        if not usable:
            return ValidationResult.invalid_mx(
                full_email,
                f"Domain '{domain}' has MX records, but all of them are invalid or blocked",
            )

        best = select_best_mx(usable)
        if not self._dns.has_address_record(best.host):
            return ValidationResult.invalid_mx(
                full_email,
                f"MX server '{best.host}' for domain '{domain}' has no A record",
            )

        return ValidationResult.valid(full_email)
