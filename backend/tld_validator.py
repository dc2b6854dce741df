"""
Top-level domain validation against the IANA root zone list.

The list of valid TLDs is loaded once per validator through a three-tier
chain:
1. Redis Cluster cache (shared by all instances, 24h TTL)
2. Live fetch from the IANA authority, stored back into the cache
3. Embedded fallback list (degraded mode)
"""

import logging
import time
from enum import Enum
from pathlib import Path
from typing import Any

import requests

from config import Config
from redis_cache import RedisCacheAdapter
from validation_result import ValidationResult

logger = logging.getLogger(__name__)

# Cache keys (under the tld_cache: prefix)
TLD_LIST_KEY = "tlds_list"
TLD_METADATA_KEY = "tlds_metadata"
CACHE_FORMAT_VERSION = "3.0"

# Fewer entries than this means a truncated or garbled authority response
MIN_AUTHORITY_TLD_COUNT = 100

FALLBACK_TLDS_FILE = Path(__file__).parent / "data" / "fallback_tlds.txt"


class TldSource(str, Enum):
    """Where the in-memory TLD list came from."""

    CACHE = "cache"
    AUTHORITY = "authority"
    FALLBACK = "fallback"


def parse_tld_list(text: str) -> list[str]:
    """
    Parse a line-oriented TLD list.

    Blank lines and "#" comments are skipped, entries are uppercased.
    """
    tlds = []
    for line in text.splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            tlds.append(line.upper())
    return tlds


def load_fallback_tlds(path: Path = FALLBACK_TLDS_FILE) -> frozenset[str]:
    """Load the embedded fallback list into a frozenset for O(1) lookup."""
    with open(path, encoding="utf-8") as f:
        return frozenset(parse_tld_list(f.read()))


# Loaded once at module import
FALLBACK_TLDS = load_fallback_tlds()


def format_ttl(ttl_seconds: int) -> str:
    """Render a TTL as HH:MM:SS, or "expired" when not positive."""
    if ttl_seconds <= 0:
        return "expired"
    hours, remainder = divmod(ttl_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


class TldValidator:
    """
    Validates the TLD of an email domain against the official IANA list.

    Instances hold only their in-memory working copy of the list; all
    persistent state lives in the distributed cache, so validators can be
    recreated per request.
    """

    def __init__(
        self,
        cache: RedisCacheAdapter | None = None,
        http_session: Any = None,
        source_url: str | None = None,
        fetch_timeout: float | None = None,
        cache_ttl: int | None = None,
        fallback_tlds: frozenset[str] | None = None,
    ):
        """
        Initialize the validator and load the TLD list.

        Args:
            cache: Cache adapter (defaults to one under the tld_cache: prefix)
            http_session: Object with a requests-compatible get() (for tests)
            source_url: Authority URL serving the TLD list
            fetch_timeout: Authority fetch timeout in seconds
            cache_ttl: Lifetime of the cached list in seconds
            fallback_tlds: Static list used when cache and authority fail
        """
        self._cache = cache if cache is not None else RedisCacheAdapter(Config.TLD_CACHE_PREFIX)
        self._http = http_session if http_session is not None else requests.Session()
        self._source_url = source_url or Config.TLD_SOURCE_URL
        self._fetch_timeout = fetch_timeout or Config.TLD_FETCH_TIMEOUT_SECONDS
        self._cache_ttl = cache_ttl or Config.TLD_CACHE_TTL_SECONDS
        self._fallback_tlds = fallback_tlds if fallback_tlds is not None else FALLBACK_TLDS

        self._tlds: frozenset[str] = frozenset()
        self.source: TldSource = TldSource.FALLBACK
        self.loaded_at: float = 0.0

        self._load_valid_tlds()

    @property
    def tlds(self) -> frozenset[str]:
        """Current in-memory TLD list."""
        return self._tlds

    @property
    def tld_count(self) -> int:
        return len(self._tlds)

    def validate(self, email: str) -> ValidationResult:
        """Validate the TLD of a full email address."""
        if not email.strip():
            return ValidationResult.invalid_tld(email, "Email address cannot be empty")

        if email.count("@") != 1:
            return ValidationResult.invalid_tld(email, "Email must contain exactly one @ symbol")

        _, domain_part = email.split("@", 1)
        return self.validate_domain(domain_part, email)

    def validate_domain(self, domain: str, full_email: str) -> ValidationResult:
        """
        Validate the TLD of an already-extracted domain.

        A domain without a dot is treated as its own TLD and fails the
        membership test.

        Args:
            domain: Domain part (e.g. "example.com")
            full_email: Full address for the result

        Returns:
            ValidationResult with status valid or invalid_tld
        """
        if not domain.strip():
            return ValidationResult.invalid_tld(
                full_email, "Domain part of the email cannot be empty"
            )

        tld = self.extract_tld(domain)
        if not tld:
            return ValidationResult.invalid_tld(
                full_email,
                "Cannot determine the TLD of the domain. The domain must not end with a dot",
            )

        if not self.is_tld_valid(tld):
            return ValidationResult.invalid_tld(
                full_email,
                f"TLD '{tld}' is not in the list of official IANA top-level domains. "
                f"It may be a typo or a non-existent top-level domain",
            )

        return ValidationResult.valid(full_email)

    @staticmethod
    def extract_tld(domain: str) -> str:
        """Return the last dot-delimited label, uppercased."""
        return domain.strip().split(".")[-1].upper()

    def is_tld_valid(self, tld: str) -> bool:
        """Case-insensitive membership test."""
        return tld.upper() in self._tlds

    def force_refresh_cache(self) -> bool:
        """
        Re-fetch the list from the authority and store it in the cache.

        On failure the current in-memory list is kept.

        Returns:
            True if a fresh list was fetched and adopted
        """
        tlds = self._fetch_from_authority()
        if tlds is None:
            return False

        self._adopt(tlds, TldSource.AUTHORITY)
        self._save_to_cache()
        return True

    def clear_cache(self) -> bool:
        """
        Delete the cached list and its metadata.

        Returns:
            True if either key existed and was removed
        """
        list_deleted = self._cache.delete(TLD_LIST_KEY)
        metadata_deleted = self._cache.delete(TLD_METADATA_KEY)

        if list_deleted or metadata_deleted:
            logger.info("TLD cache cleared")
            return True
        return False

    def get_cache_info(self) -> dict[str, Any]:
        """
        Describe the state of the cached TLD list.

        Returns:
            Dict with status, ttl_seconds, ttl_human, metadata, count, source
        """
        cache_exists = self._cache.exists(TLD_LIST_KEY)
        ttl = self._cache.get_ttl(TLD_LIST_KEY)
        metadata = self._cache.get(TLD_METADATA_KEY)

        if not self._cache.is_available:
            status = "cache_unavailable"
        elif cache_exists:
            status = "cached"
        else:
            status = "not_cached"

        return {
            "status": status,
            "ttl_seconds": ttl,
            "ttl_human": format_ttl(ttl),
            "metadata": metadata if isinstance(metadata, dict) else None,
            "count": self.tld_count,
            "source": self.source.value,
        }

    def _load_valid_tlds(self) -> None:
        """Run the cache -> authority -> fallback loading chain."""
        if self._load_from_cache():
            return

        tlds = self._fetch_from_authority()
        if tlds is not None:
            self._adopt(tlds, TldSource.AUTHORITY)
            self._save_to_cache()
            return

        self._load_fallback()

    def _adopt(
        self,
        tlds: list[str] | frozenset[str],
        source: TldSource,
        loaded_at: float | None = None,
    ) -> None:
        self._tlds = frozenset(tlds)
        self.source = source
        self.loaded_at = loaded_at if loaded_at is not None else time.time()

    def _load_from_cache(self) -> bool:
        """
        Adopt the cached list if present and non-empty.

        Returns:
            True if the cached list was adopted
        """
        cached_tlds = self._cache.get(TLD_LIST_KEY)
        if not isinstance(cached_tlds, list) or not cached_tlds:
            return False

        metadata = self._cache.get(TLD_METADATA_KEY)
        loaded_at = None
        if isinstance(metadata, dict):
            loaded_at = metadata.get("loaded_at")

        self._adopt(
            [str(tld).upper() for tld in cached_tlds],
            TldSource.CACHE,
            float(loaded_at) if isinstance(loaded_at, (int, float)) else None,
        )
        logger.info(
            f"TLD list loaded from cache: {self.tld_count} TLDs",
            extra={"tld_source": self.source.value, "tld_count": self.tld_count},
        )
        return True

    def _fetch_from_authority(self) -> list[str] | None:
        """
        Download and parse the IANA list.

        Returns:
            List of uppercase TLDs, or None on failure or a truncated list
        """
        start_time = time.monotonic()
        try:
            response = self._http.get(
                self._source_url,
                timeout=self._fetch_timeout,
                headers={
                    "User-Agent": Config.TLD_USER_AGENT,
                    "Accept": "text/plain",
                    "Cache-Control": "no-cache",
                },
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning(f"Failed to fetch TLD list from {self._source_url}: {e}")
            return None

        tlds = parse_tld_list(response.text)
        if len(tlds) < MIN_AUTHORITY_TLD_COUNT:
            logger.warning(f"IANA TLD list seems incomplete: only {len(tlds)} TLDs found")
            return None

        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        logger.info(
            f"TLD list loaded from IANA: {len(tlds)} TLDs",
            extra={
                "tld_source": TldSource.AUTHORITY.value,
                "tld_count": len(tlds),
                "elapsed_ms": elapsed_ms,
            },
        )
        return tlds

    def _save_to_cache(self) -> None:
        """Store the current list and its metadata with the configured TTL."""
        if not self._tlds:
            return

        stored = self._cache.set(TLD_LIST_KEY, sorted(self._tlds), self._cache_ttl)
        if not stored:
            return

        metadata = {
            "loaded_at": int(self.loaded_at),
            "version": CACHE_FORMAT_VERSION,
            "source": self.source.value,
            "count": self.tld_count,
            "url": self._source_url,
        }
        self._cache.set(TLD_METADATA_KEY, metadata, self._cache_ttl)
        logger.info(f"TLD cache saved: {self.tld_count} TLDs")

    def _load_fallback(self) -> None:
        """Adopt the embedded list (degraded mode)."""
        self._adopt(self._fallback_tlds, TldSource.FALLBACK)
        logger.warning(
            "Using fallback TLD list - cache and IANA unavailable",
            extra={"tld_source": self.source.value, "tld_count": self.tld_count},
        )
