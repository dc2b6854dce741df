"""
Centralized configuration for the Email Validator backend.
All environment variables are read and validated here.
"""

import os

DEFAULT_CLUSTER_NODES = ",".join(f"redis-node{i}:6379" for i in range(1, 11))


class Config:
    """Application configuration with validation."""

    # Application version (single source of truth)
    VERSION: str = "1.0.0"
    SERVICE_NAME: str = "email-validator"

    # Testing mode detection (silences cache backend fault logging)
    TESTING: bool = os.getenv("TESTING", "").lower() in ("1", "true", "yes")

    # Server
    PORT: int = int(os.getenv("PORT", "5050"))
    HOST: str = os.getenv("HOST", "0.0.0.0")
    DEBUG: bool = os.getenv("FLASK_ENV", "development") == "development"

    # CORS
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "")  # Comma-separated, empty = same-origin only

    # Administrative endpoints (empty = no key required)
    APP_API_KEY: str = os.getenv("APP_API_KEY", "")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Redis Cluster (5 masters + 5 replicas by default)
    REDIS_CLUSTER_NODES: str = os.getenv("REDIS_CLUSTER_NODES", DEFAULT_CLUSTER_NODES)
    REDIS_QUORUM: int = int(os.getenv("REDIS_QUORUM", "3"))  # 3 of 5 masters
    REDIS_TIMEOUT: float = float(os.getenv("REDIS_TIMEOUT", "5"))
    REDIS_READ_TIMEOUT: float = float(os.getenv("REDIS_READ_TIMEOUT", "5"))
    REDIS_PING_TIMEOUT: float = float(os.getenv("REDIS_PING_TIMEOUT", "2"))
    # Pause before reopening a cluster connection that failed to open
    REDIS_RECONNECT_INTERVAL_SECONDS: float = float(
        os.getenv("REDIS_RECONNECT_INTERVAL_SECONDS", "30")
    )

    # Cache key namespaces (shared with existing cache contents)
    TLD_CACHE_PREFIX: str = os.getenv("TLD_CACHE_PREFIX", "tld_cache:")
    MX_CACHE_PREFIX: str = os.getenv("MX_CACHE_PREFIX", "mx_cache:")

    # Cache lifetimes
    TLD_CACHE_TTL_SECONDS: int = int(os.getenv("TLD_CACHE_TTL_SECONDS", "86400"))
    MX_CACHE_TTL_SECONDS: int = int(os.getenv("MX_CACHE_TTL_SECONDS", "7200"))
    # A TLD list served from the embedded fallback is reloaded after this long
    TLD_FALLBACK_RETRY_SECONDS: int = int(os.getenv("TLD_FALLBACK_RETRY_SECONDS", "300"))

    # TLD authority
    TLD_SOURCE_URL: str = os.getenv(
        "TLD_SOURCE_URL", "https://data.iana.org/TLD/tlds-alpha-by-domain.txt"
    )
    TLD_FETCH_TIMEOUT_SECONDS: float = float(os.getenv("TLD_FETCH_TIMEOUT_SECONDS", "10"))
    TLD_USER_AGENT: str = f"EmailValidator/{VERSION} (TLD checker; +redis-cluster)"

    # DNS
    DNS_TIMEOUT_SECONDS: float = float(os.getenv("DNS_TIMEOUT_SECONDS", "10"))
    DNS_RETRIES: int = int(os.getenv("DNS_RETRIES", "2"))
    DNS_RETRY_BACKOFF_MS: int = int(os.getenv("DNS_RETRY_BACKOFF_MS", "500"))

    # Input limits for the HTTP layer
    MAX_TEXT_LENGTH: int = int(os.getenv("MAX_TEXT_LENGTH", "20000"))
    MAX_EMAIL_COUNT: int = int(os.getenv("MAX_EMAIL_COUNT", "1000"))

    @classmethod
    def get_cors_origins(cls) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        if not cls.CORS_ORIGINS:
            return []  # No wildcard, same-origin only
        return [origin.strip() for origin in cls.CORS_ORIGINS.split(",") if origin.strip()]

    @classmethod
    def get_cluster_nodes(cls) -> list[str]:
        """Parse REDIS_CLUSTER_NODES into an ordered list of host:port strings."""
        return [node.strip() for node in cls.REDIS_CLUSTER_NODES.split(",") if node.strip()]

    @classmethod
    def validate(cls) -> None:
        """Validate configuration values."""
        if cls.LOG_LEVEL not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"LOG_LEVEL must be valid logging level, got '{cls.LOG_LEVEL}'")

        nodes = cls.get_cluster_nodes()
        if not nodes:
            raise ValueError("REDIS_CLUSTER_NODES must list at least one node")

        if cls.REDIS_QUORUM < 1 or cls.REDIS_QUORUM > len(nodes):
            raise ValueError(
                f"REDIS_QUORUM must be between 1 and {len(nodes)}, got {cls.REDIS_QUORUM}"
            )

        for name in ("REDIS_TIMEOUT", "REDIS_READ_TIMEOUT", "REDIS_PING_TIMEOUT"):
            value = getattr(cls, name)
            if value <= 0 or value > 60:
                raise ValueError(f"{name} must be between 0 and 60 seconds, got {value}")

        if cls.REDIS_RECONNECT_INTERVAL_SECONDS < 0 or cls.REDIS_RECONNECT_INTERVAL_SECONDS > 3600:
            raise ValueError(
                f"REDIS_RECONNECT_INTERVAL_SECONDS must be between 0 and 3600, "
                f"got {cls.REDIS_RECONNECT_INTERVAL_SECONDS}"
            )

        if cls.TLD_CACHE_TTL_SECONDS < 60:
            raise ValueError(
                f"TLD_CACHE_TTL_SECONDS must be at least 60, got {cls.TLD_CACHE_TTL_SECONDS}"
            )

        if cls.TLD_FALLBACK_RETRY_SECONDS < 1:
            raise ValueError(
                f"TLD_FALLBACK_RETRY_SECONDS must be at least 1, "
                f"got {cls.TLD_FALLBACK_RETRY_SECONDS}"
            )

        if cls.MX_CACHE_TTL_SECONDS < 60:
            raise ValueError(
                f"MX_CACHE_TTL_SECONDS must be at least 60, got {cls.MX_CACHE_TTL_SECONDS}"
            )

        if cls.TLD_FETCH_TIMEOUT_SECONDS <= 0 or cls.TLD_FETCH_TIMEOUT_SECONDS > 120:
            raise ValueError(
                f"TLD_FETCH_TIMEOUT_SECONDS must be between 0 and 120, "
                f"got {cls.TLD_FETCH_TIMEOUT_SECONDS}"
            )

        if cls.DNS_TIMEOUT_SECONDS <= 0 or cls.DNS_TIMEOUT_SECONDS > 60:
            raise ValueError(
                f"DNS_TIMEOUT_SECONDS must be between 0 and 60, got {cls.DNS_TIMEOUT_SECONDS}"
            )

        if cls.DNS_RETRIES < 0 or cls.DNS_RETRIES > 5:
            raise ValueError(f"DNS_RETRIES must be between 0 and 5, got {cls.DNS_RETRIES}")

        if cls.DNS_RETRY_BACKOFF_MS < 0 or cls.DNS_RETRY_BACKOFF_MS > 10000:
            raise ValueError(
                f"DNS_RETRY_BACKOFF_MS must be between 0 and 10000, "
                f"got {cls.DNS_RETRY_BACKOFF_MS}"
            )

        if cls.MAX_EMAIL_COUNT < 1 or cls.MAX_EMAIL_COUNT > 10000:
            raise ValueError(
                f"MAX_EMAIL_COUNT must be between 1 and 10000, got {cls.MAX_EMAIL_COUNT}"
            )


# Validate on import
Config.validate()
