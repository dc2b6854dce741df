"""
Redis Cluster backed key-value cache with per-instance key prefixes.

The cache is an optimization, never a correctness dependency: every
operation degrades to a miss (None / False / -2) when the cluster cannot be
reached, and the fault is logged instead of raised.
"""

import json
import logging
import time
from collections.abc import Callable
from typing import Any

from redis.cluster import ClusterNode, RedisCluster
from redis.exceptions import RedisClusterException, RedisError

from config import Config

logger = logging.getLogger(__name__)

DEFAULT_REDIS_PORT = 6379

# Faults raised by redis-py for an unreachable or misbehaving cluster
CACHE_BACKEND_ERRORS = (RedisError, RedisClusterException, OSError)

# TTL sentinels, same meaning as the Redis TTL command
TTL_NO_EXPIRY = -1
TTL_MISSING = -2


def parse_node_address(address: str) -> tuple[str, int]:
    """
    Split a "host:port" node address.

    Args:
        address: Node address, port optional (defaults to 6379)

    Returns:
        Tuple of (host, port)

    Raises:
        ValueError: If the port is not an integer
    """
    host, sep, port = address.strip().rpartition(":")
    if not sep:
        return address.strip(), DEFAULT_REDIS_PORT
    return host, int(port)


class RedisCacheAdapter:
    """
    Prefixed cache over a Redis Cluster with JSON serialization.

    The cluster connection is opened lazily on first use. If opening it
    fails, the adapter marks itself unavailable and answers with misses
    until reconnect_interval seconds have passed, then tries again.
    """

    def __init__(
        self,
        key_prefix: str,
        client: Any = None,
        nodes: list[str] | None = None,
        connect_timeout: float | None = None,
        read_timeout: float | None = None,
        reconnect_interval: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache adapter.

        Args:
            key_prefix: Namespace prepended to every key (e.g. "tld_cache:")
            client: Pre-built cluster client (for DI and tests)
            nodes: Cluster node addresses. If None, read from config.
            connect_timeout: Socket connect timeout in seconds
            read_timeout: Socket read timeout in seconds
            reconnect_interval: Pause after a failed connect before the next attempt
            clock: Monotonic clock (injectable for tests)
        """
        self.key_prefix = key_prefix
        self._client = client
        self._nodes = nodes if nodes is not None else Config.get_cluster_nodes()
        self._connect_timeout = connect_timeout or Config.REDIS_TIMEOUT
        self._read_timeout = read_timeout or Config.REDIS_READ_TIMEOUT
        if reconnect_interval is None:
            reconnect_interval = Config.REDIS_RECONNECT_INTERVAL_SECONDS
        self._reconnect_interval = reconnect_interval
        self._clock = clock
        self._connect_failed_at: float | None = None

    @property
    def is_available(self) -> bool:
        """False while the last attempt to open the cluster connection has failed."""
        return self._connect_failed_at is None

    def full_key(self, key: str) -> str:
        """Get the namespaced Redis key."""
        return f"{self.key_prefix}{key}"

    def _get_client(self) -> Any:
        """Return the cluster client, connecting on first use."""
        if self._client is not None:
            return self._client
        if (
            self._connect_failed_at is not None
            and self._clock() - self._connect_failed_at < self._reconnect_interval
        ):
            return None

        try:
            startup_nodes = [ClusterNode(*parse_node_address(node)) for node in self._nodes]
            self._client = RedisCluster(
                startup_nodes=startup_nodes,
                decode_responses=True,
                socket_connect_timeout=self._connect_timeout,
                socket_timeout=self._read_timeout,
            )
        except (*CACHE_BACKEND_ERRORS, ValueError) as e:
            self._connect_failed_at = self._clock()
            self._log_fault("CONNECT", self.key_prefix, e)
            return None
        self._connect_failed_at = None
        return self._client

    def _log_fault(self, operation: str, key: str, error: Exception) -> None:
        """Log a backend fault unless running under tests."""
        if Config.TESTING:
            return
        logger.warning(f"Redis cache {operation} error for key '{key}': {error}")

    def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        """
        Store a JSON-serializable value with a TTL.

        Returns:
            True if the value was stored, False on any fault
        """
        client = self._get_client()
        if client is None:
            return False
        try:
            payload = json.dumps(value)
            return bool(client.setex(self.full_key(key), ttl_seconds, payload))
        except (*CACHE_BACKEND_ERRORS, TypeError, ValueError) as e:
            self._log_fault("SET", key, e)
            return False

    def get(self, key: str) -> Any | None:
        """
        Fetch a value.

        Returns:
            The decoded value, or None on a miss or any fault
        """
        client = self._get_client()
        if client is None:
            return None
        try:
            raw = client.get(self.full_key(key))
            if raw is None:
                return None
            return json.loads(raw)
        except (*CACHE_BACKEND_ERRORS, ValueError) as e:
            self._log_fault("GET", key, e)
            return None

    def exists(self, key: str) -> bool:
        """Check whether a key is present."""
        client = self._get_client()
        if client is None:
            return False
        try:
            return client.exists(self.full_key(key)) > 0
        except CACHE_BACKEND_ERRORS as e:
            self._log_fault("EXISTS", key, e)
            return False

    def get_ttl(self, key: str) -> int:
        """
        Get remaining time-to-live of a key.

        Returns:
            Seconds remaining, -1 if the key has no expiry, -2 if it is
            missing or the cluster is unreachable
        """
        client = self._get_client()
        if client is None:
            return TTL_MISSING
        try:
            return int(client.ttl(self.full_key(key)))
        except CACHE_BACKEND_ERRORS as e:
            self._log_fault("TTL", key, e)
            return TTL_MISSING

    def delete(self, key: str) -> bool:
        """
        Delete a key.

        Returns:
            True if a key was removed
        """
        client = self._get_client()
        if client is None:
            return False
        try:
            return client.delete(self.full_key(key)) > 0
        except CACHE_BACKEND_ERRORS as e:
            self._log_fault("DELETE", key, e)
            return False
