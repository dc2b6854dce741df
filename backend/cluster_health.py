"""
Redis Cluster health monitoring with quorum-based liveness.

Every call re-probes every configured node; nothing is cached, since a
stale health report defeats its purpose.
"""

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import redis

from config import Config
from redis_cache import parse_node_address

logger = logging.getLogger(__name__)

STATUS_CONNECTED = "connected"
STATUS_DISCONNECTED = "disconnected"


def is_pong(reply: Any) -> bool:
    """True for the affirmative PING replies a node may return."""
    return reply is True or reply == 1 or reply in ("PONG", "+PONG")


def count_connected(cluster_status: dict[str, str]) -> int:
    return sum(1 for status in cluster_status.values() if status == STATUS_CONNECTED)


class ClusterHealthMonitor:
    """
    Pings each cluster node independently and applies a quorum rule.

    Nodes are probed concurrently, each with its own connection and
    timeout, so one slow or dead node cannot delay or corrupt the verdicts
    of the others.
    """

    def __init__(
        self,
        nodes: list[str] | None = None,
        quorum: int | None = None,
        ping_timeout: float | None = None,
        connect_timeout: float | None = None,
        client_factory: Callable[[str, int], Any] | None = None,
    ):
        """
        Initialize the health monitor.

        Args:
            nodes: Node addresses ("host:port"). If None, read from config.
            quorum: Connected nodes required for a healthy cluster
            ping_timeout: Read timeout of a single probe in seconds
            connect_timeout: Connect timeout of a single probe in seconds
            client_factory: Builds a client for (host, port) (for tests)
        """
        self._nodes = list(nodes) if nodes is not None else Config.get_cluster_nodes()
        self._quorum = quorum if quorum is not None else Config.REDIS_QUORUM
        self._ping_timeout = ping_timeout or Config.REDIS_PING_TIMEOUT
        self._connect_timeout = connect_timeout or Config.REDIS_TIMEOUT
        self._client_factory = client_factory or self._create_client

    @property
    def nodes(self) -> list[str]:
        return list(self._nodes)

    def _create_client(self, host: str, port: int) -> redis.Redis:
        return redis.Redis(
            host=host,
            port=port,
            socket_connect_timeout=min(self._connect_timeout, self._ping_timeout),
            socket_timeout=self._ping_timeout,
        )

    def _probe(self, node: str) -> str:
        """Ping one node and map the outcome to a status string."""
        client = None
        try:
            host, port = parse_node_address(node)
            client = self._client_factory(host, port)
            reply = client.ping()
        except Exception as e:
            logger.warning(f"Health probe failed for {node}: {e}", extra={"node": node})
            return f"error: {e}"
        finally:
            if client is not None:
                client.close()

        return STATUS_CONNECTED if is_pong(reply) else STATUS_DISCONNECTED

    def get_cluster_status(self) -> dict[str, str]:
        """
        Probe every node.

        Returns:
            Mapping of node address to "connected", "disconnected" or
            "error: <message>", in configuration order
        """
        if not self._nodes:
            return {}

        with ThreadPoolExecutor(
            max_workers=len(self._nodes), thread_name_prefix="redis-health"
        ) as executor:
            outcomes = list(executor.map(self._probe, self._nodes))

        return dict(zip(self._nodes, outcomes))

    def is_connected(self) -> bool:
        """True if at least the quorum of nodes answered the probe."""
        return count_connected(self.get_cluster_status()) >= self._quorum

    def get_required_quorum(self) -> int:
        return self._quorum

    def get_summary(self) -> dict[str, Any]:
        """
        Run one probe round and summarize it for status reporting.

        Returns:
            Dict with cluster_status, connected_nodes, total_nodes,
            quorum_required, quorum_met and per-node statuses
        """
        cluster_status = self.get_cluster_status()
        connected = count_connected(cluster_status)
        quorum_met = connected >= self._quorum

        return {
            "cluster_status": "healthy" if quorum_met else "unhealthy",
            "connected_nodes": connected,
            "total_nodes": len(cluster_status),
            "quorum_required": self._quorum,
            "quorum_met": quorum_met,
            "nodes": cluster_status,
        }
