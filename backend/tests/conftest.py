"""
Pytest configuration and fixtures for Email Validator tests.
"""

import json
import os
import sys
from unittest.mock import MagicMock

import pytest
import requests

# Add parent directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# Enable testing mode to silence cache fault logging - must be set before importing config
os.environ["TESTING"] = "1"

# Admin endpoints open unless a test patches the key
os.environ["APP_API_KEY"] = ""

import app as app_module  # noqa: E402
from cluster_health import ClusterHealthMonitor  # noqa: E402
from composite_validator import CompositeEmailValidator  # noqa: E402
from dns_client import DnsLookupError, MxRecord  # noqa: E402
from mx_validator import MxValidator  # noqa: E402
from redis_cache import RedisCacheAdapter  # noqa: E402
from syntax_validator import SyntaxValidator  # noqa: E402
from tld_validator import TldValidator  # noqa: E402
from verification_service import EmailVerificationService  # noqa: E402

CACHED_TLDS = ["COM", "NET", "ORG", "IO", "DE"]
CLUSTER_NODES = [f"redis-node{i}:6379" for i in range(1, 6)]


class FakeClusterClient:
    """In-memory stand-in for RedisCluster (decode_responses=True semantics)."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    def setex(self, key: str, ttl: int, value: str) -> bool:
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    def get(self, key: str) -> str | None:
        return self.store.get(key)

    def exists(self, key: str) -> int:
        return int(key in self.store)

    def ttl(self, key: str) -> int:
        if key not in self.store:
            return -2
        return self.ttls.get(key, -1)

    def delete(self, key: str) -> int:
        if key not in self.store:
            return 0
        del self.store[key]
        self.ttls.pop(key, None)
        return 1


class FakeDnsClient:
    """
    Scripted DNS client.

    mx maps domain -> list of MxRecord; a_hosts holds names with an A record;
    fail_times makes that many lookup_mx calls raise DnsLookupError first.
    """

    def __init__(self) -> None:
        self.mx: dict = {}
        self.a_hosts: set[str] = set()
        self.fail_times = 0
        self.mx_calls: list[str] = []
        self.a_calls: list[str] = []

    def lookup_mx(self, domain: str) -> list:
        self.mx_calls.append(domain)
        if self.fail_times > 0:
            self.fail_times -= 1
            raise DnsLookupError(f"MX query for '{domain}' failed: timed out")
        return list(self.mx.get(domain, []))

    def has_address_record(self, host: str) -> bool:
        self.a_calls.append(host)
        return host in self.a_hosts


@pytest.fixture
def fake_cluster() -> FakeClusterClient:
    return FakeClusterClient()


@pytest.fixture
def tld_cache(fake_cluster) -> RedisCacheAdapter:
    return RedisCacheAdapter("tld_cache:", client=fake_cluster)


@pytest.fixture
def mx_cache(fake_cluster) -> RedisCacheAdapter:
    return RedisCacheAdapter("mx_cache:", client=fake_cluster)


@pytest.fixture
def fake_dns() -> FakeDnsClient:
    return FakeDnsClient()


@pytest.fixture
def offline_session() -> MagicMock:
    """HTTP session for which the TLD authority is unreachable."""
    session = MagicMock()
    session.get.side_effect = requests.ConnectionError("Name or service not known")
    return session


@pytest.fixture
def tld_validator(tld_cache, fake_cluster, offline_session) -> TldValidator:
    """TLD validator loaded from a warm cache."""
    fake_cluster.setex("tld_cache:tlds_list", 86400, json.dumps(CACHED_TLDS))
    return TldValidator(cache=tld_cache, http_session=offline_session)


@pytest.fixture
def node_replies() -> dict[str, object]:
    """PING reply (or exception) per cluster node; all healthy by default."""
    return {node: True for node in CLUSTER_NODES}


@pytest.fixture
def wired_services(tld_validator, mx_cache, fake_dns, node_replies) -> EmailVerificationService:
    """Install a real pipeline on fakes into the app; example.com has a working MX."""
    fake_dns.mx["example.com"] = [MxRecord("mx.example.com", 10)]
    fake_dns.a_hosts.add("mx.example.com")

    mx_validator = MxValidator(cache=mx_cache, dns_client=fake_dns, sleep=lambda seconds: None)
    service = EmailVerificationService(
        CompositeEmailValidator(SyntaxValidator(), tld_validator, mx_validator)
    )

    def client_factory(host: str, port: int) -> MagicMock:
        client = MagicMock()
        reply = node_replies[f"{host}:{port}"]
        if isinstance(reply, Exception):
            client.ping.side_effect = reply
        else:
            client.ping.return_value = reply
        return client

    monitor = ClusterHealthMonitor(nodes=CLUSTER_NODES, quorum=3, client_factory=client_factory)
    app_module.set_services(service, tld_validator, monitor)
    return service


@pytest.fixture(autouse=True)
def reset_app_services():
    """Never let one test's service instances leak into another."""
    app_module.reset_services()
    yield
    app_module.reset_services()


@pytest.fixture
def app():
    """Create application for testing."""
    app_module.app.config["TESTING"] = True
    return app_module.app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()
