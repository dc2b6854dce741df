"""
Tests for POST /verify with a real pipeline on in-memory fakes.
"""

import json

from dns_client import MxRecord


def verify(client, text):
    return client.post("/verify", json={"text": text})


class TestVerifyEndpoint:
    def test_single_valid_email(self, client, wired_services):
        response = verify(client, "user@example.com")

        assert response.status_code == 200
        data = response.json
        assert data["success"] is True
        assert data["total"] == 1
        assert data["parsed_count"] == 1
        assert data["results"] == [{"email": "user@example.com", "status": "valid", "reason": None}]
        assert data["original_text"] == "user@example.com"

    def test_every_status_in_one_batch(self, client, wired_services):
        text = (
            "good@example.com, bad@@example.com; user@example.invalidtld123\n"
            "nomail@nomail.example.com"
        )

        data = verify(client, text).json

        statuses = {r["email"]: r["status"] for r in data["results"]}
        assert statuses == {
            "good@example.com": "valid",
            "bad@@example.com": "invalid_format",
            "user@example.invalidtld123": "invalid_tld",
            "nomail@nomail.example.com": "invalid_mx",
        }
        assert [r["email"] for r in data["results"]] == [
            "good@example.com",
            "bad@@example.com",
            "user@example.invalidtld123",
            "nomail@nomail.example.com",
        ]

    def test_failed_stages_carry_reasons(self, client, wired_services):
        data = verify(client, "bad@@example.com user@example.invalidtld123").json

        for result in data["results"]:
            assert result["reason"]

    def test_address_record_fallback_reason(self, client, wired_services, fake_dns):
        fake_dns.a_hosts.add("webonly.example.org")

        result = verify(client, "user@webonly.example.org").json["results"][0]

        assert result["status"] == "valid"
        assert "RFC 5321" in result["reason"]

    def test_duplicates_are_checked_once(self, client, wired_services, fake_dns):
        data = verify(client, "user@example.com\nuser@example.com, user@example.com").json

        assert data["total"] == 1
        assert data["parsed_count"] == 1
        assert fake_dns.mx_calls == ["example.com"]

    def test_mx_verdict_is_shared_across_addresses(self, client, wired_services, fake_dns):
        verify(client, "alice@example.com, bob@EXAMPLE.com")
        assert fake_dns.mx_calls == ["example.com"]

    def test_mx_verdict_written_to_cache(self, client, wired_services, fake_cluster):
        verify(client, "user@example.com")

        entry = json.loads(fake_cluster.store["mx_cache:example.com"])
        assert entry["status"] == "valid"

    def test_lowest_priority_mx_decides(self, client, wired_services, fake_dns):
        fake_dns.mx["multi.example.com"] = [
            MxRecord("backup.multi.example.com", 50),
            MxRecord("primary.multi.example.com", 10),
        ]
        fake_dns.a_hosts.add("backup.multi.example.com")

        result = verify(client, "user@multi.example.com").json["results"][0]

        assert result["status"] == "invalid_mx"
        assert "primary.multi.example.com" in result["reason"]

    def test_dns_outage_is_invalid_mx(self, client, wired_services, fake_dns):
        fake_dns.fail_times = 100

        result = verify(client, "user@example.com").json["results"][0]

        assert result["status"] == "invalid_mx"
        assert "unreachable" in result["reason"]

    def test_original_text_is_truncated(self, client, wired_services):
        text = ", ".join(f"user{i}@example.com" for i in range(20))

        data = verify(client, text).json

        assert len(data["original_text"]) == 100
        assert data["original_text"].endswith("...")
        assert data["total"] == 20

    def test_request_id_is_echoed(self, client, wired_services):
        response = client.post(
            "/verify", json={"text": "user@example.com"}, headers={"X-Request-ID": "req-123"}
        )
        assert response.headers["X-Request-ID"] == "req-123"

    def test_request_id_is_generated(self, client, wired_services):
        response = verify(client, "user@example.com")
        assert response.headers.get("X-Request-ID")
