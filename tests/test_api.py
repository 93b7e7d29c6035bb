"""
Tests for the HTTP surface: REST endpoints and Discord interactions.

The app is started through its lifespan with a temporary settings file
(memory store, dispatch loop disabled).
"""
import json
import pytest
import yaml
from unittest.mock import AsyncMock

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from fastapi.testclient import TestClient

from api.interactions import verify_signature

ACCENT = 0x112233


@pytest.fixture
def signing_key():
    return Ed25519PrivateKey.generate()


@pytest.fixture
def public_key_hex(signing_key):
    return signing_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw).hex()


@pytest.fixture
def client(tmp_path, monkeypatch, public_key_hex):
    config = tmp_path / "settings.yaml"
    config.write_text(yaml.safe_dump({
        "dispatch_enabled": False,
        "log_level": "WARNING",
        "schedule": {"utc_offset_minutes": 120, "accent_color": "#112233"},
        "database": {"store_backend": "memory"},
        "discord": {"token": "tok", "application_id": "app1", "public_key": public_key_hex},
    }))
    monkeypatch.setenv("MOMENTS_CONFIG", str(config))

    from api.main import app
    with TestClient(app) as c:
        app.state.adapter.resolve_names = AsyncMock(return_value=("general", "Sheep Farm"))
        yield c


def signed_post(client, signing_key, payload, timestamp="1715350500"):
    body = json.dumps(payload).encode()
    signature = signing_key.sign(timestamp.encode() + body).hex()
    return client.post(
        "/interactions",
        content=body,
        headers={
            "Content-Type": "application/json",
            "X-Signature-Ed25519": signature,
            "X-Signature-Timestamp": timestamp,
        },
    )


def subscribe_payload(guild_id="111", channel_id="222"):
    payload = {
        "type": 2,
        "id": "interaction1",
        "channel_id": channel_id,
        "data": {"name": "subscribe", "type": 1},
    }
    if guild_id is not None:
        payload["guild_id"] = guild_id
    return payload


# ══════════════════════════════════════════════════════════════
#  REST
# ══════════════════════════════════════════════════════════════

class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["dispatch_running"] is False
        assert data["channel"]["channel"] == "discord"


class TestMomentEndpoint:
    def test_classified_instant(self, client):
        resp = client.get("/api/v1/moment", params={"at": "2024-05-10T16:15:00+02:00"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["moment"] == "friday.after_work"
        assert data["is_last_instant"] is True
        assert data["text"].startswith("🏪🐑")

    def test_utc_instant_is_localized(self, client):
        data = client.get("/api/v1/moment", params={"at": "2024-05-10T14:15:00+00:00"}).json()
        assert data["moment"] == "friday.after_work"
        assert data["local"].startswith("2024-05-10T16:15:00")

    def test_zulu_suffix_is_utc(self, client):
        data = client.get("/api/v1/moment", params={"at": "2024-05-10T14:15:00Z"}).json()
        assert data["moment"] == "friday.after_work"
        assert data["at"] == "2024-05-10T14:15:00+00:00"

    def test_unclassified_instant(self, client):
        data = client.get("/api/v1/moment", params={"at": "2024-05-10T17:05:00+02:00"}).json()
        assert data["moment"] is None

    def test_invalid_timestamp(self, client):
        assert client.get("/api/v1/moment", params={"at": "yesterday"}).status_code == 400

    def test_now(self, client):
        assert "moment" in client.get("/api/v1/moment").json()


class TestSubscriptionEndpoints:
    def test_toggle_round_trip(self, client):
        resp = client.post("/api/v1/subscriptions/toggle", json={"guild_id": "111", "channel_id": "222"})
        assert resp.status_code == 200
        assert resp.json() == {
            "outcome": "added",
            "subscribed": True,
            "confirmation": "Subscribed to this channel in this guild",
        }
        subs = client.get("/api/v1/subscriptions").json()
        assert subs[0]["guild_id"] == "111"
        assert subs[0]["last_moment"] is None

        resp = client.post("/api/v1/subscriptions/toggle", json={"guild_id": "111", "channel_id": "222"})
        assert resp.json()["outcome"] == "removed"
        assert client.get("/api/v1/subscriptions").json() == []

    def test_toggle_without_guild(self, client):
        resp = client.post("/api/v1/subscriptions/toggle", json={"channel_id": "222"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "No guild id provided"


# ══════════════════════════════════════════════════════════════
#  DISCORD INTERACTIONS
# ══════════════════════════════════════════════════════════════

class TestSignature:
    def test_valid_signature(self, signing_key, public_key_hex):
        body = b'{"type":1}'
        sig = signing_key.sign(b"123" + body).hex()
        assert verify_signature(public_key_hex, sig, "123", body)

    def test_tampered_body(self, signing_key, public_key_hex):
        sig = signing_key.sign(b"123" + b'{"type":1}').hex()
        assert not verify_signature(public_key_hex, sig, "123", b'{"type":2}')

    def test_garbage_inputs(self, public_key_hex):
        assert not verify_signature(public_key_hex, "zz", "123", b"{}")
        assert not verify_signature("", "00" * 64, "123", b"{}")
        assert not verify_signature(public_key_hex, "00" * 64, "", b"{}")


class TestInteractions:
    def test_unsigned_request_rejected(self, client):
        resp = client.post("/interactions", json={"type": 1})
        assert resp.status_code == 401

    def test_wrong_key_rejected(self, client):
        other = Ed25519PrivateKey.generate()
        assert signed_post(client, other, {"type": 1}).status_code == 401

    def test_ping(self, client, signing_key):
        resp = signed_post(client, signing_key, {"type": 1})
        assert resp.status_code == 200
        assert resp.json() == {"type": 1}

    def test_subscribe_toggles(self, client, signing_key):
        resp = signed_post(client, signing_key, subscribe_payload())
        assert resp.json() == {
            "type": 4,
            "data": {"embeds": [{"title": "Subscribed to general in Sheep Farm", "color": ACCENT}]},
        }
        assert len(client.get("/api/v1/subscriptions").json()) == 1

        resp = signed_post(client, signing_key, subscribe_payload())
        embed = resp.json()["data"]["embeds"][0]
        assert embed["title"] == "Unsubscribed from general in Sheep Farm"
        assert client.get("/api/v1/subscriptions").json() == []

    def test_subscribe_in_dm(self, client, signing_key):
        resp = signed_post(client, signing_key, subscribe_payload(guild_id=None))
        embed = resp.json()["data"]["embeds"][0]
        assert embed["title"] == "No guild id provided"
        assert client.get("/api/v1/subscriptions").json() == []

    def test_unknown_command(self, client, signing_key):
        payload = subscribe_payload()
        payload["data"]["name"] = "baa"
        resp = signed_post(client, signing_key, payload)
        assert resp.json()["data"]["embeds"][0]["title"] == "Unknown command: baa"
