import asyncio
import json
import logging

import httpx
import pytest
from fastapi.testclient import TestClient

from bitwheel.config import RelaySettings
from bitwheel.events import SpinRequest
from bitwheel.relay.server import SocketBroadcaster, create_app
from bitwheel.relay.signature import (
    HEADER_MESSAGE_ID,
    HEADER_MESSAGE_TYPE,
    HEADER_SIGNATURE,
    HEADER_TIMESTAMP,
    compute_signature,
)
from bitwheel.relay.twitch_auth import TwitchAuth
from conftest import SECRET, RecordingBroadcaster

TIMESTAMP = "2024-05-01T12:00:00.000000000Z"


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def app(relay_settings, broadcaster):
    app = create_app(relay_settings)
    app.state.relay.broadcaster = broadcaster
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


def _signed(body: dict, message_type: str, message_id: str = "msg-1", secret: str = SECRET):
    raw = json.dumps(body).encode("utf-8")
    headers = {
        "Content-Type": "application/json",
        HEADER_MESSAGE_ID: message_id,
        HEADER_TIMESTAMP: TIMESTAMP,
        HEADER_MESSAGE_TYPE: message_type,
        HEADER_SIGNATURE: compute_signature(secret, message_id, TIMESTAMP, raw),
    }
    return raw, headers


def _cheer(bits, user_name="Ada", message="hype"):
    return {
        "subscription": {"type": "channel.cheer", "version": "1"},
        "event": {"user_name": user_name, "bits": bits, "message": message},
    }


def test_bad_signature_is_forbidden(client, broadcaster):
    raw, headers = _signed(_cheer(500), "notification", secret="wrong")
    response = client.post("/webhooks/callback", content=raw, headers=headers)
    assert response.status_code == 403
    assert broadcaster.spins == []


def test_missing_signature_headers_forbidden(client, broadcaster):
    response = client.post("/webhooks/callback", json=_cheer(500))
    assert response.status_code == 403
    assert broadcaster.spins == []


def test_tampered_body_is_forbidden(client, broadcaster):
    raw, headers = _signed(_cheer(100), "notification")
    response = client.post("/webhooks/callback", content=raw.replace(b"100", b"900"), headers=headers)
    assert response.status_code == 403
    assert broadcaster.spins == []


def test_verification_echoes_challenge(client):
    raw, headers = _signed({"challenge": "pogchamp-kappa-360noscope", "subscription": {}}, "webhook_callback_verification")
    response = client.post("/webhooks/callback", content=raw, headers=headers)
    assert response.status_code == 200
    assert response.text == "pogchamp-kappa-360noscope"
    assert response.headers["content-type"].startswith("text/plain")


def test_notification_broadcasts_spin(client, broadcaster):
    raw, headers = _signed(_cheer(250), "notification")
    response = client.post("/webhooks/callback", content=raw, headers=headers)
    assert response.status_code == 200
    assert response.text == "OK"
    assert len(broadcaster.spins) == 1
    assert broadcaster.spins[0].model_dump() == {"donor": "Ada", "bits": 250, "spins": 2, "message": "hype"}


def test_notification_under_threshold_does_not_broadcast(client, broadcaster):
    raw, headers = _signed(_cheer(99), "notification")
    response = client.post("/webhooks/callback", content=raw, headers=headers)
    assert response.status_code == 200
    assert broadcaster.spins == []


def test_anonymous_cheer_uses_placeholder_name(client, broadcaster):
    raw, headers = _signed(_cheer(100, user_name=None, message=None), "notification")
    client.post("/webhooks/callback", content=raw, headers=headers)
    assert broadcaster.spins[0].donor == "Anonymous"
    assert broadcaster.spins[0].message == ""


def test_anonymous_flag_hides_user_name(client, broadcaster):
    body = _cheer(200, user_name="ananonymouscheerer")
    body["event"]["is_anonymous"] = True
    raw, headers = _signed(body, "notification")
    client.post("/webhooks/callback", content=raw, headers=headers)
    assert broadcaster.spins[0].donor == "Anonymous"
    assert broadcaster.spins[0].spins == 2


def test_malformed_notification_rejected(client, broadcaster):
    raw, headers = _signed({"event": {"user_name": "Ada", "bits": "lots"}}, "notification")
    response = client.post("/webhooks/callback", content=raw, headers=headers)
    assert response.status_code == 400
    assert broadcaster.spins == []


def test_notification_without_event_rejected(client):
    raw, headers = _signed({"subscription": {}}, "notification")
    assert client.post("/webhooks/callback", content=raw, headers=headers).status_code == 400


def test_revocation_and_unknown_types_ok(client, broadcaster):
    raw, headers = _signed({"subscription": {"status": "authorization_revoked"}}, "revocation")
    assert client.post("/webhooks/callback", content=raw, headers=headers).status_code == 200
    raw, headers = _signed(_cheer(500), "something_new")
    response = client.post("/webhooks/callback", content=raw, headers=headers)
    assert response.status_code == 200
    assert response.text == "OK"
    assert broadcaster.spins == []


def test_test_spin_defaults(client, broadcaster):
    response = client.post("/api/test-spin")
    assert response.json() == {"success": True, "spins": 1}
    assert broadcaster.spins[0].model_dump() == {
        "donor": "TestUser", "bits": 100, "spins": 1, "message": "Test spin!",
    }


def test_test_spin_with_body(client, broadcaster):
    response = client.post("/api/test-spin", json={"donor": "Ada", "bits": 350})
    assert response.json() == {"success": True, "spins": 3}
    assert broadcaster.spins[0].donor == "Ada"


def test_test_spin_zero_bits_means_default(client, broadcaster):
    response = client.post("/api/test-spin", json={"bits": 0})
    assert response.json()["spins"] == 1


def test_test_spin_under_threshold_still_broadcast(client, broadcaster):
    response = client.post("/api/test-spin", json={"bits": 50})
    assert response.json() == {"success": True, "spins": 0}
    assert [s.spins for s in broadcaster.spins] == [0]


def test_test_spin_rejects_malformed_body(client, broadcaster):
    assert client.post("/api/test-spin", json={"bits": -1}).status_code == 422
    assert client.post("/api/test-spin", json={"bits": "many"}).status_code == 422
    assert broadcaster.spins == []


def test_start_round_broadcast(client, broadcaster):
    assert client.post("/api/start-round").json() == {"success": True}
    assert broadcaster.round_starts == 1


def test_health(client):
    body = client.get("/health").json()
    assert body["status"] == "ok"
    assert body["timestamp"].endswith("Z")


def test_startup_token_failure_is_not_fatal(relay_settings, broadcaster):
    auth = TwitchAuth("cid", "csecret", transport=httpx.MockTransport(lambda r: httpx.Response(500)))
    app = create_app(relay_settings, auth=auth)
    app.state.relay.broadcaster = broadcaster
    with TestClient(app) as client:
        assert client.get("/health").status_code == 200
    assert auth.current_token is None


def test_startup_fetches_token(relay_settings):
    auth = TwitchAuth(
        "cid", "csecret",
        transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"access_token": "tok", "expires_in": 100})),
    )
    app = create_app(relay_settings, auth=auth)
    with TestClient(app):
        pass
    assert auth.current_token.access_token == "tok"


def test_missing_secret_rejects_everything(broadcaster):
    app = create_app(RelaySettings(eventsub_secret=None))
    app.state.relay.broadcaster = broadcaster
    raw, headers = _signed(_cheer(500), "notification")
    assert TestClient(app).post("/webhooks/callback", content=raw, headers=headers).status_code == 403


class FakeSio:
    def __init__(self):
        self.emitted = []

    async def emit(self, event, data):
        self.emitted.append((event, data))


def test_socket_broadcaster_wire_events():
    sio = FakeSio()
    broadcaster = SocketBroadcaster(sio)
    asyncio.run(broadcaster.new_spin(SpinRequest.from_bits("Ada", 250)))
    asyncio.run(broadcaster.start_round())
    assert sio.emitted == [
        ("newSpin", {"donor": "Ada", "bits": 250, "spins": 2, "message": ""}),
        ("startRound", {}),
    ]


def test_spin_complete_is_logged_only(app, caplog):
    handler = app.state.relay.sio.handlers["/"]["spinComplete"]
    with caplog.at_level(logging.INFO, logger="bitwheel.relay.server"):
        assert asyncio.run(handler("sid-1", {"result": "DROP"})) is None
        asyncio.run(handler("sid-1", {"nope": 1}))
    messages = [r.getMessage() for r in caplog.records]
    assert any("DROP" in m for m in messages)
    assert any("spinComplete" in m for m in messages)
