from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple

import pytest

from camstream.engine import SessionStatus, SessionStatusBroadcaster
from camstream.engine import status as status_module


class FakeRedis:
    def __init__(self) -> None:
        self.values: Dict[str, Tuple[str, Optional[int]]] = {}
        self.published: List[Tuple[str, str]] = []
        self.closed = False

    def ping(self) -> bool:
        return True

    def set(self, key: str, value: str, ex: Optional[int] = None) -> None:
        self.values[key] = (value, ex)

    def publish(self, channel: str, message: str) -> int:
        self.published.append((channel, message))
        return 1

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_redis(monkeypatch: pytest.MonkeyPatch) -> FakeRedis:
    client = FakeRedis()

    def _from_url(url: str, **kwargs: Any) -> FakeRedis:
        return client

    monkeypatch.setattr(status_module.redis, "from_url", _from_url)
    return client


def _running(device: str = "0") -> SessionStatus:
    return SessionStatus(
        device_id=device,
        session_id=f"cam-{device}-abc",
        state="running",
        running=True,
        pid=123,
        output_dir=f"/tmp/cam-{device}-abc",
        created_at="2024-01-01T00:00:00+00:00",
    )


def test_publish_writes_snapshot_and_broadcasts(fake_redis: FakeRedis) -> None:
    broadcaster = SessionStatusBroadcaster(redis_url="redis://localhost:6379/0", channel="camstream:sessions")

    broadcaster.publish([_running()])

    payload, expiry = fake_redis.values["camstream:sessions"]
    decoded = json.loads(payload)
    assert expiry == 30
    assert decoded["sessions"][0]["deviceId"] == "0"
    assert decoded["sessions"][0]["sessionId"] == "cam-0-abc"
    assert "updatedAt" in decoded
    assert fake_redis.published == [("camstream:sessions", payload)]


def test_disabled_without_url() -> None:
    broadcaster = SessionStatusBroadcaster(redis_url=None)

    assert broadcaster.enabled is False
    assert broadcaster.available is False
    broadcaster.publish([_running()])
    broadcaster.start_heartbeat(lambda: [_running()])
    broadcaster.close()


def test_registry_publishes_lifecycle_changes(fake_redis: FakeRedis, make_registry) -> None:
    broadcaster = SessionStatusBroadcaster(redis_url="redis://localhost:6379/0", heartbeat_seconds=60)
    registry = make_registry(broadcaster=broadcaster)

    registry.start_session(0)
    running = json.loads(fake_redis.values["camstream:sessions"][0])
    registry.stop_session(0)
    stopped = json.loads(fake_redis.values["camstream:sessions"][0])
    registry.close(timeout=1)

    assert [session["state"] for session in running["sessions"]] == ["running"]
    assert stopped["sessions"] == []
    assert fake_redis.closed is True


def test_serialize_omits_absent_fields() -> None:
    failed = SessionStatus(
        device_id="2",
        session_id=None,
        state="failed",
        running=False,
        pid=None,
        output_dir=None,
        created_at=None,
        last_error="boom",
    )

    decoded = json.loads(SessionStatusBroadcaster.serialize([failed]))

    assert decoded["sessions"] == [
        {
            "deviceId": "2",
            "state": "failed",
            "running": False,
            "pid": None,
            "outputDir": None,
            "createdAt": None,
            "lastError": "boom",
        }
    ]
