"""Tests for the background sync worker and its request interception."""
import json
from pathlib import Path

import httpx
import pytest

from services.sync_worker.consumer import make_on_message
from services.sync_worker.interceptor import BackgroundSyncTransport
from services.sync_worker.request_queue import RequestQueue
from services.sync_worker.worker import Notification, SyncWorker

ENDPOINT = "http://records.test/api/checkins"


class Clock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def request_queue(tmp_path: Path, clock: Clock) -> RequestQueue:
    return RequestQueue(url=f"sqlite:///{tmp_path / 'bg.db'}", now=clock)


@pytest.fixture
def broadcasts():
    return []


@pytest.fixture
def worker(request_queue, broadcasts):
    return SyncWorker(request_queue, broadcast=lambda t, p: broadcasts.append((t, p)),
                      send=lambda entry: httpx.Response(200), enabled=True)


def offline_handler(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("network is unreachable", request=request)


def post_checkin(transport, payload=None):
    with httpx.Client(transport=transport) as client:
        return client.post(ENDPOINT, json=payload or {"room": "private4", "count": 2})


class TestInterception:
    def test_failed_post_is_queued_and_reraised(self, request_queue):
        transport = BackgroundSyncTransport(request_queue, inner=httpx.MockTransport(offline_handler))
        with pytest.raises(httpx.ConnectError):
            post_checkin(transport)
        [entry] = request_queue.entries()
        assert entry.method == "POST"
        assert entry.url == ENDPOINT
        assert json.loads(entry.body) == {"room": "private4", "count": 2}
        assert "content-length" not in {k.lower() for k in entry.headers}

    def test_failed_post_requests_sync(self, request_queue):
        transport = BackgroundSyncTransport(request_queue, inner=httpx.MockTransport(offline_handler))
        assert request_queue.is_registered("sync-checkins") is False
        with pytest.raises(httpx.ConnectError):
            post_checkin(transport)
        assert request_queue.size() == 1
        assert request_queue.is_registered("sync-checkins") is True

    def test_queued_request_replayed_on_sync(self, request_queue, broadcasts):
        transport = BackgroundSyncTransport(request_queue, inner=httpx.MockTransport(offline_handler))
        with pytest.raises(httpx.ConnectError):
            post_checkin(transport)
        # aucune inscription explicite : la mise en file suffit
        worker = SyncWorker(request_queue, broadcast=lambda t, p: broadcasts.append((t, p)),
                            send=lambda entry: httpx.Response(200), enabled=True)
        result = worker.on_sync("sync-checkins")
        assert result.replayed == 1
        assert request_queue.size() == 0

    def test_successful_post_not_queued(self, request_queue):
        transport = BackgroundSyncTransport(
            request_queue, inner=httpx.MockTransport(lambda r: httpx.Response(200, json={"success": True})))
        assert post_checkin(transport).status_code == 200
        assert request_queue.size() == 0

    def test_server_error_is_not_a_network_failure(self, request_queue):
        transport = BackgroundSyncTransport(
            request_queue, inner=httpx.MockTransport(lambda r: httpx.Response(500)))
        assert post_checkin(transport).status_code == 500
        assert request_queue.size() == 0

    def test_other_routes_untouched(self, request_queue):
        transport = BackgroundSyncTransport(request_queue, inner=httpx.MockTransport(offline_handler))
        with httpx.Client(transport=transport) as client:
            with pytest.raises(httpx.ConnectError):
                client.get(ENDPOINT)
            with pytest.raises(httpx.ConnectError):
                client.post("http://records.test/api/calendar", json={})
        assert request_queue.size() == 0

    def test_without_capability_is_pass_through(self):
        transport = BackgroundSyncTransport(None, inner=httpx.MockTransport(offline_handler))
        with pytest.raises(httpx.ConnectError):
            post_checkin(transport)


class TestReplay:
    def push(self, request_queue, n=1):
        for i in range(n):
            request_queue.push(httpx.Request("POST", ENDPOINT, json={"room": f"r{i}"}))

    def test_success_empties_queue(self, request_queue):
        self.push(request_queue, 2)
        sent = []
        result = request_queue.replay(lambda e: sent.append(json.loads(e.body)) or httpx.Response(200))
        assert result.replayed == 2
        assert request_queue.size() == 0
        assert sent == [{"room": "r0"}, {"room": "r1"}]

    def test_rejection_keeps_request_and_stops(self, request_queue):
        self.push(request_queue, 3)
        result = request_queue.replay(lambda e: httpx.Response(500))
        assert (result.replayed, result.failed, result.remaining) == (0, 1, 3)
        assert request_queue.size() == 3

    def test_network_error_keeps_rest(self, request_queue):
        self.push(request_queue, 3)
        calls = []

        def send(entry):
            calls.append(entry.id)
            if len(calls) == 2:
                raise httpx.ConnectError("down")
            return httpx.Response(201)

        result = request_queue.replay(send)
        assert result.replayed == 1
        assert result.remaining == 2
        assert request_queue.size() == 2

    def test_expired_requests_dropped(self, request_queue, clock):
        self.push(request_queue, 1)
        clock.now += 24 * 60 * 60 + 1
        self.push(request_queue, 1)
        result = request_queue.replay(lambda e: httpx.Response(200))
        assert (result.expired, result.replayed) == (1, 1)
        assert request_queue.size() == 0

    def test_replay_uses_stored_request(self, request_queue):
        self.push(request_queue, 1)
        seen = []

        def handler(request):
            seen.append((request.method, str(request.url), json.loads(request.content)))
            return httpx.Response(200)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        result = request_queue.replay(
            lambda e: client.request(e.method, e.url, headers=e.headers, content=e.body))
        assert result.replayed == 1
        assert seen == [("POST", ENDPOINT, {"room": "r0"})]


class TestWorker:
    def test_register_without_capability(self, request_queue):
        worker = SyncWorker(request_queue, enabled=False)
        assert worker.register() is False
        assert worker.on_sync() is None

    def test_register_storage_denied(self, tmp_path):
        queue = RequestQueue(url=f"sqlite:///{tmp_path / 'missing' / 'bg.db'}")
        assert SyncWorker(queue, enabled=True).register() is False

    def test_sync_broadcasts_completion(self, worker, request_queue, broadcasts):
        assert worker.register()
        request_queue.push(httpx.Request("POST", ENDPOINT, json={"room": "a"}))
        result = worker.on_sync("sync-checkins")
        assert result.replayed == 1
        assert [t for t, _ in broadcasts] == ["SYNC_STARTED", "SYNC_COMPLETED"]
        assert broadcasts[-1][1]["replayed"] == 1

    def test_completion_broadcast_on_exhaustion(self, request_queue, broadcasts):
        def down(entry):
            raise httpx.ConnectError("down")

        worker = SyncWorker(request_queue, broadcast=lambda t, p: broadcasts.append((t, p)),
                            send=down, enabled=True)
        worker.register()
        request_queue.push(httpx.Request("POST", ENDPOINT, json={"room": "a"}))
        result = worker.on_sync()
        assert result.failed == 1
        assert broadcasts[-1][0] == "SYNC_COMPLETED"
        assert request_queue.size() == 1

    def test_unregistered_tag_ignored(self, worker, broadcasts):
        worker.register("sync-checkins")
        assert worker.on_sync("other-tag") is None
        assert broadcasts == []

    def test_broadcast_failure_is_not_fatal(self, request_queue):
        def broker_down(event_type, payload):
            raise ConnectionError("broker unreachable")

        worker = SyncWorker(request_queue, broadcast=broker_down,
                            send=lambda e: httpx.Response(200), enabled=True)
        worker.register()
        assert worker.on_sync().replayed == 0

    def test_push_defaults(self, worker, broadcasts):
        notification = worker.on_push({})
        assert notification.title == "Coworking Check-in"
        assert notification.url == "/"
        assert notification.tag == "checkin-update"
        assert broadcasts[-1][0] == "NotificationShown"

    def test_push_payload(self, worker):
        notification = worker.on_push({"title": "Room ready", "body": "private4", "url": "/checkin/room"})
        assert (notification.title, notification.body, notification.url) == ("Room ready", "private4", "/checkin/room")

    def test_notification_click(self, worker):
        notification = Notification(title="t", body="b", url="/checkin/confirm")
        assert worker.on_notification_click(notification, ["/", "/checkin/confirm"]) == ("focus", "/checkin/confirm")
        assert worker.on_notification_click(notification, ["/"]) == ("open", "/checkin/confirm")


class TestConsumer:
    def deliver(self, worker, event_type, payload):
        body = json.dumps({"type": event_type, "payload": payload})
        make_on_message(worker)(None, None, None, body)

    def test_reconnect_triggers_sync(self, worker, request_queue, broadcasts):
        worker.register()
        request_queue.push(httpx.Request("POST", ENDPOINT, json={"room": "a"}))
        self.deliver(worker, "ConnectivityRestored", {})
        assert request_queue.size() == 0
        assert broadcasts[-1][0] == "SYNC_COMPLETED"

    def test_push_received(self, worker, broadcasts):
        self.deliver(worker, "PushReceived", {"title": "Hello"})
        assert broadcasts[-1][0] == "NotificationShown"
        assert broadcasts[-1][1]["title"] == "Hello"

    def test_own_broadcasts_ignored(self, worker, broadcasts):
        self.deliver(worker, "SYNC_COMPLETED", {"replayed": 1})
        assert broadcasts == []

    def test_bad_payload(self, worker):
        make_on_message(worker)(None, None, None, b"not json")

    def test_notification_click(self, worker, capsys):
        self.deliver(worker, "NotificationClicked",
                     {"notification": {"title": "t", "body": "b", "url": "/"}, "openUrls": ["/"]})
        assert "notification click -> focus /" in capsys.readouterr().out

    def test_malformed_notification_click(self, worker, capsys):
        self.deliver(worker, "NotificationClicked", {})
        self.deliver(worker, "NotificationClicked", {"notification": {"unknown": 1}})
        self.deliver(worker, "NotificationClicked", {"notification": None})
        assert capsys.readouterr().out.count("bad notification click") == 3


class TestApp:
    @pytest.fixture
    def client(self, monkeypatch, request_queue, worker):
        from fastapi.testclient import TestClient
        from services.sync_worker import app as worker_app

        monkeypatch.setattr(worker_app, "queue", request_queue)
        monkeypatch.setattr(worker_app, "worker", worker)
        return TestClient(worker_app.app)

    def test_queue_status(self, client, request_queue):
        request_queue.push(httpx.Request("POST", ENDPOINT, json={"room": "a"}))
        assert client.get("/v1/sync/queue").json() == {"enabled": True, "name": "checkins-queue", "size": 1}

    def test_manual_trigger(self, client, worker, request_queue):
        worker.register()
        request_queue.push(httpx.Request("POST", ENDPOINT, json={"room": "a"}))
        r = client.post("/v1/sync/sync-checkins")
        assert r.status_code == 200
        assert r.json()["replayed"] == 1

    def test_unknown_tag(self, client, worker):
        worker.register()
        assert client.post("/v1/sync/unknown").status_code == 404
