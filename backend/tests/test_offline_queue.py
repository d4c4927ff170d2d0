"""
Offline request queue and API client tests.

Verifies:
- FIFO replay with independent retries
- requests are dropped on failure once the retention window has passed;
  each failed retry restarts the window
- only mutating calls are parked; HTTP error responses are not
"""

from datetime import datetime, timedelta

import httpx
import pytest

from shiftsync.client import OfflineRequestQueue, ShiftSyncClient


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 3, 1, 9, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def queue(clock):
    return OfflineRequestQueue(clock=clock)


def _offline(item):
    raise httpx.ConnectError("no route to host")


# =============================================================================
# QUEUE
# =============================================================================


class TestOfflineRequestQueue:

    def test_replay_in_submission_order(self, queue):
        for n in range(3):
            queue.enqueue("post", f"/api/messages/{n}")

        seen = []
        result = queue.replay(lambda item: seen.append(item.path) or 200)

        assert seen == ["/api/messages/0", "/api/messages/1", "/api/messages/2"]
        assert [item.method for item, _ in result.sent] == ["POST"] * 3
        assert len(queue) == 0

    def test_one_failure_does_not_block_the_rest(self, queue):
        queue.enqueue("POST", "/first")
        queue.enqueue("POST", "/second")
        queue.enqueue("POST", "/third")

        def send(item):
            if item.path == "/second":
                raise httpx.ReadTimeout("slow")
            return "ok"

        result = queue.replay(send)

        assert [item.path for item, _ in result.sent] == ["/first", "/third"]
        assert [item.path for item in result.requeued] == ["/second"]
        assert [item.path for item in queue.pending()] == ["/second"]
        assert queue.pending()[0].attempts == 1

    def test_failed_request_within_retention_is_kept(self, queue, clock):
        queue.enqueue("POST", "/clock-in")
        clock.advance(minutes=59)

        result = queue.replay(_offline)

        assert result.dropped == []
        assert len(queue) == 1

    def test_failed_request_past_retention_is_dropped(self, queue, clock):
        queue.enqueue("POST", "/old")
        clock.advance(minutes=30)
        queue.enqueue("POST", "/new")
        clock.advance(minutes=31)

        result = queue.replay(_offline)

        assert [item.path for item in result.dropped] == ["/old"]
        assert [item.path for item in queue.pending()] == ["/new"]

    def test_failed_retry_restarts_retention(self, queue, clock):
        queue.enqueue("POST", "/clock-in")

        clock.advance(minutes=50)
        assert len(queue.replay(_offline).requeued) == 1

        clock.advance(minutes=20)
        result = queue.replay(_offline)

        assert result.dropped == []
        assert [item.path for item in queue.pending()] == ["/clock-in"]
        assert queue.pending()[0].attempts == 2
        assert queue.pending()[0].queued_at == clock.now

    def test_dropped_after_window_since_last_failure(self, queue, clock):
        queue.enqueue("POST", "/clock-in")
        clock.advance(minutes=50)
        queue.replay(_offline)

        clock.advance(minutes=61)
        result = queue.replay(_offline)

        assert [item.path for item in result.dropped] == ["/clock-in"]
        assert len(queue) == 0

    def test_old_request_still_sent_when_online(self, queue, clock):
        queue.enqueue("POST", "/old")
        clock.advance(hours=3)

        result = queue.replay(lambda item: 201)

        assert len(result.sent) == 1
        assert result.dropped == []

    def test_unexpected_error_keeps_remaining_items(self, queue):
        queue.enqueue("POST", "/a")
        queue.enqueue("POST", "/b")
        queue.enqueue("POST", "/c")

        def send(item):
            if item.path == "/b":
                raise RuntimeError("bug")
            return 200

        with pytest.raises(RuntimeError):
            queue.replay(send)

        assert [item.path for item in queue.pending()] == ["/b", "/c"]

    def test_custom_retention(self, clock):
        queue = OfflineRequestQueue(clock=clock, retention=timedelta(minutes=5))
        queue.enqueue("POST", "/x")
        clock.advance(minutes=6)

        assert len(queue.replay(_offline).dropped) == 1


# =============================================================================
# CLIENT
# =============================================================================


class TestShiftSyncClient:

    def _client(self, handler, clock):
        return ShiftSyncClient(
            "http://shiftsync.test",
            token="tok",
            queue=OfflineRequestQueue(clock=clock),
            transport=httpx.MockTransport(handler),
        )

    def test_sends_bearer_token(self, clock):
        captured = {}

        def handler(request):
            captured["auth"] = request.headers.get("Authorization")
            return httpx.Response(201, json={"entry": {"id": 1}})

        with self._client(handler, clock) as client:
            response = client.clock_in(10)

        assert response.status_code == 201
        assert captured["auth"] == "Bearer tok"

    def test_transport_error_parks_mutating_call(self, clock):
        online = {"up": False}
        received = []

        def handler(request):
            if not online["up"]:
                raise httpx.ConnectError("offline", request=request)
            received.append((request.method, request.url.path))
            return httpx.Response(201, json={})

        with self._client(handler, clock) as client:
            assert client.create_till_verification(10, 5000, 4900) is None
            assert client.send_message("on my way", receiver_id=3) is None
            assert len(client.queue) == 2

            online["up"] = True
            result = client.replay_offline()

        assert len(result.sent) == 2
        assert received == [("POST", "/api/till-verifications"), ("POST", "/api/messages")]

    def test_reads_are_not_queued(self, clock):
        def handler(request):
            raise httpx.ConnectError("offline", request=request)

        with self._client(handler, clock) as client:
            with pytest.raises(httpx.ConnectError):
                client.request("GET", "/api/shifts")
            assert len(client.queue) == 0

    def test_http_error_is_returned_not_queued(self, clock):
        def handler(request):
            return httpx.Response(409, json={"error": "already verified", "kind": "InvalidState"})

        with self._client(handler, clock) as client:
            response = client.verify_till_verification(7)
            assert response.status_code == 409
            assert len(client.queue) == 0

    def test_login_stores_token(self, clock):
        def handler(request):
            if request.url.path == "/api/auth/login":
                return httpx.Response(200, json={"token": "fresh", "user": {"id": 1}})
            return httpx.Response(200, json={"auth": request.headers.get("Authorization")})

        with self._client(handler, clock) as client:
            client.login("employee", "Password123!")
            assert client.token == "fresh"
            assert client.request("GET", "/api/auth/me").json()["auth"] == "Bearer fresh"
