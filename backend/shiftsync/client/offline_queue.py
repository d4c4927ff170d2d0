# Overview: HTTP client for the ShiftSync API with an offline queue for mutating calls.

"""
Offline request queue.

WHY: Staff clock in and record till counts on phones with patchy coverage.
A mutating call that fails on the network is parked and replayed later
instead of being lost.

RULES:
- FIFO: replay runs in original submission order
- each queued request is retried independently; one failure never blocks
  the ones behind it
- a request that fails again is re-queued, and queued_at moves to that
  failure; once more than the retention window (default one hour) has passed
  since queued_at, the next failure drops it
- only transport failures are queued; an HTTP error response is an answer
  from the server and is returned to the caller
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable

import httpx

from shiftsync.time_utils import utcnow


logger = logging.getLogger(__name__)

DEFAULT_RETENTION = timedelta(hours=1)
MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


@dataclass
class QueuedRequest:
    method: str
    path: str
    json: dict | None = None
    queued_at: datetime = field(default_factory=utcnow)
    attempts: int = 0


@dataclass
class ReplayResult:
    sent: list = field(default_factory=list)
    requeued: list = field(default_factory=list)
    dropped: list = field(default_factory=list)


class OfflineRequestQueue:
    def __init__(
        self,
        *,
        retention: timedelta = DEFAULT_RETENTION,
        clock: Callable[[], datetime] = utcnow,
        retry_on: tuple[type[BaseException], ...] = (httpx.TransportError,),
    ):
        self.retention = retention
        self._clock = clock
        self._retry_on = retry_on
        self._items: deque[QueuedRequest] = deque()

    def __len__(self) -> int:
        return len(self._items)

    def pending(self) -> list[QueuedRequest]:
        return list(self._items)

    def enqueue(self, method: str, path: str, json: dict | None = None) -> QueuedRequest:
        item = QueuedRequest(method=method.upper(), path=path, json=json, queued_at=self._clock())
        self._items.append(item)
        logger.info("Queued offline request %s %s (%d pending)", item.method, item.path, len(self._items))
        return item

    def _expired(self, item: QueuedRequest, now: datetime) -> bool:
        return now - item.queued_at > self.retention

    def replay(self, send: Callable[[QueuedRequest], Any]) -> ReplayResult:
        """
        Send every queued request once, oldest first.

        `send` raises one of `retry_on` for a failure worth retrying; any
        other exception propagates and leaves the remaining items queued.
        """
        result = ReplayResult()
        batch = list(self._items)
        self._items.clear()

        for index, item in enumerate(batch):
            item.attempts += 1
            try:
                response = send(item)
            except self._retry_on as exc:
                now = self._clock()
                if self._expired(item, now):
                    logger.warning("Dropping %s %s after %d attempts: %s", item.method, item.path, item.attempts, exc)
                    result.dropped.append(item)
                else:
                    # The window restarts from this attempt
                    item.queued_at = now
                    result.requeued.append(item)
                continue
            except Exception:
                # Put back what has not been attempted, in order
                self._items.extend(result.requeued)
                self._items.extend(batch[index:])
                raise
            result.sent.append((item, response))

        self._items.extend(result.requeued)
        return result


class ShiftSyncClient:
    """
    Thin httpx client for the ShiftSync API.

    Mutating calls that hit a transport error are parked on the offline
    queue and None is returned; call replay_offline() once back online.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        queue: OfflineRequestQueue | None = None,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.token = token
        self.queue = queue if queue is not None else OfflineRequestQueue()
        self._http = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _headers(self) -> dict:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def _send(self, method: str, path: str, json: dict | None = None) -> httpx.Response:
        return self._http.request(method, path, json=json, headers=self._headers())

    def request(self, method: str, path: str, json: dict | None = None) -> httpx.Response | None:
        method = method.upper()
        try:
            return self._send(method, path, json)
        except httpx.TransportError:
            if method not in MUTATING_METHODS:
                raise
            self.queue.enqueue(method, path, json)
            return None

    def replay_offline(self) -> ReplayResult:
        return self.queue.replay(lambda item: self._send(item.method, item.path, item.json))

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    def login(self, username: str, password: str) -> dict:
        response = self._send("POST", "/api/auth/login", {"username": username, "password": password})
        response.raise_for_status()
        data = response.json()
        self.token = data["token"]
        return data

    def clock_in(self, shift_id: int, *, coordinates: dict | None = None, notes: str | None = None):
        return self.request("POST", "/api/time-entries", {
            "shift_id": shift_id,
            "coordinates": coordinates,
            "notes": notes,
        })

    def clock_out(self, entry_id: int, *, coordinates: dict | None = None):
        return self.request("POST", f"/api/time-entries/{entry_id}/clock-out", {"coordinates": coordinates})

    def create_till_verification(
        self,
        shift_id: int,
        expected_amount_cents: int,
        actual_amount_cents: int,
        *,
        notes: str | None = None,
    ):
        return self.request("POST", "/api/till-verifications", {
            "shift_id": shift_id,
            "expected_amount_cents": expected_amount_cents,
            "actual_amount_cents": actual_amount_cents,
            "notes": notes,
        })

    def verify_till_verification(self, verification_id: int):
        return self.request("PATCH", f"/api/till-verifications/{verification_id}/verify")

    def send_message(self, content: str, receiver_id: int | None = None):
        return self.request("POST", "/api/messages", {"content": content, "receiver_id": receiver_id})
