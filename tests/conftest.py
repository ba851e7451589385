import threading
import time

import pytest


class FakeClient:
    """
    Stands in for GCPClient. `held` are the permissions the identity has,
    `fail_on` are permissions whose batch raises `error`, `delays` maps a
    permission to the seconds its batch waits before answering.
    """

    def __init__(self, held=(), fail_on=(), error=None, delays=None):
        self.held = set(held)
        self.fail_on = set(fail_on)
        self.error = error or ConnectionError("connection reset by peer")
        self.delays = delays or {}
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def test_iam_permissions(self, target, permissions):
        with self._lock:
            self.calls.append((target, list(permissions)))
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = max([self.delays.get(p, 0) for p in permissions] or [0])
            if delay:
                time.sleep(delay)
            if self.fail_on.intersection(permissions):
                raise self.error
            found = [p for p in permissions if p in self.held]
            return {"permissions": found} if found else {}
        finally:
            with self._lock:
                self.in_flight -= 1


@pytest.fixture
def fake_client_cls():
    return FakeClient
