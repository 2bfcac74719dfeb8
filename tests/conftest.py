import asyncio
import heapq
import itertools
from typing import Any, Awaitable, Callable, List, Optional, Tuple

import pytest

from kiosk.config import KioskTimings, Settings
from kiosk.errors import RelayTransportError
from kiosk.services.queue_store import LocalQueueStore
from kiosk.services.questions import DEFAULT_QUESTIONS, build_survey
from kiosk.services.runtime import KioskRuntime
from kiosk.services.storage import LocalStorage


# ---------- Manual clock ----------

class FakeHandle:
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Deterministic stand-in for the event loop's call_later / create_task."""

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: List[Tuple[float, int, FakeHandle, Callable[[], Any]]] = []
        self._seq = itertools.count()
        self.spawned: List[Awaitable[Any]] = []

    def call_later(self, delay: float, callback: Callable[[], Any]) -> FakeHandle:
        handle = FakeHandle()
        heapq.heappush(self._queue, (self.now + delay, next(self._seq), handle, callback))
        return handle

    def spawn(self, coro: Awaitable[Any]) -> Awaitable[Any]:
        self.spawned.append(coro)
        return coro

    def pending(self) -> int:
        return sum(1 for _, _, h, _ in self._queue if not h.cancelled)

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while self._queue and self._queue[0][0] <= target:
            when, _, handle, callback = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self.now = when
            callback()
        self.now = target

    def run_spawned(self) -> list:
        results = []
        while self.spawned:
            results.append(asyncio.run(self.spawned.pop(0)))
        return results

    def discard_spawned(self) -> None:
        while self.spawned:
            self.spawned.pop(0).close()


# ---------- Relay stub ----------

class StubRelay:
    """In-memory relay: accepts everything unless told otherwise."""

    def __init__(self) -> None:
        self.calls: List[List[dict]] = []
        self.down = False
        self.reject: set = set()

    def send(self, records: List[dict]) -> List[str]:
        self.calls.append([dict(r) for r in records])
        if self.down:
            raise RelayTransportError("relay unreachable: connection refused")
        return [r["id"] for r in records if r["id"] not in self.reject]


# ---------- Fixtures ----------

@pytest.fixture
def scheduler():
    s = FakeScheduler()
    yield s
    s.discard_spawned()


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(base_dir=str(tmp_path / "data"))


@pytest.fixture
def queue(storage):
    return LocalQueueStore(storage)


@pytest.fixture
def survey():
    return build_survey(DEFAULT_QUESTIONS)


@pytest.fixture
def relay():
    return StubRelay()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        storage_backend="local",
        data_dir=str(tmp_path / "data"),
        s3_bucket="unused",
        aws_region="unused",
        queue_key="surveySubmissions.json",
        questions_path=None,
        relay_url="http://relay.test/api/submit-survey",
        relay_timeout_seconds=1.0,
        sheet_name="Sheet1",
        cors_origins=[],
        log_level="INFO",
        log_json=False,
        timings=KioskTimings(),
    )


@pytest.fixture
def runtime(settings, scheduler, survey, storage, relay) -> KioskRuntime:
    rt = KioskRuntime(settings, scheduler, survey, storage, client=relay)
    rt.start()
    yield rt
    rt.stop()


@pytest.fixture
def answer_all():
    """Walks the built-in survey to the end; returns the final advance outcome."""
    def walk(controller, name: Optional[str] = "Ada"):
        controller.dispatch("input", {"value": "Loved the gardens"})
        controller.advance()
        controller.dispatch("change", {"value": "Happy"})
        controller.dispatch("change", {"value": "Canada"})
        controller.dispatch("change", {"value": "18-40"})
        controller.dispatch("input", {"field": "name", "value": name})
        return controller.advance()
    return walk
