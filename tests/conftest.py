import asyncio
from datetime import datetime

import pytest

from frick.authorization import AuthorizationGate
from frick.engine import BlockingSessionEngine
from frick.errors import ScanFailed, ShieldError
from frick.store import KeyValueStore

TAG_PHRASE = "FRICK!!"
START = datetime(2024, 5, 1, 9, 0, 0)


class RecordingShield:
    """Records every apply call; can be told to fail."""

    def __init__(self):
        self.calls: list[tuple[frozenset, frozenset, bool]] = []
        self.fail = False

    def apply(self, target_apps, target_categories, blocking):
        self.calls.append((frozenset(target_apps), frozenset(target_categories), blocking))
        if self.fail:
            raise ShieldError("platform refused")

    @property
    def last(self):
        return self.calls[-1]


class ScriptedTag:
    """Returns queued payloads from scan(); an exception in the queue is raised."""

    def __init__(self, *payloads):
        self.payloads = list(payloads)
        self.written: list[str] = []
        self.write_ok = True

    async def scan(self) -> str:
        await asyncio.sleep(0)
        item = self.payloads.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def write(self, payload: str) -> bool:
        if self.write_ok:
            self.written.append(payload)
        return self.write_ok


class FakeClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def make_gate(granted: bool = True) -> AuthorizationGate:
    async def request_permission() -> bool:
        return granted

    gate = AuthorizationGate(request_permission)
    asyncio.run(gate.request_authorization())
    return gate


@pytest.fixture
def state_path(tmp_path):
    return tmp_path / "state.json"


@pytest.fixture
def store(state_path):
    return KeyValueStore(state_path)


@pytest.fixture
def shield():
    return RecordingShield()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine(store, shield, clock):
    return BlockingSessionEngine(
        store, shield, gate=make_gate(True), tag_phrase=TAG_PHRASE, clock=clock
    )


@pytest.fixture
def scan_failure():
    return ScanFailed("reader timed out")
