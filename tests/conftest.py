import sys
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

from arenasave.backend import InMemoryBackend  # noqa: E402
from arenasave.store import SlotStore  # noqa: E402

# 2025-03-14T12:00:00Z
START_MS = 1_741_953_600_000


class FakeClock:
    """Deterministic millisecond clock advancing by ``step`` on every read."""

    def __init__(self, start: int = START_MS, step: int = 1000) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> int:
        value = self.now
        self.now += self.step
        return value


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def store(backend: InMemoryBackend, clock: FakeClock) -> SlotStore:
    return SlotStore(backend, clock=clock)
