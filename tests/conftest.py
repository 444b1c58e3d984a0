import random
from typing import Any, Dict, List

import pytest

from bitwheel.config import OverlaySettings, RelaySettings
from bitwheel.overlay.engine import OverlayEngine
from bitwheel.overlay.scheduler import ManualScheduler
from bitwheel.overlay.storage import JsonStore
from bitwheel.overlay.wheel import POINTER_ANGLE, SEGMENT_COUNT, TWO_PI

SECRET = "s3cr3t-eventsub"


class MemoryStore(JsonStore):
    """파일 대신 dict 에 저장하고, 쓰기 이력을 남기는 저장소"""

    def __init__(self, initial: Dict[str, Any] = None):
        super().__init__(None)
        self.data: Dict[str, Any] = dict(initial or {})
        self.writes: List[tuple] = []

    def get(self, key, default=None):
        return self.data.get(key, default)

    def set(self, key, value):
        self.data[key] = value
        self.writes.append((key, value))

    def history(self, key):
        return [value for k, value in self.writes if k == key]


class ScriptedRandom(random.Random):
    """random() 이 미리 정한 값을 순서대로 돌려줌"""

    def __init__(self, values):
        super().__init__(0)
        self.values = list(values)

    def random(self):
        return self.values.pop(0)


def fraction_for_segment(index, start_rotation=0.0, segment_count=SEGMENT_COUNT):
    """start_rotation 에서 돌렸을 때 index 칸 한가운데에 멈추는 random() 값"""
    per = TWO_PI / segment_count
    target = (POINTER_ANGLE - (index + 0.5) * per) % TWO_PI
    delta = (target - start_rotation) % TWO_PI
    return delta / TWO_PI / 3


class RecordingBroadcaster:
    def __init__(self):
        self.spins = []
        self.round_starts = 0

    async def new_spin(self, spin):
        self.spins.append(spin)

    async def start_round(self):
        self.round_starts += 1


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def relay_settings():
    return RelaySettings(client_id="cid", client_secret="csecret", eventsub_secret=SECRET)


@pytest.fixture
def overlay_settings(tmp_path):
    return OverlaySettings(state_file=tmp_path / "state.json")


@pytest.fixture
def make_engine(scheduler, store, overlay_settings):
    def _make(values=(), settings=None, reported=None):
        engine = OverlayEngine(
            scheduler,
            settings or overlay_settings,
            store=store,
            rng=ScriptedRandom(values),
            on_spin_complete=(reported.append if reported is not None else None),
        )
        return engine
    return _make
