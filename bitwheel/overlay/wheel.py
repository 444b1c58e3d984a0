"""
40칸 룰렛 구성과 회전/판정 계산.

그리기는 브라우저 페이지가 담당(회전 각도 + 칸 목록만 넘김). 여기서는
- 칸 구성(standard: DROP 1칸, strict: DROP 2칸)
- ease-out 회전 곡선
- 포인터(원 상단) 기준 당첨 칸 판정
- 프레임 단위로 진행되는 회전 애니메이션
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from bitwheel.overlay.scheduler import Handle, Scheduler

TWO_PI = 2 * math.pi
POINTER_ANGLE = 3 * math.pi / 2  # 캔버스 좌표계에서 원 상단
MIN_TURNS = 5
MAX_TURNS = 8
FRAME_INTERVAL = 1 / 60


@dataclass(frozen=True)
class Segment:
    """룰렛 한 칸"""
    text: str
    color: str

    @property
    def is_drop(self) -> bool:
        return self.text == DROP.text


KEEP_CHAR = Segment("Keep Char", "#9b59b6")
KEEP_SHARED = Segment("Keep Shared", "#007bff")
DROP = Segment("DROP", "#dc3545")

SEGMENT_COUNT = 40
CENTER_INDEX = 20


def _build_segments(drop_indices: Sequence[int]) -> Tuple[Segment, ...]:
    """DROP 칸을 제외한 나머지는 Keep Char / Keep Shared 를 번갈아 배치"""
    segments = []
    keep_count = 0
    for i in range(SEGMENT_COUNT):
        if i in drop_indices:
            segments.append(DROP)
            continue
        segments.append(KEEP_CHAR if keep_count % 2 == 0 else KEEP_SHARED)
        keep_count += 1
    return tuple(segments)


STANDARD_SEGMENTS: Tuple[Segment, ...] = _build_segments((CENTER_INDEX,))
STRICT_SEGMENTS: Tuple[Segment, ...] = _build_segments((0, CENTER_INDEX))

WHEEL_VARIANTS = {
    "standard": STANDARD_SEGMENTS,
    "strict": STRICT_SEGMENTS,
}


def segments_for(variant: str) -> Tuple[Segment, ...]:
    try:
        return WHEEL_VARIANTS[variant]
    except KeyError:
        raise ValueError(f"알 수 없는 룰렛 구성: {variant!r}") from None


def ease_out_cubic(progress: float) -> float:
    """1 - (1 - p)^3, p 는 [0, 1] 로 고정"""
    p = min(max(progress, 0.0), 1.0)
    return 1 - (1 - p) ** 3


def random_total_rotation(rng: random.Random) -> float:
    """5~8 바퀴 사이 연속 균등 분포의 총 회전량 (라디안)"""
    return (MIN_TURNS + rng.random() * (MAX_TURNS - MIN_TURNS)) * TWO_PI


def winning_index(rotation: float, segment_count: int = SEGMENT_COUNT) -> int:
    """포인터에 걸린 칸 인덱스. 칸 경계는 내림으로 처리."""
    angle_per_segment = TWO_PI / segment_count
    normalized = rotation % TWO_PI
    adjusted = (POINTER_ANGLE - normalized) % TWO_PI
    # 부동소수 오차로 adjusted 가 2π 에 닿는 경우 방지
    return min(int(adjusted // angle_per_segment), segment_count - 1)


def winning_segment(rotation: float, segments: Sequence[Segment]) -> Segment:
    return segments[winning_index(rotation, len(segments))]


class SpinAnimation:
    """
    한 번의 회전 애니메이션. 시작하면 중단 없이 끝까지 진행하고
    마지막 프레임에서 on_frame(최종 각도) 후 on_done(최종 각도)을 호출.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        start_rotation: float,
        total_rotation: float,
        duration: float,
        on_frame: Callable[[float], None],
        on_done: Callable[[float], None],
    ):
        self.scheduler = scheduler
        self.start_rotation = start_rotation
        self.total_rotation = total_rotation
        self.duration = duration
        self.on_frame = on_frame
        self.on_done = on_done
        self.started_at: Optional[float] = None
        self.finished = False
        self._handle: Optional[Handle] = None

    def rotation_at(self, elapsed: float) -> float:
        progress = elapsed / self.duration if self.duration > 0 else 1.0
        return self.start_rotation + self.total_rotation * ease_out_cubic(progress)

    def start(self) -> None:
        self.started_at = self.scheduler.now()
        self._frame()

    def _frame(self) -> None:
        elapsed = self.scheduler.now() - self.started_at
        rotation = self.rotation_at(elapsed)
        self.on_frame(rotation)
        if elapsed < self.duration:
            self._handle = self.scheduler.call_later(FRAME_INTERVAL, self._frame)
            return
        self.finished = True
        self._handle = None
        self.on_done(rotation)
