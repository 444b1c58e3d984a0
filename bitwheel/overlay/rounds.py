"""
라운드 상태 머신.

INACTIVE → ACTIVE (카운트다운 진행) → INACTIVE
회전 중에 시간이 다 되면 ENDING_DEFERRED 로 두고, 회전 결과가 나온 뒤 settle() 에서 마무리.
DROP 이 나오면 보류된 timeout 은 버리고 drop 결과를 보여줌.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

from bitwheel.config import DEFAULT_ROUND_DURATION_SEC
from bitwheel.overlay.scheduler import Handle, Scheduler

logger = logging.getLogger(__name__)

TICK_SEC = 1.0
DANGER_SEC = 30


class RoundPhase(str, Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"
    ENDING_DEFERRED = "ending_deferred"


class EndReason(str, Enum):
    TIMEOUT = "timeout"
    DROP = "drop"


class RoundController:
    """한 번에 하나의 라운드만 진행. 라운드 종료 결과는 라운드당 최대 1회 표시."""

    def __init__(
        self,
        scheduler: Scheduler,
        duration_sec: int = DEFAULT_ROUND_DURATION_SEC,
        is_spinning: Callable[[], bool] = lambda: False,
        on_start: Optional[Callable[[], None]] = None,
        on_result: Optional[Callable[[EndReason], None]] = None,
    ):
        self.scheduler = scheduler
        self.duration_sec = duration_sec
        self.is_spinning = is_spinning
        self.on_start = on_start
        self.on_result = on_result

        self.phase = RoundPhase.INACTIVE
        self.remaining = 0
        self.pending_end: Optional[EndReason] = None
        self.rounds_started = 0
        self._countdown: Optional[Handle] = None
        self._result_shown = True  # 아직 시작한 라운드 없음

    @property
    def active(self) -> bool:
        return self.phase == RoundPhase.ACTIVE

    def start(self) -> None:
        self._cancel_countdown()
        self.pending_end = None
        self._result_shown = False
        if self.on_start:
            self.on_start()
        self.remaining = self.duration_sec
        self.phase = RoundPhase.ACTIVE
        self.rounds_started += 1
        self._countdown = self.scheduler.call_later(TICK_SEC, self._tick)
        logger.info("라운드 시작 (#%d, %d초)", self.rounds_started, self.duration_sec)

    def _tick(self) -> None:
        self._countdown = None
        self.remaining -= 1
        if self.remaining <= 0:
            self.remaining = 0
            self.end(EndReason.TIMEOUT)
            return
        self._countdown = self.scheduler.call_later(TICK_SEC, self._tick)

    def end(self, reason: EndReason) -> None:
        self._cancel_countdown()
        if reason == EndReason.TIMEOUT and self.is_spinning():
            # 회전 결과와 어긋난 종료 화면을 띄우지 않도록 보류
            self.phase = RoundPhase.ENDING_DEFERRED
            self.pending_end = EndReason.TIMEOUT
            logger.info("라운드 시간 종료, 회전 완료까지 보류")
            return
        self.phase = RoundPhase.INACTIVE
        self.pending_end = None
        logger.info("라운드 종료: %s", reason.value)
        self._show(reason)

    def settle(self, landed_drop: bool) -> Optional[EndReason]:
        """
        회전 결과가 나온 직후 호출.

        Returns:
            이번 호출로 라운드가 끝났으면 그 사유, 라운드가 계속되면 None
        """
        if landed_drop:
            self.pending_end = None
            self.end(EndReason.DROP)
            return EndReason.DROP
        if self.pending_end == EndReason.TIMEOUT:
            self.pending_end = None
            self.phase = RoundPhase.INACTIVE
            logger.info("보류된 라운드 종료 처리: timeout")
            self._show(EndReason.TIMEOUT)
            return EndReason.TIMEOUT
        return None

    def timer_text(self) -> str:
        if not self.active:
            return ""
        mins, secs = divmod(max(self.remaining, 0), 60)
        return f"{mins}:{secs:02d}"

    @property
    def danger(self) -> bool:
        return self.active and self.remaining <= DANGER_SEC

    def _show(self, reason: EndReason) -> None:
        if self._result_shown:
            logger.debug("라운드 결과 이미 표시됨, 무시: %s", reason.value)
            return
        self._result_shown = True
        if self.on_result:
            self.on_result(reason)

    def _cancel_countdown(self) -> None:
        if self._countdown is not None:
            self._countdown.cancel()
            self._countdown = None
