"""
오버레이 엔진: 회전 큐 + 라운드 + 룰렛 애니메이션 + 후원자 집계.

모든 메서드는 하나의 이벤트 루프(스케줄러 콜백, Socket.IO 핸들러)에서만 호출.
- handle_new_spin: 큐 적재 → (대기 중이면) 라운드 시작 → 집계 → 회전
- handle_start_round: 수동 라운드 시작 (회전/라운드 없음 + 큐 있음일 때만)
- 회전 완료: spinComplete 보고 → DROP 이면 라운드 종료, 아니면 잠시 후 다음 회전
"""

from __future__ import annotations

import logging
import random
from collections import deque
from typing import Any, Callable, Deque, Dict, Optional

from pydantic import ValidationError

from bitwheel.config import OverlaySettings
from bitwheel.events import SpinRequest
from bitwheel.overlay.ledger import DonorLedger
from bitwheel.overlay.rounds import EndReason, RoundController
from bitwheel.overlay.scheduler import Handle, Scheduler
from bitwheel.overlay.storage import QUEUE_KEY, JsonStore
from bitwheel.overlay.wheel import (
    KEEP_CHAR,
    Segment,
    SpinAnimation,
    random_total_rotation,
    segments_for,
    winning_segment,
)

logger = logging.getLogger(__name__)

KEEP_RESULT_SEC = 1.8
NEXT_SPIN_DELAY_SEC = 2.0
ROUND_RESULT_SEC = 8.0

WIN_TEXT = "TIME'S UP!\nYOU WIN! Keep it!"
DROP_TEXT = "ROUND OVER\nDROP IT!"


def donor_banner(spin: SpinRequest) -> str:
    plural = "s" if spin.spins > 1 else ""
    return f"{spin.donor} donated {spin.bits} bits! ({spin.spins} spin{plural})"


class OverlayEngine:
    def __init__(
        self,
        scheduler: Scheduler,
        settings: Optional[OverlaySettings] = None,
        store: Optional[JsonStore] = None,
        rng: Optional[random.Random] = None,
        on_spin_complete: Optional[Callable[[str], Any]] = None,
    ):
        """
        Args:
            scheduler: 타이머/프레임 예약 (AsyncioScheduler 또는 ManualScheduler)
            settings: 오버레이 설정 (None 이면 기본값)
            store: 로컬 저장소 (None 이면 settings.state_file)
            rng: 회전량 난수원 (테스트에서 고정값 주입)
            on_spin_complete: 회전 결과 라벨 보고 콜백 (릴레이로 spinComplete 전송)
        """
        self.scheduler = scheduler
        self.settings = settings or OverlaySettings()
        self.store = store if store is not None else JsonStore(self.settings.state_file)
        self.rng = rng or random.Random()
        self.on_spin_complete = on_spin_complete

        self.segments = segments_for(self.settings.wheel_variant)
        self.ledger: Optional[DonorLedger] = DonorLedger(self.store) if self.settings.donor_ledger else None
        self.queue: Deque[SpinRequest] = deque()
        self.rounds = RoundController(
            scheduler,
            duration_sec=self.settings.round_duration_sec,
            is_spinning=lambda: self.is_spinning,
            on_start=self._on_round_start,
            on_result=self._on_round_result,
        )

        self.rotation = 0.0
        self.animation: Optional[SpinAnimation] = None
        self.last_segment: Optional[Segment] = None
        self.spins_completed = 0
        self.current_donor = ""
        self.result: Optional[Dict[str, str]] = None
        self._result_handle: Optional[Handle] = None
        self._donor_clear_handle: Optional[Handle] = None

    @property
    def is_spinning(self) -> bool:
        return self.animation is not None

    @property
    def spin_duration(self) -> float:
        return self.settings.spin_duration_ms / 1000

    # ── 저장/복원 ─────────────────────────────────────────────

    def load(self) -> None:
        """저장된 누적 후원 합계와 대기 큐 복원 (화면의 대기 수 유지용)"""
        if self.ledger:
            self.ledger.load()
        saved = self.store.get(QUEUE_KEY) or []
        if not isinstance(saved, list):
            return
        for item in saved:
            try:
                self.queue.append(SpinRequest.model_validate(item))
            except ValidationError as e:
                logger.debug("저장된 큐 항목 무시: %s", e)
        if self.queue:
            logger.info("저장된 대기 회전 %d개 복원", len(self.queue))

    def _persist_queue(self) -> None:
        self.store.set(QUEUE_KEY, [spin.model_dump() for spin in self.queue])

    # ── 입력 이벤트 ───────────────────────────────────────────

    def handle_new_spin(self, spin: SpinRequest) -> None:
        if spin.spins <= 0:
            logger.debug("회전 수 0 요청 무시: %s", spin.donor)
            return
        logger.info("새 회전 요청: %s %d bits (%d회)", spin.donor, spin.bits, spin.spins)

        for _ in range(spin.spins):
            self.queue.append(spin)
        self._set_donor(donor_banner(spin))

        # 집계 전에 라운드를 시작해야 라운드 합계 초기화가 먼저 일어남
        if not self.is_spinning and not self.rounds.active:
            self.rounds.start()

        if self.ledger:
            self.ledger.add(spin.donor, spin.bits)
        self._persist_queue()

        if not self.is_spinning:
            self._spin_next()

    def handle_start_round(self) -> bool:
        """수동 라운드 시작. 시작했으면 True."""
        if self.rounds.active or self.is_spinning:
            return False
        if not self.queue:
            logger.warning("라운드 시작 신호를 받았지만 대기 큐가 비어 있음")
            return False
        logger.info("수동 라운드 시작, 대기 큐 %d개", len(self.queue))
        self.rounds.start()
        self._spin_next()
        return True

    # ── 회전 ─────────────────────────────────────────────────

    def _spin_next(self) -> None:
        self.queue.popleft()
        self._persist_queue()
        self._spin()

    def _spin(self) -> None:
        if self.is_spinning:
            return
        total = random_total_rotation(self.rng)
        self.animation = SpinAnimation(
            self.scheduler,
            start_rotation=self.rotation,
            total_rotation=total,
            duration=self.spin_duration,
            on_frame=self._on_frame,
            on_done=self._on_spin_done,
        )
        self.animation.start()

    def _on_frame(self, rotation: float) -> None:
        self.rotation = rotation

    def _on_spin_done(self, rotation: float) -> None:
        self.animation = None
        self.rotation = rotation
        segment = winning_segment(rotation, self.segments)
        self.last_segment = segment
        self.spins_completed += 1
        logger.info("회전 결과: %s (남은 대기 %d)", segment.text, len(self.queue))

        if self.on_spin_complete:
            self.on_spin_complete(segment.text)

        if self.rounds.settle(segment.is_drop) is not None:
            return

        kind = "keep" if segment == KEEP_CHAR else "share"
        self._show_result(segment.text, kind, KEEP_RESULT_SEC)
        self.scheduler.call_later(NEXT_SPIN_DELAY_SEC, self._continue_queue)

    def _continue_queue(self) -> None:
        if self.is_spinning:
            # 대기 시간 중 새 후원이 먼저 회전을 시작함. 그 회전이 끝나면 이어서 진행.
            return
        if self.rounds.active and self.queue:
            self._spin_next()
        else:
            self._set_donor("")

    # ── 라운드 콜백 ───────────────────────────────────────────

    def _on_round_start(self) -> None:
        if self.ledger:
            self.ledger.reset_round()

    def _on_round_result(self, reason: EndReason) -> None:
        if reason == EndReason.TIMEOUT:
            self._show_result(WIN_TEXT, "win", ROUND_RESULT_SEC)
        else:
            self._show_result(DROP_TEXT, "drop", ROUND_RESULT_SEC)
        self._cancel(self._donor_clear_handle)
        self._donor_clear_handle = self.scheduler.call_later(ROUND_RESULT_SEC, lambda: self._set_donor(""))

    # ── 표시 상태 ─────────────────────────────────────────────

    def _set_donor(self, text: str) -> None:
        self._cancel(self._donor_clear_handle)
        self._donor_clear_handle = None
        self.current_donor = text

    def _show_result(self, text: str, kind: str, duration: float) -> None:
        self._cancel(self._result_handle)
        self.result = {"text": text, "kind": kind}
        self._result_handle = self.scheduler.call_later(duration, self._hide_result)

    def _hide_result(self) -> None:
        self._result_handle = None
        self.result = None

    @staticmethod
    def _cancel(handle: Optional[Handle]) -> None:
        if handle is not None:
            handle.cancel()

    def snapshot(self) -> Dict[str, Any]:
        """/api/state 응답용 표시 상태"""
        spin = None
        if self.animation is not None and self.animation.started_at is not None:
            spin = {
                "start_rotation": self.animation.start_rotation,
                "total_rotation": self.animation.total_rotation,
                "duration_ms": self.settings.spin_duration_ms,
                "elapsed_ms": int((self.scheduler.now() - self.animation.started_at) * 1000),
            }
        return {
            "rotation": self.rotation,
            "spin": spin,
            "segments": [{"text": s.text, "color": s.color} for s in self.segments],
            "round": self.rounds.phase.value,
            "timer": {
                "text": self.rounds.timer_text(),
                "remaining": self.rounds.remaining,
                "danger": self.rounds.danger,
            },
            "result": self.result,
            "current_donor": self.current_donor,
            "queue_size": len(self.queue),
            "ledger_enabled": self.ledger is not None,
            "donors": self.ledger.table() if self.ledger else [],
        }
