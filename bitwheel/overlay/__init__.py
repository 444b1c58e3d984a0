"""
방송 오버레이: 릴레이의 newSpin 을 큐에 쌓고 라운드/룰렛을 진행, OBS 브라우저 소스로 노출.

- OverlayEngine: 큐, 라운드 상태 머신, 회전 애니메이션, 후원자 집계
- OBS 에서 브라우저 소스 URL 을 http://127.0.0.1:8765/?obs 로 설정.
"""

from bitwheel.overlay.engine import OverlayEngine
from bitwheel.overlay.rounds import EndReason, RoundController, RoundPhase
from bitwheel.overlay.scheduler import AsyncioScheduler, ManualScheduler

__all__ = [
    "OverlayEngine",
    "EndReason",
    "RoundController",
    "RoundPhase",
    "AsyncioScheduler",
    "ManualScheduler",
]
