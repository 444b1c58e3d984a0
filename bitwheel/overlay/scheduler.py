"""
오버레이 타이머/애니메이션 프레임 예약.

라운드 카운트다운, 프레임 진행, 결과 표시 해제 등은 모두 call_later 로 예약하고
반환된 핸들의 cancel() 로 취소한다. 단일 이벤트 루프에서만 호출.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from typing import Any, Callable, List, Optional, Protocol, Tuple


class Handle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def now(self) -> float: ...

    def call_later(self, delay: float, callback: Callable[[], Any]) -> Handle: ...


class AsyncioScheduler:
    """실행 중인 asyncio 루프 기반 스케줄러 (loop.time() 기준 초 단위)"""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], Any]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, delay), callback)


class _ManualHandle:
    def __init__(self):
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """가상 시계 스케줄러. advance() 로 시간을 진행시키며 예약된 콜백을 순서대로 실행."""

    def __init__(self, start: float = 0.0):
        self._now = start
        self._seq = itertools.count()
        self._queue: List[Tuple[float, int, _ManualHandle, Callable[[], Any]]] = []

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], Any]) -> _ManualHandle:
        handle = _ManualHandle()
        heapq.heappush(self._queue, (self._now + max(0.0, delay), next(self._seq), handle, callback))
        return handle

    def pending(self) -> int:
        return sum(1 for _, _, h, _ in self._queue if not h.cancelled)

    def advance(self, seconds: float) -> None:
        """now + seconds 까지(포함) 도래한 콜백을 실행. 콜백이 새로 예약한 것도 포함."""
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            when, _, handle, callback = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = when
            callback()
        self._now = target

    def run_until_idle(self, limit: float = 3600.0) -> None:
        """예약이 남지 않을 때까지(최대 limit 초) 진행"""
        deadline = self._now + limit
        while self._queue and self._now < deadline:
            when = self._queue[0][0]
            self.advance(max(0.0, min(when, deadline) - self._now))
