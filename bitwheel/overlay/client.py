"""
릴레이 Socket.IO 클라이언트
newSpin / startRound 이벤트를 받아 오버레이 엔진에 넘기고, 회전 결과를 spinComplete 로 보고합니다.
"""

import asyncio
import logging
from typing import Optional, Set

import socketio
from pydantic import ValidationError
from socketio.exceptions import ConnectionError as SocketConnectionError
from socketio.exceptions import SocketIOError

from bitwheel.events import NEW_SPIN, SPIN_COMPLETE, START_ROUND, SpinComplete, SpinRequest
from bitwheel.overlay.engine import OverlayEngine

logger = logging.getLogger(__name__)


class RelaySocketClient:
    """릴레이 서버 Socket.IO 클라이언트

    재연결은 socketio 내장 기능 대신 지수 백오프로 직접 관리합니다.
    """

    def __init__(
        self,
        relay_url: str,
        engine: OverlayEngine,
        reconnect_delay: float = 5.0,
        max_reconnect_attempts: int = 10,
    ):
        """
        Args:
            relay_url: 릴레이 서버 주소 (예: http://127.0.0.1:3000)
            engine: 이벤트를 전달할 오버레이 엔진
            reconnect_delay: 재연결 지연 시간 (초)
            max_reconnect_attempts: 최대 재연결 시도 횟수
        """
        self.relay_url = relay_url
        self.engine = engine
        self.reconnect_delay = reconnect_delay
        self.max_reconnect_attempts = max_reconnect_attempts

        # 연결 상태
        self.sio: Optional[socketio.AsyncClient] = None
        self.is_connected = False
        self.reconnect_attempts = 0
        self._running = False
        self._pending: Set[asyncio.Task] = set()

    async def connect(self):
        """Socket.IO 연결"""
        try:
            self.sio = socketio.AsyncClient(
                reconnection=False,  # 수동 재연결 관리
                logger=False,
                engineio_logger=False,
            )

            # 이벤트 핸들러 등록
            self.sio.on("connect", self._on_connect)
            self.sio.on("disconnect", self._on_disconnect)
            self.sio.on(NEW_SPIN, self._on_new_spin)
            self.sio.on(START_ROUND, self._on_start_round)

            logger.info("릴레이 Socket.IO 연결 시도: %s", self.relay_url)
            await self.sio.connect(self.relay_url, transports=["websocket"])

            self.is_connected = True
            self.reconnect_attempts = 0
            logger.info("릴레이 Socket.IO 연결 성공")

        except Exception as e:
            logger.error("릴레이 연결 실패: %s", e)
            self.is_connected = False
            raise

    def _on_connect(self):
        logger.info("릴레이 Socket.IO 연결 완료")

    def _on_disconnect(self, *args):
        logger.warning("릴레이 Socket.IO 연결 종료")
        self.is_connected = False

    async def _on_new_spin(self, data):
        try:
            spin = SpinRequest.model_validate(data)
        except ValidationError as e:
            logger.warning("newSpin 페이로드 형식 오류, 무시: %s", e)
            return
        self.engine.handle_new_spin(spin)

    async def _on_start_round(self, data=None):
        if not self.engine.handle_start_round():
            logger.info("라운드 시작 신호 무시 (진행 중이거나 대기 큐 없음)")

    def report_spin_complete(self, result: str) -> None:
        """회전 결과 보고. 응답을 기다리지 않음 (릴레이는 로그만 남김)."""
        report = SpinComplete(result=result)
        task = asyncio.get_running_loop().create_task(self._emit_spin_complete(report))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _emit_spin_complete(self, report: SpinComplete):
        if not self.sio or not self.is_connected:
            logger.debug("연결 없음, spinComplete 미전송: %s", report.result)
            return
        try:
            await self.sio.emit(SPIN_COMPLETE, report.model_dump())
        except SocketIOError as e:
            logger.warning("spinComplete 전송 실패: %s", e)

    async def _reconnect(self) -> bool:
        """재연결 시도 (지수 백오프)"""
        if self.reconnect_attempts >= self.max_reconnect_attempts:
            logger.error("최대 재연결 시도 횟수 (%d) 초과", self.max_reconnect_attempts)
            return False

        delay = self.reconnect_delay * (2 ** self.reconnect_attempts)
        self.reconnect_attempts += 1

        logger.info(
            "재연결 시도 %d/%d (%s초 후)",
            self.reconnect_attempts, self.max_reconnect_attempts, delay,
        )
        await asyncio.sleep(delay)

        try:
            await self.connect()
            return True
        except Exception as e:
            logger.error("재연결 실패: %s", e)
            return False

    async def listen(self):
        """연결 유지 루프 (이벤트는 핸들러에서 처리, 끊기면 재연결)"""
        self._running = True

        while self._running:
            if not self.is_connected:
                if self.reconnect_attempts >= self.max_reconnect_attempts:
                    logger.error("릴레이 재연결 포기, 새 회전 이벤트를 받을 수 없음")
                    break
                # 실패해도 한도까지는 계속 시도 (성공하면 connect 에서 횟수 초기화)
                await self._reconnect()
                continue
            await asyncio.sleep(1)

    async def start(self):
        """클라이언트 시작. 첫 연결 실패도 재연결 루프로 넘김."""
        try:
            await self.connect()
        except (SocketConnectionError, OSError) as e:
            logger.warning("첫 연결 실패, 재연결 대기: %s", e)
        await self.listen()

    async def stop(self):
        """클라이언트 중지"""
        self._running = False
        if self.sio:
            await self.sio.disconnect()
        self.is_connected = False
        logger.info("릴레이 Socket.IO 연결 종료")
