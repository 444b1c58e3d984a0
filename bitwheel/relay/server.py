"""
릴레이 서버: Twitch EventSub 웹훅(비트 후원) 수신 → 회전 수 계산 → Socket.IO 로 newSpin 브로드캐스트.

- POST /webhooks/callback : 서명 검증 후 verification / notification / revocation 처리
- POST /api/test-spin     : 인증 없는 수동 테스트용 회전 요청
- POST /api/start-round   : 대기 중인 오버레이에 라운드 시작 신호
- GET  /health            : 생존 확인
실행: python examples/relay_server.py (uvicorn 으로 create_asgi_app() 서빙)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
import socketio
from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError

from bitwheel.config import RelaySettings
from bitwheel.events import (
    ANONYMOUS_DONOR,
    NEW_SPIN,
    SPIN_COMPLETE,
    START_ROUND,
    EventSubEnvelope,
    ManualSpinBody,
    MessageType,
    SpinComplete,
    SpinRequest,
)
from bitwheel.relay.signature import (
    HEADER_MESSAGE_ID,
    HEADER_MESSAGE_TYPE,
    HEADER_SIGNATURE,
    HEADER_TIMESTAMP,
    verify_signature,
)
from bitwheel.relay.twitch_auth import TwitchAuth

logger = logging.getLogger(__name__)

TEST_DONOR = "TestUser"
TEST_BITS = 100
TEST_MESSAGE = "Test spin!"


class SocketBroadcaster:
    """Socket.IO 전체 브로드캐스트 (전달 보장/ack 없음)"""

    def __init__(self, sio: socketio.AsyncServer):
        self.sio = sio

    async def new_spin(self, spin: SpinRequest) -> None:
        await self.sio.emit(NEW_SPIN, spin.model_dump())

    async def start_round(self) -> None:
        await self.sio.emit(START_ROUND, {})


@dataclass
class RelayState:
    """프로세스 단위 릴레이 상태. 시작 시 생성, app.state.relay 로 핸들러에 주입."""
    settings: RelaySettings
    auth: TwitchAuth
    sio: socketio.AsyncServer
    broadcaster: Any


def _register_socket_handlers(sio: socketio.AsyncServer) -> None:
    async def on_connect(sid, environ, auth=None):
        logger.info("Socket.IO 클라이언트 연결: %s", sid)

    async def on_disconnect(sid, *args):
        logger.info("Socket.IO 클라이언트 연결 종료: %s", sid)

    async def on_spin_complete(sid, data):
        try:
            report = SpinComplete.model_validate(data)
        except ValidationError as e:
            logger.warning("spinComplete 페이로드 형식 오류 (sid=%s): %s", sid, e)
            return
        logger.info("룰렛 결과 (sid=%s): %s", sid, report.result)

    sio.on("connect", on_connect)
    sio.on("disconnect", on_disconnect)
    sio.on(SPIN_COMPLETE, on_spin_complete)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    relay: RelayState = app.state.relay
    try:
        await relay.auth.fetch_app_token()
    except (httpx.HTTPError, ValueError) as e:
        # 토큰 없이도 서버는 계속 동작 (웹훅/테스트 경로는 토큰을 쓰지 않음)
        logger.error("Twitch Access Token 발급 실패, EventSub 구독이 동작하지 않을 수 있음: %s", e)
    yield


def create_app(
    settings: Optional[RelaySettings] = None,
    auth: Optional[TwitchAuth] = None,
    sio: Optional[socketio.AsyncServer] = None,
) -> FastAPI:
    """릴레이 FastAPI 앱 생성. Socket.IO 서버/브로드캐스터는 app.state.relay 에 보관."""
    settings = settings or RelaySettings.from_env()
    auth = auth or TwitchAuth(settings.client_id, settings.client_secret)
    sio = sio or socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins="*",
        logger=False,
        engineio_logger=False,
    )
    _register_socket_handlers(sio)

    app = FastAPI(title="bitwheel relay", docs_url=None, redoc_url=None, lifespan=_lifespan)
    app.state.relay = RelayState(
        settings=settings,
        auth=auth,
        sio=sio,
        broadcaster=SocketBroadcaster(sio),
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.post("/webhooks/callback")
    async def webhook_callback(request: Request):
        """Twitch EventSub 콜백. 서명 검증은 원본 바이트 그대로 수행."""
        relay: RelayState = request.app.state.relay
        raw_body = await request.body()
        headers = request.headers

        message_id = headers.get(HEADER_MESSAGE_ID)
        if not verify_signature(
            relay.settings.eventsub_secret,
            message_id,
            headers.get(HEADER_TIMESTAMP),
            raw_body,
            headers.get(HEADER_SIGNATURE),
        ):
            logger.warning("웹훅 서명 불일치 (message_id=%s)", message_id)
            return PlainTextResponse("Forbidden", status_code=403)

        try:
            envelope = EventSubEnvelope.model_validate_json(raw_body)
        except ValidationError as e:
            logger.warning("웹훅 본문 형식 오류 (message_id=%s): %s", message_id, e)
            raise HTTPException(status_code=400, detail="Invalid EventSub payload")

        message_type = headers.get(HEADER_MESSAGE_TYPE, "")

        if message_type == MessageType.VERIFICATION.value:
            if envelope.challenge is None:
                raise HTTPException(status_code=400, detail="Missing challenge")
            logger.info("웹훅 verification 요청 수신")
            return PlainTextResponse(envelope.challenge)

        if message_type == MessageType.NOTIFICATION.value:
            event = envelope.event
            if event is None:
                raise HTTPException(status_code=400, detail="Missing event")
            spin = SpinRequest.from_bits(
                donor=ANONYMOUS_DONOR if event.is_anonymous else (event.user_name or ANONYMOUS_DONOR),
                bits=event.bits,
                message=event.message or "",
                bits_per_spin=relay.settings.bits_per_spin,
            )
            logger.info("비트 후원 수신: %s %d bits = %d spin(s)", spin.donor, spin.bits, spin.spins)
            if spin.spins > 0:
                await relay.broadcaster.new_spin(spin)
            return PlainTextResponse("OK")

        if message_type == MessageType.REVOCATION.value:
            logger.warning("EventSub 구독 취소됨: %s", envelope.subscription)
            return PlainTextResponse("OK")

        logger.debug("알 수 없는 메시지 타입 무시: %r", message_type)
        return PlainTextResponse("OK")

    @app.post("/api/test-spin")
    async def test_spin(request: Request, body: Optional[ManualSpinBody] = Body(default=None)):
        """실제 비트 없이 회전 테스트. 인증 없음 (운영자용)."""
        relay: RelayState = request.app.state.relay
        body = body or ManualSpinBody()
        spin = SpinRequest.from_bits(
            donor=body.donor or TEST_DONOR,
            bits=body.bits or TEST_BITS,
            message=TEST_MESSAGE,
            bits_per_spin=relay.settings.bits_per_spin,
        )
        logger.info("TEST: %s - %d bits = %d spin(s)", spin.donor, spin.bits, spin.spins)
        await relay.broadcaster.new_spin(spin)
        return JSONResponse({"success": True, "spins": spin.spins})

    @app.post("/api/start-round")
    async def start_round(request: Request):
        """대기 큐가 있는 오버레이에 라운드 수동 시작 신호."""
        relay: RelayState = request.app.state.relay
        logger.info("라운드 수동 시작 신호 브로드캐스트")
        await relay.broadcaster.start_round()
        return JSONResponse({"success": True})

    @app.get("/health")
    def health():
        timestamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
        return JSONResponse({"status": "ok", "timestamp": timestamp})

    return app


def create_asgi_app(app: Optional[FastAPI] = None) -> socketio.ASGIApp:
    """Socket.IO 를 앞단에 두고 나머지 요청은 FastAPI 로 넘기는 ASGI 앱"""
    app = app or create_app()
    relay: RelayState = app.state.relay
    return socketio.ASGIApp(relay.sio, other_asgi_app=app)
