"""
오버레이 프로세스 실행: 엔진 + 릴레이 Socket.IO 클라이언트 + 오버레이 페이지 서버를 한 이벤트 루프에서 구동.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import uvicorn

from bitwheel.config import OverlaySettings
from bitwheel.overlay.client import RelaySocketClient
from bitwheel.overlay.engine import OverlayEngine
from bitwheel.overlay.scheduler import AsyncioScheduler
from bitwheel.overlay.server import create_app

logger = logging.getLogger(__name__)


async def run(settings: Optional[OverlaySettings] = None, host: str = "127.0.0.1") -> None:
    settings = settings or OverlaySettings.from_env()
    scheduler = AsyncioScheduler(asyncio.get_running_loop())
    engine = OverlayEngine(scheduler, settings)
    engine.load()

    client = RelaySocketClient(settings.relay_url, engine)
    engine.on_spin_complete = client.report_spin_complete

    app = create_app(engine, settings.relay_url)
    server = uvicorn.Server(uvicorn.Config(app, host=host, port=settings.port, log_level="warning"))

    logger.info("오버레이 시작: http://%s:%d/ (릴레이 %s)", host, settings.port, settings.relay_url)
    client_task = asyncio.create_task(client.start())
    try:
        await server.serve()
    finally:
        client_task.cancel()
        try:
            await client_task
        except asyncio.CancelledError:
            pass
        await client.stop()
