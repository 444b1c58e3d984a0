"""
오버레이 실행 (릴레이 Socket.IO 구독 → 회전 큐/라운드/룰렛 → OBS 브라우저 소스)

실행: python examples/overlay_client.py  (프로젝트 루트에서, 릴레이 먼저 실행)
방송 오버레이: OBS에서 브라우저 소스 추가 → URL에 http://127.0.0.1:8765/?obs 입력.
설정(.env): RELAY_URL, OVERLAY_PORT, ROUND_DURATION_SEC, SPIN_DURATION_MS, WHEEL_VARIANT=standard|strict,
DONOR_LEDGER=0 이면 후원자 표 비활성화, OVERLAY_STATE_FILE (누적 후원/대기 큐 저장 위치).
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from dotenv import load_dotenv

from bitwheel.config import OverlaySettings
from bitwheel.overlay import runner
from bitwheel.utils import setup_logging

load_dotenv(Path(__file__).resolve().parent.parent / ".env")


def main():
    setup_logging()
    settings = OverlaySettings.from_env()
    print(f"방송 오버레이: http://127.0.0.1:{settings.port}/ (OBS용: ?obs), 릴레이: {settings.relay_url}")
    try:
        asyncio.run(runner.run(settings))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
