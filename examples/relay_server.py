"""
릴레이 서버 실행 (Twitch EventSub 웹훅 → Socket.IO newSpin)

.env에 TWITCH_CLIENT_ID, TWITCH_CLIENT_SECRET, EVENTSUB_SECRET 설정 후 실행.
실행: python examples/relay_server.py  (프로젝트 루트에서)

- EventSub 콜백 URL: https://<공개 주소>/webhooks/callback (구독은 Twitch 쪽에서 별도 생성)
- 테스트: python examples/send_test_spin.py Ada 250
- 포트 변경 시 .env에 PORT=3000 설정.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import uvicorn
from dotenv import load_dotenv

from bitwheel.config import RelaySettings
from bitwheel.relay import create_app, create_asgi_app
from bitwheel.utils import setup_logging

load_dotenv(Path(__file__).resolve().parent.parent / ".env")


def main():
    log_dir = setup_logging()
    settings = RelaySettings.from_env()
    if not settings.eventsub_secret:
        print("⚠️ .env에 EVENTSUB_SECRET이 없습니다. 모든 웹훅이 403으로 거절됩니다.")

    app = create_asgi_app(create_app(settings))
    print(f"🚀 릴레이: http://localhost:{settings.port}  (로그: {log_dir})")
    print(f"🧪 테스트: POST http://localhost:{settings.port}/api/test-spin")
    uvicorn.run(app, host=settings.host, port=settings.port, log_level="warning")


if __name__ == "__main__":
    main()
