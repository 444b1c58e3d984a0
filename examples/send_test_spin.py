"""
릴레이에 테스트 회전 요청 / 서명된 가짜 웹훅 전송

사용 방법:
  python examples/send_test_spin.py                 → /api/test-spin (TestUser, 100 bits)
  python examples/send_test_spin.py Ada 250         → /api/test-spin (Ada, 250 bits)
  python examples/send_test_spin.py Ada 250 --webhook
      → EVENTSUB_SECRET 으로 서명한 channel.cheer 알림을 /webhooks/callback 으로 전송
"""

import asyncio
import json
import os
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import httpx
from dotenv import load_dotenv

from bitwheel.relay.signature import (
    HEADER_MESSAGE_ID,
    HEADER_MESSAGE_TYPE,
    HEADER_SIGNATURE,
    HEADER_TIMESTAMP,
    compute_signature,
)

load_dotenv(Path(__file__).resolve().parent.parent / ".env")


async def main():
    args = [a for a in sys.argv[1:] if not a.startswith("--")]
    use_webhook = "--webhook" in sys.argv
    donor = args[0] if args else "TestUser"
    bits = int(args[1]) if len(args) > 1 else 100
    base = f"http://localhost:{os.getenv('PORT', '3000')}"

    async with httpx.AsyncClient(timeout=10.0) as client:
        if not use_webhook:
            response = await client.post(f"{base}/api/test-spin", json={"donor": donor, "bits": bits})
            print(f"{response.status_code} {response.text}")
            return

        secret = os.getenv("EVENTSUB_SECRET")
        if not secret:
            print("❌ .env에 EVENTSUB_SECRET을 설정해주세요.")
            return
        body = json.dumps({
            "subscription": {"type": "channel.cheer", "version": "1"},
            "event": {"user_name": donor, "bits": bits, "message": "cheer test"},
        }).encode("utf-8")
        message_id = str(uuid.uuid4())
        timestamp = datetime.now(timezone.utc).isoformat()
        headers = {
            "Content-Type": "application/json",
            HEADER_MESSAGE_ID: message_id,
            HEADER_TIMESTAMP: timestamp,
            HEADER_MESSAGE_TYPE: "notification",
            HEADER_SIGNATURE: compute_signature(secret, message_id, timestamp, body),
        }
        response = await client.post(f"{base}/webhooks/callback", content=body, headers=headers)
        print(f"{response.status_code} {response.text}")


if __name__ == "__main__":
    asyncio.run(main())
