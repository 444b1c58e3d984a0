"""
Twitch EventSub 웹훅 서명 검증.

참고: https://dev.twitch.tv/docs/eventsub/handling-webhook-events/#verifying-the-event-message
서명 = "sha256=" + hex(HMAC-SHA256(secret, message_id + timestamp + raw_body))
"""

import hashlib
import hmac
from typing import Optional, Union

HMAC_PREFIX = "sha256="

HEADER_MESSAGE_ID = "Twitch-Eventsub-Message-Id"
HEADER_TIMESTAMP = "Twitch-Eventsub-Message-Timestamp"
HEADER_SIGNATURE = "Twitch-Eventsub-Message-Signature"
HEADER_MESSAGE_TYPE = "Twitch-Eventsub-Message-Type"


def _to_bytes(value: Union[str, bytes]) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


def compute_signature(secret: str, message_id: str, timestamp: str, body: Union[str, bytes]) -> str:
    """헤더에 실려 오는 형식("sha256=<hex>") 그대로의 기대 서명 계산"""
    mac = hmac.new(_to_bytes(secret), digestmod=hashlib.sha256)
    mac.update(_to_bytes(message_id))
    mac.update(_to_bytes(timestamp))
    mac.update(_to_bytes(body))
    return HMAC_PREFIX + mac.hexdigest()


def verify_signature(
    secret: Optional[str],
    message_id: Optional[str],
    timestamp: Optional[str],
    body: bytes,
    signature: Optional[str],
) -> bool:
    """
    상수 시간 비교로 서명 검증.

    secret 이 설정되지 않았거나 헤더가 하나라도 빠지면 False.
    """
    if not secret or not message_id or not timestamp or not signature:
        return False
    expected = compute_signature(secret, message_id, timestamp, body)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))
