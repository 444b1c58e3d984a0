"""
릴레이 ↔ 오버레이 이벤트 모델.

- 서버→클라이언트: newSpin {donor, bits, spins, message}, startRound {}
- 클라이언트→서버: spinComplete {result}
- Twitch EventSub 웹훅 envelope (channel.cheer)
모든 페이로드는 pydantic 으로 검증하고, 형식이 맞지 않으면 거절(ValidationError).
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from bitwheel.config import DEFAULT_BITS_PER_SPIN

NEW_SPIN = "newSpin"
START_ROUND = "startRound"
SPIN_COMPLETE = "spinComplete"

ANONYMOUS_DONOR = "Anonymous"


def spin_count(bits: int, bits_per_spin: int = DEFAULT_BITS_PER_SPIN) -> int:
    """비트 → 회전 수 (내림). 0~99 비트는 0회."""
    if bits < 0:
        raise ValueError(f"bits must be >= 0, got {bits}")
    return bits // bits_per_spin


class SpinRequest(BaseModel):
    """후원 1건 = spins 회의 룰렛 요청"""
    model_config = ConfigDict(frozen=True)

    donor: str
    bits: int = Field(ge=0)
    spins: int = Field(ge=0)
    message: str = ""

    @classmethod
    def from_bits(
        cls,
        donor: str,
        bits: int,
        message: str = "",
        bits_per_spin: int = DEFAULT_BITS_PER_SPIN,
    ) -> "SpinRequest":
        return cls(donor=donor, bits=bits, spins=spin_count(bits, bits_per_spin), message=message)


class SpinComplete(BaseModel):
    """오버레이가 돌려주는 결과 보고 (릴레이는 로그만 남김)"""
    result: str = Field(min_length=1)


class ManualSpinBody(BaseModel):
    """POST /api/test-spin 본문. bits 생략 또는 0 이면 100."""
    donor: Optional[str] = None
    bits: Optional[int] = Field(default=None, ge=0)


class MessageType(str, Enum):
    """Twitch-Eventsub-Message-Type 헤더 값"""
    VERIFICATION = "webhook_callback_verification"
    NOTIFICATION = "notification"
    REVOCATION = "revocation"


class CheerEvent(BaseModel):
    """channel.cheer 이벤트. 익명 후원은 is_anonymous=true, user_name 이 null."""
    model_config = ConfigDict(extra="allow")

    bits: int = Field(ge=0)
    is_anonymous: bool = False
    user_name: Optional[str] = None
    message: Optional[str] = None


class EventSubEnvelope(BaseModel):
    """웹훅 본문 envelope. 메시지 타입에 따라 challenge 또는 event 가 채워짐."""
    model_config = ConfigDict(extra="allow")

    subscription: Dict[str, Any] = Field(default_factory=dict)
    challenge: Optional[str] = None
    event: Optional[CheerEvent] = None
