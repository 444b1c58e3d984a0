"""
환경 변수 기반 설정. .env 로드는 실행 스크립트(examples/)에서 load_dotenv 로 처리.

릴레이: TWITCH_CLIENT_ID, TWITCH_CLIENT_SECRET, EVENTSUB_SECRET, PORT, RELAY_HOST, BITS_PER_SPIN
오버레이: RELAY_URL, OVERLAY_PORT, ROUND_DURATION_SEC, SPIN_DURATION_MS, WHEEL_VARIANT,
         DONOR_LEDGER, OVERLAY_STATE_FILE
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

_PROJECT_ROOT = Path(__file__).resolve().parent.parent

DEFAULT_BITS_PER_SPIN = 100
DEFAULT_ROUND_DURATION_SEC = 120
DEFAULT_SPIN_DURATION_MS = 5000


def _env_str(name: str) -> Optional[str]:
    value = (os.getenv(name) or "").strip()
    return value or None


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} 값이 정수가 아닙니다: {raw!r}") from None
    if value < minimum:
        raise ValueError(f"{name} 값은 {minimum} 이상이어야 합니다: {value}")
    return value


def _env_flag(name: str, default: bool) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw not in ("0", "false", "no", "off")


@dataclass
class RelaySettings:
    """릴레이(웹훅 수신 + 브로드캐스트) 서버 설정"""
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    eventsub_secret: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = 3000
    bits_per_spin: int = DEFAULT_BITS_PER_SPIN

    @classmethod
    def from_env(cls) -> "RelaySettings":
        return cls(
            client_id=_env_str("TWITCH_CLIENT_ID"),
            client_secret=_env_str("TWITCH_CLIENT_SECRET"),
            eventsub_secret=_env_str("EVENTSUB_SECRET"),
            host=_env_str("RELAY_HOST") or "0.0.0.0",
            port=_env_int("PORT", 3000, minimum=1),
            bits_per_spin=_env_int("BITS_PER_SPIN", DEFAULT_BITS_PER_SPIN, minimum=1),
        )


@dataclass
class OverlaySettings:
    """오버레이 클라이언트(큐/라운드/룰렛) 설정"""
    relay_url: str = "http://127.0.0.1:3000"
    port: int = 8765
    round_duration_sec: int = DEFAULT_ROUND_DURATION_SEC
    spin_duration_ms: int = DEFAULT_SPIN_DURATION_MS
    wheel_variant: str = "standard"
    donor_ledger: bool = True
    state_file: Path = _PROJECT_ROOT / "data" / "overlay_state.json"

    @classmethod
    def from_env(cls) -> "OverlaySettings":
        variant = (_env_str("WHEEL_VARIANT") or "standard").lower()
        if variant not in ("standard", "strict"):
            raise ValueError(f"WHEEL_VARIANT 는 standard 또는 strict 여야 합니다: {variant!r}")
        state_file = _env_str("OVERLAY_STATE_FILE")
        return cls(
            relay_url=(_env_str("RELAY_URL") or "http://127.0.0.1:3000").rstrip("/"),
            port=_env_int("OVERLAY_PORT", 8765, minimum=1),
            round_duration_sec=_env_int("ROUND_DURATION_SEC", DEFAULT_ROUND_DURATION_SEC, minimum=1),
            spin_duration_ms=_env_int("SPIN_DURATION_MS", DEFAULT_SPIN_DURATION_MS, minimum=1),
            wheel_variant=variant,
            donor_ledger=_env_flag("DONOR_LEDGER", True),
            state_file=Path(state_file) if state_file else cls.state_file,
        )
