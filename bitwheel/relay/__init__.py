"""
릴레이 서버: Twitch EventSub 웹훅 → newSpin 브로드캐스트.
"""

from .server import RelayState, SocketBroadcaster, create_app, create_asgi_app
from .signature import compute_signature, verify_signature
from .twitch_auth import TwitchAuth, TwitchToken

__all__ = [
    "RelayState",
    "SocketBroadcaster",
    "create_app",
    "create_asgi_app",
    "compute_signature",
    "verify_signature",
    "TwitchAuth",
    "TwitchToken",
]
