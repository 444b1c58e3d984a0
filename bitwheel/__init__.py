"""
bitwheel: 비트 후원 → 룰렛 회전 방송 오버레이.

- relay: Twitch EventSub 웹훅 수신, Socket.IO 브로드캐스트
- overlay: 회전 큐, 라운드 타이머, 룰렛 애니메이션, OBS 브라우저 소스 페이지
"""

__version__ = "0.1.0"
