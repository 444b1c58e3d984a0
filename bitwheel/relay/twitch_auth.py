"""
Twitch API 인증 유틸리티
앱 Access Token(client credentials) 발급을 담당합니다.

참고: https://dev.twitch.tv/docs/authentication/getting-tokens-oauth/#client-credentials-grant-flow
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


@dataclass
class TwitchToken:
    """Twitch 앱 Access Token 정보"""
    access_token: str
    token_type: str = "bearer"
    expires_in: int = 0  # 초 단위
    expires_at: Optional[datetime] = None  # 만료 시각

    def __post_init__(self):
        """만료 시각 자동 계산"""
        if self.expires_at is None and self.expires_in:
            self.expires_at = datetime.now() + timedelta(seconds=self.expires_in)

    def is_expired(self) -> bool:
        """토큰 만료 여부 확인 (5분 여유)"""
        if self.expires_at is None:
            return False
        return datetime.now() >= (self.expires_at - timedelta(minutes=5))


class TwitchAuth:
    """Twitch 앱 인증 클래스 (시작 시 1회 발급, 갱신 없음)"""

    TOKEN_URL = "https://id.twitch.tv/oauth2/token"

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            client_id: Twitch 애플리케이션 Client ID
            client_secret: Twitch 애플리케이션 Client Secret
            transport: httpx 전송 계층 (테스트에서 MockTransport 주입)
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self._transport = transport
        self.current_token: Optional[TwitchToken] = None

    async def fetch_app_token(self) -> TwitchToken:
        """
        client credentials 로 앱 Access Token 발급

        Returns:
            TwitchToken 객체

        Raises:
            ValueError: Client ID/Secret 미설정 또는 응답에 access_token 없음
            httpx.HTTPError: API 호출 실패 시
        """
        if not self.client_id or not self.client_secret:
            raise ValueError("TWITCH_CLIENT_ID, TWITCH_CLIENT_SECRET 이 설정되지 않았습니다")

        params = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "grant_type": "client_credentials",
        }

        async with httpx.AsyncClient(transport=self._transport, timeout=10.0) as client:
            response = await client.post(self.TOKEN_URL, params=params)
            response.raise_for_status()

            body = response.json()
            access_token = body.get("access_token")
            if not access_token:
                logger.error(f"토큰 API 응답에 access_token 없음: {body}")
                raise ValueError(f"토큰 API가 예상과 다른 응답을 반환했습니다. 응답: {body}")
            token = TwitchToken(
                access_token=access_token,
                token_type=body.get("token_type", "bearer"),
                expires_in=int(body.get("expires_in") or 0),
            )

        self.current_token = token
        logger.info(f"Twitch Access Token 발급 성공 (만료: {token.expires_at})")
        return token
