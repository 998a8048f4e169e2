import logging
import time
from typing import Any, Dict, Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..exceptions import ExternalServiceError, ValidationFailed
from ..models import User

logger = logging.getLogger(__name__)

MEDIA_FIELDS = "id,caption,media_type,media_url,thumbnail_url,timestamp,location"
MEDIA_DETAIL_FIELDS = MEDIA_FIELDS + ",permalink,children"


class InstagramClient:
    """Thin async wrapper over the Instagram OAuth and Graph endpoints."""

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        redirect_uri: str,
        oauth_url: str = "https://api.instagram.com/oauth/access_token",
        graph_url: str = "https://graph.instagram.com",
        api_version: str = "v23.0",
        timeout_seconds: float = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.oauth_url = oauth_url
        self.graph_url = graph_url.rstrip("/")
        self.api_version = api_version
        self.timeout = httpx.Timeout(timeout_seconds, connect=10.0)
        self._transport = transport

    @classmethod
    def from_settings(cls) -> "InstagramClient":
        return cls(
            client_id=settings.instagram_client_id,
            client_secret=settings.instagram_client_secret,
            redirect_uri=settings.instagram_redirect_uri,
            oauth_url=settings.instagram_oauth_url,
            graph_url=settings.instagram_graph_url,
            api_version=settings.instagram_api_version,
            timeout_seconds=settings.http_timeout_seconds,
        )

    async def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Instagram API error {e.response.status_code}: {e.response.text[:300]}")
            raise ExternalServiceError(error=e.response.text[:300] or str(e))
        except httpx.HTTPError as e:
            logger.error(f"Instagram request failed: {e}")
            raise ExternalServiceError(error=str(e))

    async def exchange_code(self, code: str) -> Dict[str, Any]:
        """Authorization code -> short-lived token and Instagram user id"""
        return await self._request("POST", self.oauth_url, data={
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "grant_type": "authorization_code",
            "redirect_uri": self.redirect_uri,
            "code": code,
        })

    async def exchange_long_lived(self, short_token: str) -> Dict[str, Any]:
        return await self._request("GET", f"{self.graph_url}/access_token", params={
            "grant_type": "ig_exchange_token",
            "client_secret": self.client_secret,
            "access_token": short_token,
        })

    async def refresh_token(self, access_token: str) -> Dict[str, Any]:
        return await self._request("GET", f"{self.graph_url}/refresh_access_token", params={
            "grant_type": "ig_refresh_token",
            "access_token": access_token,
        })

    async def list_media(self, access_token: str) -> Dict[str, Any]:
        return await self._request("GET", f"{self.graph_url}/{self.api_version}/me/media", params={
            "fields": MEDIA_FIELDS,
            "access_token": access_token,
        })

    async def media_detail(self, access_token: str, media_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"{self.graph_url}/{self.api_version}/{media_id}", params={
            "fields": MEDIA_DETAIL_FIELDS,
            "access_token": access_token,
        })


def _now_ms() -> int:
    return int(time.time() * 1000)


async def sync_instagram(db: AsyncSession, client: InstagramClient, user: User, code: str) -> Dict[str, Any]:
    short = await client.exchange_code(code)
    long_lived = await client.exchange_long_lived(short["access_token"])

    user.instagram_access_token = long_lived["access_token"]
    user.instagram_user_id = str(short.get("user_id")) if short.get(
        "user_id") is not None else None
    user.instagram_token_expires_in = long_lived.get("expires_in")
    user.instagram_token_last_refreshed = _now_ms()
    user.instagram_sync = True
    await db.commit()

    return {
        "user_id": user.instagram_user_id,
        "expires_in": user.instagram_token_expires_in,
    }


def token_needs_refresh(user: User, now_ms: Optional[int] = None) -> bool:
    now_ms = _now_ms() if now_ms is None else now_ms
    last_refreshed = user.instagram_token_last_refreshed or 0
    expiry = last_refreshed + (user.instagram_token_expires_in or 0) * 1000
    window = settings.instagram_refresh_window_days * 24 * 60 * 60 * 1000
    return expiry - now_ms < window


async def fresh_access_token(db: AsyncSession, client: InstagramClient, user: User) -> str:
    """The user's long-lived token, refreshed first if it is close to expiry."""
    if not user.instagram_access_token:
        raise ValidationFailed("Instagram not linked for this user")

    if token_needs_refresh(user):
        refreshed = await client.refresh_token(user.instagram_access_token)
        user.instagram_access_token = refreshed["access_token"]
        user.instagram_token_expires_in = refreshed.get("expires_in")
        user.instagram_token_last_refreshed = _now_ms()
        await db.commit()
        logger.info(f"Refreshed Instagram token for user {user.id}")
    return user.instagram_access_token


async def instagram_posts(db: AsyncSession, client: InstagramClient, user: User) -> Dict[str, Any]:
    token = await fresh_access_token(db, client, user)
    return await client.list_media(token)


async def instagram_post_detail(db: AsyncSession, client: InstagramClient, user: User, media_id: str) -> Dict[str, Any]:
    token = await fresh_access_token(db, client, user)
    return await client.media_detail(token, media_id)
