"""Discord OAuth2 client (authorization code flow, ``identify`` scope)."""

from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import httpx
import structlog
from fastapi import status

from mirabellier.config.settings import Settings
from mirabellier.core.errors import AppError


logger = structlog.get_logger(__name__)

DISCORD_CDN = "https://cdn.discordapp.com"
OAUTH_SCOPE = "identify"


class DiscordOAuthError(AppError):
    """Code exchange or profile fetch failed."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Discord authentication failed"
    default_code = "discord_oauth_failed"


@dataclass
class DiscordProfile:
    """The parts of a Discord user the account link needs."""

    id: str
    username: str
    avatar_hash: str | None = None
    banner_hash: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "DiscordProfile":
        return cls(
            id=str(data["id"]),
            username=str(data.get("username") or data.get("global_name") or ""),
            avatar_hash=data.get("avatar"),
            banner_hash=data.get("banner"),
        )

    @property
    def avatar_url(self) -> str | None:
        if not self.avatar_hash:
            return None
        return f"{DISCORD_CDN}/avatars/{self.id}/{self.avatar_hash}.png"

    @property
    def banner_url(self) -> str | None:
        if not self.banner_hash:
            return None
        return f"{DISCORD_CDN}/banners/{self.id}/{self.banner_hash}.png"


class DiscordOAuthClient:
    """Talks to the Discord API on behalf of the callback endpoint."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        api_base: str = "https://discord.com/api",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "DiscordOAuthClient":
        return cls(
            client_id=settings.discord_client_id or "",
            client_secret=settings.discord_client_secret or "",
            redirect_uri=settings.discord_callback_url,
            api_base=settings.discord_api_base,
            timeout=settings.discord_timeout_seconds,
            transport=transport,
        )

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": OAUTH_SCOPE,
            "state": state,
        }
        return f"{self.api_base}/oauth2/authorize?{urlencode(params)}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def exchange_code(self, code: str) -> str:
        """Trade an authorization code for an access token.

        Raises:
            DiscordOAuthError: Discord rejected the code or was unreachable
        """
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.redirect_uri,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        }
        try:
            async with self._client() as client:
                response = await client.post(
                    f"{self.api_base}/oauth2/token",
                    data=data,
                    headers={"Accept": "application/json"},
                )
        except httpx.TimeoutException as e:
            logger.error("discord_token_timeout", error=str(e))
            raise DiscordOAuthError("Discord API timeout") from e
        except httpx.RequestError as e:
            logger.error("discord_token_request_error", error=str(e))
            raise DiscordOAuthError from e

        if response.status_code != httpx.codes.OK:
            logger.warning(
                "discord_token_exchange_failed",
                status_code=response.status_code,
                response_text=response.text[:500],
            )
            raise DiscordOAuthError

        access_token = response.json().get("access_token")
        if not access_token:
            raise DiscordOAuthError("Discord returned no access token")
        return access_token

    async def fetch_profile(self, access_token: str) -> DiscordProfile:
        """Fetch ``/users/@me`` with a user access token."""
        try:
            async with self._client() as client:
                response = await client.get(
                    f"{self.api_base}/users/@me",
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.RequestError as e:
            logger.error("discord_profile_request_error", error=str(e))
            raise DiscordOAuthError from e

        if response.status_code != httpx.codes.OK:
            logger.warning(
                "discord_profile_fetch_failed", status_code=response.status_code
            )
            raise DiscordOAuthError

        try:
            return DiscordProfile.from_api(response.json())
        except (KeyError, TypeError, ValueError) as e:
            raise DiscordOAuthError("Unexpected Discord profile payload") from e

    async def authenticate(self, code: str) -> DiscordProfile:
        """Full callback exchange: code -> access token -> profile."""
        access_token = await self.exchange_code(code)
        profile = await self.fetch_profile(access_token)
        logger.info("discord_profile_fetched", discord_id=profile.id)
        return profile
