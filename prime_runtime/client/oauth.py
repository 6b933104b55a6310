"""
OAuth2 token supplier for Prime API authentication.

This module owns the single bearer credential shared by every outbound
request. It acquires tokens with the OAuth2 password grant, refreshes them
before they expire, and makes sure concurrent callers never trigger more
than one acquisition at a time.
"""

import asyncio
import time
from typing import Callable, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from ..core.config import Settings
from ..core.exceptions import AuthError
from ..core.logging import get_logger
from ..models.auth import Credential, TokenInfo, TokenResponse

logger = get_logger(__name__)

JSON_API_MEDIA_TYPE = "application/vnd.api.v2+json"
DEFAULT_REFRESH_BUFFER = 5 * 60  # 5 minutes before expiry


class TokenSupplier:
    """
    Manages the lifecycle of one bearer credential.

    ``get_token`` returns a credential that stays valid for at least
    ``refresh_buffer`` seconds. Acquisitions are single-flight: while one is
    running, every other caller awaits the same task and receives the same
    credential or the same AuthError.
    """

    def __init__(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        username: str,
        password: str,
        http_client: Optional[httpx.AsyncClient] = None,
        refresh_buffer: float = DEFAULT_REFRESH_BUFFER,
        timeout: float = 30.0,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the token supplier.

        Args:
            token_url: OAuth2 token endpoint
            client_id: OAuth2 client ID
            client_secret: OAuth2 client secret
            username: Resource owner username
            password: Resource owner password
            http_client: Optional shared client. If None, one is created per acquisition.
            refresh_buffer: Seconds before expiry at which a token counts as stale
            timeout: Token request timeout in seconds
            clock: Source of the current time as epoch seconds
        """
        self.token_url = token_url
        self.refresh_buffer = refresh_buffer
        self.timeout = timeout
        self._grant = {
            "grant_type": "password",
            "client_id": client_id,
            "client_secret": client_secret,
            "username": username,
            "password": password,
        }
        self._http_client = http_client
        self._clock = clock
        self._credential: Optional[Credential] = None
        self._pending: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(cls, settings: Settings, http_client: Optional[httpx.AsyncClient] = None) -> "TokenSupplier":
        """Build a supplier from application settings."""
        settings.require_credentials()
        return cls(
            token_url=settings.OAUTH_URL,
            client_id=settings.CLIENT_ID,
            client_secret=settings.CLIENT_SECRET,
            username=settings.USERNAME,
            password=settings.PASSWORD,
            http_client=http_client,
            refresh_buffer=settings.TOKEN_REFRESH_BUFFER_SECONDS,
            timeout=settings.REQUEST_TIMEOUT_SECONDS,
        )

    async def get_token(self) -> Credential:
        """
        Get a valid credential, acquiring one if necessary.

        Raises:
            AuthError: If the token endpoint refuses or cannot be reached
        """
        if (self._pending is None or self._pending.done()) and self.has_valid_token():
            return self._credential
        return await self._join_acquisition()

    async def force_refresh(self) -> Credential:
        """
        Discard the cached credential and acquire a new one.

        Used after the API rejected a request with 401. An acquisition that
        is already running is joined rather than duplicated.
        """
        self._credential = None
        return await self._join_acquisition()

    def has_valid_token(self) -> bool:
        """Check if the cached credential is outside the refresh buffer."""
        return self._credential is not None and self._credential.is_valid(self._clock(), self.refresh_buffer)

    def token_info(self) -> TokenInfo:
        """Get token expiry info."""
        if self._credential is None:
            return TokenInfo(has_token=False)
        expires_in = max(0, int(self._credential.expires_at - self._clock()))
        return TokenInfo(has_token=True, expires_in=expires_in)

    def clear(self) -> None:
        """Clear the cached credential."""
        self._credential = None

    async def _join_acquisition(self) -> Credential:
        if self._pending is None or self._pending.done():
            self._pending = asyncio.create_task(self._acquire())
            self._pending.add_done_callback(self._on_acquisition_done)
        # Shielded so one caller's cancellation does not abort the shared request
        return await asyncio.shield(self._pending)

    def _on_acquisition_done(self, task: asyncio.Task) -> None:
        if self._pending is task:
            self._pending = None
        if not task.cancelled():
            # Mark the exception retrieved when every waiter was cancelled
            task.exception()

    async def _acquire(self) -> Credential:
        """Acquire a new token using the password grant."""
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": JSON_API_MEDIA_TYPE,
        }
        try:
            if self._http_client is not None:
                response = await self._http_client.post(
                    self.token_url, data=self._grant, headers=headers, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.token_url, data=self._grant, headers=headers)
        except httpx.TransportError as e:
            logger.error(f"Failed to connect to OAuth server at {self.token_url}: {e}")
            raise AuthError(
                "Failed to connect to OAuth server. Check your network connection.",
                transport=True,
            ) from e

        if not response.is_success:
            raise self._error_from_response(response)

        try:
            token = TokenResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise AuthError(
                f"OAuth token response was malformed: {e}",
                status_code=response.status_code,
            ) from e

        self._credential = Credential.from_token_response(token, issued_at=self._clock())
        logger.info(f"OAuth token acquired, expires in {token.expires_in} seconds")
        return self._credential

    @staticmethod
    def _error_from_response(response: httpx.Response) -> AuthError:
        message = f"OAuth authentication failed: {response.status_code}"
        error_code = None
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict):
            message = payload.get("error_description") or payload.get("message") or message
            error_code = payload.get("error")

        logger.error(f"OAuth token request rejected with status {response.status_code} ({error_code or 'no error code'})")
        return AuthError(message, status_code=response.status_code, error_code=error_code)
