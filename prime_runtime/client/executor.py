"""
Prime API request executor.

Every call the tool layer makes goes through RequestExecutor.execute():
- admission through the AdmissionController (quota and concurrency)
- a bearer credential from the TokenSupplier
- one forced token refresh and retry on the first 401
- rate limit header reconciliation
- classification of failures into the ErrorKind taxonomy
"""

from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

import httpx

from ..core.config import Settings, get_settings
from ..core.exceptions import (
    AuthError,
    ForbiddenError,
    NetworkError,
    NotFoundError,
    PrimeApiError,
    RateLimitExceededError,
    ServerError,
    UnauthorizedError,
    UnknownApiError,
    ValidationError,
)
from ..core.logging import LoggerMixin, setup_logging_from_settings
from ..models.auth import Credential, TokenInfo
from ..models.quota import QuotaStatus
from .json_api import decode_body, extract_error_messages, is_error_document, try_decode_body
from .oauth import JSON_API_MEDIA_TYPE, TokenSupplier
from .rate_limiter import AdmissionController

MINUTE_REMAINING_HEADER = "x-ratelimit-minute-remaining"
DAY_REMAINING_HEADER = "x-ratelimit-day-remaining"
DEFAULT_RETRY_AFTER = 60

QueryValue = Optional[Any]


def parse_retry_after(value: Optional[str], default: int = DEFAULT_RETRY_AFTER) -> int:
    """Parse a Retry-After header as whole seconds, falling back to ``default``."""
    if value is None:
        return default
    try:
        seconds = int(value.strip())
    except ValueError:
        return default
    return seconds if seconds >= 0 else default


def parse_int_header(headers: Mapping[str, str], name: str) -> Optional[int]:
    """Read an integer header, ignoring absent or malformed values."""
    raw = headers.get(name)
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


class RequestExecutor(LoggerMixin):
    """
    Resilient client for the Prime REST API.

    The executor owns no quota or credential state. It borrows both from the
    AdmissionController and TokenSupplier it is constructed with, so one
    pair of those can be shared by every caller in the process.
    """

    def __init__(
        self,
        base_url: str,
        token_supplier: TokenSupplier,
        admission: AdmissionController,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
        owns_client: Optional[bool] = None,
    ):
        """
        Initialize the executor.

        Args:
            base_url: Base URL of the Prime API
            token_supplier: Source of bearer credentials
            admission: Rate limit and concurrency gate
            http_client: Optional HTTP client. If None, creates a default one.
            timeout: Request timeout in seconds for a default client
            owns_client: Whether aclose() closes the HTTP client. Defaults to
                True only when the client was created here.
        """
        self.base_url = base_url.rstrip("/")
        self.tokens = token_supplier
        self.admission = admission
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None if owns_client is None else owns_client

    async def execute(
        self,
        method: str,
        endpoint: str,
        query: Optional[Mapping[str, QueryValue]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Make an authenticated request to the Prime API.

        Args:
            method: HTTP method (GET, POST, PUT, PATCH, DELETE)
            endpoint: Path relative to the API base URL
            query: Query parameters; None and empty values are dropped
            body: JSON body for write operations

        Returns:
            The decoded JSON:API document, or ``{"data": []}`` for empty responses

        Raises:
            PrimeApiError: A classified error (see ErrorKind)
        """
        await self.admission.acquire_slot()
        try:
            return await self._execute_admitted(method.upper(), self.build_url(endpoint), query, body)
        finally:
            self.admission.release_slot()

    async def get(self, endpoint: str, query: Optional[Mapping[str, QueryValue]] = None) -> Any:
        """Make a GET request."""
        return await self.execute("GET", endpoint, query=query)

    async def post(self, endpoint: str, body: Dict[str, Any]) -> Any:
        """Make a POST request."""
        return await self.execute("POST", endpoint, body=body)

    async def put(self, endpoint: str, body: Dict[str, Any]) -> Any:
        """Make a PUT request."""
        return await self.execute("PUT", endpoint, body=body)

    async def patch(self, endpoint: str, body: Dict[str, Any]) -> Any:
        """Make a PATCH request."""
        return await self.execute("PATCH", endpoint, body=body)

    async def delete(self, endpoint: str) -> Any:
        """Make a DELETE request."""
        return await self.execute("DELETE", endpoint)

    def status(self) -> QuotaStatus:
        """Get current rate limit status."""
        return self.admission.status()

    def is_near_exhaustion(self) -> bool:
        """Check if approaching rate limits."""
        return self.admission.is_near_exhaustion()

    def token_info(self) -> TokenInfo:
        """Get OAuth token info."""
        return self.tokens.token_info()

    def build_url(self, endpoint: str) -> str:
        """Build the full URL for an endpoint."""
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http_client.aclose()

    async def __aenter__(self) -> "RequestExecutor":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _execute_admitted(
        self,
        method: str,
        url: str,
        query: Optional[Mapping[str, QueryValue]],
        body: Optional[Dict[str, Any]],
    ) -> Any:
        params = self._build_params(query)

        credential = await self._credential(self.tokens.get_token)
        response = await self._attempt(method, url, params, body, credential)

        # One refresh per logical call; the retry reuses the slot already held
        if response.status_code == 401:
            self.logger.warning("Received 401, refreshing OAuth token and retrying once")
            credential = await self._credential(self.tokens.force_refresh)
            response = await self._attempt(method, url, params, body, credential)

        if not response.is_success:
            raise self._classify_error(response)

        return self._decode_success(response)

    async def _attempt(
        self,
        method: str,
        url: str,
        params: Dict[str, str],
        body: Optional[Dict[str, Any]],
        credential: Credential,
    ) -> httpx.Response:
        headers = {
            "Authorization": credential.authorization_header(),
            "Accept": JSON_API_MEDIA_TYPE,
            "Content-Type": "application/json",
        }

        self.logger.info(f"Making authenticated {method} request to {url}")
        try:
            response = await self._http_client.request(
                method,
                url,
                params=params or None,
                json=body,
                headers=headers,
            )
        except httpx.TransportError as e:
            self.logger.error(f"Network error for {method} {url}: {e}")
            raise NetworkError(details={"reason": str(e) or type(e).__name__}) from e

        self.logger.info(f"Request completed: {response.status_code} {response.reason_phrase}")
        self._sync_quota(response.headers)
        return response

    async def _credential(self, fetch: Callable[[], Awaitable[Credential]]) -> Credential:
        try:
            return await fetch()
        except AuthError as e:
            if e.transport:
                raise NetworkError(e.message) from e
            raise UnauthorizedError(e.message, status_code=e.status_code, details=dict(e.details)) from e

    def _sync_quota(self, headers: httpx.Headers) -> None:
        minute_remaining = parse_int_header(headers, MINUTE_REMAINING_HEADER)
        day_remaining = parse_int_header(headers, DAY_REMAINING_HEADER)
        if minute_remaining is not None or day_remaining is not None:
            self.admission.sync_from_server_hints(minute_remaining, day_remaining)

    @staticmethod
    def _build_params(query: Optional[Mapping[str, QueryValue]]) -> Dict[str, str]:
        params: Dict[str, str] = {}
        for key, value in (query or {}).items():
            if value is None or value == "":
                continue
            if isinstance(value, bool):
                params[key] = "true" if value else "false"
            else:
                params[key] = str(value)
        return params

    def _classify_error(self, response: httpx.Response) -> PrimeApiError:
        """Map an error response onto the ErrorKind taxonomy."""
        status = response.status_code
        payload = try_decode_body(response)
        message = f"Prime API error: {status} {response.reason_phrase}"
        errors = None

        if is_error_document(payload):
            message = "; ".join(extract_error_messages(payload))
            errors = payload["errors"]
        elif isinstance(payload, dict) and "message" in payload:
            message = str(payload["message"])

        self.logger.warning(f"Prime API returned {status}: {message}")

        if status == 401:
            return UnauthorizedError()
        if status == 403:
            return ForbiddenError()
        if status == 404:
            return NotFoundError()
        if status == 429:
            return RateLimitExceededError(
                "Prime API rate limit exceeded. Please wait before retrying.",
                retry_after=parse_retry_after(response.headers.get("retry-after")),
            )
        if status == 422:
            return ValidationError(f"Validation failed: {message}", errors=errors)
        if 500 <= status < 600:
            return ServerError(f"Server error: {message}", status_code=status)
        if errors and 400 <= status < 500:
            return ValidationError(f"Validation failed: {message}", errors=errors, status_code=status)
        return UnknownApiError(message, status_code=status)

    def _decode_success(self, response: httpx.Response) -> Any:
        try:
            payload = decode_body(response)
        except ValueError as e:
            raise UnknownApiError(
                f"Could not decode response body: {e}",
                status_code=response.status_code,
            ) from e

        if is_error_document(payload):
            raise ValidationError(
                "; ".join(extract_error_messages(payload)),
                errors=payload["errors"],
                status_code=response.status_code,
            )
        return payload


def create_executor(
    settings: Optional[Settings] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    configure_logging: bool = False,
) -> RequestExecutor:
    """
    Wire a RequestExecutor with its own TokenSupplier and AdmissionController.

    Call this once at process start and pass the executor to every caller.
    With ``configure_logging`` the process logging is set up from the
    LOG_LEVEL, DEBUG and LOG_JSON settings first.

    Raises:
        ConfigurationError: If OAuth credentials are missing
    """
    settings = settings or get_settings()
    if configure_logging:
        setup_logging_from_settings(settings)
    settings.require_credentials()
    owns_client = http_client is None
    if http_client is None:
        http_client = httpx.AsyncClient(timeout=settings.REQUEST_TIMEOUT_SECONDS)

    return RequestExecutor(
        base_url=settings.API_URL,
        token_supplier=TokenSupplier.from_settings(settings, http_client=http_client),
        admission=AdmissionController.from_settings(settings),
        http_client=http_client,
        owns_client=owns_client,
    )
