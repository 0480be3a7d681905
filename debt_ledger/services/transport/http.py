"""
HTTP Transport Implementation

Talks to the debt tracker REST backend over httpx.

Status mapping:
- 200/201/204 and other 2xx  -> success, JSON body as `data`
- 401                        -> session expired, `needs_login`
- 422                        -> validation error with per-field `errors`
- 429                        -> rate limited
- 500                        -> server error
- anything else              -> backend message, or "Request failed"
- body that is not JSON      -> "Invalid response format from server"

Network-level failures (connect errors, resets, timeouts) are retried with
exponential backoff and, once retries are exhausted, raised as
NetworkError / RequestTimeoutError. HTTP status failures are never
retried here; they come back as `success=False`.

Token storage is not this module's concern: pass a `token_provider`
returning the current session token (or None).
"""

from typing import Any, Callable, Optional

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from debt_ledger.config import ApiSettings, get_settings
from debt_ledger.services.transport.interface import (
    LedgerTransport,
    NetworkError,
    RequestTimeoutError,
    TransportResponse,
)


TokenProvider = Callable[[], Optional[str]]

SESSION_EXPIRED_MESSAGE = "Session expired. Please login again."
VALIDATION_MESSAGE = "Validation error"
RATE_LIMITED_MESSAGE = "Too many requests. Please try again later."
SERVER_ERROR_MESSAGE = "Server error. Please try again later."
REQUEST_FAILED_MESSAGE = "Request failed"
INVALID_FORMAT_MESSAGE = "Invalid response format from server"


class HttpTransport(LedgerTransport):
    """
    httpx-backed transport.

    Usage:
        async with HttpTransport(token_provider=lambda: token) as transport:
            response = await transport.get("/debts")
    """

    def __init__(
        self,
        settings: Optional[ApiSettings] = None,
        token_provider: Optional[TokenProvider] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the transport.

        Args:
            settings: API settings; loaded from the environment when None
            token_provider: Returns the bearer token to send, if any
            client: Pre-built client (tests pass one with a MockTransport)
        """
        self._settings = settings or get_settings().api
        self._token_provider = token_provider
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self._settings.base_url,
            timeout=self._settings.request_timeout_seconds,
        )
        self._logger = structlog.get_logger("debt_ledger.transport")

    async def __aenter__(self) -> "HttpTransport":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self._token_provider:
            token = self._token_provider()
            if token:
                headers[self._settings.auth_header] = f"Bearer {token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        body: Optional[dict] = None,
    ) -> TransportResponse:
        method = method.upper()
        self._logger.debug("api_request", method=method, path=path)

        try:
            response = await self._send_with_retry(method, path, body)
        except httpx.TimeoutException as e:
            self._logger.warning("api_timeout", method=method, path=path, error=str(e))
            raise RequestTimeoutError(f"{method} {path} timed out: {e}") from e
        except httpx.TransportError as e:
            self._logger.warning("api_network_error", method=method, path=path, error=str(e))
            raise NetworkError(
                "No internet connection. Please check your network."
                f" ({method} {path}: {e})"
            ) from e

        self._logger.debug(
            "api_response",
            method=method,
            path=path,
            status_code=response.status_code,
        )
        return self._handle_response(response)

    async def _send_with_retry(
        self,
        method: str,
        path: str,
        body: Optional[dict],
    ) -> httpx.Response:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._settings.max_retries),
            wait=wait_exponential(
                multiplier=self._settings.retry_backoff_seconds,
                max=30,
            ),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._client.request(
                    method,
                    path,
                    json=body if method in ("POST", "PUT", "PATCH") else None,
                    headers=self._headers(),
                )
        raise NetworkError(f"{method} {path}: retries exhausted")

    def _handle_response(self, response: httpx.Response) -> TransportResponse:
        status = response.status_code

        if status == 204 or (200 <= status < 300 and not response.content.strip()):
            return TransportResponse(success=True, status_code=status)

        try:
            payload = response.json()
        except ValueError:
            return TransportResponse(
                success=False,
                message=INVALID_FORMAT_MESSAGE,
                status_code=status,
            )

        backend_message = _message_of(payload)

        if 200 <= status < 300:
            if isinstance(payload, dict) and payload.get("success") is False:
                return TransportResponse(
                    success=False,
                    data=payload,
                    message=backend_message or REQUEST_FAILED_MESSAGE,
                    status_code=status,
                    errors=_errors_of(payload),
                )
            return TransportResponse(
                success=True,
                data=payload,
                message=backend_message,
                status_code=status,
            )

        if status == 401:
            return TransportResponse(
                success=False,
                message=backend_message or SESSION_EXPIRED_MESSAGE,
                status_code=status,
                needs_login=True,
            )
        if status == 422:
            return TransportResponse(
                success=False,
                message=backend_message or VALIDATION_MESSAGE,
                status_code=status,
                errors=_errors_of(payload),
            )
        if status == 429:
            return TransportResponse(
                success=False,
                message=RATE_LIMITED_MESSAGE,
                status_code=status,
            )
        if status == 500:
            return TransportResponse(
                success=False,
                message=SERVER_ERROR_MESSAGE,
                status_code=status,
            )
        return TransportResponse(
            success=False,
            message=backend_message or REQUEST_FAILED_MESSAGE,
            status_code=status,
            errors=_errors_of(payload),
        )

    async def health_check(self) -> bool:
        """True when the backend health endpoint answers successfully."""
        try:
            response = await self.get(self._settings.health_path)
        except (NetworkError, RequestTimeoutError):
            return False
        return response.success


def _message_of(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    message = payload.get("message")
    if isinstance(message, str) and message:
        return message
    detail = payload.get("detail")
    if isinstance(detail, str) and detail:
        return detail
    return None


def _errors_of(payload: Any) -> dict[str, str]:
    """
    Normalize backend field errors to {field: message}.

    Accepts {"errors": {"field": "msg" | ["msg", ...]}} and the
    {"detail": [{"loc": [..., "field"], "msg": "..."}]} shape.
    """
    if not isinstance(payload, dict):
        return {}

    errors: dict[str, str] = {}

    raw = payload.get("errors")
    if isinstance(raw, dict):
        for field, value in raw.items():
            if isinstance(value, list) and value:
                errors[str(field)] = str(value[0])
            elif value:
                errors[str(field)] = str(value)

    detail = payload.get("detail")
    if isinstance(detail, list):
        for item in detail:
            if not isinstance(item, dict):
                continue
            loc = item.get("loc") or []
            field = str(loc[-1]) if loc else "_body"
            errors.setdefault(field, str(item.get("msg", VALIDATION_MESSAGE)))

    return errors
