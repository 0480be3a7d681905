"""
Abstract Transport Interface

DESIGN DECISION: The ledger core never speaks HTTP itself.
It depends on a transport collaborator with one async operation:

    request(method, path, body?) -> TransportResponse

This allows us to:
1. Swap the HTTP client without touching the repository
2. Use an in-memory fake backend for testing
3. Keep auth, retries and status mapping out of the ledger logic

A transport may raise on network-level failure (DNS, timeout, connection
reset). The repository treats any raise exactly like an unsuccessful
response whose message is derived from the exception.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from pydantic import BaseModel, Field


class TransportResponse(BaseModel):
    """What the backend answered, already mapped from HTTP."""

    success: bool
    data: Optional[Any] = Field(
        default=None,
        description="Decoded JSON body (the decoder unwraps envelopes)"
    )
    message: Optional[str] = None
    status_code: Optional[int] = None
    errors: dict[str, str] = Field(
        default_factory=dict,
        description="Per-field errors reported by the backend"
    )
    needs_login: bool = Field(
        default=False,
        description="The session token was rejected"
    )


class LedgerTransport(ABC):
    """
    Abstract interface for talking to the debt tracker backend.

    Any transport (HTTP, in-memory fake, offline queue) must implement
    `request`. The verb helpers are shared.
    """

    @abstractmethod
    async def request(
        self,
        method: str,
        path: str,
        body: Optional[dict] = None,
    ) -> TransportResponse:
        """
        Perform one request.

        Args:
            method: GET, POST, PUT or DELETE
            path: Path relative to the backend base URL
            body: JSON body for POST/PUT

        Returns:
            The mapped response; HTTP-level failures are success=False

        Raises:
            TransportError: On network-level failure
        """
        pass

    async def get(self, path: str) -> TransportResponse:
        return await self.request("GET", path)

    async def post(self, path: str, body: Optional[dict] = None) -> TransportResponse:
        return await self.request("POST", path, body)

    async def put(self, path: str, body: Optional[dict] = None) -> TransportResponse:
        return await self.request("PUT", path, body)

    async def delete(self, path: str) -> TransportResponse:
        return await self.request("DELETE", path)


# =============================================================================
# EXCEPTIONS
# =============================================================================

class TransportError(Exception):
    """Base exception for transport operations."""
    pass


class NetworkError(TransportError):
    """Could not reach the backend."""
    pass


class RequestTimeoutError(TransportError):
    """The backend did not answer in time."""
    pass


class InvalidResponseError(TransportError):
    """The transport answered with something that is not a response."""
    pass
