"""Services package."""

from debt_ledger.services.transport import (
    HttpTransport,
    InvalidResponseError,
    LedgerTransport,
    NetworkError,
    RequestTimeoutError,
    TokenProvider,
    TransportError,
    TransportResponse,
)

__all__ = [
    # Transport
    "HttpTransport",
    "InvalidResponseError",
    "LedgerTransport",
    "NetworkError",
    "RequestTimeoutError",
    "TokenProvider",
    "TransportError",
    "TransportResponse",
]
