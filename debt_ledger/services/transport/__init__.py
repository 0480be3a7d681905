"""
Transport Package

The ledger core's only window to the backend.
"""

from debt_ledger.services.transport.http import HttpTransport, TokenProvider
from debt_ledger.services.transport.interface import (
    InvalidResponseError,
    LedgerTransport,
    NetworkError,
    RequestTimeoutError,
    TransportError,
    TransportResponse,
)

__all__ = [
    "HttpTransport",
    "TokenProvider",
    "InvalidResponseError",
    "LedgerTransport",
    "NetworkError",
    "RequestTimeoutError",
    "TransportError",
    "TransportResponse",
]
