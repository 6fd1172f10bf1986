"""Error hierarchy raised by ledger reader adapters."""

from __future__ import annotations


class LedgerClientError(RuntimeError):
    """Base error for ledger reader failures (transport-level)."""


class LedgerTransportError(LedgerClientError):
    """Raised when the node cannot be reached or answers with a non-2xx status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class LedgerRateLimitError(LedgerTransportError):
    """Raised when the node responds with HTTP 429 Too Many Requests."""

    def __init__(self, message: str, *, retry_after: float | None = None) -> None:
        super().__init__(message, status_code=429)
        self.retry_after = retry_after


class LedgerRPCError(LedgerClientError):
    """Raised when the JSON-RPC envelope carries an ``error`` member."""

    def __init__(self, message: str, *, code: int | None = None, method: str | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.method = method


__all__ = [
    "LedgerClientError",
    "LedgerRPCError",
    "LedgerRateLimitError",
    "LedgerTransportError",
]
