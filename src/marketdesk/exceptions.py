"""Custom exceptions for the market data tools.

Every failure the core can produce is a MarketDataError subclass. Only the
tool boundary (marketdesk.tools) turns them into text.
"""


class MarketDataError(Exception):
    """Base exception for all market data errors."""


class RateLimited(MarketDataError):
    """Raised when the local request budget is exhausted."""

    def __init__(self, window: str, capacity: int) -> None:
        self.window = window
        self.capacity = capacity
        super().__init__(
            f"Rate limit exceeded ({capacity} requests per {window}). "
            "Please try again later."
        )


class ExhaustedRetries(MarketDataError):
    """Raised when every fetch attempt failed with a transient error."""

    def __init__(self, message: str = "Maximum retries exceeded", attempts: int = 0) -> None:
        self.attempts = attempts
        super().__init__(message)


class InvalidParameter(MarketDataError):
    """Raised when a period or interval is outside the accepted vocabulary."""


class EmptySeries(MarketDataError):
    """Raised when upstream answered but carried no series for the symbol."""

    def __init__(self, symbol: str = "") -> None:
        self.symbol = symbol
        super().__init__(f"No data found for symbol: {symbol}" if symbol else "No data found")


class UpstreamError(MarketDataError):
    """Raised when upstream returns a non-retried error status."""

    def __init__(self, status_code: int, description: str = "") -> None:
        self.status_code = status_code
        self.description = description
        detail = f": {description}" if description else ""
        super().__init__(f"Upstream returned HTTP {status_code}{detail}")
