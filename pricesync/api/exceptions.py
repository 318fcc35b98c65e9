"""
Custom exceptions related to market-data provider interactions.
"""

from typing import Optional


class PriceFetchError(Exception):
    """Raised when a price request fails (network error or non-2xx response)."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(f"Price fetch failed: {message}" + (f" (HTTP {status_code})" if status_code else ""))

    def __str__(self):
        return f"PriceFetchError(status_code={self.status_code}, message='{self.message}')"


class MalformedResponseError(PriceFetchError):
    """Raised when the provider answers with a body that isn't the expected list of coin objects."""
    def __str__(self):
        return f"MalformedResponseError(message='{self.message}')"
