"""
Shiftboard Error Taxonomy

Errors raised by the Shiftboard client and the pagination pipeline. Each
error carries the JSON-RPC method that produced it so callers can translate
it into a user-facing response.
"""

from typing import Optional


class ShiftboardError(Exception):
    """Base class for every Shiftboard integration error."""

    def __init__(self, method: str, message: str) -> None:
        self.method = method
        self.message = message
        super().__init__(f"{method}: {message}")


class UpstreamError(ShiftboardError):
    """The request failed in transport, or Shiftboard returned an error payload."""

    def __init__(self, method: str, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(method, message)


class InvalidResponseShape(ShiftboardError):
    """A response lacked the `result` object or its expected list container."""


class PageLimitExceeded(ShiftboardError):
    """More pages were requested or declared than the safety ceiling allows."""

    def __init__(self, method: str, total_pages: int, max_pages: int) -> None:
        self.total_pages = total_pages
        self.max_pages = max_pages
        super().__init__(
            method,
            f"Total pages ({total_pages}) exceeds maximum allowed ({max_pages})",
        )
