"""
Shiftboard JSON-RPC Client

Async client for the Shiftboard API with:
- HMAC-SHA1 signed POST requests
- Transport-level retries with exponential backoff
- Error mapping to UpstreamError
- Request logging

Usage:
    async with ShiftboardClient() as client:
        envelope = await client.call("shift.whosOn", {"timeclock_status": True})
        result = unwrap_result("shift.whosOn", envelope)
"""

import logging
from typing import Any, Optional

import httpx
import orjson
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from services.shiftboard.auth import build_authenticated_post_request, validate_auth_config
from services.shiftboard.errors import InvalidResponseShape, UpstreamError
from utils.config import settings

logger = logging.getLogger(__name__)


def error_message(error: Any) -> str:
    """Extract the human-readable message from a Shiftboard error payload."""
    if isinstance(error, dict):
        return str(
            error.get("message")
            or error.get("error")
            or f"Shiftboard API error: {error.get('code')}"
        )
    return str(error)


def unwrap_result(method: str, envelope: dict[str, Any]) -> dict[str, Any]:
    """
    Return the `result` object of a JSON-RPC envelope.

    Raises:
        UpstreamError: If the envelope carries an error payload
        InvalidResponseShape: If the envelope has no result object
    """
    error = envelope.get("error")
    if error:
        raise UpstreamError(method, error_message(error))

    result = envelope.get("result")
    if not isinstance(result, dict):
        raise InvalidResponseShape(method, "Shiftboard API returned no result")

    return result


class ShiftboardClient:
    """Signed request client for the Shiftboard JSON-RPC API."""

    def __init__(
        self,
        access_key_id: Optional[str] = None,
        secret_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        retry_wait: Any = None,
    ) -> None:
        """Initialize client.

        Args:
            access_key_id: Access key id, defaults to settings.SHIFTBOARD_ACCESS_KEY_ID
            secret_key: Secret key, defaults to settings.SHIFTBOARD_SECRET_KEY
            base_url: Endpoint URL, defaults to settings.shiftboard_url
            timeout: Request timeout in seconds, defaults to settings.SHIFTBOARD_TIMEOUT
            max_retries: Transport attempts, defaults to settings.SHIFTBOARD_MAX_RETRIES
            http_client: Pre-built httpx client (the caller keeps ownership)
            retry_wait: tenacity wait strategy between transport retries

        Raises:
            ValueError: If credentials are missing or invalid
        """
        self.access_key_id = access_key_id if access_key_id is not None else settings.SHIFTBOARD_ACCESS_KEY_ID
        self.secret_key = secret_key if secret_key is not None else settings.SHIFTBOARD_SECRET_KEY
        self.base_url = base_url or settings.shiftboard_url
        self.timeout = timeout if timeout is not None else settings.SHIFTBOARD_TIMEOUT
        self.max_retries = max_retries if max_retries is not None else settings.SHIFTBOARD_MAX_RETRIES

        validate_auth_config(self.access_key_id, self.secret_key)

        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(
            timeout=self.timeout,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )

        self._send = retry(
            retry=retry_if_exception_type(httpx.TransportError),
            stop=stop_after_attempt(max(1, self.max_retries)),
            wait=retry_wait or wait_exponential(multiplier=1, min=1, max=5),
            reraise=True,
        )(self._post)

    async def __aenter__(self) -> "ShiftboardClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _post(self, url: str, body: bytes) -> httpx.Response:
        return await self.client.post(url, content=body)

    async def call(self, method: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """
        Make a signed JSON-RPC call.

        Args:
            method: JSON-RPC method name
            params: Method parameters

        Returns:
            Parsed response envelope ({"result": ...} or {"error": ...})

        Raises:
            UpstreamError: On transport failure, HTTP error status or undecodable body
        """
        url, body = build_authenticated_post_request(
            self.base_url, method, params, self.access_key_id, self.secret_key
        )

        logger.debug("Shiftboard request: method=%s", method)

        try:
            response = await self._send(url, body)
        except httpx.TransportError as e:
            logger.error("Shiftboard transport failure: method=%s, error=%s", method, str(e))
            raise UpstreamError(
                method, f"No response received (timeout or connection failed): {e}"
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamError(method, f"Request error: {e}") from e

        status = response.status_code
        logger.debug("Shiftboard response: method=%s, status=%d", method, status)

        try:
            envelope = orjson.loads(response.content)
        except orjson.JSONDecodeError as e:
            if response.is_error:
                raise UpstreamError(
                    method, f"HTTP error: {status} {response.reason_phrase}", status
                ) from e
            raise UpstreamError(method, f"Failed to parse API response: {e}", status) from e

        if not isinstance(envelope, dict):
            raise UpstreamError(method, "Unexpected response body (not a JSON object)", status)

        if response.is_error:
            if envelope.get("error"):
                raise UpstreamError(method, error_message(envelope["error"]), status)
            raise UpstreamError(method, f"HTTP error: {status} {response.reason_phrase}", status)

        return envelope

    async def echo(self, message: str = "ping") -> dict[str, Any]:
        """Connectivity check against `system.echo`."""
        envelope = await self.call("system.echo", {"message": message})
        return unwrap_result("system.echo", envelope)

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self.client.aclose()
