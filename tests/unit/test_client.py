import base64
import hashlib
import hmac
from urllib.parse import parse_qs, urlsplit

import httpx
import orjson
import pytest
from tenacity import wait_none

from services.shiftboard.auth import (
    build_authenticated_post_request,
    build_rpc_body,
    generate_signature,
    validate_auth_config,
)
from services.shiftboard.client import ShiftboardClient, error_message, unwrap_result
from services.shiftboard.errors import InvalidResponseShape, UpstreamError

ACCESS_KEY_ID = "test-access-key"
SECRET_KEY = "test-secret-key-0123456789"
BASE_URL = "https://api.example.test/servola/api/api.cgi"


def _client(handler, **kwargs):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = ShiftboardClient(
        access_key_id=ACCESS_KEY_ID,
        secret_key=SECRET_KEY,
        base_url=BASE_URL,
        http_client=http_client,
        retry_wait=wait_none(),
        **kwargs,
    )
    return client, http_client


# Signing


def test_rpc_body_shape():
    body = orjson.loads(build_rpc_body("shift.whosOn", {"timeclock_status": True}))

    assert body == {
        "id": 1,
        "jsonrpc": "2.0",
        "method": "shift.whosOn",
        "params": {"timeclock_status": True},
    }
    assert orjson.loads(build_rpc_body("system.echo"))["params"] == {}


def test_signature_is_base64_hmac_sha1_of_body():
    body = b'{"id":1,"jsonrpc":"2.0","method":"system.echo","params":{}}'
    expected = base64.b64encode(hmac.new(SECRET_KEY.encode(), body, hashlib.sha1).digest()).decode()

    assert generate_signature(body, SECRET_KEY) == expected


def test_authenticated_request_signs_the_exact_body():
    url, body = build_authenticated_post_request(
        BASE_URL, "shift.whosOn", {"page": {"start": 0, "batch": 100}}, ACCESS_KEY_ID, SECRET_KEY
    )

    parts = urlsplit(url)
    query = parse_qs(parts.query)

    assert f"{parts.scheme}://{parts.netloc}{parts.path}" == BASE_URL
    assert query["access_key_id"] == [ACCESS_KEY_ID]
    assert query["signature"] == [generate_signature(body, SECRET_KEY)]


def test_validate_auth_config():
    validate_auth_config(ACCESS_KEY_ID, SECRET_KEY)

    with pytest.raises(ValueError, match="SHIFTBOARD_ACCESS_KEY_ID is required"):
        validate_auth_config("", SECRET_KEY)

    with pytest.raises(ValueError, match="SHIFTBOARD_SECRET_KEY is required"):
        validate_auth_config(ACCESS_KEY_ID, "   ")

    with pytest.raises(ValueError, match="too short"):
        validate_auth_config(ACCESS_KEY_ID, "short")


def test_client_rejects_missing_credentials():
    with pytest.raises(ValueError):
        ShiftboardClient(access_key_id="", secret_key=SECRET_KEY, base_url=BASE_URL)


# Envelope helpers


def test_error_message():
    assert error_message({"code": 1, "message": "Bad key"}) == "Bad key"
    assert error_message({"error": "Denied"}) == "Denied"
    assert error_message({"code": 42}) == "Shiftboard API error: 42"
    assert error_message("plain") == "plain"


def test_unwrap_result():
    assert unwrap_result("m", {"result": {"shifts": []}}) == {"shifts": []}

    with pytest.raises(UpstreamError, match="Bad key"):
        unwrap_result("m", {"error": {"message": "Bad key"}})

    with pytest.raises(InvalidResponseShape):
        unwrap_result("m", {"result": None})


# Transport


@pytest.mark.asyncio
async def test_call_posts_signed_body_and_returns_envelope():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["body"] = request.content
        seen["query"] = dict(request.url.params)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"shifts": []}})

    client, http_client = _client(handler)
    envelope = await client.call("shift.whosOn", {"timeclock_status": True})
    await http_client.aclose()

    assert envelope["result"] == {"shifts": []}
    assert seen["method"] == "POST"
    assert orjson.loads(seen["body"])["method"] == "shift.whosOn"
    assert seen["query"]["access_key_id"] == ACCESS_KEY_ID
    assert seen["query"]["signature"] == generate_signature(seen["body"], SECRET_KEY)


@pytest.mark.asyncio
async def test_error_envelope_with_ok_status_is_returned_for_the_caller():
    def handler(request):
        return httpx.Response(200, json={"error": {"code": 3, "message": "Invalid signature"}})

    client, http_client = _client(handler)
    envelope = await client.call("shift.whosOn")
    await http_client.aclose()

    assert envelope == {"error": {"code": 3, "message": "Invalid signature"}}


@pytest.mark.asyncio
async def test_http_error_status_raises_upstream_error():
    def handler(request):
        return httpx.Response(500, content=b"<html>oops</html>")

    client, http_client = _client(handler)
    with pytest.raises(UpstreamError) as exc_info:
        await client.call("shift.whosOn")
    await http_client.aclose()

    assert exc_info.value.status_code == 500
    assert "HTTP error: 500" in exc_info.value.message


@pytest.mark.asyncio
async def test_http_error_status_prefers_envelope_message():
    def handler(request):
        return httpx.Response(403, json={"error": {"message": "Access denied"}})

    client, http_client = _client(handler)
    with pytest.raises(UpstreamError) as exc_info:
        await client.call("account.self")
    await http_client.aclose()

    assert exc_info.value.message == "Access denied"
    assert exc_info.value.status_code == 403


@pytest.mark.asyncio
async def test_undecodable_body_raises_upstream_error():
    def handler(request):
        return httpx.Response(200, content=b"not json")

    client, http_client = _client(handler)
    with pytest.raises(UpstreamError, match="Failed to parse API response"):
        await client.call("shift.whosOn")
    await http_client.aclose()


@pytest.mark.asyncio
async def test_non_object_body_raises_upstream_error():
    def handler(request):
        return httpx.Response(200, json=[1, 2, 3])

    client, http_client = _client(handler)
    with pytest.raises(UpstreamError):
        await client.call("shift.whosOn")
    await http_client.aclose()


@pytest.mark.asyncio
async def test_transport_errors_are_retried_then_succeed():
    attempts = []

    def handler(request):
        attempts.append(request)
        if len(attempts) < 3:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={"result": {"message": "ok"}})

    client, http_client = _client(handler, max_retries=3)
    envelope = await client.call("system.echo")
    await http_client.aclose()

    assert envelope == {"result": {"message": "ok"}}
    assert len(attempts) == 3
    assert attempts[0].content == attempts[-1].content


@pytest.mark.asyncio
async def test_exhausted_transport_retries_raise_upstream_error():
    attempts = []

    def handler(request):
        attempts.append(request)
        raise httpx.ReadTimeout("timed out", request=request)

    client, http_client = _client(handler, max_retries=2)
    with pytest.raises(UpstreamError, match="No response received") as exc_info:
        await client.call("shift.whosOn")
    await http_client.aclose()

    assert len(attempts) == 2
    assert isinstance(exc_info.value.__cause__, httpx.ReadTimeout)


@pytest.mark.asyncio
async def test_http_status_errors_are_not_retried():
    attempts = []

    def handler(request):
        attempts.append(request)
        return httpx.Response(502, content=b"")

    client, http_client = _client(handler, max_retries=3)
    with pytest.raises(UpstreamError):
        await client.call("shift.whosOn")
    await http_client.aclose()

    assert len(attempts) == 1


@pytest.mark.asyncio
async def test_echo_unwraps_result():
    def handler(request):
        params = orjson.loads(request.content)["params"]
        return httpx.Response(200, json={"result": {"message": params["message"]}})

    client, http_client = _client(handler)
    result = await client.echo("hello")
    await http_client.aclose()

    assert result == {"message": "hello"}


@pytest.mark.asyncio
async def test_client_does_not_close_injected_http_client():
    client, http_client = _client(lambda request: httpx.Response(200, json={"result": {}}))

    async with client:
        await client.call("system.echo")

    assert http_client.is_closed is False
    await http_client.aclose()
