"""
Shared test factories.

Usage:
    from tests.fixtures import FakeShiftboardClient, make_account, make_page, make_shift
"""

import asyncio
import copy
from typing import Any, Callable, Optional, Union


def make_shift(**overrides: Any) -> dict[str, Any]:
    shift = {
        "id": "shift-1",
        "name": "Morning Security",
        "local_start_date": "2026-02-20T08:00:00",
        "local_end_date": "2026-02-20T16:00:00",
        "covering_member": "account-1",
        "clocked_in": False,
        "workgroup": "wg-1",
        "subject": "Gate A",
        "location": "Main Campus",
    }
    shift.update(overrides)
    return shift


def make_account(**overrides: Any) -> dict[str, Any]:
    account = {
        "id": "account-1",
        "first_name": "Alice",
        "last_name": "Smith",
        "screen_name": "alice.smith",
        "mobile_phone": "555-0100",
    }
    account.update(overrides)
    return account


def make_page(
    items: Optional[list[Any]] = None,
    container: str = "shifts",
    next_cursor: Optional[dict[str, int]] = None,
    accounts: Optional[list[dict[str, Any]]] = None,
    workgroups: Optional[list[dict[str, Any]]] = None,
    page: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """JSON-RPC envelope for one page of a list method."""
    result: dict[str, Any] = {container: items if items is not None else []}

    referenced: dict[str, Any] = {}
    if accounts is not None:
        referenced["account"] = accounts
    if workgroups is not None:
        referenced["workgroup"] = workgroups
    if referenced:
        result["referenced_objects"] = referenced

    page_info = dict(page or {})
    if next_cursor is not None:
        page_info["next"] = next_cursor
    if page_info:
        result["page"] = page_info

    return {"id": 1, "jsonrpc": "2.0", "result": result}


Response = Union[dict[str, Any], Exception]


class FakeShiftboardClient:
    """Signed request client stand-in serving scripted envelopes.

    `responses` is either a list consumed in call order or a callable
    `(method, params) -> envelope` used for every call. Exceptions are raised.
    """

    def __init__(
        self,
        responses: Union[list[Response], Callable[[str, dict[str, Any]], Response]],
        delay: Optional[Callable[[dict[str, Any]], float]] = None,
    ) -> None:
        self.responses = responses
        self.delay = delay
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def call(self, method: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        params = copy.deepcopy(params or {})
        self.calls.append((method, params))

        if self.delay is not None:
            await asyncio.sleep(self.delay(params))

        if callable(self.responses):
            response = self.responses(method, params)
        else:
            if not self.responses:
                raise AssertionError(f"Unexpected call: {method} {params}")
            response = self.responses.pop(0)

        if isinstance(response, Exception):
            raise response
        return response

    @property
    def pages_requested(self) -> list[Any]:
        return [params.get("page") for _, params in self.calls]
