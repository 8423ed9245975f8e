"""
Pagination for Shiftboard List Methods

Shiftboard list methods take a `page: {start, batch}` parameter and answer with
`page.next` (the cursor for the following page) until the last page, where
`next` is omitted. Pages must be fetched one after another because the next
cursor is only known once the current page has arrived.

Safety features:
- Hard ceiling of MAX_PAGES pages per run; hitting it returns a partial result
- Fast fail when the upstream declares more pages than the ceiling
- A cursor is never requested twice; a repeated `page.next` aborts the run
- All-or-nothing: any page error aborts the run, and a failed parallel batch
  cancels its outstanding requests

Usage:
    fetcher = PageFetcher(client)
    accumulated = await fetch_all(fetcher, "shift.whosOn", {"timeclock_status": True})
"""

import asyncio
import logging
import math
from typing import Any, Mapping, Optional, Protocol, Union

import httpx
import orjson

from services.shiftboard.client import unwrap_result
from services.shiftboard.errors import InvalidResponseShape, PageLimitExceeded, UpstreamError
from services.shiftboard.merge import merge_referenced_objects
from utils.config import settings
from utils.schemas import AccumulatedResult, PageCursor

logger = logging.getLogger(__name__)

MAX_PAGES = 100
DEFAULT_BATCH_SIZE = 100

# Result key holding the primary list, per JSON-RPC method
RESULT_CONTAINERS = {
    "shift.whosOn": "shifts",
    "shift.list": "shifts",
    "account.list": "accounts",
    "workgroup.list": "workgroups",
    "workgroup.listRoles": "roles",
    "role.list": "roles",
}


class RpcClient(Protocol):
    async def call(self, method: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        ...


def container_for(method: str) -> str:
    """Name of the list container a method's result carries."""
    if method in RESULT_CONTAINERS:
        return RESULT_CONTAINERS[method]
    if method.startswith("shift."):
        return "shifts"
    return "data"


def calculate_page_cursor(
    page: int,
    batch: int = DEFAULT_BATCH_SIZE,
    start_offset: int = 0,
) -> PageCursor:
    """
    Cursor for a 1-indexed page number.

    Raises:
        ValueError: If page or batch is below 1
    """
    if page < 1:
        raise ValueError("Page number must be >= 1")

    if batch < 1:
        raise ValueError("Page size must be >= 1")

    return PageCursor(start=start_offset + (page - 1) * batch, batch=batch)


def declared_total_pages(page_info: Any, batch: Optional[int] = None) -> Optional[int]:
    """
    Total page count the upstream declares, if any.

    Uses `total_pages` when present, otherwise derives it from the `total`
    record count and the page batch size.
    """
    if not isinstance(page_info, Mapping):
        return None

    total_pages = page_info.get("total_pages")
    if isinstance(total_pages, int) and not isinstance(total_pages, bool):
        return total_pages

    total = page_info.get("total")
    page_batch = page_info.get("batch", batch)
    try:
        total = int(total)
        page_batch = int(page_batch)
    except (TypeError, ValueError):
        return None

    if page_batch < 1:
        return None

    return math.ceil(total / page_batch)


def _cursor_dict(cursor: Union[PageCursor, Mapping[str, Any], None]) -> Any:
    if cursor is None:
        return PageCursor(start=settings.PAGE_START, batch=settings.PAGE_BATCH_SIZE).model_dump()
    if isinstance(cursor, PageCursor):
        return cursor.model_dump()
    return dict(cursor)


def _cursor_key(cursor: Any) -> bytes:
    return orjson.dumps(cursor, option=orjson.OPT_SORT_KEYS, default=str)


def _extract_items(method: str, result: Mapping[str, Any], container: str) -> list[Any]:
    items = result.get(container)
    if not isinstance(items, list):
        raise InvalidResponseShape(method, f"Response is missing the '{container}' list")
    return items


class PageFetcher:
    """Fetches single pages through the signed request client."""

    def __init__(self, client: RpcClient) -> None:
        self.client = client

    async def fetch_page(self, method: str, params: dict[str, Any]) -> dict[str, Any]:
        """
        Fetch one page and return its `result` object.

        Raises:
            UpstreamError: Transport failure or error payload from Shiftboard
            InvalidResponseShape: Envelope without a result object
        """
        logger.debug("Fetching page: method=%s, page=%s", method, params.get("page"))

        try:
            envelope = await self.client.call(method, params)
        except httpx.HTTPError as e:
            raise UpstreamError(method, str(e)) from e

        if not isinstance(envelope, Mapping):
            raise InvalidResponseShape(method, "Response envelope is not an object")

        return unwrap_result(method, envelope)


async def fetch_all(
    fetcher: PageFetcher,
    method: str,
    base_params: Optional[dict[str, Any]] = None,
    initial_cursor: Union[PageCursor, Mapping[str, Any], None] = None,
    container: Optional[str] = None,
    max_pages: int = MAX_PAGES,
    parallel: bool = False,
) -> AccumulatedResult:
    """
    Fetch every page of a list method and accumulate the results.

    Args:
        fetcher: Page fetcher wrapping the signed request client
        method: JSON-RPC list method
        base_params: Parameters sent with every page (without `page`)
        initial_cursor: First cursor, defaults to settings.PAGE_START / PAGE_BATCH_SIZE
        container: Result key holding the primary list, inferred from method
        max_pages: Safety ceiling on pages fetched
        parallel: Once the first page declares the total page count, fetch the
            remaining pages concurrently instead of following cursors

    Returns:
        AccumulatedResult with items from all pages and deduplicated referenced objects

    Raises:
        UpstreamError: Any page failed
        InvalidResponseShape: A page lacked the expected container, or the
            upstream handed back a cursor that was already consumed
        PageLimitExceeded: The upstream declared more than max_pages pages
    """
    container = container or container_for(method)
    base_params = dict(base_params or {})
    base_params.pop("page", None)

    cursor = _cursor_dict(initial_cursor)
    accumulated = AccumulatedResult(container=container)
    seen: dict[str, set[Any]] = {}
    consumed: set[bytes] = set()
    page_count = 0

    while True:
        page_count += 1
        consumed.add(_cursor_key(cursor))
        result = await fetcher.fetch_page(method, {**base_params, "page": cursor})

        accumulated.items.extend(_extract_items(method, result, container))
        merge_referenced_objects(accumulated.referenced_objects, result.get("referenced_objects"), seen)

        page_info = result.get("page")
        batch = cursor.get("batch") if isinstance(cursor, Mapping) else None
        total_pages = declared_total_pages(page_info, batch)
        if total_pages is not None and total_pages > max_pages:
            logger.error(
                "Declared page count exceeds ceiling: method=%s, total_pages=%d, max_pages=%d",
                method, total_pages, max_pages,
            )
            raise PageLimitExceeded(method, total_pages, max_pages)

        next_cursor = page_info.get("next") if isinstance(page_info, Mapping) else None
        if not next_cursor:
            break

        if _cursor_key(next_cursor) in consumed:
            logger.error(
                "Upstream repeated a consumed cursor: method=%s, page=%d, cursor=%s",
                method, page_count, next_cursor,
            )
            raise InvalidResponseShape(method, f"Pagination cursor repeated: {next_cursor}")

        if parallel and page_count == 1 and total_pages is not None and total_pages > 1:
            start_offset = cursor.get("start", 0) if isinstance(cursor, Mapping) else 0
            rest = await fetch_pages_in_parallel(
                fetcher,
                method,
                base_params,
                first_page=2,
                last_page=total_pages,
                batch=batch or DEFAULT_BATCH_SIZE,
                start_offset=start_offset,
                container=container,
                max_pages=max_pages,
            )
            accumulated.items.extend(rest.items)
            merge_referenced_objects(accumulated.referenced_objects, rest.referenced_objects, seen)
            page_count += rest.pages_fetched
            break

        if page_count >= max_pages:
            accumulated.partial = True
            logger.warning(
                "Pagination stopped at %d pages, some data may not be fetched: method=%s",
                max_pages, method,
            )
            break

        cursor = next_cursor

    accumulated.pages_fetched = page_count

    logger.info(
        "Pagination complete: method=%s, pages=%d, items=%d, partial=%s",
        method, page_count, len(accumulated.items), accumulated.partial,
    )

    return accumulated


async def fetch_pages_in_parallel(
    fetcher: PageFetcher,
    method: str,
    base_params: Optional[dict[str, Any]],
    first_page: int,
    last_page: int,
    batch: int = DEFAULT_BATCH_SIZE,
    start_offset: int = 0,
    container: Optional[str] = None,
    max_pages: int = MAX_PAGES,
) -> AccumulatedResult:
    """
    Fetch a known span of pages concurrently.

    Results are concatenated in page order, not completion order. Any failing
    page fails the whole batch; requests still in flight are cancelled and
    awaited before the error propagates.

    Raises:
        ValueError: If the page span is empty or starts below page 1
        PageLimitExceeded: If the span is larger than max_pages (no request is made)
        UpstreamError: Any page failed
        InvalidResponseShape: A page lacked the expected container
    """
    if first_page < 1:
        raise ValueError("Page number must be >= 1")

    if last_page < first_page:
        raise ValueError("last_page must be >= first_page")

    span = last_page - first_page + 1
    if span > max_pages:
        raise PageLimitExceeded(method, span, max_pages)

    container = container or container_for(method)
    base_params = dict(base_params or {})
    base_params.pop("page", None)

    logger.debug(
        "Fetching pages in parallel: method=%s, pages=%d-%d, batch=%d",
        method, first_page, last_page, batch,
    )

    tasks = [
        asyncio.ensure_future(
            fetcher.fetch_page(
                method,
                {**base_params, "page": calculate_page_cursor(page, batch, start_offset).model_dump()},
            )
        )
        for page in range(first_page, last_page + 1)
    ]

    try:
        results = await asyncio.gather(*tasks)
    except BaseException:
        pending = [task for task in tasks if not task.done()]
        for task in pending:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.warning(
            "Parallel page batch failed: method=%s, pages=%d-%d, cancelled=%d",
            method, first_page, last_page, len(pending),
        )
        raise

    accumulated = AccumulatedResult(container=container, pages_fetched=span)
    seen: dict[str, set[Any]] = {}
    for result in results:
        accumulated.items.extend(_extract_items(method, result, container))
        merge_referenced_objects(accumulated.referenced_objects, result.get("referenced_objects"), seen)

    return accumulated
