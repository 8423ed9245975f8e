"""
Shift Service

Orchestrates Shiftboard shift calls with pagination, shift grouping and
refresh telemetry for the staffing-status dashboard.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Sequence

from services.shiftboard.errors import InvalidResponseShape
from services.shiftboard.grouping import (
    count_clocked_in,
    count_total_assigned,
    filter_by_workgroup,
    group_shifts,
)
from services.shiftboard.pagination import PageFetcher, RpcClient, fetch_all
from utils.config import settings
from utils.schemas import PageCursor, TimingMetadata, WhosOnMetrics, WhosOnSnapshot

logger = logging.getLogger(__name__)


def _elapsed_ms(since: float) -> int:
    return int(round((time.perf_counter() - since) * 1000))


class ShiftService:
    """Shift operations backed by the Shiftboard API."""

    def __init__(self, client: RpcClient, batch_size: Optional[int] = None) -> None:
        self.client = client
        self.fetcher = PageFetcher(client)
        self.batch_size = batch_size or settings.PAGE_BATCH_SIZE

    async def whos_on(
        self,
        workgroup: Optional[str] = None,
        batch: Optional[int] = None,
    ) -> WhosOnSnapshot:
        """
        Current shifts with clock-in status, grouped per shift occurrence.

        Args:
            workgroup: Optional workgroup id filter
            batch: Page size, defaults to the service batch size

        Returns:
            WhosOnSnapshot with grouped shifts, merged referenced objects and metrics

        Raises:
            UpstreamError, InvalidResponseShape, PageLimitExceeded: From pagination
        """
        logger.info("Fetching whos-on shifts (workgroup=%s)", workgroup or "all")

        started_at = datetime.now(timezone.utc)
        request_start = time.perf_counter()

        params: dict[str, Any] = {"timeclock_status": True, "extended": True}
        if workgroup:
            params["select"] = {"workgroup": workgroup}

        cursor = PageCursor(start=settings.PAGE_START, batch=batch or self.batch_size)
        accumulated = await fetch_all(self.fetcher, "shift.whosOn", params, cursor)
        fetch_duration_ms = _elapsed_ms(request_start)

        grouping_start = time.perf_counter()
        grouped = group_shifts(accumulated.shifts, accumulated.accounts)
        grouping_duration_ms = _elapsed_ms(grouping_start)

        metrics = WhosOnMetrics(
            original_shift_count=len(accumulated.shifts),
            grouped_shift_count=len(grouped),
            clocked_in_count=count_clocked_in(grouped),
            total_assigned_count=count_total_assigned(grouped),
            pages_fetched=accumulated.pages_fetched,
            fetch_duration_ms=fetch_duration_ms,
            grouping_duration_ms=grouping_duration_ms,
            total_duration_ms=_elapsed_ms(request_start),
        )

        finished_at = datetime.now(timezone.utc)

        logger.info(
            "Grouped %d -> %d shifts, %d clocked in (pages=%d, partial=%s)",
            metrics.original_shift_count,
            metrics.grouped_shift_count,
            metrics.clocked_in_count,
            metrics.pages_fetched,
            accumulated.partial,
        )

        return WhosOnSnapshot(
            shifts=grouped,
            referenced_objects=accumulated.referenced_objects,
            metrics=metrics,
            partial=accumulated.partial,
            timing=TimingMetadata(
                start=started_at.isoformat(),
                end=finished_at.isoformat(),
                duration_ms=metrics.total_duration_ms,
            ),
        )

    async def shift_list(
        self,
        workgroup: Optional[str] = None,
        start: Optional[int] = None,
        batch: Optional[int] = None,
    ) -> dict[str, Any]:
        """Single page of raw shifts (no grouping)."""
        logger.info("Fetching shift list (no grouping)")

        params: dict[str, Any] = {}
        if workgroup:
            params["select"] = {"workgroup": workgroup}
        if start is not None or batch is not None:
            params["page"] = PageCursor(
                start=start or 0, batch=batch or self.batch_size
            ).model_dump()

        result = await self.fetcher.fetch_page("shift.list", params)

        shifts = result.get("shifts")
        if not isinstance(shifts, list):
            raise InvalidResponseShape("shift.list", "Response is missing the 'shifts' list")

        page = result.get("page")
        if not isinstance(page, Mapping):
            page = {}
        return {
            "shifts": shifts,
            "page": {
                "start": page.get("start", start or 0),
                "batch": page.get("batch", batch or self.batch_size),
                "total": page.get("total", len(shifts)),
                "next": page.get("next"),
            },
        }

    def apply_workgroup_filter(self, shifts: Sequence[Any], workgroup_id: Optional[str]) -> list[Any]:
        """Filter already-fetched shifts by workgroup (None = no filter)."""
        return filter_by_workgroup(shifts, workgroup_id)
