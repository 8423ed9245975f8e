"""
Refresh Job - one who's-on snapshot

Runs the Shiftboard who's-on pipeline (paginate, merge referenced objects,
group shifts) and returns the snapshot the dashboard consumes.
"""

import logging
from typing import Any, Optional

from services.shiftboard.client import ShiftboardClient
from services.shiftboard.shifts import ShiftService
from utils.config import settings
from utils.schemas import WhosOnSnapshot

logger = logging.getLogger(__name__)


def snapshot_payload(snapshot: WhosOnSnapshot) -> dict[str, Any]:
    """Wrap a snapshot in the `result` envelope served to the client app."""
    return {"result": snapshot.model_dump(mode="json", exclude_none=True)}


async def run_refresh(
    client: Optional[ShiftboardClient] = None,
    workgroup: Optional[str] = None,
) -> WhosOnSnapshot:
    """
    Build a fresh who's-on snapshot.

    Args:
        client: Shiftboard client to use; a new one is created (and closed) when omitted
        workgroup: Workgroup filter, defaults to settings.REFRESH_WORKGROUP

    Returns:
        The grouped snapshot with metrics

    Raises:
        ShiftboardError: If fetching fails
    """
    workgroup = workgroup if workgroup is not None else settings.REFRESH_WORKGROUP
    owns_client = client is None
    client = client or ShiftboardClient()

    try:
        snapshot = await ShiftService(client).whos_on(workgroup)
    finally:
        if owns_client:
            await client.aclose()

    if snapshot.partial:
        logger.warning(
            "Snapshot is partial (page ceiling reached)",
            extra={"pages_fetched": snapshot.metrics.pages_fetched},
        )

    return snapshot
