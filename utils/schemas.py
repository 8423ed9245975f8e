"""
Pydantic Schemas - Data Validation Models

Defines all Pydantic schemas used throughout the who's-on pipeline:
- Shiftboard page cursors
- Raw shift assignment records and grouped shifts
- Referenced objects (accounts, workgroups)
- Accumulated pagination results and dashboard snapshots
- Redis Pub/Sub refresh events

Usage:
    from utils.schemas import RawShift

    shift = RawShift.model_validate(raw_data)
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class PageCursor(BaseModel):
    """Shiftboard pagination position sent as `page` on list calls."""

    start: int = Field(default=0, ge=0, description="Offset of the first record")
    batch: int = Field(default=100, ge=1, description="Records per page")


class RawShift(BaseModel):
    """One assignment of one person to one shift occurrence.

    Every field is optional: upstream data quality is not guaranteed and the
    grouper substitutes defaults for missing grouping attributes. Fields not
    listed here (display_date, timezone, role, ...) are kept as extras.
    """

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: Optional[str] = None
    name: Optional[str] = None
    local_start_date: Optional[str] = None
    local_end_date: Optional[str] = None
    workgroup: Optional[str] = None
    subject: Optional[str] = None
    location: Optional[str] = None
    covering_member: Optional[str] = None
    clocked_in: Any = None


class Account(BaseModel):
    """Account (person) referenced by shifts; identity key is `id`."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str
    external_id: Optional[str] = None
    screen_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    mobile_phone: Optional[str] = None


class Workgroup(BaseModel):
    """Workgroup referenced by shifts; identity key is `id`."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str
    name: Optional[str] = None


class GroupedShift(RawShift):
    """Canonical shift occurrence aggregating every assignment that shares its schedule attributes.

    `assignedPeople` and `clockStatuses` are index-aligned. `assignedPersonNames`
    only holds names that resolved against the account list, so it may be shorter.
    """

    assignedPeople: list[str] = Field(default_factory=list)
    clockStatuses: list[bool] = Field(default_factory=list)
    assignedPersonNames: list[str] = Field(default_factory=list)


class AccumulatedResult(BaseModel):
    """Union of every fetched page for one pagination run."""

    container: str = Field(default="shifts", description="Result key holding the primary list")
    items: list[Any] = Field(default_factory=list)
    referenced_objects: dict[str, list[dict[str, Any]]] = Field(default_factory=dict)
    partial: bool = Field(default=False, description="Page ceiling reached with pages remaining")
    pages_fetched: int = Field(default=0)

    @property
    def shifts(self) -> list[Any]:
        return self.items

    @property
    def accounts(self) -> list[dict[str, Any]]:
        return self.referenced_objects.get("account", [])

    @property
    def workgroups(self) -> list[dict[str, Any]]:
        return self.referenced_objects.get("workgroup", [])

    def to_result(self) -> dict[str, Any]:
        """Shape the accumulation like a single upstream page result."""
        return {
            self.container: self.items,
            "referenced_objects": self.referenced_objects,
            "partial": self.partial,
        }


class WhosOnMetrics(BaseModel):
    """Refresh telemetry for one who's-on snapshot."""

    original_shift_count: int = 0
    grouped_shift_count: int = 0
    clocked_in_count: int = 0
    total_assigned_count: int = 0
    pages_fetched: int = 0
    fetch_duration_ms: int = 0
    grouping_duration_ms: int = 0
    total_duration_ms: int = 0


class TimingMetadata(BaseModel):
    """Wall-clock window of a request, UTC ISO-8601."""

    start: str
    end: str
    duration_ms: int


class WhosOnSnapshot(BaseModel):
    """Client-facing who's-on payload."""

    shifts: list[GroupedShift] = Field(default_factory=list)
    referenced_objects: dict[str, list[dict[str, Any]]] = Field(default_factory=dict)
    metrics: WhosOnMetrics = Field(default_factory=WhosOnMetrics)
    partial: bool = False
    timing: Optional[TimingMetadata] = None


class RefreshEvent(BaseModel):
    """Redis Pub/Sub event payload published after each snapshot refresh.

    {
        "type": "snapshot_refreshed",
        "key": "whoson:snapshot",
        "partial": false,
        "metrics": {...},
        "ts": "2026-01-15T03:15:02Z"
    }
    """

    type: str = Field(default="snapshot_refreshed", description="Event type")
    key: str = Field(..., description="Redis key holding the snapshot")
    partial: bool = Field(default=False)
    metrics: dict[str, Any] = Field(default_factory=dict)
    ts: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Timestamp")
