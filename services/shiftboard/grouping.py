"""
Shift Grouping

Shiftboard returns one record per person per shift. The dashboard wants one
record per shift occurrence listing everybody on it, so records that share
name, local start/end, workgroup, subject and location are folded together.

Grouping is a single pass; output order is the order in which each shift
occurrence was first seen.
"""

import logging
import time
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Sequence

from pydantic import ValidationError

from utils.schemas import Account, GroupedShift, RawShift

logger = logging.getLogger(__name__)

UNNAMED_SHIFT = "Unnamed Shift"

GROUPING_FIELDS = (
    "name",
    "local_start_date",
    "local_end_date",
    "workgroup",
    "subject",
    "location",
)

TRUTHY_CLOCK_VALUES = frozenset({"true", "1", "yes"})


def grouping_defaults(now: Optional[str] = None) -> dict[str, str]:
    """
    Values substituted for missing grouping fields.

    `now` is computed once per grouping pass so that records missing the same
    dates still land in the same group.
    """
    now = now or datetime.now().isoformat(timespec="seconds")
    return {
        "name": UNNAMED_SHIFT,
        "local_start_date": now,
        "local_end_date": now,
        "workgroup": "",
        "subject": "",
        "location": "",
    }


def normalize_record(record: Any, index: int = 0) -> Optional[RawShift]:
    """Validate one raw record; returns None (and logs) when it is unusable."""
    if not isinstance(record, Mapping):
        logger.warning(
            "Skipping malformed shift record: index=%d, reason=not an object (%s)",
            index, type(record).__name__,
        )
        return None

    try:
        return RawShift.model_validate(dict(record))
    except ValidationError as e:
        logger.warning(
            "Skipping malformed shift record: index=%d, reason=%s",
            index, str(e).split("\n")[0],
        )
        return None


def grouping_key(shift: RawShift, defaults: Mapping[str, str]) -> tuple[str, ...]:
    return tuple(getattr(shift, field) or defaults[field] for field in GROUPING_FIELDS)


def coerce_clock_status(value: Any) -> bool:
    """Explicit boolean for a `clocked_in` value; anything unrecognised is False."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_CLOCK_VALUES
    if isinstance(value, (int, float)):
        return value != 0
    return False


def build_account_index(accounts: Optional[Iterable[Any]]) -> dict[str, Account]:
    """Map account id to account, ignoring entries that are not valid accounts."""
    index: dict[str, Account] = {}
    for account in accounts or []:
        if isinstance(account, Account):
            parsed = account
        elif isinstance(account, Mapping):
            try:
                parsed = Account.model_validate(dict(account))
            except ValidationError:
                logger.debug("Ignoring invalid account reference: %s", account.get("id"))
                continue
        else:
            continue

        index.setdefault(parsed.id, parsed)
    return index


def display_name(account: Account) -> Optional[str]:
    """
    Readable name for an account.

    Precedence: screen_name, then "first last", then whichever of the two exists.
    """
    screen_name = (account.screen_name or "").strip()
    if screen_name:
        return screen_name

    first_name = (account.first_name or "").strip()
    last_name = (account.last_name or "").strip()
    full_name = f"{first_name} {last_name}".strip()
    return full_name or None


def resolve_name(member_id: Optional[str], account_index: Mapping[str, Account]) -> Optional[str]:
    """Resolve an account id to a display name, None when unknown."""
    if not member_id:
        return None

    account = account_index.get(member_id)
    if account is None:
        return None

    return display_name(account)


def group_shifts(
    raw_shifts: Sequence[Any],
    accounts: Optional[Iterable[Any]] = None,
) -> list[GroupedShift]:
    """
    Group per-assignment shift records into shift occurrences.

    Args:
        raw_shifts: Raw shift records from Shiftboard
        accounts: Account references used to resolve display names

    Returns:
        Grouped shifts in first-seen order, each with index-aligned
        assignedPeople / clockStatuses and the resolvable assignedPersonNames
    """
    if not isinstance(raw_shifts, (list, tuple)):
        logger.warning("Shift input is not a list: type=%s", type(raw_shifts).__name__)
        return []

    start_time = time.perf_counter()

    account_index = build_account_index(accounts)
    defaults = grouping_defaults()
    groups: dict[tuple[str, ...], GroupedShift] = {}
    skipped = 0

    for index, record in enumerate(raw_shifts):
        shift = normalize_record(record, index)
        if shift is None:
            skipped += 1
            continue

        key = grouping_key(shift, defaults)
        member = shift.covering_member or None
        clocked_in = coerce_clock_status(shift.clocked_in)
        person_name = resolve_name(member, account_index)

        group = groups.get(key)
        if group is None:
            data = shift.model_dump(exclude_unset=True)
            data["assignedPeople"] = [member] if member else []
            data["clockStatuses"] = [clocked_in]
            data["assignedPersonNames"] = [person_name] if person_name else []
            groups[key] = GroupedShift.model_validate(data)
            continue

        if not member or member in group.assignedPeople:
            continue

        # Group was seeded by an unassigned record; drop its placeholder status
        if not group.assignedPeople:
            group.clockStatuses.clear()

        group.assignedPeople.append(member)
        group.clockStatuses.append(clocked_in)
        if person_name:
            group.assignedPersonNames.append(person_name)

    grouped = list(groups.values())

    duration_ms = (time.perf_counter() - start_time) * 1000
    logger.debug(
        "Grouped %d shifts into %d groups in %.2fms (skipped=%d)",
        len(raw_shifts), len(grouped), duration_ms, skipped,
    )

    return grouped


def count_clocked_in(shifts: Iterable[GroupedShift]) -> int:
    """Total clocked-in people across all grouped shifts.

    Only statuses paired with an assigned person count; the placeholder status
    of an unassigned shift is not a person.
    """
    return sum(
        1
        for shift in shifts
        for status in shift.clockStatuses[: len(shift.assignedPeople)]
        if status
    )


def count_total_assigned(shifts: Iterable[GroupedShift]) -> int:
    """Total assigned people across all grouped shifts (a person on two shifts counts twice)."""
    return sum(len(shift.assignedPeople) for shift in shifts)


def _field(shift: Any, name: str) -> Any:
    if isinstance(shift, Mapping):
        return shift.get(name)
    return getattr(shift, name, None)


def filter_by_workgroup(shifts: Sequence[Any], workgroup_id: Optional[str]) -> list[Any]:
    """Keep shifts belonging to a workgroup; no filter when workgroup_id is empty."""
    if not workgroup_id:
        return list(shifts)

    return [shift for shift in shifts if _field(shift, "workgroup") == workgroup_id]


def is_valid_shift(shift: Any) -> bool:
    """True for a shift object carrying id, name and both local dates."""
    if shift is None or not isinstance(shift, (Mapping, RawShift)):
        return False

    return all(_field(shift, name) for name in ("id", "name", "local_start_date", "local_end_date"))
