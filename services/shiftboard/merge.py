"""
Referenced-Object Merging

Shiftboard returns denormalized `referenced_objects` (accounts, workgroups, ...)
alongside every page. Across pages the same object shows up repeatedly; this
module folds them into one list per object type, keyed by `id`.
"""

import logging
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)


def _object_id(obj: Any) -> Any:
    """The object's `id`, or None when missing or unhashable."""
    if not isinstance(obj, dict):
        return None

    object_id = obj.get("id")
    try:
        hash(object_id)
    except TypeError:
        return None
    return object_id


def merge_referenced_objects(
    accumulator: dict[str, list[dict[str, Any]]],
    page_objects: Optional[Mapping[str, Any]],
    seen: Optional[dict[str, set[Any]]] = None,
) -> dict[str, list[dict[str, Any]]]:
    """
    Merge one page's referenced objects into the accumulator, first-seen wins.

    Objects already present (same `id` within the same type) are skipped even
    if their fields differ. Objects without an `id`, or whose `id` is not a
    scalar, cannot be deduplicated and are dropped.

    Args:
        accumulator: Object type -> merged list, mutated in place
        page_objects: Object type -> list from one page (None is a no-op)
        seen: Optional id index per type, kept by callers merging many pages

    Returns:
        The updated accumulator
    """
    if not page_objects:
        return accumulator

    if seen is None:
        seen = {}

    for object_type, objects in page_objects.items():
        if not isinstance(objects, list):
            logger.warning(
                "Ignoring non-list referenced objects: type=%s, value_type=%s",
                object_type, type(objects).__name__,
            )
            continue

        merged = accumulator.setdefault(object_type, [])
        ids = seen.get(object_type)
        if ids is None:
            ids = {_object_id(obj) for obj in merged} - {None}
            seen[object_type] = ids

        for obj in objects:
            object_id = _object_id(obj)
            if object_id is None:
                logger.debug("Skipping referenced object without usable id: type=%s", object_type)
                continue

            if object_id in ids:
                continue

            ids.add(object_id)
            merged.append(obj)

    return accumulator


def dedupe_by_id(objects: list[Any]) -> list[dict[str, Any]]:
    """Deduplicate a flat list of objects by `id`, keeping first occurrences in order."""
    return merge_referenced_objects({}, {"_": objects})["_"] if objects else []
