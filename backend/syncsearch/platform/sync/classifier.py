"""Change classification for remote items.

Decides, per remote item, whether the cached record can be reused or the item
must be fetched and summarized again.
"""

from dataclasses import dataclass
from typing import Optional

from syncsearch.core.config import settings
from syncsearch.core.datetime_utils import parse_timestamp
from syncsearch.core.shared_models import ItemStatus
from syncsearch.schemas.synced_item import RemoteItem, SyncedItem

REASON_NEW = "New item detected"
REASON_RETRY = "Retrying previously failed item"
REASON_INTERRUPTED = "Resuming interrupted processing"
REASON_FORCED = "Forced reprocessing"
REASON_MODIFIED = "Modification detected"
REASON_UNCHANGED = "No changes detected"


@dataclass(frozen=True)
class ItemDecision:
    """Outcome of classifying one remote item."""

    remote: RemoteItem
    existing: Optional[SyncedItem]
    reprocess: bool
    reason: str


def markers_differ(
    cached: Optional[str], fresh: Optional[str], tolerance_ms: Optional[int] = None
) -> bool:
    """Whether two modification markers denote different versions.

    Markers that both parse as timestamps are equal within ``tolerance_ms``.
    When either does not parse, any textual difference counts as a change.
    """
    tolerance_ms = settings.MARKER_TOLERANCE_MS if tolerance_ms is None else tolerance_ms
    if cached == fresh:
        return False
    if cached is None or fresh is None:
        return True

    cached_ts = parse_timestamp(cached)
    fresh_ts = parse_timestamp(fresh)
    if cached_ts is None or fresh_ts is None:
        return cached != fresh

    return abs((fresh_ts - cached_ts).total_seconds()) * 1000 > tolerance_ms


def classify_item(
    existing: Optional[SyncedItem],
    fresh: RemoteItem,
    force_full_resync: bool = False,
    tolerance_ms: Optional[int] = None,
) -> ItemDecision:
    """Classify one remote item against its cached record."""
    if existing is None:
        return ItemDecision(fresh, None, True, REASON_NEW)
    if existing.status == ItemStatus.FAILED:
        return ItemDecision(fresh, existing, True, REASON_RETRY)
    if force_full_resync:
        return ItemDecision(fresh, existing, True, REASON_FORCED)
    if markers_differ(existing.remote_modified_at, fresh.remote_modified_at, tolerance_ms):
        return ItemDecision(fresh, existing, True, REASON_MODIFIED)
    if existing.status != ItemStatus.COMPLETED:
        return ItemDecision(fresh, existing, True, REASON_INTERRUPTED)
    return ItemDecision(fresh, existing, False, REASON_UNCHANGED)
