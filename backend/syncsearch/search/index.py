"""Per-client in-memory index of completed item summaries.

The index is derived state: it can be dropped and rebuilt from the durable
store at any time. Each client's entries live in an immutable generation that
is swapped as a whole, so a reader either sees the previous generation or the
next one, never a half-built one.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping, Optional
from uuid import UUID

from syncsearch.core.shared_models import ItemStatus, SourceKind
from syncsearch.schemas.synced_item import SyncedItem


@dataclass(frozen=True)
class IndexEntry:
    """Projection of a completed item used to build query context."""

    remote_id: str
    name: str
    summary: str
    source: SourceKind
    item_id: Optional[UUID] = None

    @classmethod
    def from_item(cls, item: SyncedItem) -> Optional["IndexEntry"]:
        """Build an entry, or None when the item is not indexable."""
        if item.status != ItemStatus.COMPLETED or not item.summary:
            return None
        return cls(
            remote_id=item.remote_id,
            name=item.name,
            summary=item.summary,
            source=item.source,
            item_id=item.id,
        )


class IndexRebuild:
    """Staging area for a client's next index generation.

    Nothing written here is visible to readers until ``commit``.
    """

    def __init__(self, index: "SearchIndex", client_id: UUID):
        """Start an empty staging generation."""
        self._index = index
        self.client_id = client_id
        self._entries: dict[str, IndexEntry] = {}
        self._committed = False

    def __len__(self) -> int:
        """Number of staged entries."""
        return len(self._entries)

    def clear(self) -> None:
        """Drop everything staged so far."""
        self._entries.clear()

    def restore(self, items: Iterable[SyncedItem]) -> int:
        """Stage cached items as-is; returns how many were indexable."""
        restored = 0
        for item in items:
            if self.insert(item):
                restored += 1
        return restored

    def insert(self, item: SyncedItem) -> bool:
        """Stage one item; non-completed items are ignored."""
        entry = IndexEntry.from_item(item)
        if entry is None:
            self._entries.pop(item.remote_id, None)
            return False
        self._entries[item.remote_id] = entry
        return True

    def remove(self, remote_ids: Iterable[str]) -> None:
        """Unstage items by remote id."""
        for remote_id in remote_ids:
            self._entries.pop(remote_id, None)

    def commit(self) -> int:
        """Publish the staged generation; returns its size."""
        if self._committed:
            raise RuntimeError("Index rebuild already committed")
        self._committed = True
        self._index._publish(self.client_id, dict(self._entries))
        return len(self._entries)


class SearchIndex:
    """Per-client mapping from remote id to summary entry."""

    def __init__(self) -> None:
        """Create an empty index."""
        self._generations: dict[UUID, Mapping[str, IndexEntry]] = {}

    def _publish(self, client_id: UUID, entries: dict[str, IndexEntry]) -> None:
        self._generations[client_id] = MappingProxyType(entries)

    def has_client(self, client_id: UUID) -> bool:
        """Whether a generation was ever published for the client in this process."""
        return client_id in self._generations

    def begin_rebuild(self, client_id: UUID) -> IndexRebuild:
        """Start building the client's next generation from scratch."""
        return IndexRebuild(self, client_id)

    def rebuild(self, client_id: UUID, items: Iterable[SyncedItem]) -> int:
        """Replace the client's generation with the completed ``items``."""
        staging = self.begin_rebuild(client_id)
        staging.restore(items)
        return staging.commit()

    def clear(self, client_id: UUID) -> None:
        """Publish an empty generation for the client."""
        self._publish(client_id, {})

    def drop(self, client_id: UUID) -> None:
        """Forget the client entirely; the next query rebuilds from the store."""
        self._generations.pop(client_id, None)

    def insert(self, client_id: UUID, item: SyncedItem) -> bool:
        """Add or replace one item in the live generation (copy-on-write)."""
        entries = dict(self._generations.get(client_id, {}))
        entry = IndexEntry.from_item(item)
        if entry is None:
            entries.pop(item.remote_id, None)
        else:
            entries[item.remote_id] = entry
        self._publish(client_id, entries)
        return entry is not None

    def remove(self, client_id: UUID, remote_ids: Iterable[str]) -> None:
        """Remove items from the live generation (copy-on-write)."""
        entries = dict(self._generations.get(client_id, {}))
        for remote_id in remote_ids:
            entries.pop(remote_id, None)
        self._publish(client_id, entries)

    def entries(self, client_id: UUID, source: Optional[SourceKind] = None) -> list[IndexEntry]:
        """Snapshot of the client's entries, optionally for one source, by name."""
        generation = self._generations.get(client_id, {})
        selected = [
            entry for entry in generation.values() if source is None or entry.source == source
        ]
        return sorted(selected, key=lambda entry: (entry.name.lower(), entry.remote_id))

    def size(self, client_id: UUID) -> int:
        """Number of live entries for the client."""
        return len(self._generations.get(client_id, {}))
