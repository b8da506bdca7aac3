"""Watch actions and the synchronization events derived from them."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class WatchAction(StrEnum):
    """Type tag of a Kubernetes watch notification."""

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"
    ERROR = "ERROR"
    BOOKMARK = "BOOKMARK"


@dataclass(frozen=True)
class SyncEvent:
    """Upsert or removal of the targets derived from one resource.

    Produced by the EventTranslator, consumed once by the TargetReconciler.
    ``labels`` is None for a tombstone; an upsert carries the (possibly
    empty) list of label sets, one per scrape-able endpoint.
    """

    key: str
    section: str
    labels: list[dict[str, str]] | None = None

    @property
    def is_tombstone(self) -> bool:
        return self.labels is None
