"""Latest-snapshot cache for the page-level collection reads.

Keys are collection names ("components", "categories", "logs", "users"),
optionally with a ":view" suffix for a derived read ("logs:open"). Writers
mark the collections they touch on their session; when that session
commits, every key of those collections is dropped and the next read
refetches. A fetch that overlaps an invalidation is returned but not
stored.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, TypeVar

from sqlalchemy import event
from sqlalchemy.orm import Session

logger = logging.getLogger("app.cache")

T = TypeVar("T")

COLLECTIONS = ("components", "categories", "logs", "users")
_DIRTY_KEY = "dirty_snapshots"


def collection_of(key: str) -> str:
    return key.split(":", 1)[0]


class SnapshotCache:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, Any] = {}
        self._generations: dict[str, int] = {}

    def get(self, key: str, fetch: Callable[[], T]) -> T:
        collection = collection_of(key)
        with self._lock:
            if key in self._entries:
                return self._entries[key]
            generation = self._generations.get(collection, 0)

        value = fetch()

        with self._lock:
            if self._generations.get(collection, 0) == generation:
                self._entries[key] = value
        return value

    def invalidate(self, *collections: str) -> None:
        if not collections:
            return
        with self._lock:
            for collection in collections:
                self._generations[collection] = self._generations.get(collection, 0) + 1
            for key in [k for k in self._entries if collection_of(k) in collections]:
                del self._entries[key]
        logger.debug("invalidated collections=%s", ",".join(sorted(collections)))

    def clear(self) -> None:
        with self._lock:
            collections = {collection_of(k) for k in self._entries} | set(COLLECTIONS)
        self.invalidate(*collections)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries


snapshots = SnapshotCache()


def mark_dirty(db: Session, *collections: str) -> None:
    db.info.setdefault(_DIRTY_KEY, set()).update(collections)


def _invalidate_after_commit(session: Session) -> None:
    collections = session.info.pop(_DIRTY_KEY, None)
    if collections:
        snapshots.invalidate(*collections)


def _forget_after_rollback(session: Session) -> None:
    session.info.pop(_DIRTY_KEY, None)


event.listen(Session, "after_commit", _invalidate_after_commit)
event.listen(Session, "after_rollback", _forget_after_rollback)
