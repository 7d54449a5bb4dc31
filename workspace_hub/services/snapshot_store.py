"""
In-process store for the last computed dashboard snapshot per screen.

Keys are ``(screen, user_id, workspace_id)``. Every aggregation run takes a
generation from ``begin`` before it starts fetching and hands it back to
``publish`` when it finishes. A snapshot is accepted only when no newer
generation has already been published, so a slow stale run can never
replace the result of a faster, newer one.

    gen = snapshots.begin(key)
    payload = ...                          # long-running aggregation
    accepted = snapshots.publish(key, gen, payload)
"""

import logging
import threading
import time
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    generation: int
    payload: dict
    published_at: float


class SnapshotStore:
    def __init__(self):
        self._lock = threading.Lock()
        self._issued: dict = {}
        self._snapshots: dict = {}

    @staticmethod
    def key(screen, user_id, workspace_id):
        return (screen, user_id, workspace_id)

    def begin(self, key) -> int:
        """Issue the next generation for ``key`` (strictly increasing)."""
        with self._lock:
            generation = self._issued.get(key, 0) + 1
            self._issued[key] = generation
            return generation

    def publish(self, key, generation, payload) -> bool:
        """Store ``payload`` unless a newer generation was already published."""
        with self._lock:
            current = self._snapshots.get(key)
            if current is not None and current.generation >= generation:
                logger.info(
                    "Discarding superseded %s snapshot (generation %d < %d)",
                    key[0], generation, current.generation,
                    extra={"user_id": key[1], "workspace_id": key[2], "event_type": "snapshot_superseded"},
                )
                return False
            self._snapshots[key] = Snapshot(generation, payload, time.time())
            return True

    def latest(self, key):
        """Last accepted snapshot for ``key``, or None."""
        with self._lock:
            return self._snapshots.get(key)

    def is_current(self, key, generation) -> bool:
        """True when no newer run has been started for ``key``."""
        with self._lock:
            return self._issued.get(key, 0) == generation

    def clear(self):
        with self._lock:
            self._issued.clear()
            self._snapshots.clear()
