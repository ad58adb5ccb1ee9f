from __future__ import annotations

import copy
import threading
from typing import Dict, Optional

from spotlink.domain.entities import PlayableTrack


class TrackCache:
    """In-memory map of Spotify track id to resolved track.

    Entries are stored as private snapshots and every read hands out a deep
    copy, so callers may mutate what they get back.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, PlayableTrack] = {}
        self._lock = threading.Lock()

    def get(self, identifier: str) -> Optional[PlayableTrack]:
        with self._lock:
            cached = self._entries.get(identifier)
            return copy.deepcopy(cached) if cached is not None else None

    def put(self, identifier: str, track: PlayableTrack) -> None:
        snapshot = copy.deepcopy(track)
        with self._lock:
            self._entries[identifier] = snapshot

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, identifier: str) -> bool:
        with self._lock:
            return identifier in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
