from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

TRACK_LOADED = "TRACK_LOADED"
PLAYLIST_LOADED = "PLAYLIST_LOADED"
NO_MATCHES = "NO_MATCHES"
LOAD_FAILED = "LOAD_FAILED"

RESOURCE_TYPES = ("track", "album", "playlist", "artist", "episode", "show")


@dataclass(frozen=True)
class RawTrack:
    """Normalized raw record for one Spotify track or episode."""

    id: str
    name: str = ""
    artists: Tuple[str, ...] = ()
    url: str = ""
    duration_ms: int = 0


@dataclass(frozen=True)
class UnresolvedTrack:
    """Spotify track stub awaiting resolution against the search backend."""

    identifier: str
    title: str
    author: str
    uri: str
    duration_ms: int = 0

    @classmethod
    def from_raw(cls, raw: RawTrack) -> "UnresolvedTrack":
        return cls(
            identifier=raw.id,
            title=raw.name,
            author=" ".join(raw.artists),
            uri=raw.url,
            duration_ms=raw.duration_ms,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'identifier': self.identifier,
            'title': self.title,
            'author': self.author,
            'uri': self.uri,
            'durationMs': self.duration_ms,
        }


@dataclass
class PlayableTrack:
    """Track returned by the search backend: encoded handle plus info block."""

    track: str
    info: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlayableTrack":
        return cls(track=data.get('track', ''), info=dict(data.get('info') or {}))

    @property
    def identifier(self) -> Optional[str]:
        return self.info.get('identifier')

    def to_dict(self) -> Dict[str, Any]:
        return {'track': self.track, 'info': dict(self.info)}


LoadedTrack = Union[UnresolvedTrack, PlayableTrack]


@dataclass(frozen=True)
class FetchResult:
    """Records fetched for one Spotify resource plus the collection name."""

    records: List[RawTrack]
    name: Optional[str] = None


@dataclass(frozen=True)
class EpisodeLookup:
    """Outcome of looking up an episode.

    ``show_id`` is set when the owning show is known; otherwise ``fallback``
    carries the episode itself as a one-record collection.
    """

    show_id: Optional[str] = None
    fallback: Optional[FetchResult] = None


@dataclass
class LoadResponse:
    """Lavalink-like /loadtracks response envelope."""

    load_type: str
    tracks: List[LoadedTrack] = field(default_factory=list)
    playlist_name: Optional[str] = None
    exception: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'loadType': self.load_type,
            'tracks': [t.to_dict() for t in self.tracks],
            'playlistInfo': {'name': self.playlist_name},
        }
        if self.exception:
            data['exception'] = dict(self.exception)
        return data
