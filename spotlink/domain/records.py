from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Optional

from .entities import RawTrack


OPEN_SPOTIFY_URL = "https://open.spotify.com"

FORMAT_EMBED = "embed"
FORMAT_NESTED = "nested"
FORMAT_FLAT = "flat"


def _id_from_uri(uri: str) -> str:
    # spotify:<type>:<id>
    return (uri or "").rsplit(":", 1)[-1]


def _kind_from_uri(uri: str, default: str = "track") -> str:
    parts = (uri or "").split(":")
    return parts[1] if len(parts) == 3 and parts[1] else default


def _split_subtitle(subtitle: str) -> tuple:
    return tuple(name.strip() for name in (subtitle or "").split(",") if name.strip())


def decode_api_track(data: Dict[str, Any]) -> Optional[RawTrack]:
    """Decode a Spotify Web API track or episode object."""
    if not data or not data.get('id'):
        return None
    artists = tuple(a.get('name', '') for a in (data.get('artists') or []) if a and a.get('name'))
    url = (data.get('external_urls') or {}).get('spotify')
    if not url:
        kind = data.get('type') or 'track'
        url = f"{OPEN_SPOTIFY_URL}/{kind}/{data['id']}"
    return RawTrack(
        id=data['id'],
        name=data.get('name', ''),
        artists=artists,
        url=url,
        duration_ms=int(data.get('duration_ms') or 0),
    )


def decode_nested_item(item: Dict[str, Any]) -> Optional[RawTrack]:
    """Decode a playlist item that wraps its track under a ``track`` key."""
    if not item:
        return None
    return decode_api_track(item.get('track'))


def decode_embed_track(row: Dict[str, Any]) -> Optional[RawTrack]:
    """Decode a track row from an open.spotify.com embed page.

    Embed rows carry ``uri``, ``title``, ``subtitle`` (comma separated artists)
    and ``duration`` instead of the Web API fields.
    """
    if not row:
        return None
    track_id = row.get('id') or _id_from_uri(row.get('uri', ''))
    if not track_id:
        return None
    if row.get('artists'):
        artists = tuple(a.get('name', '') for a in row['artists'] if a and a.get('name'))
    else:
        artists = _split_subtitle(row.get('subtitle', ''))
    kind = _kind_from_uri(row.get('uri', ''))
    return RawTrack(
        id=track_id,
        name=row.get('title') or row.get('name', ''),
        artists=artists,
        url=f"{OPEN_SPOTIFY_URL}/{kind}/{track_id}",
        duration_ms=int(row.get('duration') or row.get('duration_ms') or 0),
    )


_DECODERS: Dict[str, Callable[[Dict[str, Any]], Optional[RawTrack]]] = {
    FORMAT_EMBED: decode_embed_track,
    FORMAT_NESTED: decode_nested_item,
    FORMAT_FLAT: decode_api_track,
}


def detect_format(items: List[Dict[str, Any]]) -> str:
    """Pick the record format of a collection from its first non-empty item."""
    first = next((item for item in items if item), None)
    if first is None:
        return FORMAT_FLAT
    if isinstance(first.get('track'), dict) or ('track' in first and 'uri' not in first):
        return FORMAT_NESTED
    if 'external_urls' in first or 'duration_ms' in first:
        return FORMAT_FLAT
    if 'subtitle' in first or 'duration' in first or 'uri' in first:
        return FORMAT_EMBED
    return FORMAT_FLAT


def decode_collection(items: Iterable[Dict[str, Any]], fmt: Optional[str] = None) -> List[RawTrack]:
    """Decode a collection with one decoder chosen for the whole collection.

    Entries that decode to nothing (null playlist tracks, local files without
    an id, unavailable episodes) are skipped.
    """
    items = list(items or [])
    decoder = _DECODERS[fmt or detect_format(items)]
    records = []
    for item in items:
        record = decoder(item)
        if record is not None:
            records.append(record)
    return records
