from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from .entities import RESOURCE_TYPES


# https://open.spotify.com/[user/<name>/]<type>/<id> or spotify:<type>:<id>
SPOTIFY_PATTERN = re.compile(
    r"^(?:https://open\.spotify\.com/(?:user/[A-Za-z0-9]+/)?|spotify:)"
    r"(" + "|".join(RESOURCE_TYPES) + r")(?:[/:])([A-Za-z0-9]+).*$"
)


@dataclass(frozen=True)
class SpotifyResource:
    """Resource type and id extracted from a Spotify URL or URI."""

    type: str
    id: str


def parse_spotify_url(url: str) -> Optional[SpotifyResource]:
    match = SPOTIFY_PATTERN.match((url or "").strip())
    if not match:
        return None
    return SpotifyResource(type=match.group(1), id=match.group(2))


def is_valid_url(url: str) -> bool:
    """Return True when the URL points at a loadable Spotify resource."""
    return parse_spotify_url(url) is not None
