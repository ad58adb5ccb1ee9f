import json
import logging
from typing import Any, Dict, List, Optional

import requests
from bs4 import BeautifulSoup

from spotlink.domain.entities import EpisodeLookup, FetchResult
from spotlink.domain.errors import FetchError
from spotlink.domain.ports import MetadataFetcher
from spotlink.domain.records import decode_collection, decode_embed_track

logger = logging.getLogger(__name__)

EMBED_URL = "https://open.spotify.com/embed/{type}/{id}"

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


class SpotifyScrapeFetcher(MetadataFetcher):
    """Metadata fetcher reading the public open.spotify.com embed pages.

    Needs no token. The page state is read from the ``__NEXT_DATA__`` JSON
    script, so both track lists and collection names come from one request.
    Pagination does not apply: the embed page carries the whole list it shows.
    """

    def __init__(self, session: Optional[requests.Session] = None, requests_timeout: float = 15.0):
        self.session = session or requests.Session()
        self.requests_timeout = requests_timeout

    def get_entity(self, resource_type: str, resource_id: str) -> Dict[str, Any]:
        """Fetch the embed page of a resource and return its entity payload."""
        url = EMBED_URL.format(type=resource_type, id=resource_id)
        try:
            response = self.session.get(url, headers=DEFAULT_HEADERS, timeout=self.requests_timeout)
        except requests.RequestException as e:
            logger.error(f"Scrape request failed for {url}: {e}")
            raise FetchError(f"Failed to fetch {resource_type} {resource_id}: {e}") from e

        if response.status_code != 200:
            logger.error(f"Scrape request failed for {url}: {response.status_code}")
            raise FetchError(f"Failed to fetch {resource_type} {resource_id}: HTTP {response.status_code}")

        return self._parse_entity(response.text, url)

    def _parse_entity(self, html: str, url: str) -> Dict[str, Any]:
        soup = BeautifulSoup(html, "html.parser")
        script = soup.find("script", id="__NEXT_DATA__")
        if script is None or not script.string:
            raise FetchError(f"No embedded data found at {url}")
        try:
            data = json.loads(script.string)
            entity = data["props"]["pageProps"]["state"]["data"]["entity"]
        except (ValueError, KeyError, TypeError) as e:
            raise FetchError(f"Unexpected embedded data at {url}: {e}") from e
        if not isinstance(entity, dict):
            raise FetchError(f"Unexpected embedded data at {url}: entity is not an object")
        return entity

    @staticmethod
    def _entity_name(entity: Dict[str, Any]) -> Optional[str]:
        return entity.get("name") or entity.get("title")

    @staticmethod
    def _entity_items(entity: Dict[str, Any]) -> List[Dict[str, Any]]:
        if entity.get("trackList") is not None:
            return entity["trackList"]
        tracks = entity.get("tracks") or entity.get("episodes") or {}
        if isinstance(tracks, dict):
            return tracks.get("items") or []
        return tracks

    def _fetch_collection(self, resource_type: str, resource_id: str) -> FetchResult:
        entity = self.get_entity(resource_type, resource_id)
        records = decode_collection(self._entity_items(entity))
        logger.info(f"Scraped {len(records)} tracks for {resource_type} {resource_id}")
        return FetchResult(records=records, name=self._entity_name(entity))

    def fetch_track(self, track_id: str) -> FetchResult:
        entity = self.get_entity("track", track_id)
        record = decode_embed_track(entity)
        return FetchResult(records=[record] if record else [])

    def fetch_album(self, album_id: str) -> FetchResult:
        return self._fetch_collection("album", album_id)

    def fetch_playlist(self, playlist_id: str, page_limit: int) -> FetchResult:
        return self._fetch_collection("playlist", playlist_id)

    def fetch_artist(self, artist_id: str) -> FetchResult:
        return self._fetch_collection("artist", artist_id)

    def fetch_episode(self, episode_id: str) -> EpisodeLookup:
        entity = self.get_entity("episode", episode_id)
        show = entity.get("show") or {}
        show_uri = entity.get("relatedEntityUri") or show.get("uri") or ""
        show_id = show.get("id") or (show_uri.rsplit(":", 1)[-1] if show_uri.startswith("spotify:show:") else None)
        if show_id:
            return EpisodeLookup(show_id=show_id)

        record = decode_embed_track(entity)
        return EpisodeLookup(fallback=FetchResult(records=[record] if record else [],
                                                  name=self._entity_name(entity)))

    def fetch_show(self, show_id: str, page_limit: int) -> FetchResult:
        return self._fetch_collection("show", show_id)
