import logging
from typing import Any, Callable, Dict, Optional

import requests
import spotipy

from spotlink.application.pagination import collect_pages
from spotlink.domain.entities import EpisodeLookup, FetchResult
from spotlink.domain.errors import AuthenticationError, FetchError, RateLimited
from spotlink.domain.ports import MetadataFetcher, TokenProvider
from spotlink.domain.records import FORMAT_FLAT, FORMAT_NESTED, decode_api_track, decode_collection

logger = logging.getLogger(__name__)


class SpotifyApiFetcher(MetadataFetcher):
    """Metadata fetcher backed by the Spotify Web API through spotipy."""

    def __init__(self,
                 token_provider: TokenProvider,
                 market: str = 'US',
                 requests_timeout: float = 15.0,
                 client_factory: Optional[Callable[..., Any]] = None):
        """Initialize API fetcher.

        Args:
            token_provider: Source of the bearer token, read before every request
            market: Market used for artist top tracks, episodes and shows
            requests_timeout: HTTP timeout in seconds for Spotify requests
            client_factory: Factory building the spotipy client (tests)
        """
        self.token_provider = token_provider
        self.market = market
        self.requests_timeout = requests_timeout
        self._client_factory = client_factory or spotipy.Spotify

    def _client(self):
        token = self.token_provider.current_token()
        if not token:
            raise AuthenticationError("No Spotify access token.")
        # Retries disabled: a failed request fails the whole load
        return self._client_factory(
            auth=token,
            requests_timeout=self.requests_timeout,
            retries=0,
            status_retries=0,
        )

    def _call(self, operation: str, request: Callable[[], Any]) -> Any:
        try:
            response = request()
        except spotipy.SpotifyException as e:
            status = getattr(e, 'http_status', None)
            logger.error(f"Spotify request failed during {operation} ({status}): {e}")
            if status == 401:
                raise AuthenticationError(f"Spotify rejected the access token during {operation}") from e
            if status == 429:
                headers = getattr(e, 'headers', None) or {}
                retry_after = int(headers.get('Retry-After', 1))
                raise RateLimited(retry_after_ms=retry_after * 1000) from e
            raise FetchError(f"Failed to {operation}: {e}") from e
        except requests.RequestException as e:
            logger.error(f"Spotify request failed during {operation}: {e}")
            raise FetchError(f"Failed to {operation}: {e}") from e

        if not response:
            raise FetchError(f"Failed to {operation}: empty response")
        return response

    def _paginate(self, client, operation: str, first_page: Dict[str, Any], page_limit: int):
        return collect_pages(
            first_page,
            lambda url: self._call(operation, lambda: client.next({'next': url})),
            page_limit,
        )

    def fetch_track(self, track_id: str) -> FetchResult:
        client = self._client()
        track = self._call(f"fetch track {track_id}", lambda: client.track(track_id))
        record = decode_api_track(track)
        return FetchResult(records=[record] if record else [])

    def fetch_album(self, album_id: str) -> FetchResult:
        client = self._client()
        album = self._call(f"fetch album {album_id}", lambda: client.album(album_id))
        items = (album.get('tracks') or {}).get('items', [])
        return FetchResult(records=decode_collection(items, FORMAT_FLAT), name=album.get('name'))

    def fetch_playlist(self, playlist_id: str, page_limit: int) -> FetchResult:
        client = self._client()
        operation = f"fetch playlist {playlist_id}"
        playlist = self._call(operation, lambda: client.playlist(playlist_id))
        items = self._paginate(client, operation, playlist.get('tracks') or {}, page_limit)
        logger.info(f"Fetched {len(items)} items for playlist {playlist_id}")
        return FetchResult(records=decode_collection(items, FORMAT_NESTED), name=playlist.get('name'))

    def fetch_artist(self, artist_id: str) -> FetchResult:
        client = self._client()
        artist = self._call(f"fetch artist {artist_id}", lambda: client.artist(artist_id))
        top_tracks = self._call(
            f"fetch top tracks of artist {artist_id}",
            lambda: client.artist_top_tracks(artist_id, country=self.market),
        )
        return FetchResult(
            records=decode_collection(top_tracks.get('tracks', []), FORMAT_FLAT),
            name=artist.get('name'),
        )

    def fetch_episode(self, episode_id: str) -> EpisodeLookup:
        client = self._client()
        episode = self._call(f"fetch episode {episode_id}",
                             lambda: client.episode(episode_id, market=self.market))
        show_id = (episode.get('show') or {}).get('id')
        if not show_id:
            raise FetchError(f"Episode {episode_id} has no show")
        return EpisodeLookup(show_id=show_id)

    def fetch_show(self, show_id: str, page_limit: int) -> FetchResult:
        client = self._client()
        operation = f"fetch show {show_id}"
        show = self._call(operation, lambda: client.show(show_id, market=self.market))
        items = self._paginate(client, operation, show.get('episodes') or {}, page_limit)
        logger.info(f"Fetched {len(items)} episodes for show {show_id}")
        return FetchResult(records=decode_collection(items, FORMAT_FLAT), name=show.get('name'))
