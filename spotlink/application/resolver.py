from __future__ import annotations

import contextvars
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Union

from spotlink.application.cache import TrackCache
from spotlink.crosscutting.config import ResolverOptions
from spotlink.crosscutting.logging import CorrelationContext, log_with_fields
from spotlink.crosscutting.metrics import MetricsCollector
from spotlink.domain.entities import (
    LOAD_FAILED,
    NO_MATCHES,
    PLAYLIST_LOADED,
    TRACK_LOADED,
    FetchResult,
    LoadedTrack,
    LoadResponse,
    PlayableTrack,
    UnresolvedTrack,
)
from spotlink.domain.errors import BackendError
from spotlink.domain.ports import MetadataFetcher, TrackSearchBackend

logger = logging.getLogger(__name__)


class Resolver:
    """Loads Spotify resources and resolves their tracks through a search backend."""

    def __init__(self,
                 fetcher: MetadataFetcher,
                 backend: TrackSearchBackend,
                 options: Optional[ResolverOptions] = None,
                 cache: Optional[TrackCache] = None,
                 metrics: Optional[MetricsCollector] = None):
        """Initialize resolver.

        Args:
            fetcher: Metadata fetcher for the configured strategy
            backend: Search backend used to resolve tracks
            options: Resolver options, defaults when omitted
            cache: Track cache, a private one when omitted
            metrics: Metrics collector, a private one when omitted
        """
        self.fetcher = fetcher
        self.backend = backend
        self.options = options or ResolverOptions()
        self.cache = cache if cache is not None else TrackCache()
        self.metrics = metrics or MetricsCollector()

    def load_track(self, track_id: str) -> LoadResponse:
        with CorrelationContext(resource_type='track', resource_id=track_id, stage='load'):
            result = self._fetch(lambda: self.fetcher.fetch_track(track_id))
            tracks = self._build_tracks(result)
            if not tracks:
                return self._respond(NO_MATCHES)
            return self._respond(TRACK_LOADED, tracks)

    def load_album(self, album_id: str) -> LoadResponse:
        with CorrelationContext(resource_type='album', resource_id=album_id, stage='load'):
            return self._load_collection(lambda: self.fetcher.fetch_album(album_id))

    def load_playlist(self, playlist_id: str) -> LoadResponse:
        with CorrelationContext(resource_type='playlist', resource_id=playlist_id, stage='load'):
            return self._load_collection(
                lambda: self.fetcher.fetch_playlist(playlist_id, self.options.playlist_load_limit)
            )

    def load_artist(self, artist_id: str) -> LoadResponse:
        with CorrelationContext(resource_type='artist', resource_id=artist_id, stage='load'):
            return self._load_collection(lambda: self.fetcher.fetch_artist(artist_id))

    def load_episode(self, episode_id: str) -> LoadResponse:
        """Load the show owning the episode.

        When the owning show cannot be determined the episode alone is
        returned as a collection.
        """
        with CorrelationContext(resource_type='episode', resource_id=episode_id, stage='load'):
            lookup = self._fetch(lambda: self.fetcher.fetch_episode(episode_id))
            if lookup.show_id:
                logger.debug(f"Episode {episode_id} belongs to show {lookup.show_id}")
                # Same load: the show fetch is not counted again
                return self._load_show(lookup.show_id, count_load=False)
            fallback = lookup.fallback or FetchResult(records=[])
            return self._respond(PLAYLIST_LOADED, self._build_tracks(fallback), fallback.name)

    def load_show(self, show_id: str) -> LoadResponse:
        return self._load_show(show_id)

    def resolve(self, unresolved: UnresolvedTrack) -> Optional[PlayableTrack]:
        """Resolve a stub into a playable track, or None when nothing matches.

        Backend failures are logged and treated like a miss. Misses are never
        cached, so a later call queries the backend again.
        """
        cached = self.cache.get(unresolved.identifier)
        if cached is not None:
            self.metrics.record_cache_hit()
            return cached
        self.metrics.record_cache_miss()

        try:
            found = self.backend.search(self.build_query(unresolved))
        except BackendError as e:
            self.metrics.record_backend_error()
            logger.warning(f"Search backend failed for '{unresolved.author} - {unresolved.title}': {e}")
            return None

        if found is None:
            self.metrics.record_backend_miss()
            logger.debug(f"No match for '{unresolved.author} - {unresolved.title}'")
            return None

        if self.options.use_spotify_metadata:
            found.info.update({
                'title': unresolved.title,
                'author': unresolved.author,
                'uri': unresolved.uri,
            })

        self.cache.put(unresolved.identifier, found)
        return self.cache.get(unresolved.identifier)

    def resolve_all(self, unresolved: List[UnresolvedTrack]) -> List[PlayableTrack]:
        """Resolve stubs concurrently, keeping input order and dropping misses.

        Each call runs in a copy of the caller's context so log records from
        worker threads keep the resource being loaded.
        """
        if not unresolved:
            return []
        workers = min(self.options.resolve_workers, len(unresolved))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(contextvars.copy_context().run, self.resolve, stub)
                       for stub in unresolved]
            results = [future.result() for future in futures]
        return [track for track in results if track is not None]

    def build_query(self, unresolved: UnresolvedTrack) -> str:
        query = f"ytsearch:{unresolved.author} - {unresolved.title}"
        if self.options.audio_only_results:
            query += " Audio"
        return query

    def build_response(self,
                       load_type: str,
                       tracks: Optional[List[LoadedTrack]] = None,
                       playlist_name: Optional[str] = None,
                       exception_message: Optional[str] = None,
                       severity: str = 'COMMON') -> LoadResponse:
        exception = {'message': exception_message, 'severity': severity} if exception_message else None
        return LoadResponse(
            load_type=load_type,
            tracks=list(tracks or []),
            playlist_name=playlist_name,
            exception=exception,
        )

    def failed_response(self, error: Union[Exception, str], severity: str = 'COMMON') -> LoadResponse:
        """Build the LOAD_FAILED envelope for a caller that caught a load error."""
        return self.build_response(LOAD_FAILED, exception_message=str(error) or type(error).__name__,
                                   severity=severity)

    def _fetch(self, fetch: Callable, count_load: bool = True):
        if count_load:
            self.metrics.record_load()
        try:
            return fetch()
        except Exception as e:
            self.metrics.record_failed_load()
            logger.error(f"Failed to load Spotify resource: {e}")
            raise

    def _build_tracks(self, result: FetchResult) -> List[LoadedTrack]:
        unresolved = [UnresolvedTrack.from_raw(record) for record in result.records]
        if self.options.auto_resolve:
            return self.resolve_all(unresolved)
        return unresolved

    def _load_show(self, show_id: str, count_load: bool = True) -> LoadResponse:
        with CorrelationContext(resource_type='show', resource_id=show_id, stage='load'):
            return self._load_collection(
                lambda: self.fetcher.fetch_show(show_id, self.options.playlist_load_limit),
                count_load,
            )

    def _load_collection(self, fetch: Callable[[], FetchResult], count_load: bool = True) -> LoadResponse:
        result = self._fetch(fetch, count_load)
        return self._respond(PLAYLIST_LOADED, self._build_tracks(result), result.name)

    def _respond(self,
                 load_type: str,
                 tracks: Optional[List[LoadedTrack]] = None,
                 playlist_name: Optional[str] = None) -> LoadResponse:
        response = self.build_response(load_type, tracks, playlist_name)
        log_with_fields(logger, 'info', "Load complete",
                        load_type=load_type, tracks=len(response.tracks), playlist=playlist_name)
        return response
