from __future__ import annotations

from typing import Optional, Protocol

from .entities import EpisodeLookup, FetchResult, PlayableTrack


class TokenProvider(Protocol):
    """Port exposing the current Spotify access token, if any."""

    def current_token(self) -> Optional[str]:
        """Return the current access token or None when none was acquired."""


class TrackSearchBackend(Protocol):
    """Port for the audio search service that turns queries into playable tracks."""

    def search(self, query: str) -> Optional[PlayableTrack]:
        """Return the first matching track for the query, or None.

        Raises BackendError when the service cannot be reached or answers with
        a non-success response.
        """


class MetadataFetcher(Protocol):
    """Port defining how Spotify metadata is retrieved for each resource type.

    Implementations raise AuthenticationError or FetchError; they never retry.
    """

    def fetch_track(self, track_id: str) -> FetchResult:
        """Return a single-record result for the track."""

    def fetch_album(self, album_id: str) -> FetchResult:
        """Return album tracks and the album name."""

    def fetch_playlist(self, playlist_id: str, page_limit: int) -> FetchResult:
        """Return playlist tracks (paginated up to page_limit) and the playlist name."""

    def fetch_artist(self, artist_id: str) -> FetchResult:
        """Return the artist's top tracks and the artist name."""

    def fetch_episode(self, episode_id: str) -> EpisodeLookup:
        """Return the owning show id, or the episode itself when the show is unknown."""

    def fetch_show(self, show_id: str, page_limit: int) -> FetchResult:
        """Return show episodes (paginated up to page_limit) and the show name."""
