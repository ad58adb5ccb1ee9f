from unittest.mock import Mock

import pytest
import requests
import spotipy

from spotlink.domain.errors import AuthenticationError, FetchError, RateLimited
from spotlink.infrastructure.auth import StaticTokenProvider
from spotlink.infrastructure.providers.spotify import SpotifyApiFetcher


def _track(track_id: str, name: str = "Song", artist: str = "Artist") -> dict:
    return {
        'id': track_id,
        'name': name,
        'type': 'track',
        'artists': [{'name': artist}],
        'external_urls': {'spotify': f"https://open.spotify.com/track/{track_id}"},
        'duration_ms': 200000,
    }


def _playlist_pages(count: int, per_page: int = 100):
    pages = []
    for index in range(count):
        items = [{'track': _track(f"t{index}-{i}")} for i in range(per_page)]
        next_url = f"https://api.spotify.com/v1/playlists/pl/tracks?offset={(index + 1) * per_page}" \
            if index + 1 < count else None
        pages.append({'items': items, 'next': next_url})
    return pages


class TestSpotifyApiFetcher:
    """Contract tests for the spotipy-backed metadata fetcher."""

    def setup_method(self):
        self.mock_spotify = Mock()
        self.factory = Mock(return_value=self.mock_spotify)
        self.tokens = StaticTokenProvider('test_access_token')
        self.fetcher = SpotifyApiFetcher(self.tokens, client_factory=self.factory)

    def test_missing_token_fails_before_any_request(self):
        """No token means AuthenticationError and no client is built."""
        self.tokens.token = None

        with pytest.raises(AuthenticationError):
            self.fetcher.fetch_track('abc123')

        self.factory.assert_not_called()
        self.mock_spotify.track.assert_not_called()

    def test_client_built_with_token_and_no_retries(self):
        self.mock_spotify.track.return_value = _track('abc123')

        self.fetcher.fetch_track('abc123')

        self.factory.assert_called_once_with(
            auth='test_access_token', requests_timeout=15.0, retries=0, status_retries=0,
        )

    def test_fetch_track(self):
        self.mock_spotify.track.return_value = _track('abc123')

        result = self.fetcher.fetch_track('abc123')

        assert result.name is None
        assert [r.id for r in result.records] == ['abc123']
        assert result.records[0].artists == ('Artist',)
        assert result.records[0].url == 'https://open.spotify.com/track/abc123'

    def test_fetch_album(self):
        self.mock_spotify.album.return_value = {
            'name': 'Album',
            'tracks': {'items': [_track('t1'), _track('t2')], 'next': None},
        }

        result = self.fetcher.fetch_album('alb')

        assert result.name == 'Album'
        assert [r.id for r in result.records] == ['t1', 't2']

    def test_fetch_playlist_respects_page_limit(self):
        """Three pages of 100 with limit 2 yields 200 records and one next() call."""
        pages = _playlist_pages(3)
        self.mock_spotify.playlist.return_value = {'name': 'Mix', 'tracks': pages[0]}
        self.mock_spotify.next.side_effect = pages[1:]

        result = self.fetcher.fetch_playlist('pl', page_limit=2)

        assert result.name == 'Mix'
        assert len(result.records) == 200
        assert self.mock_spotify.next.call_count == 1
        self.mock_spotify.next.assert_called_with({'next': pages[0]['next']})

    def test_fetch_playlist_unlimited(self):
        pages = _playlist_pages(3)
        self.mock_spotify.playlist.return_value = {'name': 'Mix', 'tracks': pages[0]}
        self.mock_spotify.next.side_effect = pages[1:]

        result = self.fetcher.fetch_playlist('pl', page_limit=0)

        assert len(result.records) == 300
        assert result.records[-1].id == 't2-99'

    def test_fetch_playlist_skips_null_tracks(self):
        self.mock_spotify.playlist.return_value = {
            'name': 'Mix',
            'tracks': {'items': [{'track': None}, {'track': _track('t1')}], 'next': None},
        }

        result = self.fetcher.fetch_playlist('pl', page_limit=0)

        assert [r.id for r in result.records] == ['t1']

    def test_fetch_playlist_page_failure_fails_load(self):
        pages = _playlist_pages(3)
        self.mock_spotify.playlist.return_value = {'name': 'Mix', 'tracks': pages[0]}
        self.mock_spotify.next.side_effect = spotipy.SpotifyException(500, -1, "server error")

        with pytest.raises(FetchError):
            self.fetcher.fetch_playlist('pl', page_limit=0)

    def test_fetch_artist_combines_profile_and_top_tracks(self):
        self.mock_spotify.artist.return_value = {'id': 'art', 'name': 'Band'}
        self.mock_spotify.artist_top_tracks.return_value = {'tracks': [_track('t1'), _track('t2')]}

        result = self.fetcher.fetch_artist('art')

        assert result.name == 'Band'
        assert [r.id for r in result.records] == ['t1', 't2']
        self.mock_spotify.artist_top_tracks.assert_called_once_with('art', country='US')

    def test_fetch_episode_returns_show_id(self):
        self.mock_spotify.episode.return_value = {'id': 'ep1', 'show': {'id': 'show1'}}

        lookup = self.fetcher.fetch_episode('ep1')

        assert lookup.show_id == 'show1'
        self.mock_spotify.episode.assert_called_once_with('ep1', market='US')

    def test_fetch_show_paginates_episodes(self):
        first = {
            'items': [{'id': 'e1', 'name': 'One', 'type': 'episode', 'duration_ms': 1,
                       'external_urls': {'spotify': 'https://open.spotify.com/episode/e1'}}],
            'next': 'https://api.spotify.com/v1/shows/s/episodes?offset=1',
        }
        second = {
            'items': [None, {'id': 'e2', 'name': 'Two', 'type': 'episode', 'duration_ms': 2,
                             'external_urls': {'spotify': 'https://open.spotify.com/episode/e2'}}],
            'next': None,
        }
        self.mock_spotify.show.return_value = {'name': 'Podcast', 'episodes': first}
        self.mock_spotify.next.return_value = second

        result = self.fetcher.fetch_show('s', page_limit=0)

        assert result.name == 'Podcast'
        assert [r.id for r in result.records] == ['e1', 'e2']
        assert result.records[0].artists == ()

    def test_unauthorized_maps_to_authentication_error(self):
        self.mock_spotify.track.side_effect = spotipy.SpotifyException(401, -1, "The access token expired")

        with pytest.raises(AuthenticationError):
            self.fetcher.fetch_track('abc123')

    def test_rate_limit_maps_to_rate_limited(self):
        self.mock_spotify.track.side_effect = spotipy.SpotifyException(
            429, -1, "rate limited", headers={'Retry-After': '3'}
        )

        with pytest.raises(RateLimited) as exc_info:
            self.fetcher.fetch_track('abc123')
        assert exc_info.value.retry_after_ms == 3000

    def test_not_found_maps_to_fetch_error(self):
        self.mock_spotify.album.side_effect = spotipy.SpotifyException(404, -1, "not found")

        with pytest.raises(FetchError):
            self.fetcher.fetch_album('missing')

    def test_transport_error_maps_to_fetch_error(self):
        self.mock_spotify.track.side_effect = requests.ConnectionError("offline")

        with pytest.raises(FetchError):
            self.fetcher.fetch_track('abc123')
