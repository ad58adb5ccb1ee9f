import dataclasses

import pytest

from spotlink.domain.entities import LoadResponse, PlayableTrack, RawTrack, UnresolvedTrack


class TestUnresolvedTrack:
    """Tests for the unresolved track stub."""

    def test_from_raw_joins_artists_with_space(self):
        raw = RawTrack(id='t1', name='Song', artists=('A', 'B'), url='https://open.spotify.com/track/t1',
                       duration_ms=1000)

        stub = UnresolvedTrack.from_raw(raw)

        assert stub.author == 'A B'
        assert stub.identifier == 't1'

    def test_from_raw_without_artists_has_empty_author(self):
        stub = UnresolvedTrack.from_raw(RawTrack(id='e1', name='Episode'))

        assert stub.author == ''

    def test_stub_is_immutable(self):
        stub = UnresolvedTrack(identifier='t1', title='Song', author='A', uri='u')

        with pytest.raises(dataclasses.FrozenInstanceError):
            stub.title = 'Other'


class TestPlayableTrack:
    def test_from_dict_copies_info(self):
        data = {'track': 'QAAA', 'info': {'title': 'Song'}}

        track = PlayableTrack.from_dict(data)
        track.info['title'] = 'Changed'

        assert data['info']['title'] == 'Song'
        assert track.to_dict() == {'track': 'QAAA', 'info': {'title': 'Changed'}}


class TestLoadResponse:
    def test_to_dict_omits_exception_when_absent(self):
        response = LoadResponse(load_type='PLAYLIST_LOADED', playlist_name='Mix')

        assert response.to_dict() == {
            'loadType': 'PLAYLIST_LOADED',
            'tracks': [],
            'playlistInfo': {'name': 'Mix'},
        }

    def test_to_dict_serializes_mixed_tracks(self):
        stub = UnresolvedTrack(identifier='t1', title='Song', author='A', uri='u', duration_ms=5)
        playable = PlayableTrack(track='QAAA', info={'title': 'Song'})

        data = LoadResponse(load_type='PLAYLIST_LOADED', tracks=[stub, playable]).to_dict()

        assert data['tracks'][0]['durationMs'] == 5
        assert data['tracks'][1]['track'] == 'QAAA'
