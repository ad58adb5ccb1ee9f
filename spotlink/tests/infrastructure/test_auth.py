from unittest.mock import Mock

import pytest
import requests

from spotlink.domain.errors import AuthenticationError
from spotlink.infrastructure.auth import TOKEN_URL, ClientCredentialsTokenProvider, StaticTokenProvider


def _response(status_code: int = 200, payload=None):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload or {}
    return response


TOKEN_PAYLOAD = {'access_token': 'fresh_token', 'token_type': 'Bearer', 'expires_in': 3600}


class TestClientCredentialsTokenProvider:
    """Tests for client-credentials token acquisition and refresh."""

    def setup_method(self):
        self.session = Mock()
        self.sleep = Mock()
        self.timer = Mock()
        self.timer_factory = Mock(return_value=self.timer)
        self.provider = ClientCredentialsTokenProvider(
            'client_id',
            'client_secret',
            session=self.session,
            sleep=self.sleep,
            timer_factory=self.timer_factory,
        )

    def test_missing_credentials_rejected(self):
        with pytest.raises(AuthenticationError):
            ClientCredentialsTokenProvider('', 'secret')

    def test_request_token_stores_and_schedules_refresh(self):
        self.session.post.return_value = _response(200, TOKEN_PAYLOAD)

        token = self.provider.request_token()

        assert token == 'fresh_token'
        assert self.provider.current_token() == 'fresh_token'
        self.session.post.assert_called_once_with(
            TOKEN_URL,
            data={'grant_type': 'client_credentials'},
            auth=('client_id', 'client_secret'),
            timeout=15.0,
        )
        self.timer_factory.assert_called_once_with(3540, self.provider._refresh)
        assert self.timer.daemon is True
        self.timer.start.assert_called_once()
        assert self.provider.refresh_scheduled

    def test_request_token_skipped_while_refresh_scheduled(self):
        self.session.post.return_value = _response(200, TOKEN_PAYLOAD)
        self.provider.request_token()

        self.provider.request_token()

        assert self.session.post.call_count == 1

    def test_invalid_client_fails_without_retry(self):
        self.session.post.return_value = _response(400, {'error': 'invalid_client'})

        with pytest.raises(AuthenticationError):
            self.provider.request_token()

        assert self.session.post.call_count == 1
        self.sleep.assert_not_called()
        assert self.provider.current_token() is None

    def test_server_errors_retried_with_backoff(self):
        self.session.post.side_effect = [
            _response(503),
            requests.ConnectionError("reset"),
            _response(200, TOKEN_PAYLOAD),
        ]

        assert self.provider.request_token() == 'fresh_token'

        assert self.session.post.call_count == 3
        assert [c.args[0] for c in self.sleep.call_args_list] == [0.5, 1.0]

    def test_retries_exhausted_raises(self):
        self.session.post.return_value = _response(500)

        with pytest.raises(AuthenticationError):
            self.provider.request_token()

        assert self.session.post.call_count == self.provider.max_retries + 1

    def test_missing_access_token_is_retried(self):
        self.session.post.side_effect = [_response(200, {'token_type': 'Bearer'}), _response(200, TOKEN_PAYLOAD)]

        assert self.provider.request_token() == 'fresh_token'

    def test_refresh_failure_is_logged_not_raised(self):
        self.session.post.return_value = _response(401)

        self.provider._refresh()

        assert self.provider.current_token() is None
        assert not self.provider.refresh_scheduled

    def test_close_cancels_timer(self):
        self.session.post.return_value = _response(200, TOKEN_PAYLOAD)
        self.provider.request_token()

        self.provider.close()

        self.timer.cancel.assert_called_once()
        assert not self.provider.refresh_scheduled


def test_static_token_provider():
    provider = StaticTokenProvider('abc')
    assert provider.current_token() == 'abc'
    assert StaticTokenProvider().current_token() is None
