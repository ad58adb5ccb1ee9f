import logging
import threading
import time
from typing import Any, Callable, Dict, Optional

import requests

from spotlink.domain.errors import AuthenticationError
from spotlink.domain.ports import TokenProvider

logger = logging.getLogger(__name__)

TOKEN_URL = 'https://accounts.spotify.com/api/token'


class ClientCredentialsTokenProvider(TokenProvider):
    """Acquires app tokens with the OAuth client-credentials flow.

    The token is refreshed shortly before it expires on a daemon timer.
    Failed requests are retried a bounded number of times with exponential
    backoff; HTTP 400 (invalid client) and other 4xx answers fail at once.
    """

    def __init__(self,
                 client_id: str,
                 client_secret: str,
                 max_retries: int = 3,
                 backoff_seconds: float = 0.5,
                 refresh_margin_seconds: int = 60,
                 requests_timeout: float = 15.0,
                 session: Optional[requests.Session] = None,
                 sleep: Callable[[float], None] = time.sleep,
                 timer_factory: Callable[..., Any] = threading.Timer):
        if not client_id or not client_secret:
            raise AuthenticationError("Spotify client ID and secret are required")
        self.client_id = client_id
        self.client_secret = client_secret
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.refresh_margin_seconds = refresh_margin_seconds
        self.requests_timeout = requests_timeout
        self.session = session or requests.Session()
        self._sleep = sleep
        self._timer_factory = timer_factory

        self._lock = threading.Lock()
        self._access_token: Optional[str] = None
        self._refresh_timer = None

    def current_token(self) -> Optional[str]:
        with self._lock:
            return self._access_token

    @property
    def refresh_scheduled(self) -> bool:
        return self._refresh_timer is not None

    def request_token(self) -> str:
        """Acquire a token unless a refresh is already scheduled.

        Returns:
            The current access token

        Raises:
            AuthenticationError: Client rejected or retries exhausted
        """
        if self._refresh_timer is not None and self._access_token:
            return self._access_token

        last_error: Optional[Exception] = None
        for attempt in range(self.max_retries + 1):
            if attempt:
                delay = self.backoff_seconds * (2 ** (attempt - 1))
                logger.warning(f"Retrying Spotify token request in {delay:.1f}s "
                               f"(attempt {attempt + 1}/{self.max_retries + 1})")
                self._sleep(delay)
            try:
                token_info = self._post_token_request()
            except (requests.RequestException, ValueError) as e:
                last_error = e
                logger.warning(f"Spotify token request failed: {e}")
                continue

            self._store(token_info)
            logger.info("Spotify access token acquired")
            return token_info['access_token']

        logger.error(f"Failed to acquire Spotify token after {self.max_retries + 1} attempts: {last_error}")
        raise AuthenticationError(f"Failed to acquire Spotify token: {last_error}")

    def _post_token_request(self) -> Dict[str, Any]:
        response = self.session.post(
            TOKEN_URL,
            data={'grant_type': 'client_credentials'},
            auth=(self.client_id, self.client_secret),
            timeout=self.requests_timeout,
        )
        if response.status_code == 400:
            raise AuthenticationError('Invalid Spotify client')
        if response.status_code == 429 or response.status_code >= 500:
            raise requests.HTTPError(f"Token endpoint answered {response.status_code}", response=response)
        if response.status_code != 200:
            raise AuthenticationError(f"Token request rejected: {response.status_code}")

        token_info = response.json()
        if not token_info.get('access_token'):
            raise ValueError("Token response has no access_token")
        return token_info

    def _store(self, token_info: Dict[str, Any]) -> None:
        with self._lock:
            self._access_token = token_info['access_token']
        self._schedule_refresh(int(token_info.get('expires_in', 3600)))

    def _schedule_refresh(self, expires_in: int) -> None:
        self._cancel_timer()
        delay = max(1, expires_in - self.refresh_margin_seconds)
        timer = self._timer_factory(delay, self._refresh)
        timer.daemon = True
        self._refresh_timer = timer
        timer.start()
        logger.debug(f"Spotify token refresh scheduled in {delay}s")

    def _refresh(self) -> None:
        self._refresh_timer = None
        try:
            self.request_token()
        except AuthenticationError as e:
            logger.error(f"Failed to refresh Spotify token: {e}")

    def _cancel_timer(self) -> None:
        if self._refresh_timer is not None:
            self._refresh_timer.cancel()
            self._refresh_timer = None

    def close(self) -> None:
        """Stop the refresh timer."""
        self._cancel_timer()


class StaticTokenProvider(TokenProvider):
    """Token provider for callers that obtain the access token themselves."""

    def __init__(self, token: Optional[str] = None):
        self.token = token

    def current_token(self) -> Optional[str]:
        return self.token
