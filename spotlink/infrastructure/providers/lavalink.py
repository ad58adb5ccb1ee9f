import logging
from typing import Optional

import requests

from spotlink.domain.entities import PlayableTrack
from spotlink.domain.errors import BackendError
from spotlink.domain.ports import TrackSearchBackend

logger = logging.getLogger(__name__)


class LavalinkSearchBackend(TrackSearchBackend):
    """Search backend speaking the Lavalink ``/loadtracks`` endpoint."""

    def __init__(self,
                 host: str,
                 auth: str = '',
                 secure: bool = False,
                 requests_timeout: float = 15.0,
                 session: Optional[requests.Session] = None):
        """Initialize search backend.

        Args:
            host: Node host with optional port, e.g. ``localhost:2333``
            auth: Static password sent as the Authorization header
            secure: Use https instead of http
            requests_timeout: HTTP timeout in seconds
            session: Requests session to reuse connections
        """
        self.host = host
        self.auth = auth
        self.secure = secure
        self.requests_timeout = requests_timeout
        self.session = session or requests.Session()

    @property
    def base_url(self) -> str:
        return f"http{'s' if self.secure else ''}://{self.host}"

    def search(self, query: str) -> Optional[PlayableTrack]:
        try:
            response = self.session.get(
                f"{self.base_url}/loadtracks",
                params={'identifier': query},
                headers={'Authorization': self.auth},
                timeout=self.requests_timeout,
            )
        except requests.RequestException as e:
            raise BackendError(f"Search request failed: {e}") from e

        if response.status_code != 200:
            raise BackendError(f"Search request failed: HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise BackendError(f"Search response is not JSON: {e}") from e

        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            raise BackendError(f"Unexpected search response: {type(payload).__name__}")

        tracks = payload.get('tracks') or []
        if not isinstance(tracks, list):
            raise BackendError(f"Unexpected search response: tracks is {type(tracks).__name__}")
        if not tracks:
            logger.debug(f"No search results for {query}")
            return None
        if not isinstance(tracks[0], dict) or not isinstance(tracks[0].get('info') or {}, dict):
            raise BackendError(f"Unexpected search result: {type(tracks[0]).__name__}")
        return PlayableTrack.from_dict(tracks[0])
