class AuthenticationError(Exception):
    """Spotify token is missing, rejected, or the client credentials are invalid."""


class FetchError(Exception):
    """Spotify metadata could not be fetched. The whole resource load fails."""


class RateLimited(FetchError):
    """Spotify rate limited the request. Includes suggested wait time in milliseconds."""

    def __init__(self, retry_after_ms: int, message: str = "Rate limited") -> None:
        super().__init__(message)
        self.retry_after_ms = retry_after_ms


class BackendError(Exception):
    """Search backend request failed while resolving a single track."""


class NodeError(Exception):
    """Node registry was used without nodes or with an invalid identifier."""
