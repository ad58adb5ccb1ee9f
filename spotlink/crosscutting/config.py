import os
from dataclasses import dataclass, field, fields
from typing import Dict, Any, Optional, Mapping

from dotenv import dotenv_values


FETCH_STRATEGY_API = 'API'
FETCH_STRATEGY_SCRAPE = 'SCRAPE'
FETCH_STRATEGIES = (FETCH_STRATEGY_API, FETCH_STRATEGY_SCRAPE)

_TRUE_VALUES = {'1', 'true', 'yes', 'on'}
_FALSE_VALUES = {'0', 'false', 'no', 'off', ''}

# Environment variable -> ResolverOptions field
_RESOLVER_ENV_KEYS = {
    'SPOTLINK_FETCH_STRATEGY': 'fetch_strategy',
    'SPOTLINK_PLAYLIST_LOAD_LIMIT': 'playlist_load_limit',
    'SPOTLINK_AUTO_RESOLVE': 'auto_resolve',
    'SPOTLINK_USE_SPOTIFY_METADATA': 'use_spotify_metadata',
    'SPOTLINK_AUDIO_ONLY_RESULTS': 'audio_only_results',
    'SPOTLINK_RESOLVE_WORKERS': 'resolve_workers',
    'SPOTLINK_REQUESTS_TIMEOUT': 'requests_timeout',
}


class ConfigError(Exception):
    """Configuration error."""
    pass


def _parse_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def _parse_int(name: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}")


def _parse_float(name: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {value!r}")


@dataclass(frozen=True)
class ResolverOptions:
    """Options shared read-only by the resolver and its fetchers."""

    fetch_strategy: str = FETCH_STRATEGY_API
    playlist_load_limit: int = 2
    auto_resolve: bool = False
    use_spotify_metadata: bool = False
    audio_only_results: bool = False
    resolve_workers: int = 10
    requests_timeout: float = 15.0

    def __post_init__(self):
        strategy = str(self.fetch_strategy).upper()
        if strategy not in FETCH_STRATEGIES:
            raise ConfigError(f"fetch_strategy must be one of {FETCH_STRATEGIES}, got {self.fetch_strategy!r}")
        object.__setattr__(self, 'fetch_strategy', strategy)
        if self.playlist_load_limit < 0:
            raise ConfigError("playlist_load_limit must be >= 0 (0 means unlimited)")
        if self.resolve_workers < 1:
            raise ConfigError("resolve_workers must be >= 1")
        if self.requests_timeout <= 0:
            raise ConfigError("requests_timeout must be positive")

    @classmethod
    def from_mapping(cls, values: Optional[Mapping[str, Any]] = None) -> 'ResolverOptions':
        """Merge user supplied values over the defaults, coercing string values."""
        values = dict(values or {})
        unknown = set(values) - {f.name for f in fields(cls)}
        if unknown:
            raise ConfigError(f"Unknown resolver options: {', '.join(sorted(unknown))}")

        parsed: Dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if key in ('auto_resolve', 'use_spotify_metadata', 'audio_only_results'):
                parsed[key] = _parse_bool(key, value)
            elif key in ('playlist_load_limit', 'resolve_workers'):
                parsed[key] = _parse_int(key, value)
            elif key == 'requests_timeout':
                parsed[key] = _parse_float(key, value)
            else:
                parsed[key] = value
        return cls(**parsed)


@dataclass(frozen=True)
class NodeOptions:
    """Connection settings for one search backend node."""

    name: str
    host: str
    auth: str = ''
    secure: bool = False

    def __post_init__(self):
        if not self.name:
            raise ConfigError("Node name is required")
        if not self.host:
            raise ConfigError(f"Node '{self.name}' has no host")


@dataclass(frozen=True)
class ClientOptions:
    """Spotify client credentials plus the resolver options."""

    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    resolver: ResolverOptions = field(default_factory=ResolverOptions)

    @property
    def has_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)


def _load_env(env_file: Optional[str] = None) -> Dict[str, str]:
    """Read a .env file (if any) overlaid by the process environment."""
    values: Dict[str, str] = {}
    if env_file:
        if not os.path.exists(env_file):
            raise ConfigError(f"Env file not found: {env_file}")
        values.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
    values.update(os.environ)
    return values


def load_resolver_options(env_file: Optional[str] = None) -> ResolverOptions:
    env = _load_env(env_file)
    values = {name: env[key] for key, name in _RESOLVER_ENV_KEYS.items() if key in env}
    return ResolverOptions.from_mapping(values)


def load_client_options(env_file: Optional[str] = None) -> ClientOptions:
    """Build client options from SPOTIFY_* and SPOTLINK_* variables."""
    env = _load_env(env_file)
    return ClientOptions(
        client_id=env.get('SPOTIFY_CLIENT_ID') or None,
        client_secret=env.get('SPOTIFY_CLIENT_SECRET') or None,
        resolver=load_resolver_options(env_file),
    )


def load_node_options(env_file: Optional[str] = None) -> NodeOptions:
    """Build the default node from LAVALINK_* variables."""
    env = _load_env(env_file)
    host = env.get('LAVALINK_HOST')
    if not host:
        raise ConfigError("LAVALINK_HOST not found in environment")
    return NodeOptions(
        name=env.get('LAVALINK_NAME', 'main'),
        host=host,
        auth=env.get('LAVALINK_AUTH', ''),
        secure=_parse_bool('LAVALINK_SECURE', env.get('LAVALINK_SECURE', 'false')),
    )
