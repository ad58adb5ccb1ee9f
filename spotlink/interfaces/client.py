from __future__ import annotations

import logging
import random
from typing import Dict, Iterable, Optional

from spotlink.application.cache import TrackCache
from spotlink.application.resolver import Resolver
from spotlink.crosscutting.config import FETCH_STRATEGY_SCRAPE, ClientOptions, NodeOptions
from spotlink.domain.entities import LoadResponse
from spotlink.domain.errors import NodeError
from spotlink.domain.ports import MetadataFetcher, TokenProvider
from spotlink.domain.urls import parse_spotify_url, is_valid_url
from spotlink.infrastructure.auth import ClientCredentialsTokenProvider, StaticTokenProvider
from spotlink.infrastructure.providers.lavalink import LavalinkSearchBackend
from spotlink.infrastructure.providers.scrape import SpotifyScrapeFetcher
from spotlink.infrastructure.providers.spotify import SpotifyApiFetcher

logger = logging.getLogger(__name__)


class Node:
    """A search backend node with its own resolver and track cache."""

    def __init__(self, client: "SpotifyClient", options: NodeOptions):
        self.client = client
        self.options = options
        self.backend = LavalinkSearchBackend(
            host=options.host,
            auth=options.auth,
            secure=options.secure,
            requests_timeout=client.options.resolver.requests_timeout,
        )
        self.resolver = Resolver(
            fetcher=client.fetcher,
            backend=self.backend,
            options=client.options.resolver,
            cache=TrackCache(),
        )
        self._methods = {
            'track': self.resolver.load_track,
            'album': self.resolver.load_album,
            'playlist': self.resolver.load_playlist,
            'artist': self.resolver.load_artist,
            'episode': self.resolver.load_episode,
            'show': self.resolver.load_show,
        }

    @property
    def name(self) -> str:
        return self.options.name

    def load(self, url: str) -> Optional[LoadResponse]:
        """Load a Spotify URL; returns None when the URL is not a Spotify resource."""
        resource = parse_spotify_url(url)
        if resource is None:
            logger.debug(f"Not a Spotify URL: {url}")
            return None
        return self._methods[resource.type](resource.id)


class SpotifyClient:
    """Owns the token provider, the metadata fetcher and the registered nodes."""

    def __init__(self,
                 options: ClientOptions,
                 nodes: Iterable[NodeOptions] = (),
                 token_provider: Optional[TokenProvider] = None,
                 fetcher: Optional[MetadataFetcher] = None):
        self.options = options
        self.token_provider = token_provider or self._build_token_provider(options)
        self.fetcher = fetcher or self._build_fetcher(options)
        self.nodes: Dict[str, Node] = {}
        for node_options in nodes:
            self.add_node(node_options)

    @staticmethod
    def _build_token_provider(options: ClientOptions) -> TokenProvider:
        if options.has_credentials:
            return ClientCredentialsTokenProvider(
                options.client_id,
                options.client_secret,
                requests_timeout=options.resolver.requests_timeout,
            )
        return StaticTokenProvider()

    def _build_fetcher(self, options: ClientOptions) -> MetadataFetcher:
        if options.resolver.fetch_strategy == FETCH_STRATEGY_SCRAPE:
            return SpotifyScrapeFetcher(requests_timeout=options.resolver.requests_timeout)
        return SpotifyApiFetcher(self.token_provider, requests_timeout=options.resolver.requests_timeout)

    @property
    def token(self) -> Optional[str]:
        return self.token_provider.current_token()

    def add_node(self, options: NodeOptions) -> Node:
        node = Node(self, options)
        self.nodes[options.name] = node
        logger.info(f"Registered node {options.name} ({options.host})")
        return node

    def remove_node(self, name: str) -> bool:
        if not self.nodes:
            raise NodeError('No nodes available, please add a node first...')
        if not name:
            raise NodeError('Provide a valid node identifier to delete it')
        return self.nodes.pop(name, None) is not None

    def get_node(self, name: Optional[str] = None) -> Optional[Node]:
        """Return the named node, or a random one when no name is given."""
        if not self.nodes:
            raise NodeError('No nodes available, please add a node first...')
        if not name:
            return random.choice(list(self.nodes.values()))
        return self.nodes.get(name)

    def is_valid_url(self, url: str) -> bool:
        return is_valid_url(url)

    def request_token(self) -> Optional[str]:
        """Acquire the Spotify token. Only needed once; refreshes are scheduled."""
        if isinstance(self.token_provider, ClientCredentialsTokenProvider):
            return self.token_provider.request_token()
        return self.token

    def close(self) -> None:
        if isinstance(self.token_provider, ClientCredentialsTokenProvider):
            self.token_provider.close()
