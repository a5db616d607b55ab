"""Mention Source Connectors"""
from .base import (
    ConnectorCapabilities,
    ConnectorOutcome,
    MalformedConnectorResponse,
    MentionConnector,
    coerce_mentions,
    fetch_with_timeout,
)
from .local_news import LocalNewsConnector
from .youtube import YouTubeConnector
from .reddit import RedditConnector
from .x import XConnector
from .meta import MetaConnector
from .tiktok import TikTokConnector
from .viber import ViberConnector
from .registry import ConnectorRegistry, build_default_registry

__all__ = [
    "ConnectorCapabilities",
    "ConnectorOutcome",
    "MalformedConnectorResponse",
    "MentionConnector",
    "coerce_mentions",
    "fetch_with_timeout",
    "LocalNewsConnector",
    "YouTubeConnector",
    "RedditConnector",
    "XConnector",
    "MetaConnector",
    "TikTokConnector",
    "ViberConnector",
    "ConnectorRegistry",
    "build_default_registry",
]
