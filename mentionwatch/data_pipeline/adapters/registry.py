"""
Connector Registry
고정된 순서의 커넥터 목록과 프로젝트별 활성 커넥터 선택
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from mentionwatch.data_pipeline.adapters.base import MentionConnector
from mentionwatch.data_pipeline.adapters.local_news import LocalNewsConnector
from mentionwatch.data_pipeline.adapters.meta import MetaConnector
from mentionwatch.data_pipeline.adapters.reddit import RedditConnector
from mentionwatch.data_pipeline.adapters.tiktok import TikTokConnector
from mentionwatch.data_pipeline.adapters.viber import ViberConnector
from mentionwatch.data_pipeline.adapters.x import XConnector
from mentionwatch.data_pipeline.adapters.youtube import YouTubeConnector
from mentionwatch.data_pipeline.domain.models import Project

logger = logging.getLogger(__name__)


class ConnectorRegistry:
    """순서가 고정된 커넥터 집합"""

    def __init__(self, connectors: Iterable[MentionConnector]):
        self._connectors: List[MentionConnector] = list(connectors)

        seen = set()
        for connector in self._connectors:
            if connector.id in seen:
                raise ValueError(f"Duplicate connector id: {connector.id}")
            seen.add(connector.id)

    def __len__(self) -> int:
        return len(self._connectors)

    def __iter__(self):
        return iter(self._connectors)

    def all(self) -> List[MentionConnector]:
        return list(self._connectors)

    def ids(self) -> List[str]:
        return [connector.id for connector in self._connectors]

    def get(self, connector_id: str) -> Optional[MentionConnector]:
        for connector in self._connectors:
            if connector.id == connector_id:
                return connector
        return None

    def is_enabled(self, connector: MentionConnector, project: Project) -> bool:
        """프로젝트 설정이 없으면 커넥터 기본값을 따른다"""
        preference = (project.sources or {}).get(connector.id)
        if preference is None:
            return bool(connector.enabled_by_default)
        return bool(preference)

    def enabled_for(self, project: Project) -> List[MentionConnector]:
        return [c for c in self._connectors if self.is_enabled(c, project)]

    def default_sources(self) -> Dict[str, bool]:
        return {c.id: bool(c.enabled_by_default) for c in self._connectors}

    def describe(self) -> List[Dict[str, Any]]:
        return [
            {
                "id": c.id,
                "display_name": c.display_name,
                "enabled_by_default": bool(c.enabled_by_default),
                "capabilities": c.capabilities.to_dict(),
            }
            for c in self._connectors
        ]


def build_default_registry(settings=None) -> ConnectorRegistry:
    """설정의 자격 증명으로 기본 커넥터 구성"""
    if settings is None:
        from mentionwatch.core.config import settings

    return ConnectorRegistry([
        LocalNewsConnector(),
        YouTubeConnector(api_key=settings.YOUTUBE_API_KEY),
        RedditConnector(),
        XConnector(bearer_token=settings.TWITTER_BEARER_TOKEN),
        MetaConnector(access_token=settings.META_ACCESS_TOKEN, page_id=settings.META_PAGE_ID),
        TikTokConnector(api_token=settings.APIFY_API_TOKEN, actor_id=settings.APIFY_TIKTOK_ACTOR),
        ViberConnector(),
    ])
