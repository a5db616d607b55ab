"""
Local News Connector
네팔 지역 언론 RSS 피드 수집
"""

import logging
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

import feedparser
import httpx

from mentionwatch.data_pipeline.adapters.base import ConnectorCapabilities, http_client
from mentionwatch.data_pipeline.domain.models import Project, RawMention
from mentionwatch.core.dates import parse_datetime

logger = logging.getLogger(__name__)

# (피드 이름, URL)
DEFAULT_FEEDS: Tuple[Tuple[str, str], ...] = (
    ("OnlineKhabar", "https://www.onlinekhabar.com/rss"),
    ("Kantipur", "https://kathmandupost.com/rss"),
    ("Setopati", "https://en.setopati.com/rss"),
)


def _entry_published(entry) -> Optional[datetime]:
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if parsed:
        return datetime(*parsed[:6])
    return parse_datetime(entry.get("published") or entry.get("updated"))


def entry_to_mention(entry) -> RawMention:
    return RawMention(
        source="local_news",
        title=entry.get("title", "") or "",
        text=entry.get("summary", "") or entry.get("description", "") or "",
        author=entry.get("author", "") or "",
        url=entry.get("link") or None,
        published_at=_entry_published(entry),
    )


class LocalNewsConnector:
    """RSS 피드 커넥터 (전체 사이트 스크래핑 없음)"""

    id = "local_news"
    display_name = "Nepal Local News"
    enabled_by_default = True
    capabilities = ConnectorCapabilities(
        realtime=False,
        search=True,
        limits="RSS feeds only; respects robots.txt; no full-site scraping.",
    )

    def __init__(
        self,
        feeds: Sequence[Tuple[str, str]] = DEFAULT_FEEDS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.feeds = tuple(feeds)
        self.client = client

    async def fetch(self, project: Project, since: Optional[datetime]) -> List[RawMention]:
        mentions: List[RawMention] = []
        errors: List[Exception] = []

        async with http_client(self.client) as client:
            for name, url in self.feeds:
                try:
                    response = await client.get(url)
                    if response.status_code >= 400:
                        raise RuntimeError(f"RSS fetch failed: {name} ({response.status_code})")
                    parsed = feedparser.parse(response.text)
                    mentions.extend(entry_to_mention(entry) for entry in parsed.entries)
                except Exception as e:
                    logger.debug(f"[LocalNews] Feed {name} failed: {e}")
                    errors.append(e)

        # 모든 피드가 실패했을 때만 커넥터 실패로 본다
        if not mentions and errors:
            raise errors[0]
        return mentions
