"""
Meta Connector
Graph API로 소유/관리 중인 Facebook 페이지 게시물만 조회

전역 키워드 검색은 지원되지 않는다.
필요 환경변수: META_ACCESS_TOKEN, META_PAGE_ID
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import httpx

from mentionwatch.data_pipeline.adapters.base import ConnectorCapabilities, get_json, http_client
from mentionwatch.data_pipeline.domain.models import Engagement, Project, RawMention
from mentionwatch.core.dates import parse_datetime, utcnow

logger = logging.getLogger(__name__)

GRAPH_API = "https://graph.facebook.com/v19.0"
POST_FIELDS = "id,message,created_time,permalink_url,shares,reactions.summary(true),comments.summary(true)"
POST_LIMIT = 50
LOOKBACK_DAYS = 7
TITLE_LENGTH = 100


def post_to_mention(post: Dict[str, Any]) -> RawMention:
    text = post.get("message") or ""
    title = text[:TITLE_LENGTH] + ("..." if len(text) > TITLE_LENGTH else "")
    return RawMention(
        source="meta",
        title=title,
        text=text,
        author="Page Post",
        url=post.get("permalink_url") or f"https://facebook.com/{post.get('id')}",
        published_at=parse_datetime(post.get("created_time")),
        engagement=Engagement.from_dict({
            "likes": ((post.get("reactions") or {}).get("summary") or {}).get("total_count"),
            "comments": ((post.get("comments") or {}).get("summary") or {}).get("total_count"),
            "shares": (post.get("shares") or {}).get("count"),
        }),
    )


class MetaConnector:
    """Meta 커넥터 (소유 자산 전용)"""

    id = "meta"
    display_name = "Meta (Owned Assets Only)"
    enabled_by_default = False
    capabilities = ConnectorCapabilities(
        realtime=False,
        search=False,
        limits="Owned pages/IG business accounts only; no global keyword search.",
    )

    def __init__(
        self,
        access_token: Optional[str] = None,
        page_id: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.access_token = access_token
        self.page_id = page_id
        self.client = client

    async def fetch(self, project: Project, since: Optional[datetime]) -> List[RawMention]:
        if not self.access_token or not self.page_id:
            return []

        window_start = since or (utcnow() - timedelta(days=LOOKBACK_DAYS))
        async with http_client(self.client) as client:
            data = await get_json(
                client,
                f"{GRAPH_API}/{self.page_id}/posts",
                "Meta Graph",
                params={
                    "fields": POST_FIELDS,
                    "limit": POST_LIMIT,
                    "since": int((window_start - datetime(1970, 1, 1)).total_seconds()),
                    "access_token": self.access_token,
                },
            )

        return [post_to_mention(post) for post in data.get("data") or []]
