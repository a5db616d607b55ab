"""
Reddit Connector
공개 검색 JSON (r/Nepal 계열 서브레딧)
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import httpx

from mentionwatch.data_pipeline.adapters.base import (
    ConnectorCapabilities,
    build_search_query,
    get_json,
    http_client,
)
from mentionwatch.data_pipeline.domain.models import Engagement, Project, RawMention
from mentionwatch.core.dates import parse_datetime

logger = logging.getLogger(__name__)

POSTS_LIMIT = 10
DEFAULT_SUBREDDITS = ("Nepal", "NepalPolitics", "Nepali", "NepalSocial")


def post_to_mention(post: Dict[str, Any]) -> RawMention:
    return RawMention(
        source="reddit",
        title=post.get("title", ""),
        text=post.get("selftext", ""),
        author=post.get("author", ""),
        url=f"https://www.reddit.com{post.get('permalink', '')}",
        published_at=parse_datetime(post.get("created_utc")),
        engagement=Engagement.from_dict({
            "likes": post.get("ups"),
            "comments": post.get("num_comments"),
        }),
    )


class RedditConnector:
    """Reddit 커넥터 (비공개 커뮤니티 제외)"""

    id = "reddit"
    display_name = "Reddit (r/Nepal)"
    enabled_by_default = True
    capabilities = ConnectorCapabilities(
        realtime=False,
        search=True,
        limits="Public search JSON; no private communities.",
    )

    def __init__(
        self,
        subreddits: Sequence[str] = DEFAULT_SUBREDDITS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.subreddits = tuple(subreddits)
        self.client = client

    async def fetch(self, project: Project, since: Optional[datetime]) -> List[RawMention]:
        query = build_search_query(project)
        mentions: List[RawMention] = []

        async with http_client(self.client) as client:
            for subreddit in self.subreddits:
                data = await get_json(
                    client,
                    f"https://www.reddit.com/r/{subreddit}/search.json",
                    "Reddit",
                    params={"q": query, "restrict_sr": 1, "sort": "new", "limit": POSTS_LIMIT},
                )
                children = ((data or {}).get("data") or {}).get("children") or []
                mentions.extend(post_to_mention(child.get("data") or {}) for child in children)

        return mentions
