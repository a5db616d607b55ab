"""
X (Twitter) Connector
v2 recent search (유료 API 접근 필요)
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

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

SEARCH_URL = "https://api.twitter.com/2/tweets/search/recent"
MAX_RESULTS = 10


def tweet_to_mention(tweet: Dict[str, Any], users: Dict[str, Dict[str, Any]]) -> RawMention:
    metrics = tweet.get("public_metrics") or {}
    author_id = tweet.get("author_id") or ""
    user = users.get(author_id) or {}
    return RawMention(
        source="x",
        title="",
        text=tweet.get("text", ""),
        author=user.get("username") or author_id,
        url=f"https://twitter.com/i/web/status/{tweet.get('id')}",
        published_at=parse_datetime(tweet.get("created_at")),
        engagement=Engagement.from_dict({
            "likes": metrics.get("like_count"),
            "comments": metrics.get("reply_count"),
            "shares": metrics.get("retweet_count"),
        }),
        follower_count=int((user.get("public_metrics") or {}).get("followers_count") or 0),
    )


class XConnector:
    """X 커넥터 (Bearer 토큰 필요)"""

    id = "x"
    display_name = "X (Twitter)"
    enabled_by_default = False
    capabilities = ConnectorCapabilities(
        realtime=False,
        search=True,
        limits="Requires paid API access; v2 recent search only.",
    )

    def __init__(self, bearer_token: Optional[str] = None, client: Optional[httpx.AsyncClient] = None):
        self.bearer_token = bearer_token
        self.client = client

    async def fetch(self, project: Project, since: Optional[datetime]) -> List[RawMention]:
        if not self.bearer_token:
            return []

        params = {
            "query": build_search_query(project),
            "max_results": MAX_RESULTS,
            "tweet.fields": "created_at,author_id,public_metrics",
            "expansions": "author_id",
            "user.fields": "username,public_metrics",
        }
        async with http_client(self.client) as client:
            data = await get_json(
                client,
                SEARCH_URL,
                "X",
                params=params,
                headers={"Authorization": f"Bearer {self.bearer_token}"},
            )

        users = {user.get("id"): user for user in (data.get("includes") or {}).get("users") or []}
        return [tweet_to_mention(tweet, users) for tweet in data.get("data") or []]
