"""
YouTube Connector
YouTube Data API v3 검색 + 영상 통계 조회
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

API_BASE = "https://www.googleapis.com/youtube/v3"
MAX_RESULTS = 5


def video_to_mention(video: Dict[str, Any]) -> RawMention:
    snippet = video.get("snippet") or {}
    statistics = video.get("statistics") or {}
    return RawMention(
        source="youtube",
        title=snippet.get("title", ""),
        text=snippet.get("description", ""),
        author=snippet.get("channelTitle", ""),
        url=f"https://www.youtube.com/watch?v={video.get('id')}",
        published_at=parse_datetime(snippet.get("publishedAt")),
        engagement=Engagement.from_dict({
            "likes": statistics.get("likeCount"),
            "comments": statistics.get("commentCount"),
        }),
    )


class YouTubeConnector:
    """YouTube 커넥터 (API 키 필요)"""

    id = "youtube"
    display_name = "YouTube"
    enabled_by_default = True
    capabilities = ConnectorCapabilities(
        realtime=False,
        search=True,
        limits="Requires API key; comments limited to top threads.",
    )

    def __init__(self, api_key: Optional[str] = None, client: Optional[httpx.AsyncClient] = None):
        self.api_key = api_key
        self.client = client

    async def fetch(self, project: Project, since: Optional[datetime]) -> List[RawMention]:
        if not self.api_key:
            return []

        params: Dict[str, Any] = {
            "part": "snippet",
            "type": "video",
            "maxResults": MAX_RESULTS,
            "q": build_search_query(project),
            "key": self.api_key,
        }
        if since is not None:
            params["publishedAfter"] = since.strftime("%Y-%m-%dT%H:%M:%SZ")

        async with http_client(self.client) as client:
            search = await get_json(client, f"{API_BASE}/search", "YouTube", params=params)
            video_ids = [
                (item.get("id") or {}).get("videoId")
                for item in search.get("items") or []
            ]
            video_ids = [video_id for video_id in video_ids if video_id]
            if not video_ids:
                return []

            videos = await get_json(
                client,
                f"{API_BASE}/videos",
                "YouTube",
                params={"part": "snippet,statistics", "id": ",".join(video_ids), "key": self.api_key},
            )

        return [video_to_mention(video) for video in videos.get("items") or []]
