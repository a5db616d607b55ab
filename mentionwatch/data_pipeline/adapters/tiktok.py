"""
TikTok Connector (Experimental)
Apify clockworks/tiktok-scraper 실행 결과를 멘션으로 변환

실제 데이터 형식 (flat 구조 - 점 표기법 키):
{
    "authorMeta.name": "themalachibarton",
    "authorMeta.fans": 1200000,
    "text": "Certified #fyp",
    "diggCount": 3100000,
    "shareCount": 52800,
    "commentCount": 7320,
    "createTimeISO": "2024-05-19T01:44:18.000Z",
    "webVideoUrl": "https://www.tiktok.com/@themalachibarton/video/7370520570070338859"
}
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from mentionwatch.data_pipeline.adapters.base import ConnectorCapabilities
from mentionwatch.data_pipeline.crawlers.apify_client import ApifyClient
from mentionwatch.data_pipeline.domain.models import Engagement, Project, RawMention
from mentionwatch.core.dates import parse_datetime

logger = logging.getLogger(__name__)

DEFAULT_ACTOR = "clockworks/tiktok-scraper"
RESULTS_PER_QUERY = 10
ACTOR_TIMEOUT_SECS = 20


def _field(raw: Dict[str, Any], flat_key: str) -> Any:
    """flat 키("authorMeta.name")와 중첩 구조 모두 지원"""
    if flat_key in raw:
        return raw[flat_key]
    value: Any = raw
    for part in flat_key.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def item_to_mention(raw: Dict[str, Any]) -> RawMention:
    username = _field(raw, "authorMeta.name") or ""
    url = raw.get("webVideoUrl") or (f"https://www.tiktok.com/@{username}" if username else None)
    return RawMention(
        source="tiktok",
        title="",
        text=raw.get("text", "") or "",
        author=username,
        url=url,
        published_at=parse_datetime(raw.get("createTimeISO")),
        engagement=Engagement.from_dict({
            "likes": raw.get("diggCount"),
            "comments": raw.get("commentCount"),
            "shares": raw.get("shareCount"),
        }),
        follower_count=int(_field(raw, "authorMeta.fans") or 0),
    )


class TikTokConnector:
    """TikTok 커넥터 (Apify 토큰 필요, best-effort)"""

    id = "tiktok"
    display_name = "TikTok (Experimental)"
    enabled_by_default = False
    capabilities = ConnectorCapabilities(
        realtime=False,
        search=True,
        limits="Experimental scraping via Apify; best-effort only.",
    )

    def __init__(
        self,
        api_token: Optional[str] = None,
        actor_id: str = DEFAULT_ACTOR,
        apify_client: Optional[ApifyClient] = None,
    ):
        self.api_token = api_token
        self.actor_id = actor_id
        self._apify_client = apify_client

    @property
    def apify_client(self) -> Optional[ApifyClient]:
        """Apify 클라이언트 지연 생성"""
        if self._apify_client is None and self.api_token:
            self._apify_client = ApifyClient(self.api_token)
        return self._apify_client

    def build_run_input(self, project: Project) -> Dict[str, Any]:
        queries = project.keywords[:5] if project.keywords else [project.name]
        return {
            "searchQueries": queries,
            "resultsPerPage": RESULTS_PER_QUERY,
            "shouldDownloadVideos": False,
            "shouldDownloadCovers": False,
            "shouldDownloadSubtitles": False,
            "shouldDownloadSlideshowImages": False,
            "commentsPerPost": 0,
        }

    async def fetch(self, project: Project, since: Optional[datetime]) -> List[RawMention]:
        client = self.apify_client
        if client is None:
            return []

        items = await client.run_actor(
            actor_id=self.actor_id,
            run_input=self.build_run_input(project),
            timeout_secs=ACTOR_TIMEOUT_SECS,
            max_items=RESULTS_PER_QUERY * 5,
        )
        return [item_to_mention(item) for item in items if isinstance(item, dict)]
