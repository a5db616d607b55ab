"""
Apify API Client
Apify Actor를 실행하여 스크래핑 결과를 가져오는 클라이언트
"""
import logging
from typing import Any, Dict, List, Optional

from apify_client import ApifyClient as ApifySDK

from mentionwatch.core.blocking import run_blocking

logger = logging.getLogger(__name__)


class ApifyClient:
    """Apify API 클라이언트"""

    def __init__(self, api_token: str):
        """
        Args:
            api_token: Apify API 토큰
        """
        if not api_token:
            raise ValueError("APIFY_API_TOKEN is required")

        self.api_token = api_token
        self.client = ApifySDK(self.api_token)

    def _run_actor_sync(
        self,
        actor_id: str,
        run_input: Dict[str, Any],
        timeout_secs: int,
        max_items: Optional[int],
    ) -> List[Dict[str, Any]]:
        run = self.client.actor(actor_id).call(
            run_input=run_input,
            timeout_secs=timeout_secs,
        )
        if not run:
            raise RuntimeError(f"Apify actor {actor_id} returned no run")

        items: List[Dict[str, Any]] = []
        for item in self.client.dataset(run["defaultDatasetId"]).iterate_items(limit=max_items):
            items.append(item)
        return items

    async def run_actor(
        self,
        actor_id: str,
        run_input: Dict[str, Any],
        timeout_secs: int = 20,
        max_items: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Apify Actor 실행

        SDK 호출은 블로킹이므로 스레드에서 실행한다.

        Args:
            actor_id: Actor ID (예: "clockworks/tiktok-scraper")
            run_input: Actor 입력 데이터
            timeout_secs: Actor 실행 타임아웃 (초)
            max_items: 가져올 최대 아이템 수

        Returns:
            스크래핑된 데이터 리스트
        """
        logger.info(f"Running Apify actor: {actor_id}")
        logger.debug(f"Input: {run_input}")

        items = await run_blocking(
            self._run_actor_sync, actor_id, run_input, timeout_secs, max_items
        )

        logger.info(f"Retrieved {len(items)} items from actor: {actor_id}")
        return items
