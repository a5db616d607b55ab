"""
Viber Connector
봇 채널 전용 (전역 검색 없음). 수집 경로가 구성되지 않아 항상 실패한다.
"""

from datetime import datetime
from typing import List, Optional

from mentionwatch.core.exceptions import ConnectorError
from mentionwatch.data_pipeline.adapters.base import ConnectorCapabilities
from mentionwatch.data_pipeline.domain.models import Project, RawMention


class ViberConnector:
    """Viber 봇 채널 커넥터"""

    id = "viber"
    display_name = "Viber Bot Channels"
    enabled_by_default = False
    capabilities = ConnectorCapabilities(
        realtime=True,
        search=False,
        limits="Bot-only channels; no global search.",
    )

    async def fetch(self, project: Project, since: Optional[datetime]) -> List[RawMention]:
        raise ConnectorError(self.id, "Viber bot ingestion not configured")
