"""
Connector Contract
모든 멘션 커넥터가 만족해야 하는 인터페이스와 호출 경계

커넥터는 상속 없이 아래 Protocol을 만족하는 값이면 된다.
오케스트레이터는 fetch_with_timeout()으로만 커넥터를 호출하며,
커넥터 예외는 이 경계를 넘지 않고 ConnectorOutcome.failure로 변환된다.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Protocol, runtime_checkable

import httpx

from mentionwatch.data_pipeline.domain.models import Project, RawMention

logger = logging.getLogger(__name__)

DEFAULT_CONNECTOR_TIMEOUT = 25.0
HTTP_TIMEOUT = 15.0
USER_AGENT = "MentionWatch/1.0"


@dataclass(frozen=True)
class ConnectorCapabilities:
    """커넥터 능력 기술자"""
    realtime: bool = False
    search: bool = True
    limits: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"realtime": self.realtime, "search": self.search, "limits": self.limits}


@runtime_checkable
class MentionConnector(Protocol):
    """멘션 수집 커넥터"""
    id: str
    display_name: str
    enabled_by_default: bool
    capabilities: ConnectorCapabilities

    async def fetch(self, project: Project, since: Optional[datetime]) -> List[RawMention]:
        ...


class MalformedConnectorResponse(ValueError):
    """커넥터가 리스트가 아닌 값을 반환"""


# ============================================================
# Outcome
# ============================================================

@dataclass
class ConnectorOutcome:
    """커넥터 1회 호출 결과: success(mentions) | failure(error)"""
    connector_id: str
    mentions: List[RawMention] = field(default_factory=list)
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, connector_id: str, mentions: List[RawMention], duration: float = 0.0) -> "ConnectorOutcome":
        return cls(connector_id=connector_id, mentions=mentions, duration_seconds=duration)

    @classmethod
    def failure(cls, connector_id: str, error: str, duration: float = 0.0) -> "ConnectorOutcome":
        return cls(connector_id=connector_id, error=error or "Unknown error", duration_seconds=duration)


def coerce_mentions(result: Any, connector_id: str) -> List[RawMention]:
    """
    커넥터 반환값을 RawMention 리스트로 정규화

    RawMention 인스턴스도 필드 타입을 다시 정리한다 (engagement=None 등).
    """
    if result is None:
        return []
    if not isinstance(result, (list, tuple)):
        raise MalformedConnectorResponse(
            f"malformed connector response: expected list, got {type(result).__name__}"
        )

    mentions: List[RawMention] = []
    for item in result:
        if isinstance(item, RawMention):
            mentions.append(item.normalized(connector_id))
        elif isinstance(item, Mapping):
            mentions.append(RawMention.from_dict(item, default_source=connector_id))
        else:
            raise MalformedConnectorResponse(
                f"malformed connector response: unexpected item {type(item).__name__}"
            )
    return mentions


async def fetch_with_timeout(
    connector: MentionConnector,
    project: Project,
    since: Optional[datetime],
    timeout: float = DEFAULT_CONNECTOR_TIMEOUT,
) -> ConnectorOutcome:
    """
    타임아웃이 걸린 단일 시도

    재시도하지 않는다. 타임아웃, 예외, 잘못된 응답 모두 failure로 반환한다.
    """
    started = time.monotonic()
    try:
        result = await asyncio.wait_for(connector.fetch(project, since), timeout=timeout)
        mentions = coerce_mentions(result, connector.id)
    except asyncio.TimeoutError:
        return ConnectorOutcome.failure(
            connector.id, f"timeout after {timeout:g}s", time.monotonic() - started
        )
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.debug(f"[Connector] {connector.id} raised", exc_info=True)
        return ConnectorOutcome.failure(
            connector.id, str(e) or type(e).__name__, time.monotonic() - started
        )

    return ConnectorOutcome.success(connector.id, mentions, time.monotonic() - started)


# ============================================================
# HTTP helpers
# ============================================================

def build_search_query(project: Project) -> str:
    """키워드 > 불리언 검색식 > 프로젝트 이름 순으로 검색어 결정"""
    return " ".join(project.keywords) or project.boolean_query or project.name


@asynccontextmanager
async def http_client(
    client: Optional[httpx.AsyncClient],
    timeout: float = HTTP_TIMEOUT,
) -> AsyncIterator[httpx.AsyncClient]:
    """주입된 클라이언트가 있으면 그대로, 없으면 호출 단위로 생성"""
    if client is not None:
        yield client
        return

    async with httpx.AsyncClient(
        timeout=timeout,
        headers={"User-Agent": USER_AGENT},
        follow_redirects=True,
    ) as owned:
        yield owned


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    service: str,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> Any:
    logger.debug(f"[Connector] {service} GET {url}")
    response = await client.get(url, params=params, headers=headers)
    response.raise_for_status()
    return response.json()
