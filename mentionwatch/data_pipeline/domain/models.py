"""
멘션 수집 도메인 모델
커넥터, 파이프라인, 알림 엔진이 공유하는 DTO
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any, List, Mapping
from enum import Enum

from mentionwatch.core.dates import parse_datetime


class ProjectStatus(str, Enum):
    """프로젝트 상태"""
    ACTIVE = "active"
    PAUSED = "paused"


class HealthState(str, Enum):
    """커넥터 헬스 상태"""
    OK = "ok"
    NO_DATA = "no_data"
    DEGRADED = "degraded"
    DOWN = "down"


class AlertType(str, Enum):
    """알림 타입"""
    NEW_MENTIONS = "new_mentions"
    VOLUME_SPIKE = "volume_spike"
    SENTIMENT_NEGATIVE = "sentiment_negative"
    SENTIMENT_SHIFT = "sentiment_shift"
    REACH_SPIKE = "reach_spike"
    INFLUENCER_MENTION = "influencer_mention"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _to_int(value: Any) -> int:
    try:
        return max(int(value or 0), 0)
    except (TypeError, ValueError):
        return 0


# ============================================================
# Project / Account
# ============================================================

@dataclass
class Account:
    """프로젝트 소유 계정"""
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    plan: str = "individual"
    email_alerts_enabled: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "plan": self.plan,
            "email_alerts_enabled": self.email_alerts_enabled,
        }


@dataclass
class Project:
    """모니터링 프로젝트"""
    id: str
    account_id: str
    name: str
    keywords: List[str] = field(default_factory=list)
    boolean_query: str = ""
    sources: Dict[str, bool] = field(default_factory=dict)
    schedule_minutes: int = 30
    geo_focus: str = "Nepal"
    status: ProjectStatus = ProjectStatus.ACTIVE
    last_run_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == ProjectStatus.ACTIVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "name": self.name,
            "keywords": list(self.keywords),
            "boolean_query": self.boolean_query,
            "sources": dict(self.sources),
            "schedule_minutes": self.schedule_minutes,
            "geo_focus": self.geo_focus,
            "status": self.status.value,
            "last_run_at": _iso(self.last_run_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


# ============================================================
# Raw Mention (커넥터 출력)
# ============================================================

@dataclass
class Engagement:
    """인게이지먼트 지표"""
    likes: int = 0
    comments: int = 0
    shares: int = 0

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "Engagement":
        data = data or {}
        return cls(
            likes=_to_int(data.get("likes")),
            comments=_to_int(data.get("comments")),
            shares=_to_int(data.get("shares")),
        )

    def to_dict(self) -> Dict[str, int]:
        return {"likes": self.likes, "comments": self.comments, "shares": self.shares}


@dataclass
class RawMention:
    """커넥터가 반환하는 멘션 후보"""
    source: str
    title: str = ""
    text: str = ""
    author: str = ""
    url: Optional[str] = None
    published_at: Optional[datetime] = None
    engagement: Engagement = field(default_factory=Engagement)
    follower_count: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], default_source: str = "") -> "RawMention":
        """camelCase / snake_case dict 모두 허용"""
        published = data.get("published_at", data.get("publishedAt"))
        followers = data.get("follower_count", data.get("followerCount"))
        return cls(
            source=data.get("source") or default_source,
            title=data.get("title") or "",
            text=data.get("text") or "",
            author=data.get("author") or "",
            url=data.get("url") or None,
            published_at=parse_datetime(published),
            engagement=Engagement.from_dict(data.get("engagement")),
            follower_count=_to_int(followers),
        )

    def normalized(self, default_source: str = "") -> "RawMention":
        """타입이 정리된 사본 (engagement 누락, 숫자/날짜 형식 오류 허용)"""
        engagement = self.engagement
        if isinstance(engagement, Engagement):
            engagement = Engagement.from_dict(engagement.to_dict())
        else:
            engagement = Engagement.from_dict(engagement if isinstance(engagement, Mapping) else None)

        return RawMention(
            source=str(self.source or default_source),
            title=str(self.title or ""),
            text=str(self.text or ""),
            author=str(self.author or ""),
            url=str(self.url) if self.url else None,
            published_at=parse_datetime(self.published_at),
            engagement=engagement,
            follower_count=_to_int(self.follower_count),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "title": self.title,
            "text": self.text,
            "author": self.author,
            "url": self.url,
            "published_at": _iso(self.published_at),
            "engagement": self.engagement.to_dict(),
            "follower_count": self.follower_count,
        }


# ============================================================
# Enrichment / Stored Mention
# ============================================================

@dataclass
class SentimentResult:
    """감성 분석 결과"""
    label: str = "neutral"
    confidence: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "confidence": round(self.confidence, 4)}


@dataclass
class StoredMention:
    """저장된 멘션"""
    id: str
    project_id: str
    source: str
    keyword_matched: str = ""
    title: str = ""
    text: str = ""
    author: str = ""
    url: Optional[str] = None
    published_at: Optional[datetime] = None
    engagement: Engagement = field(default_factory=Engagement)
    follower_count: int = 0
    reach_estimate: int = 0
    lang: str = "unknown"
    geo: Optional[str] = None
    sentiment: SentimentResult = field(default_factory=SentimentResult)
    similarity_hash: Optional[str] = None
    ingested_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "source": self.source,
            "keyword_matched": self.keyword_matched,
            "title": self.title,
            "text": self.text,
            "author": self.author,
            "url": self.url,
            "published_at": _iso(self.published_at),
            "engagement": self.engagement.to_dict(),
            "follower_count": self.follower_count,
            "reach_estimate": self.reach_estimate,
            "lang": self.lang,
            "geo": self.geo,
            "sentiment": self.sentiment.to_dict(),
            "similarity_hash": self.similarity_hash,
            "ingested_at": _iso(self.ingested_at),
            "created_at": _iso(self.created_at),
        }


# ============================================================
# Read Models
# ============================================================

@dataclass
class ConnectorHealthRecord:
    """커넥터 헬스 레코드"""
    project_id: str
    connector_id: str
    status: HealthState
    last_error: Optional[str] = None
    last_checked_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_id": self.project_id,
            "connector_id": self.connector_id,
            "status": self.status.value,
            "last_error": self.last_error,
            "last_checked_at": _iso(self.last_checked_at),
        }


@dataclass
class UsageRecord:
    """월별 사용량"""
    account_id: str
    month: str
    mentions_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account_id": self.account_id,
            "month": self.month,
            "mentions_count": self.mentions_count,
        }


@dataclass
class AlertRecord:
    """알림"""
    id: str
    account_id: str
    project_id: str
    type: str
    message: str
    payload: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    read_at: Optional[datetime] = None

    @property
    def is_read(self) -> bool:
        return self.read_at is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "project_id": self.project_id,
            "type": self.type,
            "message": self.message,
            "payload": self.payload,
            "created_at": _iso(self.created_at),
            "read_at": _iso(self.read_at),
        }
