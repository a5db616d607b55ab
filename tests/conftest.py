"""
Pytest Configuration and Fixtures
mentionwatch 테스트 공통 설정

Features:
- 인메모리 SQLite 데이터베이스
- 시드 계정/프로젝트
- 가짜 커넥터, 기록용 발행기/이메일 발송기
- 고정 시계
"""

import pytest
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from mentionwatch.data_pipeline.adapters.base import ConnectorCapabilities
from mentionwatch.data_pipeline.adapters.registry import ConnectorRegistry
from mentionwatch.data_pipeline.domain.models import Engagement, Project, ProjectStatus, RawMention
from mentionwatch.data_pipeline.pipeline import IngestionOrchestrator
from mentionwatch.data_pipeline.repositories import (
    AccountRepository,
    AlertRepository,
    AuditLogRepository,
    Database,
    MentionRepository,
    ProjectRepository,
)
from mentionwatch.services.alerts.engine import AlertEngine
from mentionwatch.services.analysis.sentiment import LexiconSentimentClassifier
from mentionwatch.services.platform.connector_health import ConnectorHealthTracker
from mentionwatch.services.platform.quota import QuotaLedger


# ============================================================
# Test Doubles
# ============================================================

class FixedClock:
    """테스트용 시계"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeConnector:
    """고정 결과를 돌려주는 커넥터"""

    display_name = "Fake"
    capabilities = ConnectorCapabilities(realtime=False, search=True, limits="test")

    def __init__(self, connector_id: str = "fake", items: Optional[List[Any]] = None, enabled_by_default: bool = True):
        self.id = connector_id
        self.items = items if items is not None else []
        self.enabled_by_default = enabled_by_default
        self.calls: List[Dict[str, Any]] = []

    async def fetch(self, project: Project, since: Optional[datetime]):
        self.calls.append({"project_id": project.id, "since": since})
        return self.items


class FailingConnector(FakeConnector):
    """항상 실패하는 커넥터"""

    def __init__(self, connector_id: str = "broken", message: str = "upstream unavailable"):
        super().__init__(connector_id)
        self.message = message

    async def fetch(self, project: Project, since: Optional[datetime]):
        self.calls.append({"project_id": project.id, "since": since})
        raise RuntimeError(self.message)


class RecordingPublisher:
    """발행 이벤트 기록"""

    def __init__(self):
        self.events: List[Dict[str, Any]] = []

    async def publish(self, rooms, event, payload) -> int:
        rooms = list(rooms)
        self.events.append({"rooms": rooms, "event": event, "data": payload})
        return len(rooms)


class RecordingEmailSender:
    """발송 메일 기록"""

    def __init__(self):
        self.sent: List[Dict[str, str]] = []

    async def send(self, to: str, subject: str, body: str) -> bool:
        self.sent.append({"to": to, "subject": subject, "body": body})
        return True


def make_raw(
    url: str,
    title: str = "Budget update",
    text: str = "The new budget plan passed",
    source: str = "fake",
    author: str = "reporter",
    follower_count: int = 0,
    likes: int = 0,
    comments: int = 0,
) -> RawMention:
    return RawMention(
        source=source,
        title=title,
        text=text,
        author=author,
        url=url,
        published_at=datetime(2026, 3, 14, 9, 0, 0),
        engagement=Engagement(likes=likes, comments=comments, shares=0),
        follower_count=follower_count,
    )


def mention_document(project_id: str, index: int, created_at: datetime, **overrides) -> Dict[str, Any]:
    """MentionRepository.insert_many용 문서"""
    document = {
        "project_id": project_id,
        "source": "fake",
        "keyword_matched": "budget",
        "title": f"Budget story {index}",
        "text": f"budget coverage number {index}",
        "author": f"author{index % 3}",
        "url": f"https://news.example.com/{index}",
        "similarity_hash": f"hash-{index}",
        "sentiment_label": "neutral",
        "sentiment_confidence": 0.0,
        "ingested_at": created_at,
        "created_at": created_at,
    }
    document.update(overrides)
    return document


# ============================================================
# Database Fixtures
# ============================================================

NOW = datetime(2026, 3, 14, 12, 0, 0)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def db():
    database = Database.in_memory()
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture
def account_repo(db) -> AccountRepository:
    return AccountRepository(db)


@pytest.fixture
def project_repo(db) -> ProjectRepository:
    return ProjectRepository(db)


@pytest.fixture
def mention_repo(db) -> MentionRepository:
    return MentionRepository(db)


@pytest.fixture
def alert_repo(db) -> AlertRepository:
    return AlertRepository(db)


@pytest.fixture
def audit_repo(db) -> AuditLogRepository:
    return AuditLogRepository(db)


@pytest.fixture
def quota(db) -> QuotaLedger:
    return QuotaLedger(db)


@pytest.fixture
def health(db) -> ConnectorHealthTracker:
    return ConnectorHealthTracker(db)


@pytest.fixture
def account(account_repo):
    return account_repo.create(email="owner@example.com", full_name="Owner", plan="individual")


@pytest.fixture
def project(project_repo, account):
    return project_repo.create(
        account.id,
        "Budget Watch",
        keywords=["budget"],
        sources={},
        schedule_minutes=30,
        status=ProjectStatus.ACTIVE,
    )


# ============================================================
# Service Fixtures
# ============================================================

@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def alert_engine(alert_repo, mention_repo, publisher, email_sender, clock) -> AlertEngine:
    return AlertEngine(
        alerts=alert_repo,
        mentions=mention_repo,
        publisher=publisher,
        email_sender=email_sender,
        cooldown_minutes=30,
        email_enabled=False,
        clock=clock,
    )


@pytest.fixture
def make_orchestrator(
    project_repo, account_repo, mention_repo, health, quota, audit_repo, alert_engine, clock
):
    """커넥터 목록으로 오케스트레이터 생성"""

    def factory(connectors, classifier=None, timeout: float = 1.0) -> IngestionOrchestrator:
        return IngestionOrchestrator(
            registry=ConnectorRegistry(connectors),
            projects=project_repo,
            accounts=account_repo,
            mentions=mention_repo,
            health=health,
            quota=quota,
            audit=audit_repo,
            alert_engine=alert_engine,
            classifier=classifier or LexiconSentimentClassifier(),
            connector_timeout=timeout,
            clock=clock,
        )

    return factory
