"""
Service Container
설정으로부터 저장소, 커넥터, 알림, 수집 구성요소를 한 번에 조립

API, 스크립트, 테스트가 같은 조립 경로를 공유한다.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from mentionwatch.core.config import Settings, settings as default_settings
from mentionwatch.data_pipeline.adapters.registry import ConnectorRegistry, build_default_registry
from mentionwatch.data_pipeline.pipeline import IngestionOrchestrator
from mentionwatch.data_pipeline.repositories import (
    AccountRepository,
    AlertRepository,
    AuditLogRepository,
    Database,
    MentionRepository,
    ProjectRepository,
)
from mentionwatch.schedulers.ingestion_scheduler import IngestionScheduler
from mentionwatch.services.alerts.engine import AlertEngine
from mentionwatch.services.analysis.sentiment import LexiconSentimentClassifier, TextClassifier
from mentionwatch.services.notifications.email import EmailSender, SendGridEmailSender
from mentionwatch.services.notifications.realtime import RoomHub
from mentionwatch.services.platform.connector_health import ConnectorHealthTracker
from mentionwatch.services.platform.metrics import ProjectMetricsService
from mentionwatch.services.platform.projects import ProjectService
from mentionwatch.services.platform.quota import QuotaLedger

logger = logging.getLogger(__name__)


@dataclass
class Container:
    """조립된 구성요소 묶음"""

    settings: Settings
    db: Database
    accounts: AccountRepository
    projects: ProjectRepository
    mentions: MentionRepository
    alerts: AlertRepository
    audit: AuditLogRepository
    quota: QuotaLedger
    health: ConnectorHealthTracker
    metrics: ProjectMetricsService
    registry: ConnectorRegistry
    hub: RoomHub
    email_sender: EmailSender
    alert_engine: AlertEngine
    orchestrator: IngestionOrchestrator
    scheduler: IngestionScheduler
    project_service: ProjectService


def build_container(
    config: Optional[Settings] = None,
    db: Optional[Database] = None,
    registry: Optional[ConnectorRegistry] = None,
    email_sender: Optional[EmailSender] = None,
    classifier: Optional[TextClassifier] = None,
) -> Container:
    """
    구성요소 조립

    Args:
        config: 설정 (기본: 전역 settings)
        db: 데이터베이스 (기본: DATABASE_URL)
        registry: 커넥터 레지스트리 (기본: 설정 기반 기본 커넥터)
        email_sender: 이메일 발송기 (기본: SendGrid)
        classifier: 감성 분류기 (기본: 사전 기반)
    """
    config = config or default_settings
    db = db or Database(url=config.DATABASE_URL, echo=config.DATABASE_ECHO)
    registry = registry or build_default_registry(config)

    accounts = AccountRepository(db)
    projects = ProjectRepository(db)
    mentions = MentionRepository(db)
    alerts = AlertRepository(db)
    audit = AuditLogRepository(db)
    hub = RoomHub()

    if email_sender is None:
        email_sender = SendGridEmailSender(
            api_key=config.SENDGRID_API_KEY,
            from_address=config.ALERT_FROM_EMAIL,
            from_name=config.ALERT_FROM_NAME,
        )

    alert_engine = AlertEngine(
        alerts=alerts,
        mentions=mentions,
        publisher=hub,
        email_sender=email_sender,
        cooldown_minutes=config.ALERT_COOLDOWN_MINUTES,
        email_enabled=config.ALERT_EMAIL_ENABLED,
        frontend_url=config.FRONTEND_URL,
    )

    health = ConnectorHealthTracker(db)
    quota = QuotaLedger(db)

    orchestrator = IngestionOrchestrator(
        registry=registry,
        projects=projects,
        accounts=accounts,
        mentions=mentions,
        health=health,
        quota=quota,
        audit=audit,
        alert_engine=alert_engine,
        classifier=classifier or LexiconSentimentClassifier(),
        connector_timeout=config.CONNECTOR_TIMEOUT_SECONDS,
    )

    scheduler = IngestionScheduler(
        orchestrator=orchestrator,
        projects=projects,
        interval_seconds=config.SCHEDULER_INTERVAL_SECONDS,
        max_concurrent_passes=config.SCHEDULER_MAX_CONCURRENT_PASSES,
        auto_pause=config.SCHEDULER_AUTO_PAUSE,
    )

    logger.info(f"[Container] Built with connectors: {', '.join(registry.ids())}")

    return Container(
        settings=config,
        db=db,
        accounts=accounts,
        projects=projects,
        mentions=mentions,
        alerts=alerts,
        audit=audit,
        quota=quota,
        health=health,
        metrics=ProjectMetricsService(db),
        registry=registry,
        hub=hub,
        email_sender=email_sender,
        alert_engine=alert_engine,
        orchestrator=orchestrator,
        scheduler=scheduler,
        project_service=ProjectService(projects, accounts, registry.default_sources()),
    )


# ============================================================
# Factory Functions
# ============================================================

@lru_cache()
def get_container() -> Container:
    """싱글톤 컨테이너"""
    return build_container()


def reset_container() -> None:
    """싱글톤 초기화 (테스트용)"""
    get_container.cache_clear()
