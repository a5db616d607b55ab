"""
Mention Ingestion Orchestrator

프로젝트 1건의 수집 회차를 실행한다.

Pass Stages:
    1. Gate - 상태(active/force) 및 월별 쿼터 확인
    2. Fetch - 활성 커넥터를 순차 호출 (호출당 타임아웃, 재시도 없음)
    3. Filter - 키워드 / 불리언 검색식 관련성 판정
    4. Enrich - 언어, 감성, 도달 범위, 콘텐츠 지문
    5. Save - 부분 실패 허용 저장 + 커넥터 헬스 갱신
    6. Alert - new_mentions 알림, 임계값 검사 (사용량은 커넥터 배치 저장 직후 증가)
    7. Stamp - last_run_at 기록 (오류가 나도 시도)

커넥터 실패는 해당 커넥터에 격리되어 degraded 헬스와 감사 로그로만 남는다.
블로킹 DB 호출은 run_blocking으로 스레드 풀에서 실행한다.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from mentionwatch.core.blocking import run_blocking
from mentionwatch.core.dates import month_key, utcnow
from mentionwatch.data_pipeline.adapters.base import (
    DEFAULT_CONNECTOR_TIMEOUT,
    ConnectorOutcome,
    MentionConnector,
    fetch_with_timeout,
)
from mentionwatch.data_pipeline.adapters.registry import ConnectorRegistry
from mentionwatch.data_pipeline.domain.models import (
    Account,
    AlertType,
    HealthState,
    Project,
    ProjectStatus,
    RawMention,
    SentimentResult,
    StoredMention,
)
from mentionwatch.data_pipeline.processors.fingerprint import fingerprint_mention
from mentionwatch.data_pipeline.processors.reach import ReachEstimator
from mentionwatch.data_pipeline.repositories.alert_repo import AuditLogRepository
from mentionwatch.data_pipeline.repositories.mention_repo import MentionRepository
from mentionwatch.data_pipeline.repositories.project_repo import AccountRepository, ProjectRepository
from mentionwatch.filters.relevance import MentionRelevanceFilter, build_match_text
from mentionwatch.services.alerts.engine import AlertEngine
from mentionwatch.services.analysis.sentiment import TextClassifier
from mentionwatch.services.platform.connector_health import ConnectorHealthTracker
from mentionwatch.services.platform.quota import QuotaLedger

logger = logging.getLogger(__name__)

REASON_LIMIT = "limit"


# ============================================================================
# DATA CLASSES
# ============================================================================

@dataclass
class IngestOptions:
    """수집 실행 옵션"""

    force: bool = False
    auto_pause: bool = False


@dataclass
class ConnectorRunSummary:
    """커넥터별 실행 요약"""

    connector_id: str
    state: HealthState
    fetched: int = 0
    kept: int = 0
    inserted: int = 0
    error: Optional[str] = None
    duration_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "connector_id": self.connector_id,
            "state": self.state.value,
            "fetched": self.fetched,
            "kept": self.kept,
            "inserted": self.inserted,
            "error": self.error,
            "duration_seconds": round(self.duration_seconds, 3),
        }


@dataclass
class IngestResult:
    """수집 회차 결과: {inserted, status} 또는 {inserted: 0, reason}"""

    inserted: int = 0
    status: Optional[str] = None
    reason: Optional[str] = None
    connectors: List[ConnectorRunSummary] = field(default_factory=list)
    alerts: Dict[str, bool] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        if self.reason:
            return {"inserted": self.inserted, "reason": self.reason}
        return {"inserted": self.inserted, "status": self.status}


@dataclass
class PassContext:
    """수집 회차 컨텍스트"""

    project: Project
    account: Account
    run_at: datetime
    month: str
    options: IngestOptions
    new_mentions: List[StoredMention] = field(default_factory=list)
    summaries: List[ConnectorRunSummary] = field(default_factory=list)
    started: float = field(default_factory=time.monotonic)

    @property
    def inserted(self) -> int:
        return len(self.new_mentions)


# ============================================================================
# ORCHESTRATOR
# ============================================================================

class IngestionOrchestrator:
    """
    프로젝트 수집 오케스트레이터

    회차 간 공유하는 메모리 상태는 없다. 모든 조정은 영속 레코드로 한다.
    """

    def __init__(
        self,
        registry: ConnectorRegistry,
        projects: ProjectRepository,
        accounts: AccountRepository,
        mentions: MentionRepository,
        health: ConnectorHealthTracker,
        quota: QuotaLedger,
        audit: AuditLogRepository,
        alert_engine: AlertEngine,
        classifier: TextClassifier,
        reach_estimator: Optional[ReachEstimator] = None,
        relevance_filter: Optional[MentionRelevanceFilter] = None,
        connector_timeout: float = DEFAULT_CONNECTOR_TIMEOUT,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.registry = registry
        self.projects = projects
        self.accounts = accounts
        self.mentions = mentions
        self.health = health
        self.quota = quota
        self.audit = audit
        self.alert_engine = alert_engine
        self.classifier = classifier
        self.reach_estimator = reach_estimator or ReachEstimator()
        self.relevance_filter = relevance_filter or MentionRelevanceFilter()
        self.connector_timeout = connector_timeout
        self.clock = clock

    async def ingest_project(
        self,
        project: Project,
        options: Optional[IngestOptions] = None,
    ) -> IngestResult:
        """
        프로젝트 1회 수집

        Args:
            project: 수집 대상 프로젝트
            options: force (일시정지 프로젝트도 실행), auto_pause (실행 후 일시정지)

        Returns:
            IngestResult
        """
        options = options or IngestOptions()

        if not project.is_active and not options.force:
            logger.info(f"[Ingestion] Project {project.id} is {project.status.value}, skipping")
            return IngestResult(inserted=0, status=project.status.value)

        run_at = self.clock()
        month = month_key(run_at)
        account = await run_blocking(self.accounts.get, project.account_id)
        if account is None:
            logger.warning(f"[Ingestion] Account {project.account_id} not found for project {project.id}")
            return IngestResult(inserted=0, reason=REASON_LIMIT)

        usage = await run_blocking(self.quota.ensure, account.id, month)
        if self.quota.is_over_limit(account, usage):
            logger.info(
                f"[Ingestion] Account {account.id} over monthly quota "
                f"({usage.mentions_count}), skipping project {project.id}"
            )
            return IngestResult(inserted=0, reason=REASON_LIMIT)

        ctx = PassContext(project=project, account=account, run_at=run_at, month=month, options=options)
        alert_results: Dict[str, bool] = {}
        status = project.status

        try:
            for connector in self.registry.enabled_for(project):
                await self._run_connector(ctx, connector)

            if ctx.inserted > 0:
                await self.alert_engine.create_alert(
                    account,
                    project,
                    AlertType.NEW_MENTIONS.value,
                    f"{ctx.inserted} new mentions for {project.name}.",
                    payload={"count": ctx.inserted},
                    trigger_mentions=ctx.new_mentions,
                )
                alert_results = await self.alert_engine.run_all_checks(
                    project, account, ctx.new_mentions
                )
        except Exception:
            logger.error(f"[Ingestion] Pass aborted for project {project.id}", exc_info=True)
            raise
        finally:
            status = await self._stamp(project, run_at, options.auto_pause)

        self._log_summary(ctx)
        return IngestResult(
            inserted=ctx.inserted,
            status=status.value,
            connectors=ctx.summaries,
            alerts=alert_results,
        )

    # ============================================================
    # Connector stage
    # ============================================================

    async def _run_connector(self, ctx: PassContext, connector: MentionConnector) -> None:
        outcome = await fetch_with_timeout(
            connector, ctx.project, ctx.project.last_run_at, timeout=self.connector_timeout
        )

        if not outcome.ok:
            await self._record_failure(ctx, outcome)
            return

        documents = []
        for raw in outcome.mentions:
            document = self._prepare(ctx, raw)
            if document is not None:
                documents.append(document)

        result = await run_blocking(self.mentions.insert_many, documents)
        ctx.new_mentions.extend(result.inserted)
        if result.count > 0:
            # 이후 커넥터나 알림 단계가 실패해도 저장된 만큼은 사용량에 반영
            await run_blocking(self.quota.increment, ctx.account.id, ctx.month, result.count)

        state = HealthState.OK if result.count > 0 else HealthState.NO_DATA
        await run_blocking(self.health.record, ctx.project.id, connector.id, state, checked_at=ctx.run_at)
        ctx.summaries.append(
            ConnectorRunSummary(
                connector_id=connector.id,
                state=state,
                fetched=len(outcome.mentions),
                kept=len(documents),
                inserted=result.count,
                duration_seconds=outcome.duration_seconds,
            )
        )

    async def _record_failure(self, ctx: PassContext, outcome: ConnectorOutcome) -> None:
        logger.warning(
            f"[Ingestion] Connector {outcome.connector_id} failed for project "
            f"{ctx.project.id}: {outcome.error}"
        )
        await run_blocking(
            self.health.record,
            ctx.project.id,
            outcome.connector_id,
            HealthState.DEGRADED,
            error=outcome.error,
            checked_at=ctx.run_at,
        )
        await run_blocking(
            self.audit.log,
            level="error",
            message=outcome.error or "",
            account_id=ctx.account.id,
            project_id=ctx.project.id,
            connector_id=outcome.connector_id,
        )
        ctx.summaries.append(
            ConnectorRunSummary(
                connector_id=outcome.connector_id,
                state=HealthState.DEGRADED,
                error=outcome.error,
                duration_seconds=outcome.duration_seconds,
            )
        )

    # ============================================================
    # Filter / Enrich
    # ============================================================

    def _prepare(self, ctx: PassContext, raw: RawMention) -> Optional[Dict[str, Any]]:
        """관련성 판정 후 저장용 문서 생성, 제외되면 None"""
        project = ctx.project
        text = build_match_text(raw.title, raw.text)
        decision = self.relevance_filter.check(text, project.keywords, project.boolean_query)
        if not decision.keep:
            return None

        sentiment = self._classify(text)
        return {
            "project_id": project.id,
            "source": raw.source,
            "keyword_matched": decision.keyword_matched,
            "title": raw.title or "",
            "text": raw.text or "",
            "author": raw.author or "",
            "url": raw.url or None,
            "published_at": raw.published_at,
            "likes": raw.engagement.likes,
            "comments": raw.engagement.comments,
            "shares": raw.engagement.shares,
            "follower_count": raw.follower_count,
            "reach_estimate": self.reach_estimator.estimate(raw),
            "lang": self.classifier.detect_language(text),
            "geo": project.geo_focus or "",
            "sentiment_label": sentiment.label,
            "sentiment_confidence": sentiment.confidence,
            "similarity_hash": fingerprint_mention(raw.title, raw.text),
            "ingested_at": ctx.run_at,
            "created_at": ctx.run_at,
        }

    def _classify(self, text: str) -> SentimentResult:
        try:
            return self.classifier.classify(text)
        except Exception as e:
            logger.warning(f"[Ingestion] Sentiment classifier failed, using neutral: {e}")
            return SentimentResult(label="neutral", confidence=0.0)

    # ============================================================
    # Stamp / Summary
    # ============================================================

    async def _stamp(self, project: Project, run_at: datetime, auto_pause: bool):
        """last_run_at 기록, 필요 시 일시정지. 기록 실패는 로그만 남긴다."""
        try:
            await run_blocking(self.projects.stamp_run, project.id, run_at, pause=auto_pause)
        except Exception:
            logger.error(f"[Ingestion] Failed to stamp last run for {project.id}", exc_info=True)
            return project.status

        project.last_run_at = run_at
        if auto_pause:
            project.status = ProjectStatus.PAUSED
        return project.status

    def _log_summary(self, ctx: PassContext) -> None:
        duration = time.monotonic() - ctx.started
        outcomes = ", ".join(
            f"{s.connector_id}={s.state.value}({s.inserted})" for s in ctx.summaries
        ) or "no connectors"
        logger.info(
            f"[Ingestion] Project {ctx.project.id}: inserted={ctx.inserted} "
            f"[{outcomes}] in {duration:.2f}s"
        )
