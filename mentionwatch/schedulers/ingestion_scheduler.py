"""
Ingestion Scheduler
주기적으로 활성 프로젝트를 점검해 수집 주기가 된 프로젝트를 실행

- 틱 간격: 기본 60초 (APScheduler AsyncIOScheduler + IntervalTrigger)
- 겹침 방지: coalesce=True, max_instances=1 (밀린 틱은 1회로 합치고 실행 중이면 건너뜀)
- 선점: last_run_at compare-and-set (여러 인스턴스/틱 중복 실행 방지)
- 동시 실행 상한: asyncio.Semaphore
- 회차 실패는 해당 프로젝트에만 격리
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Set

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from mentionwatch.core.blocking import run_blocking
from mentionwatch.core.dates import utcnow
from mentionwatch.data_pipeline.domain.models import Project
from mentionwatch.data_pipeline.pipeline import IngestionOrchestrator, IngestOptions, IngestResult
from mentionwatch.data_pipeline.repositories.project_repo import ProjectRepository

logger = logging.getLogger(__name__)

TICK_JOB_ID = "ingestion_tick"


def is_due(project: Project, now: datetime) -> bool:
    """마지막 실행 후 schedule_minutes가 지났으면 True (미실행 프로젝트는 항상 True)"""
    if project.last_run_at is None:
        return True
    return now - project.last_run_at >= timedelta(minutes=project.schedule_minutes or 0)


@dataclass
class TickReport:
    """틱 1회 결과"""

    checked: int = 0
    due: int = 0
    claimed: int = 0
    results: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    failed: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "checked": self.checked,
            "due": self.due,
            "claimed": self.claimed,
            "results": self.results,
            "failed": self.failed,
        }


class IngestionScheduler:
    """수집 스케줄러"""

    def __init__(
        self,
        orchestrator: IngestionOrchestrator,
        projects: ProjectRepository,
        interval_seconds: float = 60,
        max_concurrent_passes: int = 5,
        auto_pause: bool = True,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.orchestrator = orchestrator
        self.projects = projects
        self.interval_seconds = interval_seconds
        self.max_concurrent_passes = max(1, max_concurrent_passes)
        self.auto_pause = auto_pause
        self.clock = clock
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._in_flight: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    async def tick(self) -> TickReport:
        """
        주기가 된 프로젝트를 선점 후 실행

        선점에 실패한 프로젝트(다른 틱이 먼저 가져감)는 건너뛴다.
        """
        now = self.clock()
        report = TickReport()

        claimed: List[Project] = []
        for project in await run_blocking(self.projects.list_active):
            report.checked += 1
            if not is_due(project, now):
                continue
            report.due += 1
            if await run_blocking(self.projects.claim, project.id, project.last_run_at, now):
                claimed.append(project)
            else:
                logger.debug(f"[Scheduler] Project {project.id} already claimed, skipping")
        report.claimed = len(claimed)

        if not claimed:
            return report

        semaphore = asyncio.Semaphore(self.max_concurrent_passes)

        async def run(project: Project) -> IngestResult:
            async with semaphore:
                # 선점 시 last_run_at이 이미 갱신되었으므로 since는 읽은 시점 값을 사용
                return await self.orchestrator.ingest_project(
                    project, IngestOptions(auto_pause=self.auto_pause)
                )

        outcomes = await asyncio.gather(*(run(p) for p in claimed), return_exceptions=True)
        for project, outcome in zip(claimed, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(
                    f"[Scheduler] Pass failed for project {project.id}: {outcome}",
                    exc_info=outcome,
                )
                report.failed.append(project.id)
            else:
                report.results[project.id] = outcome.to_dict()

        logger.info(
            f"[Scheduler] Tick: checked={report.checked} due={report.due} "
            f"claimed={report.claimed} failed={len(report.failed)}"
        )
        return report

    async def _run_tick(self) -> None:
        try:
            await self.tick()
        except Exception as e:
            logger.error(f"[Scheduler] Tick failed: {e}", exc_info=True)

    async def _tick_job(self) -> None:
        """APScheduler 작업. 틱은 별도 태스크로 실행하고 완료까지 기다린다."""
        task = asyncio.ensure_future(self._run_tick())
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            # shutdown은 작업 래퍼만 취소한다. 틱은 stop()이 기다린다.
            logger.debug("[Scheduler] Tick job detached on shutdown")

    def start(self) -> None:
        """틱 작업 등록 후 스케줄러 시작 (실행 중이면 무시). 첫 틱은 즉시 실행된다."""
        if self.running:
            return

        scheduler = AsyncIOScheduler(timezone="UTC", event_loop=asyncio.get_running_loop())
        scheduler.add_job(
            self._tick_job,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=TICK_JOB_ID,
            name="Mention ingestion tick",
            coalesce=True,
            max_instances=1,
            next_run_time=datetime.now(timezone.utc),
            replace_existing=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(f"[Scheduler] Started (interval={self.interval_seconds}s)")

    async def stop(self) -> None:
        """스케줄러 종료 후 진행 중 틱 완료 대기"""
        if self._scheduler is None:
            return
        if self._scheduler.running:
            # AsyncIOScheduler.shutdown은 이벤트 루프 콜백으로 실행된다
            self._scheduler.shutdown(wait=False)
            await asyncio.sleep(0)
        self._scheduler = None
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)
        logger.info("[Scheduler] Stopped")
