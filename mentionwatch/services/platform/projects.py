"""
Project Service
프로젝트 생성/수정/삭제 입력 검증 (요금제 한도 적용)
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy.exc import IntegrityError

from mentionwatch.core.exceptions import (
    AccountNotFoundError,
    ProjectNotFoundError,
    ProjectValidationError,
)
from mentionwatch.data_pipeline.domain.models import Account, Project, ProjectStatus
from mentionwatch.data_pipeline.repositories.project_repo import AccountRepository, ProjectRepository
from mentionwatch.filters.boolean_query import sanitize
from mentionwatch.services.platform.quota import PlanLimits, get_plan_limits

logger = logging.getLogger(__name__)

DUPLICATE_NAME_MESSAGE = "A project with this name already exists"

MIN_SCHEDULE_MINUTES = 5
MAX_SCHEDULE_MINUTES = 60
DEFAULT_GEO_FOCUS = "Nepal"


def normalize_keywords(keywords: Optional[Iterable[str]]) -> List[str]:
    """공백 제거, 빈 값 제외, 대소문자 무시 중복 제거 (처음 표기 유지)"""
    result: List[str] = []
    seen = set()
    for keyword in keywords or []:
        word = (keyword or "").strip()
        if not word or word.lower() in seen:
            continue
        seen.add(word.lower())
        result.append(word)
    return result


def resolve_schedule(requested: Any, plan: PlanLimits) -> int:
    """요금제 최소 주기 이상, [5, 60] 범위로 보정"""
    try:
        minutes = int(requested) if requested else plan.min_interval_minutes
    except (TypeError, ValueError):
        minutes = plan.min_interval_minutes
    minutes = max(minutes, plan.min_interval_minutes)
    return min(max(minutes, MIN_SCHEDULE_MINUTES), MAX_SCHEDULE_MINUTES)


class ProjectService:
    """프로젝트 관리"""

    def __init__(
        self,
        projects: ProjectRepository,
        accounts: AccountRepository,
        default_sources: Mapping[str, bool],
    ):
        self.projects = projects
        self.accounts = accounts
        self.default_sources = dict(default_sources)

    def _account(self, account_id: str) -> Account:
        account = self.accounts.get(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    def _keywords(self, keywords: Optional[Iterable[str]], account: Account, plan: PlanLimits) -> List[str]:
        keyword_list = normalize_keywords(keywords)
        if len(keyword_list) > plan.keyword_limit:
            raise ProjectValidationError(f"Keyword limit exceeded for {account.plan} plan")
        return keyword_list

    def _sources(self, sources: Optional[Mapping[str, Any]]) -> Dict[str, bool]:
        merged = dict(self.default_sources)
        merged.update({key: bool(value) for key, value in (sources or {}).items()})
        return merged

    def get(self, project_id: str) -> Project:
        project = self.projects.get(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    def create(
        self,
        account_id: str,
        name: Optional[str],
        keywords: Optional[Iterable[str]] = None,
        boolean_query: str = "",
        sources: Optional[Mapping[str, Any]] = None,
        schedule_minutes: Optional[int] = None,
        geo_focus: Optional[str] = None,
    ) -> Project:
        account = self._account(account_id)
        plan = get_plan_limits(account.plan)

        if not name or not name.strip():
            raise ProjectValidationError("Project name is required")

        try:
            project = self.projects.create(
                account_id=account.id,
                name=name.strip(),
                keywords=self._keywords(keywords, account, plan),
                boolean_query=sanitize(boolean_query or ""),
                sources=self._sources(sources),
                schedule_minutes=resolve_schedule(schedule_minutes, plan),
                geo_focus=geo_focus or DEFAULT_GEO_FOCUS,
                status=ProjectStatus.ACTIVE,
            )
        except IntegrityError:
            raise ProjectValidationError(DUPLICATE_NAME_MESSAGE)
        logger.info(f"[ProjectService] Created project {project.id} ({project.name})")
        return project

    def update(self, project_id: str, changes: Mapping[str, Any]) -> Project:
        project = self.get(project_id)
        account = self._account(project.account_id)
        plan = get_plan_limits(account.plan)

        updates: Dict[str, Any] = {}
        if changes.get("name"):
            updates["name"] = str(changes["name"]).strip()
        if changes.get("keywords") is not None:
            updates["keywords"] = self._keywords(changes["keywords"], account, plan)
        if changes.get("boolean_query") is not None:
            updates["boolean_query"] = sanitize(changes["boolean_query"])
        if changes.get("sources") is not None:
            updates["sources"] = self._sources(changes["sources"])
        if changes.get("schedule_minutes"):
            updates["schedule_minutes"] = resolve_schedule(changes["schedule_minutes"], plan)
        if changes.get("geo_focus"):
            updates["geo_focus"] = changes["geo_focus"]
        if changes.get("status"):
            try:
                updates["status"] = ProjectStatus(str(changes["status"]))
            except ValueError:
                raise ProjectValidationError(f"Invalid status: {changes['status']}")

        try:
            return self.projects.update(project_id, updates)
        except IntegrityError:
            raise ProjectValidationError(DUPLICATE_NAME_MESSAGE)

    def delete(self, project_id: str) -> None:
        if not self.projects.delete(project_id):
            raise ProjectNotFoundError(project_id)
