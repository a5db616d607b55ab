"""
Account / Project Repository
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select, update

from mentionwatch.core.dates import utcnow
from mentionwatch.data_pipeline.domain.models import Account, Project, ProjectStatus
from mentionwatch.data_pipeline.repositories.database import Database
from mentionwatch.data_pipeline.repositories.models import (
    AccountModel,
    AlertModel,
    AuditLogModel,
    ConnectorHealthModel,
    MentionModel,
    ProjectModel,
)

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "name",
    "keywords",
    "boolean_query",
    "sources",
    "schedule_minutes",
    "geo_focus",
    "status",
)


def account_to_domain(model: AccountModel) -> Account:
    return Account(
        id=model.id,
        email=model.email,
        full_name=model.full_name,
        plan=model.plan,
        email_alerts_enabled=bool(model.email_alerts_enabled),
    )


def project_to_domain(model: ProjectModel) -> Project:
    return Project(
        id=model.id,
        account_id=model.account_id,
        name=model.name,
        keywords=list(model.keywords or []),
        boolean_query=model.boolean_query or "",
        sources=dict(model.sources or {}),
        schedule_minutes=model.schedule_minutes,
        geo_focus=model.geo_focus,
        status=ProjectStatus(model.status),
        last_run_at=model.last_run_at,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


class AccountRepository:
    """계정 조회"""

    def __init__(self, db: Database):
        self.db = db

    def create(
        self,
        email: Optional[str] = None,
        full_name: Optional[str] = None,
        plan: str = "individual",
        email_alerts_enabled: bool = True,
        account_id: Optional[str] = None,
    ) -> Account:
        with self.db.session() as session:
            model = AccountModel(
                email=email,
                full_name=full_name,
                plan=plan,
                email_alerts_enabled=email_alerts_enabled,
            )
            if account_id:
                model.id = account_id
            session.add(model)
            session.flush()
            return account_to_domain(model)

    def get(self, account_id: str) -> Optional[Account]:
        with self.db.session() as session:
            model = session.get(AccountModel, account_id)
            return account_to_domain(model) if model else None


class ProjectRepository:
    """프로젝트 저장소"""

    def __init__(self, db: Database):
        self.db = db

    def create(self, account_id: str, name: str, **fields: Any) -> Project:
        with self.db.session() as session:
            model = ProjectModel(account_id=account_id, name=name)
            for key in UPDATABLE_FIELDS:
                if key in fields and fields[key] is not None:
                    setattr(model, key, _column_value(fields[key]))
            session.add(model)
            session.flush()
            return project_to_domain(model)

    def get(self, project_id: str) -> Optional[Project]:
        with self.db.session() as session:
            model = session.get(ProjectModel, project_id)
            return project_to_domain(model) if model else None

    def list_for_account(self, account_id: str) -> List[Project]:
        with self.db.session() as session:
            rows = session.scalars(
                select(ProjectModel)
                .where(ProjectModel.account_id == account_id)
                .order_by(ProjectModel.created_at.desc())
            ).all()
            return [project_to_domain(row) for row in rows]

    def list_active(self) -> List[Project]:
        with self.db.session() as session:
            rows = session.scalars(
                select(ProjectModel).where(ProjectModel.status == ProjectStatus.ACTIVE.value)
            ).all()
            return [project_to_domain(row) for row in rows]

    def update(self, project_id: str, changes: Dict[str, Any]) -> Optional[Project]:
        with self.db.session() as session:
            model = session.get(ProjectModel, project_id)
            if model is None:
                return None
            for key, value in changes.items():
                if key in UPDATABLE_FIELDS:
                    setattr(model, key, _column_value(value))
            session.flush()
            return project_to_domain(model)

    def delete(self, project_id: str) -> bool:
        """프로젝트와 종속 레코드(멘션, 알림, 헬스, 감사 로그)를 한 트랜잭션에서 삭제"""
        with self.db.session() as session:
            model = session.get(ProjectModel, project_id)
            if model is None:
                return False
            for table in (MentionModel, AlertModel, ConnectorHealthModel, AuditLogModel):
                session.execute(delete(table).where(table.project_id == project_id))
            session.delete(model)

        logger.info(f"[ProjectRepository] Deleted project {project_id} with dependent records")
        return True

    def stamp_run(self, project_id: str, run_at: datetime, pause: bool = False) -> None:
        """마지막 실행 시각 기록 (옵션: 일시정지)"""
        values: Dict[str, Any] = {"last_run_at": run_at, "updated_at": utcnow()}
        if pause:
            values["status"] = ProjectStatus.PAUSED.value
        with self.db.session() as session:
            session.execute(
                update(ProjectModel).where(ProjectModel.id == project_id).values(**values)
            )

    def claim(
        self,
        project_id: str,
        expected_last_run: Optional[datetime],
        claimed_at: datetime,
        require_active: bool = True,
    ) -> bool:
        """
        수집 선점 (compare-and-set)

        last_run_at이 읽은 값 그대로일 때만 claimed_at으로 갱신한다.
        다른 틱이나 수동 실행이 먼저 선점했다면 False.
        require_active=False는 일시정지 프로젝트의 수동 실행용이다.
        """
        condition = (
            ProjectModel.last_run_at.is_(None)
            if expected_last_run is None
            else ProjectModel.last_run_at == expected_last_run
        )
        conditions = [ProjectModel.id == project_id, condition]
        if require_active:
            conditions.append(ProjectModel.status == ProjectStatus.ACTIVE.value)

        with self.db.session() as session:
            result = session.execute(
                update(ProjectModel)
                .where(*conditions)
                .values(last_run_at=claimed_at)
            )
            return result.rowcount == 1


def _column_value(value: Any) -> Any:
    if isinstance(value, ProjectStatus):
        return value.value
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, dict):
        return dict(value)
    return value
