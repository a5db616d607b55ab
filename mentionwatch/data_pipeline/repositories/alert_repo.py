"""
Alert / Audit Log Repository
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select

from mentionwatch.data_pipeline.domain.models import AlertRecord
from mentionwatch.data_pipeline.repositories.database import Database
from mentionwatch.data_pipeline.repositories.models import AlertModel, AuditLogModel

logger = logging.getLogger(__name__)


def alert_to_domain(model: AlertModel) -> AlertRecord:
    return AlertRecord(
        id=model.id,
        account_id=model.account_id,
        project_id=model.project_id,
        type=model.type,
        message=model.message,
        payload=dict(model.payload or {}),
        created_at=model.created_at,
        read_at=model.read_at,
    )


class AlertRepository:
    """알림 저장소"""

    def __init__(self, db: Database):
        self.db = db

    def find_recent(
        self,
        account_id: str,
        project_id: str,
        alert_type: str,
        since: datetime,
    ) -> Optional[AlertRecord]:
        """쿨다운 판정용: since 이후 생성된 같은 타입의 알림"""
        with self.db.session() as session:
            model = session.scalars(
                select(AlertModel)
                .where(
                    AlertModel.account_id == account_id,
                    AlertModel.project_id == project_id,
                    AlertModel.type == alert_type,
                    AlertModel.created_at >= since,
                )
                .order_by(AlertModel.created_at.desc())
                .limit(1)
            ).first()
            return alert_to_domain(model) if model else None

    def create(
        self,
        account_id: str,
        project_id: str,
        alert_type: str,
        message: str,
        payload: Optional[Dict[str, Any]] = None,
        created_at: Optional[datetime] = None,
    ) -> AlertRecord:
        with self.db.session() as session:
            model = AlertModel(
                account_id=account_id,
                project_id=project_id,
                type=alert_type,
                message=message,
                payload=payload or {},
            )
            if created_at is not None:
                model.created_at = created_at
            session.add(model)
            session.flush()
            return alert_to_domain(model)

    def get(self, alert_id: str) -> Optional[AlertRecord]:
        with self.db.session() as session:
            model = session.get(AlertModel, alert_id)
            return alert_to_domain(model) if model else None

    def list_for_account(
        self,
        account_id: str,
        project_id: Optional[str] = None,
        unread_only: bool = False,
        limit: int = 50,
    ) -> List[AlertRecord]:
        with self.db.session() as session:
            query = select(AlertModel).where(AlertModel.account_id == account_id)
            if project_id:
                query = query.where(AlertModel.project_id == project_id)
            if unread_only:
                query = query.where(AlertModel.read_at.is_(None))
            query = query.order_by(AlertModel.created_at.desc()).limit(limit)
            return [alert_to_domain(row) for row in session.scalars(query).all()]

    def count(self, project_id: str, alert_type: Optional[str] = None) -> int:
        with self.db.session() as session:
            query = select(func.count(AlertModel.id)).where(AlertModel.project_id == project_id)
            if alert_type:
                query = query.where(AlertModel.type == alert_type)
            return int(session.scalar(query) or 0)

    def mark_read(self, alert_id: str, read_at: datetime) -> Optional[AlertRecord]:
        with self.db.session() as session:
            model = session.get(AlertModel, alert_id)
            if model is None:
                return None
            if model.read_at is None:
                model.read_at = read_at
            session.flush()
            return alert_to_domain(model)

    def stats(self, account_id: str, now: datetime) -> Dict[str, Any]:
        """오늘(24시간) / 이번 주(7일) / 미확인 / 타입별(7일) 집계"""
        day_ago = now - timedelta(days=1)
        week_ago = now - timedelta(days=7)

        with self.db.session() as session:
            base = select(func.count(AlertModel.id)).where(AlertModel.account_id == account_id)
            today = session.scalar(base.where(AlertModel.created_at >= day_ago))
            this_week = session.scalar(base.where(AlertModel.created_at >= week_ago))
            unread = session.scalar(base.where(AlertModel.read_at.is_(None)))
            by_type = session.execute(
                select(AlertModel.type, func.count(AlertModel.id))
                .where(AlertModel.account_id == account_id, AlertModel.created_at >= week_ago)
                .group_by(AlertModel.type)
            ).all()

        return {
            "today": int(today or 0),
            "this_week": int(this_week or 0),
            "unread": int(unread or 0),
            "by_type": {alert_type: int(count) for alert_type, count in by_type},
        }


class AuditLogRepository:
    """감사 로그 저장소"""

    def __init__(self, db: Database):
        self.db = db

    def log(
        self,
        level: str,
        message: str,
        account_id: Optional[str] = None,
        project_id: Optional[str] = None,
        connector_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        with self.db.session() as session:
            session.add(
                AuditLogModel(
                    account_id=account_id,
                    project_id=project_id,
                    connector_id=connector_id,
                    level=level,
                    message=message,
                    metadata_=metadata or {},
                )
            )

    def list_for_project(self, project_id: str, limit: int = 50) -> List[Dict[str, Any]]:
        with self.db.session() as session:
            rows = session.scalars(
                select(AuditLogModel)
                .where(AuditLogModel.project_id == project_id)
                .order_by(AuditLogModel.created_at.desc(), AuditLogModel.id.desc())
                .limit(limit)
            ).all()
            return [
                {
                    "id": row.id,
                    "account_id": row.account_id,
                    "project_id": row.project_id,
                    "connector_id": row.connector_id,
                    "level": row.level,
                    "message": row.message,
                    "metadata": row.metadata_ or {},
                    "created_at": row.created_at.isoformat() if row.created_at else None,
                }
                for row in rows
            ]
