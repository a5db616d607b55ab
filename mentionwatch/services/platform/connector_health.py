"""
Connector Health Tracker

(프로젝트, 커넥터) 당 헬스 레코드 1개를 매 실행마다 덮어쓴다.
이력은 남기지 않으며 최근 1회 시도 결과만 반영한다.

- ok: 1건 이상 저장
- no_data: 저장 0건
- degraded: 수집 실패 (에러 메시지 기록)
- down: 외부 신호 전용 (오케스트레이터는 기록하지 않음)
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select

from mentionwatch.core.dates import utcnow
from mentionwatch.data_pipeline.domain.models import ConnectorHealthRecord, HealthState
from mentionwatch.data_pipeline.repositories.database import Database
from mentionwatch.data_pipeline.repositories.models import ConnectorHealthModel

logger = logging.getLogger(__name__)


def _to_record(model: ConnectorHealthModel) -> ConnectorHealthRecord:
    return ConnectorHealthRecord(
        project_id=model.project_id,
        connector_id=model.connector_id,
        status=HealthState(model.status),
        last_error=model.last_error or None,
        last_checked_at=model.last_checked_at,
    )


class ConnectorHealthTracker:
    """커넥터 헬스 상태 기록"""

    def __init__(self, db: Database):
        self.db = db

    def record(
        self,
        project_id: str,
        connector_id: str,
        state: HealthState,
        error: Optional[str] = None,
        checked_at: Optional[datetime] = None,
    ) -> ConnectorHealthRecord:
        checked_at = checked_at or utcnow()

        with self.db.session() as session:
            model = session.scalars(
                select(ConnectorHealthModel).where(
                    ConnectorHealthModel.project_id == project_id,
                    ConnectorHealthModel.connector_id == connector_id,
                )
            ).first()
            if model is None:
                model = ConnectorHealthModel(project_id=project_id, connector_id=connector_id)
                session.add(model)

            model.status = HealthState(state).value
            model.last_error = error or ""
            model.last_checked_at = checked_at
            session.flush()
            record = _to_record(model)

        if record.status in (HealthState.DEGRADED, HealthState.DOWN):
            logger.warning(
                f"[ConnectorHealth] {project_id}/{connector_id} -> {record.status.value}: {error}"
            )
        return record

    def get(self, project_id: str, connector_id: str) -> Optional[ConnectorHealthRecord]:
        with self.db.session() as session:
            model = session.scalars(
                select(ConnectorHealthModel).where(
                    ConnectorHealthModel.project_id == project_id,
                    ConnectorHealthModel.connector_id == connector_id,
                )
            ).first()
            return _to_record(model) if model else None

    def list_for_project(self, project_id: str) -> List[ConnectorHealthRecord]:
        with self.db.session() as session:
            rows = session.scalars(
                select(ConnectorHealthModel)
                .where(ConnectorHealthModel.project_id == project_id)
                .order_by(ConnectorHealthModel.connector_id)
            ).all()
            return [_to_record(row) for row in rows]
