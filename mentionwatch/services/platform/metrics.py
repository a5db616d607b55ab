"""
Project Metrics
리포트/대시보드용 멘션 집계 읽기 모델

집계 기준 시각은 published_at, 없으면 ingested_at, 그것도 없으면 created_at.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select

from mentionwatch.data_pipeline.repositories.database import Database
from mentionwatch.data_pipeline.repositories.models import MentionModel

logger = logging.getLogger(__name__)

TOP_LIMIT = 5


class ProjectMetricsService:
    """프로젝트 멘션 집계"""

    def __init__(self, db: Database):
        self.db = db

    def get_project_metrics(
        self,
        project_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        metric_date = func.coalesce(
            MentionModel.published_at,
            MentionModel.ingested_at,
            MentionModel.created_at,
        )

        conditions = [MentionModel.project_id == project_id]
        if start is not None:
            conditions.append(metric_date >= start)
        if end is not None:
            conditions.append(metric_date <= end)

        day = func.date(metric_date)
        count = func.count(MentionModel.id)

        with self.db.session() as session:
            volume_rows = session.execute(
                select(day.label("day"), count.label("count"))
                .where(*conditions)
                .group_by(day)
                .order_by(day)
            ).all()
            sentiment_rows = session.execute(
                select(MentionModel.sentiment_label, count)
                .where(*conditions)
                .group_by(MentionModel.sentiment_label)
            ).all()
            source_rows = session.execute(
                select(MentionModel.source, count.label("count"))
                .where(*conditions)
                .group_by(MentionModel.source)
                .order_by(count.desc(), MentionModel.source)
                .limit(TOP_LIMIT)
            ).all()
            author_rows = session.execute(
                select(MentionModel.author, count.label("count"))
                .where(*conditions)
                .group_by(MentionModel.author)
                .order_by(count.desc(), MentionModel.author)
                .limit(TOP_LIMIT)
            ).all()

        volume: List[Dict[str, Any]] = [
            {"date": str(row_day), "count": int(row_count)} for row_day, row_count in volume_rows
        ]

        return {
            "total_mentions": sum(item["count"] for item in volume),
            "volume": volume,
            "sentiment_share": [
                {"label": label, "count": int(n)} for label, n in sentiment_rows
            ],
            "top_sources": [{"source": source, "count": int(n)} for source, n in source_rows],
            "top_authors": [{"author": author, "count": int(n)} for author, n in author_rows],
        }
