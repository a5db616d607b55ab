"""
Mention Repository
멘션 저장 및 알림 엔진용 시계열 조회
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from mentionwatch.data_pipeline.domain.models import Engagement, SentimentResult, StoredMention
from mentionwatch.data_pipeline.repositories.database import Database
from mentionwatch.data_pipeline.repositories.models import MentionModel

logger = logging.getLogger(__name__)

# 중복 제거용 유니크 제약 (이름은 PostgreSQL, 컬럼 목록은 SQLite 메시지 기준)
DEDUP_CONSTRAINTS = ("uq_mention_project_source_url", "uq_mention_project_hash")
DEDUP_COLUMN_SETS = (
    "mentions.project_id, mentions.source, mentions.url",
    "mentions.project_id, mentions.similarity_hash",
)


def is_duplicate_violation(error: IntegrityError) -> bool:
    """중복 제거 제약 위반이면 True. NOT NULL, FK 위반은 False."""
    diag = getattr(error.orig, "diag", None)
    constraint = getattr(diag, "constraint_name", None)
    if constraint:
        return constraint in DEDUP_CONSTRAINTS
    message = str(error.orig)
    return any(marker in message for marker in DEDUP_CONSTRAINTS + DEDUP_COLUMN_SETS)


@dataclass
class InsertResult:
    """부분 실패 허용 삽입 결과"""
    inserted: List[StoredMention] = field(default_factory=list)
    duplicates: int = 0

    @property
    def count(self) -> int:
        return len(self.inserted)


def mention_to_domain(model: MentionModel) -> StoredMention:
    return StoredMention(
        id=model.id,
        project_id=model.project_id,
        source=model.source,
        keyword_matched=model.keyword_matched or "",
        title=model.title or "",
        text=model.text or "",
        author=model.author or "",
        url=model.url,
        published_at=model.published_at,
        engagement=Engagement(
            likes=model.likes or 0,
            comments=model.comments or 0,
            shares=model.shares or 0,
        ),
        follower_count=model.follower_count or 0,
        reach_estimate=model.reach_estimate or 0,
        lang=model.lang,
        geo=model.geo,
        sentiment=SentimentResult(
            label=model.sentiment_label,
            confidence=model.sentiment_confidence or 0.0,
        ),
        similarity_hash=model.similarity_hash,
        ingested_at=model.ingested_at,
        created_at=model.created_at,
    )


class MentionRepository:
    """멘션 저장소"""

    def __init__(self, db: Database):
        self.db = db

    def insert_many(self, documents: List[Dict[str, Any]]) -> InsertResult:
        """
        부분 실패 허용 일괄 삽입

        문서마다 별도 트랜잭션으로 저장하여 중복 키 위반이
        나머지 문서의 저장을 막지 않게 한다. 중복 제약 이외의 무결성 위반
        (NOT NULL, FK)과 그 밖의 DB 오류는 전파된다.
        """
        result = InsertResult()

        for document in documents:
            with self.db.serialized():
                session = self.db.SessionLocal()
                try:
                    model = MentionModel(**document)
                    session.add(model)
                    session.commit()
                    result.inserted.append(mention_to_domain(model))
                except IntegrityError as e:
                    session.rollback()
                    if not is_duplicate_violation(e):
                        raise
                    result.duplicates += 1
                    logger.debug(
                        f"[MentionRepository] Duplicate mention skipped: "
                        f"{document.get('source')} {document.get('url')}"
                    )
                except Exception:
                    session.rollback()
                    raise
                finally:
                    session.close()

        return result

    def count_created_between(
        self,
        project_id: str,
        start: datetime,
        end: Optional[datetime] = None,
    ) -> int:
        with self.db.session() as session:
            query = select(func.count(MentionModel.id)).where(
                MentionModel.project_id == project_id,
                MentionModel.created_at >= start,
            )
            if end is not None:
                query = query.where(MentionModel.created_at < end)
            return int(session.scalar(query) or 0)

    def list_created_between(
        self,
        project_id: str,
        start: datetime,
        end: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[StoredMention]:
        """생성 시각 기준 최신순 목록"""
        with self.db.session() as session:
            query = select(MentionModel).where(
                MentionModel.project_id == project_id,
                MentionModel.created_at >= start,
            )
            if end is not None:
                query = query.where(MentionModel.created_at < end)
            query = query.order_by(MentionModel.created_at.desc())
            if limit:
                query = query.limit(limit)
            return [mention_to_domain(row) for row in session.scalars(query).all()]

    def sum_reach_between(
        self,
        project_id: str,
        start: datetime,
        end: Optional[datetime] = None,
    ) -> int:
        with self.db.session() as session:
            query = select(func.coalesce(func.sum(MentionModel.reach_estimate), 0)).where(
                MentionModel.project_id == project_id,
                MentionModel.created_at >= start,
            )
            if end is not None:
                query = query.where(MentionModel.created_at < end)
            return int(session.scalar(query) or 0)

    def count_for_project(self, project_id: str) -> int:
        with self.db.session() as session:
            return int(
                session.scalar(
                    select(func.count(MentionModel.id)).where(MentionModel.project_id == project_id)
                )
                or 0
            )

    def list_for_project(self, project_id: str, limit: int = 50) -> List[StoredMention]:
        with self.db.session() as session:
            rows = session.scalars(
                select(MentionModel)
                .where(MentionModel.project_id == project_id)
                .order_by(MentionModel.created_at.desc())
                .limit(limit)
            ).all()
            return [mention_to_domain(row) for row in rows]
