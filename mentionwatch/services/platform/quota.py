"""
Quota Ledger
요금제 기반 월별 멘션 수집량 관리

- 계정 x 월(YYYY-MM, UTC) 당 사용량 레코드 1개
- 한 계정의 모든 프로젝트가 같은 월 사용량을 공유
- 사용량은 원자적 덧셈으로만 증가 (감소 없음)
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from mentionwatch.core.dates import month_key
from mentionwatch.data_pipeline.domain.models import Account, UsageRecord
from mentionwatch.data_pipeline.repositories.database import Database
from mentionwatch.data_pipeline.repositories.models import UsageModel

logger = logging.getLogger(__name__)


# ============================================================
# Plans
# ============================================================

@dataclass(frozen=True)
class PlanLimits:
    """요금제 한도"""
    keyword_limit: int
    mentions_per_month: int
    min_interval_minutes: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "keyword_limit": self.keyword_limit,
            "mentions_per_month": self.mentions_per_month,
            "min_interval_minutes": self.min_interval_minutes,
        }


DEFAULT_PLAN = "individual"

PLAN_LIMITS: Dict[str, PlanLimits] = {
    "individual": PlanLimits(keyword_limit=3, mentions_per_month=3000, min_interval_minutes=30),
    "team": PlanLimits(keyword_limit=7, mentions_per_month=20000, min_interval_minutes=10),
    "pro": PlanLimits(keyword_limit=15, mentions_per_month=100000, min_interval_minutes=5),
}


def get_plan_limits(plan_name: Optional[str]) -> PlanLimits:
    """알 수 없는 요금제는 가장 제한적인 기본 요금제로 처리"""
    return PLAN_LIMITS.get(plan_name or "", PLAN_LIMITS[DEFAULT_PLAN])


# ============================================================
# Ledger
# ============================================================

def _to_record(model: UsageModel) -> UsageRecord:
    return UsageRecord(
        account_id=model.account_id,
        month=model.month,
        mentions_count=model.mentions_count or 0,
    )


class QuotaLedger:
    """월별 사용량 원장"""

    def __init__(self, db: Database):
        self.db = db

    def get(self, account_id: str, month: Optional[str] = None) -> Optional[UsageRecord]:
        month = month or month_key()
        with self.db.session() as session:
            model = session.scalars(
                select(UsageModel).where(
                    UsageModel.account_id == account_id,
                    UsageModel.month == month,
                )
            ).first()
            return _to_record(model) if model else None

    def ensure(self, account_id: str, month: Optional[str] = None) -> UsageRecord:
        """
        해당 월 레코드가 없으면 0으로 생성 (멱등)

        동시에 처음 생성하려는 쪽은 유니크 제약 위반 후 기존 레코드를 읽는다.
        """
        month = month or month_key()
        existing = self.get(account_id, month)
        if existing is not None:
            return existing

        try:
            with self.db.session() as session:
                model = UsageModel(account_id=account_id, month=month, mentions_count=0)
                session.add(model)
                session.flush()
                return _to_record(model)
        except IntegrityError:
            logger.debug(f"[QuotaLedger] Concurrent usage insert for {account_id}/{month}")
            return self.get(account_id, month)

    def increment(self, account_id: str, month: Optional[str], amount: int) -> UsageRecord:
        """원자적 덧셈 (UPDATE ... SET mentions_count = mentions_count + n)"""
        month = month or month_key()
        if amount < 0:
            raise ValueError("Usage can only be incremented")

        self.ensure(account_id, month)
        with self.db.session() as session:
            session.execute(
                update(UsageModel)
                .where(UsageModel.account_id == account_id, UsageModel.month == month)
                .values(mentions_count=UsageModel.mentions_count + amount)
            )
        return self.get(account_id, month)

    @staticmethod
    def is_over_limit(account: Account, usage: UsageRecord) -> bool:
        limits = get_plan_limits(account.plan)
        return usage.mentions_count >= limits.mentions_per_month
