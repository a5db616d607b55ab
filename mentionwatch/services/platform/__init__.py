"""
Platform Services
요금제 쿼터, 커넥터 헬스, 프로젝트 관리, 지표 집계
"""

from mentionwatch.services.platform.connector_health import ConnectorHealthTracker
from mentionwatch.services.platform.metrics import ProjectMetricsService
from mentionwatch.services.platform.projects import (
    ProjectService,
    normalize_keywords,
    resolve_schedule,
)
from mentionwatch.services.platform.quota import (
    DEFAULT_PLAN,
    PLAN_LIMITS,
    PlanLimits,
    QuotaLedger,
    get_plan_limits,
)

__all__ = [
    "ConnectorHealthTracker",
    "ProjectMetricsService",
    "ProjectService",
    "normalize_keywords",
    "resolve_schedule",
    "DEFAULT_PLAN",
    "PLAN_LIMITS",
    "PlanLimits",
    "QuotaLedger",
    "get_plan_limits",
]
