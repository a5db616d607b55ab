"""
Account API
계정별 사용량, 프로젝트 목록, 알림 조회

Endpoints:
- GET /accounts/{account_id}/usage
- GET /accounts/{account_id}/projects
- GET /accounts/{account_id}/alerts
- GET /accounts/{account_id}/alerts/stats
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from mentionwatch.core.container import Container, get_container
from mentionwatch.core.dates import month_key, utcnow
from mentionwatch.data_pipeline.domain.models import Account, UsageRecord
from mentionwatch.services.platform.quota import get_plan_limits

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/accounts")


def _require_account(container: Container, account_id: str) -> Account:
    account = container.accounts.get(account_id)
    if account is None:
        raise HTTPException(status_code=404, detail=f"Account not found: {account_id}")
    return account


@router.get("/{account_id}/usage")
async def account_usage(
    account_id: str,
    month: Optional[str] = Query(None, description="YYYY-MM (기본: 이번 달)"),
    container: Container = Depends(get_container),
):
    account = _require_account(container, account_id)
    month = month or month_key(utcnow())
    usage = container.quota.get(account.id, month) or UsageRecord(account_id=account.id, month=month)
    limits = get_plan_limits(account.plan)

    return {
        **usage.to_dict(),
        "plan": account.plan,
        "limits": limits.to_dict(),
        "remaining": max(limits.mentions_per_month - usage.mentions_count, 0),
    }


@router.get("/{account_id}/projects")
async def account_projects(account_id: str, container: Container = Depends(get_container)):
    _require_account(container, account_id)
    projects = container.projects.list_for_account(account_id)
    return {"projects": [p.to_dict() for p in projects], "total": len(projects)}


@router.get("/{account_id}/alerts")
async def account_alerts(
    account_id: str,
    project_id: Optional[str] = Query(None),
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    container: Container = Depends(get_container),
):
    _require_account(container, account_id)
    alerts = container.alerts.list_for_account(
        account_id, project_id=project_id, unread_only=unread_only, limit=limit
    )
    return {"alerts": [a.to_dict() for a in alerts], "total": len(alerts)}


@router.get("/{account_id}/alerts/stats")
async def account_alert_stats(account_id: str, container: Container = Depends(get_container)):
    _require_account(container, account_id)
    return container.alerts.stats(account_id, utcnow())
