"""
Alert API
알림 읽음 처리 및 커넥터 목록
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from mentionwatch.core.container import Container, get_container
from mentionwatch.core.dates import utcnow

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/alerts/{alert_id}/read")
async def mark_alert_read(alert_id: str, container: Container = Depends(get_container)):
    alert = container.alerts.mark_read(alert_id, utcnow())
    if alert is None:
        raise HTTPException(status_code=404, detail=f"Alert not found: {alert_id}")
    return alert.to_dict()


@router.get("/connectors")
async def list_connectors(container: Container = Depends(get_container)):
    """등록된 커넥터와 기능 설명"""
    return {"connectors": container.registry.describe()}
