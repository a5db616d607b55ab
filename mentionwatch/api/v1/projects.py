"""
Project API
프로젝트 관리, 수동 수집, 지표, 커넥터 헬스

Endpoints:
- POST   /projects
- GET    /projects/{project_id}
- PATCH  /projects/{project_id}
- DELETE /projects/{project_id}
- POST   /projects/{project_id}/ingest
- GET    /projects/{project_id}/metrics
- GET    /projects/{project_id}/health
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from mentionwatch.core.container import Container, get_container
from mentionwatch.core.blocking import run_blocking
from mentionwatch.core.dates import to_naive_utc, utcnow
from mentionwatch.core.exceptions import (
    AccountNotFoundError,
    ProjectNotFoundError,
    ProjectValidationError,
)
from mentionwatch.data_pipeline.domain.models import ProjectStatus
from mentionwatch.data_pipeline.pipeline import IngestOptions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects")


# ============================================================
# Request Models
# ============================================================

class ProjectCreate(BaseModel):
    """프로젝트 생성 요청"""
    account_id: str = Field(..., description="소유 계정 ID")
    name: str = Field(..., description="프로젝트 이름")
    keywords: List[str] = Field(default_factory=list, description="추적 키워드")
    boolean_query: str = Field("", description="불리언 검색식")
    sources: Dict[str, bool] = Field(default_factory=dict, description="커넥터 활성화 덮어쓰기")
    schedule_minutes: Optional[int] = Field(None, description="수집 주기(분)")
    geo_focus: Optional[str] = Field(None, description="지역")


class ProjectUpdate(BaseModel):
    """프로젝트 수정 요청"""
    name: Optional[str] = None
    keywords: Optional[List[str]] = None
    boolean_query: Optional[str] = None
    sources: Optional[Dict[str, bool]] = None
    schedule_minutes: Optional[int] = None
    geo_focus: Optional[str] = None
    status: Optional[ProjectStatus] = None


# ============================================================
# Endpoints
# ============================================================

@router.post("", status_code=201)
async def create_project(body: ProjectCreate, container: Container = Depends(get_container)):
    try:
        project = container.project_service.create(
            account_id=body.account_id,
            name=body.name,
            keywords=body.keywords,
            boolean_query=body.boolean_query,
            sources=body.sources,
            schedule_minutes=body.schedule_minutes,
            geo_focus=body.geo_focus,
        )
    except AccountNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ProjectValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return project.to_dict()


@router.get("/{project_id}")
async def get_project(project_id: str, container: Container = Depends(get_container)):
    try:
        return container.project_service.get(project_id).to_dict()
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/{project_id}")
async def update_project(
    project_id: str,
    body: ProjectUpdate,
    container: Container = Depends(get_container),
):
    changes: Dict[str, Any] = body.model_dump(exclude_unset=True)
    if changes.get("status") is not None:
        changes["status"] = ProjectStatus(changes["status"]).value
    try:
        project = container.project_service.update(project_id, changes)
    except (ProjectNotFoundError, AccountNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ProjectValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return project.to_dict()


@router.delete("/{project_id}")
async def delete_project(project_id: str, container: Container = Depends(get_container)):
    try:
        container.project_service.delete(project_id)
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    logger.info(f"[ProjectAPI] Deleted project {project_id}")
    return {"success": True}


@router.post("/{project_id}/ingest")
async def ingest_project(project_id: str, container: Container = Depends(get_container)):
    """
    수동 수집 (일시정지 프로젝트도 강제 실행)

    스케줄러와 같은 compare-and-set 선점을 거친다.
    다른 회차가 먼저 선점했으면 409.
    """
    try:
        project = container.project_service.get(project_id)
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    claimed = await run_blocking(
        container.projects.claim,
        project.id,
        project.last_run_at,
        utcnow(),
        require_active=False,
    )
    if not claimed:
        logger.info(f"[ProjectAPI] Ingestion already in progress for {project_id}")
        raise HTTPException(status_code=409, detail="Ingestion already in progress for this project")

    result = await container.orchestrator.ingest_project(
        project, IngestOptions(force=not project.is_active)
    )
    return {
        **result.to_dict(),
        "connectors": [summary.to_dict() for summary in result.connectors],
    }


@router.get("/{project_id}/metrics")
async def project_metrics(
    project_id: str,
    start: Optional[datetime] = Query(None, description="시작 시각 (ISO 8601)"),
    end: Optional[datetime] = Query(None, description="종료 시각 (ISO 8601)"),
    container: Container = Depends(get_container),
):
    try:
        container.project_service.get(project_id)
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return container.metrics.get_project_metrics(
        project_id, start=to_naive_utc(start), end=to_naive_utc(end)
    )


@router.get("/{project_id}/health")
async def project_health(project_id: str, container: Container = Depends(get_container)):
    try:
        container.project_service.get(project_id)
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {
        "project_id": project_id,
        "connectors": [record.to_dict() for record in container.health.list_for_project(project_id)],
    }
