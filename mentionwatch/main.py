"""
MentionWatch - Main Application
FastAPI 메인 앱
"""

# 환경변수 로드 (가장 먼저 실행)
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
import time

from mentionwatch.core.config import settings
from mentionwatch.core.container import get_container

# 로깅 설정
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    애플리케이션 생명주기 관리

    Startup:
    - 테이블 생성
    - 수집 스케줄러 시작 (SCHEDULER_ENABLED)

    Shutdown:
    - 스케줄러 정지, 진행 중 틱 완료 대기
    - DB 연결 정리
    """
    # ============ STARTUP ============
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}...")

    provider = app.dependency_overrides.get(get_container, get_container)
    container = provider()
    container.db.create_all()
    logger.info(f"Connectors: {', '.join(container.registry.ids())}")

    if settings.SCHEDULER_ENABLED:
        container.scheduler.start()
    else:
        logger.info("Scheduler disabled")

    yield

    # ============ SHUTDOWN ============
    logger.info(f"Shutting down {settings.APP_NAME}...")
    await container.scheduler.stop()
    container.db.dispose()
    logger.info(f"{settings.APP_NAME} stopped")


# FastAPI 앱 생성
app = FastAPI(
    title=settings.APP_NAME,
    description="멘션 수집 및 알림 엔진",
    version=settings.APP_VERSION,
    lifespan=lifespan
)


# ============================================
# CORS 설정
# ============================================

ALLOWED_ORIGINS = [origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=600,
)


# 요청 로깅 미들웨어
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """요청/응답 로깅"""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    logger.info(
        f"{request.method} {request.url.path} | "
        f"Status: {response.status_code} | "
        f"Time: {process_time:.3f}s"
    )
    return response


# 에러 핸들러
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """전역 에러 핸들러"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "message": str(exc),
            "path": request.url.path
        }
    )


# ============================================
# API 라우터 등록
# ============================================
from mentionwatch.api.v1 import accounts, alerts, projects, realtime

app.include_router(
    projects.router,
    prefix="/api/v1",
    tags=["Projects"]
)

app.include_router(
    accounts.router,
    prefix="/api/v1",
    tags=["Accounts"]
)

app.include_router(
    alerts.router,
    prefix="/api/v1",
    tags=["Alerts"]
)

app.include_router(
    realtime.router,
    prefix="/api/v1",
    tags=["Realtime"]
)


# 루트 엔드포인트
@app.get("/", tags=["System"])
async def root():
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "docs": "/docs",
        "health": "/health"
    }


# 헬스체크
@app.get("/health", tags=["System"])
async def health():
    """
    라이브니스 체크

    Returns:
        앱 및 스케줄러 상태
    """
    provider = app.dependency_overrides.get(get_container, get_container)
    container = provider()
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "scheduler": {"running": container.scheduler.running},
    }


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server on {settings.APP_HOST}:{settings.APP_PORT}")

    uvicorn.run(
        "mentionwatch.main:app",
        host=settings.APP_HOST,
        port=settings.APP_PORT,
        reload=settings.APP_RELOAD,
        log_level="info"
    )
