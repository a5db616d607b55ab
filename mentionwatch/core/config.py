"""
전역 설정 관리
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """애플리케이션 전역 설정"""

    # ============================================
    # Application Settings
    # ============================================
    APP_NAME: str = "MentionWatch"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ============================================
    # Server Settings
    # ============================================
    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 8000
    APP_RELOAD: bool = True

    # ============================================
    # Database
    # ============================================
    DATABASE_URL: str = "sqlite:///./mentionwatch.db"
    DATABASE_ECHO: bool = False

    # ============================================
    # Scheduler
    # ============================================
    SCHEDULER_ENABLED: bool = True
    SCHEDULER_INTERVAL_SECONDS: int = 60
    SCHEDULER_MAX_CONCURRENT_PASSES: int = 5
    SCHEDULER_AUTO_PAUSE: bool = True

    # ============================================
    # Ingestion
    # ============================================
    CONNECTOR_TIMEOUT_SECONDS: float = 25.0

    # ============================================
    # Alerts
    # ============================================
    ALERT_COOLDOWN_MINUTES: int = 30
    ALERT_EMAIL_ENABLED: bool = False
    FRONTEND_URL: str = "http://localhost:5173"

    # ============================================
    # SendGrid
    # ============================================
    SENDGRID_API_KEY: Optional[str] = None
    ALERT_FROM_EMAIL: str = "alerts@mentionwatch.local"
    ALERT_FROM_NAME: str = "MentionWatch"

    # ============================================
    # Connector Credentials
    # ============================================
    YOUTUBE_API_KEY: Optional[str] = None
    TWITTER_BEARER_TOKEN: Optional[str] = None
    META_ACCESS_TOKEN: Optional[str] = None
    META_PAGE_ID: Optional[str] = None

    # ============================================
    # Apify (TikTok)
    # ============================================
    APIFY_API_TOKEN: Optional[str] = None
    APIFY_TIKTOK_ACTOR: str = "clockworks/tiktok-scraper"

    # ============================================
    # CORS Settings
    # ============================================
    CORS_ORIGINS: str = "*"
    CORS_ALLOW_CREDENTIALS: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"  # 추가 환경변수 허용


# 싱글톤 인스턴스
settings = Settings()
