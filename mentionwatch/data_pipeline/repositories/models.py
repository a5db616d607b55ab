"""
SQLAlchemy Models
멘션 수집 엔진의 영속 스키마
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from mentionwatch.data_pipeline.repositories.database import Base


def new_id() -> str:
    return uuid.uuid4().hex


# ============================================
# Account / Project
# ============================================

class AccountModel(Base):
    """계정 테이블 (외부 계정 서비스의 읽기 모델)"""
    __tablename__ = "accounts"

    id = Column(String(64), primary_key=True, default=new_id)
    email = Column(String(255), nullable=True)
    full_name = Column(String(255), nullable=True)
    plan = Column(String(32), nullable=False, default="individual")
    email_alerts_enabled = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    projects = relationship("ProjectModel", back_populates="account", passive_deletes=True)


class ProjectModel(Base):
    """프로젝트 테이블"""
    __tablename__ = "projects"

    id = Column(String(64), primary_key=True, default=new_id)
    account_id = Column(String(64), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    keywords = Column(JSON, nullable=False, default=list)
    boolean_query = Column(Text, nullable=False, default="")
    sources = Column(JSON, nullable=False, default=dict)
    schedule_minutes = Column(Integer, nullable=False, default=30)
    geo_focus = Column(String(64), nullable=False, default="Nepal")
    status = Column(String(16), nullable=False, default="active", index=True)
    last_run_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    account = relationship("AccountModel", back_populates="projects")

    __table_args__ = (
        UniqueConstraint("account_id", "name", name="uq_project_account_name"),
    )


# ============================================
# Mention
# ============================================

class MentionModel(Base):
    """멘션 테이블 (append-only)"""
    __tablename__ = "mentions"

    id = Column(String(64), primary_key=True, default=new_id)
    project_id = Column(String(64), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    source = Column(String(32), nullable=False, index=True)
    keyword_matched = Column(String(255), nullable=False, default="")
    title = Column(Text, nullable=False, default="")
    text = Column(Text, nullable=False, default="")
    author = Column(String(255), nullable=False, default="")
    url = Column(String(2048), nullable=True)
    published_at = Column(DateTime, nullable=True)

    likes = Column(Integer, nullable=False, default=0)
    comments = Column(Integer, nullable=False, default=0)
    shares = Column(Integer, nullable=False, default=0)
    follower_count = Column(Integer, nullable=False, default=0)
    reach_estimate = Column(Integer, nullable=False, default=0)

    lang = Column(String(16), nullable=False, default="unknown")
    geo = Column(String(64), nullable=True)
    sentiment_label = Column(String(32), nullable=False, default="neutral")
    sentiment_confidence = Column(Float, nullable=False, default=0.0)
    similarity_hash = Column(String(64), nullable=True)

    ingested_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    __table_args__ = (
        # NULL은 서로 충돌하지 않으므로 값이 있을 때만 적용된다
        UniqueConstraint("project_id", "source", "url", name="uq_mention_project_source_url"),
        UniqueConstraint("project_id", "similarity_hash", name="uq_mention_project_hash"),
        Index("idx_mention_project_created", "project_id", "created_at"),
    )


# ============================================
# Connector Health / Usage
# ============================================

class ConnectorHealthModel(Base):
    """커넥터 헬스 테이블 (프로젝트 x 커넥터 당 1행)"""
    __tablename__ = "connector_health"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(String(64), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    connector_id = Column(String(32), nullable=False)
    status = Column(String(16), nullable=False)
    last_error = Column(Text, nullable=True)
    last_checked_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("project_id", "connector_id", name="uq_health_project_connector"),
    )


class UsageModel(Base):
    """월별 사용량 테이블"""
    __tablename__ = "usage"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(String(64), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)
    month = Column(String(7), nullable=False)
    mentions_count = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("account_id", "month", name="uq_usage_account_month"),
    )


# ============================================
# Alert / Audit
# ============================================

class AlertModel(Base):
    """알림 테이블"""
    __tablename__ = "alerts"

    id = Column(String(64), primary_key=True, default=new_id)
    account_id = Column(String(64), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id = Column(String(64), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(32), nullable=False)
    message = Column(Text, nullable=False, default="")
    payload = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    read_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_alert_cooldown", "account_id", "project_id", "type", "created_at"),
    )


class AuditLogModel(Base):
    """감사 로그 테이블"""
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(String(64), nullable=True, index=True)
    project_id = Column(String(64), ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True)
    connector_id = Column(String(32), nullable=True)
    level = Column(String(8), nullable=False, default="info")
    message = Column(Text, nullable=False, default="")
    metadata_ = Column("metadata", JSON, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
