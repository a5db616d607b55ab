"""Persistence Repositories"""
from .database import Base, Database
from .project_repo import AccountRepository, ProjectRepository
from .mention_repo import InsertResult, MentionRepository
from .alert_repo import AlertRepository, AuditLogRepository

__all__ = [
    "Base",
    "Database",
    "AccountRepository",
    "ProjectRepository",
    "InsertResult",
    "MentionRepository",
    "AlertRepository",
    "AuditLogRepository",
]
