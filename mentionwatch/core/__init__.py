"""
MentionWatch Core
"""

from .config import Settings, settings
from .exceptions import (
    MentionWatchError,
    ProjectValidationError,
    ProjectNotFoundError,
    AccountNotFoundError,
    ConnectorError,
)

__all__ = [
    "Settings",
    "settings",
    "MentionWatchError",
    "ProjectValidationError",
    "ProjectNotFoundError",
    "AccountNotFoundError",
    "ConnectorError",
]
