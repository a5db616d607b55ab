from .models import (
    ProjectStatus,
    HealthState,
    AlertType,
    Account,
    Project,
    Engagement,
    RawMention,
    SentimentResult,
    StoredMention,
    ConnectorHealthRecord,
    UsageRecord,
    AlertRecord,
)

__all__ = [
    "ProjectStatus",
    "HealthState",
    "AlertType",
    "Account",
    "Project",
    "Engagement",
    "RawMention",
    "SentimentResult",
    "StoredMention",
    "ConnectorHealthRecord",
    "UsageRecord",
    "AlertRecord",
]
