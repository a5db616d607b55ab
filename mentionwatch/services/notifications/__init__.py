"""
Notifications
알림 전달 채널 (실시간 룸, 이메일)
"""

from mentionwatch.services.notifications.realtime import (
    RealtimePublisher,
    RoomHub,
    Subscription,
    account_room,
    project_room,
)
from mentionwatch.services.notifications.email import (
    EmailSender,
    SendGridEmailSender,
    build_alert_email,
)

__all__ = [
    "RealtimePublisher",
    "RoomHub",
    "Subscription",
    "account_room",
    "project_room",
    "EmailSender",
    "SendGridEmailSender",
    "build_alert_email",
]
