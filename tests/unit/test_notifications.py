"""
Unit Tests for Notifications
룸 허브 전달, 알림 이메일 구성, SendGrid 발송 처리

Run: pytest tests/unit/test_notifications.py -v
"""

import pytest
from types import SimpleNamespace

from conftest import NOW
from mentionwatch.data_pipeline.domain.models import Account, AlertRecord, StoredMention
from mentionwatch.services.notifications.email import SendGridEmailSender, build_alert_email
from mentionwatch.services.notifications.realtime import RoomHub, account_room, project_room


class TestRoomHub:
    """룸 허브"""

    @pytest.mark.asyncio
    async def test_union_of_rooms_delivers_once(self):
        hub = RoomHub()
        both = hub.subscribe([account_room("a1"), project_room("p1")])
        project_only = hub.subscribe([project_room("p1")])
        other = hub.subscribe([account_room("a2")])

        delivered = await hub.publish([account_room("a1"), project_room("p1")], "alert", {"id": "x"})

        assert delivered == 2
        assert both.queue.qsize() == 1
        assert project_only.queue.qsize() == 1
        assert other.queue.qsize() == 0
        assert await both.next_event() == {"event": "alert", "data": {"id": "x"}}

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        hub = RoomHub()
        subscription = hub.subscribe([account_room("a1")])
        hub.unsubscribe(subscription)

        assert hub.subscriber_count == 0
        assert await hub.publish([account_room("a1")], "alert", {}) == 0

    def test_room_keys(self):
        assert account_room("a1") == "user:a1"
        assert project_room("p1") == "project:p1"


class TestAlertEmail:
    """알림 이메일 구성"""

    def alert(self) -> AlertRecord:
        return AlertRecord(
            id="al1", account_id="a1", project_id="p1",
            type="volume_spike", message="Volume spike detected: 9 mentions",
            created_at=NOW,
        )

    def test_subject_and_body(self):
        mentions = [
            StoredMention(id=f"m{i}", project_id="p1", source="reddit", title=f"Story {i}")
            for i in range(8)
        ]
        account = Account(id="a1", email="owner@example.com", full_name="Owner")

        subject, body = build_alert_email(self.alert(), mentions, account, "https://app.example.com/")

        assert subject == "MentionWatch Alert: Volume Spike"
        assert "Hello Owner," in body
        assert "Recent Mentions:" in body
        assert body.count("(reddit)") == 5
        assert "- Story 4 (reddit)" in body
        assert "Story 5" not in body
        assert body.endswith("https://app.example.com/dashboard")

    def test_untitled_mention_uses_text_snippet(self):
        mention = StoredMention(id="m1", project_id="p1", source="x", text="x" * 200)
        _, body = build_alert_email(self.alert(), [mention], Account(id="a1"), "http://localhost")

        assert f"- {'x' * 80} (x)" in body
        assert "Hello there," in body


class RecordingSendGridClient:
    """send() 호출만 기록하는 SendGrid 클라이언트"""

    def __init__(self, error=None):
        self.error = error
        self.messages = []

    def send(self, message):
        if self.error is not None:
            raise self.error
        self.messages.append(message.get())
        return SimpleNamespace(status_code=202)


class TestSendGridEmailSender:
    """SendGrid 발송기"""

    def test_configured(self):
        assert SendGridEmailSender("SG.key").configured is True
        assert SendGridEmailSender(None).configured is False
        assert SendGridEmailSender("").configured is False

    @pytest.mark.asyncio
    async def test_unconfigured_returns_false(self):
        sender = SendGridEmailSender(None)
        assert await sender.send("owner@example.com", "subject", "body") is False

    @pytest.mark.asyncio
    async def test_sends_plain_text_message(self):
        client = RecordingSendGridClient()
        sender = SendGridEmailSender("SG.key", from_address="alerts@example.com", client=client)

        assert await sender.send("owner@example.com", "MentionWatch Alert: Reach Spike", "Hello") is True

        payload = client.messages[0]
        assert payload["subject"] == "MentionWatch Alert: Reach Spike"
        assert payload["from"] == {"email": "alerts@example.com", "name": "MentionWatch"}
        assert payload["personalizations"][0]["to"][0]["email"] == "owner@example.com"
        assert payload["content"][0] == {"type": "text/plain", "value": "Hello"}

    @pytest.mark.asyncio
    async def test_send_failure_returns_false(self):
        client = RecordingSendGridClient(error=RuntimeError("HTTP Error 401: Unauthorized"))
        sender = SendGridEmailSender("SG.key", client=client)

        assert await sender.send("owner@example.com", "subject", "body") is False
