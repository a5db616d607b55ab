"""
Email Sender
알림 이메일 발송 (SendGrid)

SENDGRID_API_KEY가 없으면 발송하지 않고 False를 반환한다.
"""

import logging
from typing import Any, Optional, Protocol, Sequence, Tuple, runtime_checkable

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Content, Email, Mail, To

from mentionwatch.core.blocking import run_blocking
from mentionwatch.data_pipeline.domain.models import Account, AlertRecord, StoredMention

logger = logging.getLogger(__name__)

MAX_CONTEXT_MENTIONS = 5
SNIPPET_LENGTH = 80

ALERT_TITLES = {
    "new_mentions": "New Mentions",
    "volume_spike": "Volume Spike",
    "sentiment_negative": "High Negative Sentiment",
    "sentiment_shift": "Sentiment Shift",
    "reach_spike": "Reach Spike",
    "influencer_mention": "Influencer Mention",
}


@runtime_checkable
class EmailSender(Protocol):
    """이메일 발송 인터페이스"""

    async def send(self, to: str, subject: str, body: str) -> bool:
        ...


def build_alert_email(
    alert: AlertRecord,
    mentions: Sequence[StoredMention],
    account: Account,
    frontend_url: str,
) -> Tuple[str, str]:
    """알림 이메일 제목/본문 (트리거 멘션 최대 5건)"""
    title = ALERT_TITLES.get(alert.type, alert.type.replace("_", " ").title())
    subject = f"MentionWatch Alert: {title}"

    lines = []
    for mention in list(mentions)[:MAX_CONTEXT_MENTIONS]:
        label = mention.title or (mention.text or "")[:SNIPPET_LENGTH]
        lines.append(f"- {label} ({mention.source})")

    body = "\n".join([
        f"Hello {account.full_name or 'there'},",
        "",
        alert.message,
        "",
        "Recent Mentions:" if lines else "",
        *lines,
        "",
        f"View all mentions on your dashboard: {frontend_url.rstrip('/')}/dashboard",
    ])
    return subject, body


class SendGridEmailSender:
    """SendGrid 발송기 (plain text)"""

    def __init__(
        self,
        api_key: Optional[str],
        from_address: str = "alerts@mentionwatch.local",
        from_name: str = "MentionWatch",
        client: Optional[Any] = None,
    ):
        self.api_key = api_key
        self.from_address = from_address
        self.from_name = from_name
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.api_key or self._client is not None)

    @property
    def client(self):
        if self._client is None:
            self._client = SendGridAPIClient(self.api_key)
        return self._client

    def build_message(self, to: str, subject: str, body: str) -> Mail:
        return Mail(
            from_email=Email(self.from_address, self.from_name),
            to_emails=To(to),
            subject=subject,
            plain_text_content=Content("text/plain", body),
        )

    async def send(self, to: str, subject: str, body: str) -> bool:
        if not self.configured:
            logger.warning(f"[Email] SendGrid not configured, skipping email to: {to}")
            return False

        message = self.build_message(to, subject, body)
        try:
            # SendGrid 클라이언트는 동기 HTTP 호출
            response = await run_blocking(self.client.send, message)
        except Exception as e:
            logger.error(f"[Email] SendGrid send to {to} failed: {e}")
            return False

        logger.info(f"[Email] Sent successfully to: {to} (status={getattr(response, 'status_code', None)})")
        return True
