"""
Alert Engine
수집 이후 최근 구간을 과거 기준선과 비교해 임계값 알림을 생성

검사 종류:
- volume_spike: 최근 window 멘션 수 vs 이전 구간 시간당 평균
- sentiment_negative / sentiment_shift: 최근 window 부정 비율 및 직전 window 대비 변화
- reach_spike: 오늘 도달 합계 vs 직전 7일 일평균
- influencer_mention: 팔로워 수가 임계값 이상인 작성자의 개별 멘션

모든 알림은 create_alert()를 거치며, 같은 (계정, 프로젝트, 타입) 알림이
쿨다운(기본 30분) 안에 있으면 생성하지 않는다.
"""

import asyncio
import logging
import weakref
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from mentionwatch.core.blocking import run_blocking
from mentionwatch.core.dates import start_of_day, utcnow
from mentionwatch.data_pipeline.domain.models import (
    Account,
    AlertRecord,
    AlertType,
    Project,
    StoredMention,
)
from mentionwatch.data_pipeline.repositories.alert_repo import AlertRepository
from mentionwatch.data_pipeline.repositories.mention_repo import MentionRepository
from mentionwatch.services.alerts.thresholds import AlertThresholds, merge_overrides
from mentionwatch.services.notifications.email import EmailSender, build_alert_email
from mentionwatch.services.notifications.realtime import (
    RealtimePublisher,
    account_room,
    project_room,
)

logger = logging.getLogger(__name__)

ALERT_EVENT = "alert"
MAX_TRIGGER_MENTIONS = 10


def sentiment_bucket(label: Optional[str]) -> str:
    """감성 레이블을 positive / negative / neutral로 분류 (별점 레이블 포함)"""
    value = (label or "").lower()
    if "positive" in value or "4" in value or "5" in value:
        return "positive"
    if "negative" in value or "1" in value or "2" in value:
        return "negative"
    return "neutral"


def sentiment_distribution(mentions: Sequence[StoredMention]) -> Dict[str, float]:
    """감성 비율(%)과 멘션 수"""
    counts = {"positive": 0, "negative": 0, "neutral": 0}
    for mention in mentions:
        counts[sentiment_bucket(mention.sentiment.label)] += 1

    total = len(mentions)
    divisor = total or 1
    return {
        "positive": counts["positive"] / divisor * 100,
        "negative": counts["negative"] / divisor * 100,
        "neutral": counts["neutral"] / divisor * 100,
        "total": total,
    }


class AlertEngine:
    """임계값 알림 엔진"""

    def __init__(
        self,
        alerts: AlertRepository,
        mentions: MentionRepository,
        publisher: Optional[RealtimePublisher] = None,
        email_sender: Optional[EmailSender] = None,
        thresholds: Optional[AlertThresholds] = None,
        cooldown_minutes: int = 30,
        email_enabled: bool = False,
        frontend_url: str = "http://localhost:5173",
        clock: Callable[[], datetime] = utcnow,
    ):
        self.alerts = alerts
        self.mentions = mentions
        self.publisher = publisher
        self.email_sender = email_sender
        self.thresholds = thresholds or AlertThresholds()
        self.cooldown = timedelta(minutes=cooldown_minutes)
        self.email_enabled = email_enabled
        self.frontend_url = frontend_url
        self.clock = clock
        # 사용 중인 락만 유지된다
        self._locks: weakref.WeakValueDictionary = weakref.WeakValueDictionary()

    # ============================================================
    # Alert creation
    # ============================================================

    def _lock_for(self, project_id: str, alert_type: str) -> asyncio.Lock:
        key = (project_id, alert_type)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def create_alert(
        self,
        account: Account,
        project: Project,
        alert_type: str,
        message: str,
        payload: Optional[Dict[str, Any]] = None,
        trigger_mentions: Optional[Sequence[StoredMention]] = None,
    ) -> Optional[AlertRecord]:
        """
        알림 저장 + 실시간 발행 + (선택) 이메일

        쿨다운 안에 같은 타입 알림이 있으면 None.
        같은 프로세스 안에서는 (프로젝트, 타입) 단위로 직렬화된다.
        """
        alert_type = getattr(alert_type, "value", alert_type)

        async with self._lock_for(project.id, alert_type):
            now = self.clock()
            recent = await run_blocking(
                self.alerts.find_recent, account.id, project.id, alert_type, since=now - self.cooldown
            )
            if recent is not None:
                logger.info(f"[AlertEngine] Skipping duplicate {alert_type} alert for project {project.id}")
                return None

            alert = await run_blocking(
                self.alerts.create,
                account_id=account.id,
                project_id=project.id,
                alert_type=alert_type,
                message=message,
                payload=payload or {},
                created_at=now,
            )

        logger.info(f"[AlertEngine] Created {alert_type} alert for project {project.id}")
        await self._notify_realtime(alert)
        await self._maybe_email(account, alert, trigger_mentions or [])
        return alert

    async def _notify_realtime(self, alert: AlertRecord) -> None:
        if self.publisher is None:
            return
        try:
            await self.publisher.publish(
                [account_room(alert.account_id), project_room(alert.project_id)],
                ALERT_EVENT,
                alert.to_dict(),
            )
        except Exception as e:
            logger.error(f"[AlertEngine] Realtime publish failed: {e}")

    async def _maybe_email(
        self,
        account: Account,
        alert: AlertRecord,
        mentions: Sequence[StoredMention],
    ) -> None:
        if not self.email_enabled or self.email_sender is None:
            return
        if not account.email or not account.email_alerts_enabled:
            return

        subject, body = build_alert_email(alert, mentions, account, self.frontend_url)
        try:
            await self.email_sender.send(account.email, subject, body)
        except Exception as e:
            logger.error(f"[AlertEngine] Failed to send email: {e}")

    # ============================================================
    # Checks
    # ============================================================

    async def check_for_volume_spike(
        self,
        project: Project,
        account: Account,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        config = merge_overrides(self.thresholds.volume_spike, overrides)
        now = self.clock()
        window_start = now - timedelta(hours=config.window_hours)
        compare_start = now - timedelta(hours=config.compare_window_hours)

        recent_count = await run_blocking(self.mentions.count_created_between, project.id, window_start)
        compare_count = await run_blocking(
            self.mentions.count_created_between, project.id, compare_start, window_start
        )

        baseline_hours = config.compare_window_hours - config.window_hours
        avg_hourly = compare_count / baseline_hours if baseline_hours > 0 else 0.0
        expected = avg_hourly * config.window_hours
        threshold = max(config.min_mentions, expected * config.multiplier)

        if recent_count < threshold:
            return False

        percent_increase = round((recent_count - expected) / expected * 100) if expected > 0 else 100
        recent_mentions = await run_blocking(
            self.mentions.list_created_between, project.id, window_start, limit=MAX_TRIGGER_MENTIONS
        )

        await self.create_alert(
            account,
            project,
            AlertType.VOLUME_SPIKE.value,
            f"Volume spike detected: {recent_count} mentions in the last "
            f"{config.window_hours:g} hour(s) ({percent_increase}% above average)",
            payload={
                "recent_count": recent_count,
                "avg_hourly": round(avg_hourly, 2),
                "threshold": round(threshold),
                "percent_increase": percent_increase,
                "window_hours": config.window_hours,
            },
            trigger_mentions=recent_mentions,
        )
        return True

    async def check_for_sentiment_shift(
        self,
        project: Project,
        account: Account,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        config = merge_overrides(self.thresholds.sentiment_shift, overrides)
        now = self.clock()
        window_start = now - timedelta(hours=config.window_hours)
        previous_start = window_start - timedelta(hours=config.window_hours)

        current_mentions = await run_blocking(self.mentions.list_created_between, project.id, window_start)
        if len(current_mentions) < config.min_mentions:
            return False

        previous_mentions = await run_blocking(
            self.mentions.list_created_between, project.id, previous_start, window_start
        )
        current = sentiment_distribution(current_mentions)
        previous = sentiment_distribution(previous_mentions)

        negative_mentions = [
            m for m in current_mentions if sentiment_bucket(m.sentiment.label) == "negative"
        ][:MAX_TRIGGER_MENTIONS]

        if current["negative"] >= config.negative_threshold:
            await self.create_alert(
                account,
                project,
                AlertType.SENTIMENT_NEGATIVE.value,
                f"High negative sentiment: {round(current['negative'])}% of recent mentions are negative",
                payload={
                    "current": current,
                    "previous": previous,
                    "window_hours": config.window_hours,
                    "mention_count": len(current_mentions),
                },
                trigger_mentions=negative_mentions,
            )
            return True

        shift = current["negative"] - previous["negative"]
        if previous["total"] >= config.min_mentions and shift >= config.shift_threshold:
            await self.create_alert(
                account,
                project,
                AlertType.SENTIMENT_SHIFT.value,
                f"Sentiment shift detected: negative mentions increased by {round(shift)}% "
                f"compared to previous period",
                payload={
                    "current": current,
                    "previous": previous,
                    "shift": round(shift),
                    "window_hours": config.window_hours,
                },
                trigger_mentions=negative_mentions,
            )
            return True

        return False

    async def check_for_reach_spike(
        self,
        project: Project,
        account: Account,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        config = merge_overrides(self.thresholds.reach_spike, overrides)
        today_start = start_of_day(self.clock())
        baseline_start = today_start - timedelta(days=config.baseline_days)

        today_reach = await run_blocking(self.mentions.sum_reach_between, project.id, today_start)
        baseline_reach = await run_blocking(
            self.mentions.sum_reach_between, project.id, baseline_start, today_start
        )
        avg_daily = baseline_reach / config.baseline_days if config.baseline_days else 0.0
        threshold = max(config.min_reach, avg_daily * config.multiplier)

        if today_reach < threshold:
            return False

        ratio = round(today_reach / avg_daily, 1) if avg_daily > 0 else None
        ratio_text = f"{ratio:g}x average" if ratio is not None else "no prior baseline"
        await self.create_alert(
            account,
            project,
            AlertType.REACH_SPIKE.value,
            f"Reach spike: today's estimated reach is {today_reach:,} ({ratio_text})",
            payload={
                "today_reach": today_reach,
                "avg_daily_reach": round(avg_daily),
                "threshold": round(threshold),
                "multiplier": ratio,
            },
        )
        return True

    async def check_for_influencer_mention(
        self,
        project: Project,
        account: Account,
        mention: StoredMention,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        config = merge_overrides(self.thresholds.influencer_mention, overrides)
        followers = mention.follower_count or 0
        if followers < config.min_followers:
            return False

        await self.create_alert(
            account,
            project,
            AlertType.INFLUENCER_MENTION.value,
            f"Influencer mention: @{mention.author or 'Unknown'} ({followers:,} followers) "
            f"mentioned your keywords",
            payload={
                "author": mention.author,
                "followers": followers,
                "source": mention.source,
                "mention_id": mention.id,
                "url": mention.url,
            },
            trigger_mentions=[mention],
        )
        return True

    # ============================================================
    # Orchestration
    # ============================================================

    async def run_all_checks(
        self,
        project: Project,
        account: Account,
        new_mentions: Sequence[StoredMention] = (),
        overrides: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> Dict[str, bool]:
        """
        검사를 순차 실행

        개별 검사 실패는 로그만 남기고 False로 기록한다.
        인플루언서 검사는 첫 알림에서 멈춘다.
        """
        overrides = overrides or {}
        results: Dict[str, bool] = {}

        checks = (
            ("volume_spike", self.check_for_volume_spike),
            ("sentiment_shift", self.check_for_sentiment_shift),
            ("reach_spike", self.check_for_reach_spike),
        )
        for name, check in checks:
            try:
                results[name] = await check(project, account, overrides.get(name))
            except Exception as e:
                logger.error(f"[AlertEngine] {name} check failed for {project.id}: {e}", exc_info=True)
                results[name] = False

        results["influencer_mention"] = False
        for mention in new_mentions:
            try:
                if await self.check_for_influencer_mention(
                    project, account, mention, overrides.get("influencer_mention")
                ):
                    results["influencer_mention"] = True
                    break
            except Exception as e:
                logger.error(f"[AlertEngine] influencer check failed for {project.id}: {e}", exc_info=True)
                break

        return results
