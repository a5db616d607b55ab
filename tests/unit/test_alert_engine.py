"""
Unit Tests for AlertEngine
임계값 검사, 쿨다운, 실시간 발행, 이메일

Run: pytest tests/unit/test_alert_engine.py -v
"""

import asyncio
import gc
import pytest
from datetime import timedelta

from conftest import NOW, mention_document
from mentionwatch.data_pipeline.domain.models import StoredMention
from mentionwatch.services.alerts import (
    AlertThresholds,
    merge_overrides,
    sentiment_bucket,
    sentiment_distribution,
)
from mentionwatch.services.alerts.thresholds import VolumeSpikeThresholds


def seed_volume(mention_repo, project_id, recent: int, baseline: int) -> None:
    """최근 1시간 recent건, 그 이전 23시간 baseline건"""
    documents = [
        mention_document(project_id, i, NOW - timedelta(minutes=5 + i))
        for i in range(recent)
    ]
    documents += [
        mention_document(project_id, 100 + i, NOW - timedelta(hours=2, minutes=i * 50))
        for i in range(baseline)
    ]
    mention_repo.insert_many(documents)


class TestThresholds:
    """임계값 설정"""

    def test_defaults(self):
        thresholds = AlertThresholds()
        assert thresholds.volume_spike.min_mentions == 5
        assert thresholds.reach_spike.min_reach == 10000
        assert thresholds.influencer_mention.min_followers == 50000

    def test_merge_overrides(self):
        merged = merge_overrides(VolumeSpikeThresholds(), {"min_mentions": 2})
        assert merged.min_mentions == 2
        assert merged.multiplier == 2

    def test_unknown_override_rejected(self):
        with pytest.raises(ValueError):
            merge_overrides(VolumeSpikeThresholds(), {"min_mentionz": 2})

    def test_from_dict(self):
        thresholds = AlertThresholds.from_dict({"sentiment_shift": {"min_mentions": 3}})
        assert thresholds.sentiment_shift.min_mentions == 3
        assert thresholds.to_dict()["volume_spike"]["window_hours"] == 1


class TestSentimentHelpers:

    @pytest.mark.parametrize("label, bucket", [
        ("positive", "positive"),
        ("NEGATIVE", "negative"),
        ("5 stars", "positive"),
        ("1 star", "negative"),
        ("3 stars", "neutral"),
        (None, "neutral"),
    ])
    def test_bucket(self, label, bucket):
        assert sentiment_bucket(label) == bucket

    def test_distribution_empty(self):
        assert sentiment_distribution([])["total"] == 0


class TestVolumeSpike:
    """멘션량 급증"""

    @pytest.mark.asyncio
    async def test_spike_creates_exactly_one_alert(self, alert_engine, alert_repo, mention_repo, account, project):
        seed_volume(mention_repo, project.id, recent=6, baseline=23)

        assert await alert_engine.check_for_volume_spike(project, account) is True
        assert alert_repo.count(project.id, "volume_spike") == 1

    @pytest.mark.asyncio
    async def test_cooldown_suppresses_second_alert(
        self, alert_engine, alert_repo, mention_repo, account, project, clock
    ):
        seed_volume(mention_repo, project.id, recent=6, baseline=23)
        await alert_engine.check_for_volume_spike(project, account)

        clock.advance(minutes=10)
        await alert_engine.check_for_volume_spike(project, account)
        assert alert_repo.count(project.id, "volume_spike") == 1

    @pytest.mark.asyncio
    async def test_below_minimum_no_alert(self, alert_engine, alert_repo, mention_repo, account, project):
        seed_volume(mention_repo, project.id, recent=4, baseline=0)

        assert await alert_engine.check_for_volume_spike(project, account) is False
        assert alert_repo.count(project.id) == 0

    @pytest.mark.asyncio
    async def test_overrides_applied(self, alert_engine, mention_repo, account, project):
        seed_volume(mention_repo, project.id, recent=3, baseline=0)

        assert await alert_engine.check_for_volume_spike(project, account, {"min_mentions": 3}) is True

    @pytest.mark.asyncio
    async def test_alert_published_to_rooms(self, alert_engine, mention_repo, publisher, account, project):
        seed_volume(mention_repo, project.id, recent=6, baseline=0)
        await alert_engine.check_for_volume_spike(project, account)

        event = publisher.events[0]
        assert event["event"] == "alert"
        assert sorted(event["rooms"]) == sorted([f"user:{account.id}", f"project:{project.id}"])
        assert event["data"]["type"] == "volume_spike"
        assert event["data"]["payload"]["recent_count"] == 6


class TestSentimentShift:
    """감성 악화"""

    @pytest.mark.asyncio
    async def test_high_negative_share(self, alert_engine, alert_repo, mention_repo, account, project):
        mention_repo.insert_many([
            mention_document(
                project.id, i, NOW - timedelta(minutes=10 + i),
                sentiment_label="negative" if i < 4 else "neutral",
            )
            for i in range(10)
        ])

        assert await alert_engine.check_for_sentiment_shift(project, account) is True
        assert alert_repo.count(project.id, "sentiment_negative") == 1

    @pytest.mark.asyncio
    async def test_shift_versus_previous_window(self, alert_engine, alert_repo, mention_repo, account, project):
        # 현재 6시간: 부정 2/10 (20%), 이전 6시간: 부정 0/10
        current = [
            mention_document(
                project.id, i, NOW - timedelta(minutes=10 + i),
                sentiment_label="negative" if i < 2 else "positive",
            )
            for i in range(10)
        ]
        previous = [
            mention_document(project.id, 50 + i, NOW - timedelta(hours=8, minutes=i), sentiment_label="positive")
            for i in range(10)
        ]
        mention_repo.insert_many(current + previous)

        assert await alert_engine.check_for_sentiment_shift(project, account) is True
        assert alert_repo.count(project.id, "sentiment_shift") == 1

    @pytest.mark.asyncio
    async def test_too_few_mentions(self, alert_engine, mention_repo, account, project):
        mention_repo.insert_many([
            mention_document(project.id, i, NOW - timedelta(minutes=5), sentiment_label="negative")
            for i in range(9)
        ])

        assert await alert_engine.check_for_sentiment_shift(project, account) is False


class TestReachSpike:
    """도달 범위 급증"""

    @pytest.mark.asyncio
    async def test_reach_above_minimum(self, alert_engine, alert_repo, mention_repo, account, project):
        mention_repo.insert_many([
            mention_document(project.id, 1, NOW - timedelta(hours=1), reach_estimate=12000),
        ])

        assert await alert_engine.check_for_reach_spike(project, account) is True
        alert = alert_repo.list_for_account(account.id)[0]
        assert alert.payload["today_reach"] == 12000
        assert alert.payload["multiplier"] is None

    @pytest.mark.asyncio
    async def test_reach_below_baseline_multiple(self, alert_engine, mention_repo, account, project):
        mention_repo.insert_many([
            mention_document(project.id, 1, NOW - timedelta(hours=1), reach_estimate=12000),
            mention_document(project.id, 2, NOW - timedelta(days=2), reach_estimate=70000),
        ])

        # 기준선 일평균 10000 x 3 = 30000 > 12000
        assert await alert_engine.check_for_reach_spike(project, account) is False


class TestInfluencerMention:
    """인플루언서 멘션"""

    def stored(self, project, followers: int) -> StoredMention:
        return StoredMention(
            id=f"m{followers}", project_id=project.id, source="x",
            author="anchor", follower_count=followers, url="https://x.example.com/1",
        )

    @pytest.mark.asyncio
    async def test_influencer(self, alert_engine, alert_repo, account, project):
        assert await alert_engine.check_for_influencer_mention(project, account, self.stored(project, 75000)) is True
        alert = alert_repo.list_for_account(account.id)[0]
        assert alert.type == "influencer_mention"
        assert alert.payload["followers"] == 75000

    @pytest.mark.asyncio
    async def test_small_account_ignored(self, alert_engine, account, project):
        assert await alert_engine.check_for_influencer_mention(project, account, self.stored(project, 49999)) is False

    @pytest.mark.asyncio
    async def test_run_all_checks_stops_after_first_influencer(self, alert_engine, alert_repo, account, project):
        results = await alert_engine.run_all_checks(
            project, account, [self.stored(project, 60000), self.stored(project, 90000)]
        )

        assert results == {
            "volume_spike": False,
            "sentiment_shift": False,
            "reach_spike": False,
            "influencer_mention": True,
        }
        assert alert_repo.count(project.id, "influencer_mention") == 1


class TestCreateAlert:
    """알림 생성 공통 경로"""

    @pytest.mark.asyncio
    async def test_concurrent_creates_serialized(self, alert_engine, alert_repo, account, project):
        results = await asyncio.gather(*[
            alert_engine.create_alert(account, project, "new_mentions", "3 new mentions", {"count": 3})
            for _ in range(5)
        ])

        assert sum(1 for r in results if r is not None) == 1
        assert alert_repo.count(project.id, "new_mentions") == 1

    @pytest.mark.asyncio
    async def test_cooldown_expires(self, alert_engine, alert_repo, account, project, clock):
        await alert_engine.create_alert(account, project, "new_mentions", "first")
        clock.advance(minutes=31)
        await alert_engine.create_alert(account, project, "new_mentions", "second")

        assert alert_repo.count(project.id, "new_mentions") == 2

    @pytest.mark.asyncio
    async def test_locks_released_after_use(self, alert_engine, account, project):
        for alert_type in ("new_mentions", "volume_spike", "reach_spike"):
            await alert_engine.create_alert(account, project, alert_type, "msg")
        gc.collect()

        assert len(alert_engine._locks) == 0

    @pytest.mark.asyncio
    async def test_email_sent_when_enabled(self, alert_engine, email_sender, account, project):
        alert_engine.email_enabled = True
        await alert_engine.create_alert(account, project, "new_mentions", "2 new mentions for Budget Watch.")

        assert email_sender.sent[0]["to"] == "owner@example.com"
        assert email_sender.sent[0]["subject"] == "MentionWatch Alert: New Mentions"

    @pytest.mark.asyncio
    async def test_email_skipped_when_disabled(self, alert_engine, email_sender, account, project):
        await alert_engine.create_alert(account, project, "new_mentions", "msg")
        assert email_sender.sent == []

    @pytest.mark.asyncio
    async def test_publisher_failure_does_not_block(self, alert_engine, alert_repo, account, project):
        class BrokenPublisher:
            async def publish(self, rooms, event, payload):
                raise RuntimeError("socket closed")

        alert_engine.publisher = BrokenPublisher()
        alert = await alert_engine.create_alert(account, project, "new_mentions", "msg")

        assert alert is not None
        assert alert_repo.count(project.id) == 1
