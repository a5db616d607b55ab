"""
Integration Tests for Ingestion Pass
게이트 → 커넥터 → 필터 → 저장 → 알림 → 기록 전체 흐름

Run: pytest tests/integration/test_ingestion_flow.py -v
"""

import asyncio
import pytest
from datetime import timedelta

from sqlalchemy.exc import OperationalError

from conftest import NOW, FailingConnector, FakeConnector, make_raw
from mentionwatch.data_pipeline.domain.models import HealthState, ProjectStatus, RawMention, SentimentResult
from mentionwatch.data_pipeline.pipeline import IngestOptions


class ExplodingClassifier:
    """항상 실패하는 감성 분류기"""

    def classify(self, text):
        raise RuntimeError("model not loaded")

    def detect_language(self, text):
        return "en"


class SlowConnector(FakeConnector):
    """타임아웃보다 오래 걸리는 커넥터"""

    async def fetch(self, project, since):
        await asyncio.sleep(5)
        return []


class TestGate:
    """상태 / 쿼터 게이트"""

    @pytest.mark.asyncio
    async def test_paused_project_skipped(self, make_orchestrator, project_repo, health, project):
        project_repo.update(project.id, {"status": ProjectStatus.PAUSED})
        paused = project_repo.get(project.id)
        connector = FakeConnector(items=[make_raw("https://news.example.com/a")])

        result = await make_orchestrator([connector]).ingest_project(paused)

        assert result.to_dict() == {"inserted": 0, "status": "paused"}
        assert connector.calls == []
        assert health.list_for_project(project.id) == []
        assert project_repo.get(project.id).last_run_at is None

    @pytest.mark.asyncio
    async def test_force_runs_paused_project(self, make_orchestrator, project_repo, project):
        project_repo.update(project.id, {"status": ProjectStatus.PAUSED})
        paused = project_repo.get(project.id)
        connector = FakeConnector(items=[make_raw("https://news.example.com/a")])

        result = await make_orchestrator([connector]).ingest_project(paused, IngestOptions(force=True))

        assert result.inserted == 1
        assert result.status == "paused"

    @pytest.mark.asyncio
    async def test_over_quota(self, make_orchestrator, quota, account, project):
        quota.increment(account.id, "2026-03", 3000)
        connector = FakeConnector(items=[make_raw("https://news.example.com/a")])

        result = await make_orchestrator([connector]).ingest_project(project)

        assert result.to_dict() == {"inserted": 0, "reason": "limit"}
        assert connector.calls == []


class TestConnectors:
    """커넥터 단계"""

    @pytest.mark.asyncio
    async def test_same_url_inserted_once(self, make_orchestrator, mention_repo, health, project):
        connector = FakeConnector(items=[
            make_raw("https://news.example.com/a", title="Budget passes"),
            make_raw("https://news.example.com/a", title="Budget passes again"),
        ])

        result = await make_orchestrator([connector]).ingest_project(project)

        assert result.inserted == 1
        assert mention_repo.count_for_project(project.id) == 1
        assert health.get(project.id, "fake").status == HealthState.OK

    @pytest.mark.asyncio
    async def test_irrelevant_mentions_dropped(self, make_orchestrator, health, project):
        connector = FakeConnector(items=[
            make_raw("https://news.example.com/a", title="Football final", text="A late goal"),
        ])

        result = await make_orchestrator([connector]).ingest_project(project)

        assert result.inserted == 0
        assert result.connectors[0].fetched == 1
        assert result.connectors[0].kept == 0
        assert health.get(project.id, "fake").status == HealthState.NO_DATA

    @pytest.mark.asyncio
    async def test_failing_connector_isolated(self, make_orchestrator, health, audit_repo, project):
        broken = FailingConnector(message="503 from upstream")
        working = FakeConnector(items=[make_raw("https://news.example.com/a")])

        result = await make_orchestrator([broken, working]).ingest_project(project)

        assert result.inserted == 1
        assert health.get(project.id, "broken").status == HealthState.DEGRADED
        assert "503 from upstream" in health.get(project.id, "broken").last_error
        assert health.get(project.id, "fake").status == HealthState.OK
        entries = audit_repo.list_for_project(project.id)
        assert entries[0]["level"] == "error"
        assert entries[0]["connector_id"] == "broken"

    @pytest.mark.asyncio
    async def test_timeout_degrades(self, make_orchestrator, health, project):
        result = await make_orchestrator([SlowConnector("slow")], timeout=0.05).ingest_project(project)

        assert result.inserted == 0
        assert health.get(project.id, "slow").status == HealthState.DEGRADED

    @pytest.mark.asyncio
    async def test_disabled_source_not_called(self, make_orchestrator, project_repo, project):
        project_repo.update(project.id, {"sources": {"fake": False}})
        connector = FakeConnector(items=[make_raw("https://news.example.com/a")])

        await make_orchestrator([connector]).ingest_project(project_repo.get(project.id))

        assert connector.calls == []

    @pytest.mark.asyncio
    async def test_since_is_last_run(self, make_orchestrator, project_repo, project):
        last_run = NOW - timedelta(hours=1)
        project_repo.stamp_run(project.id, last_run)
        connector = FakeConnector()

        await make_orchestrator([connector]).ingest_project(project_repo.get(project.id))

        assert connector.calls[0]["since"] == last_run
        assert project_repo.get(project.id).last_run_at == NOW


class TestEnrichAndAlert:
    """분석 / 알림 단계"""

    @pytest.mark.asyncio
    async def test_new_mentions_alert_and_usage(
        self, make_orchestrator, alert_repo, quota, publisher, account, project
    ):
        connector = FakeConnector(items=[
            make_raw("https://news.example.com/a", title="Budget passes"),
            make_raw("https://news.example.com/b", title="Budget debate"),
        ])

        result = await make_orchestrator([connector]).ingest_project(project)

        assert result.inserted == 2
        assert quota.get(account.id, "2026-03").mentions_count == 2
        alerts = alert_repo.list_for_account(account.id)
        assert [a.type for a in alerts] == ["new_mentions"]
        assert alerts[0].message == "2 new mentions for Budget Watch."
        assert alerts[0].payload == {"count": 2}
        assert publisher.events[0]["data"]["type"] == "new_mentions"
        assert set(result.alerts) == {"volume_spike", "sentiment_shift", "reach_spike", "influencer_mention"}

    @pytest.mark.asyncio
    async def test_no_alert_when_nothing_inserted(self, make_orchestrator, alert_repo, quota, account, project):
        await make_orchestrator([FakeConnector()]).ingest_project(project)

        assert alert_repo.count(project.id) == 0
        assert quota.get(account.id, "2026-03").mentions_count == 0

    @pytest.mark.asyncio
    async def test_influencer_alert(self, make_orchestrator, alert_repo, project):
        connector = FakeConnector(items=[
            make_raw("https://news.example.com/a", author="anchor", follower_count=120000),
        ])

        result = await make_orchestrator([connector]).ingest_project(project)

        assert result.alerts["influencer_mention"] is True
        assert alert_repo.count(project.id, "influencer_mention") == 1

    @pytest.mark.asyncio
    async def test_classifier_failure_falls_back_to_neutral(self, make_orchestrator, mention_repo, project):
        connector = FakeConnector(items=[make_raw("https://news.example.com/a")])

        result = await make_orchestrator([connector], classifier=ExplodingClassifier()).ingest_project(project)

        assert result.inserted == 1
        stored = mention_repo.list_for_project(project.id)[0]
        assert stored.sentiment == SentimentResult(label="neutral", confidence=0.0)
        assert stored.lang == "en"

    @pytest.mark.asyncio
    async def test_enrichment_fields(self, make_orchestrator, mention_repo, project):
        connector = FakeConnector(items=[
            make_raw("https://youtube.example.com/v", source="youtube", likes=40),
        ])

        await make_orchestrator([connector]).ingest_project(project)

        stored = mention_repo.list_for_project(project.id)[0]
        assert stored.keyword_matched == "budget"
        assert stored.reach_estimate == 400
        assert stored.similarity_hash is not None
        assert stored.created_at == NOW


class TestStamp:
    """회차 기록"""

    @pytest.mark.asyncio
    async def test_auto_pause(self, make_orchestrator, project_repo, project):
        result = await make_orchestrator([FakeConnector()]).ingest_project(
            project, IngestOptions(auto_pause=True)
        )

        assert result.status == "paused"
        assert project_repo.get(project.id).status == ProjectStatus.PAUSED

    @pytest.mark.asyncio
    async def test_stamp_failure_keeps_status(self, make_orchestrator, project_repo, project, monkeypatch):
        def broken_stamp(*args, **kwargs):
            raise RuntimeError("database locked")

        monkeypatch.setattr(project_repo, "stamp_run", broken_stamp)
        result = await make_orchestrator([FakeConnector()]).ingest_project(
            project, IngestOptions(auto_pause=True)
        )

        assert result.status == "active"


class TestPartialFailure:
    """형식 오류 항목, 저장 오류, 부분 회차"""

    @pytest.mark.asyncio
    async def test_malformed_mention_does_not_abort_pass(self, make_orchestrator, mention_repo, project):
        malformed = FakeConnector("first", items=[
            RawMention(
                source=None,
                title="Budget passes",
                text="Parliament approved the budget",
                url="https://news.example.com/a",
                engagement=None,
                follower_count="unknown",
            ),
        ])
        valid = FakeConnector("second", items=[
            make_raw("https://news.example.com/b", title="Budget debate", text="Opposition questions spending"),
        ])

        result = await make_orchestrator([malformed, valid]).ingest_project(project)

        assert result.inserted == 2
        stored = {m.url: m for m in mention_repo.list_for_project(project.id)}
        assert stored["https://news.example.com/a"].source == "first"
        assert stored["https://news.example.com/a"].engagement.likes == 0
        assert stored["https://news.example.com/a"].follower_count == 0

    @pytest.mark.asyncio
    async def test_database_error_propagates_and_stamps(
        self, make_orchestrator, mention_repo, project_repo, quota, account, project, monkeypatch
    ):
        first = FakeConnector("first", items=[
            make_raw("https://news.example.com/a", title="Budget passes", text="Parliament approved it"),
        ])
        second = FakeConnector("second", items=[
            make_raw("https://news.example.com/b", title="Budget debate", text="Opposition questions it"),
        ])

        original_insert = mention_repo.insert_many
        calls = []

        def flaky_insert(documents):
            calls.append(len(documents))
            if len(calls) == 2:
                raise OperationalError("INSERT INTO mentions", {}, Exception("disk I/O error"))
            return original_insert(documents)

        monkeypatch.setattr(mention_repo, "insert_many", flaky_insert)

        with pytest.raises(OperationalError):
            await make_orchestrator([first, second]).ingest_project(project)

        assert calls == [1, 1]
        assert mention_repo.count_for_project(project.id) == 1
        assert quota.get(account.id, "2026-03").mentions_count == 1
        assert project_repo.get(project.id).last_run_at == NOW

    @pytest.mark.asyncio
    async def test_alert_failure_keeps_usage(
        self, make_orchestrator, alert_engine, quota, account, project, monkeypatch
    ):
        async def broken_alert(*args, **kwargs):
            raise RuntimeError("alerts table missing")

        monkeypatch.setattr(alert_engine, "create_alert", broken_alert)
        connector = FakeConnector(items=[make_raw("https://news.example.com/a")])

        with pytest.raises(RuntimeError):
            await make_orchestrator([connector]).ingest_project(project)

        assert quota.get(account.id, "2026-03").mentions_count == 1
