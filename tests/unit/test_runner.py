"""Unit tests for the ingestion runner."""

import asyncio

import pytest

from fakes import ALWAYS, FakeRenderer, FakeStore, RecordingSleep, table
from stat_ingest.errors import StoreConnectionError, StoreWriteError
from stat_ingest.extractors.registry import SpecRegistry
from stat_ingest.models.run import TargetStatus
from stat_ingest.models.spec import ExtractionSpec, ScrapeTarget
from stat_ingest.services.runner import IngestionRunner

MADRID = "https://liquipedia.test/2024/Madrid/Statistics"
TOKYO = "https://liquipedia.test/2023/Tokyo/Statistics"
CHAMPS = "https://liquipedia.test/2023/Champions/Statistics"

HEADERS = ["#", "Player", "K"]


def _runner(renderer, store, registry, sleep, **kwargs) -> IngestionRunner:
    return IngestionRunner(
        renderer=renderer,
        store=store,
        registry=registry,
        db_name="game_stats",
        collection_name="player_stats",
        sleep=sleep,
        **kwargs,
    )


def _target(url: str, label: str, spec_name: str = "vct") -> ScrapeTarget:
    return ScrapeTarget(url=url, spec_name=spec_name, label=label)


class TestSuccessfulRun:
    @pytest.mark.asyncio
    async def test_records_persisted_in_one_batch(self, registry, store, sleep):
        renderer = FakeRenderer(
            tables={
                MADRID: table(HEADERS, ["1", "Ace", "20"], ["2", "Bolt", "18"]),
                TOKYO: table(HEADERS, ["1", "Cyan", "31"]),
            }
        )
        runner = _runner(renderer, store, registry, sleep)

        report = await runner.run([_target(MADRID, "Masters Madrid"), _target(TOKYO, "Masters Tokyo")])

        expected = [
            {"Event": "Masters Madrid", "Player": "Ace", "Kills": "20"},
            {"Event": "Masters Madrid", "Player": "Bolt", "Kills": "18"},
            {"Event": "Masters Tokyo", "Player": "Cyan", "Kills": "31"},
        ]
        assert report.records == expected
        assert store.connect_calls == 1
        assert store.batches == [expected]
        assert store.collections == [("game_stats", "player_stats")]
        assert store.closed == 1
        assert report.inserted_ids == ["id-1-0", "id-1-1", "id-1-2"]
        assert [o.status for o in report.outcomes] == [TargetStatus.SUCCEEDED] * 2
        assert sleep.calls == []

    @pytest.mark.asyncio
    async def test_every_session_closed(self, registry, store, sleep):
        renderer = FakeRenderer(tables={MADRID: table(HEADERS, ["1", "Ace", "20"])})
        runner = _runner(renderer, store, registry, sleep)

        await runner.run([_target(MADRID, "Masters Madrid")])

        assert len(renderer.sessions) == 1
        assert all(s.closed for s in renderer.sessions)

    @pytest.mark.asyncio
    async def test_zero_rows_is_success_not_failure(self, registry, store, sleep):
        renderer = FakeRenderer(tables={MADRID: table(HEADERS)})
        runner = _runner(renderer, store, registry, sleep)

        report = await runner.run([_target(MADRID, "Masters Madrid")])

        outcome = report.outcomes[0]
        assert outcome.status == TargetStatus.SUCCEEDED
        assert outcome.attempts == 1
        assert outcome.records_extracted == 0
        assert report.records == []


class TestRetries:
    @pytest.mark.asyncio
    async def test_recovers_after_transient_failures(self, registry, store, sleep):
        renderer = FakeRenderer(
            tables={MADRID: table(HEADERS, ["1", "Ace", "20"])},
            failures={MADRID: 2},
        )
        runner = _runner(renderer, store, registry, sleep, max_attempts=5, backoff_ms=5000)

        report = await runner.run([_target(MADRID, "Masters Madrid")])

        outcome = report.outcomes[0]
        assert outcome.status == TargetStatus.SUCCEEDED
        assert outcome.attempts == 3
        assert sleep.calls == [5.0, 5.0]
        assert renderer.navigations == [MADRID] * 3
        assert len(report.records) == 1

    @pytest.mark.asyncio
    async def test_exhausts_after_max_attempts(self, registry, store, sleep):
        renderer = FakeRenderer(failures={MADRID: ALWAYS})
        runner = _runner(renderer, store, registry, sleep, max_attempts=5, backoff_ms=5000)

        report = await runner.run([_target(MADRID, "Masters Madrid")])

        outcome = report.outcomes[0]
        assert outcome.status == TargetStatus.EXHAUSTED
        assert outcome.attempts == 5
        assert "ERR_CONNECTION_RESET" in outcome.last_error
        assert renderer.navigations == [MADRID] * 5
        assert sleep.calls == [5.0] * 4
        assert report.records == []

    @pytest.mark.asyncio
    async def test_selector_timeout_is_retried(self, registry, store, sleep):
        # No table for MADRID: every attempt times out waiting for it
        renderer = FakeRenderer()
        runner = _runner(renderer, store, registry, sleep, max_attempts=2)

        report = await runner.run([_target(MADRID, "Masters Madrid")])

        assert report.outcomes[0].status == TargetStatus.EXHAUSTED
        assert report.outcomes[0].attempts == 2
        assert len(renderer.sessions) == 2
        assert all(s.closed for s in renderer.sessions)

    @pytest.mark.asyncio
    async def test_invalid_spec_not_retried(self, registry, stats_spec, store, sleep):
        broken = ExtractionSpec.model_construct(
            **{**stats_spec.model_dump(), "cell_selector": " "}
        )
        registry.register("broken", broken)
        renderer = FakeRenderer(tables={TOKYO: table(HEADERS, ["1", "Cyan", "31"])})
        runner = _runner(renderer, store, registry, sleep, max_attempts=5)

        report = await runner.run(
            [_target(MADRID, "Masters Madrid", spec_name="broken"), _target(TOKYO, "Masters Tokyo")]
        )

        broken_outcome, tokyo = report.outcomes
        assert broken_outcome.status == TargetStatus.EXHAUSTED
        assert broken_outcome.attempts == 1
        assert "cell_selector" in broken_outcome.last_error
        assert tokyo.status == TargetStatus.SUCCEEDED
        assert renderer.navigations == [TOKYO]
        assert sleep.calls == []

    @pytest.mark.asyncio
    async def test_budget_not_shared_between_targets(self, registry, store, sleep):
        renderer = FakeRenderer(
            tables={TOKYO: table(HEADERS, ["1", "Cyan", "31"])},
            failures={MADRID: ALWAYS, TOKYO: 2},
        )
        runner = _runner(renderer, store, registry, sleep, max_attempts=3)

        report = await runner.run(
            [_target(MADRID, "Masters Madrid"), _target(TOKYO, "Masters Tokyo")]
        )

        madrid, tokyo = report.outcomes
        assert madrid.status == TargetStatus.EXHAUSTED
        assert madrid.attempts == 3
        assert tokyo.status == TargetStatus.SUCCEEDED
        assert tokyo.attempts == 3
        assert report.records == [{"Event": "Masters Tokyo", "Player": "Cyan", "Kills": "31"}]

    @pytest.mark.asyncio
    async def test_exhausted_target_does_not_abort_run(self, registry, store, sleep):
        renderer = FakeRenderer(
            tables={TOKYO: table(HEADERS, ["1", "Cyan", "31"])},
            failures={MADRID: ALWAYS},
        )
        runner = _runner(renderer, store, registry, sleep, max_attempts=1)

        report = await runner.run(
            [_target(MADRID, "Masters Madrid"), _target(TOKYO, "Masters Tokyo")]
        )

        assert [o.status for o in report.outcomes] == [
            TargetStatus.EXHAUSTED,
            TargetStatus.SUCCEEDED,
        ]
        assert store.batches == [report.records]
        assert sleep.calls == []

    @pytest.mark.asyncio
    async def test_session_acquisition_failure_is_retried(self, registry, store, sleep):
        class FlakyRenderer(FakeRenderer):
            def __init__(self, *args, **kwargs):
                super().__init__(*args, **kwargs)
                self.refusals = 1

            async def new_session(self):
                if self.refusals:
                    self.refusals -= 1
                    raise RuntimeError("browser crashed")
                return await super().new_session()

        renderer = FlakyRenderer(tables={MADRID: table(HEADERS, ["1", "Ace", "20"])})
        runner = _runner(renderer, store, registry, sleep)

        report = await runner.run([_target(MADRID, "Masters Madrid")])

        assert report.outcomes[0].status == TargetStatus.SUCCEEDED
        assert report.outcomes[0].attempts == 2

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, registry, store):
        async def cancelled_sleep(_seconds):
            raise asyncio.CancelledError

        renderer = FakeRenderer(failures={MADRID: ALWAYS})
        runner = _runner(renderer, store, registry, cancelled_sleep)

        with pytest.raises(asyncio.CancelledError):
            await runner.run([_target(MADRID, "Masters Madrid")])
        assert store.connect_calls == 0


class TestSkips:
    @pytest.mark.asyncio
    async def test_unknown_spec_skipped_without_attempts(self, registry, store, sleep):
        renderer = FakeRenderer(tables={TOKYO: table(HEADERS, ["1", "Cyan", "31"])})
        runner = _runner(renderer, store, registry, sleep)

        report = await runner.run(
            [
                _target(MADRID, "Masters Madrid", spec_name="unregistered"),
                _target(TOKYO, "Masters Tokyo"),
            ]
        )

        skipped, tokyo = report.outcomes
        assert skipped.status == TargetStatus.SKIPPED
        assert skipped.attempts == 0
        assert "unregistered" in skipped.last_error
        assert tokyo.status == TargetStatus.SUCCEEDED
        assert renderer.navigations == [TOKYO]
        assert len(renderer.sessions) == 1


class TestPersistence:
    @pytest.mark.asyncio
    async def test_no_store_call_when_nothing_extracted(self, registry, sleep):
        store = FakeStore()
        renderer = FakeRenderer(failures={MADRID: ALWAYS})
        runner = _runner(renderer, store, registry, sleep, max_attempts=1)

        report = await runner.run([_target(MADRID, "Masters Madrid")])

        assert store.connect_calls == 0
        assert report.inserted_ids == []

    @pytest.mark.asyncio
    async def test_no_store_call_for_empty_target_list(self, registry, store, sleep):
        runner = _runner(FakeRenderer(), store, registry, sleep)

        report = await runner.run([])

        assert report.outcomes == []
        assert store.connect_calls == 0

    @pytest.mark.asyncio
    async def test_write_failure_propagates_with_report(self, registry, sleep):
        store = FakeStore(fail_write=True)
        renderer = FakeRenderer(tables={MADRID: table(HEADERS, ["1", "Ace", "20"])})
        runner = _runner(renderer, store, registry, sleep)

        with pytest.raises(StoreWriteError) as exc_info:
            await runner.run([_target(MADRID, "Masters Madrid")])

        report = exc_info.value.details["report"]
        assert report.records == [{"Event": "Masters Madrid", "Player": "Ace", "Kills": "20"}]
        assert store.closed == 1

    @pytest.mark.asyncio
    async def test_connect_failure_propagates(self, registry, sleep):
        store = FakeStore(fail_connect=True)
        renderer = FakeRenderer(tables={MADRID: table(HEADERS, ["1", "Ace", "20"])})
        runner = _runner(renderer, store, registry, sleep)

        with pytest.raises(StoreConnectionError) as exc_info:
            await runner.run([_target(MADRID, "Masters Madrid")])
        assert len(exc_info.value.details["report"].records) == 1
        assert store.closed == 0

    @pytest.mark.asyncio
    async def test_persist_can_be_retried_without_re_extracting(self, registry, sleep):
        store = FakeStore(fail_write=True)
        renderer = FakeRenderer(tables={MADRID: table(HEADERS, ["1", "Ace", "20"])})
        runner = _runner(renderer, store, registry, sleep)

        with pytest.raises(StoreWriteError) as exc_info:
            await runner.run([_target(MADRID, "Masters Madrid")])
        report = exc_info.value.details["report"]

        store.fail_write = False
        ids = await runner.persist(report.records)

        assert ids == ["id-1-0"]
        assert store.batches == [report.records]
        assert renderer.navigations == [MADRID]


class TestConstruction:
    def test_from_settings(self, settings, store):
        runner = IngestionRunner.from_settings(
            settings,
            renderer=FakeRenderer(),
            store=store,
            registry=SpecRegistry(),
        )
        assert runner._max_attempts == 3
        assert runner._backoff_ms == 10
        assert runner._db_name == "game_stats"
        assert runner._collection_name == "player_stats"

    def test_rejects_zero_attempts(self, store):
        with pytest.raises(ValueError):
            IngestionRunner(
                renderer=FakeRenderer(),
                store=store,
                registry=SpecRegistry(),
                db_name="d",
                collection_name="c",
                max_attempts=0,
            )

    @pytest.mark.asyncio
    async def test_default_backoff_is_five_seconds(self, registry, store):
        sleep = RecordingSleep()
        renderer = FakeRenderer(failures={MADRID: ALWAYS})
        runner = _runner(renderer, store, registry, sleep)

        report = await runner.run([_target(MADRID, "Masters Madrid")])

        assert report.outcomes[0].attempts == 5
        assert sleep.calls == [5.0] * 4
