import asyncio
import threading
from dataclasses import replace

import pytest

from authseed.database import build_session_factory
from authseed.pipeline import SeedPipeline
from authseed.run_store import get_run, list_batches, record_batch
from support import StubCreator, rejection


def test_successful_run_is_recorded_in_ledger(pipeline) -> None:
    summary = asyncio.run(pipeline.run(StubCreator()))

    assert summary.processed_count == 10
    assert summary.error_count == 0

    with pipeline.session_factory() as db:
        run = get_run(db, pipeline.last_run_id)
        assert run.status == "succeeded"
        assert run.strategy == "concurrent"
        assert run.processed_count == 10
        assert run.error_count == 0
        assert run.completed_at is not None

        batches = list_batches(db, run.id)
        assert [batch.batch_index for batch in batches] == [0, 1, 2, 3]
        assert [batch.requested_size for batch in batches] == [3, 3, 3, 1]
        assert all(batch.status == "succeeded" for batch in batches)


def test_ledger_tracks_per_batch_errors(pipeline, test_settings) -> None:
    pipeline.settings = replace(test_settings, strategy="chunked")
    creator = StubCreator(fail_when=lambda number, record: rejection(record) if number % 5 == 0 else None)

    summary = asyncio.run(pipeline.run(creator))

    with pipeline.session_factory() as db:
        run = get_run(db, pipeline.last_run_id)
        assert run.strategy == "chunked"
        assert run.error_count == summary.error_count == 2
        assert sum(batch.error_count for batch in list_batches(db, run.id)) == 2


def test_conservative_run_records_capped_batch_size(pipeline, test_settings) -> None:
    seeding = replace(test_settings.seeding, total_users=5, batch_size=500)
    pipeline.settings = replace(test_settings, strategy="conservative", seeding=seeding)

    asyncio.run(pipeline.run(StubCreator()))

    with pipeline.session_factory() as db:
        run = get_run(db, pipeline.last_run_id)
        assert run.batch_size == 100
        assert run.processed_count == 5


def test_run_level_failure_marks_run_failed(test_settings, quiet_reporter, recording_sleep, monkeypatch) -> None:
    def unavailable_ledger(*args, **kwargs):
        raise RuntimeError("ledger unavailable")

    session_factory = build_session_factory(test_settings.database_url)
    pipeline = SeedPipeline(test_settings, session_factory, reporter=quiet_reporter, sleep=recording_sleep)
    monkeypatch.setattr("authseed.pipeline.record_batch", unavailable_ledger)

    with pytest.raises(RuntimeError, match="ledger unavailable"):
        asyncio.run(pipeline.run(StubCreator()))

    with session_factory() as db:
        run = get_run(db, pipeline.last_run_id)
        assert run.status == "failed"
        assert run.error == "ledger unavailable"


def test_ledger_writes_run_off_the_event_loop_thread(pipeline, monkeypatch) -> None:
    write_threads: list[int] = []

    def tracking_record_batch(db, run_id, outcome) -> None:
        write_threads.append(threading.get_ident())
        record_batch(db, run_id, outcome)

    monkeypatch.setattr("authseed.pipeline.record_batch", tracking_record_batch)

    asyncio.run(pipeline.run(StubCreator()))

    assert len(write_threads) == 4
    assert threading.get_ident() not in write_threads
    with pipeline.session_factory() as db:
        assert len(list_batches(db, pipeline.last_run_id)) == 4
