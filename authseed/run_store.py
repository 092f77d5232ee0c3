from sqlalchemy import select
from sqlalchemy.orm import Session

from authseed.db_models import SeedBatch, SeedRun, utc_now
from authseed.schemas import BatchOutcome, RunSummary


def create_run(db: Session, *, strategy: str, total_users: int, batch_size: int) -> int:
    run = SeedRun(
        strategy=strategy,
        status="running",
        total_users=total_users,
        batch_size=batch_size,
        started_at=utc_now(),
    )
    db.add(run)
    db.commit()
    db.refresh(run)
    return run.id


def _require_run(db: Session, run_id: int) -> SeedRun:
    run = db.get(SeedRun, run_id)
    if run is None:
        raise LookupError(f"seed run {run_id} not found")
    return run


def record_batch(db: Session, run_id: int, outcome: BatchOutcome) -> None:
    run = _require_run(db, run_id)
    batch = SeedBatch(
        run_id=run_id,
        batch_index=outcome.batch.index,
        requested_size=outcome.batch.size,
        created_count=outcome.created_count,
        error_count=outcome.error_count,
        status=outcome.status,
        duration_ms=outcome.duration_ms,
        error=outcome.error,
    )
    db.add(batch)
    # Running totals stay current so an interrupted run still shows progress.
    run.processed_count += outcome.created_count
    run.error_count += outcome.error_count
    db.commit()


def mark_run_succeeded(db: Session, run_id: int, summary: RunSummary) -> None:
    run = _require_run(db, run_id)
    run.status = "succeeded"
    run.processed_count = summary.processed_count
    run.error_count = summary.error_count
    run.duration_seconds = summary.duration_seconds
    run.completed_at = utc_now()
    run.error = None
    db.commit()


def mark_run_failed(db: Session, run_id: int, *, error: str) -> None:
    run = _require_run(db, run_id)
    finished_at = utc_now()
    run.status = "failed"
    run.error = error
    run.completed_at = finished_at
    run.duration_seconds = (finished_at - run.started_at).total_seconds()
    db.commit()


def get_run(db: Session, run_id: int) -> SeedRun | None:
    return db.get(SeedRun, run_id)


def list_batches(db: Session, run_id: int) -> list[SeedBatch]:
    stmt = select(SeedBatch).where(SeedBatch.run_id == run_id).order_by(SeedBatch.batch_index)
    return list(db.execute(stmt).scalars().all())
