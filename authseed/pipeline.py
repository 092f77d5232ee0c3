import asyncio
from collections.abc import Callable
import logging
from typing import TypeVar

from sqlalchemy.orm import Session, sessionmaker

from authseed.config import Settings
from authseed.creator import AccountCreator
from authseed.database import ledger_session
from authseed.progress import ProgressReporter
from authseed.run_store import create_run, mark_run_failed, mark_run_succeeded, record_batch
from authseed.runner import Sleep, build_runner
from authseed.schemas import BatchOutcome, RunSummary


logger = logging.getLogger(__name__)
T = TypeVar("T")


class SeedPipeline:
    """Runs one seeding job with the configured strategy and records it in the ledger.

    Ledger writes run on a worker thread, one at a time, so a slow database
    never stalls the account creations in flight on the event loop.
    """

    def __init__(
        self,
        settings: Settings,
        session_factory: sessionmaker[Session],
        *,
        reporter: ProgressReporter | None = None,
        sleep: Sleep | None = None,
    ) -> None:
        self.settings = settings
        self.session_factory = session_factory
        self.reporter = reporter
        self.sleep = sleep
        self.last_run_id: int | None = None
        self._ledger_lock = asyncio.Lock()

    async def run(self, creator: AccountCreator) -> RunSummary:
        runner_kwargs: dict[str, object] = {"reporter": self.reporter}
        if self.sleep is not None:
            runner_kwargs["sleep"] = self.sleep

        run_id: int | None = None

        async def on_batch_complete(outcome: BatchOutcome) -> None:
            await self._write(lambda db: record_batch(db, run_id, outcome))

        runner = build_runner(
            self.settings.strategy,
            self.settings.seeding,
            creator,
            on_batch_complete=on_batch_complete,
            **runner_kwargs,
        )
        run_id = await self._write(
            lambda db: create_run(
                db,
                strategy=runner.strategy,
                total_users=self.settings.seeding.total_users,
                batch_size=runner.batch_size,
            )
        )
        self.last_run_id = run_id

        try:
            summary = await runner.run()
        except Exception as exc:
            await self._write(lambda db: mark_run_failed(db, run_id, error=str(exc)))
            logger.exception(
                "seeding run %d failed: %s",
                run_id,
                exc,
                extra={"run_id": run_id, "strategy": runner.strategy},
            )
            raise

        await self._write(lambda db: mark_run_succeeded(db, run_id, summary))
        logger.info(
            "seeding run %d recorded: processed=%d errors=%d",
            run_id,
            summary.processed_count,
            summary.error_count,
            extra={"run_id": run_id, "processed": summary.processed_count, "errors": summary.error_count},
        )
        return summary

    async def _write(self, fn: Callable[[Session], T]) -> T:
        async with self._ledger_lock:
            return await asyncio.to_thread(self._in_session, fn)

    def _in_session(self, fn: Callable[[Session], T]) -> T:
        with ledger_session(self.session_factory) as db:
            return fn(db)
