import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
import inspect
import logging
import math
import time

from authseed.config import RunConfig
from authseed.creator import AccountCreator, is_transient_error
from authseed.progress import ProgressReporter, calculate_eta, format_number
from authseed.records import AccountRecord, generate_account_batch, new_run_token
from authseed.retry import RetryExhaustedError, run_with_retries
from authseed.schemas import BatchOutcome, BatchSpec, RunSummary


logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[object]]
BatchCallback = Callable[[BatchOutcome], Awaitable[None] | None]


class RunPhase(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    FINISHED = "finished"


@dataclass
class RunState:
    total_count: int
    processed_count: int = 0
    error_count: int = 0
    started_at: float = 0.0

    def record_success(self, count: int = 1) -> None:
        self.processed_count += count

    def record_failure(self, count: int = 1) -> None:
        self.error_count += count


@dataclass
class _BatchTally:
    created: int = 0
    errors: int = 0


def plan_batches(total: int, batch_size: int) -> list[BatchSpec]:
    if batch_size <= 0:
        raise ValueError("batch_size must be positive")
    if total <= 0:
        return []

    batches: list[BatchSpec] = []
    for index in range(math.ceil(total / batch_size)):
        start = index * batch_size
        batches.append(BatchSpec(index=index, start=start, size=min(batch_size, total - start)))
    return batches


class BatchRunner:
    """Drives planned batches through an account creator and keeps the run totals.

    Subclasses decide how batches are scheduled (``_dispatch``) and how the
    records of one batch are created (``_process_records``). Everything else,
    including whole-batch failure accounting and progress output, lives here.
    """

    strategy = ""
    title = "Seeding"
    error_hint: list[str] = []

    def __init__(
        self,
        config: RunConfig,
        creator: AccountCreator,
        *,
        reporter: ProgressReporter | None = None,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        generate: Callable[..., list[AccountRecord]] = generate_account_batch,
        on_batch_complete: BatchCallback | None = None,
        run_token: str | None = None,
    ) -> None:
        self.config = config
        self.creator = creator
        self.reporter = reporter or ProgressReporter()
        self._sleep = sleep
        self._clock = clock
        self._generate = generate
        self._on_batch_complete = on_batch_complete
        self.run_token = run_token or new_run_token()
        self.state = RunState(total_count=config.total_users)
        self.phase = RunPhase.IDLE

    @property
    def batch_size(self) -> int:
        return self.config.batch_size

    def describe(self) -> list[str]:
        return [
            f"Total users: {format_number(self.config.total_users)}",
            f"Batch size: {format_number(self.batch_size)}",
        ]

    async def run(self) -> RunSummary:
        if self.phase is not RunPhase.IDLE:
            raise RuntimeError(f"runner already {self.phase.value}")

        batches = plan_batches(self.config.total_users, self.batch_size)
        self.phase = RunPhase.RUNNING
        self.state.started_at = self._clock()
        logger.info(
            "seeding started: strategy=%s total_users=%d batches=%d",
            self.strategy,
            self.config.total_users,
            len(batches),
            extra={"strategy": self.strategy, "total_users": self.config.total_users, "batches": len(batches)},
        )
        self.reporter.start(f"🚀 Starting {self.strategy} user seeding...", self.describe(), self.config.total_users)

        try:
            await self._dispatch(batches)
            self.phase = RunPhase.DRAINING
            await self._drain()
        finally:
            self.reporter.stop()

        self.phase = RunPhase.FINISHED
        summary = self._summary()
        logger.info(
            "seeding finished: processed=%d errors=%d duration=%.1fs",
            summary.processed_count,
            summary.error_count,
            summary.duration_seconds,
            extra={
                "strategy": self.strategy,
                "processed": summary.processed_count,
                "errors": summary.error_count,
                "duration_seconds": summary.duration_seconds,
            },
        )
        self.reporter.finish(summary, title=self.title, error_hint=self.error_hint)
        return summary

    async def _dispatch(self, batches: list[BatchSpec]) -> None:
        raise NotImplementedError

    async def _drain(self) -> None:
        return None

    async def _process_records(self, batch: BatchSpec, records: list[AccountRecord], tally: _BatchTally) -> None:
        raise NotImplementedError

    async def _run_batch(self, batch: BatchSpec) -> BatchOutcome:
        started = self._clock()
        tally = _BatchTally()
        try:
            records = self._generate(
                batch.size,
                self.config.email_domain,
                self.config.default_password,
                start_index=batch.start,
                run_token=self.run_token,
            )
            await self._process_records(batch, records, tally)
        except Exception as exc:
            # Only records not already counted in this batch become errors.
            unaccounted = max(batch.size - tally.created - tally.errors, 0)
            self._tally(tally, failures=unaccounted)
            logger.exception(
                "batch %d failed, %d records lost",
                batch.number,
                unaccounted,
                extra={"batch": batch.number, "lost": unaccounted},
            )
            self.reporter.batch_failed(batch.number, exc)
            outcome = self._outcome(batch, tally, started, status="failed", error=str(exc))
        else:
            self.reporter.batch_completed(
                self._batch_message(batch, tally),
                processed=self.state.processed_count,
                total=self.state.total_count,
                eta=self.eta(),
            )
            outcome = self._outcome(batch, tally, started, status="succeeded")

        if self._on_batch_complete:
            pending = self._on_batch_complete(outcome)
            if inspect.isawaitable(pending):
                await pending
        return outcome

    async def _create_jointly(self, records: list[AccountRecord], tally: _BatchTally) -> None:
        results = await asyncio.gather(*(self.creator.create(record) for record in records), return_exceptions=True)
        failures = sum(1 for result in results if isinstance(result, BaseException))
        self._tally(tally, successes=len(results) - failures, failures=failures)

    def _tally(self, tally: _BatchTally, *, successes: int = 0, failures: int = 0) -> None:
        tally.created += successes
        tally.errors += failures
        self.state.record_success(successes)
        self.state.record_failure(failures)
        self.reporter.advance(successes)

    def _batch_message(self, batch: BatchSpec, tally: _BatchTally) -> str:
        return f"Batch {batch.number}: {tally.created} users created, {tally.errors} errors"

    def _outcome(
        self,
        batch: BatchSpec,
        tally: _BatchTally,
        started: float,
        *,
        status: str,
        error: str | None = None,
    ) -> BatchOutcome:
        return BatchOutcome(
            batch=batch,
            created_count=tally.created,
            error_count=tally.errors,
            status=status,
            duration_ms=(self._clock() - started) * 1000,
            error=error,
        )

    def elapsed_seconds(self) -> float:
        return self._clock() - self.state.started_at

    def eta(self) -> str:
        return calculate_eta(self.state.processed_count, self.state.total_count, self.elapsed_seconds())

    def _summary(self) -> RunSummary:
        duration = self.elapsed_seconds()
        rate = round(self.state.processed_count / duration * 60) if duration > 0 else 0
        return RunSummary(
            strategy=self.strategy,
            total_count=self.state.total_count,
            processed_count=self.state.processed_count,
            error_count=self.state.error_count,
            duration_seconds=duration,
            users_per_minute=rate,
        )


class ConcurrentRunner(BatchRunner):
    strategy = "concurrent"
    title = "🎉 Seeding completed!"
    error_hint = [
        "⚠️  Some users failed to create. Check your logs for details.",
        "   This might be due to duplicate emails or API rate limits.",
    ]
    batch_pause_seconds = 0.1

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._tasks: list[asyncio.Task[None]] = []
        self._failure: Exception | None = None

    def describe(self) -> list[str]:
        return super().describe() + [f"Concurrent batches: {self.config.concurrent_batches}"]

    async def _dispatch(self, batches: list[BatchSpec]) -> None:
        slots = asyncio.Semaphore(self.config.concurrent_batches)
        for batch in batches:
            await slots.acquire()
            if self._failure is not None:
                slots.release()
                logger.error(
                    "stopped dispatching at batch %d after a run-level failure: %s",
                    batch.number,
                    self._failure,
                    extra={"batch": batch.number},
                )
                return
            self._tasks.append(asyncio.create_task(self._run_slot(batch, slots)))

    async def _run_slot(self, batch: BatchSpec, slots: asyncio.Semaphore) -> None:
        try:
            await self._run_batch(batch)
            await self._sleep(self.batch_pause_seconds)
        except Exception as exc:
            # Recorded before the slot is released so dispatch sees it first.
            if self._failure is None:
                self._failure = exc
        finally:
            slots.release()

    async def _drain(self) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks)
        if self._failure is not None:
            raise self._failure

    async def _process_records(self, batch: BatchSpec, records: list[AccountRecord], tally: _BatchTally) -> None:
        await self._create_jointly(records, tally)


class ChunkedRunner(BatchRunner):
    strategy = "chunked"
    title = "🎉 Batch seeding completed!"
    chunk_size = 100
    chunk_pause_seconds = 0.05
    batch_pause_seconds = 0.2

    async def _dispatch(self, batches: list[BatchSpec]) -> None:
        for batch in batches:
            await self._run_batch(batch)
            await self._sleep(self.batch_pause_seconds)

    async def _process_records(self, batch: BatchSpec, records: list[AccountRecord], tally: _BatchTally) -> None:
        logger.debug(
            "processing batch %d (%d records)",
            batch.number,
            batch.size,
            extra={"batch": batch.number, "size": batch.size},
        )
        for offset in range(0, len(records), self.chunk_size):
            await self._create_jointly(records[offset : offset + self.chunk_size], tally)
            await self._sleep(self.chunk_pause_seconds)

    def _batch_message(self, batch: BatchSpec, tally: _BatchTally) -> str:
        return f"Batch {batch.number} completed: {tally.created} users created, {tally.errors} errors"


class ConservativeRunner(BatchRunner):
    strategy = "conservative"
    title = "🎉 Conservative seeding completed!"
    error_hint = [
        "⚠️  Some users failed to create due to network issues or rate limits.",
        "   This is normal for large datasets. You can re-run to create more users.",
    ]
    max_batch_size = 100
    max_retries = 2
    backoff_seconds = 1.0
    record_pause_seconds = 0.1
    batch_pause_seconds = 2.0
    warn_every = 10

    @property
    def batch_size(self) -> int:
        return min(self.config.batch_size, self.max_batch_size)

    def describe(self) -> list[str]:
        return [
            f"Total users: {format_number(self.config.total_users)}",
            f"Batch size: {format_number(self.batch_size)} (reduced for stability)",
            f"Delay between batches: {self.batch_pause_seconds:g}s",
        ]

    async def _dispatch(self, batches: list[BatchSpec]) -> None:
        for position, batch in enumerate(batches):
            await self._run_batch(batch)
            if position < len(batches) - 1:
                await self._sleep(self.batch_pause_seconds)

    async def _process_records(self, batch: BatchSpec, records: list[AccountRecord], tally: _BatchTally) -> None:
        for position, record in enumerate(records):
            try:
                await self.create_with_retry(record)
            except RetryExhaustedError as exc:
                self._tally(tally, failures=1)
                logger.debug(
                    "giving up on user %s: %s",
                    record.email,
                    exc,
                    extra={"email": record.email, "error": str(exc)},
                )
                if position % self.warn_every == 0:
                    self.reporter.warn(f"Error creating user {position + 1} in batch {batch.number}")
                continue

            self._tally(tally, successes=1)
            await self._sleep(self.record_pause_seconds)

    async def create_with_retry(self, record: AccountRecord) -> None:
        def log_attempt(attempt: int, exc: Exception) -> None:
            logger.debug(
                "attempt %d for user %s failed: %s",
                attempt,
                record.email,
                exc,
                extra={"email": record.email, "attempt": attempt, "error": str(exc)},
            )

        await run_with_retries(
            lambda: self.creator.create(record),
            max_retries=self.max_retries,
            backoff_seconds=self.backoff_seconds,
            on_attempt_failure=log_attempt,
            should_retry=is_transient_error,
            sleep=self._sleep,
        )


RUNNERS: dict[str, type[BatchRunner]] = {
    ConcurrentRunner.strategy: ConcurrentRunner,
    ChunkedRunner.strategy: ChunkedRunner,
    ConservativeRunner.strategy: ConservativeRunner,
}


def build_runner(strategy: str, config: RunConfig, creator: AccountCreator, **kwargs) -> BatchRunner:
    try:
        runner_cls = RUNNERS[strategy]
    except KeyError as exc:
        raise ValueError(f"unknown seeding strategy: {strategy}") from exc
    return runner_cls(config, creator, **kwargs)
