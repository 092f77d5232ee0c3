from dataclasses import dataclass


@dataclass(frozen=True)
class BatchSpec:
    index: int
    start: int
    size: int

    @property
    def number(self) -> int:
        return self.index + 1


@dataclass(frozen=True)
class BatchOutcome:
    batch: BatchSpec
    created_count: int
    error_count: int
    status: str
    duration_ms: float
    error: str | None = None


@dataclass(frozen=True)
class RunSummary:
    strategy: str
    total_count: int
    processed_count: int
    error_count: int
    duration_seconds: float
    users_per_minute: int
