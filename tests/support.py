from collections.abc import Callable

from authseed.creator import AccountCreationError
from authseed.records import AccountRecord


class StubCreator:
    """Counts create calls and fails the ones ``fail_when`` picks by call number."""

    def __init__(self, fail_when: Callable[[int, AccountRecord], Exception | None] | None = None) -> None:
        self.fail_when = fail_when
        self.calls: list[AccountRecord] = []
        self.created: list[str] = []

    async def create(self, record: AccountRecord) -> None:
        call_number = len(self.calls)
        self.calls.append(record)
        error = self.fail_when(call_number, record) if self.fail_when else None
        if error is not None:
            raise error
        self.created.append(record.email)


class RecordingSleep:
    def __init__(self) -> None:
        self.waits: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.waits.append(seconds)


def rejection(record: AccountRecord, reason: str = "User already registered") -> AccountCreationError:
    return AccountCreationError(record.email, reason)
