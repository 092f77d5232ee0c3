import logging
from typing import Protocol

import httpx
from supabase import AsyncClient, AsyncClientOptions, acreate_client

from authseed.records import AccountRecord


logger = logging.getLogger(__name__)

TRANSIENT_MARKERS = (
    "fetch failed",
    "etimedout",
    "econnreset",
    "timed out",
    "timeout",
    "connection reset",
)


class AccountCreationError(RuntimeError):
    def __init__(self, email: str, reason: str) -> None:
        super().__init__(f"failed to create {email}: {reason}")
        self.email = email
        self.reason = reason


class AccountCreator(Protocol):
    async def create(self, record: AccountRecord) -> None: ...


def is_transient_error(exc: BaseException) -> bool:
    """Return True when a failure looks like a network blip worth retrying."""
    current: BaseException | None = exc
    while current is not None:
        if isinstance(current, (httpx.TimeoutException, httpx.NetworkError)):
            return True
        # The wrapper's own message embeds the email, so only its reason is checked.
        text = current.reason if isinstance(current, AccountCreationError) else str(current)
        message = text.lower()
        if any(marker in message for marker in TRANSIENT_MARKERS):
            return True
        current = current.__cause__
    return False


class SupabaseAccountCreator:
    def __init__(self, client: AsyncClient, *, log_failures: bool = False) -> None:
        self.client = client
        self.log_failures = log_failures

    @classmethod
    async def connect(cls, url: str, service_role_key: str, *, log_failures: bool = False) -> "SupabaseAccountCreator":
        client = await acreate_client(
            url,
            service_role_key,
            options=AsyncClientOptions(auto_refresh_token=False, persist_session=False),
        )
        return cls(client, log_failures=log_failures)

    async def create(self, record: AccountRecord) -> None:
        try:
            await self.client.auth.admin.create_user(
                {
                    "email": record.email,
                    "password": record.password,
                    "email_confirm": True,
                    "user_metadata": record.user_metadata,
                }
            )
        except Exception as exc:
            if self.log_failures:
                logger.debug(
                    "failed to create user %s: %s",
                    record.email,
                    exc,
                    extra={"email": record.email, "error": str(exc)},
                )
            raise AccountCreationError(record.email, str(exc)) from exc
