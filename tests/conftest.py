from pathlib import Path

import pytest

from authseed.config import RunConfig, Settings
from authseed.database import build_session_factory
from authseed.pipeline import SeedPipeline
from authseed.progress import ProgressReporter
from support import RecordingSleep


@pytest.fixture()
def quiet_reporter() -> ProgressReporter:
    return ProgressReporter(quiet=True)


@pytest.fixture()
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def run_config() -> RunConfig:
    return RunConfig(
        total_users=10,
        batch_size=3,
        concurrent_batches=2,
        default_password="password123",
        email_domain="example.com",
    )


@pytest.fixture()
def test_settings(tmp_path: Path, run_config: RunConfig) -> Settings:
    return Settings(
        supabase_url="https://project.supabase.co",
        supabase_service_role_key="service-role-key",
        seeding=run_config,
        strategy="concurrent",
        database_url=f"sqlite:///{tmp_path / 'ledger.db'}",
        log_level="INFO",
        debug=False,
    )


@pytest.fixture()
def pipeline(test_settings: Settings, quiet_reporter: ProgressReporter, recording_sleep: RecordingSleep) -> SeedPipeline:
    session_factory = build_session_factory(test_settings.database_url)
    return SeedPipeline(test_settings, session_factory, reporter=quiet_reporter, sleep=recording_sleep)
