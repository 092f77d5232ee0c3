from collections.abc import Mapping
from dataclasses import dataclass
import os

from dotenv import load_dotenv


load_dotenv()

STRATEGIES = ("concurrent", "chunked", "conservative")


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class RunConfig:
    total_users: int
    batch_size: int
    concurrent_batches: int
    default_password: str
    email_domain: str


@dataclass(frozen=True)
class Settings:
    supabase_url: str
    supabase_service_role_key: str
    seeding: RunConfig
    strategy: str
    database_url: str
    log_level: str
    debug: bool


def _int_setting(env: Mapping[str, str], name: str, default: str) -> int:
    raw = env.get(name) or default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


def get_settings(overrides: Mapping[str, str] | None = None) -> Settings:
    env: dict[str, str] = dict(os.environ)
    if overrides:
        env.update(overrides)

    return Settings(
        supabase_url=env.get("SUPABASE_URL", ""),
        supabase_service_role_key=env.get("SUPABASE_SERVICE_ROLE_KEY", ""),
        seeding=RunConfig(
            total_users=_int_setting(env, "TOTAL_USERS", "7000000"),
            batch_size=_int_setting(env, "BATCH_SIZE", "1000"),
            concurrent_batches=_int_setting(env, "CONCURRENT_BATCHES", "5"),
            default_password=env.get("DEFAULT_PASSWORD") or "password123",
            email_domain=env.get("EMAIL_DOMAIN") or "example.com",
        ),
        strategy=(env.get("SEED_STRATEGY") or "concurrent").lower(),
        database_url=env.get("DATABASE_URL", "sqlite:///./seed_runs.db"),
        log_level=env.get("LOG_LEVEL", "INFO"),
        debug=env.get("DEBUG", "").lower() in ("1", "true", "yes"),
    )


def validate_settings(settings: Settings) -> None:
    if not settings.supabase_url:
        raise ConfigError("SUPABASE_URL is required")
    if not settings.supabase_service_role_key:
        raise ConfigError("SUPABASE_SERVICE_ROLE_KEY is required")
    if settings.seeding.batch_size <= 0:
        raise ConfigError("BATCH_SIZE must be positive")
    if settings.seeding.concurrent_batches <= 0:
        raise ConfigError("CONCURRENT_BATCHES must be positive")
    if settings.strategy not in STRATEGIES:
        raise ConfigError(f"SEED_STRATEGY must be one of {', '.join(STRATEGIES)}")
