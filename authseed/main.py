import argparse
import asyncio
import logging

from rich.console import Console
from rich.markup import escape

from authseed.config import STRATEGIES, ConfigError, Settings, get_settings, validate_settings
from authseed.creator import SupabaseAccountCreator
from authseed.database import build_session_factory, dispose_session_factory
from authseed.pipeline import SeedPipeline
from authseed.progress import ProgressReporter, format_number
from authseed.schemas import RunSummary


logger = logging.getLogger(__name__)

ENVIRONMENT_HELP = """\
Environment Variables:
  SUPABASE_URL              Your Supabase project URL
  SUPABASE_SERVICE_ROLE_KEY Your Supabase service role key
  TOTAL_USERS               Total number of users to seed (default: 7000000)
  BATCH_SIZE                Batch size (default: 1000)
  CONCURRENT_BATCHES        Concurrent batches (default: 5)
  DEFAULT_PASSWORD          Default password for users (default: password123)
  EMAIL_DOMAIN              Email domain for generated users (default: example.com)
  SEED_STRATEGY             concurrent, chunked or conservative (default: concurrent)
  DATABASE_URL              Run ledger database (default: sqlite:///./seed_runs.db)
"""

NUMERIC_OVERRIDES = {
    "users": "TOTAL_USERS",
    "batch": "BATCH_SIZE",
    "concurrent": "CONCURRENT_BATCHES",
}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="authseed",
        description="Seed Supabase Auth with synthetic user accounts",
        epilog=ENVIRONMENT_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--users", metavar="NUMBER", help="Override total number of users to seed")
    parser.add_argument("--batch", metavar="NUMBER", help="Override batch size")
    parser.add_argument("--concurrent", metavar="N", help="Override number of concurrent batches")
    parser.add_argument("--strategy", metavar="NAME", help=f"Seeding strategy to run ({', '.join(STRATEGIES)})")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args, unknown = parser.parse_known_args(argv)
    args.unknown = unknown
    return args


def build_overrides(args: argparse.Namespace) -> tuple[dict[str, str], list[str]]:
    overrides: dict[str, str] = {}
    ignored: list[str] = []
    for option, env_name in NUMERIC_OVERRIDES.items():
        raw = getattr(args, option)
        if raw is None:
            continue
        try:
            overrides[env_name] = str(int(raw))
        except ValueError:
            ignored.append(f"--{option}={raw}")
    ignored.extend(getattr(args, "unknown", []))
    if args.strategy:
        overrides["SEED_STRATEGY"] = args.strategy
    if args.debug:
        overrides["DEBUG"] = "true"
    return overrides, ignored


def print_plan(console: Console, settings: Settings) -> None:
    console.print("[green]✅ Configuration validated successfully[/green]")
    console.print(f"📊 Planning to seed {format_number(settings.seeding.total_users)} users")
    console.print(f"📦 Batch size: {settings.seeding.batch_size}")
    console.print(f"⚡ Concurrent batches: {settings.seeding.concurrent_batches}")
    console.print(f"🧭 Strategy: {settings.strategy}")


def print_config_help(console: Console) -> None:
    console.print()
    console.print("[yellow]💡 Make sure you have:[/yellow]")
    console.print("[yellow]   1. Created a .env file with your Supabase credentials[/yellow]")
    console.print("[yellow]   2. Set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY[/yellow]")
    console.print("[yellow]   3. Copied env.example to .env and filled in your values[/yellow]")


async def seed(settings: Settings, pipeline: SeedPipeline) -> RunSummary:
    creator = await SupabaseAccountCreator.connect(
        settings.supabase_url,
        settings.supabase_service_role_key,
        log_failures=settings.debug,
    )
    return await pipeline.run(creator)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    console = Console()
    console.print("[bold blue]🚀 Supabase Auth User Seeder[/bold blue]")
    console.print()

    overrides, ignored = build_overrides(args)
    try:
        settings = get_settings(overrides)
        validate_settings(settings)
    except ConfigError as exc:
        console.print("[bold red]❌ Seeding failed:[/bold red]")
        console.print(f"[red]{escape(str(exc))}[/red]")
        print_config_help(console)
        raise SystemExit(1) from exc

    log_level = "DEBUG" if settings.debug else settings.log_level
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    for option in ignored:
        logger.warning("ignoring argument %s", option)

    print_plan(console, settings)
    console.print()

    session_factory = build_session_factory(settings.database_url)
    pipeline = SeedPipeline(settings, session_factory, reporter=ProgressReporter(console))
    try:
        asyncio.run(seed(settings, pipeline))
    except Exception as exc:
        console.print("[bold red]❌ Seeding failed:[/bold red]")
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise SystemExit(1) from exc
    finally:
        dispose_session_factory(session_factory)

    console.print()
    console.print("[bold green]✨ All done! Check your Supabase dashboard to verify the users.[/bold green]")


if __name__ == "__main__":
    main()
