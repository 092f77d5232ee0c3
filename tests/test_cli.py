import argparse
import os
from pathlib import Path
import subprocess
import sys

import pytest

from authseed.main import build_overrides, main, parse_args


def _base_env(tmp_path: Path) -> dict[str, str]:
    env = os.environ.copy()
    env["DATABASE_URL"] = f"sqlite:///{tmp_path / 'cli.db'}"
    env["SUPABASE_URL"] = ""
    env["SUPABASE_SERVICE_ROLE_KEY"] = ""
    return env


def _run_cli(tmp_path: Path, *args: str) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        [sys.executable, "-m", "authseed.main", *args],
        cwd=Path(__file__).resolve().parents[1],
        env=_base_env(tmp_path),
        check=False,
        capture_output=True,
        text=True,
    )


def test_cli_exits_nonzero_when_credentials_missing(tmp_path: Path) -> None:
    proc = _run_cli(tmp_path, "--users=10")

    assert proc.returncode == 1
    assert "SUPABASE_URL is required" in proc.stdout
    assert "Make sure you have" in proc.stdout


def test_cli_help_exits_zero(tmp_path: Path) -> None:
    proc = _run_cli(tmp_path, "--help")

    assert proc.returncode == 0
    assert "--users" in proc.stdout
    assert "SUPABASE_SERVICE_ROLE_KEY" in proc.stdout


def test_numeric_overrides_are_parsed_and_garbage_ignored() -> None:
    args = parse_args(["--users=250", "--batch=abc", "--concurrent=3", "--strategy", "chunked", "--debug"])

    overrides, ignored = build_overrides(args)

    assert overrides == {
        "TOTAL_USERS": "250",
        "CONCURRENT_BATCHES": "3",
        "SEED_STRATEGY": "chunked",
        "DEBUG": "true",
    }
    assert ignored == ["--batch=abc"]


def test_no_flags_means_no_overrides() -> None:
    overrides, ignored = build_overrides(argparse.Namespace(users=None, batch=None, concurrent=None, strategy=None, debug=False))

    assert overrides == {}
    assert ignored == []


def test_unknown_flags_are_ignored_not_fatal(tmp_path: Path) -> None:
    args = parse_args(["--users=5", "--frobnicate"])
    overrides, ignored = build_overrides(args)

    assert overrides == {"TOTAL_USERS": "5"}
    assert ignored == ["--frobnicate"]

    # Still exits 1 on the missing credentials rather than on the flag.
    proc = _run_cli(tmp_path, "--frobnicate")
    assert proc.returncode == 1
    assert "SUPABASE_URL is required" in proc.stdout


def test_unknown_strategy_is_a_configuration_error(monkeypatch) -> None:
    monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.co")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service-role-key")

    with pytest.raises(SystemExit) as excinfo:
        main(["--strategy", "reckless"])

    assert excinfo.value.code == 1


def test_run_level_failure_exits_one(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.co")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service-role-key")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'cli.db'}")

    async def broken_seed(settings, pipeline):
        raise RuntimeError("ledger unavailable")

    monkeypatch.setattr("authseed.main.seed", broken_seed)

    with pytest.raises(SystemExit) as excinfo:
        main(["--users=10"])

    assert excinfo.value.code == 1
