from collections.abc import Callable
from datetime import date
import os
from pathlib import Path
import subprocess
import sys

from dailyload import run_store
from dailyload.database import build_session_factory


def _base_env(tmp_path: Path) -> dict[str, str]:
    env = os.environ.copy()
    env["DATABASE_URL"] = f"sqlite:///{tmp_path / 'cli.db'}"
    env["DROP_DIR"] = str(tmp_path / "ftp")
    env["WORK_DIR"] = str(tmp_path / "loads")
    env["BACKUP_DIR"] = str(tmp_path / "backup")
    env["RUN_LOG_PATH"] = str(tmp_path / "logs" / "dailyload.log")
    env["SQL_DIR"] = ""
    env["DAILY_ENTITIES"] = "E5"
    env["POLL_INTERVAL_SECONDS"] = "0"
    env["MAX_WAIT_SECONDS"] = "0"
    return env


def _run_cli(tmp_path: Path, *args: str) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        [sys.executable, "-m", "dailyload.main", *args],
        cwd=Path(__file__).resolve().parents[1],
        env=_base_env(tmp_path),
        check=False,
        capture_output=True,
        text=True,
    )


def test_cli_skips_monday(tmp_path: Path) -> None:
    proc = _run_cli(tmp_path, "10/19/2026")

    assert proc.returncode == 0
    assert "status=SKIPPED_NO_RUN_DAY" in proc.stdout


def test_cli_returns_nonzero_when_extract_never_arrives(tmp_path: Path) -> None:
    proc = _run_cli(tmp_path, "10/22/2026")

    assert proc.returncode == 1
    assert "status=FAILED" in proc.stdout
    assert "stage=await_files" in proc.stdout
    assert "EXITING" in (tmp_path / "logs" / "dailyload.log").read_text(encoding="utf-8")


def test_cli_rejects_malformed_run_date(tmp_path: Path) -> None:
    proc = _run_cli(tmp_path, "2026-10-22")

    assert proc.returncode == 2
    assert "MM/DD/YYYY" in proc.stderr


def test_cli_returns_zero_on_success(tmp_path: Path, make_e5_line: Callable[..., str]) -> None:
    session_factory = build_session_factory(f"sqlite:///{tmp_path / 'cli.db'}")
    with session_factory() as db:
        run_store.append_ledger_row(db, loadname="E5", extract_date=date(2026, 10, 20), row_count=10, host="seed")

    drop_dir = tmp_path / "ftp"
    drop_dir.mkdir()
    (drop_dir / "E5").write_text(make_e5_line() + "\n", encoding="utf-8")

    proc = _run_cli(tmp_path, "10/22/2026")

    assert proc.returncode == 0
    assert "status=SUCCESS" in proc.stdout
    assert "loaded=E5" in proc.stdout
    assert (tmp_path / "loads" / "loaded.out").exists()
