from pathlib import Path

from dailyload.scanner import scan


def test_scan_flags_error_lines(tmp_path: Path) -> None:
    output = tmp_path / "E5.out"
    output.write_text(
        "Begin E5 load\n"
        "ERROR: E5 stage_load failed\n"
        "Transform error in step 3\n"
        "Deferred rows: 4\n"
        "PROCESS COMPLETE\n",
        encoding="utf-8",
    )

    assert scan(output) == [
        "ERROR: E5 stage_load failed",
        "Transform error in step 3",
        "Deferred rows: 4",
    ]


def test_scan_clean_output(tmp_path: Path) -> None:
    output = tmp_path / "E5.out"
    output.write_text("Begin E5 load\nStaged 3 rows\nPROCESS COMPLETE\n", encoding="utf-8")

    assert scan(output) == []


def test_scan_missing_output(tmp_path: Path) -> None:
    assert scan(tmp_path / "E5.out") == []


def test_scan_reports_repeated_lines_once_per_occurrence(tmp_path: Path) -> None:
    output = tmp_path / "E5.out"
    output.write_text("ERROR in load\nstep ok\nERROR in load\n", encoding="utf-8")

    assert scan(output) == ["ERROR in load", "ERROR in load"]
