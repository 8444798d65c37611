from pathlib import Path


def scan(output_path: Path) -> list[str]:
    if not output_path.exists():
        return []

    lines = output_path.read_text(encoding="utf-8", errors="replace").splitlines()
    exact = [index for index, line in enumerate(lines) if "ERROR" in line]
    # A line caught by the exact pass is not reported again by the loose one.
    seen = set(exact)
    loose = [index for index, line in enumerate(lines) if "err" in line.lower() and index not in seen]
    return [lines[index] for index in exact + loose]
