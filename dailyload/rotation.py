import logging
from pathlib import Path
import shutil

from dailyload.entities import EntityDescriptor


logger = logging.getLogger(__name__)

REPORT_SPOOL = "loaded.out"


def _backup(source: Path, backup_dir: Path, weekday: str) -> str | None:
    if not source.exists():
        logger.info("No %s to backup", source.name)
        return None

    # Same-weekday backups from the previous week are replaced.
    target = backup_dir / f"{source.name}.{weekday}"
    try:
        if target.exists():
            target.unlink()
        shutil.move(str(source), str(target))
    except OSError:
        logger.warning("could not back up %s", source.name, exc_info=True)
        return None

    logger.info("%s has been backed up", source.name)
    return f"backed up {source.name} -> {target.name}"


def rotate_artifacts(
    work_dir: Path,
    backup_dir: Path,
    descriptors: list[EntityDescriptor],
    weekday: str,
) -> list[str]:
    actions: list[str] = []
    backup_dir.mkdir(parents=True, exist_ok=True)

    for descriptor in descriptors:
        data_path = work_dir / descriptor.data_filename
        if data_path.exists():
            data_path.unlink()
            logger.info("%s has been removed", data_path.name)
            actions.append(f"removed {data_path.name}")
        else:
            logger.info("No %s to remove", data_path.name)

    for filename_attr in ("bad_filename", "log_filename", "out_filename"):
        for descriptor in descriptors:
            action = _backup(work_dir / getattr(descriptor, filename_attr), backup_dir, weekday)
            if action:
                actions.append(action)

    spool = work_dir / REPORT_SPOOL
    if spool.exists():
        spool.unlink()
        actions.append(f"removed {REPORT_SPOOL}")

    return actions
