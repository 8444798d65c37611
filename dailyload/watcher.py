import logging
from pathlib import Path
import shutil
import threading

from dailyload.entities import EntityDescriptor, get_descriptor
from dailyload.errors import CopyVerificationFailure, MissingExtractFile
from dailyload.retry import WaitExhaustedError, poll_until


logger = logging.getLogger(__name__)


class FileArrivalWatcher:
    def __init__(
        self,
        *,
        poll_interval_seconds: float,
        max_wait_seconds: float | None = None,
        stop_event: threading.Event | None = None,
    ) -> None:
        self.poll_interval_seconds = poll_interval_seconds
        self.max_wait_seconds = max_wait_seconds
        self.stop_event = stop_event or threading.Event()

    def await_all(self, entity_codes: tuple[str, ...] | list[str], drop_dir: Path) -> None:
        for code in entity_codes:
            path = drop_dir / get_descriptor(code).drop_filename

            def on_miss(attempt: int, code: str = code) -> None:
                logger.warning(
                    "%s extract file not found, checking again in %ss",
                    code,
                    self.poll_interval_seconds,
                    extra={"entity": code, "attempt": attempt},
                )

            try:
                poll_until(
                    path.exists,
                    interval_seconds=self.poll_interval_seconds,
                    max_wait_seconds=self.max_wait_seconds,
                    stop_event=self.stop_event,
                    on_miss=on_miss,
                )
            except WaitExhaustedError as exc:
                raise MissingExtractFile(f"{code} extract file not found in {drop_dir}: {exc}", entity=code) from exc
            logger.info("%s extract file found", code, extra={"entity": code})

    def cancel(self) -> None:
        self.stop_event.set()


def copy_extracts(descriptors: list[EntityDescriptor], drop_dir: Path, work_dir: Path) -> list[Path]:
    work_dir.mkdir(parents=True, exist_ok=True)
    copied: list[Path] = []

    for descriptor in descriptors:
        source = drop_dir / descriptor.drop_filename
        target = work_dir / descriptor.data_filename
        if not source.exists():
            raise CopyVerificationFailure(
                f"{descriptor.code} extract file not found in {drop_dir}", entity=descriptor.code
            )
        try:
            shutil.copyfile(source, target)
        except OSError as exc:
            raise CopyVerificationFailure(
                f"{descriptor.code} extract file not copied: {exc}", entity=descriptor.code
            ) from exc

        if not target.exists() or target.stat().st_size == 0:
            raise CopyVerificationFailure(
                f"{descriptor.code} extract file not copied to {target.name}", entity=descriptor.code
            )
        logger.info("%s extract copied to %s", descriptor.code, target.name, extra={"entity": descriptor.code})
        copied.append(target)

    return copied
