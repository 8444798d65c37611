import argparse
from datetime import date, datetime
import logging
from pathlib import Path

from dailyload.config import Settings, get_settings
from dailyload.database import build_session_factory
from dailyload.notify import build_notifier
from dailyload.pipeline import PipelineRunner
from dailyload.scheduler import start_scheduler


def _run_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%m/%d/%Y").date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"run date must be MM/DD/YYYY, got '{value}'") from None


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Load the daily entity extracts")
    parser.add_argument(
        "run_date",
        nargs="?",
        type=_run_date,
        help="Run date in MM/DD/YYYY format (defaults to today)",
    )
    parser.add_argument("--schedule", action="store_true", help="start the daily scheduler instead of running once")
    parser.add_argument("--run-now", action="store_true", help="with --schedule, also run once immediately")
    return parser.parse_args()


def configure_logging(settings: Settings) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    run_log = Path(settings.run_log_path)
    run_log.parent.mkdir(parents=True, exist_ok=True)
    handlers.append(logging.FileHandler(run_log, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        handlers=handlers,
    )


def main() -> None:
    args = parse_args()
    settings = get_settings()
    configure_logging(settings)

    session_factory = build_session_factory(settings.database_url)
    if args.schedule:
        start_scheduler(settings, session_factory, run_now=args.run_now)
        return

    run_date = args.run_date or date.today()
    runner = PipelineRunner(settings, session_factory, notifier=build_notifier(settings))
    outcome = runner.run(run_date)

    print(
        "run_id={run_id} run_date={run_date} status={status} stage={stage} entity={entity} loaded={loaded} reason={reason}".format(
            run_id=outcome.run_id,
            run_date=run_date.strftime("%m/%d/%Y"),
            status=outcome.status,
            stage=outcome.stage,
            entity=outcome.entity,
            loaded=",".join(outcome.entities_loaded),
            reason=outcome.reason,
        )
    )
    if outcome.exit_code:
        raise SystemExit(outcome.exit_code)


if __name__ == "__main__":
    main()
