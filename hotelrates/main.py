"""Command-line interface entry point for the hotel rate collector."""

from __future__ import annotations

import argparse
import asyncio
from typing import Iterable

from dotenv import load_dotenv

from hotelrates.collector import TravelokaCollector
from hotelrates.config import AppSettings, database_url_from_env, load_settings
from hotelrates.errors import ConfigError, RunFatalError, StoreConnectionError
from hotelrates.logging_config import configure_logging, get_logger
from hotelrates.monitoring import MetricsEmitter
from hotelrates.orchestrator import RunOrchestrator
from hotelrates.scheduling import ScheduleTrigger
from hotelrates.storage.store import TargetStore
from hotelrates.supervisor import EXIT_ERROR, EXIT_OK, ProcessSupervisor

LOGGER = get_logger(__name__)


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for the application."""

    parser = argparse.ArgumentParser(
        description="Collect hotel room rates on a cron schedule."
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single collection pass, ignoring the active window, then exit.",
    )
    parser.add_argument(
        "--cleanup-stale",
        action="store_true",
        help="Delete in_progress scrape logs older than one hour and exit.",
    )
    parser.add_argument(
        "--add-hotel",
        metavar="NAME",
        type=str,
        help="Register a hotel to collect (requires --search-key) and exit.",
    )
    parser.add_argument(
        "--search-key",
        type=str,
        help="Search text for --add-hotel, usually the hotel name plus its city.",
    )
    parser.add_argument(
        "--env-file",
        type=str,
        help="Path to a .env file (default: .env in the working directory).",
    )

    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.add_hotel is not None:
        args.add_hotel = args.add_hotel.strip()
        if not args.add_hotel:
            parser.error("--add-hotel requires a non-empty name")
        if not (args.search_key or "").strip():
            parser.error("--add-hotel requires --search-key")
        args.search_key = args.search_key.strip()
    elif args.search_key is not None:
        parser.error("--search-key is only valid with --add-hotel")

    return args


def _run_maintenance(args: argparse.Namespace) -> int:
    load_dotenv(args.env_file)
    store = TargetStore(database_url_from_env())
    if not store.connect():
        return EXIT_ERROR
    try:
        if args.add_hotel is not None:
            hotel_id = store.add_target(args.add_hotel, args.search_key)
            if hotel_id is None:
                return EXIT_ERROR
            LOGGER.info("Added hotel %s (id=%s)", args.add_hotel, hotel_id)
        if args.cleanup_stale:
            store.cleanup_stale_logs()
    finally:
        store.close()
    return EXIT_OK


def _build_orchestrator(settings: AppSettings, store: TargetStore) -> RunOrchestrator:
    return RunOrchestrator(
        store,
        TravelokaCollector(store),
        settings.schedule,
        categories=settings.categories,
        metrics=MetricsEmitter.in_directory(settings.metrics_dir),
        healthcheck_url=settings.healthcheck_url,
    )


async def _run_once(settings: AppSettings) -> int:
    store = TargetStore(settings.database_url)
    store.connect()
    orchestrator = _build_orchestrator(settings, store)
    try:
        await orchestrator.run()
    except (RunFatalError, StoreConnectionError) as exc:
        LOGGER.error("Run failed: %s", exc)
        return EXIT_ERROR
    finally:
        store.close()
    return EXIT_OK


async def _serve(settings: AppSettings) -> int:
    store = TargetStore(settings.database_url)
    if not store.connect():
        LOGGER.warning("Database unavailable at startup; runs will retry the connection")
    orchestrator = _build_orchestrator(settings, store)

    try:
        trigger = ScheduleTrigger(orchestrator, settings.schedule)
    except ConfigError as exc:
        LOGGER.error("Invalid schedule: %s", exc)
        store.close()
        return EXIT_ERROR

    supervisor = ProcessSupervisor(orchestrator, store, trigger=trigger)
    supervisor.install(asyncio.get_running_loop())
    try:
        trigger.start()
    except Exception as exc:
        supervisor.handle_fault(exc)
    return await supervisor.wait()


def run(argv: Iterable[str] | None = None) -> int:
    """Dispatch the CLI and return the process exit code."""

    args = parse_args(argv)
    configure_logging()

    if args.add_hotel is not None or args.cleanup_stale:
        return _run_maintenance(args)

    try:
        settings = load_settings(args.env_file)
    except ConfigError as exc:
        LOGGER.error("Configuration error: %s", exc)
        return EXIT_ERROR

    if args.once:
        return asyncio.run(_run_once(settings))
    return asyncio.run(_serve(settings))


def main() -> None:
    try:
        code = run()
    except KeyboardInterrupt:  # pragma: no cover - interactive safety
        LOGGER.info("Interrupted by user")
        code = EXIT_OK
    raise SystemExit(code)


if __name__ == "__main__":
    main()
