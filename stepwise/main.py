#!/usr/bin/env python3
# File: stepwise/main.py

import sys
import json
import logging
import argparse
import importlib
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import load_config, IterationConfig, DEFAULT_LOGS_DIR, DEFAULT_CONFIG_DIR, DEFAULT_CONFIG_FILE_NAME
from .errors import IterationError, ConfigError
from .interfaces.queue import QueueOptions
from .core.event_bus import EventBus
from .core.sqlite_queue import SQLiteQueue
from .core.dispatcher import ResumeDispatcher
from .core.executor import JobExecutor, default_registry
from .core.stats_tracker import StatsTracker
from .core.worker import Worker, ShutdownFlag
from .ui.rich_progress import RichProgressDisplay

logger = logging.getLogger("stepwise.main")

def setup_logging_config(log_level_str: str, log_file_path: Path):
    numeric_log_level = getattr(logging, log_level_str.upper(), logging.INFO)
    log_file_path.parent.mkdir(parents=True, exist_ok=True)
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)
    logging.basicConfig(
        level=numeric_log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.FileHandler(log_file_path, mode='a')]
    )
    logger.info(f"Logging configured. Level: {log_level_str}. File: {log_file_path}")


def parse_job_arguments(pairs: Optional[List[str]]) -> Dict[str, Any]:
    """``key=value`` pairs; values are read as JSON when they parse, else kept as strings."""
    arguments: Dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            raise ConfigError(f"Job arguments must look like key=value, got {pair!r}")
        try:
            arguments[key] = json.loads(raw)
        except json.JSONDecodeError:
            arguments[key] = raw
    return arguments


def import_jobs_module(module_name: Optional[str]) -> None:
    if not module_name:
        return
    try:
        importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"Could not import jobs module '{module_name}': {e}") from e
    logger.info(f"Imported jobs module '{module_name}', registered jobs: {default_registry.names()}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run interruptible iteration jobs from an SQLite queue")
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG_DIR / DEFAULT_CONFIG_FILE_NAME,
                        help=f"JSON config file. Default: {DEFAULT_CONFIG_DIR / DEFAULT_CONFIG_FILE_NAME}")
    parser.add_argument("--db_path", type=str, help="SQLite queue path. Overrides config and environment.")
    parser.add_argument("--queue", type=str, help="Queue name. Overrides config and environment.")
    parser.add_argument("--jobs_module", type=str, help="Module to import so that its jobs get registered.")
    parser.add_argument("--log_file", type=Path, default=DEFAULT_LOGS_DIR / "stepwise.log",
                        help=f"Log file path. Default: {DEFAULT_LOGS_DIR / 'stepwise.log'}")
    parser.add_argument("--log_level", choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], default='INFO',
                        help="Logging level. Default: INFO")

    subparsers = parser.add_subparsers(dest="command", required=True)

    enqueue_parser = subparsers.add_parser("enqueue", help="Submit a fresh job")
    enqueue_parser.add_argument("job_class", help="Registered job class name")
    enqueue_parser.add_argument("--arg", action="append", dest="job_args", metavar="KEY=VALUE",
                                help="Job argument; repeat for several")
    enqueue_parser.add_argument("--job_id", type=str, help="Explicit job id. Default: random")

    work_parser = subparsers.add_parser("work", help="Perform jobs until shutdown")
    work_parser.add_argument("--burst", action="store_true", help="Exit once the queue is drained")
    work_parser.add_argument("--max_jobs", type=int, help="Stop after this many jobs")
    work_parser.add_argument("--max_run_duration", type=float, help="Override the run time budget in seconds")
    work_parser.add_argument("--no_progress", action="store_true", help="Disable the live progress display")
    return parser


def run_enqueue(args: argparse.Namespace, config: IterationConfig) -> int:
    queue = SQLiteQueue.open(config.db_path, QueueOptions(queue_name=config.queue_name))
    event_bus = EventBus(debug_logging=(args.log_level == 'DEBUG'))
    try:
        executor = JobExecutor(default_registry, ResumeDispatcher(queue, event_bus), event_bus=event_bus)
        payload = executor.submit(args.job_class, parse_job_arguments(args.job_args), args.job_id)
    finally:
        queue.close()
    print(f"Enqueued {payload.job_class} job {payload.job_id} on '{config.queue_name}'")
    return 0


def run_work(args: argparse.Namespace, config: IterationConfig) -> int:
    event_bus = EventBus(debug_logging=(args.log_level == 'DEBUG'))
    tracker = StatsTracker()
    tracker.attach(event_bus)
    shutdown_flag = ShutdownFlag()

    queue = SQLiteQueue.open(config.db_path, QueueOptions(queue_name=config.queue_name))
    dispatcher = ResumeDispatcher(queue, event_bus)
    executor = JobExecutor.from_config(config, default_registry, dispatcher,
                                       shutdown_requested=shutdown_flag.is_set, event_bus=event_bus)
    worker = Worker(queue, executor, shutdown_flag, config, event_bus, tracker)

    progress_display = None if args.no_progress else RichProgressDisplay(event_bus, tracker)
    if progress_display:
        progress_display.initialize()
    try:
        worker.work(burst=args.burst, max_jobs=args.max_jobs)
    finally:
        if progress_display:
            progress_display.finalize()
        queue.close()

    summary = tracker.get_summary()
    logger.info(f"Worker summary: {summary}")
    if args.no_progress:
        print(json.dumps(summary, indent=2))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging_config(args.log_level, args.log_file)
    logger.info(f"Application starting with arguments: {args}")

    overrides = {
        "db_path": args.db_path,
        "queue_name": args.queue,
        "max_run_duration": getattr(args, "max_run_duration", None),
    }
    try:
        config = load_config(args.config, overrides=overrides)
        import_jobs_module(args.jobs_module)
        if args.command == "enqueue":
            return run_enqueue(args, config)
        return run_work(args, config)
    except IterationError as e:
        logger.critical(f"{type(e).__name__}: {e}", exc_info=True)
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
