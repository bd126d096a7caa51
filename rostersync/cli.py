"""Command line entry point.

``rostersync`` serves the status API with the scheduler running in-process;
``rostersync --once`` runs every configured job a single time and exits.
"""
from __future__ import annotations

import argparse
import sys

from rostersync.bootstrap import SyncRuntime, build_runtime, start_runtime, stop_runtime
from rostersync.config import CONFIG_FILE, LOG_FILE, LOG_LEVEL, load_sync_config
from rostersync.exceptions import SyncError
from rostersync.utils import get_logger, setup_logging

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="rostersync",
        description="Sync PagerDuty on-call schedules and teams into Slack user groups.",
    )
    parser.add_argument(
        "--config",
        default=CONFIG_FILE,
        help="Config file path including file name (default: %(default)s).",
    )
    parser.add_argument(
        "--write",
        action="store_true",
        default=False,
        help="Apply changes to Slack. Overrides global.write from the config file.",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        default=False,
        help="Run every job once, post the status messages and exit.",
    )
    parser.add_argument("--host", default="0.0.0.0", help="Status API bind address.")
    parser.add_argument("--port", type=int, default=8000, help="Status API port.")
    return parser


def _load_runtime(args: argparse.Namespace) -> SyncRuntime:
    cfg = load_sync_config(args.config)
    if args.write:
        cfg.global_.write = True
    setup_logging(log_level=LOG_LEVEL or cfg.global_.log_level, log_file=LOG_FILE, enable_console=True)
    return build_runtime(cfg)


def run_once(runtime: SyncRuntime) -> int:
    """Run all jobs sequentially; exit status 1 if any of them recorded an error."""
    start_runtime(runtime, start_scheduler=False, run_at_start=False)
    try:
        for job in runtime.jobs:
            runtime.scheduler.run_job(job)
    finally:
        stop_runtime(runtime)
    failed = [job.job_id for job in runtime.jobs if job.error is not None]
    if failed:
        logger.warning("Jobs finished with errors", jobs=failed)
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    try:
        if args.once:
            return run_once(_load_runtime(args))

        import uvicorn

        from rostersync.main import create_app

        app = create_app(lambda: _load_runtime(args))
        uvicorn.run(app, host=args.host, port=args.port, log_level="info", access_log=False)
        return 0
    except SyncError as e:
        logger.error("Startup failed", error=str(e))
        return 2


if __name__ == "__main__":
    sys.exit(main())
