"""Command-line entry point: `page-runner <script-name> [fragment ...]`."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

import structlog

from .config import BROWSER_ENGINES, RunnerConfig, load_config
from .session import run_suite


def configure_logging(level: str) -> None:
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, str(level).upper(), logging.INFO)),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="page-runner",
        description="Run JavaScript test fragments inside a headless browser page.",
    )
    ap.add_argument("script_name", help="Base name of the temporary <script-name>.html document")
    ap.add_argument("fragments", nargs="*", help="Script file paths or literal script expressions, in execution order")
    ap.add_argument("--config", default=None, help="YAML config file (default: $PAGE_RUNNER_CONFIG or page_runner.yaml)")
    ap.add_argument("--browser", choices=BROWSER_ENGINES, default=None)
    ap.add_argument("--headed", action="store_true", help="Show the browser window")
    ap.add_argument("--log-level", default=None)
    return ap


def resolve_config(args: argparse.Namespace) -> RunnerConfig:
    config = load_config(args.config)
    if args.browser:
        config.browser = args.browser
    if args.headed:
        config.headless = False
    if args.log_level:
        config.log_level = str(args.log_level).upper()
    return config


async def _amain(argv: list[str]) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = resolve_config(args)
    except ValueError as exc:
        configure_logging("INFO")
        structlog.get_logger(__name__).error("Invalid configuration", error=str(exc))
        return 1
    configure_logging(config.log_level)
    return await run_suite(args.script_name, list(args.fragments), config)


def main() -> None:
    # Ensure predictable HOME for Playwright temp files inside read-only sandboxes.
    os.environ.setdefault("HOME", "/tmp")
    try:
        rc = asyncio.run(_amain(sys.argv[1:]))
    except KeyboardInterrupt:
        rc = 130
    sys.exit(int(rc))


if __name__ == "__main__":
    main()
