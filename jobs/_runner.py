"""
jobs/_runner.py -- Shared plumbing for the batch entrypoints.

run_job() owns everything a job does not care about: logging setup, the
argument parser (jobs take no arguments, but --help works), acquiring the
RBACStore and releasing it on every exit path, printing the summary and
mapping the outcome to an exit code.

A job body is a callable (store, settings) -> list of summary lines. Item-level
failures are reported inside those lines; any exception that escapes the body
is unrecoverable and turns into exit status 1.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Callable

from core.config import Settings, get_settings
from rbac.store import RBACStore

logger = logging.getLogger("rbac.jobs")

JobBody = Callable[[RBACStore, Settings], list[str]]


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    )


def run_job(title: str, description: str, body: JobBody, argv: list[str] | None = None) -> int:
    """Run body against a freshly opened store. Returns the process exit code."""
    parser = argparse.ArgumentParser(description=description)
    parser.parse_args(argv)

    try:
        settings = get_settings()
    except ValueError as e:
        # pydantic's ValidationError is a ValueError
        print(f"{title} failed: invalid configuration: {e}", file=sys.stderr)
        return 1

    _configure_logging(settings.log_level)
    logger.info("Starting %s", title)

    try:
        with RBACStore(settings.database_url) as store:
            lines = body(store, settings)
    except Exception as e:
        logger.exception("%s aborted", title)
        print(f"{title} failed: {e}", file=sys.stderr)
        return 1

    print(f"{title} summary:")
    for line in lines:
        print(f"  - {line}")
    print(f"{title} completed successfully.")
    return 0
