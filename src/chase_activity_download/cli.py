from __future__ import annotations

import argparse
import logging
import os
import time
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from .config import load_config
from .logging_config import configure_logging
from .models import RunSummary
from .portal.client import ChaseActivityClient
from .portal.trace import RunTrace
from .util.debug_bundle import create_debug_bundle


logger = logging.getLogger("chase_activity_download")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="chase_activity_download",
        description=(
            "Open chase.com, wait for you to sign in, then download 'Since last statement' activity "
            "for every account in the download form."
        ),
    )
    p.add_argument(
        "--env-file",
        default=".env",
        help="Path to a dotenv file (default: .env). If missing, env vars must already be set.",
    )
    p.add_argument(
        "--config",
        default="config.yaml",
        help="Optional YAML config overriding env defaults (default: config.yaml, ignored if missing).",
    )
    p.add_argument("--slowmo-ms", type=int, default=None, help="Override Playwright slow motion in milliseconds.")
    p.add_argument("--step-debug", action="store_true", help="Save a screenshot per step under the debug dir.")
    p.add_argument(
        "--step-delay-ms",
        type=int,
        default=0,
        help="Extra delay (ms) after each captured step screenshot (so you can watch the browser).",
    )
    p.add_argument(
        "--debug-bundle",
        action="store_true",
        help="On exit, zip the log, debug captures and a run summary into data/.",
    )
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    env_path = Path(args.env_file)
    if env_path.exists():
        load_dotenv(env_path)

    # Default logging: reconfigured once the config is loaded.
    configure_logging(level=os.getenv("LOG_LEVEL", "INFO"))

    try:
        cfg = load_config(args.config)
    except (ValidationError, ValueError) as e:
        raise SystemExit(f"Invalid configuration: {e}") from e

    if args.slowmo_ms is not None:
        cfg = cfg.model_copy(
            update={"browser": cfg.browser.model_copy(update={"slow_mo_ms": max(0, args.slowmo_ms)})}
        )
    configure_logging(level=cfg.logging.level, file_path=cfg.logging.file_path)

    trace = RunTrace(
        debug_dir=cfg.debug.dir,
        step_screenshots=bool(args.step_debug or cfg.debug.step_screenshots),
        capture_on_failure=cfg.debug.capture_on_failure,
        step_delay_ms=args.step_delay_ms,
    )

    logger.info("Starting download run (site=%s downloads=%s)", cfg.site.base_url, cfg.downloads.dir)
    t0 = time.time()
    summary = RunSummary()
    try:
        summary = ChaseActivityClient(cfg, trace=trace).run()
    except KeyboardInterrupt:
        logger.warning("Interrupted; browser closed.")
    finally:
        logger.info("Run finished (seconds=%.2f)", time.time() - t0)
        if args.debug_bundle:
            bundle = create_debug_bundle(
                debug_dir=cfg.debug.dir,
                log_file=cfg.logging.file_path,
                summary=summary.model_dump(mode="json"),
                trace_events=trace.to_jsonable(),
            )
            logger.info("Debug bundle written: %s", bundle)

    # Per-option failures are reported in the log, not through the exit status.
    return 0
