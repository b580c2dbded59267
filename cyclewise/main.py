"""Cyclewise command-line entry point.

Computes the cycle report for a JSON dump of a user's key-value store and
prints it as JSON.

Run locally:
    python -m cyclewise.main store.json --today 2024-03-01
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Sequence

from cyclewise.config import get_settings
from cyclewise.engine.calendar import ParseError, parse_day
from cyclewise.engine.config_loader import (
    ConfigValidationError,
    get_engine_config,
    load_engine_config,
)
from cyclewise.engine.education import education_url
from cyclewise.engine.report import compute_cycle_report, report_to_dict
from cyclewise.services.store import UserDataStore

logger = logging.getLogger("cyclewise")


def _configure_logging(level: str) -> None:
    # stdout carries the report, so logs go to stderr
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cyclewise",
        description="Compute a cycle forecast and clinical insights from a store dump.",
    )
    parser.add_argument("store", type=Path, help="JSON object mapping store keys to values")
    parser.add_argument("--today", help="Reference day (YYYY-MM-DD); defaults to today")
    parser.add_argument("--config", type=Path, help="Engine config YAML to use instead of the bundled one")
    return parser


def _load_store(path: Path) -> dict[str, str]:
    with path.open("r", encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError("store dump must be a JSON object")
    # values are stored as strings; nested JSON is re-encoded
    return {
        str(key): value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)
        for key, value in data.items()
        if value is not None
    }


def main(argv: Sequence[str] | None = None) -> int:
    settings = get_settings()
    _configure_logging(settings.log_level)

    parser = _build_parser()
    args = parser.parse_args(argv)

    config_path = args.config or settings.engine_config_path
    try:
        config = load_engine_config(config_path) if config_path else get_engine_config()
    except (FileNotFoundError, ConfigValidationError) as exc:
        parser.error(str(exc))

    try:
        today = parse_day(args.today) if args.today else None
    except ParseError as exc:
        parser.error(str(exc))

    try:
        storage = _load_store(args.store)
    except (OSError, ValueError) as exc:
        parser.error(f"cannot read {args.store}: {exc}")

    store = UserDataStore(storage, config=config)
    snapshot = store.load_snapshot(today=today)
    report = compute_cycle_report(snapshot, config=config)
    logger.info(
        "%s v%s: report for %s computed (%d flag(s))",
        settings.app_name, settings.app_version, snapshot.today, len(report.flags),
    )

    output = report_to_dict(report)
    base_url = settings.education_base_url
    output["education_links"] = {
        topic.value: education_url(topic, base_url, config=config)
        for topic in dict.fromkeys(
            [*report.flag_topics, *([report.mode_topic] if report.mode_topic else [])]
        )
    }
    json.dump(output, sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
