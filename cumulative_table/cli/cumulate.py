from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from cumulative_table.data_processing.cumulate import backfill, cumulate_period
from cumulative_table.utils.config import ensure_dirs, load_config, section
from cumulative_table.utils.logging import setup_logging

log = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Build the cumulative snapshot table one period at a time.")
    p.add_argument("--config", required=True, help="Path to YAML config (supports extends).")
    p.add_argument("--period", type=int, help="Cumulate a single period.")
    p.add_argument("--start", type=int, help="First period of a backfill range.")
    p.add_argument("--end", type=int, help="Last period of a backfill range (inclusive).")
    p.add_argument("--overwrite", action="store_true", help="Rewrite periods that are already stored.")
    args = p.parse_args(argv)

    if args.period is None and (args.start is None or args.end is None):
        p.error("give --period, or both --start and --end")
    if args.period is not None and (args.start is not None or args.end is not None):
        p.error("--period cannot be combined with --start/--end")
    return args


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    cfg = load_config(args.config)

    ensure_dirs(cfg)
    setup_logging(level=section(cfg, "logging").get("level", "INFO"))

    if args.period is not None:
        result = cumulate_period(cfg, args.period, overwrite=args.overwrite)
        log.info("Period %s: %s", args.period, result["meta"])
    else:
        results = backfill(cfg, args.start, args.end, overwrite=args.overwrite)
        log.info("Backfilled %d periods (%s..%s)", len(results), args.start, args.end)


if __name__ == "__main__":
    main()
