from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

import pandas as pd

from cumulative_table.data_processing.classification import ThresholdLadder
from cumulative_table.data_processing.cumulate import build_store
from cumulative_table.data_processing.flatten import flatten_snapshots
from cumulative_table.data_processing.trends import improvement_report
from cumulative_table.utils.config import load_config, section
from cumulative_table.utils.logging import setup_logging

log = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Read queries over a stored cumulative snapshot period.")
    p.add_argument("--config", required=True, help="Path to YAML config (supports extends).")
    p.add_argument("--period", type=int, required=True, help="Snapshot period to read.")
    p.add_argument("--out", help="Write the result to this CSV instead of printing it.")
    sub = p.add_subparsers(dest="command", required=True)

    un = sub.add_parser("unnest", help="One row per history element.")
    un.add_argument("--key", help="Only this subject.")

    imp = sub.add_parser("improvement", help="Latest over first metric value, best first.")
    imp.add_argument("--metric", help="Metric to compare (defaults to the classification metric).")
    imp.add_argument("--classification", help="Only subjects in this category, e.g. star.")
    return p.parse_args(argv)


def run(cfg, args: argparse.Namespace) -> pd.DataFrame:
    store = build_store(cfg)
    snapshots = store.load(args.period)
    if not snapshots:
        raise FileNotFoundError(f"No snapshots stored for period {args.period} under {store.root}")

    if args.command == "unnest":
        return flatten_snapshots(snapshots, store.schema, key=args.key)

    metric = args.metric or ThresholdLadder.from_config(cfg).metric
    return improvement_report(
        snapshots,
        metric=metric,
        classification=args.classification,
        key_column=store.schema.key,
    )


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    cfg = load_config(args.config)
    setup_logging(level=section(cfg, "logging").get("level", "INFO"))

    df = run(cfg, args)
    if args.out:
        out = Path(args.out)
        out.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(out, index=False)
        log.info("Wrote %d rows to %s", len(df), out.as_posix())
    else:
        print(df.to_string(index=False))


if __name__ == "__main__":
    main()
