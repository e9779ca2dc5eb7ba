from __future__ import annotations

import json
import logging
from collections import Counter
from pathlib import Path
from typing import Any, Dict, List, Optional

from tqdm import tqdm

from cumulative_table.data_processing.classification import ThresholdLadder
from cumulative_table.data_processing.merge import merge_period
from cumulative_table.data_processing.schemas import Snapshot, TableSchema
from cumulative_table.data_processing.store import SnapshotStore, load_observations
from cumulative_table.utils.config import section
from cumulative_table.utils.timer import timed

log = logging.getLogger(__name__)


def build_store(cfg: Dict[str, Any]) -> SnapshotStore:
    store_cfg = section(cfg, "store")
    if not store_cfg.get("snapshot_dir"):
        raise ValueError("Config needs store.snapshot_dir")
    return SnapshotStore(store_cfg["snapshot_dir"], TableSchema.from_config(cfg))


def _previous_period_snapshots(store: SnapshotStore, period: int) -> List[Snapshot]:
    prior = period - 1
    if store.exists(prior):
        return store.load(prior)

    stored = store.periods()
    if not stored or stored[0] == period:
        log.info("No snapshots before period %s; seeding from observations only", period)
        return []
    if stored[0] > prior:
        raise RuntimeError(
            f"Cannot cumulate period {period}: store already starts at period {stored[0]}"
        )
    raise RuntimeError(
        f"Cannot cumulate period {period}: snapshots for period {prior} are missing "
        f"(latest stored is {stored[-1]}). Cumulate the earlier periods first."
    )


def cumulate_period(
    cfg: Dict[str, Any],
    period: int,
    overwrite: bool = False,
    rebuild_through: Optional[int] = None,
) -> Dict[str, object]:
    """
    Merge one period's observations into the previous period's snapshots and store the result.

    Rewriting a stored period is refused while later periods built from it remain,
    unless they are rebuilt in the same run (`rebuild_through` covers them).
    """
    schema = TableSchema.from_config(cfg)
    ladder = ThresholdLadder.from_config(cfg)
    store = build_store(cfg)
    if ladder.metric not in schema.metrics:
        raise ValueError(f"Classification metric {ladder.metric!r} is not one of the table metrics {schema.metrics}")
    observations_path = section(cfg, "store").get("observations")
    if not observations_path:
        raise ValueError("Config needs store.observations")
    obs_path = Path(observations_path)
    if store.exists(period) and not overwrite:
        raise FileExistsError(f"Period {period} is already cumulated at {store.path_for(period)}")
    stale = [p for p in store.later_periods(period) if rebuild_through is None or p > rebuild_through]
    if store.exists(period) and stale:
        raise RuntimeError(
            f"Cannot rewrite period {period}: later periods {stale} were cumulated from it"
        )

    timings: Dict[str, float] = {}
    with timed("load", timings):
        previous = _previous_period_snapshots(store, period)
        observations = load_observations(obs_path, schema, period)

    if not previous and not observations:
        raise RuntimeError(f"Nothing to cumulate for period {period}: no snapshots and no observations.")

    with timed("merge", timings):
        merged = merge_period(previous, observations, ladder)

    with timed("persist", timings):
        out_path = store.append(period, merged, overwrite=overwrite)

    classes = Counter(s.classification for s in merged)
    meta = {
        "period": int(period),
        "n_previous": len(previous),
        "n_observations": len(observations),
        "n_snapshots": len(merged),
        "n_active": sum(1 for s in merged if s.periods_since_active == 0),
        "classification_counts": {label: classes.get(label, 0) for label in ladder.labels},
        "timings_sec": timings,
    }

    meta_dir = section(cfg, "output").get("meta_dir")
    meta_path = None
    if meta_dir:
        meta_path = Path(meta_dir) / f"cumulate_{int(period)}.json"
        meta_path.parent.mkdir(parents=True, exist_ok=True)
        meta_path.write_text(json.dumps(meta, indent=2), encoding="utf-8")

    log.info("Cumulated period %s: %s", period, out_path.as_posix())
    return {
        "snapshots_path": str(out_path),
        "meta_path": str(meta_path) if meta_path else None,
        "meta": meta,
    }


def backfill(cfg: Dict[str, Any], start: int, end: int, overwrite: bool = False) -> List[Dict[str, object]]:
    """Cumulate every period from start to end inclusive, in order."""
    if end < start:
        raise ValueError(f"backfill end ({end}) is before start ({start})")

    results: List[Dict[str, object]] = []
    for period in tqdm(range(start, end + 1), desc="Cumulating periods"):
        results.append(cumulate_period(cfg, period, overwrite=overwrite, rebuild_through=end))
    return results
