from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from cumulative_table.data_processing.schemas import Snapshot, TableSchema


def unnest_history(snapshot: Snapshot, key_column: str = "key") -> List[Dict[str, Any]]:
    """One row per history element, struct fields as columns. Keeps order and duplicates."""
    return [{key_column: snapshot.key, **stats.as_row()} for stats in snapshot.history]


def flatten_snapshots(
    snapshots: Iterable[Snapshot],
    schema: TableSchema,
    key: Optional[str] = None,
) -> pd.DataFrame:
    """Expand every snapshot's history into rows: [key, period, *metrics]."""
    rows: List[Dict[str, Any]] = []
    for snap in snapshots:
        if key is not None and snap.key != key:
            continue
        rows.extend(unnest_history(snap, key_column=schema.key))
    return pd.DataFrame(rows, columns=[schema.key, "period", *schema.metrics])
