from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from cumulative_table.data_processing.schemas import (
    Observation,
    PeriodStats,
    Snapshot,
    TableSchema,
    is_missing,
)

log = logging.getLogger(__name__)

SNAPSHOT_COLUMNS = ("history", "classification", "periods_since_active", "current_period")


def _clean(value: Any) -> Any:
    if is_missing(value):
        return None
    # numpy scalars -> python scalars so records compare and serialise plainly
    if hasattr(value, "item") and callable(value.item):
        return value.item()
    return value


def _metric(value: Any) -> Optional[float]:
    value = _clean(value)
    return None if value is None else float(value)


def snapshot_columns(schema: TableSchema) -> List[str]:
    return [schema.key, *schema.attributes, *SNAPSHOT_COLUMNS]


def observations_from_frame(df: pd.DataFrame, schema: TableSchema) -> List[Observation]:
    missing = [c for c in (schema.key, schema.period_column) if c not in df.columns]
    if missing:
        raise ValueError(f"Observation frame is missing required columns: {missing}")

    usable = df.dropna(subset=[schema.key, schema.period_column])
    dropped = len(df) - len(usable)
    if dropped:
        log.warning("Dropped %d observation rows without %s/%s", dropped, schema.key, schema.period_column)

    out: List[Observation] = []
    for rec in usable.to_dict("records"):
        out.append(
            Observation(
                key=str(rec[schema.key]),
                period=int(rec[schema.period_column]),
                attributes={a: _clean(rec.get(a)) for a in schema.attributes},
                metrics={m: _metric(rec.get(m)) for m in schema.metrics},
            )
        )
    return out


def _history_from_cell(cell: Any, schema: TableSchema) -> List[PeriodStats]:
    # pyarrow hands list<struct> back as an ndarray of dicts
    if cell is None or isinstance(cell, str) or not hasattr(cell, "__len__"):
        return []
    history: List[PeriodStats] = []
    for item in list(cell):
        item = dict(item)
        history.append(
            PeriodStats(
                period=int(item["period"]),
                metrics={m: _metric(item.get(m)) for m in schema.metrics},
            )
        )
    return history


def snapshots_to_frame(snapshots: Iterable[Snapshot], schema: TableSchema) -> pd.DataFrame:
    rows: List[Dict[str, Any]] = []
    for snap in snapshots:
        row: Dict[str, Any] = {schema.key: snap.key}
        for a in schema.attributes:
            row[a] = snap.attributes.get(a)
        row["history"] = [s.as_row() for s in snap.history]
        row["classification"] = snap.classification
        row["periods_since_active"] = int(snap.periods_since_active)
        row["current_period"] = int(snap.current_period)
        rows.append(row)

    return pd.DataFrame(rows, columns=snapshot_columns(schema))


def snapshots_from_frame(df: pd.DataFrame, schema: TableSchema) -> List[Snapshot]:
    missing = [c for c in snapshot_columns(schema) if c not in df.columns]
    if missing:
        raise ValueError(f"Snapshot frame is missing columns: {missing}")

    out: List[Snapshot] = []
    for rec in df.to_dict("records"):
        out.append(
            Snapshot(
                key=str(rec[schema.key]),
                attributes={a: _clean(rec.get(a)) for a in schema.attributes},
                history=tuple(_history_from_cell(rec["history"], schema)),
                classification=str(rec["classification"]),
                periods_since_active=int(rec["periods_since_active"]),
                current_period=int(rec["current_period"]),
            )
        )
    return out
