from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Optional, Sequence, Union

import pandas as pd

from cumulative_table.data_processing.frames import (
    observations_from_frame,
    snapshots_from_frame,
    snapshots_to_frame,
)
from cumulative_table.data_processing.schemas import Observation, Snapshot, TableSchema, is_missing

log = logging.getLogger(__name__)

FILE_RE = re.compile(r"^snapshots_(-?\d+)\.parquet$")


class SnapshotStore:
    """
    Directory of cumulative snapshots, one parquet file per period:
      <root>/snapshots_2000.parquet
      <root>/snapshots_2001.parquet

    Periods are only ever added; an existing period is not rewritten unless asked.
    """

    def __init__(self, root: Union[str, Path], schema: TableSchema):
        self.root = Path(root)
        self.schema = schema

    def path_for(self, period: int) -> Path:
        return self.root / f"snapshots_{int(period)}.parquet"

    def periods(self) -> List[int]:
        if not self.root.exists():
            return []
        found = []
        for fp in self.root.iterdir():
            m = FILE_RE.match(fp.name)
            if m and fp.is_file():
                found.append(int(m.group(1)))
        return sorted(found)

    def later_periods(self, period: int) -> List[int]:
        return [p for p in self.periods() if p > period]

    def latest_period(self) -> Optional[int]:
        periods = self.periods()
        return periods[-1] if periods else None

    def exists(self, period: int) -> bool:
        return self.path_for(period).is_file()

    def load_frame(self, period: int) -> pd.DataFrame:
        path = self.path_for(period)
        if not path.is_file():
            raise FileNotFoundError(f"No snapshots stored for period {period}: {path}")
        return pd.read_parquet(path)

    def load(self, period: int) -> List[Snapshot]:
        if not self.exists(period):
            log.info("No snapshots stored for period %s; starting from an empty set", period)
            return []
        return snapshots_from_frame(self.load_frame(period), self.schema)

    def append(self, period: int, snapshots: Sequence[Snapshot], overwrite: bool = False) -> Path:
        path = self.path_for(period)
        if path.exists() and not overwrite:
            raise FileExistsError(f"Snapshots for period {period} already exist: {path}")

        stray = sorted({s.current_period for s in snapshots if s.current_period != period})
        if stray:
            raise ValueError(f"Snapshots written to period {period} carry other periods: {stray}")
        keys = [s.key for s in snapshots]
        if len(set(keys)) != len(keys):
            raise ValueError(f"Duplicate subject keys in snapshots for period {period}")

        df = snapshots_to_frame(snapshots, self.schema)
        self.root.mkdir(parents=True, exist_ok=True)
        df.to_parquet(path, index=False)
        log.info("Wrote %d snapshots for period %s: %s", len(df), period, path.as_posix())
        return path


def read_raw_table(path: Union[str, Path], text_columns: Sequence[str] = ()) -> pd.DataFrame:
    """Read a raw CSV or parquet table; `text_columns` come back as strings either way."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing observation file: {path}")
    if path.suffix.lower() == ".parquet":
        df = pd.read_parquet(path)
        for c in text_columns:
            if c in df.columns:
                df[c] = df[c].map(lambda v: None if is_missing(v) else str(v)).astype(object)
        return df
    header = pd.read_csv(path, nrows=0).columns
    dtype = {c: str for c in text_columns if c in header}
    return pd.read_csv(path, dtype=dtype)


def load_observations(path: Union[str, Path], schema: TableSchema, period: int) -> List[Observation]:
    """Rows of the raw per-period table whose period column equals `period`."""
    df = read_raw_table(path, text_columns=(schema.key, *schema.attributes))

    missing = [c for c in (schema.key, schema.period_column) if c not in df.columns]
    if missing:
        raise ValueError(f"{path}: missing required columns {missing}")
    absent = [c for c in (*schema.attributes, *schema.metrics) if c not in df.columns]
    if absent:
        log.warning("%s: columns %s not present; treating them as empty", path, absent)

    periods = pd.to_numeric(df[schema.period_column], errors="coerce")
    today = df[periods == int(period)]
    log.info("Loaded %d observations for period %s from %s", len(today), period, path)
    return observations_from_frame(today, schema)
