from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

from cumulative_table.utils.config import section

# Layout of the raw per-season player table the design was first built on.
DEFAULT_KEY = "player_name"
DEFAULT_PERIOD_COLUMN = "season"
DEFAULT_ATTRIBUTES = ("height", "college", "country", "draft_year", "draft_number")
DEFAULT_METRICS = ("pts", "ast", "reb", "weight")


def is_missing(value: Any) -> bool:
    """None, NaN or pd.NA (what pandas hands back for empty cells)."""
    if value is None:
        return True
    if np.ndim(value) != 0:
        return False
    return bool(pd.isna(value))


@dataclass(frozen=True)
class TableSchema:
    """Column layout of the raw observation table."""

    key: str = DEFAULT_KEY
    period_column: str = DEFAULT_PERIOD_COLUMN
    attributes: Tuple[str, ...] = DEFAULT_ATTRIBUTES
    metrics: Tuple[str, ...] = DEFAULT_METRICS

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", tuple(self.attributes))
        object.__setattr__(self, "metrics", tuple(self.metrics))
        if not self.metrics:
            raise ValueError("TableSchema needs at least one metric column.")
        names = [self.key, self.period_column, *self.attributes, *self.metrics]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise ValueError(f"TableSchema columns must be distinct, got duplicates: {dupes}")
        if "period" in self.metrics:
            raise ValueError("'period' is reserved for the history struct and cannot be a metric.")

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> "TableSchema":
        table = section(cfg, "table")
        return cls(
            key=str(table.get("key", DEFAULT_KEY)),
            period_column=str(table.get("period_column", DEFAULT_PERIOD_COLUMN)),
            attributes=tuple(table.get("attributes", DEFAULT_ATTRIBUTES)),
            metrics=tuple(table.get("metrics", DEFAULT_METRICS)),
        )


@dataclass(frozen=True)
class PeriodStats:
    """One element of a snapshot's history: the metrics of a single period."""

    period: int
    metrics: Mapping[str, Optional[float]] = field(default_factory=dict)

    def as_row(self) -> Dict[str, Any]:
        return {"period": self.period, **self.metrics}


@dataclass(frozen=True)
class Observation:
    key: str
    period: int
    attributes: Mapping[str, Any] = field(default_factory=dict)
    metrics: Mapping[str, Optional[float]] = field(default_factory=dict)

    def to_stats(self) -> PeriodStats:
        return PeriodStats(period=self.period, metrics=dict(self.metrics))


@dataclass(frozen=True)
class Snapshot:
    """
    Cumulative row for one subject as of `current_period`.

    `history` holds every observed period in order; a new period produces a
    new Snapshot rather than mutating this one.
    """

    key: str
    attributes: Mapping[str, Any]
    history: Tuple[PeriodStats, ...]
    classification: str
    periods_since_active: int
    current_period: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "history", tuple(self.history))
        if self.periods_since_active < 0:
            raise ValueError(f"periods_since_active must be >= 0 for {self.key!r}")

    @property
    def latest(self) -> Optional[PeriodStats]:
        return self.history[-1] if self.history else None
