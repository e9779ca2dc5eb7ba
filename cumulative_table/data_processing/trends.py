from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

import numpy as np
import pandas as pd

from cumulative_table.data_processing.schemas import PeriodStats, Snapshot, is_missing

log = logging.getLogger(__name__)


def _value(stats: PeriodStats, metric: str) -> float:
    v = stats.metrics.get(metric)
    return float("nan") if is_missing(v) else float(v)  # type: ignore[arg-type]


def improvement_ratio(history: Sequence[PeriodStats], metric: str) -> float:
    """
    Latest value of `metric` over its first value.

    A zero first value is replaced by 1, so [(2000, 0), (2001, 10)] gives 10.0.
    A single-element history compares the element with itself.
    """
    if not history:
        raise ValueError("improvement_ratio needs at least one history element.")
    first = _value(history[0], metric)
    last = _value(history[-1], metric)
    return last / (1.0 if first == 0 else first)


def improvement_report(
    snapshots: Iterable[Snapshot],
    metric: str,
    classification: Optional[str] = None,
    key_column: str = "key",
) -> pd.DataFrame:
    """Improvement ratio per subject, best first; optionally only one classification."""
    picked = [
        s for s in snapshots
        if s.history and (classification is None or s.classification == classification)
    ]
    if not picked:
        log.info("No subjects matched classification=%s", classification)
        return pd.DataFrame(columns=[key_column, "improvement"])

    first = np.array([_value(s.history[0], metric) for s in picked], dtype=float)
    last = np.array([_value(s.history[-1], metric) for s in picked], dtype=float)
    ratio = last / np.where(first == 0, 1.0, first)

    report = pd.DataFrame({key_column: [s.key for s in picked], "improvement": ratio})
    return report.sort_values("improvement", ascending=False, kind="mergesort").reset_index(drop=True)
