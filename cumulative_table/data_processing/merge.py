from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, TypeVar, cast

from cumulative_table.data_processing.classification import ThresholdLadder
from cumulative_table.data_processing.schemas import Observation, Snapshot, is_missing

log = logging.getLogger(__name__)

T = TypeVar("T", Observation, Snapshot)


class MergePreconditionError(ValueError):
    """Raised when a subject cannot be merged (nothing to merge, or inputs out of step)."""


def _coalesce_attributes(previous: Optional[Snapshot], observation: Optional[Observation]) -> Dict[str, object]:
    prev_attrs = dict(previous.attributes) if previous is not None else {}
    obs_attrs = dict(observation.attributes) if observation is not None else {}
    out: Dict[str, object] = {}
    for name in list(prev_attrs) + [n for n in obs_attrs if n not in prev_attrs]:
        value = obs_attrs.get(name)
        out[name] = prev_attrs.get(name) if is_missing(value) else value
    return out


def merge_snapshot(
    previous: Optional[Snapshot],
    observation: Optional[Observation],
    ladder: ThresholdLadder,
) -> Snapshot:
    """
    Produce a subject's snapshot for the next period.

    previous    -- the subject's snapshot as of the prior period, or None
    observation -- the subject's raw row for this period, or None if inactive
    """
    if previous is None and observation is None:
        raise MergePreconditionError("merge_snapshot needs a previous snapshot or an observation, got neither.")

    if previous is not None and observation is not None:
        if previous.key != observation.key:
            raise MergePreconditionError(
                f"Key mismatch: previous snapshot {previous.key!r} vs observation {observation.key!r}"
            )
        if observation.period != previous.current_period + 1:
            raise MergePreconditionError(
                f"{observation.key!r}: observation for period {observation.period} cannot follow "
                f"snapshot at period {previous.current_period}"
            )

    attributes = _coalesce_attributes(previous, observation)

    if observation is None and previous is not None:
        return Snapshot(
            key=previous.key,
            attributes=attributes,
            history=previous.history,
            classification=previous.classification,
            periods_since_active=previous.periods_since_active + 1,
            current_period=previous.current_period + 1,
        )

    observed = cast(Observation, observation)
    stats = observed.to_stats()
    history = (stats,) if previous is None else previous.history + (stats,)
    return Snapshot(
        key=observed.key,
        attributes=attributes,
        history=history,
        classification=ladder.classify_stats(stats),
        periods_since_active=0,
        current_period=observed.period,
    )


def _index_by_key(rows: Iterable[T], what: str) -> Dict[str, T]:
    out: Dict[str, T] = {}
    for row in rows:
        if row.key in out:
            raise ValueError(f"Duplicate {what} for key {row.key!r}")
        out[row.key] = row
    return out


def merge_period(
    previous: Iterable[Snapshot],
    observations: Iterable[Observation],
    ladder: ThresholdLadder,
) -> List[Snapshot]:
    """Full outer join of last period's snapshots with this period's observations, merged per subject."""
    prev_by_key = _index_by_key(previous, "snapshot")
    obs_by_key = _index_by_key(observations, "observation")

    keys = sorted(set(prev_by_key) | set(obs_by_key))
    merged = [merge_snapshot(prev_by_key.get(k), obs_by_key.get(k), ladder) for k in keys]

    n_new = sum(1 for k in keys if k not in prev_by_key)
    n_inactive = sum(1 for k in keys if k not in obs_by_key)
    log.info(
        "Merged %d subjects: %d new, %d continuing, %d inactive",
        len(merged),
        n_new,
        len(merged) - n_new - n_inactive,
        n_inactive,
    )
    return merged
