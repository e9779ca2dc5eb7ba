from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Tuple

from cumulative_table.data_processing.schemas import PeriodStats, is_missing
from cumulative_table.utils.config import section

# pts > 20 star, > 15 good, > 10 average, otherwise bad
DEFAULT_METRIC = "pts"
DEFAULT_RUNGS: Tuple[Tuple[float, str], ...] = ((20.0, "star"), (15.0, "good"), (10.0, "average"))
DEFAULT_LABEL = "bad"


@dataclass(frozen=True)
class ThresholdLadder:
    """
    Maps one metric to an ordered category label.

    Rungs are checked top-down; the first threshold strictly below the value
    wins, so a value sitting exactly on a threshold lands one rung lower.
    """

    metric: str = DEFAULT_METRIC
    rungs: Tuple[Tuple[float, str], ...] = DEFAULT_RUNGS
    default: str = DEFAULT_LABEL

    def __post_init__(self) -> None:
        rungs = tuple((float(t), str(label)) for t, label in self.rungs)
        object.__setattr__(self, "rungs", rungs)
        thresholds = [t for t, _ in rungs]
        if any(a <= b for a, b in zip(thresholds, thresholds[1:])):
            raise ValueError(f"Ladder thresholds must be strictly descending, got {thresholds}")
        if not self.default:
            raise ValueError("Ladder needs a default label.")
        labels = self.labels
        if len(set(labels)) != len(labels):
            raise ValueError(f"Ladder labels must be distinct, got {labels}")

    @property
    def labels(self) -> Tuple[str, ...]:
        return tuple(label for _, label in self.rungs) + (self.default,)

    def classify(self, value: Optional[float]) -> str:
        if is_missing(value):
            return self.default
        v = float(value)  # type: ignore[arg-type]
        for threshold, label in self.rungs:
            if v > threshold:
                return label
        return self.default

    def classify_stats(self, stats: PeriodStats) -> str:
        return self.classify(stats.metrics.get(self.metric))

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> "ThresholdLadder":
        """
        Reads:
          classification:
            metric: pts
            ladder:
              - {above: 20, label: star}
              - {above: 15, label: good}
            default: bad
        """
        block = section(cfg, "classification")
        ladder: Sequence[Mapping[str, Any]] = block.get("ladder") or []
        if ladder:
            rungs = tuple((float(r["above"]), str(r["label"])) for r in ladder)
        else:
            rungs = DEFAULT_RUNGS
        return cls(
            metric=str(block.get("metric", DEFAULT_METRIC)),
            rungs=rungs,
            default=str(block.get("default", DEFAULT_LABEL)),
        )
