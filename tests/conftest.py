from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from cumulative_table.data_processing.classification import ThresholdLadder
from cumulative_table.data_processing.schemas import Observation, TableSchema

RAW_ROWS = [
    # player_name, height, college, country, draft_year, draft_number, pts, ast, reb, weight, season
    ("Michael Jordan", "6-6", "North Carolina", "USA", "1984", "3", 30.4, 4.3, 6.6, 215, 1996),
    ("Michael Jordan", "6-6", "North Carolina", "USA", "1984", "3", 28.7, 3.5, 5.8, 215, 1997),
    ("Michael Jordan", "6-6", "North Carolina", "USA", "1984", "3", 22.9, 5.2, 5.7, 215, 1999),
    ("Don MacLean", "6-10", "UCLA", "USA", "1992", "19", 11.4, 0.9, 3.9, 235, 1996),
    ("Don MacLean", "6-10", None, "USA", "1992", "19", 0.0, 0.4, 1.7, 235, 1997),
    ("Tracy McGrady", "6-8", None, "USA", "1997", "9", 7.0, 1.5, 4.2, 210, 1997),
    ("Tracy McGrady", "6-8", None, "USA", "1997", "9", 20.0, 2.3, 5.7, 210, 1998),
    ("Tracy McGrady", "6-8", None, "USA", "1997", "9", 26.8, 4.6, 7.5, 210, 1999),
]

RAW_COLUMNS = [
    "player_name", "height", "college", "country", "draft_year", "draft_number",
    "pts", "ast", "reb", "weight", "season",
]


@pytest.fixture
def schema() -> TableSchema:
    return TableSchema()


@pytest.fixture
def ladder() -> ThresholdLadder:
    return ThresholdLadder()


@pytest.fixture
def make_obs():
    def _make(key: str, period: int, pts: float, **attributes) -> Observation:
        return Observation(
            key=key,
            period=period,
            attributes=attributes,
            metrics={"pts": pts, "ast": 1.0, "reb": 2.0, "weight": 200.0},
        )

    return _make


@pytest.fixture
def raw_csv(tmp_path: Path) -> Path:
    path = tmp_path / "raw" / "player_seasons.csv"
    path.parent.mkdir(parents=True)
    pd.DataFrame(RAW_ROWS, columns=RAW_COLUMNS).to_csv(path, index=False)
    return path


@pytest.fixture
def cfg(tmp_path: Path, raw_csv: Path) -> dict:
    return {
        "table": {
            "key": "player_name",
            "period_column": "season",
            "attributes": ["height", "college", "country", "draft_year", "draft_number"],
            "metrics": ["pts", "ast", "reb", "weight"],
        },
        "classification": {
            "metric": "pts",
            "ladder": [
                {"above": 20, "label": "star"},
                {"above": 15, "label": "good"},
                {"above": 10, "label": "average"},
            ],
            "default": "bad",
        },
        "store": {
            "snapshot_dir": str(tmp_path / "snapshots"),
            "observations": str(raw_csv),
        },
        "output": {"meta_dir": str(tmp_path / "meta")},
        "logging": {"level": "DEBUG"},
    }
