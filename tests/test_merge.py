import pytest

from cumulative_table.data_processing.merge import MergePreconditionError, merge_period, merge_snapshot
from cumulative_table.data_processing.schemas import PeriodStats, Snapshot


def _snapshot(key="Michael Jordan", history=((2000, 18.0),), classification="good", inactive=0, period=2000, **attrs):
    return Snapshot(
        key=key,
        attributes=attrs or {"height": "6-6", "college": "North Carolina"},
        history=tuple(PeriodStats(period=p, metrics={"pts": v}) for p, v in history),
        classification=classification,
        periods_since_active=inactive,
        current_period=period,
    )


def test_new_subject_gets_singleton_history(ladder, make_obs):
    merged = merge_snapshot(None, make_obs("Allen Iverson", 1996, 23.5, height="6-0"), ladder)
    assert [s.period for s in merged.history] == [1996]
    assert merged.periods_since_active == 0
    assert merged.current_period == 1996
    assert merged.classification == "star"
    assert merged.attributes == {"height": "6-0"}


def test_observed_subject_appends_and_reclassifies(ladder, make_obs):
    previous = _snapshot()
    merged = merge_snapshot(previous, make_obs("Michael Jordan", 2001, 22.0), ladder)

    assert [(s.period, s.metrics["pts"]) for s in merged.history] == [(2000, 18.0), (2001, 22.0)]
    assert merged.classification == "star"
    assert merged.periods_since_active == 0
    assert merged.latest.period == 2001
    assert merged.current_period == 2001
    # previous row is untouched
    assert len(previous.history) == 1


def test_absent_subject_carries_forward(ladder):
    previous = _snapshot(inactive=2)
    merged = merge_snapshot(previous, None, ladder)

    assert merged.history == previous.history
    assert merged.classification == "good"
    assert merged.periods_since_active == 3
    assert merged.current_period == 2001
    assert merged.attributes == previous.attributes


def test_attributes_prefer_observation_but_fall_back(ladder, make_obs):
    previous = _snapshot(height="6-6", college="North Carolina", country="USA")
    obs = make_obs("Michael Jordan", 2001, 22.0, height="6-7", college=None, country=float("nan"))
    merged = merge_snapshot(previous, obs, ladder)
    assert merged.attributes == {"height": "6-7", "college": "North Carolina", "country": "USA"}


def test_boundary_value_on_merge_lands_lower(ladder, make_obs):
    merged = merge_snapshot(_snapshot(), make_obs("Michael Jordan", 2001, 20.0), ladder)
    assert merged.classification == "good"


def test_both_absent_is_rejected(ladder):
    with pytest.raises(MergePreconditionError):
        merge_snapshot(None, None, ladder)


def test_key_mismatch_is_rejected(ladder, make_obs):
    with pytest.raises(MergePreconditionError):
        merge_snapshot(_snapshot(), make_obs("Scottie Pippen", 2001, 19.0), ladder)


@pytest.mark.parametrize("period", [2000, 1999, 2002])
def test_observation_must_be_next_period(ladder, make_obs, period):
    with pytest.raises(MergePreconditionError):
        merge_snapshot(_snapshot(), make_obs("Michael Jordan", period, 19.0), ladder)


def test_history_grows_by_one_per_observed_period(ladder, make_obs):
    snap = None
    for i, period in enumerate(range(1996, 2004)):
        snap = merge_snapshot(snap, make_obs("Tracy McGrady", period, 5.0 + 3 * i), ladder)
        assert len(snap.history) == i + 1
    periods = [s.period for s in snap.history]
    assert periods == sorted(periods)
    assert snap.current_period == 2003


def test_merge_period_is_a_full_outer_join(ladder, make_obs):
    previous = [
        _snapshot(key="Don MacLean", history=((2000, 5.2),), classification="bad"),
        _snapshot(key="Michael Jordan", history=((2000, 18.0),)),
    ]
    observations = [
        make_obs("Michael Jordan", 2001, 22.9),
        make_obs("Tony Parker", 2001, 9.2),
    ]
    merged = {s.key: s for s in merge_period(previous, observations, ladder)}

    assert sorted(merged) == ["Don MacLean", "Michael Jordan", "Tony Parker"]
    assert merged["Don MacLean"].periods_since_active == 1
    assert merged["Don MacLean"].current_period == 2001
    assert len(merged["Michael Jordan"].history) == 2
    assert merged["Michael Jordan"].classification == "star"
    assert len(merged["Tony Parker"].history) == 1
    assert all(s.current_period == 2001 for s in merged.values())


def test_merge_period_output_is_sorted_by_key(ladder, make_obs):
    merged = merge_period([], [make_obs("b", 1, 1.0), make_obs("a", 1, 1.0)], ladder)
    assert [s.key for s in merged] == ["a", "b"]


def test_merge_period_rejects_duplicate_keys(ladder, make_obs):
    with pytest.raises(ValueError):
        merge_period([], [make_obs("a", 1, 1.0), make_obs("a", 1, 2.0)], ladder)
    with pytest.raises(ValueError):
        merge_period([_snapshot(key="a"), _snapshot(key="a")], [], ladder)
