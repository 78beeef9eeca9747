#!/usr/bin/env python3
"""Biography feature extraction, exposure traces and worldview."""
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from biography import (
    Event,
    baseline_worldview,
    compute_exposure_traces,
    compute_worldview,
    extract_global_features,
    extract_relational_features,
    worldview_deviation,
)


def varied_biography():
    return [
        Event("trauma", ("trauma", "humiliation", "coercion"), 1.0, -0.8, ("me", "x")),
        Event("loss", ("trauma", "loss", "attachment"), 0.9, -0.9, ("me",)),
        Event("betrayal_by_leader", ("trauma", "betrayal"), 0.7, -0.7, ("me", "boss")),
        Event("achievement", ("success",), 0.6, 0.7, ("me",)),
        Event("failure", ("failure",), 0.4, -0.3, ("me",)),
        Event("survival", ("survival",), 1.0, -0.2, ("me",)),
    ]


def test_global_features_in_unit_interval():
    """Every saturated feature stays in [0, 1)."""
    print("Test: global features range...")
    features = extract_global_features(varied_biography() * 3)
    assert features, "expected some features"
    for key, value in features.items():
        assert key.startswith("B_")
        assert 0.0 <= value < 1.0, f"{key}={value}"
    print(f"  ✓ {len(features)} features in range")


def test_relational_features_in_unit_interval():
    events = varied_biography() + [Event("rescue", ("rescue", "care"), 1.0, 0.8, ("me", "x"))] * 4
    for value in extract_relational_features(events, "x").values():
        assert 0.0 <= value < 1.0


def test_long_biographies_stay_below_one():
    """Saturation never reaches 1.0, even after dozens of strong events."""
    print("Test: long biography bound...")
    wins = [Event("success", ("success",), 1.0, 0.8, ("me",), id=f"s{i}") for i in range(40)]
    features = extract_global_features(wins)
    assert 0.99 < features["B_success"] < 1.0

    cared = [Event("assist", ("care", "help"), 1.0, 0.7, ("x", "me"), id=f"c{i}") for i in range(30)]
    rel = extract_relational_features(cared, "x")
    assert 0.99 < rel["B_rel_care_from"] < 1.0
    for value in extract_relational_features(cared, "x", pattern_bonus=5.0).values():
        assert value < 1.0
    print("  ✓ features stay in [0, 1)")


def test_repeated_pattern_beats_single_large_event():
    """Three betrayals of intensity 1 weigh more than one of intensity 3."""
    print("Test: pattern bonus...")
    many = [Event("betrayal", ("betrayal",), 1.0, -0.7, ("me", "x"), id=f"b{i}") for i in range(3)]
    one = [Event("betrayal", ("betrayal",), 3.0, -0.7, ("me", "x"))]
    repeated = extract_relational_features(many, "x")["B_rel_betrayed_by"]
    single = extract_relational_features(one, "x")["B_rel_betrayed_by"]
    assert repeated > single
    print(f"  ✓ repeated={repeated:.4f} single={single:.4f}")


def test_pattern_bonus_is_tunable():
    many = [Event("betrayal", ("betrayal",), 0.3, -0.7, ("me", "x"))] * 3
    low = extract_relational_features(many, "x", pattern_bonus=0.0)["B_rel_betrayed_by"]
    high = extract_relational_features(many, "x", pattern_bonus=0.5)["B_rel_betrayed_by"]
    assert high > low


def test_relational_features_only_count_target():
    events = [Event("betrayal", ("betrayal",), 0.8, -0.7, ("me", "y"))]
    assert extract_relational_features(events, "x") == {}
    camel = Event.from_dict({"kind": "violence", "tags": ["harm"], "payload": {"targetId": "x"}})
    assert "B_rel_harmed" in extract_relational_features([camel], "x")


def test_single_betrayal_feature():
    events = [Event("betrayal", ("betrayal",), 0.8, -0.7, ("me", "x"))]
    assert extract_relational_features(events, "x")["B_rel_betrayed_by"] > 0


def test_exposure_decays_with_years():
    recent = compute_exposure_traces([Event("trauma", ("trauma",), 1.0, -0.5, years_ago=0)])
    old = compute_exposure_traces([Event("trauma", ("trauma",), 1.0, -0.5, years_ago=10)])
    assert recent["E_threat"] > old["E_threat"] > 0


def test_worldview_baseline_and_deviation():
    """An empty biography sits exactly on the baseline worldview."""
    base = baseline_worldview()
    assert compute_worldview({}) == base
    assert all(v == 0.0 for v in worldview_deviation(base).values())
    hurt = compute_worldview(compute_exposure_traces(varied_biography()))
    assert hurt["people_trust"] < base["people_trust"]
    assert hurt["world_benevolence"] < base["world_benevolence"]


def test_event_dict_round_trip_keeps_fields():
    ev = Event("oath_take", ("oath",), 0.7, 0.3, ("a", "b"), tick=4, years_ago=1.5, secrecy="private", controllability=0.2, id="e1")
    assert Event.from_dict(ev.to_dict()) == ev
