#!/usr/bin/env python3
"""Axis logits, life-goal distribution and the auditable goal scorer."""
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest

from acquaintance import AcquaintanceEdge
from biography import Event
from catalog import CONCRETE_GOALS, GATED_GOALS, GOAL_AXES, LIFE_GOALS, TARGETED_GOALS, TRAIT_AXES, goal_def
from config import EngineConfig
from det_rng import RngContext
from goals import (
    GoalContext,
    PsychState,
    build_relational_metrics,
    compute_axis_logits,
    evaluate_goals,
    life_goal_distribution,
    temperature,
    zscore,
)
from relations import Relationship

NEUTRAL_TRAITS = {k: 0.5 for k in TRAIT_AXES}
ZERO_AXES = {a: 0.0 for a in GOAL_AXES}


def test_zscore_constant_vector_is_zero():
    print("Test: zscore guard...")
    assert zscore({a: 3.0 for a in GOAL_AXES}) == {a: 0.0 for a in GOAL_AXES}


def test_neutral_agent_axis_total_is_zero():
    res = compute_axis_logits(NEUTRAL_TRAITS, PsychState())
    for axis in GOAL_AXES:
        assert abs(res.total[axis]) < 1e-9, axis
    assert abs(sum(res.life_goals.values()) - 1.0) < 1e-9
    assert set(res.life_goals) == set(LIFE_GOALS)


def test_goal_noise_is_seeded():
    a = compute_axis_logits(NEUTRAL_TRAITS, PsychState(), rng_ctx=RngContext(5), agent_id="ana", noise_scale=0.5)
    b = compute_axis_logits(NEUTRAL_TRAITS, PsychState(), rng_ctx=RngContext(5), agent_id="ana", noise_scale=0.5)
    c = compute_axis_logits(NEUTRAL_TRAITS, PsychState(), rng_ctx=RngContext(6), agent_id="ana", noise_scale=0.5)
    assert a.total == b.total
    assert a.total != c.total
    assert a.combined == c.combined


def test_stress_lowers_temperature():
    assert temperature(0.5, 0.9) < temperature(0.5, 0.0)
    flat = life_goal_distribution({a: (1.0 if a == "care" else 0.0) for a in GOAL_AXES}, 50.0)
    sharp = life_goal_distribution({a: (1.0 if a == "care" else 0.0) for a in GOAL_AXES}, 0.2)
    assert max(sharp.values()) > max(flat.values())


def test_neutral_concrete_logits_equal_base_plus_gates():
    """With zero axes and no history, each self goal scores its base logit (minus closed gates)."""
    print("Test: neutral concrete logits...")
    goals = {g.id: g for g in evaluate_goals("me", ZERO_AXES, {}, [], {}, GoalContext())}
    assert len(goals) == len(CONCRETE_GOALS)
    for gdef in CONCRETE_GOALS:
        expected = gdef.base_logit
        if gdef.id in GATED_GOALS:
            expected += GATED_GOALS[gdef.id][0]
        assert abs(goals[gdef.id].logit - expected) < 1e-12, gdef.id
    print("  ✓ base logits reproduced")


def test_gate_opens_with_wounded_nearby():
    closed = {g.id: g for g in evaluate_goals("me", ZERO_AXES, {}, [], {}, GoalContext())}
    opened = {g.id: g for g in evaluate_goals("me", ZERO_AXES, {}, [], {}, GoalContext(wounded_nearby=True))}
    assert opened["c_preserve_group_safety"].logit > closed["c_preserve_group_safety"].logit
    assert "gate wounded_nearby" in closed["c_preserve_group_safety"].formula


def test_unknown_gate_predicate_raises():
    with pytest.raises(KeyError):
        GoalContext().gate_open("moon_is_full")
    with pytest.raises(KeyError):
        goal_def("c_not_a_goal")


def test_pooled_scores_sum_to_one():
    metrics = build_relational_metrics({"trust": 0.9, "bond": 0.8, "align": 0.7}, None, AcquaintanceEdge("known", 0.8, 0.7))
    targets = {"x": metrics, "y": build_relational_metrics(None, Relationship(trust=0.2, conflict=0.8), None), "me": metrics}
    goals = evaluate_goals("me", ZERO_AXES, {}, [], targets, GoalContext(leaders={"x"}))
    assert abs(sum(g.score for g in goals) - 1.0) < 1e-9
    assert all(g.target_id != "me" for g in goals)
    scores = [g.score for g in goals]
    assert scores == sorted(scores, reverse=True)


def test_leader_and_wounded_boosts_are_audited():
    metrics = build_relational_metrics({"trust": 0.9, "bond": 0.9, "align": 0.8, "respect": 0.9}, None, AcquaintanceEdge("intimate", 1.0, 1.0), is_leader=True)
    ctx = GoalContext(leaders={"x"}, wounded_ids={"x"}, wounded_nearby=True, names={"x": "Xena"})
    goals = {g.id: g for g in evaluate_goals("me", ZERO_AXES, {}, [], {"x": metrics}, ctx)}
    obey = goals["c_obey_target_x"]
    protect = goals["c_protect_target_x"]
    assert "1.5(Leader)" in obey.formula
    assert "2.0(Wounded)" in protect.formula
    assert any(c.key == "Leader Status" for c in obey.breakdown)
    assert "Xena" in protect.label


def test_weak_targeted_goals_are_dropped():
    cfg = EngineConfig(targeted_drop_logit=100.0)
    metrics = build_relational_metrics({"trust": 0.9}, None, None)
    goals = evaluate_goals("me", ZERO_AXES, {}, [], {"x": metrics}, GoalContext(), cfg)
    assert all(g.target_id is None for g in goals)


def test_betrayal_history_feeds_targeted_goals():
    """Repeated betrayal by x shows up as an audited Bio/History term on break_with(x)."""
    events = [Event("betrayal", ("betrayal",), 0.9, -0.8, ("me", "x"), id=f"b{i}") for i in range(3)]
    metrics = build_relational_metrics({"trust": 0.2, "conflict": 0.7}, None, AcquaintanceEdge("known", 0.8, 0.7))
    goals = {g.id: g for g in evaluate_goals("me", ZERO_AXES, {}, events, {"x": metrics}, GoalContext())}
    clean = {g.id: g for g in evaluate_goals("me", ZERO_AXES, {}, [], {"x": metrics}, GoalContext())}
    brk = goals["c_break_with_target_x"]
    betrayal = [c for c in brk.breakdown if c.category == "Bio/History" and c.key == "B_rel_betrayed_by"]
    assert len(betrayal) == 1
    assert 0.9 < betrayal[0].agent_value < 1.0
    assert betrayal[0].contribution == pytest.approx(2.5 * betrayal[0].agent_value)
    assert "B_rel_betrayed_by" in brk.formula
    if "c_break_with_target_x" in clean:
        assert brk.logit == pytest.approx(clean["c_break_with_target_x"].logit + betrayal[0].contribution)


def test_significance_tracks_alignment_distance():
    neutral = build_relational_metrics({"bond": 0.4, "align": 0.5}, None, AcquaintanceEdge("intimate", 1.0, 1.0))
    aligned = build_relational_metrics({"bond": 0.4, "align": 0.9}, None, AcquaintanceEdge("intimate", 1.0, 1.0))
    opposed = build_relational_metrics({"bond": 0.4, "align": 0.1}, None, AcquaintanceEdge("intimate", 1.0, 1.0))
    assert neutral["Significance"] == pytest.approx(0.28)
    assert aligned["Significance"] == pytest.approx(0.68)
    assert opposed["Significance"] == pytest.approx(aligned["Significance"])


def test_relational_metrics_gated_by_recognition():
    live = {"trust": 0.9, "bond": 0.8, "fear": 0.2}
    stranger = build_relational_metrics(live, None, None)
    intimate = build_relational_metrics(live, None, AcquaintanceEdge("intimate", 1.0, 1.0))
    assert stranger["Trust"] < intimate["Trust"] <= 0.9
    assert stranger["Fear"] >= 0.2 * 0.7


def test_live_tom_beats_stored_relationship():
    m = build_relational_metrics({"trust": 0.1}, Relationship(trust=0.9), AcquaintanceEdge("intimate", 1.0, 1.0))
    assert m["Trust"] == pytest.approx(0.1)


def test_targeted_catalog_ids():
    ids = {g.id for g in TARGETED_GOALS}
    assert "c_protect_target" in ids and "c_coordinate_with_target" in ids
