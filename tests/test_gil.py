#!/usr/bin/env python3
"""Goal-Inheritance Layer."""
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from gil import apply_inheritance, inherit_goals, phi_max_from_conformity, raw_affinity, scale_and_gate

OWN = {"protect_lives": 0.8, "seek_status": 0.2}
DONOR = {"protect_lives": 0.1, "seek_status": 0.9}


def test_total_phi_capped_by_conformity():
    """Many close donors never push Σφ above φ_max."""
    print("Test: phi cap...")
    views = {f"d{i}": {"trust": 0.95, "bond": 0.9, "align": 0.9, "dominance": 0.3} for i in range(6)}
    donors = {k: dict(DONOR) for k in views}
    for conformity in (0.0, 0.5, 1.0):
        res = inherit_goals(OWN, views, donors, conformity, floor=0.0)
        assert res.total_phi <= phi_max_from_conformity(conformity) + 1e-9
        assert res.total_phi > 0
    print("  ✓ Σφ bounded")


def test_floor_boundary():
    """A donor exactly at the floor is kept; one just below is dropped."""
    print("Test: floor boundary...")
    gated = scale_and_gate({"at": 0.25, "below": 0.2499}, phi_max=10.0, floor=0.25)
    assert "at" in gated
    assert "below" not in gated
    print("  ✓ floor inclusive")


def test_gated_donor_contributes_nothing():
    res = apply_inheritance(OWN, [("zero", 0.0, DONOR)])
    assert res.weights == OWN
    assert res.phis == {}
    assert res.total_phi == 0.0


def test_inheritance_pulls_toward_donor():
    res = apply_inheritance(OWN, [("d", 0.5, DONOR)])
    assert abs(res.weights["seek_status"] - 0.55) < 1e-12
    assert abs(res.weights["protect_lives"] - 0.45) < 1e-12


def test_affinity_orders_by_closeness():
    close = raw_affinity({"trust": 0.9, "bond": 0.8, "align": 0.8})
    distant = raw_affinity({"trust": 0.1, "bond": 0.0, "align": 0.2, "dominance": 1.0})
    assert close > distant
    assert raw_affinity({"trust": 0.5}, kin_tie=1.0) > raw_affinity({"trust": 0.5})


def test_conformity_widens_cap():
    assert phi_max_from_conformity(1.0) > phi_max_from_conformity(0.5) > phi_max_from_conformity(0.0)


def test_no_donors_returns_own_weights():
    res = inherit_goals(OWN, {"ghost": {"trust": 0.9}}, {}, 0.5)
    assert res.weights == OWN
    assert res.total_phi == 0.0


def test_ties_raise_phi():
    views = {"d": {"trust": 0.3, "bond": 0.1, "align": 0.4}}
    donors = {"d": DONOR}
    plain = inherit_goals(OWN, views, donors, 0.5, floor=0.0)
    kin = inherit_goals(OWN, views, donors, 0.5, ties={"d": {"kin": 1.0, "faction": 1.0}}, floor=0.0)
    assert kin.phis["d"] >= plain.phis["d"]
