#!/usr/bin/env python3
"""Context atom extraction."""
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest

from acquaintance import AcquaintanceEdge
from atoms import (
    ATOM_KINDS,
    ContextAtom,
    Frame,
    LocationFacts,
    MapCell,
    NearbyAgent,
    Order,
    SocialView,
    UnknownAtomKind,
    derived_indices,
    extract_atoms,
    map_aggregates,
    target_candidates,
    wounded_ids,
)
from biography import Event
from config import BodyState


def busy_frame():
    return Frame(
        body=BodyState(hp=50, stamina=20, fear=0.6),
        nearby=[
            NearbyAgent("ana", "Ana", 0.2, "medic", False),
            NearbyAgent("bo", "Bo", 0.4, "", True),
            NearbyAgent("me", "Me", 0.0),
        ],
        relations=[SocialView("ana", "Ana", trust=0.8, threat=0.1, support=0.7, closeness=0.6), SocialView("bo", "Bo", trust=0.2, threat=0.7)],
        acquaintances={"ana": AcquaintanceEdge("known", 0.8, 0.7, kind="friend")},
        relationship_labels={"ana": ("friend", 0.7)},
        orders=[Order("o1", "order", "bo", 0.9, "Hold the gate")],
        recent_events=[Event("attack", ("attack",), 0.8, -0.8, ("bo", "me"), tick=4, id="e1")],
    )


def yard():
    return LocationFacts(
        id="yard",
        kind="courtyard",
        tags=("medical",),
        hazard=0.2,
        privacy="public",
        cells=[MapCell(0, 0, True, 0.8, 0.1), MapCell(1, 0, False, 0.6, 0.3)],
        exits=[(0, 1), (5, 5)],
    )


def test_unknown_kind_raises():
    print("Test: closed atom catalog...")
    with pytest.raises(UnknownAtomKind):
        ContextAtom("x", "moon_phase", 0.5, "test")


def test_magnitude_is_clamped():
    atom = ContextAtom("x", "threat", 3.0, "test")
    assert atom.magnitude == 1.0


def test_extract_atoms_covers_sources():
    print("Test: atom extraction...")
    atoms = extract_atoms("me", busy_frame(), yard(), tick=5)
    kinds = {a.kind for a in atoms}
    for kind in ("loc_id", "afford_treat_wounds", "map_escape", "body_wounded", "self_fatigue", "self_stress",
                 "nearby_agent", "wounded", "care_need", "tom_trust", "tom_threat", "soc_acq_tier",
                 "soc_identify_as", "rel_label", "authority_presence", "event_threat", "threat"):
        assert kind in kinds, kind
    assert all(a.kind in ATOM_KINDS for a in atoms)
    assert all(0.0 <= a.magnitude <= 1.0 for a in atoms)
    ids = [a.id for a in atoms]
    assert len(ids) == len(set(ids)), "atom ids must be unique"
    assert not any(a.related_agent_id == "me" for a in atoms)
    print(f"  ✓ {len(atoms)} atoms")


def test_extraction_is_deterministic():
    a = [(x.id, x.magnitude) for x in extract_atoms("me", busy_frame(), yard(), tick=5)]
    b = [(x.id, x.magnitude) for x in extract_atoms("me", busy_frame(), yard(), tick=5)]
    assert a == b


def test_targets_wounded_and_threat():
    atoms = extract_atoms("me", busy_frame(), yard(), tick=5)
    targets = target_candidates(atoms, "me")
    assert list(targets) == ["ana", "bo"]
    assert "me" not in targets
    assert wounded_ids(atoms) == ["bo"]


def test_min_relevance_filters_targets():
    frame = Frame(nearby=[NearbyAgent("far", "Far", 0.95)])
    atoms = extract_atoms("me", frame)
    assert target_candidates(atoms, "me", min_relevance=0.1) == {}
    assert "far" in target_candidates(atoms, "me", min_relevance=0.0)


def test_map_aggregates_escape():
    agg = map_aggregates(yard())
    assert agg["cover"] == pytest.approx(0.7)
    assert agg["walkable"] == pytest.approx(0.5)
    assert 0.0 < agg["escape"] <= 1.0


def test_derived_indices_prefer_frame_values():
    frame = busy_frame()
    threat, support = derived_indices(frame, yard(), tick=5)
    assert threat >= 0.8
    assert support > 0
    frame.threat_index = 0.05
    assert derived_indices(frame, yard(), tick=5)[0] == 0.05


def test_old_events_fall_out_of_window():
    frame = Frame(recent_events=[Event("attack", ("attack",), 0.9, -0.8, tick=0, id="old")])
    atoms = extract_atoms("me", frame, tick=50)
    assert not any(a.kind == "event_recent" for a in atoms)
