"""Goal-Inheritance Layer: goal weight flows from trusted, bonded others."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from mathutil import clamp01, sigmoid

logger = logging.getLogger(__name__)

GIL_FLOOR = 0.25


@dataclass
class GilResult:
    weights: Dict[str, float]
    total_phi: float = 0.0
    phis: Dict[str, float] = field(default_factory=dict)


def raw_affinity(view: Dict[str, float], kin_tie: float = 0.0, faction_tie: float = 0.0, reciprocal_trust: float = 0.0) -> float:
    trust = view.get("trust", 0.5)
    bond = view.get("bond", 0.1)
    align = view.get("align", 0.5)
    dominance = view.get("dominance", 0.5)
    base = (
        0.5 * trust
        + 0.4 * bond
        + 0.3 * align
        - 0.2 * max(0.0, (dominance - 0.5) * 2.0)
        + 0.6 * kin_tie
        + 0.4 * faction_tie
        + 0.5 * reciprocal_trust
    )
    return sigmoid(3.0 * (base - 0.1))


def phi_max_from_conformity(conformity: float) -> float:
    return 0.3 + 0.55 * sigmoid(4.0 * (clamp01(conformity) - 0.5))


def scale_and_gate(raw: Dict[str, float], phi_max: float, floor: float = GIL_FLOOR) -> Dict[str, float]:
    """Cap the summed affinity at ``phi_max``, then drop donors under ``floor``.

    A weight exactly at the floor is kept.
    """
    total = sum(raw.values())
    scale = phi_max / total if total > phi_max else 1.0
    return {k: v * scale for k, v in raw.items() if v * scale >= floor}


def apply_inheritance(own: Dict[str, float], donors: Iterable[Tuple[str, float, Dict[str, float]]]) -> GilResult:
    """Pull ``own`` toward each donor vector in turn: w += phi * (w_d - w).

    Donors are (donor_id, phi, weights) triples, applied in iteration order.
    """
    weights = dict(own)
    phis: Dict[str, float] = {}
    for donor_id, phi, donor in donors:
        if phi <= 0:
            continue
        phis[donor_id] = phi
        for key in set(weights) | set(donor):
            mine = weights.get(key, 0.0)
            weights[key] = mine + phi * (donor.get(key, 0.0) - mine)
    return GilResult(weights=weights, total_phi=sum(phis.values()), phis=phis)


def inherit_goals(
    own: Dict[str, float],
    views: Dict[str, Dict[str, float]],
    donor_weights: Dict[str, Dict[str, float]],
    conformity: float,
    ties: Dict[str, Dict[str, float]] | None = None,
    floor: float = GIL_FLOOR,
) -> GilResult:
    """Full layer for one agent.

    ``views`` holds this agent's ToM view of each candidate donor,
    ``donor_weights`` the donors' lagged goal vectors and ``ties`` optional
    kin/faction/reciprocal values per donor.
    """
    ties = ties or {}
    raw: Dict[str, float] = {}
    for donor_id in sorted(views):
        if donor_id not in donor_weights:
            continue
        tie = ties.get(donor_id, {})
        raw[donor_id] = raw_affinity(
            views[donor_id],
            kin_tie=tie.get("kin", 0.0),
            faction_tie=tie.get("faction", 0.0),
            reciprocal_trust=tie.get("reciprocal_trust", 0.0),
        )
    if not raw:
        return GilResult(weights=dict(own))

    phis = scale_and_gate(raw, phi_max_from_conformity(conformity), floor)
    donors: List[Tuple[str, float, Dict[str, float]]] = [(d, phis[d], donor_weights[d]) for d in sorted(phis)]
    result = apply_inheritance(own, donors)
    logger.debug("gil donors=%s total_phi=%.3f", list(result.phis), result.total_phi)
    return result
