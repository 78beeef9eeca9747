"""Stored relationship records and the dyad-personality formula."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from mathutil import clamp01

HISTORY_LIMIT = 50


@dataclass
class Relationship:
    trust: float = 0.5
    bond: float = 0.1
    align: float = 0.5
    respect: float = 0.5
    fear: float = 0.1
    conflict: float = 0.0
    history: List[Dict[str, object]] = field(default_factory=list)

    def metrics(self) -> Dict[str, float]:
        return dict(trust=self.trust, bond=self.bond, align=self.align, respect=self.respect, fear=self.fear, conflict=self.conflict)

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = dict(self.metrics())
        data["history"] = [dict(h) for h in self.history]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "Relationship":
        rel = cls(**{k: clamp01(float(data[k])) for k in ("trust", "bond", "align", "respect", "fear", "conflict") if k in data})
        rel.history = [dict(h) for h in (data.get("history") or [])][-HISTORY_LIMIT:]
        return rel


# action -> (trust, align, conflict, bond bump, fear bump) when aimed at the observer;
# second tuple applies to observed actions aimed at someone else.
ACTION_DELTAS: Dict[str, Tuple[Tuple[float, float, float, float, float], Tuple[float, float, float, float, float]]] = {
    "aid_ally": ((0.2, 0.0, 0.0, 0.1, 0.0), (0.0, 0.0, 0.0, 0.0, 0.0)),
    "attack": ((-0.5, 0.0, 0.6, 0.0, 0.3), (-0.05, 0.0, 0.1, 0.0, 0.0)),
    "intimidate": ((-0.2, 0.0, 0.3, 0.0, 0.2), (0.0, 0.0, 0.0, 0.0, 0.0)),
    "deceive": ((-0.8, 0.0, 0.5, 0.0, 0.0), (0.0, 0.0, 0.0, 0.0, 0.0)),
    "introduce": ((0.05, 0.0, 0.0, 0.0, 0.0), (0.0, 0.0, 0.0, 0.0, 0.0)),
    "share_information": ((0.1, 0.0, 0.0, 0.0, 0.0), (0.0, 0.0, 0.0, 0.0, 0.0)),
}

# host/ToM catalog actions reuse the deltas above
ACTION_ALIASES = {
    "assist": "aid_ally",
    "share_info": "share_information",
    "negotiate": "introduce",
    "confront": "intimidate",
}

ACTION_ALIGN = {"defer": 0.05, "set_boundary": -0.05, "negotiate": 0.03}


def apply_action(
    rel: Relationship,
    action: str,
    directed_at_observer: bool,
    zeta: float,
    tick: int,
    detected: bool = True,
    history_limit: int = HISTORY_LIMIT,
) -> Relationship:
    """Blend fixed action deltas into ``rel`` with belief rate ``zeta``.

    ``detected`` only matters for ``deceive``: undetected deception changes nothing.
    """
    key = ACTION_ALIASES.get(action, action)
    direct, indirect = ACTION_DELTAS.get(key, ((0.0,) * 5, (0.0,) * 5))
    d_trust, d_align, d_conflict, d_bond, d_fear = direct if directed_at_observer else indirect
    if key == "deceive" and not detected:
        d_trust = d_conflict = 0.0
    if directed_at_observer:
        d_align += ACTION_ALIGN.get(action, 0.0)

    zeta = clamp01(zeta)
    if d_bond:
        rel.bond = clamp01((1 - zeta) * rel.bond + zeta * (rel.bond + d_bond))
    if d_fear:
        rel.fear = clamp01((1 - zeta) * rel.fear + zeta * (rel.fear + d_fear))

    # trust gains compound on an existing positive relationship
    feedback = 1.0 + rel.trust + rel.bond if d_trust > 0 else 1.0
    rel.trust = clamp01((1 - zeta) * rel.trust + zeta * (rel.trust + d_trust * feedback))
    rel.align = clamp01((1 - zeta) * rel.align + zeta * (rel.align + d_align))
    rel.conflict = clamp01((1 - zeta) * rel.conflict + zeta * (rel.conflict + d_conflict))

    rel.history.append({"event": action, "tick": tick, "intensity": abs(d_trust) + abs(d_conflict)})
    if len(rel.history) > history_limit:
        del rel.history[: len(rel.history) - history_limit]
    return rel


def relationship_label(rel: Relationship, is_superior: bool = False) -> Tuple[str, float]:
    """Coarse label plus strength, used for relationship atoms."""
    if is_superior and rel.respect >= 0.5:
        return "superior", clamp01(rel.respect)
    if rel.conflict > 0.6 and rel.trust < 0.35:
        return "enemy", clamp01(rel.conflict)
    if rel.conflict > 0.4:
        return "rival", clamp01(rel.conflict)
    if rel.bond > 0.6 and rel.trust > 0.6:
        return "friend", clamp01(0.5 * (rel.bond + rel.trust))
    if rel.align > 0.6 and rel.trust > 0.5:
        return "ally", clamp01(0.5 * (rel.align + rel.trust))
    return "acquaintance", clamp01(rel.bond)


# --- dyad personality ---


@dataclass
class DyadConfig:
    """How one agent perceives others, as axis-weight maps over trait vectors."""

    like_sim_axes: Dict[str, float] = field(default_factory=dict)
    like_opposite_axes: Dict[str, float] = field(default_factory=dict)
    trust_sim_axes: Dict[str, float] = field(default_factory=dict)
    trust_partner_axes: Dict[str, float] = field(default_factory=dict)
    fear_threat_axes: Dict[str, float] = field(default_factory=dict)
    fear_dom_axes: Dict[str, float] = field(default_factory=dict)
    respect_partner_axes: Dict[str, float] = field(default_factory=dict)
    closeness_sim_axes: Dict[str, float] = field(default_factory=dict)
    dominance_axes: Dict[str, float] = field(default_factory=dict)
    bias_liking: float = 0.0
    bias_trust: float = 0.0
    bias_fear: float = 0.0
    bias_respect: float = 0.0
    bias_closeness: float = 0.0
    bias_dominance: float = 0.0
    overrides: Dict[str, Dict[str, float]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "DyadConfig":
        known = set(cls.__dataclass_fields__)
        return cls(**{k: v for k, v in (data or {}).items() if k in known})


def _weighted(axes: Dict[str, float], a: Dict[str, float], b: Dict[str, float], fn) -> float:
    num = 0.0
    den = 0.0
    for axis, w in axes.items():
        num += w * fn(a.get(axis, 0.5), b.get(axis, 0.5))
        den += abs(w)
    return num / den if den else 0.0


def compute_dyad_metrics(cfg: DyadConfig, a: Dict[str, float], b: Dict[str, float], target_id: str = "") -> Dict[str, float]:
    """Metrics A -> B. liking and dominance in [-1, 1], the rest in [0, 1]."""
    sim = lambda x, y: 1.0 - abs(x - y)
    dom_diff = lambda x, y: y - x
    level = lambda _x, y: y

    like_sim = _weighted(cfg.like_sim_axes, a, b, sim)
    like_opp = 1.0 - _weighted(cfg.like_opposite_axes, a, b, sim)
    trust_sim = _weighted(cfg.trust_sim_axes, a, b, sim)
    trust_partner = _weighted(cfg.trust_partner_axes, a, b, level)
    fear_threat = _weighted(cfg.fear_threat_axes, a, b, level)
    fear_dom = max(0.0, _weighted(cfg.fear_dom_axes, a, b, dom_diff))
    respect_partner = _weighted(cfg.respect_partner_axes, a, b, level)
    closeness_sim = _weighted(cfg.closeness_sim_axes, a, b, sim)
    dom = _weighted(cfg.dominance_axes, a, b, dom_diff)

    ov = cfg.overrides.get(target_id, {})
    unit = lambda x: clamp01(0.5 * (math.tanh(x) + 1.0))

    liking = math.tanh(cfg.bias_liking + 1.5 * like_sim + 1.0 * like_opp - 1.0 * fear_threat + ov.get("liking_delta", 0.0))
    trust = unit(cfg.bias_trust + 1.5 * trust_sim + trust_partner - fear_threat - 0.5 * fear_dom + ov.get("trust_delta", 0.0))
    fear = unit(cfg.bias_fear + 1.5 * fear_threat + fear_dom + ov.get("fear_delta", 0.0))
    respect = unit(cfg.bias_respect + 1.5 * respect_partner + 0.3 * fear_threat + 0.3 * fear_dom + ov.get("respect_delta", 0.0))
    closeness = unit(cfg.bias_closeness + 1.5 * closeness_sim + 0.5 * liking - fear + ov.get("closeness_delta", 0.0))
    dominance = math.tanh(cfg.bias_dominance + dom - 0.5 * fear_threat + ov.get("dominance_delta", 0.0))
    return dict(liking=liking, trust=trust, fear=fear, respect=respect, closeness=closeness, dominance=dominance)
