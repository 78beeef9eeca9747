"""Theory-of-Mind belief store: one entry per ordered observer -> target pair."""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, field, fields
from typing import Dict, Iterable, List

from biography import Event
from catalog import GOAL_ACTION_AFFINITY, LIFE_GOALS, TOM_ACTIONS
from det_rng import XorShift32
from mathutil import clamp01, normalize_weights, sigmoid, softmax

logger = logging.getLogger(__name__)

NEUTRAL = 0.5
SECOND_ORDER_LAMBDA = 0.65


@dataclass
class TomTraits:
    trust: float = 0.5
    align: float = 0.5
    bond: float = 0.1
    competence: float = 0.5
    dominance: float = 0.0
    reliability: float = 0.5
    obedience: float = 0.5
    uncertainty: float = 1.0
    vulnerability: float = 0.5
    conflict: float = 0.1
    respect: float = 0.5
    fear: float = 0.1

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


# traits that relax toward the neutral center while idle
RELAXING_TRAITS = tuple(f.name for f in fields(TomTraits) if f.name != "uncertainty")


@dataclass
class TomEntry:
    observer_id: str
    target_id: str
    goals: Dict[str, float] = field(default_factory=dict)
    traits: TomTraits = field(default_factory=TomTraits)
    last_updated_tick: int = 0
    last_interaction_tick: int | None = 0
    evidence_count: int = 0
    affect: Dict[str, float] | None = None
    norms: Dict[str, float] | None = None
    role_profile: Dict[str, object] | None = None
    policy_prior: Dict[str, Dict[str, float]] | None = None
    second_order: Dict[str, float] | None = None

    @property
    def uncertainty(self) -> float:
        return self.traits.uncertainty

    @uncertainty.setter
    def uncertainty(self, value: float) -> None:
        self.traits.uncertainty = clamp01(value)

    def to_dict(self) -> Dict[str, object]:
        return {
            "observer_id": self.observer_id,
            "target_id": self.target_id,
            "goals": dict(self.goals),
            "traits": self.traits.as_dict(),
            "last_updated_tick": self.last_updated_tick,
            "last_interaction_tick": self.last_interaction_tick,
            "evidence_count": self.evidence_count,
            "affect": self.affect,
            "norms": self.norms,
            "role_profile": self.role_profile,
            "policy_prior": self.policy_prior,
            "second_order": self.second_order,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "TomEntry":
        traits = TomTraits(**{k: float(v) for k, v in (data.get("traits") or {}).items() if k in TomTraits.__dataclass_fields__})
        return cls(
            observer_id=str(data["observer_id"]),
            target_id=str(data["target_id"]),
            goals={str(k): float(v) for k, v in (data.get("goals") or {}).items()},
            traits=traits,
            last_updated_tick=int(data.get("last_updated_tick", 0)),
            last_interaction_tick=data.get("last_interaction_tick"),
            evidence_count=int(data.get("evidence_count", 0)),
            affect=data.get("affect"),
            norms=data.get("norms"),
            role_profile=data.get("role_profile"),
            policy_prior=data.get("policy_prior"),
            second_order=data.get("second_order"),
        )


# --- init ---


def _history_deltas(events: Iterable[Event], target_id: str) -> Dict[str, float]:
    d = dict(trust=0.0, align=0.0, bond=0.0, conflict=0.0, respect=0.0, fear=0.0)
    for ev in events:
        if not ev.involves(target_id):
            continue
        w = ev.intensity
        tags = set(ev.tags)
        matched = False
        if tags & {"rescue", "heroism", "support_interpersonal"}:
            d["trust"] += 0.3 * w
            d["bond"] += 0.4 * w
            matched = True
        if tags & {"combat", "battle"} or ev.kind == "combat":
            d["trust"] += 0.25 * w
            d["bond"] += 0.35 * w
            d["respect"] += 0.2 * w
            matched = True
        if tags & {"shared_trauma", "group_trauma"}:
            d["bond"] += 0.5 * w
            d["align"] += 0.2 * w
            matched = True
        if ev.kind == "oath_take":
            d["trust"] += 0.4 * w
            d["align"] += 0.3 * w
            d["bond"] += 0.2 * w
            matched = True
        if "betrayal" in tags or ev.kind == "betrayal":
            d["trust"] -= 0.6 * w
            d["conflict"] += 0.5 * w
            d["bond"] -= 0.3 * w
            matched = True
        if tags & {"harm", "abuse_physical"}:
            d["trust"] -= 0.5 * w
            d["conflict"] += 0.4 * w
            d["fear"] += 0.3 * w
            matched = True
        if not matched:
            # mere exposure
            d["bond"] += 0.1 * w
            if ev.valence > 0:
                d["trust"] += 0.1 * w
            else:
                d["bond"] += 0.05 * w
    return d


def init_tom_entry(
    observer_id: str,
    target_id: str,
    observer_events: Iterable[Event] = (),
    loyalty: float = 50.0,
    target_clearance: float = 0.0,
    target_competence: float = 50.0,
    observer_discipline: float = 0.5,
    dyad: Dict[str, float] | None = None,
    hostility: float = 0.0,
    goal_ids: Iterable[str] = LIFE_GOALS,
    tick: int = 0,
) -> TomEntry:
    """Seed an entry from a static baseline, shared history and an optional dyad formula."""
    trust = 0.5 + 0.2 * (loyalty / 100.0 - 0.5)
    align = 0.5
    bond = 0.1
    conflict = 0.1
    respect = 0.5
    fear = 0.1
    dominance = target_clearance / 5.0

    d = _history_deltas(observer_events, target_id)
    trust += d["trust"]
    align += d["align"]
    bond += d["bond"]
    conflict += d["conflict"]
    respect += d["respect"]
    fear += d["fear"]

    if dyad is not None:
        liking = dyad.get("liking", 0.0)
        trust = 0.5 * trust + 0.5 * dyad.get("trust", 0.5)
        bond = 0.5 * bond + 0.5 * (0.5 * (dyad.get("closeness", 0.5) + (liking + 1) / 2))
        respect = 0.5 * respect + 0.5 * dyad.get("respect", 0.5)
        align = 0.5 * align + 0.5 * (0.5 * dyad.get("respect", 0.5) + 0.25 * (liking + 1))
        conflict = 0.5 * conflict + 0.5 * (dyad.get("fear", 0.1) + max(0.0, -liking) * 0.5)
        dominance = 0.5 * dominance + 0.5 * (0.5 * (dyad.get("dominance", 0.0) + 1))
        fear = 0.5 * fear + 0.5 * dyad.get("fear", 0.1)
    elif hostility > 0:
        trust -= 0.3 * hostility
        align -= 0.4 * hostility
        conflict += 0.4 * hostility

    ids = list(goal_ids)
    traits = TomTraits(
        trust=clamp01(trust),
        align=clamp01(align),
        bond=clamp01(bond),
        competence=clamp01(target_competence / 100.0),
        dominance=clamp01(dominance),
        reliability=0.5,
        obedience=clamp01(0.5 - 0.3 * (target_clearance / 5.0) + 0.3 * observer_discipline),
        uncertainty=1.0,
        vulnerability=0.5,
        conflict=clamp01(conflict),
        respect=clamp01(respect),
        fear=clamp01(fear),
    )
    return TomEntry(
        observer_id=observer_id,
        target_id=target_id,
        goals={g: 1.0 / len(ids) for g in ids} if ids else {},
        traits=traits,
        last_updated_tick=tick,
        last_interaction_tick=tick,
    )


# --- decay ---


def decay_tom_entry(entry: TomEntry, now: int, max_lookback: int = 60) -> TomEntry:
    """Relax idle beliefs toward neutral; uncertainty rises toward 1."""
    last = entry.last_interaction_tick
    dt = 0 if last is None else now - last
    if dt <= 0:
        return entry
    factor = min(1.0, dt / float(max(1, max_lookback)))
    t = entry.traits
    for name in RELAXING_TRAITS:
        value = getattr(t, name)
        # convex blend; factor == 1 lands exactly on the center
        setattr(t, name, value * (1.0 - factor) + NEUTRAL * factor)
    t.uncertainty = t.uncertainty * (1.0 - factor) + 1.0 * factor
    entry.last_updated_tick = now
    return entry


# --- update ---


@dataclass
class Observation:
    actor_id: str
    action: str
    intensity: float = 0.5
    success: bool = True
    target_id: str | None = None
    tags: tuple = ()


TRAIT_MODELS: Dict[str, Dict[str, float]] = {
    "trust": {"support": 0.6, "harm": -0.8, "betrayal": -1.2, "success": 0.2},
    "bond": {"support": 0.7, "harm": -0.4, "betrayal": -0.5},
    "conflict": {"harm": 0.7, "betrayal": 0.5, "support": -0.2},
    "competence": {"success": 0.5},
    "dominance": {"hierarchical": 0.4, "success": 0.1},
    "reliability": {"support": 0.4, "betrayal": -0.8},
    "obedience": {"hierarchical": 0.3},
    "fear": {"harm": 0.8, "hierarchical": 0.2},
}


def observation_features(obs: Observation) -> Dict[str, float]:
    tags = set(obs.tags)
    return {
        "support": float(obs.action in ("assist", "share_info") or bool(tags & {"support", "care", "rescue"})),
        "harm": float(obs.action == "confront" or bool(tags & {"harm", "attack"})),
        "betrayal": float(obs.action == "deceive" or "betrayal" in tags),
        "hierarchical": float(obs.action in ("defer", "monitor", "set_boundary") or bool(tags & {"authority", "order", "obedience"})),
        "success": float(bool(obs.success)),
    }


def update_tom_entry(entry: TomEntry, obs: Observation, tick: int, alpha: float = 0.3, goal_alpha: float = 0.2) -> TomEntry:
    feats = observation_features(obs)
    scale = alpha * clamp01(obs.intensity)
    t = entry.traits
    info_gain = 0.0
    for trait, model in TRAIT_MODELS.items():
        delta = sum(w * feats.get(k, 0.0) for k, w in model.items())
        if delta == 0:
            continue
        prev = getattr(t, trait)
        nxt = clamp01(prev + scale * delta)
        setattr(t, trait, nxt)
        info_gain += abs(nxt - prev)
    t.uncertainty = clamp01(0.75 * t.uncertainty + 0.25 * (1.0 - clamp01(info_gain)))

    entry.goals = update_goal_beliefs(entry.goals, obs.action, obs.intensity, goal_alpha)
    entry.evidence_count += 1
    entry.last_interaction_tick = tick
    entry.last_updated_tick = tick
    return entry


def update_goal_beliefs(goals: Dict[str, float], action: str, intensity: float, goal_alpha: float) -> Dict[str, float]:
    raised = dict(goals)
    for gid in raised:
        affinity = GOAL_ACTION_AFFINITY.get(gid, {}).get(action, 0.0)
        if affinity > 0:
            raised[gid] += goal_alpha * clamp01(intensity) * affinity
    return normalize_weights(raised)


# --- affect, norms, second order ---

NORM_KEYS = ("care", "fairness", "loyalty", "authority", "honesty")

# realized outcome of an action along the norm dimensions
ACTION_OUTCOMES: Dict[str, Dict[str, float]] = {
    "assist": {"care": 0.9, "fairness": 0.6, "loyalty": 0.7, "authority": 0.5, "honesty": 0.6},
    "share_info": {"care": 0.6, "fairness": 0.6, "loyalty": 0.6, "authority": 0.5, "honesty": 0.9},
    "negotiate": {"care": 0.5, "fairness": 0.7, "loyalty": 0.5, "authority": 0.5, "honesty": 0.6},
    "monitor": {"care": 0.4, "fairness": 0.5, "loyalty": 0.5, "authority": 0.7, "honesty": 0.5},
    "avoid": {"care": 0.3, "fairness": 0.4, "loyalty": 0.3, "authority": 0.4, "honesty": 0.5},
    "set_boundary": {"care": 0.4, "fairness": 0.6, "loyalty": 0.4, "authority": 0.3, "honesty": 0.7},
    "confront": {"care": 0.1, "fairness": 0.3, "loyalty": 0.2, "authority": 0.3, "honesty": 0.6},
    "defer": {"care": 0.5, "fairness": 0.5, "loyalty": 0.7, "authority": 0.9, "honesty": 0.5},
    "deceive": {"care": 0.2, "fairness": 0.1, "loyalty": 0.2, "authority": 0.4, "honesty": 0.0},
}


def norms_from_traits(traits: Dict[str, float]) -> Dict[str, float]:
    return {
        "care": clamp01(traits.get("empathy", 0.5)),
        "fairness": clamp01(0.5 * traits.get("honesty", 0.5) + 0.5 * traits.get("empathy", 0.5)),
        "loyalty": clamp01(traits.get("conformity", 0.5)),
        "authority": clamp01(0.5 * traits.get("conformity", 0.5) + 0.5 * traits.get("discipline", 0.5)),
        "honesty": clamp01(traits.get("honesty", 0.5)),
    }


def compute_guilt(realized: Dict[str, float], norms: Dict[str, float]) -> float:
    """Euclidean gap between what happened and what the agent values, scaled to [0, 1]."""
    sq = 0.0
    for key in NORM_KEYS:
        sq += (realized.get(key, 0.5) - norms.get(key, 0.5)) ** 2
    return clamp01(math.sqrt(sq) / math.sqrt(len(NORM_KEYS)))


def compute_second_order(entry: TomEntry, shame: float = 0.0) -> Dict[str, float]:
    t = entry.traits
    perceived_trust = clamp01(0.8 * t.trust + 0.2)
    perceived_align = clamp01(t.align)
    mirror = clamp01(0.4 * perceived_trust + 0.6 * perceived_align)
    self_align = clamp01(mirror - 0.5 * shame)
    return {
        "perceived_trust": perceived_trust,
        "perceived_align": perceived_align,
        "perceived_dominance": clamp01(1.0 - t.dominance),
        "perceived_uncertainty": clamp01(t.uncertainty + 0.1),
        "mirror_index": mirror,
        "self_align": self_align,
        "shame_delta": self_align - mirror,
    }


def tom_order_chain(entry: TomEntry, second: Dict[str, float], max_order: int = 4) -> List[Dict[str, float]]:
    """First order from the entry, second from ``second``; higher orders damped."""
    t = entry.traits
    layers = [
        {"order": 1, "trust": t.trust, "align": t.align, "dominance": t.dominance, "uncertainty": t.uncertainty},
        {
            "order": 2,
            "trust": second["perceived_trust"],
            "align": second["perceived_align"],
            "dominance": second["perceived_dominance"],
            "uncertainty": second["perceived_uncertainty"],
        },
    ]
    lam = SECOND_ORDER_LAMBDA
    for k in range(3, max_order + 1):
        a, b = layers[-1], layers[-2]
        layers.append({"order": k, **{key: clamp01(lam * a[key] + (1 - lam) * b[key]) for key in ("trust", "align", "dominance", "uncertainty")}})
    return layers[:max_order]


def compute_tom_affect(
    entry: TomEntry,
    stress: float,
    self_norm_alignment: float = 0.5,
    shame_self: float = 0.0,
    guilt: float = 0.0,
) -> Dict[str, float]:
    t = entry.traits
    second = compute_second_order(entry, shame_self)
    entry.second_order = second
    affect = {
        "fear": sigmoid(5.0 * (0.5 * stress + 0.3 * t.uncertainty + 0.4 * t.fear - 0.5)),
        "exhaustion": sigmoid(5.0 * (0.7 * stress + 0.3 * t.uncertainty - 0.6)),
        "anger": clamp01(t.conflict - t.bond),
        "hope": clamp01(0.5 * (t.bond + t.trust) - t.conflict),
        "shame": clamp01(max(0.0, self_norm_alignment - second["mirror_index"])),
        "guilt": clamp01(guilt),
    }
    entry.affect = affect
    return affect


# --- policy prior ---


def compute_policy_prior(goal_beliefs: Dict[str, float]) -> Dict[str, Dict[str, float]]:
    utilities = {a: 0.0 for a in TOM_ACTIONS}
    for gid, belief in goal_beliefs.items():
        for action, aff in GOAL_ACTION_AFFINITY.get(gid, {}).items():
            if action in utilities:
                utilities[action] += belief * aff
    top = max(utilities.values()) if utilities else 0.0
    mask = {a: (u / top if top > 0 else 0.0) for a, u in utilities.items()}
    return {"utilities": utilities, "mask": mask}


def predict_action_distribution(prior: Dict[str, Dict[str, float]], beta: float = 3.0) -> Dict[str, float]:
    mask = prior.get("mask", {})
    return softmax({a: beta * m for a, m in mask.items()}, temperature=1.0)


def sample_action(dist: Dict[str, float], rng: XorShift32) -> str | None:
    if not dist:
        return None
    actions = sorted(dist)
    return actions[rng.choice_index([dist[a] for a in actions])]


def refresh_policy_prior(entry: TomEntry) -> TomEntry:
    entry.policy_prior = compute_policy_prior(entry.goals)
    return entry
