"""Motor de metas: ejes -> metas de vida, y metas concretas con traza auditable.

Layers (traits, biography, psych+distortion, archetype) are mixed into a
10-axis logit vector with stress-dependent weights. The z-scored vector feeds
the life-goal softmax; the same vector without noise feeds the concrete/targeted goal
scorer, whose instances carry a breakdown and a formula string.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, field
from typing import Dict, Iterable, List, Set, Tuple

import numpy as np

from acquaintance import AcquaintanceEdge, gate_factor, gate_metrics
from biography import Event, baseline_worldview, extract_relational_features
from catalog import (
    ARCHETYPES,
    AXIS_TO_LIFE_GOAL,
    CONCRETE_GOALS,
    DISTORTION_KEYS,
    EXPOSURE_KEYS,
    GATED_GOALS,
    GOAL_AXES,
    MATRIX_B_BIO,
    MATRIX_C_WV,
    MATRIX_K_DIST,
    PSYCH_SCALE,
    TARGETED_GOALS,
    TRAIT_SCALE,
    TRAIT_TO_AXIS,
    TargetedGoalDef,
)
from config import EngineConfig
from det_rng import CHANNEL_GOAL_NOISE, RngContext
from mathutil import clamp01, softmax
from relations import Relationship

logger = logging.getLogger(__name__)

BIO_SCALE = 10.0
ARCHETYPE_WEIGHT = 2.0

COPING_KEYS = ("avoid", "hyper_control", "aggression", "self_harm", "helper")
ATTACHMENT_KEYS = ("secure", "anxious", "avoidant", "disorganized")
TRAUMA_KEYS = ("self", "others", "world", "system")


def _zeros(keys: Iterable[str]) -> Dict[str, float]:
    return {k: 0.0 for k in keys}


@dataclass
class PsychState:
    stress: float = 0.0
    recovery: float = 0.5
    wm_capacity: float = 0.5
    coping: Dict[str, float] = field(default_factory=lambda: _zeros(COPING_KEYS))
    attachment: Dict[str, float] = field(default_factory=lambda: _zeros(ATTACHMENT_KEYS))
    distortion: Dict[str, float] = field(default_factory=lambda: _zeros(DISTORTION_KEYS))
    trauma: Dict[str, float] = field(default_factory=lambda: _zeros(TRAUMA_KEYS))
    moral_dissonance: float = 0.0
    guilt: float = 0.0
    shame: float = 0.0
    shadow_activation: float = 0.0
    worldview: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, object] | None) -> "PsychState":
        data = data or {}
        ps = cls()
        for key in ("stress", "recovery", "wm_capacity", "moral_dissonance", "guilt", "shame", "shadow_activation"):
            if key in data:
                setattr(ps, key, clamp01(float(data[key])))
        for key in ("coping", "attachment", "distortion", "trauma", "worldview"):
            if data.get(key):
                getattr(ps, key).update({str(k): float(v) for k, v in data[key].items()})
        return ps


# --- axis layers ---


def trait_logits(traits: Dict[str, float]) -> Dict[str, float]:
    z = _zeros(GOAL_AXES)
    for trait, axes in TRAIT_TO_AXIS.items():
        centered = traits.get(trait, 0.5) - 0.5
        for axis, w in axes.items():
            z[axis] += TRAIT_SCALE * w * centered
    return z


def bio_logits(exposures: Dict[str, float], worldview: Dict[str, float] | None = None) -> Dict[str, float]:
    z = _zeros(GOAL_AXES)
    damped = {k: math.log1p(max(0.0, exposures.get(k, 0.0))) for k in EXPOSURE_KEYS}
    base = baseline_worldview()
    wv = worldview or base
    for axis in GOAL_AXES:
        for key, coef in MATRIX_B_BIO.get(axis, {}).items():
            z[axis] += BIO_SCALE * coef * damped[key]
        for key, coef in MATRIX_C_WV.get(axis, {}).items():
            z[axis] += BIO_SCALE * coef * (wv.get(key, base[key]) - base[key])
    return z


def psych_logits(ps: PsychState) -> Dict[str, float]:
    z = _zeros(GOAL_AXES)
    c, a, t = ps.coping, ps.attachment, ps.trauma
    base = baseline_worldview()
    wv = ps.worldview or base
    # pérdida de confianza / escasez / control respecto a la línea base
    lost_trust = base["people_trust"] - wv.get("people_trust", base["people_trust"])
    scarcity = wv.get("scarcity", base["scarcity"]) - base["scarcity"]
    lost_control = base["controllability"] - wv.get("controllability", base["controllability"])
    md = clamp01(ps.moral_dissonance)

    terms: List[Tuple[str, float]] = [
        ("care", 0.8 * c.get("helper", 0.0)),
        ("preserve_order", 0.2 * c.get("helper", 0.0)),
        ("power_status", 0.6 * c.get("aggression", 0.0)),
        ("control", 0.5 * c.get("aggression", 0.0)),
        ("escape_transcend", 0.8 * c.get("avoid", 0.0)),
        ("free_flow", 0.4 * c.get("avoid", 0.0)),
        ("control", -0.4 * c.get("avoid", 0.0)),
        ("control", 1.0 * c.get("hyper_control", 0.0)),
        ("preserve_order", 0.8 * c.get("hyper_control", 0.0)),
        ("free_flow", -0.8 * c.get("hyper_control", 0.0)),
        ("escape_transcend", 0.6 * c.get("self_harm", 0.0)),
        ("chaos_change", 0.6 * c.get("self_harm", 0.0)),
        ("care", 0.4 * a.get("secure", 0.0)),
        ("care", 0.5 * a.get("anxious", 0.0)),
        ("power_status", 0.3 * a.get("anxious", 0.0)),
        ("control", 0.4 * a.get("anxious", 0.0)),
        ("free_flow", 0.6 * a.get("avoidant", 0.0)),
        ("care", -0.4 * a.get("avoidant", 0.0)),
        ("control", 0.5 * lost_trust),
        ("care", -0.4 * lost_trust),
        ("efficiency", 0.6 * scarcity),
        ("control", 0.5 * scarcity),
        ("escape_transcend", 0.4 * lost_control),
        ("fix_world", 0.6 * md),
        ("escape_transcend", 0.6 * max(0.0, md - 0.6) / 0.4),
        ("escape_transcend", 1.0 * t.get("self", 0.0)),
        ("power_status", 0.8 * t.get("others", 0.0)),
        ("care", -0.6 * t.get("others", 0.0)),
        ("preserve_order", 0.8 * t.get("world", 0.0)),
        ("efficiency", 0.6 * t.get("world", 0.0)),
        ("free_flow", 0.8 * t.get("system", 0.0)),
        ("chaos_change", 0.6 * t.get("system", 0.0)),
        ("preserve_order", -0.6 * t.get("system", 0.0)),
        ("fix_world", 1.0 * ps.guilt),
        ("care", 0.8 * ps.guilt),
        ("power_status", 0.8 * ps.shame),
        ("preserve_order", 0.6 * ps.shame),
    ]
    for axis, value in terms:
        z[axis] += value * PSYCH_SCALE
    return z


def distortion_logits(distortion: Dict[str, float]) -> Dict[str, float]:
    z = _zeros(GOAL_AXES)
    for axis in GOAL_AXES:
        for key, w in MATRIX_K_DIST.get(axis, {}).items():
            z[axis] += w * distortion.get(key, 0.0) * PSYCH_SCALE
    return z


def archetype_logits(main: str, shadow: str, ps: PsychState) -> Dict[str, float]:
    w_shadow = clamp01(max(ps.shadow_activation, 0.8 * ps.shame))
    main_prof = ARCHETYPES.get(main, {})
    shadow_prof = ARCHETYPES.get(shadow, {})
    return {axis: main_prof.get(axis, 0.0) * (1.0 - w_shadow) + shadow_prof.get(axis, 0.0) * w_shadow for axis in GOAL_AXES}


def layer_weights(ps: PsychState) -> Dict[str, float]:
    s = clamp01(ps.stress)
    return {
        "wP": 0.8 + 2.0 * s + 0.5 * (1.0 - ps.recovery),
        "wT": 1.8 * (1.0 - 0.6 * s) * (0.5 + 0.5 * ps.wm_capacity),
        "wB": 1.8 * (1.0 - 0.2 * s),
        "wA": ARCHETYPE_WEIGHT,
    }


def goal_noise(rng_ctx: RngContext | None, agent_id: str | None, scale: float = 0.5) -> Dict[str, float]:
    """One draw per axis from the agent's goal-noise stream, in axis order."""
    if rng_ctx is None or not agent_id:
        return _zeros(GOAL_AXES)
    rng = rng_ctx.fresh(agent_id, CHANNEL_GOAL_NOISE)
    return {axis: (rng.next_float() - 0.5) * scale for axis in GOAL_AXES}


def zscore(logits: Dict[str, float]) -> Dict[str, float]:
    keys = list(logits)
    if not keys:
        return {}
    arr = np.array([logits[k] for k in keys], dtype=float)
    std = float(arr.std())
    if std < 1e-6:
        return {k: 0.0 for k in keys}
    mean = float(arr.mean())
    return {k: (logits[k] - mean) / std for k in keys}


def temperature(impulsiveness: float, stress: float) -> float:
    return max(0.3, (0.8 + 0.8 * clamp01(impulsiveness)) * (1.0 - 0.6 * clamp01(stress)))


def life_goal_distribution(normalized: Dict[str, float], temp: float) -> Dict[str, float]:
    scores: Dict[str, float] = {}
    for axis in GOAL_AXES:
        for gid, w in AXIS_TO_LIFE_GOAL.get(axis, {}).items():
            scores[gid] = scores.get(gid, 0.0) + normalized.get(axis, 0.0) * w
    return softmax(scores, temp)


@dataclass
class AxisResult:
    layers: Dict[str, Dict[str, float]]
    weights: Dict[str, float]
    combined: Dict[str, float]
    total: Dict[str, float]
    normalized: Dict[str, float]
    temperature: float
    life_goals: Dict[str, float]


def compute_axis_logits(
    traits: Dict[str, float],
    psych: PsychState,
    exposures: Dict[str, float] | None = None,
    archetype: Tuple[str, str] = ("neutral", "neutral"),
    rng_ctx: RngContext | None = None,
    agent_id: str | None = None,
    noise_scale: float = 0.5,
) -> AxisResult:
    layers = {
        "traits": trait_logits(traits),
        "bio": bio_logits(exposures or {}, psych.worldview or None),
        "psych": psych_logits(psych),
        "distortion": distortion_logits(psych.distortion),
        "archetype": archetype_logits(archetype[0], archetype[1], psych),
        "noise": goal_noise(rng_ctx, agent_id, noise_scale),
    }
    w = layer_weights(psych)
    combined = {
        axis: w["wT"] * layers["traits"][axis]
        + w["wB"] * layers["bio"][axis]
        + w["wP"] * (layers["psych"][axis] + layers["distortion"][axis])
        + w["wA"] * layers["archetype"][axis]
        for axis in GOAL_AXES
    }
    # el ruido solo alimenta el camino de life goals
    total = {axis: combined[axis] + layers["noise"][axis] for axis in GOAL_AXES}
    normalized = zscore(total)
    temp = temperature(traits.get("impulsiveness", 0.5), psych.stress)
    return AxisResult(
        layers=layers,
        weights=w,
        combined=combined,
        total=total,
        normalized=normalized,
        temperature=temp,
        life_goals=life_goal_distribution(normalized, temp),
    )


# --- concrete / targeted goals ---


@dataclass
class Contribution:
    category: str
    key: str
    agent_value: float
    weight: float
    contribution: float


@dataclass
class GoalInstance:
    id: str
    def_id: str
    label: str
    logit: float
    layer: str
    domain: str
    score: float = 0.0
    target_id: str | None = None
    breakdown: List[Contribution] = field(default_factory=list)
    formula: str = ""

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


@dataclass
class GoalContext:
    wounded_nearby: bool = False
    threat_index: float = 0.0
    leaders: Set[str] = field(default_factory=set)
    wounded_ids: Set[str] = field(default_factory=set)
    names: Dict[str, str] = field(default_factory=dict)

    def gate_open(self, predicate: str) -> bool:
        if predicate == "wounded_nearby":
            return self.wounded_nearby
        if predicate == "threat_present":
            return self.threat_index > 0.3
        raise KeyError(f"unknown gate predicate: {predicate}")


def _term(weight: float, key: str, value: float) -> str:
    sign = "+" if weight > 0 else ""
    return f"{sign}{weight:.1f}*{key}({value:.1f})"


def build_relational_metrics(
    tom_view: Dict[str, float] | None,
    rel: Relationship | None,
    edge: AcquaintanceEdge | None = None,
    is_leader: bool = False,
) -> Dict[str, float]:
    """Relational inputs for targeted goals; live ToM wins over the stored record."""
    stored = rel.metrics() if rel is not None else {}
    live = tom_view or {}

    def pick(key: str, default: float) -> float:
        if key in live:
            return float(live[key])
        return float(stored.get(key, default))

    trust = pick("trust", 0.5)
    bond = pick("bond", 0.1)
    align = pick("align", 0.5)
    respect = pick("respect", 0.5)
    fear = pick("fear", 0.1)
    conflict = pick("conflict", 0.1)
    metrics = {
        "Trust": trust,
        "Bond": bond,
        "Align": align,
        "Respect": respect,
        "Fear": fear,
        "Conflict": max(fear, conflict),
        "Significance": 0.7 * bond + abs(align - 0.5),
        "Dominance": 0.8 if is_leader else float(live.get("dominance", 0.5)),
        "Legitimacy": 0.9 if is_leader else respect,
        "Competence": float(live.get("competence", 0.5)),
    }
    return gate_metrics(metrics, gate_factor(edge))


def _score_axes(def_axes: Dict[str, float], axis_total: Dict[str, float], details: List[Contribution], parts: List[str]) -> float:
    total = 0.0
    for axis, weight in def_axes.items():
        val = axis_total.get(axis, 0.0)
        contrib = weight * val
        total += contrib
        details.append(Contribution("Trait/Archetype", axis, val, weight, contrib))
        if abs(contrib) > 0.05:
            parts.append(_term(weight, axis, val))
    return total


def _score_bio(weights: Dict[str, float], features: Dict[str, float], details: List[Contribution], parts: List[str]) -> float:
    total = 0.0
    for key, weight in weights.items():
        val = features.get(key, 0.0)
        contrib = weight * val
        total += contrib
        if abs(contrib) > 0.01:
            details.append(Contribution("Bio/History", key, val, weight, contrib))
            parts.append(_term(weight, key, val))
    return total


def _targeted_instance(
    gdef: TargetedGoalDef,
    target_id: str,
    axis_total: Dict[str, float],
    rel_bio: Dict[str, float],
    metrics: Dict[str, float],
    ctx: GoalContext,
    drop_logit: float,
) -> GoalInstance | None:
    details = [Contribution("Base", "Base Logit", 1.0, gdef.base_logit, gdef.base_logit)]
    parts = [f"{gdef.base_logit:.2f}"]
    logit = gdef.base_logit
    logit += _score_axes(gdef.axis_weights, axis_total, details, parts)
    for key, weight in gdef.relational_metric_weights.items():
        val = metrics.get(key, 0.0)
        contrib = weight * val
        logit += contrib
        details.append(Contribution("Relational", key, val, weight, contrib))
        if abs(contrib) > 0.05:
            parts.append(_term(weight, key, val))
    logit += _score_bio(gdef.relational_bio_weights, rel_bio, details, parts)

    if logit <= drop_logit:
        return None

    inst = GoalInstance(
        id=f"{gdef.id}_{target_id}",
        def_id=gdef.id,
        label=gdef.label_for(ctx.names.get(target_id, target_id)),
        logit=logit,
        layer=gdef.layer,
        domain=gdef.domain,
        target_id=target_id,
        breakdown=details,
        formula=" ".join(parts),
    )
    if gdef.id == "c_protect_target" and target_id in ctx.wounded_ids:
        inst.logit += 2.0
        inst.breakdown.append(Contribution("State/Metric", "Wounded Status", 1.0, 2.0, 2.0))
        inst.formula += " + 2.0(Wounded)"
    if gdef.id == "c_obey_target" and target_id in ctx.leaders:
        inst.logit += 1.5
        inst.breakdown.append(Contribution("State/Metric", "Leader Status", 1.0, 1.5, 1.5))
        inst.formula += " + 1.5(Leader)"
    return inst


def evaluate_goals(
    agent_id: str,
    axis_total: Dict[str, float],
    global_features: Dict[str, float],
    events: Iterable[Event],
    targets: Dict[str, Dict[str, float]],
    ctx: GoalContext | None = None,
    config: EngineConfig | None = None,
) -> List[GoalInstance]:
    """Score self goals plus targeted goals for each candidate, one pooled softmax.

    ``targets`` maps candidate id -> relational metrics (see
    ``build_relational_metrics``). The agent itself is never a target.
    """
    ctx = ctx or GoalContext()
    cfg = config or EngineConfig()
    events = list(events)
    goals: List[GoalInstance] = []

    for gdef in CONCRETE_GOALS:
        details = [Contribution("Base", "Base Logit", 1.0, gdef.base_logit, gdef.base_logit)]
        parts = [f"{gdef.base_logit:.2f}"]
        logit = gdef.base_logit
        logit += _score_axes(gdef.axis_weights, axis_total, details, parts)
        logit += _score_bio(gdef.bio_weights, global_features, details, parts)

        gate = GATED_GOALS.get(gdef.id)
        if gate is not None and not ctx.gate_open(gate[1]):
            penalty = gate[0]
            logit += penalty
            details.append(Contribution("State/Metric", f"Gate: {gate[1]}", 0.0, penalty, penalty))
            parts.append(f" - {abs(penalty):.1f} (gate {gate[1]})")

        goals.append(
            GoalInstance(
                id=gdef.id,
                def_id=gdef.id,
                label=gdef.label,
                logit=logit,
                layer=gdef.layer,
                domain=gdef.domain,
                breakdown=details,
                formula=" ".join(parts),
            )
        )

    for target_id in sorted(targets):
        if target_id == agent_id:
            continue
        rel_bio = extract_relational_features(events, target_id, cfg.pattern_bonus)
        for gdef in TARGETED_GOALS:
            inst = _targeted_instance(gdef, target_id, axis_total, rel_bio, targets[target_id], ctx, cfg.targeted_drop_logit)
            if inst is not None:
                goals.append(inst)

    if not goals:
        return []
    scores = softmax({g.id: g.logit for g in goals}, cfg.concrete_temperature)
    for g in goals:
        g.score = scores[g.id]
    goals.sort(key=lambda g: (-g.score, g.id))
    logger.debug("goals agent=%s n=%d top=%s", agent_id, len(goals), goals[0].id)
    return goals
