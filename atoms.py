"""Context atoms: a flat, typed, deduplicated fact list built from one agent's frame."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from acquaintance import TIER_MAGNITUDE, AcquaintanceEdge
from biography import Event
from config import BodyState, EngineConfig
from mathutil import clamp01

logger = logging.getLogger(__name__)

ATOM_KINDS = frozenset(
    {
        # location
        "loc_id", "loc_type", "loc_tag", "loc_owner",
        "env_hazard", "env_visibility", "env_noise",
        "nav_exits_count", "nav_cover_mean", "nav_obstacles_density",
        "map_cover_mean", "map_danger_mean", "map_walkable_frac", "map_exits", "map_escape",
        "soc_publicness", "soc_surveillance", "soc_crowd_density", "soc_norm_pressure",
        "afford_hide", "afford_escape", "afford_observe", "afford_talk_private", "afford_talk_public",
        "afford_rest", "afford_treat_wounds", "afford_command", "afford_ritual",
        # body / affect
        "self_hp", "body_wounded", "self_pain", "body_ok", "self_stamina", "self_fatigue",
        "self_mobility_restricted", "self_stress", "emotion",
        # others
        "nearby_agent", "target_presence", "nearby_agent_role", "wounded", "care_need",
        "tom_trust", "tom_threat", "tom_support", "tom_closeness",
        "tom_trusted_ally_near", "tom_threatening_other_near",
        "soc_acq_tier", "soc_acq_idconf", "soc_acq_familiarity", "soc_acq_kind", "soc_identify_as",
        "rel_label",
        # orders, derived, history
        "authority_presence", "norm_pressure",
        "threat", "social_support",
        "event_recent", "event_threat", "threat_local", "event_support", "event_norm_violation",
    }
)

# atom kinds that make the related agent a goal-target candidate
TARGET_KINDS = frozenset(
    {"target_presence", "nearby_agent", "care_need", "tom_trust", "tom_threat", "tom_support", "tom_closeness", "soc_acq_tier", "rel_label"}
)


class UnknownAtomKind(ValueError):
    pass


@dataclass
class ContextAtom:
    id: str
    kind: str
    magnitude: float
    source: str
    label: str = ""
    related_agent_id: str | None = None
    tick: int = 0
    trace: Dict[str, object] = field(default_factory=dict)

    def __post_init__(self):
        if self.kind not in ATOM_KINDS:
            raise UnknownAtomKind(f"unknown atom kind: {self.kind!r}")
        self.magnitude = clamp01(self.magnitude)


# --- frame inputs ---


@dataclass
class MapCell:
    x: int
    y: int
    walkable: bool = True
    cover: float = 0.0
    danger: float = 0.0


@dataclass
class LocationFacts:
    id: str
    kind: str = "unknown"
    tags: Tuple[str, ...] = ()
    owner_faction: str | None = None
    hazard: float = 0.0
    visibility: float = 0.5
    noise: float = 0.5
    privacy: str = "semi"
    control_level: float = 0.0
    crowd_level: float = 0.0
    required_norms: int = 0
    cells: List[MapCell] = field(default_factory=list)
    exits: List[Tuple[int, int]] = field(default_factory=list)


@dataclass
class NearbyAgent:
    id: str
    name: str = ""
    distance_norm: float = 1.0
    role: str = ""
    is_wounded: bool = False


@dataclass
class SocialView:
    """One ToM relation as perceived this tick."""

    target_id: str
    label: str = ""
    trust: float = 0.0
    threat: float = 0.0
    support: float = 0.0
    closeness: float = 0.0


@dataclass
class Order:
    id: str
    kind: str = "order"
    target_id: str | None = None
    strength: float = 1.0
    summary: str = ""


@dataclass
class Frame:
    body: BodyState = field(default_factory=BodyState)
    nearby: List[NearbyAgent] = field(default_factory=list)
    relations: List[SocialView] = field(default_factory=list)
    acquaintances: Dict[str, AcquaintanceEdge] = field(default_factory=dict)
    relationship_labels: Dict[str, Tuple[str, float]] = field(default_factory=dict)
    orders: List[Order] = field(default_factory=list)
    recent_events: List[Event] = field(default_factory=list)
    threat_index: float | None = None
    support_index: float | None = None


def map_aggregates(location: LocationFacts) -> Dict[str, float]:
    cells = location.cells
    n = len(cells)
    exits = clamp01(len(location.exits) / 6.0)
    if n == 0:
        cover = danger = 0.0
        walkable = 1.0
    else:
        cover = sum(c.cover for c in cells) / n
        danger = sum(c.danger for c in cells) / n
        walkable = sum(1 for c in cells if c.walkable) / n
    return {
        "cover": cover,
        "danger": danger,
        "walkable": walkable,
        "exits": exits,
        "escape": clamp01(0.45 * exits + 0.35 * walkable + 0.20 * (1.0 - danger)),
    }


def _is_threat_event(ev: Event) -> bool:
    return bool({"trauma", "betrayal", "attack", "danger", "harm"} & set(ev.tags))


def _is_support_event(ev: Event) -> bool:
    return bool({"support", "care", "rescue"} & set(ev.tags))


def derived_indices(frame: Frame, location: LocationFacts | None, tick: int, window: int = 10) -> Tuple[float, float]:
    """(threat, support) indices when the frame does not already carry them."""
    closeness = {n.id: clamp01(1.0 - n.distance_norm) for n in frame.nearby}
    threat = location.hazard if location is not None else 0.0
    support = 0.0
    for rel in frame.relations:
        near = closeness.get(rel.target_id, 0.0)
        threat = max(threat, rel.threat * near)
        support = max(support, rel.trust * near)
    for ev in frame.recent_events:
        if tick - ev.tick < window:
            if _is_threat_event(ev):
                threat = max(threat, ev.intensity)
            if _is_support_event(ev):
                support = max(support, ev.intensity)
    if frame.threat_index is not None:
        threat = frame.threat_index
    if frame.support_index is not None:
        support = frame.support_index
    return clamp01(threat), clamp01(support)


def extract_atoms(
    self_id: str,
    frame: Frame,
    location: LocationFacts | None = None,
    tick: int = 0,
    config: EngineConfig | None = None,
    names: Dict[str, str] | None = None,
) -> List[ContextAtom]:
    cfg = config or EngineConfig()
    names = names or {}
    atoms: List[ContextAtom] = []
    seen = set()

    def add(kind: str, magnitude: float, label: str, source: str, suffix: str | None = None, related: str | None = None, **trace) -> None:
        atom_id = f"{kind}:{self_id}:{suffix if suffix is not None else label}"
        if atom_id in seen:
            return
        seen.add(atom_id)
        atoms.append(ContextAtom(atom_id, kind, magnitude, source, label, related, tick, dict(trace)))

    # ubicación
    if location is not None:
        loc = location
        add("loc_id", 1, loc.id, "location")
        add("loc_type", 1, loc.kind, "location")
        for tag in loc.tags:
            add("loc_tag", 1, tag, "location")
        if loc.owner_faction:
            add("loc_owner", 1, f"Faction: {loc.owner_faction}", "location")
        add("env_hazard", loc.hazard, "Environmental Hazard", "location")
        add("env_visibility", loc.visibility, "Visibility", "location")
        add("env_noise", loc.noise, "Noise Level", "location")

        agg = map_aggregates(loc)
        if loc.cells or loc.exits:
            add("nav_exits_count", agg["exits"], f"Exits: {len(loc.exits)}", "location")
            if loc.cells:
                add("nav_cover_mean", agg["cover"], "Mean Cover", "location")
                add("nav_obstacles_density", 1.0 - agg["walkable"], "Obstacle Density", "location")
            add("map_cover_mean", agg["cover"], "Map Cover", "map")
            add("map_danger_mean", agg["danger"], "Map Danger", "map")
            add("map_walkable_frac", agg["walkable"], "Walkable", "map")
            add("map_exits", agg["exits"], f"Exits: {len(loc.exits)}", "map")
            add("map_escape", agg["escape"], "Escape Potential", "map")

        is_public = loc.privacy == "public"
        is_private = loc.privacy == "private"
        add("soc_publicness", 1.0 if is_public else (0.0 if is_private else 0.5), "Public" if is_public else "Private", "location")
        add("soc_surveillance", loc.control_level, "Surveillance", "location")
        add("soc_crowd_density", loc.crowd_level, "Crowd Density", "location")
        add("soc_norm_pressure", clamp01(0.5 * loc.control_level + 0.1 * loc.required_norms), "Norm Pressure", "location")

        if agg["cover"] > 0.5 and loc.control_level < 0.5:
            add("afford_hide", 1, "Can Hide", "location")
        if loc.exits:
            add("afford_escape", 1, "Can Escape", "location")
        if loc.visibility > 0.6:
            add("afford_observe", 1, "Good Vantage", "location")
        if is_private:
            add("afford_talk_private", 1, "Private Talk", "location")
        if is_public:
            add("afford_talk_public", 1, "Public Speech", "location")
        if {"safe_hub", "residential"} & set(loc.tags):
            add("afford_rest", 1, "Can Rest", "location")
        if "medical" in loc.tags:
            add("afford_treat_wounds", 1, "Medical Facilities", "location")
        if "command" in loc.tags or loc.control_level > 0.8:
            add("afford_command", 1, "Command Post", "location")
        if {"sacred", "ritual"} & set(loc.tags):
            add("afford_ritual", 1, "Ritual Site", "location")

    # cuerpo
    body = frame.body
    hp = clamp01(body.hp / 100.0)
    add("self_hp", hp, f"HP: {body.hp:.0f}", "body")
    if body.is_wounded:
        add("body_wounded", 1.0 - hp, "Injured", "body")
        add("self_pain", clamp01((100.0 - body.hp) / 100.0), "Pain", "body")
    else:
        add("body_ok", hp, "Body OK", "body")
    add("self_stamina", clamp01(body.stamina / 100.0), f"Stamina: {body.stamina:.0f}", "body")
    if body.stamina < 30:
        add("self_fatigue", clamp01((30.0 - body.stamina) / 30.0), "High Fatigue", "body")
    if not body.can_move:
        add("self_mobility_restricted", 1.0, "Immobilized", "body")
    stress = clamp01(max(body.fear, body.anger, body.arousal))
    if stress > 0.2:
        add("self_stress", stress, "Stress State", "body")
    for emotion, value in (("fear", body.fear), ("anger", body.anger), ("shame", body.shame), ("hope", max(0.0, body.valence))):
        if value > 0:
            add("emotion", value, emotion, "how", suffix=emotion, emotion=emotion)

    # agentes cercanos
    for other in frame.nearby:
        if other.id == self_id:
            continue
        closeness = clamp01(1.0 - other.distance_norm)
        name = other.name or names.get(other.id, other.id)
        add("nearby_agent", closeness, name, "who", suffix=other.id, related=other.id)
        if closeness > 0.1:
            add("target_presence", closeness, f"Target: {name}", "proximity", suffix=other.id, related=other.id)
        if other.role:
            add("nearby_agent_role", 1, other.role, "who", suffix=f"{other.id}:{other.role}", related=other.id)
        if other.is_wounded:
            add("wounded", 1, "Is Wounded", "who", suffix=other.id, related=other.id)
            add("care_need", 1, "Needs Care", "who", suffix=other.id, related=other.id)

    # ToM y conocidos
    floor = cfg.atom_min_magnitude
    for rel in frame.relations:
        other = rel.target_id
        label = rel.label or names.get(other, other)
        edge = frame.acquaintances.get(other)
        if edge is not None:
            add("soc_acq_tier", TIER_MAGNITUDE[edge.tier], f"Acq tier: {edge.tier} ({label})", "social", f"acq_tier_{other}", other, tier=edge.tier, acq_kind=edge.kind)
            add("soc_acq_idconf", edge.id_confidence, f"Acq idConf: {label}", "social", f"acq_id_{other}", other)
            seen_as = edge.seen_as or label
            recognized_as = edge.recognized_as or names.get(other, other)
            add(
                "soc_identify_as",
                edge.id_confidence,
                f"I recognize {seen_as} as {recognized_as}",
                "social",
                f"identify_{other}",
                other,
                seen_as=seen_as,
                recognized_as=recognized_as,
                tier=edge.tier,
            )
            add("soc_acq_familiarity", edge.familiarity, f"Acq familiarity: {label}", "social", f"acq_fam_{other}", other)
            if edge.kind not in ("stranger", "none", ""):
                add("soc_acq_kind", 1, f"Acq kind: {edge.kind} ({label})", "social", f"acq_kind_{edge.kind}_{other}", other)

        if rel.trust > floor:
            add("tom_trust", rel.trust, f"ToM trust: {label}", "tom", f"trust_{other}", other)
        if rel.threat > floor:
            add("tom_threat", rel.threat, f"ToM threat: {label}", "tom", f"threat_{other}", other)
        if rel.support > floor:
            add("tom_support", rel.support, f"ToM support: {label}", "tom", f"support_{other}", other)
        if rel.closeness > floor:
            add("tom_closeness", rel.closeness, f"ToM closeness: {label}", "tom", f"close_{other}", other)
        if rel.trust > 0.6 and rel.threat < 0.3:
            add("tom_trusted_ally_near", rel.trust, f"Trusted: {label}", "tom", f"ally_{other}", other)
        if rel.threat > 0.4:
            add("tom_threatening_other_near", rel.threat, f"Threat: {label}", "tom", f"threat_near_{other}", other)

    for other in sorted(frame.relationship_labels):
        label, strength = frame.relationship_labels[other]
        add("rel_label", strength, f"Relationship: {label}", "tom", f"rel_{other}", other, rel=label)

    # órdenes y juramentos
    for order in frame.orders:
        kind = "norm_pressure" if order.kind == "oath" else "authority_presence"
        add(kind, order.strength, order.summary or order.id, "life", f"{order.kind}_{order.id}", order.target_id)

    threat, support = derived_indices(frame, location, tick, cfg.recent_event_window)
    if threat > 0.3:
        add("threat", threat, "High Threat Level", "derived", "high_threat")
    if support > 0.3:
        add("social_support", support, "Social Support Active", "derived", "support_active")

    # eventos recientes
    for n, ev in enumerate(frame.recent_events):
        if not (0 <= tick - ev.tick < cfg.recent_event_window):
            continue
        ev_id = ev.id or f"{ev.tick}_{n}"
        intensity = ev.intensity or 0.5
        add("event_recent", intensity, f"Recent: {ev.kind}", "history", f"recent_{ev_id}")
        if _is_threat_event(ev):
            add("event_threat", intensity, f"Recent Threat: {ev.kind}", "history", f"threat_{ev_id}")
            add("threat_local", intensity, f"Recent Trauma: {ev.kind}", "history", f"trauma_{ev_id}")
        if _is_support_event(ev):
            add("event_support", intensity, f"Recent Support: {ev.kind}", "history", f"support_{ev_id}")
        if {"order", "command", "authority"} & set(ev.tags):
            add("authority_presence", intensity, "Recent Order", "history", f"order_{ev_id}")
        if {"oath", "shame", "norm"} & set(ev.tags):
            add("event_norm_violation", intensity, "Recent Norm Event", "history", f"norm_{ev_id}")

    if cfg.trace:
        logger.debug("atoms self=%s tick=%d n=%d", self_id, tick, len(atoms))
    return atoms


def target_candidates(atoms: Iterable[ContextAtom], self_id: str, min_relevance: float = 0.1) -> Dict[str, float]:
    """Candidate target ids -> relevance (max magnitude over target-bearing atoms)."""
    relevance: Dict[str, float] = {}
    for atom in atoms:
        other = atom.related_agent_id
        if not other or other == self_id or atom.kind not in TARGET_KINDS:
            continue
        relevance[other] = max(relevance.get(other, 0.0), atom.magnitude)
    return {k: v for k, v in sorted(relevance.items()) if v >= min_relevance}


def wounded_ids(atoms: Iterable[ContextAtom]) -> List[str]:
    return sorted({a.related_agent_id for a in atoms if a.kind == "wounded" and a.related_agent_id})
