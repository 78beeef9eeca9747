"""Biography features: events -> global/relational feature maps, exposures, worldview."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from typing import Dict, Iterable, Tuple

from catalog import EXPOSURE_KEYS, WORLDVIEW_KEYS
from mathutil import sigmoid

# mayor float por debajo de 1.0; las saturaciones nunca llegan a 1
FEATURE_CAP = math.nextafter(1.0, 0.0)


@dataclass(frozen=True)
class Event:
    kind: str
    tags: Tuple[str, ...] = ()
    intensity: float = 0.5
    valence: float = 0.0
    participants: Tuple[str, ...] = ()
    payload: Dict[str, object] = field(default_factory=dict)
    tick: int = 0
    years_ago: float = 0.0
    duration_days: float = 0.0
    secrecy: str = "public"
    controllability: float | None = None
    id: str = ""

    def involves(self, agent_id: str) -> bool:
        if agent_id in self.participants:
            return True
        return self.payload.get("target_id") == agent_id or self.payload.get("other_id") == agent_id

    def to_dict(self) -> Dict[str, object]:
        data = asdict(self)
        data["tags"] = list(self.tags)
        data["participants"] = list(self.participants)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "Event":
        payload = dict(data.get("payload") or {})
        # camelCase payload keys are accepted from hand-written scenarios
        for src, dst in (("targetId", "target_id"), ("otherId", "other_id")):
            if src in payload and dst not in payload:
                payload[dst] = payload.pop(src)
        ctrl = data.get("controllability")
        return cls(
            kind=str(data.get("kind") or data.get("domain") or "generic"),
            tags=tuple(str(t) for t in (data.get("tags") or ())),
            intensity=float(data.get("intensity", 0.5)),
            valence=float(data.get("valence", 0.0)),
            participants=tuple(str(p) for p in (data.get("participants") or ())),
            payload=payload,
            tick=int(data.get("tick", 0)),
            years_ago=float(data.get("years_ago", 0.0)),
            duration_days=float(data.get("duration_days", 0.0)),
            secrecy=str(data.get("secrecy", "public")),
            controllability=None if ctrl is None else float(ctrl),
            id=str(data.get("id", "")),
        )


def _accumulator():
    acc: Dict[str, float] = {}

    def add(key: str, value: float) -> None:
        acc[key] = acc.get(key, 0.0) + value

    return acc, add


def extract_global_features(events: Iterable[Event]) -> Dict[str, float]:
    """Scan a biography for patterns and return saturated ``B_*`` features in [0, 1)."""
    features, add = _accumulator()
    for ev in events:
        tags = set(ev.tags)
        w = ev.intensity
        kind = ev.kind

        if kind == "trauma" or "trauma" in tags:
            if "attachment" in tags or kind == "loss":
                add("B_attachment_trauma", w)
            if kind == "loss" or "loss" in tags:
                add("B_loss", w)
            if "betrayal" in tags and kind in ("betrayal_by_leader", "betrayal_experienced"):
                add("B_betrayed_by_peer", w)
            if kind == "betrayal_by_leader":
                add("B_betrayed_system", w)
            if kind == "betrayal_committed":
                add("B_betrayal_committed", w)
            if "humiliation" in tags:
                add("B_humiliation", w)
            if "moral_injury" in tags or kind == "moral_compromise":
                add("B_moral_injury", w)
            if kind == "torture" or "coercion" in tags:
                add("B_coercion", w)
                if kind == "torture":
                    add("B_torture", w)
            if kind == "group_trauma" or "mass_casualties" in tags:
                add("B_group_trauma", w)
            if kind == "abandonment":
                add("B_abandonment", w)
            if kind == "bullying":
                add("B_bullying", w)
            if kind == "sleep_disorder":
                add("B_sleep_disorders", w)
            if kind == "failed_rescue":
                add("B_failed_rescue", w)

        # roles & experience
        if "heroism" in tags or "rescue" in tags:
            add("B_saved_others", w)
            if "heroism" in tags:
                add("B_hero_complex", w * 0.5)
        if kind == "caregiving" or "parenting" in tags:
            add("B_parent_role", w)
        if "leadership" in tags or kind == "command_success":
            add("B_leader_exp", w)
            add("B_high_responsibility", w * 0.5)
        if kind in ("service", "training") or "military" in tags or "discipline" in tags:
            add("B_military_socialization", w)

        # conditions
        if kind in ("illness", "injury"):
            add("B_chronic_pain", w * 0.5)
            if kind == "injury":
                add("B_injury", w)
        if "stress" in tags or kind == "crisis":
            add("B_chronic_stress", w * 0.5)
        if kind == "scarcity" or "deprivation" in tags:
            add("B_approval_deprivation", w)
            if kind == "scarcity":
                add("B_scarcity", w)
        if kind == "captivity" or "escape" in tags:
            add("B_exile", w)
            if kind == "captivity":
                add("B_captivity", w)
                add("B_political_prisoner", w * 0.5)
        if kind == "burnout":
            add("B_burnout", w)
            add("B_overwork", w)
        if kind == "sensory_overload":
            add("B_sensory_sensitivity", w)
        if "identity_threat" in tags:
            add("B_identity_threats", w)

        # system / world
        if "chaos" in tags or kind == "dark_exposure":
            add("B_exposed_to_chaos", w)
        if "injustice" in tags:
            add("B_witnessed_injustice", w)
        if kind == "training" and "discipline" in tags:
            add("B_raised_in_strict_order", w)
        if kind == "oath_take":
            add("B_long_term_commitments", w)
            add("B_oath_taken", w)
        if "deception" in tags and ev.valence < 0:
            add("B_lied_to_history", w)
        if kind == "near_death":
            add("B_existential_crises", w)
        if "dissociation" in tags:
            add("B_dissociation_history", w)
        if kind == "childhood_trauma":
            add("B_no_safe_place_childhood", w)
        if kind == "moral_upbringing":
            add("B_strict_moral_upbringing", w)
        if kind in ("failure", "demotion"):
            add("B_status_loss_history", w)
        if kind in ("achievement", "success"):
            add("B_success", w)
        if "survival" in tags or kind == "survival":
            add("B_survival_mode", w)

    return {k: min(math.tanh(max(0.0, v)), FEATURE_CAP) for k, v in features.items()}


TRAUMA_TAGS = ("trauma", "shared_trauma", "group_trauma")
SOCIAL_TAGS = ("social", "joint", "group")


def extract_relational_features(events: Iterable[Event], target_id: str, pattern_bonus: float = 0.1) -> Dict[str, float]:
    """``B_rel_*`` features for one target.

    Repeated same-type interactions saturate faster than a single large one:
    ``value = 1 - exp(-raw * bonus)`` with ``bonus = 1 + pattern_bonus * count``
    once a feature has been hit more than once.
    """
    raw: Dict[str, float] = {}
    counts: Dict[str, int] = {}

    def add(key: str, value: float) -> None:
        raw[key] = raw.get(key, 0.0) + value
        counts[key] = counts.get(key, 0) + 1

    for ev in events:
        if not ev.involves(target_id):
            continue
        w = ev.intensity
        tags = set(ev.tags)
        kind = ev.kind

        if tags & {"rescue", "heroism", "protecting_target"}:
            add("B_rel_saved", w)
        if "care" in tags or kind == "caregiving":
            add("B_rel_care_from", w)
        if kind == "goal_embrace" or "devotion" in tags or (kind == "oath_take" and ev.valence > 0):
            add("B_rel_devotion", w * 1.5)
        if tags & {"romance", "love", "intimacy"}:
            add("B_rel_romance", w * 2.0)
        if tags & {"friend", "friendship", "ally"}:
            add("B_rel_friendship", w)

        if "betrayal" in tags:
            add("B_rel_betrayed_by", w)
        if "humiliation" in tags:
            add("B_rel_humiliated_by", w)
        if "harm" in tags or kind == "violence":
            add("B_rel_harmed", w)

        if "obedience" in tags or kind == "service":
            add("B_rel_obeyed", w)
        if "coercion" in tags or kind == "captivity":
            add("B_rel_controlled_by", w)

        is_trauma = any(t in tags for t in TRAUMA_TAGS)
        is_social = any(t in tags for t in SOCIAL_TAGS) or len(ev.participants) > 0
        if is_trauma and is_social:
            add("B_rel_shared_trauma", w)
        if "joint" in tags:
            add("B_rel_shared_trauma", w * 0.5)

        if kind == "scarcity" or "rejection" in tags:
            add("B_rel_approval_deprivation", w)

    out: Dict[str, float] = {}
    for key, value in raw.items():
        count = counts.get(key, 1)
        bonus = 1.0 + pattern_bonus * count if count > 1 else 1.0
        out[key] = min(-math.expm1(-max(0.0, value) * bonus), FEATURE_CAP)
    return out


# --- exposure traces & worldview ---

EXPOSURE_DECAY_PER_YEAR = 0.15

TAG_TO_EXPOSURE: Dict[str, Dict[str, float]] = {
    "trauma": {"E_threat": 0.8, "E_chaos": 0.4},
    "betrayal": {"E_betrayal_peer": 0.6},
    "betrayal_by_leader": {"E_betrayal_leader": 1.0},
    "betrayal_by_peer": {"E_betrayal_peer": 1.0},
    "loss": {"E_loss": 0.9},
    "humiliation": {"E_humiliation": 1.0, "E_helpless": 0.5},
    "captivity": {"E_helpless": 1.0, "E_threat": 0.5, "E_system_arbitrariness": 0.3},
    "torture": {"E_threat": 1.0, "E_helpless": 0.8, "E_humiliation": 0.7},
    "dark_exposure": {"E_chaos": 1.0, "E_threat": 0.4},
    "failure": {"E_helpless": 0.4, "E_humiliation": 0.3},
    "success": {"E_mastery_success": 0.8},
    "achievement": {"E_mastery_success": 1.0},
    "rescue": {"E_mastery_success": 0.5},
    "care": {"E_care_load": 0.5},
    "secret": {"E_secrecy": 0.8},
    "scarcity": {"E_scarcity": 1.0},
    "hunger": {"E_scarcity": 1.0},
    "blockade": {"E_scarcity": 1.0},
    "rationing": {"E_scarcity": 0.8},
    "siege": {"E_scarcity": 0.9, "E_threat": 0.5},
    "poverty": {"E_scarcity": 0.7},
    "lack": {"E_scarcity": 0.5},
    "resource_deficit": {"E_scarcity": 0.8},
}

DOMAIN_TO_EXPOSURE: Dict[str, Dict[str, float]] = {
    "captivity": {"E_helpless": 1.0},
    "torture": {"E_threat": 1.0},
    "betrayal_experienced": {"E_betrayal_peer": 0.5},
    "loss": {"E_loss": 1.0},
    "power_grab": {"E_betrayal_leader": 0.5, "E_chaos": 0.3},
    "scarcity": {"E_scarcity": 1.0},
}


def event_exposure_weight(ev: Event) -> float:
    recency = math.exp(-EXPOSURE_DECAY_PER_YEAR * max(0.0, ev.years_ago))
    duration = 1.0 + 0.2 * math.log1p(max(0.0, ev.duration_days))
    return ev.intensity * recency * duration


def compute_exposure_traces(events: Iterable[Event]) -> Dict[str, float]:
    traces = {k: 0.0 for k in EXPOSURE_KEYS}
    for ev in events:
        w = event_exposure_weight(ev)
        for tag in ev.tags:
            for key, coef in TAG_TO_EXPOSURE.get(tag, {}).items():
                traces[key] += coef * w
        for key, coef in DOMAIN_TO_EXPOSURE.get(ev.kind, {}).items():
            traces[key] += coef * w
        if ev.valence > 0:
            traces["E_mastery_success"] += 0.5 * w
        if ev.secrecy in ("private", "ingroup"):
            traces["E_secrecy"] += 0.3 * w
        if ev.controllability is not None and ev.controllability < 0.3:
            traces["E_helpless"] += 0.4 * w
    return traces


def compute_worldview(exposures: Dict[str, float]) -> Dict[str, float]:
    e = {k: float(exposures.get(k, 0.0)) for k in EXPOSURE_KEYS}
    return {
        "people_trust": sigmoid(-1.2 * e["E_betrayal_peer"] - 1.0 * e["E_humiliation"] - 0.8 * e["E_threat"] + 0.3 * e["E_care_load"]),
        "world_benevolence": sigmoid(0.1 - 1.5 * e["E_threat"] - 0.8 * e["E_loss"] - 0.8 * e["E_chaos"] - 0.7 * e["E_betrayal_peer"]),
        "system_legitimacy": sigmoid(-1.2 * e["E_system_arbitrariness"] - 1.0 * e["E_betrayal_leader"] - 0.5 * e["E_humiliation"]),
        "controllability": sigmoid(0.8 * e["E_mastery_success"] - 1.5 * e["E_helpless"] - 0.5 * e["E_system_arbitrariness"]),
        "fairness": sigmoid(-1.0 * e["E_humiliation"] - 0.8 * e["E_system_arbitrariness"] - 0.5 * e["E_betrayal_leader"]),
        "predictability": sigmoid(-1.0 * e["E_chaos"] - 0.5 * e["E_threat"]),
        "meaning_coherence": sigmoid(0.1 - 0.8 * e["E_chaos"] - 0.5 * e["E_loss"] + 0.5 * e["E_mastery_success"]),
        "scarcity": sigmoid(-0.5 + 1.5 * e["E_scarcity"] + 0.5 * e["E_care_load"]),
    }


def baseline_worldview() -> Dict[str, float]:
    return compute_worldview({})


def worldview_deviation(worldview: Dict[str, float]) -> Dict[str, float]:
    base = baseline_worldview()
    return {k: float(worldview.get(k, base[k])) - base[k] for k in WORLDVIEW_KEYS}
