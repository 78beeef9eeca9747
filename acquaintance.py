"""Acquaintance edges and the recognition gate over relationship signals."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict

import numpy as np

from mathutil import clamp01

TIERS = ("unknown", "seen", "acquaintance", "known", "intimate")
TIER_BASE = {"unknown": 0.15, "seen": 0.25, "acquaintance": 0.55, "known": 0.8, "intimate": 1.0}
TIER_MAGNITUDE = {"unknown": 0.0, "seen": 0.25, "acquaintance": 0.5, "known": 0.75, "intimate": 1.0}

TRUST_LIKE = ("trust", "bond", "respect", "align", "support", "intimacy", "closeness", "attachment")
THREAT_LIKE = ("fear", "threat", "conflict")

ID_BOOST = 0.08
FAM_BOOST = 0.05


def tier_rank(tier: str) -> int:
    try:
        return TIERS.index(tier)
    except ValueError:
        raise ValueError(f"unknown acquaintance tier: {tier!r}") from None


@dataclass
class AcquaintanceEdge:
    tier: str = "unknown"
    id_confidence: float = 0.0
    familiarity: float = 0.0
    last_seen_tick: int | None = None
    kind: str = "stranger"
    seen_as: str = ""
    recognized_as: str = ""

    def __post_init__(self):
        tier_rank(self.tier)

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "AcquaintanceEdge":
        return cls(
            tier=str(data.get("tier", "unknown")),
            id_confidence=clamp01(float(data.get("id_confidence", 0.0))),
            familiarity=clamp01(float(data.get("familiarity", 0.0))),
            last_seen_tick=data.get("last_seen_tick"),
            kind=str(data.get("kind", "stranger")),
            seen_as=str(data.get("seen_as", "")),
            recognized_as=str(data.get("recognized_as", "")),
        )


def bump_tier(edge: AcquaintanceEdge, tier: str) -> None:
    """Raise the tier; never lowers it."""
    if tier_rank(tier) > tier_rank(edge.tier):
        edge.tier = tier


def gate_factor(edge: AcquaintanceEdge | None) -> float:
    if edge is None:
        edge = AcquaintanceEdge()
    base = TIER_BASE[edge.tier]
    quality = float(np.clip(0.35 + 0.45 * edge.id_confidence + 0.20 * edge.familiarity, 0.15, 1.0))
    return base * quality


def gate_metrics(metrics: Dict[str, float], k: float) -> Dict[str, float]:
    """Discount relationship signals by recognition factor ``k``.

    Trust-like metrics scale with k. Threat-like metrics keep a residual
    danger signal even for strangers.
    """
    out: Dict[str, float] = {}
    for key, value in metrics.items():
        name = key.lower()
        if name in TRUST_LIKE:
            out[key] = clamp01(value * k)
        elif name in THREAT_LIKE:
            out[key] = clamp01(value * (0.7 + 0.3 * k) + (1.0 - k) * 0.1)
        else:
            out[key] = value
    return out


def touch_seen(edge: AcquaintanceEdge, tick: int) -> AcquaintanceEdge:
    edge.id_confidence = clamp01(edge.id_confidence + ID_BOOST)
    edge.familiarity = clamp01(edge.familiarity + FAM_BOOST)
    edge.last_seen_tick = tick
    if edge.tier == "unknown":
        bump_tier(edge, "seen")
    elif edge.tier == "seen" and edge.id_confidence > 0.45:
        bump_tier(edge, "acquaintance")
    elif edge.tier == "acquaintance" and edge.familiarity > 0.6:
        bump_tier(edge, "known")
    return edge


def seed_from_signals(edge: AcquaintanceEdge, bond: float, trust: float) -> AcquaintanceEdge:
    if bond > 0.85 and trust > 0.7:
        bump_tier(edge, "intimate")
    elif bond > 0.65:
        bump_tier(edge, "known")
    elif bond > 0.35:
        bump_tier(edge, "acquaintance")
    edge.id_confidence = max(edge.id_confidence, min(0.9, 0.35 + bond))
    edge.familiarity = max(edge.familiarity, min(0.9, 0.2 + bond))
    return edge


def kind_from_relationship(bond: float, trust: float, conflict: float) -> str:
    """Kind label for an edge backed by a relationship; edges without one stay "stranger"."""
    if bond > 0.75 and trust > 0.65 and conflict < 0.35:
        return "romance"
    if bond > 0.55 and trust > 0.6:
        return "friend"
    if conflict > 0.65:
        return "enemy"
    return "colleague"
