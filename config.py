"""Engine tunables and explicit merge helpers.

Precedence for ``merge_config``: explicit overrides > environment > defaults.
Precedence for ``merge_body``: partial (caller supplied) > defaults, per field.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Dict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineConfig:
    # biography
    pattern_bonus: float = 0.1
    # ToM
    trust_alpha: float = 0.3
    goal_alpha: float = 0.2
    max_lookback_ticks: int = 60
    policy_beta: float = 3.0
    # GIL
    gil_floor: float = 0.25
    # goals
    concrete_temperature: float = 1.0
    targeted_drop_logit: float = -2.0
    min_target_relevance: float = 0.1
    noise_scale: float = 0.5
    # atoms
    atom_min_magnitude: float = 0.1
    recent_event_window: int = 10
    # host
    relationship_history_limit: int = 50
    trace: bool = False


ENV_OVERRIDES = {
    "NARRATIVE_TRACE": ("trace", lambda v: v == "1"),
    "NARRATIVE_PATTERN_BONUS": ("pattern_bonus", float),
    "NARRATIVE_TRUST_ALPHA": ("trust_alpha", float),
    "NARRATIVE_MAX_LOOKBACK": ("max_lookback_ticks", int),
}


def env_overrides() -> Dict[str, object]:
    out: Dict[str, object] = {}
    for env_key, (name, cast) in ENV_OVERRIDES.items():
        raw = os.getenv(env_key)
        if raw is None or raw == "":
            continue
        try:
            out[name] = cast(raw)
        except ValueError:
            logger.warning("ignoring %s=%r (not a valid %s)", env_key, raw, name)
    return out


def merge_config(base: EngineConfig | None = None, overrides: Dict[str, object] | None = None, use_env: bool = True) -> EngineConfig:
    cfg = base or EngineConfig()
    known = {f.name for f in fields(EngineConfig)}
    merged: Dict[str, object] = {}
    if use_env:
        merged.update(env_overrides())
    for key, value in (overrides or {}).items():
        if key not in known:
            raise KeyError(f"unknown engine option: {key}")
        merged[key] = value
    return replace(cfg, **merged) if merged else cfg


@dataclass
class BodyState:
    hp: float = 100.0
    stamina: float = 100.0
    can_move: bool = True
    fear: float = 0.0
    anger: float = 0.0
    shame: float = 0.0
    arousal: float = 0.0
    valence: float = 0.0

    @property
    def is_wounded(self) -> bool:
        return self.hp < 70.0


def merge_body(defaults: BodyState | None, partial: Dict[str, object] | None) -> BodyState:
    base = defaults or BodyState()
    if not partial:
        return replace(base)
    known = {f.name for f in fields(BodyState)}
    values = {}
    for key, value in partial.items():
        if key not in known or value is None:
            continue
        values[key] = bool(value) if key == "can_move" else float(value)
    return replace(base, **values)
