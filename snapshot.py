"""Versioned JSON snapshots of a running model, for save/restore and replay."""

from __future__ import annotations

import json
import logging
import os
from typing import Dict

from acquaintance import AcquaintanceEdge
from biography import Event
from goals import PsychState
from relations import Relationship
from tom import TomEntry

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


class SnapshotVersionError(ValueError):
    pass


def agent_record(agent) -> Dict[str, object]:
    return {
        "traits": dict(agent.traits),
        "biography": [ev.to_dict() for ev in agent.biography],
        "tom": {tid: entry.to_dict() for tid, entry in sorted(agent.tom.items())},
        "acquaintance": {oid: edge.to_dict() for oid, edge in sorted(agent.acquaintances.items())},
        "relationships": {oid: rel.to_dict() for oid, rel in sorted(agent.relationships.items())},
        "goal_weights": dict(agent.goal_weights),
        "psych": agent.psych.to_dict(),
        # host fields needed to rebuild the agent
        "name": agent.name,
        "role": agent.role,
        "faction": agent.faction,
        "archetype": list(agent.archetype),
        "loyalty": agent.loyalty,
        "clearance": agent.clearance,
        "competence": agent.competence,
        "location": agent.location_id,
        "pos": list(agent.pos) if agent.pos is not None else None,
        "body": dict(vars(agent.body)),
        "dyad": agent.dyad_raw,
        "kin": sorted(agent.kin),
    }


def snapshot_model(model) -> Dict[str, object]:
    return {
        "schema_version": SCHEMA_VERSION,
        "global_seed": model.rng_ctx.global_seed,
        "tick": model.step_count,
        "rng": model.rng_ctx.state_dict(),
        "world": {
            "width": model.grid.width,
            "height": model.grid.height,
            "leaders": sorted(model.leaders),
            "faction_hostility": model.faction_hostility,
            "locations": model.locations_raw,
            "orders": model.orders_raw,
        },
        "roster": [a.agent_id for a in model.roster],
        "agents": {a.agent_id: agent_record(a) for a in model.roster},
    }


def validate_snapshot(data: Dict[str, object]) -> Dict[str, object]:
    version = data.get("schema_version")
    if version != SCHEMA_VERSION:
        raise SnapshotVersionError(f"snapshot schema_version {version!r} != {SCHEMA_VERSION}")
    for key in ("global_seed", "tick", "agents"):
        if key not in data:
            raise KeyError(f"snapshot missing {key!r}")
    return data


def save_snapshot(model_or_data, path: str) -> str:
    data = model_or_data if isinstance(model_or_data, dict) else snapshot_model(model_or_data)
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
    logger.info("snapshot saved tick=%s path=%s", data.get("tick"), path)
    return path


def load_snapshot(path: str) -> Dict[str, object]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (UnicodeDecodeError, json.JSONDecodeError):
        with open(path, "r", encoding="utf-8-sig") as f:
            data = json.load(f)
    return validate_snapshot(data)


def scenario_from_snapshot(data: Dict[str, object]) -> Dict[str, object]:
    """Scenario dict that rebuilds the same roster; dynamic state is restored afterwards."""
    world = data.get("world") or {}
    agents = []
    for aid in data.get("roster") or sorted(data["agents"]):
        rec = data["agents"][aid]
        agents.append(
            {
                "id": aid,
                "name": rec.get("name", aid),
                "traits": rec.get("traits", {}),
                "role": rec.get("role", ""),
                "faction": rec.get("faction", ""),
                "archetype": rec.get("archetype", ["neutral", "neutral"]),
                "loyalty": rec.get("loyalty", 50.0),
                "clearance": rec.get("clearance", 0.0),
                "competence": rec.get("competence", 50.0),
                "location": rec.get("location"),
                "pos": rec.get("pos"),
                "body": rec.get("body", {}),
                "dyad": rec.get("dyad"),
                "kin": rec.get("kin", []),
            }
        )
    return {
        "width": world.get("width"),
        "height": world.get("height"),
        "leaders": world.get("leaders", []),
        "faction_hostility": world.get("faction_hostility", {}),
        "locations": world.get("locations", {}),
        "orders": world.get("orders", []),
        "agents": agents,
    }


def restore_agent(agent, rec: Dict[str, object]) -> None:
    agent.biography = [Event.from_dict(ev) for ev in rec.get("biography", [])]
    agent.tom = {tid: TomEntry.from_dict(e) for tid, e in (rec.get("tom") or {}).items()}
    agent.acquaintances = {oid: AcquaintanceEdge.from_dict(e) for oid, e in (rec.get("acquaintance") or {}).items()}
    agent.relationships = {oid: Relationship.from_dict(r) for oid, r in (rec.get("relationships") or {}).items()}
    agent.goal_weights = {k: float(v) for k, v in (rec.get("goal_weights") or {}).items()}
    agent.psych = PsychState.from_dict(rec.get("psych"))
    agent.refresh_biography_cache()
