"""Modelo Narrative Minds: agentes con ToM, metas auditables y herencia de metas (Mesa 3.3+)."""

from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import dataclass
from typing import Dict, List, Tuple

import numpy as np
from mesa import Agent, DataCollector, Model
from mesa.space import MultiGrid

from acquaintance import AcquaintanceEdge, kind_from_relationship, seed_from_signals, touch_seen
from atoms import (
    Frame,
    LocationFacts,
    MapCell,
    NearbyAgent,
    Order,
    SocialView,
    derived_indices,
    extract_atoms,
    target_candidates,
    wounded_ids,
)
from biography import Event, compute_exposure_traces, compute_worldview, extract_global_features
from catalog import ACTION_EVENT_TAGS, ARCHETYPES, LIFE_GOALS, TRAIT_AXES
from config import BodyState, EngineConfig, merge_body, merge_config
from det_rng import CHANNEL_DECIDE, RngContext
from gil import GilResult, inherit_goals
from goals import GoalContext, GoalInstance, PsychState, build_relational_metrics, compute_axis_logits, evaluate_goals
from mathutil import clamp01, normalize_weights
from relations import DyadConfig, Relationship, apply_action, compute_dyad_metrics, relationship_label
from tom import (
    ACTION_OUTCOMES,
    Observation,
    TomEntry,
    compute_guilt,
    compute_policy_prior,
    compute_tom_affect,
    decay_tom_entry,
    init_tom_entry,
    norms_from_traits,
    predict_action_distribution,
    refresh_policy_prior,
    sample_action,
    update_tom_entry,
)

logger = logging.getLogger(__name__)

# targeted goal -> host action toward the target
GOAL_ACTIONS = {
    "c_protect_target": "assist",
    "c_obey_target": "defer",
    "c_please_target": "assist",
    "c_dominate_target": "confront",
    "c_break_with_target": "set_boundary",
    "c_avoid_target": "avoid",
    "c_support_target": "share_info",
    "c_coordinate_with_target": "negotiate",
}

SYNTHETIC_EVENTS = (
    ("rescue", ("rescue", "heroism"), 0.6),
    ("betrayal", ("betrayal",), -0.7),
    ("combat", ("combat", "battle"), -0.2),
    ("support_interpersonal", ("support", "care"), 0.5),
    ("humiliation", ("humiliation", "trauma"), -0.6),
    ("oath_take", ("oath",), 0.3),
)


def load_scenario(path: str = "scenario.json") -> Dict[str, object]:
    """Scenario JSON; a missing file gives an empty scenario. Malformed JSON raises."""
    if not os.path.exists(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (UnicodeDecodeError, json.JSONDecodeError):
        with open(path, "r", encoding="utf-8-sig") as f:
            return json.load(f)


def gauss_clip(rng: np.random.Generator, mean: float, std: float = 0.15, lo: float = 0.0, hi: float = 1.0) -> float:
    return float(np.clip(rng.normal(mean, std), lo, hi))


def synthetic_population(rng: np.random.Generator, n_agents: int) -> Dict[str, object]:
    """Small random scenario for runs without a scenario file."""
    ids = [f"a{i:02d}" for i in range(n_agents)]
    archetypes = sorted(ARCHETYPES)
    agents = []
    for i, aid in enumerate(ids):
        traits = {k: gauss_clip(rng, 0.5) for k in TRAIT_AXES}
        bio = []
        others = [o for o in ids if o != aid]
        for j in range(int(rng.integers(0, 3))):
            if not others:
                break
            kind, tags, valence = SYNTHETIC_EVENTS[int(rng.integers(len(SYNTHETIC_EVENTS)))]
            other = others[int(rng.integers(len(others)))]
            bio.append(
                {
                    "id": f"{aid}-bio{j}",
                    "kind": kind,
                    "tags": list(tags),
                    "intensity": gauss_clip(rng, 0.6, 0.2),
                    "valence": valence,
                    "participants": [aid, other],
                    "years_ago": float(rng.integers(0, 10)),
                }
            )
        agents.append(
            {
                "id": aid,
                "name": aid.upper(),
                "traits": traits,
                "archetype": [archetypes[int(rng.integers(len(archetypes)))], archetypes[int(rng.integers(len(archetypes)))]],
                "role": "leader" if i == 0 else "",
                "faction": "north" if i % 2 == 0 else "south",
                "loyalty": gauss_clip(rng, 50.0, 15.0, 0.0, 100.0),
                "competence": gauss_clip(rng, 50.0, 15.0, 0.0, 100.0),
                "clearance": float(rng.integers(0, 6)),
                "location": "commons",
                "biography": bio,
            }
        )
    return {
        "leaders": [ids[0]] if ids else [],
        "faction_hostility": {"north": {"south": 0.4}, "south": {"north": 0.4}},
        "locations": {"commons": {"kind": "square", "tags": ["public"], "privacy": "public", "hazard": 0.1}},
        "agents": agents,
    }


def location_from_dict(loc_id: str, data: Dict[str, object]) -> LocationFacts:
    cells = [MapCell(**c) for c in data.get("cells", [])]
    return LocationFacts(
        id=loc_id,
        kind=str(data.get("kind", "unknown")),
        tags=tuple(data.get("tags", ())),
        owner_faction=data.get("owner_faction"),
        hazard=clamp01(float(data.get("hazard", 0.0))),
        visibility=clamp01(float(data.get("visibility", 0.5))),
        noise=clamp01(float(data.get("noise", 0.5))),
        privacy=str(data.get("privacy", "semi")),
        control_level=clamp01(float(data.get("control_level", 0.0))),
        crowd_level=clamp01(float(data.get("crowd_level", 0.0))),
        required_norms=int(data.get("required_norms", 0)),
        cells=cells,
        exits=[tuple(e) for e in data.get("exits", [])],
    )


@dataclass
class Interaction:
    actor_id: str
    target_id: str
    action: str
    intensity: float
    tick: int
    goal_id: str = ""


class NarrativeAgent(Agent):
    def __init__(
        self,
        model: "NarrativeModel",
        agent_id: str,
        traits: Dict[str, float],
        biography: List[Event] | None = None,
        psych: PsychState | None = None,
        body: BodyState | None = None,
        archetype: Tuple[str, str] = ("neutral", "neutral"),
        role: str = "",
        faction: str = "",
        name: str = "",
        loyalty: float = 50.0,
        clearance: float = 0.0,
        competence: float = 50.0,
        location_id: str | None = None,
        dyad: Dict[str, object] | None = None,
        kin: List[str] | None = None,
    ):
        super().__init__(model)
        self.agent_id = agent_id
        self.name = name or agent_id
        self.traits = {k: clamp01(float(traits.get(k, 0.5))) for k in TRAIT_AXES}
        self.biography: List[Event] = list(biography or [])
        self.psych = psych or PsychState()
        self.body = body or BodyState()
        self.archetype = (archetype[0], archetype[1])
        self.role = role
        self.faction = faction
        self.loyalty = float(loyalty)
        self.clearance = float(clearance)
        self.competence = float(competence)
        self.location_id = location_id
        self.dyad_raw = dyad
        self.dyad = DyadConfig.from_dict(dyad) if dyad else None
        self.kin = set(kin or [])

        self.tom: Dict[str, TomEntry] = {}
        self.relationships: Dict[str, Relationship] = {}
        self.acquaintances: Dict[str, AcquaintanceEdge] = {}
        self.goal_weights: Dict[str, float] = {g: 1.0 / len(LIFE_GOALS) for g in LIFE_GOALS}
        self.last_goals: List[GoalInstance] = []
        self.last_atoms: list = []
        self.last_action: str | None = None
        self.last_target: str | None = None
        self.last_gil = GilResult(weights=dict(self.goal_weights))
        self.exposures: Dict[str, float] = {}
        self.global_features: Dict[str, float] = {}
        self.refresh_biography_cache()

    # --- state helpers ---

    def refresh_biography_cache(self):
        self.exposures = compute_exposure_traces(self.biography)
        self.psych.worldview = compute_worldview(self.exposures)
        self.global_features = extract_global_features(self.biography)

    @property
    def zeta_belief(self) -> float:
        return 0.3 + 0.4 * self.traits["openness"]

    def ensure_tom(self, other: "NarrativeAgent") -> TomEntry:
        entry = self.tom.get(other.agent_id)
        if entry is None:
            dyad = compute_dyad_metrics(self.dyad, self.traits, other.traits, other.agent_id) if self.dyad else None
            entry = init_tom_entry(
                self.agent_id,
                other.agent_id,
                observer_events=self.biography,
                loyalty=self.loyalty,
                target_clearance=other.clearance,
                target_competence=other.competence,
                observer_discipline=self.traits["discipline"],
                dyad=dyad,
                hostility=self.model.hostility(self.faction, other.faction),
                tick=self.model.step_count,
            )
            refresh_policy_prior(entry)
            self.tom[other.agent_id] = entry
            self.model.log_event("tom_init", {"observer": self.agent_id, "target": other.agent_id, "trust": entry.traits.trust})
        return entry

    def ensure_acquaintance(self, other_id: str) -> AcquaintanceEdge:
        edge = self.acquaintances.get(other_id)
        if edge is None:
            edge = AcquaintanceEdge()
            rel = self.relationships.get(other_id)
            if rel is not None:
                seed_from_signals(edge, rel.bond, rel.trust)
                edge.kind = kind_from_relationship(rel.bond, rel.trust, rel.conflict)
            self.acquaintances[other_id] = edge
        return edge

    # --- phase 1: perceive, score, choose ---

    def perceive(self) -> Tuple[Frame, LocationFacts | None]:
        model = self.model
        radius = model.perception_radius
        nearby: List[Tuple[float, NarrativeAgent]] = []
        for other in model.grid.get_neighbors(self.pos, moore=True, include_center=True, radius=radius):
            if other is self:
                continue
            dist = max(abs(other.pos[0] - self.pos[0]), abs(other.pos[1] - self.pos[1]))
            nearby.append((dist / (radius + 1.0), other))
        nearby.sort(key=lambda pair: (pair[0], pair[1].agent_id))

        frame = Frame(body=self.body)
        frame.orders = list(model.orders.get(self.agent_id, []))
        frame.recent_events = [ev for ev in self.biography if ev.years_ago == 0 and ev.tick > 0]
        for dist_norm, other in nearby:
            oid = other.agent_id
            frame.nearby.append(NearbyAgent(oid, other.name, dist_norm, other.role, other.body.is_wounded))
            entry = self.ensure_tom(other)
            edge = touch_seen(self.ensure_acquaintance(oid), model.step_count)
            frame.acquaintances[oid] = edge
            t = entry.traits
            frame.relations.append(
                SocialView(
                    target_id=oid,
                    label=other.name,
                    trust=t.trust,
                    threat=max(t.fear, t.conflict),
                    support=clamp01(0.5 * (t.reliability + t.bond)),
                    closeness=t.bond,
                )
            )
            rel = self.relationships.get(oid)
            if rel is not None:
                is_superior = oid in model.leaders or other.clearance > self.clearance
                frame.relationship_labels[oid] = relationship_label(rel, is_superior)
        return frame, model.locations.get(self.location_id)

    def step(self):
        model = self.model
        cfg = model.config
        tick = model.step_count

        for entry in self.tom.values():
            decay_tom_entry(entry, tick, cfg.max_lookback_ticks)

        frame, location = self.perceive()
        atoms = extract_atoms(self.agent_id, frame, location, tick, cfg, model.names)
        threat, _support = derived_indices(frame, location, tick, cfg.recent_event_window)
        self.psych.stress = clamp01(0.8 * self.psych.stress + 0.2 * threat)

        axis = compute_axis_logits(
            self.traits,
            self.psych,
            self.exposures,
            self.archetype,
            rng_ctx=model.rng_ctx,
            agent_id=self.agent_id,
            noise_scale=cfg.noise_scale,
        )
        self.goal_weights = normalize_weights(
            {g: 0.5 * self.goal_weights.get(g, 0.0) + 0.5 * axis.life_goals.get(g, 0.0) for g in LIFE_GOALS}
        )

        candidates = target_candidates(atoms, self.agent_id, cfg.min_target_relevance)
        targets = {}
        for oid in candidates:
            entry = self.tom.get(oid)
            targets[oid] = build_relational_metrics(
                entry.traits.as_dict() if entry is not None else None,
                self.relationships.get(oid),
                self.acquaintances.get(oid),
                is_leader=oid in model.leaders,
            )
        wounded = wounded_ids(atoms)
        ctx = GoalContext(
            wounded_nearby=bool(wounded),
            threat_index=threat,
            leaders=set(model.leaders),
            wounded_ids=set(wounded),
            names=model.names,
        )
        self.last_goals = evaluate_goals(self.agent_id, axis.combined, self.global_features, self.biography, targets, ctx, cfg)
        self.last_atoms = atoms
        self._choose(candidates)

    def _choose(self, candidates: Dict[str, float]):
        self.last_action = None
        self.last_target = None
        if not self.last_goals:
            return
        rng = self.model.rng_ctx.stream(self.agent_id, CHANNEL_DECIDE)
        goal = self.last_goals[rng.choice_index([g.score for g in self.last_goals])]
        if goal.target_id is not None:
            action = GOAL_ACTIONS[goal.def_id]
            target = goal.target_id
        else:
            dist = predict_action_distribution(compute_policy_prior(self.goal_weights), self.model.config.policy_beta)
            action = sample_action(dist, rng)
            # most relevant candidate, ties by id
            target = min(candidates, key=lambda k: (-candidates[k], k)) if candidates else None
        self.last_action = action
        self.last_target = target
        if target is None or action is None:
            return
        intensity = clamp01(0.4 + 0.6 * goal.score)
        self.model.pending.append(Interaction(self.agent_id, target, action, intensity, self.model.step_count, goal.id))
        if action == "avoid":
            self._step_away(target, rng)

    def _step_away(self, target_id: str, rng):
        other = self.model.agent_by_id.get(target_id)
        if other is None:
            return
        cells = self.model.grid.get_neighborhood(self.pos, moore=True, include_center=False)
        far = max(max(abs(c[0] - other.pos[0]), abs(c[1] - other.pos[1])) for c in cells)
        options = sorted(c for c in cells if max(abs(c[0] - other.pos[0]), abs(c[1] - other.pos[1])) == far)
        self.model.grid.move_agent(self, tuple(options[int(rng.next_float() * len(options)) % len(options)]))

    # --- phase 2: own-state updates from delivered interactions ---

    def record_own_action(self, inter: Interaction, n: int):
        kind, tags, valence = ACTION_EVENT_TAGS[inter.action]
        self.biography.append(
            Event(kind, tags, inter.intensity, valence, (self.agent_id, inter.target_id), tick=inter.tick, id=f"{inter.tick}:{self.agent_id}:{n}")
        )
        self.refresh_biography_cache()
        realized = ACTION_OUTCOMES.get(inter.action, {})
        guilt = compute_guilt(realized, norms_from_traits(self.traits))
        self.psych.guilt = clamp01(0.8 * self.psych.guilt + 0.2 * guilt)

    def observe(self, inter: Interaction, actor: "NarrativeAgent", n: int):
        cfg = self.model.config
        direct = inter.target_id == self.agent_id
        kind, tags, valence = ACTION_EVENT_TAGS[inter.action]
        intensity = inter.intensity if direct else 0.5 * inter.intensity

        entry = self.ensure_tom(actor)
        success = inter.action != "confront" or actor.competence >= 50.0
        update_tom_entry(
            entry,
            Observation(actor.agent_id, inter.action, intensity, success, inter.target_id, tags),
            inter.tick,
            cfg.trust_alpha,
            cfg.goal_alpha,
        )
        refresh_policy_prior(entry)

        rel = self.relationships.setdefault(actor.agent_id, Relationship())
        apply_action(rel, inter.action, direct, self.zeta_belief, inter.tick, history_limit=cfg.relationship_history_limit)
        edge = touch_seen(self.ensure_acquaintance(actor.agent_id), inter.tick)
        edge.kind = kind_from_relationship(rel.bond, rel.trust, rel.conflict)

        if direct:
            self.biography.append(
                Event(kind, tags, intensity, valence, (actor.agent_id, self.agent_id), tick=inter.tick, id=f"{inter.tick}:{actor.agent_id}:{n}")
            )
            self.refresh_biography_cache()
            if inter.action == "confront":
                self.body.hp = max(0.0, self.body.hp - 15.0 * intensity)
                self.body.fear = clamp01(self.body.fear + 0.2 * intensity)
            elif inter.action == "assist":
                self.body.hp = min(100.0, self.body.hp + 10.0 * intensity)
            affect = compute_tom_affect(entry, self.psych.stress, shame_self=self.psych.shame, guilt=self.psych.guilt)
            self.psych.shame = clamp01(0.9 * self.psych.shame + 0.1 * affect["shame"])


class NarrativeModel(Model):
    def __init__(
        self,
        seed: int | None = None,
        scenario: Dict[str, object] | None = None,
        scenario_path: str | None = None,
        n_agents: int = 8,
        width: int | None = None,
        height: int | None = None,
        perception_radius: int = 2,
        config: EngineConfig | None = None,
        config_overrides: Dict[str, object] | None = None,
        **kwargs,
    ):
        super().__init__(seed=seed)
        self.rng = np.random.default_rng(seed)
        self.config = merge_config(config, config_overrides)
        self.rng_ctx = RngContext(global_seed=int(seed or 0))
        self.perception_radius = max(1, int(perception_radius))
        self.step_count = 0
        self.event_log: List[Tuple[str, object]] = []
        self.pending: List[Interaction] = []
        self.interactions_last = 0

        if scenario is None and scenario_path:
            scenario = load_scenario(scenario_path)
        if not scenario or not scenario.get("agents"):
            scenario = synthetic_population(self.rng, int(n_agents))
        self.scenario_source = scenario_path or "synthetic"

        self.leaders = set(scenario.get("leaders", []))
        self.faction_hostility: Dict[str, Dict[str, float]] = scenario.get("faction_hostility", {}) or {}
        self.locations_raw = scenario.get("locations", {}) or {}
        self.locations = {lid: location_from_dict(lid, data) for lid, data in self.locations_raw.items()}
        self.orders_raw = scenario.get("orders", []) or []
        self.orders: Dict[str, List[Order]] = {}
        for o in self.orders_raw:
            order = Order(str(o["id"]), o.get("kind", "order"), o.get("target_id"), float(o.get("strength", 1.0)), o.get("summary", ""))
            self.orders.setdefault(str(o["agent_id"]), []).append(order)

        rows = scenario["agents"]
        side = max(6, int(math.sqrt(len(rows)) * 2))
        self.grid = MultiGrid(int(width or scenario.get("width") or side), int(height or scenario.get("height") or side), torus=False)

        self.roster: List[NarrativeAgent] = []
        self.agent_by_id: Dict[str, NarrativeAgent] = {}
        for row in rows:
            agent = self._build_agent(row)
            self.roster.append(agent)
            self.agent_by_id[agent.agent_id] = agent
            if agent.role == "leader":
                self.leaders.add(agent.agent_id)
            pos = row.get("pos")
            if pos is None:
                pos = (self.random.randrange(self.grid.width), self.random.randrange(self.grid.height))
            self.grid.place_agent(agent, tuple(pos))
        self.names = {a.agent_id: a.name for a in self.roster}
        for row, agent in zip(rows, self.roster):
            self._seed_social(agent, row)

        self.running = True
        self.last_metrics: Dict[str, float] = {}
        self.run_metadata = {
            "seed": seed,
            "scenario": self.scenario_source,
            "n_agents": len(self.roster),
            "perception_radius": self.perception_radius,
            "config": dict(vars(self.config)),
        }
        self.datacollector = DataCollector(
            model_reporters={
                "tick": lambda m: m.step_count,
                "mean_trust": lambda m: m.last_metrics.get("mean_trust", 0.0),
                "mean_uncertainty": lambda m: m.last_metrics.get("mean_uncertainty", 0.0),
                "mean_stress": lambda m: m.last_metrics.get("mean_stress", 0.0),
                "mean_guilt": lambda m: m.last_metrics.get("mean_guilt", 0.0),
                "tom_entries": lambda m: m.last_metrics.get("tom_entries", 0.0),
                "interactions": lambda m: m.interactions_last,
                "assist_rate": lambda m: m.last_metrics.get("assist_rate", 0.0),
                "confront_rate": lambda m: m.last_metrics.get("confront_rate", 0.0),
                "avoid_rate": lambda m: m.last_metrics.get("avoid_rate", 0.0),
                "mean_total_phi": lambda m: m.last_metrics.get("mean_total_phi", 0.0),
                "goal_entropy": lambda m: m.last_metrics.get("goal_entropy", 0.0),
                "wounded_share": lambda m: m.last_metrics.get("wounded_share", 0.0),
                "top_life_goal": lambda m: m.last_metrics.get("top_life_goal", ""),
            }
        )
        self._update_metrics()
        self.datacollector.collect(self)

    def _build_agent(self, row: Dict[str, object]) -> NarrativeAgent:
        aid = str(row["id"])
        archetype = row.get("archetype") or ["neutral", "neutral"]
        if isinstance(archetype, str):
            archetype = [archetype, "neutral"]
        return NarrativeAgent(
            self,
            aid,
            traits=row.get("traits", {}),
            biography=[Event.from_dict(ev) for ev in row.get("biography", [])],
            psych=PsychState.from_dict(row.get("psych")),
            body=merge_body(BodyState(), row.get("body")),
            archetype=(archetype[0], archetype[1] if len(archetype) > 1 else "neutral"),
            role=str(row.get("role", "")),
            faction=str(row.get("faction", "")),
            name=str(row.get("name", "")),
            loyalty=float(row.get("loyalty", 50.0)),
            clearance=float(row.get("clearance", 0.0)),
            competence=float(row.get("competence", 50.0)),
            location_id=row.get("location"),
            dyad=row.get("dyad"),
            kin=row.get("kin"),
        )

    def _seed_social(self, agent: NarrativeAgent, row: Dict[str, object]):
        for oid, data in (row.get("relationships") or {}).items():
            agent.relationships[oid] = Relationship.from_dict(data)
        for oid, data in (row.get("acquaintances") or {}).items():
            agent.acquaintances[oid] = AcquaintanceEdge.from_dict(data)
        for oid in sorted(agent.relationships):
            other = self.agent_by_id.get(oid)
            if other is not None:
                agent.ensure_tom(other)
                agent.ensure_acquaintance(oid)

    def hostility(self, faction_a: str, faction_b: str) -> float:
        if not faction_a or not faction_b or faction_a == faction_b:
            return 0.0
        return clamp01(float(self.faction_hostility.get(faction_a, {}).get(faction_b, 0.0)))

    def log_event(self, tag: str, payload: object):
        self.event_log.append((tag, payload))
        if self.config.trace:
            logger.debug("%s %s", tag, payload)

    # --- tick ---

    def step(self):
        self.step_count += 1
        # GIL usa vectores de metas rezagados (inicio del tick)
        donors = {a.agent_id: dict(a.goal_weights) for a in self.roster}
        reciprocal = {(a.agent_id, tid): e.traits.trust for a in self.roster for tid, e in a.tom.items()}
        self.pending = []

        for agent in self.roster:
            agent.step()

        self._deliver()
        self._apply_gil(donors, reciprocal)
        self._update_metrics()
        self.datacollector.collect(self)

    def _deliver(self):
        radius = self.perception_radius
        self.interactions_last = len(self.pending)
        for n, inter in enumerate(self.pending):
            actor = self.agent_by_id[inter.actor_id]
            if inter.target_id not in self.agent_by_id:
                continue
            actor.record_own_action(inter, n)
            observers = [
                a
                for a in self.roster
                if a is not actor
                and (a.agent_id == inter.target_id or max(abs(a.pos[0] - actor.pos[0]), abs(a.pos[1] - actor.pos[1])) <= radius)
            ]
            for obs in observers:
                obs.observe(inter, actor, n)
            self.log_event("interaction", {"tick": inter.tick, "actor": inter.actor_id, "target": inter.target_id, "action": inter.action, "goal": inter.goal_id})
        self.pending = []

    def _apply_gil(self, donors: Dict[str, Dict[str, float]], reciprocal: Dict[Tuple[str, str], float]):
        floor = self.config.gil_floor
        for agent in self.roster:
            views = {tid: e.traits.as_dict() for tid, e in agent.tom.items()}
            ties = {
                tid: {
                    "kin": 1.0 if tid in agent.kin else 0.0,
                    "faction": 1.0 if self.agent_by_id[tid].faction == agent.faction and agent.faction else 0.0,
                    "reciprocal_trust": reciprocal.get((tid, agent.agent_id), 0.0),
                }
                for tid in views
                if tid in self.agent_by_id
            }
            result = inherit_goals(agent.goal_weights, views, donors, agent.traits["conformity"], ties, floor)
            agent.goal_weights = normalize_weights({g: result.weights.get(g, 0.0) for g in LIFE_GOALS})
            agent.last_gil = result

    def _update_metrics(self):
        roster = self.roster
        pop = len(roster)
        if pop == 0:
            self.last_metrics = {}
            self.running = False
            return
        entries = [e for a in roster for _, e in sorted(a.tom.items())]
        actions = [a.last_action for a in roster if a.last_action and a.last_target]
        acted = max(1, len(actions))
        entropy = [-sum(p * math.log(p) for p in a.goal_weights.values() if p > 0) for a in roster]
        totals: Dict[str, float] = {}
        for a in roster:
            for g, w in a.goal_weights.items():
                totals[g] = totals.get(g, 0.0) + w
        self.last_metrics = {
            "mean_trust": float(np.mean([e.traits.trust for e in entries])) if entries else 0.0,
            "mean_uncertainty": float(np.mean([e.uncertainty for e in entries])) if entries else 1.0,
            "mean_stress": float(np.mean([a.psych.stress for a in roster])),
            "mean_guilt": float(np.mean([a.psych.guilt for a in roster])),
            "tom_entries": float(len(entries)),
            "assist_rate": sum(1 for x in actions if x == "assist") / acted,
            "confront_rate": sum(1 for x in actions if x == "confront") / acted,
            "avoid_rate": sum(1 for x in actions if x == "avoid") / acted,
            "mean_total_phi": float(np.mean([a.last_gil.total_phi for a in roster])),
            "goal_entropy": float(np.mean(entropy)),
            "wounded_share": sum(1 for a in roster if a.body.is_wounded) / pop,
            "top_life_goal": min(totals, key=lambda g: (-totals[g], g)) if totals else "",
        }

    # --- reporting / persistence ---

    def goal_report(self, top_k: int = 5) -> Dict[str, object]:
        report = {}
        for a in self.roster:
            report[a.agent_id] = {
                "name": a.name,
                "life_goals": dict(sorted(a.goal_weights.items(), key=lambda kv: (-kv[1], kv[0]))),
                "last_action": a.last_action,
                "last_target": a.last_target,
                "goals": [
                    {"id": g.id, "label": g.label, "score": g.score, "logit": g.logit, "formula": g.formula}
                    for g in a.last_goals[:top_k]
                ],
            }
        return report

    def snapshot(self) -> Dict[str, object]:
        from snapshot import snapshot_model

        return snapshot_model(self)

    @classmethod
    def from_snapshot(cls, data: Dict[str, object], **kwargs) -> "NarrativeModel":
        from snapshot import restore_agent, scenario_from_snapshot, validate_snapshot

        validate_snapshot(data)
        model = cls(seed=int(data["global_seed"]), scenario=scenario_from_snapshot(data), **kwargs)
        for aid, rec in data["agents"].items():
            restore_agent(model.agent_by_id[aid], rec)
        model.step_count = int(data["tick"])
        model.rng_ctx.load_state(data.get("rng") or {})
        model.event_log.append(("restored", {"tick": model.step_count}))
        model._update_metrics()
        return model
