"""Catálogos fijos: ejes de metas, matrices, metas de vida y metas concretas."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

GOAL_AXES: Tuple[str, ...] = (
    "fix_world",
    "preserve_order",
    "free_flow",
    "control",
    "care",
    "power_status",
    "truth",
    "chaos_change",
    "efficiency",
    "escape_transcend",
)

EXPOSURE_KEYS: Tuple[str, ...] = (
    "E_threat",
    "E_betrayal_leader",
    "E_betrayal_peer",
    "E_helpless",
    "E_chaos",
    "E_loss",
    "E_secrecy",
    "E_scarcity",
    "E_humiliation",
    "E_care_load",
    "E_system_arbitrariness",
    "E_mastery_success",
)

WORLDVIEW_KEYS: Tuple[str, ...] = (
    "world_benevolence",
    "people_trust",
    "system_legitimacy",
    "predictability",
    "controllability",
    "fairness",
    "scarcity",
    "meaning_coherence",
)

DISTORTION_KEYS: Tuple[str, ...] = (
    "controlIllusion",
    "threatBias",
    "blackWhiteThinking",
    "catastrophizing",
    "trustBias",
    "mindReading",
    "selfBlameBias",
    "personalization",
)

TRAIT_AXES: Tuple[str, ...] = (
    "empathy",
    "dominance",
    "conformity",
    "impulsiveness",
    "curiosity",
    "discipline",
    "sociability",
    "risk_taking",
    "honesty",
    "ambition",
    "anxiety",
    "openness",
)

# Traits are centered at 0.5 before projection, so a neutral profile is silent.
TRAIT_SCALE = 2.0
TRAIT_TO_AXIS: Dict[str, Dict[str, float]] = {
    "empathy": {"care": 1.0, "fix_world": 0.4, "power_status": -0.4},
    "dominance": {"power_status": 1.0, "control": 0.6},
    "conformity": {"preserve_order": 1.0, "free_flow": -0.6, "chaos_change": -0.4},
    "impulsiveness": {"chaos_change": 0.6, "efficiency": -0.4, "escape_transcend": 0.3},
    "curiosity": {"truth": 1.0, "free_flow": 0.3},
    "discipline": {"efficiency": 0.8, "preserve_order": 0.5, "control": 0.3},
    "sociability": {"care": 0.4, "power_status": 0.3},
    "risk_taking": {"chaos_change": 0.6, "control": -0.3, "escape_transcend": -0.2},
    "honesty": {"truth": 0.6, "fix_world": 0.3},
    "ambition": {"power_status": 0.6, "efficiency": 0.5},
    "anxiety": {"control": 0.6, "escape_transcend": 0.5},
    "openness": {"free_flow": 0.6, "truth": 0.3, "preserve_order": -0.3},
}

# exposures -> axes (log-dampened inputs)
MATRIX_B_BIO: Dict[str, Dict[str, float]] = {
    "control": {"E_helpless": 0.04, "E_chaos": 0.03, "E_scarcity": 0.03, "E_system_arbitrariness": 0.02},
    "care": {"E_care_load": 0.04, "E_loss": 0.03, "E_humiliation": 0.02},
    "power_status": {"E_humiliation": 0.05, "E_mastery_success": 0.03, "E_helpless": 0.02},
    "truth": {"E_secrecy": 0.04, "E_betrayal_peer": 0.02, "E_betrayal_leader": 0.02},
    "preserve_order": {"E_chaos": 0.04, "E_betrayal_leader": -0.02, "E_system_arbitrariness": -0.02},
    "free_flow": {"E_system_arbitrariness": 0.04, "E_helpless": -0.01},
    "escape_transcend": {"E_helpless": 0.04, "E_loss": 0.03, "E_humiliation": 0.02, "E_scarcity": 0.02},
    "fix_world": {"E_system_arbitrariness": 0.05, "E_mastery_success": 0.02, "E_chaos": 0.02},
    "chaos_change": {"E_chaos": -0.03, "E_system_arbitrariness": 0.03, "E_betrayal_leader": 0.03},
    "efficiency": {"E_scarcity": 0.05},
}

# worldview (centered on the empty-biography baseline) -> axes
MATRIX_C_WV: Dict[str, Dict[str, float]] = {
    "control": {"controllability": -0.05, "predictability": -0.03, "world_benevolence": -0.02, "people_trust": -0.02, "scarcity": 0.04},
    "preserve_order": {"predictability": -0.03, "fairness": -0.02, "system_legitimacy": 0.04, "scarcity": 0.02},
    "truth": {"predictability": -0.02, "system_legitimacy": -0.03, "people_trust": -0.03},
    "care": {"world_benevolence": -0.03, "people_trust": 0.03, "fairness": -0.02},
    "efficiency": {"scarcity": 0.05, "predictability": -0.02},
    "escape_transcend": {"meaning_coherence": -0.04, "world_benevolence": -0.03, "scarcity": 0.02},
    "fix_world": {"fairness": -0.04, "system_legitimacy": -0.03, "world_benevolence": -0.02},
    "power_status": {"system_legitimacy": -0.02, "people_trust": -0.02, "controllability": 0.03},
    "free_flow": {"predictability": -0.03, "controllability": -0.03, "system_legitimacy": -0.03},
    "chaos_change": {"system_legitimacy": -0.04, "fairness": -0.02},
}

MATRIX_K_DIST: Dict[str, Dict[str, float]] = {
    "control": {"controlIllusion": 0.06, "threatBias": 0.04, "blackWhiteThinking": 0.02},
    "preserve_order": {"blackWhiteThinking": 0.05, "controlIllusion": 0.03, "catastrophizing": 0.02},
    "truth": {"trustBias": -0.04, "mindReading": -0.03, "blackWhiteThinking": -0.03},
    "care": {"trustBias": -0.04, "selfBlameBias": 0.03},
    "efficiency": {"controlIllusion": 0.03},
    "escape_transcend": {"catastrophizing": 0.06, "threatBias": 0.05, "selfBlameBias": 0.04},
    "fix_world": {"selfBlameBias": 0.05, "personalization": 0.03},
    "power_status": {"mindReading": 0.04, "threatBias": 0.04},
    "free_flow": {"blackWhiteThinking": -0.04, "controlIllusion": -0.04},
    "chaos_change": {"catastrophizing": 0.04, "controlIllusion": -0.03},
}

PSYCH_SCALE = 1.5

LIFE_GOALS: Tuple[str, ...] = (
    "protect_lives",
    "maintain_bonds",
    "seek_status",
    "maintain_order",
    "accumulate_resources",
    "preserve_autonomy",
    "serve_authority",
    "pursue_truth",
    "seek_comfort",
    "self_transcendence",
)

AXIS_TO_LIFE_GOAL: Dict[str, Dict[str, float]] = {
    "care": {"protect_lives": 2.0, "maintain_bonds": 1.5, "seek_status": -0.5},
    "control": {"maintain_order": 1.5, "accumulate_resources": 1.0, "preserve_autonomy": -0.5},
    "power_status": {"seek_status": 2.0, "serve_authority": 0.5, "protect_lives": -0.3},
    "truth": {"pursue_truth": 2.0, "seek_comfort": -0.5},
    "free_flow": {"preserve_autonomy": 2.0, "maintain_order": -1.0},
    "preserve_order": {"maintain_order": 1.5, "serve_authority": 1.5, "preserve_autonomy": -0.5},
    "efficiency": {"accumulate_resources": 1.5, "maintain_order": 0.5},
    "chaos_change": {"preserve_autonomy": 1.0, "self_transcendence": 1.0, "maintain_order": -1.5},
    "fix_world": {"protect_lives": 1.0, "maintain_order": 0.5, "seek_status": 0.5},
    "escape_transcend": {"seek_comfort": 1.5, "self_transcendence": 1.5, "maintain_bonds": -0.5},
}

# Archetype axis profiles; an agent carries a (main, shadow) pair of names.
ARCHETYPES: Dict[str, Dict[str, float]] = {
    "neutral": {},
    "guardian": {"care": 0.6, "preserve_order": 0.5, "control": 0.2},
    "rebel": {"free_flow": 0.6, "chaos_change": 0.5, "preserve_order": -0.4},
    "scholar": {"truth": 0.7, "efficiency": 0.2},
    "ruler": {"power_status": 0.6, "control": 0.5, "preserve_order": 0.2},
    "caretaker": {"care": 0.8, "fix_world": 0.3},
    "survivor": {"escape_transcend": 0.5, "control": 0.4, "efficiency": 0.2},
    "zealot": {"fix_world": 0.6, "truth": 0.3, "free_flow": -0.3},
    "tyrant": {"power_status": 0.8, "control": 0.6, "care": -0.5},
    "deserter": {"escape_transcend": 0.8, "care": -0.3, "preserve_order": -0.3},
}

TOM_ACTIONS: Tuple[str, ...] = (
    "assist",
    "share_info",
    "negotiate",
    "monitor",
    "avoid",
    "set_boundary",
    "confront",
    "defer",
)

# Static affinity between a believed goal and the actions it makes likely.
GOAL_ACTION_AFFINITY: Dict[str, Dict[str, float]] = {
    "protect_lives": {"assist": 1.0, "monitor": 0.4, "confront": 0.3},
    "maintain_bonds": {"assist": 0.7, "share_info": 0.6, "negotiate": 0.4},
    "seek_status": {"confront": 0.6, "negotiate": 0.5, "set_boundary": 0.3},
    "maintain_order": {"monitor": 0.6, "defer": 0.4, "set_boundary": 0.4},
    "accumulate_resources": {"negotiate": 0.8, "monitor": 0.3},
    "preserve_autonomy": {"set_boundary": 0.9, "avoid": 0.4},
    "serve_authority": {"defer": 1.0, "assist": 0.3},
    "pursue_truth": {"share_info": 0.7, "monitor": 0.6},
    "seek_comfort": {"avoid": 0.8, "defer": 0.3},
    "self_transcendence": {"avoid": 0.4, "share_info": 0.3, "assist": 0.2},
}

# Event tags and domain used when a host action is recorded as a biography event.
ACTION_EVENT_TAGS: Dict[str, Tuple[str, Tuple[str, ...], float]] = {
    "assist": ("support_interpersonal", ("support", "care"), 0.6),
    "share_info": ("communication", ("support", "information"), 0.3),
    "negotiate": ("communication", ("social", "negotiation"), 0.1),
    "monitor": ("surveillance", ("authority", "order"), 0.0),
    "avoid": ("avoidance", ("avoidance",), -0.1),
    "set_boundary": ("norm", ("norm", "autonomy"), -0.1),
    "confront": ("conflict", ("harm", "attack", "conflict"), -0.6),
    "defer": ("service", ("obedience", "service"), 0.2),
}


@dataclass(frozen=True)
class ConcreteGoalDef:
    id: str
    label: str
    base_logit: float
    layer: str
    domain: str
    axis_weights: Dict[str, float] = field(default_factory=dict)
    bio_weights: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class TargetedGoalDef:
    id: str
    label_template: str
    base_logit: float
    layer: str
    domain: str
    axis_weights: Dict[str, float] = field(default_factory=dict)
    relational_metric_weights: Dict[str, float] = field(default_factory=dict)
    relational_bio_weights: Dict[str, float] = field(default_factory=dict)

    def label_for(self, target_name: str) -> str:
        return self.label_template.format(target=target_name)


CONCRETE_GOALS: List[ConcreteGoalDef] = [
    ConcreteGoalDef("c_reduce_tension", "Reduce tension", -0.8, "body", "AFFECT",
                    {"escape_transcend": 1.2, "care": 0.6, "free_flow": 0.4},
                    {"B_burnout": 2.0, "B_chronic_stress": 1.5, "B_exile": 0.6, "B_trauma_overload": 1.2, "B_sensory_sensitivity": 0.8, "B_no_safe_place_childhood": 0.5}),
    ConcreteGoalDef("c_avoid_pain_phys", "Avoid physical pain", -0.3, "survival", "BODY",
                    {"escape_transcend": 1.2, "control": 1.5},
                    {"B_chronic_pain": 2.5, "B_torture": 1.5, "B_coercion": 0.8, "B_injury": 1.0}),
    ConcreteGoalDef("c_avoid_pain_psych", "Avoid emotional pain", -0.3, "survival", "AFFECT",
                    {"escape_transcend": 1.2, "free_flow": 0.6},
                    {"B_attachment_trauma": 1.8, "B_humiliation": 1.5, "B_bullying": 1.2, "B_betrayed_by_peer": 1.0, "B_abandonment": 0.8}),
    ConcreteGoalDef("c_restore_sleep", "Restore sleep", -0.8, "body", "REST",
                    {"escape_transcend": 0.6, "care": 0.9, "efficiency": 1.2},
                    {"B_sleep_disorders": 2.0, "B_chronic_stress": 0.8, "B_burnout": 1.0, "B_overwork": 0.5}),
    ConcreteGoalDef("c_restore_energy", "Restore energy", -0.3, "body", "REST",
                    {"escape_transcend": 0.6, "care": 0.6, "efficiency": 1.0},
                    {"B_burnout": 1.8, "B_chronic_stress": 1.2, "B_scarcity": 1.0, "B_survival_mode": 0.8}),
    ConcreteGoalDef("c_reduce_overload", "Reduce overload", -1.2, "body", "REST",
                    {"escape_transcend": 1.2, "efficiency": -0.5},
                    {"B_sensory_sensitivity": 2.5, "B_trauma_overload": 1.8, "B_burnout": 1.5, "B_high_responsibility": 0.5}),
    ConcreteGoalDef("c_preserve_self_integrity", "Preserve self integrity", 0.8, "identity", "IDENTITY",
                    {"truth": 1.8, "preserve_order": 1.4, "fix_world": 0.5},
                    {"B_identity_threats": 2.5, "B_existential_crises": 1.8, "B_lied_to_history": 1.2, "B_coercion": 1.0, "B_dissociation_history": 1.5}),
    ConcreteGoalDef("c_reduce_guilt", "Atone for guilt", -0.3, "identity", "IDENTITY",
                    {"care": 1.2, "fix_world": 1.0, "preserve_order": 0.5},
                    {"B_moral_injury": 2.5, "B_saved_others": 0.8, "B_failed_rescue": 2.0, "B_betrayal_committed": 1.5}),
    ConcreteGoalDef("c_reduce_shame", "Restore honor", -0.3, "identity", "STATUS",
                    {"power_status": 1.5, "care": 0.6, "control": 0.5},
                    {"B_humiliation": 2.0, "B_attachment_trauma": 0.8, "B_status_loss_history": 1.5, "B_bullying": 1.2}),
    ConcreteGoalDef("c_keep_autonomy", "Keep autonomy", 0.2, "identity", "AUTONOMY",
                    {"free_flow": 1.8, "escape_transcend": 0.8, "power_status": 0.5},
                    {"B_coercion": 2.0, "B_betrayed_system": 1.2, "B_exile": 1.2, "B_captivity": 1.8, "B_raised_in_strict_order": -0.5}),
    ConcreteGoalDef("c_obey_internal_code", "Follow the code", 0.8, "identity", "RITUAL",
                    {"truth": 2.5, "preserve_order": 1.5, "fix_world": 0.8},
                    {"B_strict_moral_upbringing": 2.5, "B_leader_exp": 1.0, "B_oath_taken": 1.5, "B_long_term_commitments": 1.2, "B_military_socialization": 1.2}),
    ConcreteGoalDef("c_protect_close_ones", "Protect my people", 0.3, "social", "CARE",
                    {"care": 2.0, "fix_world": 0.6, "preserve_order": 0.8},
                    {"B_saved_others": 1.5, "B_parent_role": 1.5, "B_group_trauma": 1.8, "B_loss": 1.2}),
    ConcreteGoalDef("c_maintain_bonds", "Strengthen bonds", 0.2, "social", "SOCIAL",
                    {"care": 1.5, "preserve_order": 0.6},
                    {"B_abandonment": 2.0, "B_attachment_trauma": 1.0, "B_loss": 1.5, "B_betrayed_by_peer": -0.5}),
    ConcreteGoalDef("c_avoid_rejection", "Avoid rejection", -0.3, "social", "SOCIAL",
                    {"escape_transcend": 1.2, "care": 0.4},
                    {"B_bullying": 2.0, "B_attachment_trauma": 1.5, "B_humiliation": 1.2, "B_approval_deprivation": 1.5}),
    ConcreteGoalDef("c_gain_approval_group", "Earn group approval", 0.0, "social", "STATUS",
                    {"power_status": 1.2, "care": 0.8, "preserve_order": 0.8},
                    {"B_leader_exp": 0.8, "B_approval_deprivation": 2.0, "B_status_loss_history": 1.0}),
    ConcreteGoalDef("c_maintain_order", "Maintain order", -0.2, "security", "ORDER",
                    {"preserve_order": 1.5, "control": 1.2, "efficiency": 0.5},
                    {"B_raised_in_strict_order": 2.0, "B_military_socialization": 2.5, "B_exposed_to_chaos": 0.5}),
    ConcreteGoalDef("c_obey_legit_auth", "Serve the system", 0.2, "security", "OBEDIENCE",
                    {"preserve_order": 2.8},
                    {"B_military_socialization": 2.0, "B_coercion": 1.0, "B_raised_in_strict_order": 1.2, "B_betrayed_system": -1.0}),
    ConcreteGoalDef("c_undermine_unjust_system", "Undermine the system", -1.5, "mission", "CHAOS",
                    {"fix_world": 2.0, "chaos_change": 1.8, "free_flow": 1.8},
                    {"B_betrayed_system": 2.8, "B_witnessed_injustice": 1.5, "B_moral_injury": 1.2, "B_political_prisoner": 1.0}),
    ConcreteGoalDef("c_increase_status", "Raise status", 0.0, "social", "STATUS",
                    {"power_status": 2.0, "control": 0.5},
                    {"B_leader_exp": 1.8, "B_status_loss_history": 1.8, "B_humiliation": 0.5}),
    ConcreteGoalDef("c_preserve_group_safety", "Secure the group", 0.4, "security", "CARE",
                    {"care": 1.5, "preserve_order": 2.0},
                    {"B_group_trauma": 2.0, "B_saved_others": 1.5, "B_leader_exp": 0.5, "B_loss": 1.0}),
    ConcreteGoalDef("c_fix_local_injustice", "Fix an injustice", 0.0, "mission", "JUSTICE",
                    {"fix_world": 2.0, "truth": 1.2, "care": 0.5},
                    {"B_witnessed_injustice": 2.0, "B_moral_injury": 1.5, "B_betrayed_system": 1.0, "B_hero_complex": 1.0}),
    ConcreteGoalDef("c_pursue_long_term_project", "Pursue the project", 0.2, "mission", "WORK",
                    {"efficiency": 1.5, "truth": 0.8, "fix_world": 0.8, "preserve_order": 0.5},
                    {"B_long_term_commitments": 2.5, "B_leader_exp": 0.5, "B_success": 1.0}),
    ConcreteGoalDef("c_seek_truth", "Find the truth", 0.2, "learn", "INFO",
                    {"truth": 3.0},
                    {"B_lied_to_history": 2.0, "B_identity_threats": 1.0, "B_betrayed_system": 0.8}),
    ConcreteGoalDef("c_preserve_meaning", "Preserve meaning", -0.2, "identity", "MEANING",
                    {"truth": 1.5, "fix_world": 1.2, "escape_transcend": 0.8},
                    {"B_existential_crises": 2.0, "B_moral_injury": 1.0, "B_loss": 0.8}),
    ConcreteGoalDef("c_leave_situation", "Leave the situation", -0.5, "survival", "ESCAPE",
                    {"escape_transcend": 2.0, "control": 1.0},
                    {"B_exile": 2.0, "B_trauma_overwhelm": 1.5, "B_captivity": 1.0}),
    ConcreteGoalDef("c_dissociate", "Withdraw inward", -1.5, "survival", "ESCAPE",
                    {"escape_transcend": 3.0},
                    {"B_dissociation_history": 3.0, "B_trauma_overwhelm": 2.8, "B_torture": 1.5}),
    ConcreteGoalDef("c_find_safe_place", "Find shelter", -0.2, "survival", "SAFETY",
                    {"escape_transcend": 1.5, "care": 1.0, "control": 1.5},
                    {"B_no_safe_place_childhood": 2.0, "B_group_trauma": 1.0, "B_scarcity": 0.8}),
]

TARGETED_GOALS: List[TargetedGoalDef] = [
    TargetedGoalDef("c_protect_target", "Protect: {target}", 0.0, "social", "CARE",
                    {"care": 3.5, "fix_world": 1.2},
                    {"Trust": 1.5, "Bond": 2.0, "Significance": 1.5, "Conflict": -1.0},
                    {"B_rel_saved": 2.0, "B_rel_care_from": 1.5, "B_rel_shared_trauma": 1.5, "B_rel_devotion": 2.5}),
    TargetedGoalDef("c_obey_target", "Obey: {target}", -0.2, "security", "OBEDIENCE",
                    {"preserve_order": 4.5},
                    {"Respect": 1.5, "Fear": 1.0, "Dominance": 1.2, "Legitimacy": 1.5},
                    {"B_rel_obeyed": 2.0, "B_rel_controlled_by": 1.5, "B_rel_humiliated_by": 0.5, "B_rel_devotion": 2.5}),
    TargetedGoalDef("c_please_target", "Please: {target}", -0.2, "social", "STATUS",
                    {"care": 2.7, "power_status": 1.2},
                    {"Bond": 1.2, "Trust": 1.0, "Fear": 0.8, "Dominance": 0.5},
                    {"B_rel_approval_deprivation": 2.0, "B_rel_care_from": 1.0, "B_rel_betrayed_by": -0.5}),
    TargetedGoalDef("c_dominate_target", "Dominate: {target}", 0.8, "social", "POWER",
                    {"power_status": 2.5, "control": 1.5, "care": -0.5},
                    {"Respect": -1.2, "Fear": -1.2, "Conflict": 1.0, "Dominance": -1.5},
                    {"B_rel_humiliated_by": 1.5, "B_rel_betrayed_by": 1.0, "B_rel_obeyed": -0.5}),
    TargetedGoalDef("c_break_with_target", "Break with: {target}", -0.8, "social", "ESCAPE",
                    {"escape_transcend": 2.0, "free_flow": 2.7},
                    {"Conflict": 2.0, "Trust": -2.5, "Fear": 0.8, "Bond": -0.5},
                    {"B_rel_betrayed_by": 2.5, "B_rel_humiliated_by": 1.8, "B_rel_harmed": 1.5}),
    TargetedGoalDef("c_avoid_target", "Avoid: {target}", -0.2, "survival", "SAFETY",
                    {"escape_transcend": 1.8, "control": 1.0},
                    {"Fear": 2.5, "Conflict": 1.0, "Trust": -1.5, "Dominance": 1.0},
                    {"B_rel_harmed": 2.0, "B_rel_controlled_by": 1.5, "B_rel_betrayed_by": 1.0}),
    TargetedGoalDef("c_support_target", "Support: {target}", 0.2, "social", "CARE",
                    {"care": 2.0, "preserve_order": 1.2},
                    {"Trust": 1.5, "Align": 1.5, "Bond": 1.0, "Conflict": -0.5},
                    {"B_rel_saved": 1.2, "B_rel_care_from": 1.2, "B_rel_shared_trauma": 1.0, "B_rel_devotion": 1.5}),
    TargetedGoalDef("c_coordinate_with_target", "Coordinate with: {target}", 0.2, "mission", "ORDER",
                    {"preserve_order": 1.2, "efficiency": 1.2, "control": 0.5},
                    {"Align": 1.8, "Trust": 1.2, "Competence": 1.0},
                    {"B_rel_obeyed": 0.8, "B_rel_shared_trauma": 0.5}),
]

GOALS_BY_ID: Dict[str, ConcreteGoalDef | TargetedGoalDef] = {g.id: g for g in [*CONCRETE_GOALS, *TARGETED_GOALS]}

# gates: goal id -> (penalty, predicate name evaluated by goals.evaluate_goals)
GATED_GOALS: Dict[str, Tuple[float, str]] = {
    "c_preserve_group_safety": (-5.0, "wounded_nearby"),
    "c_fix_local_injustice": (-5.0, "wounded_nearby"),
    "c_find_safe_place": (-3.0, "threat_present"),
}


def goal_def(goal_id: str) -> ConcreteGoalDef | TargetedGoalDef:
    return GOALS_BY_ID[goal_id]
