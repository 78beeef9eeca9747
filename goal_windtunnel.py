from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

import pandas as pd

from model import NarrativeModel


@dataclass
class SweepConfig:
    name: str
    overrides: Dict[str, object] = field(default_factory=dict)


def evaluate_configs(
    configs: List[SweepConfig],
    seeds: List[int],
    steps: int,
    baseparams: Dict[str, object] | None = None,
) -> pd.DataFrame:
    """Ejecuta cada configuración sobre varias semillas y devuelve métricas finales."""
    rows = []
    for cfg in configs:
        for seed in seeds:
            params = dict(baseparams or {})
            params.update(seed=seed, config_overrides=cfg.overrides)
            model = NarrativeModel(**params)
            for _ in range(steps):
                model.step()
                if not model.running:
                    break
            last = model.last_metrics or {}
            rows.append(
                dict(
                    config=cfg.name,
                    seed=seed,
                    steps=model.step_count,
                    n_agents=len(model.roster),
                    mean_trust=last.get("mean_trust", 0.0),
                    mean_uncertainty=last.get("mean_uncertainty", 0.0),
                    mean_stress=last.get("mean_stress", 0.0),
                    assist_rate=last.get("assist_rate", 0.0),
                    confront_rate=last.get("confront_rate", 0.0),
                    mean_total_phi=last.get("mean_total_phi", 0.0),
                    goal_entropy=last.get("goal_entropy", 0.0),
                    top_life_goal=last.get("top_life_goal", ""),
                )
            )
    return pd.DataFrame(rows)
