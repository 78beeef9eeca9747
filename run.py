import argparse
import csv
import json
import logging
import os

import numpy as np

from model import NarrativeModel
from snapshot import load_snapshot, save_snapshot


parser = argparse.ArgumentParser()
parser.add_argument("--steps", type=int, default=50)
parser.add_argument("--seed", type=int, default=42)
parser.add_argument("--scenario", type=str, default=None)
parser.add_argument("--agents", type=int, default=8)
parser.add_argument("--radius", type=int, default=2)

parser.add_argument("--patternbonus", type=float, default=None)
parser.add_argument("--trustalpha", type=float, default=None)
parser.add_argument("--gilfloor", type=float, default=None)
parser.add_argument("--noisescale", type=float, default=None)
parser.add_argument("--trace", action="store_true", default=False)

parser.add_argument("--snapshot", type=str, default=None, help="ruta donde guardar el snapshot final")
parser.add_argument("--resume", type=str, default=None, help="snapshot desde el cual continuar")
parser.add_argument("--topk", type=int, default=5)
parser.add_argument("--log-level", type=str, default="WARNING")


def main(argv=None) -> None:
    args, unknown = parser.parse_known_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.WARNING), format="%(levelname)s %(name)s: %(message)s")
    if unknown:
        print(f"Argumentos ignorados: {unknown}")

    overrides = {}
    if args.patternbonus is not None:
        overrides["pattern_bonus"] = args.patternbonus
    if args.trustalpha is not None:
        overrides["trust_alpha"] = args.trustalpha
    if args.gilfloor is not None:
        overrides["gil_floor"] = args.gilfloor
    if args.noisescale is not None:
        overrides["noise_scale"] = args.noisescale
    if args.trace:
        overrides["trace"] = True

    if args.resume:
        model = NarrativeModel.from_snapshot(
            load_snapshot(args.resume), perception_radius=args.radius, config_overrides=overrides
        )
        print(f"Reanudando desde tick {model.step_count}")
    else:
        model = NarrativeModel(
            seed=args.seed,
            scenario_path=args.scenario,
            n_agents=args.agents,
            perception_radius=args.radius,
            config_overrides=overrides,
        )

    print(f"Iniciando simulación narrativa con {len(model.roster)} agentes...")

    for step in range(args.steps):
        model.step()
        if step % 10 == 0:
            m = model.last_metrics
            print(
                f"Step {model.step_count} | Interacciones={model.interactions_last} "
                f"Confianza={m.get('mean_trust', 0.0):.2f} "
                f"Estrés={m.get('mean_stress', 0.0):.2f} "
                f"Φ={m.get('mean_total_phi', 0.0):.2f}"
            )

    report = model.goal_report(top_k=args.topk)

    print("\n" + "=" * 30 + " REPORTE DE METAS " + "=" * 30)
    for aid, data in report.items():
        top = next(iter(data["life_goals"]), "-")
        print(f"{data['name']:12} meta vital={top:24} acción={data['last_action']} → {data['last_target']}")
        for g in data["goals"][:3]:
            print(f"    {g['score']:.3f} {g['label']:40} {g['formula']}")
    print()

    df = model.datacollector.get_model_vars_dataframe()
    os.makedirs("results", exist_ok=True)
    meta = model.run_metadata

    for k in ("seed", "scenario", "n_agents", "perception_radius"):
        df[k] = meta.get(k)

    ratecols = [c for c in df.columns if c.endswith("rate")]
    for col in ratecols:
        df[col] = df[col].clip(lower=0.0, upper=1.0)

    try:
        df.to_csv("results/summary.csv")
    except PermissionError:
        alt = f"results/summary_{int(np.random.randint(1e9))}.csv"
        df.to_csv(alt)

    with open("results/goals.json", "w", encoding="utf-8") as f:
        json.dump({"metadata": meta, "tick": model.step_count, "agents": report}, f, ensure_ascii=False, indent=2)

    with open("results/per_agent_goals.csv", "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=["agent", "rank", "goal", "label", "score", "logit", "formula"])
        writer.writeheader()
        for aid, data in report.items():
            for rank, g in enumerate(data["goals"], start=1):
                writer.writerow(
                    dict(agent=aid, rank=rank, goal=g["id"], label=g["label"], score=g["score"], logit=g["logit"], formula=g["formula"])
                )

    if args.snapshot:
        save_snapshot(model, args.snapshot)
        print(f"Snapshot guardado en {args.snapshot}")

    print("Datos guardados en results/summary.csv, results/goals.json y results/per_agent_goals.csv")


if __name__ == "__main__":
    main()
