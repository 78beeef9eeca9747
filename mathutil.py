from __future__ import annotations

import math
from typing import Dict

import numpy as np


def clamp01(value: float) -> float:
    return float(np.clip(value, 0.0, 1.0))


def sigmoid(x: float) -> float:
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def softmax(scores: Dict[str, float], temperature: float = 1.0) -> Dict[str, float]:
    """Temperature softmax over a dict. Empty input gives an empty dict."""
    if not scores:
        return {}
    temp = max(float(temperature), 1e-6)
    top = max(scores.values())
    exps = {k: math.exp((v - top) / temp) for k, v in scores.items()}
    total = sum(exps.values())
    return {k: v / total for k, v in exps.items()}


def normalize_weights(weights: Dict[str, float]) -> Dict[str, float]:
    total = float(sum(max(0.0, v) for v in weights.values()))
    if total <= 0:
        n = len(weights)
        return {k: 1.0 / n for k in weights} if n else {}
    return {k: max(0.0, v) / total for k, v in weights.items()}
