"""Deterministic per-(agent, channel) random streams (xorshift32)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple

MASK32 = 0xFFFFFFFF

# canales estables; cambiar estos valores rompe la reproducibilidad de runs previos
CHANNEL_DECIDE = 1
CHANNEL_GOAL_NOISE = 4


def fnv1a32(text: str) -> int:
    h = 0x811C9DC5
    for byte in text.encode("utf-8"):
        h ^= byte
        h = (h * 0x01000193) & MASK32
    return h


class XorShift32:
    """Minimal xorshift32 generator. State is never zero."""

    def __init__(self, seed: int):
        state = int(seed) & MASK32
        self.state = state or 0x9E3779B9

    def next_u32(self) -> int:
        x = self.state
        x ^= (x << 13) & MASK32
        x ^= x >> 17
        x ^= (x << 5) & MASK32
        self.state = x & MASK32
        return self.state

    def next_float(self) -> float:
        return self.next_u32() / 4294967296.0

    def uniform(self, lo: float, hi: float) -> float:
        return lo + (hi - lo) * self.next_float()

    def choice_index(self, weights) -> int:
        """Sample an index proportionally to non-negative weights."""
        total = float(sum(max(0.0, float(w)) for w in weights))
        if total <= 0:
            return 0
        r = self.next_float() * total
        acc = 0.0
        last = 0
        for i, w in enumerate(weights):
            w = max(0.0, float(w))
            if w <= 0:
                continue
            acc += w
            last = i
            if r < acc:
                return i
        return last


@dataclass
class RngContext:
    """Explicit RNG context threaded through the engine.

    Streams are derived from ``global_seed ^ fnv1a32(agent_id) ^ channel`` and
    cached, so the sequence an agent sees on one channel never depends on how
    often other agents or other channels were sampled.
    """

    global_seed: int = 0
    _streams: Dict[Tuple[str, int], XorShift32] = field(default_factory=dict, repr=False)

    def stream_seed(self, agent_id: str, channel: int) -> int:
        return (int(self.global_seed) ^ fnv1a32(str(agent_id)) ^ int(channel)) & MASK32

    def stream(self, agent_id: str, channel: int) -> XorShift32:
        key = (str(agent_id), int(channel))
        rng = self._streams.get(key)
        if rng is None:
            rng = XorShift32(self.stream_seed(agent_id, channel))
            self._streams[key] = rng
        return rng

    def fresh(self, agent_id: str, channel: int) -> XorShift32:
        """Uncached stream starting from the seed (for stateless draws)."""
        return XorShift32(self.stream_seed(agent_id, channel))

    def state_dict(self) -> Dict[str, int]:
        return {f"{aid}|{ch}": rng.state for (aid, ch), rng in self._streams.items()}

    def load_state(self, states: Dict[str, int]) -> None:
        self._streams.clear()
        for key, state in (states or {}).items():
            aid, _, ch = str(key).rpartition("|")
            rng = XorShift32(1)
            rng.state = int(state) & MASK32 or 0x9E3779B9
            self._streams[(aid, int(ch))] = rng
