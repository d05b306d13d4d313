from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from ripsim.runtime.router import DEFAULT_FAILURE_PROBABILITY, DEFAULT_TICK_INTERVAL
from ripsim.utils.io import deep_merge, load_yaml

DEFAULTS: Dict[str, Any] = {
    "name": "rip",
    "seed": None,
    "mode": "threaded",
    "topology": {"type": "pairs", "n_pairs": 2, "min_weight": 1, "max_weight": 10},
    "timers": {"tick_interval": DEFAULT_TICK_INTERVAL, "start_delay": 5.0},
    "failure": {"enabled": False, "probability": DEFAULT_FAILURE_PROBABILITY},
    "engine": {"max_ticks": None, "convergence_window": 5},
    "output_dir": None,
    "quiet": False,
}

MODES = ("threaded", "lockstep")


@dataclass(frozen=True)
class FailureConfig:
    enabled: bool = False
    probability: float = DEFAULT_FAILURE_PROBABILITY


@dataclass(frozen=True)
class SimulationConfig:
    name: str = "rip"
    seed: Optional[int] = None
    mode: str = "threaded"
    topology: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULTS["topology"]))
    tick_interval: float = DEFAULT_TICK_INTERVAL
    start_delay: float = 5.0
    failure: FailureConfig = field(default_factory=FailureConfig)
    max_ticks: Optional[int] = None
    convergence_window: int = 5
    output_dir: Optional[Path] = None
    quiet: bool = False

    @property
    def failure_probability(self) -> float:
        return self.failure.probability if self.failure.enabled else 0.0


def build_simulation_config(raw: Dict[str, Any]) -> SimulationConfig:
    """Merge a raw mapping over ``DEFAULTS`` and validate the result."""
    merged = deep_merge(DEFAULTS, raw)
    timers = dict(merged.get("timers") or {})
    failure_raw = dict(merged.get("failure") or {})
    engine = dict(merged.get("engine") or {})
    topology = dict(merged.get("topology") or {})

    mode = str(merged.get("mode", "threaded")).lower()
    if mode not in MODES:
        raise ValueError(f"Unsupported mode: {mode}")

    tick_interval = float(timers.get("tick_interval", DEFAULT_TICK_INTERVAL))
    if tick_interval < 0:
        raise ValueError(f"timers.tick_interval must be >= 0: {tick_interval}")
    start_delay = float(timers.get("start_delay", 0.0))
    if start_delay < 0:
        raise ValueError(f"timers.start_delay must be >= 0: {start_delay}")

    probability = float(failure_raw.get("probability", DEFAULT_FAILURE_PROBABILITY))
    if not 0.0 <= probability <= 1.0:
        raise ValueError(f"failure.probability must be within [0, 1]: {probability}")

    max_ticks_raw = engine.get("max_ticks")
    max_ticks = None if max_ticks_raw is None else int(max_ticks_raw)
    if max_ticks is not None and max_ticks <= 0:
        raise ValueError(f"engine.max_ticks must be > 0: {max_ticks}")
    failures_possible = bool(failure_raw.get("enabled", False)) and probability > 0.0
    if mode == "lockstep" and max_ticks is None and not failures_possible:
        raise ValueError("lockstep mode without failures needs engine.max_ticks")

    if str(topology.get("type", "pairs")) == "pairs" and int(topology.get("n_pairs", 0)) <= 0:
        raise ValueError(f"topology.n_pairs must be > 0: {topology.get('n_pairs')}")

    seed_raw = merged.get("seed")
    output_raw = merged.get("output_dir")
    return SimulationConfig(
        name=str(merged.get("name", "rip")),
        seed=None if seed_raw is None else int(seed_raw),
        mode=mode,
        topology=topology,
        tick_interval=tick_interval,
        start_delay=start_delay,
        failure=FailureConfig(
            enabled=bool(failure_raw.get("enabled", False)),
            probability=probability,
        ),
        max_ticks=max_ticks,
        convergence_window=max(1, int(engine.get("convergence_window", 5))),
        output_dir=None if output_raw is None else Path(output_raw),
        quiet=bool(merged.get("quiet", False)),
    )


def load_simulation_config(
    path: str | Path | None = None,
    overrides: Dict[str, Any] | None = None,
) -> SimulationConfig:
    raw: Dict[str, Any] = load_yaml(path) if path is not None else {}
    if overrides:
        raw = deep_merge(raw, overrides)
    return build_simulation_config(raw)
