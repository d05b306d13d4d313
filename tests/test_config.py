from __future__ import annotations

from pathlib import Path

import pytest

from ripsim.runtime.config import build_simulation_config, load_simulation_config


def test_defaults_match_reference_behavior() -> None:
    cfg = load_simulation_config()
    assert cfg.mode == "threaded"
    assert cfg.tick_interval == 1.0
    assert cfg.failure.enabled is False
    assert cfg.failure.probability == pytest.approx(0.4)
    assert cfg.failure_probability == 0.0
    assert cfg.max_ticks is None
    assert cfg.topology["type"] == "pairs"


def test_load_yaml_with_overrides(tmp_path: Path) -> None:
    cfg_path = tmp_path / "sim.yaml"
    cfg_path.write_text(
        """
name: lab
seed: 9
topology:
  type: pairs
  n_pairs: 5
timers:
  tick_interval: 0.25
  start_delay: 0
failure:
  enabled: true
engine:
  max_ticks: 12
output_dir: out
""".strip(),
        encoding="utf-8",
    )
    cfg = load_simulation_config(cfg_path, overrides={"topology": {"n_pairs": 2}, "seed": 10})

    assert cfg.name == "lab"
    assert cfg.seed == 10
    assert cfg.topology == {"type": "pairs", "n_pairs": 2, "min_weight": 1, "max_weight": 10}
    assert cfg.tick_interval == 0.25
    assert cfg.start_delay == 0.0
    assert cfg.failure_probability == pytest.approx(0.4)
    assert cfg.max_ticks == 12
    assert cfg.output_dir == Path("out")


@pytest.mark.parametrize(
    "raw",
    [
        {"failure": {"probability": 2.0}},
        {"timers": {"tick_interval": -1}},
        {"engine": {"max_ticks": 0}},
        {"mode": "async"},
        {"mode": "lockstep"},
        {"mode": "lockstep", "failure": {"enabled": True, "probability": 0.0}},
        {"topology": {"n_pairs": 0}},
    ],
)
def test_invalid_values_are_rejected(raw) -> None:
    with pytest.raises(ValueError):
        build_simulation_config(raw)


def test_non_mapping_yaml_is_rejected(tmp_path: Path) -> None:
    cfg_path = tmp_path / "list.yaml"
    cfg_path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_simulation_config(cfg_path)
