from __future__ import annotations

import argparse
import json
import logging
from typing import Any, Dict, List, Optional

from ripsim.runtime.config import load_simulation_config
from ripsim.runtime.simulation import Simulation


def positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}")
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer: {value!r}")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ripsim",
        description="Simulate RIP-style distance-vector routing between threaded routers.",
    )
    parser.add_argument(
        "pairs",
        type=positive_int,
        help="Number of router pairs to generate (2 routers per pair).",
    )
    parser.add_argument(
        "failures",
        nargs="?",
        choices=["enable"],
        help="Pass 'enable' to let routers fail randomly.",
    )
    parser.add_argument("--config", help="YAML config file; command-line flags win over it.")
    parser.add_argument("--seed", type=int, help="Seed for topology weights and router failures.")
    parser.add_argument("--tick-interval", type=float, help="Seconds between router ticks.")
    parser.add_argument("--start-delay", type=float, help="Seconds to wait before starting routers.")
    parser.add_argument("--max-ticks", type=positive_int, help="Stop each router after N ticks.")
    parser.add_argument(
        "--failure-probability",
        type=float,
        help="Per-tick failure probability when failures are enabled.",
    )
    parser.add_argument(
        "--mode",
        choices=["threaded", "lockstep"],
        help="Run routers on threads (default) or tick them in deterministic rounds.",
    )
    parser.add_argument("--output-dir", help="Write events.jsonl and result.json under this directory.")
    parser.add_argument("--quiet", action="store_true", help="Do not print routing tables.")
    parser.add_argument("--summary", action="store_true", help="Print the run summary as JSON at the end.")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )
    return parser


def overrides_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {"topology": {"n_pairs": args.pairs}}
    if args.failures == "enable":
        overrides.setdefault("failure", {})["enabled"] = True
    if args.failure_probability is not None:
        overrides.setdefault("failure", {})["probability"] = args.failure_probability
    if args.seed is not None:
        overrides["seed"] = args.seed
    if args.tick_interval is not None:
        overrides.setdefault("timers", {})["tick_interval"] = args.tick_interval
    if args.start_delay is not None:
        overrides.setdefault("timers", {})["start_delay"] = args.start_delay
    if args.max_ticks is not None:
        overrides.setdefault("engine", {})["max_ticks"] = args.max_ticks
    if args.mode is not None:
        overrides["mode"] = args.mode
    if args.output_dir is not None:
        overrides["output_dir"] = args.output_dir
    if args.quiet:
        overrides["quiet"] = True
    return overrides


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        cfg = load_simulation_config(args.config, overrides_from_args(args))
        simulation = Simulation(cfg)
        simulation.build_routers()
    except (OSError, ValueError) as exc:
        parser.error(str(exc))

    try:
        result = simulation.run()
    except KeyboardInterrupt:
        return 130
    if args.summary:
        payload = result.to_dict()
        payload.pop("route_tables", None)
        print(json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
