from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ripsim.core.convergence import ConvergenceTracker, hash_tables
from ripsim.core.logging import JsonlLogger
from ripsim.runtime.config import SimulationConfig
from ripsim.runtime.reporting import ReportSink
from ripsim.runtime.router import FailurePolicy, Router, RouterState
from ripsim.topology.topology import Topology
from ripsim.utils.io import dump_json, ensure_dir, now_tag


@dataclass
class SimulationResult:
    name: str
    seed: Optional[int]
    mode: str
    states: Dict[str, str]
    ticks: Dict[str, int]
    route_tables: Dict[str, Dict[str, tuple[str, int]]]
    table_hash: str
    converged_tick: Optional[int]
    elapsed: float
    run_dir: Optional[Path] = None
    failed: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "seed": self.seed,
            "mode": self.mode,
            "states": dict(self.states),
            "ticks": dict(self.ticks),
            "route_tables": {
                router: {dst: [hop, metric] for dst, (hop, metric) in routes.items()}
                for router, routes in self.route_tables.items()
            },
            "table_hash": self.table_hash,
            "converged_tick": self.converged_tick,
            "elapsed": round(self.elapsed, 3),
            "failed": list(self.failed),
        }


class Simulation:
    """Builds the topology, runs one process per router and waits for all of them."""

    def __init__(
        self,
        config: SimulationConfig,
        topology: Topology | None = None,
        sink: ReportSink | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._cfg = config
        self._log = logger or logging.getLogger("ripsim.simulation")
        self._sink = sink or ReportSink(quiet=config.quiet)
        self._topology = topology
        self._routers: Dict[str, Router] = {}
        self._threads: List[threading.Thread] = []
        self._tracker = ConvergenceTracker(stable_window=config.convergence_window)

    @property
    def topology(self) -> Topology:
        if self._topology is None:
            self._topology = self.build_topology()
        return self._topology

    @property
    def routers(self) -> Dict[str, Router]:
        return dict(self._routers)

    def build_topology(self) -> Topology:
        seed = self._cfg.seed if self._cfg.seed is not None else random.randrange(2**32)
        return Topology.from_config(self._cfg.topology, seed=seed)

    def build_routers(self) -> Dict[str, Router]:
        topology = self.topology
        failure = FailurePolicy.from_flag(self._cfg.failure.enabled, self._cfg.failure.probability)
        routers: Dict[str, Router] = {}
        for info in topology.routers:
            if self._cfg.seed is None:
                rng = random.Random()
            else:
                rng = random.Random(f"{self._cfg.seed}:{info.address}")
            routers[info.address] = Router(
                info,
                topology,
                self._sink,
                tick_interval=self._cfg.tick_interval,
                failure=failure,
                rng=rng,
                max_ticks=self._cfg.max_ticks,
                logger=logging.getLogger("ripsim.router"),
            )
        for router in routers.values():
            router.connect(routers)
        self._routers = routers
        return routers

    def route_tables(self) -> Dict[str, Dict[str, tuple[str, int]]]:
        return {
            address: router.table.route_view()
            for address, router in self._routers.items()
            if router.table is not None
        }

    def run(self) -> SimulationResult:
        run_dir: Optional[Path] = None
        event_log = JsonlLogger(path=None)
        if self._cfg.output_dir is not None:
            run_dir = ensure_dir(Path(self._cfg.output_dir) / f"{self._cfg.name}_{now_tag()}")
            event_log = JsonlLogger(run_dir / "events.jsonl")
        self._sink.attach(event_log)

        started = time.monotonic()
        try:
            self._sink.emit_line("Generated Network Topology:")
            self._sink.emit_line(self.topology.describe())
            if not self._routers:
                self.build_routers()
            event_log.log(
                "start",
                routers=self.topology.addresses(),
                links=[[link.x, link.y, link.weight] for link in self.topology.links],
                mode=self._cfg.mode,
                failure_probability=self._cfg.failure_probability,
            )
            self._log.info(
                "simulation start: routers=%d links=%d mode=%s failure_probability=%s",
                len(self._routers),
                len(self.topology.links),
                self._cfg.mode,
                self._cfg.failure_probability,
            )
            self._sink.emit_line("\nBeginning Simulation")
            if self._cfg.mode == "lockstep":
                self._run_lockstep()
            else:
                if self._cfg.start_delay > 0:
                    time.sleep(self._cfg.start_delay)
                self._run_threaded()
            elapsed = time.monotonic() - started
            result = self._summarize(elapsed, run_dir)
            event_log.log("finish", **{k: v for k, v in result.to_dict().items() if k != "route_tables"})
        finally:
            event_log.close()
            self._sink.attach(None)

        if run_dir is not None:
            dump_json(run_dir / "result.json", result.to_dict())
        if result.failed and len(result.failed) == len(self._routers):
            self._sink.emit_line("\nAll routers have failed. Simulation terminated.")
        else:
            self._sink.emit_line("\nAll routers have finished. Simulation terminated.")
        self._log.info("simulation finished in %.2fs: failed=%s", elapsed, result.failed)
        return result

    def stop(self) -> None:
        for router in self._routers.values():
            router.stop()

    def _run_threaded(self) -> None:
        self._threads = [
            threading.Thread(target=router.run, name=f"router-{address}", daemon=True)
            for address, router in self._routers.items()
        ]
        for thread in self._threads:
            thread.start()

        sample = 0
        poll = self._cfg.tick_interval if self._cfg.tick_interval > 0 else 0.05
        try:
            while any(thread.is_alive() for thread in self._threads):
                self._tracker.observe(sample, self.route_tables())
                sample += 1
                for thread in self._threads:
                    thread.join(timeout=poll)
                    if thread.is_alive():
                        break
        except KeyboardInterrupt:
            self._log.warning("interrupted, stopping %d routers", len(self._routers))
            self.stop()
            for thread in self._threads:
                thread.join()
            raise
        self._tracker.observe(sample, self.route_tables())

    def _run_lockstep(self) -> None:
        """Tick every live router once per round in topology order, without threads."""
        order = [a for a in self.topology.addresses() if a in self._routers]
        for router in self._routers.values():
            router.initialize()
        tick = 0
        while True:
            live = [self._routers[a] for a in order if self._routers[a].state is RouterState.ALIVE]
            if not live:
                break
            for router in live:
                router.tick()
            self._tracker.observe(tick, self.route_tables())
            tick += 1
            if self._cfg.max_ticks is not None and tick >= self._cfg.max_ticks:
                break
        for router in self._routers.values():
            router.finish()

    def _summarize(self, elapsed: float, run_dir: Optional[Path]) -> SimulationResult:
        tables = self.route_tables()
        states = {address: router.state.value for address, router in self._routers.items()}
        return SimulationResult(
            name=self._cfg.name,
            seed=self._cfg.seed,
            mode=self._cfg.mode,
            states=states,
            ticks={address: router.ticks for address, router in self._routers.items()},
            route_tables=tables,
            table_hash=hash_tables(tables),
            converged_tick=self._tracker.converged_tick,
            elapsed=elapsed,
            run_dir=run_dir,
            failed=sorted(a for a, s in states.items() if s == RouterState.FAILED.value),
        )
