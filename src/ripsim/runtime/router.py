from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple

from ripsim.model.link import Link, RouterInfo
from ripsim.model.routing import RoutingTable
from ripsim.runtime.reporting import ReportSink
from ripsim.topology.topology import Topology

DEFAULT_FAILURE_PROBABILITY = 0.4
DEFAULT_TICK_INTERVAL = 1.0


class RouterState(str, Enum):
    ALIVE = "alive"
    FAILED = "failed"
    STOPPED = "stopped"


@dataclass(frozen=True)
class FailurePolicy:
    """Per-tick probability that a router dies."""

    probability: float = 0.0

    def __post_init__(self) -> None:
        if not 0.0 <= float(self.probability) <= 1.0:
            raise ValueError(f"Failure probability must be within [0, 1]: {self.probability}")

    @classmethod
    def from_flag(
        cls,
        enabled: bool,
        probability: float = DEFAULT_FAILURE_PROBABILITY,
    ) -> "FailurePolicy":
        return cls(probability=float(probability) if enabled else 0.0)

    @property
    def enabled(self) -> bool:
        return self.probability > 0.0

    def should_fail(self, sample: float) -> bool:
        return sample < self.probability

    def check(self, rng: random.Random) -> bool:
        if not self.enabled:
            return False
        return self.should_fail(rng.random())


class Router:
    """One router and its periodic distance-vector process.

    ``run`` is the thread body; ``tick`` performs a single iteration and
    is what ``run`` calls once per interval. Neighbor routers call
    ``receive`` from their own threads.
    """

    def __init__(
        self,
        info: RouterInfo,
        topology: Topology,
        sink: ReportSink,
        *,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        failure: FailurePolicy | None = None,
        rng: random.Random | None = None,
        max_ticks: int | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.info = info
        self._topology = topology
        self._links: Tuple[Link, ...] = topology.links_of(info.address)
        self._sink = sink
        self._tick_interval = max(0.0, float(tick_interval))
        self._failure = failure or FailurePolicy()
        self._rng = rng or random.Random()
        self._max_ticks = max_ticks
        self._log = logger or logging.getLogger("ripsim.router")

        self._table: Optional[RoutingTable] = None
        self._peers: Dict[str, "Router"] = {}
        self._state = RouterState.ALIVE
        self._state_lock = threading.Lock()
        self._stop = threading.Event()
        self._tick = 0

    def __repr__(self) -> str:
        return f"Router({self.address!r}, state={self._state.value}, tick={self._tick})"

    @property
    def address(self) -> str:
        return self.info.address

    @property
    def subnet_mask(self) -> str:
        return self.info.subnet_mask

    @property
    def links(self) -> Tuple[Link, ...]:
        return self._links

    @property
    def table(self) -> Optional[RoutingTable]:
        return self._table

    @property
    def state(self) -> RouterState:
        return self._state

    @property
    def alive(self) -> bool:
        return self._state is not RouterState.FAILED

    @property
    def ticks(self) -> int:
        return self._tick

    def connect(self, routers: Mapping[str, "Router"]) -> None:
        """Keep references to the neighbor routers this one delivers to."""
        self._peers = {
            link.other(self.address): routers[link.other(self.address)]
            for link in self._links
            if link.other(self.address) in routers
        }

    def initialize(self) -> RoutingTable:
        if self._table is None:
            self._table = RoutingTable(self.address, self._links, self._topology.routers)
            self._log.debug(
                "router %s table ready: %d destinations, %d neighbors",
                self.address,
                len(self._table),
                len(self._links),
            )
        return self._table

    def receive(self, sender: str, advertisement: Mapping[str, int]) -> None:
        table = self._table
        if table is None:
            self._log.debug("router %s: update from %s before start, ignored", self.address, sender)
            return
        if self._state is RouterState.FAILED:
            return
        changed = table.relax(sender, advertisement)
        if changed:
            self._log.debug("router %s: routes via %s improved: %s", self.address, sender, changed)

    def tick(self) -> bool:
        """Report, broadcast to every neighbor, then run the failure check.

        Returns False once the router has failed.
        """
        if self._state is not RouterState.ALIVE:
            return False
        table = self.initialize()

        self._sink.emit_table(self.address, table.rows(self._tick))

        for link in self._links:
            neighbor = link.other(self.address)
            peer = self._peers.get(neighbor)
            if peer is not None:
                peer.receive(self.address, table.advertisement())
            if table.age_and_expire(neighbor):
                self._log.info(
                    "router %s: route to %s timed out at tick %d",
                    self.address,
                    neighbor,
                    self._tick,
                )

        if self._failure.check(self._rng):
            self._fail()
            return False

        self._tick += 1
        return True

    def run(self) -> None:
        self._log.info("router %s start: neighbors=%s", self.address, sorted(self._peers))
        try:
            self.initialize()
            while not self._stop.is_set():
                if not self.tick():
                    break
                if self._max_ticks is not None and self._tick >= self._max_ticks:
                    self._log.info("router %s reached tick limit %d", self.address, self._max_ticks)
                    break
                if self._stop.wait(self._tick_interval):
                    self._log.info("router %s: wait interrupted at tick %d", self.address, self._tick)
        except Exception:
            self._log.exception("router %s crashed at tick %d", self.address, self._tick)
        finally:
            self.finish()
            self._log.info("router %s finished: state=%s", self.address, self._state.value)

    def stop(self) -> None:
        self._stop.set()

    def finish(self) -> None:
        """Mark a still-alive router as stopped; a failed router stays failed."""
        with self._state_lock:
            if self._state is RouterState.ALIVE:
                self._state = RouterState.STOPPED

    def _fail(self) -> None:
        with self._state_lock:
            if self._state is not RouterState.ALIVE:
                return
            self._state = RouterState.FAILED
        self._log.info("router %s failed at tick %d", self.address, self._tick)
        self._sink.emit_failed(self.address, self._tick)
