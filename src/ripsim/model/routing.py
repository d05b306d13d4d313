from __future__ import annotations

import sys
import threading
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Mapping, Optional, Union

from ripsim.model.link import SUBNET_MASK, Link, RouterInfo

INFINITY = sys.maxsize
NO_NEXT_HOP = "0.0.0.0"
TIMEOUT_TICKS = 5


def saturating_add(a: int, b: int) -> int:
    if a >= INFINITY or b >= INFINITY:
        return INFINITY
    return min(INFINITY, a + b)


@dataclass(frozen=True)
class RouteEntry:
    next_hop: str
    metric: int
    age: int = 0

    @property
    def reachable(self) -> bool:
        return self.metric < INFINITY


@dataclass(frozen=True)
class TableRow:
    tick: int
    router: str
    destination: str
    subnet_mask: str
    next_hop: str
    metric: int
    age: int

    @property
    def metric_label(self) -> str:
        return "infinity" if self.metric >= INFINITY else str(self.metric)

    def to_dict(self) -> Dict[str, object]:
        return {
            "tick": self.tick,
            "router": self.router,
            "destination": self.destination,
            "subnet_mask": self.subnet_mask,
            "next_hop": self.next_hop,
            "metric": self.metric_label,
            "age": self.age,
        }


Advertisement = Mapping[str, int]


class RoutingTable:
    """Per-router distance-vector table.

    Entries are kept in insertion order (the order of the global router
    set at construction). Every public method takes the table lock, so a
    neighbor's ``relax`` running on another thread never interleaves with
    the owner's own aging or reporting.
    """

    def __init__(
        self,
        owner: str,
        links: Iterable[Link],
        routers: Iterable[RouterInfo],
    ) -> None:
        self.owner = owner
        self._lock = threading.RLock()
        self._entries: Dict[str, RouteEntry] = {}
        self._masks: Dict[str, str] = {}

        weights: Dict[str, int] = {}
        for link in links:
            if not link.touches(owner):
                continue
            weights[link.other(owner)] = link.weight

        for info in routers:
            if info.address == owner:
                continue
            self._masks[info.address] = info.subnet_mask
            weight = weights.get(info.address)
            if weight is None:
                self._entries[info.address] = RouteEntry(NO_NEXT_HOP, INFINITY, 0)
            else:
                self._entries[info.address] = RouteEntry(info.address, weight, 0)

    # ------------------------------------------------------------ queries
    def destinations(self) -> List[str]:
        with self._lock:
            return list(self._entries)

    def entry(self, destination: str) -> Optional[RouteEntry]:
        with self._lock:
            return self._entries.get(destination)

    def next_hop(self, destination: str) -> Optional[str]:
        entry = self.entry(destination)
        return entry.next_hop if entry is not None else None

    def metric(self, destination: str) -> int:
        entry = self.entry(destination)
        return entry.metric if entry is not None else 0

    def age(self, destination: str) -> int:
        entry = self.entry(destination)
        return entry.age if entry is not None else 0

    def subnet_mask(self, destination: str) -> Optional[str]:
        return self._masks.get(destination)

    def routes(self) -> Dict[str, RouteEntry]:
        with self._lock:
            return dict(self._entries)

    def advertisement(self) -> Dict[str, int]:
        with self._lock:
            return {dst: entry.metric for dst, entry in self._entries.items()}

    def __contains__(self, destination: object) -> bool:
        with self._lock:
            return destination in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ----------------------------------------------------------- mutation
    def relax(
        self,
        neighbor_address: str,
        neighbor_table: Union[Advertisement, "RoutingTable"],
    ) -> List[str]:
        """Merge a neighbor's advertised metrics into this table.

        Returns the destinations whose route changed. Destinations missing
        from either side are skipped.
        """
        if isinstance(neighbor_table, RoutingTable):
            advertised = neighbor_table.advertisement()
        else:
            advertised = dict(neighbor_table)

        changed: List[str] = []
        with self._lock:
            for dst, current in self._entries.items():
                if dst == self.owner or dst not in advertised:
                    continue
                offered = int(advertised[dst])
                if offered >= current.metric:
                    continue

                link_entry = self._entries.get(neighbor_address)
                link_cost = link_entry.metric if link_entry is not None else INFINITY
                if link_cost >= INFINITY:
                    # Neighbor is believed unreachable but is talking to us directly.
                    candidate = offered
                else:
                    candidate = saturating_add(offered, link_cost)
                if candidate >= current.metric:
                    continue

                self._entries[dst] = RouteEntry(neighbor_address, candidate, 0)
                self._reset_age(neighbor_address)
                changed.append(dst)

            self._reset_age(neighbor_address)
        return changed

    def age_and_expire(self, destination: str) -> bool:
        """Age one destination; invalidate it after ``TIMEOUT_TICKS`` silent ticks.

        Returns True when this call invalidated the route.
        """
        with self._lock:
            entry = self._entries.get(destination)
            if entry is None:
                return False
            age = entry.age + 1
            if age < TIMEOUT_TICKS:
                self._entries[destination] = replace(entry, age=age)
                return False
            self._entries[destination] = RouteEntry(NO_NEXT_HOP, INFINITY, age)
            return entry.reachable

    def reset_age(self, destination: str) -> None:
        with self._lock:
            self._reset_age(destination)

    def _reset_age(self, destination: str) -> None:
        entry = self._entries.get(destination)
        if entry is not None and entry.age != 0:
            self._entries[destination] = replace(entry, age=0)

    # ---------------------------------------------------------- reporting
    def rows(self, tick: int) -> List[TableRow]:
        with self._lock:
            return [
                TableRow(
                    tick=int(tick),
                    router=self.owner,
                    destination=dst,
                    subnet_mask=self._masks.get(dst, SUBNET_MASK),
                    next_hop=entry.next_hop,
                    metric=entry.metric,
                    age=entry.age,
                )
                for dst, entry in self._entries.items()
            ]

    def route_view(self) -> Dict[str, tuple[str, int]]:
        with self._lock:
            return {dst: (entry.next_hop, entry.metric) for dst, entry in self._entries.items()}
