from __future__ import annotations

import random
from typing import Callable, Dict, Iterable, List, Mapping, Sequence, Tuple

from ripsim.model.link import SUBNET_MASK, Link, RouterInfo


def router_address(index: int) -> str:
    """Deterministic dotted-quad address for the ``index``-th router."""
    if index < 0:
        raise ValueError(f"Router index must be non-negative: {index}")
    return f"10.0.{index // 254}.{index % 254 + 1}"


def pair_address(index: int) -> str:
    """Address of the ``index``-th router of a pair layout: pair k is 10.0.k.1 and 10.0.k.2."""
    if index < 0:
        raise ValueError(f"Router index must be non-negative: {index}")
    k, side = divmod(index, 2)
    return f"10.{k // 256}.{k % 256}.{side + 1}"


class Topology:
    """Immutable set of routers and links, built once before any router starts."""

    def __init__(
        self,
        routers: Iterable[RouterInfo],
        links: Iterable[Link],
    ) -> None:
        self._routers: Tuple[RouterInfo, ...] = tuple(routers)
        self._links: Tuple[Link, ...] = tuple(links)
        known = [r.address for r in self._routers]
        if len(set(known)) != len(known):
            raise ValueError("Router addresses must be unique")
        known_set = set(known)
        for link in self._links:
            for end in link.endpoints:
                if end not in known_set:
                    raise ValueError(f"Link endpoint {end} is not a router in this topology")
        incident: Dict[str, List[Link]] = {address: [] for address in known}
        for link in self._links:
            incident[link.x].append(link)
            incident[link.y].append(link)
        self._incident: Dict[str, Tuple[Link, ...]] = {
            address: tuple(items) for address, items in incident.items()
        }

    @property
    def routers(self) -> Tuple[RouterInfo, ...]:
        return self._routers

    @property
    def links(self) -> Tuple[Link, ...]:
        return self._links

    def addresses(self) -> List[str]:
        return [r.address for r in self._routers]

    def links_of(self, address: str) -> Tuple[Link, ...]:
        return self._incident.get(address, ())

    def neighbors(self, address: str) -> Dict[str, int]:
        return {link.other(address): link.weight for link in self.links_of(address)}

    def __len__(self) -> int:
        return len(self._routers)

    def describe(self) -> str:
        lines = []
        for info in self._routers:
            lines.append(f"Router {info.address} ({info.subnet_mask})")
            for link in self.links_of(info.address):
                lines.append(f"\t-> {link.other(info.address)} weight {link.weight}")
        return "\n".join(lines) + "\n"

    @classmethod
    def from_edges(
        cls,
        edges: Iterable[Tuple[str, str, int]],
        subnet_mask: str = SUBNET_MASK,
    ) -> "Topology":
        order: List[str] = []
        links: List[Link] = []
        for x, y, weight in edges:
            for end in (str(x), str(y)):
                if end not in order:
                    order.append(end)
            links.append(Link(str(x), str(y), int(weight)))
        return cls([RouterInfo(a, subnet_mask) for a in order], links)

    @classmethod
    def _indexed(
        cls,
        n_nodes: int,
        pairs: Sequence[Tuple[int, int, int]],
        address: Callable[[int], str] = router_address,
    ) -> "Topology":
        routers = [RouterInfo(address(i)) for i in range(n_nodes)]
        links = [Link(address(u), address(v), w) for u, v, w in pairs]
        return cls(routers, links)

    @classmethod
    def pairs(
        cls,
        n_pairs: int,
        seed: int = 0,
        min_weight: int = 1,
        max_weight: int = 10,
    ) -> "Topology":
        """``2 * n_pairs`` routers: each pair linked, first routers chained,
        and the second routers of the outer pairs joined once there are
        three or more pairs. Weights come from a seeded RNG."""
        n_pairs = int(n_pairs)
        if n_pairs <= 0:
            raise ValueError(f"Pair count must be positive: {n_pairs}")
        if min_weight <= 0 or max_weight < min_weight:
            raise ValueError(f"Invalid weight range: {min_weight}..{max_weight}")
        rng = random.Random(seed)

        def weight() -> int:
            return rng.randint(min_weight, max_weight)

        edges: List[Tuple[int, int, int]] = []
        for k in range(n_pairs):
            edges.append((2 * k, 2 * k + 1, weight()))
        for k in range(n_pairs - 1):
            edges.append((2 * k, 2 * k + 2, weight()))
        if n_pairs >= 3:
            edges.append((1, 2 * n_pairs - 1, weight()))
        return cls._indexed(2 * n_pairs, edges, address=pair_address)

    @classmethod
    def line(cls, n_nodes: int, metric: int = 1) -> "Topology":
        if n_nodes <= 0:
            raise ValueError(f"Node count must be positive: {n_nodes}")
        return cls._indexed(n_nodes, [(i, i + 1, metric) for i in range(n_nodes - 1)])

    @classmethod
    def ring(cls, n_nodes: int, metric: int = 1) -> "Topology":
        if n_nodes < 3:
            raise ValueError(f"A ring needs at least 3 nodes: {n_nodes}")
        return cls._indexed(n_nodes, [(i, (i + 1) % n_nodes, metric) for i in range(n_nodes)])

    @classmethod
    def star(cls, n_nodes: int, metric: int = 1, center: int = 0) -> "Topology":
        if n_nodes <= 0:
            raise ValueError(f"Node count must be positive: {n_nodes}")
        center = max(0, min(center, n_nodes - 1))
        return cls._indexed(
            n_nodes,
            [(center, i, metric) for i in range(n_nodes) if i != center],
        )

    @classmethod
    def from_config(cls, cfg: Mapping, seed: int = 0) -> "Topology":
        tp = str(cfg.get("type", "pairs"))
        metric = int(cfg.get("default_metric", 1))
        if tp == "pairs":
            return cls.pairs(
                int(cfg.get("n_pairs", 2)),
                seed=seed,
                min_weight=int(cfg.get("min_weight", 1)),
                max_weight=int(cfg.get("max_weight", 10)),
            )
        if tp == "line":
            return cls.line(int(cfg.get("n_nodes", 4)), metric)
        if tp == "ring":
            return cls.ring(int(cfg.get("n_nodes", 4)), metric)
        if tp == "star":
            return cls.star(int(cfg.get("n_nodes", 4)), metric, int(cfg.get("center", 0)))
        if tp == "edges":
            return cls.from_edges(
                (str(e["x"]), str(e["y"]), int(e.get("weight", metric)))
                for e in cfg.get("edges", [])
            )
        raise ValueError(f"Unsupported topology type: {tp}")
