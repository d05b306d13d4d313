from __future__ import annotations

from collections import deque

import pytest

from ripsim.model.link import Link, RouterInfo
from ripsim.topology.topology import Topology, pair_address, router_address


def _connected(topology: Topology) -> bool:
    addresses = topology.addresses()
    seen = {addresses[0]}
    queue = deque([addresses[0]])
    while queue:
        node = queue.popleft()
        for nbr in topology.neighbors(node):
            if nbr not in seen:
                seen.add(nbr)
                queue.append(nbr)
    return seen == set(addresses)


def test_pairs_builds_two_routers_per_pair() -> None:
    topology = Topology.pairs(3, seed=11)
    assert len(topology) == 6
    assert len(set(topology.addresses())) == 6
    assert len(topology.links) == 6
    assert all(1 <= link.weight <= 10 for link in topology.links)
    assert all(info.subnet_mask == "255.255.255.0" for info in topology.routers)
    assert _connected(topology)


def test_pairs_is_deterministic_for_a_seed() -> None:
    first = [(l.x, l.y, l.weight) for l in Topology.pairs(4, seed=3).links]
    second = [(l.x, l.y, l.weight) for l in Topology.pairs(4, seed=3).links]
    assert first == second


def test_single_pair_is_one_link() -> None:
    topology = Topology.pairs(1, seed=0)
    assert topology.addresses() == ["10.0.0.1", "10.0.0.2"]
    assert len(topology.links) == 1


def test_pair_addresses_use_one_subnet_per_pair() -> None:
    topology = Topology.pairs(3, seed=0)
    assert topology.addresses() == [
        "10.0.0.1",
        "10.0.0.2",
        "10.0.1.1",
        "10.0.1.2",
        "10.0.2.1",
        "10.0.2.2",
    ]
    assert pair_address(2 * 300 + 1) == "10.1.44.2"


def test_other_shapes_number_routers_in_sequence() -> None:
    topology = Topology.line(3)
    assert topology.addresses() == [router_address(i) for i in range(3)]
    assert topology.addresses() == ["10.0.0.1", "10.0.0.2", "10.0.0.3"]


def test_pairs_rejects_non_positive_count() -> None:
    with pytest.raises(ValueError):
        Topology.pairs(0)


def test_links_of_and_neighbors() -> None:
    topology = Topology.from_edges([("a", "b", 2), ("b", "c", 5)])
    assert topology.addresses() == ["a", "b", "c"]
    assert topology.neighbors("b") == {"a": 2, "c": 5}
    assert len(topology.links_of("a")) == 1
    assert topology.links_of("zzz") == ()
    assert "-> b weight 2" in topology.describe()


def test_link_validation() -> None:
    link = Link("a", "b", 4)
    assert link.other("a") == "b"
    assert link.other("b") == "a"
    with pytest.raises(ValueError):
        link.other("c")
    with pytest.raises(ValueError):
        Link("a", "a", 1)
    with pytest.raises(ValueError):
        Link("a", "b", 0)


def test_topology_rejects_unknown_endpoint() -> None:
    with pytest.raises(ValueError):
        Topology([RouterInfo("a")], [Link("a", "b", 1)])


def test_from_config_shapes() -> None:
    assert len(Topology.from_config({"type": "line", "n_nodes": 5}).links) == 4
    assert len(Topology.from_config({"type": "ring", "n_nodes": 5}).links) == 5
    assert len(Topology.from_config({"type": "star", "n_nodes": 5}).links) == 4
    assert len(Topology.from_config({"type": "pairs", "n_pairs": 2}, seed=1)) == 4
    edges = Topology.from_config(
        {"type": "edges", "edges": [{"x": "r1", "y": "r2", "weight": 3}]}
    )
    assert edges.neighbors("r1") == {"r2": 3}
    with pytest.raises(ValueError):
        Topology.from_config({"type": "hypercube"})
