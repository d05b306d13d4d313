"""Topology providers for the simulation."""

from ripsim.topology.topology import Topology, pair_address, router_address

__all__ = ["Topology", "pair_address", "router_address"]
