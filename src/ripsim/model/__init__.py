"""Routing data model shared by routers and the topology provider."""

from ripsim.model.link import SUBNET_MASK, Link, RouterInfo
from ripsim.model.routing import (
    INFINITY,
    NO_NEXT_HOP,
    TIMEOUT_TICKS,
    RouteEntry,
    RoutingTable,
    TableRow,
    saturating_add,
)

__all__ = [
    "INFINITY",
    "NO_NEXT_HOP",
    "SUBNET_MASK",
    "TIMEOUT_TICKS",
    "Link",
    "RouteEntry",
    "RouterInfo",
    "RoutingTable",
    "TableRow",
    "saturating_add",
]
