from __future__ import annotations

import hashlib
import json
from typing import Dict, Mapping, Optional, Tuple

RouteView = Mapping[str, Mapping[str, Tuple[str, int]]]


def hash_tables(route_tables: RouteView) -> str:
    """Order-independent digest of ``router -> destination -> (next_hop, metric)``."""
    normalized: Dict[str, Dict[str, list]] = {}
    for router, routes in sorted(route_tables.items()):
        normalized[str(router)] = {}
        for dst, (next_hop, metric) in sorted(routes.items()):
            normalized[str(router)][str(dst)] = [str(next_hop), int(metric)]
    payload = json.dumps(normalized, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class ConvergenceTracker:
    def __init__(self, stable_window: int = 5) -> None:
        self.stable_window = max(1, int(stable_window))
        self._last_hash: Optional[str] = None
        self._same_count = 0
        self.converged_tick: Optional[int] = None

    @property
    def last_hash(self) -> Optional[str]:
        return self._last_hash

    def observe(self, tick: int, route_tables: RouteView) -> bool:
        current = hash_tables(route_tables)
        if current == self._last_hash:
            self._same_count += 1
        else:
            self._same_count = 1
            self._last_hash = current
            self.converged_tick = None
        if self.converged_tick is None and self._same_count >= self.stable_window:
            self.converged_tick = tick
            return True
        return False
