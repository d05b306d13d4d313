"""Run bookkeeping shared by the simulation driver."""

from ripsim.core.convergence import ConvergenceTracker, hash_tables
from ripsim.core.logging import JsonlLogger

__all__ = ["ConvergenceTracker", "JsonlLogger", "hash_tables"]
