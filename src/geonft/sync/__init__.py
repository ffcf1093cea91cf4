"""
GeoNFT sync engine -- publishes plant and claim records to IPFS and Solana.

The planner decides what is missing, the executor publishes it step by
step, and the driver repeats the cycle. Progress lives in the status
store, so the engine can be stopped and restarted at any point.
"""

from .driver import SyncDriver
from .executor import Executor
from .planner import make_plan

__all__ = ["Executor", "SyncDriver", "make_plan"]
