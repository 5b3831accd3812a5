"""In-memory collaborators for dry runs and tests."""

from .ledger import InMemoryLedger, WRAPPED_NATIVE
from .pool import SimulatedPool
from .position_manager import SimulatedPositionManager
from .registry import PoolRegistry
from .market import SimulatedMarket

__all__ = [
    'InMemoryLedger', 'WRAPPED_NATIVE', 'SimulatedPool', 'SimulatedPositionManager',
    'PoolRegistry', 'SimulatedMarket',
]
