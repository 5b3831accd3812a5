"""Wiring of in-memory collaborators into a ready-to-use engine context."""

from dataclasses import dataclass
from typing import List, Optional

from lpswap.core.events import EventBus
from lpswap.core.interfaces import ITransactional, Position
from lpswap.engine.deployer import DepositPolicy
from lpswap.engine.orchestrator import EngineContext
from lpswap.engine.strategies import AllocationStrategy
from lpswap.simulation.ledger import InMemoryLedger, WRAPPED_NATIVE
from lpswap.simulation.pool import SimulatedPool
from lpswap.simulation.position_manager import SimulatedPositionManager
from lpswap.simulation.registry import PoolRegistry

POOL_ADDRESS = "0x00000000000000000000000000000000000000a1"
POSITION_MANAGER_ADDRESS = "0x00000000000000000000000000000000000000b2"
DEFAULT_RESERVE = 10 ** 30


@dataclass
class SimulatedMarket:
    """One pool and one position on a shared ledger."""
    ledger: InMemoryLedger
    registry: PoolRegistry
    pool: SimulatedPool
    position_manager: SimulatedPositionManager
    position: Position

    @classmethod
    def create(
        cls,
        token_a: str,
        token_b: str,
        fee: int,
        sqrt_price_x96: int,
        liquidity: int,
        tick_lower: int,
        tick_upper: int,
        reserve: int = DEFAULT_RESERVE,
        native_output: bool = False,
        wrapped_native: str = WRAPPED_NATIVE
    ) -> 'SimulatedMarket':
        ledger = InMemoryLedger(wrapped_native)
        registry = PoolRegistry()
        pool = SimulatedPool(
            POOL_ADDRESS, token_a, token_b, fee, ledger, sqrt_price_x96, liquidity, native_output
        )
        registry.register(pool)
        ledger.mint(pool.token0, pool.address, reserve)
        ledger.mint(pool.token1, pool.address, reserve)

        position_manager = SimulatedPositionManager(POSITION_MANAGER_ADDRESS, ledger, registry)
        position = position_manager.create_position(token_a, token_b, fee, tick_lower, tick_upper)
        return cls(ledger, registry, pool, position_manager, position)

    @property
    def participants(self) -> List[ITransactional]:
        return [self.ledger, self.pool, self.position_manager]

    def engine_context(
        self,
        account: str,
        strategy: AllocationStrategy,
        deposit_policy: Optional[DepositPolicy] = None,
        event_bus: Optional[EventBus] = None
    ) -> EngineContext:
        return EngineContext(
            account=account,
            ledger=self.ledger,
            pools=self.registry,
            position_manager=self.position_manager,
            strategy=strategy,
            deposit_policy=deposit_policy,
            event_bus=event_bus or EventBus(),
            participants=self.participants
        )
