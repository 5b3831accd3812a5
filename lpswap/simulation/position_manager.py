"""In-memory position manager for existing fixed-range positions."""

import copy
import logging
from typing import Dict

from lpswap.core.errors import DepositRejectedError, InvalidRequestError
from lpswap.core.interfaces import (
    DepositResult, IAssetLedger, IPoolRegistry, IPositionManager, ITransactional, Position,
)
from lpswap.uniswap import PriceMath


class SimulatedPositionManager(IPositionManager, ITransactional):
    """Mints liquidity into registered positions, pulling funds by allowance."""

    def __init__(self, address: str, ledger: IAssetLedger, pools: IPoolRegistry):
        self._address = address.lower()
        self.ledger = ledger
        self.pools = pools
        self._positions: Dict[int, Position] = {}
        self._liquidity: Dict[int, int] = {}
        self._next_id = 1
        self.logger = logging.getLogger(__name__)

    @property
    def address(self) -> str:
        return self._address

    def create_position(self, token_a: str, token_b: str, fee: int, tick_lower: int, tick_upper: int) -> Position:
        """Register an empty position (setup only; the engine never creates positions)."""
        PriceMath.get_range_ratios(tick_lower, tick_upper)
        token0, token1 = sorted((token_a.lower(), token_b.lower()))
        position = Position(self._next_id, tick_lower, tick_upper, token0, token1, fee)
        self._positions[position.position_id] = position
        self._liquidity[position.position_id] = 0
        self._next_id += 1
        return position

    def positions(self, position_id: int) -> Position:
        if position_id not in self._positions:
            raise InvalidRequestError(f"Unknown position {position_id}", position_id=position_id)
        return self._positions[position_id]

    def liquidity_of(self, position_id: int) -> int:
        return self._liquidity.get(position_id, 0)

    def increase_liquidity(
        self,
        owner: str,
        position_id: int,
        amount0_desired: int,
        amount1_desired: int,
        amount0_min: int = 0,
        amount1_min: int = 0
    ) -> DepositResult:
        position = self.positions(position_id)
        pool = self.pools.get_pool(position.token0, position.token1, position.fee)
        sqrt_price_x96 = pool.get_state().sqrt_price_x96
        sqrt_lower, sqrt_upper = PriceMath.get_range_ratios(position.tick_lower, position.tick_upper)

        liquidity = PriceMath.get_liquidity_for_amounts(
            sqrt_price_x96, sqrt_lower, sqrt_upper, amount0_desired, amount1_desired
        )
        if liquidity == 0:
            raise DepositRejectedError(f"Amounts {amount0_desired}/{amount1_desired} mint no liquidity")

        amount0, amount1 = PriceMath.get_mint_amounts(sqrt_price_x96, sqrt_lower, sqrt_upper, liquidity)
        if amount0 < amount0_min or amount1 < amount1_min:
            raise DepositRejectedError(
                f"Price slippage check: {amount0}/{amount1} below minimum {amount0_min}/{amount1_min}",
                amount0=amount0,
                amount1=amount1
            )

        self.ledger.transfer_from(position.token0, self._address, owner, pool.address, amount0)
        self.ledger.transfer_from(position.token1, self._address, owner, pool.address, amount1)
        pool.add_liquidity(position.tick_lower, position.tick_upper, liquidity)
        self._liquidity[position_id] += liquidity

        self.logger.debug(f"Position {position_id} +{liquidity} liquidity ({amount0}/{amount1})")
        return DepositResult(liquidity, amount0, amount1)

    def snapshot(self):
        return copy.deepcopy(self._liquidity)

    def restore(self, snapshot):
        self._liquidity = copy.deepcopy(snapshot)
