"""Deposits into an existing liquidity position."""

import logging
from enum import Enum
from typing import Optional

from lpswap.core.errors import (
    DepositRejectedError, InsufficientBalanceError, MonotonicityError, QuoteMismatchError,
)
from lpswap.core.interfaces import DepositResult, IAssetLedger, IPositionManager, Position
from lpswap.uniswap import PriceMath


class DepositPolicy(str, Enum):
    """What happens when the position manager refuses a deposit."""
    SOFT_FAIL = "soft"
    HARD_INVARIANT = "hard"


class LiquidityDeployer:
    """Adds liquidity to a fixed-range position on behalf of the engine account."""

    def __init__(self, ledger: IAssetLedger, position_manager: IPositionManager, account: str):
        self.ledger = ledger
        self.position_manager = position_manager
        self.account = account
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def predict(
        sqrt_price_x96: int,
        sqrt_ratio_lower_x96: int,
        sqrt_ratio_upper_x96: int,
        amount0: int,
        amount1: int
    ) -> DepositResult:
        """Liquidity mintable from the amounts and what minting it would charge."""
        liquidity = PriceMath.get_liquidity_for_amounts(
            sqrt_price_x96, sqrt_ratio_lower_x96, sqrt_ratio_upper_x96, amount0, amount1
        )
        if liquidity == 0:
            return DepositResult(0, 0, 0)
        used0, used1 = PriceMath.get_mint_amounts(
            sqrt_price_x96, sqrt_ratio_lower_x96, sqrt_ratio_upper_x96, liquidity
        )
        return DepositResult(liquidity, used0, used1)

    def deploy(
        self,
        position: Position,
        sqrt_price_x96: int,
        amount0: int,
        amount1: int,
        policy: DepositPolicy = DepositPolicy.HARD_INVARIANT,
        expected: Optional[DepositResult] = None
    ) -> DepositResult:
        """
        Deposit up to the given amounts into the position.

        Args:
            position: Target position
            sqrt_price_x96: Current pool price
            amount0: Desired token0 amount
            amount1: Desired token1 amount
            policy: Soft policy turns rejections into a zero deposit
            expected: Prediction the realized deposit must match (hard policy)

        Returns:
            DepositResult with the liquidity minted and amounts consumed

        Raises:
            DepositRejectedError: If the deposit fails under the hard policy
            QuoteMismatchError: If the realized deposit differs from expected
        """
        if amount0 == 0 and amount1 == 0:
            return DepositResult(0, 0, 0)

        sqrt_lower, sqrt_upper = PriceMath.get_range_ratios(position.tick_lower, position.tick_upper)
        predicted = self.predict(sqrt_price_x96, sqrt_lower, sqrt_upper, amount0, amount1)
        if predicted.liquidity_added == 0:
            if policy is DepositPolicy.HARD_INVARIANT and expected is not None and expected.liquidity_added > 0:
                raise QuoteMismatchError(
                    f"Deposit would mint nothing, quote predicted {expected.liquidity_added}",
                    expected=expected
                )
            self.logger.info(f"Skipping deposit into position {position.position_id}: zero liquidity")
            return DepositResult(0, 0, 0)

        if policy is DepositPolicy.HARD_INVARIANT and expected is not None:
            amount0_min, amount1_min = expected.amount0_used, expected.amount1_used
        else:
            amount0_min, amount1_min = 0, 0

        manager = self.position_manager.address
        self.ledger.approve(position.token0, self.account, manager, amount0)
        self.ledger.approve(position.token1, self.account, manager, amount1)
        try:
            result = self.position_manager.increase_liquidity(
                self.account, position.position_id, amount0, amount1, amount0_min, amount1_min
            )
        except (DepositRejectedError, InsufficientBalanceError) as e:
            if policy is DepositPolicy.HARD_INVARIANT:
                raise DepositRejectedError(
                    f"Deposit into position {position.position_id} rejected: {e}",
                    position_id=position.position_id
                ) from e
            self.logger.warning(f"Deposit into position {position.position_id} rejected, continuing: {e}")
            return DepositResult(0, 0, 0)
        finally:
            self.ledger.approve(position.token0, self.account, manager, 0)
            self.ledger.approve(position.token1, self.account, manager, 0)

        if result.amount0_used > amount0 or result.amount1_used > amount1:
            raise MonotonicityError(
                f"Deposit used {result.amount0_used}/{result.amount1_used} of {amount0}/{amount1}",
                result=result
            )
        if policy is DepositPolicy.HARD_INVARIANT and expected is not None and result != expected:
            raise QuoteMismatchError(f"Deposit realized {result}, quote predicted {expected}", result=result)

        self.logger.info(
            f"Added {result.liquidity_added} liquidity to position {position.position_id} "
            f"using {result.amount0_used}/{result.amount1_used}"
        )
        return result
