"""Core data model and collaborator interfaces for the swap-and-deploy engine."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple

# Address used for the chain-native asset in requests and ledgers
NATIVE_TOKEN = "0x0000000000000000000000000000000000000000"


@dataclass(frozen=True)
class PoolState:
    """Read-only pool snapshot: Q64.96 sqrt price and active liquidity."""
    sqrt_price_x96: int
    liquidity: int


@dataclass(frozen=True)
class Position:
    """Existing fixed-range liquidity position (never created or burned here)."""
    position_id: int
    tick_lower: int
    tick_upper: int
    token0: str
    token1: str
    fee: int


@dataclass(frozen=True)
class SwapQuote:
    """Result of a simulated swap.

    implied_liquidity is the active pool liquidity the quote walked through.
    """
    amount_to_pay: int
    amount_received: int
    sqrt_price_x96_after: int
    implied_liquidity: int


@dataclass(frozen=True)
class SwapResult:
    """Amounts actually consumed/received by an executed swap."""
    amount_in_used: int
    amount_out: int


@dataclass(frozen=True)
class LpQuote:
    """Predicted outcome of swapping part of the input and depositing the rest."""
    amount_swap_in: int
    amount_swap_out: int
    amount_lp_in: int
    amount_lp_out: int
    liquidity_delta: int
    spare_in: int
    spare_out: int
    sqrt_price_x96_after: int


@dataclass(frozen=True)
class AllocationPlan:
    """Output of an allocation strategy."""
    amount_to_swap: int
    deposit: bool = True
    expected: Optional[LpQuote] = None


@dataclass(frozen=True)
class DepositResult:
    liquidity_added: int
    amount0_used: int
    amount1_used: int


@dataclass
class SettlementInstruction:
    """Spare amounts to forward once every invariant has been checked.

    Settling the same instruction twice has no further effect.
    """
    spare_in: int
    spare_out: int
    spare_in_recipient: str
    spare_out_recipient: str
    token_in: str
    token_out: str
    settled: bool = False


class OperationState(str, Enum):
    REQUESTED = "REQUESTED"
    QUOTED = "QUOTED"
    EXECUTED = "EXECUTED"
    DEPOSITED = "DEPOSITED"
    SKIPPED_DEPOSIT = "SKIPPED_DEPOSIT"
    SETTLED = "SETTLED"
    ABORTED = "ABORTED"


@dataclass
class SwapAndDeployRequest:
    """Input of the single externally callable operation.

    Percentages use the 1e18 = 1% scale.
    """
    token_in: str
    token_out: str
    fee_tier: int
    amount_in: int
    position_id: int
    batch_impact_threshold: int
    per_swap_slippage_cap: int
    spare_in_recipient: str
    spare_out_recipient: str


@dataclass
class SwapAndDeployResponse:
    liquidity_added: int
    spare_in: int
    spare_out: int
    amount_swap_in: int = 0
    amount_swap_out: int = 0
    amount_deposited_in: int = 0
    amount_deposited_out: int = 0
    state: OperationState = OperationState.SETTLED
    strategy: str = ""


@dataclass
class SplitRewardSwapRequest:
    """Reward budget split between a payout swap and a liquidity deposit."""
    token_in: str
    token_out: str
    fee_tier: int
    amount_in: int
    position_id: int
    reward_percentage: int
    maximum_slippage_percentage: int
    reward_recipient: str
    spare_recipient: str


@dataclass
class SplitRewardSwapResponse:
    used_amount: int
    token_reward_amount: int
    spare_in: int
    spare_out: int
    liquidity_added: int = 0
    state: OperationState = OperationState.SETTLED


class ITransactional(ABC):
    """Collaborator whose effects can be staged and discarded."""

    @abstractmethod
    def snapshot(self) -> Any:
        """Capture enough state to undo later effects."""
        pass

    @abstractmethod
    def restore(self, snapshot: Any):
        """Discard every effect since the snapshot was taken."""
        pass


class IAssetLedger(ABC):
    """Balances, transfers and approvals for native and token-form assets."""

    @property
    @abstractmethod
    def wrapped_native(self) -> str:
        """Address of the wrapped form of the native asset."""
        pass

    @abstractmethod
    def balance_of(self, token: str, account: str) -> int:
        pass

    @abstractmethod
    def transfer(self, token: str, sender: str, recipient: str, amount: int):
        pass

    @abstractmethod
    def approve(self, token: str, owner: str, spender: str, amount: int):
        pass

    @abstractmethod
    def allowance(self, token: str, owner: str, spender: str) -> int:
        pass

    @abstractmethod
    def transfer_from(self, token: str, spender: str, owner: str, recipient: str, amount: int):
        pass

    @abstractmethod
    def wrap(self, account: str, amount: int):
        """Convert native balance of account into the wrapped token."""
        pass

    @abstractmethod
    def unwrap(self, account: str, amount: int):
        """Convert wrapped token balance of account back into native."""
        pass


class IPool(ABC):
    """Concentrated-liquidity pool: price oracle and bounded-swap executor."""

    @property
    @abstractmethod
    def address(self) -> str:
        pass

    @property
    @abstractmethod
    def token0(self) -> str:
        pass

    @property
    @abstractmethod
    def token1(self) -> str:
        pass

    @property
    @abstractmethod
    def fee(self) -> int:
        """Fee in hundredths of a bip (1e6 = 100%)."""
        pass

    @abstractmethod
    def get_state(self) -> PoolState:
        pass

    @abstractmethod
    def swap(
        self,
        sender: str,
        recipient: str,
        zero_for_one: bool,
        amount_in: int,
        sqrt_price_limit_x96: int
    ) -> Tuple[int, int]:
        """Swap up to amount_in, stopping at the price limit.

        Returns:
            (amount_in_used, amount_out)
        """
        pass


class IPoolRegistry(ABC):

    @abstractmethod
    def get_pool(self, token_a: str, token_b: str, fee: int) -> IPool:
        pass


class IPositionManager(ABC):
    """Mutator for existing liquidity positions."""

    @property
    @abstractmethod
    def address(self) -> str:
        pass

    @abstractmethod
    def positions(self, position_id: int) -> Position:
        pass

    @abstractmethod
    def increase_liquidity(
        self,
        owner: str,
        position_id: int,
        amount0_desired: int,
        amount1_desired: int,
        amount0_min: int = 0,
        amount1_min: int = 0
    ) -> DepositResult:
        pass
