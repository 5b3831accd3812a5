"""
Swap-and-deploy orchestration.

One call collects the input from the caller, sizes and executes the swap,
deposits into the target position and settles every leftover. The whole
call runs inside a UnitOfWork: any failure restores every transactional
collaborator and drops the staged telemetry.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from lpswap.core.errors import (
    ConservationError, ErrorCode, ExternalCallError, InsufficientValueError, InvalidRequestError,
    MonotonicityError, QuoteMismatchError, ReentrancyError, SwapEngineError,
)
from lpswap.core.events import EventBus, LiquidityAdded, SwapExecuted
from lpswap.core.interfaces import (
    DepositResult, IAssetLedger, IPool, IPoolRegistry, IPositionManager, ITransactional,
    LpQuote, NATIVE_TOKEN, OperationState, PoolState, Position, SettlementInstruction,
    SplitRewardSwapRequest, SplitRewardSwapResponse, SwapAndDeployRequest,
    SwapAndDeployResponse, SwapQuote, SwapResult,
)
from lpswap.engine.deployer import DepositPolicy, LiquidityDeployer
from lpswap.engine.executor import SwapExecutor
from lpswap.engine.native import NativeAssetAdapter
from lpswap.engine.settlement import SettlementRouter
from lpswap.engine.simulator import ONE_HUNDRED_PERCENT, SwapSimulator
from lpswap.engine.strategies import AllocationStrategy, OptimalStrategy, PlanningContext
from lpswap.engine.unit_of_work import UnitOfWork


@dataclass
class EngineContext:
    """Collaborators and settings an orchestrator is allowed to use.

    deposit_policy of None defers to the strategy's own policy.
    """
    account: str
    ledger: IAssetLedger
    pools: IPoolRegistry
    position_manager: IPositionManager
    strategy: AllocationStrategy
    deposit_policy: Optional[DepositPolicy] = None
    event_bus: EventBus = field(default_factory=EventBus)
    participants: List[ITransactional] = field(default_factory=list)


_TRANSITIONS = {
    OperationState.REQUESTED: {OperationState.QUOTED},
    OperationState.QUOTED: {OperationState.EXECUTED},
    OperationState.EXECUTED: {OperationState.DEPOSITED, OperationState.SKIPPED_DEPOSIT},
    OperationState.DEPOSITED: {OperationState.SETTLED},
    OperationState.SKIPPED_DEPOSIT: {OperationState.SETTLED},
    OperationState.SETTLED: set(),
    OperationState.ABORTED: set(),
}


class OperationTracker:
    """Lifecycle of a single operation."""

    def __init__(self):
        self.state = OperationState.REQUESTED
        self.history = [OperationState.REQUESTED]

    def advance(self, state: OperationState):
        if state is not OperationState.ABORTED and state not in _TRANSITIONS[self.state]:
            raise SwapEngineError(f"Illegal transition {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def abort(self):
        if self.state not in (OperationState.SETTLED, OperationState.ABORTED):
            self.advance(OperationState.ABORTED)


@dataclass(frozen=True)
class _PoolRoute:
    pool: IPool
    position: Position
    zero_for_one: bool
    token_in: str
    token_out: str


@dataclass(frozen=True)
class _DeployOutcome:
    swap: SwapResult
    deposit: DepositResult
    deposited_in: int
    deposited_out: int
    spare_in: int
    spare_out: int


class SwapAndDeployOrchestrator:
    """Entry point of the engine."""

    def __init__(self, context: EngineContext, simulator: Optional[SwapSimulator] = None):
        self.context = context
        self.simulator = simulator or SwapSimulator()
        self.native = NativeAssetAdapter(context.ledger, context.account)
        self.executor = SwapExecutor(context.ledger, context.account, self.simulator)
        self.deployer = LiquidityDeployer(context.ledger, context.position_manager, context.account)
        self.settlement = SettlementRouter(context.ledger, self.native, context.account)
        if context.strategy.deposits_proceeds:
            self.split_strategy = context.strategy
        else:
            self.split_strategy = OptimalStrategy(self.simulator)
        self.last_operation: Optional[OperationTracker] = None
        self.logger = logging.getLogger(__name__)
        self._entered = False

    @property
    def deposit_policy(self) -> DepositPolicy:
        return self.context.deposit_policy or self.context.strategy.deposit_policy

    @contextmanager
    def _non_reentrant(self):
        if self._entered:
            raise ReentrancyError("Engine operation already in progress")
        self._entered = True
        try:
            yield
        finally:
            self._entered = False

    def swap_and_deploy(self, request: SwapAndDeployRequest, caller: str, value: int = 0) -> SwapAndDeployResponse:
        """
        Convert amount_in into a deposit and/or the target token.

        Args:
            request: Swap and deposit parameters
            caller: Account the input is collected from
            value: Native amount attached to the call (native input only)

        Returns:
            SwapAndDeployResponse with liquidity added and spare amounts

        Raises:
            SwapEngineError: On any validation or execution failure; every
                effect of the call has been rolled back
        """
        with self._non_reentrant():
            self._validate(
                request.token_in, request.token_out, request.amount_in, value,
                batch_impact_threshold=request.batch_impact_threshold,
                per_swap_slippage_cap=request.per_swap_slippage_cap
            )
            tracker = OperationTracker()
            self.last_operation = tracker
            try:
                with UnitOfWork(self.context.participants, self.context.event_bus) as uow:
                    response = self._run_swap_and_deploy(request, caller, tracker, uow)
                    uow.commit()
            except SwapEngineError as e:
                tracker.abort()
                self.logger.error(f"swap_and_deploy aborted: {e}")
                raise
            except Exception as e:
                tracker.abort()
                self.logger.error(f"swap_and_deploy aborted by collaborator failure: {e!r}")
                raise ExternalCallError(f"swap_and_deploy failed: {e}", cause=type(e).__name__) from e

        self.logger.info(
            f"swap_and_deploy settled: liquidity={response.liquidity_added}, "
            f"spare_in={response.spare_in}, spare_out={response.spare_out}"
        )
        return response

    def quote(self, request: SwapAndDeployRequest) -> LpQuote:
        """Predicted outcome of swap_and_deploy on the current pool state."""
        self._validate(
            request.token_in, request.token_out, request.amount_in, None,
            batch_impact_threshold=request.batch_impact_threshold,
            per_swap_slippage_cap=request.per_swap_slippage_cap
        )
        route = self._route(request.token_in, request.token_out, request.fee_tier, request.position_id)
        ctx = PlanningContext.for_position(
            route.pool.get_state(), route.pool.fee, route.position, route.zero_for_one,
            request.amount_in, request.batch_impact_threshold, request.per_swap_slippage_cap
        )
        return self.context.strategy.quote(ctx)

    def split_reward_swap(
        self,
        request: SplitRewardSwapRequest,
        caller: str,
        value: int = 0
    ) -> SplitRewardSwapResponse:
        """
        Pay a share of amount_in out as swapped reward and deposit the rest.

        Args:
            request: Reward split parameters
            caller: Account the input is collected from; unused reward input is refunded to it
            value: Native amount attached to the call (native input only)

        Returns:
            SplitRewardSwapResponse
        """
        with self._non_reentrant():
            self._validate(
                request.token_in, request.token_out, request.amount_in, value,
                maximum_slippage_percentage=request.maximum_slippage_percentage,
                reward_percentage=request.reward_percentage
            )
            if request.reward_percentage > ONE_HUNDRED_PERCENT:
                raise InvalidRequestError(
                    f"reward_percentage {request.reward_percentage} exceeds 100%",
                    reward_percentage=request.reward_percentage
                )
            tracker = OperationTracker()
            self.last_operation = tracker
            try:
                with UnitOfWork(self.context.participants, self.context.event_bus) as uow:
                    response = self._run_split_reward_swap(request, caller, tracker, uow)
                    uow.commit()
            except SwapEngineError as e:
                tracker.abort()
                self.logger.error(f"split_reward_swap aborted: {e}")
                raise
            except Exception as e:
                tracker.abort()
                self.logger.error(f"split_reward_swap aborted by collaborator failure: {e!r}")
                raise ExternalCallError(f"split_reward_swap failed: {e}", cause=type(e).__name__) from e

        self.logger.info(
            f"split_reward_swap settled: used={response.used_amount}, reward={response.token_reward_amount}"
        )
        return response

    def quote_split_reward_swap(self, request: SplitRewardSwapRequest) -> SplitRewardSwapResponse:
        """Predicted outcome of split_reward_swap on the current pool state."""
        self._validate(
            request.token_in, request.token_out, request.amount_in, None,
            maximum_slippage_percentage=request.maximum_slippage_percentage,
            reward_percentage=request.reward_percentage
        )
        route = self._route(request.token_in, request.token_out, request.fee_tier, request.position_id)
        state = route.pool.get_state()
        slippage = request.maximum_slippage_percentage
        reward_amount = request.amount_in * request.reward_percentage // ONE_HUNDRED_PERCENT

        if reward_amount > 0:
            reward = self.simulator.quote_slippage_exact_input(
                state, route.pool.fee, route.zero_for_one, reward_amount, slippage
            )
        else:
            reward = SwapQuote(0, 0, state.sqrt_price_x96, state.liquidity)

        after_reward = PoolState(reward.sqrt_price_x96_after, state.liquidity)
        ctx = PlanningContext.for_position(
            after_reward, route.pool.fee, route.position, route.zero_for_one,
            request.amount_in - reward_amount, slippage, slippage
        )
        lp = self.split_strategy.quote(ctx)

        return SplitRewardSwapResponse(
            used_amount=reward.amount_to_pay + lp.amount_swap_in + lp.amount_lp_in - lp.spare_in,
            token_reward_amount=reward.amount_received,
            spare_in=lp.spare_in,
            spare_out=lp.spare_out,
            liquidity_added=lp.liquidity_delta,
            state=OperationState.QUOTED
        )

    def _run_swap_and_deploy(
        self,
        request: SwapAndDeployRequest,
        caller: str,
        tracker: OperationTracker,
        uow: UnitOfWork
    ) -> SwapAndDeployResponse:
        route = self._route(request.token_in, request.token_out, request.fee_tier, request.position_id)
        holdings_before = self._holdings(route)

        self._collect(request.token_in, caller, request.amount_in)
        outcome = self._deploy(
            route, request.amount_in, request.batch_impact_threshold, request.per_swap_slippage_cap,
            self.context.strategy, tracker, uow
        )

        instruction = SettlementInstruction(
            spare_in=outcome.spare_in,
            spare_out=outcome.spare_out,
            spare_in_recipient=request.spare_in_recipient,
            spare_out_recipient=request.spare_out_recipient,
            token_in=request.token_in,
            token_out=request.token_out
        )
        for event in self.settlement.settle(instruction):
            uow.stage(event)

        self._check_conservation(route, holdings_before)
        tracker.advance(OperationState.SETTLED)

        return SwapAndDeployResponse(
            liquidity_added=outcome.deposit.liquidity_added,
            spare_in=outcome.spare_in,
            spare_out=outcome.spare_out,
            amount_swap_in=outcome.swap.amount_in_used,
            amount_swap_out=outcome.swap.amount_out,
            amount_deposited_in=outcome.deposited_in,
            amount_deposited_out=outcome.deposited_out,
            state=tracker.state,
            strategy=self.context.strategy.identifier
        )

    def _run_split_reward_swap(
        self,
        request: SplitRewardSwapRequest,
        caller: str,
        tracker: OperationTracker,
        uow: UnitOfWork
    ) -> SplitRewardSwapResponse:
        route = self._route(request.token_in, request.token_out, request.fee_tier, request.position_id)
        holdings_before = self._holdings(route)
        slippage = request.maximum_slippage_percentage

        self._collect(request.token_in, caller, request.amount_in)

        reward_amount = request.amount_in * request.reward_percentage // ONE_HUNDRED_PERCENT
        reward = self._swap(route, reward_amount, slippage, route.pool.get_state(), None, uow)
        unused_reward = reward_amount - reward.amount_in_used

        outcome = self._deploy(
            route, request.amount_in - reward_amount, slippage, slippage, self.split_strategy, tracker, uow
        )

        self.settlement.pay(request.token_out, request.reward_recipient, reward.amount_out)
        self.settlement.pay(request.token_in, caller, unused_reward)
        instruction = SettlementInstruction(
            spare_in=outcome.spare_in,
            spare_out=outcome.spare_out,
            spare_in_recipient=request.spare_recipient,
            spare_out_recipient=request.spare_recipient,
            token_in=request.token_in,
            token_out=request.token_out
        )
        for event in self.settlement.settle(instruction):
            uow.stage(event)

        self._check_conservation(route, holdings_before)
        tracker.advance(OperationState.SETTLED)

        return SplitRewardSwapResponse(
            used_amount=reward.amount_in_used + outcome.swap.amount_in_used + outcome.deposited_in,
            token_reward_amount=reward.amount_out,
            spare_in=outcome.spare_in,
            spare_out=outcome.spare_out,
            liquidity_added=outcome.deposit.liquidity_added,
            state=tracker.state
        )

    def _deploy(
        self,
        route: _PoolRoute,
        amount_in: int,
        batch_impact_threshold: int,
        per_swap_slippage_cap: int,
        strategy: AllocationStrategy,
        tracker: OperationTracker,
        uow: UnitOfWork
    ) -> _DeployOutcome:
        """Plan, swap and deposit amount_in already held by the engine account."""
        pool = route.pool
        state = pool.get_state()
        ctx = PlanningContext.for_position(
            state, pool.fee, route.position, route.zero_for_one,
            amount_in, batch_impact_threshold, per_swap_slippage_cap
        )
        plan = strategy.plan(ctx)
        if not 0 <= plan.amount_to_swap <= amount_in:
            raise MonotonicityError(
                f"Strategy {strategy.identifier} planned {plan.amount_to_swap} of {amount_in}",
                amount_to_swap=plan.amount_to_swap
            )
        tracker.advance(OperationState.QUOTED)
        self.logger.debug(f"{strategy.identifier} plan: {plan}")

        policy = self.context.deposit_policy or strategy.deposit_policy
        expected = plan.expected if policy is DepositPolicy.HARD_INVARIANT else None

        expected_swap = None
        if expected is not None:
            expected_swap = SwapQuote(
                expected.amount_swap_in, expected.amount_swap_out, expected.sqrt_price_x96_after, state.liquidity
            )
        swap = self._swap(route, plan.amount_to_swap, per_swap_slippage_cap, state, expected_swap, uow)
        tracker.advance(OperationState.EXECUTED)

        leftover_in = amount_in - swap.amount_in_used
        deposit = DepositResult(0, 0, 0)
        if plan.deposit or leftover_in > 0:
            lp_out = swap.amount_out if strategy.deposits_proceeds else 0
            amount0, amount1 = (leftover_in, lp_out) if route.zero_for_one else (lp_out, leftover_in)

            expected_deposit = None
            if expected is not None:
                used_in = expected.amount_lp_in - expected.spare_in
                used_out = expected.amount_swap_out - expected.spare_out
                expected_deposit = DepositResult(
                    expected.liquidity_delta,
                    *((used_in, used_out) if route.zero_for_one else (used_out, used_in))
                )

            if expected_deposit is None or expected_deposit.liquidity_added > 0:
                deposit = self.deployer.deploy(
                    route.position, pool.get_state().sqrt_price_x96, amount0, amount1, policy, expected_deposit
                )

        if route.zero_for_one:
            deposited_in, deposited_out = deposit.amount0_used, deposit.amount1_used
        else:
            deposited_in, deposited_out = deposit.amount1_used, deposit.amount0_used

        if deposit.liquidity_added > 0:
            uow.stage(LiquidityAdded(
                route.position.position_id, deposit.liquidity_added, deposit.amount0_used, deposit.amount1_used
            ))
            tracker.advance(OperationState.DEPOSITED)
        else:
            tracker.advance(OperationState.SKIPPED_DEPOSIT)

        spare_in = leftover_in - deposited_in
        spare_out = swap.amount_out - deposited_out
        if spare_in < 0 or spare_out < 0:
            raise ConservationError(
                f"Negative spare amounts: in={spare_in}, out={spare_out}",
                spare_in=spare_in,
                spare_out=spare_out
            )
        if expected is not None and (spare_in, spare_out) != (expected.spare_in, expected.spare_out):
            raise QuoteMismatchError(
                f"Spare {spare_in}/{spare_out}, quote predicted {expected.spare_in}/{expected.spare_out}",
                spare_in=spare_in,
                spare_out=spare_out
            )

        return _DeployOutcome(swap, deposit, deposited_in, deposited_out, spare_in, spare_out)

    def _swap(
        self,
        route: _PoolRoute,
        amount_in: int,
        maximum_slippage_percentage: int,
        quoted_state: PoolState,
        expected: Optional[SwapQuote],
        uow: UnitOfWork
    ) -> SwapResult:
        wrapped_before = self.native.wrapped_balance()
        result = self.executor.execute(
            route.pool, route.zero_for_one, amount_in, maximum_slippage_percentage, quoted_state, expected
        )
        self.native.reconcile_output(route.token_out, wrapped_before, result.amount_out)
        if result.amount_in_used > 0:
            uow.stage(SwapExecuted(route.token_in, route.token_out, result.amount_in_used, result.amount_out))
        return result

    def _validate(self, token_in: str, token_out: str, amount_in: int, value: Optional[int], **percentages):
        """Reject malformed requests before any effect. value=None skips the value check."""
        if amount_in <= 0:
            raise InvalidRequestError(
                f"amount_in must be positive, got {amount_in}", code=ErrorCode.ZERO_AMOUNT
            )
        if self.native.to_pool_token(token_in).lower() == self.native.to_pool_token(token_out).lower():
            raise InvalidRequestError(f"token_in and token_out are the same asset ({token_in})")
        for name, percentage in percentages.items():
            if percentage < 0:
                raise InvalidRequestError(f"{name} must be non-negative, got {percentage}")

        if value is None:
            return
        if self.native.is_native(token_in):
            if value < amount_in:
                raise InsufficientValueError(
                    f"Attached value {value} below amount_in {amount_in}", value=value, amount_in=amount_in
                )
        elif value != 0:
            raise InvalidRequestError(f"Value attached to a {token_in} input")

    def _route(self, token_in: str, token_out: str, fee_tier: int, position_id: int) -> _PoolRoute:
        pool_token_in = self.native.to_pool_token(token_in)
        pool_token_out = self.native.to_pool_token(token_out)
        pool = self.context.pools.get_pool(pool_token_in, pool_token_out, fee_tier)
        position = self.context.position_manager.positions(position_id)

        pool_tokens = {pool.token0.lower(), pool.token1.lower()}
        if {position.token0.lower(), position.token1.lower()} != pool_tokens or position.fee != pool.fee:
            raise InvalidRequestError(
                f"Position {position_id} ({position.token0}/{position.token1}/{position.fee}) "
                f"does not belong to pool {pool.address}",
                position_id=position_id
            )
        if pool_token_in.lower() not in pool_tokens or pool_token_out.lower() not in pool_tokens:
            raise InvalidRequestError(f"Pool {pool.address} does not trade {token_in}/{token_out}")

        zero_for_one = pool_token_in.lower() == pool.token0.lower()
        return _PoolRoute(pool, position, zero_for_one, pool_token_in, pool_token_out)

    def _collect(self, token_in: str, caller: str, amount: int):
        ledger, account = self.context.ledger, self.context.account
        if self.native.is_native(token_in):
            ledger.transfer(NATIVE_TOKEN, caller, account, amount)
            self.native.wrap_input(token_in, amount)
        else:
            ledger.transfer_from(token_in, account, caller, account, amount)

    def _holdings(self, route: _PoolRoute) -> Dict[str, int]:
        ledger, account = self.context.ledger, self.context.account
        return {
            token: ledger.balance_of(token, account)
            for token in (route.token_in, route.token_out, NATIVE_TOKEN)
        }

    def _check_conservation(self, route: _PoolRoute, before: Dict[str, int]):
        after = self._holdings(route)
        if after != before:
            raise ConservationError(
                f"Engine holdings changed from {before} to {after}", before=before, after=after
            )
