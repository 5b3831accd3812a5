"""Swap sizing, execution, deposit and settlement."""

from .simulator import SwapSimulator, ONE_HUNDRED_PERCENT
from .executor import SwapExecutor
from .native import NativeAssetAdapter
from .deployer import DepositPolicy, LiquidityDeployer
from .strategies import (
    AllocationStrategy, FullGreedyStrategy, PositionAwareStrategy, OptimalStrategy,
    PlanningContext, STRATEGIES, create_strategy,
)
from .settlement import SettlementRouter
from .unit_of_work import UnitOfWork
from .orchestrator import EngineContext, OperationTracker, SwapAndDeployOrchestrator

__all__ = [
    'SwapSimulator', 'ONE_HUNDRED_PERCENT', 'SwapExecutor', 'NativeAssetAdapter',
    'DepositPolicy', 'LiquidityDeployer', 'AllocationStrategy', 'FullGreedyStrategy',
    'PositionAwareStrategy', 'OptimalStrategy', 'PlanningContext', 'STRATEGIES',
    'create_strategy', 'SettlementRouter', 'UnitOfWork', 'EngineContext',
    'OperationTracker', 'SwapAndDeployOrchestrator',
]
