"""Concentrated-liquidity price and swap mathematics."""

from .price_math import (
    PriceMath, Q96, Q128, Q192,
    MIN_TICK, MAX_TICK, MIN_SQRT_RATIO, MAX_SQRT_RATIO,
    mul_div, mul_div_rounding_up,
)
from .swap_math import compute_swap_step, FEE_DENOMINATOR

__all__ = [
    'PriceMath', 'Q96', 'Q128', 'Q192',
    'MIN_TICK', 'MAX_TICK', 'MIN_SQRT_RATIO', 'MAX_SQRT_RATIO',
    'mul_div', 'mul_div_rounding_up',
    'compute_swap_step', 'FEE_DENOMINATOR',
]
