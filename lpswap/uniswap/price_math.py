"""
Concentrated-liquidity price mathematics.

Integer-only conversions between ticks, Q64.96 square-root prices, token
amounts and liquidity. Rounding directions follow the Uniswap V3 libraries
so that amounts computed here match what a pool or position manager takes.
"""

from lpswap.core.errors import InvalidRangeError

# Constants
Q96 = 2 ** 96
Q128 = 2 ** 128
Q192 = 2 ** 192

MIN_TICK = -887272
MAX_TICK = 887272
MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342

MAX_UINT256 = 2 ** 256 - 1


def mul_div(a: int, b: int, denominator: int) -> int:
    """floor(a * b / denominator)."""
    if denominator == 0:
        raise ZeroDivisionError("mul_div denominator is zero")
    return a * b // denominator


def mul_div_rounding_up(a: int, b: int, denominator: int) -> int:
    """ceil(a * b / denominator)."""
    if denominator == 0:
        raise ZeroDivisionError("mul_div denominator is zero")
    return -(-(a * b) // denominator)


def div_rounding_up(a: int, b: int) -> int:
    return -(-a // b)


class PriceMath:
    """Handles concentrated-liquidity mathematical calculations."""

    @staticmethod
    def get_sqrt_ratio_at_tick(tick: int) -> int:
        """Get sqrt price ratio (Q64.96) at a specific tick."""
        abs_tick = abs(tick)
        if abs_tick > MAX_TICK:
            raise InvalidRangeError(f"Tick {tick} outside [{MIN_TICK}, {MAX_TICK}]", tick=tick)

        # Precomputed values for efficiency
        if abs_tick & 0x1 != 0:
            ratio = 0xfffcb933bd6fad37aa2d162d1a594001
        else:
            ratio = 0x100000000000000000000000000000000

        if abs_tick & 0x2 != 0:
            ratio = (ratio * 0xfff97272373d413259a46990580e213a) >> 128
        if abs_tick & 0x4 != 0:
            ratio = (ratio * 0xfff2e50f5f656932ef12357cf3c7fdcc) >> 128
        if abs_tick & 0x8 != 0:
            ratio = (ratio * 0xffe5caca7e10e4e61c3624eaa0941cd0) >> 128
        if abs_tick & 0x10 != 0:
            ratio = (ratio * 0xffcb9843d60f6159c9db58835c926644) >> 128
        if abs_tick & 0x20 != 0:
            ratio = (ratio * 0xff973b41fa98c081472e6896dfb254c0) >> 128
        if abs_tick & 0x40 != 0:
            ratio = (ratio * 0xff2ea16466c96a3843ec78b326b52861) >> 128
        if abs_tick & 0x80 != 0:
            ratio = (ratio * 0xfe5dee046a99a2a811c461f1969c3053) >> 128
        if abs_tick & 0x100 != 0:
            ratio = (ratio * 0xfcbe86c7900a88aedcffc83b479aa3a4) >> 128
        if abs_tick & 0x200 != 0:
            ratio = (ratio * 0xf987a7253ac413176f2b074cf7815e54) >> 128
        if abs_tick & 0x400 != 0:
            ratio = (ratio * 0xf3392b0822b70005940c7a398e4b70f3) >> 128
        if abs_tick & 0x800 != 0:
            ratio = (ratio * 0xe7159475a2c29b7443b29c7fa6e889d9) >> 128
        if abs_tick & 0x1000 != 0:
            ratio = (ratio * 0xd097f3bdfd2022b8845ad8f792aa5825) >> 128
        if abs_tick & 0x2000 != 0:
            ratio = (ratio * 0xa9f746462d870fdf8a65dc1f90e061e5) >> 128
        if abs_tick & 0x4000 != 0:
            ratio = (ratio * 0x70d869a156d2a1b890bb3df62baf32f7) >> 128
        if abs_tick & 0x8000 != 0:
            ratio = (ratio * 0x31be135f97d08fd981231505542fcfa6) >> 128
        if abs_tick & 0x10000 != 0:
            ratio = (ratio * 0x9aa508b5b7a84e1c677de54f3e99bc9) >> 128
        if abs_tick & 0x20000 != 0:
            ratio = (ratio * 0x5d6af8dedb81196699c329225ee604) >> 128
        if abs_tick & 0x40000 != 0:
            ratio = (ratio * 0x2216e584f5fa1ea926041bedfe98) >> 128
        if abs_tick & 0x80000 != 0:
            ratio = (ratio * 0x48a170391f7dc42444e8fa2) >> 128

        if tick > 0:
            ratio = MAX_UINT256 // ratio

        # Q128.128 -> Q64.96, rounding up so the inverse rounds down
        return (ratio >> 32) + (0 if ratio % (1 << 32) == 0 else 1)

    @staticmethod
    def tick_to_sqrt_price_x96(tick: int) -> int:
        return PriceMath.get_sqrt_ratio_at_tick(tick)

    @staticmethod
    def get_tick_at_sqrt_ratio(sqrt_price_x96: int) -> int:
        """Greatest tick whose sqrt ratio is <= sqrt_price_x96."""
        if not MIN_SQRT_RATIO <= sqrt_price_x96 < MAX_SQRT_RATIO:
            raise InvalidRangeError(
                f"Sqrt price {sqrt_price_x96} outside [{MIN_SQRT_RATIO}, {MAX_SQRT_RATIO})",
                sqrt_price_x96=sqrt_price_x96
            )

        lower_tick = MIN_TICK
        upper_tick = MAX_TICK
        while upper_tick - lower_tick > 1:
            mid_tick = (lower_tick + upper_tick) // 2
            if PriceMath.get_sqrt_ratio_at_tick(mid_tick) <= sqrt_price_x96:
                lower_tick = mid_tick
            else:
                upper_tick = mid_tick

        if PriceMath.get_sqrt_ratio_at_tick(upper_tick) <= sqrt_price_x96:
            return upper_tick
        return lower_tick

    @staticmethod
    def get_range_ratios(tick_lower: int, tick_upper: int):
        """Sqrt ratios of a position's boundaries.

        Raises:
            InvalidRangeError: If ticks are not strictly ordered
        """
        if tick_lower >= tick_upper:
            raise InvalidRangeError(
                f"tick_lower ({tick_lower}) must be below tick_upper ({tick_upper})",
                tick_lower=tick_lower,
                tick_upper=tick_upper
            )
        return (
            PriceMath.get_sqrt_ratio_at_tick(tick_lower),
            PriceMath.get_sqrt_ratio_at_tick(tick_upper)
        )

    @staticmethod
    def get_amount0_for_liquidity(
        sqrt_ratio_a_x96: int,
        sqrt_ratio_b_x96: int,
        liquidity: int
    ) -> int:
        """Calculate amount0 for a given liquidity (rounds down)."""
        if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
            sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96

        numerator = mul_div(liquidity << 96, sqrt_ratio_b_x96 - sqrt_ratio_a_x96, sqrt_ratio_b_x96)
        return numerator // sqrt_ratio_a_x96

    @staticmethod
    def get_amount1_for_liquidity(
        sqrt_ratio_a_x96: int,
        sqrt_ratio_b_x96: int,
        liquidity: int
    ) -> int:
        """Calculate amount1 for a given liquidity (rounds down)."""
        if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
            sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96

        return mul_div(liquidity, sqrt_ratio_b_x96 - sqrt_ratio_a_x96, Q96)

    @staticmethod
    def get_amounts_for_liquidity(
        sqrt_ratio_x96: int,
        sqrt_ratio_a_x96: int,
        sqrt_ratio_b_x96: int,
        liquidity: int
    ):
        """Token amounts represented by liquidity at the given price."""
        if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
            sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96

        if sqrt_ratio_x96 <= sqrt_ratio_a_x96:
            # Below range - all liquidity is in token0
            return PriceMath.get_amount0_for_liquidity(sqrt_ratio_a_x96, sqrt_ratio_b_x96, liquidity), 0
        if sqrt_ratio_x96 < sqrt_ratio_b_x96:
            return (
                PriceMath.get_amount0_for_liquidity(sqrt_ratio_x96, sqrt_ratio_b_x96, liquidity),
                PriceMath.get_amount1_for_liquidity(sqrt_ratio_a_x96, sqrt_ratio_x96, liquidity)
            )
        # Above range - all liquidity is in token1
        return 0, PriceMath.get_amount1_for_liquidity(sqrt_ratio_a_x96, sqrt_ratio_b_x96, liquidity)

    @staticmethod
    def get_liquidity_for_amount0(
        sqrt_ratio_a_x96: int,
        sqrt_ratio_b_x96: int,
        amount0: int
    ) -> int:
        """Calculate liquidity for a given amount0."""
        if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
            sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96
        if sqrt_ratio_a_x96 == sqrt_ratio_b_x96:
            raise InvalidRangeError("Liquidity range has zero width")

        intermediate = mul_div(sqrt_ratio_a_x96, sqrt_ratio_b_x96, Q96)
        return mul_div(amount0, intermediate, sqrt_ratio_b_x96 - sqrt_ratio_a_x96)

    @staticmethod
    def get_liquidity_for_amount1(
        sqrt_ratio_a_x96: int,
        sqrt_ratio_b_x96: int,
        amount1: int
    ) -> int:
        """Calculate liquidity for a given amount1."""
        if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
            sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96
        if sqrt_ratio_a_x96 == sqrt_ratio_b_x96:
            raise InvalidRangeError("Liquidity range has zero width")

        return mul_div(amount1, Q96, sqrt_ratio_b_x96 - sqrt_ratio_a_x96)

    @staticmethod
    def get_liquidity_for_amounts(
        sqrt_ratio_x96: int,
        sqrt_ratio_a_x96: int,
        sqrt_ratio_b_x96: int,
        amount0: int,
        amount1: int
    ) -> int:
        """Calculate the maximum liquidity the given token amounts can mint."""
        if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
            sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96

        if sqrt_ratio_x96 <= sqrt_ratio_a_x96:
            # Current price below range, only amount0 is active
            return PriceMath.get_liquidity_for_amount0(sqrt_ratio_a_x96, sqrt_ratio_b_x96, amount0)
        if sqrt_ratio_x96 < sqrt_ratio_b_x96:
            # Current price within range, both tokens active
            liquidity0 = PriceMath.get_liquidity_for_amount0(sqrt_ratio_x96, sqrt_ratio_b_x96, amount0)
            liquidity1 = PriceMath.get_liquidity_for_amount1(sqrt_ratio_a_x96, sqrt_ratio_x96, amount1)
            return min(liquidity0, liquidity1)
        # Current price above range, only amount1 is active
        return PriceMath.get_liquidity_for_amount1(sqrt_ratio_a_x96, sqrt_ratio_b_x96, amount1)

    @staticmethod
    def get_amount0_delta(
        sqrt_ratio_a_x96: int,
        sqrt_ratio_b_x96: int,
        liquidity: int,
        round_up: bool
    ) -> int:
        """Token0 owed for liquidity between two prices."""
        if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
            sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96
        if sqrt_ratio_a_x96 <= 0:
            raise InvalidRangeError("Sqrt price must be positive")

        numerator1 = liquidity << 96
        numerator2 = sqrt_ratio_b_x96 - sqrt_ratio_a_x96
        if round_up:
            return div_rounding_up(
                mul_div_rounding_up(numerator1, numerator2, sqrt_ratio_b_x96),
                sqrt_ratio_a_x96
            )
        return mul_div(numerator1, numerator2, sqrt_ratio_b_x96) // sqrt_ratio_a_x96

    @staticmethod
    def get_amount1_delta(
        sqrt_ratio_a_x96: int,
        sqrt_ratio_b_x96: int,
        liquidity: int,
        round_up: bool
    ) -> int:
        """Token1 owed for liquidity between two prices."""
        if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
            sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96

        if round_up:
            return mul_div_rounding_up(liquidity, sqrt_ratio_b_x96 - sqrt_ratio_a_x96, Q96)
        return mul_div(liquidity, sqrt_ratio_b_x96 - sqrt_ratio_a_x96, Q96)

    @staticmethod
    def get_mint_amounts(
        sqrt_ratio_x96: int,
        sqrt_ratio_a_x96: int,
        sqrt_ratio_b_x96: int,
        liquidity: int
    ):
        """Amounts a pool charges to mint liquidity (rounded up)."""
        if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
            sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96

        if sqrt_ratio_x96 <= sqrt_ratio_a_x96:
            return PriceMath.get_amount0_delta(sqrt_ratio_a_x96, sqrt_ratio_b_x96, liquidity, True), 0
        if sqrt_ratio_x96 < sqrt_ratio_b_x96:
            return (
                PriceMath.get_amount0_delta(sqrt_ratio_x96, sqrt_ratio_b_x96, liquidity, True),
                PriceMath.get_amount1_delta(sqrt_ratio_a_x96, sqrt_ratio_x96, liquidity, True)
            )
        return 0, PriceMath.get_amount1_delta(sqrt_ratio_a_x96, sqrt_ratio_b_x96, liquidity, True)

    @staticmethod
    def get_next_sqrt_price_from_amount0_rounding_up(
        sqrt_price_x96: int,
        liquidity: int,
        amount: int,
        add: bool
    ) -> int:
        if amount == 0:
            return sqrt_price_x96
        numerator1 = liquidity << 96
        product = amount * sqrt_price_x96
        if add:
            return mul_div_rounding_up(numerator1, sqrt_price_x96, numerator1 + product)

        if numerator1 <= product:
            raise InvalidRangeError("Output exceeds token0 reserves of the active range")
        return mul_div_rounding_up(numerator1, sqrt_price_x96, numerator1 - product)

    @staticmethod
    def get_next_sqrt_price_from_amount1_rounding_down(
        sqrt_price_x96: int,
        liquidity: int,
        amount: int,
        add: bool
    ) -> int:
        if add:
            return sqrt_price_x96 + (amount << 96) // liquidity

        quotient = div_rounding_up(amount << 96, liquidity)
        if sqrt_price_x96 <= quotient:
            raise InvalidRangeError("Output exceeds token1 reserves of the active range")
        return sqrt_price_x96 - quotient

    @staticmethod
    def get_next_sqrt_price_from_input(
        sqrt_price_x96: int,
        liquidity: int,
        amount_in: int,
        zero_for_one: bool
    ) -> int:
        """Price after adding amount_in of the input token."""
        if sqrt_price_x96 <= 0 or liquidity <= 0:
            raise InvalidRangeError("Price and liquidity must be positive")
        if zero_for_one:
            return PriceMath.get_next_sqrt_price_from_amount0_rounding_up(
                sqrt_price_x96, liquidity, amount_in, True
            )
        return PriceMath.get_next_sqrt_price_from_amount1_rounding_down(
            sqrt_price_x96, liquidity, amount_in, True
        )

    @staticmethod
    def get_next_sqrt_price_from_output(
        sqrt_price_x96: int,
        liquidity: int,
        amount_out: int,
        zero_for_one: bool
    ) -> int:
        """Price after removing amount_out of the output token."""
        if sqrt_price_x96 <= 0 or liquidity <= 0:
            raise InvalidRangeError("Price and liquidity must be positive")
        if zero_for_one:
            return PriceMath.get_next_sqrt_price_from_amount1_rounding_down(
                sqrt_price_x96, liquidity, amount_out, False
            )
        return PriceMath.get_next_sqrt_price_from_amount0_rounding_up(
            sqrt_price_x96, liquidity, amount_out, False
        )
