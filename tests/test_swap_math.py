"""Tests for constant-product pricing."""

from __future__ import annotations

import math

import pytest

from securelp_core.amm.swap_math import (
    MINIMUM_LIQUIDITY,
    U64_MAX,
    PoolState,
    apply_fee,
    apply_swap,
    deposit_liquidity,
    exchange_rate,
    integer_sqrt,
    min_output_for_slippage,
    reserve_portion,
    slp_for_deposit,
    sol_for_withdrawal,
    swap_output,
    withdraw_liquidity,
)
from securelp_core.errors import InsufficientLiquidity, MathOverflow
from securelp_core.models.trade import SwapDirection

SOL = 1_000_000_000


class TestSwapOutput:
    def test_known_value(self):
        quote = swap_output(1_000_000, 1_000_000_000, 1_000_000_000, 30)
        after_fee = 1_000_000 * 9970 // 10000
        assert quote.fee_amount == 1_000_000 - after_fee
        assert quote.amount_out == 1_000_000_000 * after_fee // (1_000_000_000 + after_fee)

    def test_deterministic(self):
        first = swap_output(5 * SOL, 1000 * SOL, 1000 * SOL, 30)
        for _ in range(5):
            assert swap_output(5 * SOL, 1000 * SOL, 1000 * SOL, 30) == first

    def test_never_drains_reserve(self):
        for amount in (1, 10**6, 10**12, 10**18, U64_MAX - 1000):
            quote = swap_output(amount, 1000, 1000, 30)
            assert quote.amount_out < 1000

    def test_monotonic_in_amount(self):
        outs = [swap_output(x, 10**12, 5 * 10**11, 30).amount_out for x in range(0, 10**10, 10**8)]
        assert outs == sorted(outs)

    def test_zero_fee(self):
        quote = swap_output(100, 1000, 1000, 0)
        assert quote.fee_amount == 0
        assert quote.amount_out == 1000 * 100 // 1100

    def test_empty_reserve_rejected(self):
        with pytest.raises(InsufficientLiquidity):
            swap_output(100, 0, 1000, 30)
        with pytest.raises(InsufficientLiquidity):
            swap_output(100, 1000, 0, 30)

    def test_out_of_range_input(self):
        with pytest.raises(MathOverflow):
            swap_output(U64_MAX + 1, 1000, 1000, 30)
        with pytest.raises(MathOverflow):
            swap_output(-1, 1000, 1000, 30)

    def test_invalid_fee(self):
        with pytest.raises(ValueError):
            apply_fee(100, 10_001)

    def test_price_impact_grows_with_size(self):
        small = swap_output(SOL, 1000 * SOL, 1000 * SOL, 30)
        large = swap_output(100 * SOL, 1000 * SOL, 1000 * SOL, 30)
        assert large.price_impact_bps > small.price_impact_bps


class TestApplySwap:
    def test_reserves_move_and_k_grows(self):
        pool = PoolState(reserve_a=1000 * SOL, reserve_b=1000 * SOL, fee_bps=30)
        new_pool, quote = apply_swap(pool, 5 * SOL, SwapDirection.A_TO_B)
        assert new_pool.reserve_a == pool.reserve_a + 5 * SOL
        assert new_pool.reserve_b == pool.reserve_b - quote.amount_out
        assert new_pool.k >= pool.k
        assert new_pool.reserve_b > 0

    def test_input_pool_untouched(self):
        pool = PoolState(reserve_a=1000, reserve_b=2000)
        apply_swap(pool, 100, SwapDirection.B_TO_A)
        assert (pool.reserve_a, pool.reserve_b) == (1000, 2000)

    def test_b_to_a(self):
        pool = PoolState(reserve_a=1000, reserve_b=2000, fee_bps=0)
        new_pool, quote = apply_swap(pool, 200, SwapDirection.B_TO_A)
        assert quote.amount_out == 1000 * 200 // 2200
        assert new_pool.reserve_b == 2200
        assert new_pool.reserve_a == 1000 - quote.amount_out

    def test_zero_amount_rejected(self):
        pool = PoolState(reserve_a=1000, reserve_b=1000)
        with pytest.raises(InsufficientLiquidity):
            apply_swap(pool, 0, SwapDirection.A_TO_B)

    def test_zero_output_rejected(self):
        pool = PoolState(reserve_a=10**12, reserve_b=10)
        with pytest.raises(InsufficientLiquidity):
            apply_swap(pool, 1, SwapDirection.A_TO_B)

    def test_reserve_overflow(self):
        pool = PoolState(reserve_a=U64_MAX - 10, reserve_b=U64_MAX - 10, fee_bps=0)
        with pytest.raises(MathOverflow):
            apply_swap(pool, 100, SwapDirection.A_TO_B)


class TestLiquidity:
    def test_first_deposit_locks_minimum(self):
        empty = PoolState(reserve_a=0, reserve_b=0, lp_supply=0)
        result = deposit_liquidity(empty, 4_000_000, 1_000_000)
        assert result.lp_amount == 2_000_000 - MINIMUM_LIQUIDITY
        assert result.pool.lp_supply == 2_000_000
        assert (result.pool.reserve_a, result.pool.reserve_b) == (4_000_000, 1_000_000)

    def test_first_deposit_one_side_zero(self):
        empty = PoolState(reserve_a=0, reserve_b=0)
        with pytest.raises(InsufficientLiquidity):
            deposit_liquidity(empty, 1_000_000, 0)

    def test_first_deposit_too_small(self):
        empty = PoolState(reserve_a=0, reserve_b=0)
        with pytest.raises(InsufficientLiquidity):
            deposit_liquidity(empty, 1000, 1000)

    def test_proportional_deposit(self):
        pool = PoolState(reserve_a=1000, reserve_b=2000, lp_supply=500)
        result = deposit_liquidity(pool, 100, 200)
        assert result.lp_amount == 50

    def test_unbalanced_deposit_takes_scarcer_side(self):
        pool = PoolState(reserve_a=1000, reserve_b=2000, lp_supply=500)
        result = deposit_liquidity(pool, 100, 1000)
        assert result.lp_amount == 50

    def test_withdraw_proportional(self):
        pool = PoolState(reserve_a=1000, reserve_b=2000, lp_supply=500)
        result = withdraw_liquidity(pool, 100)
        assert (result.amount_a, result.amount_b) == (200, 400)
        assert result.pool.lp_supply == 400

    def test_withdraw_more_than_supply(self):
        pool = PoolState(reserve_a=1000, reserve_b=2000, lp_supply=500)
        with pytest.raises(InsufficientLiquidity):
            withdraw_liquidity(pool, 501)

    def test_withdraw_everything_rejected(self):
        pool = PoolState(reserve_a=1000, reserve_b=2000, lp_supply=500)
        with pytest.raises(InsufficientLiquidity):
            withdraw_liquidity(pool, 500)

    def test_integer_sqrt(self):
        assert integer_sqrt(0) == 0
        assert integer_sqrt(99) == 9
        assert integer_sqrt(10**36) == 10**18
        assert integer_sqrt(2**127) == math.isqrt(2**127)


class TestSlippageAndStakePricing:
    def test_min_output(self):
        assert min_output_for_slippage(10_000, 100) == 9_900
        assert min_output_for_slippage(10_000, 0) == 10_000

    def test_exchange_rate_initial(self):
        assert exchange_rate(0, 0) == 1_000_000_000

    def test_exchange_rate_after_rewards(self):
        assert exchange_rate(110, 100) == 1_100_000_000

    def test_slp_first_deposit_one_to_one(self):
        assert slp_for_deposit(5 * SOL, 0, 0) == 5 * SOL

    def test_slp_and_sol_pricing(self):
        assert slp_for_deposit(110, 110, 100) == 100
        assert sol_for_withdrawal(100, 110, 100) == 110
        assert sol_for_withdrawal(100, 0, 0) == 0

    def test_reserve_portion(self):
        assert reserve_portion(1_000_000) == 100_000


class TestPoolState:
    def test_reserves_by_direction(self):
        pool = PoolState(reserve_a=1, reserve_b=2)
        assert pool.reserves(SwapDirection.A_TO_B) == (1, 2)
        assert pool.reserves(SwapDirection.B_TO_A) == (2, 1)

    def test_clone_is_equal_and_independent(self):
        pool = PoolState(reserve_a=1000, reserve_b=2000, fee_bps=30, lp_supply=10)
        clone = pool.clone()
        assert clone == pool
        assert clone is not pool

    def test_rejects_bad_fee(self):
        with pytest.raises(ValueError):
            PoolState(reserve_a=1, reserve_b=1, fee_bps=10_001)

    def test_price(self):
        assert PoolState(reserve_a=100, reserve_b=250).price_a_in_b() == 2.5
        assert PoolState(reserve_a=0, reserve_b=250).price_a_in_b() == 0.0
