"""Paired MEV simulation: the same trade, unprotected and protected.

Each scenario draws (amount, direction) and a Bernoulli "attacker is
watching" decision, then runs the trade twice against independent clones
of the current market pool:

  normal     the victim's swap is visible; if an attack is attempted the
             attacker sizes a sandwich and, when profitable, front-runs,
             lets the victim land, and back-runs. Each leg is awaited to
             confirmation before the next is submitted.
  protected  the same trade goes through commit-reveal; the attacker
             sees the commit (a hash) and has nothing to act on.

The two halves run on separate ledgers so neither can affect the other.
Afterwards the market pool advances by the protected half's result, i.e.
the organic order flow without extraction. A scenario that raises is
logged and recorded as failed; aggregates only include finished scenarios.

Randomness comes from a seeded numpy Generator so runs are reproducible.
"""

from __future__ import annotations

import logging

import numpy as np

from securelp_core.amm.swap_math import PoolState, deposit_liquidity
from securelp_core.errors import SecureLPError, SetupError
from securelp_core.models.balances import Token
from securelp_core.models.trade import (
    PoolStateRecord,
    SandwichResult,
    ScenarioResult,
    SimulationResults,
    SimulationSummary,
    SwapDirection,
    TradeResult,
)
from securelp_core.simulation.accounts import create_accounts
from securelp_core.simulation.attacker import SandwichAttacker
from securelp_core.simulation.config import LAMPORTS_PER_SOL, SimulationConfig
from securelp_core.simulation.ledger import LocalLedger
from securelp_core.simulation.traders import NormalTrader, ProtectedTrader, expected_output

logger = logging.getLogger(__name__)

RENT_FUNDING = LAMPORTS_PER_SOL  # SOL per protected trader for commitment rent


def initial_pool(config: SimulationConfig) -> PoolState:
    """Pool seeded with ``initial_liquidity`` on both sides."""
    empty = PoolState(reserve_a=0, reserve_b=0, fee_bps=config.fee_bps, lp_supply=0)
    return deposit_liquidity(empty, config.initial_liquidity, config.initial_liquidity).pool


def pool_record(index: int, pool: PoolState, scenario: str) -> PoolStateRecord:
    return PoolStateRecord(
        transaction_id=index,
        reserve_a=pool.reserve_a,
        reserve_b=pool.reserve_b,
        price_a_in_b=pool.price_a_in_b(),
        scenario=scenario,
    )


def calculate_summary(
    scenarios: list[ScenarioResult],
    normal_trades: list[TradeResult],
    protected_trades: list[TradeResult],
    sandwich_results: list[SandwichResult],
) -> SimulationSummary:
    """Aggregate finished scenarios. Failed scenarios are only counted."""
    finished = [s for s in scenarios if not s.failed]
    attempts = sum(1 for s in finished if s.attack_attempted)
    successful = sum(1 for r in sandwich_results if r.success)
    total_mev = sum(r.profit_lamports for r in sandwich_results)
    total_losses = sum(r.victim_loss_lamports for r in sandwich_results)
    total_volume = sum(s.amount_in for s in finished)

    return SimulationSummary(
        total_transactions=len(scenarios),
        attack_attempts=attempts,
        successful_attacks=successful,
        attack_success_rate=successful / attempts * 100 if attempts else 0.0,
        normal_transactions=len(normal_trades),
        normal_attacked=sum(1 for t in normal_trades if t.was_attacked),
        protected_transactions=len(protected_trades),
        protected_attacked=sum(1 for t in protected_trades if t.was_attacked),
        total_mev_extracted=total_mev,
        total_victim_losses=total_losses,
        avg_loss_per_attack=total_losses / successful if successful else 0.0,
        # Protected trades cannot be sandwiched, so every lamport lost on the
        # normal side is a lamport the protected side kept
        total_protected_savings=total_losses,
        avg_trade_amount=total_volume / len(finished) if finished else 0.0,
        total_volume=total_volume,
        failed_scenarios=len(scenarios) - len(finished),
    )


class SimulationOrchestrator:
    """Drives N paired scenarios and collects their results."""

    def __init__(self, config: SimulationConfig | None = None) -> None:
        self.config = config or SimulationConfig()
        self._rng = np.random.default_rng(self.config.seed)
        self._market: PoolState | None = None
        self._normal_ledger: LocalLedger | None = None
        self._protected_ledger: LocalLedger | None = None
        self._normal_traders: list[NormalTrader] = []
        self._protected_traders: list[ProtectedTrader] = []
        self._attacker: SandwichAttacker | None = None
        self._watcher: SandwichAttacker | None = None

        self.scenarios: list[ScenarioResult] = []
        self.normal_trades: list[TradeResult] = []
        self.protected_trades: list[TradeResult] = []
        self.sandwich_results: list[SandwichResult] = []
        self.pool_history: list[PoolStateRecord] = []

    @property
    def market(self) -> PoolState:
        if self._market is None:
            msg = "Simulation not set up"
            raise SetupError(msg)
        return self._market

    # ── Setup ────────────────────────────────────────────────────────

    async def setup(self) -> None:
        """Create both ledgers, the traders and the attacker."""
        config = self.config
        try:
            config.validate()
        except ValueError as exc:
            raise SetupError(str(exc)) from exc

        self._market = initial_pool(config)
        self._normal_ledger = LocalLedger(
            self._market.clone(), confirmation_latency=config.confirmation_latency,
            name="normal",
        )
        self._protected_ledger = LocalLedger(
            self._market.clone(), confirmation_latency=config.confirmation_latency,
            name="protected",
        )

        funding = {
            Token.TOKEN_A: config.trader_funding,
            Token.TOKEN_B: config.trader_funding,
            Token.SOL: RENT_FUNDING,
        }
        normal_accounts = await create_accounts(
            self._normal_ledger, config.num_normal_traders, funding, config.setup_batch_size
        )
        protected_accounts = await create_accounts(
            self._protected_ledger, config.num_protected_traders, funding, config.setup_batch_size
        )
        self._normal_traders = [
            NormalTrader(a.identity, self._normal_ledger, config.victim_slippage_bps)
            for a in normal_accounts
        ]
        self._protected_traders = [
            ProtectedTrader(a.identity, self._protected_ledger, config.protected_slippage_bps)
            for a in protected_accounts
        ]

        attacker_funding = {
            Token.TOKEN_A: config.attacker_capital,
            Token.TOKEN_B: config.attacker_capital,
        }
        (attacker,) = await create_accounts(self._normal_ledger, 1, attacker_funding)
        (watcher,) = await create_accounts(self._protected_ledger, 1, attacker_funding)
        self._attacker = SandwichAttacker(attacker.identity, self._normal_ledger, config.attacker_capital)
        self._watcher = SandwichAttacker(watcher.identity, self._protected_ledger, config.attacker_capital)

        logger.info(
            "setup complete: %d normal, %d protected traders, pool %d/%d, fee %d bps",
            len(self._normal_traders), len(self._protected_traders),
            self._market.reserve_a, self._market.reserve_b, self._market.fee_bps,
        )

    # ── Run ──────────────────────────────────────────────────────────

    async def run(self) -> SimulationResults:
        if self._market is None:
            await self.setup()

        logger.info(
            "running %d scenarios (attack probability %.0f%%)",
            self.config.transactions, self.config.attack_probability * 100,
        )
        for i in range(self.config.transactions):
            await self.run_scenario(i)
            if (i + 1) % 10 == 0:
                logger.info("progress: %d/%d", i + 1, self.config.transactions)

        summary = calculate_summary(
            self.scenarios, self.normal_trades, self.protected_trades, self.sandwich_results
        )
        logger.info(
            "done: %d/%d attacks succeeded, %d lamports extracted",
            summary.successful_attacks, summary.attack_attempts, summary.total_mev_extracted,
        )
        return SimulationResults(
            config=self.config.to_record(),
            normal_trades=list(self.normal_trades),
            protected_trades=list(self.protected_trades),
            sandwich_results=list(self.sandwich_results),
            scenarios=list(self.scenarios),
            pool_history=list(self.pool_history),
            summary=summary,
        )

    def draw_trade(self) -> tuple[int, SwapDirection, bool]:
        """Draw (amount, direction, attack attempted) for one scenario."""
        amount = int(self._rng.integers(
            self.config.min_swap_lamports, self.config.max_swap_lamports, endpoint=True
        ))
        direction = SwapDirection.A_TO_B if self._rng.random() < 0.5 else SwapDirection.B_TO_A
        attempt = bool(self._rng.random() < self.config.attack_probability)
        return amount, direction, attempt

    async def run_scenario(self, index: int) -> ScenarioResult:
        # Draw before running so a failure never shifts later scenarios
        amount, direction, attempt = self.draw_trade()
        try:
            normal_trade, sandwich, normal_pool = await self._run_normal(
                index, amount, direction, attempt
            )
            protected_trade, protected_pool = await self._run_protected(index, amount, direction)
        except (SecureLPError, ValueError, OSError) as exc:
            logger.exception("scenario %d failed", index)
            result = ScenarioResult(
                index=index,
                amount_in=amount,
                direction=direction,
                attack_attempted=attempt,
                failed=True,
                error=f"{type(exc).__name__}: {exc}",
            )
            self.scenarios.append(result)
            return result

        executed = sandwich is not None and sandwich.success
        result = ScenarioResult(
            index=index,
            amount_in=amount,
            direction=direction,
            attack_attempted=attempt,
            attack_executed=executed,
            victim_loss_lamports=sandwich.victim_loss_lamports if sandwich else 0,
            attacker_profit_lamports=sandwich.profit_lamports if sandwich else 0,
            normal_pool=pool_record(index, normal_pool, "normal"),
            protected_pool=pool_record(index, protected_pool, "protected"),
        )
        self.normal_trades.append(normal_trade)
        self.protected_trades.append(protected_trade)
        if sandwich is not None:
            self.sandwich_results.append(sandwich)
        self.pool_history.extend([result.normal_pool, result.protected_pool])
        self.scenarios.append(result)
        self._market = protected_pool
        return result

    async def _run_normal(
        self,
        index: int,
        amount: int,
        direction: SwapDirection,
        attempt: bool,
    ) -> tuple[TradeResult, SandwichResult | None, PoolState]:
        ledger = self._normal_ledger
        attacker = self._attacker
        trader = self._normal_traders[index % len(self._normal_traders)]
        ledger.reset_pool(self.market.clone())
        await trader.ensure_balance(direction, amount)

        pool = await ledger.get_pool_state()
        expected = expected_output(pool, amount, direction)
        victim_tx = trader.build_swap(amount, direction, expected)

        if not attempt:
            trade = await trader.submit_swap(victim_tx, expected)
            return trade, None, await ledger.get_pool_state()

        await attacker.replenish()
        params = attacker.plan(ledger.observe(victim_tx), pool)
        if params is None:
            trade = await trader.submit_swap(victim_tx, expected)
            sandwich = SandwichResult(success=False, reason="not profitable")
            return trade, sandwich, await ledger.get_pool_state()

        plan = await attacker.front_run(params, direction)
        trade = await trader.submit_swap(victim_tx, expected, was_attacked=True)
        sandwich = await attacker.back_run(plan, trade.signature)
        logger.debug(
            "scenario %d sandwiched: profit=%d victim_loss=%d",
            index, sandwich.profit_lamports, sandwich.victim_loss_lamports,
        )
        return trade, sandwich, await ledger.get_pool_state()

    async def _run_protected(
        self,
        index: int,
        amount: int,
        direction: SwapDirection,
    ) -> tuple[TradeResult, PoolState]:
        ledger = self._protected_ledger
        trader = self._protected_traders[index % len(self._protected_traders)]
        ledger.reset_pool(self.market.clone())
        await trader.ensure_balance(direction, amount)
        trade = await trader.commit_and_reveal(amount, direction, watchers=[self._watcher.watch])
        return trade, await ledger.get_pool_state()
