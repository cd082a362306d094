"""Liquid staking pool: SOL in, slpSOL out, and back.

Deposits mint slpSOL at the current exchange rate. A fixed share of each
deposit (RESERVE_RATIO_BPS) stays in a liquid reserve; the rest counts as
staked. Withdrawals burn slpSOL and are paid from the reserve only, so an
instant unstake larger than the reserve fails with InsufficientLiquidity.

Rewards are simulated per epoch (19 / 100_000 of staked SOL), minus the
protocol fee, and raise the exchange rate for every holder.
"""

from __future__ import annotations

import logging

from securelp_core.amm.swap_math import (
    BPS_DENOMINATOR,
    RESERVE_RATIO_BPS,
    SwapQuote,
    exchange_rate,
    reserve_portion,
    slp_for_deposit,
    sol_for_withdrawal,
)
from securelp_core.errors import (
    AmountTooSmall,
    InsufficientLiquidity,
    PoolPaused,
    SlippageTooHigh,
)
from securelp_core.models.balances import BalanceTracker, Token
from securelp_core.models.commitment import IntentKind

logger = logging.getLogger(__name__)


# ── Constants ────────────────────────────────────────────────────────

MIN_DEPOSIT_LAMPORTS = 10_000_000     # 0.01 SOL
REWARD_RATE_PER_EPOCH = 19            # per 100_000 of staked SOL
REWARD_RATE_DENOMINATOR = 100_000


class StakePool:
    """Stake pool execution target. STAKE deposits, UNSTAKE withdraws."""

    def __init__(
        self,
        balances: BalanceTracker,
        fee_bps: int = 0,
        min_deposit: int = MIN_DEPOSIT_LAMPORTS,
        reserve_ratio_bps: int = RESERVE_RATIO_BPS,
        address: str = "stake-pool",
    ) -> None:
        self.address = address
        self.fee_bps = fee_bps
        self.min_deposit = min_deposit
        self.reserve_ratio_bps = reserve_ratio_bps
        self._balances = balances
        self._total_staked = 0
        self._reserve = 0
        self._slp_supply = 0
        self._paused = False
        self._last_harvest_epoch = 0

    @property
    def total_sol(self) -> int:
        return self._total_staked + self._reserve

    @property
    def reserve_lamports(self) -> int:
        return self._reserve

    @property
    def total_staked(self) -> int:
        return self._total_staked

    @property
    def slp_supply(self) -> int:
        return self._slp_supply

    @property
    def exchange_rate(self) -> int:
        return exchange_rate(self.total_sol, self._slp_supply)

    def set_paused(self, paused: bool) -> None:
        self._paused = paused

    # ── Deposit / withdraw ───────────────────────────────────────────

    def deposit_sol(self, owner: str, lamports: int, min_slp_out: int = 0) -> int:
        """Deposit SOL, mint slpSOL. Returns the amount minted."""
        self._check_not_paused()
        if lamports < self.min_deposit:
            raise AmountTooSmall(lamports, self.min_deposit)
        minted = slp_for_deposit(lamports, self.total_sol, self._slp_supply)
        if minted == 0:
            msg = "Deposit mints zero slpSOL"
            raise InsufficientLiquidity(msg)
        if minted < min_slp_out:
            msg = f"slpSOL minted {minted} below minimum {min_slp_out}"
            raise SlippageTooHigh(msg)

        self._balances.debit(owner, Token.SOL, lamports)
        self._balances.credit(owner, Token.SLP_SOL, minted)
        kept = reserve_portion(lamports, self.reserve_ratio_bps)
        self._reserve += kept
        self._total_staked += lamports - kept
        self._slp_supply += minted
        logger.debug("stake deposit %s: sol=%d slp=%d", owner[:8], lamports, minted)
        return minted

    def withdraw_sol(self, owner: str, slp_amount: int, min_sol_out: int = 0) -> int:
        """Burn slpSOL, pay SOL from the liquid reserve. Returns lamports paid."""
        self._check_not_paused()
        if slp_amount <= 0:
            msg = "slpSOL amount must be positive"
            raise InsufficientLiquidity(msg)
        sol_out = sol_for_withdrawal(slp_amount, self.total_sol, self._slp_supply)
        if sol_out == 0:
            msg = "Withdrawal returns zero SOL"
            raise InsufficientLiquidity(msg)
        if sol_out > self._reserve:
            msg = f"Reserve {self._reserve} cannot cover instant withdrawal of {sol_out}"
            raise InsufficientLiquidity(msg)
        if sol_out < min_sol_out:
            msg = f"SOL returned {sol_out} below minimum {min_sol_out}"
            raise SlippageTooHigh(msg)

        self._balances.debit(owner, Token.SLP_SOL, slp_amount)
        self._balances.credit(owner, Token.SOL, sol_out)
        self._reserve -= sol_out
        self._slp_supply -= slp_amount
        logger.debug("stake withdraw %s: slp=%d sol=%d", owner[:8], slp_amount, sol_out)
        return sol_out

    # ── Execution target ─────────────────────────────────────────────

    def quote(self, amount_in: int, intent: IntentKind) -> SwapQuote:
        if intent is IntentKind.STAKE:
            out = slp_for_deposit(amount_in, self.total_sol, self._slp_supply)
        else:
            out = sol_for_withdrawal(amount_in, self.total_sol, self._slp_supply)
        return SwapQuote(amount_out=out, fee_amount=0)

    def execute(
        self, owner: str, amount_in: int, min_out: int, intent: IntentKind
    ) -> SwapQuote:
        if intent is IntentKind.STAKE:
            out = self.deposit_sol(owner, amount_in, min_slp_out=min_out)
        else:
            out = self.withdraw_sol(owner, amount_in, min_sol_out=min_out)
        return SwapQuote(amount_out=out, fee_amount=0)

    # ── Rewards ──────────────────────────────────────────────────────

    def harvest_rewards(self, epoch: int) -> int:
        """Accrue simulated rewards up to ``epoch``. Returns net lamports added."""
        self._check_not_paused()
        if epoch <= self._last_harvest_epoch:
            msg = f"Epoch {epoch} already harvested (last {self._last_harvest_epoch})"
            raise ValueError(msg)
        epochs = epoch - self._last_harvest_epoch
        rewards = (
            self._total_staked * REWARD_RATE_PER_EPOCH * epochs // REWARD_RATE_DENOMINATOR
        )
        protocol_fee = rewards * self.fee_bps // BPS_DENOMINATOR
        net = rewards - protocol_fee
        self._total_staked += net
        self._last_harvest_epoch = epoch
        if net:
            logger.info(
                "harvested %d lamports (%d net after %d fee) over %d epochs",
                rewards, net, protocol_fee, epochs,
            )
        return net

    def _check_not_paused(self) -> None:
        if self._paused:
            msg = f"Pool {self.address} is paused"
            raise PoolPaused(msg)
