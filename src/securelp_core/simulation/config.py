"""Simulation parameters.

All amounts are lamports internally; the CLI takes SOL and converts with
``sol_to_lamports`` (exact decimal arithmetic, no float rounding).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_DOWN, Decimal

from securelp_core.amm.swap_math import DEFAULT_FEE_BPS, MAX_FEE_BPS
from securelp_core.models.trade import SimulationConfigRecord
from securelp_core.protocol.commit_reveal import MIN_COMMIT_AMOUNT


# ── Constants ────────────────────────────────────────────────────────

LAMPORTS_PER_SOL = 1_000_000_000

DEFAULT_TRANSACTIONS = 100
DEFAULT_ATTACK_PROBABILITY = 0.8
DEFAULT_MIN_SWAP_SOL = "0.1"
DEFAULT_MAX_SWAP_SOL = "5"
DEFAULT_POOL_LIQUIDITY_SOL = "1000"       # per side
DEFAULT_NORMAL_TRADERS = 10
DEFAULT_PROTECTED_TRADERS = 10
DEFAULT_ATTACKER_CAPITAL_SOL = "500"      # per token
DEFAULT_TRADER_FUNDING_SOL = "50"         # per token
DEFAULT_PROTECTED_SLIPPAGE_BPS = 100
DEFAULT_SETUP_BATCH_SIZE = 5
DEFAULT_OUTPUT_DIR = "output"


def sol_to_lamports(sol: float | int | str | Decimal) -> int:
    """Convert SOL to lamports, truncating sub-lamport precision."""
    amount = Decimal(str(sol)) * LAMPORTS_PER_SOL
    return int(amount.to_integral_value(rounding=ROUND_DOWN))


def lamports_to_sol(lamports: int) -> float:
    return lamports / LAMPORTS_PER_SOL


def format_sol(lamports: int, decimals: int = 4) -> str:
    sign = "-" if lamports < 0 else ""
    whole, frac = divmod(abs(lamports), LAMPORTS_PER_SOL)
    frac_str = f"{frac:09d}"[:decimals]
    return f"{sign}{whole}.{frac_str}" if decimals else f"{sign}{whole}"


@dataclass
class SimulationConfig:
    """Configurable simulation parameters."""

    transactions: int = DEFAULT_TRANSACTIONS
    attack_probability: float = DEFAULT_ATTACK_PROBABILITY
    min_swap_lamports: int = field(default_factory=lambda: sol_to_lamports(DEFAULT_MIN_SWAP_SOL))
    max_swap_lamports: int = field(default_factory=lambda: sol_to_lamports(DEFAULT_MAX_SWAP_SOL))
    initial_liquidity: int = field(
        default_factory=lambda: sol_to_lamports(DEFAULT_POOL_LIQUIDITY_SOL)
    )
    fee_bps: int = DEFAULT_FEE_BPS
    num_normal_traders: int = DEFAULT_NORMAL_TRADERS
    num_protected_traders: int = DEFAULT_PROTECTED_TRADERS
    attacker_capital: int = field(
        default_factory=lambda: sol_to_lamports(DEFAULT_ATTACKER_CAPITAL_SOL)
    )
    trader_funding: int = field(
        default_factory=lambda: sol_to_lamports(DEFAULT_TRADER_FUNDING_SOL)
    )
    victim_slippage_bps: int | None = None   # None: victims send min_out = 0
    protected_slippage_bps: int = DEFAULT_PROTECTED_SLIPPAGE_BPS
    setup_batch_size: int = DEFAULT_SETUP_BATCH_SIZE
    confirmation_latency: float = 0.0        # seconds awaited per submitted transaction
    seed: int | None = None
    output_dir: str = DEFAULT_OUTPUT_DIR

    def validate(self) -> None:
        """Raise ValueError on inconsistent parameters."""
        if self.transactions <= 0:
            msg = f"transactions must be positive, got {self.transactions}"
            raise ValueError(msg)
        if not 0.0 <= self.attack_probability <= 1.0:
            msg = f"attack_probability must be in [0, 1], got {self.attack_probability}"
            raise ValueError(msg)
        if self.min_swap_lamports <= 0 or self.max_swap_lamports < self.min_swap_lamports:
            msg = (
                f"invalid swap range [{self.min_swap_lamports}, {self.max_swap_lamports}]"
            )
            raise ValueError(msg)
        if self.min_swap_lamports < MIN_COMMIT_AMOUNT:
            msg = (
                f"min_swap_lamports {self.min_swap_lamports} below the commit "
                f"minimum {MIN_COMMIT_AMOUNT}"
            )
            raise ValueError(msg)
        if self.initial_liquidity <= 0:
            msg = "initial_liquidity must be positive"
            raise ValueError(msg)
        if not 0 <= self.fee_bps <= MAX_FEE_BPS:
            msg = f"fee_bps must be in [0, {MAX_FEE_BPS}], got {self.fee_bps}"
            raise ValueError(msg)
        if self.num_normal_traders <= 0 or self.num_protected_traders <= 0:
            msg = "need at least one normal and one protected trader"
            raise ValueError(msg)
        if self.trader_funding < self.max_swap_lamports:
            msg = "trader_funding must cover max_swap_lamports"
            raise ValueError(msg)
        if self.setup_batch_size <= 0:
            msg = "setup_batch_size must be positive"
            raise ValueError(msg)

    def to_record(self) -> SimulationConfigRecord:
        return SimulationConfigRecord(
            transactions=self.transactions,
            attack_probability=self.attack_probability,
            min_swap_lamports=self.min_swap_lamports,
            max_swap_lamports=self.max_swap_lamports,
            initial_pool_liquidity=self.initial_liquidity,
            fee_bps=self.fee_bps,
            seed=self.seed,
        )
