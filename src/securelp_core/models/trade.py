"""Per-scenario records produced by the MEV simulation.

All records are frozen: each is produced once per scenario and then only
read for aggregation and reporting. Lamport amounts are Python ints and
serialize to JSON as decimal strings so values above 2**53 survive any
JSON consumer.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

Lamports = Annotated[int, PlainSerializer(str, return_type=str, when_used="json")]


class SwapDirection(str, Enum):
    A_TO_B = "AtoB"
    B_TO_A = "BtoA"

    @property
    def opposite(self) -> SwapDirection:
        return SwapDirection.B_TO_A if self is SwapDirection.A_TO_B else SwapDirection.A_TO_B


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


class TradeResult(_Record):
    """Outcome of one trader's swap, normal or protected."""

    signature: str = Field(description="Transaction id of the executing transaction")
    trader: str
    amount_in: Lamports
    expected_out: Lamports = Field(description="Output quoted against the pre-trade pool")
    actual_out: Lamports
    slippage_loss: Lamports = Field(description="expected_out - actual_out, floored at zero")
    direction: SwapDirection
    was_attacked: bool = False
    fee_paid: Lamports = 0
    protected: bool = False
    timestamp: int = Field(description="Ledger clock at execution")


class SandwichResult(_Record):
    """Outcome of one sandwich attempt against a visible swap."""

    success: bool
    front_run_signature: str | None = None
    victim_signature: str | None = None
    back_run_signature: str | None = None
    front_run_amount: Lamports = 0
    back_run_amount: Lamports = 0
    profit_lamports: Lamports = Field(default=0, description="Simulated profit, ground truth")
    realized_profit_lamports: Lamports = Field(
        default=0, description="Profit measured from the attacker's balance deltas"
    )
    victim_loss_lamports: Lamports = 0
    reconciled: bool = Field(
        default=True, description="Whether realized and simulated profit agree"
    )
    reason: str | None = None


class PoolStateRecord(_Record):
    transaction_id: int
    reserve_a: Lamports
    reserve_b: Lamports
    price_a_in_b: float
    scenario: Literal["normal", "protected"]


class ScenarioResult(_Record):
    """Both halves of one paired scenario."""

    index: int
    amount_in: Lamports
    direction: SwapDirection
    attack_attempted: bool
    attack_executed: bool = False
    victim_loss_lamports: Lamports = 0
    attacker_profit_lamports: Lamports = 0
    normal_pool: PoolStateRecord | None = None
    protected_pool: PoolStateRecord | None = None
    failed: bool = False
    error: str | None = None


class SimulationSummary(_Record):
    total_transactions: int
    attack_attempts: int
    successful_attacks: int
    attack_success_rate: float = Field(description="Percent of attempts that executed")
    normal_transactions: int
    normal_attacked: int
    protected_transactions: int
    protected_attacked: int
    total_mev_extracted: Lamports
    total_victim_losses: Lamports
    avg_loss_per_attack: float = Field(description="Lamports per successful attack")
    total_protected_savings: Lamports
    avg_trade_amount: float = Field(description="Lamports per scenario trade")
    total_volume: Lamports
    failed_scenarios: int = 0


class SimulationConfigRecord(_Record):
    """The knobs a run was executed with, embedded in its results file."""

    transactions: int
    attack_probability: float
    min_swap_lamports: Lamports
    max_swap_lamports: Lamports
    initial_pool_liquidity: Lamports
    fee_bps: int
    seed: int | None = None


class SimulationResults(_Record):
    config: SimulationConfigRecord
    normal_trades: list[TradeResult] = Field(default_factory=list)
    protected_trades: list[TradeResult] = Field(default_factory=list)
    sandwich_results: list[SandwichResult] = Field(default_factory=list)
    scenarios: list[ScenarioResult] = Field(default_factory=list)
    pool_history: list[PoolStateRecord] = Field(default_factory=list)
    summary: SimulationSummary
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
