"""Data models for SecureLP: commitments, balances, simulation records."""

from securelp_core.models.balances import BalanceTracker, Token
from securelp_core.models.commitment import (
    COMMITMENT_SPACE,
    Commitment,
    CommitmentStore,
    IntentKind,
    SwapDetails,
    verify_commitment,
)
from securelp_core.models.trade import (
    Lamports,
    PoolStateRecord,
    SandwichResult,
    ScenarioResult,
    SimulationConfigRecord,
    SimulationResults,
    SimulationSummary,
    SwapDirection,
    TradeResult,
)

__all__ = [
    "BalanceTracker",
    "COMMITMENT_SPACE",
    "Commitment",
    "CommitmentStore",
    "IntentKind",
    "Lamports",
    "PoolStateRecord",
    "SandwichResult",
    "ScenarioResult",
    "SimulationConfigRecord",
    "SimulationResults",
    "SimulationSummary",
    "SwapDetails",
    "SwapDirection",
    "Token",
    "TradeResult",
    "verify_commitment",
]
