"""Paired normal-vs-protected MEV simulation on an in-process ledger."""

from securelp_core.simulation.accounts import Account, create_accounts
from securelp_core.simulation.attacker import AttackPlan, SandwichAttacker
from securelp_core.simulation.cache import TTLCache
from securelp_core.simulation.config import (
    LAMPORTS_PER_SOL,
    SimulationConfig,
    format_sol,
    lamports_to_sol,
    sol_to_lamports,
)
from securelp_core.simulation.ledger import Confirmation, LocalLedger
from securelp_core.simulation.orchestrator import (
    SimulationOrchestrator,
    calculate_summary,
    initial_pool,
)
from securelp_core.simulation.traders import NormalTrader, ProtectedTrader
from securelp_core.simulation.transaction import SignedTransaction

__all__ = [
    "Account",
    "AttackPlan",
    "Confirmation",
    "LAMPORTS_PER_SOL",
    "LocalLedger",
    "NormalTrader",
    "ProtectedTrader",
    "SandwichAttacker",
    "SignedTransaction",
    "SimulationConfig",
    "SimulationOrchestrator",
    "TTLCache",
    "calculate_summary",
    "create_accounts",
    "format_sol",
    "initial_pool",
    "lamports_to_sol",
    "sol_to_lamports",
]
