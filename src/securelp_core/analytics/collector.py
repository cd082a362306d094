"""Persisting simulation results.

Two derived artifacts per run, both timestamped:
  simulation_<ts>.json  full results; lamport amounts as decimal strings
  summary_<ts>.txt      human-readable summary
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from securelp_core.models.trade import SimulationResults
from securelp_core.simulation.config import format_sol

logger = logging.getLogger(__name__)


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")


def save_results(results: SimulationResults, output_dir: str | Path) -> Path:
    """Write results as JSON. Returns the file path."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"simulation_{_timestamp()}.json"
    path.write_text(results.model_dump_json(indent=2))
    logger.info("results saved to %s", path)
    return path


def load_results(path: str | Path) -> SimulationResults:
    """Load a results file written by save_results."""
    return SimulationResults.model_validate_json(Path(path).read_text())


def format_summary(results: SimulationResults) -> str:
    s = results.summary
    c = results.config
    return f"""
MEV SIMULATION SUMMARY
======================
Generated: {results.generated_at.isoformat()}

CONFIGURATION
-------------
Total Transactions:    {s.total_transactions}
Attack Probability:    {c.attack_probability * 100:.0f}%
Swap Range:            {format_sol(c.min_swap_lamports)} - {format_sol(c.max_swap_lamports)} SOL
Pool Fee:              {c.fee_bps / 100}%
Failed Scenarios:      {s.failed_scenarios}

NORMAL TRADING (Vulnerable to MEV)
----------------------------------
Attack Attempts:       {s.attack_attempts}
Successful Attacks:    {s.successful_attacks}
Attack Success Rate:   {s.attack_success_rate:.1f}%
Total MEV Extracted:   {format_sol(s.total_mev_extracted)} SOL
Total Victim Losses:   {format_sol(s.total_victim_losses)} SOL
Avg Loss per Attack:   {s.avg_loss_per_attack / 1e9:.6f} SOL

PROTECTED TRADING (Commit-Reveal)
---------------------------------
Attacks Possible:      {s.protected_attacked}
MEV Extracted:         0 SOL
TOTAL SAVINGS:         {format_sol(s.total_protected_savings)} SOL
Protection Rate:       100%

VOLUME STATISTICS
-----------------
Total Volume:          {format_sol(s.total_volume)} SOL
Average Trade:         {s.avg_trade_amount / 1e9:.4f} SOL
"""


def save_summary(results: SimulationResults, output_dir: str | Path) -> Path:
    """Write the plain-text summary. Returns the file path."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"summary_{_timestamp()}.txt"
    path.write_text(format_summary(results))
    logger.info("summary saved to %s", path)
    return path
