"""SecureLP MEV simulation CLI.

Usage:
    securelp-sim run --transactions 100 --attack-prob 0.8 --min-swap 0.1 --max-swap 5
    securelp-sim report output/simulation_<ts>.json
    securelp-sim explain
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from securelp_core.analytics.collector import (
    format_summary,
    load_results,
    save_results,
    save_summary,
)
from securelp_core.analytics.metrics import comparison_metrics, loss_distribution
from securelp_core.errors import SetupError
from securelp_core.protocol.mempool import MempoolVisibilityModel
from securelp_core.simulation.config import (
    DEFAULT_ATTACK_PROBABILITY,
    DEFAULT_MAX_SWAP_SOL,
    DEFAULT_MIN_SWAP_SOL,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_POOL_LIQUIDITY_SOL,
    DEFAULT_TRANSACTIONS,
    SimulationConfig,
    format_sol,
    sol_to_lamports,
)
from securelp_core.simulation.orchestrator import SimulationOrchestrator

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"


def configure_logging(output_dir: Path | None = None, verbose: bool = False) -> None:
    """Root handlers: stderr, plus ``simulation.log`` in output_dir if given."""
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.handlers.clear()
    fmt = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(fmt)
    root.addHandler(stream_handler)

    if output_dir is not None:
        output_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(output_dir / "simulation.log", encoding="utf-8")
        file_handler.setFormatter(fmt)
        root.addHandler(file_handler)


def config_from_args(args: argparse.Namespace) -> SimulationConfig:
    return SimulationConfig(
        transactions=args.transactions,
        attack_probability=args.attack_prob,
        min_swap_lamports=sol_to_lamports(args.min_swap),
        max_swap_lamports=sol_to_lamports(args.max_swap),
        initial_liquidity=sol_to_lamports(args.liquidity),
        seed=args.seed,
        output_dir=str(args.output),
    )


def cmd_run(args: argparse.Namespace) -> int:
    configure_logging(args.output, args.verbose)
    config = config_from_args(args)
    orchestrator = SimulationOrchestrator(config)
    try:
        results = asyncio.run(orchestrator.run())
    except SetupError as exc:
        logger.error("setup failed: %s", exc)
        return 1

    print(format_summary(results))
    results_path = save_results(results, args.output)
    summary_path = save_summary(results, args.output)
    print(f"Results: {results_path}")
    print(f"Summary: {summary_path}")
    return 0


def cmd_report(args: argparse.Namespace) -> int:
    configure_logging(verbose=args.verbose)
    path = Path(args.results_file)
    if not path.exists():
        print(f"Results file not found: {path}", file=sys.stderr)
        return 1
    results = load_results(path)
    print(format_summary(results))

    comparison = comparison_metrics(results)
    print("COMPARISON")
    print("----------")
    print(f"Normal slippage loss:    {format_sol(comparison.normal_total_loss)} SOL")
    print(f"Protected slippage loss: {format_sol(comparison.protected_total_loss)} SOL")
    print(f"Savings:                 {format_sol(comparison.savings)} SOL "
          f"({comparison.savings_percentage:.1f}%)")

    buckets = loss_distribution(results)
    if buckets:
        print()
        print("LOSS DISTRIBUTION (SOL)")
        print("-----------------------")
        for bucket in buckets:
            print(f"{bucket.label:>17}  {'#' * bucket.count} {bucket.count}")
    return 0


def cmd_explain(args: argparse.Namespace) -> int:
    print(MempoolVisibilityModel.explain_protection())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="securelp-sim",
        description="Sandwich-attack simulation: normal swaps vs commit-reveal",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")

    # run
    p_run = sub.add_parser("run", help="Run the paired simulation")
    p_run.add_argument("--transactions", type=int, default=DEFAULT_TRANSACTIONS,
                       help="Number of paired scenarios")
    p_run.add_argument("--attack-prob", type=float, default=DEFAULT_ATTACK_PROBABILITY,
                       help="Probability an attacker watches each trade")
    p_run.add_argument("--min-swap", default=DEFAULT_MIN_SWAP_SOL, help="Minimum swap (SOL)")
    p_run.add_argument("--max-swap", default=DEFAULT_MAX_SWAP_SOL, help="Maximum swap (SOL)")
    p_run.add_argument("--liquidity", default=DEFAULT_POOL_LIQUIDITY_SOL,
                       help="Initial pool liquidity per side (SOL)")
    p_run.add_argument("--output", type=Path, default=Path(DEFAULT_OUTPUT_DIR),
                       help="Output directory")
    p_run.add_argument("--seed", type=int, default=None, help="RNG seed")

    # report
    p_report = sub.add_parser("report", help="Summarize a saved results file")
    p_report.add_argument("results_file", help="Path to simulation_<ts>.json")

    # explain
    sub.add_parser("explain", help="Explain why commit-reveal defeats sandwiches")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "run": cmd_run,
        "report": cmd_report,
        "explain": cmd_explain,
    }
    return commands[args.command](args)


if __name__ == "__main__":
    raise SystemExit(main())
