"""Tests for result persistence, derived metrics and the CLI."""

from __future__ import annotations

import json
import logging

import pytest

from securelp_core.analytics.collector import (
    format_summary,
    load_results,
    save_results,
    save_summary,
)
from securelp_core.analytics.metrics import (
    comparison_metrics,
    cumulative_losses,
    cumulative_mev,
    loss_distribution,
    price_impact_over_time,
    profit_distribution,
)
from securelp_core.cli import main
from securelp_core.models.trade import (
    PoolStateRecord,
    SandwichResult,
    SimulationConfigRecord,
    SimulationResults,
    SwapDirection,
    TradeResult,
)
from securelp_core.simulation.orchestrator import calculate_summary

SOL = 1_000_000_000


def trade(loss: int, attacked: bool = False, protected: bool = False) -> TradeResult:
    return TradeResult(
        signature="sig",
        trader="t",
        amount_in=5 * SOL,
        expected_out=4 * SOL,
        actual_out=4 * SOL - loss,
        slippage_loss=loss,
        direction=SwapDirection.A_TO_B,
        was_attacked=attacked,
        protected=protected,
        timestamp=0,
    )


def make_results() -> SimulationResults:
    sandwiches = [
        SandwichResult(success=True, profit_lamports=SOL // 100, victim_loss_lamports=SOL // 20),
        SandwichResult(success=False, reason="not profitable"),
        SandwichResult(success=True, profit_lamports=SOL // 50, victim_loss_lamports=SOL // 10),
    ]
    normal = [trade(SOL // 20, True), trade(0), trade(SOL // 10, True)]
    protected = [trade(0, protected=True) for _ in range(3)]
    history = [
        PoolStateRecord(transaction_id=i, reserve_a=1000 * SOL, reserve_b=1000 * SOL,
                        price_a_in_b=1.0 + i / 100, scenario=scenario)
        for i in range(3)
        for scenario in ("normal", "protected")
    ]
    return SimulationResults(
        config=SimulationConfigRecord(
            transactions=3, attack_probability=0.8, min_swap_lamports=SOL // 10,
            max_swap_lamports=5 * SOL, initial_pool_liquidity=1000 * SOL, fee_bps=30,
        ),
        normal_trades=normal,
        protected_trades=protected,
        sandwich_results=sandwiches,
        pool_history=history,
        summary=calculate_summary([], normal, protected, sandwiches),
    )


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSummary:
    def test_aggregates(self):
        summary = make_results().summary
        assert summary.successful_attacks == 2
        assert summary.total_mev_extracted == SOL // 100 + SOL // 50
        assert summary.total_victim_losses == SOL // 20 + SOL // 10
        assert summary.total_protected_savings == summary.total_victim_losses
        assert summary.normal_attacked == 2
        assert summary.protected_attacked == 0

    def test_empty_run(self):
        summary = calculate_summary([], [], [], [])
        assert summary.attack_success_rate == 0.0
        assert summary.avg_loss_per_attack == 0.0
        assert summary.avg_trade_amount == 0.0


class TestCollector:
    def test_json_round_trip(self, tmp_path):
        results = make_results()
        path = save_results(results, tmp_path)
        assert path.name.startswith("simulation_")
        assert load_results(path) == results

    def test_lamports_written_as_strings(self, tmp_path):
        path = save_results(make_results(), tmp_path)
        data = json.loads(path.read_text())
        assert data["summary"]["total_victim_losses"] == str(SOL // 20 + SOL // 10)
        assert data["normal_trades"][0]["amount_in"] == str(5 * SOL)
        assert data["summary"]["successful_attacks"] == 2

    def test_large_values_survive(self, tmp_path):
        big = 2**60 + 1
        results = make_results().model_copy(
            update={"sandwich_results": [SandwichResult(success=True, profit_lamports=big)]}
        )
        loaded = load_results(save_results(results, tmp_path))
        assert loaded.sandwich_results[0].profit_lamports == big

    def test_summary_text(self, tmp_path):
        results = make_results()
        text = format_summary(results)
        assert "MEV SIMULATION SUMMARY" in text
        assert "Successful Attacks:    2" in text
        assert "Protection Rate:       100%" in text
        path = save_summary(results, tmp_path)
        assert path.read_text() == text


class TestMetrics:
    def test_cumulative(self):
        points = cumulative_mev(make_results())
        assert [p.value for p in points] == [0.01, 0.01, 0.03]
        losses = cumulative_losses(make_results())
        assert losses[-1].value == pytest.approx(0.15)

    def test_loss_distribution(self):
        buckets = loss_distribution(make_results())
        assert len(buckets) == 10
        assert sum(b.count for b in buckets) == 2

    def test_single_value_distribution(self):
        results = make_results().model_copy(
            update={"sandwich_results": [SandwichResult(success=True, profit_lamports=SOL)]}
        )
        buckets = profit_distribution(results)
        assert len(buckets) == 1
        assert buckets[0].count == 1

    def test_empty_distribution(self):
        results = make_results().model_copy(update={"sandwich_results": []})
        assert loss_distribution(results) == []
        assert cumulative_mev(results) == []

    def test_price_series_uses_normal_side(self):
        points = price_impact_over_time(make_results())
        assert [p.transaction for p in points] == [0, 1, 2]

    def test_comparison(self):
        comparison = comparison_metrics(make_results())
        assert comparison.normal_total_loss == SOL // 20 + SOL // 10
        assert comparison.protected_total_loss == 0
        assert comparison.savings_percentage == 100.0
        assert comparison.attacked_transactions == 2


class TestCli:
    def test_explain(self, capsys):
        assert main(["explain"]) == 0
        assert "COMMIT-REVEAL" in capsys.readouterr().out

    def test_no_command(self, capsys):
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out.lower()

    def test_run_and_report(self, tmp_path, capsys, restore_logging):
        code = main([
            "run", "--transactions", "3", "--seed", "3",
            "--min-swap", "4", "--max-swap", "5", "--output", str(tmp_path),
        ])
        assert code == 0
        results_files = list(tmp_path.glob("simulation_*.json"))
        assert len(results_files) == 1
        assert list(tmp_path.glob("summary_*.txt"))
        assert (tmp_path / "simulation.log").exists()
        capsys.readouterr()

        assert main(["report", str(results_files[0])]) == 0
        out = capsys.readouterr().out
        assert "MEV SIMULATION SUMMARY" in out
        assert "COMPARISON" in out

    def test_run_invalid_config(self, tmp_path, restore_logging):
        assert main(["run", "--transactions", "0", "--output", str(tmp_path)]) == 1

    def test_run_swap_below_commit_minimum(self, tmp_path, restore_logging):
        assert main(["run", "--min-swap", "0.0001", "--output", str(tmp_path)]) == 1
        assert not list(tmp_path.glob("simulation_*.json"))

    def test_report_missing_file(self, tmp_path, restore_logging):
        assert main(["report", str(tmp_path / "missing.json")]) == 1
