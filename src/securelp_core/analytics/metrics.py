"""Derived metrics for charts and reports."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from securelp_core.models.trade import SimulationResults
from securelp_core.simulation.config import LAMPORTS_PER_SOL

HISTOGRAM_BUCKETS = 10


@dataclass(frozen=True)
class CumulativePoint:
    transaction: int
    value: float  # SOL


@dataclass(frozen=True)
class HistogramBucket:
    range_start: float
    range_end: float
    count: int
    label: str


@dataclass(frozen=True)
class PricePoint:
    transaction: int
    price: float


@dataclass(frozen=True)
class ComparisonMetrics:
    normal_total_loss: int
    protected_total_loss: int
    savings: int
    savings_percentage: float
    attacked_transactions: int
    protected_transactions: int


def _cumulative(values: list[int]) -> list[CumulativePoint]:
    if not values:
        return []
    sums = np.cumsum(np.array(values, dtype=object))
    return [
        CumulativePoint(transaction=i, value=int(total) / LAMPORTS_PER_SOL)
        for i, total in enumerate(sums)
    ]


def cumulative_mev(results: SimulationResults) -> list[CumulativePoint]:
    return _cumulative([r.profit_lamports for r in results.sandwich_results])


def cumulative_losses(results: SimulationResults) -> list[CumulativePoint]:
    return _cumulative([r.victim_loss_lamports for r in results.sandwich_results])


def _histogram(values: np.ndarray, precision: int) -> list[HistogramBucket]:
    if values.size == 0:
        return []
    low, high = float(values.min()), float(values.max())
    if low == high:
        return [HistogramBucket(low, high, int(values.size), f"{low:.{precision}f}")]
    counts, edges = np.histogram(values, bins=HISTOGRAM_BUCKETS, range=(low, high))
    return [
        HistogramBucket(
            range_start=float(edges[i]),
            range_end=float(edges[i + 1]),
            count=int(counts[i]),
            label=f"{edges[i]:.{precision}f}-{edges[i + 1]:.{precision}f}",
        )
        for i in range(len(counts))
    ]


def loss_distribution(results: SimulationResults) -> list[HistogramBucket]:
    """Histogram of non-zero victim losses, in SOL."""
    losses = np.array(
        [r.victim_loss_lamports for r in results.sandwich_results if r.victim_loss_lamports > 0],
        dtype=np.float64,
    ) / LAMPORTS_PER_SOL
    return _histogram(losses, precision=4)


def profit_distribution(results: SimulationResults) -> list[HistogramBucket]:
    """Histogram of attacker profit per executed sandwich, in SOL."""
    profits = np.array(
        [r.profit_lamports for r in results.sandwich_results if r.success],
        dtype=np.float64,
    ) / LAMPORTS_PER_SOL
    return _histogram(profits, precision=6)


def price_impact_over_time(results: SimulationResults) -> list[PricePoint]:
    return [
        PricePoint(transaction=h.transaction_id, price=h.price_a_in_b)
        for h in results.pool_history
        if h.scenario == "normal"
    ]


def comparison_metrics(results: SimulationResults) -> ComparisonMetrics:
    normal_loss = sum(t.slippage_loss for t in results.normal_trades)
    protected_loss = sum(t.slippage_loss for t in results.protected_trades)
    savings = max(normal_loss - protected_loss, 0)
    return ComparisonMetrics(
        normal_total_loss=normal_loss,
        protected_total_loss=protected_loss,
        savings=savings,
        savings_percentage=savings / normal_loss * 100 if normal_loss > 0 else 0.0,
        attacked_transactions=sum(1 for t in results.normal_trades if t.was_attacked),
        protected_transactions=len(results.protected_trades),
    )
