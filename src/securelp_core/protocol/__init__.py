"""Commit-reveal protocol, authoritative clocks and mempool visibility."""

from securelp_core.protocol.clock import Clock, ManualClock, SystemClock
from securelp_core.protocol.commit_reveal import (
    MAX_SLIPPAGE_BPS,
    MIN_COMMIT_AMOUNT,
    MIN_DELAY_SECONDS,
    CommitmentHandle,
    CommitRevealProtocol,
    ExecutionReceipt,
    ProtocolConfig,
    rent_exempt_minimum,
)
from securelp_core.protocol.mempool import (
    MempoolVisibilityModel,
    PendingSwap,
    TransactionKind,
    VisibleFields,
)

__all__ = [
    "Clock",
    "CommitRevealProtocol",
    "CommitmentHandle",
    "ExecutionReceipt",
    "MAX_SLIPPAGE_BPS",
    "MIN_COMMIT_AMOUNT",
    "MIN_DELAY_SECONDS",
    "ManualClock",
    "MempoolVisibilityModel",
    "PendingSwap",
    "ProtocolConfig",
    "SystemClock",
    "TransactionKind",
    "VisibleFields",
    "rent_exempt_minimum",
]
