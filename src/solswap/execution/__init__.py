"""Swap execution: fee estimation, assembly, bundle confirmation and retries.

Provides:
- FeeEstimator: compute budget from simulation, priority fee from recent slots
- TransactionAssembler: budgeted v0 transaction from Jupiter instructions
- BundleConfirmation: submit / poll / resubmit state machine
- SwapController: attempt loop with widening slippage
"""

from solswap.execution.assembler import (
    SignedTransaction,
    TransactionAssembler,
    UnsignedTransaction,
    deserialize_instruction,
)
from solswap.execution.backoff import FixedDelay
from solswap.execution.bundle import (
    Bundle,
    BundleConfirmation,
    BundleEnvelope,
    BundleState,
    BundleStatus,
)
from solswap.execution.controller import (
    SwapAttemptState,
    SwapController,
    SwapResult,
    effective_slippage,
)
from solswap.execution.fees import FeeEstimator, PriorityFeeEstimate, SimulationResult

__all__ = [
    # Fees
    "FeeEstimator",
    "PriorityFeeEstimate",
    "SimulationResult",
    # Assembly
    "TransactionAssembler",
    "UnsignedTransaction",
    "SignedTransaction",
    "deserialize_instruction",
    # Bundles
    "Bundle",
    "BundleConfirmation",
    "BundleEnvelope",
    "BundleState",
    "BundleStatus",
    # Controller
    "SwapController",
    "SwapResult",
    "SwapAttemptState",
    "effective_slippage",
    "FixedDelay",
]
