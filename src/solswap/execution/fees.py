"""Compute budget and priority fee estimation.

Compute units come from a dry-run of the exact instruction list; the priority
fee bid is the rounded-up mean of recent per-slot prioritization fees.
"""

import logging
import math
from dataclasses import dataclass, field
from decimal import ROUND_CEILING, Decimal
from typing import Optional

from solders.address_lookup_table_account import AddressLookupTableAccount
from solders.compute_budget import set_compute_unit_limit
from solders.hash import Hash
from solders.instruction import Instruction
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction
from solders.transaction_status import TransactionErrorInsufficientFundsForRent

from solswap.errors import InsufficientFundsForRentError, SimulationError
from solswap.execution.backoff import FixedDelay
from solswap.execution.interfaces import ChainClient, Delay

logger = logging.getLogger(__name__)

MAX_COMPUTE_UNITS = 1_400_000
DEFAULT_PRIORITY_FEE_MICRO_LAMPORTS = 10_000
PRIORITY_FEE_WINDOW = 150
MICRO_LAMPORTS_PER_LAMPORT = 1_000_000


@dataclass(frozen=True)
class SimulationResult:
    """Outcome of a successful dry-run."""

    units_consumed: int
    logs: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class PriorityFeeEstimate:
    """Priority fee bid per compute unit."""

    micro_lamports: int
    sample_count: int = 0
    is_fallback: bool = False

    @property
    def sol_amount(self) -> Decimal:
        """SOL equivalent of the per-unit bid as reported to operators."""
        return Decimal(self.micro_lamports) / Decimal(MICRO_LAMPORTS_PER_LAMPORT * 1000)

    def total_lamports(self, compute_units: int) -> int:
        """Total priority fee paid when ``compute_units`` are budgeted."""
        return math.ceil(self.micro_lamports * compute_units / MICRO_LAMPORTS_PER_LAMPORT)


class FeeEstimator:
    """Derives compute budget and priority fee from network telemetry."""

    def __init__(
        self,
        chain: ChainClient,
        default_priority_fee: int = DEFAULT_PRIORITY_FEE_MICRO_LAMPORTS,
        fee_window: int = PRIORITY_FEE_WINDOW,
        simulation_retry_delay: Optional[Delay] = None,
    ):
        self.chain = chain
        self.default_priority_fee = default_priority_fee
        self.fee_window = fee_window
        self.simulation_retry_delay = simulation_retry_delay or FixedDelay(1.0)

    @staticmethod
    def build_simulation_transaction(
        instructions: list[Instruction],
        payer: Pubkey,
        lookup_tables: list[AddressLookupTableAccount],
        recent_blockhash: Hash,
    ) -> VersionedTransaction:
        """Unsigned transaction with the maximum compute limit, for dry-runs only."""
        message = MessageV0.try_compile(
            payer=payer,
            instructions=[set_compute_unit_limit(MAX_COMPUTE_UNITS), *instructions],
            address_lookup_table_accounts=lookup_tables,
            recent_blockhash=recent_blockhash,
        )
        signatures = [Signature.default()] * message.header.num_required_signatures
        return VersionedTransaction.populate(message, signatures)

    async def estimate_compute_budget(
        self,
        instructions: list[Instruction],
        payer: Pubkey,
        lookup_tables: list[AddressLookupTableAccount],
        retry_hint: int = 5,
    ) -> SimulationResult:
        """Simulate the instructions and return the compute units consumed.

        Args:
            instructions: Swap instructions in execution order
            payer: Fee payer public key
            lookup_tables: Resolved address lookup tables
            retry_hint: Simulation calls allowed when the RPC call itself fails

        Raises:
            InsufficientFundsForRentError: The swap would leave an account
                below rent exemption (do not retry)
            SimulationError: Any other simulation failure
        """
        attempts = max(1, retry_hint)
        last_error: Optional[Exception] = None

        for attempt in range(attempts):
            try:
                result = await self._simulate_once(instructions, payer, lookup_tables)
            except SimulationError:
                raise
            except Exception as e:
                last_error = e
                logger.warning(
                    f"Simulation RPC call failed (attempt {attempt + 1}/{attempts}): {e}"
                )
                if attempt < attempts - 1:
                    await self.simulation_retry_delay.wait(attempt)
                continue

            return self._classify(result)

        raise SimulationError(f"Simulation failed after {attempts} attempts: {last_error}")

    async def _simulate_once(self, instructions, payer, lookup_tables):
        blockhash = await self.chain.get_latest_blockhash("confirmed")
        try:
            transaction = self.build_simulation_transaction(
                instructions, payer, lookup_tables, blockhash
            )
        except Exception as e:
            raise SimulationError(f"Cannot compile simulation transaction: {e}") from e
        return await self.chain.simulate_transaction(transaction)

    @staticmethod
    def _classify(result) -> SimulationResult:
        if result is None:
            raise SimulationError("Empty simulation response")

        logs = list(result.logs or [])
        if result.err is not None:
            if isinstance(result.err, TransactionErrorInsufficientFundsForRent):
                raise InsufficientFundsForRentError(result.err.account_index)
            logger.error(f"Simulation error: {result.err}")
            raise SimulationError(f"Simulation failed: {result.err}", logs=logs)

        if not result.units_consumed:
            raise SimulationError("Simulation returned no compute unit count", logs=logs)

        logger.debug(f"Simulation consumed {result.units_consumed} compute units")
        return SimulationResult(units_consumed=int(result.units_consumed), logs=logs)

    async def estimate_priority_fee(self) -> PriorityFeeEstimate:
        """Average of the trailing fee window, rounded up.

        Never raises: missing samples or a failed RPC call fall back to the
        configured default.
        """
        try:
            samples = await self.chain.get_recent_prioritization_fees()
        except Exception as e:
            logger.warning(f"Failed to fetch prioritization fees, using default: {e}")
            samples = []

        if not samples:
            return PriorityFeeEstimate(
                micro_lamports=self.default_priority_fee,
                sample_count=0,
                is_fallback=True,
            )

        recent = samples[-self.fee_window:]
        average = Decimal(sum(recent)) / Decimal(len(recent))
        return PriorityFeeEstimate(
            micro_lamports=int(average.to_integral_value(rounding=ROUND_CEILING)),
            sample_count=len(recent),
        )
