"""Swap attempt controller.

One attempt = fresh quote -> instructions -> simulation and fees -> assemble
-> sign -> bundle confirmation. A failed attempt is retried from scratch with
wider slippage; a rent shortfall ends the operation as a skip.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Union

from solders.keypair import Keypair

from solswap.errors import (
    AmountTooSmallError,
    InsufficientFundsForRentError,
    QuoteExpiredError,
    SwapAttemptError,
    SwapFailedError,
)
from solswap.execution.assembler import TransactionAssembler, deserialize_instructions
from solswap.execution.backoff import FixedDelay
from solswap.execution.bundle import (
    DEFAULT_CONFIRMATION_ATTEMPTS,
    DEFAULT_POLL_DELAY_SECONDS,
    BundleConfirmation,
    Bundler,
    BundleStatus,
)
from solswap.execution.fees import FeeEstimator
from solswap.execution.interfaces import ChainClient, Delay, InstructionService, QuoteService

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_BACKOFF_SECONDS = 2.0
SLIPPAGE_STEP = Decimal("0.5")


def effective_slippage(base_slippage_bps: Union[int, Decimal], attempt: int) -> Decimal:
    """Slippage for attempt ``attempt`` (0-based): base * (1 + 0.5 * attempt)."""
    return Decimal(str(base_slippage_bps)) * (1 + SLIPPAGE_STEP * attempt)


def to_base_units(amount: Decimal, decimals: int) -> int:
    """Convert a human-readable amount to the token's smallest unit."""
    return int(Decimal(str(amount)) * (Decimal(10) ** decimals))


@dataclass
class SwapAttemptState:
    """Progress of a single attempt, used to report where it failed.

    ``last_error`` starts as the previous attempt's failure and is replaced
    by this attempt's own failure, if any.
    """

    index: int
    slippage_bps: Decimal
    stage: str = "start"
    last_error: Optional[BaseException] = None


@dataclass(frozen=True)
class SwapResult:
    """Outcome of a swap operation: landed or deliberately skipped."""

    input_mint: str
    output_mint: str
    amount: Decimal
    attempts: int
    slippage_bps: Decimal
    skipped: bool = False
    bundle_status: Optional[BundleStatus] = None
    signature: Optional[str] = None
    expected_out_amount: Optional[Decimal] = None
    skip_reason: Optional[str] = None
    bundle_submissions: int = 0

    @property
    def landed(self) -> bool:
        return self.bundle_status is not None and self.bundle_status.landed

    @property
    def explorer_url(self) -> Optional[str]:
        if not self.signature:
            return None
        return f"https://solscan.io/tx/{self.signature}"


class SwapController:
    """Runs swap attempts until one lands, the amount is skipped, or retries run out.

    All collaborators and tuning values are passed in, so independent
    controllers (one per wallet or token pair) can share a process. Only the
    chain connection is expected to be shared between them.
    """

    def __init__(
        self,
        quotes: QuoteService,
        instructions: InstructionService,
        chain: ChainClient,
        bundler: Bundler,
        keypair: Keypair,
        fee_estimator: Optional[FeeEstimator] = None,
        assembler: Optional[TransactionAssembler] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: Optional[Delay] = None,
        confirmation_attempts: int = DEFAULT_CONFIRMATION_ATTEMPTS,
        poll_delay: Optional[Delay] = None,
        simulation_attempts: int = 5,
        blockhash_commitment: str = "finalized",
    ):
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}")
        if confirmation_attempts < 1:
            raise ValueError(
                f"confirmation_attempts must be at least 1, got {confirmation_attempts}"
            )

        self.quotes = quotes
        self.instructions = instructions
        self.chain = chain
        self.bundler = bundler
        self.keypair = keypair
        self.fee_estimator = fee_estimator or FeeEstimator(chain)
        self.assembler = assembler or TransactionAssembler()
        self.max_retries = max_retries
        self.retry_delay = retry_delay or FixedDelay(DEFAULT_RETRY_BACKOFF_SECONDS)
        self.confirmation_attempts = confirmation_attempts
        self.poll_delay = poll_delay or FixedDelay(DEFAULT_POLL_DELAY_SECONDS)
        self.simulation_attempts = simulation_attempts
        self.blockhash_commitment = blockhash_commitment

    @property
    def payer(self):
        return self.keypair.pubkey()

    async def swap(
        self,
        input_mint: str,
        output_mint: str,
        amount: Decimal,
        slippage_bps: Union[int, Decimal] = 100,
    ) -> SwapResult:
        """Swap ``amount`` (human units) of ``input_mint`` into ``output_mint``.

        Returns:
            SwapResult that either landed or was skipped for insufficient rent

        Raises:
            AmountTooSmallError: The amount is zero in the input token's base units
            SwapFailedError: Every attempt failed; carries the last attempt error
        """
        amount = Decimal(str(amount))
        if amount <= 0:
            raise ValueError(f"Swap amount must be positive, got {amount}")

        last_error: Optional[SwapAttemptError] = None

        for index in range(self.max_retries):
            state = SwapAttemptState(
                index=index,
                slippage_bps=effective_slippage(slippage_bps, index),
                last_error=last_error.cause if last_error else None,
            )
            logger.info(
                f"========== INITIATING SWAP (attempt {index + 1}/{self.max_retries}, "
                f"slippage {state.slippage_bps} bps) =========="
            )

            try:
                return await self.run_attempt(input_mint, output_mint, amount, state)
            except InsufficientFundsForRentError as e:
                logger.info(f"Insufficient funds for rent. Skipping this swap. ({e})")
                return SwapResult(
                    input_mint=input_mint,
                    output_mint=output_mint,
                    amount=amount,
                    attempts=index + 1,
                    slippage_bps=state.slippage_bps,
                    skipped=True,
                    skip_reason=str(e),
                )
            except AmountTooSmallError:
                raise
            except Exception as e:
                state.last_error = e
                last_error = SwapAttemptError(state.stage, index, e)
                logger.error(
                    f"Error executing swap (attempt {index + 1}/{self.max_retries}) "
                    f"during {state.stage}: {type(e).__name__}: {e}"
                )

            if index < self.max_retries - 1:
                logger.info(f"Retrying in {self.retry_delay}...")
                await self.retry_delay.wait(index)

        logger.error(f"Failed to execute swap after {self.max_retries} attempts.")
        raise SwapFailedError(self.max_retries, last_error)

    async def run_attempt(
        self,
        input_mint: str,
        output_mint: str,
        amount: Decimal,
        state: SwapAttemptState,
    ) -> SwapResult:
        """Run one complete attempt with the slippage recorded in ``state``."""
        state.stage = "token_info"
        input_decimals = await self.chain.get_token_decimals(input_mint)
        output_decimals = await self.chain.get_token_decimals(output_mint)
        amount_base = to_base_units(amount, input_decimals)
        if amount_base <= 0:
            raise AmountTooSmallError(
                f"Amount {amount} is below the smallest unit of {input_mint} "
                f"({input_decimals} decimals)"
            )

        state.stage = "quote"
        logger.info("Getting quote from Jupiter...")
        quote = await self.quotes.get_quote(input_mint, output_mint, amount_base, state.slippage_bps)

        state.stage = "instructions"
        logger.info("Getting swap instructions...")
        instruction_set = await self.instructions.get_swap_instructions(quote, str(self.payer))

        state.stage = "lookup_tables"
        lookup_tables = await self.chain.get_address_lookup_table_accounts(
            instruction_set.address_lookup_table_addresses
        )

        state.stage = "blockhash"
        blockhash = await self.chain.get_latest_blockhash(self.blockhash_commitment)

        state.stage = "simulation"
        logger.info("Simulating transaction...")
        simulation = await self.fee_estimator.estimate_compute_budget(
            deserialize_instructions(instruction_set),
            self.payer,
            lookup_tables,
            self.simulation_attempts,
        )

        state.stage = "priority_fee"
        priority_fee = await self.fee_estimator.estimate_priority_fee()
        logger.info(
            f"Priority fee: {priority_fee.micro_lamports} micro-lamports "
            f"({priority_fee.sol_amount:.9f} SOL)"
            + (" [default]" if priority_fee.is_fallback else "")
        )

        state.stage = "assembly"
        if quote.is_expired:
            raise QuoteExpiredError(
                f"Quote expired {abs(quote.seconds_until_expiry):.0f} seconds ago"
            )
        unsigned = self.assembler.assemble(
            instruction_set,
            self.payer,
            lookup_tables,
            blockhash,
            simulation,
            priority_fee,
        )

        state.stage = "signing"
        signed = unsigned.sign(self.keypair)

        state.stage = "bundle"
        logger.info("Creating Jito bundle...")
        envelope = await self.bundler.create_bundle(signed)

        state.stage = "confirmation"
        confirmation = BundleConfirmation(
            self.bundler,
            envelope,
            max_attempts=self.confirmation_attempts,
            poll_delay=self.poll_delay,
        )
        bundle_status = await confirmation.run()

        logger.info("Swap executed successfully!")
        logger.info("========== SWAP COMPLETE ==========")

        return SwapResult(
            input_mint=input_mint,
            output_mint=output_mint,
            amount=amount,
            attempts=state.index + 1,
            slippage_bps=state.slippage_bps,
            bundle_status=bundle_status,
            signature=signed.signature,
            expected_out_amount=Decimal(quote.out_amount) / (Decimal(10) ** output_decimals),
            bundle_submissions=len(confirmation.bundles),
        )

    async def close(self) -> None:
        """Close collaborators that hold connections."""
        for collaborator in (self.chain, self.bundler):
            close = getattr(collaborator, "close", None)
            if close is not None:
                await close()
