"""Bundle confirmation state machine.

A signed transaction is wrapped in a bundle envelope once, submitted, and then
polled. Each poll is one confirmation attempt:

    SUBMITTED -> PENDING | UNKNOWN   inconclusive, wait and poll again
              -> FAILED              resubmit the same envelope under a new id
              -> LANDED              done

Running out of attempts without LANDED raises BundleConfirmationError.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol

from solswap.errors import BundleConfirmationError, BundleSubmissionError
from solswap.execution.assembler import SignedTransaction
from solswap.execution.backoff import FixedDelay
from solswap.execution.interfaces import Delay

logger = logging.getLogger(__name__)

DEFAULT_CONFIRMATION_ATTEMPTS = 3
DEFAULT_POLL_DELAY_SECONDS = 15.0


class BundleState(str, Enum):
    """Confirmation state of a bundle id."""

    SUBMITTED = "Submitted"
    PENDING = "Pending"
    LANDED = "Landed"
    FAILED = "Failed"
    UNKNOWN = "Unknown"

    @classmethod
    def from_string(cls, value: Optional[str]) -> "BundleState":
        """Map a block engine status string; anything unrecognised is UNKNOWN."""
        if not value:
            return cls.UNKNOWN
        for state in cls:
            if state.value.lower() == value.lower():
                return state
        return cls.UNKNOWN


@dataclass(frozen=True)
class BundleStatus:
    """Observed state of one bundle id."""

    bundle_id: str
    state: BundleState
    landed_slot: Optional[int] = None
    error: Optional[str] = None

    @property
    def landed(self) -> bool:
        return self.state is BundleState.LANDED

    def to_dict(self) -> dict:
        return {
            "bundle_id": self.bundle_id,
            "status": self.state.value,
            "landed_slot": self.landed_slot,
            "error": self.error,
        }


@dataclass(frozen=True)
class BundleEnvelope:
    """Encoded transactions submitted together as one bundle."""

    signature: str  # Signature of the swap transaction
    encoded_transactions: tuple[str, ...]
    encoding: str = "base64"


@dataclass(frozen=True)
class Bundle:
    """One submission of an envelope; resubmission creates a new Bundle."""

    bundle_id: str
    sequence: int  # 1 for the first submission, 2 for the first resubmission...
    submitted_at: float = field(default_factory=time.time)


class Bundler(Protocol):
    """Bundling service contract."""

    async def create_bundle(self, transaction: SignedTransaction) -> BundleEnvelope: ...

    async def send_bundle(self, envelope: BundleEnvelope) -> str: ...

    async def get_bundle_status(self, bundle_id: str) -> BundleStatus: ...


class BundleConfirmation:
    """Drives one envelope to LANDED or to an exhausted attempt budget.

    ``step()`` performs exactly one confirmation attempt so the machine can be
    driven poll by poll; ``run()`` submits and steps until done.
    """

    def __init__(
        self,
        bundler: Bundler,
        envelope: BundleEnvelope,
        max_attempts: int = DEFAULT_CONFIRMATION_ATTEMPTS,
        poll_delay: Optional[Delay] = None,
    ):
        self.bundler = bundler
        self.envelope = envelope
        self.max_attempts = max_attempts
        self.poll_delay = poll_delay or FixedDelay(DEFAULT_POLL_DELAY_SECONDS)

        self.bundle: Optional[Bundle] = None
        self.status: Optional[BundleStatus] = None
        self.attempts_used = 0
        self.bundles: list[Bundle] = []

    @property
    def landed(self) -> bool:
        return self.status is not None and self.status.landed

    @property
    def exhausted(self) -> bool:
        return self.attempts_used >= self.max_attempts

    @property
    def is_done(self) -> bool:
        return self.landed or self.exhausted

    async def submit(self) -> Bundle:
        """Send the envelope under a fresh bundle id."""
        try:
            bundle_id = await self.bundler.send_bundle(self.envelope)
        except BundleSubmissionError:
            raise
        except Exception as e:
            raise BundleSubmissionError(f"Bundle submission failed: {e}") from e

        if not bundle_id:
            raise BundleSubmissionError("Block engine returned no bundle id")

        self.bundle = Bundle(bundle_id=bundle_id, sequence=len(self.bundles) + 1)
        self.bundles.append(self.bundle)
        self.status = BundleStatus(bundle_id=bundle_id, state=BundleState.SUBMITTED)
        logger.info(f"Bundle sent. Bundle ID: {bundle_id} (submission {self.bundle.sequence})")
        return self.bundle

    async def poll(self) -> BundleStatus:
        """Read the current bundle's status. A failed read counts as UNKNOWN."""
        if self.bundle is None:
            raise RuntimeError("poll() before submit()")

        bundle_id = self.bundle.bundle_id
        try:
            status = await self.bundler.get_bundle_status(bundle_id)
        except Exception as e:
            logger.warning(f"Bundle status check failed for {bundle_id}: {e}")
            status = None

        if status is None:
            return BundleStatus(bundle_id=bundle_id, state=BundleState.UNKNOWN, error="no response")
        return status

    async def step(self) -> BundleStatus:
        """One confirmation attempt: wait, poll, react to the observed state."""
        if self.bundle is None:
            raise RuntimeError("step() before submit()")
        if self.is_done:
            raise RuntimeError("Bundle confirmation already finished")

        logger.info(f"Waiting {self.poll_delay} before checking bundle status...")
        await self.poll_delay.wait(self.attempts_used)

        status = await self.poll()
        self.status = status
        self.attempts_used += 1

        if status.state is BundleState.LANDED:
            logger.info(f"Bundle finalized. Slot: {status.landed_slot}")
        elif status.state is BundleState.FAILED:
            if self.exhausted:
                logger.warning(f"Bundle {status.bundle_id} failed, no confirmation attempts left")
            else:
                logger.warning(f"Bundle {status.bundle_id} failed. Resubmitting...")
                await self.submit()
        else:
            logger.info(
                f"Bundle not finalized. Status: {status.state.value} "
                f"({self.attempts_used}/{self.max_attempts})"
            )

        return status

    async def run(self) -> BundleStatus:
        """Submit if needed and poll until LANDED.

        Raises:
            BundleSubmissionError: The block engine rejected a submission
            BundleConfirmationError: Attempts exhausted without LANDED
        """
        if self.bundle is None:
            await self.submit()

        while not self.is_done:
            await self.step()

        if not self.landed:
            last = self.status.state.value if self.status else "unknown"
            raise BundleConfirmationError(
                f"Bundle did not land after {self.attempts_used} status checks "
                f"(last status: {last})",
                last_status=self.status,
            )
        return self.status
