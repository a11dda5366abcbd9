"""Dry-run bundler for testing without sending anything to the block engine.

Transactions are still quoted, simulated and signed; the bundle is reported
as landed without a slot.
"""

import logging

from solswap.execution.assembler import SignedTransaction
from solswap.execution.bundle import BundleEnvelope, BundleState, BundleStatus

logger = logging.getLogger(__name__)


class DryRunBundler:
    """Bundler that never leaves the process."""

    def __init__(self):
        self.sent: list[BundleEnvelope] = []

    async def create_bundle(self, transaction: SignedTransaction) -> BundleEnvelope:
        return BundleEnvelope(
            signature=transaction.signature,
            encoded_transactions=(bytes(transaction).hex(),),
            encoding="hex",
        )

    async def send_bundle(self, envelope: BundleEnvelope) -> str:
        self.sent.append(envelope)
        bundle_id = f"dryrun-{len(self.sent)}-{envelope.signature[:16]}"
        logger.warning(f"[DRY RUN] Bundle not submitted: {bundle_id}")
        return bundle_id

    async def get_bundle_status(self, bundle_id: str) -> BundleStatus:
        return BundleStatus(bundle_id=bundle_id, state=BundleState.LANDED)
