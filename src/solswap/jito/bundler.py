"""Bundle envelopes for Jito: the swap transaction plus a tip transfer."""

import base64
import logging
from typing import Optional

from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import VersionedTransaction

from solswap.execution.assembler import SignedTransaction
from solswap.execution.bundle import BundleEnvelope, BundleStatus
from solswap.jito.client import JitoClient

logger = logging.getLogger(__name__)

DEFAULT_TIP_LAMPORTS = 10_000


def _encode(transaction: VersionedTransaction) -> str:
    return base64.b64encode(bytes(transaction)).decode()


class JitoBundler:
    """Builds and submits bundles through a JitoClient.

    The envelope is built once per signed swap transaction; resubmissions
    send the same envelope again and receive a new bundle id.
    """

    def __init__(
        self,
        client: JitoClient,
        keypair: Keypair,
        tip_lamports: int = DEFAULT_TIP_LAMPORTS,
    ):
        self.client = client
        self.keypair = keypair
        self.tip_lamports = tip_lamports

    def build_tip_transaction(self, tip_account: str, transaction: SignedTransaction) -> VersionedTransaction:
        """Tip transfer anchored to the swap transaction's blockhash."""
        instruction = transfer(
            TransferParams(
                from_pubkey=self.keypair.pubkey(),
                to_pubkey=Pubkey.from_string(tip_account),
                lamports=self.tip_lamports,
            )
        )
        message = MessageV0.try_compile(
            payer=self.keypair.pubkey(),
            instructions=[instruction],
            address_lookup_table_accounts=[],
            recent_blockhash=transaction.transaction.message.recent_blockhash,
        )
        return VersionedTransaction(message, [self.keypair])

    async def create_bundle(self, transaction: SignedTransaction) -> BundleEnvelope:
        encoded = [_encode(transaction.transaction)]

        if self.tip_lamports > 0:
            tip_account = await self.client.get_random_tip_account()
            encoded.append(_encode(self.build_tip_transaction(tip_account, transaction)))
            logger.debug(f"Tip of {self.tip_lamports} lamports to {tip_account}")

        return BundleEnvelope(signature=transaction.signature, encoded_transactions=tuple(encoded))

    async def send_bundle(self, envelope: BundleEnvelope) -> str:
        return await self.client.send_bundle(envelope)

    async def get_bundle_status(self, bundle_id: str) -> Optional[BundleStatus]:
        return await self.client.get_bundle_status(bundle_id)
