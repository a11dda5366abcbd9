"""Versioned transaction assembly from Jupiter instruction payloads."""

import base64
import logging
from dataclasses import dataclass
from typing import Any

from solders.address_lookup_table_account import AddressLookupTableAccount
from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from solswap.errors import AssemblyError, TransactionAlreadySignedError
from solswap.execution.fees import PriorityFeeEstimate, SimulationResult
from solswap.routing.base import InstructionSet, Quote

logger = logging.getLogger(__name__)


def deserialize_instruction(payload: dict[str, Any]) -> Instruction:
    """Convert a Jupiter instruction payload into a solders Instruction."""
    try:
        program_id = Pubkey.from_string(payload["programId"])
        accounts = [
            AccountMeta(
                pubkey=Pubkey.from_string(account["pubkey"]),
                is_signer=bool(account["isSigner"]),
                is_writable=bool(account["isWritable"]),
            )
            for account in payload.get("accounts", [])
        ]
        data = base64.b64decode(payload.get("data", ""), validate=True)
    except (KeyError, TypeError, ValueError) as e:
        raise AssemblyError(f"Malformed instruction payload: {e}") from e

    return Instruction(program_id, data, accounts)


def deserialize_instructions(instruction_set: InstructionSet) -> list[Instruction]:
    """Setup, swap and cleanup instructions in execution order."""
    return [deserialize_instruction(payload) for payload in instruction_set.payloads]


@dataclass(frozen=True)
class SignedTransaction:
    """A signed transaction, ready for submission. Never modified."""

    transaction: VersionedTransaction
    quote: Quote
    compute_units: int
    priority_fee: PriorityFeeEstimate

    @property
    def signature(self) -> str:
        return str(self.transaction.signatures[0])

    def __bytes__(self) -> bytes:
        return bytes(self.transaction)


class UnsignedTransaction:
    """A budgeted v0 message awaiting its single signature.

    Sign immediately before submission; the blockhash expires.
    """

    def __init__(
        self,
        message: MessageV0,
        quote: Quote,
        compute_units: int,
        priority_fee: PriorityFeeEstimate,
    ):
        self.message = message
        self.quote = quote
        self.compute_units = compute_units
        self.priority_fee = priority_fee
        self._signed = False

    @property
    def is_signed(self) -> bool:
        return self._signed

    def sign(self, keypair: Keypair) -> SignedTransaction:
        """Sign with the fee payer. Allowed exactly once."""
        if self._signed:
            raise TransactionAlreadySignedError("Transaction has already been signed")
        self._signed = True
        return SignedTransaction(
            transaction=VersionedTransaction(self.message, [keypair]),
            quote=self.quote,
            compute_units=self.compute_units,
            priority_fee=self.priority_fee,
        )


class TransactionAssembler:
    """Builds one resource-budgeted transaction per swap attempt."""

    def assemble(
        self,
        instruction_set: InstructionSet,
        payer: Pubkey,
        lookup_tables: list[AddressLookupTableAccount],
        recent_blockhash: Hash,
        simulation: SimulationResult,
        priority_fee: PriorityFeeEstimate,
    ) -> UnsignedTransaction:
        """Compile compute budget + setup/swap/cleanup into a v0 message.

        Raises:
            AssemblyError: On malformed payloads or a message that cannot compile
        """
        instructions = [
            set_compute_unit_limit(simulation.units_consumed),
            set_compute_unit_price(priority_fee.micro_lamports),
            *deserialize_instructions(instruction_set),
        ]

        try:
            message = MessageV0.try_compile(
                payer=payer,
                instructions=instructions,
                address_lookup_table_accounts=lookup_tables,
                recent_blockhash=recent_blockhash,
            )
        except Exception as e:
            raise AssemblyError(f"Failed to compile transaction message: {e}") from e

        logger.debug(
            f"Assembled transaction: {len(instructions)} instructions, "
            f"{simulation.units_consumed} CU at {priority_fee.micro_lamports} micro-lamports/CU, "
            f"{len(lookup_tables)} lookup table(s)"
        )
        return UnsignedTransaction(
            message=message,
            quote=instruction_set.quote,
            compute_units=simulation.units_consumed,
            priority_fee=priority_fee,
        )
