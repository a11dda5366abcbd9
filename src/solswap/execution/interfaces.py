"""Collaborator contracts the swap executor depends on."""

from decimal import Decimal
from typing import Any, Protocol, Union

from solders.address_lookup_table_account import AddressLookupTableAccount
from solders.hash import Hash
from solders.transaction import VersionedTransaction

from solswap.routing.base import InstructionSet, Quote


class QuoteService(Protocol):
    async def get_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: Union[int, Decimal, float],
    ) -> Quote: ...


class InstructionService(Protocol):
    async def get_swap_instructions(self, quote: Quote, user_public_key: str) -> InstructionSet: ...


class ChainClient(Protocol):
    async def get_token_decimals(self, mint: str) -> int: ...

    async def get_latest_blockhash(self, commitment: str = "finalized") -> Hash: ...

    async def get_recent_prioritization_fees(self) -> list[int]: ...

    async def get_address_lookup_table_accounts(
        self, addresses: list[str]
    ) -> list[AddressLookupTableAccount]: ...

    async def simulate_transaction(self, transaction: VersionedTransaction) -> Any: ...


class Delay(Protocol):
    async def wait(self, attempt: int) -> None: ...
