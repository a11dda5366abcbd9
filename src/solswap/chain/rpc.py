"""Read-only Solana RPC queries used by the swap executor.

Wraps solana-py's AsyncClient. The connection handle is the only object the
executor shares across concurrent swap operations; every method here is a
read-only query.
"""

import logging
from typing import Optional

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment
from solders.address_lookup_table_account import (
    AddressLookupTable,
    AddressLookupTableAccount,
)
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from solswap.errors import LookupTableError, TokenInfoError

logger = logging.getLogger(__name__)


class SolanaChain:
    """Blockchain query client for decimals, blockhashes, fees and simulation."""

    def __init__(self, rpc_url: str, client: Optional[AsyncClient] = None):
        self.rpc_url = rpc_url
        self.client = client or AsyncClient(rpc_url)

    async def close(self) -> None:
        await self.client.close()

    async def get_token_decimals(self, mint: str) -> int:
        """Read decimal precision from the parsed mint account."""
        response = await self.client.get_account_info_json_parsed(Pubkey.from_string(mint))
        account = response.value
        parsed = getattr(getattr(account, "data", None), "parsed", None) if account else None
        if not isinstance(parsed, dict) or "info" not in parsed:
            raise TokenInfoError(f"Failed to fetch token info for token: {mint}")
        return int(parsed["info"]["decimals"])

    async def get_latest_blockhash(self, commitment: str = "finalized") -> Hash:
        response = await self.client.get_latest_blockhash(Commitment(commitment))
        return response.value.blockhash

    async def get_recent_prioritization_fees(self) -> list[int]:
        """Per-slot prioritization fees (micro-lamports/CU), oldest first."""
        response = await self.client.get_recent_prioritization_fees([])
        samples = sorted(response.value or [], key=lambda fee: fee.slot)
        return [fee.prioritization_fee for fee in samples]

    async def get_address_lookup_table_accounts(
        self, addresses: list[str]
    ) -> list[AddressLookupTableAccount]:
        """Resolve lookup table addresses into the accounts they index."""
        if not addresses:
            return []

        keys = [Pubkey.from_string(address) for address in addresses]
        response = await self.client.get_multiple_accounts(keys)

        tables = []
        for key, account in zip(keys, response.value):
            if account is None:
                raise LookupTableError(f"Address lookup table not found: {key}")
            table = AddressLookupTable.deserialize(bytes(account.data))
            tables.append(AddressLookupTableAccount(key=key, addresses=list(table.addresses)))

        logger.debug(f"Loaded {len(tables)} address lookup table(s)")
        return tables

    async def simulate_transaction(self, transaction: VersionedTransaction):
        """Dry-run a transaction without signature verification.

        Returns the RPC simulation value (``err``, ``units_consumed``, ``logs``).
        """
        response = await self.client.simulate_transaction(transaction, sig_verify=False)
        return response.value
