"""Tests for the Solana RPC query wrapper."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from solders.hash import Hash
from solders.pubkey import Pubkey

from solswap.chain.rpc import SolanaChain
from solswap.errors import LookupTableError, TokenInfoError

from conftest import USDC


def response(value):
    return SimpleNamespace(value=value)


@pytest.fixture
def rpc_client():
    return MagicMock()


@pytest.fixture
def solana(rpc_client):
    return SolanaChain("https://rpc.test", client=rpc_client)


class TestSolanaChain:
    """Tests for read-only chain queries."""

    @pytest.mark.asyncio
    async def test_token_decimals(self, solana, rpc_client):
        account = SimpleNamespace(data=SimpleNamespace(parsed={"type": "mint", "info": {"decimals": 6}}))
        rpc_client.get_account_info_json_parsed = AsyncMock(return_value=response(account))

        assert await solana.get_token_decimals(USDC) == 6
        rpc_client.get_account_info_json_parsed.assert_awaited_once_with(Pubkey.from_string(USDC))

    @pytest.mark.asyncio
    async def test_token_decimals_missing_account(self, solana, rpc_client):
        rpc_client.get_account_info_json_parsed = AsyncMock(return_value=response(None))

        with pytest.raises(TokenInfoError):
            await solana.get_token_decimals(USDC)

    @pytest.mark.asyncio
    async def test_latest_blockhash(self, solana, rpc_client):
        blockhash = Hash.new_unique()
        rpc_client.get_latest_blockhash = AsyncMock(
            return_value=response(SimpleNamespace(blockhash=blockhash, last_valid_block_height=1))
        )

        assert await solana.get_latest_blockhash("confirmed") == blockhash

    @pytest.mark.asyncio
    async def test_prioritization_fees_ordered_by_slot(self, solana, rpc_client):
        samples = [
            SimpleNamespace(slot=12, prioritization_fee=300),
            SimpleNamespace(slot=10, prioritization_fee=100),
            SimpleNamespace(slot=11, prioritization_fee=200),
        ]
        rpc_client.get_recent_prioritization_fees = AsyncMock(return_value=response(samples))

        assert await solana.get_recent_prioritization_fees() == [100, 200, 300]

    @pytest.mark.asyncio
    async def test_no_lookup_tables(self, solana, rpc_client):
        rpc_client.get_multiple_accounts = AsyncMock()

        assert await solana.get_address_lookup_table_accounts([]) == []
        rpc_client.get_multiple_accounts.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_lookup_table(self, solana, rpc_client):
        rpc_client.get_multiple_accounts = AsyncMock(return_value=response([None]))

        with pytest.raises(LookupTableError):
            await solana.get_address_lookup_table_accounts([str(Pubkey.new_unique())])

    @pytest.mark.asyncio
    async def test_simulate_without_sig_verify(self, solana, rpc_client):
        value = SimpleNamespace(err=None, units_consumed=1000, logs=[])
        rpc_client.simulate_transaction = AsyncMock(return_value=response(value))
        transaction = object()

        assert await solana.simulate_transaction(transaction) is value
        rpc_client.simulate_transaction.assert_awaited_once_with(transaction, sig_verify=False)

    @pytest.mark.asyncio
    async def test_close(self, solana, rpc_client):
        rpc_client.close = AsyncMock()

        await solana.close()

        rpc_client.close.assert_awaited_once()
