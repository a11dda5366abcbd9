"""Pytest configuration and fixtures."""

import base64
import os
from types import SimpleNamespace
from typing import Optional

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DRY_RUN"] = "true"
os.environ["DEBUG"] = "true"

from solswap.config import get_settings
from solswap.execution.bundle import BundleEnvelope, BundleState, BundleStatus
from solswap.routing.base import InstructionSet, Quote

WSOL = "So11111111111111111111111111111111111111112"
USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


def make_payload(program_id: Pubkey, accounts: list[tuple[Pubkey, bool, bool]], data: bytes) -> dict:
    """Instruction payload in the Jupiter JSON shape."""
    return {
        "programId": str(program_id),
        "accounts": [
            {"pubkey": str(key), "isSigner": signer, "isWritable": writable}
            for key, signer, writable in accounts
        ],
        "data": base64.b64encode(data).decode(),
    }


def make_quote(slippage_bps: int = 100, in_amount: int = 1_000_000, **overrides) -> Quote:
    fields = dict(
        input_mint=WSOL,
        output_mint=USDC,
        in_amount=in_amount,
        out_amount=150_000,
        slippage_bps=slippage_bps,
        route_plan=[{"swapInfo": {"ammKey": "amm", "label": "Whirlpool"}, "percent": 100}],
        raw={"inputMint": WSOL, "outputMint": USDC, "routePlan": []},
    )
    fields.update(overrides)
    return Quote(**fields)


def make_instruction_set(quote: Quote, payer: Pubkey, with_cleanup: bool = True) -> InstructionSet:
    """Setup + swap (+ cleanup) payloads with distinct program ids."""
    token_account = Pubkey.new_unique()
    setup = make_payload(Pubkey.new_unique(), [(payer, True, True), (token_account, False, True)], b"\x01")
    swap = make_payload(
        Pubkey.new_unique(),
        [(payer, True, True), (token_account, False, True), (Pubkey.new_unique(), False, False)],
        b"\x02\x03\x04",
    )
    cleanup = make_payload(Pubkey.new_unique(), [(payer, True, True), (token_account, False, True)], b"\x05")
    return InstructionSet(
        quote=quote,
        setup_instructions=[setup],
        swap_instruction=swap,
        cleanup_instruction=cleanup if with_cleanup else None,
        address_lookup_table_addresses=[],
    )


class FakeChain:
    """In-memory blockchain query client."""

    def __init__(self):
        self.decimals = {WSOL: 9, USDC: 6}
        self.fee_samples: list[int] = []
        self.fee_error: Optional[Exception] = None
        # Each entry is an exception to raise or a simulation value to return
        self.simulations: list = []
        self.default_units = 120_000
        self.simulated = []
        self.blockhash_calls = []

    async def get_token_decimals(self, mint: str) -> int:
        return self.decimals.get(mint, 9)

    async def get_latest_blockhash(self, commitment: str = "finalized") -> Hash:
        self.blockhash_calls.append(commitment)
        return Hash.new_unique()

    async def get_recent_prioritization_fees(self) -> list[int]:
        if self.fee_error:
            raise self.fee_error
        return list(self.fee_samples)

    async def get_address_lookup_table_accounts(self, addresses):
        return []

    async def simulate_transaction(self, transaction):
        self.simulated.append(transaction)
        if self.simulations:
            outcome = self.simulations.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        return simulation_value(units=self.default_units)


def simulation_value(units: Optional[int] = 120_000, err=None, logs=None):
    return SimpleNamespace(err=err, units_consumed=units, logs=logs or ["Program log: ok"])


class FakeJupiter:
    """Quote and instruction service recording every request."""

    def __init__(self, payer: Pubkey):
        self.payer = payer
        self.quote_requests = []
        self.quotes: list[Quote] = []
        self.quote_errors: list[Optional[Exception]] = []

    async def get_quote(self, input_mint, output_mint, amount, slippage_bps):
        self.quote_requests.append(
            {"input_mint": input_mint, "output_mint": output_mint, "amount": amount, "slippage_bps": slippage_bps}
        )
        if self.quote_errors:
            error = self.quote_errors.pop(0)
            if error is not None:
                raise error
        quote = make_quote(slippage_bps=int(slippage_bps), in_amount=amount)
        self.quotes.append(quote)
        return quote

    async def get_swap_instructions(self, quote, user_public_key):
        assert user_public_key == str(self.payer)
        return make_instruction_set(quote, self.payer)


class FakeBundler:
    """Bundler whose status answers follow a script.

    Script entries are BundleState values, an Exception to raise from the
    status call, or None for an empty answer.
    """

    def __init__(self, script=None, landed_slot: int = 250_000_000):
        self.script = list(script or [])
        self.landed_slot = landed_slot
        self.envelopes: list[BundleEnvelope] = []
        self.sent: list[str] = []
        self.polled: list[str] = []
        self.send_error: Optional[Exception] = None

    async def create_bundle(self, transaction) -> BundleEnvelope:
        envelope = BundleEnvelope(
            signature=transaction.signature,
            encoded_transactions=(base64.b64encode(bytes(transaction)).decode(),),
        )
        self.envelopes.append(envelope)
        return envelope

    async def send_bundle(self, envelope: BundleEnvelope) -> str:
        if self.send_error:
            raise self.send_error
        bundle_id = f"bundle-{len(self.sent) + 1}"
        self.sent.append(bundle_id)
        return bundle_id

    async def get_bundle_status(self, bundle_id: str):
        self.polled.append(bundle_id)
        entry = self.script.pop(0) if self.script else BundleState.PENDING
        if isinstance(entry, Exception):
            raise entry
        if entry is None:
            return None
        slot = self.landed_slot + len(self.polled) if entry is BundleState.LANDED else None
        return BundleStatus(bundle_id=bundle_id, state=entry, landed_slot=slot)


class RecordingDelay:
    """Wait strategy that records instead of sleeping."""

    def __init__(self, seconds: float = 0):
        self.seconds = seconds
        self.waits: list[int] = []

    async def wait(self, attempt: int) -> None:
        self.waits.append(attempt)

    def __str__(self) -> str:
        return f"{self.seconds:g}s"


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are cached per process; reset between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def keypair() -> Keypair:
    return Keypair()


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def jupiter(keypair) -> FakeJupiter:
    return FakeJupiter(keypair.pubkey())


@pytest.fixture
def bundler_factory():
    return FakeBundler


@pytest.fixture
def delay_factory():
    return RecordingDelay


@pytest.fixture
def quote() -> Quote:
    return make_quote()


@pytest.fixture
def instruction_set(quote, keypair) -> InstructionSet:
    return make_instruction_set(quote, keypair.pubkey())


@pytest.fixture
def sim_value():
    return simulation_value
