"""Jupiter DEX aggregator client for Solana.

Uses Jupiter Swap API for quotes and raw swap instructions.
API docs: https://station.jup.ag/docs/apis/swap-api
"""

import logging
import math
from decimal import Decimal
from typing import Optional, Union

import httpx

from solswap.errors import InstructionFetchError, QuoteUnavailableError
from solswap.routing.base import InstructionSet, Quote

logger = logging.getLogger(__name__)

JUPITER_API_V6 = "https://quote-api.jup.ag/v6"

# Common mint addresses on Solana mainnet
WSOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


def to_slippage_bps(slippage: Union[int, Decimal, float]) -> int:
    """Convert a possibly fractional bps tolerance to the integer the API takes.

    Rounds up so the tolerance sent is never tighter than requested.
    """
    return int(math.ceil(Decimal(str(slippage))))


class JupiterClient:
    """Quote and swap-instruction client for the Jupiter aggregator."""

    def __init__(
        self,
        base_url: str = JUPITER_API_V6,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Jupiter client.

        Args:
            base_url: Jupiter API root
            api_key: Optional API key for higher rate limits
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    @property
    def name(self) -> str:
        return "Jupiter"

    def _get_headers(self) -> dict:
        """Get API headers."""
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def get_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: Union[int, Decimal, float],
    ) -> Quote:
        """Get swap quote from Jupiter.

        Args:
            input_mint: Mint address of the token sold
            output_mint: Mint address of the token bought
            amount: Amount in the input token's smallest units
            slippage_bps: Max slippage in basis points (100 = 1%)

        Returns:
            Quote with a route plan

        Raises:
            QuoteUnavailableError: On HTTP failure or a response without a route
        """
        bps = to_slippage_bps(slippage_bps)
        params = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(int(amount)),
            "slippageBps": str(bps),
        }

        try:
            async with self._client() as client:
                response = await client.get(
                    f"{self.base_url}/quote",
                    headers=self._get_headers(),
                    params=params,
                )
        except httpx.HTTPError as e:
            raise QuoteUnavailableError(f"Jupiter quote request failed: {e}") from e

        if response.status_code != 200:
            logger.warning(f"Jupiter API error: {response.status_code} - {response.text}")
            raise QuoteUnavailableError(
                f"Jupiter quote HTTP {response.status_code}: {response.text}"
            )

        data = response.json()
        if not data or not data.get("routePlan"):
            raise QuoteUnavailableError(f"Failed to fetch a valid quote. Response: {data}")

        quote = Quote(
            input_mint=data.get("inputMint", input_mint),
            output_mint=data.get("outputMint", output_mint),
            in_amount=int(data.get("inAmount", amount)),
            out_amount=int(data.get("outAmount", "0")),
            slippage_bps=int(data.get("slippageBps", bps)),
            route_plan=data["routePlan"],
            price_impact_pct=Decimal(str(data.get("priceImpactPct", "0"))),
            raw=data,
        )
        logger.info(
            f"Quote received: {quote.in_amount} -> {quote.out_amount} "
            f"via {' > '.join(quote.dex_path)} (slippage {quote.slippage_bps} bps)"
        )
        return quote

    async def get_swap_instructions(self, quote: Quote, user_public_key: str) -> InstructionSet:
        """Fetch raw swap instructions for a quote.

        Raises:
            InstructionFetchError: On HTTP failure, an ``error`` field, or a
                response without a swap instruction
        """
        try:
            async with self._client() as client:
                response = await client.post(
                    f"{self.base_url}/swap-instructions",
                    headers=self._get_headers(),
                    json={
                        "quoteResponse": quote.raw,
                        "userPublicKey": user_public_key,
                        "wrapAndUnwrapSol": True,
                    },
                )
        except httpx.HTTPError as e:
            raise InstructionFetchError(f"Jupiter swap-instructions request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if not data:
            raise InstructionFetchError(
                f"Failed to get swap instructions: HTTP {response.status_code}"
            )
        if data.get("error"):
            raise InstructionFetchError(f"Failed to get swap instructions: {data['error']}")
        if response.status_code != 200:
            raise InstructionFetchError(
                f"Failed to get swap instructions: HTTP {response.status_code}"
            )
        if not data.get("swapInstruction"):
            raise InstructionFetchError("Failed to get swap instructions: no swap instruction")

        return InstructionSet(
            quote=quote,
            setup_instructions=data.get("setupInstructions") or [],
            swap_instruction=data["swapInstruction"],
            cleanup_instruction=data.get("cleanupInstruction"),
            address_lookup_table_addresses=data.get("addressLookupTableAddresses") or [],
        )


def create_jupiter_client(
    base_url: str = JUPITER_API_V6,
    api_key: Optional[str] = None,
    timeout: float = 30.0,
) -> JupiterClient:
    """Create a Jupiter client instance."""
    return JupiterClient(base_url=base_url, api_key=api_key or None, timeout=timeout)
