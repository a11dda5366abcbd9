"""Jito block engine JSON-RPC client.

API docs: https://docs.jito.wtf/lowlatencytxnsend/
"""

import logging
import random
from typing import Any, Optional

import httpx

from solswap.errors import BundleSubmissionError, SwapError
from solswap.execution.bundle import BundleEnvelope, BundleState, BundleStatus

logger = logging.getLogger(__name__)

JITO_MAINNET_URL = "https://mainnet.block-engine.jito.wtf"
BUNDLES_PATH = "/api/v1/bundles"

# Published Jito tip accounts, used when getTipAccounts is unavailable
JITO_TIP_ACCOUNTS = [
    "96gYZGLnJYVFmbjzopPSU6QiEV5fGqZNyN9nmNhvrZU5",
    "HFqU5x63VTqvQss8hp11i4wVV8bD44PvwucfZ2bU7gRe",
    "Cw8CFyM9FkoMi7K7Crf6HNQqf4uEMzpKw6QNghXLvLkY",
    "ADaUMid9yfUytqMBgopwjb2DTLSokTSzL1zt6iGPaS49",
    "DfXygSm4jCyNCybVYYK6DwvWqjKee8pbDmJGcLWNDXjh",
    "ADuUkR4vqLUMWXxW9gh6D6L8pMSawimctcNZ5pGwDcEt",
    "DttWaMuVvTiduZRnguLF7jNxTgiMBZ1hyAumKUiL2KRL",
    "3AVi9Tg9Uo68tJfuvoKvqKNWKkC5wPdSSdeBnizKZ6jT",
]


class JitoError(SwapError):
    """Raised when the block engine answers with an error."""
    pass


class JitoClient:
    """Bundle submission and status client for the Jito block engine."""

    def __init__(
        self,
        base_url: str = JITO_MAINNET_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @property
    def api_url(self) -> str:
        return f"{self.base_url}{BUNDLES_PATH}"

    async def _rpc_call(self, method: str, params: Optional[list] = None) -> Any:
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params or []}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(self.api_url, json=payload)

        if response.status_code != 200:
            raise JitoError(f"Jito {method} HTTP {response.status_code}: {response.text}")

        try:
            data = response.json()
        except ValueError as e:
            raise JitoError(f"Jito {method} returned a non-JSON body: {response.text[:200]}") from e
        if not isinstance(data, dict):
            raise JitoError(f"Jito {method} returned an unexpected body: {data!r}")
        if data.get("error"):
            raise JitoError(f"Jito {method} error: {data['error']}")
        return data.get("result")

    async def get_tip_accounts(self) -> list[str]:
        """Current tip accounts, falling back to the published list."""
        try:
            accounts = await self._rpc_call("getTipAccounts")
        except (JitoError, httpx.HTTPError) as e:
            logger.warning(f"getTipAccounts failed, using static tip accounts: {e}")
            return list(JITO_TIP_ACCOUNTS)

        if isinstance(accounts, list) and accounts:
            return accounts
        return list(JITO_TIP_ACCOUNTS)

    async def get_random_tip_account(self) -> str:
        return random.choice(await self.get_tip_accounts())

    async def send_bundle(self, envelope: BundleEnvelope) -> str:
        """Submit the envelope; returns the bundle id assigned by the engine.

        Raises:
            BundleSubmissionError: HTTP failure, RPC error or no id returned
        """
        params = [list(envelope.encoded_transactions), {"encoding": envelope.encoding}]
        try:
            bundle_id = await self._rpc_call("sendBundle", params)
        except (JitoError, httpx.HTTPError) as e:
            raise BundleSubmissionError(f"Bundle submission failed: {e}") from e

        if not bundle_id:
            raise BundleSubmissionError("Bundle submission returned no bundle id")
        return str(bundle_id)

    async def get_bundle_status(self, bundle_id: str) -> BundleStatus:
        """In-flight status of a bundle (Landed, Failed, Pending or Invalid)."""
        result = await self._rpc_call("getInflightBundleStatuses", [[bundle_id]])

        values = (result or {}).get("value") or []
        entry = values[0] if values else None
        if not entry:
            return BundleStatus(bundle_id=bundle_id, state=BundleState.UNKNOWN)

        return BundleStatus(
            bundle_id=entry.get("bundle_id", bundle_id),
            state=BundleState.from_string(entry.get("status")),
            landed_slot=entry.get("landed_slot"),
        )
