"""Quote and instruction models shared by the aggregator client and the executor."""

import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional


@dataclass(frozen=True)
class Quote:
    """A Jupiter quote for one swap attempt.

    Only valid briefly; the executor fetches a fresh one for every attempt.
    """

    input_mint: str
    output_mint: str
    in_amount: int  # Smallest units of the input token
    out_amount: int
    slippage_bps: int
    route_plan: list = field(default_factory=list)
    price_impact_pct: Decimal = Decimal("0")
    raw: dict = field(default_factory=dict)  # Full response, echoed back for instructions
    timestamp: float = field(default_factory=time.time)
    ttl_seconds: int = 30

    @property
    def dex_path(self) -> list[str]:
        """Labels of the AMMs the route passes through."""
        return [
            step.get("swapInfo", {}).get("label", "Unknown")
            for step in self.route_plan
        ]

    @property
    def is_expired(self) -> bool:
        """Check if quote has expired."""
        return time.time() > (self.timestamp + self.ttl_seconds)

    @property
    def seconds_until_expiry(self) -> float:
        """Get seconds until quote expires (negative if expired)."""
        return (self.timestamp + self.ttl_seconds) - time.time()


@dataclass(frozen=True)
class InstructionSet:
    """Serialized instructions returned for a single quote.

    Payloads are kept in the aggregator's JSON shape
    (``programId``, ``accounts``, base64 ``data``) until assembly.
    """

    quote: Quote
    setup_instructions: list[dict[str, Any]]
    swap_instruction: dict[str, Any]
    cleanup_instruction: Optional[dict[str, Any]] = None
    address_lookup_table_addresses: list[str] = field(default_factory=list)

    @property
    def payloads(self) -> list[dict[str, Any]]:
        """Payloads in execution order: setup, swap, cleanup."""
        ordered = list(self.setup_instructions)
        ordered.append(self.swap_instruction)
        if self.cleanup_instruction:
            ordered.append(self.cleanup_instruction)
        return ordered
