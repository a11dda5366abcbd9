"""Routing module: Jupiter quotes and swap instructions."""

from solswap.routing.base import InstructionSet, Quote
from solswap.routing.jupiter import (
    JUPITER_API_V6,
    JupiterClient,
    create_jupiter_client,
    to_slippage_bps,
)

__all__ = [
    "Quote",
    "InstructionSet",
    "JupiterClient",
    "JUPITER_API_V6",
    "create_jupiter_client",
    "to_slippage_bps",
]
