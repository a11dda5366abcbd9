"""Solana chain access."""

from solswap.chain.rpc import SolanaChain

__all__ = ["SolanaChain"]
