"""Solana token swaps through Jupiter quotes and Jito bundles."""

__version__ = "0.1.0"
