"""Jito block engine bundling."""

from solswap.jito.bundler import JitoBundler
from solswap.jito.client import JITO_MAINNET_URL, JITO_TIP_ACCOUNTS, JitoClient, JitoError
from solswap.jito.dry_run import DryRunBundler

__all__ = [
    "JitoClient",
    "JitoError",
    "JitoBundler",
    "DryRunBundler",
    "JITO_MAINNET_URL",
    "JITO_TIP_ACCOUNTS",
]
