"""Wallet key loading.

Either a base58 secret key (as exported by Phantom / solana-keygen) or a
BIP39 seed phrase derived on the standard Solana path m/44'/501'/index'/0'.
"""

import logging
from typing import Optional

from solders.keypair import Keypair

logger = logging.getLogger(__name__)


class WalletNotConfiguredError(ValueError):
    """Raised when neither a private key nor a seed phrase is configured."""
    pass


def keypair_from_seed_phrase(seed_phrase: str, index: int = 0) -> Keypair:
    """Derive Solana keypair from seed phrase.

    Uses standard BIP44 path: m/44'/501'/account'/change'
    Trust Wallet / Phantom use m/44'/501'/0'/0' for the main account.
    """
    from bip_utils import Bip39SeedGenerator, Bip44, Bip44Changes, Bip44Coins

    seed = Bip39SeedGenerator(seed_phrase).Generate()
    bip44 = Bip44.FromSeed(seed, Bip44Coins.SOLANA)
    account = bip44.Purpose().Coin().Account(index).Change(Bip44Changes.CHAIN_EXT)
    private_key = account.PrivateKey().Raw().ToBytes()

    # Solana keypair from 32-byte seed
    return Keypair.from_seed(private_key[:32])


def load_keypair(
    private_key: Optional[str] = None,
    seed_phrase: Optional[str] = None,
    index: int = 0,
) -> Keypair:
    """Load the signing keypair, preferring an explicit secret key."""
    if private_key:
        return Keypair.from_base58_string(private_key.strip())
    if seed_phrase:
        return keypair_from_seed_phrase(seed_phrase.strip(), index)
    raise WalletNotConfiguredError("WALLET_PRIVATE_KEY or WALLET_SEED_PHRASE must be set")
