"""Wiring of a SwapController from Settings."""

import logging
from typing import Optional

from solders.keypair import Keypair

from solswap.chain.rpc import SolanaChain
from solswap.config import Settings
from solswap.execution.backoff import FixedDelay
from solswap.execution.controller import SwapController
from solswap.execution.fees import FeeEstimator
from solswap.jito.bundler import JitoBundler
from solswap.jito.client import JitoClient
from solswap.jito.dry_run import DryRunBundler
from solswap.routing.jupiter import create_jupiter_client
from solswap.wallet import load_keypair

logger = logging.getLogger(__name__)


def create_bundler(settings: Settings, keypair: Keypair):
    """Jito bundler, or the dry-run bundler when DRY_RUN is enabled."""
    if settings.dry_run:
        logger.warning("DRY_RUN enabled - bundles will not be submitted")
        return DryRunBundler()

    client = JitoClient(
        base_url=settings.jito_block_engine_url,
        timeout=settings.http_timeout_seconds,
    )
    return JitoBundler(client, keypair, tip_lamports=settings.jito_tip_lamports)


def create_swap_controller(
    settings: Settings,
    keypair: Optional[Keypair] = None,
    chain: Optional[SolanaChain] = None,
) -> SwapController:
    """Build a controller with explicit collaborators from settings.

    Args:
        settings: Loaded settings
        keypair: Signing keypair (loaded from settings when omitted)
        chain: Shared chain connection (created when omitted)
    """
    if keypair is None:
        keypair = load_keypair(
            private_key=settings.wallet_private_key,
            seed_phrase=settings.wallet_seed_phrase,
            index=settings.wallet_account_index,
        )
    chain = chain or SolanaChain(settings.sol_rpc_url)
    jupiter = create_jupiter_client(
        base_url=settings.jupiter_api_url,
        api_key=settings.jupiter_api_key,
        timeout=settings.http_timeout_seconds,
    )

    return SwapController(
        quotes=jupiter,
        instructions=jupiter,
        chain=chain,
        bundler=create_bundler(settings, keypair),
        keypair=keypair,
        fee_estimator=FeeEstimator(
            chain,
            default_priority_fee=settings.default_priority_fee_micro_lamports,
            fee_window=settings.priority_fee_window,
        ),
        max_retries=settings.max_retries,
        retry_delay=FixedDelay(settings.retry_backoff_seconds),
        confirmation_attempts=settings.bundle_confirmation_attempts,
        poll_delay=FixedDelay(settings.bundle_poll_delay_seconds),
        simulation_attempts=settings.simulation_attempts,
        blockhash_commitment=settings.blockhash_commitment,
    )
