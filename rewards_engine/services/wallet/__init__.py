"""Wallet balance integration."""

from rewards_engine.services.wallet.wallet_client import (
    WalletClient,
    create_wallet_client,
)

__all__ = ["WalletClient", "create_wallet_client"]
