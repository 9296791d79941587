"""
Wallet balance client.

Posts balance updates to the external wallet service. Any non-2xx response,
transport error or timeout is raised as WalletUpdateError so the caller can
roll back the ledger mutation it belongs to.
"""

import asyncio
from decimal import Decimal

import aiohttp
from loguru import logger

from rewards_engine.config.constants import (
    WALLET_BALANCE_ACTION,
    WALLET_BALANCE_SOURCE,
    WALLET_BALANCE_TYPE,
)
from rewards_engine.config.settings import settings
from rewards_engine.utils.exceptions import WalletUpdateError


class WalletClient:
    """HTTP client for the wallet balance-update endpoint."""

    def __init__(
        self,
        url: str | None = None,
        timeout: float | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """
        Initialize wallet client.

        Args:
            url: Endpoint URL (defaults to settings.wallet_api_url)
            timeout: Total request timeout in seconds
            session: Optional shared aiohttp session
        """
        self.url = url or settings.wallet_api_url
        self.timeout = timeout or settings.wallet_api_timeout
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def update_balance(
        self,
        user_id: str,
        amount: Decimal,
        balance_type: str = WALLET_BALANCE_TYPE,
        action: str = WALLET_BALANCE_ACTION,
        source: str = WALLET_BALANCE_SOURCE,
    ) -> None:
        """
        Apply a balance change.

        Args:
            user_id: Wallet owner
            amount: Amount to apply
            balance_type: Balance bucket
            action: "add" or "subtract"
            source: Originating subsystem

        Raises:
            WalletUpdateError: On non-2xx, transport error or timeout
        """
        payload = {
            "userId": user_id,
            "amount": float(amount),
            "type": balance_type,
            "action": action,
            "source": source,
        }

        try:
            session = await self._get_session()
            async with session.post(
                self.url,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"Content-Type": "application/json"},
            ) as response:
                if not 200 <= response.status < 300:
                    raise WalletUpdateError(
                        f"Wallet balance update failed: HTTP {response.status}",
                        status=response.status,
                    )
        except asyncio.TimeoutError as e:
            raise WalletUpdateError(
                f"Wallet balance update timed out after {self.timeout}s"
            ) from e
        except aiohttp.ClientError as e:
            raise WalletUpdateError(f"Wallet balance update failed: {e}") from e

        logger.debug(
            "Wallet balance updated",
            extra={"user_id": user_id, "amount": str(amount), "source": source},
        )

    async def close(self) -> None:
        """Close the owned aiohttp session."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "WalletClient":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()


def create_wallet_client() -> WalletClient | None:
    """
    Wallet client configured from settings.

    Returns:
        WalletClient, or None when wallet pushes are disabled
    """
    if not settings.wallet_enabled:
        logger.info("Wallet balance updates disabled")
        return None
    return WalletClient()
