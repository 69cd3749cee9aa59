"""
Stellar Chain Context

Network configuration plus the two HTTP services the harness talks to directly:
Friendbot for account funding and Horizon for transaction status.
"""

import time
from typing import Callable, Optional

import httpx

from vantis_offchain.config import Settings
from vantis_offchain.console import get_logger


logger = get_logger(__name__)


class StellarChainContext:
    """Manages network endpoints and HTTP access for one Stellar network"""

    def __init__(
        self,
        settings: Settings,
        client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize chain context

        Args:
            settings: Harness settings
            client: HTTP client (a default one is created when omitted)
            sleep: Sleep function used between finality polls
        """
        self.settings = settings
        self.network = settings.network
        self.client = client or httpx.Client(timeout=30.0)
        self._sleep = sleep

    def close(self) -> None:
        self.client.close()

    def get_explorer_url(self, tx_hash: str) -> str:
        """
        Get explorer URL for transaction

        Args:
            tx_hash: Transaction hash

        Returns:
            Explorer URL for the transaction
        """
        return f"{self.settings.explorer_url}/tx/{tx_hash}"

    def request_funding(self, public_key: str) -> bool:
        """
        Ask Friendbot to fund an account

        The response is not awaited beyond the HTTP call itself; an account that
        was already funded makes Friendbot answer with an error, which is fine.

        Args:
            public_key: Account to fund

        Returns:
            True if Friendbot accepted the request
        """
        try:
            response = self.client.get(self.settings.friendbot_url, params={"addr": public_key})
        except httpx.HTTPError as e:
            logger.warning(f"Friendbot request failed for {public_key}: {e}")
            return False

        if response.status_code >= 400:
            logger.warning(f"Friendbot answered {response.status_code} for {public_key}")
            return False
        return True

    def transaction_status(self, tx_hash: str) -> str:
        """
        Query Horizon for a transaction

        Returns:
            "true", "false" or "pending"
        """
        try:
            response = self.client.get(f"{self.settings.horizon_url}/transactions/{tx_hash}")
        except httpx.HTTPError:
            return "pending"

        if response.status_code != 200:
            return "pending"

        try:
            body = response.json()
        except ValueError:
            logger.debug(f"Horizon returned a non-JSON body for {tx_hash}")
            return "pending"

        successful = body.get("successful") if isinstance(body, dict) else None
        if successful is True:
            return "true"
        if successful is False:
            return "false"
        return "pending"

    def wait_for_transaction(
        self, tx_hash: str, max_attempts: Optional[int] = None, interval: Optional[float] = None
    ) -> bool:
        """
        Poll Horizon until a transaction is final

        Args:
            tx_hash: Transaction hash
            max_attempts: Number of polls before giving up
            interval: Seconds between polls

        Returns:
            True if the transaction succeeded, False if it failed or timed out
        """
        max_attempts = max_attempts or self.settings.finality_max_attempts
        interval = self.settings.finality_poll_interval if interval is None else interval

        for attempt in range(max_attempts):
            status = self.transaction_status(tx_hash)
            if status == "true":
                return True
            if status == "false":
                logger.error(f"Transaction failed: {tx_hash}")
                return False
            if attempt < max_attempts - 1:
                self._sleep(interval)

        logger.error(f"Transaction timeout: {tx_hash}")
        return False
