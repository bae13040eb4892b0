"""Read-only client for the SePay transaction API."""

import logging
from typing import Any, Dict, Optional

import httpx

from ..config import DEFAULT_SEPAY_API_URL, Settings
from ..errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)


class SePayClient:
    """Looks up transaction details on SePay by transaction id."""

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = DEFAULT_SEPAY_API_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            api_key: SePay user API token, sent as a bearer credential.
            base_url: SePay user API root.
            timeout: Seconds before the single request is abandoned.
            transport: Optional httpx transport, used by tests.
        """
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "SePayClient":
        return cls(
            api_key=settings.sepay_api_key,
            base_url=settings.sepay_api_url,
            timeout=settings.sepay_timeout,
            **kwargs,
        )

    def _headers(self) -> Dict[str, str]:
        if not self._api_key:
            logger.error("SEPAY_API_KEY is not configured")
            raise ConfigurationError("SEPAY_API_KEY not configured")
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    async def fetch_transaction(self, txn_id: str) -> Dict[str, Any]:
        """Fetch one transaction; no retry is attempted.

        Args:
            txn_id: SePay transaction id.

        Returns:
            The ``transaction`` object of the SePay response.

        Raises:
            ConfigurationError: If no API key is configured.
            UpstreamError: If SePay answers with an error or cannot be reached.
        """
        headers = self._headers()
        url = f"{self.base_url}/transactions/details/{txn_id}"

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.get(url, headers=headers)
        except httpx.TimeoutException as e:
            logger.error(f"SePay request for {txn_id} timed out")
            raise UpstreamError("SePay API timeout", status_code=504) from e
        except httpx.HTTPError as e:
            logger.error(f"Failed to connect to SePay API: {type(e).__name__}")
            raise UpstreamError("Failed to connect to SePay API", status_code=502) from e

        if not response.is_success:
            logger.warning(f"SePay returned {response.status_code} for {txn_id}")
            raise UpstreamError(
                f"SePay API error: {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError("SePay returned a malformed response", status_code=400) from e

        messages = data.get("messages") if isinstance(data, dict) else None
        if (
            not isinstance(data, dict)
            or data.get("status") != 200
            or not (messages or {}).get("success")
        ):
            error = data.get("error") if isinstance(data, dict) else None
            raise UpstreamError(
                error or "Failed to fetch transaction details",
                status_code=400,
            )

        return data.get("transaction") or {}
