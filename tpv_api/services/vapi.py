"""Vapi.ai client for placing outbound TPV calls."""

import logging

import httpx

from tpv_api.core.config import settings
from tpv_api.core.errors import ConfigurationError, ProviderError

logger = logging.getLogger(__name__)


class VapiClient:
    """Thin wrapper around the Vapi REST API."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = settings.VAPI_API_KEY if api_key is None else api_key
        self.base_url = (base_url or settings.VAPI_BASE_URL).rstrip("/")
        self.transport = transport

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def create_phone_call(self, command: dict) -> dict:
        """POST /call/phone. Returns the created call object."""
        if not self.api_key:
            raise ConfigurationError("VAPI_API_KEY is not configured")

        async with httpx.AsyncClient(transport=self.transport) as client:
            response = await client.post(
                f"{self.base_url}/call/phone",
                headers=self._headers(),
                json=command,
            )

        if not response.is_success:
            logger.error("Vapi API error: %s %s", response.status_code, response.text)
            raise ProviderError("Vapi", response.status_code, response.text)

        try:
            call = response.json()
        except ValueError:
            logger.error("Vapi returned a non-JSON body: %s %s", response.status_code, response.text)
            raise ProviderError("Vapi", response.status_code, response.text)
        if not isinstance(call, dict) or not isinstance(call.get("id"), str) or not call["id"]:
            logger.error("Vapi response has no call id: %s", response.text)
            raise ProviderError("Vapi", response.status_code, response.text)

        logger.info("Vapi call created: %s (status=%s)", call.get("id"), call.get("status"))
        return call


def get_vapi_client() -> VapiClient:
    return VapiClient()
