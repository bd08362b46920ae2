"""Operations system client. Read-only: trips are never written back."""

import httpx

from ftms.config import get_settings
from ftms.exceptions import IntegrationError
from ftms.logging_config import get_logger

logger = get_logger(__name__)


class OperationsClient:

    def __init__(
        self,
        base_url: str | None = None,
        endpoint: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        settings = get_settings()
        self.base_url = base_url if base_url is not None else settings.OP_API_BASE_URL
        self.endpoint = endpoint if endpoint is not None else settings.OP_BUS_TRIPS_ENDPOINT
        self.timeout = timeout if timeout is not None else settings.OP_API_TIMEOUT_SECONDS
        self.transport = transport

    def fetch_bus_trips(self) -> list[dict]:
        """
        Fetch every bus-trip assignment.

        Accepts either a bare list or {"data": [...]}; anything else is
        an IntegrationError.
        """
        if not self.base_url:
            raise IntegrationError("OP_API_BASE_URL is not configured")

        try:
            with httpx.Client(
                base_url=self.base_url, transport=self.transport, timeout=self.timeout
            ) as client:
                response = client.get(self.endpoint, headers={"Accept": "application/json"})
                response.raise_for_status()
                payload = response.json()
        except ValueError as e:
            raise IntegrationError("Operations API returned invalid JSON") from e
        except httpx.RequestError as e:
            logger.warning("Operations API request failed", extra={"error": str(e)})
            raise IntegrationError(f"Operations API request failed: {e}") from e
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Operations API returned an error",
                extra={"status_code": e.response.status_code},
            )
            raise IntegrationError(
                f"Operations API request failed: {e.response.status_code}"
            ) from e

        if isinstance(payload, dict) and isinstance(payload.get("data"), list):
            payload = payload["data"]
        if not isinstance(payload, list):
            raise IntegrationError("Operations API returned an unexpected payload")
        return payload
