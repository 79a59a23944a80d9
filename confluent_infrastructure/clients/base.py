"""Shared HTTP plumbing for the Confluent REST clients."""

from typing import Any, Optional

import httpx
import pulumi

from .. import settings
from ..errors import ConfluentApiError, error_from_response


class RestClient:
    """Basic-auth JSON client over httpx.

    Args:
        endpoint: Base URL of the API
        api_key: API key (basic auth user)
        api_secret: API secret (basic auth password)
        transport: Optional httpx transport, used to stub the API in tests
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        api_secret: str,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = settings.HTTP_TIMEOUT,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.api_key = api_key
        self.api_secret = api_secret
        self._client = httpx.Client(
            base_url=self.endpoint,
            auth=httpx.BasicAuth(api_key, api_secret),
            headers={"Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict] = None,
        json: Any = None,
    ) -> Any:
        """Send a request and decode the JSON answer.

        Returns:
            Decoded JSON body, or None for empty bodies (204, 202 without content)

        Raises:
            ResourceNotFoundError: On 404
            ConfluentApiError: On any other non-2xx answer or transport failure
        """
        try:
            response = self._client.request(method, path, params=params, json=json)
        except httpx.TransportError as e:
            raise ConfluentApiError(
                f"{method} {self.endpoint}{path} failed: {e}", method=method, url=f"{self.endpoint}{path}"
            ) from e

        if response.is_error:
            error = error_from_response(response)
            pulumi.log.debug(f"{method} {response.request.url} returned {response.status_code}: {error.message}")
            raise error

        if not response.content:
            return None
        return response.json()
