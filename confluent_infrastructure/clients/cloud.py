"""Confluent Cloud control-plane API client (connectors, service accounts, users)."""

from typing import Optional
from urllib.parse import quote

import httpx

from .. import settings
from .base import RestClient


class CloudApiClient(RestClient):
    def __init__(
        self,
        api_key: str,
        api_secret: str,
        endpoint: str = settings.DEFAULT_CLOUD_ENDPOINT,
        transport: Optional[httpx.BaseTransport] = None,
        **kwargs,
    ):
        super().__init__(endpoint, api_key, api_secret, transport=transport, **kwargs)

    # Connectors

    @staticmethod
    def _connectors_path(environment_id: str, cluster_id: str, suffix: str = "") -> str:
        return (
            f"/connect/v1/environments/{quote(environment_id, safe='')}"
            f"/clusters/{quote(cluster_id, safe='')}/connectors{suffix}"
        )

    def _connector_path(self, environment_id: str, cluster_id: str, name: str, suffix: str = "") -> str:
        return self._connectors_path(environment_id, cluster_id, f"/{quote(name, safe='')}{suffix}")

    def create_connector(self, environment_id: str, cluster_id: str, name: str, config: dict) -> dict:
        payload = {"name": name, "config": config}
        return self._request("POST", self._connectors_path(environment_id, cluster_id), json=payload)

    def get_connector(self, environment_id: str, cluster_id: str, name: str) -> dict:
        return self._request("GET", self._connector_path(environment_id, cluster_id, name))

    def get_connector_status(self, environment_id: str, cluster_id: str, name: str) -> dict:
        return self._request("GET", self._connector_path(environment_id, cluster_id, name, "/status"))

    def update_connector_config(self, environment_id: str, cluster_id: str, name: str, config: dict) -> dict:
        return self._request("PUT", self._connector_path(environment_id, cluster_id, name, "/config"), json=config)

    def pause_connector(self, environment_id: str, cluster_id: str, name: str) -> None:
        self._request("PUT", self._connector_path(environment_id, cluster_id, name, "/pause"))

    def resume_connector(self, environment_id: str, cluster_id: str, name: str) -> None:
        self._request("PUT", self._connector_path(environment_id, cluster_id, name, "/resume"))

    def delete_connector(self, environment_id: str, cluster_id: str, name: str) -> None:
        self._request("DELETE", self._connector_path(environment_id, cluster_id, name))

    # Identities

    def list_service_accounts(self) -> list[dict]:
        body = self._request("GET", "/service_accounts")
        return body.get("users", []) if body else []

    def list_users(self) -> list[dict]:
        body = self._request("GET", "/users")
        return body.get("users", []) if body else []
