"""Kafka REST API v3 client (topics, topic configs and ACLs)."""

from typing import Optional
from urllib.parse import quote

import httpx

from .base import RestClient


# Source of a topic setting that was set explicitly rather than inherited.
CONFIG_SOURCE_DYNAMIC_TOPIC = "DYNAMIC_TOPIC_CONFIG"


class KafkaRestClient(RestClient):
    """Client bound to a single Kafka cluster.

    Args:
        rest_endpoint: REST endpoint of the cluster, e.g. https://pkc-00000.us-central1.gcp.confluent.cloud:443
        cluster_id: Kafka cluster ID (lkc-...)
        api_key: Cluster API key
        api_secret: Cluster API secret
    """

    def __init__(
        self,
        rest_endpoint: str,
        cluster_id: str,
        api_key: str,
        api_secret: str,
        transport: Optional[httpx.BaseTransport] = None,
        **kwargs,
    ):
        super().__init__(rest_endpoint, api_key, api_secret, transport=transport, **kwargs)
        self.cluster_id = cluster_id

    @property
    def rest_endpoint(self) -> str:
        return self.endpoint

    def _cluster_path(self, suffix: str = "") -> str:
        return f"/kafka/v3/clusters/{quote(self.cluster_id, safe='')}{suffix}"

    def _topic_path(self, topic_name: str, suffix: str = "") -> str:
        return self._cluster_path(f"/topics/{quote(topic_name, safe='')}{suffix}")

    # Topics

    def create_topic(self, topic_name: str, partitions_count: int, configs: Optional[dict] = None) -> dict:
        payload = {
            "topic_name": topic_name,
            "partitions_count": partitions_count,
            "configs": [{"name": name, "value": value} for name, value in (configs or {}).items()],
        }
        return self._request("POST", self._cluster_path("/topics"), json=payload)

    def get_topic(self, topic_name: str) -> dict:
        return self._request("GET", self._topic_path(topic_name))

    def delete_topic(self, topic_name: str) -> None:
        self._request("DELETE", self._topic_path(topic_name))

    def list_topic_configs(self, topic_name: str) -> list[dict]:
        body = self._request("GET", self._topic_path(topic_name, "/configs"))
        return body.get("data", []) if body else []

    def get_dynamic_topic_configs(self, topic_name: str) -> dict[str, str]:
        """Return only the settings that were set explicitly on the topic."""
        return {
            config["name"]: config["value"]
            for config in self.list_topic_configs(topic_name)
            if config.get("source") == CONFIG_SOURCE_DYNAMIC_TOPIC and config.get("value") is not None
        }

    def alter_topic_configs(self, topic_name: str, batch: list[dict]) -> None:
        self._request("POST", self._topic_path(topic_name, "/configs:alter"), json={"data": batch})

    # ACLs

    def create_acl(self, acl: dict) -> None:
        self._request("POST", self._cluster_path("/acls"), json=acl)

    def search_acls(self, acl_filter: dict) -> list[dict]:
        body = self._request("GET", self._cluster_path("/acls"), params=acl_filter)
        return body.get("data", []) if body else []

    def delete_acls(self, acl_filter: dict) -> list[dict]:
        body = self._request("DELETE", self._cluster_path("/acls"), params=acl_filter)
        return body.get("data", []) if body else []
