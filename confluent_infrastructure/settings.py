"""Provider settings, timing constants and import environment.

Program-level settings come from Pulumi config, e.g. in Pulumi.{stack}.yaml:
    config:
      confluent-infrastructure:environment_id: "env-abc123"
      confluent-infrastructure:kafka_cluster_id: "lkc-abc123"
      confluent-infrastructure:kafka_rest_endpoint: "https://pkc-00000.us-central1.gcp.confluent.cloud:443"
      confluent-infrastructure:kafka_api_key:
        secure: ...
"""

import os
from dataclasses import dataclass
from typing import Optional

import pulumi

from .errors import ProviderError


DEFAULT_CLOUD_ENDPOINT = "https://api.confluent.cloud"

# https://github.com/confluentinc/terraform-provider-confluent/issues/40#issuecomment-1048782379
KAFKA_REST_API_WAIT_AFTER_CREATE = 10  # seconds
TOPIC_DELETE_POLL_INTERVAL = 5  # seconds
TOPIC_DELETE_TIMEOUT = 300  # seconds
CONNECTOR_PROVISION_POLL_INTERVAL = 10  # seconds
CONNECTOR_PROVISION_TIMEOUT = 1800  # seconds
HTTP_TIMEOUT = 30.0  # seconds

IMPORT_KAFKA_API_KEY = "IMPORT_KAFKA_API_KEY"
IMPORT_KAFKA_API_SECRET = "IMPORT_KAFKA_API_SECRET"
IMPORT_KAFKA_REST_ENDPOINT = "IMPORT_KAFKA_REST_ENDPOINT"
CONFLUENT_CLOUD_API_KEY = "CONFLUENT_CLOUD_API_KEY"
CONFLUENT_CLOUD_API_SECRET = "CONFLUENT_CLOUD_API_SECRET"
CONFLUENT_CLOUD_ENDPOINT = "CONFLUENT_CLOUD_ENDPOINT"


@dataclass(frozen=True)
class KafkaImportEnvironment:
    """Cluster credentials used when a topic or ACL is imported."""

    api_key: str
    api_secret: str
    rest_endpoint: str

    @classmethod
    def from_env(cls) -> "KafkaImportEnvironment":
        values = _require_env(IMPORT_KAFKA_API_KEY, IMPORT_KAFKA_API_SECRET, IMPORT_KAFKA_REST_ENDPOINT)
        return cls(
            api_key=values[IMPORT_KAFKA_API_KEY],
            api_secret=values[IMPORT_KAFKA_API_SECRET],
            rest_endpoint=values[IMPORT_KAFKA_REST_ENDPOINT],
        )


@dataclass(frozen=True)
class CloudEnvironment:
    """Cloud API credentials used when state carries none (imports)."""

    api_key: str
    api_secret: str
    endpoint: str = DEFAULT_CLOUD_ENDPOINT

    @classmethod
    def from_env(cls) -> "CloudEnvironment":
        values = _require_env(CONFLUENT_CLOUD_API_KEY, CONFLUENT_CLOUD_API_SECRET)
        return cls(
            api_key=values[CONFLUENT_CLOUD_API_KEY],
            api_secret=values[CONFLUENT_CLOUD_API_SECRET],
            endpoint=os.environ.get(CONFLUENT_CLOUD_ENDPOINT) or DEFAULT_CLOUD_ENDPOINT,
        )


def _require_env(*names: str) -> dict:
    values = {name: os.environ.get(name, "") for name in names}
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise ProviderError(f"environment variables {', '.join(missing)} must be set")
    return values


def load_provider_settings(config: pulumi.Config) -> dict:
    """Read cluster and cloud connection settings from Pulumi config.

    Args:
        config: Pulumi configuration object

    Returns:
        Dictionary with keys:
        - environment_id: Confluent environment ID (or None)
        - kafka_cluster_id: Kafka cluster ID
        - kafka_rest_endpoint: REST endpoint of the Kafka cluster
        - kafka_credentials: {key, secret} cluster API key (secret outputs)
        - cloud_credentials: {key, secret, endpoint} cloud API key (or None)
    """
    cloud_key: Optional[pulumi.Output] = config.get_secret("cloud_api_key")
    cloud_secret: Optional[pulumi.Output] = config.get_secret("cloud_api_secret")

    cloud_credentials = None
    if cloud_key is not None and cloud_secret is not None:
        cloud_credentials = {
            "key": cloud_key,
            "secret": cloud_secret,
            "endpoint": config.get("cloud_endpoint") or DEFAULT_CLOUD_ENDPOINT,
        }
    elif cloud_key is not None or cloud_secret is not None:
        pulumi.log.warn("Only one of cloud_api_key / cloud_api_secret is set, ignoring cloud credentials")

    return {
        "environment_id": config.get("environment_id"),
        "kafka_cluster_id": config.require("kafka_cluster_id"),
        "kafka_rest_endpoint": config.require("kafka_rest_endpoint"),
        "kafka_credentials": {
            "key": config.require_secret("kafka_api_key"),
            "secret": config.require_secret("kafka_api_secret"),
        },
        "cloud_credentials": cloud_credentials,
    }


def is_production_stack(stack: str) -> bool:
    return stack in ["production", "prod"]
