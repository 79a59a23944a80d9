"""
Managed Connector Management

Creates and manages fully-managed connectors in Confluent Cloud.
Connectors are loaded from connectors.yaml at the project root.

Sensitive settings are never written to YAML. Each connector lists the
Pulumi secret config keys that hold them under 'secrets', e.g.:

    connectors:
      - name: "{stack}-orders-sink"
        status: RUNNING
        config:
          connector.class: S3_SINK
          topics: "{stack}.orders"
        secrets:
          aws.secret.access.key: orders_sink_aws_secret
"""

from pathlib import Path

import pulumi
import yaml

from .resources import Connector
from .settings import is_production_stack, load_provider_settings


CONNECTORS_FILE = Path(__file__).parent.parent / "connectors.yaml"


def _load_connectors_from_file(file_path: Path) -> list[dict]:
    with open(file_path, "r") as f:
        data = yaml.safe_load(f)

    if not data:
        return []

    return data.get("connectors", [])


def build_connector_definitions(connectors: list[dict], stack: str) -> list[dict]:
    """Validate connector definitions and apply {stack} substitution.

    Returns:
        List of dicts with keys: name, status, config, secrets (setting -> config key)
    """
    definitions = []
    for idx, connector_def in enumerate(connectors):
        if not isinstance(connector_def, dict) or "name" not in connector_def:
            raise ValueError(f"Connector at index {idx} must be a dict with 'name' field")

        name = connector_def["name"].replace("{stack}", stack)
        connector_config = {
            key: str(value).replace("{stack}", stack)
            for key, value in (connector_def.get("config") or {}).items()
        }
        connector_config["name"] = name

        definitions.append({
            "name": name,
            "status": connector_def.get("status"),
            "config": connector_config,
            "secrets": dict(connector_def.get("secrets") or {}),
        })
    return definitions


def create_connector_resources(config: pulumi.Config, depends_on: list = None) -> dict:
    """
    Create managed connectors from connectors.yaml.

    Requires environment_id and cloud API credentials in Pulumi config.

    Returns:
        dict with:
            - connectors: list of Connector resources
            - connector_names: list of connector name strings
    """
    stack = pulumi.get_stack()
    provider_settings = load_provider_settings(config)

    if not CONNECTORS_FILE.exists():
        pulumi.log.warn("No connectors.yaml found, no connectors will be created")
        return {"connectors": [], "connector_names": []}

    definitions = build_connector_definitions(_load_connectors_from_file(CONNECTORS_FILE), stack)
    if not definitions:
        return {"connectors": [], "connector_names": []}

    environment_id = provider_settings["environment_id"]
    if not environment_id:
        raise ValueError("environment_id must be set in Pulumi config to create connectors")

    pulumi.log.info(f"Loaded {len(definitions)} connectors from {CONNECTORS_FILE.name}")
    is_production = is_production_stack(stack)

    connectors = []
    connector_names = []
    for definition in definitions:
        config_sensitive = {
            setting: config.require_secret(config_key)
            for setting, config_key in definition["secrets"].items()
        }
        resource_name = f"confluent-{definition['name'].replace('.', '-').replace('_', '-')}-connector"

        connector = Connector(
            resource_name,
            environment=environment_id,
            kafka_cluster=provider_settings["kafka_cluster_id"],
            config_nonsensitive=definition["config"],
            config_sensitive=config_sensitive,
            status=definition["status"],
            cloud_credentials=provider_settings["cloud_credentials"],
            opts=pulumi.ResourceOptions(protect=is_production, depends_on=depends_on or []),
        )
        connectors.append(connector)
        connector_names.append(definition["name"])

    return {
        "connectors": connectors,
        "connector_names": connector_names,
    }
