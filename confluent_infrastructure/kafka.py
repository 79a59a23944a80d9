"""Confluent Kafka topic and ACL resources."""

from pathlib import Path

import pulumi
import yaml

from .resources import KafkaAcl, KafkaTopic
from .settings import is_production_stack, load_provider_settings


# Default configuration for Kafka topics
DEFAULT_TOPIC_CONFIG = {
    "partitions_count": 6,
    "config": {
        "cleanup.policy": "delete",
        "retention.ms": "604800000",  # 7 days
    },
}

TOPICS_FILE = Path(__file__).parent.parent / "kafka-topics.yaml"
ACLS_FILE = Path(__file__).parent.parent / "kafka-acls.yaml"


def _load_topics_from_file(topics_file: Path) -> tuple[list[dict], dict]:
    """Load topic definitions from a YAML file.

    Returns:
        Tuple of (topics list, file-level defaults dict)
    """
    with open(topics_file, "r") as f:
        data = yaml.safe_load(f)

    if not data:
        return [], {}

    return data.get("topics", []), data.get("defaults", {})


def _load_acls_from_file(acls_file: Path) -> list[dict]:
    with open(acls_file, "r") as f:
        data = yaml.safe_load(f)

    if not data:
        return []

    return data.get("acls", [])


def build_topic_definitions(topics: list[dict], file_defaults: dict, stack: str) -> list[dict]:
    """Merge defaults into each topic definition and apply {stack} substitution.

    Args:
        topics: Topic definitions as loaded from YAML
        file_defaults: 'defaults' block from the same file
        stack: Current Pulumi stack name

    Returns:
        List of dicts with keys: resource_name, topic_name, partitions_count, config
    """
    effective_defaults = {**DEFAULT_TOPIC_CONFIG, **file_defaults}
    default_settings = {**DEFAULT_TOPIC_CONFIG["config"], **(file_defaults.get("config") or {})}

    definitions = []
    for idx, topic_def in enumerate(topics):
        # Topic name is required
        if not isinstance(topic_def, dict) or "name" not in topic_def:
            raise ValueError(f"Topic at index {idx} must be a dict with 'name' field")

        full_topic_name = topic_def["name"].replace("{stack}", stack)

        # Topic settings are merged key by key, all values as strings
        topic_settings = {**default_settings, **(topic_def.get("config") or {})}

        definitions.append({
            # Pulumi resource name (sanitized, no dots or special chars)
            "resource_name": full_topic_name.replace(".", "-").replace("_", "-"),
            "topic_name": full_topic_name,
            "partitions_count": int(topic_def.get("partitions_count", effective_defaults["partitions_count"])),
            "config": {key: str(value) for key, value in topic_settings.items()},
        })
    return definitions


def _sanitize_name_part(value: str) -> str:
    return value.replace(".", "-").replace("_", "-").replace("*", "all").replace(":", "-")


def build_acl_definitions(acls: list[dict], stack: str) -> list[dict]:
    """Validate ACL definitions and fill in the wildcard host.

    Returns:
        List of dicts with the seven ACL fields plus resource_name_suffix
    """
    required = ("resource_type", "resource_name", "pattern_type", "principal", "operation", "permission")
    definitions = []
    for idx, acl_def in enumerate(acls):
        if not isinstance(acl_def, dict):
            raise ValueError(f"ACL at index {idx} must be a dict")
        missing = [field for field in required if field not in acl_def]
        if missing:
            raise ValueError(f"ACL at index {idx} is missing fields: {', '.join(missing)}")

        resource_name = str(acl_def["resource_name"]).replace("{stack}", stack)
        definition = {
            "resource_type": str(acl_def["resource_type"]).upper(),
            "resource_name": resource_name,
            "pattern_type": str(acl_def["pattern_type"]).upper(),
            "principal": acl_def["principal"],
            "host": acl_def.get("host", "*"),
            "operation": str(acl_def["operation"]).upper(),
            "permission": str(acl_def["permission"]).upper(),
        }
        principal_id = definition["principal"].split(":", 1)[-1]
        # One part per ACL field.
        definition["resource_name_suffix"] = "-".join([
            definition["resource_type"].lower().replace("_", "-"),
            definition["pattern_type"].lower(),
            _sanitize_name_part(resource_name),
            principal_id,
            _sanitize_name_part(str(definition["host"])),
            definition["operation"].lower().replace("_", "-"),
            definition["permission"].lower(),
        ])
        definitions.append(definition)
    return definitions


def create_kafka_topic_resources(config: pulumi.Config) -> dict:
    """Create Kafka topics in Confluent Cloud from YAML configuration.

    Topics are defined in kafka-topics.yaml at the project root.
    Each topic requires a 'name' field, and can optionally override
    'partitions_count' and any topic setting under 'config'.

    Args:
        config: Pulumi configuration object

    Returns:
        Dictionary of created resources and outputs with keys:
        - topics: List of topic resources
        - topic_names: List of topic names
    """
    stack = pulumi.get_stack()
    provider_settings = load_provider_settings(config)

    if not TOPICS_FILE.exists():
        pulumi.log.warn(f"kafka-topics.yaml not found at {TOPICS_FILE}, no topics will be created")
        return {"topics": [], "topic_names": []}

    topics, file_defaults = _load_topics_from_file(TOPICS_FILE)
    if not topics:
        return {"topics": [], "topic_names": []}
    pulumi.log.info(f"Loaded {len(topics)} topics from {TOPICS_FILE.name}")

    # Protect production resources from accidental deletion
    is_production = is_production_stack(stack)

    created_topics = []
    topic_names = []
    for definition in build_topic_definitions(topics, file_defaults, stack):
        topic = KafkaTopic(
            f"confluent-{definition['resource_name']}-topic",
            kafka_cluster=provider_settings["kafka_cluster_id"],
            topic_name=definition["topic_name"],
            partitions_count=definition["partitions_count"],
            rest_endpoint=provider_settings["kafka_rest_endpoint"],
            config=definition["config"],
            credentials=provider_settings["kafka_credentials"],
            opts=pulumi.ResourceOptions(protect=is_production),
        )
        created_topics.append(topic)
        topic_names.append(topic.topic_name)

    return {
        "topics": created_topics,
        "topic_names": topic_names,
    }


def create_kafka_acl_resources(config: pulumi.Config, depends_on: list = None) -> dict:
    """Create Kafka ACLs in Confluent Cloud from kafka-acls.yaml.

    Principals use resource IDs ("User:sa-abc123"); cloud API credentials
    are needed to translate them.

    Returns:
        dict with:
            - acls: list of KafkaAcl resources
            - acl_ids: list of composite ACL IDs
    """
    stack = pulumi.get_stack()
    provider_settings = load_provider_settings(config)

    if not ACLS_FILE.exists():
        pulumi.log.warn("No kafka-acls.yaml found, no ACLs will be created")
        return {"acls": [], "acl_ids": []}

    acl_definitions = build_acl_definitions(_load_acls_from_file(ACLS_FILE), stack)
    pulumi.log.info(f"Loaded {len(acl_definitions)} ACLs from {ACLS_FILE.name}")

    is_production = is_production_stack(stack)

    acls = []
    for definition in acl_definitions:
        suffix = definition.pop("resource_name_suffix")
        acl = KafkaAcl(
            f"confluent-acl-{suffix}",
            kafka_cluster=provider_settings["kafka_cluster_id"],
            rest_endpoint=provider_settings["kafka_rest_endpoint"],
            credentials=provider_settings["kafka_credentials"],
            cloud_credentials=provider_settings["cloud_credentials"],
            opts=pulumi.ResourceOptions(protect=is_production, depends_on=depends_on or []),
            **definition,
        )
        acls.append(acl)

    return {
        "acls": acls,
        "acl_ids": [acl.id for acl in acls],
    }
