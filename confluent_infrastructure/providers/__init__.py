"""Dynamic resource providers for Confluent Kafka topics, ACLs and connectors."""

from .acl import KafkaAclProvider
from .connector import ConnectorProvider, ConnectorStatus
from .topic import KafkaTopicProvider

__all__ = ["ConnectorProvider", "ConnectorStatus", "KafkaAclProvider", "KafkaTopicProvider"]
