"""Confluent Cloud Kafka resources for Pulumi."""

from .connect import create_connector_resources
from .kafka import create_kafka_acl_resources, create_kafka_topic_resources

__all__ = ["create_kafka_topic_resources", "create_kafka_acl_resources", "create_connector_resources"]
