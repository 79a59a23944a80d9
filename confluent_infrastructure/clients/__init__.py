"""REST clients for the Kafka REST API and the Confluent Cloud API."""

from .cloud import CloudApiClient
from .kafka_rest import KafkaRestClient

__all__ = ["CloudApiClient", "KafkaRestClient"]
