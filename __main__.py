"""Main Pulumi program for Confluent Cloud Kafka resources."""

import pulumi
from confluent_infrastructure import (
    create_connector_resources,
    create_kafka_acl_resources,
    create_kafka_topic_resources,
)


def main():
    """Main entry point for Pulumi infrastructure."""
    config = pulumi.Config()
    stack = pulumi.get_stack()

    # Create Kafka topics through the cluster's REST API
    kafka_topics = create_kafka_topic_resources(config)

    # ACLs and connectors may reference the topics, create them afterwards
    kafka_acls = create_kafka_acl_resources(config, depends_on=kafka_topics["topics"])
    connectors = create_connector_resources(config, depends_on=kafka_topics["topics"])

    # Export outputs
    pulumi.export("kafka_topic_names", kafka_topics["topic_names"])
    pulumi.export("kafka_acl_ids", kafka_acls["acl_ids"])
    pulumi.export("connector_names", connectors["connector_names"])
    pulumi.export("connector_statuses", [connector.status for connector in connectors["connectors"]])
    pulumi.export("stack", stack)


if __name__ == "__main__":
    main()
