"""Pulumi resources backed by the dynamic providers.

Outputs that carry credentials or sensitive connector settings are always
stored as secrets.
"""

from typing import Any, Mapping, Optional

import pulumi
from pulumi.dynamic import Resource

from .providers import ConnectorProvider, KafkaAclProvider, KafkaTopicProvider


def _with_secret_outputs(opts: Optional[pulumi.ResourceOptions], *names: str) -> pulumi.ResourceOptions:
    return pulumi.ResourceOptions.merge(opts, pulumi.ResourceOptions(additional_secret_outputs=list(names)))


class KafkaTopic(Resource):
    kafka_cluster: pulumi.Output[str]
    topic_name: pulumi.Output[str]
    partitions_count: pulumi.Output[int]
    rest_endpoint: pulumi.Output[str]
    config: pulumi.Output[Mapping[str, str]]
    credentials: pulumi.Output[Mapping[str, str]]

    def __init__(
        self,
        resource_name: str,
        kafka_cluster: pulumi.Input[str],
        topic_name: pulumi.Input[str],
        rest_endpoint: pulumi.Input[str],
        credentials: pulumi.Input[Mapping[str, pulumi.Input[str]]],
        partitions_count: Optional[pulumi.Input[int]] = None,
        config: Optional[pulumi.Input[Mapping[str, pulumi.Input[str]]]] = None,
        opts: Optional[pulumi.ResourceOptions] = None,
    ):
        super().__init__(
            KafkaTopicProvider(),
            resource_name,
            {
                "kafka_cluster": kafka_cluster,
                "topic_name": topic_name,
                "partitions_count": partitions_count,
                "rest_endpoint": rest_endpoint,
                "config": config,
                "credentials": credentials,
            },
            _with_secret_outputs(opts, "credentials"),
        )


class KafkaAcl(Resource):
    kafka_cluster: pulumi.Output[str]
    resource_type: pulumi.Output[str]
    resource_name: pulumi.Output[str]
    pattern_type: pulumi.Output[str]
    principal: pulumi.Output[str]
    host: pulumi.Output[str]
    operation: pulumi.Output[str]
    permission: pulumi.Output[str]
    rest_endpoint: pulumi.Output[str]
    credentials: pulumi.Output[Mapping[str, str]]

    def __init__(
        self,
        name: str,
        kafka_cluster: pulumi.Input[str],
        resource_type: pulumi.Input[str],
        resource_name: pulumi.Input[str],
        pattern_type: pulumi.Input[str],
        principal: pulumi.Input[str],
        host: pulumi.Input[str],
        operation: pulumi.Input[str],
        permission: pulumi.Input[str],
        rest_endpoint: pulumi.Input[str],
        credentials: pulumi.Input[Mapping[str, pulumi.Input[str]]],
        cloud_credentials: Optional[pulumi.Input[Mapping[str, Any]]] = None,
        opts: Optional[pulumi.ResourceOptions] = None,
    ):
        super().__init__(
            KafkaAclProvider(),
            name,
            {
                "kafka_cluster": kafka_cluster,
                "resource_type": resource_type,
                "resource_name": resource_name,
                "pattern_type": pattern_type,
                "principal": principal,
                "host": host,
                "operation": operation,
                "permission": permission,
                "rest_endpoint": rest_endpoint,
                "credentials": credentials,
                "cloud_credentials": cloud_credentials,
            },
            _with_secret_outputs(opts, "credentials", "cloud_credentials"),
        )


class Connector(Resource):
    environment: pulumi.Output[str]
    kafka_cluster: pulumi.Output[str]
    config_sensitive: pulumi.Output[Mapping[str, str]]
    config_nonsensitive: pulumi.Output[Mapping[str, str]]
    status: pulumi.Output[str]

    def __init__(
        self,
        resource_name: str,
        environment: pulumi.Input[str],
        kafka_cluster: pulumi.Input[str],
        config_nonsensitive: pulumi.Input[Mapping[str, pulumi.Input[str]]],
        config_sensitive: Optional[pulumi.Input[Mapping[str, pulumi.Input[str]]]] = None,
        status: Optional[pulumi.Input[str]] = None,
        cloud_credentials: Optional[pulumi.Input[Mapping[str, Any]]] = None,
        opts: Optional[pulumi.ResourceOptions] = None,
    ):
        super().__init__(
            ConnectorProvider(),
            resource_name,
            {
                "environment": environment,
                "kafka_cluster": kafka_cluster,
                "config_sensitive": config_sensitive,
                "config_nonsensitive": config_nonsensitive,
                "status": status,
                "cloud_credentials": cloud_credentials,
            },
            _with_secret_outputs(opts, "config_sensitive", "cloud_credentials"),
        )
