"""Composite resource identifiers.

Formats:
    topic:     <Kafka cluster ID>/<topic name>
    ACL:       <Kafka cluster ID>/<resource type>#<resource name>#<pattern type>#<principal>#<host>#<operation>#<permission>
    connector: <Environment ID>/<Kafka cluster ID>/<connector name>
"""

from dataclasses import dataclass

from .errors import ProviderError


ACL_FIELD_SEPARATOR = "#"

ACL_ID_FORMAT = (
    "<Kafka cluster ID>/<resource type>#<resource name>#<pattern type>#<principal>#<host>#<operation>#<permission>"
)


@dataclass(frozen=True)
class Acl:
    resource_type: str
    resource_name: str
    pattern_type: str
    principal: str
    host: str
    operation: str
    permission: str

    @classmethod
    def from_props(cls, props: dict) -> "Acl":
        return cls(
            resource_type=props["resource_type"],
            resource_name=props["resource_name"],
            pattern_type=props["pattern_type"],
            principal=props["principal"],
            host=props["host"],
            operation=props["operation"],
            permission=props["permission"],
        )

    def as_props(self) -> dict:
        return {
            "resource_type": self.resource_type,
            "resource_name": self.resource_name,
            "pattern_type": self.pattern_type,
            "principal": self.principal,
            "host": self.host,
            "operation": self.operation,
            "permission": self.permission,
        }

    def serialize(self) -> str:
        return ACL_FIELD_SEPARATOR.join([
            self.resource_type,
            self.resource_name,
            self.pattern_type,
            self.principal,
            self.host,
            self.operation,
            self.permission,
        ])


def kafka_topic_id(cluster_id: str, topic_name: str) -> str:
    return f"{cluster_id}/{topic_name}"


def parse_kafka_topic_id(topic_id: str) -> tuple[str, str]:
    parts = topic_id.split("/")
    if len(parts) != 2 or not all(parts):
        raise ProviderError(
            f"error importing Kafka Topic: invalid format {topic_id!r}: expected '<Kafka cluster ID>/<topic name>'"
        )
    return parts[0], parts[1]


def kafka_acl_id(cluster_id: str, acl: Acl) -> str:
    return f"{cluster_id}/{acl.serialize()}"


def deserialize_acl(serialized_acl: str) -> Acl:
    parts = serialized_acl.split(ACL_FIELD_SEPARATOR)
    if len(parts) != 7:
        raise ProviderError(f"invalid format for Kafka ACL import: expected '{ACL_ID_FORMAT}'")
    resource_type, resource_name, pattern_type, principal, host, operation, permission = parts
    return Acl(
        resource_type=resource_type.upper(),
        resource_name=resource_name,
        pattern_type=pattern_type.upper(),
        principal=principal,
        host=host,
        operation=operation.upper(),
        permission=permission.upper(),
    )


def parse_kafka_acl_id(acl_id: str) -> tuple[str, Acl]:
    # Only the first "/" separates the cluster ID; resource names may contain slashes.
    cluster_id, sep, serialized_acl = acl_id.partition("/")
    if not sep or not cluster_id:
        raise ProviderError(f"error importing Kafka ACLs: invalid format: expected '{ACL_ID_FORMAT}'")
    return cluster_id, deserialize_acl(serialized_acl)


def connector_id(environment_id: str, cluster_id: str, connector_name: str) -> str:
    return f"{environment_id}/{cluster_id}/{connector_name}"


def parse_connector_id(composite_id: str) -> tuple[str, str, str]:
    parts = composite_id.split("/")
    if len(parts) != 3 or not all(parts):
        raise ProviderError(
            f"error importing Connector: invalid format {composite_id!r}: "
            "expected '<Environment ID>/<Kafka cluster ID>/<connector name>'"
        )
    return parts[0], parts[1], parts[2]
