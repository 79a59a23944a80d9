"""Kafka ACL lifecycle against the Kafka REST API."""

import pulumi
from pulumi.dynamic import CheckFailure, CheckResult, CreateResult, ReadResult, UpdateResult

from ..clients import KafkaRestClient
from ..errors import ConfluentApiError, ProviderError, is_not_found
from ..identifiers import Acl, kafka_acl_id, parse_kafka_acl_id
from ..settings import KafkaImportEnvironment
from .base import ConfluentResourceProvider, strip_internal, to_json
from .principals import PrincipalResolver, RESOURCE_ID_PRINCIPAL_PATTERN
from .topic import check_kafka_cluster_and_endpoint


ACCEPTED_RESOURCE_TYPES = ("UNKNOWN", "ANY", "TOPIC", "GROUP", "CLUSTER", "TRANSACTIONAL_ID", "DELEGATION_TOKEN")
ACCEPTED_PATTERN_TYPES = ("UNKNOWN", "ANY", "MATCH", "LITERAL", "PREFIXED")
ACCEPTED_OPERATIONS = (
    "UNKNOWN", "ANY", "ALL", "READ", "WRITE", "CREATE", "DELETE", "ALTER", "DESCRIBE",
    "CLUSTER_ACTION", "DESCRIBE_CONFIGS", "ALTER_CONFIGS", "IDEMPOTENT_WRITE",
)
ACCEPTED_PERMISSIONS = ("UNKNOWN", "ANY", "DENY", "ALLOW")

ACL_ENUM_FIELDS = {
    "resource_type": ACCEPTED_RESOURCE_TYPES,
    "pattern_type": ACCEPTED_PATTERN_TYPES,
    "operation": ACCEPTED_OPERATIONS,
    "permission": ACCEPTED_PERMISSIONS,
}

UPDATABLE_KEYS = ("credentials", "cloud_credentials")


def validate_acl(acl: Acl) -> list[CheckFailure]:
    failures = []
    for field, accepted in ACL_ENUM_FIELDS.items():
        value = getattr(acl, field)
        if value not in accepted:
            failures.append(CheckFailure(field, f"expected {field} to be one of {list(accepted)}, got {value!r}"))
    if not RESOURCE_ID_PRINCIPAL_PATTERN.match(acl.principal or ""):
        failures.append(CheckFailure("principal", "the principal must start with 'User:sa-' or 'User:u-'"))
    return failures


def acl_request(acl: Acl, integer_principal: str) -> dict:
    request = acl.as_props()
    request["principal"] = integer_principal
    return request


class KafkaAclProvider(ConfluentResourceProvider):
    # The ACL is immutable as a whole.
    replace_keys = (
        "kafka_cluster", "rest_endpoint", "resource_type", "resource_name", "pattern_type",
        "principal", "host", "operation", "permission",
    )

    def check(self, _olds, news):
        inputs = strip_internal(news)
        failures = []
        for field in ACL_ENUM_FIELDS:
            if isinstance(inputs.get(field), str):
                inputs[field] = inputs[field].upper()
        missing = [field for field in Acl.__dataclass_fields__ if not inputs.get(field)]
        for field in missing:
            failures.append(CheckFailure(field, f"{field!r} is required"))
        if not missing:
            failures.extend(validate_acl(Acl.from_props(inputs)))
        check_kafka_cluster_and_endpoint(inputs, failures)
        return CheckResult(inputs, failures)

    def create(self, props):
        props = strip_internal(props)
        acl = Acl.from_props(props)
        acl_id = kafka_acl_id(props["kafka_cluster"], acl)

        with self._kafka_client(props["rest_endpoint"], props["kafka_cluster"], props["credentials"]) as client, \
                self._cloud_client(props.get("cloud_credentials")) as cloud:
            resolver = PrincipalResolver(cloud)
            try:
                request = acl_request(acl, resolver.to_integer_principal(acl.principal))
                pulumi.log.debug(f"Creating new Kafka ACLs: {to_json(request)}")
                client.create_acl(request)
            except (ConfluentApiError, ProviderError) as e:
                raise ProviderError(f"error creating Kafka ACLs: {e}") from e

            self._wait_for_consistency()
            pulumi.log.debug(f"Finished creating Kafka ACLs {acl_id!r}")

            outs = self._read_acl(client, resolver, acl_id, acl, is_new=True)

        outs["cloud_credentials"] = props.get("cloud_credentials")
        return CreateResult(acl_id, outs)

    def read(self, id_, props):
        props = strip_internal(props)
        if not props.get("credentials"):
            return self._import(id_)

        pulumi.log.debug(f"Reading Kafka ACLs {id_!r}")
        acl = Acl.from_props(props)
        with self._kafka_client(props["rest_endpoint"], props["kafka_cluster"], props["credentials"]) as client, \
                self._cloud_client(props.get("cloud_credentials")) as cloud:
            outs = self._read_acl(client, PrincipalResolver(cloud), id_, acl, is_new=False)
        pulumi.log.debug(f"Finished reading Kafka ACLs {id_!r}")

        if outs is None:
            return ReadResult("", {})
        outs["cloud_credentials"] = props.get("cloud_credentials")
        return ReadResult(id_, outs)

    def _import(self, id_: str) -> ReadResult:
        pulumi.log.debug(f"Importing Kafka ACLs {id_!r}")
        env = KafkaImportEnvironment.from_env()
        cluster_id, acl = parse_kafka_acl_id(id_)
        failures = validate_acl(acl)
        if failures:
            raise ProviderError(
                f"error importing Kafka ACLs {id_!r}: " + "; ".join(failure.reason for failure in failures)
            )

        credentials = {"key": env.api_key, "secret": env.api_secret}
        with self._kafka_client(env.rest_endpoint, cluster_id, credentials) as client, \
                self._cloud_client(None) as cloud:
            try:
                outs = self._read_acl(client, PrincipalResolver(cloud), id_, acl, is_new=True)
            except (ConfluentApiError, ProviderError) as e:
                raise ProviderError(f"error importing Kafka ACLs {id_!r}: {e}") from e

        outs["cloud_credentials"] = None
        pulumi.log.debug(f"Finished importing Kafka ACLs {id_!r}")
        return ReadResult(kafka_acl_id(cluster_id, acl), outs)

    def _read_acl(self, client: KafkaRestClient, resolver: PrincipalResolver, acl_id: str, acl: Acl, is_new: bool):
        """Look the ACL up by its seven fields and map the single match onto outputs.

        Returns None when the ACL is gone and the resource is not new.
        """
        acl_filter = acl_request(acl, resolver.to_integer_principal(acl.principal))
        try:
            matched = client.search_acls(acl_filter)
        except ConfluentApiError as e:
            pulumi.log.warn(f"Error reading Kafka ACLs {acl_id!r}: {e}")
            if is_not_found(e) and not is_new:
                pulumi.log.warn(
                    f"Removing Kafka ACLs {acl_id!r} in Pulumi state because Kafka ACLs could not be found on the server"
                )
                return None
            raise

        if not matched:
            if not is_new:
                pulumi.log.warn(
                    f"Removing Kafka ACLs {acl_id!r} in Pulumi state because no Kafka ACLs were matched on the server"
                )
                return None
            raise ProviderError(f"error reading Kafka ACLs {acl_id!r}: no Kafka ACLs were matched")
        if len(matched) > 1:
            raise ProviderError(f"error reading Kafka ACLs {acl_id!r}: multiple Kafka ACLs were matched")

        remote = matched[0]
        pulumi.log.debug(f"Fetched Kafka ACLs {acl_id!r}: {to_json(remote)}")

        return {
            "kafka_cluster": client.cluster_id,
            "resource_type": remote["resource_type"],
            "resource_name": remote["resource_name"],
            "pattern_type": remote["pattern_type"],
            "principal": resolver.to_resource_principal(remote["principal"]),
            "host": remote["host"],
            "operation": remote["operation"],
            "permission": remote["permission"],
            "rest_endpoint": client.rest_endpoint,
            "credentials": {"key": client.api_key, "secret": client.api_secret},
        }

    def update(self, _id, _olds, _news):
        olds, news = strip_internal(_olds), strip_internal(_news)
        disallowed = [key for key in self.changed_keys(olds, news) if key not in UPDATABLE_KEYS]
        if disallowed:
            raise ProviderError(
                f"error updating Kafka ACLs {_id!r}: only 'credentials' block can be updated for Kafka ACLs, "
                f"got changes to {disallowed}"
            )

        acl = Acl.from_props(news)
        with self._kafka_client(news["rest_endpoint"], news["kafka_cluster"], news["credentials"]) as client, \
                self._cloud_client(news.get("cloud_credentials")) as cloud:
            outs = self._read_acl(client, PrincipalResolver(cloud), _id, acl, is_new=True)
        outs["cloud_credentials"] = news.get("cloud_credentials")
        return UpdateResult(outs)

    def delete(self, _id, _props):
        props = strip_internal(_props)
        pulumi.log.debug(f"Deleting Kafka ACLs {_id!r}")
        acl = Acl.from_props(props)

        with self._kafka_client(props["rest_endpoint"], props["kafka_cluster"], props["credentials"]) as client, \
                self._cloud_client(props.get("cloud_credentials")) as cloud:
            try:
                acl_filter = acl_request(acl, PrincipalResolver(cloud).to_integer_principal(acl.principal))
                client.delete_acls(acl_filter)
            except (ConfluentApiError, ProviderError) as e:
                raise ProviderError(f"error deleting Kafka ACLs {_id!r}: {e}") from e
        pulumi.log.debug(f"Finished deleting Kafka ACLs {_id!r}")
