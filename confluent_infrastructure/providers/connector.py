"""Managed connector lifecycle against the Confluent Cloud Connect API.

Sensitive settings are write-only: the API returns them masked, so the
values kept in state are the ones last declared.
"""

import re
import time
from enum import Enum
from typing import Optional

import pulumi
from pulumi.dynamic import CheckFailure, CheckResult, CreateResult, DiffResult, ReadResult, UpdateResult

from .. import settings
from ..clients import CloudApiClient
from ..errors import ConfluentApiError, ProviderError, is_not_found
from ..identifiers import connector_id, parse_connector_id
from .base import ConfluentResourceProvider, require_credentials, strip_internal, to_json


class ConnectorStatus(str, Enum):
    NONE = "NONE"
    PROVISIONING = "PROVISIONING"
    RUNNING = "RUNNING"
    DEGRADED = "DEGRADED"
    FAILED = "FAILED"
    PAUSED = "PAUSED"
    DELETED = "DELETED"


DECLARABLE_STATUSES = (ConnectorStatus.RUNNING.value, ConnectorStatus.PAUSED.value)
ENVIRONMENT_ID_PATTERN = re.compile(r"^env-")
KAFKA_CLUSTER_ID_PATTERN = re.compile(r"^lkc-")
MASKED_VALUE_PATTERN = re.compile(r"^\*+$")

CONNECTOR_NAME_KEY = "name"
CONNECTOR_CLASS_KEY = "connector.class"
# Changing either of these means a different connector.
IDENTITY_CONFIG_KEYS = (CONNECTOR_NAME_KEY, CONNECTOR_CLASS_KEY)

UPDATABLE_KEYS = ("config_sensitive", "config_nonsensitive", "status", "cloud_credentials")


def parse_status(state: Optional[str]) -> ConnectorStatus:
    if not state:
        return ConnectorStatus.NONE
    try:
        return ConnectorStatus(state.upper())
    except ValueError:
        raise ProviderError(f"unexpected connector status {state!r}") from None


def connector_name(props: dict) -> str:
    return (props.get("config_nonsensitive") or {}).get(CONNECTOR_NAME_KEY, "")


def merged_config(props: dict) -> dict:
    config = dict(props.get("config_nonsensitive") or {})
    config.update(props.get("config_sensitive") or {})
    return config


class ConnectorProvider(ConfluentResourceProvider):
    replace_keys = ("environment", "kafka_cluster")
    computed_keys = ("status",)

    def __init__(
        self,
        provision_poll_interval: float = settings.CONNECTOR_PROVISION_POLL_INTERVAL,
        provision_timeout: float = settings.CONNECTOR_PROVISION_TIMEOUT,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.provision_poll_interval = provision_poll_interval
        self.provision_timeout = provision_timeout

    def check(self, _olds, news):
        inputs = strip_internal(news)
        failures = []

        if not ENVIRONMENT_ID_PATTERN.match(str(inputs.get("environment") or "")):
            failures.append(CheckFailure("environment", "the environment ID must be of the form 'env-'"))
        if not KAFKA_CLUSTER_ID_PATTERN.match(str(inputs.get("kafka_cluster") or "")):
            failures.append(CheckFailure("kafka_cluster", "the Kafka cluster ID must be of the form 'lkc-'"))

        for key in ("config_sensitive", "config_nonsensitive"):
            inputs[key] = {str(k): str(v) for k, v in (inputs.get(key) or {}).items()}
        if not connector_name(inputs):
            failures.append(CheckFailure(
                "config_nonsensitive", f"'config_nonsensitive' must set the connector {CONNECTOR_NAME_KEY!r}"
            ))
        overlap = sorted(set(inputs["config_sensitive"]) & set(inputs["config_nonsensitive"]))
        if overlap:
            failures.append(CheckFailure(
                "config_sensitive", f"settings {overlap} are declared as both sensitive and non-sensitive"
            ))

        status = inputs.get("status")
        if status is not None:
            inputs["status"] = str(status).upper()
            if inputs["status"] not in DECLARABLE_STATUSES:
                failures.append(CheckFailure("status", f"status must be one of {list(DECLARABLE_STATUSES)}"))

        if inputs.get("cloud_credentials") is not None:
            require_credentials(inputs, "cloud_credentials", failures)
        return CheckResult(inputs, failures)

    def diff(self, _id, _olds, _news):
        result = super().diff(_id, _olds, _news)
        old_config = (_olds or {}).get("config_nonsensitive") or {}
        new_config = (_news or {}).get("config_nonsensitive") or {}
        if any(old_config.get(key) != new_config.get(key) for key in IDENTITY_CONFIG_KEYS):
            return DiffResult(
                changes=True,
                replaces=sorted(set(result.replaces or []) | {"config_nonsensitive"}),
                stables=[],
                delete_before_replace=True,
            )
        return result

    def create(self, props):
        props = strip_internal(props)
        environment_id, cluster_id, name = props["environment"], props["kafka_cluster"], connector_name(props)
        composite_id = connector_id(environment_id, cluster_id, name)
        pulumi.log.debug(
            f"Creating new Connector {composite_id!r}: {to_json(props.get('config_nonsensitive'))}"
        )

        with self._cloud_client(props.get("cloud_credentials")) as cloud:
            try:
                created = cloud.create_connector(environment_id, cluster_id, name, merged_config(props))
            except ConfluentApiError as e:
                raise ProviderError(f"error creating Connector {name!r}: {e}") from e
            self._wait_for_consistency()

            try:
                state = self._wait_for_connector_to_provision(cloud, composite_id, environment_id, cluster_id, name)
            except ConfluentApiError as e:
                raise ProviderError(f"error waiting for Connector {composite_id!r} to provision: {e}") from e
            if state == ConnectorStatus.FAILED:
                raise ProviderError(f"error creating Connector {composite_id!r}: connector failed to provision")

            if props.get("status") == ConnectorStatus.PAUSED.value:
                try:
                    cloud.pause_connector(environment_id, cluster_id, name)
                except ConfluentApiError as e:
                    raise ProviderError(f"error pausing Connector {composite_id!r}: {e}") from e
                self._wait_for_consistency()

            pulumi.log.debug(f"Finished creating Connector {composite_id!r}: {to_json((created or {}).get('name'))}")
            outs = self._read_connector(cloud, composite_id, props, is_new=True)
        return CreateResult(composite_id, outs)

    def read(self, id_, props):
        props = strip_internal(props)
        if not props.get("config_nonsensitive"):
            return self._import(id_)

        pulumi.log.debug(f"Reading Connector {id_!r}")
        with self._cloud_client(props.get("cloud_credentials")) as cloud:
            outs = self._read_connector(cloud, id_, props, is_new=False)
        pulumi.log.debug(f"Finished reading Connector {id_!r}")
        if outs is None:
            return ReadResult("", {})
        return ReadResult(id_, outs)

    def _import(self, id_: str) -> ReadResult:
        pulumi.log.debug(f"Importing Connector {id_!r}")
        environment_id, cluster_id, name = parse_connector_id(id_)
        props = {
            "environment": environment_id,
            "kafka_cluster": cluster_id,
            "config_sensitive": {},
            "config_nonsensitive": {CONNECTOR_NAME_KEY: name},
            "cloud_credentials": None,
        }
        with self._cloud_client(None) as cloud:
            try:
                outs = self._read_connector(cloud, id_, props, is_new=True, declared_keys_only=False)
            except ConfluentApiError as e:
                raise ProviderError(f"error importing Connector {id_!r}: {e}") from e
        pulumi.log.debug(f"Finished importing Connector {id_!r}")
        return ReadResult(id_, outs)

    def _read_connector(
        self,
        cloud: CloudApiClient,
        composite_id: str,
        props: dict,
        is_new: bool,
        declared_keys_only: bool = True,
    ):
        """Fetch the connector and its status and map them onto outputs.

        Returns None when the connector is gone and the resource is not new.
        """
        environment_id, cluster_id, name = props["environment"], props["kafka_cluster"], connector_name(props)
        try:
            connector = cloud.get_connector(environment_id, cluster_id, name)
            status = cloud.get_connector_status(environment_id, cluster_id, name)
        except ConfluentApiError as e:
            pulumi.log.warn(f"Error reading Connector {composite_id!r}: {e}")
            if is_not_found(e) and not is_new:
                pulumi.log.warn(
                    f"Removing Connector {composite_id!r} in Pulumi state because Connector could not be found on the server"
                )
                return None
            raise
        pulumi.log.debug(f"Fetched Connector {composite_id!r}: {to_json({'name': connector.get('name'), 'status': status})}")

        sensitive = props.get("config_sensitive") or {}
        declared = props.get("config_nonsensitive") or {}
        nonsensitive = {}
        for key, value in (connector.get("config") or {}).items():
            if key in sensitive or MASKED_VALUE_PATTERN.match(str(value)):
                continue
            if declared_keys_only and key not in declared and key != CONNECTOR_NAME_KEY:
                continue
            nonsensitive[key] = str(value)

        return {
            "environment": environment_id,
            "kafka_cluster": cluster_id,
            "config_sensitive": sensitive,
            "config_nonsensitive": nonsensitive,
            "status": parse_status((status.get("connector") or {}).get("state")).value,
            "cloud_credentials": props.get("cloud_credentials"),
        }

    def update(self, _id, _olds, _news):
        olds, news = strip_internal(_olds), strip_internal(_news)
        changed = self.changed_keys(olds, news)
        disallowed = [key for key in changed if key not in UPDATABLE_KEYS]
        if disallowed:
            raise ProviderError(f"error updating Connector {_id!r}: {disallowed} cannot be updated in place")

        environment_id, cluster_id, name = news["environment"], news["kafka_cluster"], connector_name(news)
        with self._cloud_client(news.get("cloud_credentials")) as cloud:
            if "config_sensitive" in changed or "config_nonsensitive" in changed:
                pulumi.log.debug(f"Updating Connector {_id!r} config: {to_json(news.get('config_nonsensitive'))}")
                try:
                    cloud.update_connector_config(environment_id, cluster_id, name, merged_config(news))
                except ConfluentApiError as e:
                    raise ProviderError(f"error updating Connector {_id!r}: {e}") from e
                self._wait_for_consistency()

            if "status" in changed:
                self._transition(cloud, _id, news, olds.get("status"), news["status"])

            outs = self._read_connector(cloud, _id, news, is_new=True)
        pulumi.log.debug(f"Finished updating Connector {_id!r}")
        return UpdateResult(outs)

    def _transition(self, cloud: CloudApiClient, composite_id: str, props: dict, current: str, desired: str) -> None:
        environment_id, cluster_id, name = props["environment"], props["kafka_cluster"], connector_name(props)
        if current not in DECLARABLE_STATUSES:
            # Saved status is stale, go by the remote one.
            try:
                current = self._wait_for_connector_to_provision(
                    cloud, composite_id, environment_id, cluster_id, name
                ).value
            except ConfluentApiError as e:
                raise ProviderError(f"error reading Connector {composite_id!r} status: {e}") from e
        if current == desired:
            pulumi.log.debug(f"Connector {composite_id!r} is already {desired}")
            return

        if current == ConnectorStatus.RUNNING.value and desired == ConnectorStatus.PAUSED.value:
            action, call = "pausing", cloud.pause_connector
        elif current == ConnectorStatus.PAUSED.value and desired == ConnectorStatus.RUNNING.value:
            action, call = "resuming", cloud.resume_connector
        else:
            raise ProviderError(
                f"error updating Connector {composite_id!r}: unsupported status transition {current!r} -> {desired!r}; "
                f"only {ConnectorStatus.RUNNING.value!r} <-> {ConnectorStatus.PAUSED.value!r} is supported"
            )

        pulumi.log.debug(f"{action.capitalize()} Connector {composite_id!r}")
        try:
            call(environment_id, cluster_id, name)
        except ConfluentApiError as e:
            raise ProviderError(f"error {action} Connector {composite_id!r}: {e}") from e
        self._wait_for_consistency()

    def _wait_for_connector_to_provision(
        self,
        cloud: CloudApiClient,
        composite_id: str,
        environment_id: str,
        cluster_id: str,
        name: str,
    ) -> ConnectorStatus:
        """Poll the connector status until it leaves PROVISIONING and return it."""
        deadline = time.monotonic() + self.provision_timeout
        while True:
            status = cloud.get_connector_status(environment_id, cluster_id, name)
            state = parse_status((status.get("connector") or {}).get("state"))
            if state != ConnectorStatus.PROVISIONING:
                pulumi.log.debug(f"Connector {composite_id!r} is {state.value}")
                return state
            if time.monotonic() >= deadline:
                raise ProviderError(
                    f"Connector {composite_id!r} is still provisioning after {self.provision_timeout}s"
                )
            pulumi.log.debug(f"Waiting for Connector {composite_id!r} to provision")
            time.sleep(self.provision_poll_interval)

    def delete(self, _id, _props):
        props = strip_internal(_props)
        pulumi.log.debug(f"Deleting Connector {_id!r}")
        with self._cloud_client(props.get("cloud_credentials")) as cloud:
            try:
                cloud.delete_connector(props["environment"], props["kafka_cluster"], connector_name(props))
            except ConfluentApiError as e:
                raise ProviderError(f"error deleting Connector {_id!r}: {e}") from e
        pulumi.log.debug(f"Finished deleting Connector {_id!r}")
