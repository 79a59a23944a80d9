"""Kafka topic lifecycle against the Kafka REST API."""

import re
import time

import pulumi
from pulumi.dynamic import CheckFailure, CheckResult, CreateResult, ReadResult, UpdateResult

from .. import settings
from ..clients import KafkaRestClient
from ..errors import ConfluentApiError, ProviderError, is_not_found
from ..identifiers import kafka_topic_id, parse_kafka_topic_id
from ..settings import KafkaImportEnvironment
from .base import ConfluentResourceProvider, require_credentials, strip_internal, to_json
from .topic_settings import find_outdated_topic_settings, plan_topic_settings_update, TOPIC_SETTINGS_DOCS_URL


DEFAULT_PARTITIONS_COUNT = 6
TOPIC_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9._-]+$")
TOPIC_NAME_MAX_LENGTH = 249
KAFKA_CLUSTER_ID_PATTERN = re.compile(r"^lkc-")
REST_ENDPOINT_PATTERN = re.compile(r"^http")

UPDATABLE_KEYS = ("credentials", "config")


def check_kafka_cluster_and_endpoint(props: dict, failures: list) -> None:
    if not KAFKA_CLUSTER_ID_PATTERN.match(str(props.get("kafka_cluster") or "")):
        failures.append(CheckFailure("kafka_cluster", "the Kafka cluster ID must be of the form 'lkc-'"))
    if not REST_ENDPOINT_PATTERN.match(str(props.get("rest_endpoint") or "")):
        failures.append(CheckFailure("rest_endpoint", "the REST endpoint must start with 'https://'"))
    require_credentials(props, "credentials", failures)


class KafkaTopicProvider(ConfluentResourceProvider):
    replace_keys = ("kafka_cluster", "topic_name", "partitions_count", "rest_endpoint")
    computed_keys = ("config",)

    def __init__(
        self,
        delete_poll_interval: float = settings.TOPIC_DELETE_POLL_INTERVAL,
        delete_timeout: float = settings.TOPIC_DELETE_TIMEOUT,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.delete_poll_interval = delete_poll_interval
        self.delete_timeout = delete_timeout

    def _client_for(self, props: dict) -> KafkaRestClient:
        return self._kafka_client(props["rest_endpoint"], props["kafka_cluster"], props["credentials"])

    def check(self, _olds, news):
        inputs = strip_internal(news)
        failures = []

        topic_name = inputs.get("topic_name") or ""
        if not TOPIC_NAME_PATTERN.match(topic_name) or len(topic_name) > TOPIC_NAME_MAX_LENGTH:
            failures.append(CheckFailure(
                "topic_name",
                "The topic name can be up to 249 characters in length, and can include the following characters: "
                "a-z, A-Z, 0-9, . (dot), _ (underscore), and - (dash).",
            ))

        if inputs.get("partitions_count") is None:
            inputs["partitions_count"] = DEFAULT_PARTITIONS_COUNT
        try:
            inputs["partitions_count"] = int(inputs["partitions_count"])
            if inputs["partitions_count"] < 1:
                raise ValueError(inputs["partitions_count"])
        except (TypeError, ValueError):
            failures.append(CheckFailure("partitions_count", "partitions_count must be an integer of at least 1"))

        if inputs.get("config") is not None:
            inputs["config"] = {str(k): str(v) for k, v in inputs["config"].items()}

        check_kafka_cluster_and_endpoint(inputs, failures)
        return CheckResult(inputs, failures)

    def create(self, props):
        props = strip_internal(props)
        topic_name = props["topic_name"]
        topic_id = kafka_topic_id(props["kafka_cluster"], topic_name)
        request = {
            "topic_name": topic_name,
            "partitions_count": props["partitions_count"],
            "configs": props.get("config") or {},
        }
        pulumi.log.debug(f"Creating new Kafka Topic: {to_json(request)}")

        with self._client_for(props) as client:
            try:
                created = client.create_topic(topic_name, props["partitions_count"], props.get("config"))
            except ConfluentApiError as e:
                raise ProviderError(f"error creating Kafka Topic: {e}") from e

            self._wait_for_consistency()
            pulumi.log.debug(f"Finished creating Kafka Topic {topic_id!r}: {to_json(created)}")

            outs = self._read_topic(client, topic_id, topic_name, is_new=True)
        return CreateResult(topic_id, outs)

    def read(self, id_, props):
        props = strip_internal(props)
        if not props.get("credentials"):
            return self._import(id_)

        pulumi.log.debug(f"Reading Kafka Topic {id_!r}")
        with self._client_for(props) as client:
            outs = self._read_topic(client, id_, props["topic_name"], is_new=False)
        pulumi.log.debug(f"Finished reading Kafka Topic {id_!r}")
        if outs is None:
            return ReadResult("", {})
        return ReadResult(id_, outs)

    def _import(self, id_: str) -> ReadResult:
        pulumi.log.debug(f"Importing Kafka Topic {id_!r}")
        env = KafkaImportEnvironment.from_env()
        cluster_id, topic_name = parse_kafka_topic_id(id_)
        credentials = {"key": env.api_key, "secret": env.api_secret}

        # Read as a new resource: a 404 fails the import instead of dropping it.
        with self._kafka_client(env.rest_endpoint, cluster_id, credentials) as client:
            try:
                outs = self._read_topic(client, id_, topic_name, is_new=True)
            except ConfluentApiError as e:
                raise ProviderError(f"error importing Kafka Topic {id_!r}: {e}") from e
        pulumi.log.debug(f"Finished importing Kafka Topic {id_!r}")
        return ReadResult(kafka_topic_id(cluster_id, topic_name), outs)

    def _read_topic(self, client: KafkaRestClient, topic_id: str, topic_name: str, is_new: bool):
        """Fetch the topic and map it onto outputs.

        Returns None when the topic is gone and the resource is not new.
        """
        try:
            topic = client.get_topic(topic_name)
        except ConfluentApiError as e:
            pulumi.log.warn(f"Error reading Kafka Topic {topic_id!r}: {e}")
            if is_not_found(e) and not is_new:
                pulumi.log.warn(
                    f"Removing Kafka Topic {topic_id!r} in Pulumi state because Kafka Topic could not be found on the server"
                )
                return None
            raise
        pulumi.log.debug(f"Fetched Kafka Topic {topic_id!r}: {to_json(topic)}")

        return {
            "kafka_cluster": client.cluster_id,
            "topic_name": topic["topic_name"],
            "partitions_count": topic["partitions_count"],
            "rest_endpoint": client.rest_endpoint,
            "config": self._load_topic_configs(client, topic_id, topic_name),
            "credentials": {"key": client.api_key, "secret": client.api_secret},
        }

    def _load_topic_configs(self, client: KafkaRestClient, topic_id: str, topic_name: str) -> dict:
        try:
            configs = client.get_dynamic_topic_configs(topic_name)
        except ConfluentApiError as e:
            raise ProviderError(f"error reading Kafka Topic {topic_name!r}: could not load configs {e}") from e
        pulumi.log.debug(f"Fetched Kafka Topic {topic_id!r} Settings: {to_json(configs)}")
        return configs

    def update(self, _id, _olds, _news):
        olds, news = strip_internal(_olds), strip_internal(_news)
        changed = self.changed_keys(olds, news)
        disallowed = [key for key in changed if key not in UPDATABLE_KEYS]
        if disallowed:
            raise ProviderError(
                f"error updating Kafka Topic {_id!r}: only 'credentials' and 'config' blocks can be updated "
                f"for Kafka Topic, got changes to {disallowed}"
            )

        outs = dict(olds)
        outs["credentials"] = news["credentials"]
        if "config" not in changed:
            return UpdateResult(outs)

        batch = plan_topic_settings_update(_id, olds.get("config"), news.get("config"))
        topic_name = news["topic_name"]
        pulumi.log.debug(f"Updating Kafka Topic {_id!r}: {to_json({'data': batch})}")

        with self._client_for(news) as client:
            if batch:
                try:
                    client.alter_topic_configs(topic_name, batch)
                except ConfluentApiError as e:
                    # e.g. 400 Bad Request: Config property 'delete.retention.ms' with value '63113904003'
                    # exceeded max limit of 60566400000.
                    raise ProviderError(f"error updating Kafka Topic {_id!r}: {e}") from e
                self._wait_for_consistency()

            actual_settings = self._load_topic_configs(client, _id, topic_name)

        outdated = find_outdated_topic_settings(batch, actual_settings)
        if outdated:
            raise ProviderError(
                f"error updating Kafka Topic {_id!r}: topic settings update failed for {outdated}. "
                f"Double check that these topic settings are indeed editable and provided target values "
                f"do not exceed min/max allowed values by reading {TOPIC_SETTINGS_DOCS_URL}"
            )
        pulumi.log.debug(
            f"Finished updating Kafka Topic {_id!r}: topic settings update has been completed for "
            f"{to_json([entry['name'] for entry in batch])}"
        )

        outs["config"] = actual_settings
        return UpdateResult(outs)

    def delete(self, _id, _props):
        props = strip_internal(_props)
        topic_name = props["topic_name"]
        pulumi.log.debug(f"Deleting Kafka Topic {_id!r}")

        with self._client_for(props) as client:
            try:
                client.delete_topic(topic_name)
            except ConfluentApiError as e:
                raise ProviderError(f"error deleting Kafka Topic {_id!r}: {e}") from e

            try:
                self._wait_for_topic_to_be_deleted(client, topic_name)
            except ConfluentApiError as e:
                raise ProviderError(f"error waiting for Kafka Topic {_id!r} to be deleted: {e}") from e
        pulumi.log.debug(f"Finished deleting Kafka Topic {_id!r}")

    def _wait_for_topic_to_be_deleted(self, client: KafkaRestClient, topic_name: str) -> None:
        deadline = time.monotonic() + self.delete_timeout
        while True:
            try:
                client.get_topic(topic_name)
            except ConfluentApiError as e:
                if is_not_found(e):
                    return
                raise
            if time.monotonic() >= deadline:
                raise ProviderError(f"Kafka Topic {topic_name!r} still exists {self.delete_timeout}s after deletion")
            pulumi.log.debug(f"Waiting for Kafka Topic {topic_name!r} to be deleted")
            time.sleep(self.delete_poll_interval)
