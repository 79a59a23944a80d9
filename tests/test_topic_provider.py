"""Unit tests for the Kafka topic provider lifecycle."""
from typing import Any, Dict

import httpx
import pytest

from confluent_infrastructure.errors import ConfluentApiError, ProviderError
from confluent_infrastructure.providers import KafkaTopicProvider

from conftest import CLUSTER_ID, KAFKA_CREDENTIALS, REST_ENDPOINT, FakeConfluent


TOPIC_ID = f"{CLUSTER_ID}/orders"


def topic_props(**overrides: Any) -> Dict[str, Any]:
    props = {
        "kafka_cluster": CLUSTER_ID,
        "topic_name": "orders",
        "partitions_count": 3,
        "rest_endpoint": REST_ENDPOINT,
        "config": {"retention.ms": "600000"},
        "credentials": dict(KAFKA_CREDENTIALS),
    }
    props.update(overrides)
    return props


class TestCheck:
    """Test input validation."""

    def test_valid_inputs_pass(self, topic_provider: KafkaTopicProvider) -> None:
        result = topic_provider.check({}, topic_props())

        assert result.failures == []

    def test_partitions_count_defaults_to_six(self, topic_provider: KafkaTopicProvider) -> None:
        result = topic_provider.check({}, topic_props(partitions_count=None))

        assert result.inputs["partitions_count"] == 6

    def test_config_values_become_strings(self, topic_provider: KafkaTopicProvider) -> None:
        result = topic_provider.check({}, topic_props(config={"retention.ms": 600000}))

        assert result.inputs["config"] == {"retention.ms": "600000"}

    def test_reports_every_invalid_field(self, topic_provider: KafkaTopicProvider) -> None:
        result = topic_provider.check({}, topic_props(
            topic_name="orders/v1",
            partitions_count=0,
            kafka_cluster="abc123",
            rest_endpoint="pkc-00000:443",
            credentials={"key": "", "secret": "s"},
        ))

        assert sorted(failure.property for failure in result.failures) == [
            "credentials", "kafka_cluster", "partitions_count", "rest_endpoint", "topic_name",
        ]

    def test_topic_name_length_limit(self, topic_provider: KafkaTopicProvider) -> None:
        result = topic_provider.check({}, topic_props(topic_name="a" * 250))

        assert [failure.property for failure in result.failures] == ["topic_name"]

    def test_ignores_engine_keys(self, topic_provider: KafkaTopicProvider) -> None:
        result = topic_provider.check({}, {**topic_props(), "__provider": "serialized"})

        assert "__provider" not in result.inputs


class TestDiff:
    """Test replacement decisions."""

    def test_no_changes(self, topic_provider: KafkaTopicProvider) -> None:
        result = topic_provider.diff(TOPIC_ID, {**topic_props(), "__provider": "x"}, topic_props())

        assert result.changes is False
        assert result.replaces == []

    @pytest.mark.parametrize("key,value", [
        ("partitions_count", 12),
        ("topic_name", "payments"),
        ("kafka_cluster", "lkc-other"),
        ("rest_endpoint", "https://pkc-11111:443"),
    ])
    def test_immutable_fields_force_replacement(self, topic_provider: KafkaTopicProvider, key: str, value: Any) -> None:
        result = topic_provider.diff(TOPIC_ID, topic_props(), topic_props(**{key: value}))

        assert result.changes is True
        assert result.replaces == [key]
        assert result.delete_before_replace is True

    def test_config_change_updates_in_place(self, topic_provider: KafkaTopicProvider) -> None:
        result = topic_provider.diff(TOPIC_ID, topic_props(), topic_props(config={"retention.ms": "1"}))

        assert result.changes is True
        assert result.replaces == []

    def test_undeclared_config_keeps_remote_settings(self, topic_provider: KafkaTopicProvider) -> None:
        result = topic_provider.diff(TOPIC_ID, topic_props(), topic_props(config=None))

        assert result.changes is False


class TestCreate:
    """Test topic creation."""

    def test_creates_then_reads_back(self, topic_provider: KafkaTopicProvider, fake: FakeConfluent) -> None:
        result = topic_provider.create(topic_props())

        assert result.id == TOPIC_ID
        assert result.outs == topic_props()
        assert [r.method for r in fake.requests] == ["POST", "GET", "GET"]

    def test_waits_after_create(self, fake: FakeConfluent, monkeypatch: pytest.MonkeyPatch) -> None:
        sleeps = []
        monkeypatch.setattr("confluent_infrastructure.providers.base.time.sleep", sleeps.append)
        provider = KafkaTopicProvider(transport=fake.transport, wait_after_create=10)

        provider.create(topic_props())

        assert sleeps == [10]

    def test_remote_error_is_wrapped(self, topic_provider: KafkaTopicProvider, fake: FakeConfluent) -> None:
        fake.add_topic("orders")

        with pytest.raises(ProviderError, match="error creating Kafka Topic: 400 Bad Request: Topic 'orders' already exists"):
            topic_provider.create(topic_props())

    def test_missing_after_create_is_an_error(self, topic_provider: KafkaTopicProvider, fake: FakeConfluent) -> None:
        """A new resource is never dropped from state on 404."""
        original = fake._topics

        def create_without_storing(request, cluster):
            response = original(request, cluster)
            fake.topics.clear()
            return response

        fake._routes = lambda: [(r"^/kafka/v3/clusters/(?P<cluster>[^/]+)/topics$", create_without_storing)]

        with pytest.raises(ConfluentApiError) as exc_info:
            topic_provider.create(topic_props())

        assert exc_info.value.status_code == 404


class TestRead:
    """Test refresh and import."""

    def test_reads_remote_state(self, topic_provider: KafkaTopicProvider, fake: FakeConfluent) -> None:
        fake.add_topic("orders", partitions_count=3, configs={"retention.ms": "900000"})

        result = topic_provider.read(TOPIC_ID, topic_props())

        assert result.id == TOPIC_ID
        assert result.outs["config"] == {"retention.ms": "900000"}
        assert result.outs["partitions_count"] == 3

    def test_missing_topic_is_dropped(self, topic_provider: KafkaTopicProvider) -> None:
        result = topic_provider.read(TOPIC_ID, topic_props())

        assert result.id == ""
        assert result.outs == {}

    def test_other_errors_propagate(self, topic_provider: KafkaTopicProvider, fake: FakeConfluent) -> None:
        fake.fail_next = httpx.Response(401, json={"error_code": 40101, "message": "Unauthorized"})

        with pytest.raises(ConfluentApiError, match="Unauthorized"):
            topic_provider.read(TOPIC_ID, topic_props())

    def test_import_uses_environment(self, topic_provider: KafkaTopicProvider, fake: FakeConfluent,
                                     import_env: None) -> None:
        fake.add_topic("orders", partitions_count=4, configs={"segment.ms": "1000"})

        result = topic_provider.read(TOPIC_ID, {})

        assert result.id == TOPIC_ID
        assert result.outs == {
            "kafka_cluster": CLUSTER_ID,
            "topic_name": "orders",
            "partitions_count": 4,
            "rest_endpoint": REST_ENDPOINT,
            "config": {"segment.ms": "1000"},
            "credentials": {"key": "IMPORTKEY", "secret": "import-secret"},
        }

    def test_import_of_missing_topic_fails(self, topic_provider: KafkaTopicProvider, import_env: None) -> None:
        with pytest.raises(ProviderError, match=f"error importing Kafka Topic '{TOPIC_ID}'"):
            topic_provider.read(TOPIC_ID, {})

    def test_import_requires_environment(self, topic_provider: KafkaTopicProvider,
                                         monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("IMPORT_KAFKA_API_KEY", raising=False)

        with pytest.raises(ProviderError, match="IMPORT_KAFKA_API_KEY"):
            topic_provider.read(TOPIC_ID, {})

    def test_import_rejects_malformed_id(self, topic_provider: KafkaTopicProvider, import_env: None) -> None:
        with pytest.raises(ProviderError, match="invalid format"):
            topic_provider.read("orders", {})


class TestUpdate:
    """Test in-place updates of topic settings and credentials."""

    def test_applies_changed_settings(self, topic_provider: KafkaTopicProvider, fake: FakeConfluent) -> None:
        fake.add_topic("orders", partitions_count=3, configs={"retention.ms": "600000"})

        result = topic_provider.update(
            TOPIC_ID, topic_props(), topic_props(config={"retention.ms": "700000", "segment.ms": "1000"})
        )

        alter = fake.calls("POST", "configs:alter")
        assert len(alter) == 1
        assert result.outs["config"] == {"retention.ms": "700000", "segment.ms": "1000"}

    def test_credentials_only_change_skips_remote_calls(self, topic_provider: KafkaTopicProvider,
                                                       fake: FakeConfluent) -> None:
        rotated = {"key": "NEWKEY", "secret": "new-secret"}

        result = topic_provider.update(TOPIC_ID, topic_props(), topic_props(credentials=rotated))

        assert result.outs["credentials"] == rotated
        assert fake.requests == []

    def test_rejects_removed_setting(self, topic_provider: KafkaTopicProvider, fake: FakeConfluent) -> None:
        with pytest.raises(ProviderError, match="is not supported at the moment"):
            topic_provider.update(TOPIC_ID, topic_props(), topic_props(config={}))

        assert fake.requests == []

    def test_rejects_read_only_setting(self, topic_provider: KafkaTopicProvider) -> None:
        with pytest.raises(ProviderError, match="'cleanup.policy' topic setting is read-only"):
            topic_provider.update(
                TOPIC_ID, topic_props(), topic_props(config={"retention.ms": "600000", "cleanup.policy": "compact"})
            )

    def test_rejects_immutable_change(self, topic_provider: KafkaTopicProvider) -> None:
        with pytest.raises(ProviderError, match="only 'credentials' and 'config' blocks can be updated"):
            topic_provider.update(TOPIC_ID, topic_props(), topic_props(partitions_count=12))

    def test_remote_rejection_is_wrapped(self, topic_provider: KafkaTopicProvider, fake: FakeConfluent) -> None:
        fake.add_topic("orders", configs={"retention.ms": "600000"})

        with pytest.raises(ProviderError, match="exceeded max limit"):
            topic_provider.update(
                TOPIC_ID, topic_props(),
                topic_props(config={"retention.ms": "600000", "delete.retention.ms": "63113904003"}),
            )

    def test_flags_settings_that_did_not_apply(self, topic_provider: KafkaTopicProvider, fake: FakeConfluent) -> None:
        fake.add_topic("orders", configs={"retention.ms": "600000"})
        fake.sticky_settings["segment.ms"] = "604800000"

        with pytest.raises(ProviderError, match="topic settings update failed for \\['segment.ms'\\]"):
            topic_provider.update(
                TOPIC_ID, topic_props(), topic_props(config={"retention.ms": "700000", "segment.ms": "1000"})
            )


class TestDelete:
    """Test deletion and the wait for it to finish."""

    def test_deletes_and_polls_until_gone(self, topic_provider: KafkaTopicProvider, fake: FakeConfluent) -> None:
        fake.add_topic("orders")
        fake.delete_lag = 2

        topic_provider.delete(TOPIC_ID, topic_props())

        assert (CLUSTER_ID, "orders") not in fake.topics
        assert len(fake.calls("DELETE")) == 1
        assert len(fake.calls("GET")) == 3

    def test_times_out_when_topic_lingers(self, fake: FakeConfluent) -> None:
        fake.add_topic("orders")
        fake.delete_lag = 10_000
        provider = KafkaTopicProvider(transport=fake.transport, wait_after_create=0,
                                      delete_poll_interval=0, delete_timeout=0)

        with pytest.raises(ProviderError, match="still exists"):
            provider.delete(TOPIC_ID, topic_props())

    def test_delete_error_is_wrapped(self, topic_provider: KafkaTopicProvider) -> None:
        with pytest.raises(ProviderError, match=f"error deleting Kafka Topic '{TOPIC_ID}'"):
            topic_provider.delete(TOPIC_ID, topic_props())
