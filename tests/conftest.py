"""Shared fixtures: an in-memory Confluent Cloud behind httpx.MockTransport."""
import json
import re
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest

from confluent_infrastructure.providers import ConnectorProvider, KafkaAclProvider, KafkaTopicProvider


CLUSTER_ID = "lkc-abc123"
ENVIRONMENT_ID = "env-xyz789"
REST_ENDPOINT = "https://pkc-00000.us-central1.gcp.confluent.cloud:443"
CLOUD_ENDPOINT = "https://api.confluent.cloud"
KAFKA_CREDENTIALS = {"key": "CLUSTERKEY", "secret": "cluster-secret"}
CLOUD_CREDENTIALS = {"key": "CLOUDKEY", "secret": "cloud-secret", "endpoint": CLOUD_ENDPOINT}

MASK = "****************"

CLUSTER = r"^/kafka/v3/clusters/(?P<cluster>[^/]+)"
CONNECTORS = r"^/connect/v1/environments/(?P<env>[^/]+)/clusters/(?P<cluster>[^/]+)/connectors"
ACL_FIELDS = ("resource_type", "resource_name", "pattern_type", "principal", "host", "operation", "permission")


def _json(status_code: int, body: Any = None) -> httpx.Response:
    if body is None:
        return httpx.Response(status_code)
    return httpx.Response(status_code, json=body)


def _not_found(message: str) -> httpx.Response:
    return _json(404, {"error_code": 40403, "message": message})


class FakeConfluent:
    """Minimal stateful stand-in for the Kafka REST v3 and cloud APIs."""

    def __init__(self) -> None:
        self.topics: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.topic_configs: Dict[Tuple[str, str], Dict[str, str]] = {}
        self.acls: Dict[str, List[Dict[str, str]]] = {}
        self.connectors: Dict[Tuple[str, str, str], Dict[str, Any]] = {}
        self.service_accounts = [
            {"id": 12345, "resource_id": "sa-abc123", "service_name": "orders"},
            {"id": 23456, "resource_id": "sa-def456", "service_name": "payments"},
        ]
        self.users = [{"id": 67890, "resource_id": "u-xyz789", "email": "ops@example.com"}]
        self.sensitive_keys = {"aws.access.key.id", "aws.secret.access.key", "kafka.api.secret"}
        # Settings the cluster accepts but silently keeps at another value.
        self.sticky_settings: Dict[str, str] = {}
        # Number of GETs a deleted topic keeps answering before it is gone.
        self.delete_lag = 0
        # Status reads a new connector answers PROVISIONING before it settles.
        self.provisioning_reads = 0
        self.provisioned_state = "RUNNING"
        self.fail_next: Optional[httpx.Response] = None
        self.requests: List[httpx.Request] = []

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def calls(self, method: str, path_fragment: str = "") -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and path_fragment in r.url.path]

    def add_topic(self, name: str, partitions_count: int = 6, configs: Optional[dict] = None, cluster: str = CLUSTER_ID):
        self.topics[(cluster, name)] = {"topic_name": name, "partitions_count": partitions_count}
        self.topic_configs[(cluster, name)] = dict(configs or {})

    def add_acl(self, cluster: str = CLUSTER_ID, **fields: str) -> None:
        self.acls.setdefault(cluster, []).append({field: fields[field] for field in ACL_FIELDS})

    def add_connector(self, name: str, config: dict, state: str = "RUNNING",
                      env: str = ENVIRONMENT_ID, cluster: str = CLUSTER_ID, pending: int = 0) -> None:
        self.connectors[(env, cluster, name)] = {"name": name, "config": dict(config), "state": state, "pending": pending}

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_next is not None:
            response, self.fail_next = self.fail_next, None
            return response

        path = request.url.path
        for pattern, handler in self._routes():
            match = re.match(pattern, path)
            if match:
                return handler(request, **match.groupdict())
        return _not_found(f"no route for {request.method} {path}")

    def _routes(self):
        return [
            (CLUSTER + r"/topics$", self._topics),
            (CLUSTER + r"/topics/(?P<topic>[^/]+)/configs:alter$", self._alter_configs),
            (CLUSTER + r"/topics/(?P<topic>[^/]+)/configs$", self._list_configs),
            (CLUSTER + r"/topics/(?P<topic>[^/]+)$", self._topic),
            (CLUSTER + r"/acls$", self._acls),
            (CONNECTORS + r"$", self._create_connector),
            (CONNECTORS + r"/(?P<name>[^/]+)/(?P<action>status|config|pause|resume)$", self._connector_action),
            (CONNECTORS + r"/(?P<name>[^/]+)$", self._connector),
            (r"^/service_accounts$", lambda request: _json(200, {"users": self.service_accounts})),
            (r"^/users$", lambda request: _json(200, {"users": self.users})),
        ]

    # Kafka REST

    def _topics(self, request, cluster):
        body = json.loads(request.content)
        key = (cluster, body["topic_name"])
        if key in self.topics:
            return _json(400, {"error_code": 40002, "message": f"Topic '{body['topic_name']}' already exists."})
        self.add_topic(
            body["topic_name"],
            body["partitions_count"],
            {c["name"]: c["value"] for c in body.get("configs", [])},
            cluster=cluster,
        )
        return _json(201, {"kind": "KafkaTopic", "cluster_id": cluster, **self.topics[key]})

    def _topic(self, request, cluster, topic):
        key = (cluster, topic)
        if key not in self.topics:
            return _not_found("This server does not host this topic-partition.")
        if request.method == "DELETE":
            self.topics[key]["deleted"] = self.delete_lag
            return _json(204)
        pending = self.topics[key].get("deleted")
        if pending is not None:
            if pending <= 0:
                del self.topics[key]
                del self.topic_configs[key]
                return _not_found("This server does not host this topic-partition.")
            self.topics[key]["deleted"] = pending - 1
        return _json(200, {"kind": "KafkaTopic", "cluster_id": cluster, "topic_name": topic,
                           "partitions_count": self.topics[key]["partitions_count"]})

    def _list_configs(self, request, cluster, topic):
        key = (cluster, topic)
        if key not in self.topics:
            return _not_found("This server does not host this topic-partition.")
        data = [
            {"name": name, "value": value, "source": "DYNAMIC_TOPIC_CONFIG", "is_sensitive": False}
            for name, value in self.topic_configs[key].items()
        ]
        data.append({"name": "compression.type", "value": "producer", "source": "DEFAULT_CONFIG"})
        data.append({"name": "min.insync.replicas", "value": "2", "source": "STATIC_BROKER_CONFIG"})
        return _json(200, {"kind": "KafkaTopicConfigList", "data": data})

    def _alter_configs(self, request, cluster, topic):
        key = (cluster, topic)
        if key not in self.topics:
            return _not_found("This server does not host this topic-partition.")
        for entry in json.loads(request.content)["data"]:
            if entry["name"] == "delete.retention.ms" and int(entry["value"]) > 60566400000:
                return _json(400, {
                    "error_code": 40002,
                    "message": f"Config property 'delete.retention.ms' with value '{entry['value']}' "
                               "exceeded max limit of 60566400000.",
                })
        for entry in json.loads(request.content)["data"]:
            self.topic_configs[key][entry["name"]] = self.sticky_settings.get(entry["name"], entry["value"])
        return _json(204)

    def _matching_acls(self, request, cluster):
        params = dict(request.url.params)
        return [
            acl for acl in self.acls.get(cluster, [])
            if all(acl[field] == params[field] for field in ACL_FIELDS if field in params)
        ]

    def _acls(self, request, cluster):
        if request.method == "POST":
            self.add_acl(cluster, **json.loads(request.content))
            return _json(201)
        matched = self._matching_acls(request, cluster)
        if request.method == "DELETE":
            self.acls[cluster] = [acl for acl in self.acls.get(cluster, []) if acl not in matched]
        return _json(200, {"kind": "KafkaAclList", "data": [dict(acl, cluster_id=cluster) for acl in matched]})

    # Connect

    def _masked(self, config: dict) -> dict:
        return {k: (MASK if k in self.sensitive_keys else v) for k, v in config.items()}

    def _create_connector(self, request, env, cluster):
        body = json.loads(request.content)
        config = dict(body["config"])
        config.setdefault("kafka.endpoint", f"SASL_SSL://{cluster}.example:9092")
        self.add_connector(body["name"], config, env=env, cluster=cluster, state="PROVISIONING",
                           pending=self.provisioning_reads)
        return _json(200, {"name": body["name"], "config": self._masked(config), "tasks": []})

    def _connector(self, request, env, cluster, name):
        key = (env, cluster, name)
        if key not in self.connectors:
            return _json(404, {"error": {"code": 404, "message": f"Connector {name} not found"}})
        if request.method == "DELETE":
            del self.connectors[key]
            return _json(200, {"error": None})
        connector = self.connectors[key]
        return _json(200, {"name": name, "config": self._masked(connector["config"]), "tasks": [], "type": "sink"})

    def _connector_action(self, request, env, cluster, name, action):
        key = (env, cluster, name)
        if key not in self.connectors:
            return _json(404, {"error": {"code": 404, "message": f"Connector {name} not found"}})
        connector = self.connectors[key]
        if action == "status":
            if connector["state"] == "PROVISIONING":
                if connector["pending"] <= 0:
                    connector["state"] = self.provisioned_state
                else:
                    connector["pending"] -= 1
            return _json(200, {"name": name, "connector": {"state": connector["state"], "worker_id": name},
                               "tasks": [], "type": "sink"})
        if action == "config":
            config = json.loads(request.content)
            if "kafka.endpoint" in connector["config"]:
                config.setdefault("kafka.endpoint", connector["config"]["kafka.endpoint"])
            connector["config"] = config
            return _json(200, {"name": name, "config": self._masked(config)})
        connector["state"] = "PAUSED" if action == "pause" else "RUNNING"
        return _json(202)


@pytest.fixture
def fake() -> FakeConfluent:
    return FakeConfluent()


@pytest.fixture
def topic_provider(fake: FakeConfluent) -> KafkaTopicProvider:
    return KafkaTopicProvider(transport=fake.transport, wait_after_create=0, delete_poll_interval=0, delete_timeout=5)


@pytest.fixture
def acl_provider(fake: FakeConfluent) -> KafkaAclProvider:
    return KafkaAclProvider(transport=fake.transport, wait_after_create=0)


@pytest.fixture
def connector_provider(fake: FakeConfluent) -> ConnectorProvider:
    return ConnectorProvider(transport=fake.transport, wait_after_create=0, provision_poll_interval=0, provision_timeout=5)


@pytest.fixture
def import_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("IMPORT_KAFKA_API_KEY", "IMPORTKEY")
    monkeypatch.setenv("IMPORT_KAFKA_API_SECRET", "import-secret")
    monkeypatch.setenv("IMPORT_KAFKA_REST_ENDPOINT", REST_ENDPOINT)
    monkeypatch.setenv("CONFLUENT_CLOUD_API_KEY", "CLOUDKEY")
    monkeypatch.setenv("CONFLUENT_CLOUD_API_SECRET", "cloud-secret")
    monkeypatch.delenv("CONFLUENT_CLOUD_ENDPOINT", raising=False)
