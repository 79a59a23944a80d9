"""Common lifecycle plumbing for the dynamic resource providers."""

import json
import time
from typing import Iterable, Optional

import httpx
from pulumi.dynamic import CheckFailure, DiffResult, ResourceProvider

from .. import settings
from ..clients import CloudApiClient, KafkaRestClient
from ..settings import CloudEnvironment


def strip_internal(props: Optional[dict]) -> dict:
    """Drop engine bookkeeping such as '__provider' from a property bag."""
    return {k: v for k, v in (props or {}).items() if not k.startswith("__")}


def to_json(value) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def require_credentials(props: dict, key: str, failures: list) -> None:
    credentials = props.get(key)
    if not isinstance(credentials, dict) or not credentials.get("key") or not credentials.get("secret"):
        failures.append(CheckFailure(key, f"{key!r} must provide a non-empty 'key' and 'secret'"))


class ConfluentResourceProvider(ResourceProvider):
    """Base provider holding the HTTP transport and timing knobs.

    Args:
        transport: Optional httpx transport shared by every client (tests)
        wait_after_create: Seconds to wait after a mutating call before reading back
    """

    # Inputs whose change means delete + recreate.
    replace_keys: Iterable[str] = ()
    # Optional+computed inputs: leaving them undeclared keeps the remote value.
    computed_keys: Iterable[str] = ()

    def __init__(
        self,
        transport: Optional[httpx.BaseTransport] = None,
        wait_after_create: float = settings.KAFKA_REST_API_WAIT_AFTER_CREATE,
    ):
        self.transport = transport
        self.wait_after_create = wait_after_create

    def _kafka_client(self, rest_endpoint: str, cluster_id: str, credentials: dict) -> KafkaRestClient:
        return KafkaRestClient(
            rest_endpoint,
            cluster_id,
            credentials["key"],
            credentials["secret"],
            transport=self.transport,
        )

    def _cloud_client(self, cloud_credentials: Optional[dict]) -> CloudApiClient:
        if not cloud_credentials:
            env = CloudEnvironment.from_env()
            cloud_credentials = {"key": env.api_key, "secret": env.api_secret, "endpoint": env.endpoint}
        return CloudApiClient(
            cloud_credentials["key"],
            cloud_credentials["secret"],
            endpoint=cloud_credentials.get("endpoint") or settings.DEFAULT_CLOUD_ENDPOINT,
            transport=self.transport,
        )

    def _wait_for_consistency(self) -> None:
        if self.wait_after_create > 0:
            time.sleep(self.wait_after_create)

    def changed_keys(self, olds: dict, news: dict) -> list[str]:
        olds, news = strip_internal(olds), strip_internal(news)
        changed = []
        for key in sorted(set(olds) | set(news)):
            old, new = olds.get(key), news.get(key)
            if key in self.computed_keys and new is None:
                continue
            if isinstance(old, dict) or isinstance(new, dict):
                old, new = old or {}, new or {}
            if old != new:
                changed.append(key)
        return changed

    def diff(self, _id, _olds, _news):
        changed = self.changed_keys(_olds, _news)
        replaces = [key for key in changed if key in self.replace_keys]
        return DiffResult(
            changes=bool(changed),
            replaces=replaces,
            stables=[],
            delete_before_replace=True,
        )
