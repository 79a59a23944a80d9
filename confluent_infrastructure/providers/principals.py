"""Translation between principals with resource IDs and with integer IDs.

Users declare principals as "User:sa-abc123" (service account) or
"User:u-abc123" (user). The Kafka REST API only accepts integer IDs, so
requests carry "User:12345" instead.
"""

import re
from typing import Optional

import pulumi

from ..clients import CloudApiClient
from ..errors import ProviderError


PRINCIPAL_PREFIX = "User:"
RESOURCE_ID_PRINCIPAL_PATTERN = re.compile(r"^User:(sa|u)-")
SERVICE_ACCOUNT_PREFIX = "sa-"
USER_PREFIX = "u-"


class PrincipalResolver:
    """Looks up integer IDs through the cloud API, caching the directory."""

    def __init__(self, cloud_client: CloudApiClient):
        self._cloud = cloud_client
        self._by_resource_id: Optional[dict] = None
        self._by_integer_id: Optional[dict] = None

    def _load(self) -> None:
        if self._by_resource_id is not None:
            return
        accounts = self._cloud.list_service_accounts() + self._cloud.list_users()
        self._by_resource_id = {}
        self._by_integer_id = {}
        for account in accounts:
            resource_id = account.get("resource_id")
            integer_id = account.get("id")
            if not resource_id or integer_id is None:
                continue
            self._by_resource_id[resource_id] = str(integer_id)
            self._by_integer_id[str(integer_id)] = resource_id
        pulumi.log.debug(f"Loaded {len(self._by_resource_id)} principals from the cloud API")

    def to_integer_principal(self, principal: str) -> str:
        """Map "User:sa-abc123" to "User:12345"."""
        resource_id = _strip_prefix(principal)
        if not (resource_id.startswith(SERVICE_ACCOUNT_PREFIX) or resource_id.startswith(USER_PREFIX)):
            raise ProviderError(
                f"principal {principal!r} must start with '{PRINCIPAL_PREFIX}{SERVICE_ACCOUNT_PREFIX}' "
                f"or '{PRINCIPAL_PREFIX}{USER_PREFIX}'"
            )
        self._load()
        integer_id = self._by_resource_id.get(resource_id)
        if integer_id is None:
            raise ProviderError(f"could not find an integer ID for principal {principal!r}")
        return f"{PRINCIPAL_PREFIX}{integer_id}"

    def to_resource_principal(self, principal: str) -> str:
        """Map "User:12345" back to "User:sa-abc123"."""
        integer_id = _strip_prefix(principal)
        if not integer_id.isdigit():
            return principal
        self._load()
        resource_id = self._by_integer_id.get(integer_id)
        if resource_id is None:
            raise ProviderError(f"could not find a resource ID for principal {principal!r}")
        return f"{PRINCIPAL_PREFIX}{resource_id}"


def _strip_prefix(principal: str) -> str:
    if not principal.startswith(PRINCIPAL_PREFIX):
        raise ProviderError(f"principal {principal!r} must start with {PRINCIPAL_PREFIX!r}")
    return principal[len(PRINCIPAL_PREFIX):]
