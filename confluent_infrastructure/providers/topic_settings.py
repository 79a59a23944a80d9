"""Validation and batching of topic setting updates.

Only two operations are supported on the 'config' map of a topic:
1. Adding a new setting, e.g. "retention.ms" = "600000"
2. Changing the value of an existing setting, e.g. "600000" -> "600001"

Removing a setting (resetting it to its default) is rejected, as is changing
any setting outside of EDITABLE_TOPIC_SETTINGS.
"""

from ..errors import ProviderError


TOPIC_SETTINGS_DOCS_URL = (
    "https://docs.confluent.io/cloud/current/clusters/broker-config.html"
    "#custom-topic-settings-for-all-cluster-types"
)

EDITABLE_TOPIC_SETTINGS = frozenset({
    "delete.retention.ms",
    "max.message.bytes",
    "max.compaction.lag.ms",
    "message.timestamp.difference.max.ms",
    "message.timestamp.type",
    "min.compaction.lag.ms",
    "min.insync.replicas",
    "retention.bytes",
    "retention.ms",
    "segment.bytes",
    "segment.ms",
})


def plan_topic_settings_update(topic_id: str, old_settings: dict, new_settings: dict) -> list[dict]:
    """Build the alter-configs batch for a change of the 'config' map.

    Args:
        topic_id: Composite topic ID, used in error messages
        old_settings: Settings before the change (currently set remotely)
        new_settings: Desired settings

    Returns:
        List of {"name", "value"} entries for settings that were added or changed,
        sorted by name

    Raises:
        ProviderError: If a setting was removed or a read-only setting changed
    """
    old_settings = old_settings or {}
    new_settings = new_settings or {}

    removed = sorted(set(old_settings) - set(new_settings))
    if removed:
        raise ProviderError(
            f"error updating Kafka Topic {topic_id!r}: reset to topic setting's default value operation "
            f"(in other words, removing topic settings {removed} from 'config') is not supported at the moment. "
            f"Instead, find its default value at {TOPIC_SETTINGS_DOCS_URL} and set its current value to the default value."
        )

    batch = []
    for name in sorted(new_settings):
        value = str(new_settings[name])
        if name in old_settings and str(old_settings[name]) == value:
            continue
        if name not in EDITABLE_TOPIC_SETTINGS:
            raise ProviderError(
                f"error updating Kafka Topic {topic_id!r}: {name!r} topic setting is read-only and cannot be updated. "
                f"Read {TOPIC_SETTINGS_DOCS_URL} for more details."
            )
        batch.append({"name": name, "value": value})
    return batch


def find_outdated_topic_settings(batch: list[dict], actual_settings: dict) -> list[str]:
    """Return names of batch settings whose remote value differs from the requested one.

    A setting missing from actual_settings is not reported; the API omits
    settings that match the cluster default.
    """
    return [
        entry["name"]
        for entry in batch
        if entry["name"] in actual_settings and actual_settings[entry["name"]] != entry["value"]
    ]
