"""
Data models for the reconciliation controller.

Plain dataclasses, converted to and from the Kubernetes object dicts by the
from_object()/to_* helpers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)

API_GROUP = "dvls.devolutions.com"
API_VERSION = "v1alpha1"
KIND = "DvlsSecret"
PLURAL = "dvlssecrets"

SECRET_TYPE = "devolutions.com/dvlssecret"

CONDITION_AVAILABLE = "Available"
CONDITION_DEGRADED = "Degraded"

# Zero value of lastSyncedModificationTime: initialized but never synced
ZERO_TIME = datetime(1, 1, 1, tzinfo=UTC)


class ConditionStatus(StrEnum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


def format_time(value: datetime) -> str:
    """Format a timestamp as RFC 3339 in UTC, keeping sub-second precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    value = value.astimezone(UTC)
    spec = "microseconds" if value.microsecond else "seconds"
    return value.isoformat(timespec=spec).replace("+00:00", "Z")


def parse_time(value: str | None) -> datetime | None:
    """Parse an RFC 3339 timestamp. Unparsable values are logged and read as absent."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring unparsable timestamp %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def is_zero_time(value: datetime | None) -> bool:
    return value is None or value == ZERO_TIME


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive timestamps as UTC so equality checks compare instants."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


@dataclass(frozen=True)
class ObjectKey:
    """Namespace/name pair identifying a tracked resource and its secret."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass
class Condition:
    type: str
    status: ConditionStatus
    reason: str = ""
    message: str = ""
    last_transition_time: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Condition:
        try:
            status = ConditionStatus(d.get("status", "Unknown"))
        except ValueError:
            status = ConditionStatus.UNKNOWN
        return cls(
            type=d["type"],
            status=status,
            reason=d.get("reason", ""),
            message=d.get("message", ""),
            last_transition_time=parse_time(d.get("lastTransitionTime")) or datetime.now(UTC),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "status": self.status.value,
            "reason": self.reason,
            "message": self.message,
            "lastTransitionTime": format_time(self.last_transition_time),
        }


@dataclass
class TrackedResource:
    """A DvlsSecret: the vault entry to mirror plus the observed sync status."""

    name: str
    namespace: str
    entry_id: str
    vault_id: str
    uid: str = ""
    resource_version: str = ""
    conditions: list[Condition] = field(default_factory=list)
    # None = field absent; ZERO_TIME = initialized, never synced
    last_synced_modification_time: datetime | None = None

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(self.namespace, self.name)

    @classmethod
    def from_object(cls, obj: dict[str, Any]) -> TrackedResource:
        meta = obj.get("metadata") or {}
        spec = obj.get("spec") or {}
        status = obj.get("status") or {}
        return cls(
            name=meta.get("name", ""),
            namespace=meta.get("namespace", ""),
            uid=meta.get("uid", ""),
            resource_version=meta.get("resourceVersion", ""),
            entry_id=spec.get("entryId", ""),
            vault_id=spec.get("vaultId", ""),
            conditions=[Condition.from_dict(c) for c in status.get("conditions") or []],
            last_synced_modification_time=parse_time(status.get("entryModifiedDate")),
        )

    def status_dict(self) -> dict[str, Any]:
        status: dict[str, Any] = {"conditions": [c.to_dict() for c in self.conditions]}
        if self.last_synced_modification_time is not None:
            status["entryModifiedDate"] = format_time(self.last_synced_modification_time)
        return status

    def to_object(self) -> dict[str, Any]:
        """Full object body for a status replace (spec is never rewritten)."""
        metadata: dict[str, Any] = {"name": self.name, "namespace": self.namespace}
        if self.uid:
            metadata["uid"] = self.uid
        if self.resource_version:
            metadata["resourceVersion"] = self.resource_version
        return {
            "apiVersion": f"{API_GROUP}/{API_VERSION}",
            "kind": KIND,
            "metadata": metadata,
            "spec": {"entryId": self.entry_id, "vaultId": self.vault_id},
            "status": self.status_dict(),
        }


@dataclass(frozen=True)
class OwnerReference:
    api_version: str
    kind: str
    name: str
    uid: str
    controller: bool = False
    block_owner_deletion: bool = False


@dataclass
class DestinationSecret:
    """The Kubernetes Secret mirroring a vault entry. ``data`` holds decoded values."""

    name: str
    namespace: str
    type: str = SECRET_TYPE
    data: dict[str, str] = field(default_factory=dict, repr=False)
    owner_references: list[OwnerReference] = field(default_factory=list)
    resource_version: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)

    def is_owned_by(self, owner: TrackedResource) -> bool:
        return bool(owner.uid) and any(ref.uid == owner.uid for ref in self.owner_references)


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of one pass. ``requeue_after`` (seconds) is a hint to the host scheduler."""

    requeue_after: float | None = None
