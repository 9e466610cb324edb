"""
DvlsSecret reconciler: one pass per resource key.

Usage:
    reconciler = Reconciler(KubeStore(), DvlsClient.from_config(cfg),
                            requeue_interval=cfg.requeue_interval)
    result = reconciler.reconcile(ObjectKey("default", "db-creds"))

A pass reads the DvlsSecret, fetches its vault entry, and creates or
overwrites the same-named Kubernetes secret when the entry's modification
time differs from the one recorded in status. Expected vault failures end
the pass normally with a Degraded condition; configuration and
control-plane failures are raised so the host retries with backoff.

The host guarantees at most one pass in flight per key, so nothing here
locks. Status writes are server-side merges, so the resource is re-read
after each one before its fields are used again.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from dvls_operator.config import DEFAULT_DEGRADED_REQUEUE_INTERVAL, DEFAULT_REQUEUE_INTERVAL
from dvls_operator.controller.conditions import remove_condition, set_condition
from dvls_operator.controller.models import (
    CONDITION_AVAILABLE,
    CONDITION_DEGRADED,
    SECRET_TYPE,
    ZERO_TIME,
    ConditionStatus,
    DestinationSecret,
    ObjectKey,
    ReconcileResult,
    TrackedResource,
    as_utc,
)
from dvls_operator.controller.store import ClusterStore, EntrySource
from dvls_operator.controller.sync import needs_sync
from dvls_operator.errors import SecretOwnershipError, StoreError, VaultFetchError
from dvls_operator.vault.mapping import map_entry

logger = logging.getLogger(__name__)

REASON_RECONCILING = "Reconciling"
MESSAGE_FETCH_FAILED = "Unable to fetch entry on DVLS instance"


class Reconciler:
    """Keeps each DvlsSecret's Kubernetes secret in step with its vault entry."""

    def __init__(
        self,
        store: ClusterStore,
        vault: EntrySource,
        *,
        requeue_interval: float = DEFAULT_REQUEUE_INTERVAL,
        degraded_requeue_interval: float = DEFAULT_DEGRADED_REQUEUE_INTERVAL,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.vault = vault
        self.requeue_interval = requeue_interval
        self.degraded_requeue_interval = degraded_requeue_interval
        self._clock = clock or (lambda: datetime.now(UTC))

    def reconcile(self, key: ObjectKey) -> ReconcileResult:
        resource = self.store.get_tracked_resource(key)
        if resource is None:
            logger.info("DvlsSecret %s not found, ignoring since object must be deleted", key)
            return ReconcileResult()

        if not resource.conditions or resource.last_synced_modification_time is None:
            resource = self._initialize_status(resource)
            if resource is None:
                logger.info("DvlsSecret %s deleted during status initialization", key)
                return ReconcileResult()

        try:
            entry = self.vault.get_entry(resource.vault_id, resource.entry_id)
        except VaultFetchError as e:
            logger.error(
                "Unable to fetch DVLS entry %s (vault %s) for %s: %s",
                resource.entry_id,
                resource.vault_id,
                key,
                e,
            )
            self._record_degraded(resource, MESSAGE_FETCH_FAILED)
            if self.degraded_requeue_interval > 0:
                return ReconcileResult(requeue_after=self.degraded_requeue_interval)
            return ReconcileResult()

        secret = self.store.get_secret(key)
        modified_on = as_utc(entry.modified_on)

        if not needs_sync(resource.last_synced_modification_time, modified_on, secret is not None):
            logger.debug("Secret %s is up to date with entry %s", key, entry.id)
            return ReconcileResult(requeue_after=self.requeue_interval)

        secret_map = map_entry(entry)

        if secret is None:
            logger.info("Kubernetes secret %s not found, creating", key)
            secret = DestinationSecret(
                name=key.name,
                namespace=key.namespace,
                type=SECRET_TYPE,
                data=secret_map,
            )
            self.store.set_owner_reference(resource, secret)
            self.store.create_secret(secret)
            self._record_available(key, modified_on)
            return ReconcileResult()

        if secret.type != SECRET_TYPE or not secret.is_owned_by(resource):
            raise SecretOwnershipError(key.namespace, key.name)

        secret.data = secret_map
        self.store.update_secret(secret)
        logger.info("Updated secret %s from entry %s (%d keys)", key, entry.id, len(secret_map))

        self._record_available(key, modified_on)
        return ReconcileResult(requeue_after=self.requeue_interval)

    def _initialize_status(self, resource: TrackedResource) -> TrackedResource | None:
        set_condition(
            resource.conditions,
            CONDITION_AVAILABLE,
            ConditionStatus.UNKNOWN,
            REASON_RECONCILING,
            now=self._clock(),
        )
        resource.last_synced_modification_time = ZERO_TIME
        self.store.update_tracked_resource_status(resource)
        return self.store.get_tracked_resource(resource.key)

    def _record_degraded(self, resource: TrackedResource, message: str) -> None:
        changed = set_condition(
            resource.conditions,
            CONDITION_DEGRADED,
            ConditionStatus.TRUE,
            REASON_RECONCILING,
            message,
            now=self._clock(),
        )
        if not changed:
            return
        try:
            self.store.update_tracked_resource_status(resource)
        except StoreError as e:
            # The Degraded marker is best effort; the next pass records it again
            logger.error("Failed to update DvlsSecret %s status: %s", resource.key, e)

    def _record_available(self, key: ObjectKey, modified_on: datetime | None) -> None:
        resource = self.store.get_tracked_resource(key)
        if resource is None:
            logger.info("DvlsSecret %s deleted before its status could be updated", key)
            return
        set_condition(
            resource.conditions,
            CONDITION_AVAILABLE,
            ConditionStatus.TRUE,
            REASON_RECONCILING,
            now=self._clock(),
        )
        remove_condition(resource.conditions, CONDITION_DEGRADED)
        resource.last_synced_modification_time = modified_on or ZERO_TIME
        self.store.update_tracked_resource_status(resource)
