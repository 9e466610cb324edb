"""
Collaborator interfaces consumed by the reconciler.

ClusterStore is the control-plane side (implemented by
dvls_operator.kube.store.KubeStore); EntrySource is the vault side
(implemented by dvls_operator.vault.client.DvlsClient).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Protocol

from dvls_operator.controller.models import (
    API_GROUP,
    API_VERSION,
    KIND,
    DestinationSecret,
    ObjectKey,
    OwnerReference,
    TrackedResource,
)
from dvls_operator.errors import OwnerLinkError
from dvls_operator.vault.models import VaultEntry


class EntrySource(Protocol):
    def get_entry(self, vault_id: str, entry_id: str) -> VaultEntry:
        """Fetch an entry. Raises VaultFetchError on any failure."""
        ...


class ClusterStore(ABC):
    """Reads and writes DvlsSecret resources and their Kubernetes secrets."""

    @abstractmethod
    def get_tracked_resource(self, key: ObjectKey) -> TrackedResource | None:
        """Return the resource, or None if it does not exist."""

    @abstractmethod
    def update_tracked_resource_status(self, resource: TrackedResource) -> None:
        """Replace the status subresource. Raises ConflictError on a stale resourceVersion."""

    @abstractmethod
    def get_secret(self, key: ObjectKey) -> DestinationSecret | None:
        """Return the secret, or None if it does not exist."""

    @abstractmethod
    def create_secret(self, secret: DestinationSecret) -> None:
        """Raises AlreadyExistsError if a same-named secret exists."""

    @abstractmethod
    def update_secret(self, secret: DestinationSecret) -> None:
        """Replace the secret's data. Raises ConflictError on a stale resourceVersion."""

    def set_owner_reference(self, owner: TrackedResource, child: DestinationSecret) -> None:
        """Make ``owner`` the controlling owner of ``child``.

        The link is what garbage-collects the secret with its DvlsSecret. Raises
        OwnerLinkError if the owner has no uid, lives in another namespace, or
        the child is already controlled by something else.
        """
        if not owner.uid:
            raise OwnerLinkError(f"{owner.key} has no uid; it must be read from the API server first")
        if owner.namespace != child.namespace:
            raise OwnerLinkError(
                f"cross-namespace owner references are not allowed: {owner.key} -> "
                f"{child.namespace}/{child.name}"
            )

        ref = OwnerReference(
            api_version=f"{API_GROUP}/{API_VERSION}",
            kind=KIND,
            name=owner.name,
            uid=owner.uid,
            controller=True,
            block_owner_deletion=True,
        )
        kept = []
        for existing in child.owner_references:
            if existing.uid == owner.uid:
                continue
            if existing.controller:
                raise OwnerLinkError(
                    f"{child.namespace}/{child.name} is already controlled by "
                    f"{existing.kind} {existing.name}"
                )
            kept.append(existing)
        child.owner_references = [*kept, ref]
