"""
Error taxonomy for the operator.

Expected vault failures are raised as VaultFetchError and absorbed by the
reconciler into a Degraded status condition. Everything else propagates to
the host, which applies its retry/backoff policy.
"""

from __future__ import annotations


class OperatorError(Exception):
    """Base class for all operator errors."""


class VaultFetchError(OperatorError):
    """The vault entry could not be fetched (transport, status, or payload)."""


class VaultAuthError(VaultFetchError):
    """The vault service rejected the application credentials."""


class UnsupportedSubtypeError(OperatorError):
    """The entry's credential subtype has no mapping."""

    def __init__(self, sub_type: str) -> None:
        super().__init__(f"unsupported credential subtype: {sub_type!r}")
        self.sub_type = sub_type


class StoreError(OperatorError):
    """A control-plane request failed for a reason other than not-found."""


class ConflictError(StoreError):
    """An update lost an optimistic-concurrency race."""


class AlreadyExistsError(StoreError):
    """A create collided with an object of the same name."""


class OwnerLinkError(OperatorError):
    """An owner reference could not be attached to a child object."""


class SecretOwnershipError(OperatorError):
    """A same-named secret exists that this operator does not own."""

    def __init__(self, namespace: str, name: str) -> None:
        super().__init__(
            f"found existing kubernetes secret with name {name} in namespace {namespace} "
            "but it is either not the correct type or not owned by the DvlsSecret resource. "
            "Either delete the existing secret or use a different name"
        )
        self.namespace = namespace
        self.name = name
