"""DvlsSecret reconciliation: models, status conditions, sync decision, and the reconciler."""

from __future__ import annotations

from dvls_operator.controller.models import DestinationSecret, ObjectKey, ReconcileResult, TrackedResource
from dvls_operator.controller.reconciler import Reconciler
from dvls_operator.controller.store import ClusterStore, EntrySource

__all__ = [
    "ClusterStore",
    "DestinationSecret",
    "EntrySource",
    "ObjectKey",
    "ReconcileResult",
    "Reconciler",
    "TrackedResource",
]
