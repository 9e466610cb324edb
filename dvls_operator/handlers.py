"""
kopf binding: host scheduler for the DvlsSecret reconciler.

Runs as: dvls-operator run   (or: kopf run -m dvls_operator.handlers)

Every create/update/resume event and every timer tick runs one full pass;
the timer interval is the requeue interval, which is how the operator
notices changes made on the DVLS side. kopf runs timers in their own task,
apart from the change handlers of the same object, so run_pass holds a
per-key lock: at most one pass per DvlsSecret is in flight.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

import kopf

from dvls_operator.config import get_config
from dvls_operator.controller.models import API_GROUP, API_VERSION, PLURAL, ObjectKey, ReconcileResult
from dvls_operator.controller.reconciler import Reconciler
from dvls_operator.errors import (
    ConflictError,
    OwnerLinkError,
    SecretOwnershipError,
    UnsupportedSubtypeError,
)
from dvls_operator.kube.store import KubeStore, load_kube_config
from dvls_operator.vault.client import DvlsClient

logger = logging.getLogger(__name__)

# Conditions that need an operator to act: retried, but slowly
CONFIGURATION_RETRY_DELAY = 300.0
CONFLICT_RETRY_DELAY = 1.0

REQUEUE_INTERVAL = get_config().requeue_interval

_reconciler: Reconciler | None = None
_vault: DvlsClient | None = None

# Sync handlers run in kopf's executor threads
_pass_locks: dict[ObjectKey, threading.Lock] = {}
_pass_locks_guard = threading.Lock()


def set_reconciler(reconciler: Reconciler | None) -> None:
    """Install the reconciler used by the handlers (startup, or tests)."""
    global _reconciler
    _reconciler = reconciler


def get_reconciler() -> Reconciler:
    if _reconciler is None:
        raise RuntimeError("reconciler is not initialized; the startup handler has not run")
    return _reconciler


def _pass_lock(key: ObjectKey) -> threading.Lock:
    with _pass_locks_guard:
        return _pass_locks.setdefault(key, threading.Lock())


@kopf.on.startup()
def startup(settings: kopf.OperatorSettings, **_: Any) -> None:
    """Build the reconciler and its collaborators from config."""
    global _vault
    cfg = get_config()

    # Keep kopf's own bookkeeping out of .status, which the reconciler replaces wholesale
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(prefix=API_GROUP)
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage(prefix=API_GROUP)
    settings.posting.level = logging.WARNING

    load_kube_config()
    _vault = DvlsClient.from_config(cfg)
    set_reconciler(
        Reconciler(
            KubeStore(),
            _vault,
            requeue_interval=cfg.requeue_interval,
            degraded_requeue_interval=cfg.degraded_requeue_interval,
        )
    )
    logger.info(
        "DVLS operator started: dvls=%s requeue=%ss namespace=%s",
        cfg.dvls_base_uri,
        cfg.requeue_interval,
        cfg.namespace or "<all>",
    )


@kopf.on.cleanup()
def cleanup(**_: Any) -> None:
    global _vault
    if _vault is not None:
        _vault.close()
        _vault = None
    set_reconciler(None)
    logger.info("DVLS operator stopped")


def run_pass(key: ObjectKey) -> ReconcileResult:
    """Run one reconciliation pass and translate its outcome for kopf."""
    try:
        with _pass_lock(key):
            result = get_reconciler().reconcile(key)
    except ConflictError as e:
        raise kopf.TemporaryError(str(e), delay=CONFLICT_RETRY_DELAY) from e
    except (SecretOwnershipError, UnsupportedSubtypeError, OwnerLinkError) as e:
        logger.error("DvlsSecret %s needs attention: %s", key, e)
        raise kopf.TemporaryError(str(e), delay=CONFIGURATION_RETRY_DELAY) from e

    # The timer covers the regular interval; only sooner requeues need a retry
    if result.requeue_after is not None and result.requeue_after < REQUEUE_INTERVAL:
        raise kopf.TemporaryError(
            f"DvlsSecret {key} is degraded, retrying in {result.requeue_after}s",
            delay=result.requeue_after,
        )
    return result


@kopf.on.create(API_GROUP, API_VERSION, PLURAL)
@kopf.on.update(API_GROUP, API_VERSION, PLURAL)
@kopf.on.resume(API_GROUP, API_VERSION, PLURAL)
def on_change(name: str, namespace: str, **_: Any) -> None:
    run_pass(ObjectKey(namespace, name))


@kopf.timer(
    API_GROUP, API_VERSION, PLURAL, interval=REQUEUE_INTERVAL, initial_delay=REQUEUE_INTERVAL
)
def on_interval(name: str, namespace: str, **_: Any) -> None:
    run_pass(ObjectKey(namespace, name))


# optional: no finalizer, deletion is never blocked on the operator
@kopf.on.delete(API_GROUP, API_VERSION, PLURAL, optional=True)
def on_delete(name: str, namespace: str, **_: Any) -> None:
    with _pass_locks_guard:
        _pass_locks.pop(ObjectKey(namespace, name), None)
