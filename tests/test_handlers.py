"""Tests for dvls_operator.handlers: reconciler outcomes translated for kopf."""

from __future__ import annotations

import threading
import time
from unittest.mock import MagicMock

import kopf
import pytest

from dvls_operator import handlers
from dvls_operator.controller.models import ObjectKey, ReconcileResult, TrackedResource
from dvls_operator.controller.reconciler import Reconciler
from dvls_operator.controller.tests.fakes import OWNER_UID, FakeStore, FakeVault, db_entry
from dvls_operator.errors import (
    ConflictError,
    OwnerLinkError,
    SecretOwnershipError,
    StoreError,
    UnsupportedSubtypeError,
)

KEY = ObjectKey("default", "db-creds")


@pytest.fixture
def reconciler():
    r = MagicMock()
    handlers.set_reconciler(r)
    yield r
    handlers.set_reconciler(None)


class TestRunPass:
    def test_not_initialized(self):
        handlers.set_reconciler(None)
        with pytest.raises(RuntimeError):
            handlers.run_pass(KEY)

    def test_regular_requeue(self, reconciler):
        reconciler.reconcile.return_value = ReconcileResult(requeue_after=handlers.REQUEUE_INTERVAL)
        assert handlers.run_pass(KEY).requeue_after == handlers.REQUEUE_INTERVAL
        reconciler.reconcile.assert_called_once_with(KEY)

    def test_no_requeue(self, reconciler):
        reconciler.reconcile.return_value = ReconcileResult()
        assert handlers.run_pass(KEY).requeue_after is None

    def test_short_requeue_retries(self, reconciler):
        reconciler.reconcile.return_value = ReconcileResult(requeue_after=5.0)
        with pytest.raises(kopf.TemporaryError) as exc:
            handlers.run_pass(KEY)
        assert exc.value.delay == 5.0

    def test_conflict_retries_quickly(self, reconciler):
        reconciler.reconcile.side_effect = ConflictError("modified concurrently")
        with pytest.raises(kopf.TemporaryError) as exc:
            handlers.run_pass(KEY)
        assert exc.value.delay == handlers.CONFLICT_RETRY_DELAY

    @pytest.mark.parametrize(
        "error",
        [
            SecretOwnershipError("default", "db-creds"),
            UnsupportedSubtypeError("Certificate"),
            OwnerLinkError("cross-namespace owner"),
        ],
    )
    def test_configuration_errors_retry_slowly(self, reconciler, error):
        reconciler.reconcile.side_effect = error
        with pytest.raises(kopf.TemporaryError) as exc:
            handlers.run_pass(KEY)
        assert exc.value.delay == handlers.CONFIGURATION_RETRY_DELAY
        assert str(error) in str(exc.value)

    def test_store_errors_propagate(self, reconciler):
        reconciler.reconcile.side_effect = StoreError("HTTP 500")
        with pytest.raises(StoreError):
            handlers.run_pass(KEY)


class TestHandlers:
    def test_on_change_runs_pass(self, reconciler):
        reconciler.reconcile.return_value = ReconcileResult(requeue_after=handlers.REQUEUE_INTERVAL)
        handlers.on_change(name="db-creds", namespace="default", spec={})
        reconciler.reconcile.assert_called_once_with(KEY)

    def test_on_interval_runs_pass(self, reconciler):
        reconciler.reconcile.return_value = ReconcileResult()
        handlers.on_interval(name="db-creds", namespace="default")
        reconciler.reconcile.assert_called_once_with(KEY)

    def test_cleanup_closes_client(self, reconciler, monkeypatch):
        vault = MagicMock()
        monkeypatch.setattr(handlers, "_vault", vault)
        handlers.cleanup()
        vault.close.assert_called_once()
        with pytest.raises(RuntimeError):
            handlers.get_reconciler()


class TestStartup:
    def test_builds_reconciler(self, monkeypatch, clean_env):
        from dvls_operator.config import reset_config

        monkeypatch.setenv("DVLS_BASE_URI", "https://dvls.example.com")
        monkeypatch.setenv("DVLS_DEGRADED_REQUEUE_DURATION", "10s")
        reset_config()
        monkeypatch.setattr(handlers, "load_kube_config", MagicMock())
        monkeypatch.setattr(handlers, "KubeStore", MagicMock())
        settings = kopf.OperatorSettings()
        try:
            handlers.startup(settings=settings)
            reconciler = handlers.get_reconciler()
            assert reconciler.degraded_requeue_interval == 10.0
            assert isinstance(settings.persistence.progress_storage, kopf.AnnotationsProgressStorage)
            handlers.load_kube_config.assert_called_once()
        finally:
            handlers.cleanup()
            reset_config()


class SlowSecretStore(FakeStore):
    """FakeStore whose secret reads linger long enough for passes to overlap."""

    def __init__(self) -> None:
        super().__init__()
        self.in_flight = 0
        self.max_in_flight = 0
        self._guard = threading.Lock()

    def get_secret(self, key):
        with self._guard:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            time.sleep(0.05)
            return super().get_secret(key)
        finally:
            with self._guard:
                self.in_flight -= 1


class TestConcurrentPasses:
    @pytest.fixture
    def store(self):
        s = SlowSecretStore()
        s.add_resource(
            TrackedResource(
                name=KEY.name, namespace=KEY.namespace, uid=OWNER_UID, entry_id="E1", vault_id="V1"
            )
        )
        return s

    @pytest.fixture(autouse=True)
    def real_reconciler(self, store):
        vault = FakeVault()
        vault.put("V1", db_entry())
        handlers.set_reconciler(
            Reconciler(store, vault, requeue_interval=handlers.REQUEUE_INTERVAL)
        )
        yield
        handlers.set_reconciler(None)

    def _run_together(self, *passes):
        errors: list[Exception] = []
        start = threading.Barrier(len(passes))

        def worker(fn):
            start.wait()
            try:
                fn()
            except Exception as e:  # collected for the assertion below
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(fn,)) for fn in passes]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)
        return errors

    def test_create_and_timer_for_one_key_do_not_overlap(self, store):
        errors = self._run_together(
            lambda: handlers.on_change(name=KEY.name, namespace=KEY.namespace),
            lambda: handlers.on_interval(name=KEY.name, namespace=KEY.namespace),
        )
        assert errors == []
        assert store.max_in_flight == 1
        assert store.write_kinds().count("create_secret") == 1
        assert store.write_kinds().count("update_secret") == 0

    def test_different_keys_run_independently(self):
        assert handlers._pass_lock(KEY) is handlers._pass_lock(ObjectKey("default", "db-creds"))
        assert handlers._pass_lock(KEY) is not handlers._pass_lock(ObjectKey("default", "other"))

    def test_delete_forgets_lock(self):
        lock = handlers._pass_lock(KEY)
        handlers.on_delete(name=KEY.name, namespace=KEY.namespace)
        assert handlers._pass_lock(KEY) is not lock
