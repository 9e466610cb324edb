"""Fixtures for the reconciliation controller tests."""

from __future__ import annotations

import pytest

from dvls_operator.controller.models import TrackedResource
from dvls_operator.controller.reconciler import Reconciler
from dvls_operator.controller.tests.fakes import (
    KEY,
    NOW,
    OWNER_UID,
    FakeStore,
    FakeVault,
    db_entry,
)


@pytest.fixture
def store() -> FakeStore:
    s = FakeStore()
    s.add_resource(
        TrackedResource(
            name=KEY.name,
            namespace=KEY.namespace,
            uid=OWNER_UID,
            entry_id="E1",
            vault_id="V1",
        )
    )
    return s


@pytest.fixture
def vault() -> FakeVault:
    v = FakeVault()
    v.put("V1", db_entry())
    return v


@pytest.fixture
def reconciler(store: FakeStore, vault: FakeVault) -> Reconciler:
    return Reconciler(
        store,
        vault,
        requeue_interval=60.0,
        degraded_requeue_interval=30.0,
        clock=lambda: NOW,
    )
