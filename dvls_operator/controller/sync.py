"""Sync decision: whether the destination secret must be rewritten."""

from __future__ import annotations

from datetime import datetime

from dvls_operator.controller.models import is_zero_time


def needs_sync(
    last_synced: datetime | None,
    vault_modified_on: datetime | None,
    secret_exists: bool,
) -> bool:
    """Return False only when the secret exists and the recorded time equals the entry's.

    Exact equality, not ordering: an entry whose modification time moves
    backwards (restored from backup) is synced too.
    """
    if not secret_exists or is_zero_time(last_synced):
        return True
    if vault_modified_on is None:
        return True
    return last_synced != vault_modified_on
