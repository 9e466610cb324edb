"""
DVLS vault access: entry models, the credential mapper, and the HTTP client.

Public API:
    DvlsClient.get_entry(vault_id, entry_id)  → VaultEntry
    map_entry(entry)                          → {secret key: value}
"""

from __future__ import annotations

from dvls_operator.vault.client import DvlsClient
from dvls_operator.vault.mapping import map_entry
from dvls_operator.vault.models import EntrySubType, VaultEntry, parse_entry

__all__ = ["DvlsClient", "EntrySubType", "VaultEntry", "map_entry", "parse_entry"]
