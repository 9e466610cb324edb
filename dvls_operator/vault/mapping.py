"""
Credential mapper: vault entry → flat secret map.

Key names are a stable contract with the workloads that mount the secret.
Every map carries ``entry-id`` and ``entry-name``; subtype fields with an
empty value are left out.
"""

from __future__ import annotations

from dvls_operator.errors import UnsupportedSubtypeError
from dvls_operator.vault.models import (
    AccessCodeCredential,
    ApiKeyCredential,
    AzureServicePrincipalCredential,
    ConnectionStringCredential,
    CredentialPayload,
    DefaultCredential,
    PrivateKeyCredential,
    UnknownCredential,
    VaultEntry,
)


def credential_fields(credential: CredentialPayload) -> list[tuple[str, str]]:
    """Return the (secret key, value) pairs for a credential payload, empties included."""
    if isinstance(credential, DefaultCredential):
        return [
            ("username", credential.username),
            ("password", credential.password),
            ("domain", credential.domain),
        ]
    if isinstance(credential, AccessCodeCredential):
        return [("password", credential.password)]
    if isinstance(credential, ApiKeyCredential):
        return [
            ("api-id", credential.api_id),
            ("api-key", credential.api_key),
            ("tenant-id", credential.tenant_id),
        ]
    if isinstance(credential, AzureServicePrincipalCredential):
        return [
            ("client-id", credential.client_id),
            ("client-secret", credential.client_secret),
            ("tenant-id", credential.tenant_id),
        ]
    if isinstance(credential, ConnectionStringCredential):
        return [("connection-string", credential.connection_string)]
    if isinstance(credential, PrivateKeyCredential):
        return [
            ("username", credential.username),
            ("password", credential.password),
            ("private-key", credential.private_key),
            ("public-key", credential.public_key),
            ("passphrase", credential.passphrase),
        ]
    if isinstance(credential, UnknownCredential):
        raise UnsupportedSubtypeError(credential.sub_type)
    raise UnsupportedSubtypeError(type(credential).__name__)


def map_entry(entry: VaultEntry) -> dict[str, str]:
    """Build the destination secret's data map for an entry.

    Raises UnsupportedSubtypeError for subtypes without a mapping; no partial
    map is returned in that case.
    """
    pairs = credential_fields(entry.credential)
    secret_map = {"entry-id": entry.id, "entry-name": entry.name}
    secret_map.update((key, value) for key, value in pairs if value)
    return secret_map
