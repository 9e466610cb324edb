"""
Vault entry models.

A credential entry's payload is a tagged union: one model per subtype, plus
UnknownCredential for subtypes this operator does not map. parse_entry()
selects the variant from the entry's ``subType``.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from dvls_operator.errors import VaultFetchError


class EntrySubType(StrEnum):
    DEFAULT = "Default"
    ACCESS_CODE = "AccessCode"
    API_KEY = "ApiKey"
    AZURE_SERVICE_PRINCIPAL = "AzureServicePrincipal"
    CONNECTION_STRING = "ConnectionString"
    PRIVATE_KEY = "PrivateKey"


class _Payload(BaseModel):
    """Base for credential payloads: camelCase wire names, null treated as empty."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    @field_validator("*", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class DefaultCredential(_Payload):
    username: str = ""
    password: str = ""
    domain: str = ""


class AccessCodeCredential(_Payload):
    password: str = ""


class ApiKeyCredential(_Payload):
    api_id: str = ""
    api_key: str = ""
    tenant_id: str = ""


class AzureServicePrincipalCredential(_Payload):
    client_id: str = ""
    client_secret: str = ""
    tenant_id: str = ""


class ConnectionStringCredential(_Payload):
    connection_string: str = ""


class PrivateKeyCredential(_Payload):
    username: str = ""
    password: str = ""
    private_key: str = ""
    public_key: str = ""
    passphrase: str = ""


class UnknownCredential(BaseModel):
    """Payload of a subtype with no mapping. Raw fields are kept but never mapped."""

    model_config = ConfigDict(frozen=True)

    sub_type: str
    raw_fields: dict[str, Any] = Field(default_factory=dict, repr=False)


CredentialPayload = (
    DefaultCredential
    | AccessCodeCredential
    | ApiKeyCredential
    | AzureServicePrincipalCredential
    | ConnectionStringCredential
    | PrivateKeyCredential
    | UnknownCredential
)

PAYLOAD_MODELS: dict[EntrySubType, type[_Payload]] = {
    EntrySubType.DEFAULT: DefaultCredential,
    EntrySubType.ACCESS_CODE: AccessCodeCredential,
    EntrySubType.API_KEY: ApiKeyCredential,
    EntrySubType.AZURE_SERVICE_PRINCIPAL: AzureServicePrincipalCredential,
    EntrySubType.CONNECTION_STRING: ConnectionStringCredential,
    EntrySubType.PRIVATE_KEY: PrivateKeyCredential,
}


class VaultEntry(BaseModel):
    """A credential entry as fetched from the vault service."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    vault_id: str = ""
    sub_type: str = EntrySubType.DEFAULT.value
    modified_on: datetime | None = None
    credential: CredentialPayload = Field(repr=False)


def parse_entry(raw: dict[str, Any], *, vault_id: str = "") -> VaultEntry:
    """Build a VaultEntry from the service's JSON.

    Accepts the entry object itself or a ``{"data": {...entry...}}`` envelope.
    Raises VaultFetchError on malformed payloads.
    """
    if "id" not in raw and isinstance(raw.get("data"), dict):
        raw = raw["data"]
    if not raw.get("id"):
        raise VaultFetchError("entry payload has no id")

    sub_type = raw.get("subType") or EntrySubType.DEFAULT.value
    data = raw.get("data") or {}
    if not isinstance(data, dict):
        raise VaultFetchError(f"entry {raw['id']} has a malformed data payload")

    credential: CredentialPayload
    try:
        model = PAYLOAD_MODELS[EntrySubType(sub_type)]
    except ValueError:
        credential = UnknownCredential(sub_type=str(sub_type), raw_fields=data)
    else:
        try:
            credential = model.model_validate(data)  # type: ignore[assignment]
        except ValidationError as e:
            raise VaultFetchError(
                f"entry {raw['id']} has an invalid {sub_type} payload: {e.error_count()} errors"
            ) from None

    try:
        return VaultEntry(
            id=str(raw["id"]),
            name=raw.get("name") or "",
            vault_id=raw.get("vaultId") or vault_id,
            sub_type=str(sub_type),
            modified_on=raw.get("modifiedOn") or None,
            credential=credential,
        )
    except ValidationError:
        raise VaultFetchError(f"entry {raw['id']} has an invalid modifiedOn") from None
