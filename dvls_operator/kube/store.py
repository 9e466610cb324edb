"""
Kubernetes-backed ClusterStore.

Uses the official client: CustomObjectsApi for DvlsSecret resources and
CoreV1Api for secrets. Secret values travel base64-encoded in ``data`` so an
update replaces the whole map (keys dropped from the entry disappear).
"""

from __future__ import annotations

import base64
import logging

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException

from dvls_operator.controller.models import (
    API_GROUP,
    API_VERSION,
    PLURAL,
    DestinationSecret,
    ObjectKey,
    OwnerReference,
    TrackedResource,
)
from dvls_operator.controller.store import ClusterStore
from dvls_operator.errors import AlreadyExistsError, ConflictError, StoreError

logger = logging.getLogger(__name__)


def load_kube_config() -> None:
    """Load in-cluster credentials, falling back to the local kubeconfig."""
    try:
        config.load_incluster_config()
    except ConfigException:
        logger.info("Not running in a cluster, loading kubeconfig")
        config.load_kube_config()


def _encode(data: dict[str, str]) -> dict[str, str]:
    return {
        k: base64.b64encode(v.encode("utf-8", "surrogateescape")).decode("ascii")
        for k, v in data.items()
    }


def _decode(data: dict[str, str] | None) -> dict[str, str]:
    # Secrets may hold binary values; undecodable bytes survive a round trip as surrogates
    return {
        k: base64.b64decode(v).decode("utf-8", "surrogateescape")
        for k, v in (data or {}).items()
    }


def _store_error(action: str, what: str, e: ApiException) -> StoreError:
    return StoreError(f"failed to {action} {what}: HTTP {e.status} {e.reason}")


class KubeStore(ClusterStore):
    """ClusterStore over the Kubernetes API."""

    def __init__(
        self,
        core_v1: client.CoreV1Api | None = None,
        custom_objects: client.CustomObjectsApi | None = None,
    ) -> None:
        self.core_v1 = core_v1 or client.CoreV1Api()
        self.custom_objects = custom_objects or client.CustomObjectsApi()

    # ------------------------------------------------------------------
    # DvlsSecret
    # ------------------------------------------------------------------

    def get_tracked_resource(self, key: ObjectKey) -> TrackedResource | None:
        try:
            obj = self.custom_objects.get_namespaced_custom_object(
                group=API_GROUP,
                version=API_VERSION,
                namespace=key.namespace,
                plural=PLURAL,
                name=key.name,
            )
        except ApiException as e:
            if e.status == 404:
                return None
            raise _store_error("get DvlsSecret", str(key), e) from e
        return TrackedResource.from_object(obj)

    def update_tracked_resource_status(self, resource: TrackedResource) -> None:
        try:
            self.custom_objects.replace_namespaced_custom_object_status(
                group=API_GROUP,
                version=API_VERSION,
                namespace=resource.namespace,
                plural=PLURAL,
                name=resource.name,
                body=resource.to_object(),
            )
        except ApiException as e:
            if e.status == 409:
                raise ConflictError(f"DvlsSecret {resource.key} was modified concurrently") from e
            raise _store_error("update DvlsSecret status", str(resource.key), e) from e

    # ------------------------------------------------------------------
    # Secrets
    # ------------------------------------------------------------------

    def get_secret(self, key: ObjectKey) -> DestinationSecret | None:
        try:
            secret = self.core_v1.read_namespaced_secret(name=key.name, namespace=key.namespace)
        except ApiException as e:
            if e.status == 404:
                return None
            raise _store_error("get kubernetes secret", str(key), e) from e

        meta = secret.metadata
        return DestinationSecret(
            name=meta.name,
            namespace=meta.namespace,
            type=secret.type or "",
            data=_decode(secret.data),
            owner_references=[
                OwnerReference(
                    api_version=ref.api_version,
                    kind=ref.kind,
                    name=ref.name,
                    uid=ref.uid,
                    controller=bool(ref.controller),
                    block_owner_deletion=bool(ref.block_owner_deletion),
                )
                for ref in meta.owner_references or []
            ],
            resource_version=meta.resource_version or "",
            labels=dict(meta.labels or {}),
            annotations=dict(meta.annotations or {}),
        )

    def create_secret(self, secret: DestinationSecret) -> None:
        try:
            self.core_v1.create_namespaced_secret(namespace=secret.namespace, body=self._body(secret))
        except ApiException as e:
            if e.status == 409:
                raise AlreadyExistsError(
                    f"kubernetes secret {secret.namespace}/{secret.name} already exists"
                ) from e
            raise _store_error("create kubernetes secret", f"{secret.namespace}/{secret.name}", e) from e

    def update_secret(self, secret: DestinationSecret) -> None:
        try:
            self.core_v1.replace_namespaced_secret(
                name=secret.name, namespace=secret.namespace, body=self._body(secret)
            )
        except ApiException as e:
            if e.status == 409:
                raise ConflictError(
                    f"kubernetes secret {secret.namespace}/{secret.name} was modified concurrently"
                ) from e
            raise _store_error("update kubernetes secret", f"{secret.namespace}/{secret.name}", e) from e

    @staticmethod
    def _body(secret: DestinationSecret) -> client.V1Secret:
        return client.V1Secret(
            api_version="v1",
            kind="Secret",
            metadata=client.V1ObjectMeta(
                name=secret.name,
                namespace=secret.namespace,
                resource_version=secret.resource_version or None,
                labels=secret.labels or None,
                annotations=secret.annotations or None,
                owner_references=[
                    client.V1OwnerReference(
                        api_version=ref.api_version,
                        kind=ref.kind,
                        name=ref.name,
                        uid=ref.uid,
                        controller=ref.controller,
                        block_owner_deletion=ref.block_owner_deletion,
                    )
                    for ref in secret.owner_references
                ]
                or None,
            ),
            type=secret.type,
            data=_encode(secret.data),
        )
