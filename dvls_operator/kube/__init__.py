"""Kubernetes API access for DvlsSecret resources and their secrets."""

from __future__ import annotations

from dvls_operator.kube.store import KubeStore, load_kube_config

__all__ = ["KubeStore", "load_kube_config"]
