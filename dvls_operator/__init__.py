"""DVLS Operator: mirrors Devolutions Server credential entries into Kubernetes secrets."""

__version__ = "0.1.0"
