"""Cluster API boundary for Konverge.

Submodules:
    base        -- ClusterAPI: abstract discovery/list/create/replace/delete.
    kubernetes  -- KubernetesCluster: kubernetes-asyncio implementation.
"""

from konverge.cluster.base import ClusterAPI

__all__ = ["ClusterAPI"]
