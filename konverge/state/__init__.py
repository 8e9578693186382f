"""Live and desired state for Konverge.

Submodules:
    live       -- collect_live_state(): discovery-driven enumeration of the cluster.
    manifests  -- load_manifests(): identity map built from a manifest directory.
"""

from konverge.state.live import LiveState, collect_live_state
from konverge.state.manifests import load_manifests

__all__ = ["LiveState", "collect_live_state", "load_manifests"]
