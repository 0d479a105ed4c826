"""Rendering adapters for the land-survey overlays."""

from .overlay import OverlayReconciler, OverlaySurface, ReconcileStats
from .map_export import LeafletMapDocument
from .flow_plots import save_water_flow_plot, flow_segments

__all__ = [
    "OverlayReconciler",
    "OverlaySurface",
    "ReconcileStats",
    "LeafletMapDocument",
    "save_water_flow_plot",
    "flow_segments",
]
