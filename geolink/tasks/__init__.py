"""Layer 3: Tasks - User intent translation.

Tasks translate user intent into object creation and primitive calls, and
run graph algorithms through networkx. Tasks must not import matplotlib,
geopandas or rasterio.
"""

from geolink.tasks.jointask import POLICY_NAMES, JoinTask, make_policy
from geolink.tasks.networktask import (
    COMMUNITY_METHODS,
    NetworkTask,
    build_graph,
    detect_communities,
    remove_vertices,
    vertex_metrics,
)
from geolink.tasks.zonaltask import ZonalTask

__all__ = [
    "COMMUNITY_METHODS",
    "JoinTask",
    "NetworkTask",
    "POLICY_NAMES",
    "ZonalTask",
    "build_graph",
    "detect_communities",
    "make_policy",
    "remove_vertices",
    "vertex_metrics",
]
