"""GeoLink: spatial joins, attribute joins, graph communities and zonal
statistics over immutable geometry tables.

The package is organized in four layers:

1. ``geolink.objects``: immutable data (GeoTable, RasterGrid, results).
2. ``geolink.primitives``: pure operations (joins, zonal extraction,
   reprojection).
3. ``geolink.tasks``: user intent (network analysis, configured joins).
4. ``geolink.workflows``: file I/O, plotting and YAML pipelines.
"""

from geolink.config import ConfigManager, get_config, load_config
from geolink.objects import (
    CommunityAssignment,
    GeoTable,
    RasterGrid,
    SpatialJoinResult,
    ZonalExtractionResult,
)
from geolink.primitives import (
    Aggregate,
    AllMatches,
    AreaWeightedAggregate,
    FirstMatch,
    attribute_join,
    bind_communities,
    extract_by_polygon,
    join_by_location,
    overlap_weights,
    reduce_zones,
    reproject,
    spatial_join,
    zonal_statistics,
)
from geolink.tasks import (
    JoinTask,
    NetworkTask,
    ZonalTask,
    build_graph,
    detect_communities,
    remove_vertices,
)
from geolink.utils.errors import (
    DataValidationError,
    DuplicateKeyError,
    EmptyReductionError,
    FrameMismatchError,
    GeoLinkError,
    KeyNotFoundError,
    ParameterError,
)

__version__ = "0.1.0"

__all__ = [
    # Objects
    "CommunityAssignment",
    "GeoTable",
    "RasterGrid",
    "SpatialJoinResult",
    "ZonalExtractionResult",
    # Primitives
    "Aggregate",
    "AllMatches",
    "AreaWeightedAggregate",
    "FirstMatch",
    "attribute_join",
    "bind_communities",
    "extract_by_polygon",
    "join_by_location",
    "overlap_weights",
    "reduce_zones",
    "reproject",
    "spatial_join",
    "zonal_statistics",
    # Tasks
    "JoinTask",
    "NetworkTask",
    "ZonalTask",
    "build_graph",
    "detect_communities",
    "remove_vertices",
    # Config
    "ConfigManager",
    "get_config",
    "load_config",
    # Errors
    "DataValidationError",
    "DuplicateKeyError",
    "EmptyReductionError",
    "FrameMismatchError",
    "GeoLinkError",
    "KeyNotFoundError",
    "ParameterError",
]
