"""Layer 2: Primitives - Pure operations on objects.

Primitives take objects, return new objects or plain values, and never read
or write files. shapely, pyproj and numpy/pandas only; no geopandas,
rasterio, networkx or matplotlib.
"""

from geolink.primitives.attribute_join import attribute_join, bind_communities
from geolink.primitives.crs import (
    SpatialReference,
    check_same_crs,
    crs_equal,
    get_epsg_code,
    reproject,
    standardize_crs,
    transform_coordinates,
)
from geolink.primitives.reducers import REDUCERS, Reducer, get_reducer
from geolink.primitives.spatial_join import (
    Aggregate,
    AllMatches,
    AreaWeightedAggregate,
    FirstMatch,
    JoinPolicy,
    join_by_location,
    overlap_weights,
    spatial_join,
)
from geolink.primitives.zonal import (
    extract_by_polygon,
    reduce_zones,
    zonal_statistics,
)

__all__ = [
    # Spatial join
    "Aggregate",
    "AllMatches",
    "AreaWeightedAggregate",
    "FirstMatch",
    "JoinPolicy",
    "join_by_location",
    "overlap_weights",
    "spatial_join",
    # Attribute join
    "attribute_join",
    "bind_communities",
    # Reducers
    "REDUCERS",
    "Reducer",
    "get_reducer",
    # Zonal
    "extract_by_polygon",
    "reduce_zones",
    "zonal_statistics",
    # Coordinate frames
    "SpatialReference",
    "check_same_crs",
    "crs_equal",
    "get_epsg_code",
    "reproject",
    "standardize_crs",
    "transform_coordinates",
]
