"""Layer 1: Objects - Immutable data representations.

This layer contains only data structures. No I/O libraries, no geopandas,
no rasterio, no matplotlib. Standard library, numpy, pandas, affine and
shapely geometry types only. Every transform in the other layers returns a
new object; nothing here is mutated in place.
"""

from geolink.objects.community import CommunityAssignment
from geolink.objects.geotable import GeoTable
from geolink.objects.rastergrid import RasterGrid
from geolink.objects.results import SpatialJoinResult, ZonalExtractionResult

__all__ = [
    "CommunityAssignment",
    "GeoTable",
    "RasterGrid",
    "SpatialJoinResult",
    "ZonalExtractionResult",
]
