"""File I/O for vector, raster, tabular and edge-list data.

Layer 4: Workflows - Public entry points with I/O.

Every reader and writer takes an explicit path. Nothing here depends on the
current working directory or on library-wide data folders.
"""

import io
import logging
from pathlib import Path
from typing import Any, Optional, Union

import numpy as np
import pandas as pd

from geolink.objects.geotable import GeoTable
from geolink.objects.rastergrid import RasterGrid
from geolink.primitives.crs import standardize_crs
from geolink.tasks.networktask import build_graph
from geolink.utils.errors import DataValidationError
from geolink.utils.optional_imports import require

logger = logging.getLogger(__name__)

# Optional geopandas dependency
try:
    import geopandas as gpd

    GEOPANDAS_AVAILABLE = True
except ImportError:
    GEOPANDAS_AVAILABLE = False
    gpd = None  # type: ignore

# Optional rasterio dependency
try:
    import rasterio

    RASTERIO_AVAILABLE = True
except ImportError:
    RASTERIO_AVAILABLE = False
    rasterio = None  # type: ignore

PathLike = Union[str, Path]


def geotable_from_geodataframe(gdf: "gpd.GeoDataFrame") -> GeoTable:
    """Convert a GeoDataFrame into a GeoTable.

    Raises:
        DataValidationError: If a row has no geometry.
    """
    require("geopandas", GEOPANDAS_AVAILABLE, "io")
    geometry = gdf.geometry
    missing = geometry.isna()
    if missing.any():
        raise DataValidationError(
            f"{int(missing.sum())} rows have no geometry",
            suggestion="Drop them first, e.g. gdf[gdf.geometry.notna()].",
        )
    attributes = pd.DataFrame(gdf.drop(columns=geometry.name))
    return GeoTable(
        geometry=tuple(geometry),
        attributes=attributes if len(attributes.columns) else None,
        crs=gdf.crs,
    )


def geotable_to_geodataframe(geotable: GeoTable) -> "gpd.GeoDataFrame":
    """Convert a GeoTable into a GeoDataFrame."""
    require("geopandas", GEOPANDAS_AVAILABLE, "io")
    attributes = (
        geotable.attributes
        if geotable.has_attributes
        else pd.DataFrame(index=pd.RangeIndex(len(geotable)))
    )
    return gpd.GeoDataFrame(
        attributes, geometry=list(geotable.geometry), crs=geotable.crs
    )


def read_vector(path: PathLike, layer: Optional[str] = None) -> GeoTable:
    """Read a vector dataset (Shapefile, GeoPackage, GeoJSON, ...).

    Args:
        path: Dataset path.
        layer: Layer name for multi-layer sources.

    Returns:
        GeoTable with the dataset's attributes and frame.

    Example:
        >>> counties = read_vector("data/counties.shp")
        >>> counties.crs
    """
    require("geopandas", GEOPANDAS_AVAILABLE, "io")
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Vector file not found: {path}")

    kwargs = {"layer": layer} if layer is not None else {}
    geotable = geotable_from_geodataframe(gpd.read_file(path, **kwargs))
    logger.info(f"Read {len(geotable)} features from {path}")
    return geotable


def write_vector(
    geotable: GeoTable,
    path: PathLike,
    driver: Optional[str] = None,
    layer: Optional[str] = None,
) -> Path:
    """Write a GeoTable to a vector file.

    The driver is inferred from the file extension when not given.

    Returns:
        The written path.
    """
    path = Path(path)
    gdf = geotable_to_geodataframe(geotable)
    kwargs: dict[str, Any] = {}
    if driver is not None:
        kwargs["driver"] = driver
    if layer is not None:
        kwargs["layer"] = layer
    path.parent.mkdir(parents=True, exist_ok=True)
    gdf.to_file(path, **kwargs)
    logger.info(f"Wrote {len(geotable)} features to {path}")
    return path


def read_raster(path: PathLike, band: int = 1) -> RasterGrid:
    """Read one band of a raster dataset.

    Args:
        path: Raster path (GeoTIFF or any GDAL format).
        band: 1-based band index, default 1.

    Returns:
        RasterGrid with the band's values, transform, frame and nodata.
    """
    require("rasterio", RASTERIO_AVAILABLE, "io")
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Raster file not found: {path}")

    with rasterio.open(path) as src:
        if band < 1 or band > src.count:
            raise DataValidationError(
                f"Band {band} out of range; {path.name} has {src.count} bands"
            )
        data = src.read(band)
        crs = standardize_crs(src.crs.to_wkt()) if src.crs is not None else None
        raster = RasterGrid(data=data, transform=src.transform, crs=crs, nodata=src.nodata)

    logger.info(f"Read raster {path}: {raster.shape[0]} x {raster.shape[1]} cells")
    return raster


def write_raster(raster: RasterGrid, path: PathLike, driver: str = "GTiff") -> Path:
    """Write a RasterGrid as a single-band raster file.

    Returns:
        The written path.
    """
    require("rasterio", RASTERIO_AVAILABLE, "io")
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    crs = standardize_crs(raster.crs)
    profile = {
        "driver": driver,
        "height": raster.shape[0],
        "width": raster.shape[1],
        "count": 1,
        "dtype": raster.data.dtype.name,
        "transform": raster.transform,
        "crs": crs.to_wkt() if crs is not None else None,
        "nodata": raster.nodata,
    }
    with rasterio.open(path, "w", **profile) as dst:
        dst.write(np.asarray(raster.data), 1)
    logger.info(f"Wrote raster to {path}")
    return path


def read_table(path: PathLike, sep: str = ",", **kwargs: Any) -> pd.DataFrame:
    """Read a delimited text file into a DataFrame."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Table file not found: {path}")
    df = pd.read_csv(path, sep=sep, **kwargs)
    logger.info(f"Read {len(df)} rows, {len(df.columns)} columns from {path}")
    return df


def load_csv_from_string(text: str, sep: str = ",", **kwargs: Any) -> pd.DataFrame:
    """Parse delimited text held in a string.

    Example:
        >>> int(load_csv_from_string("name,pop\\nA,10\\nB,20")["pop"].sum())
        30
    """
    return pd.read_csv(io.StringIO(text), sep=sep, **kwargs)


def read_edge_list(
    path: PathLike,
    source: str = "from",
    target: str = "to",
    weight: Optional[str] = None,
    directed: bool = False,
    sep: str = ",",
):
    """Read a delimited edge list into a networkx graph.

    Args:
        path: Table with one edge per row.
        source: Column of edge start names.
        target: Column of edge end names.
        weight: Column of edge weights, optional.
        directed: Build a directed graph.
        sep: Field delimiter.

    Returns:
        networkx Graph or DiGraph.
    """
    edges = read_table(path, sep=sep)
    return build_graph(edges, directed=directed, source=source, target=target, weight=weight)
