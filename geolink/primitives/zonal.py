"""Zonal extraction: raster cell values falling inside polygons.

Three cell inclusion rules are available:

- ``center`` (default): the cell center lies inside the polygon or on its
  boundary.
- ``contained``: the whole cell footprint is covered by the polygon.
- ``overlap``: the cell footprint shares a positive area with the polygon.

The raster and the polygons must share a frame. When they do not, reproject
the polygons into the raster's frame; the raster is never resampled here.
"""

import logging
from multiprocessing.pool import ThreadPool
from typing import Any, Callable, Sequence, Union

import numpy as np
import pandas as pd
import shapely

from geolink.objects.geotable import GeoTable
from geolink.objects.rastergrid import RasterGrid
from geolink.objects.results import ZonalExtractionResult
from geolink.primitives.crs import check_same_crs
from geolink.primitives.reducers import Reducer, get_reducer
from geolink.utils.errors import (
    DataValidationError,
    EmptyReductionError,
    raise_parameter_error,
)

logger = logging.getLogger(__name__)

MODES = ("center", "contained", "overlap")
_UNSET = object()


def extract_by_polygon(
    raster: RasterGrid,
    polygons: GeoTable,
    mode: str = "center",
    drop_nodata: bool = False,
    n_jobs: int = 1,
) -> ZonalExtractionResult:
    """Collect the raster cell values inside each polygon.

    Args:
        raster: Grid to sample.
        polygons: Polygon or MultiPolygon collection in the raster's frame.
        mode: Cell inclusion rule, 'center', 'contained' or 'overlap'.
        drop_nodata: Leave out cells equal to ``raster.nodata`` (or NaN).
        n_jobs: Worker threads; results do not depend on this value.

    Returns:
        ZonalExtractionResult with one array per polygon. A polygon that
        covers no cell (for example one outside the raster extent) gets an
        empty array.

    Raises:
        FrameMismatchError: If raster and polygons frames differ.
        DataValidationError: If a geometry is not polygonal.
        ParameterError: If ``mode`` is unknown.

    Example:
        >>> dem = read_raster("data/dem.tif")
        >>> parishes = reproject(read_vector("data/parishes.shp"), dem.crs)
        >>> cells = extract_by_polygon(dem, parishes)
        >>> mean_elevation = reduce_zones(cells, "mean", empty=np.nan)
    """
    if not isinstance(raster, RasterGrid):
        raise TypeError(f"raster must be a RasterGrid, got {type(raster).__name__}")
    if not isinstance(polygons, GeoTable):
        raise TypeError(f"polygons must be a GeoTable, got {type(polygons).__name__}")
    if mode not in MODES:
        raise_parameter_error("mode", mode, valid_values=list(MODES))
    if n_jobs is None or n_jobs < 1:
        raise_parameter_error("n_jobs", n_jobs, constraint="n_jobs >= 1")

    check_same_crs(
        polygons,
        raster,
        left_name="polygons",
        right_name="raster",
        suggestion="Reproject the polygons into the raster's frame with "
        "reproject(polygons, raster.crs) rather than resampling the raster.",
    )
    if not polygons.is_polygonal:
        raise DataValidationError(
            "Zonal extraction needs Polygon or MultiPolygon geometries, got "
            f"{sorted(set(polygons.geom_types))}"
        )

    def _extract(indices: np.ndarray) -> list:
        return [
            _cells_in(raster, polygons.geometry[i], mode, drop_nodata) for i in indices
        ]

    n = len(polygons)
    if n_jobs == 1 or n < 2:
        values = _extract(np.arange(n))
    else:
        chunks = [c for c in np.array_split(np.arange(n), n_jobs * 4) if len(c)]
        with ThreadPool(processes=n_jobs) as pool:
            values = [v for part in pool.map(_extract, chunks) for v in part]

    result = ZonalExtractionResult(values=tuple(values), mode=mode)
    if result.empty_zones:
        logger.warning(
            f"{len(result.empty_zones)} of {n} polygons contain no raster cells "
            f"(mode={mode})"
        )
    logger.info(
        f"Extracted {int(result.counts.sum())} cells for {n} polygons (mode={mode})"
    )
    return result


def reduce_zones(
    result: ZonalExtractionResult,
    reducer: Union[str, Reducer, Callable] = "mean",
    empty: Any = _UNSET,
) -> np.ndarray:
    """Reduce each polygon's cell values to one number.

    Args:
        result: Output of ``extract_by_polygon``.
        reducer: Reducer name, Reducer, or callable ``f(values)``.
        empty: Value for polygons without cells. A reducer that defines
            its own empty result ('count' gives 0) always uses it. If
            omitted, empty polygons are an error for every other reducer.

    Returns:
        Array with one value per polygon.

    Raises:
        EmptyReductionError: If a polygon has no cells and no empty value
            applies.
    """
    reducer = get_reducer(reducer)
    empty_zones = result.empty_zones
    if empty_zones and empty is _UNSET and not reducer.defines_empty:
        raise EmptyReductionError(
            f"Reducer '{reducer.name}' is undefined for {len(empty_zones)} polygons "
            f"without cells (indices {empty_zones[:10]})",
            suggestion="Pass empty=np.nan (or another value) to reduce_zones.",
            details={"empty_zones": empty_zones},
        )

    out = []
    for values in result.values:
        if len(values) == 0 and not reducer.defines_empty and empty is not _UNSET:
            out.append(empty)
        else:
            out.append(reducer(values))
    return np.asarray(out)


def zonal_statistics(
    raster: RasterGrid,
    polygons: GeoTable,
    stats: Sequence[str] = ("mean",),
    mode: str = "center",
    drop_nodata: bool = True,
    empty: Any = _UNSET,
) -> pd.DataFrame:
    """Summary statistics of raster cells per polygon.

    Returns:
        DataFrame indexed by polygon position, one column per statistic.
    """
    cells = extract_by_polygon(raster, polygons, mode=mode, drop_nodata=drop_nodata)
    return pd.DataFrame(
        {stat: reduce_zones(cells, stat, empty=empty) for stat in stats},
        index=pd.RangeIndex(len(polygons)),
    )


def _cells_in(
    raster: RasterGrid, polygon, mode: str, drop_nodata: bool
) -> np.ndarray:
    """Row-major values of the cells selected by ``mode`` for one polygon."""
    if polygon.is_empty:
        return np.empty(0, dtype=raster.data.dtype)

    row_slice, col_slice = raster.window_for_bounds(polygon.bounds)
    rows, cols = np.mgrid[row_slice, col_slice]
    rows = rows.ravel()
    cols = cols.ravel()
    if len(rows) == 0:
        return np.empty(0, dtype=raster.data.dtype)

    if mode == "center":
        x, y = raster.cell_centers(rows, cols)
        inside = shapely.intersects_xy(polygon, x, y)
    else:
        cells = raster.cell_polygons(rows, cols)
        if mode == "contained":
            inside = shapely.covered_by(cells, polygon)
        else:
            inside = shapely.intersects(cells, polygon) & ~shapely.touches(cells, polygon)

    values = raster.data[rows[inside], cols[inside]]
    if drop_nodata:
        keep = ~_is_nodata(values, raster.nodata)
        values = values[keep]
    return values


def _is_nodata(values: np.ndarray, nodata: Any) -> np.ndarray:
    missing = np.zeros(values.shape, dtype=bool)
    if np.issubdtype(values.dtype, np.floating):
        missing |= np.isnan(values)
    if nodata is not None and not (isinstance(nodata, float) and np.isnan(nodata)):
        missing |= values == nodata
    return missing
