"""Zonal task: raster statistics per polygon.

Layer 3: Tasks - User intent translation.
"""

import logging
from typing import Any, Optional, Sequence

import numpy as np
import pandas as pd

from geolink.objects.geotable import GeoTable
from geolink.objects.rastergrid import RasterGrid
from geolink.objects.results import ZonalExtractionResult
from geolink.primitives.crs import crs_equal, reproject
from geolink.primitives.zonal import extract_by_polygon, reduce_zones

logger = logging.getLogger(__name__)


class ZonalTask:
    """Task for summarizing raster cells inside polygons.

    Unlike the primitives, the task can bring the polygons into the
    raster's frame first (``align=True``). The raster itself is never
    resampled.
    """

    def __init__(
        self,
        mode: Optional[str] = None,
        drop_nodata: Optional[bool] = None,
        align: bool = False,
        n_jobs: int = 1,
    ):
        """Initialize ZonalTask.

        Args:
            mode: Cell inclusion rule. None reads ``zonal.mode``.
            drop_nodata: Skip nodata cells. None reads ``zonal.drop_nodata``.
            align: Reproject polygons into the raster's frame when the
                frames differ, default False.
            n_jobs: Worker threads, default 1.
        """
        from geolink.config import get_config

        config = get_config()
        self.mode = mode or config.get("zonal.mode", "center")
        self.drop_nodata = (
            drop_nodata if drop_nodata is not None else config.get("zonal.drop_nodata", True)
        )
        self.align = align
        self.n_jobs = n_jobs

    def _prepare(self, raster: RasterGrid, polygons: GeoTable) -> GeoTable:
        if self.align and not crs_equal(raster.crs, polygons.crs):
            logger.info("Reprojecting polygons into the raster frame")
            return reproject(polygons, raster.crs)
        return polygons

    def extract(self, raster: RasterGrid, polygons: GeoTable) -> ZonalExtractionResult:
        """Cell values per polygon; see ``extract_by_polygon``."""
        return extract_by_polygon(
            raster,
            self._prepare(raster, polygons),
            mode=self.mode,
            drop_nodata=self.drop_nodata,
            n_jobs=self.n_jobs,
        )

    def statistics(
        self,
        raster: RasterGrid,
        polygons: GeoTable,
        stats: Sequence[str] = ("count", "mean"),
        empty: Any = np.nan,
    ) -> pd.DataFrame:
        """DataFrame of statistics, one row per polygon.

        Empty polygons get ``empty`` (NaN by default) for every statistic
        except 'count', which is 0.
        """
        cells = self.extract(raster, polygons)
        return pd.DataFrame({stat: reduce_zones(cells, stat, empty=empty) for stat in stats})

    def add_statistics(
        self,
        raster: RasterGrid,
        polygons: GeoTable,
        stats: Sequence[str] = ("mean",),
        prefix: str = "",
        empty: Any = np.nan,
    ) -> GeoTable:
        """``polygons`` with one column per statistic added."""
        table = self.statistics(raster, polygons, stats=stats, empty=empty)
        return polygons.with_columns(
            {f"{prefix}{stat}": table[stat].to_numpy() for stat in stats}
        )
