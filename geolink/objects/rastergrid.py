"""RasterGrid: a regular grid of cell values in a fixed coordinate frame."""

from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
import shapely
from affine import Affine
from shapely.geometry import Polygon

from geolink.utils.errors import DataValidationError


@dataclass(frozen=True, eq=False)
class RasterGrid:
    """Single-band raster.

    Cell (row, col) covers the parallelogram mapped by ``transform`` from
    pixel space [col, col + 1] x [row, row + 1]. Its center is at pixel
    coordinates (col + 0.5, row + 0.5).

    Attributes:
        data: Cell values, shape (n_rows, n_cols).
        transform: Affine mapping pixel (col, row) to frame (x, y).
        crs: Coordinate reference frame of the grid.
        nodata: Value marking missing cells, optional.
    """

    data: np.ndarray
    transform: Affine
    crs: Any = None
    nodata: Optional[float] = None

    def __post_init__(self) -> None:
        """Validate RasterGrid parameters."""
        data = np.asarray(self.data)
        if data.ndim != 2:
            raise DataValidationError(
                f"Raster data must be 2D (rows, cols), got shape {data.shape}"
            )
        if not isinstance(self.transform, Affine):
            if len(self.transform) < 6:
                raise DataValidationError(
                    "transform must be an affine.Affine or a 6-element sequence"
                )
            object.__setattr__(self, "transform", Affine(*self.transform[:6]))
        if self.transform.is_degenerate:
            raise DataValidationError("Raster transform is degenerate")
        data = data.copy()
        data.setflags(write=False)
        object.__setattr__(self, "data", data)

    @classmethod
    def from_origin(
        cls,
        data: np.ndarray,
        west: float,
        north: float,
        cell_size: float,
        crs: Any = None,
        nodata: Optional[float] = None,
    ) -> "RasterGrid":
        """North-up grid with square cells anchored at its top-left corner."""
        transform = Affine.translation(west, north) * Affine.scale(cell_size, -cell_size)
        return cls(data=data, transform=transform, crs=crs, nodata=nodata)

    @property
    def shape(self) -> tuple[int, int]:
        return self.data.shape

    @property
    def cell_size(self) -> tuple[float, float]:
        """Absolute cell width and height for a north-up grid."""
        return (abs(self.transform.a), abs(self.transform.e))

    @property
    def is_rectilinear(self) -> bool:
        return self.transform.is_rectilinear

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """Extent (minx, miny, maxx, maxy) of the grid in its frame."""
        n_rows, n_cols = self.shape
        corners = np.array(
            [self.transform * (c, r) for c, r in ((0, 0), (n_cols, 0), (0, n_rows), (n_cols, n_rows))]
        )
        return (
            corners[:, 0].min(),
            corners[:, 1].min(),
            corners[:, 0].max(),
            corners[:, 1].max(),
        )

    def cell_centers(
        self, rows: np.ndarray, cols: np.ndarray
    ) -> tuple[np.ndarray, np.ndarray]:
        """Frame coordinates of the centers of the given cells."""
        cols = np.asarray(cols, dtype=np.float64) + 0.5
        rows = np.asarray(rows, dtype=np.float64) + 0.5
        t = self.transform
        x = t.a * cols + t.b * rows + t.c
        y = t.d * cols + t.e * rows + t.f
        return x, y

    def cell_polygon(self, row: int, col: int) -> Polygon:
        """Footprint of one cell."""
        t = self.transform
        return Polygon(
            [
                t * (col, row),
                t * (col + 1, row),
                t * (col + 1, row + 1),
                t * (col, row + 1),
            ]
        )

    def cell_polygons(self, rows: np.ndarray, cols: np.ndarray) -> np.ndarray:
        """Footprints of the given cells as an object array of polygons."""
        rows = np.asarray(rows, dtype=np.float64)
        cols = np.asarray(cols, dtype=np.float64)
        t = self.transform
        ring = []
        for dc, dr in ((0, 0), (1, 0), (1, 1), (0, 1), (0, 0)):
            c = cols + dc
            r = rows + dr
            ring.append(np.column_stack([t.a * c + t.b * r + t.c, t.d * c + t.e * r + t.f]))
        return shapely.polygons(np.stack(ring, axis=1))

    def window_for_bounds(
        self, bounds: tuple[float, float, float, float]
    ) -> tuple[slice, slice]:
        """Row and column slices of the cells that can touch ``bounds``.

        The window is clipped to the grid, so it may be empty.
        """
        minx, miny, maxx, maxy = bounds
        inverse = ~self.transform
        pix = np.array(
            [inverse * (x, y) for x, y in ((minx, miny), (minx, maxy), (maxx, miny), (maxx, maxy))]
        )
        n_rows, n_cols = self.shape
        col_start = int(np.clip(np.floor(pix[:, 0].min()), 0, n_cols))
        col_stop = int(np.clip(np.ceil(pix[:, 0].max()) + 1, 0, n_cols))
        row_start = int(np.clip(np.floor(pix[:, 1].min()), 0, n_rows))
        row_stop = int(np.clip(np.ceil(pix[:, 1].max()) + 1, 0, n_rows))
        return slice(row_start, row_stop), slice(col_start, col_stop)

    def masked(self) -> np.ndarray:
        """Float copy of the data with nodata cells set to NaN."""
        values = self.data.astype(np.float64)
        if self.nodata is not None:
            values[self.data == self.nodata] = np.nan
        return values

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"RasterGrid(shape={self.shape}, cell_size={self.cell_size}, "
            f"crs={self.crs!r}, nodata={self.nodata})"
        )
