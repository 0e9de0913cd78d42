"""Map plotting for GeoTables.

Layer 4: Workflows - Public entry points with plotting.
"""

import logging
from typing import TYPE_CHECKING, Any, Optional, Tuple

import numpy as np
from pandas.api.types import is_numeric_dtype
from shapely.geometry import (
    LineString,
    MultiLineString,
    MultiPoint,
    MultiPolygon,
    Point,
    Polygon,
)
from shapely.geometry.polygon import orient

from geolink.objects.geotable import GeoTable
from geolink.utils.optional_imports import require

if TYPE_CHECKING:
    from matplotlib.axes import Axes
    from matplotlib.figure import Figure

logger = logging.getLogger(__name__)

# Optional matplotlib dependency
try:
    import matplotlib.pyplot as plt
    import matplotlib.patches as mpatches
    from matplotlib.cm import ScalarMappable
    from matplotlib.colors import Normalize
    from matplotlib.figure import Figure
    from matplotlib.axes import Axes
    from matplotlib.path import Path as MplPath

    MATPLOTLIB_AVAILABLE = True
except ImportError:
    MATPLOTLIB_AVAILABLE = False
    plt = None  # type: ignore
    mpatches = None  # type: ignore
    ScalarMappable = None  # type: ignore
    Normalize = None  # type: ignore
    Figure = None  # type: ignore
    Axes = None  # type: ignore
    MplPath = None  # type: ignore

MISSING_COLOR = "#d3d3d3"


def plot_geotable(
    geotable: GeoTable,
    column: Optional[str] = None,
    size_by: Optional[str] = None,
    categorical: Optional[bool] = None,
    ax: Optional["Axes"] = None,
    cmap: Optional[str] = None,
    figsize: Tuple[float, float] = (8, 8),
    title: Optional[str] = None,
    legend: bool = True,
    edgecolor: str = "#333333",
    linewidth: float = 0.5,
    alpha: float = 0.9,
) -> "Figure":
    """Draw a GeoTable colored (and points sized) by attribute columns.

    Args:
        geotable: Geometries to draw.
        column: Column used for fill color. None draws a single color.
        size_by: Numeric column scaling point marker sizes.
        categorical: Treat ``column`` as categories. None decides from the
            column dtype.
        ax: Axes to draw into. A new figure is created when None.
        cmap: Colormap name (default 'tab20' for categories, 'viridis'
            otherwise).
        figsize: Figure size when a new figure is created.
        title: Axes title.
        legend: Draw a category legend or a colorbar.
        edgecolor: Polygon outline color.
        linewidth: Outline and line width.
        alpha: Fill opacity.

    Returns:
        The matplotlib Figure holding the map.

    Example:
        >>> parishes = bind_communities(parishes, assignment, "name")
        >>> fig = plot_geotable(parishes, column="community", categorical=True)
        >>> fig.savefig("communities.png", dpi=150)
    """
    require("matplotlib", MATPLOTLIB_AVAILABLE, "viz")

    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.figure

    colors, legend_items, mappable = _colors_for(geotable, column, categorical, cmap)
    sizes = _sizes_for(geotable, size_by)

    point_xy, point_colors, point_sizes = [], [], []
    for geom, color, size in zip(geotable.geometry, colors, sizes):
        if isinstance(geom, (Polygon, MultiPolygon)):
            parts = geom.geoms if isinstance(geom, MultiPolygon) else [geom]
            for part in parts:
                ax.add_patch(
                    mpatches.PathPatch(
                        _polygon_path(part),
                        facecolor=color,
                        edgecolor=edgecolor,
                        linewidth=linewidth,
                        alpha=alpha,
                    )
                )
        elif isinstance(geom, (LineString, MultiLineString)):
            parts = geom.geoms if isinstance(geom, MultiLineString) else [geom]
            for part in parts:
                x, y = part.xy
                ax.plot(x, y, color=color, linewidth=max(linewidth, 1.0))
        elif isinstance(geom, (Point, MultiPoint)):
            parts = geom.geoms if isinstance(geom, MultiPoint) else [geom]
            for part in parts:
                point_xy.append((part.x, part.y))
                point_colors.append(color)
                point_sizes.append(size)
        else:
            logger.debug(f"Skipping unsupported geometry type {geom.geom_type}")

    if point_xy:
        xy = np.asarray(point_xy)
        ax.scatter(
            xy[:, 0],
            xy[:, 1],
            c=point_colors,
            s=point_sizes,
            edgecolors=edgecolor,
            linewidths=linewidth,
            alpha=alpha,
            zorder=3,
        )

    if len(geotable):
        minx, miny, maxx, maxy = geotable.bounds
        pad_x = (maxx - minx) * 0.02 or 1.0
        pad_y = (maxy - miny) * 0.02 or 1.0
        ax.set_xlim(minx - pad_x, maxx + pad_x)
        ax.set_ylim(miny - pad_y, maxy + pad_y)
    ax.set_aspect("equal")

    if legend and legend_items:
        ax.legend(handles=legend_items, title=column, loc="best", fontsize=8)
    elif legend and mappable is not None:
        fig.colorbar(mappable, ax=ax, label=column, shrink=0.7)

    if title:
        ax.set_title(title)

    logger.debug(f"Plotted {len(geotable)} geometries (column={column})")
    return fig


def _colors_for(
    geotable: GeoTable,
    column: Optional[str],
    categorical: Optional[bool],
    cmap: Optional[str],
) -> tuple[list, list, Any]:
    """Per-geometry colors, legend handles, and a colorbar mappable."""
    n = len(geotable)
    if column is None:
        return ["#4c72b0"] * n, [], None

    values = geotable.column(column)
    missing = values.isna().to_numpy()
    if categorical is None:
        categorical = not is_numeric_dtype(values.dropna())

    if categorical:
        categories = sorted(values.dropna().unique(), key=str)
        palette = plt.get_cmap(cmap or "tab20")
        lookup = {cat: palette(i % palette.N) for i, cat in enumerate(categories)}
        colors = [
            MISSING_COLOR if miss else lookup[value]
            for value, miss in zip(values, missing)
        ]
        handles = [mpatches.Patch(color=lookup[cat], label=str(cat)) for cat in categories]
        if missing.any():
            handles.append(mpatches.Patch(color=MISSING_COLOR, label="no data"))
        return colors, handles, None

    numeric = values.astype(float).to_numpy()
    valid = numeric[~missing]
    vmin, vmax = (valid.min(), valid.max()) if len(valid) else (0.0, 1.0)
    norm = Normalize(vmin=vmin, vmax=vmax)
    palette = plt.get_cmap(cmap or "viridis")
    colors = [
        MISSING_COLOR if miss else palette(norm(value))
        for value, miss in zip(numeric, missing)
    ]
    mappable = ScalarMappable(norm=norm, cmap=palette)
    mappable.set_array(valid)
    return colors, [], mappable


def _sizes_for(
    geotable: GeoTable,
    size_by: Optional[str],
    min_size: float = 20.0,
    max_size: float = 200.0,
) -> np.ndarray:
    n = len(geotable)
    if size_by is None:
        return np.full(n, 40.0)
    values = geotable.column(size_by).astype(float).to_numpy()
    valid = values[~np.isnan(values)]
    if len(valid) == 0 or valid.max() == valid.min():
        return np.full(n, (min_size + max_size) / 2)
    scaled = (values - valid.min()) / (valid.max() - valid.min())
    return np.where(np.isnan(scaled), min_size, min_size + scaled * (max_size - min_size))


def _polygon_path(polygon: Polygon) -> "MplPath":
    """Matplotlib path for a polygon, holes included."""
    polygon = orient(polygon, sign=1.0)
    rings = [polygon.exterior] + list(polygon.interiors)
    return MplPath.make_compound_path(
        *[MplPath(np.asarray(ring.coords)[:, :2], closed=True) for ring in rings]
    )
