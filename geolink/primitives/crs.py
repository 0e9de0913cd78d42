"""Coordinate reference frame handling.

Provides standardized CRS handling using pyproj for all spatial operations.
Spatial predicates are only meaningful between geometries in the same frame,
so every operation that compares two inputs calls ``check_same_crs`` first.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np
import shapely
from pyproj import CRS, Transformer
from pyproj.exceptions import CRSError

from geolink.objects.geotable import GeoTable
from geolink.utils.errors import DataValidationError, FrameMismatchError

logger = logging.getLogger(__name__)


class SpatialReference:
    """Wraps a pyproj CRS with the lookups used across GeoLink."""

    def __init__(self, crs: str | int | CRS | None = None):
        """Initialize spatial reference.

        Args:
            crs: Coordinate Reference System. Can be:
                - EPSG code (int or string like 'EPSG:32633')
                - CRS object from pyproj
                - PROJ string ('+proj=utm +zone=33 +datum=WGS84')
                - WKT string
                - None (no CRS specified)
        """
        self._crs = standardize_crs(crs)

    @property
    def crs(self) -> CRS | None:
        """Get the CRS object."""
        return self._crs

    def get_units(self) -> str:
        """Get the units of the CRS.

        Returns:
            Unit string (e.g., 'metre', 'degree')
        """
        if self._crs is None:
            return "unknown"
        axis_info = self._crs.axis_info
        if axis_info:
            return axis_info[0].unit_name
        return "unknown"

    def get_epsg(self) -> int | None:
        """Get EPSG code if available."""
        return get_epsg_code(self._crs)

    @property
    def is_geographic(self) -> bool:
        return self._crs is not None and self._crs.is_geographic

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, SpatialReference):
            other = other.crs
        return crs_equal(self._crs, other)

    def __hash__(self) -> int:
        return hash(self._crs.to_wkt() if self._crs is not None else None)

    def __repr__(self) -> str:
        """String representation."""
        if self._crs is None:
            return "SpatialReference(crs=None)"
        epsg = self.get_epsg()
        if epsg:
            return f"SpatialReference(crs=EPSG:{epsg})"
        return f"SpatialReference(crs={self._crs.name})"


def standardize_crs(value: Any) -> CRS | None:
    """Build a pyproj CRS from any supported frame specification.

    Args:
        value: EPSG code (int), 'EPSG:xxxx', PROJ string, WKT, pyproj CRS,
            SpatialReference, or None.

    Returns:
        pyproj CRS, or None when ``value`` is None.

    Raises:
        DataValidationError: If the specification cannot be parsed.
    """
    if value is None:
        return None
    if isinstance(value, SpatialReference):
        return value.crs
    if isinstance(value, CRS):
        return value
    try:
        return CRS.from_user_input(value)
    except CRSError as e:
        raise DataValidationError(
            f"Cannot interpret coordinate reference frame: {value!r}",
            suggestion="Use an EPSG code (e.g. 4326), 'EPSG:4326', or a PROJ string.",
        ) from e


def get_epsg_code(crs: Any) -> int | None:
    """EPSG code of a frame, or None if it has none."""
    crs = standardize_crs(crs)
    if crs is None:
        return None
    return crs.to_epsg()


def crs_equal(a: Any, b: Any) -> bool:
    """True when two frame specifications describe the same frame.

    Two undefined frames (None, None) are equal; an undefined frame never
    equals a defined one.
    """
    crs_a = standardize_crs(a)
    crs_b = standardize_crs(b)
    if crs_a is None or crs_b is None:
        return crs_a is None and crs_b is None
    return crs_a == crs_b


def check_same_crs(
    a: Any,
    b: Any,
    left_name: str = "source",
    right_name: str = "target",
    suggestion: str | None = None,
) -> None:
    """Raise FrameMismatchError unless ``a`` and ``b`` share a frame.

    Args:
        a: First frame specification (or an object with a ``crs`` attribute).
        b: Second frame specification (or an object with a ``crs`` attribute).
        left_name: Label for ``a`` in the error message.
        right_name: Label for ``b`` in the error message.
        suggestion: Replacement for the default fix-it hint.

    Raises:
        FrameMismatchError: If the frames differ.
    """
    crs_a = getattr(a, "crs", a)
    crs_b = getattr(b, "crs", b)
    if crs_equal(crs_a, crs_b):
        return
    raise FrameMismatchError(
        f"Coordinate reference frames differ: {left_name} is "
        f"{_describe(crs_a)}, {right_name} is {_describe(crs_b)}",
        suggestion=suggestion
        or f"Reproject one input first, e.g. reproject({left_name}, {right_name}.crs).",
        details={left_name: crs_a, right_name: crs_b},
    )


def _describe(crs: Any) -> str:
    crs = standardize_crs(crs)
    if crs is None:
        return "undefined"
    epsg = crs.to_epsg()
    return f"EPSG:{epsg}" if epsg else crs.name


def transform_coordinates(
    coordinates: np.ndarray,
    source_crs: str | int | CRS,
    target_crs: str | int | CRS,
) -> np.ndarray:
    """Transform coordinates between frames.

    Args:
        coordinates: Input coordinates [N, 2] or [N, 3] (x, y, [z]); z is
            passed through unchanged.
        source_crs: Source frame.
        target_crs: Target frame.

    Returns:
        Transformed coordinates with the same shape as the input.

    Examples:
        >>> coords = np.array([[500000.0, 0.0]])
        >>> # UTM zone 33N central meridian -> lon 15, lat 0
        >>> lonlat = transform_coordinates(coords, "EPSG:32633", "EPSG:4326")
    """
    coordinates = np.asarray(coordinates, dtype=np.float64)
    if coordinates.ndim != 2 or coordinates.shape[1] not in (2, 3):
        raise DataValidationError(
            f"coordinates must have shape [N, 2] or [N, 3], got {coordinates.shape}"
        )
    transformer = Transformer.from_crs(
        standardize_crs(source_crs), standardize_crs(target_crs), always_xy=True
    )
    x_new, y_new = transformer.transform(coordinates[:, 0], coordinates[:, 1])
    if coordinates.shape[1] == 2:
        return np.column_stack([x_new, y_new])
    return np.column_stack([x_new, y_new, coordinates[:, 2]])


def reproject(geotable: GeoTable, target_crs: Any) -> GeoTable:
    """Transform a GeoTable's coordinates into another frame.

    Geometry count, order, topology and attribute rows are preserved; only
    coordinates and the frame change.

    Args:
        geotable: Input collection; must have a defined frame.
        target_crs: Frame to transform into.

    Returns:
        New GeoTable in ``target_crs``.

    Raises:
        DataValidationError: If the input has no frame.
    """
    source = standardize_crs(geotable.crs)
    target = standardize_crs(target_crs)
    if source is None:
        raise DataValidationError(
            "Cannot reproject a collection with an undefined coordinate frame",
            suggestion="Assign the known frame first with geotable.with_crs(...).",
        )
    if target is None:
        raise DataValidationError("Target coordinate frame must be defined")

    if source == target:
        logger.debug("reproject: frames already equal, coordinates unchanged")
        return geotable.with_crs(target_crs)

    transformer = Transformer.from_crs(source, target, always_xy=True)

    def _transform_xy(coords: np.ndarray) -> np.ndarray:
        x_new, y_new = transformer.transform(coords[:, 0], coords[:, 1])
        return np.column_stack([x_new, y_new, *coords[:, 2:].T])

    # z values pass through unchanged
    transformed = geotable.geometry_array()
    has_z = shapely.has_z(transformed)
    if has_z.any():
        transformed[has_z] = shapely.transform(
            transformed[has_z], _transform_xy, include_z=True
        )
    if not has_z.all():
        transformed[~has_z] = shapely.transform(transformed[~has_z], _transform_xy)
    logger.info(
        f"Reprojected {len(geotable)} geometries from {_describe(source)} "
        f"to {_describe(target)}"
    )
    return geotable.with_geometry(list(transformed), crs=target_crs)
