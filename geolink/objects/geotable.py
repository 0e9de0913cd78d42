"""GeoTable: an ordered geometry collection with an aligned attribute table."""

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence

import numpy as np
import pandas as pd
from shapely.geometry.base import BaseGeometry

from geolink.utils.errors import DataValidationError, raise_key_not_found

POLYGONAL_TYPES = frozenset({"Polygon", "MultiPolygon"})


@dataclass(frozen=True, eq=False, init=False)
class GeoTable:
    """Geometries with an optional attribute table and coordinate frame.

    Row ``i`` of ``attributes`` always describes ``geometry[i]``. Geometry
    and rows are only ever selected together, so the two can never drift
    out of alignment.

    The attribute table is held privately. ``attributes`` and ``column``
    hand out copies, so editing what they return never changes the
    GeoTable.

    Attributes:
        geometry: Shapely geometries, positional index 0..n-1.
        attributes: Copy of the attribute rows aligned 1:1 with geometry,
            or None.
        crs: Coordinate reference frame (EPSG code, "EPSG:xxxx", PROJ string,
            WKT or pyproj CRS), or None for an undefined frame.
    """

    geometry: tuple
    crs: Any = None
    _attributes: Optional[pd.DataFrame] = field(default=None, repr=False)

    def __init__(
        self,
        geometry: Iterable[BaseGeometry],
        attributes: Optional[pd.DataFrame] = None,
        crs: Any = None,
    ) -> None:
        object.__setattr__(self, "geometry", geometry)
        object.__setattr__(self, "_attributes", attributes)
        object.__setattr__(self, "crs", crs)
        self.__post_init__()

    def __post_init__(self) -> None:
        """Validate GeoTable parameters."""
        geometry = tuple(self.geometry)
        for i, geom in enumerate(geometry):
            if not isinstance(geom, BaseGeometry):
                raise DataValidationError(
                    f"geometry[{i}] must be a shapely geometry, got {type(geom)}"
                )
        object.__setattr__(self, "geometry", geometry)

        attributes = self._attributes
        if attributes is not None:
            if not isinstance(attributes, pd.DataFrame):
                raise DataValidationError(
                    f"attributes must be a pandas DataFrame, got {type(attributes)}"
                )
            if len(attributes) != len(geometry):
                raise DataValidationError(
                    f"Attribute table has {len(attributes)} rows but there are "
                    f"{len(geometry)} geometries",
                    suggestion="Attribute rows must align 1:1 with geometries.",
                )
            object.__setattr__(
                self, "_attributes", attributes.reset_index(drop=True).copy()
            )

    @classmethod
    def from_records(
        cls,
        geometry: Iterable[BaseGeometry],
        records: Optional[Sequence[Mapping[str, Any]]] = None,
        crs: Any = None,
    ) -> "GeoTable":
        """Build a GeoTable from geometries and a list of row dicts."""
        attributes = pd.DataFrame(list(records)) if records is not None else None
        return cls(geometry=tuple(geometry), attributes=attributes, crs=crs)

    def __len__(self) -> int:
        return len(self.geometry)

    @property
    def attributes(self) -> Optional[pd.DataFrame]:
        """Copy of the attribute table, or None."""
        if self._attributes is None:
            return None
        return self._attributes.copy()

    @property
    def has_attributes(self) -> bool:
        return self._attributes is not None

    @property
    def columns(self) -> list[str]:
        """Attribute column names (empty when there is no attribute table)."""
        if self._attributes is None:
            return []
        return list(self._attributes.columns)

    @property
    def geom_types(self) -> tuple:
        return tuple(geom.geom_type for geom in self.geometry)

    @property
    def is_polygonal(self) -> bool:
        """True when every geometry is a Polygon or MultiPolygon."""
        return all(t in POLYGONAL_TYPES for t in self.geom_types)

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """Total bounds (minx, miny, maxx, maxy) of all geometries."""
        non_empty = [g.bounds for g in self.geometry if not g.is_empty]
        if not non_empty:
            return (np.nan, np.nan, np.nan, np.nan)
        b = np.asarray(non_empty)
        return (b[:, 0].min(), b[:, 1].min(), b[:, 2].max(), b[:, 3].max())

    def geometry_array(self) -> np.ndarray:
        """Geometries as a 1D object array for vectorized shapely calls."""
        out = np.empty(len(self.geometry), dtype=object)
        for i, geom in enumerate(self.geometry):
            out[i] = geom
        return out

    def column(self, name: str) -> pd.Series:
        """Return one attribute column.

        Raises:
            KeyNotFoundError: If the column does not exist.
        """
        if name not in self.columns:
            raise_key_not_found(name, self.columns)
        return self._attributes[name].copy()

    def row(self, position: int) -> dict[str, Any]:
        """Attribute row at ``position`` as a dict (empty without attributes)."""
        if self._attributes is None:
            return {}
        return self._attributes.iloc[[position]].to_dict("records")[0]

    def take(self, positions: Sequence[int]) -> "GeoTable":
        """Select geometries and their attribute rows together.

        Args:
            positions: Positional indices; may repeat (fan-out) or omit rows.

        Returns:
            New GeoTable in the order given by ``positions``.
        """
        positions = np.asarray(positions, dtype=np.int64)
        geometry = tuple(self.geometry[i] for i in positions)
        attributes = None
        if self._attributes is not None:
            attributes = self._attributes.iloc[positions]
        return GeoTable(geometry=geometry, attributes=attributes, crs=self.crs)

    def with_columns(self, columns: Mapping[str, Any]) -> "GeoTable":
        """Return a new GeoTable with columns added or replaced.

        Args:
            columns: Mapping of column name to values of length ``len(self)``.
        """
        if self._attributes is None:
            attributes = pd.DataFrame(index=pd.RangeIndex(len(self)))
        else:
            attributes = self._attributes.copy()
        for name, values in columns.items():
            values = _as_column(values)
            if len(values) != len(self):
                raise DataValidationError(
                    f"Column '{name}' has {len(values)} values but there are "
                    f"{len(self)} geometries"
                )
            attributes[name] = values
        return GeoTable(geometry=self.geometry, attributes=attributes, crs=self.crs)

    def with_geometry(self, geometry: Sequence[BaseGeometry], crs: Any) -> "GeoTable":
        """Return a new GeoTable with replaced geometry and frame, same rows."""
        if len(geometry) != len(self):
            raise DataValidationError(
                f"Replacement geometry has {len(geometry)} items, expected {len(self)}"
            )
        return GeoTable(geometry=tuple(geometry), attributes=self._attributes, crs=crs)

    def with_crs(self, crs: Any) -> "GeoTable":
        """Assign a frame without transforming coordinates."""
        return GeoTable(geometry=self.geometry, attributes=self._attributes, crs=crs)

    def __repr__(self) -> str:
        """String representation."""
        kinds = sorted(set(self.geom_types))
        return (
            f"GeoTable(n={len(self)}, types={kinds}, "
            f"columns={self.columns}, crs={self.crs!r})"
        )


def _as_column(values: Any) -> np.ndarray:
    """Convert column values to a 1D array without splitting nested items."""
    if isinstance(values, pd.Series):
        return values.array
    if isinstance(values, np.ndarray):
        return values
    values = list(values)
    if any(isinstance(v, (tuple, list, dict, set)) for v in values):
        out = np.empty(len(values), dtype=object)
        for i, v in enumerate(values):
            out[i] = v
        return out
    return pd.Series(values, dtype=object if not values else None).to_numpy()
