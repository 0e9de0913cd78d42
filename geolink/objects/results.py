"""Immutable results of spatial joins and zonal extraction."""

from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
import pandas as pd

from geolink.utils.errors import DataValidationError


@dataclass(frozen=True)
class SpatialJoinResult:
    """One join value per SOURCE item.

    Attributes:
        values: Value for each SOURCE index, in SOURCE order. ``None`` marks
            an absent value; list-style joins use an empty tuple.
        policy: Name of the policy that produced the values.
        source_count: Number of SOURCE items.
    """

    values: tuple
    policy: str
    source_count: int

    def __post_init__(self) -> None:
        """Validate SpatialJoinResult parameters."""
        object.__setattr__(self, "values", tuple(self.values))
        if len(self.values) != self.source_count:
            raise DataValidationError(
                f"Join produced {len(self.values)} values for "
                f"{self.source_count} source items"
            )

    def __len__(self) -> int:
        return self.source_count

    def __getitem__(self, index: int) -> Any:
        return self.values[index]

    def __iter__(self):
        return iter(self.values)

    @property
    def n_absent(self) -> int:
        """Number of SOURCE items with no value."""
        return sum(
            1 for v in self.values if v is None or (isinstance(v, tuple) and not v)
        )

    def to_series(self, name: Optional[str] = None) -> pd.Series:
        """Values as an object Series indexed by SOURCE position."""
        out = np.empty(self.source_count, dtype=object)
        for i, v in enumerate(self.values):
            out[i] = v
        return pd.Series(out, name=name or self.policy)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"SpatialJoinResult(policy={self.policy}, n={self.source_count}, "
            f"absent={self.n_absent})"
        )


@dataclass(frozen=True, eq=False)
class ZonalExtractionResult:
    """Raster cell values per polygon.

    Attributes:
        values: One 1D array per polygon index, cells in row-major order.
        mode: Cell inclusion rule ('center', 'contained' or 'overlap').
    """

    values: tuple
    mode: str = "center"

    def __post_init__(self) -> None:
        """Freeze the per-polygon arrays."""
        frozen = []
        for v in self.values:
            arr = np.array(v, copy=True).ravel()
            arr.setflags(write=False)
            frozen.append(arr)
        object.__setattr__(self, "values", tuple(frozen))

    def __len__(self) -> int:
        return len(self.values)

    def __getitem__(self, index: int) -> np.ndarray:
        return self.values[index]

    def __iter__(self):
        return iter(self.values)

    @property
    def counts(self) -> np.ndarray:
        """Number of cells per polygon."""
        return np.array([len(v) for v in self.values], dtype=np.int64)

    @property
    def empty_zones(self) -> list[int]:
        """Indices of polygons with no cells."""
        return [i for i, v in enumerate(self.values) if len(v) == 0]

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"ZonalExtractionResult(n={len(self)}, mode={self.mode}, "
            f"cells={int(self.counts.sum())}, empty={len(self.empty_zones)})"
        )
