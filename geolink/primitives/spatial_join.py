"""Spatial join: per-SOURCE lookup of intersecting TARGET items.

For every SOURCE geometry the engine finds the TARGET geometries whose point
sets share at least one point with it (touching boundaries included), then
reduces that set according to a policy:

- ``FirstMatch``: the lowest-index match (its row, a column value, or the
  index itself).
- ``AllMatches``: every matching TARGET index, ascending.
- ``Aggregate``: a reducer applied to a TARGET column over the matches.
- ``AreaWeightedAggregate``: as ``Aggregate``, with each match weighted by
  the fraction of the SOURCE polygon's area it overlaps. Boundary touches
  overlap no area and so carry no weight.

Each SOURCE item is computed independently of every other, so the work can
be split across workers without changing the result.
"""

import logging
from dataclasses import dataclass
from multiprocessing.pool import ThreadPool
from typing import Any, Callable, Optional, Union

import numpy as np
from pandas.api.types import is_extension_array_dtype, is_numeric_dtype
from shapely import STRtree

from geolink.objects.geotable import GeoTable
from geolink.objects.results import SpatialJoinResult
from geolink.primitives.crs import check_same_crs
from geolink.primitives.reducers import Reducer, get_reducer
from geolink.utils.errors import (
    DataValidationError,
    EmptyReductionError,
    ParameterError,
    raise_key_not_found,
    raise_parameter_error,
)

logger = logging.getLogger(__name__)

_ON_EMPTY = ("absent", "raise")


@dataclass(frozen=True)
class FirstMatch:
    """Lowest-index intersecting TARGET item.

    Attributes:
        column: If set, return this TARGET column's value instead of the
            whole attribute row.
    """

    column: Optional[str] = None

    @property
    def name(self) -> str:
        return "first_match"


@dataclass(frozen=True)
class AllMatches:
    """All intersecting TARGET indices in ascending order."""

    @property
    def name(self) -> str:
        return "all_matches"


@dataclass(frozen=True)
class Aggregate:
    """Reduce a TARGET column over all intersecting TARGET rows.

    Attributes:
        reducer: Reducer name ('count', 'sum', 'mean', ...), Reducer, or
            callable ``f(values)``.
        column: TARGET column to reduce. Optional for 'count'.
        on_empty: 'absent' returns None for SOURCE items without matches
            (unless the reducer defines an empty result, like count -> 0);
            'raise' raises EmptyReductionError instead.
    """

    reducer: Union[str, Reducer, Callable] = "count"
    column: Optional[str] = None
    on_empty: str = "absent"

    @property
    def name(self) -> str:
        return f"aggregate_{get_reducer(self.reducer).name}"


@dataclass(frozen=True)
class AreaWeightedAggregate:
    """Reduce a TARGET column with overlap-area weights (polygon targets).

    Attributes:
        reducer: 'sum' (sum of w * v), 'mean' (weighted mean), 'count'
            (sum of weights, i.e. covered fraction), a Reducer with a
            weighted form, or a callable ``f(values, weights)``.
        column: TARGET column to reduce. Optional for 'count'.
        on_empty: As for ``Aggregate``.
    """

    reducer: Union[str, Reducer, Callable] = "mean"
    column: Optional[str] = None
    on_empty: str = "absent"

    @property
    def name(self) -> str:
        return f"area_weighted_{get_reducer(self.reducer, weighted=True).name}"


JoinPolicy = Union[FirstMatch, AllMatches, Aggregate, AreaWeightedAggregate]


def spatial_join(
    source: GeoTable,
    target: GeoTable,
    policy: Optional[JoinPolicy] = None,
    n_jobs: int = 1,
) -> SpatialJoinResult:
    """Join TARGET information onto each SOURCE item by intersection.

    Args:
        source: Items to look up (points, lines or polygons).
        target: Items to look up against.
        policy: Selection/aggregation policy, default ``AllMatches()``.
        n_jobs: Number of worker threads. Results are identical for any
            value; 1 runs sequentially.

    Returns:
        SpatialJoinResult with exactly one value per SOURCE index.

    Raises:
        FrameMismatchError: If source and target frames differ.
        KeyNotFoundError: If a policy column is missing from target.
        DataValidationError: If an area-weighted join gets non-polygon targets.
        EmptyReductionError: If ``on_empty='raise'`` and an item has no match.

    Example:
        >>> from shapely.geometry import Point, box
        >>> from geolink.objects import GeoTable
        >>> pts = GeoTable((Point(0, 0), Point(5, 5), Point(10, 10)), crs=3857)
        >>> zones = GeoTable.from_records(
        ...     [box(-1, -1, 1, 1), box(4, 4, 6, 6)], [{"v": 10}, {"v": 20}], crs=3857
        ... )
        >>> spatial_join(pts, zones, FirstMatch(column="v")).values
        (10, 20, None)
    """
    if policy is None:
        policy = AllMatches()
    _validate_inputs(source, target, policy)

    n = len(source)
    if n_jobs is None or n_jobs < 1:
        raise_parameter_error("n_jobs", n_jobs, constraint="n_jobs >= 1")

    tree = STRtree(target.geometry_array())
    evaluate = _make_evaluator(source, target, policy, tree)

    if n_jobs == 1 or n < 2:
        values = evaluate(np.arange(n))
    else:
        chunks = [c for c in np.array_split(np.arange(n), n_jobs * 4) if len(c)]
        logger.debug(f"spatial_join: {n} source items in {len(chunks)} chunks")
        with ThreadPool(processes=n_jobs) as pool:
            parts = pool.map(evaluate, chunks)
        values = [v for part in parts for v in part]

    result = SpatialJoinResult(values=tuple(values), policy=policy.name, source_count=n)
    logger.info(
        f"Spatial join ({policy.name}): {n} source items, "
        f"{len(target)} target items, {result.n_absent} without a value"
    )
    return result


def overlap_weights(source: GeoTable, target: GeoTable) -> list[dict[int, float]]:
    """Fraction of each SOURCE polygon's area covered by each TARGET polygon.

    Only TARGET polygons overlapping with positive area are listed. Per
    SOURCE item the weights sum to at most 1, and to 1 when the TARGET
    polygons partition it. Overlapping TARGET polygons would double-count
    area; their weights are scaled down so the total stays at 1. SOURCE
    items without area (points, lines) get no weights.

    Returns:
        One dict (TARGET index -> weight) per SOURCE index.

    Raises:
        FrameMismatchError: If source and target frames differ.
        DataValidationError: If the target collection is not polygonal.
    """
    _validate_inputs(source, target, AreaWeightedAggregate(reducer="count"))
    tree = STRtree(target.geometry_array())
    return [
        _weights_for(source.geometry[i], _matches(tree, source.geometry[i]), target)
        for i in range(len(source))
    ]


def join_by_location(
    source: GeoTable,
    target: GeoTable,
    policy: Optional[JoinPolicy] = None,
    name: Optional[str] = None,
    n_jobs: int = 1,
) -> GeoTable:
    """Attach spatial join results to SOURCE as new attribute columns.

    SOURCE geometry, order and existing rows are kept; the join result is
    added as one column (named ``name``). A ``FirstMatch`` without a column
    on an attributed TARGET adds every TARGET column instead, with None for
    SOURCE items that matched nothing.

    Returns:
        New GeoTable aligned with ``source``.
    """
    if policy is None:
        policy = AllMatches()
    result = spatial_join(source, target, policy, n_jobs=n_jobs)

    if isinstance(policy, FirstMatch) and policy.column is None and target.columns:
        columns = {
            col: [row[col] if row is not None else None for row in result.values]
            for col in target.columns
        }
        return source.with_columns(columns)

    return source.with_columns({name or _default_column_name(policy): result.values})


def _default_column_name(policy: JoinPolicy) -> str:
    if isinstance(policy, FirstMatch):
        return policy.column or "first_match"
    if isinstance(policy, AllMatches):
        return "matches"
    weighted = isinstance(policy, AreaWeightedAggregate)
    reducer = get_reducer(policy.reducer, weighted=weighted)
    prefix = f"{policy.column}_" if policy.column else ""
    return f"{prefix}{'aw_' if weighted else ''}{reducer.name}"


def _validate_inputs(source: GeoTable, target: GeoTable, policy: JoinPolicy) -> None:
    for label, table in (("source", source), ("target", target)):
        if not isinstance(table, GeoTable):
            raise TypeError(f"{label} must be a GeoTable, got {type(table).__name__}")

    check_same_crs(source, target)

    if isinstance(policy, FirstMatch):
        if policy.column is not None and policy.column not in target.columns:
            raise_key_not_found(policy.column, target.columns, where="target")
    elif isinstance(policy, (Aggregate, AreaWeightedAggregate)):
        weighted = isinstance(policy, AreaWeightedAggregate)
        reducer = get_reducer(policy.reducer, weighted=weighted)
        if policy.column is None:
            if reducer.name != "count":
                raise ParameterError(
                    f"Reducer '{reducer.name}' needs a target column to reduce",
                )
        elif policy.column not in target.columns:
            raise_key_not_found(policy.column, target.columns, where="target")
        if policy.on_empty not in _ON_EMPTY:
            raise_parameter_error("on_empty", policy.on_empty, valid_values=list(_ON_EMPTY))
        if weighted and not target.is_polygonal:
            raise DataValidationError(
                "Area-weighted aggregation requires polygon target geometries "
                f"({_describe_types(source, target)})"
            )
        if weighted and not source.is_polygonal:
            logger.warning(
                "Area-weighted aggregation over non-polygon source items: items "
                "without area carry no weight and get no value"
            )
    elif not isinstance(policy, AllMatches):
        raise ParameterError(f"Unknown join policy: {policy!r}")


def _describe_types(source: GeoTable, target: GeoTable) -> str:
    return (
        f"source types: {sorted(set(source.geom_types))}, "
        f"target types: {sorted(set(target.geom_types))}"
    )


def _matches(tree: STRtree, geom) -> np.ndarray:
    """Ascending indices of tree items intersecting ``geom``."""
    if geom.is_empty:
        return np.empty(0, dtype=np.int64)
    return np.unique(tree.query(geom, predicate="intersects"))


def _weights_for(geom, matches: np.ndarray, target: GeoTable) -> dict[int, float]:
    area = geom.area
    if area <= 0:
        return {}
    weights = {}
    for j in matches:
        overlap = geom.intersection(target.geometry[j]).area
        if overlap > 0:
            weights[int(j)] = overlap / area
    total = sum(weights.values())
    if total > 1.0:
        if total > 1.0 + 1e-9:
            logger.warning(
                f"Target polygons overlap each other inside a source polygon "
                f"(covered fraction {total:.4f}); rescaling weights to sum to 1"
            )
        weights = {j: w / total for j, w in weights.items()}
    return weights


def _make_evaluator(
    source: GeoTable, target: GeoTable, policy: JoinPolicy, tree: STRtree
) -> Callable[[np.ndarray], list]:
    """Build the per-chunk function computing join values for SOURCE indices."""
    if isinstance(policy, AllMatches):

        def evaluate(indices: np.ndarray) -> list:
            return [
                tuple(int(j) for j in _matches(tree, source.geometry[i]))
                for i in indices
            ]

        return evaluate

    if isinstance(policy, FirstMatch):
        column_values = (
            target.column(policy.column).tolist() if policy.column is not None else None
        )

        def evaluate(indices: np.ndarray) -> list:
            out = []
            for i in indices:
                matches = _matches(tree, source.geometry[i])
                if len(matches) == 0:
                    out.append(None)
                    continue
                first = int(matches[0])
                if column_values is not None:
                    out.append(column_values[first])
                elif target.has_attributes:
                    out.append(target.row(first))
                else:
                    out.append(first)
            return out

        return evaluate

    weighted = isinstance(policy, AreaWeightedAggregate)
    reducer = get_reducer(policy.reducer, weighted=weighted)
    if policy.column is not None:
        column_values = _reducible(target.column(policy.column))
    else:
        column_values = np.ones(len(target))

    def reduce_one(i: int) -> Any:
        matches = _matches(tree, source.geometry[i])
        weights = None
        if weighted:
            w = _weights_for(source.geometry[i], matches, target)
            matches = np.fromiter(w.keys(), dtype=np.int64, count=len(w))
            weights = np.fromiter(w.values(), dtype=np.float64, count=len(w))
        if len(matches) == 0:
            if reducer.defines_empty:
                return reducer.empty
            if policy.on_empty == "raise":
                raise EmptyReductionError(
                    f"Source item {i} has no matching target items and reducer "
                    f"'{reducer.name}' is undefined on an empty set",
                    details={"source_index": int(i)},
                )
            return None
        return reducer(column_values[matches], weights)

    def evaluate(indices: np.ndarray) -> list:
        return [reduce_one(int(i)) for i in indices]

    return evaluate


def _reducible(values) -> np.ndarray:
    # nullable integer columns (from left joins) reduce as float with NaN
    if is_extension_array_dtype(values.dtype) and is_numeric_dtype(values.dtype):
        return values.to_numpy(dtype=float, na_value=np.nan)
    return values.to_numpy()
