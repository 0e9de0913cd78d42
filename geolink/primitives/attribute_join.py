"""Attribute joins: merge a keyed table into a GeoTable.

Joins always go through the GeoTable, so attribute rows move with their
geometries. No function here merges two bare tables and re-attaches
geometry by position afterwards.
"""

import logging
from typing import Any, Hashable, Mapping, Optional, Union

import pandas as pd
from pandas.api.types import is_integer_dtype, is_numeric_dtype

from geolink.objects.community import CommunityAssignment
from geolink.objects.geotable import GeoTable
from geolink.utils.errors import (
    DataValidationError,
    DuplicateKeyError,
    raise_key_not_found,
    raise_parameter_error,
)

logger = logging.getLogger(__name__)

_HOW = ("left", "inner")
_POS = "__geolink_position__"
_KEY = "__geolink_key__"


def attribute_join(
    collection: GeoTable,
    table: pd.DataFrame,
    left_key: str,
    right_key: Optional[str] = None,
    how: str = "left",
    fan_out: bool = False,
) -> GeoTable:
    """Join ``table`` onto ``collection`` by key equality.

    Args:
        collection: GeoTable whose attribute table holds ``left_key``.
        table: Plain table holding ``right_key``.
        left_key: Key column in the collection.
        right_key: Key column in the table (defaults to ``left_key``).
        how: 'left' keeps every geometry in its original order, filling
            unmatched rows with nulls; 'inner' drops unmatched geometries.
        fan_out: Allow duplicate ``right_key`` values. Each geometry is then
            repeated once per matching table row, the copies kept together
            at the geometry's original position.

    Returns:
        New GeoTable. Table columns replace same-named collection columns,
        so joining the same table twice gives the same result as once. The
        right key column is not added as a second copy of the left key.

    Raises:
        TypeError: If ``collection`` is not a GeoTable.
        KeyNotFoundError: If either key column is missing.
        DuplicateKeyError: If ``right_key`` repeats and ``fan_out`` is False.
        DataValidationError: If the key columns have incompatible types.
        ParameterError: If ``how`` is not 'left' or 'inner'.

    Example:
        >>> counties = read_vector("data/counties.shp")
        >>> income = read_table("data/income.csv")
        >>> joined = attribute_join(counties, income, "FIPS", "fips_code")
    """
    if not isinstance(collection, GeoTable):
        raise TypeError(
            "attribute_join joins a table into a GeoTable; got "
            f"{type(collection).__name__}. Merging two bare tables would "
            "separate attribute rows from their geometries."
        )
    if not isinstance(table, pd.DataFrame):
        raise TypeError(f"table must be a pandas DataFrame, got {type(table).__name__}")
    if how not in _HOW:
        raise_parameter_error("how", how, valid_values=list(_HOW))

    right_key = right_key or left_key
    if left_key not in collection.columns:
        raise_key_not_found(left_key, collection.columns, where="collection")
    if right_key not in table.columns:
        raise_key_not_found(right_key, list(table.columns), where="table")

    left_keys = collection.column(left_key)
    right_keys = table[right_key]
    _check_key_types(left_keys, right_keys, left_key, right_key)

    duplicated = right_keys[right_keys.notna() & right_keys.duplicated(keep=False)]
    if len(duplicated) and not fan_out:
        examples = list(pd.unique(duplicated))[:5]
        raise DuplicateKeyError(
            f"Key '{right_key}' is not unique in the table "
            f"({len(duplicated)} rows share {duplicated.nunique()} keys, e.g. {examples})",
            suggestion="Deduplicate the table, or pass fan_out=True to repeat "
            "each geometry once per matching row.",
            details={"duplicated_keys": examples},
        )

    new_columns = [c for c in table.columns if c not in (right_key, left_key)]
    left = pd.DataFrame({_POS: range(len(collection)), _KEY: left_keys.to_numpy()})
    right = table[[right_key] + new_columns].rename(columns={right_key: _KEY})
    right = right[right[_KEY].notna()]

    merged = left.merge(right, on=_KEY, how=how, sort=False, indicator=True)
    merged = merged.sort_values(_POS, kind="stable")

    matched = int(merged.loc[merged["_merge"] == "both", _POS].nunique())
    if matched == 0 and len(collection) and len(table):
        logger.warning(
            f"No '{left_key}' value matched any '{right_key}' value; "
            "check that both keys hold the same kind of identifier"
        )

    result = collection.take(merged[_POS].to_numpy())
    result = result.with_columns(
        {c: _restore_integer(merged[c], table[c]) for c in new_columns}
    )
    logger.info(
        f"Attribute join ({how}) on {left_key}={right_key}: "
        f"{matched}/{len(collection)} geometries matched, {len(result)} rows out"
    )
    return result


def bind_communities(
    collection: GeoTable,
    assignment: Union[CommunityAssignment, Mapping[Hashable, Any]],
    name_key: str,
    column: str = "community",
) -> GeoTable:
    """Attach graph community labels to geometries keyed by vertex name.

    Every geometry is kept. Geometries whose key is not a vertex of the
    graph get a null community; not every spatial entity has to take part
    in the network. Binding the same assignment twice gives the same result
    as binding it once.

    Args:
        collection: GeoTable with a column of vertex names.
        assignment: CommunityAssignment, or a plain name -> label mapping.
        name_key: Column of ``collection`` holding vertex names.
        column: Name of the community column to add.

    Returns:
        New GeoTable with ``column`` added.
    """
    if not isinstance(assignment, CommunityAssignment):
        assignment = CommunityAssignment(membership=dict(assignment))
    table = assignment.to_frame(name_col=name_key, community_col=column)
    return attribute_join(collection, table, left_key=name_key, how="left")


def _check_key_types(
    left_keys: pd.Series, right_keys: pd.Series, left_key: str, right_key: str
) -> None:
    left_numeric = is_numeric_dtype(left_keys.dropna())
    right_numeric = is_numeric_dtype(right_keys.dropna())
    if len(left_keys.dropna()) and len(right_keys.dropna()) and left_numeric != right_numeric:
        raise DataValidationError(
            f"Key types differ: '{left_key}' is {left_keys.dtype}, "
            f"'{right_key}' is {right_keys.dtype}",
            suggestion="Cast one key to match the other, e.g. "
            f"table['{right_key}'].astype(str).",
        )


def _restore_integer(merged: pd.Series, original: pd.Series) -> pd.Series:
    """Keep integer columns integer when unmatched rows bring in nulls."""
    merged = merged.reset_index(drop=True)
    if is_integer_dtype(original.dtype) and not is_integer_dtype(merged.dtype):
        return merged.astype("Int64")
    return merged
