"""Join task: spatial, attribute and community joins from plain arguments.

Layer 3: Tasks - User intent translation.
"""

import logging
from typing import Any, Hashable, Mapping, Optional, Union

import pandas as pd

from geolink.objects.community import CommunityAssignment
from geolink.objects.geotable import GeoTable
from geolink.objects.results import SpatialJoinResult
from geolink.primitives.attribute_join import attribute_join, bind_communities
from geolink.primitives.spatial_join import (
    Aggregate,
    AllMatches,
    AreaWeightedAggregate,
    FirstMatch,
    JoinPolicy,
    join_by_location,
    spatial_join,
)
from geolink.utils.errors import raise_parameter_error

logger = logging.getLogger(__name__)

POLICY_NAMES = ("first_match", "all_matches", "aggregate", "area_weighted")


def make_policy(
    policy: Union[str, JoinPolicy] = "all_matches",
    column: Optional[str] = None,
    reducer: Optional[str] = None,
    on_empty: str = "absent",
) -> JoinPolicy:
    """Build a join policy from its name.

    Args:
        policy: 'first_match', 'all_matches', 'aggregate' or
            'area_weighted'. A policy object is returned unchanged.
        column: TARGET column to return or reduce.
        reducer: Reducer name for the aggregating policies (defaults:
            'count' for aggregate, 'mean' for area_weighted).
        on_empty: 'absent' or 'raise' for the aggregating policies.

    Example:
        >>> make_policy("aggregate", column="population", reducer="sum")
        Aggregate(reducer='sum', column='population', on_empty='absent')
    """
    if not isinstance(policy, str):
        return policy

    name = policy.lower()
    if name == "first_match":
        return FirstMatch(column=column)
    if name == "all_matches":
        return AllMatches()
    if name == "aggregate":
        return Aggregate(reducer=reducer or "count", column=column, on_empty=on_empty)
    if name == "area_weighted":
        return AreaWeightedAggregate(
            reducer=reducer or "mean", column=column, on_empty=on_empty
        )
    raise_parameter_error("policy", policy, valid_values=list(POLICY_NAMES))


class JoinTask:
    """Task for joining tables and join results onto geometries.

    Translates user intent ("count the wells in each county", "attach the
    census table", "color parishes by community") into primitive calls.
    """

    def __init__(self, n_jobs: Optional[int] = None, how: Optional[str] = None):
        """Initialize JoinTask.

        Args:
            n_jobs: Worker threads for spatial joins. None reads
                ``join.n_jobs`` from the configuration.
            how: Default attribute join type. None reads ``join.how``.
        """
        from geolink.config import get_config

        config = get_config()
        self.n_jobs = n_jobs if n_jobs is not None else config.get("join.n_jobs", 1)
        self.how = how or config.get("join.how", "left")

    def spatial(
        self,
        source: GeoTable,
        target: GeoTable,
        policy: Union[str, JoinPolicy] = "all_matches",
        column: Optional[str] = None,
        reducer: Optional[str] = None,
        on_empty: str = "absent",
    ) -> SpatialJoinResult:
        """Per-SOURCE join values; see ``spatial_join``."""
        return spatial_join(
            source,
            target,
            make_policy(policy, column=column, reducer=reducer, on_empty=on_empty),
            n_jobs=self.n_jobs,
        )

    def by_location(
        self,
        source: GeoTable,
        target: GeoTable,
        policy: Union[str, JoinPolicy] = "all_matches",
        column: Optional[str] = None,
        reducer: Optional[str] = None,
        name: Optional[str] = None,
        on_empty: str = "absent",
    ) -> GeoTable:
        """SOURCE with the join result added as columns."""
        return join_by_location(
            source,
            target,
            make_policy(policy, column=column, reducer=reducer, on_empty=on_empty),
            name=name,
            n_jobs=self.n_jobs,
        )

    def attributes(
        self,
        collection: GeoTable,
        table: pd.DataFrame,
        left_key: str,
        right_key: Optional[str] = None,
        how: Optional[str] = None,
        fan_out: bool = False,
    ) -> GeoTable:
        """Key-equality join; see ``attribute_join``."""
        return attribute_join(
            collection,
            table,
            left_key,
            right_key=right_key,
            how=how or self.how,
            fan_out=fan_out,
        )

    def communities(
        self,
        collection: GeoTable,
        assignment: Union[CommunityAssignment, Mapping[Hashable, Any]],
        name_key: str,
        column: str = "community",
    ) -> GeoTable:
        """Bind community labels; see ``bind_communities``."""
        return bind_communities(collection, assignment, name_key, column=column)
