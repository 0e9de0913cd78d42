"""Network construction and community detection.

Layer 3: Tasks - User intent translation.

Graphs are networkx graphs keyed by vertex name. Nothing here hands out a
positional vertex index: removing a vertex never renames or renumbers the
others, and community assignments are keyed by name.
"""

import logging
from typing import Any, Hashable, Iterable, Optional, Union

import networkx as nx
import pandas as pd

from geolink.objects.community import CommunityAssignment
from geolink.utils.errors import (
    DataValidationError,
    KeyNotFoundError,
    raise_key_not_found,
    raise_parameter_error,
)

logger = logging.getLogger(__name__)

COMMUNITY_METHODS = ("louvain", "greedy_modularity", "label_propagation")


def build_graph(
    edges: Union[pd.DataFrame, Iterable[tuple]],
    directed: bool = False,
    source: str = "from",
    target: str = "to",
    weight: Optional[str] = None,
    vertices: Optional[Iterable[Hashable]] = None,
) -> nx.Graph:
    """Build a graph from an edge list.

    Args:
        edges: DataFrame with ``source``/``target`` (and optionally
            ``weight``) columns, or an iterable of ``(u, v)`` pairs or
            ``(u, v, w)`` weighted triples.
        directed: Build a DiGraph instead of an undirected Graph.
        source: Column holding edge start names (DataFrame input).
        target: Column holding edge end names (DataFrame input).
        weight: Column holding edge weights (DataFrame input). Weights are
            stored under the edge attribute 'weight'.
        vertices: Extra vertex names, added even if they have no edges.

    Returns:
        networkx Graph or DiGraph. Repeated edges are merged and their
        weights summed.

    Raises:
        KeyNotFoundError: If a named column is missing.
        DataValidationError: If a vertex name is null or a weight is not
            numeric.

    Example:
        >>> edges = pd.DataFrame({"from": ["A", "B"], "to": ["B", "C"]})
        >>> g = build_graph(edges, vertices=["E"])
        >>> sorted(g.nodes)
        ['A', 'B', 'C', 'E']
    """
    if isinstance(edges, pd.DataFrame):
        for col in (source, target) + ((weight,) if weight else ()):
            if col not in edges.columns:
                raise_key_not_found(col, list(edges.columns), where="edge table")
        columns = [edges[source], edges[target]]
        if weight:
            columns.append(edges[weight])
        triples = list(zip(*columns))
    else:
        triples = [tuple(edge) for edge in edges]

    graph = nx.DiGraph() if directed else nx.Graph()
    for name in vertices or ():
        _check_name(name)
        graph.add_node(name)

    n_merged = 0
    for edge in triples:
        if len(edge) not in (2, 3):
            raise DataValidationError(
                f"Edges must be (u, v) pairs or (u, v, w) triples, got {edge!r}"
            )
        u, v = edge[0], edge[1]
        _check_name(u)
        _check_name(v)
        w = _edge_weight(edge[2]) if len(edge) == 3 else 1.0
        if graph.has_edge(u, v):
            graph[u][v]["weight"] += w
            n_merged += 1
        else:
            graph.add_edge(u, v, weight=w)

    if n_merged:
        logger.debug(f"Merged {n_merged} repeated edges by summing their weights")
    logger.info(
        f"Built {'directed' if directed else 'undirected'} graph: "
        f"{graph.number_of_nodes()} vertices, {graph.number_of_edges()} edges"
    )
    return graph


def detect_communities(
    graph: nx.Graph,
    method: str = "louvain",
    weight: Optional[str] = "weight",
    resolution: float = 1.0,
    seed: Optional[int] = None,
) -> CommunityAssignment:
    """Partition the vertices of ``graph`` into communities.

    Labels are integers starting at 1, numbered by community size (largest
    first) and then by the smallest member name, so the same partition
    always gets the same labels. Every vertex gets a label; isolated
    vertices form communities of their own.

    Args:
        graph: networkx graph.
        method: 'louvain', 'greedy_modularity' or 'label_propagation'.
        weight: Edge attribute used as weight, or None for unweighted.
        resolution: Modularity resolution (louvain and greedy_modularity).
        seed: Random seed (louvain and label_propagation).

    Returns:
        CommunityAssignment with the partition's modularity.
    """
    if method not in COMMUNITY_METHODS:
        raise_parameter_error("method", method, valid_values=list(COMMUNITY_METHODS))

    if graph.number_of_nodes() == 0:
        return CommunityAssignment(membership={}, method=method)

    if graph.number_of_edges() == 0:
        communities = [{name} for name in graph.nodes]
    elif method == "louvain":
        communities = nx.community.louvain_communities(
            graph, weight=weight, resolution=resolution, seed=seed
        )
    elif method == "greedy_modularity":
        communities = nx.community.greedy_modularity_communities(
            graph, weight=weight, resolution=resolution
        )
    else:
        communities = nx.community.asyn_lpa_communities(graph, weight=weight, seed=seed)

    ordered = sorted(
        (sorted(c, key=str) for c in communities),
        key=lambda members: (-len(members), str(members[0])),
    )
    membership = {
        name: label for label, members in enumerate(ordered, start=1) for name in members
    }

    modularity = None
    if graph.number_of_edges() > 0:
        modularity = nx.community.modularity(
            graph, ordered, weight=weight, resolution=resolution
        )

    assignment = CommunityAssignment(
        membership=membership, method=method, modularity=modularity
    )
    logger.info(
        f"Detected {len(ordered)} communities with {method} "
        f"over {len(membership)} vertices"
        + (f" (modularity={modularity:.3f})" if modularity is not None else "")
    )
    return assignment


def remove_vertices(
    graph: nx.Graph, names: Iterable[Hashable], missing_ok: bool = False
) -> nx.Graph:
    """Copy of ``graph`` without the named vertices and their edges.

    The remaining vertices keep their names and attributes.

    Raises:
        KeyNotFoundError: If a name is not a vertex and ``missing_ok`` is
            False.
    """
    names = list(names)
    missing = [name for name in names if name not in graph]
    if missing and not missing_ok:
        raise KeyNotFoundError(
            f"Vertices not in graph: {missing[:10]}",
            suggestion="Pass missing_ok=True to skip names that are not vertices.",
            details={"missing": missing},
        )

    pruned = graph.copy()
    pruned.remove_nodes_from(name for name in names if name in graph)
    logger.debug(
        f"Removed {graph.number_of_nodes() - pruned.number_of_nodes()} vertices; "
        f"{pruned.number_of_nodes()} remain"
    )
    return pruned


def vertex_metrics(graph: nx.Graph, weight: Optional[str] = "weight") -> pd.DataFrame:
    """Per-vertex degree, weighted degree and betweenness centrality.

    Returns:
        DataFrame with columns name, degree, strength, betweenness, one row
        per vertex in graph order.
    """
    names = list(graph.nodes)
    degree = dict(graph.degree())
    strength = dict(graph.degree(weight=weight))
    betweenness = nx.betweenness_centrality(graph) if names else {}
    return pd.DataFrame(
        {
            "name": names,
            "degree": [degree[n] for n in names],
            "strength": [float(strength[n]) for n in names],
            "betweenness": [betweenness[n] for n in names],
        }
    )


def _check_name(name: Any) -> None:
    if name is None or (isinstance(name, float) and name != name):
        raise DataValidationError("Vertex names must not be null")


def _edge_weight(value: Any) -> float:
    try:
        w = float(value)
    except (TypeError, ValueError) as e:
        raise DataValidationError(f"Edge weight must be numeric, got {value!r}") from e
    if w != w:
        raise DataValidationError("Edge weight must not be NaN")
    return w


class NetworkTask:
    """Task for building graphs and mapping their communities.

    Translates user intent for network analysis into graph construction and
    community detection calls with a fixed method and seed.
    """

    def __init__(
        self,
        method: str = "louvain",
        seed: Optional[int] = 42,
        resolution: float = 1.0,
        weight: Optional[str] = "weight",
    ):
        """Initialize NetworkTask.

        Args:
            method: Community detection method, default 'louvain'.
            seed: Random seed for reproducible partitions, default 42.
            resolution: Modularity resolution, default 1.0.
            weight: Edge attribute used as weight, default 'weight'.
        """
        if method not in COMMUNITY_METHODS:
            raise_parameter_error("method", method, valid_values=list(COMMUNITY_METHODS))
        self.method = method
        self.seed = seed
        self.resolution = resolution
        self.weight = weight

    @classmethod
    def from_config(cls, config=None) -> "NetworkTask":
        """NetworkTask using the ``network.*`` configuration keys."""
        from geolink.config import get_config

        config = config or get_config()
        return cls(
            method=config.get("network.method", "louvain"),
            seed=config.get("network.seed", 42),
            resolution=config.get("network.resolution", 1.0),
            weight=config.get("network.weight", "weight"),
        )

    def build(
        self,
        edges: Union[pd.DataFrame, Iterable[tuple]],
        directed: bool = False,
        **kwargs: Any,
    ) -> nx.Graph:
        """Build a graph; see ``build_graph``."""
        return build_graph(edges, directed=directed, **kwargs)

    def communities(self, graph: nx.Graph) -> CommunityAssignment:
        """Detect communities with the configured method and seed."""
        return detect_communities(
            graph,
            method=self.method,
            weight=self.weight,
            resolution=self.resolution,
            seed=self.seed,
        )

    def run(
        self,
        edges: Union[pd.DataFrame, Iterable[tuple]],
        directed: bool = False,
        exclude: Optional[Iterable[Hashable]] = None,
        **kwargs: Any,
    ) -> tuple[nx.Graph, CommunityAssignment]:
        """Build a graph, optionally drop vertices, and detect communities.

        Args:
            edges: Edge list, as for ``build_graph``.
            directed: Build a directed graph.
            exclude: Vertex names to remove before clustering.
            **kwargs: Passed to ``build_graph``.

        Returns:
            Tuple of (graph, assignment).
        """
        graph = self.build(edges, directed=directed, **kwargs)
        if exclude:
            graph = remove_vertices(graph, exclude, missing_ok=True)
        return graph, self.communities(graph)
