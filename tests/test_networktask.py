"""Tests for NetworkTask and graph helpers."""

import networkx as nx
import pandas as pd
import pytest

from geolink.tasks.networktask import (
    NetworkTask,
    build_graph,
    detect_communities,
    remove_vertices,
    vertex_metrics,
)
from geolink.utils.errors import DataValidationError, KeyNotFoundError, ParameterError


@pytest.fixture
def two_triangles():
    """Two triangles A-B-C and D-E-F joined by the bridge C-D."""
    return pd.DataFrame(
        {
            "from": ["A", "B", "C", "D", "E", "F", "C"],
            "to": ["B", "C", "A", "E", "F", "D", "D"],
        }
    )


class TestBuildGraph:
    """Tests for build_graph."""

    def test_from_dataframe(self, two_triangles):
        """Test building an undirected graph from an edge table."""
        graph = build_graph(two_triangles)
        assert not graph.is_directed()
        assert graph.number_of_nodes() == 6
        assert graph.number_of_edges() == 7

    def test_directed(self):
        """Test directed graph construction."""
        graph = build_graph([("A", "B")], directed=True)
        assert graph.is_directed()
        assert graph.has_edge("A", "B")
        assert not graph.has_edge("B", "A")

    def test_repeated_edges_sum_weights(self):
        """Test that repeated edges are merged."""
        graph = build_graph([("A", "B", 2), ("B", "A", 3.5)])
        assert graph.number_of_edges() == 1
        assert graph["A"]["B"]["weight"] == 5.5

    def test_weight_column(self):
        """Test weights from a DataFrame column."""
        edges = pd.DataFrame({"src": ["A"], "dst": ["B"], "trips": [12]})
        graph = build_graph(edges, source="src", target="dst", weight="trips")
        assert graph["A"]["B"]["weight"] == 12.0

    def test_isolated_vertices(self):
        """Test that extra vertices are added without edges."""
        graph = build_graph([("A", "B")], vertices=["E"])
        assert sorted(graph.nodes) == ["A", "B", "E"]
        assert graph.degree("E") == 0

    def test_missing_column(self):
        """Test that missing edge columns raise KeyNotFoundError."""
        edges = pd.DataFrame({"from": ["A"], "dest": ["B"]})
        with pytest.raises(KeyNotFoundError, match="'to' not found in edge table"):
            build_graph(edges)

    def test_null_vertex_name(self):
        """Test that null names raise error."""
        edges = pd.DataFrame({"from": ["A", None], "to": ["B", "C"]})
        with pytest.raises(DataValidationError, match="must not be null"):
            build_graph(edges)

    def test_non_numeric_weight(self):
        """Test that weights must be numeric."""
        with pytest.raises(DataValidationError, match="numeric"):
            build_graph([("A", "B", "heavy")])

    def test_bad_edge_arity(self):
        """Test that edges must be pairs or triples."""
        with pytest.raises(DataValidationError, match="pairs"):
            build_graph([("A",)])


class TestDetectCommunities:
    """Tests for detect_communities."""

    @pytest.mark.parametrize("method", ["louvain", "greedy_modularity"])
    def test_two_triangles(self, two_triangles, method):
        """Test that each triangle forms one community."""
        graph = build_graph(two_triangles)
        assignment = detect_communities(graph, method=method, seed=1)
        assert assignment.communities() == {1: ["A", "B", "C"], 2: ["D", "E", "F"]}
        assert assignment.method == method
        assert assignment.modularity > 0.3

    def test_every_vertex_labelled(self, two_triangles):
        """Test that isolated vertices get their own community."""
        graph = build_graph(two_triangles, vertices=["Z"])
        assignment = detect_communities(graph, seed=1)
        assert len(assignment) == 7
        assert assignment.communities()[3] == ["Z"]

    def test_label_propagation_labels_every_vertex(self, two_triangles):
        """Test label propagation returns a full assignment."""
        graph = build_graph(two_triangles)
        assignment = detect_communities(graph, method="label_propagation", seed=3)
        assert set(assignment.membership) == set(graph.nodes)
        assert min(assignment.labels) == 1

    def test_seed_is_reproducible(self, two_triangles):
        """Test that the same seed gives the same labels."""
        graph = build_graph(two_triangles)
        first = detect_communities(graph, seed=7)
        second = detect_communities(graph, seed=7)
        assert first.membership == second.membership

    def test_edgeless_graph(self):
        """Test that an edgeless graph gives singleton communities."""
        graph = nx.Graph()
        graph.add_nodes_from(["b", "a"])
        assignment = detect_communities(graph)
        assert assignment.membership == {"a": 1, "b": 2}
        assert assignment.modularity is None

    def test_empty_graph(self):
        """Test that an empty graph gives an empty assignment."""
        assert len(detect_communities(nx.Graph())) == 0

    def test_unknown_method(self, two_triangles):
        """Test that unknown methods raise ParameterError."""
        with pytest.raises(ParameterError, match="method"):
            detect_communities(build_graph(two_triangles), method="infomap")


class TestRemoveVertices:
    """Tests for remove_vertices."""

    def test_names_survive_removal(self, two_triangles):
        """Test that remaining vertices keep their names and edges."""
        graph = build_graph(two_triangles)
        pruned = remove_vertices(graph, ["C"])
        assert sorted(pruned.nodes) == ["A", "B", "D", "E", "F"]
        assert pruned.has_edge("A", "B")
        assert pruned.has_edge("D", "E")
        assert "C" in graph

    def test_unknown_vertex(self, two_triangles):
        """Test that unknown names raise KeyNotFoundError."""
        graph = build_graph(two_triangles)
        with pytest.raises(KeyNotFoundError, match="Vertices not in graph"):
            remove_vertices(graph, ["Q"])

    def test_missing_ok(self, two_triangles):
        """Test skipping unknown names."""
        graph = build_graph(two_triangles)
        pruned = remove_vertices(graph, ["Q", "A"], missing_ok=True)
        assert "A" not in pruned
        assert pruned.number_of_nodes() == 5

    def test_communities_after_removal_keyed_by_name(self, two_triangles):
        """Test that labels after removal still refer to the right vertices."""
        graph = remove_vertices(build_graph(two_triangles), ["A"])
        assignment = detect_communities(graph, seed=1)
        assert "A" not in assignment
        assert set(assignment.membership) == {"B", "C", "D", "E", "F"}


class TestVertexMetrics:
    """Tests for vertex_metrics."""

    def test_metrics(self, two_triangles):
        """Test degree, strength and betweenness of the bridge vertices."""
        metrics = vertex_metrics(build_graph(two_triangles)).set_index("name")
        assert metrics.loc["C", "degree"] == 3
        assert metrics.loc["A", "degree"] == 2
        assert metrics.loc["C", "strength"] == 3.0
        assert metrics.loc["C", "betweenness"] > metrics.loc["A", "betweenness"]
        assert metrics.loc["A", "betweenness"] == 0.0


class TestNetworkTask:
    """Tests for NetworkTask."""

    def test_run(self, two_triangles):
        """Test building, excluding and clustering in one call."""
        task = NetworkTask(method="greedy_modularity")
        graph, assignment = task.run(two_triangles, exclude=["F"])
        assert "F" not in graph
        assert len(assignment) == 5

    def test_invalid_method(self):
        """Test that NetworkTask validates the method."""
        with pytest.raises(ParameterError):
            NetworkTask(method="walktrap")

    def test_from_config(self):
        """Test reading defaults from a configuration."""
        from geolink.config import ConfigManager

        config = ConfigManager({"network": {"method": "label_propagation", "seed": 3}})
        task = NetworkTask.from_config(config)
        assert task.method == "label_propagation"
        assert task.seed == 3
        assert task.resolution == 1.0
        assert task.weight == "weight"

    def test_from_config_weight(self):
        """Test that the edge weight attribute comes from the configuration."""
        from geolink.config import ConfigManager

        task = NetworkTask.from_config(ConfigManager({"network": {"weight": None}}))
        assert task.weight is None
        task = NetworkTask.from_config(ConfigManager({"network": {"weight": "trips"}}))
        assert task.weight == "trips"
