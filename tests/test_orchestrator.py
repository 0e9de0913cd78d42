"""Tests for the workflow orchestrator."""

import json
import textwrap

import pandas as pd
import pytest
from shapely.geometry import Point, box

from geolink.config import ConfigManager
from geolink.objects import CommunityAssignment, GeoTable
from geolink.workflows.orchestrator import (
    STEP_REGISTRY,
    WorkflowOrchestrator,
    load_workflow,
    register_step,
    run_workflow,
)

EDGES_CSV = "from,to\nA,B\nB,C\nC,A\nD,E\nE,F\nF,D\nC,D\n"


def _write(path, text):
    path.write_text(textwrap.dedent(text))
    return path


class TestWorkflowFiles:
    """Tests for loading workflow files."""

    def test_yaml_and_json(self, tmp_path):
        """Test that both formats load to the same definition."""
        definition = {"steps": [{"name": "a", "type": "load_csv_from_string"}]}
        (tmp_path / "w.json").write_text(json.dumps(definition))
        (tmp_path / "w.yaml").write_text("steps:\n  - name: a\n    type: load_csv_from_string\n")
        assert load_workflow(tmp_path / "w.json") == load_workflow(tmp_path / "w.yaml")

    def test_missing_file(self, tmp_path):
        """Test that a missing workflow raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_workflow(tmp_path / "missing.yaml")

    def test_unsupported_format(self, tmp_path):
        """Test that unknown suffixes raise ValueError."""
        path = tmp_path / "w.txt"
        path.write_text("steps: []")
        with pytest.raises(ValueError, match="Unsupported workflow file format"):
            load_workflow(path)


class TestWorkflowExecution:
    """Tests for executing workflows."""

    def test_network_workflow(self, tmp_path):
        """Test edges -> graph -> communities with step references."""
        path = _write(
            tmp_path / "network.yaml",
            f"""
            settings:
              network:
                method: greedy_modularity
            steps:
              - name: communities
                type: detect_communities
                depends_on: [graph]
                params:
                  graph: "${{graph}}"
              - name: graph
                type: build_graph
                depends_on: edges
                params:
                  edges: "${{edges}}"
              - name: edges
                type: load_csv_from_string
                params:
                  text: "{EDGES_CSV.encode('unicode_escape').decode()}"
            """,
        )
        results = run_workflow(path)
        assert list(results) == ["edges", "graph", "communities"]
        assignment = results["communities"]
        assert isinstance(assignment, CommunityAssignment)
        assert assignment.method == "greedy_modularity"
        assert assignment.communities() == {1: ["A", "B", "C"], 2: ["D", "E", "F"]}

    def test_config_reference(self):
        """Test ${config.key} parameters."""
        orchestrator = WorkflowOrchestrator(
            config=ConfigManager({"network": {"seed": 11}})
        )
        assert orchestrator._resolve_parameter("${config.network.seed}", "s") == 11
        assert orchestrator._resolve_parameter("plain", "s") == "plain"

    def test_settings_leave_caller_config_unchanged(self):
        """Test that inline settings apply to the run but not the passed config."""
        config = ConfigManager()
        orchestrator = WorkflowOrchestrator(config=config)
        orchestrator.execute(
            {
                "settings": {"network": {"seed": 5}},
                "steps": [{"name": "a", "type": "load_csv_from_string",
                           "params": {"text": "x\n1\n"}}],
            }
        )
        assert orchestrator.config.get("network.seed") == 5
        assert config.get("network.seed") == 42

    def test_config_file_relative_to_workflow(self, tmp_path):
        """Test that a workflow's config file is found next to it."""
        (tmp_path / "settings.yaml").write_text("network:\n  method: label_propagation\n")
        path = _write(
            tmp_path / "w.yaml",
            """
            config: settings.yaml
            steps:
              - name: edges
                type: load_csv_from_string
                params:
                  text: "from,to\\nA,B\\n"
            """,
        )
        orchestrator = WorkflowOrchestrator(working_dir=tmp_path)
        orchestrator.execute_file(path)
        assert orchestrator.config.get("network.method") == "label_propagation"

    def test_missing_config_file(self, tmp_path):
        """Test that a missing workflow config file is an error."""
        workflow = {"config": "nope.yaml", "steps": [{"name": "a", "type": "x"}]}
        with pytest.raises(FileNotFoundError):
            WorkflowOrchestrator(working_dir=tmp_path).execute(workflow)

    def test_column_reference(self):
        """Test referencing a DataFrame column from an earlier step."""
        orchestrator = WorkflowOrchestrator()
        orchestrator.results["table"] = pd.DataFrame({"v": [1, 2]})
        assert orchestrator._resolve_parameter("${table.v}", "s").tolist() == [1, 2]
        with pytest.raises(ValueError, match="Column 'w' not found"):
            orchestrator._resolve_parameter("${table.w}", "s")

    def test_unknown_step_reference(self):
        """Test that references to unknown steps raise ValueError."""
        with pytest.raises(ValueError, match="not found in results"):
            WorkflowOrchestrator()._resolve_parameter("${ghost}", "s")

    def test_custom_step_with_spatial_join(self):
        """Test a registered step feeding a configured spatial join."""

        def make_points(xs, ys, crs=None):
            return GeoTable(tuple(Point(x, y) for x, y in zip(xs, ys)), crs=crs)

        def make_zones(crs=None):
            return GeoTable.from_records(
                [box(0, 0, 2, 2), box(2, 0, 4, 2)], [{"zone": "w"}, {"zone": "e"}], crs=crs
            )

        register_step("make_points", make_points)
        register_step("make_zones", make_zones)
        try:
            workflow = {
                "steps": [
                    {"name": "pts", "type": "make_points",
                     "params": {"xs": [1, 3, 3.5, 9], "ys": [1, 1, 1.5, 9], "crs": 3857}},
                    {"name": "zones", "type": "make_zones", "params": {"crs": 3857}},
                    {"name": "counted", "type": "join_by_location",
                     "params": {"source": "${zones}", "target": "${pts}",
                                "policy": "aggregate", "name": "n"}},
                    {"name": "labels", "type": "spatial_join",
                     "params": {"source": "${pts}", "target": "${zones}",
                                "policy": "first_match", "column": "zone"}},
                ]
            }
            results = WorkflowOrchestrator().execute(workflow)
        finally:
            STEP_REGISTRY.pop("make_points", None)
            STEP_REGISTRY.pop("make_zones", None)

        assert results["counted"].column("n").tolist() == [1, 2]
        assert results["labels"].values == ("w", "e", "e", None)


class TestWorkflowErrors:
    """Tests for workflow validation and failures."""

    def test_dependency_cycle(self):
        """Test that cycles raise ValueError."""
        workflow = {
            "steps": [
                {"name": "a", "type": "build_graph", "depends_on": ["b"]},
                {"name": "b", "type": "build_graph", "depends_on": ["a"]},
            ]
        }
        with pytest.raises(ValueError, match="dependency cycle"):
            WorkflowOrchestrator().execute(workflow)

    def test_unknown_dependency(self):
        """Test that depending on a missing step raises ValueError."""
        workflow = {"steps": [{"name": "a", "type": "build_graph", "depends_on": "z"}]}
        with pytest.raises(ValueError, match="unknown steps"):
            WorkflowOrchestrator().execute(workflow)

    def test_unknown_step_type(self):
        """Test that unknown step types raise ValueError."""
        with pytest.raises(ValueError, match="Unknown step type"):
            WorkflowOrchestrator().execute({"steps": [{"name": "a", "type": "teleport"}]})

    def test_empty_workflow(self):
        """Test that a workflow needs steps."""
        with pytest.raises(ValueError, match="must contain 'steps'"):
            WorkflowOrchestrator().execute({"steps": []})

    def test_duplicate_step_names(self):
        """Test that two steps sharing a name are rejected before anything runs."""
        workflow = {
            "steps": [
                {"name": "a", "type": "load_csv_from_string",
                 "params": {"text": "x\n1\n"}},
                {"name": "a", "type": "load_csv_from_string",
                 "params": {"text": "x\n2\n"}},
            ]
        }
        orchestrator = WorkflowOrchestrator()
        with pytest.raises(ValueError, match=r"repeated: \['a'\]"):
            orchestrator.execute(workflow)
        assert orchestrator.results == {}

    def test_continue_after_failure(self):
        """Test stop_on_error: false keeps running later steps."""
        workflow = {
            "stop_on_error": False,
            "steps": [
                {"name": "bad", "type": "remove_vertices",
                 "params": {"graph": "${good}", "names": ["Q"]}},
                {"name": "good", "type": "load_csv_from_string",
                 "params": {"text": "from,to\nA,B\n"}},
            ],
        }
        results = WorkflowOrchestrator().execute(workflow)
        assert "bad" not in results
        assert list(results["good"].columns) == ["from", "to"]
