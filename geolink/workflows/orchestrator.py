"""
Workflow orchestrator for executing config-driven workflows.

Supports YAML/JSON workflow definitions with steps, dependencies, and parameters.
"""

import inspect
import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
import yaml

from geolink.config import ConfigManager, get_config_value, load_config
from geolink.objects.geotable import GeoTable
from geolink.primitives.attribute_join import attribute_join, bind_communities
from geolink.primitives.crs import reproject
from geolink.primitives.spatial_join import join_by_location, spatial_join
from geolink.primitives.zonal import extract_by_polygon, zonal_statistics
from geolink.tasks.jointask import make_policy
from geolink.tasks.networktask import (
    build_graph,
    detect_communities,
    remove_vertices,
    vertex_metrics,
)
from geolink.workflows.io import (
    load_csv_from_string,
    read_edge_list,
    read_raster,
    read_table,
    read_vector,
    write_raster,
    write_vector,
)
from geolink.workflows.plotting import MATPLOTLIB_AVAILABLE, plot_geotable

logger = logging.getLogger(__name__)


# Registry of available workflow steps
STEP_REGISTRY: dict[str, Callable] = {}


def register_step(name: str, func: Callable):
    """Register a function as a workflow step."""
    STEP_REGISTRY[name] = func
    logger.debug(f"Registered workflow step: {name}")


def _spatial_join_step(
    source: GeoTable,
    target: GeoTable,
    policy: str = "all_matches",
    column: str | None = None,
    reducer: str | None = None,
    on_empty: str = "absent",
    n_jobs: int | None = None,
    config: ConfigManager | None = None,
):
    n_jobs = n_jobs or get_config_value("join.n_jobs", 1, config=config)
    return spatial_join(
        source,
        target,
        make_policy(policy, column=column, reducer=reducer, on_empty=on_empty),
        n_jobs=n_jobs,
    )


def _join_by_location_step(
    source: GeoTable,
    target: GeoTable,
    policy: str = "all_matches",
    column: str | None = None,
    reducer: str | None = None,
    name: str | None = None,
    on_empty: str = "absent",
    n_jobs: int | None = None,
    config: ConfigManager | None = None,
) -> GeoTable:
    n_jobs = n_jobs or get_config_value("join.n_jobs", 1, config=config)
    return join_by_location(
        source,
        target,
        make_policy(policy, column=column, reducer=reducer, on_empty=on_empty),
        name=name,
        n_jobs=n_jobs,
    )


def _attribute_join_step(
    collection: GeoTable,
    table: pd.DataFrame,
    left_key: str,
    right_key: str | None = None,
    how: str | None = None,
    fan_out: bool = False,
    config: ConfigManager | None = None,
) -> GeoTable:
    how = how or get_config_value("join.how", "left", config=config)
    return attribute_join(
        collection, table, left_key, right_key=right_key, how=how, fan_out=fan_out
    )


def _detect_communities_step(
    graph,
    method: str | None = None,
    weight: str | None = "weight",
    resolution: float | None = None,
    seed: int | None = None,
    config: ConfigManager | None = None,
):
    return detect_communities(
        graph,
        method=method or get_config_value("network.method", "louvain", config=config),
        weight=weight,
        resolution=(
            resolution
            if resolution is not None
            else get_config_value("network.resolution", 1.0, config=config)
        ),
        seed=seed if seed is not None else get_config_value("network.seed", None, config=config),
    )


def _extract_step(
    raster,
    polygons: GeoTable,
    mode: str | None = None,
    drop_nodata: bool | None = None,
    config: ConfigManager | None = None,
):
    return extract_by_polygon(
        raster,
        polygons,
        mode=mode or get_config_value("zonal.mode", "center", config=config),
        drop_nodata=(
            drop_nodata
            if drop_nodata is not None
            else get_config_value("zonal.drop_nodata", True, config=config)
        ),
    )


def _zonal_statistics_step(
    raster,
    polygons: GeoTable,
    stats: list[str] | None = None,
    mode: str | None = None,
    drop_nodata: bool | None = None,
    empty: Any = np.nan,
    config: ConfigManager | None = None,
) -> pd.DataFrame:
    return zonal_statistics(
        raster,
        polygons,
        stats=tuple(stats or ("mean",)),
        mode=mode or get_config_value("zonal.mode", "center", config=config),
        drop_nodata=(
            drop_nodata
            if drop_nodata is not None
            else get_config_value("zonal.drop_nodata", True, config=config)
        ),
        empty=empty,
    )


def _add_columns(geotable: GeoTable, columns: dict) -> GeoTable:
    """Add calculated columns to a GeoTable."""
    return geotable.with_columns(columns)


def _register_default_steps():
    """Register default workflow steps."""
    # Data loading
    register_step("read_vector", read_vector)
    register_step("read_raster", read_raster)
    register_step("read_table", read_table)
    register_step("read_edge_list", read_edge_list)
    register_step("load_csv_from_string", load_csv_from_string)
    register_step("write_vector", write_vector)
    register_step("write_raster", write_raster)

    # Frames
    register_step("reproject", reproject)

    # Joins
    register_step("spatial_join", _spatial_join_step)
    register_step("join_by_location", _join_by_location_step)
    register_step("attribute_join", _attribute_join_step)
    register_step("bind_communities", bind_communities)
    register_step("add_columns", _add_columns)

    # Networks
    register_step("build_graph", build_graph)
    register_step("detect_communities", _detect_communities_step)
    register_step("remove_vertices", remove_vertices)
    register_step("vertex_metrics", vertex_metrics)

    # Zonal
    register_step("extract_by_polygon", _extract_step)
    register_step("zonal_statistics", _zonal_statistics_step)

    # Plotting
    if MATPLOTLIB_AVAILABLE:
        register_step("plot_geotable", plot_geotable)
    else:
        logger.debug("Plotting steps not registered (matplotlib not available)")


# Initialize default steps
_register_default_steps()


class WorkflowOrchestrator:
    """
    Orchestrator for executing config-driven workflows.

    Loads workflow definitions from YAML/JSON and executes steps
    in dependency order, with config-aware parameters.

    Example:
        A workflow file joining well counts onto counties::

            config: settings.yaml
            steps:
              - name: counties
                type: read_vector
                params: {path: data/counties.gpkg}
              - name: wells
                type: read_vector
                params: {path: data/wells.gpkg}
              - name: counted
                type: join_by_location
                params:
                  source: ${counties}
                  target: ${wells}
                  policy: aggregate
                  reducer: count
                  name: n_wells
    """

    def __init__(
        self, config: ConfigManager | None = None, working_dir: str | Path | None = None
    ):
        """
        Initialize workflow orchestrator.

        Args:
            config: Configuration manager. If None, uses the default config.
            working_dir: Directory that relative ``config`` paths in a
                workflow are resolved against. Step parameters are passed
                through unchanged.
        """
        self.config = config
        self.working_dir = Path(working_dir) if working_dir else Path.cwd()
        self.results: dict[str, Any] = {}
        self.logger = logging.getLogger(self.__class__.__name__)

    def load_workflow_file(self, file_path: str | Path) -> dict[str, Any]:
        """
        Load workflow definition from file.

        Args:
            file_path: Path to YAML or JSON workflow file.

        Returns:
            Workflow definition.

        Raises:
            FileNotFoundError: If file doesn't exist.
            ValueError: If file format is unsupported.
        """
        file_path = Path(file_path)

        if not file_path.exists():
            raise FileNotFoundError(f"Workflow file not found: {file_path}")

        suffix = file_path.suffix.lower()

        with open(file_path) as f:
            if suffix in (".yaml", ".yml"):
                workflow = yaml.safe_load(f)
            elif suffix == ".json":
                workflow = json.load(f)
            else:
                raise ValueError(
                    f"Unsupported workflow file format: {suffix}. "
                    "Use .yaml, .yml, or .json"
                )

        self.logger.info(f"Loaded workflow from {file_path}")
        return workflow

    @staticmethod
    def _step_name(step: dict[str, Any], index: int) -> str:
        return step.get("name") or step.get("step") or f"step_{index}"

    def _resolve_dependencies(
        self, steps: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        """
        Order steps so every step runs after the steps it depends on.

        Dependencies come from an explicit ``depends_on`` list. Steps with no
        ordering constraint between them keep their file order.

        Raises:
            ValueError: On a repeated step name, an unknown dependency or a
                dependency cycle.
        """
        names = [self._step_name(step, i) for i, step in enumerate(steps)]
        repeated = sorted({n for n in names if names.count(n) > 1})
        if repeated:
            raise ValueError(
                f"Step names must be unique; repeated: {repeated}. "
                "Give each step its own 'name'."
            )
        known = set(names)
        pending = {}
        for name, step in zip(names, steps):
            depends_on = step.get("depends_on") or []
            if isinstance(depends_on, str):
                depends_on = [depends_on]
            unknown = [dep for dep in depends_on if dep not in known]
            if unknown:
                raise ValueError(f"Step '{name}' depends on unknown steps: {unknown}")
            pending[name] = set(depends_on)

        ordered: list[dict[str, Any]] = []
        done: set[str] = set()
        remaining = list(zip(names, steps))
        while remaining:
            ready = [(n, s) for n, s in remaining if pending[n] <= done]
            if not ready:
                raise ValueError(
                    "Workflow has a dependency cycle among steps: "
                    f"{[n for n, _ in remaining]}"
                )
            name, step = ready[0]
            ordered.append(step)
            done.add(name)
            remaining = [(n, s) for n, s in remaining if n != name]
        return ordered

    def _resolve_parameter(self, value: Any, step_name: str) -> Any:
        """
        Resolve parameter value, supporting references to previous steps.

        Args:
            value: Parameter value (may be a reference like "${step_name.attr}").
            step_name: Current step name.

        Returns:
            Resolved value.
        """
        if isinstance(value, str):
            # Check for step reference: ${step_name.attr} or ${step_name}
            if value.startswith("${") and value.endswith("}"):
                ref = value[2:-1]

                # Check for config reference first
                if ref.startswith("config."):
                    config_key = ref[7:]  # Remove "config."
                    return get_config_value(config_key, config=self.config)

                # Otherwise it's a step reference
                if "." in ref:
                    step_ref, attr = ref.split(".", 1)
                else:
                    step_ref = ref
                    attr = "output"

                if step_ref not in self.results:
                    raise ValueError(
                        f"Step '{step_ref}' not found in results "
                        f"(referenced by {value} in step '{step_name}')"
                    )

                result = self.results[step_ref]
                if attr == "output":
                    return result
                elif isinstance(result, pd.DataFrame):
                    # DataFrame column access
                    if attr in result.columns:
                        return result[attr].values
                    raise ValueError(
                        f"Column '{attr}' not found in step "
                        f"'{step_ref}' output. "
                        f"Available columns: {list(result.columns)}"
                    )
                elif isinstance(result, GeoTable) and attr in result.columns:
                    return result.column(attr).to_numpy()
                elif isinstance(result, dict) and attr in result:
                    return result[attr]  # Dictionary key
                elif hasattr(result, attr):
                    return getattr(result, attr)
                else:
                    raise ValueError(
                        f"Reference {value} not found in step '{step_ref}'. "
                        f"Result type: {type(result)}"
                    )

        return value

    def _resolve_parameters(
        self, params: dict[str, Any], step_name: str
    ) -> dict[str, Any]:
        """Resolve all parameters in a dictionary."""
        resolved = {}
        for key, value in params.items():
            if isinstance(value, dict):
                resolved[key] = self._resolve_parameters(value, step_name)
            elif isinstance(value, list):
                resolved[key] = [
                    self._resolve_parameter(item, step_name) for item in value
                ]
            else:
                resolved[key] = self._resolve_parameter(value, step_name)
        return resolved

    def _execute_step(self, step: dict[str, Any], step_index: int) -> Any:
        """
        Execute a single workflow step.

        Args:
            step: Step definition.
            step_index: Step index (for logging).

        Returns:
            Step result.
        """
        step_name = self._step_name(step, step_index)
        step_type = step.get("type") or step.get("function")

        if not step_type:
            raise ValueError(f"Step {step_name} missing 'type' or 'function' field")

        self.logger.info(f"Executing step {step_index + 1}: {step_name} ({step_type})")

        # Get function from registry
        func = STEP_REGISTRY.get(step_type)
        if func is None:
            raise ValueError(
                f"Unknown step type: {step_type}. "
                f"Available: {sorted(STEP_REGISTRY.keys())}"
            )

        params = step.get("params", step.get("parameters", {})) or {}
        params = self._resolve_parameters(params, step_name)

        # Add config if function accepts it
        sig = inspect.signature(func)
        if "config" in sig.parameters:
            params["config"] = self.config

        try:
            result = func(**params)
            self.results[step_name] = result
            self.logger.info(f"✓ Step {step_name} completed successfully")
            return result
        except Exception as e:
            self.logger.error(f"✗ Step {step_name} failed: {e}")
            raise

    def _load_workflow_config(self, config_file: str | Path) -> None:
        config_path = Path(config_file)
        if not config_path.is_absolute():
            config_path = self.working_dir / config_path
        if not config_path.exists():
            raise FileNotFoundError(f"Workflow config file not found: {config_path}")
        self.config = load_config(config_path)
        self.logger.info(f"Loaded config from {config_path}")

    def execute(self, workflow: dict[str, Any]) -> dict[str, Any]:
        """
        Execute a workflow definition.

        Args:
            workflow: Workflow definition with a 'steps' list, and optionally
                'config' (settings file path) and 'settings' (inline
                settings merged over it).

        Returns:
            Results from all steps, keyed by step name.
        """
        self.logger.info("Starting workflow execution")

        config_file = workflow.get("config")
        if config_file:
            self._load_workflow_config(config_file)

        settings = workflow.get("settings")
        if settings:
            if self.config is None:
                self.config = ConfigManager()
            else:
                # the caller's ConfigManager is left untouched
                self.config = ConfigManager(self.config.to_dict(), use_defaults=False)
            self.config.update(settings)

        steps = workflow.get("steps", [])
        if not steps:
            raise ValueError("Workflow must contain 'steps' list")

        ordered_steps = self._resolve_dependencies(steps)

        stop_on_error = workflow.get("stop_on_error", True)
        failed = 0
        for i, step in enumerate(ordered_steps):
            try:
                self._execute_step(step, i)
            except Exception as e:
                self.logger.error(f"Workflow failed at step {i + 1}: {e}")
                if stop_on_error:
                    raise
                failed += 1

        if failed:
            self.logger.warning(
                f"Workflow finished with {failed} failed steps ({len(steps)} steps)"
            )
        else:
            self.logger.info(f"Workflow completed successfully ({len(steps)} steps)")
        return self.results

    def execute_file(self, file_path: str | Path) -> dict[str, Any]:
        """
        Load and execute workflow from file.

        Args:
            file_path: Path to workflow file.

        Returns:
            Results from all steps.
        """
        workflow = self.load_workflow_file(file_path)
        return self.execute(workflow)


def run_workflow(
    workflow_file: str | Path,
    config: ConfigManager | None = None,
    working_dir: str | Path | None = None,
) -> dict[str, Any]:
    """
    Convenience function to run a workflow from a file.

    Args:
        workflow_file: Path to workflow YAML/JSON file.
        config: Configuration manager.
        working_dir: Directory for relative config paths. Defaults to the
            workflow file's directory.

    Returns:
        Results from all steps.

    Example:
        >>> from geolink.workflows import run_workflow
        >>> results = run_workflow("my_workflow.yaml")
    """
    workflow_file = Path(workflow_file)
    orchestrator = WorkflowOrchestrator(
        config=config, working_dir=working_dir or workflow_file.parent
    )
    return orchestrator.execute_file(workflow_file)


def load_workflow(file_path: str | Path) -> dict[str, Any]:
    """
    Load workflow definition without executing.

    Args:
        file_path: Path to workflow file.

    Returns:
        Workflow definition.
    """
    orchestrator = WorkflowOrchestrator()
    return orchestrator.load_workflow_file(file_path)
