"""Layer 4: Workflows - Public entry points.

Workflows provide the public entry points users call. Workflows can import
I/O libraries and plotting libraries. Put file loading and saving here.
Put plotting here.
"""

from geolink.workflows.io import (
    GEOPANDAS_AVAILABLE,
    RASTERIO_AVAILABLE,
    geotable_from_geodataframe,
    geotable_to_geodataframe,
    load_csv_from_string,
    read_edge_list,
    read_raster,
    read_table,
    read_vector,
    write_raster,
    write_vector,
)
from geolink.workflows.orchestrator import (
    STEP_REGISTRY,
    WorkflowOrchestrator,
    load_workflow,
    register_step,
    run_workflow,
)
from geolink.workflows.plotting import MATPLOTLIB_AVAILABLE, plot_geotable

__all__ = [
    "GEOPANDAS_AVAILABLE",
    "MATPLOTLIB_AVAILABLE",
    "RASTERIO_AVAILABLE",
    "STEP_REGISTRY",
    "WorkflowOrchestrator",
    "geotable_from_geodataframe",
    "geotable_to_geodataframe",
    "load_csv_from_string",
    "load_workflow",
    "plot_geotable",
    "read_edge_list",
    "read_raster",
    "read_table",
    "read_vector",
    "register_step",
    "run_workflow",
    "write_raster",
    "write_vector",
]
