"""Performance benchmarks for spatial joins and zonal extraction."""

import time
from typing import Dict

import numpy as np
from shapely.geometry import Point, box

from geolink import (
    Aggregate,
    AllMatches,
    AreaWeightedAggregate,
    GeoTable,
    RasterGrid,
    extract_by_polygon,
    spatial_join,
)


def _grid_polygons(n_side: int, size: float = 1000.0) -> GeoTable:
    step = size / n_side
    shapes = [
        box(i * step, j * step, (i + 1) * step, (j + 1) * step)
        for j in range(n_side)
        for i in range(n_side)
    ]
    return GeoTable.from_records(
        shapes, [{"value": float(k)} for k in range(len(shapes))], crs=3857
    )


def benchmark_point_join(
    n_points: int = 10000,
    n_side: int = 20,
    n_jobs: int = 1,
) -> Dict[str, float]:
    """Benchmark points against a polygon grid.

    Args:
        n_points: Number of SOURCE points.
        n_side: Polygon grid is n_side x n_side.
        n_jobs: Worker threads.

    Returns:
        Dictionary with timing results.
    """
    np.random.seed(42)
    xy = np.random.rand(n_points, 2) * 1000
    points = GeoTable(tuple(Point(x, y) for x, y in xy), crs=3857)
    polygons = _grid_polygons(n_side)

    start = time.perf_counter()
    spatial_join(points, polygons, AllMatches(), n_jobs=n_jobs)
    all_time = time.perf_counter() - start

    start = time.perf_counter()
    spatial_join(polygons, points, Aggregate("count"), n_jobs=n_jobs)
    count_time = time.perf_counter() - start

    return {
        "n_points": n_points,
        "n_polygons": n_side * n_side,
        "n_jobs": n_jobs,
        "all_matches_seconds": all_time,
        "count_seconds": count_time,
        "points_per_second": n_points / all_time if all_time > 0 else 0,
    }


def benchmark_area_weighted(n_side: int = 30) -> Dict[str, float]:
    """Benchmark area-weighted transfer between two offset polygon grids."""
    source = _grid_polygons(n_side)
    target = _grid_polygons(n_side + 7)

    start = time.perf_counter()
    spatial_join(source, target, AreaWeightedAggregate("mean", column="value"))
    elapsed = time.perf_counter() - start

    return {
        "n_source": len(source),
        "n_target": len(target),
        "compute_time_seconds": elapsed,
    }


def benchmark_zonal(n_cells: int = 1000, n_side: int = 10) -> Dict[str, Dict[str, float]]:
    """Benchmark zonal extraction for each inclusion mode."""
    np.random.seed(42)
    raster = RasterGrid.from_origin(
        np.random.rand(n_cells, n_cells), west=0, north=1000, cell_size=1000 / n_cells, crs=3857
    )
    polygons = _grid_polygons(n_side)

    results = {}
    for mode in ("center", "contained", "overlap"):
        start = time.perf_counter()
        extract_by_polygon(raster, polygons, mode=mode)
        results[mode] = {"compute_time_seconds": time.perf_counter() - start}
    return results


def run_all_join_benchmarks() -> Dict[str, Dict]:
    """Run all join benchmarks and return results."""
    results = {}

    print("Benchmarking point joins...")
    results["point_join"] = {
        f"n_jobs={n}": benchmark_point_join(n_jobs=n) for n in (1, 4)
    }

    print("Benchmarking area-weighted joins...")
    results["area_weighted"] = benchmark_area_weighted()

    print("Benchmarking zonal extraction...")
    results["zonal"] = benchmark_zonal(n_cells=400)

    return results


if __name__ == "__main__":
    """Run benchmarks and print results."""
    results = run_all_join_benchmarks()

    print("\n" + "=" * 60)
    print("SPATIAL JOIN PERFORMANCE BENCHMARKS")
    print("=" * 60)

    print("\nPoint-in-polygon:")
    for label, data in results["point_join"].items():
        print(f"  {label}: {data['n_points']} points x {data['n_polygons']} polygons")
        print(f"            All matches: {data['all_matches_seconds']*1000:8.2f} ms")
        print(f"            Count: {data['count_seconds']*1000:8.2f} ms")
        print(f"            Throughput: {data['points_per_second']:8.0f} points/s")

    aw = results["area_weighted"]
    print("\nArea-weighted:")
    print(f"  {aw['n_source']} x {aw['n_target']} polygons: "
          f"{aw['compute_time_seconds']*1000:8.2f} ms")

    print("\nZonal extraction:")
    for mode, data in results["zonal"].items():
        print(f"  {mode:9s}: {data['compute_time_seconds']*1000:8.2f} ms")
