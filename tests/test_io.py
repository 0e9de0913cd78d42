"""Tests for file I/O."""

import numpy as np
import pytest
from shapely.geometry import Point, box

from geolink.objects import GeoTable, RasterGrid
from geolink.primitives.crs import crs_equal
from geolink.workflows.io import (
    load_csv_from_string,
    read_edge_list,
    read_table,
)


class TestTables:
    """Tests for table and edge-list readers."""

    def test_read_table(self, tmp_path):
        """Test reading a delimited file."""
        path = tmp_path / "income.csv"
        path.write_text("fips;income\n001;50\n002;60\n")
        df = read_table(path, sep=";", dtype={"fips": str})
        assert df["fips"].tolist() == ["001", "002"]
        assert df["income"].sum() == 110

    def test_read_table_missing(self, tmp_path):
        """Test that a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            read_table(tmp_path / "nope.csv")

    def test_load_csv_from_string(self):
        """Test parsing inline CSV text."""
        df = load_csv_from_string("a,b\n1,2\n3,4\n")
        assert df.shape == (2, 2)

    def test_read_edge_list(self, tmp_path):
        """Test reading a weighted edge list into a graph."""
        path = tmp_path / "edges.csv"
        path.write_text("src,dst,trips\nA,B,3\nB,C,1\nB,A,2\n")
        graph = read_edge_list(path, source="src", target="dst", weight="trips")
        assert graph.number_of_edges() == 2
        assert graph["A"]["B"]["weight"] == 5.0


class TestVectorIO:
    """Tests for vector files (requires geopandas)."""

    def test_round_trip_geopackage(self, tmp_path):
        """Test writing and reading a GeoTable."""
        pytest.importorskip("geopandas")
        from geolink.workflows.io import read_vector, write_vector

        table = GeoTable.from_records(
            [box(0, 0, 1, 1), box(1, 0, 2, 1)],
            [{"name": "a", "pop": 10}, {"name": "b", "pop": 20}],
            crs=4326,
        )
        path = write_vector(table, tmp_path / "zones.gpkg")
        back = read_vector(path)
        assert len(back) == 2
        assert back.column("name").tolist() == ["a", "b"]
        assert back.geometry[1].equals(box(1, 0, 2, 1))
        assert crs_equal(back.crs, 4326)

    def test_geodataframe_conversion(self):
        """Test GeoDataFrame conversion keeps rows and frame."""
        gpd = pytest.importorskip("geopandas")
        from geolink.workflows.io import geotable_from_geodataframe, geotable_to_geodataframe

        gdf = gpd.GeoDataFrame({"v": [1, 2]}, geometry=[Point(0, 0), Point(1, 1)], crs=3857)
        table = geotable_from_geodataframe(gdf)
        assert table.columns == ["v"]
        assert crs_equal(table.crs, 3857)
        assert len(geotable_to_geodataframe(table)) == 2

    def test_missing_geometry_rejected(self):
        """Test that rows without geometry raise error."""
        gpd = pytest.importorskip("geopandas")
        from geolink.utils.errors import DataValidationError
        from geolink.workflows.io import geotable_from_geodataframe

        gdf = gpd.GeoDataFrame({"v": [1, 2]}, geometry=[Point(0, 0), None])
        with pytest.raises(DataValidationError, match="no geometry"):
            geotable_from_geodataframe(gdf)

    def test_read_vector_missing(self, tmp_path):
        """Test that a missing vector file raises FileNotFoundError."""
        pytest.importorskip("geopandas")
        from geolink.workflows.io import read_vector

        with pytest.raises(FileNotFoundError):
            read_vector(tmp_path / "nope.gpkg")


class TestRasterIO:
    """Tests for raster files (requires rasterio)."""

    def test_round_trip_geotiff(self, tmp_path):
        """Test writing and reading a GeoTIFF."""
        pytest.importorskip("rasterio")
        from geolink.workflows.io import read_raster, write_raster

        raster = RasterGrid.from_origin(
            np.arange(12, dtype="float32").reshape(3, 4),
            west=500000,
            north=4000,
            cell_size=30,
            crs=32633,
            nodata=-1.0,
        )
        path = write_raster(raster, tmp_path / "dem.tif")
        back = read_raster(path)
        assert back.shape == (3, 4)
        np.testing.assert_array_equal(back.data, raster.data)
        assert back.transform == raster.transform
        assert back.nodata == -1.0
        assert crs_equal(back.crs, 32633)

    def test_band_out_of_range(self, tmp_path):
        """Test that a missing band raises error."""
        pytest.importorskip("rasterio")
        from geolink.utils.errors import DataValidationError
        from geolink.workflows.io import read_raster, write_raster

        raster = RasterGrid.from_origin(np.zeros((2, 2)), west=0, north=2, cell_size=1)
        path = write_raster(raster, tmp_path / "r.tif")
        with pytest.raises(DataValidationError, match="out of range"):
            read_raster(path, band=2)
