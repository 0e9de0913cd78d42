"""Tests for JoinTask and ZonalTask."""

import numpy as np
import pandas as pd
import pytest
from shapely.geometry import Point, box

from geolink.objects import GeoTable, RasterGrid
from geolink.primitives.spatial_join import (
    Aggregate,
    AllMatches,
    AreaWeightedAggregate,
    FirstMatch,
)
from geolink.tasks import JoinTask, ZonalTask, make_policy
from geolink.utils.errors import FrameMismatchError, ParameterError


class TestMakePolicy:
    """Tests for make_policy."""

    def test_names(self):
        """Test building each policy from its name."""
        assert make_policy("first_match", column="v") == FirstMatch(column="v")
        assert make_policy("all_matches") == AllMatches()
        assert make_policy("aggregate") == Aggregate(reducer="count")
        assert make_policy("area_weighted", column="d") == AreaWeightedAggregate(
            reducer="mean", column="d"
        )
        assert make_policy("AGGREGATE", column="p", reducer="sum").reducer == "sum"

    def test_policy_object_passes_through(self):
        """Test that policy objects are returned unchanged."""
        policy = Aggregate("max", column="v")
        assert make_policy(policy) is policy

    def test_unknown(self):
        """Test that unknown names raise ParameterError."""
        with pytest.raises(ParameterError, match="policy"):
            make_policy("nearest")


class TestJoinTask:
    """Tests for JoinTask."""

    @pytest.fixture
    def wells(self):
        return GeoTable(
            (Point(0.5, 0.5), Point(0.2, 0.8), Point(1.5, 0.5), Point(9, 9)), crs=3857
        )

    @pytest.fixture
    def counties(self):
        return GeoTable.from_records(
            [box(0, 0, 1, 1), box(1, 0, 2, 1), box(2, 0, 3, 1)],
            [{"fips": "A"}, {"fips": "B"}, {"fips": "C"}],
            crs=3857,
        )

    def test_defaults_from_config(self):
        """Test that unset options come from the configuration."""
        task = JoinTask()
        assert task.n_jobs == 1
        assert task.how == "left"

    def test_count_wells_per_county(self, wells, counties):
        """Test counting points per polygon by name."""
        out = JoinTask().by_location(counties, wells, "aggregate", name="n_wells")
        assert out.column("n_wells").tolist() == [2, 1, 0]

    def test_spatial_first_match(self, wells, counties):
        """Test first match through the task."""
        result = JoinTask(n_jobs=2).spatial(wells, counties, "first_match", column="fips")
        assert result.values == ("A", "A", "B", None)

    def test_attributes_uses_default_how(self, counties):
        """Test that the task's join type applies when none is given."""
        table = pd.DataFrame({"fips": ["A"], "pop": [10]})
        task = JoinTask(how="inner")
        out = task.attributes(counties, table, "fips")
        assert len(out) == 1
        assert len(task.attributes(counties, table, "fips", how="left")) == 3

    def test_communities(self, counties):
        """Test community binding through the task."""
        out = JoinTask().communities(counties, {"A": 1, "C": 1}, "fips")
        labels = out.column("community").tolist()
        assert labels[0] == 1 and labels[2] == 1
        assert pd.isna(labels[1])


class TestZonalTask:
    """Tests for ZonalTask."""

    @pytest.fixture
    def raster(self):
        return RasterGrid.from_origin(
            np.arange(16, dtype=float).reshape(4, 4), west=0, north=4, cell_size=1, crs=3857
        )

    def test_statistics_with_empty_zone(self, raster):
        """Test that empty zones get NaN and count 0."""
        polygons = GeoTable((box(0, 2, 2, 4), box(10, 10, 11, 11)), crs=3857)
        table = ZonalTask().statistics(raster, polygons, stats=("count", "mean"))
        assert table["count"].tolist() == [4, 0]
        assert table["mean"].iloc[0] == 2.5
        assert np.isnan(table["mean"].iloc[1])

    def test_add_statistics(self, raster):
        """Test adding statistics as polygon columns."""
        polygons = GeoTable.from_records(
            [box(0, 2, 2, 4), box(2, 0, 4, 2)], [{"zone": "nw"}, {"zone": "se"}], crs=3857
        )
        out = ZonalTask(mode="overlap").add_statistics(
            raster, polygons, stats=("max",), prefix="elev_"
        )
        assert out.columns == ["zone", "elev_max"]
        assert out.column("elev_max").tolist() == [5.0, 15.0]

    def test_mismatch_without_align(self, raster):
        """Test that frames are not aligned unless requested."""
        polygons = GeoTable((box(0, 0, 1, 1),), crs=4326)
        with pytest.raises(FrameMismatchError):
            ZonalTask().extract(raster, polygons)

    def test_align_reprojects_polygons(self, raster):
        """Test that align=True brings polygons into the raster frame."""
        from geolink.primitives.crs import reproject

        native = GeoTable((box(0, 2, 2, 4),), crs=3857)
        geographic = reproject(native, 4326)
        result = ZonalTask(align=True).extract(raster, geographic)
        assert result[0].tolist() == [0.0, 1.0, 4.0, 5.0]

    def test_config_defaults(self):
        """Test defaults read from the configuration."""
        task = ZonalTask()
        assert task.mode == "center"
        assert task.drop_nodata is True
