"""Tests for attribute joins and community binding."""

import pandas as pd
import pytest
from shapely.geometry import Point, box

from geolink.objects import CommunityAssignment, GeoTable
from geolink.primitives.attribute_join import attribute_join, bind_communities
from geolink.utils.errors import (
    DataValidationError,
    DuplicateKeyError,
    KeyNotFoundError,
    ParameterError,
)


@pytest.fixture
def counties():
    return GeoTable.from_records(
        [box(i, 0, i + 1, 1) for i in range(4)],
        [{"fips": "003"}, {"fips": "001"}, {"fips": "009"}, {"fips": "002"}],
        crs=4326,
    )


@pytest.fixture
def income():
    return pd.DataFrame({"fips_code": ["001", "002", "003"], "income": [50, 60, 70]})


class TestAttributeJoin:
    """Tests for attribute_join."""

    def test_left_keeps_order_and_count(self, counties, income):
        """Test that a left join keeps every geometry in order."""
        out = attribute_join(counties, income, "fips", "fips_code")
        assert len(out) == 4
        assert out.column("fips").tolist() == ["003", "001", "009", "002"]
        values = out.column("income").tolist()
        assert values[0] == 70 and values[1] == 50 and values[3] == 60
        assert pd.isna(values[2])
        assert out.geometry == counties.geometry
        assert str(out.column("income").dtype) == "Int64"

    def test_right_key_not_added(self, counties, income):
        """Test that the right key column is not duplicated."""
        out = attribute_join(counties, income, "fips", "fips_code")
        assert out.columns == ["fips", "income"]

    def test_inner_drops_unmatched(self, counties, income):
        """Test that an inner join keeps only matched geometries, in order."""
        out = attribute_join(counties, income, "fips", "fips_code", how="inner")
        assert out.column("fips").tolist() == ["003", "001", "002"]
        assert out.geometry[0].equals(box(0, 0, 1, 1))
        assert out.geometry[2].equals(box(3, 0, 4, 1))

    def test_same_key_name(self, counties):
        """Test the default right key."""
        table = pd.DataFrame({"fips": ["009"], "pop": [12]})
        out = attribute_join(counties, table, "fips")
        assert out.column("pop").tolist()[2] == 12

    def test_duplicate_keys_rejected(self, counties):
        """Test that duplicate right keys raise by default."""
        table = pd.DataFrame({"fips": ["001", "001"], "year": [2020, 2021]})
        with pytest.raises(DuplicateKeyError, match="not unique"):
            attribute_join(counties, table, "fips")

    def test_fan_out(self, counties):
        """Test that fan_out repeats geometries next to each other."""
        table = pd.DataFrame({"fips": ["001", "001"], "year": [2020, 2021]})
        out = attribute_join(counties, table, "fips", fan_out=True)
        assert len(out) == 5
        assert out.column("fips").tolist() == ["003", "001", "001", "009", "002"]
        assert out.column("year").tolist()[1:3] == [2020, 2021]
        assert out.geometry[1].equals(out.geometry[2])

    def test_idempotent(self, counties, income):
        """Test that joining the same table twice equals joining once."""
        once = attribute_join(counties, income, "fips", "fips_code")
        twice = attribute_join(once, income, "fips", "fips_code")
        assert twice.columns == once.columns
        pd.testing.assert_frame_equal(twice.attributes, once.attributes)

    def test_missing_left_key(self, counties, income):
        """Test that a missing collection key raises KeyNotFoundError."""
        with pytest.raises(KeyNotFoundError, match="not found in collection"):
            attribute_join(counties, income, "geoid", "fips_code")

    def test_missing_right_key(self, counties, income):
        """Test that a missing table key raises KeyNotFoundError."""
        with pytest.raises(KeyNotFoundError, match="not found in table"):
            attribute_join(counties, income, "fips")

    def test_key_type_mismatch(self, counties):
        """Test that numeric and string keys are not joined."""
        table = pd.DataFrame({"fips": [1, 2, 3], "income": [50, 60, 70]})
        with pytest.raises(DataValidationError, match="Key types differ"):
            attribute_join(counties, table, "fips")

    def test_bad_how(self, counties, income):
        """Test that only left and inner joins exist."""
        with pytest.raises(ParameterError, match="how"):
            attribute_join(counties, income, "fips", "fips_code", how="outer")

    def test_bare_table_rejected(self, income):
        """Test that a DataFrame is not accepted as the collection."""
        with pytest.raises(TypeError, match="GeoTable"):
            attribute_join(income, income, "fips_code")

    def test_null_right_keys_ignored(self, counties):
        """Test that null table keys never match."""
        table = pd.DataFrame({"fips": [None, "001"], "income": [1, 2]})
        out = attribute_join(counties, table, "fips")
        assert len(out) == 4
        assert out.column("income").tolist()[1] == 2


class TestBindCommunities:
    """Tests for bind_communities."""

    @pytest.fixture
    def cities(self):
        return GeoTable.from_records(
            [Point(i, 0) for i in range(5)],
            [{"name": n} for n in "ABCDE"],
        )

    def test_unknown_vertices_get_null(self, cities):
        """Test that geometries without a vertex keep a null community."""
        assignment = CommunityAssignment({"A": 1, "B": 1, "C": 2})
        out = bind_communities(cities, assignment, "name")
        assert len(out) == 5
        labels = out.column("community").tolist()
        assert labels[:3] == [1, 1, 2]
        assert all(pd.isna(v) for v in labels[3:])

    def test_labels_stay_integer(self, cities):
        """Test that labels stay integers when some geometries are unbound."""
        out = bind_communities(cities, {"A": 1}, "name")
        labels = out.column("community")
        assert str(labels.dtype) == "Int64"
        assert labels.iloc[0] == 1
        assert int(labels.isna().sum()) == 4

    def test_plain_mapping(self, cities):
        """Test binding from a dict."""
        out = bind_communities(cities, {"E": 7}, "name", column="group")
        assert out.column("group").tolist()[4] == 7

    def test_bind_twice_is_idempotent(self, cities):
        """Test that binding twice gives the same table."""
        assignment = CommunityAssignment({"A": 1, "E": 2})
        once = bind_communities(cities, assignment, "name")
        twice = bind_communities(once, assignment, "name")
        pd.testing.assert_frame_equal(once.attributes, twice.attributes)
