"""Example: Counting wells per county and transferring census densities.

Demonstrates point-in-polygon joins, aggregate joins, attribute joins and
area-weighted transfer between two polygon layers using GeoLink.
"""

import numpy as np
import pandas as pd
from shapely.geometry import Point, box

from geolink import (
    Aggregate,
    AreaWeightedAggregate,
    FirstMatch,
    GeoTable,
    attribute_join,
    join_by_location,
    overlap_weights,
    spatial_join,
)


def main():
    """Run spatial join example."""
    print("=" * 60)
    print("Spatial and Attribute Join Example")
    print("=" * 60)

    # A 3 x 3 block of 10 km counties in UTM zone 33N
    print("\n1. Creating counties and wells...")
    counties = GeoTable.from_records(
        [
            box(x, y, x + 10_000, y + 10_000)
            for y in range(0, 30_000, 10_000)
            for x in range(500_000, 530_000, 10_000)
        ],
        [{"fips": f"{i + 1:03d}"} for i in range(9)],
        crs=32633,
    )

    np.random.seed(42)
    xy = np.column_stack(
        [
            np.random.uniform(495_000, 535_000, 200),
            np.random.uniform(-5_000, 35_000, 200),
        ]
    )
    wells = GeoTable.from_records(
        [Point(x, y) for x, y in xy],
        [{"depth_m": d} for d in np.random.gamma(4.0, 250.0, 200)],
        crs=32633,
    )
    print(f"Created {len(counties)} counties and {len(wells)} wells")

    # Which county is each well in?
    print("\n2. Looking up the county of each well...")
    located = spatial_join(wells, counties, FirstMatch(column="fips"))
    print(f"Wells outside every county: {located.n_absent}")

    # Count and average depth per county
    print("\n3. Summarizing wells per county...")
    counties = join_by_location(counties, wells, Aggregate("count"), name="n_wells")
    counties = join_by_location(
        counties, wells, Aggregate("mean", column="depth_m"), name="mean_depth_m"
    )
    print(counties.attributes.to_string(index=False, float_format="%.0f"))

    # Attach a census table by key
    print("\n4. Joining census income by FIPS code...")
    census = pd.DataFrame(
        {
            "fips_code": [f"{i + 1:03d}" for i in range(9)],
            "density": np.round(np.random.uniform(20, 400, 9), 1),
        }
    )
    counties = attribute_join(counties, census, "fips", "fips_code")
    print(f"Columns now: {counties.columns}")

    # Transfer density to two service districts by overlap area
    print("\n5. Area-weighted transfer to service districts...")
    districts = GeoTable.from_records(
        [box(500_000, 0, 515_000, 30_000), box(515_000, 0, 530_000, 30_000)],
        [{"district": "west"}, {"district": "east"}],
        crs=32633,
    )
    for district, weights in zip(["west", "east"], overlap_weights(districts, counties)):
        print(f"  {district}: {len(weights)} counties, weights sum {sum(weights.values()):.3f}")

    districts = join_by_location(
        districts,
        counties,
        AreaWeightedAggregate("mean", column="density"),
        name="density",
    )
    print(districts.attributes.to_string(index=False, float_format="%.1f"))

    print("\n" + "=" * 60)
    print("Example completed successfully!")
    print("=" * 60)


if __name__ == "__main__":
    main()
