"""Shared synthetic GeoArrow tables for the test-suite.

All tables are tiny and built in memory.  Geometry columns carry their
GeoArrow extension name as ``ARROW:extension:name`` field metadata, which is
how native GeoArrow data arrives from Parquet or IPC files.
"""

import numpy as np
import pyarrow as pa
import pytest


def points(n_coords, n_dim=2, start=0.0):
    """Fixed-size list point array with coordinates ``start, start + 1, ...``."""
    flat = np.arange(n_coords * n_dim, dtype=np.float64) + start
    return pa.FixedSizeListArray.from_arrays(pa.array(flat), n_dim)


def nested(offsets, values):
    """Wrap *values* in one list level with the given offsets."""
    return pa.ListArray.from_arrays(pa.array(offsets, type=pa.int32()), values)


def colors(rgba_rows):
    flat = np.asarray(rgba_rows, dtype=np.uint8).reshape(-1)
    return pa.FixedSizeListArray.from_arrays(pa.array(flat, type=pa.uint8()), 4)


def geo_field(name, data_type, extension_name):
    return pa.field(
        name, data_type, metadata={b"ARROW:extension:name": extension_name.encode()}
    )


def make_table(geometry, extension_name, **columns):
    """Single-chunk table with a tagged ``geometry`` column plus *columns*."""
    fields = [geo_field("geometry", geometry.type, extension_name)]
    fields += [pa.field(name, col.type) for name, col in columns.items()]
    return pa.Table.from_arrays([geometry, *columns.values()], schema=pa.schema(fields))


# ---------------------------------------------------------------------------
# Polygon: polygon 0 is a square, polygon 1 a square with a triangular hole
#   ring offsets    [0, 4, 8, 11]
#   polygon offsets [0, 1, 3]
# ---------------------------------------------------------------------------

POLYGON_RINGS = [0, 4, 8, 11]
POLYGON_OFFSETS = [0, 1, 3]


def polygon_array():
    return nested(POLYGON_OFFSETS, nested(POLYGON_RINGS, points(11)))


@pytest.fixture
def polygon_table():
    return make_table(
        polygon_array(),
        "geoarrow.polygon",
        color=colors([[255, 0, 0, 255], [0, 0, 255, 128]]),
        height=pa.array([10.0, 20.0]),
        name=pa.array(["a", "b"]),
    )


@pytest.fixture
def chunked_polygon_table(polygon_table):
    """The polygon table twice, as two record batches (four rows)."""
    batches = polygon_table.to_batches()
    second = polygon_table.set_column(
        polygon_table.schema.get_field_index("name"), "name", pa.array(["c", "d"])
    ).to_batches()
    return pa.Table.from_batches(batches + second)


# ---------------------------------------------------------------------------
# MultiPolygon: feature 0 has two single-ring polygons (4 + 3 coords),
# feature 1 one single-ring polygon (4 coords)
#   ring offsets         [0, 4, 7, 11]
#   polygon offsets      [0, 1, 2, 3]
#   multipolygon offsets [0, 2, 3]
# ---------------------------------------------------------------------------

def multipolygon_array():
    rings = nested([0, 4, 7, 11], points(11))
    polygons = nested([0, 1, 2, 3], rings)
    return nested([0, 2, 3], polygons)


@pytest.fixture
def multipolygon_table():
    return make_table(
        multipolygon_array(),
        "geoarrow.multipolygon",
        color=colors([[1, 2, 3, 4], [5, 6, 7, 8]]),
        height=pa.array([1.5, 2.5]),
    )


# ---------------------------------------------------------------------------
# Points, paths
# ---------------------------------------------------------------------------

@pytest.fixture
def point_table():
    return make_table(
        points(3),
        "geoarrow.point",
        radius=pa.array([1.0, 2.0, 3.0]),
        color=colors([[255, 0, 0, 255], [0, 255, 0, 255], [0, 0, 255, 255]]),
    )


@pytest.fixture
def multipoint_table():
    return make_table(
        nested([0, 2, 5], points(5)),
        "geoarrow.multipoint",
        radius=pa.array([4.0, 8.0]),
    )


@pytest.fixture
def linestring_table():
    return make_table(
        nested([0, 2, 5], points(5)),
        "geoarrow.linestring",
        width=pa.array([1, 3], type=pa.int32()),
    )


@pytest.fixture
def multilinestring_table():
    # feature 0: linestrings of 2 and 3 coords, feature 1: one of 2 coords
    return make_table(
        nested([0, 2, 3], nested([0, 2, 5, 7], points(7))),
        "geoarrow.multilinestring",
        width=pa.array([2.0, 5.0]),
    )
