"""Tests for the chunk-wise buffer preparation pipeline.

All tests run on small in-memory GeoArrow tables (see ``conftest.py``); no
file is touched.
"""

import numpy as np
import pyarrow as pa
import pytest
from conftest import POLYGON_RINGS, geo_field, make_table, nested, points, polygon_array

from snaparrow.errors import (
    InvalidColorEncodingError,
    LengthMismatchError,
    MissingGeometryColumnError,
    TypeMismatchError,
    UnsupportedCoordinateEncodingError,
)
from snaparrow.geometry.offsets import chunk_offsets
from snaparrow.geometry.picking import get_picking_index, get_picking_info
from snaparrow.geometry.prepare import (
    DEFAULT_COLOR,
    prepare_arc_chunks,
    prepare_chunks,
    prepare_path_chunks,
    prepare_point_chunks,
    prepare_polygon_chunks,
)
from snaparrow.utils.types import GeometryKind

# ---------------------------------------------------------------------------
# Polygons
# ---------------------------------------------------------------------------

class TestPreparePolygon:
    def test_single_chunk(self, polygon_table):
        chunks = prepare_polygon_chunks(polygon_table, get_fill_color="color", get_elevation="height")
        assert len(chunks) == 1
        buffers = chunks[0]
        assert buffers.kind is GeometryKind.POLYGON
        assert buffers.length == 2
        np.testing.assert_array_equal(buffers.start_indices, [0, 4, 11])
        assert buffers.num_vertices == 11

        position = buffers.attributes["get_polygon"]
        assert position.size == 2
        assert position.value.shape == (22,)

    def test_attributes_broadcast_per_vertex(self, polygon_table):
        buffers = prepare_polygon_chunks(
            polygon_table, get_fill_color="color", get_elevation="height"
        )[0]
        fill = buffers.attributes["get_fill_color"]
        assert fill.normalized
        rgba = fill.value.reshape(-1, 4)
        assert rgba.shape == (11, 4)
        assert np.all(rgba[:4] == [255, 0, 0, 255])
        assert np.all(rgba[4:] == [0, 0, 255, 128])
        np.testing.assert_array_equal(
            buffers.attributes["get_elevation"].value, [10.0] * 4 + [20.0] * 7
        )

    def test_defaults_are_constants(self, polygon_table):
        buffers = prepare_polygon_chunks(polygon_table)[0]
        assert buffers.props["get_line_color"] == DEFAULT_COLOR
        assert buffers.props["get_elevation"] == 1000
        assert "get_fill_color" not in buffers.attributes

    def test_none_accessor_uses_default(self, polygon_table):
        buffers = prepare_polygon_chunks(polygon_table, get_fill_color=None)[0]
        assert buffers.props["get_fill_color"] == DEFAULT_COLOR

    def test_no_picking_for_single_part(self, polygon_table):
        buffers = prepare_polygon_chunks(polygon_table)[0]
        assert buffers.inverted_geom_offsets is None
        assert buffers.picking_colors is None

    def test_empty_ring(self):
        data = nested([0, 1, 3], nested([0, 4, 4, 7], points(7)))
        buffers = prepare_polygon_chunks(make_table(data, "geoarrow.polygon"))[0]
        np.testing.assert_array_equal(buffers.start_indices, [0, 4, 7])

    def test_chunks_and_picking(self, chunked_polygon_table):
        chunks = prepare_polygon_chunks(chunked_polygon_table, get_elevation="height")
        assert [b.chunk_index for b in chunks] == [0, 1]
        offsets = chunk_offsets(chunked_polygon_table.column("geometry"))
        assert get_picking_index(chunks[1], 1, offsets) == 3
        info = get_picking_info(chunked_polygon_table, chunks[1], 0, offsets)
        assert info["index"] == 2
        assert info["object"]["name"] == "c"

    def test_sliced_table_rebased(self, polygon_table):
        buffers = prepare_polygon_chunks(polygon_table.slice(1, 1), get_fill_color="color")[0]
        assert buffers.length == 1
        np.testing.assert_array_equal(buffers.start_indices, [0, 7])
        np.testing.assert_array_equal(
            buffers.attributes["get_polygon"].value, np.arange(8, 22, dtype=np.float64)
        )
        assert buffers.attributes["get_fill_color"].value.shape == (28,)

    def test_geometry_by_array(self, polygon_table):
        column = polygon_table.column("geometry")
        chunks = prepare_polygon_chunks(None, get_polygon=column, get_elevation=5)
        assert chunks[0].kind is GeometryKind.POLYGON
        assert chunks[0].props["get_elevation"] == 5

    def test_geometry_by_name_untagged(self):
        data = nested([0, 1, 3], nested(POLYGON_RINGS, points(11)))
        table = pa.table({"shape": data})
        chunks = prepare_polygon_chunks(table, get_polygon="shape")
        assert chunks[0].length == 2

    def test_null_color_row_reads_zero(self):
        color = pa.array([[255, 0, 0, 255], None], type=pa.list_(pa.uint8(), 4))
        table = make_table(polygon_array(), "geoarrow.polygon", color=color)
        buffers = prepare_polygon_chunks(table, get_fill_color="color")[0]
        rgba = buffers.attributes["get_fill_color"].value.reshape(-1, 4)
        assert rgba.shape == (11, 4)
        np.testing.assert_array_equal(rgba[:4], [[255, 0, 0, 255]] * 4)
        assert not rgba[4:].any()

    def test_column_chunked_unlike_geometry(self):
        schema = pa.schema([
            geo_field("geometry", polygon_array().type, "geoarrow.polygon"),
            pa.field("height", pa.float64()),
        ])
        table = pa.Table.from_arrays(
            [pa.chunked_array([polygon_array()]), pa.chunked_array([[10.0], [20.0]])],
            schema=schema,
        )
        chunks = prepare_polygon_chunks(table, get_elevation="height")
        assert len(chunks) == 1
        np.testing.assert_array_equal(
            chunks[0].attributes["get_elevation"].value, [10.0] * 4 + [20.0] * 7
        )

        offsets = chunk_offsets(table.column("geometry"))
        np.testing.assert_array_equal(offsets, [0, 2])
        assert get_picking_index(chunks[0], 1, offsets) == 1


class TestPrepareMultiPolygon:
    def test_parts_rendered_separately(self, multipolygon_table):
        buffers = prepare_polygon_chunks(multipolygon_table, get_elevation="height")[0]
        assert buffers.kind is GeometryKind.MULTIPOLYGON
        assert buffers.length == 3
        np.testing.assert_array_equal(buffers.start_indices, [0, 4, 7, 11])

    def test_inverted_offsets_map_parts_to_features(self, multipolygon_table):
        buffers = prepare_polygon_chunks(multipolygon_table)[0]
        np.testing.assert_array_equal(buffers.inverted_geom_offsets, [0, 0, 1])
        assert buffers.inverted_geom_offsets.dtype == np.uint8

    def test_attributes_follow_features(self, multipolygon_table):
        buffers = prepare_polygon_chunks(multipolygon_table, get_elevation="height")[0]
        np.testing.assert_array_equal(
            buffers.attributes["get_elevation"].value, [1.5] * 7 + [2.5] * 4
        )

    def test_picking_colors_per_feature(self, multipolygon_table):
        buffers = prepare_polygon_chunks(multipolygon_table)[0]
        picking = buffers.picking_colors
        assert picking.size == 3
        rgb = picking.value.reshape(-1, 3)
        assert rgb.shape == (11, 3)
        assert np.all(rgb[:7] == [1, 0, 0])
        assert np.all(rgb[7:] == [2, 0, 0])

    def test_custom_encoder(self, multipolygon_table):
        buffers = prepare_polygon_chunks(
            multipolygon_table, encode_picking_color=lambda i: (0, 0, i + 7)
        )[0]
        rgb = buffers.picking_colors.value.reshape(-1, 3)
        assert rgb[0].tolist() == [0, 0, 7]
        assert rgb[-1].tolist() == [0, 0, 8]

    def test_picking_index(self, multipolygon_table):
        buffers = prepare_polygon_chunks(multipolygon_table)[0]
        offsets = chunk_offsets(multipolygon_table.column("geometry"))
        assert [get_picking_index(buffers, i, offsets) for i in range(3)] == [0, 0, 1]

    def test_sliced_table(self, multipolygon_table):
        buffers = prepare_polygon_chunks(multipolygon_table.slice(1, 1), get_elevation="height")[0]
        assert buffers.length == 1
        np.testing.assert_array_equal(buffers.start_indices, [0, 4])
        np.testing.assert_array_equal(buffers.inverted_geom_offsets, [0])
        assert np.all(buffers.picking_colors.value.reshape(-1, 3) == [1, 0, 0])
        np.testing.assert_array_equal(buffers.attributes["get_elevation"].value, [2.5] * 4)
        np.testing.assert_array_equal(
            buffers.attributes["get_polygon"].value, np.arange(14, 22, dtype=np.float64)
        )


# ---------------------------------------------------------------------------
# Points and arcs
# ---------------------------------------------------------------------------

class TestPreparePoint:
    def test_points(self, point_table):
        buffers = prepare_point_chunks(point_table, get_radius="radius", get_fill_color="color")[0]
        assert buffers.kind is GeometryKind.POINT
        assert buffers.length == 3
        assert buffers.start_indices is None
        assert buffers.num_vertices == 3
        np.testing.assert_array_equal(buffers.attributes["get_radius"].value, [1.0, 2.0, 3.0])
        assert buffers.attributes["get_fill_color"].value.shape == (12,)
        assert buffers.props["get_line_width"] == 1

    def test_multipoints(self, multipoint_table):
        buffers = prepare_point_chunks(multipoint_table, get_radius="radius")[0]
        assert buffers.kind is GeometryKind.MULTIPOINT
        assert buffers.length == 5
        np.testing.assert_array_equal(buffers.inverted_geom_offsets, [0, 0, 1, 1, 1])
        np.testing.assert_array_equal(buffers.attributes["get_radius"].value, [4.0] * 2 + [8.0] * 3)
        assert buffers.picking_colors.value.shape == (15,)

    def test_null_point_keeps_row(self):
        geometry = pa.array([[0.0, 1.0], None, [4.0, 5.0]], type=pa.list_(pa.float64(), 2))
        table = make_table(geometry, "geoarrow.point", radius=pa.array([1.0, 2.0, 3.0]))
        buffers = prepare_point_chunks(table, get_radius="radius")[0]
        position = buffers.attributes["get_position"].value
        assert position.shape == (2 * buffers.length,)
        np.testing.assert_array_equal(position[4:6], [4.0, 5.0])
        np.testing.assert_array_equal(buffers.attributes["get_radius"].value, [1.0, 2.0, 3.0])

    def test_untagged_list_as_multipoint(self):
        data = nested([0, 2, 5], points(5))
        buffers = prepare_point_chunks(None, get_position=data)[0]
        assert buffers.kind is GeometryKind.MULTIPOINT


class TestPrepareArc:
    def _table(self):
        return pa.table({
            "source": points(2),
            "target": points(2, start=100.0),
            "width": pa.array([1.0, 4.0]),
        })

    def test_arcs(self):
        buffers = prepare_arc_chunks(self._table(), "source", "target", get_width="width")[0]
        assert buffers.length == 2
        np.testing.assert_array_equal(buffers.attributes["get_source_position"].value, [0, 1, 2, 3])
        np.testing.assert_array_equal(
            buffers.attributes["get_target_position"].value, [100, 101, 102, 103]
        )
        np.testing.assert_array_equal(buffers.attributes["get_width"].value, [1.0, 4.0])
        assert buffers.props["get_tilt"] == 0

    def test_dispatch_drops_picking_encoder(self):
        chunks = prepare_chunks(
            self._table(),
            "arc",
            get_source_position="source",
            get_target_position="target",
            encode_picking_color=lambda i: (0, 0, 0),
        )
        assert chunks[0].picking_colors is None

    def test_target_length_mismatch(self):
        with pytest.raises(LengthMismatchError):
            prepare_arc_chunks(None, points(2), points(3))

    def test_target_chunked_unlike_source(self):
        source = pa.chunked_array([points(2)])
        target = pa.chunked_array([points(1), points(1, start=100.0)])
        buffers = prepare_arc_chunks(None, source, target)[0]
        np.testing.assert_array_equal(
            buffers.attributes["get_target_position"].value, [0, 1, 100, 101]
        )


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

class TestPreparePath:
    def test_linestrings(self, linestring_table):
        buffers = prepare_path_chunks(
            linestring_table, get_width="width", get_color=(255, 0, 0, 255)
        )[0]
        assert buffers.kind is GeometryKind.LINESTRING
        assert buffers.length == 2
        np.testing.assert_array_equal(buffers.start_indices, [0, 2, 5])
        np.testing.assert_array_equal(buffers.attributes["get_width"].value, [1, 1, 3, 3, 3])
        assert buffers.props["get_color"] == (255, 0, 0, 255)
        assert buffers.inverted_geom_offsets is None

    def test_multilinestrings(self, multilinestring_table):
        buffers = prepare_path_chunks(multilinestring_table, get_width="width")[0]
        assert buffers.kind is GeometryKind.MULTILINESTRING
        assert buffers.length == 3
        np.testing.assert_array_equal(buffers.start_indices, [0, 2, 5, 7])
        np.testing.assert_array_equal(buffers.inverted_geom_offsets, [0, 0, 1])
        np.testing.assert_array_equal(
            buffers.attributes["get_width"].value, [2.0] * 5 + [5.0] * 2
        )
        rgb = buffers.picking_colors.value.reshape(-1, 3)
        assert np.all(rgb[:5] == [1, 0, 0])
        assert np.all(rgb[5:] == [2, 0, 0])


# ---------------------------------------------------------------------------
# Threads
# ---------------------------------------------------------------------------

class TestMaxWorkers:
    def test_parallel_matches_serial(self, chunked_polygon_table):
        table = pa.Table.from_batches(chunked_polygon_table.to_batches() * 2)
        serial = prepare_polygon_chunks(table, get_fill_color="color", max_workers=1)
        parallel = prepare_polygon_chunks(table, get_fill_color="color", max_workers=4)
        assert [b.chunk_index for b in parallel] == [0, 1, 2, 3]
        for a, b in zip(serial, parallel):
            np.testing.assert_array_equal(a.start_indices, b.start_indices)
            np.testing.assert_array_equal(
                a.attributes["get_fill_color"].value, b.attributes["get_fill_color"].value
            )


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class TestPrepareErrors:
    def test_accessor_length_mismatch(self, polygon_table):
        with pytest.raises(LengthMismatchError):
            prepare_polygon_chunks(polygon_table, get_elevation=pa.array([1.0, 2.0, 3.0]))

    def test_length_mismatch_without_validation(self, polygon_table):
        with pytest.raises(LengthMismatchError, match="get_elevation"):
            prepare_polygon_chunks(
                polygon_table, get_elevation=pa.array([1.0, 2.0, 3.0]), validate=False
            )

    def test_color_width_two(self, polygon_table):
        bad = pa.FixedSizeListArray.from_arrays(pa.array([1, 2, 3, 4], type=pa.uint8()), 2)
        with pytest.raises(InvalidColorEncodingError):
            prepare_polygon_chunks(polygon_table, get_fill_color=bad)

    def test_validate_false_skips_color_check(self, polygon_table):
        bad = pa.FixedSizeListArray.from_arrays(pa.array([1, 2, 3, 4], type=pa.uint8()), 2)
        buffers = prepare_polygon_chunks(polygon_table, get_fill_color=bad, validate=False)[0]
        assert buffers.attributes["get_fill_color"].size == 2

    def test_unknown_column_reference(self, polygon_table):
        with pytest.raises(KeyError):
            prepare_polygon_chunks(polygon_table, get_elevation="nope")

    def test_missing_geometry_column(self):
        table = pa.table({"value": [1, 2]})
        with pytest.raises(MissingGeometryColumnError):
            prepare_polygon_chunks(table)

    def test_wrong_kind(self, linestring_table):
        with pytest.raises(TypeMismatchError):
            prepare_polygon_chunks(linestring_table, get_polygon="geometry")

    def test_tag_contradicts_layout(self):
        table = make_table(nested([0, 2], points(2)), "geoarrow.polygon")
        with pytest.raises(TypeMismatchError):
            prepare_polygon_chunks(table)

    def test_struct_coordinates(self):
        xy = pa.StructArray.from_arrays(
            [pa.array([0.0, 1.0]), pa.array([0.0, 1.0])], names=["x", "y"]
        )
        table = make_table(nested([0, 2], xy), "geoarrow.linestring")
        with pytest.raises(UnsupportedCoordinateEncodingError):
            prepare_path_chunks(table)

    def test_unknown_keyword(self, polygon_table):
        with pytest.raises(TypeError):
            prepare_polygon_chunks(polygon_table, fill_color="color")

    def test_geometry_wrong_type(self, polygon_table):
        with pytest.raises(TypeError):
            prepare_polygon_chunks(polygon_table, get_polygon=42)


class TestPrepareChunks:
    def test_dispatch(self, polygon_table):
        chunks = prepare_chunks(polygon_table, "solid_polygon", get_fill_color="color")
        assert chunks[0].kind is GeometryKind.POLYGON

    def test_unknown_layer(self, polygon_table):
        with pytest.raises(ValueError):
            prepare_chunks(polygon_table, "heatmap")

    def test_unknown_option(self, polygon_table):
        with pytest.raises(TypeError):
            prepare_chunks(polygon_table, "polygon", wireframe=True)
