"""Geometry subpackage — column discovery, offset resolution and buffer preparation.

Architecture
------------
The subpackage has three layers:

**Layer 1 — array kernels** (pure numpy, no pyarrow types involved):

* :mod:`~snaparrow.geometry.offsets` — ``resolve_offsets`` collapses a
  chain of nested offsets arrays, ``invert_offsets`` maps a flat index back
  to its owning item, ``chunk_offsets`` gives the global row index of every
  chunk.  Also holds the thin pyarrow accessors that read offsets and
  coordinates out of list arrays.
* :mod:`~snaparrow.geometry.expand` — ``expand_array_to_coords`` broadcasts
  per-geometry values to per-vertex buffers.
* :mod:`~snaparrow.geometry.picking` — picking color encoding and reverse
  index lookup.

**Layer 2 — resolvers** (:mod:`~snaparrow.geometry.classify`,
:mod:`~snaparrow.geometry.inputs`, :mod:`~snaparrow.geometry.accessors`):

classify column types into a :class:`~snaparrow.utils.types.GeometryKind`,
find the geometry column in a table, turn accessor inputs (constants,
column names, pyarrow columns) into per-chunk buffers and validate them.

**Layer 3 — preparation** (:mod:`~snaparrow.geometry.prepare`):

``prepare_point_chunks``, ``prepare_arc_chunks``, ``prepare_path_chunks``,
``prepare_polygon_chunks`` and the ``prepare_chunks`` dispatcher produce one
:class:`~snaparrow.geometry.buffers.ChunkBuffers` per chunk, ready for a
renderer.  :mod:`~snaparrow.geometry.table_io` reads the tables from disk.
"""
from .accessors import (
    assign_accessor,
    extract_accessors_from_props,
    per_vertex_buffers,
    resolve_accessor,
    validate_accessor_lengths,
    validate_color_column,
)
from .buffers import AttributeBuffer, ChunkBuffers
from .classify import (
    classify,
    get_list_nesting_levels,
    is_linestring_type,
    is_multilinestring_type,
    is_multipoint_type,
    is_multipolygon_type,
    is_point_type,
    is_polygon_type,
    validate_geometry_type,
)
from .expand import expand_array_to_coords
from .inputs import find_geometry_column_index, get_geometry_column, resolve_geometry_column
from .offsets import chunk_offsets, invert_offsets, resolve_offsets
from .picking import (
    decode_picking_color,
    encode_picking_color,
    encode_picking_colors,
    get_picking_index,
    get_picking_index_from_color,
    get_picking_info,
)
from .prepare import (
    prepare_arc_chunks,
    prepare_chunks,
    prepare_path_chunks,
    prepare_point_chunks,
    prepare_polygon_chunks,
)
from .table_io import read_table

__all__ = [
    # Layer 3 — preparation
    'prepare_chunks',
    'prepare_point_chunks',
    'prepare_arc_chunks',
    'prepare_path_chunks',
    'prepare_polygon_chunks',
    'read_table',
    'AttributeBuffer',
    'ChunkBuffers',
    # Layer 2 — resolvers
    'classify',
    'validate_geometry_type',
    'get_list_nesting_levels',
    'is_point_type',
    'is_linestring_type',
    'is_polygon_type',
    'is_multipoint_type',
    'is_multilinestring_type',
    'is_multipolygon_type',
    'find_geometry_column_index',
    'get_geometry_column',
    'resolve_geometry_column',
    'resolve_accessor',
    'assign_accessor',
    'per_vertex_buffers',
    'validate_accessor_lengths',
    'validate_color_column',
    'extract_accessors_from_props',
    # Layer 1 — kernels
    'resolve_offsets',
    'invert_offsets',
    'chunk_offsets',
    'expand_array_to_coords',
    'encode_picking_color',
    'decode_picking_color',
    'encode_picking_colors',
    'get_picking_index',
    'get_picking_index_from_color',
    'get_picking_info',
]
