"""SnapArrow: decode GeoArrow geometry columns into flat per-vertex render buffers.

SnapArrow takes pyarrow tables holding native GeoArrow geometry (points,
line-strings, polygons and their multi-part variants) and prepares, chunk by
chunk, the flat typed buffers a renderer consumes. It includes:

- **Offset resolution**: collapse nested offsets into one geometry → vertex mapping
- **Accessor broadcast**: expand per-feature attributes to one value per vertex
- **Picking**: per-vertex feature colors and primitive → row reverse lookup
- **CLI tools**: ``snaparrow-inspect`` to summarise the buffers of a file

Typical use::

    import pyarrow.parquet as pq
    from snaparrow import chunk_offsets, get_picking_index, prepare_polygon_chunks

    table = pq.read_table('buildings.parquet')
    chunks = prepare_polygon_chunks(table, get_fill_color='color', get_elevation='height')
    offsets = chunk_offsets(table.column('geometry'))

    # a renderer reports primitive 12 of chunk 3 under the cursor
    row_index = get_picking_index(chunks[3], 12, offsets)

"""

from ._config import sys_info  # noqa: F401
from ._version import __version__  # noqa: F401
from .errors import (
    InvalidColorEncodingError,
    LengthMismatchError,
    MissingGeometryColumnError,
    SnapArrowError,
    TypeMismatchError,
    UnsupportedCoordinateEncodingError,
)
from .geometry import (
    AttributeBuffer,
    ChunkBuffers,
    chunk_offsets,
    classify,
    expand_array_to_coords,
    get_picking_index,
    get_picking_info,
    invert_offsets,
    prepare_arc_chunks,
    prepare_chunks,
    prepare_path_chunks,
    prepare_point_chunks,
    prepare_polygon_chunks,
    read_table,
    resolve_offsets,
)
from .utils.types import GeometryKind

# Export list
__all__ = [
    "__version__",
    "sys_info",
    "GeometryKind",
    "AttributeBuffer",
    "ChunkBuffers",
    "classify",
    "resolve_offsets",
    "invert_offsets",
    "chunk_offsets",
    "expand_array_to_coords",
    "prepare_chunks",
    "prepare_point_chunks",
    "prepare_arc_chunks",
    "prepare_path_chunks",
    "prepare_polygon_chunks",
    "get_picking_index",
    "get_picking_info",
    "read_table",
    "SnapArrowError",
    "TypeMismatchError",
    "LengthMismatchError",
    "InvalidColorEncodingError",
    "MissingGeometryColumnError",
    "UnsupportedCoordinateEncodingError",
]
