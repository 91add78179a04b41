"""Accessor resolution: constants, per-geometry columns and per-vertex buffers.

An accessor supplies one attribute (color, width, elevation, ...) for every
rendered geometry.  It can be given as

* a constant (any non-arrow value, e.g. ``(255, 0, 0, 255)`` or ``3.5``),
  shared by the whole chunk;
* a pyarrow column (``ChunkedArray`` or ``Array``) with one value per
  geometry, which is sliced per chunk and, when geometry → coordinate
  offsets are known, broadcast to one value per vertex;
* a list of :class:`~snaparrow.geometry.buffers.AttributeBuffer` objects,
  one per chunk, already expanded to one value per vertex.

Column references given as strings are looked up in the table by the
preparers before they reach this module.
"""

import logging

import numpy as np
import pyarrow as pa

from ..errors import InvalidColorEncodingError, LengthMismatchError, TypeMismatchError
from .buffers import AttributeBuffer
from .expand import expand_array_to_coords
from .offsets import fixed_size_values

# Module logger
logger = logging.getLogger(__name__)


def is_column_reference(value):
    """Return ``True`` if the accessor names a column in the table."""
    return isinstance(value, str)


def is_vector_accessor(value):
    """Return ``True`` for pyarrow column accessors."""
    return isinstance(value, (pa.ChunkedArray, pa.Array))


def is_per_vertex_accessor(value):
    """Return ``True`` for a list of pre-expanded per-chunk buffers."""
    return (
        isinstance(value, list)
        and len(value) > 0
        and all(isinstance(item, AttributeBuffer) for item in value)
    )


def _as_chunked(value):
    if isinstance(value, pa.ChunkedArray):
        return value
    if isinstance(value, pa.Array):
        return pa.chunked_array([value])
    return None


def _single_chunk(chunked):
    if chunked.num_chunks == 1:
        return chunked.chunk(0)
    if chunked.num_chunks == 0:
        return pa.array([], type=chunked.type)
    return pa.concat_arrays(chunked.chunks)


def align_accessor(accessor, geometry_column):
    """Re-chunk an accessor column along the geometry column's chunks.

    A ``pyarrow.Array`` or ``ChunkedArray`` whose total length equals the
    geometry column's is sliced into a ``ChunkedArray`` with the same chunk
    layout; columns of one table may be chunked differently.  Everything
    else, including columns of a different length, is returned unchanged
    and left to :func:`validate_accessor_lengths`.
    """
    if not is_vector_accessor(accessor) or not isinstance(geometry_column, pa.ChunkedArray):
        return accessor
    if len(accessor) != len(geometry_column):
        return accessor
    geom_lengths = [len(chunk) for chunk in geometry_column.chunks]
    if isinstance(accessor, pa.ChunkedArray):
        if [len(chunk) for chunk in accessor.chunks] == geom_lengths:
            return accessor
        logger.debug(
            "Re-chunking accessor of %d chunk(s) to %d", accessor.num_chunks, len(geom_lengths)
        )

    chunks = []
    start = 0
    for length in geom_lengths:
        chunk = accessor.slice(start, length)
        if isinstance(chunk, pa.ChunkedArray):
            chunk = _single_chunk(chunk)
        chunks.append(chunk)
        start += length
    return pa.chunked_array(chunks, type=accessor.type)


def _to_numpy(values):
    # nulls become 0 so integer columns keep their dtype
    if values.null_count:
        values = values.fill_null(0)
    return values.to_numpy(zero_copy_only=False)


def _chunk_values(column_data):
    """Return ``(values, size, normalized)`` for one accessor chunk.

    Null rows keep their slot and read as zeros.
    """
    data_type = column_data.type
    if pa.types.is_fixed_size_list(data_type):
        child_type = data_type.value_type
        if not (pa.types.is_integer(child_type) or pa.types.is_floating(child_type)):
            raise TypeMismatchError(
                f"Expected a numeric fixed_size_list accessor, got {data_type}."
            )
        values = _to_numpy(fixed_size_values(column_data))
        # 0-255 colors must not be rescaled by the consumer
        return values, data_type.list_size, pa.types.is_uint8(child_type)
    if pa.types.is_integer(data_type) or pa.types.is_floating(data_type):
        return _to_numpy(column_data), 1, False
    raise TypeMismatchError(
        f"Expected a numeric or fixed_size_list accessor column, got {data_type}."
    )


def resolve_accessor(prop_input, chunk_idx, geom_coord_offsets=None, name="accessor"):
    """Resolve an accessor for one chunk.

    Parameters
    ----------
    prop_input : object
        Constant, pyarrow column, or list of per-chunk ``AttributeBuffer``.
    chunk_idx : int
        Index of the chunk being prepared.
    geom_coord_offsets : numpy.ndarray or None, optional
        Geometry → coordinate offsets.  When given, per-geometry columns are
        broadcast to one value per coordinate; when ``None`` the per-geometry
        slice is used directly.
    name : str, optional
        Accessor name used in error messages.

    Returns
    -------
    AttributeBuffer, object or None
        ``None`` for a missing accessor, an :class:`AttributeBuffer` for
        columns and per-vertex buffers, otherwise the constant unchanged.

    Raises
    ------
    TypeMismatchError
        If the column is neither numeric nor a numeric fixed-size list.
    LengthMismatchError
        If a per-vertex buffer does not cover the chunk's coordinates, or a
        column chunk does not hold one value per geometry.
    """
    if prop_input is None:
        return None

    if is_per_vertex_accessor(prop_input):
        buffer = prop_input[chunk_idx]
        if geom_coord_offsets is not None and len(buffer) != int(geom_coord_offsets[-1]):
            raise LengthMismatchError(
                f"Per-vertex buffer {name!r} for chunk {chunk_idx} has {len(buffer)} values "
                f"but the chunk has {int(geom_coord_offsets[-1])} vertices."
            )
        return buffer

    column = _as_chunked(prop_input)
    if column is None:
        return prop_input

    values, size, normalized = _chunk_values(column.chunk(chunk_idx))
    if geom_coord_offsets is not None:
        n_geoms = len(geom_coord_offsets) - 1
        if values.shape[0] != size * n_geoms:
            raise LengthMismatchError(
                f"Accessor {name!r} has {values.shape[0] // size} values in chunk "
                f"{chunk_idx} but the geometry chunk has {n_geoms}."
            )
        values = expand_array_to_coords(values, size, geom_coord_offsets)
    return AttributeBuffer(value=values, size=size, normalized=normalized)


def assign_accessor(buffers, prop_name, prop_input, chunk_idx, geom_coord_offsets=None):
    """Resolve an accessor and store it on a :class:`ChunkBuffers`.

    This is useful as a helper because a constant is stored in
    ``buffers.props`` while a vectorised accessor is stored in
    ``buffers.attributes``.  A missing accessor leaves both untouched.
    """
    resolved = resolve_accessor(prop_input, chunk_idx, geom_coord_offsets, prop_name)
    if resolved is None:
        return
    if isinstance(resolved, AttributeBuffer):
        buffers.attributes[prop_name] = resolved
    else:
        buffers.props[prop_name] = resolved


def validate_accessor_lengths(geometry_column, accessors):
    """Check that every column accessor is chunked like the geometry column.

    Parameters
    ----------
    geometry_column : pyarrow.ChunkedArray or pyarrow.Array
        Geometry column the accessors belong to.
    accessors : dict
        Mapping of accessor name → accessor value.  Constants are ignored.

    Raises
    ------
    LengthMismatchError
        If an accessor has a different number of chunks, or a chunk with a
        different length than the matching geometry chunk.
    """
    geometry_column = _as_chunked(geometry_column)
    geom_lengths = [len(chunk) for chunk in geometry_column.chunks]

    for name, accessor in accessors.items():
        if is_per_vertex_accessor(accessor):
            if len(accessor) != len(geom_lengths):
                logger.error("Accessor %r chunk count mismatch", name)
                raise LengthMismatchError(
                    f"Accessor {name!r} provides {len(accessor)} per-vertex buffers "
                    f"but the geometry column has {len(geom_lengths)} chunks."
                )
            continue

        column = _as_chunked(accessor)
        if column is None:
            continue
        if column.num_chunks != len(geom_lengths):
            logger.error("Accessor %r chunk count mismatch", name)
            raise LengthMismatchError(
                f"Accessor {name!r} has {column.num_chunks} chunks but the "
                f"geometry column has {len(geom_lengths)}."
            )
        for chunk_idx, (chunk, expected) in enumerate(zip(column.chunks, geom_lengths)):
            if len(chunk) != expected:
                logger.error("Accessor %r length mismatch in chunk %d", name, chunk_idx)
                raise LengthMismatchError(
                    f"Accessor {name!r} has {len(chunk)} values in chunk {chunk_idx} "
                    f"but the geometry column has {expected}."
                )


def validate_color_column(column, name="color"):
    """Check that a color accessor holds 3 or 4 ``uint8`` channels.

    Raises
    ------
    InvalidColorEncodingError
        If the column is not ``fixed_size_list<uint8>[3|4]``.
    """
    data_type = column.type
    if (
        not pa.types.is_fixed_size_list(data_type)
        or data_type.list_size not in (3, 4)
        or not pa.types.is_uint8(data_type.value_type)
    ):
        raise InvalidColorEncodingError(
            f"Color accessor {name!r} must be fixed_size_list<uint8> with 3 or 4 "
            f"channels, got {data_type}."
        )


def extract_accessors_from_props(props, exclude_keys=()):
    """Split keyword props into accessors and other options.

    Keys starting with ``get_`` are accessors; keys listed in
    *exclude_keys* are dropped from both results.

    Returns
    -------
    accessors, other_props : dict, dict
    """
    accessors = {}
    other_props = {}
    for key, value in props.items():
        if key in exclude_keys:
            continue
        if key.startswith("get_"):
            accessors[key] = value
        else:
            other_props[key] = value
    return accessors, other_props


def per_vertex_buffers(values, size, normalized=False):
    """Wrap per-chunk numpy arrays as a per-vertex accessor.

    Parameters
    ----------
    values : sequence of array-like
        One flat or ``(n_vertices, size)`` array per chunk.
    size : int
        Components per vertex.
    normalized : bool, optional
        Passed to every :class:`AttributeBuffer`.

    Returns
    -------
    list of AttributeBuffer
    """
    return [
        AttributeBuffer(value=np.asarray(v).reshape(-1), size=size, normalized=normalized)
        for v in values
    ]
