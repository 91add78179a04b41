"""Offset resolution and inversion over nested GeoArrow list arrays.

An offsets array of ``n + 1`` non-decreasing integers delimits ``n``
variable-length items in a child domain.  Nested geometry kinds carry one
offsets array per list level; the functions here collapse such a chain into
a single geometry → coordinate mapping, and invert a mapping so a flat index
can be traced back to the item that owns it.

Offsets read from pyarrow arrays index into the *unsliced* child
(``ListArray.values``), so a chain resolved through ``.values`` stays
consistent even for sliced chunks.
"""

import numpy as np
import pyarrow as pa


def resolve_offsets(levels):
    """Collapse a chain of offsets arrays into one resolved offsets array.

    Starting from the outermost array, each element is re-indexed through
    the next level's offsets until only the level referencing the flat
    coordinate buffer remains, i.e. ``R[i] = O_k[... O_2[O_1[i]] ...]``.

    Parameters
    ----------
    levels : sequence of array-like
        Offsets arrays ordered outer → inner.  The last one indexes into
        the flat coordinate buffer.

    Returns
    -------
    numpy.ndarray
        Array of ``len(levels[0])`` elements with the dtype of the innermost
        offsets array.

    Raises
    ------
    ValueError
        If *levels* is empty.
    """
    if len(levels) == 0:
        raise ValueError("resolve_offsets needs at least one offsets array")
    resolved = np.asarray(levels[0])
    for inner in levels[1:]:
        resolved = np.asarray(inner)[resolved]
    return resolved


def invert_offsets(offsets):
    """Invert offsets so that lookup can go in the opposite direction.

    Every slot ``p`` of the output holds the item index ``g`` for which
    ``offsets[g] <= p < offsets[g + 1]``.

    The output dtype is the smallest unsigned integer able to hold the
    number of source items: ``uint8`` when ``len(offsets) < 2**8``,
    ``uint16`` when ``len(offsets) < 2**16`` and ``uint32`` otherwise.

    Parameters
    ----------
    offsets : array-like
        Offsets array of ``n + 1`` non-decreasing integers.

    Returns
    -------
    numpy.ndarray
        Array of length ``offsets[-1]``.
    """
    offsets = np.asarray(offsets)
    n_items = offsets.shape[0]
    if n_items < 2 ** 8:
        dtype = np.uint8
    elif n_items < 2 ** 16:
        dtype = np.uint16
    else:
        dtype = np.uint32

    if n_items == 0:
        return np.zeros(0, dtype=dtype)

    inverted = np.zeros(int(offsets[-1]), dtype=dtype)
    counts = np.diff(offsets)
    if counts.size:
        inverted[int(offsets[0]):] = np.repeat(np.arange(n_items - 1, dtype=dtype), counts)
    return inverted


def chunk_offsets(chunked):
    """Return the cumulative row count preceding every chunk.

    Parameters
    ----------
    chunked : pyarrow.ChunkedArray, pyarrow.Table or sequence of int
        Chunked column, table (its record batches) or explicit chunk lengths.
        Pass the geometry column the buffers were prepared from: chunk
        indices of :class:`~snaparrow.geometry.buffers.ChunkBuffers` follow
        its chunks, while a table's record batches split at the chunk
        boundaries of every column and can differ.

    Returns
    -------
    numpy.ndarray
        int64 array of ``n_chunks + 1`` elements starting at 0; element
        ``i`` is the global index of the first row of chunk ``i``.
    """
    if isinstance(chunked, pa.ChunkedArray):
        lengths = [len(chunk) for chunk in chunked.chunks]
    elif isinstance(chunked, pa.Table):
        lengths = [batch.num_rows for batch in chunked.to_batches()]
    else:
        lengths = list(chunked)
    out = np.zeros(len(lengths) + 1, dtype=np.int64)
    np.cumsum(lengths, out=out[1:])
    return out


# ---------------------------------------------------------------------------
# pyarrow accessors
# ---------------------------------------------------------------------------

def _storage(data):
    if isinstance(data, pa.ExtensionArray):
        return data.storage
    return data


def get_value_offsets(data):
    """Return the offsets of a list array as a numpy array."""
    return _storage(data).offsets.to_numpy(zero_copy_only=False)


def get_list_child(data):
    """Return the unsliced child of a list array."""
    return _storage(data).values


def get_point_child(data):
    """Descend through list levels to the ``fixed_size_list`` coordinate array."""
    data = _storage(data)
    while isinstance(data, (pa.ListArray, pa.LargeListArray)):
        data = _storage(data.values)
    return data


def get_flat_coordinates(data):
    """Return the flat interleaved coordinate buffer and its channel width.

    For nested geometry the whole unsliced coordinate child is returned so
    that resolved offsets index into it directly.  For a top-level Point
    array the window belonging to this chunk is returned.

    Null points keep their slot: the window is read from the backing child
    array, so coordinate ``i`` always belongs to row ``i``.

    Returns
    -------
    coords : numpy.ndarray
        1-D floating array of ``n_coords * n_dim`` elements.
    n_dim : int
        Coordinate width (2 or 3).
    """
    points = get_point_child(data)
    n_dim = points.type.list_size
    return fixed_size_values(points).to_numpy(zero_copy_only=False), n_dim


def fixed_size_values(data):
    """Return the child values backing a ``fixed_size_list`` array.

    Unlike ``FixedSizeListArray.flatten()`` the result keeps the
    ``list_size`` slots of null entries, so it always holds
    ``len(data) * list_size`` values.
    """
    data = _storage(data)
    size = data.type.list_size
    return data.values.slice(data.offset * size, len(data) * size)


def get_polygon_resolved_offsets(data):
    """Resolve polygon → coordinate offsets for one Polygon chunk."""
    geom_offsets = get_value_offsets(data)
    ring_offsets = get_value_offsets(get_list_child(data))
    return resolve_offsets([geom_offsets, ring_offsets])


def get_multipolygon_resolved_offsets(data):
    """Resolve multipolygon → coordinate offsets for one MultiPolygon chunk."""
    polygon_data = get_list_child(data)
    ring_data = get_list_child(polygon_data)
    return resolve_offsets([
        get_value_offsets(data),
        get_value_offsets(polygon_data),
        get_value_offsets(ring_data),
    ])


def get_multilinestring_resolved_offsets(data):
    """Resolve multilinestring → coordinate offsets for one MultiLineString chunk."""
    geom_offsets = get_value_offsets(data)
    linestring_offsets = get_value_offsets(get_list_child(data))
    return resolve_offsets([geom_offsets, linestring_offsets])
