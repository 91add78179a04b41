"""Picking support: per-vertex feature colors and reverse index lookup.

A picking render draws every vertex in a color that encodes the feature it
belongs to.  Reading a pixel back and decoding its color gives the
chunk-local feature index, which :func:`get_picking_index` turns into the
row index of the whole table.

Colors encode ``index + 1`` so that black ``(0, 0, 0)`` stays free to mean
"nothing was hit".
"""

import numpy as np

# Largest feature index representable in 24 bits (black is reserved)
MAX_PICKING_INDEX = 2 ** 24 - 2


def encode_picking_color(index):
    """Encode a feature index as an RGB triple.

    Parameters
    ----------
    index : int
        Chunk-local feature index in ``[0, MAX_PICKING_INDEX]``.

    Returns
    -------
    tuple of int
        ``(r, g, b)`` with ``index + 1`` packed little-endian.

    Raises
    ------
    ValueError
        If *index* does not fit into 24 bits.
    """
    if index < 0 or index > MAX_PICKING_INDEX:
        raise ValueError(f"Picking index {index} out of range [0, {MAX_PICKING_INDEX}].")
    value = index + 1
    return (value & 255, (value >> 8) & 255, (value >> 16) & 255)


def decode_picking_color(color):
    """Decode an RGB triple produced by :func:`encode_picking_color`.

    Returns
    -------
    int
        Feature index, or ``-1`` for black (no feature).
    """
    r, g, b = (int(c) for c in color[:3])
    return r + (g << 8) + (b << 16) - 1


def decode_picking_colors(colors):
    """Vectorised :func:`decode_picking_color` for an ``(..., 3)`` array."""
    colors = np.asarray(colors, dtype=np.int64)
    return colors[..., 0] + (colors[..., 1] << 8) + (colors[..., 2] << 16) - 1


def encode_picking_colors(geom_offsets, encode=encode_picking_color):
    """Build a per-vertex picking color buffer.

    The encoder is called once per *feature* and the resulting color is
    replicated to every vertex the feature owns, so its cost does not
    scale with the vertex count.

    Parameters
    ----------
    geom_offsets : numpy.ndarray
        Feature → coordinate offsets (for MultiPolygon data the resolved
        multipolygon → coordinate offsets).
    encode : callable, optional
        ``encode(feature_index) -> (r, g, b)``.  Defaults to
        :func:`encode_picking_color`.

    Returns
    -------
    numpy.ndarray
        ``uint8`` array of ``3 * geom_offsets[-1]`` elements.
    """
    geom_offsets = np.asarray(geom_offsets)
    n_features = geom_offsets.shape[0] - 1
    num_coords = int(geom_offsets[-1]) if geom_offsets.size else 0
    picking_colors = np.zeros(num_coords * 3, dtype=np.uint8)
    if n_features <= 0:
        return picking_colors

    feature_colors = np.empty((n_features, 3), dtype=np.uint8)
    for feature_idx in range(n_features):
        feature_colors[feature_idx] = encode(feature_idx)[:3]

    start = int(geom_offsets[0]) * 3
    picking_colors[start:] = np.repeat(feature_colors, np.diff(geom_offsets), axis=0).reshape(-1)
    return picking_colors


def get_picking_index(buffers, index, offsets):
    """Map a rendered primitive index to the global row index.

    Parameters
    ----------
    buffers : ChunkBuffers
        Buffers of the chunk the primitive was drawn from.
    index : int
        Primitive index as rendered within that chunk.
    offsets : numpy.ndarray
        Cumulative row counts as returned by
        :func:`snaparrow.geometry.offsets.chunk_offsets`.

    Returns
    -------
    int
        Row index in the full table.
    """
    if buffers.inverted_geom_offsets is not None:
        index = int(buffers.inverted_geom_offsets[index])
    return int(index) + int(offsets[buffers.chunk_index])


def get_picking_index_from_color(buffers, color, offsets):
    """Map a picked RGB color to the global row index, or ``-1`` for none."""
    feature_idx = decode_picking_color(color)
    if feature_idx < 0:
        return -1
    return feature_idx + int(offsets[buffers.chunk_index])


def get_picking_info(table, buffers, index, offsets):
    """Return the global index and the source row of a picked primitive.

    Parameters
    ----------
    table : pyarrow.Table
        Table the buffers were prepared from.
    buffers : ChunkBuffers
        Buffers of the chunk the primitive was drawn from.
    index : int
        Primitive index as rendered within that chunk.
    offsets : numpy.ndarray
        Cumulative row counts of the geometry column's chunks.

    Returns
    -------
    dict
        ``{"index": global_index, "object": row}`` where ``row`` maps column
        names to Python values.
    """
    global_index = get_picking_index(buffers, index, offsets)
    row = table.slice(global_index, 1).to_pylist()[0]
    return {"index": global_index, "object": row}
