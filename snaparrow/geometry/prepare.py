"""Chunk-wise preparation of render buffers from GeoArrow tables.

This module contains the buffer-preparation pipeline.  Every preparer
resolves its geometry column and accessors through
:mod:`snaparrow.geometry.inputs`, optionally validates them, and then turns
every chunk (record batch) of the geometry column into a
:class:`~snaparrow.geometry.buffers.ChunkBuffers`:

* :func:`prepare_point_chunks` — Point and MultiPoint columns.
* :func:`prepare_arc_chunks` — pairs of Point columns (source/target).
* :func:`prepare_path_chunks` — LineString and MultiLineString columns.
* :func:`prepare_polygon_chunks` — Polygon and MultiPolygon columns.

:func:`prepare_chunks` dispatches to one of them by layer name.

Chunks never share state, so with ``max_workers > 1`` they are prepared on a
thread pool; results always come back in chunk order.  Validation can be
switched off with ``validate=False`` for trusted inputs, in which case
malformed accessors give undefined buffer contents instead of an error.

Every buffer is rebased so that the first coordinate of a chunk has index 0,
which keeps sliced tables consistent with unsliced ones.
"""

import logging
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from ..utils.types import GeometryKind
from .accessors import (
    align_accessor,
    assign_accessor,
    extract_accessors_from_props,
    is_vector_accessor,
    validate_accessor_lengths,
    validate_color_column,
)
from .buffers import AttributeBuffer, ChunkBuffers
from .classify import validate_geometry_type
from .inputs import resolve_column_references, resolve_geometry_column
from .offsets import (
    get_flat_coordinates,
    get_list_child,
    get_multilinestring_resolved_offsets,
    get_multipolygon_resolved_offsets,
    get_polygon_resolved_offsets,
    get_value_offsets,
    invert_offsets,
    resolve_offsets,
)
from .picking import encode_picking_color, encode_picking_colors

# Module logger
logger = logging.getLogger(__name__)

DEFAULT_COLOR = (0, 0, 0, 255)

POINT_DEFAULTS = {
    "get_radius": 1,
    "get_fill_color": DEFAULT_COLOR,
    "get_line_color": DEFAULT_COLOR,
    "get_line_width": 1,
}

ARC_DEFAULTS = {
    "get_source_color": DEFAULT_COLOR,
    "get_target_color": DEFAULT_COLOR,
    "get_width": 1,
    "get_height": 1,
    "get_tilt": 0,
}

PATH_DEFAULTS = {
    "get_color": DEFAULT_COLOR,
    "get_width": 1,
}

POLYGON_DEFAULTS = {
    "get_elevation": 1000,
    "get_fill_color": DEFAULT_COLOR,
    "get_line_color": DEFAULT_COLOR,
}


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def _map_chunks(func, n_chunks, max_workers=None):
    """Apply ``func(chunk_idx)`` to every chunk, in parallel when requested."""
    if max_workers is None or max_workers <= 1 or n_chunks <= 1:
        return [func(chunk_idx) for chunk_idx in range(n_chunks)]
    with ThreadPoolExecutor(max_workers=min(max_workers, n_chunks)) as pool:
        return list(pool.map(func, range(n_chunks)))


def _check_accessor_names(accessors):
    _, others = extract_accessors_from_props(accessors)
    if others:
        raise TypeError(f"Unexpected keyword argument(s): {', '.join(sorted(others))}.")


def _resolve_accessors(table, geometry_column, accessors, defaults, validate):
    """Merge defaults, look up column references and optionally validate."""
    merged = dict(defaults)
    merged.update({name: value for name, value in accessors.items() if value is not None})
    merged = resolve_column_references(table, merged)
    merged = {name: align_accessor(value, geometry_column) for name, value in merged.items()}

    if validate:
        validate_accessor_lengths(geometry_column, merged)
        for name, value in merged.items():
            if name.endswith("_color") and is_vector_accessor(value):
                validate_color_column(value, name)
    return merged


def _rebase(coords, n_dim, *offsets_arrays):
    """Shift offsets so the chunk starts at coordinate 0 and trim *coords*.

    The first array decides the coordinate range; all arrays must share
    its base.
    """
    first = offsets_arrays[0]
    base = int(first[0]) if first.size else 0
    end = int(first[-1]) if first.size else 0
    coords = coords[base * n_dim:end * n_dim]
    rebased = tuple(np.asarray(o) - o.dtype.type(base) for o in offsets_arrays)
    return (coords,) + rebased


def _assign_accessors(buffers, accessors, chunk_idx, geom_coord_offsets=None):
    for name, value in accessors.items():
        assign_accessor(buffers, name, value, chunk_idx, geom_coord_offsets)


def _add_picking(buffers, feature_offsets, feature_coord_offsets, encode):
    """Attach the inverse part → feature mapping and per-vertex picking colors."""
    buffers.inverted_geom_offsets = invert_offsets(feature_offsets)
    buffers.picking_colors = AttributeBuffer(
        value=encode_picking_colors(feature_coord_offsets, encode),
        size=3,
        normalized=True,
    )


# ---------------------------------------------------------------------------
# Points
# ---------------------------------------------------------------------------

def _point_chunk(column, accessors, chunk_idx):
    data = column.chunk(chunk_idx)
    coords, n_dim = get_flat_coordinates(data)
    buffers = ChunkBuffers(chunk_idx, GeometryKind.POINT, length=len(data))
    buffers.attributes["get_position"] = AttributeBuffer(coords, n_dim)
    _assign_accessors(buffers, accessors, chunk_idx)
    return buffers


def _multipoint_chunk(column, accessors, chunk_idx, encode):
    data = column.chunk(chunk_idx)
    coords, n_dim = get_flat_coordinates(data)
    coords, geom_offsets = _rebase(coords, n_dim, get_value_offsets(data))

    # one rendered point per coordinate, attributes keyed per multipoint
    buffers = ChunkBuffers(chunk_idx, GeometryKind.MULTIPOINT, length=int(geom_offsets[-1]))
    buffers.attributes["get_position"] = AttributeBuffer(coords, n_dim)
    _add_picking(buffers, geom_offsets, geom_offsets, encode)
    _assign_accessors(buffers, accessors, chunk_idx, geom_offsets)
    return buffers


def prepare_point_chunks(
    table,
    get_position=None,
    *,
    validate=True,
    max_workers=None,
    encode_picking_color=encode_picking_color,
    **accessors,
):
    """Prepare render buffers for a Point or MultiPoint column.

    Parameters
    ----------
    table : pyarrow.Table or None
        Source table.  May be ``None`` when *get_position* is an array.
    get_position : None, str or pyarrow array, optional
        Geometry column; by default the first ``geoarrow.point`` or
        ``geoarrow.multipoint`` column of *table*.
    validate : bool, optional, default True
        Check accessor chunk lengths and color encodings.
    max_workers : int or None, optional
        Prepare chunks on a thread pool of this size.
    encode_picking_color : callable, optional
        Feature index → RGB encoder used for MultiPoint picking colors.
    **accessors
        ``get_radius``, ``get_fill_color``, ``get_line_color``,
        ``get_line_width``: constants, column names or pyarrow columns.

    Returns
    -------
    list of ChunkBuffers
        One entry per chunk.  MultiPoint chunks render every point as its
        own primitive and carry ``inverted_geom_offsets`` and
        ``picking_colors``.
    """
    _check_accessor_names(accessors)
    column, kind = resolve_geometry_column(
        table, (GeometryKind.POINT, GeometryKind.MULTIPOINT), get_position
    )
    if validate:
        validate_geometry_type(column.type, kind)
    accessors = _resolve_accessors(table, column, accessors, POINT_DEFAULTS, validate)
    logger.debug("Preparing %d chunk(s) of a %s column", column.num_chunks, kind.name)

    if not kind.is_multi:
        def func(chunk_idx):
            return _point_chunk(column, accessors, chunk_idx)
    else:
        def func(chunk_idx):
            return _multipoint_chunk(column, accessors, chunk_idx, encode_picking_color)
    return _map_chunks(func, column.num_chunks, max_workers)


# ---------------------------------------------------------------------------
# Arcs
# ---------------------------------------------------------------------------

def prepare_arc_chunks(
    table,
    get_source_position,
    get_target_position,
    *,
    validate=True,
    max_workers=None,
    **accessors,
):
    """Prepare render buffers for arcs between two Point columns.

    Arcs are drawn one per row, so accessors are used one value per
    geometry without any broadcast.

    Parameters
    ----------
    table : pyarrow.Table or None
        Source table.  May be ``None`` when both positions are arrays.
    get_source_position, get_target_position : str or pyarrow array
        Point columns holding the arc end points.
    validate : bool, optional, default True
        Check accessor chunk lengths and color encodings.
    max_workers : int or None, optional
        Prepare chunks on a thread pool of this size.
    **accessors
        ``get_source_color``, ``get_target_color``, ``get_width``,
        ``get_height``, ``get_tilt``.

    Returns
    -------
    list of ChunkBuffers
    """
    _check_accessor_names(accessors)
    source, _ = resolve_geometry_column(table, (GeometryKind.POINT,), get_source_position)
    target, _ = resolve_geometry_column(table, (GeometryKind.POINT,), get_target_position)
    target = align_accessor(target, source)
    if validate:
        validate_geometry_type(source.type, GeometryKind.POINT)
        validate_geometry_type(target.type, GeometryKind.POINT)
        validate_accessor_lengths(source, {"get_target_position": target})
    accessors = _resolve_accessors(table, source, accessors, ARC_DEFAULTS, validate)
    logger.debug("Preparing %d chunk(s) of arcs", source.num_chunks)

    def func(chunk_idx):
        source_data = source.chunk(chunk_idx)
        source_coords, source_dim = get_flat_coordinates(source_data)
        target_coords, target_dim = get_flat_coordinates(target.chunk(chunk_idx))
        buffers = ChunkBuffers(chunk_idx, GeometryKind.POINT, length=len(source_data))
        buffers.attributes["get_source_position"] = AttributeBuffer(source_coords, source_dim)
        buffers.attributes["get_target_position"] = AttributeBuffer(target_coords, target_dim)
        _assign_accessors(buffers, accessors, chunk_idx)
        return buffers

    return _map_chunks(func, source.num_chunks, max_workers)


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

def _linestring_chunk(column, accessors, chunk_idx):
    data = column.chunk(chunk_idx)
    coords, n_dim = get_flat_coordinates(data)
    coords, geom_offsets = _rebase(coords, n_dim, get_value_offsets(data))

    buffers = ChunkBuffers(
        chunk_idx, GeometryKind.LINESTRING, length=len(data), start_indices=geom_offsets
    )
    buffers.attributes["get_path"] = AttributeBuffer(coords, n_dim)
    _assign_accessors(buffers, accessors, chunk_idx, geom_offsets)
    return buffers


def _multilinestring_chunk(column, accessors, chunk_idx, encode):
    data = column.chunk(chunk_idx)
    coords, n_dim = get_flat_coordinates(data)

    # Paths are drawn per linestring while accessors are keyed per
    # multilinestring, so both mappings to coordinates are needed.
    geom_offsets = get_value_offsets(data)
    linestring_offsets = get_value_offsets(get_list_child(data))
    path_offsets = linestring_offsets[int(geom_offsets[0]):int(geom_offsets[-1]) + 1]
    feature_offsets = get_multilinestring_resolved_offsets(data)
    coords, feature_offsets, path_offsets = _rebase(coords, n_dim, feature_offsets, path_offsets)

    buffers = ChunkBuffers(
        chunk_idx,
        GeometryKind.MULTILINESTRING,
        length=path_offsets.shape[0] - 1,
        start_indices=path_offsets,
    )
    buffers.attributes["get_path"] = AttributeBuffer(coords, n_dim)
    _add_picking(buffers, geom_offsets - geom_offsets[0], feature_offsets, encode)
    _assign_accessors(buffers, accessors, chunk_idx, feature_offsets)
    return buffers


def prepare_path_chunks(
    table,
    get_path=None,
    *,
    validate=True,
    max_workers=None,
    encode_picking_color=encode_picking_color,
    **accessors,
):
    """Prepare render buffers for a LineString or MultiLineString column.

    Parameters
    ----------
    table : pyarrow.Table or None
        Source table.  May be ``None`` when *get_path* is an array.
    get_path : None, str or pyarrow array, optional
        Geometry column; by default the first ``geoarrow.linestring`` or
        ``geoarrow.multilinestring`` column of *table*.
    validate : bool, optional, default True
        Check accessor chunk lengths and color encodings.
    max_workers : int or None, optional
        Prepare chunks on a thread pool of this size.
    encode_picking_color : callable, optional
        Feature index → RGB encoder used for MultiLineString picking colors.
    **accessors
        ``get_color``, ``get_width``.

    Returns
    -------
    list of ChunkBuffers
        ``start_indices`` mark the first vertex of every rendered path.
    """
    _check_accessor_names(accessors)
    column, kind = resolve_geometry_column(
        table, (GeometryKind.LINESTRING, GeometryKind.MULTILINESTRING), get_path
    )
    if validate:
        validate_geometry_type(column.type, kind)
    accessors = _resolve_accessors(table, column, accessors, PATH_DEFAULTS, validate)
    logger.debug("Preparing %d chunk(s) of a %s column", column.num_chunks, kind.name)

    if not kind.is_multi:
        def func(chunk_idx):
            return _linestring_chunk(column, accessors, chunk_idx)
    else:
        def func(chunk_idx):
            return _multilinestring_chunk(column, accessors, chunk_idx, encode_picking_color)
    return _map_chunks(func, column.num_chunks, max_workers)


# ---------------------------------------------------------------------------
# Polygons
# ---------------------------------------------------------------------------

def _polygon_chunk(column, accessors, chunk_idx):
    data = column.chunk(chunk_idx)
    coords, n_dim = get_flat_coordinates(data)
    coords, polygon_offsets = _rebase(coords, n_dim, get_polygon_resolved_offsets(data))

    buffers = ChunkBuffers(
        chunk_idx, GeometryKind.POLYGON, length=len(data), start_indices=polygon_offsets
    )
    buffers.attributes["get_polygon"] = AttributeBuffer(coords, n_dim)
    _assign_accessors(buffers, accessors, chunk_idx, polygon_offsets)
    return buffers


def _multipolygon_chunk(column, accessors, chunk_idx, encode):
    data = column.chunk(chunk_idx)
    coords, n_dim = get_flat_coordinates(data)

    # Two uses of offsets: polygon → coord marks the boundaries of every
    # rendered polygon, multipolygon → coord maps feature attributes and
    # picking colors onto vertices.
    geom_offsets = get_value_offsets(data)
    polygon_data = get_list_child(data)
    polygon_offsets = get_value_offsets(polygon_data)[int(geom_offsets[0]):int(geom_offsets[-1]) + 1]
    ring_offsets = get_value_offsets(get_list_child(polygon_data))
    polygon_coord_offsets = resolve_offsets([polygon_offsets, ring_offsets])
    feature_coord_offsets = get_multipolygon_resolved_offsets(data)
    coords, feature_coord_offsets, polygon_coord_offsets = _rebase(
        coords, n_dim, feature_coord_offsets, polygon_coord_offsets
    )

    buffers = ChunkBuffers(
        chunk_idx,
        GeometryKind.MULTIPOLYGON,
        length=polygon_coord_offsets.shape[0] - 1,
        start_indices=polygon_coord_offsets,
    )
    buffers.attributes["get_polygon"] = AttributeBuffer(coords, n_dim)
    _add_picking(buffers, geom_offsets - geom_offsets[0], feature_coord_offsets, encode)
    _assign_accessors(buffers, accessors, chunk_idx, feature_coord_offsets)
    return buffers


def prepare_polygon_chunks(
    table,
    get_polygon=None,
    *,
    validate=True,
    max_workers=None,
    encode_picking_color=encode_picking_color,
    **accessors,
):
    """Prepare render buffers for a Polygon or MultiPolygon column.

    Parameters
    ----------
    table : pyarrow.Table or None
        Source table.  May be ``None`` when *get_polygon* is an array.
    get_polygon : None, str or pyarrow array, optional
        Geometry column; by default the first ``geoarrow.polygon`` or
        ``geoarrow.multipolygon`` column of *table*.
    validate : bool, optional, default True
        Check accessor chunk lengths and color encodings.
    max_workers : int or None, optional
        Prepare chunks on a thread pool of this size.
    encode_picking_color : callable, optional
        Feature index → RGB encoder used for MultiPolygon picking colors.
    **accessors
        ``get_elevation``, ``get_fill_color``, ``get_line_color``.

    Returns
    -------
    list of ChunkBuffers
        ``start_indices`` mark the first vertex of every rendered polygon.
        MultiPolygon chunks render each part separately and carry
        ``inverted_geom_offsets`` (polygon → feature) and ``picking_colors``.

    Examples
    --------
    ::

        chunks = prepare_polygon_chunks(table, get_fill_color="color")
        offsets = chunk_offsets(table.column("geometry"))
        row = get_picking_index(chunks[0], 0, offsets)
    """
    _check_accessor_names(accessors)
    column, kind = resolve_geometry_column(
        table, (GeometryKind.POLYGON, GeometryKind.MULTIPOLYGON), get_polygon
    )
    if validate:
        validate_geometry_type(column.type, kind)
    accessors = _resolve_accessors(table, column, accessors, POLYGON_DEFAULTS, validate)
    logger.debug("Preparing %d chunk(s) of a %s column", column.num_chunks, kind.name)

    if not kind.is_multi:
        def func(chunk_idx):
            return _polygon_chunk(column, accessors, chunk_idx)
    else:
        def func(chunk_idx):
            return _multipolygon_chunk(column, accessors, chunk_idx, encode_picking_color)
    return _map_chunks(func, column.num_chunks, max_workers)


# ---------------------------------------------------------------------------
# Dispatch by layer name
# ---------------------------------------------------------------------------

_PREPARERS = {
    "point": prepare_point_chunks,
    "scatterplot": prepare_point_chunks,
    "arc": prepare_arc_chunks,
    "path": prepare_path_chunks,
    "polygon": prepare_polygon_chunks,
    "solid_polygon": prepare_polygon_chunks,
}

_OPTIONS = frozenset({"validate", "max_workers", "encode_picking_color"})


def prepare_chunks(table, layer, **props):
    """Prepare render buffers for *table* with the preparer named *layer*.

    Parameters
    ----------
    table : pyarrow.Table
        Source table.
    layer : str
        One of ``"point"``/``"scatterplot"``, ``"arc"``, ``"path"``,
        ``"polygon"``/``"solid_polygon"``.
    **props
        Accessors (keys starting with ``get_``) and the options
        ``validate``, ``max_workers`` and ``encode_picking_color``.

    Returns
    -------
    list of ChunkBuffers

    Raises
    ------
    ValueError
        If *layer* is unknown.
    TypeError
        If *props* contains an unknown option.
    """
    try:
        preparer = _PREPARERS[layer]
    except KeyError:
        raise ValueError(
            f"Unknown layer {layer!r}; expected one of {', '.join(sorted(_PREPARERS))}."
        ) from None

    accessors, options = extract_accessors_from_props(props)
    unknown = set(options) - _OPTIONS
    if unknown:
        raise TypeError(f"Unexpected option(s) for {layer!r}: {', '.join(sorted(unknown))}.")
    if preparer is prepare_arc_chunks:
        options.pop("encode_picking_color", None)
    return preparer(table, **options, **accessors)
