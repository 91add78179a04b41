"""Structural classification of GeoArrow geometry column types.

A native GeoArrow geometry column is a stack of ``list`` levels over a
``fixed_size_list<float>`` coordinate tuple of width 2 or 3.  The number of
list levels decides the geometry kind, except for the two depth collisions
(LineString/MultiPoint and Polygon/MultiLineString) which are resolved by the
declared extension name.

Only the type is inspected, never the coordinate values.
"""

import pyarrow as pa

from ..errors import TypeMismatchError, UnsupportedCoordinateEncodingError
from ..utils.types import GeometryKind, kind_from_extension_name

_KIND_BY_DEPTH = {
    0: GeometryKind.POINT,
    1: GeometryKind.LINESTRING,
    2: GeometryKind.POLYGON,
    3: GeometryKind.MULTIPOLYGON,
}


def _unwrap(data_type):
    """Return ``(storage_type, extension_name)`` for a possibly extension type."""
    if isinstance(data_type, pa.BaseExtensionType):
        return data_type.storage_type, data_type.extension_name
    return data_type, None


def _is_list(data_type):
    return pa.types.is_list(data_type) or pa.types.is_large_list(data_type)


def _describe(data_type):
    storage, _ = _unwrap(data_type)
    return str(storage)


def is_point_type(data_type):
    """Return ``True`` for ``fixed_size_list<float>`` of width 2 or 3."""
    data_type, _ = _unwrap(data_type)
    if not pa.types.is_fixed_size_list(data_type):
        return False
    if data_type.list_size not in (2, 3):
        return False
    return pa.types.is_floating(data_type.value_type)


def is_linestring_type(data_type):
    """Return ``True`` for ``list<Point>``."""
    data_type, _ = _unwrap(data_type)
    return _is_list(data_type) and is_point_type(data_type.value_type)


def is_polygon_type(data_type):
    """Return ``True`` for ``list<LineString>``."""
    data_type, _ = _unwrap(data_type)
    return _is_list(data_type) and is_linestring_type(data_type.value_type)


def is_multipoint_type(data_type):
    """Return ``True`` for ``list<Point>`` (same layout as a LineString)."""
    return is_linestring_type(data_type)


def is_multilinestring_type(data_type):
    """Return ``True`` for ``list<LineString>`` (same layout as a Polygon)."""
    return is_polygon_type(data_type)


def is_multipolygon_type(data_type):
    """Return ``True`` for ``list<Polygon>``."""
    data_type, _ = _unwrap(data_type)
    return _is_list(data_type) and is_polygon_type(data_type.value_type)


_PREDICATES = {
    GeometryKind.POINT: is_point_type,
    GeometryKind.LINESTRING: is_linestring_type,
    GeometryKind.POLYGON: is_polygon_type,
    GeometryKind.MULTIPOINT: is_multipoint_type,
    GeometryKind.MULTILINESTRING: is_multilinestring_type,
    GeometryKind.MULTIPOLYGON: is_multipolygon_type,
}


def get_list_nesting_levels(data_type):
    """Count the ``list`` levels wrapping the innermost non-list type.

    Parameters
    ----------
    data_type : pyarrow.DataType
        Geometry storage or extension type.

    Returns
    -------
    int
        Number of nested ``list`` / ``large_list`` levels.
    """
    data_type, _ = _unwrap(data_type)
    levels = 0
    while _is_list(data_type):
        levels += 1
        data_type, _ = _unwrap(data_type.value_type)
    return levels


def _leaf_type(data_type):
    data_type, _ = _unwrap(data_type)
    while _is_list(data_type):
        data_type, _ = _unwrap(data_type.value_type)
    return data_type


def _check_coordinates(data_type):
    leaf = _leaf_type(data_type)
    if pa.types.is_struct(leaf):
        raise UnsupportedCoordinateEncodingError(
            f"Separated coordinates ({leaf}) are not supported; "
            "provide interleaved fixed_size_list<float>[2|3] coordinates."
        )
    if not is_point_type(leaf):
        raise TypeMismatchError(
            "Expected fixed_size_list<float> coordinates of width 2 or 3, "
            f"got {leaf} in {_describe(data_type)}."
        )


def classify(data_type, extension_name=None):
    """Report which geometry kind a column type conforms to.

    Parameters
    ----------
    data_type : pyarrow.DataType
        Column type.  Extension types are unwrapped to their storage type
        and their extension name is used as the declared tag.
    extension_name : str or None, optional
        Declared extension name (e.g. from ``ARROW:extension:name`` field
        metadata).  Takes precedence over the extension type's own name and
        disambiguates MultiPoint and MultiLineString.

    Returns
    -------
    GeometryKind

    Raises
    ------
    UnsupportedCoordinateEncodingError
        If coordinates are stored as a ``struct`` of separated fields.
    TypeMismatchError
        If the type is not a recognised geometry layout, or its depth
        contradicts the declared extension name.
    """
    storage, type_tag = _unwrap(data_type)
    tag = extension_name if extension_name is not None else type_tag
    _check_coordinates(storage)

    levels = get_list_nesting_levels(storage)
    tagged = kind_from_extension_name(tag)
    if tagged is not None:
        if tagged.nesting_levels != levels:
            raise TypeMismatchError(
                f"Column declared as {tagged.extension_name!r} expects "
                f"{tagged.nesting_levels} list level(s) over coordinates, "
                f"got {levels} in {storage}."
            )
        return tagged

    if levels not in _KIND_BY_DEPTH:
        raise TypeMismatchError(
            f"Expected at most 3 list levels over coordinates, got {levels} in {storage}."
        )
    return _KIND_BY_DEPTH[levels]


def validate_geometry_type(data_type, kind):
    """Raise unless *data_type* has the layout of geometry *kind*.

    Parameters
    ----------
    data_type : pyarrow.DataType
        Column type to check.
    kind : GeometryKind
        Expected geometry kind.

    Raises
    ------
    UnsupportedCoordinateEncodingError
        If coordinates are stored as separated fields.
    TypeMismatchError
        If the nesting depth or child type does not match *kind*.
    """
    _check_coordinates(data_type)
    if not _PREDICATES[kind](data_type):
        raise TypeMismatchError(
            f"Expected a {kind.name} column with {kind.nesting_levels} list "
            f"level(s) over coordinates, got {get_list_nesting_levels(data_type)} "
            f"in {_describe(data_type)}."
        )
