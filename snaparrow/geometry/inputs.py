"""Input resolver functions for SnapArrow buffer preparation.

This module is the single place where user-facing inputs are looked up in a
table and checked: the geometry column (by extension name, by column name or
given directly as an array) and accessor column references.  The preparers
in :mod:`snaparrow.geometry.prepare` go through these resolvers only.
"""

import pyarrow as pa

from ..errors import MissingGeometryColumnError, TypeMismatchError
from ..utils.types import EXTENSION_METADATA_KEY, kind_from_extension_name
from .accessors import is_column_reference
from .classify import classify, get_list_nesting_levels


def field_extension_name(field):
    """Return the GeoArrow extension name declared on a schema field, or ``None``."""
    if isinstance(field.type, pa.BaseExtensionType):
        return field.type.extension_name
    metadata = field.metadata or {}
    name = metadata.get(EXTENSION_METADATA_KEY)
    if name is None:
        return None
    return name.decode("utf-8", errors="replace")


def find_geometry_column_index(schema, extension_name, column_name=None):
    """Return the index of the first field matching a name or extension name.

    Parameters
    ----------
    schema : pyarrow.Schema
        Table schema.
    extension_name : str
        GeoArrow extension name, e.g. ``"geoarrow.polygon"``.
    column_name : str or None, optional
        Explicit column name; a field with this name matches as well.

    Returns
    -------
    int or None
    """
    for index, field in enumerate(schema):
        if column_name is not None and field.name == column_name:
            return index
        if field_extension_name(field) == extension_name:
            return index
    return None


def get_geometry_column(table, extension_name):
    """Get a geometry column with the specified extension name from the table.

    Returns
    -------
    pyarrow.ChunkedArray or None
        ``None`` when no field carries *extension_name*.
    """
    index = find_geometry_column_index(table.schema, extension_name)
    if index is None:
        return None
    return table.column(index)


def _as_column(data):
    if isinstance(data, pa.ChunkedArray):
        return data
    return pa.chunked_array([data])


def _kind_for(data_type, kinds, extension_name=None):
    """Classify *data_type* and map a depth collision onto one of *kinds*."""
    kind = classify(data_type, extension_name)
    if kind in kinds:
        return kind
    # untagged list<Point> / list<LineString> columns fit either kind of that depth
    if kind_from_extension_name(extension_name) is None:
        levels = get_list_nesting_levels(data_type)
        for candidate in kinds:
            if candidate.nesting_levels == levels:
                return candidate
    expected = ", ".join(k.name for k in kinds)
    raise TypeMismatchError(
        f"Expected a geometry column of kind {expected}, got {kind.name} ({data_type})."
    )


def resolve_geometry_column(table, kinds, geometry=None):
    """Resolve the geometry column to render and its kind.

    Parameters
    ----------
    table : pyarrow.Table or None
        Source table; may be ``None`` when *geometry* is an array.
    kinds : sequence of GeometryKind
        Acceptable kinds in order of preference.
    geometry : None, str, pyarrow.Array or pyarrow.ChunkedArray, optional
        * ``None`` — the first column whose extension name matches one of
          *kinds* (searched in the order of *kinds*).
        * ``str`` — column name in *table*.
        * array — the geometry column itself.

    Returns
    -------
    column : pyarrow.ChunkedArray
    kind : GeometryKind

    Raises
    ------
    MissingGeometryColumnError
        If no column matches.
    TypeMismatchError
        If the selected column is not one of *kinds*.
    """
    kinds = tuple(kinds)

    if geometry is None:
        if table is None:
            raise MissingGeometryColumnError("No table and no geometry column were given.")
        for kind in kinds:
            column = get_geometry_column(table, kind.extension_name)
            if column is not None:
                return column, _kind_for(column.type, kinds, kind.extension_name)
        names = ", ".join(k.extension_name for k in kinds)
        raise MissingGeometryColumnError(f"No column found with extension type {names}.")

    if is_column_reference(geometry):
        if table is None or geometry not in table.column_names:
            raise MissingGeometryColumnError(f"No geometry column named {geometry!r}.")
        field = table.schema.field(geometry)
        column = table.column(geometry)
        return column, _kind_for(column.type, kinds, field_extension_name(field))

    if isinstance(geometry, (pa.Array, pa.ChunkedArray)):
        column = _as_column(geometry)
        return column, _kind_for(column.type, kinds)

    raise TypeError(
        f"geometry must be None, a column name or a pyarrow array, got {type(geometry).__name__!r}."
    )


def resolve_column_references(table, accessors):
    """Replace string accessors by the table columns they name.

    Raises
    ------
    KeyError
        If a referenced column does not exist.
    """
    resolved = {}
    for name, value in accessors.items():
        if is_column_reference(value):
            if table is None or value not in table.column_names:
                raise KeyError(f"Accessor {name!r} references unknown column {value!r}.")
            value = table.column(value)
        resolved[name] = value
    return resolved

