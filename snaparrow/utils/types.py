"""Contains the types used in SnapArrow.

This module defines small enumeration types used across the package for
naming geometry kinds and the GeoArrow extension names that tag them.

Classes
-------
GeometryKind
    Closed set of geometry kinds understood by the buffer preparers.

Functions
---------
kind_from_extension_name
    Return the :class:`GeometryKind` tagged by a GeoArrow extension name.
"""

import enum

# Field metadata key carrying the GeoArrow extension name
EXTENSION_METADATA_KEY = b"ARROW:extension:name"


class GeometryKind(enum.Enum):
    """Geometry kinds of the GeoArrow native encoding.

    The value of each member is the list nesting depth above the
    fixed-size coordinate tuple.  MultiPoint shares its depth with
    LineString and MultiLineString shares its depth with Polygon; those
    pairs are only told apart by the declared extension name.

    Attributes
    ----------
    POINT : int
        ``fixed_size_list<float>[2|3]``.
    LINESTRING : int
        ``list<Point>``.
    POLYGON : int
        ``list<LineString>``.
    MULTIPOINT : int
        ``list<Point>``.
    MULTILINESTRING : int
        ``list<LineString>``.
    MULTIPOLYGON : int
        ``list<Polygon>``.
    """
    POINT = (0, "geoarrow.point")
    LINESTRING = (1, "geoarrow.linestring")
    POLYGON = (2, "geoarrow.polygon")
    MULTIPOINT = (1, "geoarrow.multipoint")
    MULTILINESTRING = (2, "geoarrow.multilinestring")
    MULTIPOLYGON = (3, "geoarrow.multipolygon")

    @property
    def nesting_levels(self) -> int:
        """Number of list levels above the coordinate tuple."""
        return self.value[0]

    @property
    def extension_name(self) -> str:
        """GeoArrow extension name tagging this kind."""
        return self.value[1]

    @property
    def is_multi(self) -> bool:
        """True for kinds whose features are rendered as several primitives."""
        return self in (
            GeometryKind.MULTIPOINT,
            GeometryKind.MULTILINESTRING,
            GeometryKind.MULTIPOLYGON,
        )


EXTENSION_NAMES = {kind: kind.extension_name for kind in GeometryKind}
_KINDS_BY_NAME = {name: kind for kind, name in EXTENSION_NAMES.items()}


def kind_from_extension_name(extension_name):
    """Return the :class:`GeometryKind` for a GeoArrow extension name.

    Parameters
    ----------
    extension_name : str, bytes or None
        Extension name such as ``"geoarrow.polygon"``.

    Returns
    -------
    GeometryKind or None
        ``None`` when the name is missing or not a native geometry name.
    """
    if extension_name is None:
        return None
    if isinstance(extension_name, bytes):
        extension_name = extension_name.decode("utf-8", errors="replace")
    return _KINDS_BY_NAME.get(extension_name)
