"""Exception types raised by SnapArrow.

Every error derives from :class:`SnapArrowError` and from the closest
builtin exception, so callers that already catch ``TypeError`` or
``ValueError`` around the buffer preparation keep working.

All of them describe structural problems with the input columns.  None is
transient and none is retried.
"""


class SnapArrowError(Exception):
    """Base class for all SnapArrow errors."""


class TypeMismatchError(SnapArrowError, TypeError):
    """A geometry or accessor column has an unexpected nested type."""


class LengthMismatchError(SnapArrowError, ValueError):
    """An accessor column's chunk layout disagrees with the geometry column."""


class InvalidColorEncodingError(SnapArrowError, ValueError):
    """A color accessor is not 3 or 4 channels of 8-bit unsigned integers."""


class MissingGeometryColumnError(SnapArrowError, KeyError):
    """No column matches the requested geometry kind or column name."""

    def __str__(self):
        # KeyError quotes its argument; keep the message readable
        return str(self.args[0]) if self.args else ""


class UnsupportedCoordinateEncodingError(SnapArrowError, TypeError):
    """Coordinates use a layout (e.g. separated x/y fields) that is not decoded."""
