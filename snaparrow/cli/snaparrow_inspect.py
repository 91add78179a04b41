#!/usr/bin/env python3
"""CLI entry point that prepares render buffers for a file and summarises them.

Reads a Parquet / GeoParquet, Arrow IPC or Feather file, finds the native
GeoArrow geometry column, prepares the per-chunk buffers exactly as a
renderer would receive them and logs one line per chunk.  Optionally the
buffers are written to a ``.npz`` archive for inspection.

Usage::

    # summarise the first geometry column found
    snaparrow-inspect buildings.parquet

    # pick the column and the preparer, map accessors to columns
    snaparrow-inspect roads.arrow --geometry geom --layer path \\
        --accessor get_color=color --accessor get_width=lanes

    # dump all buffers
    snaparrow-inspect parcels.feather -o parcels_buffers.npz

See ``snaparrow-inspect --help`` for the full list of options.
"""

import argparse
import logging

import numpy as np

from .._config import default_max_workers
from .._version import __version__
from ..errors import MissingGeometryColumnError, SnapArrowError
from ..geometry.classify import classify
from ..geometry.inputs import field_extension_name
from ..geometry.prepare import prepare_chunks
from ..geometry.table_io import read_table
from ..utils.types import GeometryKind, kind_from_extension_name

# Module logger
logger = logging.getLogger(__name__)

_LAYER_BY_KIND = {
    GeometryKind.POINT: "point",
    GeometryKind.MULTIPOINT: "point",
    GeometryKind.LINESTRING: "path",
    GeometryKind.MULTILINESTRING: "path",
    GeometryKind.POLYGON: "polygon",
    GeometryKind.MULTIPOLYGON: "polygon",
}

_GEOMETRY_PROP = {
    "point": "get_position",
    "path": "get_path",
    "polygon": "get_polygon",
}


def _find_geometry_field(schema, name=None):
    """Return ``(field_name, kind)`` of the geometry column to inspect."""
    if name is not None:
        if name not in schema.names:
            raise MissingGeometryColumnError(f"No geometry column named {name!r}.")
        field = schema.field(name)
        return name, classify(field.type, field_extension_name(field))
    for field in schema:
        kind = kind_from_extension_name(field_extension_name(field))
        if kind is not None:
            return field.name, kind
    raise MissingGeometryColumnError("No column carries a GeoArrow extension name.")


def _parse_accessors(items):
    accessors = {}
    for item in items:
        prop, sep, column = item.partition("=")
        if not sep or not prop.startswith("get_") or not column:
            raise ValueError(f"Accessor must look like get_<name>=<column>, got {item!r}.")
        accessors[prop] = column
    return accessors


def _save_buffers(path, chunks):
    arrays = {}
    for buffers in chunks:
        prefix = f"chunk{buffers.chunk_index}"
        for name, attribute in buffers.attributes.items():
            arrays[f"{prefix}_{name}"] = attribute.value
        if buffers.start_indices is not None:
            arrays[f"{prefix}_start_indices"] = buffers.start_indices
        if buffers.inverted_geom_offsets is not None:
            arrays[f"{prefix}_inverted_geom_offsets"] = buffers.inverted_geom_offsets
        if buffers.picking_colors is not None:
            arrays[f"{prefix}_picking_colors"] = buffers.picking_colors.value
    np.savez(path, **arrays)


def run():
    """Command-line entry point for ``snaparrow-inspect``.

    Parses command-line arguments, reads the table, prepares buffers with
    :func:`snaparrow.geometry.prepare.prepare_chunks` and logs a per-chunk
    summary.  All input is read from ``sys.argv`` via :mod:`argparse`.

    Raises
    ------
    SystemExit
        Through :meth:`argparse.ArgumentParser.error` when the file cannot be
        read or the geometry/accessor columns are invalid.
    """
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    parser = argparse.ArgumentParser(
        prog="snaparrow-inspect",
        description=(
            "Prepare per-vertex render buffers for a GeoArrow table and "
            "summarise them chunk by chunk."
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("path", type=str,
                        help="Input .parquet, .geoparquet, .arrow, .feather, .ipc or .arrows file.")
    parser.add_argument("--geometry", type=str, default=None,
                        help="Geometry column name (default: first GeoArrow column).")
    parser.add_argument("--layer", choices=["auto", "point", "path", "polygon"], default="auto",
                        help="Preparer to use (default: derived from the geometry kind).")
    parser.add_argument("--accessor", action="append", default=[], metavar="GET_NAME=COLUMN",
                        help="Map an accessor to a column, e.g. get_fill_color=color. Repeatable.")
    parser.add_argument("--no-validate", dest="validate", action="store_false", default=True,
                        help="Skip accessor length and color checks.")
    parser.add_argument("--workers", type=int, default=default_max_workers(),
                        help="Threads used to prepare chunks (default: physical cores).")
    parser.add_argument("-o", "--output", type=str, default=None,
                        help="Write all buffers to this .npz file.")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable debug logging.")

    args = parser.parse_args()
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    logger.debug("Parsed args: %s", vars(args))

    try:
        accessors = _parse_accessors(args.accessor)
        table = read_table(args.path)
        column_name, kind = _find_geometry_field(table.schema, args.geometry)
        layer = _LAYER_BY_KIND[kind] if args.layer == "auto" else args.layer
        accessors[_GEOMETRY_PROP[layer]] = column_name
        chunks = prepare_chunks(
            table,
            layer,
            validate=args.validate,
            max_workers=args.workers,
            **accessors,
        )
    except (FileNotFoundError, SnapArrowError, ValueError, KeyError) as e:
        parser.error(str(e))

    logger.info(
        "%s: column %r (%s), %d row(s) in %d chunk(s), layer %r",
        args.path, column_name, kind.name, table.num_rows, len(chunks), layer,
    )
    for buffers in chunks:
        logger.info(
            "chunk %d: %d primitive(s), %d vertex(es), attributes: %s, constants: %s",
            buffers.chunk_index,
            buffers.length,
            buffers.num_vertices,
            ", ".join(sorted(buffers.attributes)) or "-",
            ", ".join(sorted(buffers.props)) or "-",
        )

    if args.output:
        _save_buffers(args.output, chunks)
        logger.info("Buffers saved to %s", args.output)
