"""Readers for the columnar files SnapArrow prepares buffers from.

Supported formats
-----------------
* **Parquet / GeoParquet** (``.parquet``, ``.geoparquet``) — read with
  :class:`pyarrow.parquet.ParquetFile`; chunks follow the row groups.
* **Arrow IPC file / Feather v2** (``.arrow``, ``.feather``, ``.ipc``) —
  random-access IPC file format.
* **Arrow IPC stream** (``.arrows``) — streaming IPC format.

The public dispatcher :func:`read_table` routes by file extension.  Native
GeoArrow columns keep their ``ARROW:extension:name`` field metadata, which
is how :mod:`snaparrow.geometry.inputs` finds geometry columns.
"""

import logging
import os

import pyarrow as pa
import pyarrow.feather as feather
import pyarrow.parquet as pq

# Module logger
logger = logging.getLogger(__name__)

_PARQUET_EXTS = frozenset({".parquet", ".geoparquet"})
_IPC_FILE_EXTS = frozenset({".arrow", ".feather", ".ipc"})
_IPC_STREAM_EXTS = frozenset({".arrows"})


def read_parquet(path, columns=None):
    """Read a Parquet file, keeping one chunk per row group."""
    pf = pq.ParquetFile(path)
    logger.debug("Reading %s with %d row group(s)", path, pf.num_row_groups)
    return pf.read(columns=columns)


def read_ipc_file(path, columns=None):
    """Read an Arrow IPC file or Feather v2 file."""
    return feather.read_table(path, columns=columns, memory_map=True)


def read_ipc_stream(path, columns=None):
    """Read an Arrow IPC stream."""
    with pa.OSFile(path, "rb") as source:
        table = pa.ipc.open_stream(source).read_all()
    if columns is not None:
        table = table.select(columns)
    return table


def read_table(path, columns=None):
    """Read a columnar file into a :class:`pyarrow.Table`, routing by extension.

    Parameters
    ----------
    path : str or os.PathLike
        Path to a ``.parquet``, ``.geoparquet``, ``.arrow``, ``.feather``,
        ``.ipc`` or ``.arrows`` file.
    columns : list of str or None, optional
        Subset of columns to read.

    Returns
    -------
    pyarrow.Table

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ValueError
        If the extension is not recognised.
    """
    path = os.fspath(path)
    if not os.path.exists(path):
        raise FileNotFoundError(f"No such file: {path!r}")
    ext = os.path.splitext(path.lower())[1]
    if ext in _PARQUET_EXTS:
        return read_parquet(path, columns)
    if ext in _IPC_FILE_EXTS:
        return read_ipc_file(path, columns)
    if ext in _IPC_STREAM_EXTS:
        return read_ipc_stream(path, columns)
    raise ValueError(
        f"Unsupported table format {ext!r}; expected one of "
        f"{', '.join(sorted(_PARQUET_EXTS | _IPC_FILE_EXTS | _IPC_STREAM_EXTS))}."
    )
