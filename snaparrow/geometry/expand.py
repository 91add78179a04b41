"""Broadcast per-geometry attribute values to per-coordinate buffers."""

import numpy as np


def expand_array_to_coords(values, size, geom_offsets):
    """Expand an array from "one element per geometry" to "one element per coordinate".

    Geometry ``g`` owns the coordinates ``[geom_offsets[g], geom_offsets[g + 1])``
    and each of them receives a copy of the ``size`` channels
    ``values[g * size : (g + 1) * size]``.  Empty geometries contribute no
    writes.

    Parameters
    ----------
    values : numpy.ndarray
        Flat input array of ``size * (len(geom_offsets) - 1)`` elements.
    size : int
        Number of channels per geometry, e.g. 3 for RGB, 4 for RGBA and 1
        for scalars such as radius or elevation.
    geom_offsets : numpy.ndarray
        Offsets array mapping geometry index to coordinate index.  For a
        LineString column these are the column's own offsets; for nested
        kinds they come from the resolved offsets.

    Returns
    -------
    numpy.ndarray
        Flat array of ``size * geom_offsets[-1]`` elements with the same
        dtype as *values*.

    Raises
    ------
    ValueError
        If the length of *values* does not match ``size`` times the number
        of geometries.
    """
    values = np.asarray(values)
    geom_offsets = np.asarray(geom_offsets)
    n_geoms = geom_offsets.shape[0] - 1
    if values.shape[0] != size * max(n_geoms, 0):
        raise ValueError(
            f"Expected {size} * {n_geoms} values to expand, got {values.shape[0]}."
        )

    num_coords = int(geom_offsets[-1]) if geom_offsets.size else 0
    output = np.zeros(num_coords * size, dtype=values.dtype)
    if n_geoms <= 0:
        return output

    # geom_offsets[0] is non-zero only for sliced chunks
    start = int(geom_offsets[0]) * size
    counts = np.diff(geom_offsets)
    output[start:] = np.repeat(values.reshape(n_geoms, size), counts, axis=0).reshape(-1)
    return output
