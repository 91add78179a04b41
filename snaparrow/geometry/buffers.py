"""Containers for the per-chunk buffers handed to a renderer."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import numpy as np

from ..utils.types import GeometryKind


@dataclass
class AttributeBuffer:
    """A flat typed buffer tagged with its component count.

    Parameters
    ----------
    value : numpy.ndarray
        Flat buffer of ``n * size`` elements.
    size : int
        Number of components per vertex or per instance.
    normalized : bool
        ``True`` when integer channels already hold 0-255 colors and the
        consumer must not rescale them.
    """

    value: np.ndarray
    size: int
    normalized: bool = False

    def __len__(self):
        return self.value.shape[0] // self.size if self.size else 0


@dataclass
class ChunkBuffers:
    """Everything a renderer needs to draw one chunk of a geometry column.

    Attributes
    ----------
    chunk_index : int
        Index of the chunk (record batch) in the source column.
    kind : GeometryKind
        Geometry kind of the source column.
    length : int
        Number of rendered primitives (points, paths, polygons or arcs).
        For multi-part kinds this counts parts, not features.
    start_indices : numpy.ndarray or None
        Resolved offsets marking where every primitive starts in the
        coordinate buffer; ``None`` for kinds drawn one vertex per primitive.
    attributes : dict
        Named :class:`AttributeBuffer` objects, including the coordinates.
    props : dict
        Constant accessor values shared by every primitive of the chunk.
    inverted_geom_offsets : numpy.ndarray or None
        Rendered primitive index → feature index, for multi-part kinds.
    picking_colors : AttributeBuffer or None
        Per-vertex RGB identifying the feature, for multi-part kinds.
    """

    chunk_index: int
    kind: GeometryKind
    length: int
    start_indices: Optional[np.ndarray] = None
    attributes: Dict[str, AttributeBuffer] = field(default_factory=dict)
    props: Dict[str, Any] = field(default_factory=dict)
    inverted_geom_offsets: Optional[np.ndarray] = None
    picking_colors: Optional[AttributeBuffer] = None

    @property
    def num_vertices(self):
        """Number of coordinates referenced by this chunk."""
        if self.start_indices is not None and self.start_indices.size:
            return int(self.start_indices[-1])
        return self.length
