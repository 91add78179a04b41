"""Image helpers for reading back picking renders."""

import warnings

import numpy as np
from PIL import Image

from ..geometry.picking import decode_picking_colors


def read_picking_image(image):
    """Load a picking render as an ``(H, W, 3)`` ``uint8`` RGB array.

    Parameters
    ----------
    image : str, pathlib.Path, PIL.Image.Image or numpy.ndarray
        Path to an image file, an already opened image, or an RGB(A) array.

    Returns
    -------
    numpy.ndarray
        RGB pixels; an alpha channel, if any, is dropped.

    Raises
    ------
    ValueError
        If an array input is not of shape ``(H, W, 3)`` or ``(H, W, 4)``.
    """
    if isinstance(image, np.ndarray):
        if image.ndim != 3 or image.shape[2] not in (3, 4):
            raise ValueError(
                f"picking image must have shape (H, W, 3) or (H, W, 4), got {image.shape}."
            )
        if image.shape[2] == 4 and np.any(image[:, :, 3] < 255):
            warnings.warn(
                "picking image has translucent pixels; blended colors do not decode "
                "to valid feature indices.",
                stacklevel=2,
            )
        return np.ascontiguousarray(image[:, :, :3], dtype=np.uint8)
    if not isinstance(image, Image.Image):
        with Image.open(image) as opened:
            return np.asarray(opened.convert("RGB"), dtype=np.uint8)
    return np.asarray(image.convert("RGB"), dtype=np.uint8)


def decode_picking_image(image):
    """Decode every pixel of a picking render to a chunk-local feature index.

    Parameters
    ----------
    image : str, pathlib.Path, PIL.Image.Image or numpy.ndarray
        Picking render drawn with the default picking color encoding.

    Returns
    -------
    numpy.ndarray
        int64 array of shape ``(H, W)``; background (black) pixels are ``-1``.
    """
    return decode_picking_colors(read_picking_image(image))


def picked_features(image):
    """Return the sorted unique feature indices visible in a picking render."""
    indices = decode_picking_image(image)
    return np.unique(indices[indices >= 0])
