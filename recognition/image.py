"""
Image loading for score recognition.

Decodes photos/scans with Pillow into an RGB pixel grid (H x W x 3, uint8).
"""
import io
from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image

ImageSource = Union[bytes, str, Path, np.ndarray, Image.Image]


class RecognitionError(Exception):
    """Image could not be decoded or its pixels could not be read."""


def pixels_from_array(array: np.ndarray) -> np.ndarray:
    """
    Validate a pixel array and reduce it to RGB.

    Accepts H x W (grayscale), H x W x 3 (RGB) or H x W x 4 (RGBA; alpha
    is ignored).

    Raises:
        RecognitionError: If the array is not an image
    """
    if array.ndim == 2:
        array = np.stack([array, array, array], axis=-1)
    if array.ndim != 3 or array.shape[2] not in (3, 4):
        raise RecognitionError(f"Cannot read pixels from array of shape {array.shape}")
    if array.shape[0] == 0 or array.shape[1] == 0:
        raise RecognitionError("Image has no pixels")
    return np.ascontiguousarray(array[:, :, :3]).astype(np.uint8)


def load_image(source: ImageSource) -> np.ndarray:
    """
    Load an image as RGB pixels.

    Args:
        source: Encoded image bytes, a file path, a PIL image or a pixel array

    Returns:
        Pixel grid (H x W x 3, uint8)

    Raises:
        RecognitionError: If the image cannot be decoded
    """
    if isinstance(source, np.ndarray):
        return pixels_from_array(source)

    if isinstance(source, Image.Image):
        return pixels_from_array(np.asarray(source.convert("RGB")))

    try:
        if isinstance(source, (bytes, bytearray)):
            image = Image.open(io.BytesIO(bytes(source)))
        else:
            image = Image.open(Path(source))
        with image:
            rgb = image.convert("RGB")
    except (OSError, ValueError) as e:
        raise RecognitionError(f"Failed to load image: {e}") from e

    return pixels_from_array(np.asarray(rgb))
