"""
NumPy/OpenCV pixel executor with Pillow file IO.
"""

import logging
from pathlib import Path
from typing import Union

import cv2
import numpy as np
from PIL import Image

from ..errors import ExecutorError
from ..processing.color import ColorTransform
from .base import ImageHandle, PixelExecutor

logger = logging.getLogger(__name__)


class ArrayPixelExecutor(PixelExecutor):
    """
    Applies color matrices to in-memory uint8 arrays with ``cv2.transform``.

    RGB images are treated as fully opaque: the alpha column of the matrix
    is folded into the offset with alpha = 255.
    """

    def apply(self, handle: ImageHandle, transform: ColorTransform) -> ImageHandle:
        image = handle.array
        if image.ndim != 3 or image.shape[2] not in (3, 4):
            raise ExecutorError(f"Expected an RGB or RGBA image, got shape {image.shape}")

        matrix = transform.as_array()
        if image.shape[2] == 3:
            offset = matrix[:3, 4] + matrix[:3, 3] * 255.0
            matrix = np.hstack([matrix[:3, :3], offset.reshape(3, 1)])

        try:
            result = cv2.transform(image.astype(np.float32), matrix.astype(np.float32))
        except cv2.error as e:
            raise ExecutorError(f"cv2.transform failed: {e}") from e

        result = np.clip(np.rint(result), 0, 255).astype(np.uint8)
        return ImageHandle(result, source=handle.source)

    def load(self, path: Union[str, Path]) -> ImageHandle:
        """Load an image file as an RGB (or RGBA, if it has alpha) handle."""
        try:
            with Image.open(path) as img:
                mode = 'RGBA' if 'A' in img.getbands() else 'RGB'
                array = np.asarray(img.convert(mode))
        except OSError as e:
            raise ExecutorError(f"Failed to load image {path}: {e}") from e
        logger.debug(f"Loaded {path} as {mode} {array.shape[1]}x{array.shape[0]}")
        return ImageHandle(array, source=str(path))

    def save(self, handle: ImageHandle, path: Union[str, Path], quality: int = 95) -> Path:
        path = Path(path)
        try:
            img = Image.fromarray(handle.array)
            if path.suffix.lower() in ('.jpg', '.jpeg'):
                img.convert('RGB').save(path, quality=quality)
            else:
                img.save(path)
        except (OSError, ValueError) as e:
            raise ExecutorError(f"Failed to save image {path}: {e}") from e
        logger.info(f"Saved enhanced image to {path}")
        return path
