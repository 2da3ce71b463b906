"""
Image decoding.

Turns still images and animations into RGBA rasters plus per-frame delays
using Pillow.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, List, Optional

from PIL import Image, ImageSequence, UnidentifiedImageError

from .errors import ImageDecodeError

logger = logging.getLogger(__name__)


@dataclass
class DecodedImage:
    """
    Decoded raster frames.

    Attributes:
    - frames: RGBA rasters in display order
    - delays: Per-frame display delay in seconds, or None for a still image
    """

    frames: List[Image.Image]
    delays: Optional[List[float]]

    @property
    def size(self) -> tuple[int, int]:
        return self.frames[0].size


def decode_image(fp: BinaryIO) -> DecodedImage:
    """
    Decode a still image or an animation from an open file.

    Animated formats (GIF, APNG, WebP) yield one composited RGBA raster per
    frame along with its duration; still images yield a single raster and no
    delays.

    Raises:
        ImageDecodeError: If Pillow cannot decode the data
    """
    try:
        with Image.open(fp) as img:
            if getattr(img, "n_frames", 1) > 1:
                frames = []
                delays = []
                for frame in ImageSequence.Iterator(img):
                    delays.append(float(frame.info.get("duration", 0) or 0) / 1000.0)
                    frames.append(frame.convert("RGBA"))
                return DecodedImage(frames=frames, delays=delays)

            return DecodedImage(frames=[img.convert("RGBA")], delays=None)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise ImageDecodeError(f"could not decode image: {e}") from e


def load_image(path: str | Path) -> DecodedImage:
    """
    Open and decode an image file.

    Raises:
        ImageDecodeError: If the file cannot be opened or decoded
    """
    p = Path(path)
    try:
        f = p.open("rb")
    except OSError as e:
        raise ImageDecodeError(f"could not open image: {e}") from e

    with f:
        decoded = decode_image(f)

    w, h = decoded.size
    logger.info(f"image bounds: {w} {h} ({len(decoded.frames)} frames)")
    return decoded
