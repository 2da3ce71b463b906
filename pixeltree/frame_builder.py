"""
Pure Frame Building Logic

This module contains the FrameBuilder class, which converts decoded rasters
into frames of target addresses, plus the immutable Frame and Animation
containers the scheduler replays.

Pixel selection is deterministic (row-major, opaque pixels only); only the
final ordering is randomized so the remote display does not show a visible
scan-line draw order.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from ipaddress import IPv6Address
from typing import Iterator, List, MutableSequence, Optional, Sequence, Tuple, TypeVar

import numpy as np
from PIL import Image

from .encoding import AddressEncoding

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Frame:
    """All addresses needed to render one raster, in draw order."""

    addresses: Tuple[IPv6Address, ...]

    def __len__(self) -> int:
        return len(self.addresses)

    def __iter__(self) -> Iterator[IPv6Address]:
        return iter(self.addresses)


@dataclass(frozen=True)
class Animation:
    """
    Ordered frames with per-frame display delays (seconds).

    A still image is an animation of length 1.
    """

    frames: Tuple[Frame, ...]
    delays: Tuple[float, ...]

    def __post_init__(self) -> None:
        if not self.frames:
            raise ValueError("Animation must have at least one frame")
        if len(self.frames) != len(self.delays):
            raise ValueError(
                f"Animation has {len(self.frames)} frames but {len(self.delays)} delays"
            )
        if any(d < 0 for d in self.delays):
            raise ValueError("Frame delays must be >= 0")

    def __len__(self) -> int:
        return len(self.frames)

    def __iter__(self) -> Iterator[Tuple[Frame, float]]:
        return zip(self.frames, self.delays)

    @property
    def largest_frame(self) -> int:
        return max(len(f) for f in self.frames)


def shuffle(items: MutableSequence[T], rng: random.Random) -> None:
    """Shuffle in place, swapping each index i with a partner from [0, i]."""
    for i in range(len(items)):
        j = rng.randint(0, i)
        items[i], items[j] = items[j], items[i]


class FrameBuilder:
    """
    Builds frames of addresses from rasters using an AddressEncoding.

    Args:
        encoding: Active address encoding
        rng: Random source for the draw-order shuffle (seed it for
            reproducible output)
    """

    def __init__(self, encoding: AddressEncoding, rng: Optional[random.Random] = None):
        self.encoding = encoding
        self.rng = rng or random.Random()

    def build(self, image: Image.Image, x_offset: int = 0, y_offset: int = 0) -> Frame:
        """
        Convert a raster into a shuffled frame of addresses.

        Args:
            image: Decoded raster (any Pillow mode, converted to RGBA)
            x_offset, y_offset: Placement of the image on the display

        Returns:
            Frame: One address per opaque, in-bounds pixel
        """
        rgba = np.asarray(image.convert("RGBA"), dtype=np.uint8)

        # nonzero walks the (H, W) array in row-major order
        ys, xs = np.nonzero(rgba[:, :, 3])

        addrs: List[IPv6Address] = []
        for y, x in zip(ys.tolist(), xs.tolist()):
            r, g, b, a = rgba[y, x].tolist()
            addr = self.encoding.encode(x + x_offset, y + y_offset, r, g, b, a)
            if addr is not None:
                addrs.append(addr)

        dropped = len(xs) - len(addrs)
        if dropped:
            logger.debug(f"Dropped {dropped} out-of-bounds pixels")

        shuffle(addrs, self.rng)
        return Frame(tuple(addrs))

    def build_animation(
        self,
        images: Sequence[Image.Image],
        delays: Sequence[float],
        x_offset: int = 0,
        y_offset: int = 0,
    ) -> Animation:
        """
        Build one frame per raster and pair it with its display delay.

        Raises:
            ValueError: If images and delays differ in length
        """
        frames = tuple(self.build(img, x_offset, y_offset) for img in images)
        animation = Animation(frames=frames, delays=tuple(delays))
        logger.info(
            f"Built {len(animation)} frames, largest has {animation.largest_frame} addresses"
        )
        return animation
