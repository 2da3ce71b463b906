"""
Pure Address Encoding Logic

This module contains the address encodings that turn a pixel (position and
color) into the IPv6 address that lights it on the pixel tree. Encodings are
pure classes with no I/O: they take a prefix at construction and map pixels to
addresses without side effects.

Two layouts are supported:
- byte-offset:  <prefix /64>:XXXX:YYYY:BBGG:RRAA  (binary fields)
- text-segment: <prefix /48>:x:y:rr:gg:bb         (decimal x/y, hex color)
"""

from __future__ import annotations

import struct
from abc import ABC, abstractmethod
from ipaddress import IPv6Address
from typing import Dict, Optional, Type, Union

# Coordinate limits
MAX_COORDINATE = 0xFFFF  # 16-bit x/y fields in the byte-offset layout
MAX_TEXT_DIMENSION = 10000  # decimal x/y must fit a four digit group

DEFAULT_MAX_WIDTH = 1920
DEFAULT_MAX_HEIGHT = 1080

Prefix = Union[str, IPv6Address]


class AddressEncoding(ABC):
    """
    Maps a pixel to a destination address under a fixed prefix.

    Fully transparent pixels and pixels outside the addressable range are
    dropped: encode() returns None for them instead of raising.
    """

    name: str = ""

    def __init__(self, prefix: Prefix):
        self.prefix = IPv6Address(prefix) if isinstance(prefix, str) else prefix

    @abstractmethod
    def in_bounds(self, x: int, y: int) -> bool:
        """Check whether (x, y) is addressable by this layout."""
        ...

    @abstractmethod
    def _encode(self, x: int, y: int, r: int, g: int, b: int, a: int) -> IPv6Address:
        ...

    def encode(
        self, x: int, y: int, r: int, g: int, b: int, a: int
    ) -> Optional[IPv6Address]:
        """
        Encode a single pixel.

        Args:
            x, y: Display coordinates (offset already applied)
            r, g, b, a: 8-bit color channels

        Returns:
            Optional[IPv6Address]: Target address, or None if the pixel is
            transparent or out of bounds
        """
        if a == 0 or not self.in_bounds(x, y):
            return None
        return self._encode(x, y, r, g, b, a)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self.prefix)!r})"


class ByteOffsetEncoding(AddressEncoding):
    """
    Overwrites the low 8 bytes of the prefix positionally.

    Layout (byte index): 8-9 x (big-endian), 10-11 y (big-endian),
    12 blue, 13 green, 14 red, 15 alpha.
    """

    name = "byte-offset"

    def __init__(self, prefix: Prefix):
        super().__init__(prefix)
        self._prefix_bytes = self.prefix.packed

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x <= MAX_COORDINATE and 0 <= y <= MAX_COORDINATE

    def _encode(self, x: int, y: int, r: int, g: int, b: int, a: int) -> IPv6Address:
        low = struct.pack(">HHBBBB", x, y, b, g, r, a)
        return IPv6Address(self._prefix_bytes[:8] + low)


class TextSegmentEncoding(AddressEncoding):
    """
    Appends decimal x, decimal y and hex color groups to a /48 prefix.

    x=12, y=34, rgb=(255, 0, 16) under 2001:db8:1:: becomes
    2001:db8:1:12:34:ff:0:10. Alpha is not encoded. The display is bounded
    to max_width x max_height since the groups only reserve four digits.
    """

    name = "text-segment"

    def __init__(
        self,
        prefix: Prefix,
        max_width: int = DEFAULT_MAX_WIDTH,
        max_height: int = DEFAULT_MAX_HEIGHT,
    ):
        super().__init__(prefix)
        if not (0 < max_width <= MAX_TEXT_DIMENSION):
            raise ValueError(
                f"max_width must be 1-{MAX_TEXT_DIMENSION}, got {max_width}"
            )
        if not (0 < max_height <= MAX_TEXT_DIMENSION):
            raise ValueError(
                f"max_height must be 1-{MAX_TEXT_DIMENSION}, got {max_height}"
            )
        self.max_width = max_width
        self.max_height = max_height
        self._head = ":".join(self.prefix.exploded.split(":")[:3])

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.max_width and 0 <= y < self.max_height

    def _encode(self, x: int, y: int, r: int, g: int, b: int, a: int) -> IPv6Address:
        return IPv6Address(f"{self._head}:{x}:{y}:{r:02x}:{g:02x}:{b:02x}")


ENCODINGS: Dict[str, Type[AddressEncoding]] = {
    ByteOffsetEncoding.name: ByteOffsetEncoding,
    TextSegmentEncoding.name: TextSegmentEncoding,
}


def create_encoding(
    name: str,
    prefix: Prefix,
    max_width: int = DEFAULT_MAX_WIDTH,
    max_height: int = DEFAULT_MAX_HEIGHT,
) -> AddressEncoding:
    """
    Factory function to create the configured address encoding.

    Args:
        name: Encoding name ("byte-offset" or "text-segment")
        prefix: Destination network prefix
        max_width, max_height: Display bounds (text-segment only)

    Returns:
        AddressEncoding: The selected encoding

    Raises:
        ValueError: If the encoding name is unknown
    """
    if name not in ENCODINGS:
        raise ValueError(
            f"Unknown encoding '{name}'. Supported: {', '.join(sorted(ENCODINGS))}"
        )
    if name == TextSegmentEncoding.name:
        return TextSegmentEncoding(prefix, max_width, max_height)
    return ENCODINGS[name](prefix)
