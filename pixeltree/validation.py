"""
Cross-cutting validation logic for pixeltree configuration.

Type-local invariants stay in the PixelTreeConfig __post_init__; this module
checks rules that span several fields or need parsing:
- Destination prefix is a valid IPv6 address
- Encoding name is known and its display bounds fit its layout
- Placement offsets fit the 16-bit coordinate space
"""

from ipaddress import AddressValueError, IPv6Address
from typing import TYPE_CHECKING

from .encoding import ENCODINGS, MAX_COORDINATE, MAX_TEXT_DIMENSION, TextSegmentEncoding
from .errors import ConfigError

if TYPE_CHECKING:
    from .config import PixelTreeConfig


def validate_prefix(dst_net: str) -> IPv6Address:
    """
    Parse the destination network prefix.

    Args:
        dst_net: Prefix as text, e.g. "2001:610:1908:a000::"

    Returns:
        IPv6Address: Parsed prefix

    Raises:
        ConfigError: If the prefix is not an IPv6 address
    """
    try:
        return IPv6Address(dst_net)
    except AddressValueError as e:
        raise ConfigError(f"Invalid destination network '{dst_net}': {e}") from e


def validate_offsets(x: int, y: int) -> None:
    """
    Offsets may be negative (crop the image) but must stay within the
    coordinate space.

    Raises:
        ConfigError: If either offset is out of range
    """
    for name, value in (("x", x), ("y", y)):
        if not (-MAX_COORDINATE <= value <= MAX_COORDINATE):
            raise ConfigError(
                f"{name} offset must be within +/-{MAX_COORDINATE}, got {value}"
            )


def validate_encoding(name: str, max_width: int, max_height: int) -> None:
    """
    Raises:
        ConfigError: If the encoding is unknown or its bounds don't fit
    """
    if name not in ENCODINGS:
        raise ConfigError(
            f"Unknown encoding '{name}'. Supported: {', '.join(sorted(ENCODINGS))}"
        )
    if name == TextSegmentEncoding.name:
        for dim_name, value in (("max_width", max_width), ("max_height", max_height)):
            if not (0 < value <= MAX_TEXT_DIMENSION):
                raise ConfigError(
                    f"{dim_name} must be 1-{MAX_TEXT_DIMENSION} for {name}, got {value}"
                )


def validate_config(config: "PixelTreeConfig") -> None:
    """
    Validate cross-cutting rules for a complete configuration.

    Raises:
        ConfigError: If any rule fails
    """
    validate_prefix(config.dst_net)
    validate_offsets(config.x, config.y)
    validate_encoding(config.encoding, config.max_width, config.max_height)
