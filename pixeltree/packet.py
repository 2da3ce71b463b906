"""
ICMPv6 probe packet.

The same echo request is sent to every pixel address. It is built once at
startup and shared read-only by all workers.

Message format (RFC 4443): [type, code, checksum(2), identifier(2), sequence(2), data...]
"""

import struct
from dataclasses import dataclass

ICMPV6_ECHO_REQUEST = 128
ICMPV6_ECHO_CODE = 0

DEFAULT_IDENTIFIER = 0xFFFF
DEFAULT_SEQUENCE = 1


@dataclass(frozen=True)
class PacketTemplate:
    """Immutable probe payload handed to the worker pool."""

    payload: bytes

    def __len__(self) -> int:
        return len(self.payload)


def build_echo_request(
    identifier: int = DEFAULT_IDENTIFIER,
    sequence: int = DEFAULT_SEQUENCE,
    data: bytes = b"",
) -> PacketTemplate:
    """
    Encode an ICMPv6 echo request.

    The checksum is left zero: the kernel computes it for raw ICMPv6 sockets
    since it depends on the per-destination pseudo header.

    Args:
        identifier: Echo identifier (0-65535)
        sequence: Echo sequence number (0-65535)
        data: Optional echo body

    Returns:
        PacketTemplate: Encoded probe
    """
    if not (0 <= identifier <= 0xFFFF):
        raise ValueError(f"identifier must be 0-65535, got {identifier}")
    if not (0 <= sequence <= 0xFFFF):
        raise ValueError(f"sequence must be 0-65535, got {sequence}")

    header = struct.pack(
        ">BBHHH", ICMPV6_ECHO_REQUEST, ICMPV6_ECHO_CODE, 0, identifier, sequence
    )
    return PacketTemplate(header + bytes(data))
