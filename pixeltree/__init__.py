"""
IPv6 pixel tree renderer package.

This package provides:
- Address encodings that map pixel position and color to IPv6 addresses
- Frame building from decoded rasters
- A rate-controlled animation scheduler feeding a bounded work queue
- A worker pool transmitting ICMPv6 echo requests with channel recovery
"""

__version__ = "0.1.0"
