# pixeltree/config.py
from __future__ import annotations

import dataclasses
import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .encoding import DEFAULT_MAX_HEIGHT, DEFAULT_MAX_WIDTH, ByteOffsetEncoding
from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_DST_NET = "2001:610:1908:a000::"
DEFAULT_RATE = 5.0
LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class PixelTreeConfig:
    image: Optional[Path] = None
    dst_net: str = DEFAULT_DST_NET
    x: int = 0
    y: int = 0
    rate: float = DEFAULT_RATE
    workers: int = 1
    once: bool = False
    encoding: str = ByteOffsetEncoding.name
    max_width: int = DEFAULT_MAX_WIDTH
    max_height: int = DEFAULT_MAX_HEIGHT
    backend: str = "icmp"
    interface: str = ""
    seed: Optional[int] = None
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.rate <= 0:
            raise ConfigError(f"rate must be > 0, got {self.rate}")
        if self.workers < 1:
            raise ConfigError(f"workers must be >= 1, got {self.workers}")
        if self.max_width <= 0 or self.max_height <= 0:
            raise ConfigError(
                f"max size must be positive, got ({self.max_width}x{self.max_height})"
            )
        if not self.backend:
            raise ConfigError("backend must not be empty")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"Invalid log level '{self.log_level}'")

    @property
    def frame_interval(self) -> float:
        """Seconds between full redraws; also the delay of a still image."""
        return 1.0 / self.rate

    def with_overrides(self, **overrides: Any) -> "PixelTreeConfig":
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return dataclasses.replace(self, **changes)

    def validate(self) -> None:
        from .validation import validate_config

        validate_config(self)


def _section(data: dict, name: str) -> dict:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"[{name}] must be a table")
    return value


def _optional_int(value: Any) -> Optional[int]:
    return None if value is None else int(value)


def load_from_toml(config_path: str | Path) -> PixelTreeConfig:
    """
    Load a PixelTreeConfig from a TOML file.

    Expected TOML structure (every key optional):

    [display]
    dst_net = "2001:610:1908:a000::"
    encoding = "byte-offset"   # byte-offset|text-segment
    max_width = 1920           # text-segment bounds
    max_height = 1080

    [animation]
    image = "nyan.gif"         # relative to this file
    x = 0
    y = 0
    rate = 5
    once = false
    seed = 42

    [transmit]
    backend = "icmp"           # icmp|mock|<external>
    interface = ""
    workers = 4

    [logging]
    level = "INFO"
    """
    p = Path(config_path)
    if not p.exists():
        raise ConfigError(f"Configuration file not found: {p}")

    try:
        with p.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {p}: {e}") from e

    display = _section(data, "display")
    animation = _section(data, "animation")
    transmit = _section(data, "transmit")
    log_cfg = _section(data, "logging")

    image = animation.get("image")
    image_path = None
    if image:
        image_path = Path(str(image))
        if not image_path.is_absolute():
            image_path = p.parent / image_path

    try:
        cfg = PixelTreeConfig(
            image=image_path,
            dst_net=str(display.get("dst_net", DEFAULT_DST_NET)),
            x=int(animation.get("x", 0)),
            y=int(animation.get("y", 0)),
            rate=float(animation.get("rate", DEFAULT_RATE)),
            workers=int(transmit.get("workers", 1)),
            once=bool(animation.get("once", False)),
            encoding=str(display.get("encoding", ByteOffsetEncoding.name)),
            max_width=int(display.get("max_width", DEFAULT_MAX_WIDTH)),
            max_height=int(display.get("max_height", DEFAULT_MAX_HEIGHT)),
            backend=str(transmit.get("backend", "icmp")),
            interface=str(transmit.get("interface", "")),
            seed=_optional_int(animation.get("seed")),
            log_level=str(log_cfg.get("level", "INFO")),
        )
    except (TypeError, ValueError) as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(f"Invalid value in {p}: {e}") from e

    logger.info(
        "Loaded PixelTreeConfig from %s: dst_net=%s, encoding=%s, rate=%s, workers=%d",
        p,
        cfg.dst_net,
        cfg.encoding,
        cfg.rate,
        cfg.workers,
    )
    return cfg


def describe(config: PixelTreeConfig) -> Dict[str, Any]:
    """Flat, printable view of a configuration."""
    out = dataclasses.asdict(config)
    out["image"] = str(config.image) if config.image else None
    return out
