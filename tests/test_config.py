"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest

from pixeltree.config import DEFAULT_DST_NET, PixelTreeConfig, describe, load_from_toml
from pixeltree.errors import ConfigError


def write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "pixeltree.toml"
    path.write_text(text)
    return path


def test_defaults():
    cfg = PixelTreeConfig()
    assert cfg.image is None
    assert cfg.dst_net == DEFAULT_DST_NET
    assert (cfg.x, cfg.y) == (0, 0)
    assert cfg.rate == 5.0
    assert cfg.frame_interval == pytest.approx(0.2)
    assert cfg.workers == 1
    assert cfg.once is False
    assert cfg.encoding == "byte-offset"
    assert (cfg.max_width, cfg.max_height) == (1920, 1080)
    assert cfg.backend == "icmp"
    cfg.validate()


def test_load_from_toml(tmp_path):
    path = write(
        tmp_path,
        """
[display]
dst_net = "2001:db8:1::"
encoding = "text-segment"
max_width = 640
max_height = 480

[animation]
image = "images/nyan.gif"
x = 10
y = -3
rate = 2.5
once = true
seed = 7

[transmit]
backend = "mock"
workers = 4

[logging]
level = "debug"
""",
    )

    cfg = load_from_toml(path)

    assert cfg.image == tmp_path / "images" / "nyan.gif"
    assert cfg.dst_net == "2001:db8:1::"
    assert cfg.encoding == "text-segment"
    assert (cfg.max_width, cfg.max_height) == (640, 480)
    assert (cfg.x, cfg.y) == (10, -3)
    assert cfg.rate == 2.5
    assert cfg.once is True
    assert cfg.seed == 7
    assert cfg.backend == "mock"
    assert cfg.workers == 4
    cfg.validate()

    assert describe(cfg)["image"] == str(tmp_path / "images" / "nyan.gif")


def test_absolute_image_path_is_kept(tmp_path):
    image = tmp_path / "elsewhere" / "x.png"
    cfg = load_from_toml(write(tmp_path, f'[animation]\nimage = "{image.as_posix()}"\n'))
    assert cfg.image == image


def test_empty_file_gives_defaults(tmp_path):
    assert load_from_toml(write(tmp_path, "")) == PixelTreeConfig()


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_from_toml(tmp_path / "nope.toml")


def test_bad_toml(tmp_path):
    with pytest.raises(ConfigError, match="Invalid TOML"):
        load_from_toml(write(tmp_path, "[animation\nrate = 5"))


@pytest.mark.parametrize(
    "text",
    [
        "[animation]\nrate = 0\n",
        "[animation]\nrate = \"fast\"\n",
        "[transmit]\nworkers = 0\n",
        "[logging]\nlevel = \"LOUD\"\n",
        "animation = 5\n",
    ],
)
def test_invalid_values(tmp_path, text):
    with pytest.raises(ConfigError):
        load_from_toml(write(tmp_path, text))


def test_with_overrides_skips_none():
    base = PixelTreeConfig(rate=10, workers=2)
    cfg = base.with_overrides(rate=None, workers=8, once=True)

    assert cfg.rate == 10
    assert cfg.workers == 8
    assert cfg.once is True
    assert base.workers == 2


def test_with_overrides_revalidates():
    with pytest.raises(ConfigError):
        PixelTreeConfig().with_overrides(rate=-1.0)


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"dst_net": "not-an-address"}, "Invalid destination network"),
        ({"dst_net": "10.0.0.1"}, "Invalid destination network"),
        ({"dst_net": " 2001:db8:: "}, "Invalid destination network"),
        ({"encoding": "base64"}, "Unknown encoding"),
        ({"encoding": "text-segment", "max_width": 20000}, "max_width"),
        ({"x": 70000}, "x offset"),
        ({"y": -70000}, "y offset"),
    ],
)
def test_validate_rejects(overrides, message):
    cfg = PixelTreeConfig(**overrides)
    with pytest.raises(ConfigError, match=message):
        cfg.validate()


def test_byte_offset_allows_large_display_bounds():
    PixelTreeConfig(max_width=20000).validate()
