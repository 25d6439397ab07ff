"""Tile download and mosaic assembly for full-disk satellite imagery."""

from .errors import (
    ConfigurationError,
    DecodeError,
    HimawariError,
    ProtocolError,
    TimeParseError,
    TransportError,
)
from .imagery import encode_png, fetch_image, fetch_latest_image, save_png
from .mosaic import MosaicAssembler
from .tiles import HimawariTileSource, TileSource

__all__ = [
    "ConfigurationError",
    "DecodeError",
    "HimawariError",
    "HimawariTileSource",
    "MosaicAssembler",
    "ProtocolError",
    "TileSource",
    "TimeParseError",
    "TransportError",
    "encode_png",
    "fetch_image",
    "fetch_latest_image",
    "save_png",
]
