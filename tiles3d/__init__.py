"""Codec and data model for 3D Tiles tilesets and b3dm/i3dm/pnts/cmpt tile content."""

from .b3dm import B3dm, decode_b3dm, encode_b3dm
from .bounding_volume import BoundingVolume, Box, Region, Sphere, decode_bounding_volume, encode_bounding_volume
from .cmpt import Cmpt
from .codec import TileContent, decode, decode_content, encode, encode_content, sniff
from .components import ComponentType, DataType
from .config import CodecConfig, ConfigError, load_config, parse_config
from .errors import (
    InvalidBoundingVolumeError,
    InvalidFieldError,
    InvalidJsonError,
    LengthMismatchError,
    MissingFieldError,
    MissingRequiredSemanticError,
    NestingTooDeepError,
    OutOfBoundsError,
    TilesError,
    TruncatedInputError,
    TypeMismatchError,
    UnalignedOffsetError,
    UnknownMagicError,
    UnsupportedVersionError,
)
from .header import Header, read_header
from .i3dm import I3dm, decode_i3dm, encode_i3dm
from .pnts import Pnts, decode_pnts, encode_pnts
from .tables import BinaryProperty, InlineProperty, Table, read_table, write_table
from .tileset import (
    Asset,
    Content,
    PropertyRange,
    Refine,
    Tile,
    Tileset,
    decode_tileset,
    effective_refine,
    encode_tileset,
    find_geometric_error_violations,
    iter_tiles,
    world_transform,
)

__version__ = "0.1.0"
