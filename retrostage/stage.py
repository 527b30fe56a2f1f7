"""Stage lists, file paths, act layouts and background deformation tables."""

from __future__ import annotations

import logging
from array import array
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Sequence

__all__ = [
    "LAYER_COUNT",
    "DEFORM_STORE",
    "DEFORM_SIZE",
    "DEFORM_COUNT",
    "PARALLAX_COUNT",
    "TILE_COUNT",
    "TILE_SIZE",
    "CHUNK_SIZE",
    "TILE_DATASIZE",
    "TILESET_SIZE",
    "TILELAYER_CHUNK_W",
    "TILELAYER_CHUNK_H",
    "TILELAYER_CHUNK_MAX",
    "TILELAYER_SCROLL_MAX",
    "CHUNKTILE_COUNT",
    "CPATH_COUNT",
    "OBJECT_LIMIT",
    "STAGE_LIST_NAMES",
    "LayerType",
    "StageListId",
    "StageMode",
    "DeformMode",
    "SceneInfo",
    "TileLayer",
    "LineScroll",
    "ObjectPlacement",
    "ActLayout",
    "StageFolderTracker",
    "stage_file_path",
    "act_file_path",
    "bytecode_script_path",
    "parse_act_layout",
    "init_3d_floor_buffer",
    "layer_deformation",
]

log = logging.getLogger(__name__)

LAYER_COUNT = 9
DEFORM_STORE = 0x100
DEFORM_SIZE = 320
DEFORM_COUNT = DEFORM_STORE + DEFORM_SIZE
PARALLAX_COUNT = 0x100

TILE_COUNT = 0x400
TILE_SIZE = 0x10
CHUNK_SIZE = 0x80
TILE_DATASIZE = TILE_SIZE * TILE_SIZE
TILESET_SIZE = TILE_COUNT * TILE_DATASIZE

TILELAYER_CHUNK_W = 0x100
TILELAYER_CHUNK_H = 0x100
TILELAYER_CHUNK_MAX = TILELAYER_CHUNK_W * TILELAYER_CHUNK_H
TILELAYER_SCROLL_MAX = TILELAYER_CHUNK_H * CHUNK_SIZE

CHUNKTILE_COUNT = 0x200 * (8 * 8)
CPATH_COUNT = 2

OBJECT_LIMIT = 0x400

STAGE_LIST_NAMES = (
    "Presentation Stages",
    "Regular Stages",
    "Bonus Stages",
    "Special Stages",
)

STAGE_FOLDER = "Data/Stages/"
BYTECODE_FOLDER = "Data/Scripts/ByteCode/"
GLOBAL_BYTECODE_MOBILE = BYTECODE_FOLDER + "GlobalCode.bin"
GLOBAL_BYTECODE_PC = BYTECODE_FOLDER + "GS000.bin"
_LIST_LETTERS = "PRBS"


class LayerType(IntEnum):
    NOSCROLL = 0
    HSCROLL = 1
    VSCROLL = 2
    FLOOR_3D = 3
    SKY_3D = 4


class StageListId(IntEnum):
    PRESENTATION = 0
    REGULAR = 1
    BONUS = 2
    SPECIAL = 3


STAGELIST_MAX = len(StageListId)


class StageMode(IntEnum):
    LOAD = 0
    NORMAL = 1
    PAUSED = 2


class DeformMode(IntEnum):
    FG = 0
    FG_WATER = 1
    BG = 2
    BG_WATER = 3


def _int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


def _div(numerator: int, denominator: int) -> int:
    """Integer division truncating toward zero."""
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator < 0) == (denominator < 0) else -quotient


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = memoryview(bytes(data))
        self._position = 0

    def take(self, size: int) -> bytes:
        end = self._position + size
        if end > len(self._data):
            raise EOFError(f"expected {size} bytes at offset {self._position}")
        chunk = bytes(self._data[self._position : end])
        self._position = end
        return chunk

    def byte(self) -> int:
        return self.take(1)[0]

    def u16be(self) -> int:
        return int.from_bytes(self.take(2), "big")


@dataclass
class SceneInfo:
    """One entry of a stage list."""

    name: str = ""
    folder: str = ""
    id: str = ""
    highlighted: bool = False


def _zero_tiles() -> array:
    return array("H", [0]) * TILELAYER_CHUNK_MAX


def _zero_parallax() -> list[int]:
    return [0] * PARALLAX_COUNT


@dataclass
class TileLayer:
    """A layer of 128x128 chunk indices, 256 chunks wide and high."""

    tiles: array = field(default_factory=_zero_tiles)
    line_scroll: bytearray = field(default_factory=lambda: bytearray(TILELAYER_SCROLL_MAX))
    parallax_factor: int = 0
    scroll_speed: int = 0
    scroll_pos: int = 0
    angle: int = 0
    x_pos: int = 0
    y_pos: int = 0
    z_pos: int = 0
    deformation_offset: int = 0
    deformation_offset_w: int = 0
    type: int = LayerType.NOSCROLL
    width: int = 0
    height: int = 0

    def chunk(self, x: int, y: int) -> int:
        return self.tiles[x + y * TILELAYER_CHUNK_W]


@dataclass
class LineScroll:
    """Per-entry parallax settings for horizontal or vertical line scrolling."""

    parallax_factor: list[int] = field(default_factory=_zero_parallax)
    scroll_speed: list[int] = field(default_factory=_zero_parallax)
    scroll_pos: list[int] = field(default_factory=_zero_parallax)
    line_pos: list[int] = field(default_factory=_zero_parallax)
    deform: list[int] = field(default_factory=_zero_parallax)
    entry_count: int = 0


@dataclass(frozen=True)
class ObjectPlacement:
    """An object placed in an act, with 16.16 fixed-point coordinates."""

    type: int
    property_value: int
    x_pos: int
    y_pos: int


@dataclass
class ActLayout:
    """The foreground layout, title card and object placements of an act."""

    title_card_text: str
    title_card_word2: int
    active_layers: tuple[int, int, int, int]
    layer_midpoint: int
    layer: TileLayer
    objects: list[ObjectPlacement]

    @property
    def x_boundary2(self) -> int:
        return self.layer.width << 7

    @property
    def y_boundary2(self) -> int:
        return self.layer.height << 7

    @property
    def water_level(self) -> int:
        return self.y_boundary2 + 128


class StageFolderTracker:
    """Remembers which stage folder is loaded so reloads can skip assets."""

    def __init__(self) -> None:
        self.current = ""

    def check(self, folder: str) -> bool:
        """Return True if ``folder`` is current; otherwise make it current."""
        if self.current == folder:
            return True
        self.current = folder
        return False

    def reset(self) -> None:
        self.current = ""


def stage_file_path(folder: str, file_name: str) -> str:
    return f"{STAGE_FOLDER}{folder}/{file_name}"


def act_file_path(folder: str, act_id: str, ext: str) -> str:
    return f"{STAGE_FOLDER}{folder}/Act{act_id}{ext}"


def bytecode_script_path(mobile: bool, active_list: int, position: int, folder: str) -> str:
    """Return the path of the compiled script for a stage.

    Mobile bytecode is named after the stage folder, with list 4 meaning
    the global code. PC bytecode is named by list letter and position.
    """
    if active_list < 0:
        raise ValueError(f"invalid stage list {active_list}")
    if mobile:
        if active_list < STAGELIST_MAX:
            return f"{BYTECODE_FOLDER}{folder}.bin"
        if active_list == 4:
            return GLOBAL_BYTECODE_MOBILE
        raise ValueError(f"no mobile bytecode for stage list {active_list}")
    if active_list >= STAGELIST_MAX:
        return GLOBAL_BYTECODE_PC
    if position < 0:
        raise ValueError(f"invalid stage position {position}")
    digits = "".join(
        chr(value + ord("0"))
        for value in (position // 100, position % 100 // 10, position % 10)
    )
    return f"{BYTECODE_FOLDER}{_LIST_LETTERS[active_list]}S{digits}.bin"


def parse_act_layout(
    data: bytes, mod_offset: int, global_count: int, load_globals: bool
) -> ActLayout:
    """Parse an act's ``.bin`` layout.

    Object types at or above ``global_count`` are shifted by ``mod_offset``
    when global scripts are loaded, making room for force-loaded mod objects.
    """
    reader = _Reader(data)

    length = reader.byte()
    title = reader.take(length).decode("latin-1")
    word2 = length
    for index, char in enumerate(title):
        if char == "-":
            word2 = index + 1

    active_layers = tuple(reader.take(4))
    midpoint = reader.byte()

    layer = TileLayer(type=LayerType.HSCROLL)
    layer.width = reader.byte()
    layer.height = reader.byte()
    for y in range(layer.height):
        row = y * TILELAYER_CHUNK_W
        for x in range(layer.width):
            layer.tiles[row + x] = reader.u16be()

    for _ in range(reader.byte()):
        reader.take(reader.byte())

    object_count = reader.u16be()
    if object_count > OBJECT_LIMIT:
        log.warning("object count %d exceeds the object limit", object_count)

    shift_types = load_globals and mod_offset
    objects = []
    for _ in range(object_count):
        object_type = reader.byte()
        if shift_types and object_type >= global_count:
            object_type += mod_offset
        property_value = reader.byte()
        x_pos = _int32(reader.u16be() << 16)
        y_pos = _int32(reader.u16be() << 16)
        objects.append(ObjectPlacement(object_type, property_value, x_pos, y_pos))

    return ActLayout(
        title_card_text=title,
        title_card_word2=word2,
        active_layers=active_layers,  # type: ignore[arg-type]
        layer_midpoint=midpoint,
        layer=layer,
        objects=objects,
    )


def init_3d_floor_buffer(layer: TileLayer) -> array:
    """Expand a layer's chunk grid into a 256x256 table of tile references."""
    buffer = array("H", [0]) * (TILELAYER_CHUNK_W * TILELAYER_CHUNK_H)
    tiles = layer.tiles
    for y in range(TILELAYER_CHUNK_H):
        chunk_row = (y >> 3) << 8
        row_offset = (y & 7) << 3
        out_row = y << 8
        for x in range(TILELAYER_CHUNK_W):
            chunk = tiles[(x >> 3) + chunk_row] << 6
            buffer[x + out_row] = (chunk + (x & 7) + row_offset) & 0xFFFF
    return buffer


def layer_deformation(
    wave_length: int,
    wave_width: int,
    wave_type: int,
    y_pos: int,
    wave_size: int,
    sin_table: Sequence[int],
    software_render: bool = True,
) -> list[int]:
    """Build a deformation table of ``DEFORM_COUNT`` line offsets.

    Wave type 1 writes ``wave_size`` lines from ``y_pos``; any other type
    writes one full 256-line wave. Entries not written stay zero, and the
    table is then repeated every ``DEFORM_STORE`` lines.
    """
    if len(sin_table) != 0x200:
        raise ValueError("the sine table must hold 512 entries")
    shift = 9 if software_render else 5
    deform = [0] * DEFORM_COUNT

    if wave_type == 1:
        if y_pos < 0 or wave_size < 0 or y_pos + wave_size > DEFORM_COUNT:
            raise ValueError("wave runs outside the deformation table")
        for i in range(wave_size):
            angle = _div(i << 9, wave_length) & 0x1FF
            deform[y_pos + i] = wave_width * sin_table[angle] >> shift
    else:
        for line in range(DEFORM_STORE):
            angle = _div(line * 0x200, wave_length) & 0x1FF
            value = wave_width * sin_table[angle] >> shift
            if value >= wave_width and software_render:
                value = wave_width - 1
            deform[line] = value

    for line in range(DEFORM_STORE, DEFORM_COUNT):
        deform[line] = deform[line - DEFORM_STORE]
    return deform