"""Stage tile assets: background layers, 128x128 chunk definitions and tilesets."""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import BinaryIO, MutableSequence

from retrostage.sprite import decode_rle, read_gif_picture_data
from retrostage.stage import (
    CHUNKTILE_COUNT,
    CPATH_COUNT,
    LAYER_COUNT,
    TILE_DATASIZE,
    TILELAYER_CHUNK_W,
    TILELAYER_SCROLL_MAX,
    TILESET_SIZE,
    LineScroll,
    TileLayer,
)

__all__ = [
    "Backgrounds",
    "ChunkTiles",
    "StageGraphics",
    "parse_backgrounds",
    "parse_chunks",
    "parse_stage_gfx",
    "parse_stage_gif",
    "copy_tile",
]

PALETTE_SPLIT = 0x80
_GIF_IMAGE_START = ord(",")
_RLE_ESCAPE = 0xFF


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


def _take(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise EOFError(f"expected {size} bytes, got {len(data)}")
    return data


@dataclass
class Backgrounds:
    """Parallax tables and background layers, which occupy stage layers 1 and up."""

    layers: list[TileLayer] = field(default_factory=list)
    h_parallax: LineScroll = field(default_factory=LineScroll)
    v_parallax: LineScroll = field(default_factory=LineScroll)


@dataclass
class ChunkTiles:
    """Per-tile attributes of every 16x16 tile within the 128x128 chunks."""

    gfx_data_pos: list[int]
    tile_index: list[int]
    direction: list[int]
    visual_plane: list[int]
    collision_flags: tuple[list[int], list[int]]


@dataclass
class StageGraphics:
    """A stage tileset: pixel indices plus the upper half of its palette."""

    width: int
    height: int
    palette: dict[int, tuple[int, int, int]]
    pixels: bytearray


def _read_parallax(reader: _Reader) -> LineScroll:
    scroll = LineScroll()
    scroll.entry_count = reader.byte()
    for entry in range(scroll.entry_count):
        scroll.parallax_factor[entry] = reader.u16be()
        scroll.scroll_speed[entry] = reader.byte() << 10
        scroll.scroll_pos[entry] = 0
        scroll.deform[entry] = reader.byte()
    return scroll


def _read_line_scroll(reader: _Reader, out: bytearray) -> None:
    """Decode line scroll data; an ``FF v n`` run writes ``v`` only ``n - 1`` times."""
    position = 0

    def put(value: int, count: int) -> None:
        nonlocal position
        if position + count > len(out):
            raise ValueError("line scroll data runs past the end of the table")
        out[position : position + count] = bytes((value,)) * count
        position += count

    while True:
        value = reader.byte()
        if value != _RLE_ESCAPE:
            put(value, 1)
            continue
        value = reader.byte()
        if value == _RLE_ESCAPE:
            return
        put(value, max(reader.byte() - 1, 0))


def parse_backgrounds(data: bytes) -> Backgrounds:
    """Parse a stage's ``Backgrounds.bin``."""
    reader = _Reader(data)
    layer_count = reader.byte()
    if layer_count > LAYER_COUNT - 1:
        raise ValueError(f"{layer_count} background layers exceed the layer limit")
    h_parallax = _read_parallax(reader)
    v_parallax = _read_parallax(reader)

    layers = []
    for _ in range(layer_count):
        layer = TileLayer()
        layer.width = reader.byte()
        layer.height = reader.byte()
        layer.type = reader.byte()
        layer.parallax_factor = reader.u16be()
        layer.scroll_speed = reader.byte() << 10
        layer.scroll_pos = 0
        _read_line_scroll(reader, layer.line_scroll)
        for y in range(layer.height):
            row = y * TILELAYER_CHUNK_W
            for x in range(layer.width):
                layer.tiles[row + x] = reader.u16be()
        layers.append(layer)

    return Backgrounds(layers=layers, h_parallax=h_parallax, v_parallax=v_parallax)


def parse_chunks(data: bytes, software_render: bool = True) -> ChunkTiles:
    """Parse a stage's ``128x128Tiles.bin``, three bytes per tile."""
    size = 3 * CHUNKTILE_COUNT
    if len(data) < size:
        raise EOFError(f"chunk data needs {size} bytes, got {len(data)}")
    shift = 8 if software_render else 2
    raw = iter(bytes(data[:size]))

    gfx_data_pos: list[int] = []
    tile_index: list[int] = []
    direction: list[int] = []
    visual_plane: list[int] = []
    flags_a: list[int] = []
    flags_b: list[int] = []
    for attributes, low_index, solidity in zip(raw, raw, raw):
        attributes &= 0x3F
        visual_plane.append(attributes >> 4)
        direction.append((attributes >> 2) & 0x3)
        index = low_index + ((attributes & 0x3) << 8)
        tile_index.append(index)
        gfx_data_pos.append(index << shift)
        flags_a.append(solidity >> 4)
        flags_b.append(solidity & 0xF)

    assert CPATH_COUNT == 2
    return ChunkTiles(
        gfx_data_pos=gfx_data_pos,
        tile_index=tile_index,
        direction=direction,
        visual_plane=visual_plane,
        collision_flags=(flags_a, flags_b),
    )


def _read_upper_palette(read: "callable") -> dict[int, tuple[int, int, int]]:
    for _ in range(PALETTE_SPLIT):
        read(3)
    palette = {}
    for index in range(PALETTE_SPLIT, 0x100):
        red, green, blue = read(3)
        palette[index] = (red, green, blue)
    return palette


def _clear_transparent(pixels: bytearray) -> bytearray:
    """Map every pixel equal to the first pixel's value onto index 0."""
    table = bytearray(range(256))
    table[pixels[0]] = 0
    return pixels.translate(table)


def parse_stage_gfx(data: bytes) -> StageGraphics:
    """Parse a stage's run-length coded ``16x16Tiles.gfx``."""
    stream = io.BytesIO(bytes(data))
    width = int.from_bytes(_take(stream, 2), "big")
    height = int.from_bytes(_take(stream, 2), "big")
    palette = _read_upper_palette(lambda size: _take(stream, size))
    pixels = bytearray(TILESET_SIZE)
    decode_rle(stream, pixels, 0)
    return StageGraphics(width, height, palette, _clear_transparent(pixels))


def parse_stage_gif(data: bytes) -> StageGraphics:
    """Parse a stage's ``16x16Tiles.gif``.

    The upper palette half is taken only when the global palette holds
    256 colours.
    """
    stream = io.BytesIO(bytes(data))
    stream.seek(6)
    width = int.from_bytes(_take(stream, 2), "little")
    height = int.from_bytes(_take(stream, 2), "little")
    if width * height > TILESET_SIZE:
        raise ValueError(f"a {width}x{height} tileset does not fit the tile store")
    flags = _take(stream, 1)[0]
    palette_size = 1 << ((flags & 0x7) + 1)
    _take(stream, 2)  # background colour, pixel aspect

    palette: dict[int, tuple[int, int, int]] = {}
    if palette_size == 256:
        palette = _read_upper_palette(lambda size: _take(stream, size))

    while _take(stream, 1)[0] != _GIF_IMAGE_START:
        pass
    _take(stream, 8)
    image_flags = _take(stream, 1)[0]
    interlaced = bool(image_flags & 0x40)
    if image_flags >> 7 == 1:
        _take(stream, 3 * 127)

    pixels = bytearray(TILESET_SIZE)
    read_gif_picture_data(stream, width, height, interlaced, pixels, 0)
    return StageGraphics(width, height, palette, _clear_transparent(pixels))


def copy_tile(gfx_data: MutableSequence[int], dest: int, src: int) -> None:
    """Copy the pixels of tile ``src`` over tile ``dest`` in place."""
    src_start = TILELAYER_CHUNK_W * src
    dest_start = TILELAYER_CHUNK_W * dest
    for start in (src_start, dest_start):
        if start < 0 or start + TILE_DATASIZE > len(gfx_data):
            raise IndexError("tile lies outside the tileset")
    gfx_data[dest_start : dest_start + TILE_DATASIZE] = gfx_data[
        src_start : src_start + TILE_DATASIZE
    ]