import pytest

from retrostage.stage import (
    CHUNKTILE_COUNT,
    TILE_DATASIZE,
    TILELAYER_CHUNK_W,
    TILESET_SIZE,
)
from retrostage.tiles import (
    copy_tile,
    parse_backgrounds,
    parse_chunks,
    parse_stage_gfx,
    parse_stage_gif,
)


def _palette_bytes():
    return bytes(
        value for index in range(256) for value in (index, 255 - index, index // 2)
    )


def _lzw_literals(pixels, min_code_size=8):
    clear = 1 << min_code_size
    eof = clear + 1
    width = min_code_size + 1
    codes = []
    for start in range(0, len(pixels), 200):
        codes.append(clear)
        codes.extend(pixels[start : start + 200])
    codes.append(eof)
    bits = 0
    nbits = 0
    packed = bytearray()
    for code in codes:
        bits |= code << nbits
        nbits += width
        while nbits >= 8:
            packed.append(bits & 0xFF)
            bits >>= 8
            nbits -= 8
    if nbits:
        packed.append(bits & 0xFF)
    out = bytearray([min_code_size])
    for start in range(0, len(packed), 255):
        chunk = packed[start : start + 255]
        out.append(len(chunk))
        out += chunk
    out.append(0)
    return bytes(out)


def _gif(width, height, pixel_rows, interlaced=False, flags=0xF7, palette=None):
    if palette is None:
        palette = _palette_bytes()
    header = (
        b"GIF89a"
        + width.to_bytes(2, "little")
        + height.to_bytes(2, "little")
        + bytes([flags, 0, 0])
        + palette
    )
    image = b"," + bytes(8) + bytes([0x40 if interlaced else 0])
    if interlaced:
        order = [0, 2, 1, 3] if height == 4 else list(range(height))
    else:
        order = list(range(height))
    stream = [p for row in order for p in pixel_rows[row]]
    return header + image + _lzw_literals(stream)


def test_backgrounds_single_layer():
    data = bytes(
        [1]  # layer count
        + [1, 0x01, 0x00, 2, 9]  # one h-parallax entry
        + [0]  # no v-parallax entries
        + [2, 1, 1, 0x00, 0x80, 3]  # layer header
        + [3, 0xFF, 7, 4, 0xFF, 0xFF]  # line scroll
        + [0x00, 0x05, 0x01, 0x02]  # layout
    )
    bg = parse_backgrounds(data)
    assert bg.h_parallax.entry_count == 1
    assert bg.h_parallax.parallax_factor[0] == 0x100
    assert bg.h_parallax.scroll_speed[0] == 2 << 10
    assert bg.h_parallax.deform[0] == 9
    assert bg.v_parallax.entry_count == 0
    assert len(bg.layers) == 1
    layer = bg.layers[0]
    assert (layer.width, layer.height, layer.type) == (2, 1, 1)
    assert layer.parallax_factor == 0x80
    assert layer.scroll_speed == 3 << 10
    assert bytes(layer.line_scroll[:5]) == bytes([3, 7, 7, 7, 0])
    assert layer.chunk(0, 0) == 0x0005
    assert layer.chunk(1, 0) == 0x0102


def test_backgrounds_too_many_layers():
    with pytest.raises(ValueError):
        parse_backgrounds(bytes([9, 0, 0]))


def test_backgrounds_truncated():
    with pytest.raises(EOFError):
        parse_backgrounds(bytes([1, 0, 0, 2, 1]))


def _chunk_data(entries):
    data = bytearray(3 * CHUNKTILE_COUNT)
    for position, entry in enumerate(entries):
        data[3 * position : 3 * position + 3] = bytes(entry)
    return bytes(data)


@pytest.mark.parametrize("high_bits", [0x00, 0xC0])
def test_chunks_round_trip(high_bits):
    visual, direction, index = 1, 3, 0x2A7
    solid_a, solid_b = 5, 12
    attributes = high_bits | (visual << 4) | (direction << 2) | (index >> 8)
    entry = (attributes, index & 0xFF, (solid_a << 4) | solid_b)
    chunks = parse_chunks(_chunk_data([entry]), True)
    assert chunks.visual_plane[0] == visual
    assert chunks.direction[0] == direction
    assert chunks.tile_index[0] == index
    assert chunks.gfx_data_pos[0] == index * TILE_DATASIZE
    assert chunks.collision_flags[0][0] == solid_a
    assert chunks.collision_flags[1][0] == solid_b
    assert len(chunks.tile_index) == CHUNKTILE_COUNT


def test_chunks_hardware_positions():
    index = 0x123
    entry = (index >> 8, index & 0xFF, 0)
    chunks = parse_chunks(_chunk_data([entry]), False)
    assert chunks.gfx_data_pos[0] == index * 4
    assert chunks.tile_index[1] == 0


def test_chunks_truncated():
    with pytest.raises(EOFError):
        parse_chunks(bytes(10), True)


def test_stage_gfx():
    palette = _palette_bytes()
    data = (
        (16).to_bytes(2, "big")
        + (32).to_bytes(2, "big")
        + palette
        + bytes([5, 1, 0xFF, 2, 3, 5, 0xFF, 0xFF])
    )
    gfx = parse_stage_gfx(data)
    assert (gfx.width, gfx.height) == (16, 32)
    assert bytes(gfx.pixels[:7]) == bytes([0, 1, 2, 2, 2, 0, 0])
    assert len(gfx.pixels) == TILESET_SIZE
    assert gfx.palette[0x80] == tuple(palette[0x80 * 3 : 0x80 * 3 + 3])
    assert gfx.palette[0xFF] == tuple(palette[0xFF * 3 : 0xFF * 3 + 3])
    assert 0x7F not in gfx.palette


def test_stage_gfx_truncated():
    with pytest.raises(EOFError):
        parse_stage_gfx(bytes(4) + _palette_bytes() + bytes([1, 2]))


def test_stage_gif_round_trip():
    rows = [[(x * 7 + y * 3) % 200 + 1 for x in range(16)] for y in range(4)]
    rows[0][0] = 9
    gif = parse_stage_gif(_gif(16, 4, rows))
    expected = [0 if p == 9 else p for row in rows for p in row]
    assert (gif.width, gif.height) == (16, 4)
    assert list(gif.pixels[:64]) == expected
    palette = _palette_bytes()
    assert gif.palette[0x90] == tuple(palette[0x90 * 3 : 0x90 * 3 + 3])


def test_stage_gif_interlaced():
    rows = [[y * 16 + x + 1 for x in range(16)] for y in range(4)]
    gif = parse_stage_gif(_gif(16, 4, rows, interlaced=True))
    assert list(gif.pixels[16:64]) == [p for row in rows[1:] for p in row]
    assert gif.pixels[0] == 0


def test_stage_gif_small_palette_is_ignored():
    rows = [[1, 2, 3, 4]]
    gif = parse_stage_gif(_gif(4, 1, rows, flags=0x80, palette=bytes([1, 2, 3, 4, 5, 6])))
    assert gif.palette == {}
    assert list(gif.pixels[:4]) == [0, 2, 3, 4]


def test_copy_tile():
    data = bytearray(TILELAYER_CHUNK_W * 4)
    data[TILELAYER_CHUNK_W : 2 * TILELAYER_CHUNK_W] = bytes(range(TILE_DATASIZE))
    copy_tile(data, 3, 1)
    assert data[3 * TILELAYER_CHUNK_W :] == data[TILELAYER_CHUNK_W : 2 * TILELAYER_CHUNK_W]
    assert len(data) == TILELAYER_CHUNK_W * 4


def test_copy_tile_out_of_range():
    data = bytearray(TILELAYER_CHUNK_W * 2)
    with pytest.raises(IndexError):
        copy_tile(data, 2, 0)
    assert len(data) == TILELAYER_CHUNK_W * 2