"""Sprite sheet loading: GIF, BMP, GFX, RSV and PVR surfaces in one pixel store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import BinaryIO, Callable, MutableSequence, Optional

from retrostage.strings import str_comp

__all__ = [
    "SURFACE_MAX",
    "GFXDATA_MAX",
    "GifDecoder",
    "Surface",
    "GraphicsStore",
    "read_gif_picture_data",
    "decode_rle",
    "width_shift",
]

log = logging.getLogger(__name__)

SURFACE_MAX = 24
GFXDATA_MAX = 0x200000
SPRITE_FOLDER = "Data/Sprites/"

LZ_MAX_CODE = 4095
LZ_BITS = 12
FIRST_CODE = 4097
NO_SUCH_CODE = 4098

_INTERLACE_STARTS = (0, 4, 2, 1)
_INTERLACE_STEPS = (8, 8, 4, 2)
_GIF_IMAGE_START = ord(",")


def _read(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise EOFError(f"expected {size} bytes, got {len(data)}")
    return data


def _read_byte(stream: BinaryIO) -> int:
    return _read(stream, 1)[0]


def _read_u16le(stream: BinaryIO) -> int:
    return int.from_bytes(_read(stream, 2), "little")


def _read_u16be(stream: BinaryIO) -> int:
    return int.from_bytes(_read(stream, 2), "big")


def _stream_size(stream: BinaryIO) -> int:
    position = stream.tell()
    size = stream.seek(0, 2)
    stream.seek(position)
    return size


def _store(out: MutableSequence[int], position: int, chunk: bytes) -> None:
    if position < 0 or position + len(chunk) > len(out):
        raise ValueError("pixel data runs past the end of the buffer")
    out[position : position + len(chunk)] = chunk


def width_shift(width: int) -> int:
    """Return how many times ``width`` halves before it drops to 1."""
    return width.bit_length() - 1 if width > 1 else 0


def decode_rle(stream: BinaryIO, out: MutableSequence[int], start: int) -> int:
    """Decode 0xFF-escaped run-length data into ``out`` from ``start``.

    ``FF v n`` writes ``v`` ``n`` times, ``FF FF`` ends the data, any other
    byte is copied. Returns the position after the last byte written.
    """
    position = start
    while True:
        value = _read_byte(stream)
        if value != 0xFF:
            _store(out, position, bytes((value,)))
            position += 1
            continue
        value = _read_byte(stream)
        if value == 0xFF:
            return position
        count = _read_byte(stream)
        _store(out, position, bytes((value,)) * count)
        position += count


class GifDecoder:
    """LZW decoder for the image data of a GIF, one line at a time."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        depth = _read_byte(stream)
        if depth >= LZ_BITS:
            raise ValueError(f"unsupported LZW code size {depth}")
        self.depth = depth
        self.clear_code = 1 << depth
        self.eof_code = self.clear_code + 1
        self._running_code = self.eof_code + 1
        self._running_bits = depth + 1
        self._max_code_plus_one = 1 << self._running_bits
        self._stack: list[int] = []
        self._prev_code = NO_SUCH_CODE
        self._shift_state = 0
        self._shift_data = 0
        self._block = b""
        self._position = 0
        self._complete = False
        # The table starts out filled with the low byte of NO_SUCH_CODE;
        # only a clear code fills it with the real marker.
        self._prefix = [NO_SUCH_CODE & 0xFF] * (LZ_MAX_CODE + 1)
        self._suffix = [0] * (LZ_MAX_CODE + 1)

    def _read_block_byte(self) -> int:
        if self._complete:
            return 0
        if self._position == len(self._block):
            size = _read_byte(self._stream)
            if size == 0:
                self._complete = True
                return 0
            self._block = _read(self._stream, size)
            self._position = 1
            return self._block[0]
        value = self._block[self._position]
        self._position += 1
        return value

    def _read_code(self) -> int:
        while self._shift_state < self._running_bits:
            self._shift_data |= self._read_block_byte() << self._shift_state
            self._shift_state += 8
        result = self._shift_data & ((1 << self._running_bits) - 1)
        self._shift_data >>= self._running_bits
        self._shift_state -= self._running_bits
        self._running_code += 1
        if self._running_code > self._max_code_plus_one and self._running_bits < LZ_BITS:
            self._max_code_plus_one <<= 1
            self._running_bits += 1
        return result

    def _trace(self, code: int) -> int:
        steps = 0
        while self.clear_code < code <= LZ_MAX_CODE and steps <= LZ_MAX_CODE:
            steps += 1
            code = self._prefix[code]
        return code & 0xFF

    def read_line(self, line: MutableSequence[int], length: int, offset: int) -> None:
        """Decode ``length`` pixels into ``line`` starting at ``offset``."""
        stack = self._stack
        prefix, suffix = self._prefix, self._suffix
        clear_code = self.clear_code
        prev_code = self._prev_code
        done = 0
        while stack and done < length:
            line[offset] = stack.pop()
            offset += 1
            done += 1

        while done < length:
            gif_code = self._read_code()
            if gif_code == self.eof_code:
                if done != length - 1:
                    return
                done += 1
                continue
            if gif_code == clear_code:
                prefix[:] = [NO_SUCH_CODE] * (LZ_MAX_CODE + 1)
                self._running_code = self.eof_code + 1
                self._running_bits = self.depth + 1
                self._max_code_plus_one = 1 << self._running_bits
                prev_code = self._prev_code = NO_SUCH_CODE
                continue

            if gif_code < clear_code:
                line[offset] = gif_code
                offset += 1
                done += 1
            else:
                if gif_code > LZ_MAX_CODE:
                    return
                if prefix[gif_code] == NO_SUCH_CODE:
                    if gif_code != self._running_code - 2:
                        return
                    code = prev_code
                    first = self._trace(prev_code)
                    suffix[self._running_code - 2] = first
                    stack.append(first)
                else:
                    code = gif_code
                steps = 0
                while True:
                    steps += 1
                    if not (steps - 1 <= LZ_MAX_CODE and clear_code < code <= LZ_MAX_CODE):
                        break
                    stack.append(suffix[code])
                    code = prefix[code]
                if steps >= LZ_MAX_CODE or code > LZ_MAX_CODE:
                    return
                stack.append(code & 0xFF)
                while stack and done < length:
                    done += 1
                    line[offset] = stack.pop()
                    offset += 1

            if prev_code != NO_SUCH_CODE:
                entry = self._running_code - 2
                if self._running_code < 2 or self._running_code > FIRST_CODE:
                    return
                prefix[entry] = prev_code
                suffix[entry] = self._trace(prev_code if gif_code == entry else gif_code)
            prev_code = gif_code

        self._prev_code = prev_code


def read_gif_picture_data(
    stream: BinaryIO,
    width: int,
    height: int,
    interlaced: bool,
    gfx_data: MutableSequence[int],
    offset: int,
) -> None:
    """Decode a ``width`` x ``height`` GIF image into ``gfx_data`` at ``offset``."""
    decoder = GifDecoder(stream)
    if interlaced:
        rows = (
            row
            for start, step in zip(_INTERLACE_STARTS, _INTERLACE_STEPS)
            for row in range(start, height, step)
        )
    else:
        rows = iter(range(height))
    for row in rows:
        decoder.read_line(gfx_data, width, row * width + offset)


@dataclass
class Surface:
    """A sprite sheet's place in the shared pixel store."""

    file_name: str = ""
    width: int = 0
    height: int = 0
    data_position: int = 0
    width_shift: int = 0

    @property
    def size(self) -> int:
        return self.width * self.height


OpenFile = Callable[[str], Optional[BinaryIO]]


class GraphicsStore:
    """Loads sprite sheets into one shared byte buffer of palette indices.

    ``open_file`` maps a path to a binary stream, or to ``None`` when the
    file does not exist.
    """

    def __init__(self, open_file: OpenFile, software_render: bool = True) -> None:
        self.open_file = open_file
        self.software_render = software_render
        self.surfaces = [Surface() for _ in range(SURFACE_MAX)]
        self.graphic_data = bytearray(GFXDATA_MAX)
        self.gfx_position = 0
        self.video_sheet = -1
        self.video_frame_count = 0
        self.video_width = 0
        self.video_height = 0
        self.video_file_pos = 0
        self.video_playing = False
        self.current_video_frame = 0
        self.video_stream: Optional[BinaryIO] = None

    def add(self, file_path: str) -> int:
        """Load a sheet from the sprite folder unless it is already loaded."""
        sheet_path = SPRITE_FOLDER + file_path
        sheet_id = 0
        while self.surfaces[sheet_id].file_name:
            if str_comp(self.surfaces[sheet_id].file_name, sheet_path):
                return sheet_id
            sheet_id += 1
            if sheet_id == SURFACE_MAX:
                return 0
        loader = {
            "f": self.load_gif,
            "p": self.load_bmp,
            "r": self.load_pvr,
            "v": self.load_rsv,
            "x": self.load_gfx,
        }.get(sheet_path[-1])
        if loader is not None:
            loader(sheet_path, sheet_id)
        return sheet_id

    def remove(self, file_path: str, sheet_id: int) -> None:
        """Unload a sheet, by id or, when ``sheet_id`` is negative, by name."""
        if sheet_id < 0:
            for index, surface in enumerate(self.surfaces):
                if surface.file_name and str_comp(surface.file_name, file_path):
                    sheet_id = index
        if sheet_id < 0 or not self.surfaces[sheet_id].file_name:
            return
        removed = self.surfaces[sheet_id]
        removed.file_name = ""
        start = removed.data_position
        end = start + removed.size
        if end < GFXDATA_MAX:
            self.graphic_data[start : start + GFXDATA_MAX - end] = self.graphic_data[end:GFXDATA_MAX]
        self.gfx_position -= removed.size
        for surface in self.surfaces:
            if surface.data_position > removed.data_position:
                surface.data_position -= removed.size

    def _claim(self, surface: Surface) -> None:
        surface.data_position = self.gfx_position
        self.gfx_position += surface.size

    def _update_shift(self, surface: Surface) -> None:
        if self.software_render:
            surface.width_shift = width_shift(surface.width)

    def _check_overflow(self) -> None:
        if self.gfx_position >= GFXDATA_MAX:
            self.gfx_position = 0
            log.warning("Exceeded max gfx size!")

    def load_bmp(self, file_path: str, sheet_id: int) -> bool:
        stream = self.open_file(file_path)
        if stream is None:
            return False
        with stream:
            surface = self.surfaces[sheet_id]
            surface.file_name = file_path
            file_size = _stream_size(stream)
            stream.seek(18)
            surface.width = int.from_bytes(_read(stream, 4), "little", signed=True)
            surface.height = int.from_bytes(_read(stream, 4), "little", signed=True)
            stream.seek(file_size - surface.size)
            surface.data_position = self.gfx_position
            for row in reversed(range(surface.height)):
                pixels = _read(stream, surface.width)
                _store(self.graphic_data, surface.data_position + row * surface.width, pixels)
            self.gfx_position += surface.size
            self._update_shift(surface)
            self._check_overflow()
        return True

    def load_gif(self, file_path: str, sheet_id: int) -> bool:
        stream = self.open_file(file_path)
        if stream is None:
            return False
        with stream:
            surface = self.surfaces[sheet_id]
            surface.file_name = file_path
            stream.seek(6)
            surface.width = _read_u16le(stream)
            surface.height = _read_u16le(stream)
            flags = _read_byte(stream)
            palette_size = 1 << ((flags & 0x7) + 1)
            _read(stream, 2)  # background colour, pixel aspect
            _read(stream, 3 * palette_size)
            while _read_byte(stream) != _GIF_IMAGE_START:
                pass
            _read(stream, 8)
            image_flags = _read_byte(stream)
            interlaced = bool(image_flags & 0x40)
            if image_flags >> 7 == 1:
                _read(stream, 3 * 128)

            surface.data_position = self.gfx_position
            self._update_shift(surface)
            self.gfx_position += surface.size
            if self.gfx_position < GFXDATA_MAX:
                read_gif_picture_data(
                    stream,
                    surface.width,
                    surface.height,
                    interlaced,
                    self.graphic_data,
                    surface.data_position,
                )
            else:
                self.gfx_position = 0
                log.warning("Exceeded max gfx surface size!")
        return True

    def load_gfx(self, file_path: str, sheet_id: int) -> bool:
        stream = self.open_file(file_path)
        if stream is None:
            return False
        with stream:
            surface = self.surfaces[sheet_id]
            surface.file_name = file_path
            surface.width = _read_u16be(stream)
            surface.height = _read_u16be(stream)
            _read(stream, 3 * 0xFF)
            surface.data_position = self.gfx_position
            decode_rle(stream, self.graphic_data, surface.data_position)
            self.gfx_position += surface.size
            self._update_shift(surface)
            self._check_overflow()
        return True

    def load_rsv(self, file_path: str, sheet_id: int) -> bool:
        """Open a video sheet; the stream stays open for frame playback."""
        stream = self.open_file(file_path)
        if stream is None:
            return False
        surface = self.surfaces[sheet_id]
        surface.file_name = file_path
        self.video_sheet = sheet_id
        self.current_video_frame = 0
        self.video_frame_count = _read_u16le(stream)
        self.video_width = _read_u16le(stream)
        self.video_height = _read_u16le(stream)
        self.video_file_pos = stream.tell()
        self.video_playing = True
        self.video_stream = stream
        surface.width = self.video_width
        surface.height = self.video_height
        self._claim(surface)
        self._check_overflow()
        return True

    def load_pvr(self, file_path: str, sheet_id: int) -> bool:
        """Reserve space for a PVRTC sheet; its pixels are not decoded."""
        stream = self.open_file(file_path)
        if stream is None:
            return False
        with stream:
            surface = self.surfaces[sheet_id]
            surface.file_name = file_path
            stream.seek(28)
            width = _read_u16le(stream)
            _read_byte(stream)
            # The low height byte is read and then overwritten by the high one.
            height = _read_byte(stream) << 8
            surface.width = width
            surface.height = height
            self._claim(surface)
            self._update_shift(surface)
        return False