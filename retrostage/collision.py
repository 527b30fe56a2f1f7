"""Tile collision masks: per-column heights and wall extents for both collision planes."""

from __future__ import annotations

from array import array
from dataclasses import dataclass, field

from retrostage.stage import CPATH_COUNT, TILE_COUNT, TILE_SIZE

__all__ = [
    "MASK_SIZE",
    "NO_COLLISION",
    "CollisionMasks",
    "parse_collision_masks",
]

MASK_SIZE = TILE_COUNT * TILE_SIZE
NO_COLLISION = 0x40
_HALF = TILE_SIZE // 2


def _zero_masks() -> array:
    return array("b", [0]) * MASK_SIZE


def _zero_tiles() -> list[int]:
    return [0] * TILE_COUNT


@dataclass
class CollisionMasks:
    """Collision data of one plane, 16 columns per tile.

    Floor and roof masks hold the height of each column's solid edge; wall
    masks hold, per row, the first solid column from the left or the right.
    A column without collision holds ``NO_COLLISION`` (or its negation).
    """

    floor_masks: array = field(default_factory=_zero_masks)
    l_wall_masks: array = field(default_factory=_zero_masks)
    r_wall_masks: array = field(default_factory=_zero_masks)
    roof_masks: array = field(default_factory=_zero_masks)
    angles: list[int] = field(default_factory=_zero_tiles)
    flags: list[int] = field(default_factory=_zero_tiles)

    def tile_slice(self, masks: array, tile: int) -> list[int]:
        """Return the 16 entries of ``masks`` that belong to ``tile``."""
        if not 0 <= tile < TILE_COUNT:
            raise IndexError(f"tile {tile} out of range")
        start = tile * TILE_SIZE
        return list(masks[start : start + TILE_SIZE])


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._position = 0

    def take(self, size: int) -> bytes:
        end = self._position + size
        if end > len(self._data):
            raise EOFError(f"expected {size} bytes at offset {self._position}")
        chunk = self._data[self._position : end]
        self._position = end
        return chunk

    def byte(self) -> int:
        return self.take(1)[0]


def _solid_columns(reader: _Reader) -> list[bool]:
    """Read the two has-collision bytes; the first covers columns 8-15."""
    high = reader.byte()
    low = reader.byte()
    return [bool(low >> c & 1) for c in range(_HALF)] + [
        bool(high >> c & 1) for c in range(_HALF)
    ]


def _first_column(columns, blocked, missing: int) -> int:
    return next((h for h in columns if not blocked(h)), missing)


def _read_tile(reader: _Reader, masks: CollisionMasks, tile: int) -> None:
    header = reader.byte()
    ceiling = bool(header >> 4)
    masks.flags[tile] = header & 0xF
    masks.angles[tile] = int.from_bytes(reader.take(4), "little", signed=True)

    heights = []
    for packed in reader.take(_HALF):
        heights.extend((packed >> 4, packed & 0xF))
    solid = _solid_columns(reader)

    base = tile * TILE_SIZE
    floor = [0] * TILE_SIZE
    roof = [0] * TILE_SIZE
    for column, (height, is_solid) in enumerate(zip(heights, solid)):
        if ceiling:
            roof[column] = height
            floor[column] = 0
        else:
            floor[column] = height
            roof[column] = 0xF
        if not is_solid:
            floor[column] = NO_COLLISION
            roof[column] = -NO_COLLISION

    left_to_right = range(TILE_SIZE)
    right_to_left = range(TILE_SIZE - 1, -1, -1)
    for row in range(TILE_SIZE):
        if ceiling:
            blocked = lambda h, row=row: row > roof[h]
        else:
            blocked = lambda h, row=row: row < floor[h]
        masks.l_wall_masks[base + row] = _first_column(left_to_right, blocked, NO_COLLISION)
        masks.r_wall_masks[base + row] = _first_column(right_to_left, blocked, -NO_COLLISION)

    masks.floor_masks[base : base + TILE_SIZE] = array("b", floor)
    masks.roof_masks[base : base + TILE_SIZE] = array("b", roof)


def parse_collision_masks(data: bytes) -> tuple[CollisionMasks, CollisionMasks]:
    """Parse a stage's ``CollisionMasks.bin`` into masks for both planes.

    Tiles are stored in order, each with its plane A entry before plane B.
    """
    reader = _Reader(data)
    planes = tuple(CollisionMasks() for _ in range(CPATH_COUNT))
    for tile in range(TILE_COUNT):
        for plane in planes:
            _read_tile(reader, plane, tile)
    return planes  # type: ignore[return-value]