import pytest

from retrostage.collision import (
    MASK_SIZE,
    NO_COLLISION,
    CollisionMasks,
    parse_collision_masks,
)
from retrostage.stage import TILE_COUNT, TILE_SIZE

EMPTY_ENTRY = bytes(15)


def encode_entry(heights, solid, ceiling=False, flags=0, angle=b"\0\0\0\0"):
    header = (0x10 if ceiling else 0) | (flags & 0xF)
    packed = bytes((heights[c] << 4) | heights[c + 1] for c in range(0, 16, 2))
    low = sum(1 << c for c in range(8) if solid[c])
    high = sum(1 << c for c in range(8) if solid[c + 8])
    return bytes([header]) + angle + packed + bytes([high, low])


def build_file(entries):
    """entries maps (tile, plane) to encoded bytes; everything else is empty."""
    out = bytearray()
    for tile in range(TILE_COUNT):
        for plane in range(2):
            out += entries.get((tile, plane), EMPTY_ENTRY)
    return bytes(out)


HEIGHTS = [3, 5, 0, 15, 7, 7, 2, 9, 1, 12, 4, 6, 8, 10, 11, 14]


def test_empty_file_layout_gives_no_collision():
    plane_a, plane_b = parse_collision_masks(build_file({}))
    for plane in (plane_a, plane_b):
        assert len(plane.floor_masks) == MASK_SIZE
        assert set(plane.floor_masks) == {NO_COLLISION}
        assert set(plane.roof_masks) == {-NO_COLLISION}
        assert set(plane.l_wall_masks) == {NO_COLLISION}
        assert set(plane.r_wall_masks) == {-NO_COLLISION}


def test_truncated_data_raises():
    data = build_file({})
    with pytest.raises(EOFError):
        parse_collision_masks(data[:-1])


def test_flags_and_angles_are_read_per_plane():
    entry_a = encode_entry([0] * 16, [True] * 16, flags=0x3, angle=bytes([1, 2, 3, 4]))
    entry_b = encode_entry([0] * 16, [True] * 16, flags=0xC, angle=b"\xff\xff\xff\xff")
    plane_a, plane_b = parse_collision_masks(build_file({(5, 0): entry_a, (5, 1): entry_b}))
    assert plane_a.flags[5] == 0x3
    assert plane_b.flags[5] == 0xC
    assert plane_a.angles[5] == int.from_bytes(bytes([1, 2, 3, 4]), "little")
    assert plane_b.angles[5] == -1


def test_regular_tile_heights_and_roof():
    entry = encode_entry(HEIGHTS, [True] * 16)
    plane_a, plane_b = parse_collision_masks(build_file({(7, 0): entry}))
    assert plane_a.tile_slice(plane_a.floor_masks, 7) == HEIGHTS
    assert plane_a.tile_slice(plane_a.roof_masks, 7) == [0xF] * 16
    assert plane_b.tile_slice(plane_b.floor_masks, 7) == [NO_COLLISION] * 16


def test_regular_tile_bit_order_of_solid_columns():
    solid = [c in (0, 9) for c in range(16)]
    entry = encode_entry(HEIGHTS, solid)
    plane_a, _ = parse_collision_masks(build_file({(2, 0): entry}))
    floor = plane_a.tile_slice(plane_a.floor_masks, 2)
    roof = plane_a.tile_slice(plane_a.roof_masks, 2)
    for column in range(16):
        if solid[column]:
            assert floor[column] == HEIGHTS[column]
            assert roof[column] == 0xF
        else:
            assert floor[column] == NO_COLLISION
            assert roof[column] == -NO_COLLISION


def test_regular_tile_wall_masks_find_first_solid_column():
    entry = encode_entry(HEIGHTS, [True] * 16)
    plane_a, _ = parse_collision_masks(build_file({(0, 0): entry}))
    floor = plane_a.tile_slice(plane_a.floor_masks, 0)
    left = plane_a.tile_slice(plane_a.l_wall_masks, 0)
    right = plane_a.tile_slice(plane_a.r_wall_masks, 0)
    for row in range(TILE_SIZE):
        assert floor[left[row]] <= row
        assert all(floor[h] > row for h in range(left[row]))
        assert floor[right[row]] <= row
        assert all(floor[h] > row for h in range(right[row] + 1, TILE_SIZE))


def test_ceiling_tile_uses_roof_heights():
    solid = [c != 4 for c in range(16)]
    entry = encode_entry(HEIGHTS, solid, ceiling=True)
    _, plane_b = parse_collision_masks(build_file({(1023, 1): entry}))
    floor = plane_b.tile_slice(plane_b.floor_masks, 1023)
    roof = plane_b.tile_slice(plane_b.roof_masks, 1023)
    for column in range(16):
        if solid[column]:
            assert roof[column] == HEIGHTS[column]
            assert floor[column] == 0
        else:
            assert roof[column] == -NO_COLLISION
            assert floor[column] == NO_COLLISION
    left = plane_b.tile_slice(plane_b.l_wall_masks, 1023)
    for row in range(TILE_SIZE):
        if left[row] == NO_COLLISION:
            assert all(roof[h] < row for h in range(TILE_SIZE))
        else:
            assert roof[left[row]] >= row
            assert all(roof[h] < row for h in range(left[row]))


def test_other_tiles_are_untouched_by_one_entry():
    entry = encode_entry(HEIGHTS, [True] * 16)
    plane_a, _ = parse_collision_masks(build_file({(10, 0): entry}))
    assert plane_a.tile_slice(plane_a.floor_masks, 9) == [NO_COLLISION] * 16
    assert plane_a.tile_slice(plane_a.floor_masks, 11) == [NO_COLLISION] * 16


def test_tile_slice_rejects_out_of_range():
    masks = CollisionMasks()
    with pytest.raises(IndexError):
        masks.tile_slice(masks.floor_masks, TILE_COUNT)