# retrostage

Building blocks for a retro 2D side-scrolling game engine: asset parsers,
a camera, tile collision masks and fixed-point 3D math. Plain Python, no
third-party dependencies.

## Modules

### `retrostage.strings`

- `str_comp(a, b)`: name comparison that treats characters 32 code points
  apart as equal, which folds ASCII letter case.
- `find_string_token(string, token, stop_id)`: index of the `stop_id`-th
  (counted from 1, overlapping) occurrence of `token`, or `-1`.

### `retrostage.scene3d`

- `Matrix`: an immutable 4x4 matrix in 8.8 fixed point. Constructors
  `Matrix.identity()`, `Matrix.translation(x, y, z)`,
  `Matrix.scaling(sx, sy, sz)`, `Matrix.rotation_x` / `rotation_y` /
  `rotation_z` / `rotation_xyz` (angles in 512 steps, looked up in a
  `TrigTable`). `m.multiply(other)` (also `m @ other`) and
  `m.transform(vertex)`.
- `TrigTable(sin512, cos512)`: caller-supplied sine and cosine tables of 512
  entries each; a `ValueError` is raised for any other length.
- `Vertex`, `Face` and `FaceFlag` (textured or coloured, 2D or 3D).
- `transform_vertex_buffer(world, view, vertices)` returns new vertices;
  `transform_vertices(matrix, vertices, start, end)` works in place.
- `sort_draw_list(faces, transformed)` returns `(face_id, depth)` pairs,
  deepest first.
- `project_faces(...)` yields each drawable face with its screen-space quad;
  3D faces with a corner at or in front of the near plane are dropped.
- `ScanEdges`: per-scanline start and end extents (with texture
  coordinates in `process_edge_uv`) for rasterising a polygon.

### `retrostage.sprite`

- `GifDecoder(stream)` and `read_gif_picture_data(...)`: LZW decoding of GIF
  image data into a byte buffer, interlaced or not.
- `decode_rle(stream, out, start)`: `FF v n` run-length data ending in `FF FF`.
- `width_shift(width)`: how many times a width halves before reaching 1.
- `GraphicsStore(open_file, software_render=True)`: up to `SURFACE_MAX`
  sprite sheets packed into one `GFXDATA_MAX`-byte buffer. `open_file` maps a
  path to a binary stream, or `None` when the file is missing. `add(path)`
  loads from `Data/Sprites/` by extension, and returns the existing id if the
  sheet is already loaded; `remove(path, sheet_id)` unloads a sheet and
  compacts the buffer. The loaders are `load_bmp`, `load_gif`, `load_gfx`,
  `load_rsv` and `load_pvr`. Each loader returns `False` when the file is
  missing. `load_rsv` keeps the stream open in `video_stream`.
  `load_pvr` reserves space but does not decode pixels, and returns `False`.

### `retrostage.stage`

- Size constants, `LayerType`, `StageListId`, `StageMode`, `DeformMode`,
  `SceneInfo`, `TileLayer`, `LineScroll`.
- `stage_file_path`, `act_file_path` and `bytecode_script_path` build asset
  paths under `Data/Stages/` and `Data/Scripts/ByteCode/`.
- `parse_act_layout(data, mod_offset, global_count, load_globals)` returns an
  `ActLayout`: the title card, foreground layer and `ObjectPlacement` list.
- `init_3d_floor_buffer(layer)` and `layer_deformation(...)`.
- `StageFolderTracker`: `check(folder)` reports whether a folder is already
  loaded and records it if not; `reset()` forgets it.

### `retrostage.tiles`

- `parse_backgrounds(data)` returns `Backgrounds`: background layers with
  line scroll, plus horizontal and vertical parallax.
- `parse_chunks(data, software_render=True)` returns `ChunkTiles`.
- `parse_stage_gfx(data)` and `parse_stage_gif(data)` return
  `StageGraphics`: the tileset pixels, with the first pixel's colour mapped to
  index 0, and the upper half of the palette.
- `copy_tile(gfx_data, dest, src)` copies one 16x16 tile's pixels.

### `retrostage.camera`

- `CameraTarget`: the followed player's 16.16 position, velocity and look
  offset. The camera writes back `screen_x_pos` and `screen_y_pos`.
- `Camera`: scroll windows, shake and boundaries that ease towards new
  values. It has four modes: `follow`, `follow_cd_style` (leads ahead at
  speed), `follow_h_locked` and `follow_locked`. `reset()` restores the
  start-of-stage scroll state.

### `retrostage.collision`

- `parse_collision_masks(data)` returns a `CollisionMasks` for each of the
  two planes: floor, roof, left-wall and right-wall masks, angles and flags.
  Columns without collision hold `NO_COLLISION` (or its negation).

## What it does not do

There is no game loop, window, renderer, audio, input handling, script
interpreter or data-archive reader, and no command to run. The parsers take
bytes or streams, and `GraphicsStore` takes a file-opening callable. How files
are found and what is drawn is left to the caller.

## Installing

```
pip install .
```

For running the tests:

```
pip install .[test]
pytest
```

## Example

```python
from retrostage.strings import str_comp, find_string_token
from retrostage.scene3d import Matrix, Vertex

assert str_comp("PauseMenu", "pausemenu")
assert find_string_token("a,b,c", ",", 2) == 3

m = Matrix.translation(10, 20, 30)
v = m.transform(Vertex(1, 2, 3))
print(v.x, v.y, v.z)  # 11 22 33
```

All arithmetic follows integer rules. Values are fixed point, shifts are
arithmetic, and division truncates toward zero where the engine's formulas
divide.