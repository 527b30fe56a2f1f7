"""Fixed-point 3D transforms, face sorting and scan-edge rasterising."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Iterable, Iterator, Sequence

__all__ = [
    "FaceFlag",
    "TrigTable",
    "Matrix",
    "Vertex",
    "Face",
    "ScanEdges",
    "transform_vertex_buffer",
    "transform_vertices",
    "sort_draw_list",
    "project_faces",
]

SCREEN_YSIZE = 240
SCREEN_CENTERY = SCREEN_YSIZE // 2
NEAR_PLANE = 0x100
_ONE = 0x100


def _div(numerator: int, denominator: int) -> int:
    """Integer division truncating toward zero."""
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator < 0) == (denominator < 0) else -quotient


def _wrap_angle(angle: int) -> int:
    if angle < 0:
        angle = 0x200 - angle
    return angle & 0x1FF


class FaceFlag(IntEnum):
    TEXTURED_3D = 0
    TEXTURED_2D = 1
    COLOURED_3D = 2
    COLOURED_2D = 3


@dataclass(frozen=True)
class TrigTable:
    """Sine and cosine lookups over 512 angle steps."""

    sin512: tuple[int, ...]
    cos512: tuple[int, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "sin512", tuple(self.sin512))
        object.__setattr__(self, "cos512", tuple(self.cos512))
        if len(self.sin512) != 0x200 or len(self.cos512) != 0x200:
            raise ValueError("trig tables must hold 512 entries each")

    def halved(self, angle: int) -> tuple[int, int]:
        angle = _wrap_angle(angle)
        return self.sin512[angle] >> 1, self.cos512[angle] >> 1


@dataclass(frozen=True)
class Vertex:
    x: int = 0
    y: int = 0
    z: int = 0
    u: int = 0
    v: int = 0


@dataclass(frozen=True)
class Face:
    a: int
    b: int
    c: int
    d: int
    colour: int = 0
    flags: int = FaceFlag.TEXTURED_3D


def _rows(*rows: Sequence[int]) -> tuple[tuple[int, ...], ...]:
    return tuple(tuple(row) for row in rows)


@dataclass(frozen=True)
class Matrix:
    """A 4x4 matrix in 8.8 fixed point, row-vector convention."""

    values: tuple[tuple[int, ...], ...]

    def __post_init__(self) -> None:
        rows = _rows(*self.values)
        if len(rows) != 4 or any(len(row) != 4 for row in rows):
            raise ValueError("a matrix needs 4 rows of 4 values")
        object.__setattr__(self, "values", rows)

    @staticmethod
    def identity() -> "Matrix":
        return Matrix.scaling(_ONE, _ONE, _ONE)

    @staticmethod
    def translation(x: int, y: int, z: int) -> "Matrix":
        return Matrix(
            (
                (_ONE, 0, 0, 0),
                (0, _ONE, 0, 0),
                (0, 0, _ONE, 0),
                (x, y, z, _ONE),
            )
        )

    @staticmethod
    def scaling(scale_x: int, scale_y: int, scale_z: int) -> "Matrix":
        return Matrix(
            (
                (scale_x, 0, 0, 0),
                (0, scale_y, 0, 0),
                (0, 0, scale_z, 0),
                (0, 0, 0, _ONE),
            )
        )

    @staticmethod
    def rotation_x(angle: int, trig: TrigTable) -> "Matrix":
        sine, cosine = trig.halved(angle)
        return Matrix(
            (
                (_ONE, 0, 0, 0),
                (0, cosine, sine, 0),
                (0, -sine, cosine, 0),
                (0, 0, 0, _ONE),
            )
        )

    @staticmethod
    def rotation_y(angle: int, trig: TrigTable) -> "Matrix":
        sine, cosine = trig.halved(angle)
        return Matrix(
            (
                (cosine, 0, sine, 0),
                (0, _ONE, 0, 0),
                (-sine, 0, cosine, 0),
                (0, 0, 0, _ONE),
            )
        )

    @staticmethod
    def rotation_z(angle: int, trig: TrigTable) -> "Matrix":
        # The engine builds this exactly like the Y rotation.
        return Matrix.rotation_y(angle, trig)

    @staticmethod
    def rotation_xyz(angle_x: int, angle_y: int, angle_z: int, trig: TrigTable) -> "Matrix":
        sx, cx = trig.halved(angle_x)
        sy, cy = trig.halved(angle_y)
        sz, cz = trig.halved(angle_z)
        return Matrix(
            (
                (
                    (sz * (sy * sx >> 8) >> 8) + (cz * cy >> 8),
                    (sz * cy >> 8) - (cz * (sy * sx >> 8) >> 8),
                    sy * cx >> 8,
                    0,
                ),
                (sz * -cx >> 8, cz * cx >> 8, sx, 0),
                (
                    (sz * (cy * sx >> 8) >> 8) - (cz * sy >> 8),
                    (sz * -sy >> 8) - (cz * (cy * sx >> 8) >> 8),
                    cy * cx >> 8,
                    0,
                ),
                (0, 0, 0, _ONE),
            )
        )

    def multiply(self, other: "Matrix") -> "Matrix":
        """Return ``self`` times ``other``, each product rescaled separately."""
        a, b = self.values, other.values
        return Matrix(
            tuple(
                tuple(sum(a[row][k] * b[k][col] >> 8 for k in range(4)) for col in range(4))
                for row in range(4)
            )
        )

    __matmul__ = multiply

    def transform(self, vertex: Vertex) -> Vertex:
        """Apply the matrix to a vertex's position; texture coordinates stay."""
        m = self.values
        vx, vy, vz = vertex.x, vertex.y, vertex.z
        return replace(
            vertex,
            x=(vx * m[0][0] >> 8) + (vy * m[1][0] >> 8) + (vz * m[2][0] >> 8) + m[3][0],
            y=(vx * m[0][1] >> 8) + (vy * m[1][1] >> 8) + (vz * m[2][1] >> 8) + m[3][1],
            z=(vx * m[0][2] >> 8) + (vy * m[1][2] >> 8) + (vz * m[2][2] >> 8) + m[3][2],
        )


def transform_vertex_buffer(world: Matrix, view: Matrix, vertices: Iterable[Vertex]) -> list[Vertex]:
    """Transform every vertex by ``world`` then ``view``."""
    final = world.multiply(view)
    return [final.transform(vertex) for vertex in vertices]


def transform_vertices(matrix: Matrix, vertices: list[Vertex], start: int, end: int) -> None:
    """Transform ``vertices[start:end]`` in place; at least ``start`` is done."""
    if start > end:
        return
    for index in range(start, max(start + 1, end)):
        vertices[index] = matrix.transform(vertices[index])


def sort_draw_list(faces: Sequence[Face], transformed: Sequence[Vertex]) -> list[tuple[int, int]]:
    """Return ``(face_id, depth)`` pairs, deepest first, ties in face order."""
    entries = [
        (
            face_id,
            (
                transformed[face.d].z
                + transformed[face.c].z
                + transformed[face.b].z
                + transformed[face.a].z
            )
            >> 2,
        )
        for face_id, face in enumerate(faces)
    ]
    return sorted(entries, key=lambda entry: -entry[1])


def project_faces(
    faces: Sequence[Face],
    order: Iterable[tuple[int, int]],
    vertices: Sequence[Vertex],
    transformed: Sequence[Vertex],
    projection_x: int,
    projection_y: int,
    screen_width: int,
) -> Iterator[tuple[Face, tuple[Vertex, Vertex, Vertex, Vertex]]]:
    """Yield each drawable face with its screen-space quad, in draw order.

    3D faces are dropped unless every corner lies beyond the near plane.
    Coloured faces carry zero texture coordinates.
    """
    center_x = screen_width // 2
    for face_id, _depth in order:
        face = faces[face_id]
        corners = (face.a, face.b, face.c, face.d)
        if face.flags in (FaceFlag.TEXTURED_3D, FaceFlag.COLOURED_3D):
            points = [transformed[i] for i in corners]
            if not all(point.z > NEAR_PLANE for point in points):
                continue
            positions = [
                (
                    center_x + _div(projection_x * point.x, point.z),
                    SCREEN_CENTERY - _div(projection_y * point.y, point.z),
                )
                for point in points
            ]
        elif face.flags in (FaceFlag.TEXTURED_2D, FaceFlag.COLOURED_2D):
            positions = [(vertices[i].x, vertices[i].y) for i in corners]
        else:
            continue
        textured = face.flags in (FaceFlag.TEXTURED_3D, FaceFlag.TEXTURED_2D)
        quad = tuple(
            Vertex(
                x=x,
                y=y,
                u=vertices[i].u if textured else 0,
                v=vertices[i].v if textured else 0,
            )
            for (x, y), i in zip(positions, corners)
        )
        yield face, quad  # type: ignore[misc]


class ScanEdges:
    """Per-scanline horizontal extents of a polygon being rasterised."""

    def __init__(self, height: int = SCREEN_YSIZE) -> None:
        self.height = height
        self.start = [0] * height
        self.end = [0] * height
        self.start_u = [0] * height
        self.end_u = [0] * height
        self.start_v = [0] * height
        self.end_v = [0] * height

    def reset(self, screen_width: int) -> None:
        """Clear every line so that any on-screen edge widens it."""
        self.start = [screen_width] * self.height
        self.end = [-1] * self.height
        self.start_u = [0] * self.height
        self.end_u = [0] * self.height
        self.start_v = [0] * self.height
        self.end_v = [0] * self.height

    def _span(self, vert_a: Vertex, vert_b: Vertex) -> tuple[int, int] | None:
        if vert_a.y == vert_b.y:
            return None
        if vert_a.y >= vert_b.y:
            top, bottom = vert_b.y, vert_a.y + 1
        else:
            top, bottom = vert_a.y, vert_b.y + 1
        if top > self.height - 1 or bottom < 0:
            return None
        return top, min(bottom, self.height)

    def process_edge(self, vert_a: Vertex, vert_b: Vertex) -> None:
        span = self._span(vert_a, vert_b)
        if span is None:
            return
        top, bottom = span
        full_x = vert_a.x << 16
        step_x = _div((vert_b.x - vert_a.x) << 16, vert_b.y - vert_a.y)
        if top < 0:
            full_x -= top * step_x
            top = 0
        for line in range(top, bottom):
            true_x = full_x >> 16
            if true_x < self.start[line]:
                self.start[line] = true_x
            if true_x > self.end[line]:
                self.end[line] = true_x
            full_x += step_x

    def process_edge_uv(self, vert_a: Vertex, vert_b: Vertex) -> None:
        span = self._span(vert_a, vert_b)
        if span is None:
            return
        top, bottom = span
        dy = vert_b.y - vert_a.y
        full_x = vert_a.x << 16
        full_u = vert_a.u << 16
        full_v = vert_a.v << 16
        step_x = _div((vert_b.x - vert_a.x) << 16, dy)
        step_u = 0 if vert_a.u == vert_b.u else _div((vert_b.u - vert_a.u) << 16, dy)
        step_v = 0 if vert_a.v == vert_b.v else _div((vert_b.v - vert_a.v) << 16, dy)
        if top < 0:
            full_x -= top * step_x
            full_u -= top * step_u
            full_v -= top * step_v
            top = 0
        for line in range(top, bottom):
            true_x = full_x >> 16
            if true_x < self.start[line]:
                self.start[line] = true_x
                self.start_u[line] = full_u
                self.start_v[line] = full_v
            if true_x > self.end[line]:
                self.end[line] = true_x
                self.end_u[line] = full_u
                self.end_v[line] = full_v
            full_x += step_x
            full_u += step_u
            full_v += step_v