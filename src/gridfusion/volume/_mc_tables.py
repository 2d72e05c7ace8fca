"""Lookup tables for cell-wise isosurface extraction.

A cell is the cube spanned by 8 neighbouring voxel samples. Corner ``c`` sits
at offset ``((c >> 0) & 1, (c >> 1) & 1, (c >> 2) & 1)`` from the cell's base
voxel. Bit ``c`` of a cell's configuration mask is set when corner ``c`` holds
a negative value.

The cube is split into six tetrahedra around the main diagonal 0-7 (Kuhn
triangulation). Every face is cut along the same diagonal from both sides,
so neighbouring cells emit matching edges and the surface is watertight with
no ambiguous configurations. ``TRIANGLE_TABLE[mask]`` lists the triangles of
a configuration as triples of indices into ``CELL_EDGES``.
"""

from __future__ import annotations

from itertools import permutations

import numpy as np

CORNER_OFFSETS = np.array(
    [[(c >> 0) & 1, (c >> 1) & 1, (c >> 2) & 1] for c in range(8)], dtype=np.intp
)

# 0 -> one axis step -> two axis steps -> 7, for each axis ordering.
TETRAHEDRA: tuple[tuple[int, int, int, int], ...] = tuple(
    (0, 1 << a, (1 << a) | (1 << b), 7) for a, b, _ in permutations(range(3))
)


def _build_edges() -> tuple[tuple[int, int], ...]:
    edges = set()
    for tet in TETRAHEDRA:
        for i in range(4):
            for j in range(i + 1, 4):
                edges.add(tuple(sorted((tet[i], tet[j]))))
    return tuple(sorted(edges))


# 12 cube edges, 6 face diagonals and the main diagonal.
CELL_EDGES: tuple[tuple[int, int], ...] = _build_edges()
_EDGE_INDEX = {edge: i for i, edge in enumerate(CELL_EDGES)}


def _edge(a: int, b: int) -> int:
    return _EDGE_INDEX[(a, b) if a < b else (b, a)]


def _orient(tri: list[int], negative: list[int], positive: list[int]) -> tuple[int, int, int]:
    """Wind ``tri`` so its face normal points from positive towards negative corners."""
    mids = [CORNER_OFFSETS[list(CELL_EDGES[e])].mean(axis=0) for e in tri]
    face_normal = np.cross(mids[1] - mids[0], mids[2] - mids[0])
    target = CORNER_OFFSETS[negative].mean(axis=0) - CORNER_OFFSETS[positive].mean(axis=0)
    if np.dot(face_normal, target) < 0:
        tri = [tri[0], tri[2], tri[1]]
    return (tri[0], tri[1], tri[2])


def _tetrahedron_triangles(tet: tuple[int, ...], mask: int) -> list[tuple[int, int, int]]:
    negative = [c for c in tet if mask >> c & 1]
    positive = [c for c in tet if not mask >> c & 1]
    if not negative or not positive:
        return []

    if len(negative) == 1 or len(positive) == 1:
        apex, others = (negative[0], positive) if len(negative) == 1 else (positive[0], negative)
        tri = [_edge(apex, o) for o in others]
        return [_orient(tri, negative, positive)]

    # Two against two: the crossings form a planar quad.
    a, b = negative
    c, d = positive
    quad = [_edge(a, c), _edge(a, d), _edge(b, d), _edge(b, c)]
    return [
        _orient([quad[0], quad[1], quad[2]], negative, positive),
        _orient([quad[0], quad[2], quad[3]], negative, positive),
    ]


def _build_triangle_table() -> tuple[tuple[tuple[int, int, int], ...], ...]:
    table = []
    for mask in range(256):
        tris: list[tuple[int, int, int]] = []
        for tet in TETRAHEDRA:
            tris.extend(_tetrahedron_triangles(tet, mask))
        table.append(tuple(tris))
    return tuple(table)


TRIANGLE_TABLE: tuple[tuple[tuple[int, int, int], ...], ...] = _build_triangle_table()
