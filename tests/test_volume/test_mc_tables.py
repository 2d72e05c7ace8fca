"""Tests for the cell configuration tables."""

import numpy as np
import pytest

from gridfusion.volume._mc_tables import CELL_EDGES, CORNER_OFFSETS, TETRAHEDRA, TRIANGLE_TABLE


def _canonical(tri):
    """Rotate a triangle so its smallest index comes first, keeping the winding."""
    i = tri.index(min(tri))
    return tri[i:] + tri[:i]


class TestTables:
    def test_corner_offsets(self):
        assert CORNER_OFFSETS.shape == (8, 3)
        assert len({tuple(c) for c in CORNER_OFFSETS}) == 8
        np.testing.assert_array_equal(CORNER_OFFSETS[7], [1, 1, 1])

    def test_tetrahedra_fill_the_cube(self):
        volumes = [
            abs(np.linalg.det(CORNER_OFFSETS[list(t[1:])] - CORNER_OFFSETS[t[0]])) / 6.0
            for t in TETRAHEDRA
        ]
        assert len(TETRAHEDRA) == 6
        assert sum(volumes) == pytest.approx(1.0)

    def test_edges(self):
        # 12 cube edges, 6 face diagonals and the main diagonal.
        assert len(CELL_EDGES) == 19
        lengths = sorted(
            np.linalg.norm(CORNER_OFFSETS[a] - CORNER_OFFSETS[b]) for a, b in CELL_EDGES
        )
        assert lengths.count(1.0) == 12
        assert lengths[-1] == pytest.approx(np.sqrt(3.0))

    def test_uniform_configurations_are_empty(self):
        assert len(TRIANGLE_TABLE) == 256
        assert TRIANGLE_TABLE[0] == ()
        assert TRIANGLE_TABLE[255] == ()

    @pytest.mark.parametrize("mask", range(1, 255))
    def test_triangles_cut_sign_changes(self, mask):
        assert TRIANGLE_TABLE[mask]
        for tri in TRIANGLE_TABLE[mask]:
            for e in tri:
                a, b = CELL_EDGES[e]
                assert (mask >> a & 1) != (mask >> b & 1)

    @pytest.mark.parametrize("mask", range(1, 255))
    def test_complement_flips_winding(self, mask):
        tris = {_canonical(t) for t in TRIANGLE_TABLE[mask]}
        flipped = {_canonical((t[0], t[2], t[1])) for t in TRIANGLE_TABLE[255 - mask]}
        assert tris == flipped
