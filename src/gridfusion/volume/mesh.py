"""Triangle mesh produced by surface extraction."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

from gridfusion.utils.geometry import transform_normals, transform_points

logger = logging.getLogger(__name__)


@dataclass
class TriangleMesh:
    """Indexed triangle mesh with per-vertex normals, in meters.

    Attributes:
        positions: (V, 3) float32 vertex positions.
        normals: (V, 3) float32 unit vertex normals.
        faces: (F, 3) int64 vertex indices, counter-clockwise around the normal.
    """

    positions: np.ndarray = field(default_factory=lambda: np.zeros((0, 3), dtype=np.float32))
    normals: np.ndarray = field(default_factory=lambda: np.zeros((0, 3), dtype=np.float32))
    faces: np.ndarray = field(default_factory=lambda: np.zeros((0, 3), dtype=np.int64))

    @property
    def num_vertices(self) -> int:
        return len(self.positions)

    @property
    def num_faces(self) -> int:
        return len(self.faces)

    def is_empty(self) -> bool:
        return self.num_faces == 0

    def triangles(self) -> np.ndarray:
        """(F, 3, 3) corner positions of every face."""
        return self.positions[self.faces]

    def transformed(self, output_from_world: np.ndarray) -> TriangleMesh:
        """Map positions as points and normals by the inverse transpose."""
        m = np.asarray(output_from_world, dtype=np.float64).reshape(4, 4)
        faces = self.faces
        # A reflection flips the winding relative to the mapped normals.
        if np.linalg.det(m[:3, :3]) < 0:
            faces = faces[:, ::-1].copy()
        return TriangleMesh(
            positions=transform_points(m, self.positions).astype(np.float32),
            normals=transform_normals(m, self.normals).astype(np.float32),
            faces=faces,
        )

    def to_trimesh(self):
        """Convert to a ``trimesh.Trimesh`` without merging or reordering vertices."""
        import trimesh

        return trimesh.Trimesh(
            vertices=self.positions,
            faces=self.faces,
            vertex_normals=self.normals,
            process=False,
        )

    def export(self, output_path: Path) -> Path:
        """Write the mesh to disk; the format follows the file suffix (.ply, .obj, .glb)."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        self.to_trimesh().export(str(output_path))
        logger.info(
            f"Wrote {output_path} ({self.num_vertices} vertices, {self.num_faces} faces)"
        )
        return output_path
