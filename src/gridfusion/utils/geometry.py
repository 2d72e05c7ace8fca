"""3D geometry utilities: rotations, rigid and similarity transforms."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np

logger = logging.getLogger(__name__)


def qvec2rotmat(qvec: list[float] | np.ndarray) -> np.ndarray:
    """Convert quaternion (w, x, y, z) to 3x3 rotation matrix."""
    w, x, y, z = np.asarray(qvec, dtype=np.float64) / np.linalg.norm(qvec)
    return np.array([
        [1 - 2*y*y - 2*z*z, 2*x*y - 2*w*z, 2*x*z + 2*w*y],
        [2*x*y + 2*w*z, 1 - 2*x*x - 2*z*z, 2*y*z - 2*w*x],
        [2*x*z - 2*w*y, 2*y*z + 2*w*x, 1 - 2*x*x - 2*y*y],
    ])


def rotmat2qvec(R: np.ndarray) -> np.ndarray:
    """Convert 3x3 rotation matrix to quaternion (w, x, y, z)."""
    trace = R[0, 0] + R[1, 1] + R[2, 2]
    if trace > 0:
        s = 0.5 / np.sqrt(trace + 1.0)
        w = 0.25 / s
        x = (R[2, 1] - R[1, 2]) * s
        y = (R[0, 2] - R[2, 0]) * s
        z = (R[1, 0] - R[0, 1]) * s
    elif R[0, 0] > R[1, 1] and R[0, 0] > R[2, 2]:
        s = 2.0 * np.sqrt(1.0 + R[0, 0] - R[1, 1] - R[2, 2])
        w = (R[2, 1] - R[1, 2]) / s
        x = 0.25 * s
        y = (R[0, 1] + R[1, 0]) / s
        z = (R[0, 2] + R[2, 0]) / s
    elif R[1, 1] > R[2, 2]:
        s = 2.0 * np.sqrt(1.0 + R[1, 1] - R[0, 0] - R[2, 2])
        w = (R[0, 2] - R[2, 0]) / s
        x = (R[0, 1] + R[1, 0]) / s
        y = 0.25 * s
        z = (R[1, 2] + R[2, 1]) / s
    else:
        s = 2.0 * np.sqrt(1.0 + R[2, 2] - R[0, 0] - R[1, 1])
        w = (R[1, 0] - R[0, 1]) / s
        x = (R[0, 2] + R[2, 0]) / s
        y = (R[1, 2] + R[2, 1]) / s
        z = 0.25 * s
    return np.array([w, x, y, z])


def transform_points(matrix: np.ndarray, points: np.ndarray) -> np.ndarray:
    """Apply a 4x4 matrix to (..., 3) points (w = 1, with perspective divide)."""
    points = np.asarray(points, dtype=np.float64)
    out = points @ matrix[:3, :3].T + matrix[:3, 3]
    w = points @ matrix[3, :3] + matrix[3, 3]
    if np.all(matrix[3] == (0.0, 0.0, 0.0, 1.0)):
        return out
    return out / w[..., None]


def transform_vectors(matrix: np.ndarray, vectors: np.ndarray) -> np.ndarray:
    """Apply the linear part of a 4x4 matrix to (..., 3) directions (w = 0)."""
    return np.asarray(vectors, dtype=np.float64) @ matrix[:3, :3].T


def transform_normals(matrix: np.ndarray, normals: np.ndarray) -> np.ndarray:
    """Transform (..., 3) surface normals by the inverse transpose of ``matrix``.

    The result is renormalized; zero-length inputs stay zero.
    """
    normal_matrix = np.linalg.inv(matrix[:3, :3]).T
    out = np.asarray(normals, dtype=np.float64) @ normal_matrix.T
    norm = np.linalg.norm(out, axis=-1, keepdims=True)
    return np.divide(out, norm, out=np.zeros_like(out), where=norm > 0)


@dataclass(frozen=True)
class EuclideanTransform:
    """Rigid transform ``x -> R @ x + t``."""

    rotation: np.ndarray = field(default_factory=lambda: np.eye(3))
    translation: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        object.__setattr__(self, "rotation", np.asarray(self.rotation, dtype=np.float64).reshape(3, 3))
        object.__setattr__(self, "translation", np.asarray(self.translation, dtype=np.float64).reshape(3))

    @classmethod
    def from_matrix(cls, matrix: np.ndarray | list[float]) -> EuclideanTransform:
        """Build from a 4x4 matrix (or a flat row-major list of 16 floats)."""
        m = np.asarray(matrix, dtype=np.float64).reshape(4, 4)
        return cls(rotation=m[:3, :3], translation=m[:3, 3])

    @classmethod
    def from_qvec(cls, qvec: list[float], tvec: list[float]) -> EuclideanTransform:
        """Build from a (w, x, y, z) quaternion and translation."""
        return cls(rotation=qvec2rotmat(qvec), translation=tvec)

    def as_matrix(self) -> np.ndarray:
        m = np.eye(4)
        m[:3, :3] = self.rotation
        m[:3, 3] = self.translation
        return m

    def inverse(self) -> EuclideanTransform:
        rt = self.rotation.T
        return EuclideanTransform(rotation=rt, translation=-rt @ self.translation)

    def transform_points(self, points: np.ndarray) -> np.ndarray:
        return np.asarray(points, dtype=np.float64) @ self.rotation.T + self.translation

    def transform_vectors(self, vectors: np.ndarray) -> np.ndarray:
        return np.asarray(vectors, dtype=np.float64) @ self.rotation.T

    def __matmul__(self, other: EuclideanTransform) -> EuclideanTransform:
        return EuclideanTransform(
            rotation=self.rotation @ other.rotation,
            translation=self.rotation @ other.translation + self.translation,
        )


@dataclass(frozen=True)
class SimilarityTransform:
    """Similarity transform ``x -> s * R @ x + t`` with uniform scale ``s``."""

    scale: float = 1.0
    rotation: np.ndarray = field(default_factory=lambda: np.eye(3))
    translation: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        if not self.scale > 0:
            raise ValueError(f"Similarity scale must be positive, got {self.scale}")
        object.__setattr__(self, "scale", float(self.scale))
        object.__setattr__(self, "rotation", np.asarray(self.rotation, dtype=np.float64).reshape(3, 3))
        object.__setattr__(self, "translation", np.asarray(self.translation, dtype=np.float64).reshape(3))

    @classmethod
    def from_translation(cls, translation) -> SimilarityTransform:
        return cls(translation=translation)

    @classmethod
    def from_euclidean(cls, rigid: EuclideanTransform, scale: float = 1.0) -> SimilarityTransform:
        """``rigid @ scale``: scale first, then rotate and translate."""
        return cls(scale=scale, rotation=rigid.rotation, translation=rigid.translation)

    def as_matrix(self) -> np.ndarray:
        m = np.eye(4)
        m[:3, :3] = self.scale * self.rotation
        m[:3, 3] = self.translation
        return m

    def inverse(self) -> SimilarityTransform:
        inv_scale = 1.0 / self.scale
        rt = self.rotation.T
        return SimilarityTransform(
            scale=inv_scale,
            rotation=rt,
            translation=-inv_scale * (rt @ self.translation),
        )

    def transform_points(self, points: np.ndarray) -> np.ndarray:
        return self.scale * (np.asarray(points, dtype=np.float64) @ self.rotation.T) + self.translation

    def transform_vectors(self, vectors: np.ndarray) -> np.ndarray:
        return self.scale * (np.asarray(vectors, dtype=np.float64) @ self.rotation.T)

    def transform_normals(self, normals: np.ndarray) -> np.ndarray:
        # Uniform scale: the inverse transpose reduces to the rotation.
        return np.asarray(normals, dtype=np.float64) @ self.rotation.T

    def __matmul__(self, other: SimilarityTransform) -> SimilarityTransform:
        return SimilarityTransform(
            scale=self.scale * other.scale,
            rotation=self.rotation @ other.rotation,
            translation=self.scale * (self.rotation @ other.translation) + self.translation,
        )


def look_at(eye, center, up) -> EuclideanTransform:
    """Camera-from-world pose for a camera at ``eye`` looking at ``center``.

    The camera looks down its +z axis with +y pointing down in the image,
    so ``up`` maps to camera -y.
    """
    eye = np.asarray(eye, dtype=np.float64)
    forward = np.asarray(center, dtype=np.float64) - eye
    forward /= np.linalg.norm(forward)
    right = np.cross(forward, np.asarray(up, dtype=np.float64))
    norm = np.linalg.norm(right)
    if norm < 1e-12:
        raise ValueError("look_at: up vector is parallel to the viewing direction")
    right /= norm
    down = np.cross(forward, right)
    rotation = np.stack([right, down, forward])
    return EuclideanTransform(rotation=rotation, translation=-rotation @ eye)
