"""Analytic depth frames for demos and tests."""

from __future__ import annotations

import numpy as np

from gridfusion.core.contracts import CameraIntrinsics
from gridfusion.utils.geometry import EuclideanTransform, look_at


def _camera_rays(intrinsics: CameraIntrinsics) -> np.ndarray:
    """(H, W, 3) camera-space directions through pixel centers, z = 1."""
    fx, fy, cx, cy = intrinsics.flpp
    xs = (np.arange(intrinsics.width) + 0.5 - cx) / fx
    ys = (np.arange(intrinsics.height) + 0.5 - cy) / fy
    gx, gy = np.meshgrid(xs, ys)
    return np.stack([gx, gy, np.ones_like(gx)], axis=-1)


def render_plane_depth(
    intrinsics: CameraIntrinsics,
    camera_from_world: EuclideanTransform,
    point: np.ndarray,
    normal: np.ndarray,
) -> np.ndarray:
    """Depth (camera z, meters) of the plane through ``point`` with ``normal``.

    Pixels whose ray misses the plane, or hits it behind the camera, are 0.
    """
    world_from_camera = camera_from_world.inverse()
    origin = world_from_camera.translation
    rays = world_from_camera.transform_vectors(_camera_rays(intrinsics))
    normal = np.asarray(normal, dtype=np.float64)
    denom = rays @ normal
    with np.errstate(divide="ignore", invalid="ignore"):
        t = ((np.asarray(point, dtype=np.float64) - origin) @ normal) / denom
    t = np.where(np.isfinite(t) & (t > 0), t, 0.0)
    return t.astype(np.float32)


def render_sphere_depth(
    intrinsics: CameraIntrinsics,
    camera_from_world: EuclideanTransform,
    center: np.ndarray,
    radius: float,
) -> np.ndarray:
    """Depth (camera z, meters) of the front surface of a sphere; 0 where missed."""
    world_from_camera = camera_from_world.inverse()
    origin = world_from_camera.translation
    rays = world_from_camera.transform_vectors(_camera_rays(intrinsics))
    oc = origin - np.asarray(center, dtype=np.float64)
    a = np.sum(rays * rays, axis=-1)
    b = 2.0 * (rays @ oc)
    c = oc @ oc - radius * radius
    disc = b * b - 4.0 * a * c
    hit = disc >= 0
    t = np.where(hit, (-b - np.sqrt(np.where(hit, disc, 0.0))) / (2.0 * a), 0.0)
    # Rays are scaled so that t is the camera z of the hit.
    return np.where(hit & (t > 0), t, 0.0).astype(np.float32)


def ring_of_cameras(
    num_cameras: int, radius: float, height: float = 0.0, target=(0.0, 0.0, 0.0)
) -> list[EuclideanTransform]:
    """Camera-from-world poses evenly spaced on a horizontal circle, facing ``target``."""
    target = np.asarray(target, dtype=np.float64)
    poses = []
    for i in range(num_cameras):
        angle = 2.0 * np.pi * i / num_cameras
        eye = target + np.array([radius * np.cos(angle), height, radius * np.sin(angle)])
        poses.append(look_at(eye, target, up=(0.0, 1.0, 0.0)))
    return poses
