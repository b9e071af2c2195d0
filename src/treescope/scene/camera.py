"""
Camera flythrough.

The camera orbits the origin while descending and closing in, eased out
cubically so it settles towards the end of the sequence. Its state is a
pure function of the frame index.
"""

import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from treescope.config import SceneConfig

Vec3 = Tuple[float, float, float]


@dataclass(frozen=True)
class CameraState:
    """Position and orientation of the perspective camera."""

    position: Vec3
    target: Vec3 = (0.0, 0.0, 0.0)
    up: Vec3 = (0.0, 1.0, 0.0)
    fov: float = 50.0
    near: float = 0.1
    far: float = 1000.0


def _lerp(start: float, end: float, t: float) -> float:
    return start - (start - end) * t


def ease_out_cubic(t: float) -> float:
    """Decelerating curve 1 - (1 - t)^3."""
    return 1 - math.pow(1 - t, 3)


def camera_at(
    frame: float,
    total_frames: float,
    config: SceneConfig | None = None,
) -> CameraState:
    """
    Camera for a frame.

    Args:
        frame: Frame index.
        total_frames: Length of the flythrough in frames.
        config: Scene constants (radius, height, turns).

    Returns:
        CameraState looking at the world origin.
    """
    cfg = config or SceneConfig()

    progress = min(max(frame / total_frames, 0.0), 1.0)
    ease = ease_out_cubic(progress)

    radius = _lerp(cfg.camera_start_radius, cfg.camera_end_radius, ease)
    height = _lerp(cfg.camera_start_height, cfg.camera_end_height, ease)
    angle = progress * math.pi * 2 * cfg.camera_turns

    return CameraState(position=(math.cos(angle) * radius, height, math.sin(angle) * radius))


def look_at_matrix(camera: CameraState) -> np.ndarray:
    """4x4 world-to-view matrix (right-handed, camera looks down -Z)."""
    eye = np.asarray(camera.position, dtype=np.float64)
    target = np.asarray(camera.target, dtype=np.float64)
    up = np.asarray(camera.up, dtype=np.float64)

    forward = eye - target
    forward /= np.linalg.norm(forward)
    right = np.cross(up, forward)
    right /= np.linalg.norm(right)
    true_up = np.cross(forward, right)

    view = np.eye(4)
    view[0, :3] = right
    view[1, :3] = true_up
    view[2, :3] = forward
    view[:3, 3] = -view[:3, :3] @ eye
    return view


def projection_matrix(camera: CameraState, aspect: float) -> np.ndarray:
    """4x4 OpenGL-style perspective projection matrix."""
    f = 1.0 / math.tan(math.radians(camera.fov) / 2)
    near, far = camera.near, camera.far

    proj = np.zeros((4, 4))
    proj[0, 0] = f / aspect
    proj[1, 1] = f
    proj[2, 2] = (far + near) / (near - far)
    proj[2, 3] = (2 * far * near) / (near - far)
    proj[3, 2] = -1.0
    return proj
