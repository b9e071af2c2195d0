"""
Rendering backends.

``RenderBackend`` is the contract the scene submits to: particle systems
are registered once, then per frame the scene pushes a camera, group
rotations, material parameters and updated positions, and asks for a
draw. ``RasterBackend`` fulfils it in software with numpy and Pillow,
producing (H, W, 3) uint8 frames ready for the encoder.
"""

import abc
import logging
from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np
from PIL import Image, ImageDraw

from treescope.config import RenderConfig
from treescope.scene.camera import CameraState, look_at_matrix, projection_matrix
from treescope.scene.geometry import ParticleSystem

logger = logging.getLogger(__name__)

# Smallest drawn point radius in pixels
MIN_POINT_RADIUS = 0.5


class RenderBackend(abc.ABC):
    """Abstract rendering backend."""

    @abc.abstractmethod
    def register(self, system: ParticleSystem):
        """Take ownership of a particle system's buffers."""

    @abc.abstractmethod
    def set_group_rotation(self, group: str, angle: float):
        """Rotate every system of ``group`` about the vertical axis."""

    @abc.abstractmethod
    def set_material(self, name: str, size: float | None = None, opacity: float | None = None):
        """Update a system's point size and/or opacity."""

    @abc.abstractmethod
    def set_positions(self, name: str, positions: np.ndarray):
        """Replace a system's positions."""

    @abc.abstractmethod
    def set_camera(self, camera: CameraState):
        """Set the camera used by the next draw."""

    @abc.abstractmethod
    def draw(self, frame: int) -> np.ndarray:
        """Render the current scene. Returns an (H, W, 3) uint8 array."""

    @abc.abstractmethod
    def release(self):
        """Free all resources. Safe to call more than once."""


@dataclass
class _Buffer:
    """Backend-owned copy of a registered system."""

    system: ParticleSystem
    positions: np.ndarray
    size: float
    opacity: float


def _rotation_y(angle: float) -> np.ndarray:
    c, s = np.cos(angle), np.sin(angle)
    return np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]])


class RasterBackend(RenderBackend):
    """
    Software point renderer.

    Points are projected with a perspective camera and drawn as discs
    whose pixel radius shrinks with distance. Normal systems alpha-blend
    far-to-near; additive systems are accumulated and added on top.
    Drawing happens at ``pixel_ratio`` times the output resolution and is
    downsampled for antialiasing.
    """

    def __init__(self, config: RenderConfig | None = None):
        self.cfg = config or RenderConfig()
        if self.cfg.width <= 0 or self.cfg.height <= 0:
            raise ValueError(f"Invalid output size {self.cfg.width}x{self.cfg.height}")
        if self.cfg.pixel_ratio <= 0:
            raise ValueError(f"Invalid pixel ratio {self.cfg.pixel_ratio}")

        self.internal_width, self.internal_height = self.cfg.get_internal_dims()

        self._buffers: Dict[str, _Buffer] = {}
        self._group_rotation: Dict[str, float] = {}
        self._camera: Optional[CameraState] = None
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def _buffer(self, name: str) -> _Buffer:
        if self._released:
            raise RuntimeError("Backend has been released")
        try:
            return self._buffers[name]
        except KeyError:
            raise KeyError(f"No particle system registered as '{name}'") from None

    def register(self, system: ParticleSystem):
        if self._released:
            raise RuntimeError("Backend has been released")
        self._buffers[system.name] = _Buffer(
            system=system,
            positions=np.array(system.positions, dtype=np.float64),
            size=system.size,
            opacity=system.opacity,
        )

    def set_group_rotation(self, group: str, angle: float):
        self._group_rotation[group] = angle

    def set_material(self, name: str, size: float | None = None, opacity: float | None = None):
        buf = self._buffer(name)
        if size is not None:
            buf.size = size
        if opacity is not None:
            buf.opacity = opacity

    def set_positions(self, name: str, positions: np.ndarray):
        buf = self._buffer(name)
        positions = np.asarray(positions, dtype=np.float64)
        if positions.shape != buf.positions.shape:
            raise ValueError(
                f"Position buffer for '{name}' has shape {buf.positions.shape}, got {positions.shape}"
            )
        buf.positions[:] = positions

    def set_camera(self, camera: CameraState):
        self._camera = camera

    def project(self, buf: _Buffer, view: np.ndarray, proj: np.ndarray):
        """
        Project a buffer to pixel space.

        Returns:
            Tuple of (xy pixels (K, 2), pixel radii (K,), view depth (K,),
            indices into the buffer (K,)) for points inside the frustum.
        """
        points = buf.positions
        group = buf.system.group
        if group is not None:
            angle = self._group_rotation.get(group, 0.0)
            if angle:
                points = points @ _rotation_y(angle).T

        homogeneous = np.hstack([points, np.ones((points.shape[0], 1))])
        view_pos = homogeneous @ view.T
        depth = -view_pos[:, 2]

        camera = self._camera
        visible = (depth > camera.near) & (depth < camera.far)
        clip = view_pos[visible] @ proj.T
        ndc = clip[:, :3] / clip[:, 3:4]

        w, h = self.internal_width, self.internal_height
        on_screen = (np.abs(ndc[:, 0]) <= 1.05) & (np.abs(ndc[:, 1]) <= 1.05)

        xy = np.empty((ndc.shape[0], 2))
        xy[:, 0] = (ndc[:, 0] + 1) / 2 * w
        xy[:, 1] = (1 - ndc[:, 1]) / 2 * h

        depth = depth[visible]
        if buf.system.size_attenuation:
            # Diameter = size * (h / 2) / depth, as for attenuated GL points
            radii = buf.size * (h / 2) / depth / 2
        else:
            radii = np.full(depth.shape, buf.size * self.cfg.pixel_ratio / 2)
        radii = np.maximum(radii, MIN_POINT_RADIUS)

        indices = np.flatnonzero(visible)[on_screen]
        return xy[on_screen], radii[on_screen], depth[on_screen], indices

    def _draw_blended(self, canvas: Image.Image, buf: _Buffer, xy, radii, depth, indices):
        alpha = int(round(np.clip(buf.opacity, 0.0, 1.0) * 255))
        colors = np.clip(buf.system.colors[indices] * 255, 0, 255).astype(np.uint8)
        draw = ImageDraw.Draw(canvas, "RGBA")

        # Far to near
        for k in np.argsort(-depth, kind="stable"):
            x, y = xy[k]
            r = radii[k]
            r_, g_, b_ = colors[k]
            draw.ellipse((x - r, y - r, x + r, y + r), fill=(int(r_), int(g_), int(b_), alpha))

    def _accumulate_additive(self, light: np.ndarray, buf: _Buffer, xy, radii, indices):
        opacity = float(np.clip(buf.opacity, 0.0, 1.0))
        colors = buf.system.colors[indices] * opacity
        h, w = light.shape[:2]

        for k in range(xy.shape[0]):
            x, y = xy[k]
            r = radii[k]
            x0, x1 = max(int(x - r), 0), min(int(np.ceil(x + r)) + 1, w)
            y0, y1 = max(int(y - r), 0), min(int(np.ceil(y + r)) + 1, h)
            if x0 >= x1 or y0 >= y1:
                continue
            yy, xx = np.mgrid[y0:y1, x0:x1]
            disc = ((xx + 0.5 - x) ** 2 + (yy + 0.5 - y) ** 2) <= r * r
            light[y0:y1, x0:x1][disc] += colors[k]

    def draw(self, frame: int) -> np.ndarray:
        if self._released:
            raise RuntimeError("Backend has been released")
        if self._camera is None:
            raise RuntimeError("No camera set before draw")

        w, h = self.internal_width, self.internal_height
        view = look_at_matrix(self._camera)
        proj = projection_matrix(self._camera, w / h)

        canvas = Image.new("RGB", (w, h), self.cfg.background)
        light = None

        for buf in self._buffers.values():
            xy, radii, depth, indices = self.project(buf, view, proj)
            if xy.shape[0] == 0:
                continue
            if buf.system.additive:
                if light is None:
                    light = np.zeros((h, w, 3), dtype=np.float32)
                self._accumulate_additive(light, buf, xy, radii, indices)
            else:
                self._draw_blended(canvas, buf, xy, radii, depth, indices)

        if light is not None:
            base = np.asarray(canvas, dtype=np.float32) / 255.0
            combined = np.clip(base + light, 0.0, 1.0)
            canvas = Image.fromarray((combined * 255).astype(np.uint8))

        if (w, h) != (self.cfg.width, self.cfg.height):
            canvas = canvas.resize((self.cfg.width, self.cfg.height), Image.LANCZOS)

        logger.debug("Drew frame %d", frame)
        return np.asarray(canvas, dtype=np.uint8)

    def release(self):
        if self._released:
            return
        self._buffers.clear()
        self._group_rotation.clear()
        self._camera = None
        self._released = True
        logger.debug("Backend released")
