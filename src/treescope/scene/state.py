"""
Per-frame scene state.

``SceneState`` bundles the immutable inputs (configuration, generated
geometry, audio envelope). ``compute_frame`` derives everything that
changes over time from a SceneState and a frame index alone, so frames
can be computed in any order, repeated, or retried.
"""

from dataclasses import dataclass

import numpy as np

from treescope.config import FrameClock, SceneConfig
from treescope.core.envelope import AudioEnvelope
from treescope.core.sampler import sample_amplitude
from treescope.scene.camera import CameraState, camera_at
from treescope.scene.geometry import SceneGeometry, generate_scene_geometry


@dataclass(frozen=True)
class SceneState:
    """Configuration plus generated geometry plus envelope."""

    config: SceneConfig
    clock: FrameClock
    geometry: SceneGeometry
    envelope: AudioEnvelope

    @classmethod
    def build(
        cls,
        envelope: AudioEnvelope,
        config: SceneConfig | None = None,
        clock: FrameClock | None = None,
        geometry: SceneGeometry | None = None,
    ) -> "SceneState":
        cfg = config or SceneConfig()
        return cls(
            config=cfg,
            clock=clock or FrameClock(),
            geometry=geometry or generate_scene_geometry(cfg),
            envelope=envelope,
        )


@dataclass(frozen=True)
class FrameState:
    """Everything the backend needs to draw one frame."""

    frame: int
    camera: CameraState
    tree_rotation: float
    ground_rotation: float
    audio_amplitude: float
    pulse_scale: float
    ground_positions: np.ndarray  # "live" positions, float64 (N, 3)
    ground_size: float
    ground_opacity: float


def pulse_ground(
    base: np.ndarray,
    angle: float,
    pulse_scale: float,
    center_y: float,
) -> np.ndarray:
    """
    Rotate base positions about the vertical axis, then scale them about
    ``(0, center_y, 0)``.

    The order matters: scaling first would move the formation's centre.
    """
    base = np.asarray(base, dtype=np.float64)
    x, y, z = base[:, 0], base[:, 1], base[:, 2]

    cos_a = np.cos(angle)
    sin_a = np.sin(angle)
    rotated_x = x * cos_a - z * sin_a
    rotated_z = x * sin_a + z * cos_a

    live = np.empty_like(base)
    live[:, 0] = rotated_x * pulse_scale
    live[:, 1] = center_y + (y - center_y) * pulse_scale
    live[:, 2] = rotated_z * pulse_scale
    return live


def compute_frame(state: SceneState, frame: int) -> FrameState:
    """
    Compute the transient state of a frame.

    Args:
        state: Immutable scene inputs.
        frame: Frame index, >= 0.

    Returns:
        FrameState for ``frame``.
    """
    if frame < 0:
        raise ValueError(f"Frame index must be >= 0, got {frame}")

    cfg = state.config

    # 1. Camera
    camera = camera_at(frame, state.clock.total_frames, cfg)

    # 2. Absolute tree rotation
    tree_rotation = frame * cfg.tree_rotation_rate

    # 3. Audio
    amplitude = sample_amplitude(
        state.envelope,
        frame,
        window=cfg.sample_window,
        gain=cfg.audio_gain,
        smoothing=cfg.audio_smoothing,
    )

    # 4. Ground formation, rebuilt from base every frame
    ground_rotation = frame * cfg.ground_rotation_rate
    pulse_scale = 1 + amplitude * cfg.pulse_gain
    live = pulse_ground(
        state.geometry.ground_base,
        ground_rotation,
        pulse_scale,
        cfg.star_height,
    )

    # 5. Ground material (unclamped)
    size = cfg.ground_base_size + amplitude * cfg.ground_size_gain
    opacity = cfg.ground_base_opacity + amplitude * cfg.ground_opacity_gain

    return FrameState(
        frame=frame,
        camera=camera,
        tree_rotation=tree_rotation,
        ground_rotation=ground_rotation,
        audio_amplitude=amplitude,
        pulse_scale=pulse_scale,
        ground_positions=live,
        ground_size=size,
        ground_opacity=opacity,
    )
