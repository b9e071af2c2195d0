"""
Configuration for the particle tree scene.

All values are fixed defaults for the composition; the
dataclasses are frozen so a configuration can be shared between the
scene state and every frame computed from it.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class LayerSpec:
    """One particle layer of the tree."""

    count: int
    point_size: float
    decorative: bool = False
    # RNG seed offsets for (height, angle, jitter, ornament color)
    offsets: Tuple[int, int, int, int] = (10, 20, 30, 40)


# Seed offset spacing between layers; larger than any layer count
LAYER_SEED_STRIDE = 10000


def _layer_offsets(index: int) -> Tuple[int, int, int, int]:
    base = index * LAYER_SEED_STRIDE
    return (base + 10, base + 20, base + 30, base + 40)


def _default_layers() -> Tuple[LayerSpec, ...]:
    return (
        LayerSpec(count=5000, point_size=0.1, offsets=_layer_offsets(0)),
        LayerSpec(count=200, point_size=0.3, decorative=True, offsets=_layer_offsets(1)),
        LayerSpec(count=50, point_size=0.6, decorative=True, offsets=_layer_offsets(2)),
    )


@dataclass(frozen=True)
class SceneConfig:
    """Geometry and animation constants."""

    # Tree
    tree_height: float = 15.0
    max_radius: float = 7.0
    layers: Tuple[LayerSpec, ...] = field(default_factory=_default_layers)
    jitter: float = 0.2

    # Ground formation (the pulsing star above the tree)
    ground_count: int = 200
    ground_radius: float = 0.5
    ground_base_size: float = 0.12
    ground_size_gain: float = 0.18
    ground_base_opacity: float = 0.6
    ground_opacity_gain: float = 0.4
    pulse_gain: float = 0.4

    # Background starfield
    star_count: int = 1000
    star_radius: float = 50.0
    star_seed: Optional[int] = None  # None keeps the polar angle unseeded

    # Camera flythrough
    camera_start_radius: float = 30.0
    camera_end_radius: float = 20.0
    camera_start_height: float = 14.0
    camera_end_height: float = 4.0
    camera_turns: float = 0.2

    # Per-frame rotation rates (radians per frame)
    tree_rotation_rate: float = 0.01
    ground_rotation_rate: float = 0.02

    # Audio reaction
    audio_gain: float = 2.5
    sample_window: int = 32
    audio_smoothing: bool = True

    @property
    def star_height(self) -> float:
        """Vertical centre of the ground formation."""
        return self.tree_height / 2 + 1


@dataclass(frozen=True)
class FrameClock:
    """Timeline of the composition."""

    fps: int = 60
    duration_seconds: float = 15.5
    width: int = 1920
    height: int = 1080
    pixel_ratio: float = 2.0

    @property
    def total_frames(self) -> int:
        return int(round(self.duration_seconds * self.fps))


@dataclass(frozen=True)
class AnalysisConfig:
    """Parameters of the audio envelope analysis."""

    fps: int = 60
    sample_rate: Optional[int] = 22050
    n_bins: int = 32


@dataclass(frozen=True)
class RenderConfig:
    """Output settings for the software rendering backend."""

    width: int = 1920
    height: int = 1080
    pixel_ratio: float = 2.0
    background: Tuple[int, int, int] = (0x1C, 0x1C, 0x1C)
    fov: float = 50.0
    near: float = 0.1
    far: float = 1000.0

    def get_internal_dims(self) -> Tuple[int, int]:
        """Returns (width, height) of the supersampled drawing surface."""
        scale = max(self.pixel_ratio, 1.0)
        return (int(round(self.width * scale)), int(round(self.height * scale)))


# CLI render profiles
PROFILES = {
    "low": {"width": 1280, "height": 720, "fps": 30, "quality": "fast", "pixel_ratio": 1.0},
    "medium": {"width": 1920, "height": 1080, "fps": 60, "quality": "medium", "pixel_ratio": 1.0},
    "high": {"width": 1920, "height": 1080, "fps": 60, "quality": "high", "pixel_ratio": 2.0},
}
