"""
Procedural particle geometry.

Builds the tree layers, the ground formation and the background
starfield. Everything is generated once at scene construction and the
arrays are frozen afterwards.
"""

import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from treescope.config import LayerSpec, SceneConfig
from treescope.core.rng import sample_range

GOLD = (1.0, 0.8, 0.0)
RED = (1.0, 0.0, 0.0)
GROUND_COLOR = (1.0, 0.9, 0.2)

TREE_GROUP = "tree"


def _freeze(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


@dataclass(frozen=True)
class ParticleSystem:
    """An ordered set of points sharing one material."""

    name: str
    positions: np.ndarray  # Shape: (N, 3), float32
    colors: np.ndarray     # Shape: (N, 3), float32 in [0, 1]
    size: float
    opacity: float = 1.0
    depth_write: bool = True
    additive: bool = False
    size_attenuation: bool = True
    group: Optional[str] = None

    def __len__(self) -> int:
        return self.positions.shape[0]


@dataclass(frozen=True)
class SceneGeometry:
    """All particle systems of the scene, generated once."""

    tree_layers: Tuple[ParticleSystem, ...]
    ground: ParticleSystem
    stars: ParticleSystem

    @property
    def ground_base(self) -> np.ndarray:
        """Canonical ground positions; never modified."""
        return self.ground.positions

    @property
    def systems(self) -> Tuple[ParticleSystem, ...]:
        """Systems in draw order, background first."""
        return (self.stars,) + self.tree_layers + (self.ground,)


def generate_tree_layer(
    count: int,
    point_size: float,
    decorative: bool = False,
    offsets: Tuple[int, int, int, int] = (10, 20, 30, 40),
    tree_height: float = 15.0,
    max_radius: float = 7.0,
    jitter: float = 0.2,
    name: str = "tree",
) -> ParticleSystem:
    """
    Generate one conical layer of tree particles.

    Args:
        count: Number of particles.
        point_size: Material point size.
        decorative: Gold/red ornaments instead of the green gradient.
        offsets: Seed offsets for height, angle, jitter and ornament color.
        tree_height: Height of the cone, centred on y=0.
        max_radius: Radius at the base of the cone.
        jitter: Maximum outward radius scatter as a fraction.
        name: Name of the resulting system.

    Returns:
        ParticleSystem with ``count`` particles in the tree group.
    """
    off_height, off_angle, off_jitter, off_color = offsets

    height_pct = sample_range(off_height, count)
    angle = sample_range(off_angle, count) * math.pi * 2
    scatter = sample_range(off_jitter, count) * jitter

    radius = max_radius * (1 - height_pct) * (1 + scatter)

    positions = np.empty((count, 3), dtype=np.float32)
    positions[:, 0] = np.cos(angle) * radius
    positions[:, 1] = height_pct * tree_height - tree_height / 2
    positions[:, 2] = np.sin(angle) * radius

    colors = np.empty((count, 3), dtype=np.float32)
    if decorative:
        is_gold = sample_range(off_color, count) < 0.5
        colors[:] = np.where(is_gold[:, None], GOLD, RED)
    else:
        colors[:, 0] = 0.1
        colors[:, 1] = 0.4 + height_pct * 0.3
        colors[:, 2] = 0.1

    return ParticleSystem(
        name=name,
        positions=_freeze(positions),
        colors=_freeze(colors),
        size=point_size,
        opacity=1.0 if decorative else 0.8,
        depth_write=not decorative,
        group=TREE_GROUP,
    )


def generate_ground_formation(
    count: int = 200,
    radius: float = 0.5,
    star_height: float = 8.5,
) -> ParticleSystem:
    """
    Generate the base positions of the ground formation.

    Points follow a spherical Fibonacci-style spiral around
    ``(0, star_height, 0)``.
    """
    i = np.arange(count, dtype=np.float64)
    phi = np.arccos(-1 + (2 * i) / count)
    theta = math.sqrt(count * math.pi) * phi

    positions = np.empty((count, 3), dtype=np.float32)
    positions[:, 0] = radius * np.cos(theta) * np.sin(phi)
    positions[:, 1] = star_height + radius * np.sin(theta) * np.sin(phi)
    positions[:, 2] = radius * np.cos(phi)

    colors = np.tile(np.array(GROUND_COLOR, dtype=np.float32), (count, 1))

    return ParticleSystem(
        name="ground",
        positions=_freeze(positions),
        colors=_freeze(colors),
        size=0.1,
        opacity=0.6,
        depth_write=False,
        additive=True,
        group=TREE_GROUP,
    )


def generate_background_stars(
    count: int = 1000,
    radius: float = 50.0,
    phi_seed: Optional[int] = None,
) -> ParticleSystem:
    """
    Generate the static starfield on a sphere around the origin.

    The azimuth and brightness are index-seeded. The polar angle comes
    from ``numpy.random.default_rng(phi_seed)``, which is unseeded (and so
    differs between runs) unless ``phi_seed`` is given.
    """
    theta = sample_range(60, count) * math.pi * 2
    rng = np.random.default_rng(phi_seed)
    phi = np.arccos(rng.random(count) * 2 - 1)

    positions = np.empty((count, 3), dtype=np.float32)
    positions[:, 0] = radius * np.sin(phi) * np.cos(theta)
    positions[:, 1] = radius * np.sin(phi) * np.sin(theta)
    positions[:, 2] = radius * np.cos(phi)

    brightness = 0.5 + sample_range(50, count) * 0.5
    colors = np.repeat(brightness[:, None], 3, axis=1).astype(np.float32)

    return ParticleSystem(
        name="stars",
        positions=_freeze(positions),
        colors=_freeze(colors),
        size=0.02,
    )


def generate_scene_geometry(config: SceneConfig | None = None) -> SceneGeometry:
    """Build every particle system of the scene from its configuration."""
    cfg = config or SceneConfig()

    layers = []
    for index, layer in enumerate(cfg.layers):
        layers.append(_layer_from_config(layer, cfg, name=f"tree_{index}"))

    ground = generate_ground_formation(
        count=cfg.ground_count,
        radius=cfg.ground_radius,
        star_height=cfg.star_height,
    )
    stars = generate_background_stars(
        count=cfg.star_count,
        radius=cfg.star_radius,
        phi_seed=cfg.star_seed,
    )
    return SceneGeometry(tree_layers=tuple(layers), ground=ground, stars=stars)


def _layer_from_config(layer: LayerSpec, cfg: SceneConfig, name: str) -> ParticleSystem:
    return generate_tree_layer(
        count=layer.count,
        point_size=layer.point_size,
        decorative=layer.decorative,
        offsets=layer.offsets,
        tree_height=cfg.tree_height,
        max_radius=cfg.max_radius,
        jitter=cfg.jitter,
        name=name,
    )
