"""
Scene lifecycle.

``TreeScene`` gates frame updates behind asynchronous audio analysis and
owns the rendering backend. The harness drives it explicitly::

    scene = TreeScene("song.mp3")
    scene.init()
    await scene.ready()
    for frame in range(scene.clock.total_frames):
        image = scene.render(frame)
    scene.dispose()
"""

import asyncio
import enum
import logging
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional, Union

import numpy as np

from treescope.config import AnalysisConfig, FrameClock, RenderConfig, SceneConfig
from treescope.core.envelope import EnvelopeAnalyzer
from treescope.errors import InitializationError, SceneNotReadyError
from treescope.render.backend import RasterBackend, RenderBackend
from treescope.scene.geometry import TREE_GROUP, SceneGeometry, generate_scene_geometry
from treescope.scene.state import FrameState, SceneState, compute_frame

logger = logging.getLogger(__name__)

BackendFactory = Callable[[RenderConfig], RenderBackend]


class SceneStatus(enum.Enum):
    UNINITIALIZED = "uninitialized"
    AUDIO_LOADING = "audio_loading"
    READY = "ready"
    DISPOSED = "disposed"
    FAILED = "failed"


class TreeScene:
    """
    Audio-reactive particle tree scene.

    Geometry is generated on construction. ``init()`` starts the audio
    analysis; ``ready()`` waits for it and raises InitializationError if
    it failed. Only then may ``update``/``render`` be called, for any
    frame in any order. ``dispose()`` releases the backend and may be
    called at any time, any number of times.
    """

    def __init__(
        self,
        audio_path: Union[str, Path],
        config: SceneConfig | None = None,
        clock: FrameClock | None = None,
        render_config: RenderConfig | None = None,
        analyzer: Optional[EnvelopeAnalyzer] = None,
        backend_factory: Optional[BackendFactory] = RasterBackend,
    ):
        """
        Args:
            audio_path: Soundtrack driving the ground formation.
            config: Geometry and animation constants.
            clock: Composition timeline.
            render_config: Backend output settings. Defaults to the
                clock's resolution and pixel ratio.
            analyzer: Envelope provider; anything with ``analyze(path)``.
            backend_factory: Creates the rendering backend once audio is
                ready. None runs headless: frames are computed but not drawn.
        """
        self.audio_path = Path(audio_path)
        self.cfg = config or SceneConfig()
        self.clock = clock or FrameClock()
        self.render_cfg = render_config or RenderConfig(
            width=self.clock.width,
            height=self.clock.height,
            pixel_ratio=self.clock.pixel_ratio,
        )
        self.analyzer = analyzer or EnvelopeAnalyzer(AnalysisConfig(fps=self.clock.fps))
        self.backend_factory = backend_factory

        self.geometry: SceneGeometry = generate_scene_geometry(self.cfg)

        self._status = SceneStatus.UNINITIALIZED
        self._state: Optional[SceneState] = None
        self._backend: Optional[RenderBackend] = None
        self._init_task: Optional[asyncio.Task] = None
        self._released = False

    @property
    def status(self) -> SceneStatus:
        return self._status

    @property
    def is_ready(self) -> bool:
        return self._status is SceneStatus.READY

    @property
    def state(self) -> SceneState:
        """The immutable scene state. Only available once ready."""
        self._require_ready()
        return self._state

    @property
    def backend(self) -> Optional[RenderBackend]:
        return self._backend

    def _set_status(self, status: SceneStatus):
        logger.info("Scene %s -> %s", self._status.value, status.value)
        self._status = status

    def _require_ready(self):
        if self._status is not SceneStatus.READY:
            raise SceneNotReadyError(f"Scene is {self._status.value}, not ready")

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def init(self) -> asyncio.Task:
        """
        Start loading audio. Must be called from a running event loop.

        Returns:
            The initialization task; calling again returns the same task.
        """
        if self._init_task is not None:
            return self._init_task
        if self._status is not SceneStatus.UNINITIALIZED:
            raise SceneNotReadyError(f"Cannot initialize a {self._status.value} scene")

        self._set_status(SceneStatus.AUDIO_LOADING)
        self._init_task = asyncio.get_running_loop().create_task(self._load())
        return self._init_task

    async def ready(self) -> "TreeScene":
        """
        Wait until the scene is ready.

        Raises:
            InitializationError: Audio analysis or backend creation failed.
            SceneNotReadyError: The scene was disposed while loading.
        """
        await self.init()
        self._require_ready()
        return self

    async def initialize(self) -> "TreeScene":
        """``init()`` and ``ready()`` in one call."""
        self.init()
        return await self.ready()

    async def _load(self):
        try:
            envelope = await asyncio.to_thread(self.analyzer.analyze, self.audio_path)
        except Exception as e:
            if self._status is SceneStatus.DISPOSED:
                logger.info("Scene disposed while loading audio; ignoring failure: %s", e)
                return
            self._set_status(SceneStatus.FAILED)
            if isinstance(e, InitializationError):
                raise
            raise InitializationError(f"Audio analysis failed: {e}") from e

        if self._status is SceneStatus.DISPOSED:
            logger.info("Scene disposed while loading audio; discarding envelope")
            return

        backend = None
        if self.backend_factory is not None:
            try:
                backend = self.backend_factory(self.render_cfg)
                for system in self.geometry.systems:
                    backend.register(system)
            except Exception as e:
                if backend is not None:
                    backend.release()
                self._set_status(SceneStatus.FAILED)
                raise InitializationError(f"Rendering backend creation failed: {e}") from e

        self._backend = backend
        self._state = SceneState.build(
            envelope,
            config=self.cfg,
            clock=self.clock,
            geometry=self.geometry,
        )
        self._set_status(SceneStatus.READY)

    # ------------------------------------------------------------------
    # Frames
    # ------------------------------------------------------------------

    def update(self, frame: int) -> FrameState:
        """
        Compute a frame and submit it to the backend.

        Safe for any frame sequence, including repeats and backward seeks.
        """
        self._require_ready()
        frame_state = compute_frame(self._state, frame)
        if self._backend is not None:
            self._submit(frame_state)
        return frame_state

    def _submit(self, frame_state: FrameState):
        backend = self._backend
        ground = self.geometry.ground.name

        backend.set_camera(frame_state.camera)
        backend.set_group_rotation(TREE_GROUP, frame_state.tree_rotation)
        backend.set_positions(ground, frame_state.ground_positions)
        backend.set_material(
            ground,
            size=frame_state.ground_size,
            opacity=frame_state.ground_opacity,
        )

    def render(self, frame: int) -> np.ndarray:
        """Update and draw a frame. Returns an (H, W, 3) uint8 array."""
        self.update(frame)
        if self._backend is None:
            raise SceneNotReadyError("Scene has no rendering backend")
        return self._backend.draw(frame)

    def render_frames(
        self,
        frames: Iterable[int],
        progress_callback: Optional[Callable[[int, int], None]] = None,
        total: Optional[int] = None,
    ) -> Iterator[np.ndarray]:
        """
        Render a sequence of frames as a generator.

        Args:
            frames: Frame indices, in any order.
            progress_callback: Optional callback(current, total).
            total: Frame count for progress reporting.

        Yields:
            (H, W, 3) uint8 RGB arrays, one per frame.
        """
        for count, frame in enumerate(frames, start=1):
            yield self.render(frame)

            if progress_callback and total:
                progress_callback(count, total)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def dispose(self):
        """Release backend resources. Repeated calls are no-ops."""
        if self._released:
            return
        self._released = True

        if self._backend is not None:
            self._backend.release()
            self._backend = None
        self._state = None

        if self._status is not SceneStatus.FAILED:
            self._set_status(SceneStatus.DISPOSED)
