"""Audio-reactive particle tree renderer."""

from treescope.config import AnalysisConfig, FrameClock, RenderConfig, SceneConfig
from treescope.core.envelope import AudioEnvelope, EnvelopeAnalyzer
from treescope.errors import InitializationError, SceneNotReadyError, TreescopeError
from treescope.scene.lifecycle import SceneStatus, TreeScene
from treescope.scene.state import FrameState, SceneState, compute_frame

__version__ = "0.1.0"
__all__ = [
    "AnalysisConfig",
    "AudioEnvelope",
    "EnvelopeAnalyzer",
    "FrameClock",
    "FrameState",
    "InitializationError",
    "RenderConfig",
    "SceneConfig",
    "SceneNotReadyError",
    "SceneState",
    "SceneStatus",
    "TreeScene",
    "TreescopeError",
    "compute_frame",
]
