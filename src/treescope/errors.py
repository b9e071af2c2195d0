"""
Error taxonomy for scene initialization and lifecycle misuse.
"""


class TreescopeError(Exception):
    """Base class for all treescope errors."""


class InitializationError(TreescopeError):
    """
    Raised when the scene cannot reach the ready state.

    Covers audio analysis failures (missing file, decode error) and
    rendering backend creation failures. Fatal: the render job must be
    cancelled rather than emitting partial frames.
    """


class SceneNotReadyError(TreescopeError):
    """Raised when a frame update is requested outside the ready state."""
