"""
Audio amplitude sampling.

Reduces one frame of the envelope to the single scalar that drives the
ground formation's pulse.
"""

import numpy as np

from treescope.core.envelope import AudioEnvelope


def frame_bins(
    envelope: AudioEnvelope,
    frame: int,
    window: int = 32,
    smoothing: bool = True,
) -> np.ndarray:
    """
    Amplitude bins for a frame.

    With smoothing, each bin is the mean over frames f-1, f and f+1.
    Only the first ``window`` bins are returned.
    """
    if smoothing:
        rows = np.stack([envelope.frame(f) for f in (frame - 1, frame, frame + 1)])
        values = rows.mean(axis=0)
    else:
        values = envelope.frame(frame)
    return values[:window]


def sample_amplitude(
    envelope: AudioEnvelope,
    frame: int,
    window: int = 32,
    gain: float = 2.5,
    smoothing: bool = True,
) -> float:
    """
    Loudest bin of a frame's window, scaled by ``gain``.

    Pure function of ``frame`` for a fixed envelope.
    """
    values = frame_bins(envelope, frame, window=window, smoothing=smoothing)
    if values.size == 0:
        return 0.0
    return float(np.max(values)) * gain
