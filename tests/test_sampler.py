"""Tests for the audio amplitude sampler."""

import numpy as np
import pytest

from treescope.core.envelope import AudioEnvelope
from treescope.core.sampler import frame_bins, sample_amplitude


def _envelope(rows) -> AudioEnvelope:
    bins = np.asarray(rows, dtype=np.float32)
    return AudioEnvelope(bins=bins, fps=60, sample_rate=22050, duration=len(bins) / 60)


class TestSampleAmplitude:
    def test_max_times_gain(self):
        envelope = _envelope([[0.1, 0.4, 0.2], [0.3, 0.2, 0.1]])
        assert sample_amplitude(envelope, 0, smoothing=False) == pytest.approx(0.4 * 2.5)
        assert sample_amplitude(envelope, 1, smoothing=False) == pytest.approx(0.3 * 2.5)

    def test_window_limits_bins(self):
        envelope = _envelope([[0.1, 0.2, 0.9]])
        assert sample_amplitude(envelope, 0, window=2, smoothing=False) == pytest.approx(0.5)

    def test_smoothing_averages_neighbours(self):
        envelope = _envelope([[0.0, 0.3], [0.6, 0.0], [0.0, 0.9]])
        bins = frame_bins(envelope, 1, smoothing=True)
        np.testing.assert_allclose(bins, [0.2, 0.4], rtol=1e-6)
        assert sample_amplitude(envelope, 1) == pytest.approx(0.4 * 2.5)

    def test_edges_pad_with_silence(self):
        envelope = _envelope([[0.6, 0.0], [0.0, 0.0]])
        assert sample_amplitude(envelope, 0) == pytest.approx(0.2 * 2.5)
        assert sample_amplitude(envelope, 5) == 0.0

    def test_pure_function_of_frame(self, envelope):
        frames = [100, 50, 100, 3, 50]
        values = [sample_amplitude(envelope, f) for f in frames]
        assert values[0] == values[2]
        assert values[1] == values[4]

    def test_empty_window(self):
        envelope = _envelope(np.zeros((2, 0)))
        assert sample_amplitude(envelope, 0) == 0.0
