"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest

from treescope.config import SceneConfig
from treescope.core.envelope import AudioEnvelope
from treescope.errors import InitializationError
from treescope.scene.geometry import generate_scene_geometry

# Default sample rate for test audio
TEST_SR = 22050


@pytest.fixture
def sample_rate() -> int:
    """Default sample rate for tests."""
    return TEST_SR


@pytest.fixture
def bin_sine(sample_rate: int) -> tuple[np.ndarray, int]:
    """
    Full-scale sine centred on FFT bin 4 of a 64-sample window.

    Returns:
        Tuple of (audio_signal, sample_rate).
    """
    duration = 2.0
    t = np.arange(int(sample_rate * duration)) / sample_rate
    frequency = 4 * sample_rate / 64
    y = np.sin(2 * np.pi * frequency * t)
    return y.astype(np.float32), sample_rate


@pytest.fixture
def click_track(sample_rate: int) -> tuple[np.ndarray, int]:
    """
    Generate a simple click track at 120 BPM.

    Returns:
        Tuple of (audio_signal, sample_rate).
    """
    duration = 2.0
    bpm = 120
    samples_per_beat = int(sample_rate * 60 / bpm)
    total_samples = int(sample_rate * duration)

    y = np.zeros(total_samples, dtype=np.float32)

    # Exponentially decaying 10ms clicks on each beat
    click_duration = int(sample_rate * 0.01)
    for beat_start in range(0, total_samples, samples_per_beat):
        click_end = min(beat_start + click_duration, total_samples)
        click_samples = click_end - beat_start
        decay = np.exp(-np.linspace(0, 5, click_samples))
        y[beat_start:click_end] = 0.8 * decay

    return y, sample_rate


@pytest.fixture
def temp_audio_file(tmp_path, click_track):
    """Create a temporary audio file for testing file I/O."""
    import soundfile as sf

    y, sr = click_track
    audio_path = tmp_path / "test_audio.wav"
    sf.write(audio_path, y, sr)
    return audio_path


def make_envelope(n_frames: int = 1000, n_bins: int = 32, fps: int = 60) -> AudioEnvelope:
    """Envelope whose loudness ramps smoothly with the frame index."""
    frames = np.arange(n_frames, dtype=np.float32)
    level = 0.5 + 0.5 * np.sin(frames * 0.05)
    profile = np.linspace(1.0, 0.2, n_bins, dtype=np.float32)
    bins = (level[:, None] * profile[None, :] * 0.6).astype(np.float32)
    return AudioEnvelope(bins=bins, fps=fps, sample_rate=TEST_SR, duration=n_frames / fps)


@pytest.fixture
def envelope() -> AudioEnvelope:
    return make_envelope()


@pytest.fixture(scope="session")
def scene_geometry():
    """Default scene geometry with a seeded starfield."""
    return generate_scene_geometry(SceneConfig(star_seed=7))


class FakeAnalyzer:
    """Envelope provider that never touches the filesystem."""

    def __init__(self, envelope: AudioEnvelope | None = None):
        self.envelope = envelope if envelope is not None else make_envelope()
        self.calls = 0

    def analyze(self, audio_path):
        self.calls += 1
        return self.envelope


class FailingAnalyzer:
    """Envelope provider that fails like a missing or corrupt file."""

    def __init__(self, error: Exception | None = None):
        self.error = error or InitializationError("Audio file not found: missing.mp3")

    def analyze(self, audio_path):
        raise self.error


@pytest.fixture
def fake_analyzer() -> FakeAnalyzer:
    return FakeAnalyzer()


@pytest.fixture
def failing_analyzer():
    """Factory for analyzers that raise a given error."""
    return FailingAnalyzer

