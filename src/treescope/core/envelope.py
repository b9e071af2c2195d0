"""
Audio envelope analysis.

Reduces an audio file to a time-indexed table of per-bin amplitudes,
one row per video frame. Each row is the magnitude spectrum of a short
Hamming-windowed slice centred on the frame's sample position, so a
frame's row depends only on the audio around that frame.
"""

import hashlib
import json
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import librosa
import numpy as np
from scipy import signal as scipy_signal

from treescope.config import AnalysisConfig
from treescope.errors import InitializationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AudioEnvelope:
    """Per-frame amplitude bins derived once from decoded audio."""

    bins: np.ndarray  # Shape: (n_frames, n_bins), float32
    fps: int
    sample_rate: int
    duration: float

    @property
    def n_frames(self) -> int:
        return self.bins.shape[0]

    @property
    def n_bins(self) -> int:
        return self.bins.shape[1]

    def frame(self, index: int) -> np.ndarray:
        """
        Bins for a frame index.

        Frames outside the analysed range are silent (all zeros).
        """
        if 0 <= index < self.n_frames:
            return self.bins[index]
        return np.zeros(self.n_bins, dtype=self.bins.dtype)


def compute_envelope(
    y: np.ndarray,
    sr: int,
    fps: int = 60,
    n_bins: int = 32,
) -> AudioEnvelope:
    """
    Compute the amplitude envelope of a mono signal.

    Args:
        y: Audio time series in [-1, 1].
        sr: Sample rate.
        fps: Frames per second of the target video.
        n_bins: Number of frequency bins to keep per frame.

    Returns:
        AudioEnvelope with ceil(duration * fps) rows.
    """
    y = np.asarray(y, dtype=np.float32)
    n_fft = n_bins * 2
    duration = len(y) / sr
    n_frames = int(np.ceil(duration * fps))

    if n_frames == 0:
        bins = np.zeros((0, n_bins), dtype=np.float32)
        return AudioEnvelope(bins=bins, fps=fps, sample_rate=sr, duration=duration)

    # Window start per frame, centred on the frame's sample position
    centers = np.floor(np.arange(n_frames) / fps * sr).astype(np.int64)
    starts = np.maximum(centers - n_fft // 2, 0)
    idx = starts[:, None] + np.arange(n_fft)[None, :]

    # Zero-pad past the end of the signal
    padded = np.concatenate([y, np.zeros(n_fft, dtype=np.float32)])
    idx = np.minimum(idx, len(padded) - 1)
    slices = padded[idx]

    window = scipy_signal.get_window("hamming", n_fft, fftbins=False).astype(np.float32)
    spectrum = np.abs(np.fft.rfft(slices * window, axis=1))[:, :n_bins]

    # Full-scale sine at a bin centre maps to 1.0
    bins = spectrum / (window.sum() / 2.0)

    return AudioEnvelope(
        bins=bins.astype(np.float32),
        fps=fps,
        sample_rate=sr,
        duration=duration,
    )


class EnvelopeAnalyzer:
    """
    Loads audio files and computes their envelopes, with an on-disk cache.

    The cache key combines the file's content hash with the analysis
    configuration, so changing fps or bin count re-analyses.
    """

    # Increment whenever the envelope computation changes
    ANALYSIS_VERSION = "1.0"

    def __init__(self, config: AnalysisConfig | None = None, use_cache: bool = True):
        self.cfg = config or AnalysisConfig()
        self.use_cache = use_cache

    def _get_cache_dir(self) -> Path:
        """Return the directory for caching envelopes."""
        cache_dir = Path.home() / ".cache" / "treescope" / "envelopes"
        cache_dir.mkdir(parents=True, exist_ok=True)
        return cache_dir

    def _calculate_file_hash(self, file_path: Path) -> str:
        """Calculate SHA256 hash of the file."""
        sha256_hash = hashlib.sha256()
        with open(file_path, "rb") as f:
            for byte_block in iter(lambda: f.read(4096), b""):
                sha256_hash.update(byte_block)
        return sha256_hash.hexdigest()

    def _get_config_hash(self) -> str:
        config = {
            "version": self.ANALYSIS_VERSION,
            "fps": self.cfg.fps,
            "sr": self.cfg.sample_rate,
            "bins": self.cfg.n_bins,
        }
        return hashlib.md5(json.dumps(config, sort_keys=True).encode("utf-8")).hexdigest()

    def _get_cache_path(self, audio_path: Path) -> Path:
        file_hash = self._calculate_file_hash(audio_path)
        return self._get_cache_dir() / f"envelope_{file_hash}_{self._get_config_hash()}.npz"

    def clear_cache(self):
        """Clear the envelope cache."""
        cache_dir = self._get_cache_dir()
        if cache_dir.exists():
            shutil.rmtree(cache_dir)
            cache_dir.mkdir(parents=True, exist_ok=True)

    def _load_cached(self, cache_path: Path) -> AudioEnvelope:
        with np.load(cache_path) as data:
            return AudioEnvelope(
                bins=data["bins"],
                fps=int(data["fps"]),
                sample_rate=int(data["sample_rate"]),
                duration=float(data["duration"]),
            )

    def _save_cached(self, cache_path: Path, envelope: AudioEnvelope):
        np.savez(
            cache_path,
            bins=envelope.bins,
            fps=envelope.fps,
            sample_rate=envelope.sample_rate,
            duration=envelope.duration,
        )

    def load_audio(self, audio_path: Union[str, Path]) -> tuple[np.ndarray, int]:
        """
        Load audio as mono.

        Raises:
            InitializationError: The file is missing or cannot be decoded.
        """
        audio_path = Path(audio_path)
        if not audio_path.exists():
            raise InitializationError(f"Audio file not found: {audio_path}")
        try:
            y, sr = librosa.load(audio_path, sr=self.cfg.sample_rate, mono=True)
        except Exception as e:
            raise InitializationError(f"Failed to decode audio {audio_path}: {e}") from e
        return y, sr

    def analyze(self, audio_path: Union[str, Path]) -> AudioEnvelope:
        """
        Compute (or load from cache) the envelope of an audio file.

        Args:
            audio_path: Path to audio file (wav, mp3, flac).

        Returns:
            AudioEnvelope aligned to the configured fps.

        Raises:
            InitializationError: The file is missing or cannot be decoded.
        """
        audio_path = Path(audio_path)
        if not audio_path.exists():
            raise InitializationError(f"Audio file not found: {audio_path}")

        cache_path = None
        if self.use_cache:
            try:
                cache_path = self._get_cache_path(audio_path)
                if cache_path.exists():
                    envelope = self._load_cached(cache_path)
                    logger.info("Loaded envelope from cache: %s", cache_path)
                    return envelope
            except Exception as e:
                logger.warning("Failed to load cache: %s. Re-analyzing.", e)

        y, sr = self.load_audio(audio_path)
        envelope = compute_envelope(y, sr, fps=self.cfg.fps, n_bins=self.cfg.n_bins)
        logger.info(
            "Analyzed %s: %.2fs, %d frames @ %dfps",
            audio_path.name, envelope.duration, envelope.n_frames, envelope.fps,
        )

        if cache_path is not None:
            try:
                self._save_cached(cache_path, envelope)
            except Exception as e:
                logger.warning("Failed to save cache: %s", e)

        return envelope
