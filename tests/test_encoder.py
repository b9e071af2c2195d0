"""Tests for the ffmpeg encoder."""

import numpy as np
import pytest

from treescope.render.encoder import build_command, encode_video, ffmpeg_available

needs_ffmpeg = pytest.mark.skipif(not ffmpeg_available(), reason="ffmpeg not installed")


class TestBuildCommand:
    def test_video_with_audio(self, tmp_path):
        cmd = build_command(tmp_path / "out.mp4", 1920, 1080, 60, "high", tmp_path / "song.wav", 15.5)

        assert cmd[0] == "ffmpeg"
        assert cmd[cmd.index("-s") + 1] == "1920x1080"
        assert cmd[cmd.index("-r") + 1] == "60"
        assert str(tmp_path / "song.wav") in cmd
        assert "-shortest" in cmd
        assert cmd[cmd.index("-t") + 1] == "15.5"
        assert cmd[-1] == str(tmp_path / "out.mp4")

    def test_silent_video(self, tmp_path):
        cmd = build_command(tmp_path / "out.mp4", 64, 36, 30, "fast")

        assert cmd.count("-i") == 1
        assert "-c:a" not in cmd
        assert "-t" not in cmd
        assert cmd[cmd.index("-preset") + 1] == "ultrafast"

    def test_unknown_quality_falls_back_to_high(self, tmp_path):
        cmd = build_command(tmp_path / "out.mp4", 64, 36, 30, "ludicrous")
        assert cmd[cmd.index("-crf") + 1] == "18"


class TestEncodeVideo:
    def test_missing_ffmpeg(self, tmp_path, monkeypatch):
        monkeypatch.setattr("treescope.render.encoder.ffmpeg_available", lambda: False)
        with pytest.raises(RuntimeError, match="ffmpeg"):
            encode_video(iter([]), tmp_path / "out.mp4", width=64, height=36)

    @needs_ffmpeg
    def test_encodes_silent_clip(self, tmp_path):
        frames = (np.full((36, 64, 3), i * 8, dtype=np.uint8) for i in range(10))
        progress = []

        output = encode_video(
            frames,
            tmp_path / "clip" / "out.mp4",
            width=64,
            height=36,
            fps=30,
            quality="fast",
            total_frames=10,
            progress_callback=lambda c, t: progress.append(c),
        )

        assert output.exists()
        assert output.stat().st_size > 0
        assert progress == list(range(1, 11))

    @needs_ffmpeg
    def test_wrong_frame_shape(self, tmp_path):
        frames = iter([np.zeros((10, 10, 3), dtype=np.uint8)])
        with pytest.raises(ValueError, match="shape"):
            encode_video(frames, tmp_path / "out.mp4", width=64, height=36, quality="fast")
