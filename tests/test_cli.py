"""Tests for the command-line interface."""

import pytest
from PIL import Image

from treescope.cli import build_parser, main


class TestParser:
    def test_defaults(self, tmp_path):
        args = build_parser().parse_args([str(tmp_path / "song.wav")])
        assert args.profile == "medium"
        assert args.duration == 15.5
        assert args.frame is None
        assert args.width is None
        assert not args.no_cache

    def test_rejects_unknown_profile(self, tmp_path):
        with pytest.raises(SystemExit):
            build_parser().parse_args([str(tmp_path / "song.wav"), "-p", "ultra"])


class TestMain:
    def test_missing_audio(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main([str(tmp_path / "nope.wav")])
        assert exc.value.code == 1

    def test_negative_frame(self, temp_audio_file):
        with pytest.raises(SystemExit) as exc:
            main([str(temp_audio_file), "--frame", "-3"])
        assert exc.value.code == 2

    def test_single_frame_preview(self, temp_audio_file, tmp_path):
        output = tmp_path / "preview.png"
        with pytest.raises(SystemExit) as exc:
            main([
                str(temp_audio_file),
                "--frame", "30",
                "--width", "64",
                "--height", "36",
                "--pixel-ratio", "1",
                "--star-seed", "1",
                "--no-cache",
                "-o", str(output),
            ])

        assert exc.value.code == 0
        with Image.open(output) as image:
            assert image.size == (64, 36)

    def test_undecodable_audio(self, tmp_path):
        bogus = tmp_path / "bogus.wav"
        bogus.write_bytes(b"not audio at all")
        with pytest.raises(SystemExit) as exc:
            main([str(bogus), "--frame", "0", "--no-cache", "--width", "64", "--height", "36"])
        assert exc.value.code == 1
