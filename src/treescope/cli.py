"""
CLI entry point for the particle tree renderer.

Usage:
    treescope <audio_file> [options]
    python -m treescope <audio_file> [options]
"""

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path

from PIL import Image

from treescope.config import PROFILES, AnalysisConfig, FrameClock, RenderConfig, SceneConfig
from treescope.core.envelope import EnvelopeAnalyzer
from treescope.errors import InitializationError
from treescope.logging_config import setup_logging
from treescope.render.encoder import encode_video
from treescope.scene.lifecycle import TreeScene


def _progress_bar(current: int, total: int, width: int = 35):
    """Print a progress bar to stdout."""
    pct = current / max(total, 1) * 100
    filled = int(width * current / max(total, 1))
    bar = "#" * filled + "-" * (width - filled)
    if sys.stdout.isatty():
        sys.stdout.write(f"\r[{bar}] {pct:5.1f}%  frame {current}/{total}")
        sys.stdout.flush()
        if current >= total:
            sys.stdout.write("\n")
    else:
        if current % max(1, total // 20) == 0 or current >= total:
            print(f"{pct:5.1f}%  frame {current}/{total}", flush=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="treescope",
        description="Audio-reactive 3D particle tree video renderer",
    )

    parser.add_argument(
        "audio",
        type=Path,
        help="Input audio file (wav, mp3, flac)",
    )
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output path (default: <audio>_tree.mp4, or <audio>_frame<N>.png with --frame)",
    )

    # Resolution & Profile
    parser.add_argument(
        "-p", "--profile", type=str, default="medium",
        choices=sorted(PROFILES),
        help="Target profile (low: 720p 30fps, medium: 1080p 60fps, high: 1080p 60fps supersampled)",
    )
    parser.add_argument("--width", type=int, default=None, help="Video width (overrides profile)")
    parser.add_argument("--height", type=int, default=None, help="Video height (overrides profile)")
    parser.add_argument("-f", "--fps", type=int, default=None, help="Frames per second (overrides profile)")
    parser.add_argument(
        "--pixel-ratio", type=float, default=None,
        help="Supersampling factor (overrides profile)",
    )
    parser.add_argument(
        "--duration", type=float, default=15.5,
        help="Length of the flythrough in seconds (default: 15.5)",
    )

    # Seeking
    parser.add_argument(
        "--frame", type=int, default=None,
        help="Render a single frame to PNG instead of a video",
    )
    parser.add_argument(
        "--star-seed", type=int, default=None,
        help="Seed the starfield so every render is identical",
    )

    # Caching
    parser.add_argument("--no-cache", action="store_true", help="Force re-analysis of audio")
    parser.add_argument("--clear-cache", action="store_true", help="Clear the analysis cache before running")

    # Quality
    parser.add_argument(
        "-q", "--quality", type=str, default=None,
        choices=["high", "medium", "fast"],
        help="Encoding quality (defaults to profile quality)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    return parser


async def _run(args: argparse.Namespace) -> int:
    p_cfg = PROFILES[args.profile]

    width = args.width or p_cfg["width"]
    height = args.height or p_cfg["height"]
    fps = args.fps or p_cfg["fps"]
    quality = args.quality or p_cfg["quality"]
    pixel_ratio = args.pixel_ratio or p_cfg["pixel_ratio"]

    clock = FrameClock(
        fps=fps,
        duration_seconds=args.duration,
        width=width,
        height=height,
        pixel_ratio=pixel_ratio,
    )
    analyzer = EnvelopeAnalyzer(AnalysisConfig(fps=fps), use_cache=not args.no_cache)
    if args.clear_cache:
        print("Clearing analysis cache...")
        analyzer.clear_cache()

    scene = TreeScene(
        args.audio,
        config=SceneConfig(star_seed=args.star_seed),
        clock=clock,
        render_config=RenderConfig(width=width, height=height, pixel_ratio=pixel_ratio),
        analyzer=analyzer,
    )

    try:
        # Step 1: Audio analysis
        print(f"Analyzing audio: {args.audio}")
        t0 = time.time()
        try:
            await scene.initialize()
        except InitializationError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

        envelope = scene.state.envelope
        print(f"  Duration: {envelope.duration:.1f}s")
        print(f"  Envelope frames: {envelope.n_frames}")
        print(f"  Analysis took {time.time() - t0:.1f}s")

        # Single frame preview
        if args.frame is not None:
            output = args.output or args.audio.with_name(f"{args.audio.stem}_frame{args.frame}.png")
            Image.fromarray(scene.render(args.frame)).save(output)
            print(f"  Output: {output}")
            return 0

        # Step 2: Render + encode
        total_frames = clock.total_frames
        output = args.output or args.audio.with_name(f"{args.audio.stem}_tree.mp4")
        print(f"\nRendering {total_frames} frames at {width}x{height} @ {fps}fps")
        print(f"  Profile: {args.profile}, Quality: {quality}, Pixel ratio: {pixel_ratio}")

        t1 = time.time()
        frame_gen = scene.render_frames(
            range(total_frames),
            progress_callback=_progress_bar,
            total=total_frames,
        )
        encode_video(
            frame_iterator=frame_gen,
            output_path=output,
            audio_path=args.audio,
            width=width,
            height=height,
            fps=fps,
            quality=quality,
            duration=clock.duration_seconds,
            total_frames=total_frames,
        )

        elapsed = time.time() - t1
        file_size_mb = output.stat().st_size / 1024 / 1024

        print(f"\nDone! {file_size_mb:.1f} MB")
        print(f"  Render+encode took {elapsed:.1f}s ({total_frames / max(elapsed, 0.01):.1f} fps)")
        print(f"  Output: {output}")
        return 0
    finally:
        scene.dispose()


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    if not args.audio.exists():
        print(f"Error: Audio file not found: {args.audio}", file=sys.stderr)
        sys.exit(1)
    if args.frame is not None and args.frame < 0:
        parser.error("--frame must be >= 0")

    sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
