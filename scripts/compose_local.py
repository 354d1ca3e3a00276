"""
Compose a personalized video from the command line.

URLs go through the full pipeline (fetch, compose, publish, fallback).
Local files are composited directly into --output, which is handy when
tuning layout against a known screenshot.

    python scripts/compose_local.py talking.mp4 shot.png --output out/test.mp4
    python scripts/compose_local.py https://cdn/x.mp4 https://cdn/shot.png --project demo
"""
import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from vidreach.background import background_from_flag, detect_background_kind  # noqa: E402
from vidreach.compositor import CircularMaskCompositor  # noqa: E402
from vidreach.config import get_settings  # noqa: E402
from vidreach.exceptions import VidreachException  # noqa: E402
from vidreach.geometry import ANCHORS, resolve_position  # noqa: E402
from vidreach.models import AssetKind, CompositionRequest  # noqa: E402
from vidreach.orchestrator import compose_personalized_video  # noqa: E402


def _is_url(value: str) -> bool:
    return value.lower().startswith(("http://", "https://"))


def main():
    ap = argparse.ArgumentParser(description="Overlay a circular talking head onto a prospect background")
    ap.add_argument("base_video", help="Talking head video (URL or local path)")
    ap.add_argument("background", help="Screenshot or scrolling capture (URL or local path)")
    ap.add_argument("--position", default="bottom-right", choices=ANCHORS, help="Overlay corner")
    ap.add_argument("--size", type=int, default=300, help="Overlay diameter in pixels")
    ap.add_argument("--duration", type=float, default=30.0, help="Output duration in seconds")
    ap.add_argument("--project", default="default", help="Storage namespace for published output")
    ap.add_argument("--output", default="out/composited.mp4", help="Output path (local files only)")
    ap.add_argument("--video-background", action="store_true", help="Treat the background as video")
    args = ap.parse_args()

    if _is_url(args.base_video) and _is_url(args.background):
        request = CompositionRequest(
            base_video_url=args.base_video,
            background_url=args.background,
            position=args.position,
            size=args.size,
            duration_seconds=args.duration,
            owner_scope_id=args.project,
            background_is_video=True if args.video_background else None,
        )
        result = compose_personalized_video(request)
        if result.fallback:
            print(f"[!] Fell back to base video: {result.error}")
        else:
            print(f"[OK] Published {result.storage_key}")
        print(result.output_url)
        return 0

    base_path = Path(args.base_video)
    background_path = Path(args.background)
    for p in (base_path, background_path):
        if not p.exists():
            print(f"[X] Not found: {p}")
            return 1

    kind = detect_background_kind(str(background_path), True if args.video_background else None)
    settings = get_settings()
    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)

    print(f"[RENDER] {base_path.name} over {background_path.name} ({kind.value}, {args.position}, {args.size}px)")
    try:
        CircularMaskCompositor(settings).compose(
            background_from_flag(background_path, kind == AssetKind.VIDEO),
            base_path,
            resolve_position(args.position, settings.overlay_margin),
            output,
            size=args.size,
            duration=args.duration,
        )
    except VidreachException as e:
        print(f"[X] {e.message}")
        stderr = getattr(e, 'stderr', '')
        if stderr:
            print(stderr)
        return 1

    print(str(output))
    return 0


if __name__ == "__main__":
    sys.exit(main())
