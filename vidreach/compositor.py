"""
FFmpeg-based circular overlay compositing.

The talking-head video is scaled to a square working frame several times
larger than its final display size, masked to a circle there, and only then
downsampled with Lanczos. The downsample is what anti-aliases the circle edge;
masking directly at display size leaves visibly stair-stepped edges.
"""
import logging
import math
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional

import imageio_ffmpeg

from vidreach.background import Background, background_from_flag
from vidreach.config import Settings
from vidreach.exceptions import CompositionError, EngineUnavailableError
from vidreach.geometry import OverlayPosition
from vidreach.models import LocalAsset

logger = logging.getLogger(__name__)

# Mask radius relative to half the working frame (598px of 600 at 1200x1200)
MASK_RADIUS_RATIO = 598 / 600

STDERR_TAIL = 2000


def find_ffmpeg() -> str:
    """Bundled imageio-ffmpeg binary first, then ffmpeg on PATH."""
    try:
        return imageio_ffmpeg.get_ffmpeg_exe()
    except RuntimeError as e:
        logger.debug(f"[ENGINE] imageio-ffmpeg binary unavailable: {e}")
    system_ffmpeg = shutil.which('ffmpeg')
    if system_ffmpeg:
        return system_ffmpeg
    raise EngineUnavailableError("FFmpeg not found (imageio-ffmpeg binary or ffmpeg on PATH)")


def engine_available() -> bool:
    """True when an ffmpeg binary exists and answers -version."""
    try:
        ffmpeg = find_ffmpeg()
        result = subprocess.run([ffmpeg, '-version'], capture_output=True, text=True, timeout=15)
    except EngineUnavailableError as e:
        logger.warning(f"[ENGINE] {e.message}")
        return False
    except (OSError, subprocess.SubprocessError) as e:
        logger.warning(f"[ENGINE] FFmpeg not runnable: {e}")
        return False
    if result.returncode != 0:
        logger.warning(f"[ENGINE] ffmpeg -version exited with {result.returncode}")
        return False
    return True


# ---------- Mask math ----------

def alpha_at(x: float, y: float, center_x: float, center_y: float, radius: float) -> int:
    """Opaque inside the circle (strictly closer than radius), transparent outside."""
    return 255 if math.hypot(x - center_x, y - center_y) < radius else 0


def working_size(size: int, multiplier: int = 4) -> int:
    """Square working resolution for an overlay of the given display diameter."""
    if size <= 0:
        raise ValueError("size must be a positive integer")
    return size * multiplier


def mask_radius(working: int) -> float:
    return (working / 2) * MASK_RADIUS_RATIO


def _num(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.4f}".rstrip('0').rstrip('.')


def mask_expression(center: float, radius: float) -> str:
    """geq alpha expression equivalent to alpha_at() for a square frame."""
    c = _num(center)
    return f"if(lt(sqrt((X-{c})*(X-{c})+(Y-{c})*(Y-{c})),{_num(radius)}),255,0)"


# ---------- Filter graph ----------

def build_filter_graph(background: Background, position: OverlayPosition, size: int,
                       duration: float, canvas_width: int = 1920, canvas_height: int = 1080,
                       multiplier: int = 4) -> str:
    """
    Assemble the complex filter: background prep, high-res overlay, circular
    mask, Lanczos downsample, positioned overlay.
    """
    working = working_size(size, multiplier)
    center = working / 2
    alpha = mask_expression(center, mask_radius(working))

    steps = [
        f"[0:v]{background.prepare_filter(canvas_width, canvas_height)}[bg]",
        (f"[1:v]scale={working}:{working}:force_original_aspect_ratio=increase,"
         f"crop={working}:{working},format=yuva420p[highres]"),
        f"[highres]geq=lum='p(X,Y)':a='{alpha}'[highres_masked]",
        f"[highres_masked]scale={size}:{size}:flags=lanczos[masked]",
        (f"[bg][masked]overlay={position.to_filter_args()}"
         f":enable='between(t,0,{_num(duration)})'[final]"),
    ]
    return ";".join(steps)


def build_command(ffmpeg: str, background: Background, overlay_path, position: OverlayPosition,
                  output_path, size: int, duration: float, settings: Settings) -> List[str]:
    filter_complex = build_filter_graph(
        background, position, size, duration,
        canvas_width=settings.canvas_width,
        canvas_height=settings.canvas_height,
        multiplier=settings.working_multiplier,
    )
    return [
        ffmpeg, '-hide_banner', '-loglevel', 'error',
        *background.input_args(settings.output_fps, duration),
        '-i', str(overlay_path),
        '-filter_complex', filter_complex,
        '-map', '[final]',
        '-map', '1:a?',  # Audio only ever comes from the talking head
        '-c:v', 'libx264',
        '-preset', 'veryfast',
        '-crf', '23',
        '-pix_fmt', 'yuv420p',
        '-c:a', 'aac',
        '-r', str(settings.output_fps),
        '-t', _num(duration),
        '-movflags', '+faststart',
        '-f', 'mp4',
        '-y', str(output_path),
    ]


class CircularMaskCompositor:
    """Runs the circular overlay composition with ffmpeg."""

    def __init__(self, settings: Optional[Settings] = None, ffmpeg_path: Optional[str] = None):
        self.settings = settings or Settings()
        self._ffmpeg = ffmpeg_path

    @property
    def ffmpeg(self) -> str:
        if self._ffmpeg is None:
            self._ffmpeg = find_ffmpeg()
        return self._ffmpeg

    def compose(self, background: Background, overlay_path, position: OverlayPosition,
                output_path, size: Optional[int] = None, duration: Optional[float] = None) -> Path:
        """
        Composite the overlay video onto the background.

        Args:
            background: Prepared-background variant (image or scrolling video)
            overlay_path: Local talking-head video (also the audio source)
            position: Resolved overlay placement
            output_path: Destination MP4
            size: Overlay diameter in pixels
            duration: Output duration cap in seconds

        Returns:
            Path to the composited MP4

        Raises:
            CompositionError: ffmpeg failed, timed out, or produced no output
        """
        size = size or self.settings.default_size
        duration = duration or self.settings.default_duration
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        cmd = build_command(self.ffmpeg, background, overlay_path, position,
                            output_path, size, duration, self.settings)
        logger.info(f"[COMPOSE] {background!r} + {overlay_path} -> {output_path} "
                    f"(size={size}, position={position.to_filter_args()}, duration={duration}s)")
        logger.debug(f"[COMPOSE] Command: {' '.join(cmd)}")

        try:
            result = subprocess.run(cmd, capture_output=True, text=True,
                                    timeout=self.settings.ffmpeg_timeout)
        except subprocess.TimeoutExpired as e:
            output_path.unlink(missing_ok=True)
            raise CompositionError(
                f"FFmpeg timed out after {self.settings.ffmpeg_timeout}s",
                stderr=_tail(e.stderr),
            ) from e
        except OSError as e:
            output_path.unlink(missing_ok=True)
            raise CompositionError(f"FFmpeg could not be started: {e}") from e

        if result.returncode != 0:
            output_path.unlink(missing_ok=True)
            stderr = _tail(result.stderr)
            logger.error(f"[COMPOSE] FFmpeg error:\n{stderr}")
            raise CompositionError(f"Video composition failed (exit {result.returncode})", stderr=stderr)

        if not output_path.exists() or output_path.stat().st_size == 0:
            output_path.unlink(missing_ok=True)
            raise CompositionError("FFmpeg reported success but produced no output",
                                   stderr=_tail(result.stderr))

        logger.info(f"[COMPOSE] Composition complete: {output_path}")
        return output_path

    def compose_assets(self, background_asset: LocalAsset, overlay_asset: LocalAsset,
                       position: OverlayPosition, output_path, background_is_video: bool,
                       size: Optional[int] = None, duration: Optional[float] = None) -> Path:
        """Compose from downloaded assets, selecting the background branch by flag."""
        background = background_from_flag(background_asset.local_path, background_is_video)
        return self.compose(background, overlay_asset.local_path, position, output_path,
                            size=size, duration=duration)


def _tail(stderr) -> str:
    if not stderr:
        return ""
    if isinstance(stderr, bytes):
        stderr = stderr.decode('utf-8', errors='replace')
    return stderr[-STDERR_TAIL:]
