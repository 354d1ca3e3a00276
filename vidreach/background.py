"""
Background variants for composition.

A website capture arrives either as a static (often full-page) screenshot or
as a scrolling-animation video. The two are prepared differently: static
images are top-anchored so the page header stays in frame, videos are
center-cropped.
"""
from pathlib import Path
from typing import List, Optional, Tuple
from urllib.parse import urlparse

from vidreach.models import AssetKind

VIDEO_EXTENSIONS = {'.mp4', '.webm', '.mov', '.m4v', '.mkv'}
IMAGE_EXTENSIONS = {'.png', '.jpg', '.jpeg', '.webp', '.gif'}


class Background:
    """Base class for a prepared-background input."""

    kind: AssetKind

    def __init__(self, path):
        self.path = Path(path)

    def input_args(self, fps: int, duration: float) -> List[str]:
        raise NotImplementedError

    def crop_offset(self, width: int, height: int) -> Tuple[str, str]:
        raise NotImplementedError

    def prepare_filter(self, width: int, height: int) -> str:
        raise NotImplementedError

    def __repr__(self):
        return f"{self.__class__.__name__}({str(self.path)!r})"


class StaticImageBackground(Background):
    """Screenshot: scale to canvas width, crop the top of the page."""

    kind = AssetKind.IMAGE

    def input_args(self, fps: int, duration: float) -> List[str]:
        # Loop the still image so the background lasts the whole output
        return ['-loop', '1', '-framerate', str(fps), '-t', _fmt(duration), '-i', str(self.path)]

    def crop_offset(self, width: int, height: int) -> Tuple[str, str]:
        return '0', '0'

    def prepare_filter(self, width: int, height: int) -> str:
        x, y = self.crop_offset(width, height)
        return (f"scale={width}:-1:force_original_aspect_ratio=increase,"
                f"crop={width}:{height}:{x}:{y}")


class ScrollingVideoBackground(Background):
    """Scrolling capture: cover the canvas, crop around the center."""

    kind = AssetKind.VIDEO

    def input_args(self, fps: int, duration: float) -> List[str]:
        return ['-i', str(self.path)]

    def crop_offset(self, width: int, height: int) -> Tuple[str, str]:
        return f"(in_w-{width})/2", f"(in_h-{height})/2"

    def prepare_filter(self, width: int, height: int) -> str:
        x, y = self.crop_offset(width, height)
        return (f"scale={width}:{height}:force_original_aspect_ratio=increase,"
                f"crop={width}:{height}:{x}:{y}")


def _fmt(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def detect_background_kind(url: str, explicit: Optional[bool] = None) -> AssetKind:
    """
    Decide whether a capture URL is a video or an image.

    An explicit flag wins. Otherwise animation endpoints (".../animate") and
    video file extensions are videos; everything else is an image.
    """
    if explicit is not None:
        return AssetKind.VIDEO if explicit else AssetKind.IMAGE

    parsed = urlparse(url)
    path = parsed.path.lower()
    if '/animate' in path:
        return AssetKind.VIDEO
    if Path(path).suffix in VIDEO_EXTENSIONS:
        return AssetKind.VIDEO
    return AssetKind.IMAGE


def background_suffix(url: str, kind: AssetKind) -> str:
    """File extension for the downloaded background"""
    suffix = Path(urlparse(url).path.lower()).suffix
    if kind == AssetKind.VIDEO:
        return suffix if suffix in VIDEO_EXTENSIONS else '.mp4'
    return suffix if suffix in IMAGE_EXTENSIONS else '.png'


def background_from_flag(path, background_is_video: bool) -> Background:
    if background_is_video:
        return ScrollingVideoBackground(path)
    return StaticImageBackground(path)
