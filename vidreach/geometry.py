"""
Overlay placement for the circular talking-head video.

Positions are expressed in ffmpeg's overlay expression language, where
W/H are the main (canvas) dimensions and w/h the overlay dimensions.
"""
from typing import Tuple

DEFAULT_MARGIN = 50

TOP_LEFT = 'top-left'
TOP_RIGHT = 'top-right'
BOTTOM_LEFT = 'bottom-left'
BOTTOM_RIGHT = 'bottom-right'

ANCHORS = (TOP_LEFT, TOP_RIGHT, BOTTOM_LEFT, BOTTOM_RIGHT)


class OverlayPosition:
    """x/y placement expressions for the overlay filter"""

    def __init__(self, x_expr: str, y_expr: str):
        self.x_expr = x_expr
        self.y_expr = y_expr

    def to_filter_args(self) -> str:
        return f"{self.x_expr}:{self.y_expr}"

    def to_pixels(self, canvas_width: int, canvas_height: int,
                  overlay_width: int, overlay_height: int) -> Tuple[int, int]:
        """Evaluate the expressions for concrete canvas and overlay sizes."""
        names = {'W': canvas_width, 'H': canvas_height, 'w': overlay_width, 'h': overlay_height}
        return _evaluate(self.x_expr, names), _evaluate(self.y_expr, names)

    def __eq__(self, other):
        if not isinstance(other, OverlayPosition):
            return NotImplemented
        return (self.x_expr, self.y_expr) == (other.x_expr, other.y_expr)

    def __repr__(self):
        return f"OverlayPosition(x={self.x_expr!r}, y={self.y_expr!r})"


def _evaluate(expr: str, names: dict) -> int:
    # Only the "A-B-C" subtraction form produced by resolve_position is supported
    total = None
    for term in expr.split('-'):
        term = term.strip()
        value = names[term] if term in names else int(term)
        total = value if total is None else total - value
    return total


def resolve_position(anchor: str, margin: int = DEFAULT_MARGIN) -> OverlayPosition:
    """
    Resolve a named corner into overlay expressions.

    Unknown anchors fall back to bottom-right.
    """
    far_x = f"W-w-{margin}"
    far_y = f"H-h-{margin}"
    near = str(margin)

    if anchor == TOP_LEFT:
        return OverlayPosition(near, near)
    if anchor == TOP_RIGHT:
        return OverlayPosition(far_x, near)
    if anchor == BOTTOM_LEFT:
        return OverlayPosition(near, far_y)
    return OverlayPosition(far_x, far_y)


def calculate_position(anchor: str, size: int, canvas_width: int = 1920,
                       canvas_height: int = 1080, margin: int = DEFAULT_MARGIN) -> Tuple[int, int]:
    """Pixel coordinates of the overlay's top-left corner on the canvas"""
    return resolve_position(anchor, margin).to_pixels(canvas_width, canvas_height, size, size)
