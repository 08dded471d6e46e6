"""Rasterizer: paint a BitMatrix onto an RGBA canvas with shapes and fills.

Data modules share one fill layer (solid, linear or radial) spanning the whole
canvas, so a gradient reads across the code rather than inside each cell. Eye
modules are always painted in a solid color. The flag preset overrides both
the data gradient and the eye colors with fixed stripes and corner colors.
"""

import numpy as np
from PIL import Image, ImageDraw

from qrstyle import CANVAS_SIZE, FLAG_GREEN, FLAG_RED, FLAG_WHITE, MARGIN_CELLS
from qrstyle.encoder import BitMatrix, eye_region
from qrstyle.errors import SurfaceUnavailable
from qrstyle.logging import audit, get_logger, trace
from qrstyle.style import TRANSPARENT, RenderStyle, Theme, parse_color

log = get_logger("rasterizer")

# Flag stripe boundaries as fractions of canvas height
FLAG_WHITE_START = 0.36
FLAG_GREEN_START = 0.64

# Shape geometry, relative to the cell size
ROUNDED_RADIUS = 0.4
PILL_RADIUS = 0.6
DIAMOND_SCALE = 0.9
CIRCLE_SCALE = 0.9
DOT_SCALE = 0.8


# ---------------------------------------------------------------------------
# Drawing surface
# ---------------------------------------------------------------------------

class RenderSurface:
    """A single reusable RGBA canvas; every render clears it completely."""

    def __init__(self, size: int = CANVAS_SIZE):
        self.size = size
        self._image: Image.Image | None = None

    def acquire(self, size: int | None = None) -> Image.Image:
        """Return the backing image, (re)allocating it at *size* when needed.

        Raises:
            SurfaceUnavailable: the size is unusable or allocation failed.
        """
        if size is not None:
            self.size = size
        if not isinstance(self.size, int) or self.size <= 0:
            raise SurfaceUnavailable(f"invalid canvas size {self.size!r}")
        if self._image is None or self._image.size != (self.size, self.size):
            try:
                self._image = Image.new("RGBA", (self.size, self.size), TRANSPARENT)
            except (ValueError, MemoryError) as exc:
                self._image = None
                raise SurfaceUnavailable(str(exc)) from exc
        return self._image

    def clear(self) -> None:
        if self._image is not None:
            self._image.paste(TRANSPARENT, (0, 0, *self._image.size))


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

def cell_size(matrix_size: int, canvas_size: int) -> float:
    """Pixel width of one module, with a two-module quiet zone on each side."""
    return canvas_size / (matrix_size + MARGIN_CELLS * 2)


def draw_cell(
    draw: ImageDraw.ImageDraw,
    x: float,
    y: float,
    cell: float,
    shape: str,
    fill,
) -> None:
    """Draw one module whose top-left corner is at (x, y)."""
    x0, y0 = round(x), round(y)
    x1, y1 = round(x + cell) - 1, round(y + cell) - 1
    cx = x + cell / 2
    cy = y + cell / 2

    if shape == "square":
        draw.rectangle([x0, y0, x1, y1], fill=fill)
    elif shape in ("rounded", "pill"):
        # A pill radius exceeds half the cell; Pillow then draws the full-cell ellipse
        factor = PILL_RADIUS if shape == "pill" else ROUNDED_RADIUS
        draw.rounded_rectangle([x0, y0, x1, y1], radius=max(1, round(cell * factor)), fill=fill)
    elif shape == "diamond":
        r = (cell / 2) * DIAMOND_SCALE
        draw.polygon([(cx, cy - r), (cx + r, cy), (cx, cy + r), (cx - r, cy)], fill=fill)
    elif shape in ("circle", "dots"):
        r = (cell / 2) * (CIRCLE_SCALE if shape == "circle" else DOT_SCALE)
        draw.ellipse([cx - r, cy - r, cx + r, cy + r], fill=fill)
    else:
        raise ValueError(f"unknown module shape {shape!r}")


# ---------------------------------------------------------------------------
# Fills
# ---------------------------------------------------------------------------

def _flag_stripes(size: int) -> np.ndarray:
    t = (np.arange(size) + 0.5) / size
    rows = np.empty((size, 4), dtype=np.uint8)
    rows[t < FLAG_WHITE_START] = parse_color(FLAG_RED)
    rows[(t >= FLAG_WHITE_START) & (t < FLAG_GREEN_START)] = parse_color(FLAG_WHITE)
    rows[t >= FLAG_GREEN_START] = parse_color(FLAG_GREEN)
    return rows


def _lerp(start: tuple[int, ...], end: tuple[int, ...], t: np.ndarray) -> np.ndarray:
    a = np.array(start, dtype=np.float64)
    b = np.array(end, dtype=np.float64)
    return np.rint(a + (b - a) * t[..., None]).astype(np.uint8)


def data_fill(style: RenderStyle, size: int, theme: Theme = Theme.LIGHT) -> Image.Image:
    """Build the canvas-sized RGBA layer that data modules are cut from."""
    primary = style.resolved_primary(theme)
    if style.gradient_mode == "solid":
        return Image.new("RGBA", (size, size), primary)

    if style.gradient_mode == "linear":
        if style.preset_id == "flag":
            # Stripes replace the gradient whatever the color fields say
            rows = _flag_stripes(size)
        else:
            t = (np.arange(size) + 0.5) / size
            rows = _lerp(primary, style.resolved_secondary(theme), t)
        arr = np.ascontiguousarray(np.broadcast_to(rows[:, None, :], (size, size, 4)))
        return Image.fromarray(arr)

    # radial: primary at the center, secondary at half the canvas size
    half = size / 2
    yy, xx = np.mgrid[0:size, 0:size]
    dist = np.hypot(xx + 0.5 - half, yy + 0.5 - half) / half
    arr = _lerp(primary, style.resolved_secondary(theme), np.clip(dist, 0.0, 1.0))
    return Image.fromarray(arr)


def eye_fill(style: RenderStyle, eye: str, theme: Theme = Theme.LIGHT) -> tuple[int, int, int, int]:
    """Solid color for a module inside one of the three eyes."""
    if style.preset_id == "flag" and style.eye_color is None:
        return parse_color(FLAG_GREEN if eye == "bottom_left" else FLAG_RED)
    if style.eye_color:
        return parse_color(style.eye_color)
    return style.resolved_primary(theme)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

@trace
def render(
    matrix: BitMatrix,
    style: RenderStyle,
    canvas_size: int = CANVAS_SIZE,
    *,
    theme: Theme = Theme.LIGHT,
    surface: RenderSurface | None = None,
) -> Image.Image | None:
    """Paint the base QR image.

    Args:
        matrix: Module matrix from the encoder.
        style: Full style snapshot for this render.
        canvas_size: Output width and height in pixels.
        theme: Supplies default colors for unset color fields.
        surface: Canvas to reuse; a private one is created when omitted.

    Returns:
        A snapshot of the painted canvas, or None when no surface could be
        acquired.
    """
    surface = surface or RenderSurface(canvas_size)
    try:
        image = surface.acquire(canvas_size)
    except SurfaceUnavailable as exc:
        log.error("Drawing surface unavailable: %s", exc)
        audit("render.surface_unavailable", logger=log, canvas_size=canvas_size, error=str(exc))
        return None

    surface.clear()
    if not style.background_transparent:
        image.paste(style.resolved_background(theme), (0, 0, canvas_size, canvas_size))

    n = matrix.size
    cell = cell_size(n, canvas_size)
    draw = ImageDraw.Draw(image)
    data_mask = Image.new("L", (canvas_size, canvas_size), 0)
    mask_draw = ImageDraw.Draw(data_mask)

    eye_modules = 0
    data_modules = 0
    for r, c in matrix.dark_cells():
        x = (c + MARGIN_CELLS) * cell
        y = (r + MARGIN_CELLS) * cell
        eye = eye_region(n, r, c)
        if eye is not None:
            draw_cell(draw, x, y, cell, style.eye_shape, eye_fill(style, eye, theme))
            eye_modules += 1
        else:
            draw_cell(mask_draw, x, y, cell, style.module_shape, 255)
            data_modules += 1

    image.paste(data_fill(style, canvas_size, theme), (0, 0), data_mask)

    audit("render.painted", logger=log,
          preset=style.preset_id, size=f"{n}x{n}", canvas=canvas_size,
          cell_px=round(cell, 2), shape=style.module_shape, eye_shape=style.eye_shape,
          gradient=style.gradient_mode, transparent=style.background_transparent,
          eye_modules=eye_modules, data_modules=data_modules)
    return image.copy()
