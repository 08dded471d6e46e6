"""LogoCompositor: overlay a user logo, or the flag emblem, on the base image.

Compositing is an ordered list of mutually exclusive steps. The first step
whose condition holds loads its asset (off the event loop, bounded by a
timeout) and draws it; a failed load skips the step and the base image is
returned untouched. At most one asset is ever drawn per render.
"""

import asyncio
import io
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, ImageChops, ImageDraw, UnidentifiedImageError

from qrstyle import EMBLEM_FRACTION, MAX_LOGO_SCALE
from qrstyle.errors import AssetLoadFailure
from qrstyle.logging import audit, get_logger, trace
from qrstyle.style import TRANSPARENT, LogoConfig, parse_color

log = get_logger("compositor")

DEFAULT_EMBLEM_PATH = Path("image.png")
DEFAULT_ASSET_TIMEOUT = 10.0  # seconds per load
FRAME_RADIUS = 0.2  # corner radius of the logo backing, relative to the logo slot


@dataclass(frozen=True)
class CompositeRequest:
    """Inputs shared by every compositing step."""

    logo: LogoConfig
    preset_id: str
    effective_background: tuple[int, int, int, int]
    emblem_source: Path | None


@dataclass(frozen=True)
class CompositeStep:
    name: str
    applies: Callable[[CompositeRequest], bool]
    load: Callable[[CompositeRequest], Awaitable[Image.Image]]
    draw: Callable[[Image.Image, Image.Image, CompositeRequest], Image.Image]


# ---------------------------------------------------------------------------
# Asset loading
# ---------------------------------------------------------------------------

def decode_image(data: bytes, asset: str = "logo") -> Image.Image:
    """Decode raster bytes in any Pillow-supported format to RGBA."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return img.convert("RGBA")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise AssetLoadFailure(asset, str(exc)) from exc


def _read_emblem(path: Path) -> Image.Image:
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise AssetLoadFailure("emblem", f"cannot read {path}: {exc}") from exc
    return decode_image(data, asset="emblem")


async def _load_emblem(request: CompositeRequest) -> Image.Image:
    if request.emblem_source is None:
        raise AssetLoadFailure("emblem", "no emblem location configured")
    return await asyncio.to_thread(_read_emblem, Path(request.emblem_source))


async def _load_logo(request: CompositeRequest) -> Image.Image:
    return await asyncio.to_thread(decode_image, request.logo.image_source, "logo")


# ---------------------------------------------------------------------------
# Drawing
# ---------------------------------------------------------------------------

def fit_preserving_aspect(width: int, height: int, slot: float) -> tuple[float, float]:
    """Fit the longer side to *slot* and shrink the shorter side proportionally."""
    aspect = width / height if height else 1.0
    if aspect > 1:
        return slot, slot / aspect
    if aspect < 1:
        return slot * aspect, slot
    return slot, slot


def _draw_emblem(base: Image.Image, emblem: Image.Image, request: CompositeRequest) -> Image.Image:
    width, height = base.size
    emblem_px = max(1, round(min(width, height) * EMBLEM_FRACTION))
    x = round((width - emblem_px) / 2)
    y = round((height - emblem_px) / 2)

    result = base.copy()
    result.alpha_composite(emblem.resize((emblem_px, emblem_px), Image.LANCZOS), dest=(x, y))
    audit("emblem.composited", logger=log, emblem_px=emblem_px, origin=f"{x},{y}")
    return result


def _draw_logo(base: Image.Image, logo: Image.Image, request: CompositeRequest) -> Image.Image:
    config = request.logo
    width, height = base.size
    scale = min(config.scale_percent, MAX_LOGO_SCALE)
    slot = min(width, height) * scale / 100
    if slot < 1:
        log.warning("Logo slot is empty at scale %s%%; skipping logo", scale)
        return base

    x = (width - slot) / 2
    y = (height - slot) / 2
    result = base.copy()

    clip = None
    if config.framed:
        clip = Image.new("L", base.size, 0)
        ImageDraw.Draw(clip).rounded_rectangle(
            [round(x), round(y), round(x + slot) - 1, round(y + slot) - 1],
            radius=max(1, round(slot * FRAME_RADIUS)), fill=255,
        )
        result.paste(request.effective_background, (0, 0), clip)

    draw_w, draw_h = fit_preserving_aspect(logo.width, logo.height, slot)
    fitted = logo.resize((max(1, round(draw_w)), max(1, round(draw_h))), Image.LANCZOS)

    opacity = min(max(config.opacity, 0.0), 1.0)
    if opacity < 1.0:
        fitted.putalpha(fitted.getchannel("A").point(lambda a: round(a * opacity)))

    layer = Image.new("RGBA", base.size, TRANSPARENT)
    layer.paste(fitted, (round(x + (slot - draw_w) / 2), round(y + (slot - draw_h) / 2)))
    if clip is not None:
        layer.putalpha(ImageChops.multiply(layer.getchannel("A"), clip))

    audit("logo.composited", logger=log,
          requested_scale=config.scale_percent, scale=scale, slot_px=round(slot, 1),
          logo_px=f"{fitted.width}x{fitted.height}", framed=config.framed, opacity=opacity)
    return Image.alpha_composite(result, layer)


# ---------------------------------------------------------------------------
# Step list
# ---------------------------------------------------------------------------

STEPS = (
    CompositeStep(
        name="emblem",
        applies=lambda req: req.preset_id == "flag" and not req.logo.has_image,
        load=_load_emblem,
        draw=_draw_emblem,
    ),
    CompositeStep(
        name="logo",
        applies=lambda req: req.logo.has_image,
        load=_load_logo,
        draw=_draw_logo,
    ),
)


def select_step(request: CompositeRequest) -> CompositeStep | None:
    """First step whose condition holds; later steps never run."""
    return next((step for step in STEPS if step.applies(request)), None)


@trace
async def compose(
    base: Image.Image,
    logo: LogoConfig,
    preset_id: str,
    effective_background: tuple[int, ...] | str,
    *,
    emblem_source: str | Path | None = DEFAULT_EMBLEM_PATH,
    timeout: float = DEFAULT_ASSET_TIMEOUT,
) -> Image.Image:
    """Overlay the logo or flag emblem on the base image.

    Args:
        base: Rasterized QR image (converted to RGBA if needed).
        logo: Logo settings; the image bytes may be absent.
        preset_id: Active preset; "flag" enables the emblem fallback.
        effective_background: Fill for the logo frame.
        emblem_source: File holding the flag emblem.
        timeout: Seconds allowed for loading and decoding the asset.

    Returns:
        The composited image, or the base image when no step applies or the
        asset failed to load.
    """
    if isinstance(effective_background, str):
        effective_background = parse_color(effective_background)
    request = CompositeRequest(
        logo=logo,
        preset_id=preset_id,
        effective_background=tuple(effective_background),
        emblem_source=Path(emblem_source) if emblem_source is not None else None,
    )
    if base.mode != "RGBA":
        base = base.convert("RGBA")

    step = select_step(request)
    if step is None:
        return base

    try:
        asset = await asyncio.wait_for(step.load(request), timeout)
    except asyncio.TimeoutError:
        log.error("Timed out after %.1fs loading %s; skipping", timeout, step.name)
        audit("asset.load_failed", logger=log, step=step.name, reason="timeout")
        return base
    except AssetLoadFailure as exc:
        log.error("Failed to load %s: %s", step.name, exc.reason)
        audit("asset.load_failed", logger=log, step=step.name, reason=exc.reason)
        return base

    return step.draw(base, asset, request)
