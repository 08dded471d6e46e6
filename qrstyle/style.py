"""StyleResolver: presets, render style and logo configuration values.

A preset is applied atomically: ``apply_preset`` returns a brand-new
``RenderStyle`` rather than merging into an existing one. Later field edits go
through ``RenderStyle.with_changes`` and never re-run preset logic, so
``preset_id`` keeps naming the preset the style started from.
"""

import dataclasses
from dataclasses import dataclass
from enum import Enum

from PIL import ImageColor

from qrstyle import FLAG_GREEN, FLAG_RED, FLAG_WHITE
from qrstyle.errors import UnknownPreset
from qrstyle.logging import audit, get_logger, trace

log = get_logger("style")

MODULE_SHAPES = ("square", "rounded", "dots", "pill", "diamond")
EYE_SHAPES = ("square", "rounded", "circle", "diamond")
GRADIENT_MODES = ("solid", "linear", "radial")
PRESETS = ("classic", "soft", "contrast", "flag")


class Theme(Enum):
    LIGHT = "light"
    DARK = "dark"


# Theme defaults used when a color field is unset
_DEFAULT_FG = {Theme.LIGHT: "#000000", Theme.DARK: "#ffffff"}
_DEFAULT_BG = {Theme.LIGHT: "#ffffff", Theme.DARK: "#020617"}
# Logo frame fill when the background itself is transparent
_FRAME_FALLBACK = {Theme.LIGHT: "#ffffff", Theme.DARK: "#020617"}

TRANSPARENT = (0, 0, 0, 0)


def parse_color(value: str) -> tuple[int, int, int, int]:
    """Parse a CSS-style color ('#rgb', '#rrggbb', '#rrggbbaa', names) to RGBA."""
    try:
        return ImageColor.getcolor(value, "RGBA")
    except (ValueError, AttributeError) as exc:
        raise ValueError(f"invalid color {value!r}") from exc


@dataclass(frozen=True)
class RenderStyle:
    """Everything the rasterizer needs to know about how modules look."""

    primary_color: str | None = "#000000"
    secondary_color: str | None = "#000000"
    background_color: str | None = "#ffffff"
    background_transparent: bool = False
    module_shape: str = "square"
    eye_shape: str = "square"
    eye_color: str | None = None
    gradient_mode: str = "solid"
    preset_id: str = "classic"

    def __post_init__(self):
        if self.module_shape not in MODULE_SHAPES:
            raise ValueError(f"module_shape must be one of {MODULE_SHAPES}, got {self.module_shape!r}")
        if self.eye_shape not in EYE_SHAPES:
            raise ValueError(f"eye_shape must be one of {EYE_SHAPES}, got {self.eye_shape!r}")
        if self.gradient_mode not in GRADIENT_MODES:
            raise ValueError(f"gradient_mode must be one of {GRADIENT_MODES}, got {self.gradient_mode!r}")
        for name in ("primary_color", "secondary_color", "background_color", "eye_color"):
            value = getattr(self, name)
            if value is not None:
                parse_color(value)

    def with_changes(self, **changes) -> "RenderStyle":
        """Return a copy with individual fields edited; preset_id is preserved."""
        if "preset_id" in changes:
            raise TypeError("preset_id can only change through apply_preset()")
        return dataclasses.replace(self, **changes)

    # -- resolved colors ---------------------------------------------------

    def resolved_primary(self, theme: Theme = Theme.LIGHT) -> tuple[int, int, int, int]:
        return parse_color(self.primary_color or _DEFAULT_FG[theme])

    def resolved_secondary(self, theme: Theme = Theme.LIGHT) -> tuple[int, int, int, int]:
        if self.secondary_color:
            return parse_color(self.secondary_color)
        return self.resolved_primary(theme)

    def resolved_background(self, theme: Theme = Theme.LIGHT) -> tuple[int, int, int, int]:
        """Background fill, or fully transparent when transparency is on."""
        if self.background_transparent:
            return TRANSPARENT
        return parse_color(self.background_color or _DEFAULT_BG[theme])


def effective_background(style: RenderStyle, theme: Theme = Theme.LIGHT) -> tuple[int, int, int, int]:
    """Fill color for the logo frame: the background, or a theme fallback when transparent."""
    if style.background_transparent:
        return parse_color(_FRAME_FALLBACK[theme])
    return style.resolved_background(theme)


@dataclass(frozen=True)
class LogoConfig:
    """User logo settings; scale_percent is stored as requested and clamped at draw time."""

    image_source: bytes | None = None
    scale_percent: float = 20
    framed: bool = True
    opacity: float = 1.0

    @property
    def has_image(self) -> bool:
        return bool(self.image_source)

    def with_changes(self, **changes) -> "LogoConfig":
        return dataclasses.replace(self, **changes)


# ---------------------------------------------------------------------------
# Presets
# ---------------------------------------------------------------------------

def _preset_fields(preset_id: str, theme: Theme) -> dict:
    if preset_id == "classic":
        return dict(
            primary_color="#000000", secondary_color="#000000", background_color="#ffffff",
            module_shape="square", eye_shape="square", eye_color=None, gradient_mode="solid",
        )
    if preset_id == "soft":
        fg = "#e5e7eb" if theme is Theme.DARK else "#1e293b"
        bg = "#020617" if theme is Theme.DARK else "#f4f4f5"
        return dict(
            primary_color=fg, secondary_color=fg, background_color=bg,
            module_shape="rounded", eye_shape="rounded", eye_color=None, gradient_mode="solid",
        )
    if preset_id == "contrast":
        # Neon green on near-black with white eyes
        bg = "#020617" if theme is Theme.DARK else "#0f172a"
        return dict(
            primary_color="#22c55e", secondary_color="#16a34a", background_color=bg,
            module_shape="dots", eye_shape="square", eye_color="#ffffff", gradient_mode="linear",
        )
    if preset_id == "flag":
        # Eyes stay unset so the rasterizer colors them red (top) and green (bottom)
        return dict(
            primary_color=FLAG_RED, secondary_color=FLAG_GREEN, background_color=FLAG_WHITE,
            module_shape="square", eye_shape="square", eye_color=None, gradient_mode="linear",
        )
    raise UnknownPreset(f"unknown preset {preset_id!r}; expected one of {PRESETS}")


@trace
def apply_preset(preset_id: str, theme: Theme = Theme.LIGHT) -> RenderStyle:
    """Build the full style bundle for a preset.

    Args:
        preset_id: One of classic, soft, contrast, flag.
        theme: Light/dark signal; only the soft and contrast presets read it.

    Returns:
        A new RenderStyle with an opaque background.
    """
    style = RenderStyle(
        background_transparent=False,
        preset_id=preset_id,
        **_preset_fields(preset_id, theme),
    )
    audit("style.preset_applied", logger=log, preset=preset_id, theme=theme.value,
          shape=style.module_shape, gradient=style.gradient_mode)
    return style
