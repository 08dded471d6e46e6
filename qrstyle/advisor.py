"""ScanabilityAdvisor: a quick, non-verified read on whether a style will scan."""

from dataclasses import dataclass
from enum import Enum

from qrstyle import MAX_LOGO_SCALE
from qrstyle.style import LogoConfig, RenderStyle, parse_color


class Label(Enum):
    GOOD = "Good"
    RISKY = "Risky"


REASON_GOOD = "Looks good, but always test with your phone."
REASON_RISKY = "Try higher contrast colors or a smaller logo."

RELIABLE_SHAPES = ("square", "rounded")


@dataclass(frozen=True)
class Advice:
    label: Label
    reason: str
    contrast_ratio: float | None = None  # informational only

    @property
    def risky(self) -> bool:
        return self.label is Label.RISKY


# sRGB channel weights for relative luminance (WCAG 2.0)
LUMA_WEIGHTS = (0.2126, 0.7152, 0.0722)


def relative_luminance(color: str) -> float:
    """Relative luminance of a color string; alpha is ignored."""
    total = 0.0
    for weight, channel in zip(LUMA_WEIGHTS, parse_color(color)[:3]):
        c = channel / 255.0
        linear = c / 12.92 if c <= 0.03928 else ((c + 0.055) / 1.055) ** 2.4
        total += weight * linear
    return total


def contrast_ratio(fg: str, bg: str) -> float:
    """WCAG contrast ratio between two colors, from 1.0 up to 21.0."""
    darker, lighter = sorted((relative_luminance(fg), relative_luminance(bg)))
    return (lighter + 0.05) / (darker + 0.05)


def evaluate(style: RenderStyle, logo: LogoConfig) -> Advice:
    """Label a configuration Good or Risky.

    Risky when the opaque background uses the same color as the modules, or
    when the requested logo scale is above the render-time cap. The contrast
    ratio is reported alongside but never changes the label.
    """
    same_colors = (
        not style.background_transparent
        and style.background_color is not None
        and style.primary_color is not None
        and style.background_color.lower() == style.primary_color.lower()
    )
    logo_too_big = logo.scale_percent > MAX_LOGO_SCALE

    ratio = None
    if not style.background_transparent and style.background_color and style.primary_color:
        ratio = round(contrast_ratio(style.primary_color, style.background_color), 2)

    if same_colors or logo_too_big:
        return Advice(Label.RISKY, REASON_RISKY, ratio)
    return Advice(Label.GOOD, REASON_GOOD, ratio)


def shape_hint(module_shape: str) -> str:
    """One-line note on how dependable a module shape is for scanning."""
    if module_shape in RELIABLE_SHAPES:
        return "Recommended for real use. These shapes are the most reliable for scanning."
    return "Fun style: this shape might not scan on all devices. Always test before using it."
