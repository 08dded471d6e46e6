"""Studio: the generate pipeline behind the rate gate.

``QRStudio.generate`` trims the text, checks the cooldown, encodes at ECC
level H, rasterizes onto the studio's single surface, composites the logo or
emblem and returns a PNG. Only successful renders move the cooldown clock, and
they record the time the render *started*.
"""

import base64
import io
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from PIL import Image

from qrstyle import CANVAS_SIZE, COOLDOWN_MS, DOWNLOAD_FILENAME
from qrstyle.advisor import Advice, evaluate
from qrstyle.compositor import DEFAULT_ASSET_TIMEOUT, DEFAULT_EMBLEM_PATH, compose
from qrstyle.encoder import encode
from qrstyle.errors import EncodingFailed, RateLimited
from qrstyle.logging import audit, get_logger, trace
from qrstyle.rasterizer import RenderSurface, render
from qrstyle.style import LogoConfig, RenderStyle, Theme, effective_background

log = get_logger("studio")

RATE_LIMIT_MESSAGE = "Please wait a few seconds before generating another QR code."
ENCODE_FAILED_MESSAGE = "Failed to generate QR code."


class Status(Enum):
    OK = "ok"
    EMPTY_INPUT = "empty_input"
    RATE_LIMITED = "rate_limited"
    SURFACE_UNAVAILABLE = "surface_unavailable"
    ENCODE_FAILED = "encode_failed"


def to_png_bytes(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


@dataclass
class GenerateResult:
    """Outcome of one generate request."""

    status: Status
    image: Image.Image | None = None
    png: bytes | None = None
    message: str | None = None
    advice: Advice | None = None
    filename: str = DOWNLOAD_FILENAME

    @property
    def ok(self) -> bool:
        return self.status is Status.OK

    @property
    def data_url(self) -> str | None:
        """Embeddable ``data:image/png;base64,...`` form of the PNG."""
        if self.png is None:
            return None
        return "data:image/png;base64," + base64.b64encode(self.png).decode("ascii")

    def save(self, path: str | Path | None = None) -> Path:
        """Write the PNG to *path*, or to the suggested filename."""
        if self.png is None:
            raise ValueError(f"nothing to save (status={self.status.value})")
        target = Path(path) if path is not None else Path(self.filename)
        target.write_bytes(self.png)
        return target


class QRStudio:
    """Holds the surface and cooldown state between generate requests.

    Args:
        canvas_size: Output width and height in pixels.
        theme: Light/dark signal used for default colors.
        cooldown_ms: Minimum gap between starts of successful renders.
        emblem_source: File holding the flag emblem.
        asset_timeout: Seconds allowed for each logo/emblem load.
        clock: Monotonic clock returning seconds.
    """

    def __init__(
        self,
        *,
        canvas_size: int = CANVAS_SIZE,
        theme: Theme = Theme.LIGHT,
        cooldown_ms: float = COOLDOWN_MS,
        emblem_source: str | Path | None = DEFAULT_EMBLEM_PATH,
        asset_timeout: float = DEFAULT_ASSET_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.canvas_size = canvas_size
        self.theme = theme
        self.cooldown_ms = cooldown_ms
        self.emblem_source = emblem_source
        self.asset_timeout = asset_timeout
        self.surface = RenderSurface(canvas_size)
        self.last_result: GenerateResult | None = None
        self._clock = clock
        self._last_success_ms: float | None = None

    def _check_cooldown(self, now_ms: float) -> None:
        if self._last_success_ms is None:
            return
        elapsed = now_ms - self._last_success_ms
        if elapsed < self.cooldown_ms:
            raise RateLimited(self.cooldown_ms - elapsed)

    @trace
    async def generate(self, text: str, style: RenderStyle, logo: LogoConfig | None = None) -> GenerateResult:
        """Render *text* with the given style and logo snapshot.

        Returns:
            A GenerateResult. Only OK results replace ``last_result``.
        """
        trimmed = text.strip()
        if not trimmed:
            return GenerateResult(Status.EMPTY_INPUT)

        logo = logo or LogoConfig()
        advice = evaluate(style, logo)

        now_ms = self._clock() * 1000
        try:
            self._check_cooldown(now_ms)
        except RateLimited as exc:
            audit("generate.rate_limited", logger=log, retry_in_ms=round(exc.retry_in_ms))
            return GenerateResult(Status.RATE_LIMITED, message=RATE_LIMIT_MESSAGE, advice=advice)

        try:
            matrix = encode(trimmed, level="H")
        except EncodingFailed as exc:
            log.error("Failed to generate QR code: %s", exc)
            audit("generate.encode_failed", logger=log, chars=len(trimmed), error=str(exc))
            return GenerateResult(Status.ENCODE_FAILED, message=ENCODE_FAILED_MESSAGE, advice=advice)
        base = render(matrix, style, self.canvas_size, theme=self.theme, surface=self.surface)
        if base is None:
            return GenerateResult(Status.SURFACE_UNAVAILABLE, advice=advice)

        final = await compose(
            base, logo, style.preset_id, effective_background(style, self.theme),
            emblem_source=self.emblem_source, timeout=self.asset_timeout,
        )

        result = GenerateResult(Status.OK, image=final, png=to_png_bytes(final), advice=advice)
        self.last_result = result
        self._last_success_ms = now_ms
        audit("generate.completed", logger=log,
              data=trimmed[:80], preset=style.preset_id,
              scanability=advice.label.value, png_bytes=len(result.png))
        return result
