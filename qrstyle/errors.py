"""Exception taxonomy for the render pipeline.

None of these are fatal to a host application: each is caught at the
component boundary that owns it and turned into an outcome.
"""


class QRStyleError(Exception):
    """Base class for qrstyle failures."""


class SurfaceUnavailable(QRStyleError):
    """The drawing surface could not be acquired; the render is aborted."""


class AssetLoadFailure(QRStyleError):
    """A logo or emblem could not be loaded or decoded; compositing is skipped."""

    def __init__(self, asset: str, reason: str):
        super().__init__(f"{asset}: {reason}")
        self.asset = asset
        self.reason = reason


class RateLimited(QRStyleError):
    """A generate request arrived inside the cooldown window."""

    def __init__(self, retry_in_ms: float):
        super().__init__(f"cooldown active, retry in {retry_in_ms:.0f}ms")
        self.retry_in_ms = retry_in_ms


class UnknownPreset(QRStyleError, ValueError):
    """No preset with the requested identifier exists."""


class EncodingFailed(QRStyleError):
    """The text could not be encoded, usually because it exceeds QR capacity."""
