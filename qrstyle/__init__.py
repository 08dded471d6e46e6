"""qrstyle — styled QR code rasterization with logos, presets and scan advice."""

__version__ = "0.3.0"

# Shared constants
CANVAS_SIZE = 512  # Output PNG is always 512x512
MARGIN_CELLS = 2  # Quiet zone on each side, in module widths
MAX_LOGO_SCALE = 22  # Percent of canvas; larger logos are clamped at draw time
EMBLEM_FRACTION = 0.30  # Flag emblem width as a fraction of the canvas
COOLDOWN_MS = 5000  # Minimum gap between successful renders
DOWNLOAD_FILENAME = "qr-code.png"

FLAG_RED = "#ED1C24"
FLAG_WHITE = "#FFFFFF"
FLAG_GREEN = "#00923F"
