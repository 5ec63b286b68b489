"""
Defaults and fixed tables shared across the sprite designer.
"""

# Long edge in pixels for each resolution tier
RESOLUTION_LONG_EDGE: dict[str, int] = {
    "1K": 1024,
    "2K": 2048,
    "4K": 4096,
}
DEFAULT_RESOLUTION = "1K"

# Draft defaults for a fresh generate form
DEFAULT_GRID_ROWS = 4
DEFAULT_GRID_COLS = 4

# Seed grid rendering
MIN_GRID_SHORT_EDGE = 256
GRID_STROKE_DIVISOR = 512
GRID_STROKE_BGRA = (0, 0, 0, 230)   # black at 0.9 opacity
GRID_CACHE_SIZE = 32

# Playback
DEFAULT_FRAME_DELAY_MS = 120
MIN_FRAME_DELAY_MS = 16
LOADING_MESSAGE = "Loading animation preview..."
DECODE_ERROR_MESSAGE = "Failed to load sprite sheet image."

# Image payloads accepted by the generation backend
SUPPORTED_MIME_TYPES = ("image/png", "image/jpeg", "image/jpg", "image/webp")
SEED_UPLOAD_MIME_TYPES = ("image/png", "image/jpeg", "image/webp")

# Export
DEFAULT_EXPORT_NAME = "sprite-export"
MAX_REASONING_FALLBACK_CHARS = 6000

# Chroma-key thresholds as (min green, min green lead over red/blue, max squared distance to pure green)
CHROMA_SEED = (80, 18, 30_000)
CHROMA_EXPAND = (40, 6, 45_000)
CHROMA_STRONG = (95, 20, 36_000)
CHROMA_FRINGE = (35, 2, 55_000)
CHROMA_FRINGE_PASSES = 2
