"""Engine configuration: render scale, layout constants and the signature font registry."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path

# Zoom the builder renders pages at; detection device units are expressed at this scale.
DEFAULT_SCALE = 1.2

# Smallest width/height (device units) a field may have and still be grabbed in the editor.
MIN_FIELD_SIZE = 20.0

# Default device-unit sizes for newly placed fields.
CHECKBOX_SIZE = (20.0, 20.0)
LARGE_FIELD_SIZE = (200.0, 60.0)
TEXT_FIELD_SIZE = (150.0, 24.0)
NEW_FIELD_ORIGIN = (50.0, 50.0)

# Heuristic detection layout, device units.
DETECT_LABEL_GAP = 10.0
DETECT_BASELINE_LIFT = 5.0
DETECT_DUPLICATE_TOLERANCE = 20.0
DETECT_FIELD_SIZE = (150.0, 24.0)
DETECT_SIGNATURE_SIZE = (200.0, 50.0)

# Fill engine layout, document points.
TEXT_INSET = 2.0
SIGNATURE_INSET = 4.0
CHECK_INSET = 2.0
CHECK_MARGIN = 4.0
MAX_TEXT_FONT_SIZE = 12.0
MAX_SIGNATURE_FONT_SIZE = 24.0
FONT_HEIGHT_RATIO = 0.7
TEXTAREA_FONT_SIZE = 10.0
TEXTAREA_LINE_GAP = 2.0

FONT_DIR_ENV = "FORMENGINE_FONT_DIR"
# Deployments drop the TrueType files below into this directory (shipped as package
# data) or point FORMENGINE_FONT_DIR elsewhere. Missing files fall back to the
# standard fonts with a warning.
DEFAULT_FONT_DIR = Path(__file__).parent / "fonts"

# Covers text the standard fonts cannot encode (outside WinAnsi).
DEFAULT_UNICODE_FONT = "DejaVuSans.ttf"

# CSS font families offered by the signing UI, mapped to their TrueType files.
DEFAULT_SIGNATURE_FONTS = {
    "'Dancing Script', cursive": "DancingScript-Regular.ttf",
    "'Great Vibes', cursive": "GreatVibes-Regular.ttf",
    "'Pacifico', cursive": "Pacifico-Regular.ttf",
}


@dataclass(frozen=True, slots=True)
class FontConfig:
    """Fonts available to the fill engine.

    ``fonts`` maps the font key a signature value carries to the TrueType asset
    that renders it. Keys missing from the map, or whose asset fails to load,
    render with ``fallback_font``. ``unicode_font`` draws values the standard
    fonts cannot encode.
    """

    fonts: dict[str, Path] = field(default_factory=dict)
    fallback_font: str = "Helvetica-Oblique"
    text_font: str = "Helvetica"
    check_font: str = "ZapfDingbats"
    unicode_font: Path | None = None

    @classmethod
    def default(cls, font_dir: str | Path | None = None) -> FontConfig:
        base = Path(font_dir or os.environ.get(FONT_DIR_ENV) or DEFAULT_FONT_DIR)
        return cls(
            fonts={key: base / filename for key, filename in DEFAULT_SIGNATURE_FONTS.items()},
            unicode_font=base / DEFAULT_UNICODE_FONT,
        )
