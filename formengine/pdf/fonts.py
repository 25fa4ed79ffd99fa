"""Signature font assets: fetched up front, registered with ReportLab on demand."""

from __future__ import annotations

import hashlib
from io import BytesIO
import logging
from pathlib import Path
from typing import Callable, Mapping

from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont

from formengine.config import FontConfig

logger = logging.getLogger(__name__)

FontFetcher = Callable[[Path], bytes]


class FontLoadError(RuntimeError):
    """Raised when a font asset cannot be fetched or parsed."""


def _read_font_file(path: Path) -> bytes:
    return Path(path).read_bytes()


def fetch_font(path: Path, fetch: FontFetcher = _read_font_file) -> bytes:
    try:
        data = fetch(path)
    except Exception as exc:
        raise FontLoadError(f"Failed to load font asset: {path}") from exc
    if not data:
        raise FontLoadError(f"Font asset is empty: {path}")
    return data


def load_font_assets(config: FontConfig, fetch: FontFetcher = _read_font_file) -> dict[str, bytes]:
    """Fetch every configured font; fonts that fail are left out and logged."""
    assets: dict[str, bytes] = {}
    for key, path in config.fonts.items():
        try:
            assets[key] = fetch_font(path, fetch)
        except FontLoadError as exc:
            logger.warning("%s; signatures in %s fall back to %s", exc, key, config.fallback_font)
    return assets


def load_unicode_font(config: FontConfig, fetch: FontFetcher = _read_font_file) -> bytes | None:
    if config.unicode_font is None:
        return None
    try:
        return fetch_font(config.unicode_font, fetch)
    except FontLoadError as exc:
        logger.warning("%s; text outside WinAnsi will not render", exc)
        return None


def register_font(key: str, data: bytes) -> str:
    """Register TrueType ``data`` with ReportLab and return the font name to draw with.

    The name is derived from the font bytes, so registering the same asset twice
    is a no-op and different assets under one key never collide.
    """
    digest = hashlib.sha1(data).hexdigest()[:12]
    font_name = f"Signature-{digest}"
    if font_name in pdfmetrics.getRegisteredFontNames():
        return font_name
    try:
        pdfmetrics.registerFont(TTFont(font_name, BytesIO(data)))
    except Exception as exc:
        raise FontLoadError(f"Failed to parse font for {key}") from exc
    return font_name


def register_fonts(assets: Mapping[str, bytes]) -> dict[str, str]:
    registered: dict[str, str] = {}
    for key, data in assets.items():
        try:
            registered[key] = register_font(key, data)
        except FontLoadError as exc:
            logger.warning("%s; using fallback font", exc)
    return registered
