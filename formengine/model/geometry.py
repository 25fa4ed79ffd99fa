"""Page-relative field geometry and its conversions.

Three coordinate spaces are involved:

* percent geometry: what gets persisted, fractions (0-100) of the page size,
  origin top-left;
* device space: the page as rendered at some zoom, origin top-left;
* document space: PDF points, origin bottom-left.
"""

from __future__ import annotations

from dataclasses import dataclass

from formengine.config import MIN_FIELD_SIZE


@dataclass(frozen=True, slots=True)
class Geometry:
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True, slots=True)
class DeviceRect:
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True, slots=True)
class DocumentRect:
    x: float
    y: float
    width: float
    height: float

    @property
    def top(self) -> float:
        return self.y + self.height

    @property
    def right(self) -> float:
        return self.x + self.width

    def contains(self, x: float, y: float, tolerance: float = 0.0) -> bool:
        return (
            self.x - tolerance <= x <= self.right + tolerance
            and self.y - tolerance <= y <= self.top + tolerance
        )


def _check_page_size(width: float, height: float) -> None:
    if width <= 0 or height <= 0:
        raise ValueError(f"Page size must be positive, got {width}x{height}")


def to_device_rect(geom: Geometry, page_render_width: float, page_render_height: float) -> DeviceRect:
    _check_page_size(page_render_width, page_render_height)
    return DeviceRect(
        x=geom.x / 100.0 * page_render_width,
        y=geom.y / 100.0 * page_render_height,
        width=geom.width / 100.0 * page_render_width,
        height=geom.height / 100.0 * page_render_height,
    )


def to_percent_geom(rect: DeviceRect, page_render_width: float, page_render_height: float) -> Geometry:
    _check_page_size(page_render_width, page_render_height)
    return Geometry(
        x=rect.x / page_render_width * 100.0,
        y=rect.y / page_render_height * 100.0,
        width=rect.width / page_render_width * 100.0,
        height=rect.height / page_render_height * 100.0,
    )


def to_document_rect(geom: Geometry, page_width_pt: float, page_height_pt: float) -> DocumentRect:
    _check_page_size(page_width_pt, page_height_pt)
    width = geom.width / 100.0 * page_width_pt
    height = geom.height / 100.0 * page_height_pt
    # PDF origin is bottom-left: the top edge sits at geom.y below the page top.
    y = page_height_pt - (geom.y / 100.0) * page_height_pt - height
    return DocumentRect(x=geom.x / 100.0 * page_width_pt, y=y, width=width, height=height)


def from_document_rect(rect: DocumentRect, page_width_pt: float, page_height_pt: float) -> Geometry:
    _check_page_size(page_width_pt, page_height_pt)
    return Geometry(
        x=rect.x / page_width_pt * 100.0,
        y=(page_height_pt - rect.top) / page_height_pt * 100.0,
        width=rect.width / page_width_pt * 100.0,
        height=rect.height / page_height_pt * 100.0,
    )


def clamp_device_rect(rect: DeviceRect, min_size: float = MIN_FIELD_SIZE) -> DeviceRect:
    return DeviceRect(
        x=max(0.0, rect.x),
        y=max(0.0, rect.y),
        width=max(min_size, rect.width),
        height=max(min_size, rect.height),
    )
