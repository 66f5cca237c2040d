from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class BBox:
    """
    Page-pixel box, top-left origin:
    - (x, y) is the top-left corner
    - (w, h) are width and height in pixels
    """

    x: int
    y: int
    w: int
    h: int

    @property
    def x1(self) -> int:
        return int(self.x + self.w)

    @property
    def y1(self) -> int:
        return int(self.y + self.h)

    def area(self) -> int:
        return int(self.w * self.h) if self.w > 0 and self.h > 0 else 0

    def union(self, other: "BBox") -> "BBox":
        x0 = min(self.x, other.x)
        y0 = min(self.y, other.y)
        x1 = max(self.x1, other.x1)
        y1 = max(self.y1, other.y1)
        return BBox(x=x0, y=y0, w=x1 - x0, h=y1 - y0)

    def repaired(self) -> "BBox":
        # Negative extents are flipped so the box keeps the same covered span.
        x, w = (self.x, self.w) if self.w >= 0 else (self.x + self.w, -self.w)
        y, h = (self.y, self.h) if self.h >= 0 else (self.y + self.h, -self.h)
        return BBox(x=x, y=y, w=w, h=h)

    def as_floats(self) -> list[float]:
        return [float(self.x), float(self.y), float(self.w), float(self.h)]

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "BBox":
        return BBox(x=int(d["x"]), y=int(d["y"]), w=int(d["w"]), h=int(d["h"]))

    def to_dict(self) -> dict[str, Any]:
        return {"x": self.x, "y": self.y, "w": self.w, "h": self.h}


@dataclass(frozen=True, slots=True)
class RawUnit:
    """
    One raw content unit as delivered by an ingestion adapter.

    `text` is exactly what the adapter extracted; no normalization happens
    before the encoder sees it.
    """

    text: str
    bbox: BBox
    z: int  # 1-indexed page

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "RawUnit":
        return RawUnit(text=str(d.get("text", "")), bbox=BBox.from_dict(d["bbox"]), z=int(d["z"]))

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "bbox": self.bbox.to_dict(), "z": self.z}


@dataclass(frozen=True, slots=True)
class RawPage:
    z: int
    width_px: int
    height_px: int
    units: list[RawUnit]

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "RawPage":
        units_raw = d.get("units") or []
        if not isinstance(units_raw, list):
            raise TypeError("RawPage.units must be a list")
        return RawPage(
            z=int(d["z"]),
            width_px=int(d["width_px"]),
            height_px=int(d["height_px"]),
            units=[RawUnit.from_dict(u) for u in units_raw],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "z": self.z,
            "width_px": self.width_px,
            "height_px": self.height_px,
            "units": [u.to_dict() for u in self.units],
        }
