"""
Geometry Models
===============

Rectangles used by the cropper and the compositor.

    - CropRect: source region selected by the center crop
    - Slot: fixed photo region of the composite canvas
    - CanvasLayout: canvas size plus its three photo slots

The default layout is the 600x1400 photo strip:

    +-----------------+  y=0
    |  [ slot 0    ]  |  y=50    500x350
    |  [ slot 1    ]  |  y=450
    |  [ slot 2    ]  |  y=850
    |     caption     |
    +-----------------+  y=1400
"""

from dataclasses import dataclass
from typing import Sequence, Tuple


PHOTO_COUNT = 3


@dataclass(frozen=True, slots=True)
class CropRect:
    """Source rectangle in (possibly fractional) pixel coordinates."""

    sx: float
    sy: float
    sw: float
    sh: float

    def to_pixels(self) -> Tuple[int, int, int, int]:
        """Round to integer (x0, y0, x1, y1) slice bounds."""
        x0 = int(round(self.sx))
        y0 = int(round(self.sy))
        x1 = max(x0 + 1, int(round(self.sx + self.sw)))
        y1 = max(y0 + 1, int(round(self.sy + self.sh)))
        return x0, y0, x1, y1


@dataclass(frozen=True, slots=True)
class Slot:
    """A photo region on the composite canvas."""

    x: int
    y: int
    width: int
    height: int

    def overlaps(self, other: "Slot") -> bool:
        return not (
            self.x + self.width <= other.x
            or other.x + other.width <= self.x
            or self.y + self.height <= other.y
            or other.y + other.height <= self.y
        )


@dataclass(frozen=True, slots=True)
class CanvasLayout:
    """
    Fixed composite geometry.

    Attributes:
        width: Canvas width in pixels
        height: Canvas height in pixels
        slots: Photo slots in insertion order
    """

    width: int
    height: int
    slots: Tuple[Slot, ...]

    def __post_init__(self) -> None:
        if len(self.slots) != PHOTO_COUNT:
            raise ValueError(f"layout needs exactly {PHOTO_COUNT} slots")
        for i, slot in enumerate(self.slots):
            if slot.x < 0 or slot.y < 0:
                raise ValueError(f"slot {i} starts outside the canvas")
            if slot.x + slot.width > self.width or slot.y + slot.height > self.height:
                raise ValueError(f"slot {i} extends past the canvas")
            for other in self.slots[i + 1:]:
                if slot.overlaps(other):
                    raise ValueError(f"slot {i} overlaps another slot")

    @classmethod
    def from_offsets(
        cls,
        width: int,
        height: int,
        margin: int,
        slot_height: int,
        y_offsets: Sequence[int],
    ) -> "CanvasLayout":
        """Build a layout of full-width slots with uniform side margins."""
        slot_width = width - 2 * margin
        return cls(
            width=width,
            height=height,
            slots=tuple(Slot(margin, y, slot_width, slot_height) for y in y_offsets),
        )


DEFAULT_LAYOUT = CanvasLayout.from_offsets(
    width=600,
    height=1400,
    margin=50,
    slot_height=350,
    y_offsets=(50, 450, 850),
)
