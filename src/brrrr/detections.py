"""Per-frame landmark snapshot consumed by the touch classifier.

All coordinates live in a normalized [0, 1] image space. The axis convention is
whatever the landmark producer uses, as long as hands and faces within one
snapshot agree.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Tuple


class HandJoint(Enum):
    """Fingertip joints tracked per hand."""

    THUMB_TIP = "thumbTip"
    INDEX_TIP = "indexTip"
    MIDDLE_TIP = "middleTip"
    RING_TIP = "ringTip"
    LITTLE_TIP = "littleTip"


@dataclass(frozen=True)
class NormalizedPoint:
    x: float
    y: float
    confidence: float = 1.0


@dataclass(frozen=True)
class NormalizedRect:
    """Axis-aligned box; (x, y) is one corner, width/height extend to the other."""

    x: float
    y: float
    width: float
    height: float

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def center(self) -> NormalizedPoint:
        return NormalizedPoint(x=self.x + self.width / 2, y=self.y + self.height / 2, confidence=1.0)

    def expanded(self, margin: float) -> "NormalizedRect":
        """Grow the box outward by ``margin`` on all four sides."""
        return NormalizedRect(
            x=self.x - margin,
            y=self.y - margin,
            width=self.width + 2 * margin,
            height=self.height + 2 * margin,
        )

    def contains(self, point: NormalizedPoint) -> bool:
        """Inclusive containment test."""
        return (
            self.x <= point.x <= self.x + self.width
            and self.y <= point.y <= self.y + self.height
        )


@dataclass(frozen=True)
class HandLandmarks:
    """Fingertips that cleared the producer's confidence filter.

    An empty mapping means a hand was seen but no fingertip is usable.
    """

    points_by_joint: Dict[HandJoint, NormalizedPoint] = field(default_factory=dict)

    @property
    def points(self) -> List[NormalizedPoint]:
        return list(self.points_by_joint.values())


@dataclass(frozen=True)
class FaceLandmarks:
    """Face box plus sparse regional points, already in absolute normalized space."""

    bounding_box: NormalizedRect
    nose: Tuple[NormalizedPoint, ...] = ()
    outer_lips: Tuple[NormalizedPoint, ...] = ()
    face_contour: Tuple[NormalizedPoint, ...] = ()

    @property
    def region_points(self) -> List[NormalizedPoint]:
        return [*self.nose, *self.outer_lips, *self.face_contour]


@dataclass(frozen=True)
class VisionDetections:
    timestamp: float
    hands: Tuple[HandLandmarks, ...] = ()
    faces: Tuple[FaceLandmarks, ...] = ()
    # Source frame size in pixels, 0 when unknown.
    frame_width: int = 0
    frame_height: int = 0

    @classmethod
    def empty(cls, timestamp: float = 0.0) -> "VisionDetections":
        return cls(timestamp=timestamp)
