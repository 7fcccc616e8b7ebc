"""Conversion of MediaPipe landmark lists into detection snapshots.

Works on anything exposing ``.x``/``.y`` normalized attributes, so it does not
depend on MediaPipe itself.
"""

from typing import Any, Dict, List, Sequence, Tuple

from .detections import FaceLandmarks, HandJoint, HandLandmarks, NormalizedPoint, NormalizedRect
from .geometry import clamp

# MediaPipe Hands fingertip indices
FINGERTIP_INDICES: Dict[HandJoint, int] = {
    HandJoint.THUMB_TIP: 4,
    HandJoint.INDEX_TIP: 8,
    HandJoint.MIDDLE_TIP: 12,
    HandJoint.RING_TIP: 16,
    HandJoint.LITTLE_TIP: 20,
}

# Face mesh regional index sets
NOSE_LANDMARKS = [1, 2, 4, 5, 6, 19, 94, 98, 168, 195, 197, 327]
OUTER_LIPS_LANDMARKS = [61, 146, 91, 181, 84, 17, 314, 405, 321, 375, 291, 409, 270, 269, 267, 0, 37, 39, 40, 185]
FACE_OVAL_LANDMARKS = [
    10, 338, 297, 332, 284, 251, 389, 356, 454, 323, 361, 288, 397, 365, 379, 378, 400, 377,
    152, 148, 176, 149, 150, 136, 172, 58, 132, 93, 234, 127, 162, 21, 54, 103, 67, 109,
]


def _to_point(landmark: Any, confidence: float = 1.0) -> NormalizedPoint:
    return NormalizedPoint(
        x=clamp(float(landmark.x), 0.0, 1.0),
        y=clamp(float(landmark.y), 0.0, 1.0),
        confidence=clamp(float(confidence), 0.0, 1.0),
    )


def hand_from_landmarks(landmarks: Sequence[Any], score: float, min_confidence: float) -> HandLandmarks:
    """Keep the fingertips whose confidence clears ``min_confidence``.

    MediaPipe gives no per-joint score, so every joint carries the hand score.
    """
    points: Dict[HandJoint, NormalizedPoint] = {}
    if score < min_confidence:
        return HandLandmarks(points_by_joint=points)

    for joint, idx in FINGERTIP_INDICES.items():
        if idx < len(landmarks):
            points[joint] = _to_point(landmarks[idx], score)
    return HandLandmarks(points_by_joint=points)


def _region(landmarks: Sequence[Any], indices: List[int]) -> Tuple[NormalizedPoint, ...]:
    return tuple(_to_point(landmarks[idx]) for idx in indices if idx < len(landmarks))


def face_from_landmarks(landmarks: Sequence[Any]) -> FaceLandmarks:
    """Build a face from a full mesh; the box is the extent of all landmarks."""
    if not landmarks:
        return FaceLandmarks(bounding_box=NormalizedRect(0.0, 0.0, 0.0, 0.0))

    xs = [clamp(float(lm.x), 0.0, 1.0) for lm in landmarks]
    ys = [clamp(float(lm.y), 0.0, 1.0) for lm in landmarks]
    box = NormalizedRect(x=min(xs), y=min(ys), width=max(xs) - min(xs), height=max(ys) - min(ys))

    return FaceLandmarks(
        bounding_box=box,
        nose=_region(landmarks, NOSE_LANDMARKS),
        outer_lips=_region(landmarks, OUTER_LIPS_LANDMARKS),
        face_contour=_region(landmarks, FACE_OVAL_LANDMARKS),
    )
