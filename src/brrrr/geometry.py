"""Distance helpers over normalized landmark points."""

import math
from typing import Sequence

import numpy as np

from .detections import NormalizedPoint

# Smallest face scale used as a divisor.
MIN_FACE_SCALE = 1e-6


def distance(p1: NormalizedPoint, p2: NormalizedPoint) -> float:
    """Euclidean distance between two points."""
    return math.hypot(p1.x - p2.x, p1.y - p2.y)


def _as_array(points: Sequence[NormalizedPoint]) -> np.ndarray:
    return np.array([(p.x, p.y) for p in points], dtype=np.float64).reshape(-1, 2)


def min_pairwise_distance(sources: Sequence[NormalizedPoint], targets: Sequence[NormalizedPoint]) -> float:
    """Smallest distance over every (source, target) pair.

    Returns ``math.inf`` when either side is empty.
    """
    if not sources or not targets:
        return math.inf

    src = _as_array(sources)
    dst = _as_array(targets)
    diffs = src[:, np.newaxis, :] - dst[np.newaxis, :, :]
    return float(np.min(np.linalg.norm(diffs, axis=-1)))


def normalize_distance(value: float, scale: float) -> float:
    """Divide by a face scale, guarding against a degenerate box."""
    return value / max(scale, MIN_FACE_SCALE)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
