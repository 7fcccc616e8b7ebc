"""Three-level touch classification with smoothing and hysteresis."""

import logging
import math
from dataclasses import asdict, dataclass
from enum import IntEnum
from typing import Any, Dict, List, Optional

from .config import ClassifierConfig
from .detections import FaceLandmarks, NormalizedPoint, VisionDetections
from .geometry import clamp, min_pairwise_distance, normalize_distance

logger = logging.getLogger(__name__)


class TouchState(IntEnum):
    """Ordered touch levels."""

    NO_TOUCH = 0
    MAYBE_TOUCH = 1
    TOUCHING = 2

    @property
    def label(self) -> str:
        return _STATE_LABELS[self]


_STATE_LABELS = {
    TouchState.NO_TOUCH: "No touch",
    TouchState.MAYBE_TOUCH: "Maybe",
    TouchState.TOUCHING: "Touching",
}

# Raw score for a fingertip within the "maybe" distance band.
MAYBE_RAW_CONFIDENCE = 0.60
TOUCH_RAW_CONFIDENCE = 1.0


@dataclass(frozen=True)
class TouchClassifierOutput:
    state: TouchState
    raw_confidence: float
    smoothed_confidence: float
    min_distance_to_face: Optional[float]
    min_distance_to_face_normalized: Optional[float]
    inside_face_box: bool
    has_face: bool
    has_hand: bool

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["state"] = self.state.name.lower()
        return data


@dataclass(frozen=True)
class _RawMetrics:
    raw_confidence: float = 0.0
    min_distance: Optional[float] = None
    min_distance_normalized: Optional[float] = None
    inside_face_box: bool = False
    has_face: bool = False
    has_hand: bool = False


class TouchClassifier:
    """Stateful classifier turning landmark snapshots into a stable touch state.

    Not synchronized: one owner calls ``update``/``reset`` sequentially. The
    configuration may be swapped between calls by assigning ``configuration``.
    """

    Configuration = ClassifierConfig

    def __init__(self, configuration: Optional[ClassifierConfig] = None):
        self.configuration = configuration or ClassifierConfig()
        self._state = TouchState.NO_TOUCH
        self._smoothed_confidence = 0.0

    @property
    def state(self) -> TouchState:
        return self._state

    @property
    def smoothed_confidence(self) -> float:
        return self._smoothed_confidence

    def reset(self) -> None:
        """Forget all smoothing and hysteresis history."""
        self._state = TouchState.NO_TOUCH
        self._smoothed_confidence = 0.0

    def update(self, detections: VisionDetections) -> TouchClassifierOutput:
        """Classify one snapshot. Never raises for well-typed input."""
        metrics = self._compute_raw_metrics(detections)

        alpha = clamp(self.configuration.smoothing_alpha, 0.0, 1.0)
        self._smoothed_confidence += alpha * (metrics.raw_confidence - self._smoothed_confidence)

        previous = self._state
        self._apply_hysteresis(self._smoothed_confidence)
        if self._state != previous:
            logger.debug(
                f"Touch state {previous.name} -> {self._state.name} "
                f"(smoothed={self._smoothed_confidence:.3f}, raw={metrics.raw_confidence:.2f})"
            )

        return TouchClassifierOutput(
            state=self._state,
            raw_confidence=metrics.raw_confidence,
            smoothed_confidence=self._smoothed_confidence,
            min_distance_to_face=metrics.min_distance,
            min_distance_to_face_normalized=metrics.min_distance_normalized,
            inside_face_box=metrics.inside_face_box,
            has_face=metrics.has_face,
            has_hand=metrics.has_hand,
        )

    def _apply_hysteresis(self, smoothed: float) -> None:
        config = self.configuration

        if self._state == TouchState.NO_TOUCH:
            if smoothed >= config.touch_enter_threshold:
                self._state = TouchState.TOUCHING
            elif smoothed >= config.maybe_enter_threshold:
                self._state = TouchState.MAYBE_TOUCH

        elif self._state == TouchState.MAYBE_TOUCH:
            if smoothed >= config.touch_enter_threshold:
                self._state = TouchState.TOUCHING
            elif smoothed <= config.maybe_exit_threshold:
                self._state = TouchState.NO_TOUCH

        elif smoothed <= config.touch_exit_threshold:
            # Leaving TOUCHING splits on the maybe *enter* threshold.
            if smoothed >= config.maybe_enter_threshold:
                self._state = TouchState.MAYBE_TOUCH
            else:
                self._state = TouchState.NO_TOUCH

    def _compute_raw_metrics(self, detections: VisionDetections) -> _RawMetrics:
        face = self._select_face(detections.faces)
        fingertips: List[NormalizedPoint] = [point for hand in detections.hands for point in hand.points]

        if face is None or not fingertips:
            return _RawMetrics(has_face=face is not None, has_hand=bool(fingertips))

        config = self.configuration
        box = face.bounding_box
        face_scale = max(box.width, box.height)

        expanded_box = box.expanded(config.face_box_margin_normalized * face_scale)
        inside_face_box = any(expanded_box.contains(tip) for tip in fingertips)

        targets = face.region_points or [box.center]
        min_distance = min_pairwise_distance(fingertips, targets)
        normalized = normalize_distance(min_distance, face_scale)

        raw = 0.0
        if normalized <= config.touch_distance_normalized:
            raw = TOUCH_RAW_CONFIDENCE
        elif normalized <= config.maybe_distance_normalized:
            raw = MAYBE_RAW_CONFIDENCE

        if inside_face_box:
            raw = max(raw, config.inside_face_raw_confidence)

        finite = math.isfinite(min_distance)
        return _RawMetrics(
            raw_confidence=raw,
            min_distance=min_distance if finite else None,
            min_distance_normalized=normalized if finite else None,
            inside_face_box=inside_face_box,
            has_face=True,
            has_hand=True,
        )

    @staticmethod
    def _select_face(faces) -> Optional[FaceLandmarks]:
        """Largest face by bounding-box area; first wins on ties."""
        if not faces:
            return None
        return max(faces, key=lambda face: face.bounding_box.area)
