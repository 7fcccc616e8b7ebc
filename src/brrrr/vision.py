"""MediaPipe hand + face landmark extraction producing detection snapshots."""

import logging
import time
from typing import List, Optional

import cv2
import mediapipe as mp
import numpy as np

from .config import VisionConfig
from .detections import FaceLandmarks, HandLandmarks, VisionDetections
from .landmarks import face_from_landmarks, hand_from_landmarks

logger = logging.getLogger(__name__)


class VisionPipeline:
    """Runs MediaPipe Hands and FaceMesh on BGR frames.

    Designed for a single calling thread; ``max_fps`` throttles analysis.
    """

    def __init__(self, config: VisionConfig):
        self.config = config
        self._last_analysis_time: Optional[float] = None

        self.hands = mp.solutions.hands.Hands(
            static_image_mode=False,
            max_num_hands=config.max_num_hands,
            model_complexity=1,
            min_detection_confidence=config.min_detection_confidence,
            min_tracking_confidence=config.min_detection_confidence,
        )
        self.face_mesh = mp.solutions.face_mesh.FaceMesh(
            static_image_mode=False,
            max_num_faces=1,
            refine_landmarks=False,
            min_detection_confidence=config.min_detection_confidence,
            min_tracking_confidence=config.min_detection_confidence,
        )

    def should_analyze(self, now: float) -> bool:
        """Frame-rate gate; ``max_fps <= 0`` disables throttling."""
        if self.config.max_fps <= 0 or self._last_analysis_time is None:
            return True
        return (now - self._last_analysis_time) >= 1.0 / self.config.max_fps

    def process_frame(self, frame: np.ndarray, timestamp: Optional[float] = None) -> Optional[VisionDetections]:
        """Extract a snapshot from one frame, or ``None`` when throttled."""
        now = time.monotonic() if timestamp is None else timestamp
        if not self.should_analyze(now):
            return None
        self._last_analysis_time = now

        height, width = frame.shape[:2]
        rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        rgb_frame.flags.writeable = False

        hand_results = self.hands.process(rgb_frame)
        face_results = self.face_mesh.process(rgb_frame)

        hands = self._extract_hands(hand_results)
        faces = self._extract_faces(face_results)
        logger.debug(f"Frame {width}x{height}: {len(hands)} hands, {len(faces)} faces")

        return VisionDetections(
            timestamp=now,
            hands=tuple(hands),
            faces=tuple(faces),
            frame_width=width,
            frame_height=height,
        )

    def _extract_hands(self, results) -> List[HandLandmarks]:
        hands: List[HandLandmarks] = []
        if not results.multi_hand_landmarks:
            return hands

        handedness = results.multi_handedness or []
        for i, hand_landmarks in enumerate(results.multi_hand_landmarks):
            score = handedness[i].classification[0].score if i < len(handedness) else 1.0
            hands.append(hand_from_landmarks(hand_landmarks.landmark, score, self.config.min_hand_confidence))
        return hands

    def _extract_faces(self, results) -> List[FaceLandmarks]:
        if not results.multi_face_landmarks:
            return []
        return [face_from_landmarks(face.landmark) for face in results.multi_face_landmarks]

    def close(self) -> None:
        """Release MediaPipe resources."""
        self.hands.close()
        self.face_mesh.close()
