"""
Pytest configuration for Brrrr tests
"""

import logging

import pytest

from brrrr.detections import FaceLandmarks, HandJoint, HandLandmarks, NormalizedPoint, NormalizedRect, VisionDetections

# Configure logging for all tests
logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def pytest_configure(config):
    """Configure custom markers"""
    config.addinivalue_line("markers", "integration: marks tests as integration tests (may be slow)")
    config.addinivalue_line("markers", "websocket: marks tests that test websocket functionality")


@pytest.fixture
def make_face():
    """Factory for a face with optional nose/lips/contour points given as (x, y) tuples."""

    def _make(box=(0.4, 0.4, 0.2, 0.2), nose=(), lips=(), contour=()):
        return FaceLandmarks(
            bounding_box=NormalizedRect(*box),
            nose=tuple(NormalizedPoint(x, y) for x, y in nose),
            outer_lips=tuple(NormalizedPoint(x, y) for x, y in lips),
            face_contour=tuple(NormalizedPoint(x, y) for x, y in contour),
        )

    return _make


@pytest.fixture
def make_hand():
    """Factory for a hand from (x, y) fingertips, assigned to joints in order."""

    def _make(*tips):
        joints = list(HandJoint)
        return HandLandmarks(points_by_joint={joints[i]: NormalizedPoint(x, y) for i, (x, y) in enumerate(tips)})

    return _make


@pytest.fixture
def nose_lips_face(make_face):
    """Face box {0.4, 0.4, 0.2, 0.2} with one nose and one lip point"""
    return make_face(nose=[(0.5, 0.55)], lips=[(0.5, 0.48)])


@pytest.fixture
def snapshot():
    def _make(hands=(), faces=(), timestamp=0.0):
        return VisionDetections(timestamp=timestamp, hands=tuple(hands), faces=tuple(faces))

    return _make
