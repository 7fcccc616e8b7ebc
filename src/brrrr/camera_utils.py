"""
Camera utilities for dynamic camera detection
"""

import logging
import platform

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class MockCamera:
    """Mock camera for CI/testing environments without hardware camera"""

    def __init__(self, width=1280, height=720):
        self.width = width
        self.height = height
        self.frame_count = 0
        self._opened = True
        logger.info(f"MockCamera initialized: {width}x{height}")

    def read(self):
        """Generate a dark frame with a slowly moving blob where a face would be"""
        if not self._opened:
            return False, None

        frame = np.zeros((self.height, self.width, 3), dtype=np.uint8)
        frame[:, :] = (40, 30, 20)

        self.frame_count += 1
        face_x = self.width // 2 + int(50 * np.sin(self.frame_count * 0.1))
        face_y = self.height // 3
        cv2.circle(frame, (face_x, face_y), 80, (100, 150, 200), -1)

        return True, frame

    def release(self):
        self._opened = False
        logger.info("MockCamera released")

    def isOpened(self):
        return self._opened

    def get(self, prop):
        if prop == cv2.CAP_PROP_FRAME_WIDTH:
            return self.width
        elif prop == cv2.CAP_PROP_FRAME_HEIGHT:
            return self.height
        elif prop == cv2.CAP_PROP_FPS:
            return 30
        return 0

    def set(self, prop, value):
        if prop == cv2.CAP_PROP_FRAME_WIDTH:
            self.width = int(value)
        elif prop == cv2.CAP_PROP_FRAME_HEIGHT:
            self.height = int(value)
        return True


def find_available_cameras(max_index=10):
    """Find all available camera indices"""
    available_cameras = []

    for i in range(max_index):
        cap = cv2.VideoCapture(i)
        if cap.isOpened():
            ret, _ = cap.read()
            if ret:
                width = cap.get(cv2.CAP_PROP_FRAME_WIDTH)
                height = cap.get(cv2.CAP_PROP_FRAME_HEIGHT)
                fps = cap.get(cv2.CAP_PROP_FPS)

                available_cameras.append({"index": i, "width": int(width), "height": int(height), "fps": int(fps) if fps > 0 else 30})
            cap.release()

    return available_cameras


def select_best_camera(cameras):
    """Prefer the highest resolution, then the higher (usually external) index"""
    if not cameras:
        return None
    return max(cameras, key=lambda x: (x["width"] * x["height"], x["index"]))["index"]


def initialize_camera(camera_index=None, width=1280, height=720):
    """Open the given camera, or auto-detect one. Returns None on failure."""
    logger.debug(f"Initializing camera on {platform.system()} {platform.release()} (OpenCV {cv2.__version__})")

    if camera_index is None:
        logger.info("Auto-detecting cameras...")
        camera_index = select_best_camera(find_available_cameras())
        if camera_index is None:
            logger.warning("No cameras found during auto-detection")
            return None

    backends = [cv2.CAP_AVFOUNDATION, cv2.CAP_ANY] if platform.system() == "Darwin" else [cv2.CAP_ANY]

    for backend in backends:
        try:
            cap = cv2.VideoCapture(camera_index, backend)
            if not cap.isOpened():
                logger.debug(f"Could not open camera {camera_index} with backend {backend}")
                continue

            ret, _ = cap.read()
            if not ret:
                logger.debug(f"Could not read test frame from camera {camera_index}")
                cap.release()
                continue

            cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
            logger.info(
                f"Camera {camera_index} opened at "
                f"{int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))}x{int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))}"
            )
            return cap
        except cv2.error as e:
            logger.warning(f"Exception opening camera {camera_index} with backend {backend}: {e}")

    logger.error(f"Failed to open camera {camera_index} with any backend")
    return None
