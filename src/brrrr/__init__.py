"""Brrrr - face-touch awareness tool."""

__version__ = "0.1.0"

from .classifier import TouchClassifier, TouchClassifierOutput, TouchState
from .config import AppConfig, ClassifierConfig, get_config, get_config_manager
from .detections import FaceLandmarks, HandJoint, HandLandmarks, NormalizedPoint, NormalizedRect, VisionDetections

__all__ = [
    "TouchClassifier",
    "TouchClassifierOutput",
    "TouchState",
    "AppConfig",
    "ClassifierConfig",
    "get_config",
    "get_config_manager",
    "FaceLandmarks",
    "HandJoint",
    "HandLandmarks",
    "NormalizedPoint",
    "NormalizedRect",
    "VisionDetections",
]
