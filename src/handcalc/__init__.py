from .classifier import GestureClassifier, KeyPointClassifier, load_labels
from .expression import evaluate_expression, parse_operation
from .fingers import count_extended_fingers
from .session import GestureSession
from .speech import Pyttsx3SpeechOutput, SpeechAnnouncer
from .types import (
    ExpressionResult,
    FrameResult,
    Handedness,
    HandObservation,
    Landmark,
    Operation,
)

__all__ = [
    "GestureClassifier",
    "KeyPointClassifier",
    "load_labels",
    "evaluate_expression",
    "parse_operation",
    "count_extended_fingers",
    "GestureSession",
    "Pyttsx3SpeechOutput",
    "SpeechAnnouncer",
    "ExpressionResult",
    "FrameResult",
    "Handedness",
    "HandObservation",
    "Landmark",
    "Operation",
]
