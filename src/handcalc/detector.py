from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Tuple

import cv2
import numpy as np

from .model_assets import ensure_hand_landmarker_task
from .types import HandObservation, Landmark
from .utils import parse_handedness


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _SolutionsBackend:
    mp: object
    hands: object


@dataclass(frozen=True)
class _TasksBackend:
    mp: object
    landmarker: object


def _create_solutions_backend(
    max_num_hands: int,
    model_complexity: int,
    min_detection_confidence: float,
    min_tracking_confidence: float,
    static_image_mode: bool,
) -> Optional[_SolutionsBackend]:
    import mediapipe as mp  # type: ignore

    if not hasattr(mp, "solutions"):
        return None
    hands = mp.solutions.hands.Hands(
        static_image_mode=static_image_mode,
        max_num_hands=max_num_hands,
        model_complexity=model_complexity,
        min_detection_confidence=min_detection_confidence,
        min_tracking_confidence=min_tracking_confidence,
    )
    return _SolutionsBackend(mp=mp, hands=hands)


def _create_tasks_backend(
    model_path: str,
    max_num_hands: int,
    min_detection_confidence: float,
    min_tracking_confidence: float,
) -> _TasksBackend:
    """
    HandLandmarker (MediaPipe Tasks) for builds that no longer ship `mp.solutions`.

    Needs a `.task` model asset on disk; it is downloaded on first use.
    """
    import mediapipe as mp  # type: ignore
    from mediapipe.tasks.python import BaseOptions  # type: ignore
    from mediapipe.tasks.python.vision import (  # type: ignore
        HandLandmarker,
        HandLandmarkerOptions,
        RunningMode,
    )

    model_path = ensure_hand_landmarker_task(model_path)
    options = HandLandmarkerOptions(
        base_options=BaseOptions(model_asset_path=model_path),
        running_mode=RunningMode.VIDEO,
        num_hands=max_num_hands,
        min_hand_detection_confidence=min_detection_confidence,
        min_tracking_confidence=min_tracking_confidence,
    )
    return _TasksBackend(mp=mp, landmarker=HandLandmarker.create_from_options(options))


def _observation(landmarks, label: Optional[str], score: Optional[float]) -> HandObservation:
    return HandObservation(
        landmarks=[
            Landmark(x=float(lm.x), y=float(lm.y), z=float(getattr(lm, "z", 0.0)))
            for lm in landmarks
        ],
        handedness=parse_handedness(label),
        score=score,
    )


class HandTracker:
    """
    MediaPipe Hands wrapper producing `HandObservation`s.

    Input frames are expected as **BGR** images (OpenCV default). Hands are
    returned in MediaPipe's detection order.
    """

    def __init__(
        self,
        max_num_hands: int = 2,
        model_complexity: int = 1,
        min_detection_confidence: float = 0.6,
        min_tracking_confidence: float = 0.6,
        static_image_mode: bool = False,
        tasks_model_path: str = "models/hand_landmarker.task",
    ) -> None:
        self.max_num_hands = max_num_hands
        self._tasks: Optional[_TasksBackend] = None
        self._last_ts_ms = -1

        self._solutions = _create_solutions_backend(
            max_num_hands=max_num_hands,
            model_complexity=model_complexity,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
            static_image_mode=static_image_mode,
        )
        if self._solutions is not None:
            logger.info("Using MediaPipe solutions hand tracker")
            return

        try:
            self._tasks = _create_tasks_backend(
                model_path=tasks_model_path,
                max_num_hands=max_num_hands,
                min_detection_confidence=min_detection_confidence,
                min_tracking_confidence=min_tracking_confidence,
            )
        except ImportError as e:
            raise RuntimeError(
                "The installed `mediapipe` exposes neither `mp.solutions` nor the Tasks "
                "HandLandmarker API. Reinstall mediapipe and try again."
            ) from e
        logger.info("Using MediaPipe Tasks hand landmarker (%s)", tasks_model_path)

    def close(self) -> None:
        if self._solutions is not None:
            self._solutions.hands.close()
        if self._tasks is not None:
            self._tasks.landmarker.close()

    def __enter__(self) -> "HandTracker":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def detect(self, frame_bgr: np.ndarray) -> Tuple[List[HandObservation], np.ndarray]:
        """Return the hands found in `frame_bgr` together with the frame itself."""
        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)

        if self._solutions is not None:
            results = self._solutions.hands.process(frame_rgb)
            if not results.multi_hand_landmarks:
                return [], frame_bgr

            handedness_list = results.multi_handedness or []
            hands: List[HandObservation] = []
            for i, hand_landmarks in enumerate(results.multi_hand_landmarks):
                label = None
                score = None
                if i < len(handedness_list) and handedness_list[i].classification:
                    c = handedness_list[i].classification[0]
                    label = getattr(c, "label", None)
                    score = float(getattr(c, "score", 0.0))
                hands.append(_observation(hand_landmarks.landmark, label, score))
            return hands, frame_bgr

        mp = self._tasks.mp
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=frame_rgb)

        # VIDEO mode rejects timestamps that do not strictly increase.
        ts_ms = max(self._last_ts_ms + 1, int(time.monotonic() * 1000))
        self._last_ts_ms = ts_ms
        result = self._tasks.landmarker.detect_for_video(mp_image, ts_ms)

        handedness_list = getattr(result, "handedness", None) or []
        hands = []
        for i, landmarks in enumerate(getattr(result, "hand_landmarks", None) or []):
            label = None
            score = None
            if i < len(handedness_list) and handedness_list[i]:
                cat = handedness_list[i][0]
                label = getattr(cat, "category_name", None) or getattr(cat, "display_name", None)
                score = float(getattr(cat, "score", 0.0))
            hands.append(_observation(landmarks, label, score))
        return hands, frame_bgr
