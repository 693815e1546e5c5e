from __future__ import annotations

import csv
import itertools
import logging
import os
import time
from typing import Callable, List, Optional, Sequence

import numpy as np

from .types import HandObservation, HandSlotState, Landmark


logger = logging.getLogger(__name__)

DEFAULT_LABELS: List[str] = ["Open", "Close", "Pointer", "OK"]
PLACEHOLDER_LABEL = "?"

# (landmarks, frame image) -> class index
Predictor = Callable[[Sequence[Landmark], Optional[np.ndarray]], int]


class ClassificationError(RuntimeError):
    pass


def load_labels(path: str) -> List[str]:
    """Read a keypoint label CSV: one label per row, first column."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Label file not found: {path}")
    with open(path, encoding="utf-8-sig", newline="") as f:
        labels = [row[0].strip() for row in csv.reader(f) if row and row[0].strip()]
    if not labels:
        raise ValueError(f"Label file is empty: {path}")
    return labels


def pre_process_landmarks(
    landmarks: Sequence[Landmark], width: int, height: int
) -> List[float]:
    """
    Classifier input vector: pixel coordinates relative to the wrist,
    flattened and scaled by the largest absolute value.
    """
    points = [
        (min(int(lm.x * width), width - 1), min(int(lm.y * height), height - 1))
        for lm in landmarks
    ]
    if not points:
        return []
    base_x, base_y = points[0]
    flat = list(itertools.chain.from_iterable((x - base_x, y - base_y) for x, y in points))
    max_value = max(map(abs, flat))
    if max_value == 0:
        return [0.0 for _ in flat]
    return [v / max_value for v in flat]


class KeyPointClassifier:
    """
    TFLite keypoint classifier.

    Callable with the `Predictor` signature; returns the arg-max class index.
    TensorFlow is imported when the model is loaded so the rest of the
    package does not need it.
    """

    def __init__(
        self,
        model_path: str = "models/keypoint_classifier.tflite",
        num_threads: int = 1,
        frame_size: tuple = (1280, 720),
    ) -> None:
        if not os.path.exists(model_path):
            raise FileNotFoundError(f"Keypoint classifier model not found: {model_path}")

        import tensorflow as tf  # type: ignore

        self._interpreter = tf.lite.Interpreter(model_path=model_path, num_threads=num_threads)
        self._interpreter.allocate_tensors()
        self._input_details = self._interpreter.get_input_details()
        self._output_details = self._interpreter.get_output_details()
        self._frame_size = frame_size

    def __call__(self, landmarks: Sequence[Landmark], image: Optional[np.ndarray] = None) -> int:
        if image is not None:
            h, w = image.shape[:2]
        else:
            w, h = self._frame_size
        vector = pre_process_landmarks(landmarks, w, h)

        input_index = self._input_details[0]["index"]
        self._interpreter.set_tensor(input_index, np.array([vector], dtype=np.float32))
        self._interpreter.invoke()

        output_index = self._output_details[0]["index"]
        scores = self._interpreter.get_tensor(output_index)
        return int(np.argmax(np.squeeze(scores)))


class GestureClassifier:
    """
    Debounced adapter around a keypoint predictor.

    The predictor runs at most once per `debounce_s` for each hand slot;
    in between, the slot's stored label is reused.
    """

    def __init__(
        self,
        predictor: Optional[Predictor],
        labels: Optional[Sequence[str]] = None,
        debounce_s: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._predictor = predictor
        self.labels = list(labels) if labels is not None else list(DEFAULT_LABELS)
        self.debounce_s = debounce_s
        self._clock = clock

    def is_due(self, slot: HandSlotState, now: float) -> bool:
        if slot.last_classified_at is None:
            return True
        return now - slot.last_classified_at > self.debounce_s

    def label_for(self, index: int) -> str:
        if not 0 <= index < len(self.labels):
            raise ClassificationError(
                f"Classifier returned index {index}, label table has {len(self.labels)} entries"
            )
        return self.labels[index]

    def classify(
        self,
        slot: HandSlotState,
        observation: HandObservation,
        image: Optional[np.ndarray] = None,
    ) -> str:
        if self._predictor is None:
            return slot.last_gesture_label or PLACEHOLDER_LABEL

        now = self._clock()
        if self.is_due(slot, now):
            # Stamped before the call so a failing model is still rate limited.
            slot.last_classified_at = now
            try:
                index = int(self._predictor(observation.landmarks, image))
                slot.last_gesture_label = self.label_for(index)
            except Exception as e:
                logger.warning("Gesture classification failed, keeping previous label: %s", e)

        return slot.last_gesture_label or PLACEHOLDER_LABEL
