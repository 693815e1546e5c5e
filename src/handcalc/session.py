from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from .classifier import GestureClassifier, KeyPointClassifier, load_labels
from .drawing import FrameRenderer
from .expression import evaluate_expression, parse_operation
from .fingers import count_extended_fingers
from .speech import Pyttsx3SpeechOutput, SilentSpeechOutput, SpeechAnnouncer
from .types import (
    FrameResult,
    HandObservation,
    HandReport,
    HandSlotState,
    Operation,
    SessionState,
)


logger = logging.getLogger(__name__)


class GestureSession:
    """
    Per-frame gesture pipeline: finger counting, debounced gesture labels,
    the two-hand expression and its announcement, and the canvas overlay.

    Hand slots are keyed by detection order, not by physical hand; when the
    number of hands changes between frames, slots can swap hands.

    Frames must be fed serially from a single thread.
    """

    def __init__(
        self,
        classifier: GestureClassifier,
        announcer: SpeechAnnouncer,
        renderer: Optional[FrameRenderer] = None,
        tracker=None,
        canvas_size: Tuple[int, int] = (1280, 720),
        operation: Union[Operation, str] = Operation.ADD,
    ) -> None:
        self.classifier = classifier
        self.announcer = announcer
        self.renderer = renderer or FrameRenderer()
        self.tracker = tracker
        self._canvas_size = (int(canvas_size[0]), int(canvas_size[1]))
        self._operation = parse_operation(operation)

        self.state = SessionState.IDLE
        self.slots: List[HandSlotState] = []
        self.canvas: Optional[np.ndarray] = None

    @property
    def canvas_size(self) -> Tuple[int, int]:
        """(width, height) of the render target."""
        return self._canvas_size

    @property
    def operation(self) -> Operation:
        return self._operation

    def set_operation(self, value: Union[Operation, str]) -> Operation:
        op = parse_operation(value)
        if op is not self._operation:
            logger.info("Operation changed: %s -> %s", self._operation.value, op.value)
        self._operation = op
        return op

    def start(self) -> None:
        if self.state is SessionState.TRACKING:
            return
        w, h = self._canvas_size
        self.canvas = np.zeros((h, w, 3), dtype=np.uint8)
        self.state = SessionState.TRACKING
        logger.info("Session tracking (%dx%d canvas)", w, h)

    def stop(self) -> None:
        if self.state is SessionState.IDLE:
            return
        self.announcer.reset()
        self.slots = []
        self.canvas = None
        self.state = SessionState.IDLE
        logger.info("Session stopped")

    def __enter__(self) -> "GestureSession":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def _slot(self, index: int) -> HandSlotState:
        while len(self.slots) <= index:
            self.slots.append(HandSlotState())
        return self.slots[index]

    def handle_frame(self, frame_bgr: np.ndarray) -> FrameResult:
        """Run the tracker on a raw frame and process its output."""
        if self.tracker is None:
            raise RuntimeError("GestureSession.handle_frame needs a tracker; use process_results instead")
        hands, image = self.tracker.detect(frame_bgr)
        return self.process_results(image, hands)

    def process_results(
        self,
        image: Optional[np.ndarray],
        hands: Sequence[HandObservation],
    ) -> FrameResult:
        """Process one frame of tracker output and redraw the canvas."""
        if self.state is SessionState.IDLE:
            self.start()

        frame = FrameResult()
        counts: List[int] = []
        for index, observation in enumerate(hands):
            label = self.classifier.classify(self._slot(index), observation, image)
            count = count_extended_fingers(observation)
            counts.append(count)
            frame.hands.append(HandReport(observation=observation, label=label, finger_count=count))

        frame.expression = evaluate_expression(counts, self._operation)
        if frame.expression is not None:
            frame.spoken = self.announcer.announce(frame.expression.sentence)
            if self.announcer.last_error:
                frame.warnings.append(self.announcer.last_error)

        self.renderer.render(self.canvas, image, frame.hands, frame.expression)
        return frame


def create_session(cfg, tracker=None, speech_output=None) -> GestureSession:
    """
    Build a session from an `AppConfig`.

    A missing keypoint model (or a missing TensorFlow) is not fatal: hands
    are still counted, their gesture label stays "?".
    """
    labels = cfg.classifier.labels
    if cfg.classifier.label_path:
        labels = load_labels(cfg.classifier.label_path)

    try:
        predictor = KeyPointClassifier(
            cfg.classifier.model_path,
            frame_size=(cfg.display.width, cfg.display.height),
        )
    except FileNotFoundError as e:
        logger.warning("%s; gesture labels disabled", e)
        predictor = None
    except ImportError:
        logger.warning("tensorflow not installed (pip install handcalc[classifier]); gesture labels disabled")
        predictor = None

    if speech_output is None:
        if cfg.speech.enabled:
            speech_output = Pyttsx3SpeechOutput(rate=cfg.speech.rate, volume=cfg.speech.volume, lang=cfg.speech.lang)
        else:
            speech_output = SilentSpeechOutput()

    return GestureSession(
        classifier=GestureClassifier(predictor, labels=labels, debounce_s=cfg.classifier.debounce_s),
        announcer=SpeechAnnouncer(speech_output, lang=cfg.speech.lang),
        tracker=tracker,
        canvas_size=(cfg.display.width, cfg.display.height),
        operation=cfg.operation,
    )
