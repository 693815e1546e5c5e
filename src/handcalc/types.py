from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


Box2 = Tuple[int, int, int, int]  # (x_min, y_min, x_max, y_max)

THUMB_CMC = 1
THUMB_IP = 3
THUMB_TIP = 4
FINGER_TIPS = (8, 12, 16, 20)  # index, middle, ring, pinky


class Handedness(str, Enum):
    LEFT = "Left"
    RIGHT = "Right"


class Operation(str, Enum):
    ADD = "add"
    SUBTRACT = "subtract"
    MULTIPLY = "multiply"


class SessionState(str, Enum):
    IDLE = "idle"
    TRACKING = "tracking"


@dataclass(frozen=True)
class Landmark:
    """A single hand landmark, normalized to the frame (0..1)."""

    x: float
    y: float
    z: float = 0.0


@dataclass(frozen=True)
class HandObservation:
    """One detected hand for a single frame."""

    landmarks: List[Landmark]  # length 21
    handedness: Handedness = Handedness.RIGHT
    score: Optional[float] = None


@dataclass
class HandSlotState:
    """Classification state kept per detection-order slot across frames."""

    last_gesture_label: Optional[str] = None
    last_classified_at: Optional[float] = None


@dataclass(frozen=True)
class ExpressionResult:
    left_count: int
    right_count: int
    operator_symbol: str
    operator_word: str
    result: int
    sentence: str

    @property
    def symbolic(self) -> str:
        return f"{self.left_count} {self.operator_symbol} {self.right_count}"

    @property
    def banner_text(self) -> str:
        return f"Expression: {self.symbolic} = {self.result}"


@dataclass(frozen=True)
class HandReport:
    """Per-hand output of one frame: what was drawn next to the hand."""

    observation: HandObservation
    label: str
    finger_count: int


@dataclass
class FrameResult:
    hands: List[HandReport] = field(default_factory=list)
    expression: Optional[ExpressionResult] = None
    spoken: bool = False
    warnings: List[str] = field(default_factory=list)
