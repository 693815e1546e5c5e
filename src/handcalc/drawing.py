from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np

from .types import Box2, ExpressionResult, HandReport
from .utils import bbox_from_landmarks, to_pixel


HAND_CONNECTIONS: List[Tuple[int, int]] = [
    # thumb
    (0, 1),
    (1, 2),
    (2, 3),
    (3, 4),
    # index
    (0, 5),
    (5, 6),
    (6, 7),
    (7, 8),
    # middle
    (5, 9),
    (9, 10),
    (10, 11),
    (11, 12),
    # ring
    (9, 13),
    (13, 14),
    (14, 15),
    (15, 16),
    # pinky
    (13, 17),
    (17, 18),
    (18, 19),
    (19, 20),
    # palm base
    (0, 17),
]

# BGR
LABEL_COLOR = (0, 0, 255)
BOX_COLOR = (0, 0, 255)
CONNECTOR_COLOR = (255, 255, 0)
LANDMARK_COLOR = (41, 255, 255)
BANNER_FILL = (255, 255, 255)
BANNER_BORDER = (0, 0, 0)
BANNER_TEXT = (0, 0, 0)

FONT = cv2.FONT_HERSHEY_SIMPLEX


def to_hershey(text: str) -> str:
    """Hershey fonts only cover ASCII."""
    return text.replace("×", "x").encode("ascii", "replace").decode("ascii")


def draw_text(frame, text: str, org: Tuple[int, int], color=(255, 255, 255), scale=0.8, thickness=2):
    cv2.putText(frame, to_hershey(text), org, FONT, scale, color, thickness, cv2.LINE_AA)
    return frame


def draw_bbox(frame, bbox_px: Box2, color=BOX_COLOR, thickness=1):
    x0, y0, x1, y1 = bbox_px
    cv2.rectangle(frame, (x0, y0), (x1, y1), color, thickness)
    return frame


def draw_rounded_rect(frame, top_left: Tuple[int, int], size: Tuple[int, int], radius: int, fill, border, thickness: int):
    x, y = top_left
    w, h = size
    r = max(0, min(radius, w // 2, h // 2))

    # Fill: two overlapping rectangles plus the four corner discs.
    cv2.rectangle(frame, (x + r, y), (x + w - r, y + h), fill, -1)
    cv2.rectangle(frame, (x, y + r), (x + w, y + h - r), fill, -1)
    corners = [
        ((x + r, y + r), 180),
        ((x + w - r, y + r), 270),
        ((x + w - r, y + h - r), 0),
        ((x + r, y + h - r), 90),
    ]
    for center, _ in corners:
        cv2.circle(frame, center, r, fill, -1, cv2.LINE_AA)

    # Border: straight edges plus quarter arcs.
    cv2.line(frame, (x + r, y), (x + w - r, y), border, thickness, cv2.LINE_AA)
    cv2.line(frame, (x + r, y + h), (x + w - r, y + h), border, thickness, cv2.LINE_AA)
    cv2.line(frame, (x, y + r), (x, y + h - r), border, thickness, cv2.LINE_AA)
    cv2.line(frame, (x + w, y + r), (x + w, y + h - r), border, thickness, cv2.LINE_AA)
    for center, start in corners:
        cv2.ellipse(frame, center, (r, r), 0, start, start + 90, border, thickness, cv2.LINE_AA)
    return frame


class FrameRenderer:
    """
    Draws one frame of feedback onto a BGR canvas.

    Holds only styling; every call clears the canvas first, so rendering
    the same inputs twice gives the same pixels.
    """

    def __init__(
        self,
        label_scale: float = 0.8,
        banner_scale: float = 1.0,
        banner_padding: int = 20,
        banner_height: int = 50,
        banner_bottom_offset: int = 70,
        banner_radius: int = 12,
    ) -> None:
        self.label_scale = label_scale
        self.banner_scale = banner_scale
        self.banner_padding = banner_padding
        self.banner_height = banner_height
        self.banner_bottom_offset = banner_bottom_offset
        self.banner_radius = banner_radius

    def render(
        self,
        canvas: Optional[np.ndarray],
        image: Optional[np.ndarray],
        reports: Sequence[HandReport],
        expression: Optional[ExpressionResult] = None,
    ) -> None:
        if canvas is None:
            return

        h, w = canvas.shape[:2]
        canvas[:] = 0
        if image is not None:
            if image.ndim == 2:
                image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
            canvas[:] = cv2.resize(image, (w, h), interpolation=cv2.INTER_LINEAR)

        for report in reports:
            self._draw_hand(canvas, report, w, h)

        if expression is not None:
            self._draw_banner(canvas, expression.banner_text, w, h)

    def _draw_hand(self, canvas: np.ndarray, report: HandReport, w: int, h: int) -> None:
        landmarks = report.observation.landmarks
        bbox = bbox_from_landmarks(landmarks, w, h)

        text = f"Gesture: {report.label} | Fingers: {report.finger_count}"
        draw_text(canvas, text, (bbox[0], bbox[1] - 15), LABEL_COLOR, self.label_scale, 2)
        draw_bbox(canvas, bbox, BOX_COLOR, 1)

        pts = [to_pixel(lm, w, h) for lm in landmarks]
        for a, b in HAND_CONNECTIONS:
            if a < len(pts) and b < len(pts):
                cv2.line(canvas, pts[a], pts[b], CONNECTOR_COLOR, 2, cv2.LINE_AA)
        for pt in pts:
            cv2.circle(canvas, pt, 3, LANDMARK_COLOR, -1, lineType=cv2.LINE_AA)

    def banner_rect(self, text: str, w: int, h: int) -> Box2:
        """Banner box (x0, y0, x1, y1), centered horizontally and sized to the text."""
        (text_w, _), _ = cv2.getTextSize(to_hershey(text), FONT, self.banner_scale, 2)
        x0 = int((w - text_w) / 2) - self.banner_padding
        y0 = h - self.banner_bottom_offset
        return (x0, y0, x0 + text_w + 2 * self.banner_padding, y0 + self.banner_height)

    def _draw_banner(self, canvas: np.ndarray, text: str, w: int, h: int) -> None:
        x0, y0, x1, y1 = self.banner_rect(text, w, h)
        draw_rounded_rect(
            canvas,
            (x0, y0),
            (x1 - x0, y1 - y0),
            self.banner_radius,
            BANNER_FILL,
            BANNER_BORDER,
            3,
        )
        draw_text(canvas, text, (x0 + self.banner_padding, y0 + 35), BANNER_TEXT, self.banner_scale, 2)
