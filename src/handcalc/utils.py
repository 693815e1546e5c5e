from __future__ import annotations

from typing import Iterable, Tuple

from .types import Box2, Handedness, Landmark


NUMBER_WORDS = (
    "zero",
    "one",
    "two",
    "three",
    "four",
    "five",
    "six",
    "seven",
    "eight",
    "nine",
    "ten",
)


def clamp_int(v: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, v))


def number_to_words(n: int) -> str:
    """Spell out 0..10; anything else (negatives included) stays as digits."""
    if 0 <= n < len(NUMBER_WORDS):
        return NUMBER_WORDS[n]
    return str(n)


def parse_handedness(label) -> Handedness:
    if isinstance(label, Handedness):
        return label
    if isinstance(label, str) and label.strip().lower() == "left":
        return Handedness.LEFT
    return Handedness.RIGHT


def bbox_from_landmarks(landmarks: Iterable[Landmark], width: int, height: int) -> Box2:
    """Pixel bounding box of normalized landmarks on a `width` x `height` target."""
    xs = []
    ys = []
    for lm in landmarks:
        xs.append(lm.x)
        ys.append(lm.y)
    if not xs:
        return (0, 0, 0, 0)
    return (
        int(round(min(xs) * width)),
        int(round(min(ys) * height)),
        int(round(max(xs) * width)),
        int(round(max(ys) * height)),
    )


def to_pixel(lm: Landmark, width: int, height: int) -> Tuple[int, int]:
    x_px = clamp_int(int(round(lm.x * width)), 0, width - 1)
    y_px = clamp_int(int(round(lm.y * height)), 0, height - 1)
    return (x_px, y_px)
