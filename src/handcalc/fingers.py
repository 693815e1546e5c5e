from __future__ import annotations

from .types import FINGER_TIPS, THUMB_CMC, THUMB_IP, THUMB_TIP, Handedness, HandObservation
from .utils import parse_handedness


def is_thumb_extended(observation: HandObservation) -> bool:
    """
    Horizontal thumb test.

    The camera feed is mirrored (selfie view), so a Right hand's open thumb
    points towards smaller x and a Left hand's towards larger x.
    """
    lms = observation.landmarks
    tip = lms[THUMB_TIP].x
    ip = lms[THUMB_IP].x
    cmc = lms[THUMB_CMC].x

    if parse_handedness(observation.handedness) is Handedness.LEFT:
        return tip > ip and tip > cmc
    return tip < ip and tip < cmc


def count_extended_fingers(observation: HandObservation) -> int:
    """
    Count extended fingers (0..5) of a single hand.

    A non-thumb finger counts when its tip sits strictly above its PIP joint
    (image y grows downwards). Each frame is evaluated on its own; counts can
    jitter when a finger is half bent.
    """
    lms = observation.landmarks
    count = 0
    for tip in FINGER_TIPS:
        if lms[tip].y < lms[tip - 2].y:
            count += 1
    if is_thumb_extended(observation):
        count += 1
    return count
