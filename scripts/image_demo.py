from __future__ import annotations

import argparse
import logging
import os
import sys

import cv2

# Allow running without installing the package (repo-local usage).
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_ROOT = os.path.join(REPO_ROOT, "src")
if SRC_ROOT not in sys.path:
    sys.path.insert(0, SRC_ROOT)

from handcalc.config import load_config  # noqa: E402
from handcalc.detector import HandTracker  # noqa: E402
from handcalc.session import create_session  # noqa: E402
from handcalc.speech import SilentSpeechOutput  # noqa: E402


def main() -> int:
    ap = argparse.ArgumentParser(description="Finger arithmetic on a single image.")
    ap.add_argument("--image", required=True, help="Path to input image")
    ap.add_argument("--out", required=True, help="Path to output image (annotated)")
    ap.add_argument("--config", default=None, help="YAML config file")
    ap.add_argument("--operation", default=None, help="add | subtract | multiply")
    ap.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    args = ap.parse_args()

    logging.basicConfig(level=args.log_level.upper())

    frame = cv2.imread(args.image)
    if frame is None:
        raise RuntimeError(f"Could not read image: {args.image}")

    cfg = load_config(args.config)
    if args.operation:
        cfg.operation = args.operation
    h, w = frame.shape[:2]
    cfg.display.width, cfg.display.height = w, h

    t = cfg.tracker
    with HandTracker(
        max_num_hands=t.max_num_hands,
        model_complexity=t.model_complexity,
        min_detection_confidence=t.min_detection_confidence,
        min_tracking_confidence=t.min_tracking_confidence,
        static_image_mode=True,
        tasks_model_path=t.tasks_model_path,
    ) as tracker:
        with create_session(cfg, tracker=tracker, speech_output=SilentSpeechOutput()) as session:
            result = session.handle_frame(frame)
            ok = cv2.imwrite(args.out, session.canvas)

    if not ok:
        raise RuntimeError(f"Could not write output image: {args.out}")

    print(f"hands: {len(result.hands)}")
    for i, hand in enumerate(result.hands):
        print(
            f"[{i}] {hand.observation.handedness.value} score={hand.observation.score} "
            f"gesture={hand.label} fingers={hand.finger_count}"
        )
    if result.expression is not None:
        print(result.expression.banner_text)
        print(result.expression.sentence)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
