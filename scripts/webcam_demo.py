from __future__ import annotations

import argparse
import logging
import os
import platform
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
from handcalc.types import Operation  # noqa: E402


OPERATION_KEYS = {
    ord("+"): Operation.ADD,
    ord("a"): Operation.ADD,
    ord("-"): Operation.SUBTRACT,
    ord("s"): Operation.SUBTRACT,
    ord("*"): Operation.MULTIPLY,
    ord("m"): Operation.MULTIPLY,
}


def main() -> int:
    ap = argparse.ArgumentParser(description="Count fingers on two hands and speak the arithmetic result.")
    ap.add_argument("--config", default=None, help="YAML config file (default: built-in defaults)")
    ap.add_argument("--camera", type=int, default=0, help="Camera index (default: 0)")
    ap.add_argument("--width", type=int, default=None, help="Canvas/capture width")
    ap.add_argument("--height", type=int, default=None, help="Canvas/capture height")
    ap.add_argument("--operation", default=None, help="add | subtract | multiply")
    ap.add_argument("--model", default=None, help="Keypoint classifier .tflite model")
    ap.add_argument("--labels", default=None, help="Keypoint classifier label CSV")
    ap.add_argument("--mute", action="store_true", help="Disable spoken results")
    ap.add_argument(
        "--no-mirror",
        action="store_true",
        help="Disable horizontal mirroring (default is mirrored/selfie mode)",
    )
    ap.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    args = ap.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    cfg = load_config(args.config)
    if args.width:
        cfg.display.width = args.width
    if args.height:
        cfg.display.height = args.height
    if args.operation:
        cfg.operation = args.operation
    if args.model:
        cfg.classifier.model_path = args.model
    if args.labels:
        cfg.classifier.label_path = args.labels
    if args.mute:
        cfg.speech.enabled = False
    if args.no_mirror:
        cfg.display.mirror = False

    if platform.system() == "Darwin":
        cap = cv2.VideoCapture(args.camera, cv2.CAP_AVFOUNDATION)
    else:
        cap = cv2.VideoCapture(args.camera)
    if not cap.isOpened():
        raise RuntimeError(
            f"Could not open camera index {args.camera}. "
            "On macOS: System Settings -> Privacy & Security -> Camera -> allow your terminal."
        )

    cap.set(cv2.CAP_PROP_FRAME_WIDTH, cfg.display.width)
    cap.set(cv2.CAP_PROP_FRAME_HEIGHT, cfg.display.height)

    t = cfg.tracker
    with HandTracker(
        max_num_hands=t.max_num_hands,
        model_complexity=t.model_complexity,
        min_detection_confidence=t.min_detection_confidence,
        min_tracking_confidence=t.min_tracking_confidence,
        tasks_model_path=t.tasks_model_path,
    ) as tracker:
        session = create_session(cfg, tracker=tracker)
        speech_output = session.announcer.output
        try:
            # Bring the TTS engine up before the first frame, not on the first result.
            start = getattr(speech_output, "start", None)
            if start is not None:
                try:
                    start()
                except RuntimeError as e:
                    logging.getLogger("webcam_demo").warning("%s; results will not be spoken", e)
            with session:
                while True:
                    ok, frame = cap.read()
                    if not ok:
                        break

                    if cfg.display.mirror:
                        frame = cv2.flip(frame, 1)

                    result = session.handle_frame(frame)
                    for warning in result.warnings:
                        logging.getLogger("webcam_demo").warning("%s", warning)

                    canvas = session.canvas
                    cv2.putText(
                        canvas,
                        f"op: {session.operation.value} | +/-/* to change | q to quit",
                        (12, 28),
                        cv2.FONT_HERSHEY_SIMPLEX,
                        0.7,
                        (255, 255, 255),
                        2,
                        cv2.LINE_AA,
                    )
                    cv2.imshow(cfg.display.window_name, canvas)

                    key = cv2.waitKey(1) & 0xFF
                    if key in (ord("q"), 27):
                        break
                    if key in OPERATION_KEYS:
                        session.set_operation(OPERATION_KEYS[key])
        finally:
            stop = getattr(speech_output, "stop", None)
            if stop is not None:
                stop()

    cap.release()
    cv2.destroyAllWindows()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
