"""
Configuration for the gesture calculator.

Every setting has a default; a YAML file only needs the keys it changes.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .classifier import DEFAULT_LABELS
from .expression import parse_operation
from .types import Operation


@dataclass
class TrackerConfig:
    """MediaPipe Hands settings."""
    max_num_hands: int = 2
    model_complexity: int = 1
    min_detection_confidence: float = 0.6
    min_tracking_confidence: float = 0.6
    tasks_model_path: str = "models/hand_landmarker.task"


@dataclass
class ClassifierConfig:
    """Keypoint classifier settings."""
    model_path: str = "models/keypoint_classifier.tflite"
    label_path: Optional[str] = None
    labels: List[str] = field(default_factory=lambda: list(DEFAULT_LABELS))
    debounce_s: float = 0.5


@dataclass
class SpeechConfig:
    """Spoken result settings."""
    enabled: bool = True
    lang: str = "en-IN"
    rate: int = 175
    volume: float = 1.0


@dataclass
class DisplayConfig:
    """Canvas settings."""
    width: int = 1280
    height: int = 720
    window_name: str = "handcalc"
    mirror: bool = True


@dataclass
class AppConfig:
    """Main configuration class."""
    tracker: TrackerConfig = field(default_factory=TrackerConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    speech: SpeechConfig = field(default_factory=SpeechConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    operation: Operation = Operation.ADD

    def __post_init__(self) -> None:
        self.operation = parse_operation(self.operation)
        _validate(self)


def load_config(path: Optional[str] = None) -> AppConfig:
    """
    Load configuration from a YAML file.

    Args:
        path: Path to config file. If None, the defaults are returned.

    Returns:
        Configuration object with all settings
    """
    if path is None:
        return AppConfig()

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")
    return _dict_to_config(data)


def _dict_to_config(data: Dict[str, Any]) -> AppConfig:
    """Overlay a (possibly partial) dictionary on the defaults."""
    cfg = AppConfig()
    for key, value in data.items():
        if not hasattr(cfg, key):
            raise ValueError(f"Unknown config section '{key}'")
        current = getattr(cfg, key)
        if is_dataclass(current):
            if not isinstance(value, dict):
                raise ValueError(f"Config section '{key}' must be a mapping")
            _overlay(current, value, key)
        else:
            setattr(cfg, key, value)

    cfg.operation = parse_operation(cfg.operation)
    _validate(cfg)
    return cfg


def _overlay(target: Any, values: Dict[str, Any], section: str) -> None:
    known = {f.name for f in fields(target)}
    for key, value in values.items():
        if key not in known:
            raise ValueError(f"Unknown config key '{section}.{key}'")
        setattr(target, key, _checked(f"{section}.{key}", getattr(target, key), value))


def _checked(name: str, default: Any, value: Any) -> Any:
    """Type-check `value` against the default it replaces."""
    if isinstance(default, bool):
        ok = isinstance(value, bool)
        expected = "a boolean"
    elif isinstance(default, int):
        ok = isinstance(value, int) and not isinstance(value, bool)
        expected = "an integer"
    elif isinstance(default, float):
        ok = isinstance(value, (int, float)) and not isinstance(value, bool)
        expected = "a number"
        if ok:
            value = float(value)
    elif isinstance(default, list):
        ok = isinstance(value, list) and all(isinstance(v, str) for v in value)
        expected = "a list of strings"
    else:
        # str settings, and optional paths that default to None
        ok = isinstance(value, str) or (default is None and value is None)
        expected = "a string"
    if not ok:
        raise ValueError(f"config key '{name}' must be {expected}, got {value!r}")
    return value


def _validate(cfg: AppConfig) -> None:
    t = cfg.tracker
    if t.max_num_hands < 1:
        raise ValueError("tracker.max_num_hands must be >= 1")
    for name in ("min_detection_confidence", "min_tracking_confidence"):
        value = getattr(t, name)
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"tracker.{name} must be within [0, 1], got {value}")
    if cfg.classifier.debounce_s < 0:
        raise ValueError("classifier.debounce_s must be >= 0")
    if not cfg.classifier.labels:
        raise ValueError("classifier.labels must not be empty")
    if cfg.display.width <= 0 or cfg.display.height <= 0:
        raise ValueError("display.width and display.height must be positive")
