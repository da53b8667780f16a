import json
import logging
import math

from jabtimer.punch_segmentation import MAX_LOOKAHEAD, MIN_SAMPLES, PUNCH_THRESHOLD_DEG

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 0.5  # landmark visibility a joint needs during extraction

DEFAULT_DETECTION_CONFIG = {
    "threshold_deg": PUNCH_THRESHOLD_DEG,  # elbow swing that counts as a punch
    "max_lookahead": MAX_LOOKAHEAD,        # samples per detection window
    "min_samples": MIN_SAMPLES,            # per limb, below this nothing is scanned
    "capture_tail": False,                 # shrink the window near the end of the series
    "min_confidence": MIN_CONFIDENCE,
}


def create_detection_config(**overrides):
    """Defaults with `overrides` applied and checked"""
    unknown = set(overrides) - set(DEFAULT_DETECTION_CONFIG)
    if unknown:
        raise ValueError(f"Unknown detection settings: {', '.join(sorted(unknown))}")

    config = dict(DEFAULT_DETECTION_CONFIG)
    config.update(overrides)

    try:
        config["threshold_deg"] = float(config["threshold_deg"])
        config["max_lookahead"] = int(config["max_lookahead"])
        config["min_samples"] = int(config["min_samples"])
        config["min_confidence"] = float(config["min_confidence"])
    except (TypeError, ValueError, OverflowError) as e:
        raise ValueError(f"Bad detection setting: {e}") from None

    if not isinstance(config["capture_tail"], bool):
        raise ValueError("capture_tail must be true or false")
    if not math.isfinite(config["threshold_deg"]):
        raise ValueError("threshold_deg must be a finite number")
    if config["threshold_deg"] < 0:
        raise ValueError("threshold_deg must not be negative")
    if config["max_lookahead"] < 1:
        raise ValueError("max_lookahead must be at least 1")
    if config["min_samples"] < 0:
        raise ValueError("min_samples must not be negative")
    if not 0.0 <= config["min_confidence"] <= 1.0:
        raise ValueError("min_confidence must be between 0 and 1")

    return config


def load_detection_config(path):
    """Read detection settings from a JSON file, on top of the defaults"""
    with open(path) as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Detection config must be a JSON object: {path}")

    config = create_detection_config(**data)
    logger.info("Loaded detection settings from %s", path)
    return config


def save_detection_config(config, path):
    with open(path, "w") as f:
        json.dump(config, f, indent=2)
    logger.info("Detection settings saved to %s", path)
