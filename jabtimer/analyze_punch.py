import argparse
import json
import logging
import sys

import numpy as np

from jabtimer.angle_data import format_timestamp, load_angle_file
from jabtimer.detection_config import create_detection_config, load_detection_config
from jabtimer.punch_segmentation import LIMBS, detect_series_punches, limb_series, summarize_punches

logger = logging.getLogger(__name__)

DEFAULT_ANGLE_FILE = "annie_jab.txt"


def convert_numpy_types(obj):
    """Convert numpy types to Python native types for JSON serialization"""
    if isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, np.bool_):
        return bool(obj)
    elif isinstance(obj, np.ndarray):
        return obj.tolist()
    elif isinstance(obj, dict):
        return {key: convert_numpy_types(value) for key, value in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [convert_numpy_types(item) for item in obj]
    return obj


def format_report(punches, summary):
    """Render the punch list and per-limb summary as plain text"""
    lines = [
        "=== PUNCH ANALYSIS RESULTS ===",
        f"Found {len(punches)} significant punch motions",
        "",
    ]

    for number, punch in enumerate(punches, start=1):
        lines.extend([
            f"Punch #{number} ({punch.limb.capitalize()} arm):",
            f"  Min angle: {punch.min_angle:.1f}° at {format_timestamp(punch.min_time)}",
            f"  Max angle: {punch.max_angle:.1f}° at {format_timestamp(punch.max_time)}",
            f"  Duration: {punch.duration:.3f}s",
            f"  Angle change: {punch.angle_change:.1f}°",
            f"  Speed: {punch.angular_speed:.1f}°/s",
            "",
        ])

    lines.append("=== SUMMARY ===")
    for limb in LIMBS:
        limb_summary = summary[limb]
        lines.append(f"{limb.capitalize()} arm punches: {limb_summary.count}")
        if limb_summary.count:
            lines.append(f"  Average speed: {limb_summary.mean_speed:.1f}°/s")
            lines.append(f"  Max speed: {limb_summary.max_speed:.1f}°/s")

    return "\n".join(lines)


def build_analysis(samples, config):
    """Run detection on both limbs and collect a JSON-ready result"""
    series = {limb: limb_series(samples, limb) for limb in LIMBS}
    punches = []
    for limb in LIMBS:
        punches.extend(detect_series_punches(
            series[limb],
            threshold=config["threshold_deg"],
            max_lookahead=config["max_lookahead"],
            capture_tail=config["capture_tail"],
            min_samples=config["min_samples"],
        ))
    summary = summarize_punches(punches)

    result = {
        "success": True,
        "total_samples": len(samples),
        "analyzed_samples": {limb: len(s) for limb, s in series.items()},
        "settings": {key: config[key] for key in ("threshold_deg", "max_lookahead",
                                                   "min_samples", "capture_tail")},
        "punches": [vars(p) for p in punches],
        "summary": {limb: vars(s) for limb, s in summary.items()},
    }
    return convert_numpy_types(result), punches, summary


def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="Detect punches in an elbow-angle time series")
    ap.add_argument("path", nargs="?", default=DEFAULT_ANGLE_FILE, help="Angle data file")
    ap.add_argument("--config", help="JSON file with detection settings")
    ap.add_argument("--threshold", type=float, help="Minimum angle swing in degrees")
    ap.add_argument("--lookahead", type=int, help="Detection window length in samples")
    ap.add_argument("--capture-tail", action="store_true",
                    help="Also look for punches starting in the last window of the series")
    ap.add_argument("--json", action="store_true", help="Print JSON instead of the text report")
    ap.add_argument("--verbose", "-v", action="store_true")
    return ap.parse_args(argv)


def resolve_config(args):
    base = load_detection_config(args.config) if args.config else create_detection_config()

    overrides = {}
    if args.threshold is not None:
        overrides["threshold_deg"] = args.threshold
    if args.lookahead is not None:
        overrides["max_lookahead"] = args.lookahead
    if args.capture_tail:
        overrides["capture_tail"] = True

    base.update(overrides)
    return create_detection_config(**base)


def report_error(message, as_json):
    if as_json:
        print(json.dumps({"error": message}))
    else:
        print(f"Error: {message}", file=sys.stderr)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        config = resolve_config(args)
    except (OSError, ValueError) as e:
        report_error(f"Invalid detection settings: {e}", args.json)
        return 1

    try:
        samples = load_angle_file(args.path)
    except (OSError, UnicodeDecodeError) as e:
        report_error(f"Could not read {args.path}: {e}", args.json)
        return 1

    result, punches, summary = build_analysis(samples, config)

    if args.json:
        print(json.dumps(result, indent=2))
    else:
        print(format_report(punches, summary))
    return 0


if __name__ == "__main__":
    sys.exit(main())
