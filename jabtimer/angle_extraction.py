import argparse
import logging
import math
import os
import sys

import cv2
import numpy as np

from jabtimer.angle_data import Sample, write_angle_file
from jabtimer.detection_config import MIN_CONFIDENCE, create_detection_config, load_detection_config

# Suppress MediaPipe warnings
os.environ['TF_CPP_MIN_LOG_LEVEL'] = '3'
logging.getLogger('mediapipe').setLevel(logging.ERROR)

try:
    import mediapipe as mp
except Exception as e:
    raise SystemExit("Please install mediapipe: pip install mediapipe==0.10.*") from e

logger = logging.getLogger(__name__)

DEFAULT_VIDEO = "IMG_1569.mp4"

# MediaPipe Pose landmark indices (shoulder, elbow, wrist)
ARM_LANDMARKS = {
    "left": (11, 13, 15),
    "right": (12, 14, 16),
}


def calculate_angle(a, b, c):
    """Angle at b between b->a and b->c, in degrees (0-180). NaN if degenerate."""
    a = np.array(a, dtype=float)
    b = np.array(b, dtype=float)
    c = np.array(c, dtype=float)

    ba = a - b
    bc = c - b
    norm_ba = np.linalg.norm(ba)
    norm_bc = np.linalg.norm(bc)
    if norm_ba == 0 or norm_bc == 0:
        return math.nan

    cos_angle = np.clip(np.dot(ba, bc) / (norm_ba * norm_bc), -1.0, 1.0)
    return float(np.degrees(np.arccos(cos_angle)))


def limb_angle(landmarks, limb, min_confidence=MIN_CONFIDENCE):
    """Elbow angle for one arm, or None when a joint is not confidently visible"""
    points = []
    for index in ARM_LANDMARKS[limb]:
        landmark = landmarks[index]
        if landmark.visibility <= min_confidence:
            return None
        points.append([float(landmark.x), float(landmark.y)])

    angle = calculate_angle(*points)
    return None if math.isnan(angle) else angle


def extract_angle_samples(video_path, min_confidence=MIN_CONFIDENCE):
    """
    Run MediaPipe Pose over a video and collect both elbow angles per frame.

    Frames where no pose is found are left out. Frame numbers start at 1 and
    timestamps come from the capture position.

    Args:
        video_path: Path to the video file
        min_confidence: Landmark visibility a joint needs to be used

    Returns:
        List of Sample
    """
    cap = cv2.VideoCapture(video_path)
    if not cap.isOpened():
        raise OSError(f"Could not open video file: {video_path}")

    fps = float(cap.get(cv2.CAP_PROP_FPS)) or 30.0
    pose = mp.solutions.pose.Pose(
        static_image_mode=False,
        model_complexity=1,
        smooth_landmarks=True,
        min_detection_confidence=0.5,
        min_tracking_confidence=0.5
    )

    logger.info("Processing %s at %.1f FPS...", video_path, fps)

    samples = []
    frame_count = 0
    try:
        while True:
            ret, frame = cap.read()
            if not ret:
                break
            frame_count += 1

            position_ms = cap.get(cv2.CAP_PROP_POS_MSEC)
            timestamp = position_ms / 1000.0 if position_ms > 0 else (frame_count - 1) / fps

            rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            results = pose.process(rgb_frame)
            if not results.pose_landmarks:
                continue

            landmarks = results.pose_landmarks.landmark
            samples.append(Sample(
                timestamp=timestamp,
                frame=frame_count,
                left_angle=limb_angle(landmarks, "left", min_confidence),
                right_angle=limb_angle(landmarks, "right", min_confidence),
            ))
    finally:
        cap.release()
        pose.close()

    logger.info("Processed %d frames, %d with pose data", frame_count, len(samples))
    return samples


def main(argv=None):
    ap = argparse.ArgumentParser(description="Extract elbow angles from a video into an angle data file")
    ap.add_argument("video", nargs="?", default=DEFAULT_VIDEO)
    ap.add_argument("--output", help="Angle data file (default: video path with .txt)")
    ap.add_argument("--config", help="JSON file with detection settings (min_confidence is used)")
    ap.add_argument("--min-confidence", type=float, help=f"Landmark visibility threshold (default {MIN_CONFIDENCE})")
    ap.add_argument("--verbose", "-v", action="store_true")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        config = load_detection_config(args.config) if args.config else create_detection_config()
        if args.min_confidence is not None:
            config = create_detection_config(**dict(config, min_confidence=args.min_confidence))
    except (OSError, ValueError) as e:
        print(f"Error: invalid detection settings: {e}", file=sys.stderr)
        return 1

    if not os.path.isfile(args.video):
        print(f"Error: video not found at {args.video}", file=sys.stderr)
        return 1

    output = args.output or os.path.splitext(args.video)[0] + ".txt"

    try:
        samples = extract_angle_samples(args.video, config["min_confidence"])
        write_angle_file(samples, output, source_name=os.path.basename(args.video))
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Saved {len(samples)} frames to {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
