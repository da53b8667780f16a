import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)

LIMBS = ("left", "right")

PUNCH_THRESHOLD_DEG = 30.0  # minimum elbow swing inside one window
MAX_LOOKAHEAD = 30          # samples scanned after each candidate start
MIN_SAMPLES = 11            # present samples a limb needs before we scan it


@dataclass(frozen=True, eq=False)
class LimbSeries:
    """Present-only (timestamp, angle) pairs for one limb, as read-only arrays"""
    limb: str
    timestamps: np.ndarray
    angles: np.ndarray

    def __len__(self):
        return len(self.angles)

    @classmethod
    def from_pairs(cls, limb, pairs):
        pairs = list(pairs)
        timestamps = np.array([t for t, _ in pairs], dtype=float)
        angles = np.array([a for _, a in pairs], dtype=float)
        timestamps.setflags(write=False)
        angles.setflags(write=False)
        return cls(limb, timestamps, angles)


@dataclass(frozen=True)
class PunchEvent:
    limb: str
    min_angle: float
    max_angle: float
    min_time: float
    max_time: float
    duration: float
    angle_change: float
    angular_speed: float
    window_start: int
    window_end: int  # exclusive


@dataclass(frozen=True)
class LimbSummary:
    limb: str
    count: int
    mean_speed: Optional[float]
    max_speed: Optional[float]


def limb_series(samples, limb):
    """Pull the samples where `limb` has an angle, keeping their order"""
    if limb not in LIMBS:
        raise ValueError(f"Unknown limb: {limb!r}")

    pairs = [(s.timestamp, s.angle(limb)) for s in samples if s.angle(limb) is not None]
    return LimbSeries.from_pairs(limb, pairs)


def scan_limb_series(series, threshold=PUNCH_THRESHOLD_DEG, max_lookahead=MAX_LOOKAHEAD,
                     capture_tail=False):
    """
    Scan a limb series for punches using a bounded forward window.

    Every index is a candidate start. The window after it is searched for
    its lowest and highest angle (first occurrence wins on ties). A swing
    strictly larger than `threshold` is a punch, and scanning resumes at the
    end of that window so detections never overlap.

    By default only starts with a full window ahead of them are tried, so
    the last `max_lookahead` samples never begin a punch. With
    `capture_tail` the window shrinks near the end instead.

    Args:
        series: LimbSeries to scan
        threshold: Minimum angle swing in degrees
        max_lookahead: Window length in samples
        capture_tail: Also try starts whose window runs past the end

    Returns:
        List of PunchEvent in scan order
    """
    times = series.timestamps
    angles = series.angles
    n = len(series)
    last_start = n - 1 if capture_tail else n - max_lookahead

    punches = []
    i = 0
    while i < last_start:
        min_angle = max_angle = float(angles[i])
        min_time = max_time = float(times[i])

        end = min(i + max_lookahead, n)
        for j in range(i + 1, end):
            angle = float(angles[j])
            if angle > max_angle:
                max_angle, max_time = angle, float(times[j])
            if angle < min_angle:
                min_angle, min_time = angle, float(times[j])

        angle_change = abs(max_angle - min_angle)
        if angle_change > threshold:
            duration = abs(max_time - min_time)
            speed = angle_change / duration if duration > 0 else 0.0
            punches.append(PunchEvent(
                limb=series.limb,
                min_angle=min_angle,
                max_angle=max_angle,
                min_time=min_time,
                max_time=max_time,
                duration=duration,
                angle_change=angle_change,
                angular_speed=speed,
                window_start=i,
                window_end=end,
            ))
            logger.debug("%s punch: samples %d-%d, %.1f deg in %.3fs",
                         series.limb, i, end - 1, angle_change, duration)
            i = end
        else:
            i += 1

    return punches


def detect_series_punches(series, threshold=PUNCH_THRESHOLD_DEG, max_lookahead=MAX_LOOKAHEAD,
                          capture_tail=False, min_samples=MIN_SAMPLES):
    """Scan an already built limb series. Too little data gives an empty list."""
    limb = series.limb
    if len(series) < min_samples:
        logger.info("Not enough %s arm data: %d samples (need %d)", limb, len(series), min_samples)
        return []

    logger.info("Analyzing %d %s arm samples for punch detection...", len(series), limb)
    punches = scan_limb_series(series, threshold, max_lookahead, capture_tail)
    logger.info("Found %d %s arm punches", len(punches), limb)
    return punches


def detect_punches(samples, limb, threshold=PUNCH_THRESHOLD_DEG, max_lookahead=MAX_LOOKAHEAD,
                   capture_tail=False, min_samples=MIN_SAMPLES):
    """Detect punches for one limb"""
    return detect_series_punches(limb_series(samples, limb), threshold, max_lookahead,
                                 capture_tail, min_samples)


def find_punches(samples, threshold=PUNCH_THRESHOLD_DEG, max_lookahead=MAX_LOOKAHEAD,
                 capture_tail=False, min_samples=MIN_SAMPLES):
    """Left arm punches followed by right arm punches"""
    punches = []
    for limb in LIMBS:
        punches.extend(detect_punches(samples, limb, threshold, max_lookahead,
                                      capture_tail, min_samples))
    return punches


def summarize_punches(punches):
    """Count, mean speed and max speed per limb. Speeds are None for a limb with no punches."""
    summary = {}
    for limb in LIMBS:
        speeds = np.array([p.angular_speed for p in punches if p.limb == limb], dtype=float)
        if len(speeds) == 0:
            summary[limb] = LimbSummary(limb, 0, None, None)
        else:
            summary[limb] = LimbSummary(limb, len(speeds), float(np.mean(speeds)), float(np.max(speeds)))
    return summary
