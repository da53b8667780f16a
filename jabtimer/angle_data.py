import logging
import math
import os
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

NAN_TOKEN = "NaN"
COMMENT_PREFIX = "#"
MIN_FIELDS = 4


class AngleFormatError(ValueError):
    """A single line of angle data could not be turned into a Sample"""


@dataclass(frozen=True)
class Sample:
    """One frame's elbow angles. A missing angle is None, never 0."""
    timestamp: float
    frame: int
    left_angle: Optional[float]
    right_angle: Optional[float]

    def angle(self, limb):
        if limb == "left":
            return self.left_angle
        if limb == "right":
            return self.right_angle
        raise ValueError(f"Unknown limb: {limb!r}")


def _to_float(text, default):
    try:
        return float(text)
    except ValueError:
        return default


def parse_timestamp(text):
    """Convert HH:MM:SS.fff into elapsed seconds.

    The clock must have three colon-separated parts; a part that is not a
    finite number counts as 0.
    """
    parts = text.strip().split(":")
    if len(parts) != 3:
        raise AngleFormatError(f"Bad timestamp: {text!r}")

    hours, minutes, seconds = (_clock_part(p) for p in parts)
    total = hours * 3600 + minutes * 60 + seconds
    if not math.isfinite(total):
        raise AngleFormatError(f"Timestamp out of range: {text!r}")
    return total


def _clock_part(text):
    value = _to_float(text, 0.0)
    return value if math.isfinite(value) else 0.0


def parse_angle(text):
    if text == NAN_TOKEN:
        return None
    value = _to_float(text, None)
    if value is None or not math.isfinite(value):
        return None
    return value


def parse_angle_line(line):
    """Parse one data line: `HH:MM:SS.fff, frame, left, right`"""
    fields = [field.strip() for field in line.split(",")]
    if len(fields) < MIN_FIELDS:
        raise AngleFormatError(f"Expected {MIN_FIELDS} fields, got {len(fields)}")

    try:
        frame = int(fields[1])
    except ValueError:
        raise AngleFormatError(f"Bad frame index: {fields[1]!r}") from None

    return Sample(
        timestamp=parse_timestamp(fields[0]),
        frame=frame,
        left_angle=parse_angle(fields[2]),
        right_angle=parse_angle(fields[3]),
    )


def parse_angle_data(text):
    """
    Parse angle-data text into samples, in file order.

    Comment and blank lines are ignored. Malformed lines are dropped one by
    one, so a partly corrupt file still yields every good record.

    Args:
        text: Full contents of an angle-data file

    Returns:
        List of Sample
    """
    samples = []
    skipped = 0

    for line_number, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith(COMMENT_PREFIX):
            continue

        try:
            samples.append(parse_angle_line(line))
        except AngleFormatError as e:
            skipped += 1
            logger.debug("Skipping line %d: %s", line_number, e)

    if skipped:
        logger.info("Skipped %d malformed lines", skipped)
    return samples


def load_angle_file(path):
    """Read and parse an angle-data file. I/O errors are left to the caller."""
    with open(path, encoding="utf-8") as f:
        samples = parse_angle_data(f.read())
    logger.info("Loaded %d samples from %s", len(samples), path)
    return samples


def format_timestamp(seconds):
    millis = int(round(seconds * 1000))
    hours, millis = divmod(millis, 3600 * 1000)
    minutes, millis = divmod(millis, 60 * 1000)
    return f"{hours:02d}:{minutes:02d}:{millis / 1000:06.3f}"


def format_angle(angle):
    return NAN_TOKEN if angle is None else f"{angle:.1f}"


def format_sample(sample):
    return (f"{format_timestamp(sample.timestamp)}, {sample.frame:6d}, "
            f"{format_angle(sample.left_angle)}, {format_angle(sample.right_angle)}")


def write_angle_file(samples, path, source_name=None):
    """Write samples in the angle-data format, with the usual header"""
    if source_name is None:
        source_name = os.path.basename(path)

    with open(path, "w", encoding="utf-8") as f:
        f.write(f"# Angles for {source_name}\n")
        f.write("# time, frame, left_elbow_deg, right_elbow_deg\n")
        for sample in samples:
            f.write(format_sample(sample) + "\n")

    logger.info("Wrote %d samples to %s", len(samples), path)
