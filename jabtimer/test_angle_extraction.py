import json
import math
from types import SimpleNamespace

import pytest

pytest.importorskip("cv2")
pytest.importorskip("mediapipe")

from jabtimer import angle_extraction  # noqa: E402
from jabtimer.angle_data import Sample  # noqa: E402
from jabtimer.angle_extraction import calculate_angle, extract_angle_samples, limb_angle, main  # noqa: E402


def landmarks_with(points, visibility=0.9):
    """33 MediaPipe-like landmarks, overriding the given indices with (x, y)"""
    landmarks = [SimpleNamespace(x=0.0, y=0.0, visibility=visibility) for _ in range(33)]
    for index, (x, y) in points.items():
        landmarks[index] = SimpleNamespace(x=x, y=y, visibility=visibility)
    return landmarks


def test_calculate_angle():
    assert calculate_angle([1, 0], [0, 0], [0, 1]) == pytest.approx(90.0)
    assert calculate_angle([-1, 0], [0, 0], [1, 0]) == pytest.approx(180.0)
    assert calculate_angle([1, 1], [0, 0], [1, 1]) == pytest.approx(0.0, abs=1e-6)
    assert math.isnan(calculate_angle([0, 0], [0, 0], [1, 0]))


def test_limb_angle_uses_shoulder_elbow_wrist():
    landmarks = landmarks_with({11: (0.0, 0.0), 13: (0.0, 1.0), 15: (1.0, 1.0),
                                12: (0.0, 0.0), 14: (1.0, 0.0), 16: (2.0, 0.0)})

    assert limb_angle(landmarks, "left") == pytest.approx(90.0)
    assert limb_angle(landmarks, "right") == pytest.approx(180.0)


def test_limb_angle_low_confidence_is_absent():
    landmarks = landmarks_with({11: (0.0, 0.0), 13: (0.0, 1.0), 15: (1.0, 1.0)}, visibility=0.5)
    assert limb_angle(landmarks, "left", min_confidence=0.5) is None


def test_unreadable_video(tmp_path):
    with pytest.raises(OSError):
        extract_angle_samples(str(tmp_path / "missing.mp4"))


def test_cli_missing_video(tmp_path):
    assert main([str(tmp_path / "missing.mp4")]) == 1


def test_cli_reads_min_confidence_from_config(tmp_path, monkeypatch):
    video = tmp_path / "clip.mp4"
    video.write_bytes(b"")
    config = tmp_path / "detection.json"
    config.write_text(json.dumps({"min_confidence": 0.8}))
    output = tmp_path / "clip.txt"
    seen = []

    def fake_extract(path, min_confidence):
        seen.append(min_confidence)
        return [Sample(0.0, 1, 90.0, None)]

    monkeypatch.setattr(angle_extraction, "extract_angle_samples", fake_extract)

    assert main([str(video), "--config", str(config), "--output", str(output)]) == 0
    assert main([str(video), "--config", str(config), "--min-confidence", "0.3",
                 "--output", str(output)]) == 0
    assert main([str(video), "--output", str(output)]) == 0
    assert seen == [0.8, 0.3, 0.5]
    assert output.read_text(encoding="utf-8").splitlines()[-1] == "00:00:00.000,      1, 90.0, NaN"


def test_cli_rejects_bad_confidence(tmp_path):
    video = tmp_path / "clip.mp4"
    video.write_bytes(b"")
    assert main([str(video), "--min-confidence", "2"]) == 1
