from __future__ import annotations

import threading
from dataclasses import replace

import pytest

from src.attendance_engine.attendance_engine.core.exceptions import NoFaceDetected, VerificationError, VerifierTimeout
from src.attendance_engine.attendance_engine.face.artifacts import probe_artifact
from src.attendance_engine.attendance_engine.face.verifier import (
    FaceMatch,
    FaceVerifierProvider,
    TimeoutFaceVerifier,
    distance_to_score,
)
from src.attendance_engine.attendance_engine.settings.model import AttendanceSettings


class BlockingVerifier:
    def __init__(self):
        self.release = threading.Event()

    def verify(self, probe_image_path, template):
        self.release.wait(5)
        return FaceMatch(is_match=True, score=1.0)


class RaisingVerifier:
    def __init__(self, error):
        self.error = error

    def verify(self, probe_image_path, template):
        raise self.error


@pytest.mark.parametrize("distance, score", [(0.0, 1.0), (0.4, 0.6), (1.0, 0.0), (1.7, 0.0)])
def test_distance_to_score(distance, score):
    assert distance_to_score(distance) == pytest.approx(score)


def test_timeout_surfaces_as_verifier_timeout():
    inner = BlockingVerifier()
    verifier = TimeoutFaceVerifier(inner, timeout_s=0.05)
    try:
        with pytest.raises(VerifierTimeout):
            verifier.verify("probe.jpg", [0.0])
    finally:
        inner.release.set()
        verifier.shutdown()


def test_domain_errors_pass_through():
    verifier = TimeoutFaceVerifier(RaisingVerifier(NoFaceDetected("none")), timeout_s=1)

    with pytest.raises(NoFaceDetected):
        verifier.verify("probe.jpg", [0.0])
    verifier.shutdown()


def test_unexpected_errors_become_verification_error():
    verifier = TimeoutFaceVerifier(RaisingVerifier(RuntimeError("dlib exploded")), timeout_s=1)

    with pytest.raises(VerificationError):
        verifier.verify("probe.jpg", [0.0])
    verifier.shutdown()


def test_provider_rebuilds_only_when_settings_change():
    built = []

    def build(threshold, timeout_s):
        built.append((threshold, timeout_s))
        return RaisingVerifier(RuntimeError("unused"))

    provider = FaceVerifierProvider(build)
    defaults = AttendanceSettings.defaults()

    first = provider(defaults)
    assert provider(defaults) is first

    stricter = AttendanceSettings(
        thresholds=defaults.thresholds,
        geofence_tolerance_m=defaults.geofence_tolerance_m,
        face_match_threshold=0.8,
        face_verify_timeout_s=defaults.face_verify_timeout_s,
    )
    assert provider(stricter) is not first
    assert built == [(0.6, 10.0), (0.8, 10.0)]


class MatchingVerifier:
    def verify(self, probe_image_path, template):
        return FaceMatch(is_match=True, score=0.9)


def test_verifier_replaced_mid_request_fails_with_typed_error():
    provider = FaceVerifierProvider(lambda threshold, timeout_s: TimeoutFaceVerifier(MatchingVerifier(), timeout_s=timeout_s))
    defaults = AttendanceSettings.defaults()
    held = provider(defaults)

    provider(replace(defaults, face_match_threshold=0.7))

    with pytest.raises(VerificationError):
        held.verify("probe.jpg", [0.0])
    assert provider(replace(defaults, face_match_threshold=0.7)).verify("probe.jpg", [0.0]).is_match
    provider.shutdown()


def test_probe_artifact_kept_only_on_keep(tmp_path):
    kept = tmp_path / "kept.jpg"
    dropped = tmp_path / "dropped.jpg"
    kept.write_bytes(b"x")
    dropped.write_bytes(b"x")

    with probe_artifact(str(kept)) as artifact:
        artifact.keep()
    with pytest.raises(ValueError):
        with probe_artifact(str(dropped)):
            raise ValueError("rejected")

    assert kept.exists()
    assert not dropped.exists()


def test_probe_artifact_tolerates_missing_file(tmp_path):
    with probe_artifact(str(tmp_path / "never-written.jpg")):
        pass
