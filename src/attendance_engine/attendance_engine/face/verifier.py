from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Sequence

import numpy as np

from ..core.exceptions import DomainError, NoFaceDetected, VerificationError, VerifierTimeout
from ..settings.model import AttendanceSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FaceMatch:
    is_match: bool
    score: float


class FaceVerifier(Protocol):
    """verify(probe, template) -> FaceMatch | raises NoFaceDetected / VerificationError."""

    def verify(self, probe_image_path: str, template: Sequence[float]) -> FaceMatch:
        raise NotImplementedError


class TemplateExtractor(Protocol):
    def extract(self, image_path: str) -> list[float]:
        raise NotImplementedError


def distance_to_score(distance: float) -> float:
    """Euclidean descriptor distance -> similarity in [0, 1] (higher is closer)."""
    return 1.0 - min(max(float(distance), 0.0), 1.0)


class FaceRecognitionVerifier:
    """Adapter over the `face_recognition` (dlib) library.

    When more than one face is in the frame the largest box wins, since it is
    the one closest to the camera.
    """

    def __init__(self, *, threshold: float, model: str = "hog"):
        self._threshold = float(threshold)
        self._model = model

    def _largest_encoding(self, image_path: str) -> np.ndarray:
        import face_recognition

        try:
            image = face_recognition.load_image_file(image_path)
        except (OSError, ValueError) as exc:
            raise VerificationError(f"Cannot read probe image: {exc}") from exc

        boxes = face_recognition.face_locations(image, model=self._model)
        if not boxes:
            logger.warning("No faces detected in %s", image_path)
            raise NoFaceDetected("No face detected in the photo")
        if len(boxes) > 1:
            logger.warning("Multiple faces (%d) detected in %s; using the largest", len(boxes), image_path)

        # box = (top, right, bottom, left)
        largest = max(boxes, key=lambda b: (b[2] - b[0]) * (b[1] - b[3]))
        encodings = face_recognition.face_encodings(image, [largest])
        if not encodings:
            raise NoFaceDetected("Face could not be encoded")
        return encodings[0]

    def extract(self, image_path: str) -> list[float]:
        return [float(v) for v in self._largest_encoding(image_path)]

    def verify(self, probe_image_path: str, template: Sequence[float]) -> FaceMatch:
        import face_recognition

        probe = self._largest_encoding(probe_image_path)
        known = np.asarray(template, dtype=np.float64)
        if known.shape != probe.shape:
            raise VerificationError(f"Template shape {known.shape} does not match probe {probe.shape}")

        distance = float(face_recognition.face_distance([known], probe)[0])
        score = distance_to_score(distance)
        return FaceMatch(is_match=score >= self._threshold, score=score)


class TimeoutFaceVerifier:
    """Bound any verifier with a wall-clock timeout.

    The wrapped call runs on a worker thread; on timeout the caller gets
    VerifierTimeout immediately and the abandoned call is left to finish on
    its own (its result is discarded).
    """

    def __init__(self, inner: FaceVerifier, *, timeout_s: float, max_workers: int = 4):
        self._inner = inner
        self._timeout_s = float(timeout_s)
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="face-verify")

    def verify(self, probe_image_path: str, template: Sequence[float]) -> FaceMatch:
        try:
            future = self._pool.submit(self._inner.verify, probe_image_path, template)
        except RuntimeError as exc:
            # Pool already shut down (settings changed while this request held the old verifier).
            logger.warning("Face verifier pool unavailable for %s: %s", probe_image_path, exc)
            raise VerificationError("Face verifier is being reconfigured, retry the submission") from exc

        try:
            return future.result(timeout=self._timeout_s)
        except FutureTimeout:
            future.cancel()
            logger.error("Face verification exceeded %.1fs for %s", self._timeout_s, probe_image_path)
            raise VerifierTimeout(f"Face verification timed out after {self._timeout_s:g}s")
        except DomainError:
            raise
        except Exception as exc:
            logger.exception("Face verifier failed for %s", probe_image_path)
            raise VerificationError(f"Face verification failed: {exc}") from exc

    def shutdown(self) -> None:
        self._pool.shutdown(wait=False)


def build_face_verifier(*, threshold: float, timeout_s: float, inner: Optional[FaceVerifier] = None) -> TimeoutFaceVerifier:
    return TimeoutFaceVerifier(inner or FaceRecognitionVerifier(threshold=threshold), timeout_s=timeout_s)


class FaceVerifierProvider:
    """Hands out a verifier matching the current settings snapshot.

    The verifier (and its worker pool) is rebuilt only when the match
    threshold or timeout changes.
    """

    def __init__(self, build: Optional[Callable[[float, float], FaceVerifier]] = None):
        self._build = build or (lambda threshold, timeout_s: build_face_verifier(threshold=threshold, timeout_s=timeout_s))
        self._key: Optional[tuple[float, float]] = None
        self._current: Optional[FaceVerifier] = None
        self._lock = threading.Lock()

    def __call__(self, settings: AttendanceSettings) -> FaceVerifier:
        key = (float(settings.face_match_threshold), float(settings.face_verify_timeout_s))
        with self._lock:
            if self._current is None or key != self._key:
                previous = self._current
                self._current = self._build(*key)
                self._key = key
                if isinstance(previous, TimeoutFaceVerifier):
                    previous.shutdown()
            return self._current

    def shutdown(self) -> None:
        with self._lock:
            if isinstance(self._current, TimeoutFaceVerifier):
                self._current.shutdown()
            self._current = None
            self._key = None
