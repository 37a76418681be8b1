from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

logger = logging.getLogger(__name__)


class ProbeArtifact:
    """Uploaded probe image owned by one submission.

    The file survives only if the submission calls keep(); every other exit
    (rejection, infrastructure error, cancellation) removes it.
    """

    def __init__(self, path: str, *, upload_root: Optional[str] = None):
        self.path = path
        self._upload_root = upload_root
        self._kept = False

    @property
    def kept(self) -> bool:
        return self._kept

    def keep(self) -> str:
        self._kept = True
        return self.ref

    @property
    def ref(self) -> str:
        """Path stored on the record: relative to the upload root when possible."""
        if self._upload_root:
            try:
                return str(Path(self.path).resolve().relative_to(Path(self._upload_root).resolve()))
            except ValueError:
                pass
        return self.path

    def discard(self) -> None:
        try:
            os.remove(self.path)
            logger.debug("Removed probe artifact %s", self.path)
        except FileNotFoundError:
            pass
        except OSError:
            logger.exception("Could not remove probe artifact %s", self.path)


@contextmanager
def probe_artifact(path: str, *, upload_root: Optional[str] = None) -> Iterator[ProbeArtifact]:
    artifact = ProbeArtifact(path, upload_root=upload_root)
    try:
        yield artifact
    finally:
        if not artifact.kept:
            artifact.discard()
