from __future__ import annotations

import logging
from typing import Callable, Mapping

from ..common.datetime_utils import parse_clock_time
from ..core.exceptions import ValidationError
from .model import AttendanceSettings, SettingKey, Thresholds
from .repository import SettingsRepository

logger = logging.getLogger(__name__)


def _clock(value: str) -> str:
    return parse_clock_time(value).strftime("%H:%M")


def _non_negative(value: str) -> str:
    v = float(value)
    if v < 0:
        raise ValueError("must be >= 0")
    return value.strip()


def _ratio(value: str) -> str:
    v = float(value)
    if not 0 <= v <= 1:
        raise ValueError("must be between 0 and 1")
    return value.strip()


def _positive(value: str) -> str:
    if float(value) <= 0:
        raise ValueError("must be > 0")
    return value.strip()


_NORMALIZERS: dict[str, Callable[[str], str]] = {
    SettingKey.CHECK_IN_OPEN: _clock,
    SettingKey.LATE_CUTOFF: _clock,
    SettingKey.CHECK_OUT_OPEN: _clock,
    SettingKey.GEOFENCE_TOLERANCE_M: _non_negative,
    SettingKey.FACE_MATCH_THRESHOLD: _ratio,
    SettingKey.FACE_VERIFY_TIMEOUT_S: _positive,
}


class SettingsService:
    def __init__(self, settings: SettingsRepository):
        self._settings = settings

    def load(self) -> AttendanceSettings:
        """Read the settings table once and build an immutable snapshot.

        Missing or unparsable values fall back to the defaults (logged), so a
        half-configured table never blocks submissions.
        """
        return self.parse(self._settings.get_all())

    @staticmethod
    def parse(raw: Mapping[str, str]) -> AttendanceSettings:
        base = AttendanceSettings.defaults()

        def pick(key: str, convert, default):
            value = raw.get(key)
            if value is None or str(value).strip() == "":
                return default
            try:
                return convert(str(value))
            except ValueError:
                logger.warning("Ignoring invalid setting %s=%r, using default %r", key, value, default)
                return default

        thresholds = Thresholds(
            check_in_open=pick(SettingKey.CHECK_IN_OPEN, parse_clock_time, base.thresholds.check_in_open),
            late_cutoff=pick(SettingKey.LATE_CUTOFF, parse_clock_time, base.thresholds.late_cutoff),
            check_out_open=pick(SettingKey.CHECK_OUT_OPEN, parse_clock_time, base.thresholds.check_out_open),
        )
        if thresholds.late_cutoff < thresholds.check_in_open:
            logger.warning(
                "late_cutoff %s is before check_in_open %s; using check_in_open as cutoff",
                thresholds.late_cutoff,
                thresholds.check_in_open,
            )
            thresholds = Thresholds(
                check_in_open=thresholds.check_in_open,
                late_cutoff=thresholds.check_in_open,
                check_out_open=thresholds.check_out_open,
            )

        return AttendanceSettings(
            thresholds=thresholds,
            geofence_tolerance_m=pick(SettingKey.GEOFENCE_TOLERANCE_M, float, base.geofence_tolerance_m),
            face_match_threshold=pick(SettingKey.FACE_MATCH_THRESHOLD, float, base.face_match_threshold),
            face_verify_timeout_s=pick(SettingKey.FACE_VERIFY_TIMEOUT_S, float, base.face_verify_timeout_s),
        )

    def update(self, key: str, value: str) -> AttendanceSettings:
        normalize = _NORMALIZERS.get((key or "").strip())
        if normalize is None:
            raise ValidationError(f"Unknown setting: {key!r}")
        try:
            normalized = normalize(str(value))
        except ValueError as exc:
            raise ValidationError(f"Invalid value for {key}: {exc}")

        self._settings.upsert(key=key.strip(), value=normalized)
        logger.info("Setting %s updated to %s", key, normalized)
        return self.load()

    def as_dict(self) -> dict[str, str]:
        current = self.load()
        t = current.thresholds
        return {
            SettingKey.CHECK_IN_OPEN: t.check_in_open.strftime("%H:%M"),
            SettingKey.LATE_CUTOFF: t.late_cutoff.strftime("%H:%M"),
            SettingKey.CHECK_OUT_OPEN: t.check_out_open.strftime("%H:%M"),
            SettingKey.GEOFENCE_TOLERANCE_M: str(current.geofence_tolerance_m),
            SettingKey.FACE_MATCH_THRESHOLD: str(current.face_match_threshold),
            SettingKey.FACE_VERIFY_TIMEOUT_S: str(current.face_verify_timeout_s),
        }
