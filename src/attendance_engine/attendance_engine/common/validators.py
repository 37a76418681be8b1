from __future__ import annotations

import math
from datetime import date
from typing import Any

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} must not be empty")
    return value.strip()


def require_float(value: Any, field_name: str) -> float:
    try:
        out = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if math.isnan(out) or math.isinf(out):
        raise ValidationError(f"{field_name} must be a finite number")
    return out


def require_latitude(value: Any) -> float:
    lat = require_float(value, "latitude")
    if lat < -90 or lat > 90:
        raise ValidationError("latitude must be between -90 and 90")
    return lat


def require_longitude(value: Any) -> float:
    lng = require_float(value, "longitude")
    if lng < -180 or lng > 180:
        raise ValidationError("longitude must be between -180 and 180")
    return lng


def require_date_range(start: date, end: date) -> None:
    if end < start:
        raise ValidationError("end date must be on or after start date")
