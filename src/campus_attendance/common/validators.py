from __future__ import annotations

import math
import re
from typing import Optional

from ..core.constants import STUDENT_ID_LENGTH, STUDENT_NAME_MAX_LENGTH, STUDENT_NAME_MIN_LENGTH
from ..core.exceptions import InvalidFormat, InvalidLocation, ValidationError

# ASCII digits only; \d would also accept other Unicode digits.
_STUDENT_ID_RE = re.compile(r"[0-9]{%d}" % STUDENT_ID_LENGTH)


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name}不能為空")
    return value.strip()


def validate_student_id(value: Optional[str]) -> str:
    if value is not None and not isinstance(value, str):
        raise InvalidFormat(f"學號必須是 {STUDENT_ID_LENGTH} 位數字")
    clean = (value or "").strip()
    if not _STUDENT_ID_RE.fullmatch(clean):
        raise InvalidFormat(f"學號必須是 {STUDENT_ID_LENGTH} 位數字")
    return clean


def validate_student_name(value: Optional[str]) -> str:
    if value is not None and not isinstance(value, str):
        raise InvalidFormat("姓名格式錯誤")
    clean = (value or "").strip()
    if not clean:
        raise InvalidFormat("姓名不能為空")
    if not STUDENT_NAME_MIN_LENGTH <= len(clean) <= STUDENT_NAME_MAX_LENGTH:
        raise InvalidFormat(f"姓名長度必須在 {STUDENT_NAME_MIN_LENGTH}-{STUDENT_NAME_MAX_LENGTH} 字元之間")
    return clean


def parse_float(value) -> Optional[float]:
    """Lenient float parsing for form/JSON input; None when not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def require_coordinates(latitude, longitude) -> tuple[float, float]:
    lat = parse_float(latitude)
    lng = parse_float(longitude)
    if lat is None or lng is None:
        raise InvalidLocation("無效的地理位置資料，請重新定位")
    return lat, lng
