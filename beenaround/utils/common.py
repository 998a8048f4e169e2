import math
import re
from typing import List, Optional


_PHONE_NOISE = re.compile(r"[\s\-()+]")


def normalize_value(value: Optional[str]) -> str:
    """Lower-case and trim a geographic value before it is counted."""
    return (value or "").strip().lower()


def normalize_phone(phone: str) -> str:
    return _PHONE_NOISE.sub("", phone or "")


def location_tokens(location: Optional[str]) -> List[str]:
    """Split a comma separated location query into lower-case tokens."""
    if not location:
        return []
    return [t.strip().lower() for t in location.split(",") if t.strip()]


def like_pattern(token: str) -> str:
    escaped = token.replace("\\", "\\\\").replace(
        "%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def parse_bool(value) -> Optional[bool]:
    """Accept real booleans and the strings "true"/"false" sent by forms."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    return None
