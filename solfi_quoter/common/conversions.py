from __future__ import annotations

from typing import Any


def to_int(value: Any, default: int) -> int:
    try:
        if value is None or str(value).strip() == "":
            return default
        return int(float(str(value).strip()))
    except (TypeError, ValueError):
        return default


def to_float(value: Any, default: float) -> float:
    try:
        if value is None or str(value).strip() == "":
            return default
        return float(str(value).strip())
    except (TypeError, ValueError):
        return default


def to_float_tuple(value: Any, default: tuple[float, ...]) -> tuple[float, ...]:
    raw = str(value or "").strip()
    if not raw:
        return default

    parsed: list[float] = []
    for part in raw.split(","):
        candidate = to_float(part, -1.0)
        if candidate > 0:
            parsed.append(candidate)
    return tuple(parsed) or default


def to_str_tuple(value: Any, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = str(value or "").strip()
    if not raw:
        return default
    parsed = tuple(part.strip() for part in raw.split(",") if part.strip())
    return parsed or default
