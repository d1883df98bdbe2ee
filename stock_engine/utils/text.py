from typing import Any


def normalize_label(value: Any) -> str:
    """Case/whitespace-insensitive form of a free-text color or size label."""
    if value is None:
        return ""
    return str(value).strip().lower()
