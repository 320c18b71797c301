"""Strict text-to-value conversions."""

_TRUE = "true"
_FALSE = "false"


def parse_bool(text: str) -> bool:
    """Accept exactly ``"true"`` or ``"false"``; anything else is a ValueError."""
    if text == _TRUE:
        return True
    if text == _FALSE:
        return False
    raise ValueError("argument is invalid")