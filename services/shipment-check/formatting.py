"""Human-readable labels for sizes and confidence values."""

import math

_SIZE_UNITS = ("B", "KB", "MB", "GB")


def format_bytes(size: float) -> str:
    """Format a byte count like ``"2.50 MB"``; precision drops as the value grows."""
    if not math.isfinite(size):
        return ""
    if size <= 0:
        return "0 B"

    i = min(int(math.floor(math.log(size) / math.log(1024))), len(_SIZE_UNITS) - 1)
    i = max(i, 0)
    value = size / 1024**i
    if value > 99:
        digits = 0
    elif value > 9:
        digits = 1
    else:
        digits = 2
    return f"{value:.{digits}f} {_SIZE_UNITS[i]}"


def format_confidence(value: float) -> str:
    clamped = min(max(value, 0.0), 1.0)
    return f"{math.floor(clamped * 100 + 0.5)}%"
