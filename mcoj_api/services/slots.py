"""
Slot allocation for the fixed-size public gallery.
"""
from typing import Any, Iterable, Optional

from mcoj_api.errors import InvalidPositionError

GALLERY_SIZE = 8


def next_free_position(occupied: Iterable[int], size: int = GALLERY_SIZE) -> Optional[int]:
    """Return the lowest slot in 1..size not in occupied, or None when the gallery is full."""
    taken = set(occupied)
    for position in range(1, size + 1):
        if position not in taken:
            return position
    return None


def validate_position(value: Any, size: int = GALLERY_SIZE) -> int:
    """
    Coerce and check a slot number coming from a request.

    Accepts ints and digit strings (multipart form fields arrive as text).
    Booleans are rejected even though bool is an int subclass.

    Raises:
        InvalidPositionError: if the value is not an integer in [1, size]
    """
    if isinstance(value, bool):
        raise InvalidPositionError(f"Invalid position. Must be a number between 1 and {size}.")

    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())

    if not isinstance(value, int) or value < 1 or value > size:
        raise InvalidPositionError(f"Invalid position. Must be a number between 1 and {size}.")

    return value
