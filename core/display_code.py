"""
Human-facing order display codes.

Format: "O" + base32(sequence), left-padded to 4 characters.
Alphabet skips visually ambiguous characters (0, O, 1, I), so "2" is the
zero digit and padding character.

Examples: O2223 (1), O222Z (31), O2232 (32). Capacity at 4 characters: 32^4.
"""

from typing import Callable

ALPHABET = "23456789ABCDEFGHJKLMNPQRSTUVWXYZ"
PREFIX = "O"
WIDTH = 4
MAX_COLLISION_ATTEMPTS = 100


def generate_display_code(sequence: int) -> str:
    """
    Encode a sequence number as a display code.

    Raises:
        ValueError: If sequence < 1
    """
    if sequence < 1:
        raise ValueError("Sequence number must be >= 1")

    digits = []
    num = sequence
    while num > 0:
        num, remainder = divmod(num, 32)
        digits.append(ALPHABET[remainder])

    return PREFIX + "".join(reversed(digits)).rjust(WIDTH, ALPHABET[0])


def parse_display_code(code: str) -> int | None:
    """Decode a display code back to its sequence number. None if malformed."""
    if not code or not code.startswith(PREFIX):
        return None

    num = 0
    for char in code[len(PREFIX):]:
        index = ALPHABET.find(char)
        if index == -1:
            return None
        num = num * 32 + index

    return num


def next_display_code(latest: str | None, exists: Callable[[str], bool]) -> str:
    """
    Next display code after the highest one in use.

    Args:
        latest: Highest existing display code, or None if there are no orders
        exists: Collision check against storage

    Raises:
        RuntimeError: If no free code found within MAX_COLLISION_ATTEMPTS
    """
    sequence = (parse_display_code(latest) or 0) + 1 if latest else 1

    for attempt in range(MAX_COLLISION_ATTEMPTS):
        code = generate_display_code(sequence + attempt)
        if not exists(code):
            return code

    raise RuntimeError(
        f"Failed to generate unique display code after {MAX_COLLISION_ATTEMPTS} attempts"
    )
