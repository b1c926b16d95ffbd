from __future__ import annotations

import re
from typing import Iterable, List, Optional, Tuple

MAX_NAME_LENGTH = 100
MAX_WISHLIST_LENGTH = 1000
MAX_RESTRICTIONS_INPUT_LENGTH = 5000

_ESCAPES = {
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
    "/": "&#x2F;",
}
_ESCAPE_RE = re.compile("|".join(re.escape(char) for char in _ESCAPES))
_NAME_RE = re.compile(r"^[\w \-']+$")
_NUMBER_RE = re.compile(r"^[+-]?[0-9]+$")


class ValidationError(ValueError):
    pass


def sanitize_input(text: Optional[str]) -> str:
    if not isinstance(text, str):
        return ""
    return _ESCAPE_RE.sub(lambda match: _ESCAPES[match.group(0)], text).strip()


def validate_name(text: Optional[str]) -> str:
    name = sanitize_input(text)
    if not name or len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"Name must be between 1 and {MAX_NAME_LENGTH} characters.")
    if not _NAME_RE.match(name):
        raise ValidationError("Name may only contain letters, numbers, spaces, hyphens and underscores.")
    return name


def validate_wishlist(text: Optional[str]) -> str:
    return sanitize_input(text)[:MAX_WISHLIST_LENGTH]


def validate_number(text: Optional[str], minimum: int = 1, maximum: int = 1000) -> int:
    digits = (text or "").strip()
    if not _NUMBER_RE.match(digits):
        raise ValidationError("Not a whole number.")
    number = int(digits)
    if number < minimum or number > maximum:
        raise ValidationError(f"Number must be between {minimum} and {maximum}.")
    return number


def parse_restrictions(text: Optional[str], known_names: Iterable[str]) -> List[Tuple[str, str]]:
    """Parse admin-authored restriction pairs, one ``Name1, Name2`` per line.

    ``none`` or an empty message means no restrictions. Any malformed line
    rejects the whole input.
    """
    if not text:
        return []
    if len(text) > MAX_RESTRICTIONS_INPUT_LENGTH:
        raise ValidationError("Restrictions input is too long.")

    stripped = text.strip()
    if not stripped or stripped.lower() == "none":
        return []

    names = set(known_names)
    restrictions: List[Tuple[str, str]] = []
    for line in stripped.splitlines():
        line = line.strip()
        if not line:
            continue

        pair = [sanitize_input(part) for part in line.split(",")]
        if len(pair) != 2 or not all(pair):
            raise ValidationError(f"Expected two comma-separated names, got {line!r}.")
        first, second = pair
        if first not in names or second not in names:
            raise ValidationError(f"Unknown participant in {line!r}.")
        if first == second:
            raise ValidationError(f"A participant cannot be restricted from themselves: {line!r}.")
        restrictions.append((first, second))

    return restrictions
