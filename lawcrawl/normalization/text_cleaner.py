"""Text cleaning utilities for extracted statute text."""

import re

_WHITESPACE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """Collapse every run of whitespace (spaces, tabs, newlines) to one space and trim."""
    return _WHITESPACE.sub(" ", text).strip()


def clean_number(number: str, prefix: str = "") -> str:
    """Normalize a hierarchy number ('Chapter 5' -> '5', '§ 12' -> '12')."""
    number = normalize_whitespace(number.replace("§", ""))
    if prefix and number.lower().startswith(prefix.lower()):
        number = number[len(prefix):]
    return number.strip()
