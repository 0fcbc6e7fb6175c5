"""Helpers for building query filters."""

LIKE_ESCAPE = "\\"


def contains_pattern(term: str) -> str:
    """LIKE pattern matching ``term`` literally anywhere in the value.

    Use with ``escape=LIKE_ESCAPE``.
    """
    safe = term.replace("\\", "\\\\").replace("%", r"\%").replace("_", r"\_")
    return f"%{safe}%"
