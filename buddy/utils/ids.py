"""Identifier helpers."""

import re

# Generated ids look like "usr_1a2b3c4d": prefix, underscore, 8 hex digits.
ID_PATTERN = re.compile(r"^(?P<prefix>[a-z]+)_[0-9a-f]{8}$")


def is_valid_id(value: object, prefix: str | None = None) -> bool:
    """Check that ``value`` is a well-formed id, optionally with a given prefix."""
    if not isinstance(value, str):
        return False
    match = ID_PATTERN.match(value)
    if not match:
        return False
    return prefix is None or match.group("prefix") == prefix
