"""Formatting helpers for host names and memory sizes."""

from __future__ import annotations

import re

from .errors import InvalidHostSizeError

_UNITS = ("B", "kB", "MB", "GB", "TB", "PB")
_RAM_UNITS = {"": 1, "b": 1, "k": 1024, "m": 1024**2, "g": 1024**3, "t": 1024**4, "p": 1024**5}
_RAM_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*([kmgtp]?)b?$", re.IGNORECASE)


def human_size(size: float) -> str:
    """Format a byte count with decimal units, e.g. ``536.9 MB``."""
    i = 0
    while size >= 1000 and i < len(_UNITS) - 1:
        size /= 1000.0
        i += 1
    return f"{size:.4g} {_UNITS[i]}"


def ram_in_bytes(value: str) -> int:
    """Parse a memory size such as ``512M`` or ``2g`` into bytes (binary units).

    Raises:
        InvalidHostSizeError: If ``value`` is not a size.
    """
    match = _RAM_RE.match(value.strip())
    if not match:
        raise InvalidHostSizeError(f"Invalid size: {value!r}")
    number, unit = match.groups()
    return int(float(number) * _RAM_UNITS[unit.lower()])


def capitalize(text: str) -> str:
    """Upper-case the first character only."""
    return text[:1].upper() + text[1:]


def human_host_name(name: str) -> str:
    """Describe a host for messages: ``default host`` or ``host 'web'``."""
    if name == "default":
        return "default host"
    return f"host '{name}'"
