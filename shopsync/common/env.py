"""Environment variable parsing shared by configuration dataclasses."""

from __future__ import annotations

import os


def parse_positive_number(env_var: str, default: float) -> float:
    """Read a positive number from ``env_var``, falling back to ``default``."""
    raw = os.environ.get(env_var, "")
    if not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        msg = f"{env_var} must be a number, got: {raw!r}"
        raise ValueError(msg) from exc
    if value <= 0:
        msg = f"{env_var} must be positive, got: {value}"
        raise ValueError(msg)
    return value


def parse_positive_int(env_var: str, default: int) -> int:
    """Read a positive integer from ``env_var``, falling back to ``default``."""
    raw = os.environ.get(env_var, "")
    if not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        msg = f"{env_var} must be an integer, got: {raw!r}"
        raise ValueError(msg) from exc
    if value < 1:
        msg = f"{env_var} must be positive, got: {value}"
        raise ValueError(msg)
    return value


def read_stripped(env_var: str) -> str | None:
    """Return the stripped value of ``env_var`` or ``None`` when blank."""
    value = os.environ.get(env_var, "").strip()
    return value or None
