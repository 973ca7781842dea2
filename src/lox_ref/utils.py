"""Runtime configuration read from environment variables."""

from __future__ import annotations

import os
import sys
from typing import Optional

DEBUG_PY_TRACE_VAR = "LOX_DEBUG_PY_TRACE"
RECURSION_LIMIT_VAR = "LOX_RECURSION_LIMIT"
NO_PRELUDE_VAR = "LOX_NO_PRELUDE"

DEFAULT_RECURSION_LIMIT = 20000

_TRUE_WORDS = {"1", "true", "yes", "on"}


def envvar_value_by_name(name: str) -> Optional[str]:
    """Get the current value of an env var by name, or None if missing."""
    return os.environ.get(name)


def env_flag(name: str) -> bool:
    value = envvar_value_by_name(name)
    return value is not None and value.strip().lower() in _TRUE_WORDS


def debug_py_trace_enabled() -> bool:
    return env_flag(DEBUG_PY_TRACE_VAR)


def set_debug_py_trace(enabled: bool) -> None:
    if enabled:
        os.environ[DEBUG_PY_TRACE_VAR] = "1"
    else:
        os.environ.pop(DEBUG_PY_TRACE_VAR, None)


def prelude_disabled() -> bool:
    return env_flag(NO_PRELUDE_VAR)


def recursion_limit() -> int:
    raw = envvar_value_by_name(RECURSION_LIMIT_VAR)
    if raw is None or not raw.strip():
        return DEFAULT_RECURSION_LIMIT

    try:
        limit = int(raw)
    except ValueError:
        raise SystemExit(f"{RECURSION_LIMIT_VAR} must be an integer, got {raw!r}") from None

    if limit <= 0:
        raise SystemExit(f"{RECURSION_LIMIT_VAR} must be positive, got {limit}")

    return limit


def raise_recursion_limit() -> None:
    """Lift the interpreter recursion limit to the configured floor; never lowers it."""
    limit = recursion_limit()
    if sys.getrecursionlimit() < limit:
        sys.setrecursionlimit(limit)
