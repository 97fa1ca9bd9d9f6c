"""Handler signature validation for strict mode."""

from __future__ import annotations

import inspect
from typing import Any

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


def _positional_bounds(func: Any) -> tuple[int, int | None]:
    """Return the (min, max) number of positional args *func* accepts; max is None for ``*args``."""
    sig = inspect.signature(func)
    required = 0
    accepted: int | None = 0
    for param in sig.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            accepted = None
        elif param.kind in _POSITIONAL:
            if accepted is not None:
                accepted += 1
            if param.default is inspect.Parameter.empty:
                required += 1
    return required, accepted


def validate_handler_signature(func: Any, pattern: str, method: str, param_count: int) -> None:
    """Check that *func* can take the *param_count* positional params of *pattern*.

    Raises :class:`TypeError` with an actionable message when it cannot.
    Callables without an introspectable signature are accepted as-is.
    """
    name = getattr(func, "__name__", repr(func))
    try:
        required, accepted = _positional_bounds(func)
    except (TypeError, ValueError):
        return

    plural = "" if param_count == 1 else "s"

    # --- Rule 1: enough positional slots for every placeholder ---
    if accepted is not None and accepted < param_count:
        raise TypeError(
            f"\n\nStrict-mode violation in handler '{name}' "
            f"[{method} {pattern}]\n"
            f"  Problem: The pattern has {param_count} placeholder{plural} "
            f"but the handler accepts only {accepted} positional argument(s).\n"
            f"  Fix:     Add a parameter for each placeholder, in the order they appear.\n"
        )

    # --- Rule 2: no required parameter left without a value ---
    if required > param_count:
        raise TypeError(
            f"\n\nStrict-mode violation in handler '{name}' "
            f"[{method} {pattern}]\n"
            f"  Problem: The handler requires {required} positional argument(s) "
            f"but the pattern only provides {param_count}.\n"
            f"  Fix:     Remove the extra parameters or give them defaults.\n"
        )
