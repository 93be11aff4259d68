"""Expansion of save path templates such as ``$APPDATA/Game/Saves``."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from savelink.core.errors import ValidationError, ValidationKind

logger = logging.getLogger(__name__)

# $NAME or ${NAME}
_VARIABLE_RE = re.compile(r"\$(?:\{(\w+)\}|(\w+))")


def expand_variables(text: str, environ: dict[str, str] | None = None) -> str:
    """Substitute shell-style variables, treating undefined ones as empty."""
    env = os.environ if environ is None else environ

    def _lookup(m: re.Match) -> str:
        name = m.group(1) or m.group(2)
        return env.get(name, "")

    return _VARIABLE_RE.sub(_lookup, text)


def resolve_template(template: str, environ: dict[str, str] | None = None) -> Path:
    """Expand *template* into an absolute path.

    Templates are expected to start with a variable so the same catalog
    works for every user; one that doesn't is only warned about.

    Raises:
        ValidationError: If the expansion is a relative path.
    """
    trimmed = template.strip()
    if not trimmed.startswith("$"):
        logger.warning("The path doesn't start with a variable: %s", trimmed)

    expanded = expand_variables(trimmed, environ)
    path = Path(expanded)
    if not path.is_absolute():
        raise ValidationError(ValidationKind.RELATIVE_PATH, trimmed, expanded)
    return path
