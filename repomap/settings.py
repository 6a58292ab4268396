"""CoreSettings — search and persistence settings resolved from the environment."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, Field

from repomap.config import (
    CEILING_DIRECTORIES_ENV,
    FIND_IN_CHILDREN_ENV,
    INCLUDE_LINKED_ENV,
    STATE_AREA,
    STATE_FILE_NAME,
)

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class CoreSettings(BaseModel):
    """Configurable settings model for discovery and persistence."""

    ceiling_directories: list[Path] = Field(default_factory=list)
    """Absolute directories the upward repository search never crosses."""

    find_in_children: bool = True
    """Descend into child containers when searching for repositories."""

    include_linked: bool = False
    """Also search linked resources when descending."""

    state_area: str = STATE_AREA
    state_file_name: str = STATE_FILE_NAME


def parse_ceiling_directories(value: str | None) -> list[Path]:
    """Split a path-separator delimited list into absolute directories.

    Empty entries and relative entries are ignored, like git does.
    """
    if not value:
        return []
    result: list[Path] = []
    for entry in value.split(os.pathsep):
        entry = entry.strip()
        if not entry:
            continue
        path = Path(entry)
        if not path.is_absolute():
            logger.debug("Ignoring relative ceiling directory %s", entry)
            continue
        resolved = path.resolve()
        if resolved not in result:
            result.append(resolved)
    return result


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    logger.warning("Unrecognised boolean %r, using %s", value, default)
    return default


def load_settings(
    environ: Mapping[str, str] | None = None,
    **overrides: Any,
) -> CoreSettings:
    """Load merged settings: defaults -> environment -> keyword overrides.

    Parameters
    ----------
    environ:
        Environment mapping to read; defaults to :data:`os.environ`.
    **overrides:
        Explicit field values that win over the environment.
    """
    env = os.environ if environ is None else environ
    values: dict[str, Any] = {
        "ceiling_directories": parse_ceiling_directories(
            env.get(CEILING_DIRECTORIES_ENV),
        ),
        "find_in_children": _parse_bool(env.get(FIND_IN_CHILDREN_ENV), True),
        "include_linked": _parse_bool(env.get(INCLUDE_LINKED_ENV), False),
    }
    values.update(overrides)
    return CoreSettings(**values)
