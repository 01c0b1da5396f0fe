from __future__ import annotations

import importlib
from types import ModuleType

from captiontrack.exceptions import DependencyMissingError


def require_module(name: str, dist: str) -> ModuleType:
    try:
        return importlib.import_module(name)
    except ImportError as exc:
        raise DependencyMissingError(
            f"Missing required dependency '{dist}'. Install it and try again."
        ) from exc
