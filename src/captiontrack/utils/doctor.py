from __future__ import annotations

import importlib
import sys

from captiontrack.config.settings import Settings

# (import name, distribution name)
_MODULES = (
    ("httpx", "httpx"),
    ("pydantic_settings", "pydantic-settings"),
    ("srt", "srt"),
    ("webvtt", "webvtt-py"),
)


def _module_available(name: str) -> bool:
    try:
        importlib.import_module(name)
    except Exception:
        return False
    return True


def _get_version() -> str:
    try:
        import importlib.metadata

        return importlib.metadata.version("captiontrack")
    except Exception:
        return "unknown"


def _status_line(ok: bool, label: str, detail: str = "") -> str:
    icon = "✅" if ok else "❌"
    return f"{icon} {label}{detail}"


def _warn_line(label: str, detail: str = "") -> str:
    return f"⚠️ {label}{detail}"


def run_doctor(settings: Settings) -> int:
    required_ok = True
    lines: list[str] = []

    lines.append("captiontrack doctor")
    lines.append("")

    python_version = sys.version.split()[0]
    lines.append(_status_line(True, "Python", f": {python_version}"))
    lines.append(_status_line(True, "captiontrack version", f": {_get_version()}"))

    for module, dist in _MODULES:
        if _module_available(module):
            lines.append(_status_line(True, dist, " (available)"))
        else:
            required_ok = False
            lines.append(_status_line(False, dist, " (not installed)"))

    if settings.max_line_length < 20:
        lines.append(_warn_line("max_line_length", f": {settings.max_line_length} (very short chunks)"))

    timeout_ok = settings.candidates_timeout_s > 0 and settings.fetch_timeout_s > 0
    if not timeout_ok:
        required_ok = False
    lines.append(
        _status_line(
            timeout_ok,
            "Timeouts",
            f": candidates {settings.candidates_timeout_s}s / fetch {settings.fetch_timeout_s}s",
        )
    )
    lines.append(
        _status_line(
            True,
            "Languages",
            f": ui {settings.ui_language} / request {settings.request_language}",
        )
    )

    print("\n".join(lines))
    return 0 if required_ok else 1
