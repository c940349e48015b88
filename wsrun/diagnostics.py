"""Installation-state checks used to tailor missing builder messages."""
from __future__ import annotations

from pathlib import Path
import sys

from core.console import Console


_VENV_DIRECTORIES = (".venv", "venv", "env")


def _running_in_virtualenv() -> bool:
    return sys.prefix != getattr(sys, "base_prefix", sys.prefix)


def has_installed_dependencies(base_path: Path) -> bool:
    """Return ``True`` when ``base_path`` looks like it has its packages installed."""

    for name in _VENV_DIRECTORIES:
        if (base_path / name / "pyvenv.cfg").is_file():
            return True
    if (base_path / "__pypackages__").is_dir():
        return True
    return _running_in_virtualenv()


def warn_on_missing_packages(base_path: Path, console: Console) -> None:
    if has_installed_dependencies(base_path):
        return
    console.warn("Python packages may not be installed. Try installing with 'pip install -e .'.")


__all__ = ["has_installed_dependencies", "warn_on_missing_packages"]
