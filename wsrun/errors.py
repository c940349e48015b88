"""Exception types and their translation into user-facing fatal messages."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping

from core.console import Console

from .diagnostics import warn_on_missing_packages


class WsrunError(Exception):
    """Base class for errors reported to the user as fatal messages."""


class WorkspaceError(WsrunError):
    """Raised for malformed workspaces or references to unknown projects/targets."""


class WorkspaceNotFoundError(WorkspaceError):
    """Raised when no workspace file can be located."""


class MissingBuilderError(WsrunError):
    """Raised when the package backing a builder cannot be imported."""

    def __init__(self, builder_name: str, module: str):
        super().__init__(f"Could not import '{module}' for builder '{builder_name}'")
        self.builder_name = builder_name
        self.module = module


class BuilderNotFoundError(WsrunError):
    """Raised when a builder package does not export the requested builder."""


class BuilderError(WsrunError):
    """Raised by builder handlers to report a failed run."""


class ParseArgumentError(WsrunError):
    """Raised when an override value cannot be coerced to its declared type."""

    def __init__(self, errors: Iterable[str]):
        self.errors = list(errors)
        super().__init__("\n".join(self.errors))


@dataclass(frozen=True, slots=True)
class SchemaErrorDetail:
    keyword: str
    path: str
    message: str
    params: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


class SchemaValidationError(WsrunError):
    """Raised when merged builder options do not satisfy the builder schema."""

    def __init__(self, errors: Iterable[SchemaErrorDetail]):
        self.errors = list(errors)
        lines = "\n  ".join(str(error) for error in self.errors)
        super().__init__(f"Schema validation failed with the following errors:\n  {lines}")


def flag_for(name: str) -> str:
    """Render ``name`` the way it would be typed on the command line."""

    dashes = "-" if len(name) == 1 else "--"
    return f"{dashes}{name}"


def translate_schema_errors(
    exc: SchemaValidationError,
    command_options: Mapping[str, Any],
    console: Console,
) -> int:
    """Report ``exc``, rewriting undeclared properties the user typed as unknown options."""

    remaining: List[SchemaErrorDetail] = []
    for error in exc.errors:
        if error.keyword == "additionalProperties":
            unknown = error.params.get("additionalProperty")
            if unknown is not None and unknown in command_options:
                console.fatal(f"Unknown option: '{flag_for(str(unknown))}'")
                continue
        remaining.append(error)

    if remaining:
        console.error(str(SchemaValidationError(remaining)))
    return 1


def report_missing_builder(builder_name: str, base_path: Path, console: Console) -> int:
    warn_on_missing_packages(base_path, console)
    console.fatal(f"Could not find the '{builder_name}' builder's package.")
    return 1


__all__ = [
    "BuilderError",
    "BuilderNotFoundError",
    "MissingBuilderError",
    "ParseArgumentError",
    "SchemaErrorDetail",
    "SchemaValidationError",
    "WorkspaceError",
    "WorkspaceNotFoundError",
    "WsrunError",
    "flag_for",
    "report_missing_builder",
    "translate_schema_errors",
]
