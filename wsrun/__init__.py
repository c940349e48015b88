"""Resolve and run builder-backed targets across the projects of a workspace."""
from __future__ import annotations

from .cli import main
from .command import CommandOptions, TargetCommand
from .errors import (
    BuilderError,
    BuilderNotFoundError,
    MissingBuilderError,
    ParseArgumentError,
    SchemaValidationError,
    WorkspaceError,
    WorkspaceNotFoundError,
    WsrunError,
)
from .runtime import Builder, BuilderContext, BuilderOutput
from .specifier import TargetSpecifier, make_target_specifier
from .workspace import Workspace, load_workspace

__all__ = [
    "Builder",
    "BuilderContext",
    "BuilderError",
    "BuilderNotFoundError",
    "BuilderOutput",
    "CommandOptions",
    "MissingBuilderError",
    "ParseArgumentError",
    "SchemaValidationError",
    "TargetCommand",
    "TargetSpecifier",
    "Workspace",
    "WorkspaceError",
    "WorkspaceNotFoundError",
    "WsrunError",
    "load_workspace",
    "main",
    "make_target_specifier",
]
