"""Workspace loading and the project/target index."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping
import os

import yaml

from core.config_loader import load_config_file, search_upwards

from .errors import WorkspaceError, WorkspaceNotFoundError


WORKSPACE_STEM = "workspace"
WORKSPACE_ENV = "WSRUN_WORKSPACE"


def _mapping_section(data: Mapping[str, Any], key: str, *, label: str) -> Mapping[str, Any]:
    section = data.get(key)
    if section is None:
        return {}
    if not isinstance(section, Mapping):
        raise WorkspaceError(f"{label} must be a table/mapping")
    return section


@dataclass(slots=True)
class TargetDefinition:
    name: str
    builder: str
    options: Dict[str, Any] = field(default_factory=dict)
    configurations: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    default_configuration: str | None = None

    @classmethod
    def from_mapping(cls, name: str, data: Mapping[str, Any], *, project: str) -> "TargetDefinition":
        label = f"Target '{project}:{name}'"
        builder = data.get("builder")
        if not isinstance(builder, str) or not builder.strip():
            raise WorkspaceError(f"{label} requires a 'builder' string")

        options = dict(_mapping_section(data, "options", label=f"{label} options"))
        configurations: Dict[str, Dict[str, Any]] = {}
        for config_name, config_values in _mapping_section(
            data, "configurations", label=f"{label} configurations"
        ).items():
            if not isinstance(config_values, Mapping):
                raise WorkspaceError(f"{label} configuration '{config_name}' must be a table/mapping")
            configurations[str(config_name)] = dict(config_values)

        default_configuration = data.get("default_configuration", data.get("defaultConfiguration"))
        if default_configuration is not None and not isinstance(default_configuration, str):
            raise WorkspaceError(f"{label} default_configuration must be a string")

        return cls(
            name=name,
            builder=builder.strip(),
            options=options,
            configurations=configurations,
            default_configuration=default_configuration or None,
        )


@dataclass(slots=True)
class ProjectDefinition:
    name: str
    root: str
    targets: Dict[str, TargetDefinition] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, name: str, data: Mapping[str, Any]) -> "ProjectDefinition":
        label = f"Project '{name}'"
        root = data.get("root", "")
        if not isinstance(root, str):
            raise WorkspaceError(f"{label} root must be a string")

        targets: Dict[str, TargetDefinition] = {}
        for target_name, target_data in _mapping_section(data, "targets", label=f"{label} targets").items():
            if not isinstance(target_data, Mapping):
                raise WorkspaceError(f"{label} target '{target_name}' must be a table/mapping")
            targets[str(target_name)] = TargetDefinition.from_mapping(
                str(target_name), target_data, project=name
            )
        return cls(name=name, root=root, targets=targets)

    def has_target(self, target: str) -> bool:
        return target in self.targets


@dataclass(slots=True)
class CliSettings:
    log_level: str = "info"
    dry_run: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CliSettings":
        section = _mapping_section(data, "cli", label="[cli]")
        return cls(
            log_level=str(section.get("log_level", "info")).lower(),
            dry_run=bool(section.get("dry_run", False)),
        )


@dataclass(slots=True)
class Workspace:
    root: Path
    projects: Dict[str, ProjectDefinition]
    extensions: Dict[str, Any] = field(default_factory=dict)
    cli: CliSettings = field(default_factory=CliSettings)
    path: Path | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, root: Path, path: Path | None = None) -> "Workspace":
        extensions = dict(_mapping_section(data, "workspace", label="[workspace]"))
        projects: Dict[str, ProjectDefinition] = {}
        for name, project_data in _mapping_section(data, "projects", label="[projects]").items():
            if not isinstance(project_data, Mapping):
                raise WorkspaceError(f"Project '{name}' must be a table/mapping")
            projects[str(name)] = ProjectDefinition.from_mapping(str(name), project_data)
        return cls(
            root=root,
            projects=projects,
            extensions=extensions,
            cli=CliSettings.from_mapping(data),
            path=path,
        )

    @classmethod
    def load(cls, path: Path) -> "Workspace":
        try:
            data = load_config_file(path)
        except (TypeError, ValueError, yaml.YAMLError) as exc:
            raise WorkspaceError(f"Invalid workspace file '{path}': {exc}") from exc
        return cls.from_mapping(data, root=path.resolve().parent, path=path)

    @property
    def default_project(self) -> str:
        value = self.extensions.get("default_project", self.extensions.get("defaultProject"))
        return str(value) if value else ""

    def has_project(self, name: str) -> bool:
        return name in self.projects

    def get_project(self, name: str) -> ProjectDefinition:
        if name not in self.projects:
            available = ", ".join(sorted(self.projects)) or "<none>"
            raise WorkspaceError(f"Project '{name}' does not exist. Available projects: {available}")
        return self.projects[name]

    def get_target(self, project: str, target: str) -> TargetDefinition:
        definition = self.get_project(project)
        if target not in definition.targets:
            raise WorkspaceError(f"Project '{project}' does not support the '{target}' target.")
        return definition.targets[target]

    def project_root(self, name: str) -> Path:
        return self.root / self.get_project(name).root

    def projects_supporting(self, target: str) -> List[str]:
        """Project names declaring ``target``, in workspace order."""

        return [name for name, project in self.projects.items() if project.has_target(target)]


def locate_workspace(start: Path, explicit: Path | None = None) -> Path:
    """Resolve the workspace file from ``explicit``, ``$WSRUN_WORKSPACE`` or a parent search."""

    candidate = explicit
    if candidate is None and os.environ.get(WORKSPACE_ENV):
        candidate = Path(os.environ[WORKSPACE_ENV])
    if candidate is not None:
        if not candidate.is_absolute():
            candidate = start / candidate
        if not candidate.is_file():
            raise WorkspaceNotFoundError(f"Workspace file not found: {candidate}")
        return candidate

    try:
        found = search_upwards(start, WORKSPACE_STEM)
    except ValueError as exc:
        raise WorkspaceError(str(exc)) from exc
    if found is None:
        raise WorkspaceNotFoundError(f"No {WORKSPACE_STEM}.toml/.json/.yaml found in '{start}' or its parents")
    return found


def load_workspace(start: Path, explicit: Path | None = None) -> Workspace:
    return Workspace.load(locate_workspace(start, explicit))


__all__ = [
    "CliSettings",
    "ProjectDefinition",
    "TargetDefinition",
    "Workspace",
    "locate_workspace",
    "load_workspace",
]
