"""Resolution of builder identifiers to builder packages and option schemas."""
from __future__ import annotations

from importlib import import_module
from pathlib import Path
from types import ModuleType
from typing import Any, Dict, Mapping
import copy

from core.config_loader import load_config_file

from .errors import BuilderNotFoundError, MissingBuilderError, WorkspaceError
from .options import parse_schema_to_options
from .runtime import Builder, BuilderDescription
from .specifier import TargetSpecifier
from .workspace import Workspace


def split_builder_name(builder_name: str) -> tuple[str, str]:
    """``"package.module:name"`` -> ``("package.module", "name")``."""

    package, separator, name = builder_name.partition(":")
    if not separator or not package or not name:
        raise WorkspaceError(f"Invalid builder identifier '{builder_name}'. Expected '<package>:<builder>'.")
    return package, name


def _is_missing(exc: ModuleNotFoundError, package: str) -> bool:
    # only the builder package itself (or a parent) counts; a missing
    # dependency imported by the package propagates as-is
    missing = exc.name or ""
    return package == missing or package.startswith(f"{missing}.")


class BuilderHost:
    """Looks up builders for workspace targets."""

    def __init__(self, workspace: Workspace):
        self.workspace = workspace
        self._descriptions: Dict[str, BuilderDescription] = {}

    def get_builder_name_for_target(self, target: TargetSpecifier) -> str:
        return self.workspace.get_target(target.project, target.target).builder

    def _import_package(self, builder_name: str, package: str) -> ModuleType:
        try:
            return import_module(package)
        except ModuleNotFoundError as exc:
            if _is_missing(exc, package):
                raise MissingBuilderError(builder_name, package) from exc
            raise

    def _load_schema(self, module: ModuleType, builder_name: str, schema: Mapping[str, Any] | str) -> Mapping[str, Any]:
        if not isinstance(schema, str):
            return schema
        module_file = getattr(module, "__file__", None)
        if module_file is None:
            raise BuilderNotFoundError(f"Builder '{builder_name}' uses a schema file but its package has no location")
        return load_config_file(Path(module_file).resolve().parent / schema)

    def resolve_builder(self, builder_name: str) -> BuilderDescription:
        cached = self._descriptions.get(builder_name)
        if cached is not None:
            return cached

        package, name = split_builder_name(builder_name)
        module = self._import_package(builder_name, package)
        builders = getattr(module, "BUILDERS", None)
        if not isinstance(builders, Mapping):
            raise BuilderNotFoundError(f"Package '{package}' does not export a BUILDERS mapping")
        builder = builders.get(name)
        if not isinstance(builder, Builder):
            available = ", ".join(sorted(builders)) or "<none>"
            raise BuilderNotFoundError(
                f"Builder '{name}' not found in package '{package}'. Available builders: {available}"
            )

        schema = self._load_schema(module, builder_name, builder.schema)
        description = BuilderDescription(
            name=builder_name,
            builder=builder,
            option_schema=parse_schema_to_options(schema),
        )
        self._descriptions[builder_name] = description
        return description

    def get_options_for_target(self, target: TargetSpecifier) -> Dict[str, Any]:
        """Schema defaults, then target options, then each selected configuration.

        The result shares no mutable values with the workspace or the schema.
        """

        definition = self.workspace.get_target(target.project, target.target)
        description = self.resolve_builder(definition.builder)

        options: Dict[str, Any] = description.option_schema.defaults()
        options.update(copy.deepcopy(definition.options))

        configurations = target.configurations
        if not configurations and definition.default_configuration:
            configurations = [definition.default_configuration]
        for configuration in configurations:
            if configuration not in definition.configurations:
                raise WorkspaceError(
                    f"Configuration '{configuration}' is not set in the workspace for target '{target}'."
                )
            options.update(copy.deepcopy(definition.configurations[configuration]))
        return options


__all__ = ["BuilderHost", "split_builder_name"]
