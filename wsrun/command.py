"""Project resolution and sequential execution of workspace targets."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Sequence

from core.console import Console

from .disambiguation import Disambiguator
from .errors import (
    MissingBuilderError,
    SchemaValidationError,
    WorkspaceError,
    report_missing_builder,
    translate_schema_errors,
)
from .host import BuilderHost
from .options import format_option_help
from .parser import parse_additional, parse_arguments
from .runtime import BuilderDescription, BuilderRuntime
from .specifier import TargetSpecifier, make_target_specifier
from .workspace import Workspace


@dataclass(slots=True)
class CommandOptions:
    """Options recognised by the command itself; everything else is an override."""

    project: str | None = None
    configuration: str | None = None
    target: str | None = None
    help: bool = False
    overrides: List[str] = field(default_factory=list)

    def to_mapping(self) -> Dict[str, Any]:
        values = {
            "project": self.project,
            "configuration": self.configuration,
            "target": self.target,
            "help": self.help,
        }
        return {key: value for key, value in values.items() if value}


def _unknown_flag(token: str) -> str:
    if token.startswith("-"):
        return token.split("=", 1)[0]
    return token


class TargetCommand:
    """Runs a builder-backed target on one or more workspace projects.

    ``target`` is fixed for commands such as ``build`` or ``test``; the
    ``run`` command leaves it ``None`` and reads a full
    ``project:target:configuration`` specifier from the options instead.
    Multi-target commands run every project that supports the target when no
    project is given or inferred.
    """

    missing_target_error: str | None = None

    def __init__(
        self,
        workspace: Workspace | None,
        *,
        name: str,
        target: str | None = None,
        multi_target: bool = False,
        console: Console | None = None,
        host: BuilderHost | None = None,
        runtime: BuilderRuntime | None = None,
        missing_target_error: str | None = None,
        summary: str = "",
    ):
        self.workspace = workspace
        self.name = name
        self.target = target
        self.multi_target = multi_target
        self.console = console or Console()
        self.host = host or (BuilderHost(workspace) if workspace is not None else None)
        self.runtime = runtime or BuilderRuntime()
        if missing_target_error is not None:
            self.missing_target_error = missing_target_error
        self.summary = summary
        self.builder: BuilderDescription | None = None

    def on_missing_target(self, project_name: str | None = None) -> int:
        if self.missing_target_error:
            self.console.fatal(self.missing_target_error)
            return 1

        if project_name:
            self.console.fatal(f"Project '{project_name}' does not support the '{self.target}' target.")
        else:
            self.console.fatal(f"No projects support the '{self.target}' target.")
        return 1

    def execute(self, options: CommandOptions) -> int:
        options = replace(options, overrides=list(options.overrides))
        code = self.initialize(options)
        if code is not None:
            return code
        if options.help:
            self.print_help()
            return 0
        return self.run(options)

    def initialize(self, options: CommandOptions) -> int | None:
        """Resolve the project to run, updating ``options`` in place.

        Returns an exit code when the command must stop, ``None`` otherwise.
        """

        if self.workspace is None or self.host is None:
            self.console.fatal("A workspace is required for this command.")
            return 1

        if not self.target:
            return self._initialize_from_specifier(options)

        workspace = self.workspace
        project = options.project or ""
        if project and not workspace.has_project(project):
            self.console.fatal(f"Project '{project}' does not exist.")
            return 1

        candidates = workspace.projects_supporting(self.target)
        if project and project not in candidates:
            return self.on_missing_target(project)
        if not candidates:
            return self.on_missing_target()

        if not project and options.overrides:
            disambiguator = Disambiguator(
                self.host,
                self.target,
                multi_target=self.multi_target,
                console=self.console,
            )
            try:
                result = disambiguator.resolve(candidates, options.overrides)
            except MissingBuilderError as exc:
                return report_missing_builder(exc.builder_name, workspace.root, self.console)

            if result.resolved:
                project = result.project
                options.overrides = list(result.tokens)
            elif self.multi_target and result.builder_conflict:
                builders = "\n  ".join(result.builder_names)
                self.console.fatal(
                    "Commands with command line overrides cannot target different builders. "
                    f"The '{self.target}' target would run on projects {', '.join(candidates)} "
                    f"which have the following builders:\n  {builders}"
                )
                return 1

        if not project and not self.multi_target:
            default_project = workspace.default_project
            if default_project and default_project in candidates:
                project = default_project
            elif len(candidates) == 1:
                project = candidates[0]
            elif options.help:
                return None
            else:
                self.console.fatal(self.missing_target_error or "Cannot determine project or target for command.")
                return 1

        options.project = project or None
        return self._describe(TargetSpecifier(project=project or candidates[0], target=self.target))

    def _initialize_from_specifier(self, options: CommandOptions) -> int | None:
        assert self.workspace is not None
        if options.help and not options.target:
            return None

        spec = make_target_specifier(options, None)
        if not spec.project or not spec.target:
            self.console.fatal("Cannot determine project or target for command.")
            return 1
        if not self.workspace.has_project(spec.project):
            self.console.fatal(f"Project '{spec.project}' does not exist.")
            return 1
        if not self.workspace.get_project(spec.project).has_target(spec.target):
            self.console.fatal(f"Project '{spec.project}' does not support the '{spec.target}' target.")
            return 1
        return self._describe(spec)

    def _describe(self, target: TargetSpecifier) -> int | None:
        assert self.host is not None and self.workspace is not None
        builder_name = self.host.get_builder_name_for_target(target)
        try:
            self.builder = self.host.resolve_builder(builder_name)
        except MissingBuilderError as exc:
            return report_missing_builder(exc.builder_name, self.workspace.root, self.console)
        return None

    def print_help(self) -> None:
        usage = f"usage: wsrun {self.name}"
        if self.target:
            usage += " [project] [--project PROJECT]"
        else:
            usage += " <project:target[:configuration]>"
        usage += " [-c CONFIGURATION] [options]"
        lines = [usage]
        if self.summary:
            lines.extend(["", self.summary])
        if self.builder is not None:
            lines.extend(["", f"Options for builder '{self.builder.name}':"])
            lines.extend(format_option_help(self.builder.option_schema))
        print("\n".join(lines))

    def project_names_for_target(self, target: str) -> List[str]:
        assert self.workspace is not None
        candidates = self.workspace.projects_supporting(target)
        if self.multi_target:
            return candidates

        default_project = self.workspace.default_project
        if default_project and default_project in candidates:
            return [default_project]
        if len(candidates) == 1:
            return candidates
        raise WorkspaceError(f"Could not determine a single project for the '{target}' target.")

    def run(self, options: CommandOptions) -> int:
        spec = make_target_specifier(options, self.target)
        command_options = options.to_mapping()
        if not spec.project and self.target:
            # one project at a time so builder output is never interleaved
            result = 0
            for project in self.project_names_for_target(self.target):
                result |= self.run_single_target(spec.with_project(project), options.overrides, command_options)
            return result
        return self.run_single_target(spec, options.overrides, command_options)

    def run_single_target(
        self,
        target: TargetSpecifier,
        tokens: Sequence[str],
        command_options: Mapping[str, Any] | None = None,
    ) -> int:
        assert self.host is not None and self.workspace is not None
        builder_name = self.host.get_builder_name_for_target(target)
        try:
            description = self.host.resolve_builder(builder_name)
        except MissingBuilderError as exc:
            return report_missing_builder(exc.builder_name, self.workspace.root, self.console)

        schema = description.option_schema
        overrides = parse_arguments(tokens, schema)
        if overrides.leftovers:
            if not schema.allows_additional_properties:
                for token in overrides.leftovers:
                    self.console.fatal(f"Unknown option: '{_unknown_flag(token)}'")
                return 1
            overrides.options.update(parse_additional(overrides.leftovers, self.console))

        merged = self.host.get_options_for_target(target)
        merged.update(overrides.options)

        self.console.info(f"Running '{target}' with builder '{builder_name}'")
        try:
            run = self.runtime.schedule(
                target,
                description,
                merged,
                workspace_root=self.workspace.root,
                project_root=self.workspace.project_root(target.project),
                console=self.console,
            )
        except SchemaValidationError as exc:
            return translate_schema_errors(exc, {**(command_options or {}), **overrides.options}, self.console)

        try:
            output = run.result()
        finally:
            run.dispose()

        if output.error:
            self.console.error(output.error)
        return 0 if output.success else 1


__all__ = ["CommandOptions", "TargetCommand"]
