"""Builder runtime: option validation, scheduling and result handling."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Union
import re

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

from core.command_runner import CommandError, CommandRunner, RecordingCommandRunner, SubprocessCommandRunner
from core.console import Console

from .errors import BuilderError, SchemaErrorDetail, SchemaValidationError
from .options import OptionSchema
from .specifier import TargetSpecifier


@dataclass(slots=True)
class BuilderOutput:
    success: bool
    error: str | None = None
    info: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def coerce(cls, value: Any) -> "BuilderOutput":
        if isinstance(value, BuilderOutput):
            return value
        if value is None:
            return cls(success=True)
        if isinstance(value, bool):
            return cls(success=value)
        raise TypeError(f"Builders must return a BuilderOutput, bool or None, not {type(value).__name__}")


@dataclass(slots=True)
class BuilderContext:
    target: TargetSpecifier
    builder_name: str
    workspace_root: Path
    project_root: Path
    console: Console
    runner: CommandRunner
    teardowns: List[Callable[[], None]] = field(default_factory=list)

    def add_teardown(self, callback: Callable[[], None]) -> None:
        self.teardowns.append(callback)


BuilderHandler = Callable[[Dict[str, Any], BuilderContext], Union[BuilderOutput, bool, None]]


@dataclass(frozen=True, slots=True)
class Builder:
    """A builder exported from a builder package through its ``BUILDERS`` mapping.

    ``schema`` is either the JSON schema itself or a path, relative to the
    package, of a JSON/YAML/TOML file holding it.
    """

    handler: BuilderHandler
    schema: Union[Mapping[str, Any], str]
    description: str = ""


@dataclass(frozen=True, slots=True)
class BuilderDescription:
    name: str
    builder: Builder
    option_schema: OptionSchema


def _format_path(error: ValidationError) -> str:
    path = "$"
    for part in error.path:
        path += f"[{part!r}]" if isinstance(part, int) else f".{part}"
    return path


def _unexpected_properties(error: ValidationError) -> List[str]:
    instance = error.instance if isinstance(error.instance, Mapping) else {}
    schema = error.schema if isinstance(error.schema, Mapping) else {}
    properties = schema.get("properties", {})
    patterns = list(schema.get("patternProperties", {}))
    return [
        str(key)
        for key in instance
        if key not in properties and not any(re.search(pattern, str(key)) for pattern in patterns)
    ]


def validate_options(schema: Mapping[str, Any], options: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate ``options`` against ``schema`` and return a copy of them.

    Each unexpected key becomes its own ``additionalProperties`` detail so the
    error translator can report them individually.
    """

    validator = Draft202012Validator(schema)
    details: List[SchemaErrorDetail] = []
    for error in sorted(validator.iter_errors(dict(options)), key=lambda item: _format_path(item)):
        path = _format_path(error)
        if error.validator == "additionalProperties":
            for key in _unexpected_properties(error):
                details.append(
                    SchemaErrorDetail(
                        keyword="additionalProperties",
                        path=path,
                        message=f"Property '{key}' is not allowed",
                        params={"additionalProperty": key},
                    )
                )
            continue
        details.append(SchemaErrorDetail(keyword=str(error.validator), path=path, message=error.message))

    if details:
        raise SchemaValidationError(details)
    return dict(options)


class BuilderRun:
    """Handle for one scheduled builder execution."""

    def __init__(self, builder: Builder, options: Dict[str, Any], context: BuilderContext):
        self.builder = builder
        self.options = options
        self.context = context
        self._output: BuilderOutput | None = None
        self._disposed = False

    def result(self) -> BuilderOutput:
        if self._output is None:
            self._output = self._execute()
        return self._output

    def _execute(self) -> BuilderOutput:
        try:
            output = BuilderOutput.coerce(self.builder.handler(dict(self.options), self.context))
        except (BuilderError, CommandError) as exc:
            output = BuilderOutput(success=False, error=str(exc))
        runner = self.context.runner
        if isinstance(runner, RecordingCommandRunner):
            for line in runner.iter_formatted():
                self.context.console.dry(line)
        return output

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        teardowns = self.context.teardowns
        while teardowns:
            teardowns.pop()()


class BuilderRuntime:
    def __init__(self, *, dry_run: bool = False, runner_factory: Callable[[], CommandRunner] | None = None):
        self.dry_run = dry_run
        if runner_factory is None:
            runner_factory = RecordingCommandRunner if dry_run else SubprocessCommandRunner
        self.runner_factory = runner_factory

    def schedule(
        self,
        target: TargetSpecifier,
        description: BuilderDescription,
        options: Mapping[str, Any],
        *,
        workspace_root: Path,
        project_root: Path,
        console: Console,
    ) -> BuilderRun:
        validated = validate_options(description.option_schema.raw, options)
        context = BuilderContext(
            target=target,
            builder_name=description.name,
            workspace_root=workspace_root,
            project_root=project_root,
            console=console,
            runner=self.runner_factory(),
        )
        console.debug(f"Scheduling '{description.name}' for {target} with options {validated}")
        return BuilderRun(description.builder, validated, context)


__all__ = [
    "Builder",
    "BuilderContext",
    "BuilderDescription",
    "BuilderHandler",
    "BuilderOutput",
    "BuilderRun",
    "BuilderRuntime",
    "validate_options",
]
