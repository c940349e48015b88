"""Builders shipped with wsrun, addressed as ``wsrun.builders:<name>``."""
from __future__ import annotations

from typing import Any, Dict, List
import shlex

from core.command_runner import CommandError, format_command, split_command

from ..runtime import Builder, BuilderContext, BuilderOutput


def run_commands(options: Dict[str, Any], context: BuilderContext) -> BuilderOutput:
    cwd = context.project_root
    if options.get("cwd"):
        cwd = cwd / options["cwd"]
    extra = shlex.split(options.get("args") or "")
    environment = options.get("environment") or None
    continue_on_error = bool(options.get("continueOnError"))

    failures: List[str] = []
    for command in options["commands"]:
        argv = [*split_command(command), *extra]
        context.console.info(f"$ {format_command(argv)}")
        try:
            context.runner.run(argv, cwd=cwd, env=environment)
        except CommandError as exc:
            if not continue_on_error:
                raise
            failures.append(str(exc))
        except FileNotFoundError as exc:
            message = f"Command not found: {argv[0]} ({exc})"
            if not continue_on_error:
                return BuilderOutput(success=False, error=message)
            failures.append(message)

    if failures:
        return BuilderOutput(success=False, error="\n".join(failures))
    return BuilderOutput(success=True, info={"commands": len(options["commands"])})


def noop(options: Dict[str, Any], context: BuilderContext) -> BuilderOutput:
    context.console.info(f"{context.target}: {options.get('message')}")
    context.console.debug(f"Received options: {options}")
    return BuilderOutput(success=True, info={"options": dict(options)})


_NOOP_SCHEMA = {
    "type": "object",
    "properties": {
        "message": {
            "type": "string",
            "default": "Nothing to do.",
            "description": "Message printed when the target runs.",
        },
    },
    "additionalProperties": True,
}


BUILDERS = {
    "run-commands": Builder(
        handler=run_commands,
        schema="run-commands.schema.json",
        description="Run commands in the project directory",
    ),
    "noop": Builder(
        handler=noop,
        schema=_NOOP_SCHEMA,
        description="Print a message and succeed",
    ),
}


__all__ = ["BUILDERS", "noop", "run_commands"]
