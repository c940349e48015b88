"""Command line interface for the workspace target runner."""
from __future__ import annotations

from argparse import ArgumentParser, Namespace
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List
import os
import sys

from core.console import Console

from .command import CommandOptions, TargetCommand
from .errors import ParseArgumentError, WorkspaceNotFoundError, WsrunError
from .runtime import BuilderRuntime
from .workspace import Workspace, load_workspace


LOG_LEVEL_ENV = "WSRUN_LOG_LEVEL"


@dataclass(frozen=True, slots=True)
class CommandSpec:
    target: str | None
    multi_target: bool
    summary: str
    missing_target_error: str | None = None


COMMANDS = {
    "build": CommandSpec(target="build", multi_target=False, summary="Build a project"),
    "serve": CommandSpec(target="serve", multi_target=False, summary="Serve a project"),
    "test": CommandSpec(
        target="test",
        multi_target=True,
        summary="Run tests for a project, or every project with a 'test' target",
    ),
    "lint": CommandSpec(
        target="lint",
        multi_target=True,
        summary="Lint a project, or every project with a 'lint' target",
        missing_target_error=(
            "Cannot find the 'lint' target for the specified project.\n"
            "Add a 'lint' target with a builder to the project in the workspace file."
        ),
    ),
    "run": CommandSpec(
        target=None,
        multi_target=False,
        summary="Run a target given as project:target[:configuration]",
    ),
}


def _build_parser() -> ArgumentParser:
    parser = ArgumentParser(prog="wsrun", description="Run builder-backed workspace targets", allow_abbrev=False)
    parser.add_argument("--workspace", type=Path, help="Path to the workspace file (default: search upwards)")
    parser.add_argument("--verbose", action="store_true", help="Enable debug output")
    parser.add_argument("--dry-run", action="store_true", help="Print commands without executing them")
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, spec in COMMANDS.items():
        sub = subparsers.add_parser(name, help=spec.summary, add_help=False, allow_abbrev=False)
        if spec.target is not None:
            sub.add_argument("--project", help="Project to run the target on")
        sub.add_argument("-c", "--configuration", help="Named configuration(s), comma separated")
        sub.add_argument("-h", "--help", action="store_true", help="Show command and builder options")
    return parser


def _parse_arguments(argv: Iterable[str]) -> tuple[Namespace, List[str]]:
    """Split ``argv`` into command options and builder override tokens."""

    tokens = list(argv)
    passthrough: List[str] = []
    if "--" in tokens:
        split_at = tokens.index("--")
        tokens, passthrough = tokens[:split_at], tokens[split_at:]

    args, overrides = _build_parser().parse_known_args(tokens)
    overrides.extend(passthrough)

    args.target = None
    if COMMANDS[args.command].target is None:
        bare: List[int] = []
        for index, token in enumerate(overrides):
            if token == "--":
                break
            if not token.startswith("-"):
                bare.append(index)
        # a bare token may be the value of a preceding override
        chosen = next((index for index in bare if ":" in overrides[index]), bare[0] if bare else None)
        if chosen is not None:
            args.target = overrides.pop(chosen)
    return args, overrides


def _make_console(args: Namespace, workspace: Workspace | None) -> Console:
    level = workspace.cli.log_level if workspace is not None else "info"
    level = os.environ.get(LOG_LEVEL_ENV, level).lower()
    if args.verbose:
        level = "debug"
    dry_run = bool(args.dry_run or (workspace is not None and workspace.cli.dry_run))
    return Console(level=level, dry_run=dry_run)


def main(argv: Iterable[str] | None = None) -> int:
    args, overrides = _parse_arguments(sys.argv[1:] if argv is None else argv)
    console = Console()

    try:
        workspace: Workspace | None = load_workspace(Path.cwd(), args.workspace)
    except WorkspaceNotFoundError as exc:
        console.debug(str(exc))
        workspace = None
    except WsrunError as exc:
        console.fatal(str(exc))
        return 1

    try:
        console = _make_console(args, workspace)
    except ValueError as exc:
        console.fatal(str(exc))
        return 1

    spec = COMMANDS[args.command]
    command = TargetCommand(
        workspace,
        name=args.command,
        target=spec.target,
        multi_target=spec.multi_target,
        console=console,
        runtime=BuilderRuntime(dry_run=console.dry_run),
        missing_target_error=spec.missing_target_error,
        summary=spec.summary,
    )
    options = CommandOptions(
        project=getattr(args, "project", None),
        configuration=args.configuration,
        target=args.target,
        help=args.help,
        overrides=overrides,
    )

    try:
        return command.execute(options)
    except ParseArgumentError as exc:
        for message in exc.errors:
            console.fatal(message)
        return 1
    except WsrunError as exc:
        console.fatal(str(exc))
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
