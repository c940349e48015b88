"""Utilities for executing shell commands with optional dry-run support."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Sequence
import os
import shlex
import subprocess


@dataclass
class CommandResult:
    """Represents the outcome of an executed command."""

    command: Sequence[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    streamed: bool = False


class CommandError(RuntimeError):
    """Raised when a command exits with a non-zero status."""

    def __init__(self, result: CommandResult):
        message = f"Command failed with exit code {result.returncode}: {format_command(result.command)}"
        if not result.streamed and (result.stdout or result.stderr):
            message = f"{message}\nstdout: {result.stdout}\nstderr: {result.stderr}"
        super().__init__(message)
        self.result = result


def format_command(command: Sequence[str]) -> str:
    return " ".join(shlex.quote(part) for part in command)


def split_command(command: str | Sequence[str]) -> List[str]:
    """Accept either a shell-like string or an argument vector."""

    if isinstance(command, str):
        return shlex.split(command)
    return [str(part) for part in command]


class CommandRunner:
    """Abstract command runner interface."""

    def run(
        self,
        command: str | Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = True,
        capture: bool = False,
    ) -> CommandResult:
        raise NotImplementedError


class SubprocessCommandRunner(CommandRunner):
    """Command runner that executes commands via :mod:`subprocess`.

    Output is streamed to the terminal unless ``capture`` is requested so that
    sequential builder runs keep their log order.
    """

    @staticmethod
    def _merge_environment(env: Mapping[str, str] | None) -> Dict[str, str] | None:
        if not env:
            return None
        merged = os.environ.copy()
        merged.update({str(key): str(value) for key, value in env.items()})
        return merged

    def run(
        self,
        command: str | Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = True,
        capture: bool = False,
    ) -> CommandResult:
        argv = split_command(command)
        process = subprocess.run(
            argv,
            cwd=str(cwd) if cwd else None,
            env=self._merge_environment(env),
            capture_output=capture,
            text=True,
            check=False,
        )
        result = CommandResult(
            command=argv,
            returncode=process.returncode,
            stdout=process.stdout or "",
            stderr=process.stderr or "",
            streamed=not capture,
        )
        if check and result.returncode != 0:
            raise CommandError(result)
        return result


@dataclass(slots=True)
class RecordedCommand:
    command: List[str]
    cwd: str | None
    env: Dict[str, str] = field(default_factory=dict)


class RecordingCommandRunner(CommandRunner):
    """Command runner that records commands instead of executing them."""

    def __init__(self) -> None:
        self.commands: List[RecordedCommand] = []

    def run(
        self,
        command: str | Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = True,
        capture: bool = False,
    ) -> CommandResult:
        argv = split_command(command)
        self.commands.append(
            RecordedCommand(
                command=argv,
                cwd=str(cwd) if cwd else None,
                env={str(key): str(value) for key, value in (env or {}).items()},
            )
        )
        return CommandResult(command=argv, returncode=0)

    def iter_formatted(self) -> Iterable[str]:
        for record in self.commands:
            parts: List[str] = []
            if record.cwd:
                parts.append(f"(cwd={record.cwd})")
            parts.append(format_command(record.command))
            yield " ".join(parts)


__all__ = [
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "RecordedCommand",
    "RecordingCommandRunner",
    "SubprocessCommandRunner",
    "format_command",
    "split_command",
]
