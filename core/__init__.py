"""Shared core utilities for configuration loading, console output and commands."""

from .command_runner import (
    CommandError,
    CommandResult,
    CommandRunner,
    RecordingCommandRunner,
    SubprocessCommandRunner,
)
from .config_loader import (
    ConfigLoader,
    FILE_LOADERS,
    find_config_file,
    load_config_file,
    search_upwards,
)
from .console import Console

__all__ = [
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "RecordingCommandRunner",
    "SubprocessCommandRunner",
    "ConfigLoader",
    "Console",
    "FILE_LOADERS",
    "find_config_file",
    "load_config_file",
    "search_upwards",
]
