"""Leveled console output shared by the command line tools."""
from __future__ import annotations

import sys


class Console:
    """Simple console output handler with configurable log level.

    Levels: none < error < warn < info < debug
    Default: 'info'
    """

    LEVELS = {
        "none": 0,
        "error": 1,
        "warn": 2,
        "info": 3,
        "debug": 4,
    }

    def __init__(self, level: str = "info", dry_run: bool = False):
        if level not in self.LEVELS:
            raise ValueError(f"Unknown log level '{level}'. Expected one of: {', '.join(self.LEVELS)}")
        self.level_name = level
        self.level = self.LEVELS[level]
        self.dry_run = dry_run

    def enabled(self, level: str) -> bool:
        return self.level >= self.LEVELS[level]

    def fatal(self, message: str) -> None:
        if self.enabled("error"):
            print(f"[FATAL] {message}", file=sys.stderr)

    def error(self, message: str) -> None:
        if self.enabled("error"):
            print(f"[ERROR] {message}", file=sys.stderr)

    def warn(self, message: str) -> None:
        if self.enabled("warn"):
            print(f"[WARN] {message}", file=sys.stderr)

    def info(self, message: str) -> None:
        if self.enabled("info"):
            print(f"[INFO] {message}")

    def dry(self, message: str) -> None:
        if self.dry_run:
            print(f"[DRY] {message}")

    def debug(self, message: str) -> None:
        if self.enabled("debug"):
            print(f"[DEBUG] {message}")


__all__ = ["Console"]
