"""Parsing of ``project:target:configuration`` specifiers."""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any


@dataclass(frozen=True, slots=True)
class TargetSpecifier:
    """A normalized target reference.

    Empty strings mean "unresolved": an empty ``project`` must be inferred and
    an empty ``configuration`` selects the builder defaults.
    """

    project: str = ""
    target: str = ""
    configuration: str = ""

    @classmethod
    def parse(cls, text: str) -> "TargetSpecifier":
        parts = text.split(":")
        project = parts[0] if len(parts) > 0 else ""
        target = parts[1] if len(parts) > 1 else ""
        configuration = parts[2] if len(parts) > 2 else ""
        return cls(project=project, target=target, configuration=configuration)

    def with_project(self, project: str) -> "TargetSpecifier":
        return replace(self, project=project)

    @property
    def configurations(self) -> list[str]:
        return [part.strip() for part in self.configuration.split(",") if part.strip()]

    def __str__(self) -> str:
        text = f"{self.project}:{self.target}"
        if self.configuration:
            text = f"{text}:{self.configuration}"
        return text


def make_target_specifier(options: Any, fixed_target: str | None) -> TargetSpecifier:
    """Merge the compact ``target`` option with the discrete command options.

    ``options`` only needs ``target``, ``project`` and ``configuration``
    attributes; any of them may be ``None``.
    """

    raw_target = getattr(options, "target", None)
    configuration_option = getattr(options, "configuration", None)

    if raw_target:
        spec = TargetSpecifier.parse(raw_target)
        if configuration_option:
            spec = replace(spec, configuration=configuration_option)
        return spec

    return TargetSpecifier(
        project=getattr(options, "project", None) or "",
        target=fixed_target or "",
        configuration=configuration_option or "",
    )


__all__ = ["TargetSpecifier", "make_target_specifier"]
