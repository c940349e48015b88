"""Conversion of builder JSON schemas into command line option definitions."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Tuple
import copy
import re


class OptionType(str, Enum):
    BOOLEAN = "boolean"
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    ARRAY = "array"
    OBJECT = "object"


_SUPPORTED_TYPES = {item.value: item for item in OptionType}
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def dasherize(name: str) -> str:
    """``sourceMap`` -> ``source-map``; names already in dash-case are unchanged."""

    return _CAMEL_BOUNDARY.sub(r"-\1", name).replace("_", "-").lower()


@dataclass(frozen=True, slots=True)
class OptionDefinition:
    name: str
    types: Tuple[OptionType, ...]
    aliases: Tuple[str, ...] = ()
    positional: int | None = None
    default: Any = None
    enum: Tuple[Any, ...] = ()
    description: str = ""
    hidden: bool = False

    @property
    def type(self) -> OptionType:
        return self.types[0]

    @property
    def flag_names(self) -> Tuple[str, ...]:
        names = [self.name]
        dashed = dasherize(self.name)
        if dashed != self.name:
            names.append(dashed)
        return tuple(names)

    def accepts(self, option_type: OptionType) -> bool:
        return option_type in self.types


@dataclass(frozen=True, slots=True)
class OptionSchema:
    """Option definitions of one builder, resolved once and passed by value."""

    options: Tuple[OptionDefinition, ...]
    allows_additional_properties: bool = False
    raw: Mapping[str, Any] = field(default_factory=dict)

    def defaults(self) -> Dict[str, Any]:
        return {
            option.name: copy.deepcopy(option.default) for option in self.options if option.default is not None
        }

    def positionals(self) -> List[OptionDefinition]:
        return sorted(
            (option for option in self.options if option.positional is not None),
            key=lambda option: option.positional,
        )


def _parse_types(definition: Mapping[str, Any]) -> Tuple[OptionType, ...]:
    raw_type = definition.get("type")
    if raw_type is None:
        if "enum" in definition:
            return (OptionType.STRING,)
        return ()
    raw_types: Iterable[Any] = raw_type if isinstance(raw_type, list) else [raw_type]
    return tuple(_SUPPORTED_TYPES[item] for item in raw_types if item in _SUPPORTED_TYPES)


def _parse_aliases(definition: Mapping[str, Any]) -> Tuple[str, ...]:
    aliases: List[str] = []
    alias = definition.get("alias")
    if isinstance(alias, str) and alias:
        aliases.append(alias)
    raw_aliases = definition.get("aliases")
    if isinstance(raw_aliases, list):
        aliases.extend(str(item) for item in raw_aliases if isinstance(item, str) and item)
    return tuple(dict.fromkeys(aliases))


def _parse_positional(definition: Mapping[str, Any]) -> int | None:
    source = definition.get("$default")
    if isinstance(source, Mapping) and source.get("$source") == "argv":
        index = source.get("index")
        if isinstance(index, int) and index >= 0:
            return index
    return None


def parse_schema_to_options(schema: Mapping[str, Any]) -> OptionSchema:
    """Build an :class:`OptionSchema` from the top-level ``properties`` of ``schema``.

    Properties with no usable ``type`` are skipped. ``additionalProperties``
    only counts as allowed when the schema says so explicitly.
    """

    properties = schema.get("properties", {})
    if not isinstance(properties, Mapping):
        raise TypeError("Builder schema 'properties' must be a mapping")

    options: List[OptionDefinition] = []
    for raw_name, definition in properties.items():
        if not isinstance(definition, Mapping):
            continue
        name = str(raw_name)
        types = _parse_types(definition)
        if not types:
            continue
        enum = definition.get("enum")
        options.append(
            OptionDefinition(
                name=name,
                types=types,
                aliases=_parse_aliases(definition),
                positional=_parse_positional(definition),
                default=definition.get("default"),
                enum=tuple(enum) if isinstance(enum, list) else (),
                description=str(definition.get("description", "")),
                hidden=definition.get("visible") is False,
            )
        )

    additional = schema.get("additionalProperties", False)
    return OptionSchema(
        options=tuple(options),
        allows_additional_properties=bool(additional),
        raw=dict(schema),
    )


def format_option_help(schema: OptionSchema) -> List[str]:
    """Render one help line per visible option."""

    lines: List[str] = []
    for option in schema.options:
        if option.hidden:
            continue
        flags = [f"--{dasherize(option.name)}"]
        flags.extend(f"-{alias}" if len(alias) == 1 else f"--{alias}" for alias in option.aliases)
        kinds = "|".join(item.value for item in option.types)
        line = f"  {', '.join(flags)} ({kinds})"
        if option.enum:
            line += f" [{', '.join(str(item) for item in option.enum)}]"
        if option.default is not None:
            line += f" default: {option.default!r}"
        if option.description:
            line += f"\n      {option.description}"
        lines.append(line)
    return lines


__all__ = [
    "OptionDefinition",
    "OptionSchema",
    "OptionType",
    "dasherize",
    "format_option_help",
    "parse_schema_to_options",
]
