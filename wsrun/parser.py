"""Parse command line override tokens against a builder's option definitions."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Sequence, Tuple
import json
import math

from core.console import Console

from .errors import ParseArgumentError
from .options import OptionDefinition, OptionSchema, OptionType


_BOOLEAN_WORDS = {"true": True, "false": False}


@dataclass(slots=True)
class ParsedOverrides:
    options: Dict[str, Any] = field(default_factory=dict)
    leftovers: List[str] = field(default_factory=list)


class _Invalid(Exception):
    pass


def _coerce_one(value: str, option_type: OptionType) -> Any:
    if option_type is OptionType.BOOLEAN:
        lowered = value.lower()
        if lowered in _BOOLEAN_WORDS:
            return _BOOLEAN_WORDS[lowered]
        raise _Invalid
    if option_type is OptionType.INTEGER:
        try:
            return int(value)
        except ValueError:
            raise _Invalid from None
    if option_type is OptionType.NUMBER:
        try:
            return int(value)
        except ValueError:
            pass
        try:
            number = float(value)
        except ValueError:
            raise _Invalid from None
        if not math.isfinite(number):
            raise _Invalid
        return number
    if option_type is OptionType.OBJECT:
        try:
            decoded = json.loads(value)
        except json.JSONDecodeError:
            raise _Invalid from None
        if not isinstance(decoded, dict):
            raise _Invalid
        return decoded
    return value


def _looks_numeric(token: str) -> bool:
    try:
        float(token)
    except ValueError:
        return False
    return True


class _Parser:
    def __init__(self, definitions: Sequence[OptionDefinition]):
        self.definitions = list(definitions)
        self.long_names: Dict[str, OptionDefinition] = {}
        self.short_names: Dict[str, OptionDefinition] = {}
        for option in self.definitions:
            for name in option.flag_names:
                self.long_names.setdefault(name, option)
            for alias in option.aliases:
                if len(alias) == 1:
                    self.short_names.setdefault(alias, option)
                else:
                    self.long_names.setdefault(alias, option)
        self.options: Dict[str, Any] = {}
        self.leftovers: List[Tuple[int, str]] = []
        self.bare: List[Tuple[int, str]] = []
        self.errors: List[str] = []

    def _assign(self, option: OptionDefinition, raw: str, flag: str) -> None:
        if option.accepts(OptionType.ARRAY):
            current = self.options.get(option.name)
            items = list(current) if isinstance(current, list) else []
            items.append(raw)
            self.options[option.name] = items
            return

        for option_type in option.types:
            try:
                value = _coerce_one(raw, option_type)
            except _Invalid:
                continue
            if option.enum and value not in option.enum:
                allowed = ", ".join(repr(item) for item in option.enum)
                self.errors.append(f"Argument {flag} could not be parsed using value {raw!r}. Valid values are: {allowed}.")
                return
            self.options[option.name] = value
            return

        kinds = ", ".join(item.value for item in option.types)
        self.errors.append(f"Argument {flag} could not be parsed using value {raw!r}. Expected {kinds}.")

    def _takes_next(self, option: OptionDefinition, upcoming: str | None) -> bool:
        if upcoming is None or upcoming == "--":
            return False
        if option.types == (OptionType.BOOLEAN,):
            return upcoming.lower() in _BOOLEAN_WORDS
        if upcoming.startswith("-") and not (
            _looks_numeric(upcoming) and (option.accepts(OptionType.NUMBER) or option.accepts(OptionType.INTEGER))
        ):
            return False
        return True

    def _lookup(self, name: str, *, short: bool) -> Tuple[OptionDefinition | None, bool]:
        if short:
            # single-dash multi-letter aliases such as -prod
            return self.short_names.get(name) or self.long_names.get(name), False

        option = self.long_names.get(name)
        if option is not None:
            return option, False

        stripped = None
        if name.startswith("no-"):
            stripped = name[3:]
        elif name.startswith("no") and name[2:3].isupper():
            stripped = name[2].lower() + name[3:]
        if stripped:
            negated = self.long_names.get(stripped)
            if negated is not None and negated.accepts(OptionType.BOOLEAN):
                return negated, True
        return None, False

    def parse(self, tokens: Sequence[str]) -> ParsedOverrides:
        index = 0
        while index < len(tokens):
            position = index
            token = tokens[index]
            index += 1

            if token == "--":
                self.leftovers.extend((position + offset + 1, rest) for offset, rest in enumerate(tokens[index:]))
                break

            is_long = token.startswith("--")
            is_short = not is_long and token.startswith("-") and len(token) > 1 and not _looks_numeric(token)
            if not (is_long or is_short):
                self.bare.append((position, token))
                continue

            body = token[2:] if is_long else token[1:]
            name, separator, value = body.partition("=")
            option, negated = self._lookup(name, short=is_short)
            upcoming = tokens[index] if index < len(tokens) else None

            if option is None:
                self.leftovers.append((position, token))
                if not separator and upcoming is not None and not upcoming.startswith("-"):
                    self.leftovers.append((index, upcoming))
                    index += 1
                continue

            if negated:
                if separator:
                    self.errors.append(f"Argument {token} does not take a value.")
                else:
                    self.options[option.name] = False
                continue

            if separator:
                self._assign(option, value, token)
            elif self._takes_next(option, upcoming):
                self._assign(option, upcoming, token)
                index += 1
            elif option.accepts(OptionType.BOOLEAN):
                self.options[option.name] = True
            else:
                self.errors.append(f"Argument {token} requires a value.")

        self._assign_positionals()
        if self.errors:
            raise ParseArgumentError(self.errors)

        return ParsedOverrides(
            options=self.options,
            leftovers=[token for _, token in sorted(self.leftovers)],
        )

    def _assign_positionals(self) -> None:
        by_index: Dict[int, OptionDefinition] = {}
        for option in self.definitions:
            if option.positional is not None:
                by_index.setdefault(option.positional, option)
        for slot, (position, token) in enumerate(self.bare):
            option = by_index.get(slot)
            if option is None or option.name in self.options:
                self.leftovers.append((position, token))
                continue
            self._assign(option, token, token)


def parse_arguments(
    tokens: Iterable[str],
    definitions: OptionSchema | Sequence[OptionDefinition],
) -> ParsedOverrides:
    """Bind ``tokens`` to ``definitions``.

    Unknown flags and surplus bare tokens never raise: they are returned as
    leftovers, in their original order. Values that cannot be coerced to any
    declared type raise :class:`ParseArgumentError`.
    """

    if isinstance(definitions, OptionSchema):
        definitions = definitions.options
    return _Parser(definitions).parse(list(tokens))


def _coerce_loose(raw: str) -> Any:
    lowered = raw.lower()
    if lowered in _BOOLEAN_WORDS:
        return _BOOLEAN_WORDS[lowered]
    for option_type in (OptionType.INTEGER, OptionType.NUMBER):
        try:
            return _coerce_one(raw, option_type)
        except _Invalid:
            continue
    return raw


def parse_additional(leftovers: Sequence[str], console: Console | None = None) -> Dict[str, Any]:
    """Bind leftover flags for schemas that accept undeclared properties.

    Values are inferred (boolean, number, string); bare tokens are skipped.
    """

    values: Dict[str, Any] = {}
    index = 0
    while index < len(leftovers):
        token = leftovers[index]
        index += 1
        if not token.startswith("-"):
            if console is not None:
                console.warn(f"Ignoring positional argument '{token}'")
            continue
        name, separator, raw = token.lstrip("-").partition("=")
        if not separator:
            if index < len(leftovers) and not leftovers[index].startswith("-"):
                raw = leftovers[index]
                index += 1
            else:
                raw = "true"
        values[name] = _coerce_loose(raw)
    return values


__all__ = ["ParsedOverrides", "parse_additional", "parse_arguments"]
