"""Infer which project an invocation targets from its trailing tokens.

When no project is named explicitly, every project supporting the target
parses the override tokens with its own builder schema. A project name that
stays unconsumed under every one of those parses is taken as the selector,
and its token is removed from the overrides only where doing so leaves the
parsed options unchanged.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Mapping, Sequence, Tuple

from core.console import Console

from .errors import ParseArgumentError
from .host import BuilderHost
from .options import OptionSchema
from .parser import ParsedOverrides, parse_arguments
from .specifier import TargetSpecifier


@dataclass(frozen=True, slots=True)
class CandidateParse:
    project: str
    builder_name: str
    schema: OptionSchema
    parsed: ParsedOverrides


@dataclass(frozen=True, slots=True)
class Disambiguation:
    project: str
    tokens: Tuple[str, ...]
    candidates: FrozenSet[str]
    builder_names: Tuple[str, ...] = ()

    @property
    def resolved(self) -> bool:
        return bool(self.project)

    @property
    def builder_conflict(self) -> bool:
        return not self.project and len(self.builder_names) > 1


def narrow_candidates(
    candidates: Iterable[str],
    leftovers_by_project: Mapping[str, Sequence[str]],
) -> FrozenSet[str]:
    """Keep the candidate names that appear among the leftovers of every parse."""

    narrowed = frozenset(candidates)
    for leftovers in leftovers_by_project.values():
        narrowed = narrowed & frozenset(leftovers)
        if not narrowed:
            break
    return narrowed


def strip_project_token(
    tokens: Sequence[str],
    project: str,
    schema: OptionSchema,
    parsed_options: Mapping[str, object],
) -> List[str]:
    """Remove the first occurrence of ``project`` whose removal keeps ``parsed_options``.

    Returns the tokens unchanged when no occurrence qualifies.
    """

    for index, token in enumerate(tokens):
        if token != project:
            continue
        trial = [*tokens[:index], *tokens[index + 1:]]
        try:
            trial_options = parse_arguments(trial, schema).options
        except ParseArgumentError:
            # removing this occurrence starved an option of its value
            continue
        if trial_options == dict(parsed_options):
            return trial
    return list(tokens)


class Disambiguator:
    def __init__(self, host: BuilderHost, target: str, *, multi_target: bool = False, console: Console | None = None):
        self.host = host
        self.target = target
        self.multi_target = multi_target
        self.console = console or Console()

    def parse_candidate(self, project: str, tokens: Sequence[str]) -> CandidateParse:
        builder_name = self.host.get_builder_name_for_target(TargetSpecifier(project=project, target=self.target))
        description = self.host.resolve_builder(builder_name)
        parsed = parse_arguments(tokens, description.option_schema)
        self.console.debug(f"'{project}' ({builder_name}) leaves {parsed.leftovers} unconsumed")
        return CandidateParse(
            project=project,
            builder_name=builder_name,
            schema=description.option_schema,
            parsed=parsed,
        )

    def resolve(self, candidates: Sequence[str], tokens: Sequence[str]) -> Disambiguation:
        """Pick the project named among ``tokens``, if exactly one can be inferred.

        Raises :class:`~wsrun.errors.MissingBuilderError` as soon as any
        candidate's builder package cannot be imported.
        """

        if len(candidates) == 1:
            only = self.parse_candidate(candidates[0], tokens)
            remaining = strip_project_token(tokens, only.project, only.schema, only.parsed.options)
            return Disambiguation(
                project=only.project,
                tokens=tuple(remaining),
                candidates=frozenset(candidates),
            )

        parses: dict[str, CandidateParse] = {}
        builder_names: List[str] = []
        for project in candidates:
            parse = self.parse_candidate(project, tokens)
            parses[project] = parse
            if self.multi_target and parse.builder_name not in builder_names:
                builder_names.append(parse.builder_name)

        narrowed = narrow_candidates(
            candidates,
            {project: parse.parsed.leftovers for project, parse in parses.items()},
        )

        if len(narrowed) != 1:
            return Disambiguation(
                project="",
                tokens=tuple(tokens),
                candidates=narrowed,
                builder_names=tuple(builder_names),
            )

        (project,) = narrowed
        chosen = parses[project]
        remaining = strip_project_token(tokens, project, chosen.schema, chosen.parsed.options)
        if len(remaining) == len(tokens):
            self.console.debug(f"Kept '{project}' in the overrides: every removal changes the parsed options")
        return Disambiguation(
            project=project,
            tokens=tuple(remaining),
            candidates=narrowed,
            builder_names=tuple(builder_names),
        )


__all__ = [
    "CandidateParse",
    "Disambiguation",
    "Disambiguator",
    "narrow_candidates",
    "strip_project_token",
]
