"""Filter criteria and the predicates compiled from them."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Pattern, Sequence, Union

from wcmatch import glob

from .errors import FilterError
from .models import FileRecord, FilterPredicate

_GLOB_CHARS = re.compile(r"[*?]|\[.*\]|\{.*\}|^!|[@+!]\(")
_GLOB_FLAGS = glob.GLOBSTAR | glob.BRACE | glob.NEGATE | glob.NEGATEALL | glob.DOTGLOB | glob.EXTGLOB | glob.FORCEUNIX


@dataclass(frozen=True, slots=True)
class AllFiles:
    """No criteria were given; every file matches."""


@dataclass(frozen=True, slots=True)
class ConstantFilter:
    value: bool


@dataclass(frozen=True, slots=True)
class GlobFilter:
    """One or more glob patterns matched against the record's relative path."""

    patterns: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class RegexFilter:
    pattern: Pattern[str]


@dataclass(frozen=True, slots=True)
class FunctionFilter:
    func: Callable[[FileRecord], object]


FilterCriteria = Union[AllFiles, ConstantFilter, GlobFilter, RegexFilter, FunctionFilter]


def is_glob(segment: str) -> bool:
    """Return True if a single path *segment* contains glob syntax."""

    return bool(_GLOB_CHARS.search(segment))


def split_glob(path: str) -> tuple[str, str | None]:
    """Split *path* into its literal directory prefix and its glob suffix."""

    segments = path.split("/")
    for index, segment in enumerate(segments):
        if is_glob(segment):
            return "/".join(segments[:index]), "/".join(segments[index:])
    return path, None


def glob_match(path: str, pattern: str | Sequence[str]) -> bool:
    """Return True if the relative *path* matches *pattern*.

    Supports ``**``, ``{a,b}`` alternatives and ``!`` exclusions. ``*`` also
    matches names that start with a dot.
    """

    return glob.globmatch(path, pattern, flags=_GLOB_FLAGS)


def glob_matcher(patterns: Iterable[str]) -> Callable[[str], bool]:
    """Build a path matcher for *patterns*; ``!`` patterns exclude."""

    compiled = tuple(patterns)
    return lambda path: glob_match(path, compiled)


def to_criteria(raw: object) -> FilterCriteria:
    """Classify raw filter criteria once; raises :class:`TypeError` on anything else."""

    if raw is None:
        return AllFiles()
    if isinstance(raw, bool):
        return ConstantFilter(raw)
    if isinstance(raw, str):
        return GlobFilter((raw,))
    if isinstance(raw, (list, tuple)) and all(isinstance(item, str) for item in raw):
        return GlobFilter(tuple(raw))
    if isinstance(raw, re.Pattern):
        return RegexFilter(raw)
    if callable(raw):
        return FunctionFilter(raw)
    raise TypeError(f"Unsupported filter criteria: {raw!r}")


def compile_filter(criteria: FilterCriteria) -> FilterPredicate:
    """Compile *criteria* into a uniform predicate over :class:`FileRecord`."""

    if isinstance(criteria, AllFiles):
        return lambda record: True
    if isinstance(criteria, ConstantFilter):
        value = criteria.value
        return lambda record: value

    if isinstance(criteria, GlobFilter):
        matches = glob_matcher(criteria.patterns)
        test: Callable[[FileRecord], object] = lambda record: matches(record.path)
    elif isinstance(criteria, RegexFilter):
        regex = criteria.pattern
        test = lambda record: regex.search(record.path)
    else:
        test = criteria.func

    def predicate(record: FileRecord) -> bool:
        try:
            return bool(test(record))
        except Exception as exc:
            raise FilterError(record.path, exc) from exc

    return predicate


__all__ = [
    "AllFiles",
    "ConstantFilter",
    "FilterCriteria",
    "FunctionFilter",
    "GlobFilter",
    "RegexFilter",
    "compile_filter",
    "glob_match",
    "glob_matcher",
    "is_glob",
    "split_glob",
    "to_criteria",
]
