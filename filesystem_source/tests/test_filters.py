from __future__ import annotations

import pytest

from filesystem_source.errors import FilterError
from filesystem_source.filters import (
    FunctionFilter,
    GlobFilter,
    compile_filter,
    glob_match,
    glob_matcher,
    is_glob,
    split_glob,
    to_criteria,
)
from filesystem_source.models import FileRecord


def record(path: str) -> FileRecord:
    return FileRecord(path=path, source=f"file:///site/{path}")


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("content", ("content", None)),
        ("content/posts", ("content/posts", None)),
        ("content/*.md", ("content", "*.md")),
        ("content/**/*.md", ("content", "**/*.md")),
        ("src/{a,b}/x.txt", ("src", "{a,b}/x.txt")),
        ("*.md", ("", "*.md")),
    ],
)
def test_split_glob(path: str, expected: tuple[str, str | None]) -> None:
    assert split_glob(path) == expected


def test_is_glob() -> None:
    assert is_glob("*.md")
    assert is_glob("file?.txt")
    assert is_glob("[abc].txt")
    assert not is_glob("plain.txt")


def test_brace_alternatives_nest() -> None:
    assert glob_match("bd.js", "{a,b{c,d}}.js")
    assert glob_match("a.js", "{a,b{c,d}}.js")
    assert not glob_match("b.js", "{a,b{c,d}}.js")


def test_star_matches_dotfiles() -> None:
    assert glob_match(".env", "*")
    assert glob_match("config/.hidden.md", "**/*.md")


@pytest.mark.parametrize(
    ("path", "pattern", "expected"),
    [
        ("a.md", "*.md", True),
        ("posts/a.md", "*.md", False),
        ("posts/a.md", "**/*.md", True),
        ("a.md", "**/*.md", True),
        ("posts/2024/a.md", "posts/**", True),
        ("pages/a.md", "posts/**", False),
        ("notes.txt", "*.{md,txt}", True),
        ("file1.txt", "file?.txt", True),
    ],
)
def test_glob_match(path: str, pattern: str, expected: bool) -> None:
    assert glob_match(path, pattern) is expected


def test_glob_matcher_with_negation() -> None:
    matches = glob_matcher(["**/*.md", "!drafts/**"])
    assert matches("posts/a.md")
    assert not matches("drafts/a.md")
    assert not matches("posts/a.txt")


def test_only_negations_accept_everything_else() -> None:
    matches = glob_matcher(["!*.tmp"])
    assert matches("a.md")
    assert not matches("a.tmp")


def test_to_criteria_rejects_unsupported_values() -> None:
    with pytest.raises(TypeError):
        to_criteria(12)


def test_function_filter_receives_the_record() -> None:
    seen: list[FileRecord] = []

    def keep_markdown(item: FileRecord) -> bool:
        seen.append(item)
        return item.extension == ".md"

    predicate = compile_filter(FunctionFilter(keep_markdown))
    assert predicate(record("a.md")) is True
    assert predicate(record("a.txt")) is False
    assert [item.path for item in seen] == ["a.md", "a.txt"]


def test_filter_errors_are_wrapped() -> None:
    def explode(item: FileRecord) -> bool:
        raise KeyError("boom")

    predicate = compile_filter(FunctionFilter(explode))
    with pytest.raises(FilterError) as info:
        predicate(record("a.md"))
    assert info.value.path == "a.md"
    assert isinstance(info.value.cause, KeyError)


def test_glob_filter_uses_relative_path() -> None:
    predicate = compile_filter(GlobFilter(("*.md",)))
    assert predicate(record("index.md"))
    assert not predicate(record("nested/index.md"))
