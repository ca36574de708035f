from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Any

import pytest

from filesystem_source.config import resolve_config
from filesystem_source.errors import FilterError
from filesystem_source.file_scanner import FileScanner, read
from filesystem_source.models import RunContext
from filesystem_source.path_info import resolve_path


@pytest.fixture()
def site(tmp_path: Path) -> Path:
    root = tmp_path / "content"
    (root / "posts" / "2024").mkdir(parents=True)
    (root / "drafts").mkdir()
    (root / "index.md").write_text("# home", encoding="utf-8")
    (root / "logo.png").write_bytes(b"\x89PNG\x00\x01")
    (root / "empty.txt").write_bytes(b"")
    (root / "posts" / "first.md").write_text("first", encoding="utf-8")
    (root / "posts" / "2024" / "second.md").write_text("second", encoding="utf-8")
    (root / "drafts" / "wip.md").write_text("wip", encoding="utf-8")
    return tmp_path


async def collect(raw: dict[str, Any], cwd: Path, concurrency: int = 4) -> dict[str, bytes]:
    config = resolve_config(raw)
    context = RunContext(cwd=cwd, concurrency=concurrency)
    resolved = await resolve_path(config, cwd)
    return {record.path: record.contents async for record in read(resolved, config, context)}


@pytest.mark.asyncio
async def test_reads_every_file_recursively(site: Path) -> None:
    records = await collect({"path": "content"}, site)
    assert records == {
        "index.md": b"# home",
        "logo.png": b"\x89PNG\x00\x01",
        "empty.txt": b"",
        "posts/first.md": b"first",
        "posts/2024/second.md": b"second",
        "drafts/wip.md": b"wip",
    }


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("depth", "expected"),
    [
        (0, {"index.md", "logo.png", "empty.txt"}),
        (False, {"index.md", "logo.png", "empty.txt"}),
        (1, {"index.md", "logo.png", "empty.txt", "posts/first.md", "drafts/wip.md"}),
        (2, {"index.md", "logo.png", "empty.txt", "posts/first.md", "drafts/wip.md", "posts/2024/second.md"}),
    ],
)
async def test_depth_limits_descent(site: Path, depth: object, expected: set[str]) -> None:
    records = await collect({"path": "content", "depth": depth}, site)
    assert set(records) == expected


@pytest.mark.asyncio
async def test_glob_in_path(site: Path) -> None:
    records = await collect({"path": "content/**/*.md"}, site)
    assert set(records) == {"index.md", "posts/first.md", "posts/2024/second.md", "drafts/wip.md"}


@pytest.mark.asyncio
async def test_glob_list_with_exclusion(site: Path) -> None:
    records = await collect({"path": "content", "filter": ["**/*.md", "!drafts/**"]}, site)
    assert set(records) == {"index.md", "posts/first.md", "posts/2024/second.md"}


@pytest.mark.asyncio
async def test_function_filter_sees_stats_but_no_contents(site: Path) -> None:
    seen: list[tuple[str, bytes, int]] = []

    def large_enough(record) -> bool:
        seen.append((record.path, record.contents, record.metadata["st_size"]))
        return record.metadata["st_size"] > 4

    records = await collect({"path": "content", "filter": large_enough}, site)
    assert set(records) == {"index.md", "logo.png", "posts/first.md", "posts/2024/second.md"}
    assert all(contents == b"" for _, contents, _ in seen)


@pytest.mark.asyncio
async def test_rejected_files_are_never_read(site: Path) -> None:
    reads: list[str] = []

    def tracking_read(path: str) -> bytes:
        reads.append(os.path.basename(path))
        with open(path, "rb") as handle:
            return handle.read()

    records = await collect(
        {"path": "content", "filter": "*.png", "fs": {"read_file": tracking_read}}, site
    )
    assert set(records) == {"logo.png"}
    assert reads == ["logo.png"]


@pytest.mark.asyncio
async def test_single_file_path(site: Path) -> None:
    records = await collect({"path": "content/posts/first.md"}, site)
    assert records == {"first.md": b"first"}


@pytest.mark.asyncio
async def test_single_file_still_filtered(site: Path) -> None:
    records = await collect({"path": "content/posts/first.md", "filter": "*.txt"}, site)
    assert records == {}


@pytest.mark.asyncio
async def test_async_bindings_and_bounded_concurrency(site: Path) -> None:
    in_flight = 0
    peak = 0

    async def slow_read(path: str) -> str:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return Path(path).read_text(encoding="utf-8", errors="replace")

    records = await collect({"path": "content", "fs": {"read_file": slow_read}}, site, concurrency=2)
    assert len(records) == 6
    assert records["posts/first.md"] == b"first"
    assert 1 <= peak <= 2


@pytest.mark.asyncio
async def test_read_error_ends_iteration(site: Path) -> None:
    def failing_read(path: str) -> bytes:
        raise PermissionError(path)

    with pytest.raises(PermissionError):
        await collect({"path": "content", "fs": {"read_file": failing_read}}, site)


@pytest.mark.asyncio
async def test_filter_error_ends_iteration(site: Path) -> None:
    def broken(record) -> bool:
        raise RuntimeError("bad filter")

    with pytest.raises(FilterError, match="bad filter"):
        await collect({"path": "content", "filter": broken}, site)


@pytest.mark.asyncio
async def test_concurrency_must_be_positive(site: Path) -> None:
    config = resolve_config({"path": "content"})
    resolved = await resolve_path(config, site)
    scanner = FileScanner(config)
    with pytest.raises(ValueError):
        async for _ in scanner.read(resolved, RunContext(cwd=site, concurrency=0)):
            pass


@pytest.mark.asyncio
async def test_early_close_cancels_pending_reads(site: Path) -> None:
    started: list[str] = []
    finished: list[str] = []
    cancelled: list[str] = []

    async def slow_read(path: str) -> bytes:
        started.append(path)
        try:
            await asyncio.sleep(0.05)
        except asyncio.CancelledError:
            cancelled.append(path)
            raise
        finished.append(path)
        return b"x"

    config = resolve_config({"path": "content", "fs": {"read_file": slow_read}})
    resolved = await resolve_path(config, site)
    records = FileScanner(config).read(resolved, RunContext(cwd=site, concurrency=2))
    first = await anext(records)
    await records.aclose()

    assert first.contents == b"x"
    assert len(started) <= 3
    # Every read that began has ended by the time the close returns.
    assert len(started) == len(finished) + len(cancelled)


@pytest.mark.asyncio
async def test_html_glob_example(tmp_path: Path) -> None:
    (tmp_path / "site" / "b").mkdir(parents=True)
    (tmp_path / "site" / "a.txt").write_text("hi", encoding="utf-8")
    (tmp_path / "site" / "b" / "c.html").write_text("<p>x</p>", encoding="utf-8")

    records = await collect({"path": "site", "filter": "**/*.html"}, tmp_path)
    assert records == {"b/c.html": b"<p>x</p>"}


@pytest.mark.asyncio
async def test_mixed_glob_list(tmp_path: Path) -> None:
    root = tmp_path / "assets"
    for relative in (
        "top.png",
        "one/readme.txt",
        "one/favicon.ico",
        "one/skip.md",
        "one/two/page.html",
        "one/two/logo.png",
        "one/two/three/four/background.png",
        "one/two/three/four/front.png",
    ):
        target = root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(relative.encode("utf-8"))

    records = await collect(
        {"path": "assets", "filter": ["*/*.{txt,ico}", "*/*/*.html", "**/*.png", "!*/*/*/*/*back*"]},
        tmp_path,
    )
    assert set(records) == {
        "top.png",
        "one/readme.txt",
        "one/favicon.ico",
        "one/two/page.html",
        "one/two/logo.png",
        "one/two/three/four/front.png",
    }


@pytest.mark.asyncio
async def test_reading_twice_is_stable(site: Path) -> None:
    first = await collect({"path": "content"}, site)
    second = await collect({"path": "content"}, site)
    assert first == second
    assert sum(len(contents) for contents in first.values()) == sum(
        path.stat().st_size for path in (site / "content").rglob("*") if path.is_file()
    )
