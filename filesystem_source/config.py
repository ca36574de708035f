"""Validation and normalization of the filesystem source configuration."""
from __future__ import annotations

from typing import Any, Callable, Mapping

from .errors import ValidationError
from .filters import GlobFilter, compile_filter, split_glob, to_criteria
from .models import Configuration, FileSystemBindings, FileSystemConfig, PathStyle

DEFAULT_DEBOUNCE_MS = 1600

_BINDING_SLOTS = ("stat", "lstat", "list_directory", "read_file")
_MISSING = object()


def resolve_config(raw: FileSystemConfig | Mapping[str, Any] | None) -> Configuration:
    """Validate *raw* and return the normalized :class:`Configuration`.

    Raises :class:`ValidationError` naming the offending field.
    """

    options = _as_mapping(raw)
    path = _validate_path(options.get("path", _MISSING))
    depth = _validate_depth(options.get("depth"))
    raw_filter = options.get("filter")

    try:
        criteria = to_criteria(raw_filter)
    except TypeError:
        raise ValidationError(
            "filter", raw_filter, "Expected a boolean, glob, list of globs, regular expression or function."
        ) from None

    if raw_filter is None:
        # A glob in the path becomes the filter; the path keeps its literal prefix.
        path, glob = split_glob(path)
        if glob:
            criteria = GlobFilter((glob,))

    return Configuration(
        path=path,
        depth=depth,
        criteria=criteria,
        filter=compile_filter(criteria),
        fs=_bind_filesystem(options.get("fs")),
        path_style=_validate_path_style(options.get("path_style")),
        debounce=_validate_debounce(options.get("debounce")),
    )


def _as_mapping(raw: object) -> Mapping[str, Any]:
    if raw is None:
        raise ValidationError("config", raw, "A value is required.")
    if isinstance(raw, FileSystemConfig):
        return {name: getattr(raw, name) for name in FileSystemConfig.__slots__}
    if not isinstance(raw, Mapping):
        raise ValidationError("config", raw, "Expected an object.")
    return raw


def _validate_path(path: object) -> str:
    if path is _MISSING or path is None:
        raise ValidationError("path", None, "A value is required.")
    if not isinstance(path, str):
        raise ValidationError("path", path, "Expected a string.")
    if not path:
        raise ValidationError("path", path, "It cannot be empty.")
    if not path.strip():
        raise ValidationError("path", path, "It cannot be all whitespace.")
    return path.strip()


def _validate_depth(depth: object) -> int | None:
    if depth is None or depth is True:
        return None
    if depth is False:
        return 0
    if not isinstance(depth, int):
        raise ValidationError("depth", depth, "Expected a boolean or a non-negative integer.")
    if depth < 0:
        raise ValidationError("depth", depth, "It cannot be negative.")
    return depth


def _validate_path_style(style: object) -> PathStyle:
    if style is None:
        return PathStyle.current()
    try:
        return PathStyle(style)
    except ValueError:
        raise ValidationError("path_style", style, "Expected 'posix' or 'windows'.") from None


def _validate_debounce(debounce: object) -> int:
    if debounce is None:
        return DEFAULT_DEBOUNCE_MS
    if isinstance(debounce, bool) or not isinstance(debounce, int) or debounce < 0:
        raise ValidationError("debounce", debounce, "Expected a non-negative integer (milliseconds).")
    return debounce


def _bind_filesystem(fs: object) -> FileSystemBindings:
    if fs is None:
        return FileSystemBindings()
    if isinstance(fs, FileSystemBindings):
        overrides: Mapping[str, Any] = {slot: getattr(fs, slot) for slot in _BINDING_SLOTS}
    elif isinstance(fs, Mapping):
        overrides = fs
    else:
        raise ValidationError("fs", fs, "Expected an object.")

    defaults = FileSystemBindings()
    bound: dict[str, Callable[..., Any]] = {}
    for slot in _BINDING_SLOTS:
        func = overrides.get(slot)
        if func is None:
            bound[slot] = getattr(defaults, slot)
        elif not callable(func):
            raise ValidationError(f"fs.{slot}", func, "Expected a function.")
        else:
            bound[slot] = func
    return FileSystemBindings(**bound)


__all__ = ["DEFAULT_DEBOUNCE_MS", "resolve_config"]
