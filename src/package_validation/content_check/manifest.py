"""Resolve the declared contents and identity of an extracted package directory.

Almost every package ships `info/paths.json`, which lists each file, link and
directory it contains. Very old packages predate that file and instead carry a
deprecated `info/files` list, optionally accompanied by `info/has_prefix` and
`info/no_link`. When `paths.json` is absent the manifest is reconstructed from
those files; entries reconstructed this way carry no size or digest.
"""

from __future__ import annotations

import json
import logging
import shlex
from pathlib import Path

from .errors import (
    DeprecatedPathsReadError,
    IndexJsonReadError,
    MetadataMissingError,
    PathsJsonReadError,
)
from .models import (
    DEFAULT_PREFIX_PLACEHOLDER,
    FileMode,
    IndexJson,
    PathsEntry,
    PathsJson,
    PathType,
    PrefixPlaceholder,
)
from .schemas import INDEX_JSON_SCHEMA, PATHS_JSON_SCHEMA, SchemaRegistry

logger = logging.getLogger(__name__)

PATHS_JSON_PATH = "info/paths.json"
INDEX_JSON_PATH = "info/index.json"
FILES_PATH = "info/files"
HAS_PREFIX_PATH = "info/has_prefix"
NO_LINK_PATH = "info/no_link"


def read_paths_json(package_dir: Path, *, registry: SchemaRegistry | None = None) -> PathsJson:
    """Parse `info/paths.json`.

    `FileNotFoundError` propagates untouched so callers can fall back to the
    deprecated files; every other failure raises `PathsJsonReadError`.
    """
    path = Path(package_dir) / PATHS_JSON_PATH
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise
    except (OSError, ValueError) as exc:
        raise PathsJsonReadError(str(exc)) from exc
    try:
        payload = json.loads(text)
        (registry or SchemaRegistry()).validate(PATHS_JSON_SCHEMA, payload)
        return PathsJson.from_dict(payload)
    except ValueError as exc:
        raise PathsJsonReadError(str(exc)) from exc


def read_deprecated_paths_json(package_dir: Path) -> PathsJson:
    """Reconstruct a manifest from `info/files`, `info/has_prefix` and `info/no_link`.

    A missing `info/files` propagates as `FileNotFoundError`; the other two
    files are optional.
    """
    root = Path(package_dir)
    try:
        files = _read_path_list(root / FILES_PATH)
    except FileNotFoundError:
        raise
    except (OSError, ValueError) as exc:
        raise DeprecatedPathsReadError(str(exc)) from exc

    try:
        prefixes = _read_has_prefix(root / HAS_PREFIX_PATH)
        no_link = set(_read_optional_path_list(root / NO_LINK_PATH))
    except (OSError, ValueError) as exc:
        raise DeprecatedPathsReadError(str(exc)) from exc

    entries = [
        PathsEntry(
            relative_path=relative_path,
            path_type=PathType.HARDLINK,
            prefix_placeholder=prefixes.get(relative_path),
            no_link=relative_path in no_link,
        )
        for relative_path in files
    ]
    try:
        return PathsJson(paths=tuple(entries), paths_version=1)
    except ValueError as exc:
        raise DeprecatedPathsReadError(str(exc)) from exc


def resolve_paths_json(package_dir: Path, *, registry: SchemaRegistry | None = None) -> PathsJson:
    try:
        return read_paths_json(package_dir, registry=registry)
    except FileNotFoundError:
        pass

    # A package interrupted before writing paths.json looks identical to a legacy one.
    logger.debug("content_check paths.json absent, falling back to deprecated files root=%s", package_dir)
    try:
        return read_deprecated_paths_json(package_dir)
    except FileNotFoundError as exc:
        raise MetadataMissingError(str(package_dir)) from exc


def read_index_json(package_dir: Path, *, registry: SchemaRegistry | None = None) -> IndexJson:
    path = Path(package_dir) / INDEX_JSON_PATH
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
        (registry or SchemaRegistry()).validate(INDEX_JSON_SCHEMA, payload)
        return IndexJson.from_dict(payload)
    except (OSError, ValueError) as exc:
        raise IndexJsonReadError(str(exc)) from exc


def _read_path_list(path: Path) -> list[str]:
    text = path.read_text(encoding="utf-8")
    return [line.strip() for line in text.splitlines() if line.strip()]


def _read_optional_path_list(path: Path) -> list[str]:
    try:
        return _read_path_list(path)
    except FileNotFoundError:
        return []


def _read_has_prefix(path: Path) -> dict[str, PrefixPlaceholder]:
    result: dict[str, PrefixPlaceholder] = {}
    for line in _read_optional_path_list(path):
        relative_path, placeholder = _parse_has_prefix_line(line)
        result[relative_path] = placeholder
    return result


def _parse_has_prefix_line(line: str) -> tuple[str, PrefixPlaceholder]:
    parts = shlex.split(line, posix=True)
    if len(parts) == 1:
        return parts[0], PrefixPlaceholder(DEFAULT_PREFIX_PLACEHOLDER, FileMode.TEXT)
    if len(parts) == 3:
        placeholder, mode, relative_path = parts
        return relative_path, PrefixPlaceholder(placeholder, FileMode(mode))
    raise ValueError(f"malformed has_prefix line: {line!r}")
