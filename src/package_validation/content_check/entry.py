"""Per-entry comparison of a manifest entry against the live filesystem."""

from __future__ import annotations

import hashlib
import os
import stat
from pathlib import Path
from typing import Callable

from .errors import (
    EntryIOError,
    EntryMetadataError,
    EntryNotFoundError,
    ExpectedDirectoryError,
    ExpectedSymlinkError,
    HashMismatchError,
    IncorrectSizeError,
)
from .models import PathsEntry, PathType

DEFAULT_CHUNK_SIZE = 1024 * 1024


def compute_file_sha256(path: Path, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
    digest = hashlib.sha256()
    with Path(path).open("rb") as handle:
        for chunk in iter(lambda: handle.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


def validate_package_entry(
    package_dir: Path,
    entry: PathsEntry,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> None:
    """Raise a `PackageEntryValidationError` if `entry` does not match the file on disk."""
    path = Path(package_dir) / entry.relative_path
    try:
        metadata = os.lstat(path)
    except FileNotFoundError as exc:
        raise EntryNotFoundError() from exc
    except (OSError, ValueError) as exc:
        raise EntryMetadataError(str(exc)) from exc

    _VALIDATORS[entry.path_type](path, entry, metadata, chunk_size)


def _validate_hard_link(path: Path, entry: PathsEntry, metadata: os.stat_result, chunk_size: int) -> None:
    if entry.size_in_bytes is not None and entry.size_in_bytes != metadata.st_size:
        raise IncorrectSizeError(entry.size_in_bytes, metadata.st_size)

    if entry.sha256 is not None:
        try:
            actual = compute_file_sha256(path, chunk_size=chunk_size)
        except OSError as exc:
            raise EntryIOError(str(exc)) from exc
        if actual != entry.sha256:
            raise HashMismatchError(entry.sha256, actual)


def _validate_soft_link(path: Path, entry: PathsEntry, metadata: os.stat_result, chunk_size: int) -> None:
    # Link targets are not compared: `../a` and `b/../../a` differ textually but resolve alike.
    if not stat.S_ISLNK(metadata.st_mode):
        raise ExpectedSymlinkError()


def _validate_directory(path: Path, entry: PathsEntry, metadata: os.stat_result, chunk_size: int) -> None:
    if not stat.S_ISDIR(metadata.st_mode):
        raise ExpectedDirectoryError()


_VALIDATORS: dict[PathType, Callable[[Path, PathsEntry, os.stat_result, int], None]] = {
    PathType.HARDLINK: _validate_hard_link,
    PathType.SOFTLINK: _validate_soft_link,
    PathType.DIRECTORY: _validate_directory,
}
