"""Package content verification: check an extracted package directory against its manifest."""

from .errors import (
    CorruptedEntryError,
    DeprecatedPathsReadError,
    EntryIOError,
    EntryMetadataError,
    EntryNotFoundError,
    ExpectedDirectoryError,
    ExpectedSymlinkError,
    HashMismatchError,
    IncorrectSizeError,
    IndexJsonReadError,
    MetadataMissingError,
    PackageEntryValidationError,
    PackageValidationError,
    PathsJsonReadError,
)
from .manifest import read_deprecated_paths_json, read_index_json, read_paths_json, resolve_paths_json
from .models import FileMode, IndexJson, PathsEntry, PathsJson, PathType, PrefixPlaceholder
from .verifier import (
    PackageCheckReport,
    PackageVerifier,
    collect_entry_failures,
    verify_package,
    verify_package_against_manifest,
)

__all__ = [
    "CorruptedEntryError",
    "DeprecatedPathsReadError",
    "EntryIOError",
    "EntryMetadataError",
    "EntryNotFoundError",
    "ExpectedDirectoryError",
    "ExpectedSymlinkError",
    "FileMode",
    "HashMismatchError",
    "IncorrectSizeError",
    "IndexJson",
    "IndexJsonReadError",
    "MetadataMissingError",
    "PackageCheckReport",
    "PackageEntryValidationError",
    "PackageValidationError",
    "PackageVerifier",
    "PathType",
    "PathsEntry",
    "PathsJson",
    "PathsJsonReadError",
    "PrefixPlaceholder",
    "collect_entry_failures",
    "read_deprecated_paths_json",
    "read_index_json",
    "read_paths_json",
    "resolve_paths_json",
    "verify_package",
    "verify_package_against_manifest",
]
