"""Error taxonomy for package content checks."""

from __future__ import annotations


class PackageValidationError(RuntimeError):
    """Directory-level failure: the package could not be verified."""

    code = "PACKAGE_INVALID"
    message = "package could not be verified"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail
        text = self.message if detail is None else f"{self.message}: {detail}"
        super().__init__(text)


class MetadataMissingError(PackageValidationError):
    code = "METADATA_MISSING"
    message = "neither 'info/paths.json' nor a deprecated 'info/files' file was found"


class PathsJsonReadError(PackageValidationError):
    code = "PATHS_JSON_UNREADABLE"
    message = "failed to read 'info/paths.json'"


class DeprecatedPathsReadError(PackageValidationError):
    code = "DEPRECATED_PATHS_UNREADABLE"
    message = "failed to read validation data from deprecated files"


class IndexJsonReadError(PackageValidationError):
    code = "INDEX_JSON_UNREADABLE"
    message = "failed to read 'info/index.json'"


class PackageEntryValidationError(RuntimeError):
    """Entry-level failure: one path in the package does not match its declaration."""

    code = "ENTRY_INVALID"
    message = "the entry does not match the manifest"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail
        self.relative_path: str | None = None
        text = self.message if detail is None else f"{self.message}: {detail}"
        super().__init__(text)


class EntryNotFoundError(PackageEntryValidationError):
    code = "NOT_FOUND"
    message = "the file does not exist"


class EntryMetadataError(PackageEntryValidationError):
    code = "METADATA_UNAVAILABLE"
    message = "failed to retrieve file metadata"


class ExpectedSymlinkError(PackageEntryValidationError):
    code = "EXPECTED_SYMLINK"
    message = "expected a symbolic link"


class ExpectedDirectoryError(PackageEntryValidationError):
    code = "EXPECTED_DIRECTORY"
    message = "expected a directory"


class IncorrectSizeError(PackageEntryValidationError):
    code = "INCORRECT_SIZE"

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__()

    @property
    def message(self) -> str:  # type: ignore[override]
        return f"incorrect size, expected {self.expected} but file on disk is {self.actual}"


class HashMismatchError(PackageEntryValidationError):
    code = "HASH_MISMATCH"

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__()

    @property
    def message(self) -> str:  # type: ignore[override]
        return f"sha256 hash mismatch, expected '{self.expected}' but file on disk is '{self.actual}'"


class EntryIOError(PackageEntryValidationError):
    code = "IO_ERROR"
    message = "an io error occurred"


class CorruptedEntryError(PackageValidationError):
    code = "ENTRY_CORRUPTED"

    def __init__(
        self,
        relative_path: str,
        cause: PackageEntryValidationError,
        failures: tuple[PackageEntryValidationError, ...] = (),
    ) -> None:
        self.relative_path = relative_path
        self.cause = cause
        self.failures = failures or (cause,)
        super().__init__()

    @property
    def message(self) -> str:  # type: ignore[override]
        return f"the path '{self.relative_path}' seems to be corrupted ({self.cause})"
