"""Typed views of the package metadata files under `info/`."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import PurePosixPath, PureWindowsPath
from typing import Any

DEFAULT_PREFIX_PLACEHOLDER = "/opt/anaconda1anaconda2anaconda3"

# Largest second-based timestamp (9999-12-31T23:59:59Z); anything above is milliseconds.
_MAX_SECONDS_TIMESTAMP = 253_402_300_799
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class PathType(str, Enum):
    HARDLINK = "hardlink"
    SOFTLINK = "softlink"
    DIRECTORY = "directory"


class FileMode(str, Enum):
    TEXT = "text"
    BINARY = "binary"


@dataclass(frozen=True)
class PrefixPlaceholder:
    placeholder: str
    file_mode: FileMode = FileMode.TEXT


@dataclass(frozen=True)
class PathsEntry:
    relative_path: str
    path_type: PathType = PathType.HARDLINK
    size_in_bytes: int | None = None
    sha256: str | None = None
    prefix_placeholder: PrefixPlaceholder | None = None
    no_link: bool = False

    def __post_init__(self) -> None:
        if self.path_type is not PathType.HARDLINK and (
            self.size_in_bytes is not None or self.sha256 is not None
        ):
            raise ValueError(f"{self.path_type.value} entry cannot carry size or sha256: {self.relative_path}")
        if self.sha256 is not None:
            object.__setattr__(self, "sha256", self.sha256.lower())

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "PathsEntry":
        placeholder = None
        if payload.get("prefix_placeholder"):
            placeholder = PrefixPlaceholder(
                placeholder=payload["prefix_placeholder"],
                file_mode=FileMode(payload.get("file_mode", FileMode.TEXT.value)),
            )
        return cls(
            relative_path=payload["_path"],
            path_type=PathType(payload.get("path_type", PathType.HARDLINK.value)),
            size_in_bytes=payload.get("size_in_bytes"),
            sha256=payload.get("sha256"),
            prefix_placeholder=placeholder,
            no_link=bool(payload.get("no_link", False)),
        )

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"_path": self.relative_path, "path_type": self.path_type.value}
        if self.size_in_bytes is not None:
            payload["size_in_bytes"] = self.size_in_bytes
        if self.sha256 is not None:
            payload["sha256"] = self.sha256
        if self.prefix_placeholder is not None:
            payload["prefix_placeholder"] = self.prefix_placeholder.placeholder
            payload["file_mode"] = self.prefix_placeholder.file_mode.value
        if self.no_link:
            payload["no_link"] = True
        return payload


@dataclass(frozen=True)
class PathsJson:
    """The declared contents of a package, in declaration order."""

    paths: tuple[PathsEntry, ...]
    paths_version: int = 1

    def __post_init__(self) -> None:
        object.__setattr__(self, "paths", tuple(self.paths))
        seen: set[str] = set()
        for entry in self.paths:
            normalized = _normalize_relative_path(entry.relative_path)
            if normalized in seen:
                raise ValueError(f"duplicate path in manifest: {entry.relative_path}")
            seen.add(normalized)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "PathsJson":
        return cls(
            paths=tuple(PathsEntry.from_dict(item) for item in payload.get("paths", [])),
            paths_version=int(payload.get("paths_version", 1)),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "paths": [entry.as_dict() for entry in self.paths],
            "paths_version": self.paths_version,
        }

    def count_by_type(self) -> dict[str, int]:
        counts = {path_type.value: 0 for path_type in PathType}
        for entry in self.paths:
            counts[entry.path_type.value] += 1
        return counts


@dataclass(frozen=True)
class IndexJson:
    """Identity record of a package (`info/index.json`)."""

    name: str
    version: str
    build: str
    build_number: int = 0
    subdir: str | None = None
    arch: str | None = None
    platform: str | None = None
    noarch: str | None = None
    license: str | None = None
    license_family: str | None = None
    depends: tuple[str, ...] = ()
    constrains: tuple[str, ...] = ()
    track_features: str | None = None
    features: str | None = None
    timestamp: datetime | None = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "IndexJson":
        known = {
            "name",
            "version",
            "build",
            "build_number",
            "subdir",
            "arch",
            "platform",
            "noarch",
            "license",
            "license_family",
            "depends",
            "constrains",
            "track_features",
            "features",
            "timestamp",
        }
        noarch = payload.get("noarch")
        if isinstance(noarch, bool):
            noarch = "generic" if noarch else None
        return cls(
            name=str(payload["name"]),
            version=str(payload["version"]),
            build=str(payload["build"]),
            build_number=int(payload.get("build_number", 0)),
            subdir=payload.get("subdir"),
            arch=payload.get("arch"),
            platform=payload.get("platform"),
            noarch=noarch,
            license=payload.get("license"),
            license_family=payload.get("license_family"),
            depends=tuple(payload.get("depends") or ()),
            constrains=tuple(payload.get("constrains") or ()),
            track_features=_join_features(payload.get("track_features")),
            features=_join_features(payload.get("features")),
            timestamp=parse_timestamp(payload.get("timestamp")),
            extra={key: value for key, value in payload.items() if key not in known},
        )

    @property
    def filename_stem(self) -> str:
        return f"{self.name}-{self.version}-{self.build}"

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": self.name,
            "version": self.version,
            "build": self.build,
            "build_number": self.build_number,
            "depends": list(self.depends),
        }
        optional = {
            "subdir": self.subdir,
            "arch": self.arch,
            "platform": self.platform,
            "noarch": self.noarch,
            "license": self.license,
            "license_family": self.license_family,
            "track_features": self.track_features,
            "features": self.features,
        }
        payload.update({key: value for key, value in optional.items() if value is not None})
        if self.constrains:
            payload["constrains"] = list(self.constrains)
        if self.timestamp is not None:
            payload["timestamp"] = format_timestamp(self.timestamp)
        return payload


def parse_timestamp(value: Any) -> datetime | None:
    """Convert an index timestamp (seconds or milliseconds since epoch) to UTC."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"timestamp must be an integer: {value!r}")
    micros = value * 1_000 if value > _MAX_SECONDS_TIMESTAMP else value * 1_000_000
    try:
        return _EPOCH + timedelta(microseconds=micros)
    except OverflowError as exc:
        raise ValueError(f"timestamp out of range: {value}") from exc


def format_timestamp(value: datetime) -> int:
    millis = (value - _EPOCH) // timedelta(milliseconds=1)
    if millis % 1000 == 0:
        return millis // 1000
    return millis


def _join_features(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return " ".join(str(item) for item in value) or None
    return str(value) or None


def _normalize_relative_path(relative_path: str) -> str:
    if not relative_path:
        raise ValueError("empty path in manifest")
    if "\x00" in relative_path:
        raise ValueError(f"NUL byte in manifest path: {relative_path!r}")
    path = PurePosixPath(relative_path)
    windows = PureWindowsPath(relative_path)
    if path.is_absolute() or (windows.drive and windows.root):
        raise ValueError(f"absolute path in manifest: {relative_path}")
    if ".." in path.parts:
        raise ValueError(f"path escapes package root: {relative_path}")
    return path.as_posix()
