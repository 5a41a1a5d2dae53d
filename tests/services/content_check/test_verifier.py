from __future__ import annotations

import hashlib
import json
from pathlib import Path

import pytest

from package_validation.content_check.config import ContentCheckProfile
from package_validation.content_check.errors import (
    CorruptedEntryError,
    EntryNotFoundError,
    ExpectedSymlinkError,
    HashMismatchError,
    IncorrectSizeError,
    IndexJsonReadError,
    MetadataMissingError,
    PathsJsonReadError,
)
from package_validation.content_check.manifest import resolve_paths_json
from package_validation.content_check.models import PathsEntry, PathsJson, PathType
from package_validation.content_check.verifier import (
    PackageVerifier,
    collect_entry_failures,
    verify_package,
    verify_package_against_manifest,
)

FILES = {
    "bin/tool": b"#!/bin/sh\necho tool\n",
    "lib/libdemo.so.1": b"\x7fELF" + bytes(range(64)),
    "share/doc/README": b"demo package\n",
    "share/doc/LICENSE": b"BSD-3-Clause\n",
}


def _symlinks_supported(tmp_path: Path) -> bool:
    candidate = tmp_path / "link-check"
    try:
        candidate.symlink_to("target")
    except (OSError, NotImplementedError):
        return False
    candidate.unlink()
    return True


def _index(root: Path) -> None:
    info = root / "info"
    info.mkdir(parents=True, exist_ok=True)
    (info / "index.json").write_text(
        json.dumps(
            {
                "name": "demo",
                "version": "1.0.0",
                "build": "h0_0",
                "build_number": 0,
                "subdir": "linux-64",
                "depends": [],
                "timestamp": 1_700_000_000_000,
            }
        ),
        encoding="utf-8",
    )


def _build_package(root: Path, *, with_symlink: bool = True) -> list[dict]:
    entries: list[dict] = []
    for relative, data in FILES.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        entries.append(
            {
                "_path": relative,
                "path_type": "hardlink",
                "sha256": hashlib.sha256(data).hexdigest(),
                "size_in_bytes": len(data),
            }
        )
    (root / "var" / "cache").mkdir(parents=True)
    entries.append({"_path": "var/cache", "path_type": "directory"})
    if with_symlink:
        (root / "lib" / "libdemo.so").symlink_to("libdemo.so.1")
        entries.append({"_path": "lib/libdemo.so", "path_type": "softlink"})
    _index(root)
    (root / "info" / "paths.json").write_text(
        json.dumps({"paths": entries, "paths_version": 1}), encoding="utf-8"
    )
    return entries


@pytest.fixture()
def package(tmp_path: Path) -> Path:
    root = tmp_path / "demo-1.0.0-h0_0"
    root.mkdir()
    _build_package(root, with_symlink=_symlinks_supported(tmp_path))
    return root


def test_fresh_package_verifies(package: Path) -> None:
    index, paths = verify_package(package)
    assert index.name == "demo"
    assert index.filename_stem == "demo-1.0.0-h0_0"
    expected = len(json.loads((package / "info" / "paths.json").read_text(encoding="utf-8"))["paths"])
    assert len(paths.paths) == expected


def test_verification_is_idempotent(package: Path) -> None:
    assert verify_package(package) == verify_package(package)


@pytest.mark.parametrize("relative", sorted(FILES))
def test_single_byte_change_is_reported_for_that_entry_only(package: Path, relative: str) -> None:
    target = package / relative
    data = bytearray(target.read_bytes())
    data[len(data) // 2] ^= 0xFF
    target.write_bytes(bytes(data))

    with pytest.raises(CorruptedEntryError) as excinfo:
        verify_package(package, collect_all=True)

    assert excinfo.value.relative_path == relative
    assert isinstance(excinfo.value.cause, HashMismatchError)
    assert [failure.relative_path for failure in excinfo.value.failures] == [relative]


def test_symlink_replaced_by_its_content(tmp_path: Path, package: Path) -> None:
    if not _symlinks_supported(tmp_path):
        pytest.skip("symlinks not supported")
    link = package / "lib" / "libdemo.so"
    contents = link.read_bytes()
    link.unlink()
    link.write_bytes(contents)

    paths = resolve_paths_json(package)
    with pytest.raises(ExpectedSymlinkError) as excinfo:
        verify_package_against_manifest(package, paths)
    assert excinfo.value.relative_path == "lib/libdemo.so"


def test_empty_directory_fails_on_identity(tmp_path: Path) -> None:
    with pytest.raises(IndexJsonReadError):
        verify_package(tmp_path)


def test_identity_without_any_manifest(tmp_path: Path) -> None:
    _index(tmp_path)
    with pytest.raises(MetadataMissingError):
        verify_package(tmp_path)


def test_legacy_package(tmp_path: Path) -> None:
    _index(tmp_path)
    for relative, data in FILES.items():
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    (tmp_path / "info" / "files").write_text("\n".join(FILES) + "\n", encoding="utf-8")

    index, paths = verify_package(tmp_path)
    assert index.version == "1.0.0"
    assert all(entry.path_type is PathType.HARDLINK for entry in paths.paths)
    assert all(entry.size_in_bytes is None and entry.sha256 is None for entry in paths.paths)

    (tmp_path / "share" / "doc" / "README").unlink()
    with pytest.raises(EntryNotFoundError) as excinfo:
        verify_package_against_manifest(tmp_path, paths)
    assert excinfo.value.relative_path == "share/doc/README"


def test_partial_integrity_metadata(tmp_path: Path) -> None:
    (tmp_path / "a.bin").write_bytes(b"\x00" * 16)
    paths = PathsJson(paths=(PathsEntry("a.bin", size_in_bytes=16),))
    verify_package_against_manifest(tmp_path, paths)
    (tmp_path / "a.bin").write_bytes(b"\xff" * 16)
    verify_package_against_manifest(tmp_path, paths)


def test_stop_on_first_reports_earliest_entry(package: Path) -> None:
    (package / "share" / "doc" / "LICENSE").write_bytes(b"changed")
    (package / "bin" / "tool").unlink()

    with pytest.raises(CorruptedEntryError) as excinfo:
        verify_package(package)
    assert excinfo.value.relative_path == "bin/tool"
    assert isinstance(excinfo.value.cause, EntryNotFoundError)
    assert len(excinfo.value.failures) == 1


def test_collect_all_reports_every_entry(package: Path) -> None:
    (package / "share" / "doc" / "LICENSE").write_bytes(b"changed")
    (package / "bin" / "tool").unlink()
    paths = resolve_paths_json(package)

    failures = collect_entry_failures(package, paths)

    assert [(failure.relative_path, type(failure)) for failure in failures] == [
        ("bin/tool", EntryNotFoundError),
        ("share/doc/LICENSE", IncorrectSizeError),
    ]


@pytest.mark.parametrize("max_workers", [2, 8])
def test_parallel_checks_match_sequential(package: Path, max_workers: int) -> None:
    (package / "share" / "doc" / "README").write_bytes(b"demo packagf\n")
    (package / "lib" / "libdemo.so.1").unlink()
    paths = resolve_paths_json(package)

    sequential = collect_entry_failures(package, paths)
    parallel = collect_entry_failures(package, paths, max_workers=max_workers)
    assert [(f.relative_path, f.code) for f in parallel] == [(f.relative_path, f.code) for f in sequential]

    with pytest.raises(CorruptedEntryError) as excinfo:
        verify_package(package, max_workers=max_workers)
    assert excinfo.value.relative_path in {"lib/libdemo.so.1", "share/doc/README"}

    with pytest.raises(CorruptedEntryError) as excinfo:
        verify_package(package, collect_all=True, max_workers=max_workers)
    assert excinfo.value.relative_path == "lib/libdemo.so.1"
    assert [failure.code for failure in excinfo.value.failures] == ["NOT_FOUND", "HASH_MISMATCH"]


def test_parallel_success(package: Path) -> None:
    index, paths = verify_package(package, max_workers=4)
    assert index.name == "demo"
    assert len(paths.paths) >= len(FILES)


def test_verifier_report_ok(package: Path) -> None:
    report = PackageVerifier().check(package)
    assert report.ok()
    assert report.status == "OK"
    assert report.details["package"]["name"] == "demo"
    assert report.details["entries_by_type"]["hardlink"] == len(FILES)
    json.dumps(report.as_dict())


def test_verifier_report_collect_all(package: Path) -> None:
    (package / "bin" / "tool").write_bytes(b"#!/bin/sh\necho TOOL\n")
    (package / "var" / "cache").rmdir()
    (package / "var" / "cache").write_bytes(b"")
    profile = ContentCheckProfile.from_dict(
        {"profile_id": "audit", "policy": {"failure_mode": "collect_all"}, "wiring": {"max_workers": 3}}
    )

    report = PackageVerifier(profile).check(package)

    assert not report.ok()
    assert report.reason_codes == ["HASH_MISMATCH", "EXPECTED_DIRECTORY", "ENTRY_CORRUPTED"]
    assert report.details["entries_failed"] == 2
    assert {issue.get("path") for issue in report.issues} == {"bin/tool", "var/cache"}


def test_verifier_report_directory_level_failure(tmp_path: Path) -> None:
    _index(tmp_path)
    (tmp_path / "info" / "paths.json").write_text("[]", encoding="utf-8")

    report = PackageVerifier().check(tmp_path)

    assert report.status == "FAIL"
    assert report.reason_codes == ["PATHS_JSON_UNREADABLE"]


def test_nul_byte_manifest_is_a_directory_level_failure(tmp_path: Path) -> None:
    _index(tmp_path)
    (tmp_path / "info" / "paths.json").write_text(
        json.dumps({"paths": [{"_path": "lib/a\u0000b", "path_type": "hardlink"}], "paths_version": 1}),
        encoding="utf-8",
    )

    with pytest.raises(PathsJsonReadError):
        verify_package(tmp_path)

    report = PackageVerifier().check(tmp_path)
    assert report.status == "FAIL"
    assert report.reason_codes == ["PATHS_JSON_UNREADABLE"]


def test_colon_in_file_name_round_trips(tmp_path: Path) -> None:
    data = b"colon\n"
    _index(tmp_path)
    (tmp_path / "a:b.txt").write_bytes(data)
    (tmp_path / "info" / "paths.json").write_text(
        json.dumps(
            {
                "paths": [
                    {
                        "_path": "a:b.txt",
                        "path_type": "hardlink",
                        "sha256": hashlib.sha256(data).hexdigest(),
                        "size_in_bytes": len(data),
                    }
                ],
                "paths_version": 1,
            }
        ),
        encoding="utf-8",
    )

    _, paths = verify_package(tmp_path)
    assert [entry.relative_path for entry in paths.paths] == ["a:b.txt"]
