"""Verify that an extracted package directory matches its manifest."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
import logging
from pathlib import Path
import threading
from typing import Any, Sequence

from .config import ContentCheckProfile, FailureMode
from .entry import DEFAULT_CHUNK_SIZE, validate_package_entry
from .errors import CorruptedEntryError, PackageEntryValidationError, PackageValidationError
from .manifest import read_index_json, resolve_paths_json
from .models import IndexJson, PathsEntry, PathsJson
from .schemas import SchemaRegistry

logger = logging.getLogger(__name__)


def verify_package(
    package_dir: Path,
    *,
    collect_all: bool = False,
    max_workers: int = 1,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    registry: SchemaRegistry | None = None,
) -> tuple[IndexJson, PathsJson]:
    """Check every entry of the package manifest against `package_dir`.

    The identity record is read first; a package without one is not
    verifiable. The manifest comes from `info/paths.json`, or from the
    deprecated files when that is absent. On success the parsed identity and
    manifest are returned. A failing entry raises `CorruptedEntryError`; with
    `collect_all` every entry is checked and all failures are attached to it.
    """
    package_dir = Path(package_dir)
    index_json = read_index_json(package_dir, registry=registry)
    paths = resolve_paths_json(package_dir, registry=registry)

    if collect_all:
        failures = collect_entry_failures(
            package_dir, paths, max_workers=max_workers, chunk_size=chunk_size
        )
        if failures:
            first = failures[0]
            raise CorruptedEntryError(first.relative_path or "", first, tuple(failures)) from first
        return index_json, paths

    try:
        verify_package_against_manifest(
            package_dir, paths, max_workers=max_workers, chunk_size=chunk_size
        )
    except PackageEntryValidationError as exc:
        raise CorruptedEntryError(exc.relative_path or "", exc) from exc
    return index_json, paths


def verify_package_against_manifest(
    package_dir: Path,
    paths: PathsJson,
    *,
    max_workers: int = 1,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> None:
    """Check an already resolved manifest; raises the first entry failure."""
    failures = _run_checks(
        Path(package_dir),
        paths.paths,
        stop_on_first=True,
        max_workers=max_workers,
        chunk_size=chunk_size,
    )
    if failures:
        raise failures[0]


def collect_entry_failures(
    package_dir: Path,
    paths: PathsJson,
    *,
    max_workers: int = 1,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> list[PackageEntryValidationError]:
    """Check every entry and return all failures in declaration order."""
    return _run_checks(
        Path(package_dir),
        paths.paths,
        stop_on_first=False,
        max_workers=max_workers,
        chunk_size=chunk_size,
    )


def _check_entry(
    package_dir: Path, entry: PathsEntry, chunk_size: int
) -> PackageEntryValidationError | None:
    try:
        validate_package_entry(package_dir, entry, chunk_size=chunk_size)
    except PackageEntryValidationError as exc:
        exc.relative_path = entry.relative_path
        return exc
    return None


def _run_checks(
    package_dir: Path,
    entries: Sequence[PathsEntry],
    *,
    stop_on_first: bool,
    max_workers: int,
    chunk_size: int,
) -> list[PackageEntryValidationError]:
    if max_workers <= 1 or len(entries) <= 1:
        failures: list[PackageEntryValidationError] = []
        for entry in entries:
            failure = _check_entry(package_dir, entry, chunk_size)
            if failure is None:
                continue
            failures.append(failure)
            if stop_on_first:
                break
        return failures

    stop = threading.Event()
    found: dict[int, PackageEntryValidationError] = {}

    def _task(index: int, entry: PathsEntry) -> tuple[int, PackageEntryValidationError | None]:
        if stop.is_set():
            return index, None
        failure = _check_entry(package_dir, entry, chunk_size)
        if failure is not None and stop_on_first:
            stop.set()
        return index, failure

    with ThreadPoolExecutor(max_workers=min(max_workers, len(entries))) as executor:
        futures = [executor.submit(_task, index, entry) for index, entry in enumerate(entries)]
        for future in as_completed(futures):
            if future.cancelled():
                continue
            index, failure = future.result()
            if failure is None:
                continue
            found[index] = failure
            if stop_on_first:
                for pending in futures:
                    pending.cancel()

    ordered = [found[index] for index in sorted(found)]
    if stop_on_first:
        return ordered[:1]
    return ordered


@dataclass
class PackageCheckReport:
    status: str
    reason_codes: list[str] = field(default_factory=list)
    issues: list[dict[str, Any]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    details: dict[str, Any] = field(default_factory=dict)

    def ok(self) -> bool:
        return self.status == "OK"

    def add_issue(self, code: str, *, detail: str | None = None, path: str | None = None) -> None:
        if code not in self.reason_codes:
            self.reason_codes.append(code)
        payload: dict[str, Any] = {"code": code, "severity": "ERROR"}
        if path is not None:
            payload["path"] = path
        if detail:
            payload["detail"] = detail
        self.issues.append(payload)
        label = code if path is None else f"{code}:{path}"
        self.errors.append(label if detail is None else f"{label}:{detail}")

    def as_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "reason_codes": list(self.reason_codes),
            "issues": list(self.issues),
            "errors": list(self.errors),
            "details": dict(self.details),
        }


class PackageVerifier:
    def __init__(self, profile: ContentCheckProfile | None = None, *, registry: SchemaRegistry | None = None) -> None:
        self.profile = profile or ContentCheckProfile.default()
        self.registry = registry

    @property
    def collect_all(self) -> bool:
        return self.profile.policy.failure_mode is FailureMode.COLLECT_ALL

    def check(self, package_dir: Path) -> PackageCheckReport:
        package_dir = Path(package_dir)
        report = PackageCheckReport(status="OK")
        report.details["package_dir"] = str(package_dir)
        report.details["failure_mode"] = self.profile.policy.failure_mode.value
        report.details["policy_rev"] = self.profile.policy.policy_rev

        try:
            index_json, paths = verify_package(
                package_dir,
                collect_all=self.collect_all,
                max_workers=self.profile.wiring.max_workers,
                chunk_size=self.profile.wiring.hash_chunk_size,
                registry=self.registry,
            )
        except CorruptedEntryError as exc:
            for failure in exc.failures:
                report.add_issue(failure.code, detail=str(failure), path=failure.relative_path)
            report.add_issue(exc.code, path=exc.relative_path)
            report.details["entries_failed"] = len(exc.failures)
        except PackageValidationError as exc:
            report.add_issue(exc.code, detail=exc.detail)
        else:
            report.details["package"] = index_json.as_dict()
            report.details["paths_version"] = paths.paths_version
            report.details["entries_checked"] = len(paths.paths)
            report.details["entries_by_type"] = paths.count_by_type()

        if report.errors:
            report.status = "FAIL"
            logger.warning(
                "content_check FAIL package_dir=%s reasons=%s",
                package_dir,
                ",".join(report.reason_codes),
            )
        else:
            logger.info(
                "content_check OK package=%s entries=%s",
                report.details["package"].get("name"),
                report.details["entries_checked"],
                extra={"narrative": True},
            )
        return report
