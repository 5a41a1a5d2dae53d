"""Logging helpers for content checks."""

from __future__ import annotations

import logging
import os
from pathlib import Path


class NarrativeFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if record.levelno >= logging.WARNING:
            return True
        if getattr(record, "narrative", False):
            return True
        return False


def content_check_log_paths(configured: str | None = None) -> list[str]:
    log_path = (os.getenv("CONTENT_CHECK_LOG_PATH") or "").strip() or (configured or "").strip()
    if log_path:
        return [log_path]
    return []


def package_log_path(log_path: str, package_dir: Path) -> Path:
    """Per-package log file next to the summary log: `<log dir>/packages/<package dir name>.log`."""
    name = Path(package_dir).resolve().name or "package"
    return Path(log_path).parent / "packages" / f"{name}.log"


def build_handlers(log_paths: list[str] | None = None, package_dir: Path | None = None) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    narrative_path = log_paths[0] if log_paths else None
    if not narrative_path:
        return handlers

    path = Path(narrative_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    narrative_handler = logging.FileHandler(path, encoding="utf-8")
    narrative_handler.addFilter(NarrativeFilter())
    handlers.append(narrative_handler)

    if package_dir is not None:
        package_path = package_log_path(narrative_path, package_dir)
        package_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(package_path, encoding="utf-8"))
    return handlers


def configure_logging(
    level: int = logging.INFO,
    log_paths: list[str] | None = None,
    package_dir: Path | None = None,
) -> None:
    """Configure default logging if no handlers are present."""
    root = logging.getLogger()
    if root.handlers:
        return
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=build_handlers(log_paths, package_dir),
    )
