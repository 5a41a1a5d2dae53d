"""Content check configuration loader (YAML profiles)."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import os
import re
from pathlib import Path
from typing import Any

import yaml

from .entry import DEFAULT_CHUNK_SIZE


_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


class ContentCheckConfigError(ValueError):
    pass


class FailureMode(str, Enum):
    STOP_ON_FIRST = "stop_on_first"
    COLLECT_ALL = "collect_all"


def _resolve_env(value: Any) -> Any:
    if not value or not isinstance(value, str):
        return value
    match = _ENV_PATTERN.fullmatch(value.strip())
    if match:
        return os.getenv(match.group(1)) or ""
    return value


def _positive_int(value: Any, name: str, default: int) -> int:
    value = _resolve_env(value)
    if value is None or value == "":
        return default
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ContentCheckConfigError(f"{name} must be an integer: {value!r}") from exc
    if number < 1:
        raise ContentCheckConfigError(f"{name} must be >= 1: {number}")
    return number


@dataclass(frozen=True)
class ContentCheckPolicy:
    policy_rev: str
    failure_mode: FailureMode = FailureMode.STOP_ON_FIRST


@dataclass(frozen=True)
class ContentCheckWiring:
    profile_id: str
    max_workers: int = 1
    hash_chunk_size: int = DEFAULT_CHUNK_SIZE
    log_path: str | None = None


@dataclass(frozen=True)
class ContentCheckProfile:
    policy: ContentCheckPolicy
    wiring: ContentCheckWiring

    @classmethod
    def default(cls) -> "ContentCheckProfile":
        return cls.from_dict({"profile_id": "local"})

    @classmethod
    def load(cls, path: Path) -> "ContentCheckProfile":
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            raise ContentCheckConfigError(f"profile must be a mapping: {path}")
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ContentCheckProfile":
        policy = data.get("policy") or {}
        wiring = data.get("wiring") or {}
        profile_id = data.get("profile_id", "local")

        raw_mode = _resolve_env(policy.get("failure_mode")) or FailureMode.STOP_ON_FIRST.value
        try:
            failure_mode = FailureMode(str(raw_mode).lower())
        except ValueError as exc:
            raise ContentCheckConfigError(f"unknown failure_mode: {raw_mode!r}") from exc

        log_path = _resolve_env(wiring.get("log_path")) or None

        return cls(
            policy=ContentCheckPolicy(
                policy_rev=policy.get("policy_rev", profile_id),
                failure_mode=failure_mode,
            ),
            wiring=ContentCheckWiring(
                profile_id=profile_id,
                max_workers=_positive_int(wiring.get("max_workers"), "max_workers", 1),
                hash_chunk_size=_positive_int(
                    wiring.get("hash_chunk_size"), "hash_chunk_size", DEFAULT_CHUNK_SIZE
                ),
                log_path=log_path,
            ),
        )
