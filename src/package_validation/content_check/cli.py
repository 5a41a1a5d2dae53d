"""CLI entrypoint for package content checks."""

from __future__ import annotations

import argparse
from dataclasses import replace
import json
import logging
from pathlib import Path

from .config import ContentCheckProfile, FailureMode
from .logging_utils import configure_logging, content_check_log_paths
from .verifier import PackageVerifier


def _apply_overrides(profile: ContentCheckProfile, args: argparse.Namespace) -> ContentCheckProfile:
    policy = profile.policy
    wiring = profile.wiring
    if args.collect_all:
        policy = replace(policy, failure_mode=FailureMode.COLLECT_ALL)
    elif args.stop_on_first:
        policy = replace(policy, failure_mode=FailureMode.STOP_ON_FIRST)
    if args.max_workers is not None:
        if args.max_workers < 1:
            raise SystemExit("--max-workers must be >= 1")
        wiring = replace(wiring, max_workers=args.max_workers)
    return replace(profile, policy=policy, wiring=wiring)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Package content checker (extracted package directories)")
    parser.add_argument("--package-dir", required=True, help="Path to an extracted package directory")
    parser.add_argument("--profile", help="Path to content check profile YAML")
    parser.add_argument("--max-workers", type=int, help="Number of entries checked concurrently")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--collect-all", action="store_true", help="Report every corrupted entry")
    group.add_argument("--stop-on-first", action="store_true", help="Stop at the first corrupted entry")
    args = parser.parse_args(argv)

    profile = ContentCheckProfile.load(Path(args.profile)) if args.profile else ContentCheckProfile.default()
    profile = _apply_overrides(profile, args)
    configure_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        log_paths=content_check_log_paths(profile.wiring.log_path),
        package_dir=Path(args.package_dir),
    )
    report = PackageVerifier(profile).check(Path(args.package_dir))
    print(json.dumps(report.as_dict(), sort_keys=True))
    raise SystemExit(0 if report.ok() else 1)


if __name__ == "__main__":
    main()
