#!/usr/bin/env python3
# -*-coding: utf-8-*-
"""
APK Patch - Startup Script

Patches native libraries inside an APK with find/replace byte patterns,
repacks it with the original per-entry compression, then aligns and signs it.
"""

import os
import sys
import logging
import argparse
from pathlib import Path
from typing import List, Optional

from apkpatch.app.context import PatchContext
from apkpatch.app.discovery import find_input_archive, find_patch_source
from apkpatch.app.pipeline import PipelineReport, run_pipeline
from apkpatch.config import (
    BuildToolsConfig,
    ConfigStatus,
    get_config_path,
    load_build_tools_config,
    save_build_tools_config,
)
from apkpatch.exceptions import BaseError
from apkpatch.logging_config import setup_logging
from apkpatch.tools.build_tools import discover_build_tools
from apkpatch.version import load_version

logger = logging.getLogger(__name__)


def parse_arguments(argv: Optional[List[str]] = None):
    """Parses command line arguments."""
    parser = argparse.ArgumentParser(description="APK Patch - native library patcher for APK files")
    parser.add_argument("--apk", metavar="PATH", help="APK to patch (default: first *.apk in --dir)")
    parser.add_argument("--patches", metavar="PATH", help="Patch document (XML, YAML or JSON)")
    parser.add_argument("--dir", metavar="DIR", default=None, help="Working directory (default: current directory)")
    parser.add_argument("--config", metavar="PATH", help="Build tools configuration file")
    parser.add_argument("--no-align", action="store_true", help="Skip zipalign")
    parser.add_argument("--no-sign", action="store_true", help="Skip apksigner")
    parser.add_argument(
        "--discover-tools",
        action="store_true",
        help="Detect zipalign/apksigner in the Android SDK and save the configuration",
    )
    parser.add_argument("--sdk-root", metavar="PATH", help="Android SDK root for --discover-tools")
    parser.add_argument("--build-tools-version", metavar="VERSION", help="Build tools version for --discover-tools")
    parser.add_argument("--debug", action="store_true", help="Enable debug output and tool logs")
    parser.add_argument("--log-json", action="store_true", help="Emit structured JSON log lines")
    parser.add_argument("--version", action="store_true", help="Show version information")

    return parser.parse_args(argv)


def _discover(args, config_path: Path) -> int:
    existing = load_build_tools_config(config_path)
    try:
        config = discover_build_tools(args.sdk_root, args.build_tools_version, base=existing.config)
    except BaseError as e:
        logger.error("Build tools discovery failed: %s", e)
        print(f"Error: {e}")
        return 1

    save_build_tools_config(config, config_path)
    print(f"Build tools {config.build_tools_version} configured in {config_path}")
    return 0


def _resolve_config(args, config_path: Path) -> Optional[BuildToolsConfig]:
    result = load_build_tools_config(config_path)

    if result.status == ConfigStatus.ABSENT:
        if args.no_align and args.no_sign:
            return BuildToolsConfig(align_apk=False, sign_apk=False)
        print(f"No configuration found at {config_path}. Run with --discover-tools first.")
        return None

    if result.status == ConfigStatus.MALFORMED or result.config is None:
        logger.error("Configuration %s is unusable: %s", config_path, result.error)
        print(f"Error: configuration {config_path} is unusable: {result.error}")
        return None

    overrides = {}
    if args.no_align:
        overrides["align_apk"] = False
    if args.no_sign:
        overrides["sign_apk"] = False
    return result.config.model_copy(update=overrides)


def _print_summary(report: PipelineReport) -> None:
    if report.walk is None:
        return
    for arch_report in report.walk.reports:
        line = f"- {arch_report.architecture}: {arch_report.status.value}"
        if arch_report.results:
            line += (
                f" ({arch_report.applied_count} applied, {arch_report.missed_count} not found,"
                f" {arch_report.failed_count} failed)"
            )
        print(line)


def main(argv: Optional[List[str]] = None) -> int:
    """Main function to start the application."""
    args = parse_arguments(argv)

    if args.version:
        print(f"APK Patch v{load_version()}")
        return 0

    work_dir = Path(args.dir or os.getcwd()).resolve()
    setup_logging(
        log_level="DEBUG" if args.debug else "INFO",
        log_dir=work_dir / "logs",
        enable_file_logging=args.debug,
        structured_json=True if args.log_json else None,
    )
    logger.info("APK Patch v%s", load_version())

    config_path = Path(args.config) if args.config else get_config_path(work_dir)

    if args.discover_tools:
        return _discover(args, config_path)

    config = _resolve_config(args, config_path)
    if config is None:
        return 1

    apk_path = Path(args.apk) if args.apk else find_input_archive(work_dir)
    if apk_path is None:
        print("Error: No APK file found in the working directory.")
        return 1
    patch_path = Path(args.patches) if args.patches else find_patch_source(work_dir)
    if patch_path is None:
        print("Error: No patch file found in the working directory.")
        return 1

    print(f"Found APK: {apk_path}")
    print(f"Found Patch File: {patch_path}")

    context = PatchContext(
        config=config,
        work_dir=work_dir,
        log_dir=work_dir / "logs",
        debug=args.debug,
    )

    try:
        report = run_pipeline(context, apk_path, patch_path)
    except BaseError as e:
        logger.error("Patching failed [%s]: %s", e.error_code, e)
        print(f"Error: {e}")
        return 1

    _print_summary(report)
    print(f"Output: {report.final_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
