# Optima
# Copyright (C) 2025 Phoenix Link (Pty) Ltd. All Rights Reserved.
#
# This file is part of Optima.
#
# Optima is dual-licensed:
#
# 1. Open Source: GNU Affero General Public License v3.0 (AGPL-3.0)
#    You may use, modify, and distribute this file under AGPL-3.0.
#    See LICENSE for the full text.
#
# 2. Commercial: Available from Phoenix Link (Pty) Ltd
#    For proprietary use, SaaS deployment, or enterprise licensing.
#    See LICENSE-ENTERPRISE.md or contact licensing@phoenixlink.co.za
#
# Contributions require a signed CLA. See COPYRIGHT.md and CLA.md.
"""
Optima CLI -- Main entry point.

Usage:
    optima diff ORIGINAL CANDIDATE [--json] [--config FILE]
    optima normalize --raw RAW --original ORIGINAL --analysis ANALYSIS [--language L]
    optima prompt --code CODE --analysis ANALYSIS [--focus performance] [--retry]
    optima --version
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from optima import __version__
from optima.core.config import load_config
from optima.core.diff import compute_diff, compute_diff_stats
from optima.core.editing.normalizer import normalize_llm_output
from optima.core.logging import configure_logging
from optima.core.prompts import OptimizationFocus, build_structured_prompt

logger = logging.getLogger("optima.cli.app")

_DIFF_PREFIX = {"added": "+", "removed": "-", "unchanged": " "}


class CLIError(Exception):
    """A user-facing failure: printed to stderr, exit status 1."""


def _read_text(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"Cannot read {path}: {exc.strerror or exc}") from exc


def _read_analysis(path: str) -> dict[str, Any]:
    """Analysis files may be JSON or YAML (JSON is valid YAML)."""
    try:
        data = yaml.safe_load(_read_text(path))
    except yaml.YAMLError as exc:
        raise CLIError(f"Cannot parse analysis file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise CLIError(f"Analysis file {path} must contain a mapping")
    return data


# =============================================================================
# COMMANDS
# =============================================================================


def cmd_diff(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    diff = compute_diff(
        _read_text(args.original), _read_text(args.candidate), max_lines=config.diff_max_lines
    )
    stats = compute_diff_stats(diff)

    if args.json:
        print(json.dumps({"diff": [d.to_dict() for d in diff], "stats": stats.to_dict()}, indent=2))
        return 0

    for line in diff:
        print(f"{_DIFF_PREFIX[line.type]} {line.content}")
    print(
        f"\n{stats.added} added, {stats.removed} removed, "
        f"{stats.unchanged} unchanged ({stats.change_percent}% changed)"
    )
    return 0


def cmd_normalize(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    try:
        result = normalize_llm_output(
            _read_text(args.raw),
            _read_text(args.original),
            _read_analysis(args.analysis),
            language=args.language,
            config=config,
        )
    except ValidationError as exc:
        raise CLIError(f"Invalid static analysis: {exc}") from exc

    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    return 0


def cmd_prompt(args: argparse.Namespace) -> int:
    try:
        prompt = build_structured_prompt(
            _read_text(args.code), _read_analysis(args.analysis), args.focus, args.retry
        )
    except ValidationError as exc:
        raise CLIError(f"Invalid static analysis: {exc}") from exc

    print(prompt.as_text())
    return 0


# =============================================================================
# PARSER
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="optima",
        description="Validate small-model code rewrites and render line diffs",
    )
    parser.add_argument("--version", action="version", version=f"optima {__version__}")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    parser.add_argument("--log-json", action="store_true", help="Emit logs as JSON lines")

    sub = parser.add_subparsers(dest="command", required=True)

    diff = sub.add_parser("diff", help="Line diff of two files")
    diff.add_argument("original")
    diff.add_argument("candidate")
    diff.add_argument("--json", action="store_true", help="Print diff and stats as JSON")
    diff.add_argument("--config", default=None, help="Path to validation.yaml")
    diff.set_defaults(func=cmd_diff)

    normalize = sub.add_parser("normalize", help="Validate raw model output against the original")
    normalize.add_argument("--raw", required=True, help="File holding the raw model output")
    normalize.add_argument("--original", required=True, help="File holding the original code")
    normalize.add_argument("--analysis", required=True, help="Static analysis (JSON or YAML)")
    normalize.add_argument("--language", default=None, help="Override the analysis language")
    normalize.add_argument(
        "--config",
        default=None,
        help="Path to validation.yaml (default: ~/.optima/validation.yaml)",
    )
    normalize.set_defaults(func=cmd_normalize)

    prompt = sub.add_parser("prompt", help="Build the generation prompt for a snippet")
    prompt.add_argument("--code", required=True, help="File holding the code to optimize")
    prompt.add_argument("--analysis", required=True, help="Static analysis (JSON or YAML)")
    prompt.add_argument(
        "--focus",
        default=OptimizationFocus.PERFORMANCE.value,
        choices=[f.value for f in OptimizationFocus],
    )
    prompt.add_argument("--retry", action="store_true", help="Add the unchanged-output retry clause")
    prompt.set_defaults(func=cmd_prompt)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, json_output=args.log_json)

    try:
        return args.func(args)
    except CLIError as exc:
        logger.debug("Command failed: %s", exc)
        print(f"optima: error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
