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
#    See LICENSE-ENTERPRISE.md or contact info@phoenixlink.co.za
#
# Contributions require a signed CLA. See COPYRIGHT.md and CLA.md.
"""
Optima -- Log formatting

Library modules only ever call ``logging.getLogger("optima.<module>")``;
handlers are installed by the application (the CLI) through
``configure_logging``.

Structured fields ride on the record via ``extra={"fields": {...}}``.

FORMATS:
    text: TIMESTAMP | LEVEL | COMPONENT    | MESSAGE | k=v k=v
    json: {"timestamp": ..., "level": ..., "component": ..., "message": ..., k: v}
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional

ROOT_LOGGER = "optima"
_HANDLER_NAME = "optima.cli"


def _component(record: logging.LogRecord) -> str:
    component = getattr(record, "component", None)
    if component:
        return component
    # "optima.core.editing.normalizer" -> "normalizer"
    return record.name.rsplit(".", 1)[-1]


def _timestamp() -> str:
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


class OptimaLogFormatter(logging.Formatter):
    """
    Format: TIMESTAMP | LEVEL | COMPONENT | MESSAGE | {structured fields}

    Example:
    2026-02-09T17:30:45.123Z | INFO  | normalizer   | Candidate accepted | confidence=60 repaired=True
    """

    LEVEL_WIDTH = 5
    COMPONENT_WIDTH = 12

    def format(self, record: logging.LogRecord) -> str:
        level = "WARN" if record.levelname == "WARNING" else record.levelname
        message = record.getMessage()

        fields = getattr(record, "fields", {}) or {}
        field_str = ""
        if fields:
            parts = []
            for k, v in fields.items():
                if isinstance(v, str):
                    parts.append(f'{k}="{v}"')
                elif isinstance(v, float):
                    parts.append(f"{k}={v:.3f}")
                else:
                    parts.append(f"{k}={v}")
            field_str = " | " + " ".join(parts)

        line = (
            f"{_timestamp()} | {level:<{self.LEVEL_WIDTH}} | "
            f"{_component(record):<{self.COMPONENT_WIDTH}} | {message}{field_str}"
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class StructuredLogFormatter(logging.Formatter):
    """One JSON object per line, for machine consumption."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": _timestamp(),
            "level": record.levelname,
            "service": ROOT_LOGGER,
            "component": _component(record),
            "message": record.getMessage(),
        }
        entry.update(getattr(record, "fields", {}) or {})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(
    level: str = "WARNING",
    json_output: bool = False,
    stream: Optional[Any] = None,
) -> logging.Logger:
    """Attach a single stderr handler to the ``optima`` logger.

    Calling again replaces the previous handler rather than adding another.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.WARNING))
    logger.propagate = False

    for handler in list(logger.handlers):
        if handler.get_name() == _HANDLER_NAME:
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(StructuredLogFormatter() if json_output else OptimaLogFormatter())
    logger.addHandler(handler)
    return logger
