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
"""Validation thresholds for the output normalizer and diff engine.

Every numeric gate used by the pipeline lives here as a named constant so
each boundary can be tuned on its own. ``ValidationConfig`` bundles them
for a single call; ``load_config`` reads overrides from YAML.

Config location: ~/.optima/validation.yaml  (or $OPTIMA_HOME/validation.yaml)

Example::

    size:
      small_ratio: 0.10
      medium_ratio: 0.30
      large_ratio: 0.40
    similarity:
      min_score: 50
    confidence:
      conservative_languages: [C]
    elements:
      trivial_variables: [tmp, idx, result]

Values of the wrong type or outside their range are logged and ignored.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger("optima.core.config")

# ---------------------------------------------------------------------------
# Default paths
# ---------------------------------------------------------------------------
_OPTIMA_HOME = Path(os.environ.get("OPTIMA_HOME", Path.home() / ".optima"))
DEFAULT_CONFIG_PATH = _OPTIMA_HOME / "validation.yaml"

# ---------------------------------------------------------------------------
# Size check: minimum candidate/original meaningful-line ratio
# ---------------------------------------------------------------------------
SMALL_ORIGINAL_MAX_LINES = 10
MEDIUM_ORIGINAL_MAX_LINES = 40
SIZE_RATIO_SMALL = 0.10
SIZE_RATIO_MEDIUM = 0.30
SIZE_RATIO_LARGE = 0.40

# ---------------------------------------------------------------------------
# Similarity gates (0..100)
# ---------------------------------------------------------------------------
MIN_SIMILARITY = 50  # below this the candidate is rejected
LOW_SIMILARITY = 80  # below this confidence is capped
FUZZY_PREFIX_LENGTH = 10

# ---------------------------------------------------------------------------
# Confidence caps, applied in this order
# ---------------------------------------------------------------------------
CONSERVATIVE_LANGUAGE_CAP = 70
LOW_SIMILARITY_CAP = 60
REPAIRED_CAP = 50

# Memory-unsafe targets where a rewrite is trusted less
CONSERVATIVE_LANGUAGES: tuple[str, ...] = ("C",)

# ---------------------------------------------------------------------------
# Element check: short variable names a faithful rewrite routinely inlines
# or renames. Tuned for C-family / Python / JS conventions.
# ---------------------------------------------------------------------------
TRIVIAL_VARIABLE_NAMES: tuple[str, ...] = (
    "tmp", "temp", "idx", "index", "err", "ex", "res", "result", "ret", "val",
    "value", "item", "elem", "el", "acc", "cnt", "count", "len", "cur", "curr",
    "prev", "next", "key", "ok", "flag", "found", "ans", "total",
)

# ---------------------------------------------------------------------------
# Diff engine
# ---------------------------------------------------------------------------
DIFF_MAX_LINES = 300

# YAML section -> dataclass field, per key
_SECTIONS: dict[str, dict[str, str]] = {
    "size": {
        "small_max_lines": "small_original_max_lines",
        "medium_max_lines": "medium_original_max_lines",
        "small_ratio": "size_ratio_small",
        "medium_ratio": "size_ratio_medium",
        "large_ratio": "size_ratio_large",
    },
    "similarity": {
        "min_score": "min_similarity",
        "low_score": "low_similarity",
        "fuzzy_prefix_length": "fuzzy_prefix_length",
    },
    "confidence": {
        "conservative_language_cap": "conservative_language_cap",
        "low_similarity_cap": "low_similarity_cap",
        "repaired_cap": "repaired_cap",
        "conservative_languages": "conservative_languages",
    },
    "elements": {
        "trivial_variables": "trivial_variable_names",
    },
    "diff": {
        "max_lines": "diff_max_lines",
    },
}

# Accepted range per numeric field, inclusive; None is unbounded
_BOUNDS: dict[str, tuple[float, float | None]] = {
    "small_original_max_lines": (1, None),
    "medium_original_max_lines": (1, None),
    "size_ratio_small": (0.0, 1.0),
    "size_ratio_medium": (0.0, 1.0),
    "size_ratio_large": (0.0, 1.0),
    "min_similarity": (0, 100),
    "low_similarity": (0, 100),
    "fuzzy_prefix_length": (1, None),
    "conservative_language_cap": (0, 100),
    "low_similarity_cap": (0, 100),
    "repaired_cap": (0, 100),
    "diff_max_lines": (1, None),
}


@dataclass(frozen=True)
class ValidationConfig:
    """Thresholds for one normalization pass.

    Instances are immutable; use ``with_overrides`` to derive a variant.
    """

    small_original_max_lines: int = SMALL_ORIGINAL_MAX_LINES
    medium_original_max_lines: int = MEDIUM_ORIGINAL_MAX_LINES
    size_ratio_small: float = SIZE_RATIO_SMALL
    size_ratio_medium: float = SIZE_RATIO_MEDIUM
    size_ratio_large: float = SIZE_RATIO_LARGE

    min_similarity: int = MIN_SIMILARITY
    low_similarity: int = LOW_SIMILARITY
    fuzzy_prefix_length: int = FUZZY_PREFIX_LENGTH

    conservative_language_cap: int = CONSERVATIVE_LANGUAGE_CAP
    low_similarity_cap: int = LOW_SIMILARITY_CAP
    repaired_cap: int = REPAIRED_CAP
    conservative_languages: tuple[str, ...] = field(default=CONSERVATIVE_LANGUAGES)
    trivial_variable_names: tuple[str, ...] = field(default=TRIVIAL_VARIABLE_NAMES)

    diff_max_lines: int = DIFF_MAX_LINES

    def size_threshold(self, original_lines: int) -> float:
        """Minimum acceptable ratio for an original of this many meaningful lines."""
        if original_lines <= self.small_original_max_lines:
            return self.size_ratio_small
        if original_lines <= self.medium_original_max_lines:
            return self.size_ratio_medium
        return self.size_ratio_large

    def is_conservative(self, language: str | None) -> bool:
        return bool(language) and language in self.conservative_languages

    def with_overrides(self, **overrides: Any) -> ValidationConfig:
        for name in ("conservative_languages", "trivial_variable_names"):
            if name in overrides:
                overrides[name] = tuple(overrides[name])
        return replace(self, **overrides)

    def to_dict(self) -> dict[str, Any]:
        """Sectioned form, as written by ``save_config``."""
        data: dict[str, Any] = {}
        for section, keys in _SECTIONS.items():
            data[section] = {}
            for key, attr in keys.items():
                value = getattr(self, attr)
                data[section][key] = list(value) if isinstance(value, tuple) else value
        return data


DEFAULT_CONFIG = ValidationConfig()


def load_config(path: Path | str | None = None) -> ValidationConfig:
    """Load validation thresholds from a YAML file.

    If the file does not exist or cannot be parsed, returns the defaults.
    """
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH

    if not config_path.exists():
        logger.debug("No validation config at %s -- using defaults", config_path)
        return DEFAULT_CONFIG

    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        logger.error("Failed to load validation config: %s -- using defaults", exc)
        return DEFAULT_CONFIG

    if raw is None:
        return DEFAULT_CONFIG
    if not isinstance(raw, dict):
        logger.warning("Invalid validation config (not a mapping) -- using defaults")
        return DEFAULT_CONFIG
    return _parse_config(raw)


def save_config(config: ValidationConfig, path: Path | str | None = None) -> None:
    """Save validation thresholds to a YAML file."""
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(
        yaml.dump(config.to_dict(), default_flow_style=False, sort_keys=False), encoding="utf-8"
    )
    logger.info("Saved validation config to %s", config_path)


def _parse_config(raw: dict) -> ValidationConfig:
    """Parse a sectioned YAML mapping into ValidationConfig."""
    types = {f.name: f.type for f in fields(ValidationConfig)}
    overrides: dict[str, Any] = {}

    for section, values in raw.items():
        keys = _SECTIONS.get(section)
        if keys is None or not isinstance(values, dict):
            logger.warning("Ignoring unknown config section '%s'", section)
            continue
        for key, value in values.items():
            attr = keys.get(key)
            if attr is None:
                logger.warning("Ignoring unknown config key '%s.%s'", section, key)
                continue
            coerced = _coerce(value, types[attr])
            if coerced is None or not _in_bounds(attr, coerced):
                logger.warning("Ignoring invalid value for '%s.%s': %r", section, key, value)
                continue
            overrides[attr] = coerced

    return DEFAULT_CONFIG.with_overrides(**overrides)


def _coerce(value: Any, annotation: str) -> Any:
    # Annotations are strings under ``from __future__ import annotations``
    if annotation.startswith("tuple"):
        if isinstance(value, str):
            return (value,)
        if isinstance(value, list) and all(isinstance(v, str) for v in value):
            return tuple(value)
        return None
    if isinstance(value, bool):
        return None
    if annotation == "int" and isinstance(value, int):
        return value
    if annotation == "float" and isinstance(value, (int, float)):
        return float(value)
    return None


def _in_bounds(attr: str, value: Any) -> bool:
    if attr not in _BOUNDS:
        return True
    low, high = _BOUNDS[attr]
    return value >= low and (high is None or value <= high)
