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
Optima -- Boundary records

StaticAnalysis is produced by the external pattern detector and is read-only
here. OptimizationResult is the terminal record handed to the presentation
layer; ``to_dict()`` gives its field-exact wire form (underscore-prefixed
flags, optional fields omitted when unset).
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# STATIC ANALYSIS (input)
# =============================================================================


class DetectedPattern(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: str
    description: str = ""
    severity: str = "low"  # low | medium | high


class PossibleOptimization(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    action: str
    rationale: str = ""
    expected_impact: str = Field(default="", alias="expectedImpact")


class StaticAnalysis(BaseModel):
    """Metadata derived from the original code by the pattern detector."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    language: str
    detected_patterns: list[DetectedPattern] = Field(default_factory=list)
    possible_optimizations: list[PossibleOptimization] = Field(default_factory=list)
    confidence_score: float = Field(ge=0.0, le=1.0)
    estimated_complexity: str = ""
    detected_algorithm: str = ""

    @property
    def first_pattern(self) -> Optional[DetectedPattern]:
        return self.detected_patterns[0] if self.detected_patterns else None

    @property
    def first_optimization(self) -> Optional[PossibleOptimization]:
        return self.possible_optimizations[0] if self.possible_optimizations else None

    def has_severity(self, severity: str) -> bool:
        return any(p.severity == severity for p in self.detected_patterns)


# =============================================================================
# OPTIMIZATION RESULT (output)
# =============================================================================


class OptimizationResult(BaseModel):
    """Final verdict for one optimization request.

    If ``parsed`` is False the candidate was rejected: ``optimized_code`` is
    the original verbatim and ``confidence`` is 0.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    algorithm: str
    complexity_before: str
    complexity_after: str
    bottleneck: str
    strategy: str
    optimization_strategy: str
    tradeoffs: str
    estimated_improvement: str
    confidence: int = Field(ge=0, le=100)
    explanation: str
    optimized_code: str

    detected_patterns: Optional[list[DetectedPattern]] = None
    possible_optimizations: Optional[list[PossibleOptimization]] = None
    static_confidence_score: Optional[float] = None

    parsed: bool = Field(alias="_parsed")
    no_change: bool = Field(alias="_no_change")
    c_language: Optional[bool] = Field(default=None, alias="_c_language")
    parse_warning: Optional[str] = Field(default=None, alias="_parse_warning")

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
