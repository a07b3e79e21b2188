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
Optima -- Output Normalizer (decision engine)

Decides whether a small model's rewrite may replace the user's code.

STAGES (any stage may short-circuit to FALLBACK):
    1. EXTRACTED          -- candidate pulled out of the raw text
    2. TRUNCATION_CHECKED -- cut-off output repaired by bracket balancing, or rejected
    3. SIZE_CHECKED       -- candidate kept enough of the original's lines
    4. ELEMENTS_CHECKED   -- no named function/class/import/variable dropped
    5. SIMILARITY_CHECKED -- candidate still resembles the original
    6. ACCEPTED           -- result assembled, confidence capped by risk signals

A fallback keeps the original verbatim with confidence 0. All descriptive
fields (strategy, explanation, complexity) come from the static analysis,
never from the generated text.

Usage:
    normalizer = OutputNormalizer()
    result = normalizer.normalize(raw_text, original_code, analysis)
    result.to_dict()
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from optima.core.config import DEFAULT_CONFIG, ValidationConfig
from optima.core.editing.extractor import extract_code
from optima.core.editing.integrity import check_elements, check_size
from optima.core.editing.repair import is_truncated, repair_truncated_code
from optima.core.editing.similarity import round_half_up, similarity
from optima.core.models import OptimizationResult, StaticAnalysis

logger = logging.getLogger("optima.core.editing.normalizer")

FALLBACK_STRATEGY = "Fallback - original preserved"
NO_CHANGE_STRATEGY = "No change needed"
NO_CHANGE_EXPLANATION = "Code is already well-optimized. No meaningful changes found."
NO_IMPROVEMENT = "No measurable improvement"

REASON_NOT_EXTRACTED = "Could not extract valid code from model output"
REASON_TRUNCATED = "Model output was truncated and could not be repaired"
REASON_INTERNAL = "Internal validation error; original code preserved"

# =============================================================================
# PIPELINE STATE
# =============================================================================


class PipelineStage(Enum):
    EXTRACTED = "extracted"
    TRUNCATION_CHECKED = "truncation_checked"
    SIZE_CHECKED = "size_checked"
    ELEMENTS_CHECKED = "elements_checked"
    SIMILARITY_CHECKED = "similarity_checked"
    ACCEPTED = "accepted"
    FALLBACK = "fallback"


@dataclass
class PipelineTrace:
    """What one normalization pass did, for logging and tests."""

    stages: list[PipelineStage] = field(default_factory=list)
    candidate: Optional[str] = None
    repaired: bool = False
    similarity: Optional[int] = None
    reason: str = ""

    @property
    def final_stage(self) -> Optional[PipelineStage]:
        return self.stages[-1] if self.stages else None

    def advance(self, stage: PipelineStage):
        self.stages.append(stage)


class _Rejected(Exception):
    """Internal signal: a stage rejected the candidate."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


def normalize_code(code: str) -> str:
    """Per-line right trim plus overall trim, for change detection."""
    return "\n".join(line.rstrip() for line in code.split("\n")).strip()


# =============================================================================
# OUTPUT NORMALIZER
# =============================================================================


class OutputNormalizer:
    """
    Validates, repairs and scores one model rewrite at a time.

    Holds only immutable configuration, so one instance can serve
    concurrent callers.
    """

    def __init__(self, config: ValidationConfig = DEFAULT_CONFIG):
        self.config = config

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def normalize(
        self,
        raw_text: str,
        original_code: str,
        analysis: Union[StaticAnalysis, dict[str, Any]],
        language: Optional[str] = None,
    ) -> OptimizationResult:
        result, _ = self.normalize_with_trace(raw_text, original_code, analysis, language)
        return result

    def normalize_with_trace(
        self,
        raw_text: str,
        original_code: str,
        analysis: Union[StaticAnalysis, dict[str, Any]],
        language: Optional[str] = None,
    ) -> tuple[OptimizationResult, PipelineTrace]:
        """Run every stage and return the verdict with the path it took.

        Raises pydantic.ValidationError if ``analysis`` is missing or malformed.
        """
        analysis = StaticAnalysis.model_validate(analysis)
        lang = language or analysis.language
        conservative = self.config.is_conservative(lang)
        trace = PipelineTrace()

        try:
            candidate = self._run_stages(raw_text or "", original_code, trace)
        except _Rejected as rejection:
            trace.reason = rejection.reason
            trace.advance(PipelineStage.FALLBACK)
            logger.info(
                "Candidate rejected: %s",
                rejection.reason,
                extra={"fields": {"stage": trace.stages[-2].value if len(trace.stages) > 1 else "start"}},
            )
            return make_fallback(original_code, analysis, rejection.reason, conservative), trace
        except Exception:
            logger.exception("Unexpected error while validating model output")
            trace.reason = REASON_INTERNAL
            trace.advance(PipelineStage.FALLBACK)
            return make_fallback(original_code, analysis, REASON_INTERNAL, conservative), trace

        trace.advance(PipelineStage.ACCEPTED)
        result = self._accept(candidate, original_code, analysis, conservative, trace)
        logger.info(
            "Candidate accepted",
            extra={
                "fields": {
                    "confidence": result.confidence,
                    "no_change": result.no_change,
                    "repaired": trace.repaired,
                }
            },
        )
        return result, trace

    # =========================================================================
    # INTERNAL: STAGES
    # =========================================================================

    def _run_stages(self, raw_text: str, original_code: str, trace: PipelineTrace) -> str:
        # The model echoed the original: nothing to validate
        if original_code.strip() and normalize_code(raw_text) == normalize_code(original_code):
            trace.candidate = original_code
            trace.similarity = 100
            return original_code

        candidate = extract_code(raw_text)
        if candidate is None:
            raise _Rejected(REASON_NOT_EXTRACTED)
        trace.candidate = candidate
        trace.advance(PipelineStage.EXTRACTED)

        if is_truncated(candidate):
            repair = repair_truncated_code(candidate)
            if not repair.was_repaired or is_truncated(repair.code):
                raise _Rejected(REASON_TRUNCATED)
            candidate = repair.code
            trace.candidate = candidate
            trace.repaired = True
        trace.advance(PipelineStage.TRUNCATION_CHECKED)

        size = check_size(original_code, candidate, self.config)
        if not size.passed:
            raise _Rejected(size.reason)
        trace.advance(PipelineStage.SIZE_CHECKED)

        elements = check_elements(original_code, candidate, self.config)
        if not elements.passed:
            raise _Rejected(elements.reason)
        trace.advance(PipelineStage.ELEMENTS_CHECKED)

        score = similarity(original_code, candidate, self.config.fuzzy_prefix_length)
        trace.similarity = score
        if score < self.config.min_similarity and candidate != original_code:
            raise _Rejected(
                f"Similarity too low ({score}/100), likely hallucination; original preserved"
            )
        trace.advance(PipelineStage.SIMILARITY_CHECKED)

        return candidate

    def _accept(
        self,
        candidate: str,
        original_code: str,
        analysis: StaticAnalysis,
        conservative: bool,
        trace: PipelineTrace,
    ) -> OptimizationResult:
        no_change = normalize_code(candidate) == normalize_code(original_code)
        confidence = self._confidence(analysis, no_change, conservative, trace)

        first_opt = analysis.first_optimization
        strategy = (
            NO_CHANGE_STRATEGY
            if no_change
            else (first_opt.action if first_opt else "Performance optimization applied")
        )

        return OptimizationResult(
            algorithm=analysis.detected_algorithm or "Custom Logic",
            complexity_before=analysis.estimated_complexity or "Unknown",
            complexity_after=(
                (analysis.estimated_complexity or "Unknown")
                if no_change
                else estimate_improved_complexity(analysis)
            ),
            bottleneck=_bottleneck(analysis),
            strategy=strategy,
            optimization_strategy=strategy,
            tradeoffs="None",
            estimated_improvement=NO_IMPROVEMENT if no_change else estimate_improvement(analysis),
            confidence=confidence,
            explanation=NO_CHANGE_EXPLANATION if no_change else build_explanation(analysis),
            optimized_code=candidate,
            detected_patterns=list(analysis.detected_patterns),
            possible_optimizations=list(analysis.possible_optimizations),
            static_confidence_score=analysis.confidence_score,
            parsed=True,
            no_change=no_change,
            c_language=True if conservative else None,
        )

    def _confidence(
        self,
        analysis: StaticAnalysis,
        no_change: bool,
        conservative: bool,
        trace: PipelineTrace,
    ) -> int:
        if no_change:
            return 100

        confidence = max(0, min(100, round_half_up(analysis.confidence_score * 100)))
        if conservative:
            confidence = min(confidence, self.config.conservative_language_cap)
        if trace.similarity is not None and trace.similarity < self.config.low_similarity:
            confidence = min(confidence, self.config.low_similarity_cap)
        if trace.repaired:
            confidence = min(confidence, self.config.repaired_cap)
        return confidence


# =============================================================================
# STATIC-ANALYSIS DERIVED METADATA
# =============================================================================


def _bottleneck(analysis: StaticAnalysis) -> str:
    pattern = analysis.first_pattern
    return pattern.description if pattern and pattern.description else "None detected"


def build_explanation(analysis: StaticAnalysis) -> str:
    parts = []

    if analysis.detected_patterns:
        high = [p for p in analysis.detected_patterns if p.severity == "high"]
        if high:
            descriptions = ", ".join(p.description for p in high)
            parts.append(f"Fixed {len(high)} high-severity issue(s): {descriptions}.")
        else:
            parts.append(f"Improved {len(analysis.detected_patterns)} detected pattern(s).")

    if analysis.possible_optimizations:
        parts.append(f"Applied: {analysis.possible_optimizations[0].action}.")

    return " ".join(parts) or "Performance optimization applied."


def estimate_improved_complexity(analysis: StaticAnalysis) -> str:
    current = analysis.estimated_complexity
    if not current:
        return "Unknown"
    if "n²" in current or "n^2" in current:
        return "O(n)"
    if "n³" in current or "n^3" in current:
        return "O(n²)"
    if "n log n" in current:
        return "O(n)"
    return current


def estimate_improvement(analysis: StaticAnalysis) -> str:
    if analysis.has_severity("high"):
        return "Significant - reduced time complexity"
    if analysis.has_severity("medium"):
        return "Moderate - improved efficiency"
    return "Minor optimization applied"


def make_fallback(
    original_code: str,
    analysis: StaticAnalysis,
    reason: str,
    conservative: bool = False,
) -> OptimizationResult:
    """Terminal rejection: the original is kept verbatim, confidence 0."""
    complexity = analysis.estimated_complexity or "Unknown"
    return OptimizationResult(
        algorithm=analysis.detected_algorithm or "Custom Logic",
        complexity_before=complexity,
        complexity_after=complexity,
        bottleneck=_bottleneck(analysis),
        strategy=FALLBACK_STRATEGY,
        optimization_strategy=FALLBACK_STRATEGY,
        tradeoffs="None",
        estimated_improvement=NO_IMPROVEMENT,
        confidence=0,
        explanation=reason,
        optimized_code=original_code,
        detected_patterns=list(analysis.detected_patterns),
        possible_optimizations=list(analysis.possible_optimizations),
        static_confidence_score=analysis.confidence_score,
        parsed=False,
        no_change=True,
        c_language=True if conservative else None,
        parse_warning=reason,
    )


# =============================================================================
# FACTORY
# =============================================================================


def get_output_normalizer(config: Optional[ValidationConfig] = None) -> OutputNormalizer:
    """Factory function to create an OutputNormalizer."""
    return OutputNormalizer(config or DEFAULT_CONFIG)


def normalize_llm_output(
    raw_text: str,
    original_code: str,
    analysis: Union[StaticAnalysis, dict[str, Any]],
    language: Optional[str] = None,
    config: Optional[ValidationConfig] = None,
) -> OptimizationResult:
    """One-shot convenience wrapper around ``OutputNormalizer.normalize``."""
    return get_output_normalizer(config).normalize(raw_text, original_code, analysis, language)
