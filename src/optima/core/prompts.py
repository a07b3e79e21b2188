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
Optima -- Prompt Builder

Turns static analysis into explicit instructions for a small (~350M) model.

PRINCIPLES:
    1. Small models cannot produce reliable JSON -- ask for code only
    2. Do not ask the model to find the problem -- tell it what to change
    3. One few-shot example per language family
    4. All metadata in the final result comes from static analysis, not the model
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from optima.core.models import StaticAnalysis


class OptimizationFocus(Enum):
    PERFORMANCE = "performance"
    READABILITY = "readability"
    SECURITY = "security"
    BEST_PRACTICES = "best-practices"
    ALL = "all"


FOCUS_LINE = {
    OptimizationFocus.PERFORMANCE: "Focus on reducing time and space complexity.",
    OptimizationFocus.READABILITY: "Focus on clarity, naming, and removing duplication.",
    OptimizationFocus.SECURITY: "Focus on input validation and removing injection risks.",
    OptimizationFocus.BEST_PRACTICES: "Focus on idiomatic patterns and modern conventions.",
    OptimizationFocus.ALL: "Improve performance, readability, and maintainability.",
}

FULLY_SUPPORTED = frozenset(
    {"JavaScript", "TypeScript", "Python", "Java", "C++", "C", "C#", "Go", "Rust"}
)

PATTERN_INSTRUCTIONS = {
    "nested_loops": "Replace nested loops with a hash-based approach (Set or Map) to reduce O(n²) to O(n).",
    "repeated_computation": "Cache the result of repeated computations in a variable instead of recalculating.",
    "inefficient_data_structure": "Replace Array.includes/indexOf lookups with Set or Map for O(1) access.",
    "redundant_condition": "Remove redundant or duplicate conditional checks.",
    "string_concat_in_loop": "Use array join or StringBuilder instead of string concatenation inside loops.",
    "n_plus_one_query": "Batch queries or use bulk operations instead of querying inside a loop.",
    "unnecessary_recomputation": "Move invariant computations outside the loop.",
    "missing_early_exit": "Add early return/break when the result is already determined.",
    "excessive_nesting": "Flatten deeply nested code using guard clauses or early returns.",
    "large_function": "Extract logical sections into smaller, focused helper functions.",
}
DEFAULT_INSTRUCTION = "Identify and fix the inefficiency."

GENERIC_INSTRUCTIONS = (
    "Look for any loops that can be simplified or removed.",
    "Replace O(n²) patterns with hash-based O(n) approaches.",
    "Remove redundant computations.",
)

SYSTEM_PROMPT = """You are a performance optimization engine.
Your task is to MODIFY the code to improve performance.
Return ONLY the optimized code.
Do NOT include any explanation, comments about changes, or markdown.
Do NOT wrap the code in backticks or code fences.
Return the complete, runnable code."""

RETRY_CLAUSE = """
IMPORTANT: The previous attempt returned the same code unchanged.
You MUST modify this code. It contains inefficiencies that need to be fixed.
Do NOT return the original code again.
"""

# ---------------------------------------------------------------------------
# Few-shot examples
# ---------------------------------------------------------------------------

FEW_SHOT_PYTHON = """Example:

Input:
def find_duplicates(arr):
    result = []
    for i in range(len(arr)):
        for j in range(i + 1, len(arr)):
            if arr[i] == arr[j] and arr[i] not in result:
                result.append(arr[i])
    return result

Output:
def find_duplicates(arr):
    seen = set()
    duplicates = set()
    for item in arr:
        if item in seen:
            duplicates.add(item)
        seen.add(item)
    return list(duplicates)"""

FEW_SHOT_JS = """Example:

Input:
function findCommon(arr1, arr2) {
  const result = [];
  for (let i = 0; i < arr1.length; i++) {
    for (let j = 0; j < arr2.length; j++) {
      if (arr1[i] === arr2[j]) {
        result.push(arr1[i]);
        break;
      }
    }
  }
  return result;
}

Output:
function findCommon(arr1, arr2) {
  const set2 = new Set(arr2);
  return arr1.filter(item => set2.has(item));
}"""

FEW_SHOT_GENERIC = """Example:

Input (nested loop finding pairs):
for each item1 in list:
    for each item2 in list:
        if item1 + item2 == target:
            return pair

Output (hash-based O(n)):
seen = {}
for each item in list:
    complement = target - item
    if complement in seen:
        return (complement, item)
    seen[item] = true"""


@dataclass(frozen=True)
class StructuredPrompt:
    system_prompt: str
    user_prompt: str

    def as_text(self) -> str:
        return f"{self.system_prompt}\n\n{self.user_prompt}"


def is_fully_supported(language: str) -> bool:
    return language in FULLY_SUPPORTED


def pattern_to_instruction(pattern_type: str) -> str:
    """Direct order for the model for one detected pattern type."""
    return PATTERN_INSTRUCTIONS.get(pattern_type, DEFAULT_INSTRUCTION)


def get_few_shot(language: str) -> str:
    lang = language.lower()
    if lang == "python":
        return FEW_SHOT_PYTHON
    if lang in ("javascript", "typescript"):
        return FEW_SHOT_JS
    return FEW_SHOT_GENERIC


def _instructions(analysis: StaticAnalysis) -> list[str]:
    instructions = []
    seen_types = set()

    for pattern in analysis.detected_patterns:
        if pattern.type not in seen_types:
            seen_types.add(pattern.type)
            instructions.append(pattern_to_instruction(pattern.type))

    instructions.extend(opt.action for opt in analysis.possible_optimizations)

    return instructions or list(GENERIC_INSTRUCTIONS)


def build_structured_prompt(
    code: str,
    analysis: Union[StaticAnalysis, dict[str, Any]],
    focus: Union[OptimizationFocus, str] = OptimizationFocus.PERFORMANCE,
    is_retry: bool = False,
) -> StructuredPrompt:
    """System + user prompt asking for the optimized code only."""
    analysis = StaticAnalysis.model_validate(analysis)
    focus = OptimizationFocus(focus)
    language = analysis.language

    if analysis.detected_patterns:
        issues = "\n".join(f"- {p.description} [{p.severity}]" for p in analysis.detected_patterns)
    else:
        issues = "- General performance patterns to optimize"

    instruction_list = "\n".join(
        f"{i}. {inst}" for i, inst in enumerate(_instructions(analysis), start=1)
    )

    user_prompt = f"""{FOCUS_LINE[focus]}
{RETRY_CLAUSE if is_retry else ""}
Detected issues in this {language} code:
{issues}

Required changes:
{instruction_list}

{get_few_shot(language)}

You MUST return a modified version of the code.
Do NOT return the same code unless it is truly optimal.

{language} code to optimize:

{code}

Optimized {language} code:"""

    return StructuredPrompt(system_prompt=SYSTEM_PROMPT, user_prompt=user_prompt)


def build_prompt(
    code: str,
    analysis: Union[StaticAnalysis, dict[str, Any]],
    focus: Union[OptimizationFocus, str] = OptimizationFocus.PERFORMANCE,
    is_retry: bool = False,
) -> str:
    """Single-string form for engines without a system role."""
    return build_structured_prompt(code, analysis, focus, is_retry).as_text()
