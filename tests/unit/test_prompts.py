"""
Tests for optima.core.prompts -- generation prompt assembly.
"""

import pytest
from pydantic import ValidationError

from optima.core.prompts import (
    DEFAULT_INSTRUCTION,
    GENERIC_INSTRUCTIONS,
    RETRY_CLAUSE,
    SYSTEM_PROMPT,
    OptimizationFocus,
    build_prompt,
    build_structured_prompt,
    get_few_shot,
    is_fully_supported,
    pattern_to_instruction,
)

CODE = "def f(items):\n    return [x for x in items if x in items]"


class TestPatternInstructions:
    def test_known_pattern(self):
        assert "hash-based" in pattern_to_instruction("nested_loops")

    def test_unknown_pattern(self):
        assert pattern_to_instruction("made_up") == DEFAULT_INSTRUCTION

    @pytest.mark.parametrize("language", ["Python", "TypeScript", "C", "Rust"])
    def test_fully_supported(self, language):
        assert is_fully_supported(language)

    def test_not_fully_supported(self):
        assert not is_fully_supported("COBOL")


class TestFewShot:
    def test_python(self):
        assert "find_duplicates" in get_few_shot("Python")

    @pytest.mark.parametrize("language", ["JavaScript", "typescript"])
    def test_javascript_family(self, language):
        assert "findCommon" in get_few_shot(language)

    def test_generic(self):
        assert "hash-based O(n)" in get_few_shot("Go")


class TestBuildStructuredPrompt:
    def test_system_prompt(self, analysis_data):
        prompt = build_structured_prompt(CODE, analysis_data)
        assert prompt.system_prompt == SYSTEM_PROMPT

    def test_user_prompt_contents(self, analysis_data):
        user = build_structured_prompt(CODE, analysis_data).user_prompt
        assert "Focus on reducing time and space complexity." in user
        assert "- Nested loop over the same list [high]" in user
        assert "1. " + pattern_to_instruction("nested_loops") in user
        assert "2. Use a set for membership checks" in user
        assert user.endswith(f"Python code to optimize:\n\n{CODE}\n\nOptimized Python code:")
        assert RETRY_CLAUSE not in user

    def test_pattern_types_deduplicated(self, analysis_data):
        analysis_data["detected_patterns"].append(
            {"type": "nested_loops", "description": "Second nested loop", "severity": "medium"}
        )
        user = build_structured_prompt(CODE, analysis_data).user_prompt
        assert user.count(pattern_to_instruction("nested_loops")) == 1
        assert "- Second nested loop [medium]" in user

    def test_generic_instructions_without_analysis_detail(self):
        analysis = {"language": "Go", "confidence_score": 0.3}
        user = build_structured_prompt("x := 1", analysis).user_prompt
        assert "- General performance patterns to optimize" in user
        for instruction in GENERIC_INSTRUCTIONS:
            assert instruction in user

    def test_retry_clause(self, analysis_data):
        user = build_structured_prompt(CODE, analysis_data, is_retry=True).user_prompt
        assert RETRY_CLAUSE in user

    def test_focus_accepts_string(self, analysis_data):
        user = build_structured_prompt(CODE, analysis_data, focus="readability").user_prompt
        assert "Focus on clarity" in user

    def test_unknown_focus(self, analysis_data):
        with pytest.raises(ValueError):
            build_structured_prompt(CODE, analysis_data, focus="speed")

    def test_invalid_analysis(self):
        with pytest.raises(ValidationError):
            build_structured_prompt(CODE, {"confidence_score": 0.3})

    def test_single_string_form(self, analysis_data):
        prompt = build_prompt(CODE, analysis_data, OptimizationFocus.ALL)
        assert prompt.startswith(SYSTEM_PROMPT + "\n\n")
        assert "Improve performance, readability, and maintainability." in prompt
