"""
Tests for optima.core.editing.integrity -- size and named-element checks.
"""

import pytest

from optima.core.config import DEFAULT_CONFIG
from optima.core.editing.integrity import (
    check_elements,
    check_size,
    count_meaningful_lines,
    extract_named_elements,
    is_meaningful_line,
    is_trivial_variable,
)


def _lines(n: int) -> str:
    return "\n".join(f"x{i} = {i}" for i in range(n))


# =============================================================================
# LINE CLASSIFICATION
# =============================================================================


class TestMeaningfulLines:
    def test_count_skips_blanks_comments_and_braces(self):
        code = "def f():\n    # comment\n\n    return 1\n}\n"
        assert count_meaningful_lines(code) == 2

    @pytest.mark.parametrize("line", ["// hi", "/* block */", " * doc line", "*/", "#", "};", "})", ""])
    def test_not_meaningful(self, line):
        assert not is_meaningful_line(line)

    @pytest.mark.parametrize("line", ["#include <stdio.h>", "#define MAX 10", "x = 1", "*ptr = 0;"])
    def test_meaningful(self, line):
        assert is_meaningful_line(line)


# =============================================================================
# SIZE CHECK
# =============================================================================


class TestCheckSize:
    """Candidates must keep a share of the original's meaningful lines."""

    def test_small_original_boundary(self):
        assert check_size(_lines(10), _lines(1)).passed
        result = check_size(_lines(10), "")
        assert not result.passed
        assert result.reason.startswith("Output too short: 0 meaningful line(s) vs 10")

    def test_medium_original_threshold(self):
        assert not check_size(_lines(20), _lines(5)).passed
        assert check_size(_lines(20), _lines(7)).passed

    def test_large_original_threshold(self):
        assert not check_size(_lines(50), _lines(19)).passed
        assert check_size(_lines(50), _lines(21)).passed

    def test_original_without_meaningful_lines_passes(self):
        result = check_size("# just a comment", "")
        assert result.passed
        assert result.ratio == 1.0

    def test_threshold_comes_from_config(self):
        strict = DEFAULT_CONFIG.with_overrides(size_ratio_small=0.5)
        assert check_size(_lines(10), _lines(4)).passed
        assert not check_size(_lines(10), _lines(4), strict).passed

    def test_reports_counts(self):
        result = check_size(_lines(50), _lines(10))
        assert (result.original_lines, result.candidate_lines) == (50, 10)
        assert result.threshold == pytest.approx(0.40)


# =============================================================================
# NAMED ELEMENTS
# =============================================================================


PYTHON_SAMPLE = """import os
from collections import defaultdict

class Cache:
    def get(self, key):
        return self.store[key]

def build_index(records):
    lookup = {}
    for i, rec in enumerate(records):
        lookup[rec.id] = i
    return lookup
"""

JS_SAMPLE = """import React from 'react';
const api = require('./api');
export function loadUsers(ids) {
  const cache = new Map();
  const toKey = (id) => `user:${id}`;
  let total = 0;
}
class UserStore {
  fetch(id) {
  }
}"""


class TestExtractNamedElements:
    def test_python(self):
        elements = extract_named_elements(PYTHON_SAMPLE)
        assert elements.imports == ["os", "collections"]
        assert elements.classes == ["Cache"]
        assert elements.functions == ["get", "build_index"]
        assert elements.variables == ["lookup"]

    def test_javascript(self):
        elements = extract_named_elements(JS_SAMPLE)
        assert elements.imports == ["react", "./api"]
        assert elements.classes == ["UserStore"]
        assert elements.functions == ["loadUsers", "toKey", "fetch"]
        assert elements.variables == ["cache", "total"]

    def test_c_family(self):
        code = (
            "#include <stdlib.h>\n"
            "struct Node {\n"
            "  int value;\n"
            "};\n"
            "static int sum_list(struct Node *head) {\n"
            "  const int limit = 10;\n"
            "  return helper(head);\n"
            "}"
        )
        elements = extract_named_elements(code)
        assert elements.imports == ["stdlib.h"]
        assert elements.classes == ["Node"]
        assert elements.functions == ["sum_list"]
        assert elements.variables == ["value", "limit"]

    def test_keyword_arguments_are_not_variables(self):
        code = "result = fetch(\n    timeout=5,\n    retries=3,\n)"
        assert extract_named_elements(code).variables == ["result"]

    def test_control_flow_is_not_a_function(self):
        code = "if (ready) {\n  while (busy) {\n  }\n}"
        assert extract_named_elements(code).functions == []

    def test_comma_separated_imports(self):
        code = "import numpy as np, os.path as osp\nimport json, sys"
        assert extract_named_elements(code).imports == ["numpy", "os.path", "json", "sys"]

    def test_java_import(self):
        code = "import java.util.List;\nimport static org.junit.Assert.*;"
        assert extract_named_elements(code).imports == ["java.util.List", "org.junit.Assert.*"]


class TestIsTrivialVariable:
    @pytest.mark.parametrize("name", ["i", "x", "tmp", "result", "total", "idx"])
    def test_trivial(self, name):
        assert is_trivial_variable(name)

    @pytest.mark.parametrize("name", ["threshold", "lookup", "X", "cache"])
    def test_not_trivial(self, name):
        assert not is_trivial_variable(name)

    def test_custom_names(self):
        assert is_trivial_variable("threshold", ("threshold",))
        assert not is_trivial_variable("tmp", ("threshold",))
        assert is_trivial_variable("i", ())


# =============================================================================
# ELEMENT CHECK
# =============================================================================


class TestCheckElements:
    """Named elements of the original must survive the rewrite."""

    def test_removed_function_is_reported(self):
        original = "def helper(x):\n    return x * 2\n\ndef main(items):\n    return [helper(i) for i in items]"
        candidate = "def main(items):\n    return [i * 2 for i in items]"
        result = check_elements(original, candidate)
        assert not result.passed
        assert result.missing == {"functions": ["helper"]}
        assert result.reason == "Output dropped named elements: 1 function(s): helper"

    def test_several_categories_reported(self):
        original = "import os\nimport sys\ndef foo():\n    pass\ndef bar():\n    pass"
        result = check_elements(original, "import os\npass")
        assert result.reason == (
            "Output dropped named elements: 2 function(s): foo, bar; 1 import(s): sys"
        )

    def test_trivial_variables_may_disappear(self):
        original = "tmp = compute()\ni = 0\nreturn tmp"
        assert check_elements(original, "return compute()").passed

    def test_meaningful_variable_must_survive(self):
        result = check_elements("threshold = 10\nreturn x > threshold", "return x > 10")
        assert not result.passed
        assert result.missing == {"variables": ["threshold"]}

    def test_trivial_names_come_from_config(self):
        config = DEFAULT_CONFIG.with_overrides(trivial_variable_names=["threshold"])
        assert check_elements("threshold = 10\nreturn x > threshold", "return x > 10", config).passed
        assert not check_elements("tmp = compute()\nreturn tmp", "return compute()", config).passed

    def test_dropped_module_from_import_list(self):
        result = check_elements("import os, sys\nprint(os.name)", "import os\nprint(os.name)")
        assert not result.passed
        assert result.missing == {"imports": ["sys"]}

    def test_name_that_changes_category_is_present(self):
        original = "const double = (x) => x * 2;"
        candidate = "function double(x) {\n  return x * 2;\n}"
        assert check_elements(original, candidate).passed

    def test_identical_code_passes(self):
        assert check_elements(PYTHON_SAMPLE, PYTHON_SAMPLE).passed
