"""Pytest configuration for optima tests."""

import sys
from pathlib import Path

import pytest

# Ensure src/optima is importable
src_path = str(Path(__file__).parent.parent / "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)


@pytest.fixture
def analysis_data():
    """Static analysis as the pattern detector hands it over (wire form)."""
    return {
        "language": "Python",
        "detected_patterns": [
            {
                "type": "nested_loops",
                "description": "Nested loop over the same list",
                "severity": "high",
            }
        ],
        "possible_optimizations": [
            {
                "action": "Use a set for membership checks",
                "rationale": "Set lookups are O(1)",
                "expectedImpact": "high",
            }
        ],
        "confidence_score": 0.85,
        "estimated_complexity": "O(n^2)",
        "detected_algorithm": "Duplicate detection",
    }
