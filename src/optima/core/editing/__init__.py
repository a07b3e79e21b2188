"""
Output Validation Pipeline -- extraction, repair, integrity, similarity, verdict.

Turns raw model text into an accepted rewrite or a fallback that preserves
the original code untouched.
"""

from optima.core.editing.extractor import extract_code
from optima.core.editing.integrity import check_elements, check_size, count_meaningful_lines
from optima.core.editing.normalizer import (
    OutputNormalizer,
    PipelineStage,
    PipelineTrace,
    get_output_normalizer,
    make_fallback,
    normalize_llm_output,
)
from optima.core.editing.repair import is_truncated, repair_truncated_code, scan_brackets
from optima.core.editing.similarity import similarity

__all__ = [
    "OutputNormalizer",
    "PipelineStage",
    "PipelineTrace",
    "check_elements",
    "check_size",
    "count_meaningful_lines",
    "extract_code",
    "get_output_normalizer",
    "is_truncated",
    "make_fallback",
    "normalize_llm_output",
    "repair_truncated_code",
    "scan_brackets",
    "similarity",
]
