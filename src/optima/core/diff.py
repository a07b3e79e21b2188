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
Optima -- Line Diff Engine

Minimal-edit line alignment for the diff viewer, based on a longest common
subsequence table.

Bounds:
    - Only the first DIFF_MAX_LINES lines of each side are aligned, so the
      table never exceeds DIFF_MAX_LINES x DIFF_MAX_LINES cells
    - Backtracking is an explicit loop; input size never touches the call stack
    - Lines past the cap are summarised in one trailing entry with no line numbers
"""

from dataclasses import dataclass
from typing import Any, Optional

from optima.core.config import DIFF_MAX_LINES
from optima.core.editing.similarity import round_half_up

ADDED = "added"
REMOVED = "removed"
UNCHANGED = "unchanged"


@dataclass(frozen=True)
class DiffLine:
    type: str  # added | removed | unchanged
    content: str
    original_line_no: Optional[int]
    new_line_no: Optional[int]

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "content": self.content,
            "originalLineNo": self.original_line_no,
            "newLineNo": self.new_line_no,
        }


@dataclass(frozen=True)
class DiffStats:
    added: int
    removed: int
    unchanged: int
    change_percent: int

    def to_dict(self) -> dict[str, int]:
        return {
            "added": self.added,
            "removed": self.removed,
            "unchanged": self.unchanged,
            "changePercent": self.change_percent,
        }


# =============================================================================
# LCS TABLE
# =============================================================================


def _lcs_table(a: list[str], b: list[str]) -> list[list[int]]:
    m, n = len(a), len(b)
    dp = [[0] * (n + 1) for _ in range(m + 1)]
    for i in range(1, m + 1):
        row, prev = dp[i], dp[i - 1]
        line = a[i - 1]
        for j in range(1, n + 1):
            if line == b[j - 1]:
                row[j] = prev[j - 1] + 1
            else:
                row[j] = prev[j] if prev[j] >= row[j - 1] else row[j - 1]
    return dp


def _edit_script(a: list[str], b: list[str]) -> list[tuple[str, int, int]]:
    """Walk the table from (m, n) back to (0, 0).

    Returns (type, i, j) steps in forward order; i/j index the line consumed
    on each side (1-based, 0 when the step consumes nothing there).
    """
    dp = _lcs_table(a, b)
    i, j = len(a), len(b)
    steps: list[tuple[str, int, int]] = []

    while i > 0 or j > 0:
        if i == 0:
            steps.append((ADDED, 0, j))
            j -= 1
        elif j == 0:
            steps.append((REMOVED, i, 0))
            i -= 1
        elif a[i - 1] == b[j - 1]:
            steps.append((UNCHANGED, i, j))
            i -= 1
            j -= 1
        elif dp[i - 1][j] >= dp[i][j - 1]:
            steps.append((REMOVED, i, 0))
            i -= 1
        else:
            steps.append((ADDED, 0, j))
            j -= 1

    steps.reverse()
    return _removals_first(steps)


def _removals_first(steps: list[tuple[str, int, int]]) -> list[tuple[str, int, int]]:
    """Within each run of changes, list removals before additions (stable)."""
    ordered: list[tuple[str, int, int]] = []
    removed: list[tuple[str, int, int]] = []
    added: list[tuple[str, int, int]] = []

    for step in steps:
        if step[0] == UNCHANGED:
            ordered.extend(removed)
            ordered.extend(added)
            removed, added = [], []
            ordered.append(step)
        elif step[0] == REMOVED:
            removed.append(step)
        else:
            added.append(step)

    ordered.extend(removed)
    ordered.extend(added)
    return ordered


# =============================================================================
# PUBLIC API
# =============================================================================


def compute_diff(original: str, candidate: str, max_lines: int = DIFF_MAX_LINES) -> list[DiffLine]:
    """Line-level diff of two code strings."""
    original_lines = original.split("\n")
    candidate_lines = candidate.split("\n")
    a = original_lines[:max_lines]
    b = candidate_lines[:max_lines]

    result: list[DiffLine] = []
    original_no = 1
    new_no = 1

    for kind, i, j in _edit_script(a, b):
        if kind == UNCHANGED:
            result.append(DiffLine(UNCHANGED, a[i - 1], original_no, new_no))
            original_no += 1
            new_no += 1
        elif kind == REMOVED:
            result.append(DiffLine(REMOVED, a[i - 1], original_no, None))
            original_no += 1
        else:
            result.append(DiffLine(ADDED, b[j - 1], None, new_no))
            new_no += 1

    longest = max(len(original_lines), len(candidate_lines))
    if longest > max_lines:
        result.append(
            DiffLine(
                UNCHANGED,
                f"... ({longest - max_lines} more lines not shown in diff)",
                None,
                None,
            )
        )

    return result


def compute_diff_stats(diff: list[DiffLine]) -> DiffStats:
    added = sum(1 for d in diff if d.type == ADDED)
    removed = sum(1 for d in diff if d.type == REMOVED)
    unchanged = sum(1 for d in diff if d.type == UNCHANGED)
    total = added + removed + unchanged
    change_percent = round_half_up((added + removed) / total * 100) if total > 0 else 0
    return DiffStats(added, removed, unchanged, change_percent)
