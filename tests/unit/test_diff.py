"""
Tests for optima.core.diff -- LCS line diff and stats.
"""

from optima.core.diff import (
    ADDED,
    REMOVED,
    UNCHANGED,
    DiffLine,
    compute_diff,
    compute_diff_stats,
)


def _numbered(n: int, prefix: str = "line") -> str:
    return "\n".join(f"{prefix} {i}" for i in range(n))


# =============================================================================
# COMPUTE DIFF
# =============================================================================


class TestComputeDiff:
    """LCS alignment with removals listed before additions."""

    def test_single_replacement(self):
        diff = compute_diff("a\nb\nc", "a\nx\nc")
        assert diff == [
            DiffLine(UNCHANGED, "a", 1, 1),
            DiffLine(REMOVED, "b", 2, None),
            DiffLine(ADDED, "x", None, 2),
            DiffLine(UNCHANGED, "c", 3, 3),
        ]

    def test_identical(self):
        diff = compute_diff("a\nb", "a\nb")
        assert [d.type for d in diff] == [UNCHANGED, UNCHANGED]
        assert [(d.original_line_no, d.new_line_no) for d in diff] == [(1, 1), (2, 2)]

    def test_appended_line(self):
        assert compute_diff("x", "x\ny") == [
            DiffLine(UNCHANGED, "x", 1, 1),
            DiffLine(ADDED, "y", None, 2),
        ]

    def test_full_replacement_lists_removals_first(self):
        diff = compute_diff("a\nb", "c\nd")
        assert [(d.type, d.content) for d in diff] == [
            (REMOVED, "a"),
            (REMOVED, "b"),
            (ADDED, "c"),
            (ADDED, "d"),
        ]

    def test_empty_strings(self):
        assert compute_diff("", "") == [DiffLine(UNCHANGED, "", 1, 1)]

    def test_line_numbers_are_consistent(self):
        original = "def f(items):\n    out = []\n    for i in items:\n        out.append(i)\n    return out"
        candidate = "def f(items):\n    return list(items)\n"
        diff = compute_diff(original, candidate)

        original_nos = [d.original_line_no for d in diff if d.original_line_no is not None]
        new_nos = [d.new_line_no for d in diff if d.new_line_no is not None]
        assert original_nos == list(range(1, len(original.split("\n")) + 1))
        assert new_nos == list(range(1, len(candidate.split("\n")) + 1))

        for line in diff:
            if line.type == ADDED:
                assert line.original_line_no is None and line.new_line_no is not None
            elif line.type == REMOVED:
                assert line.new_line_no is None and line.original_line_no is not None
            else:
                assert line.original_line_no is not None and line.new_line_no is not None

    def test_long_inputs_are_capped(self):
        original = _numbered(500)
        candidate = _numbered(500).replace("line 7\n", "line seven\n")
        diff = compute_diff(original, candidate)

        last = diff[-1]
        assert last == DiffLine(UNCHANGED, "... (200 more lines not shown in diff)", None, None)
        assert all(d.original_line_no is None or d.original_line_no <= 300 for d in diff)
        assert all(d.new_line_no is None or d.new_line_no <= 300 for d in diff)
        assert [d.content for d in diff if d.type == REMOVED] == ["line 7"]
        assert [d.content for d in diff if d.type == ADDED] == ["line seven"]

    def test_cap_uses_longer_side(self):
        diff = compute_diff(_numbered(350), _numbered(10))
        assert diff[-1].content == "... (50 more lines not shown in diff)"

    def test_custom_cap(self):
        diff = compute_diff(_numbered(5), _numbered(5), max_lines=3)
        assert len(diff) == 4
        assert diff[-1].content == "... (2 more lines not shown in diff)"

    def test_to_dict_uses_wire_names(self):
        assert DiffLine(ADDED, "y", None, 2).to_dict() == {
            "type": "added",
            "content": "y",
            "originalLineNo": None,
            "newLineNo": 2,
        }


# =============================================================================
# STATS
# =============================================================================


class TestComputeDiffStats:
    def test_single_replacement(self):
        stats = compute_diff_stats(compute_diff("a\nb\nc", "a\nx\nc"))
        assert (stats.added, stats.removed, stats.unchanged, stats.change_percent) == (1, 1, 2, 50)

    def test_empty_diff(self):
        stats = compute_diff_stats([])
        assert stats.change_percent == 0

    def test_percent_rounds_half_up(self):
        stats = compute_diff_stats(compute_diff("a\nb\nc\nd\ne\nf\ng", "a\nb\nc\nd\ne\nf\ng\nh"))
        assert (stats.added, stats.unchanged) == (1, 7)
        assert stats.change_percent == 13

    def test_elided_entry_counts_as_unchanged(self):
        diff = compute_diff(_numbered(400), _numbered(400))
        stats = compute_diff_stats(diff)
        assert stats.unchanged == 301
        assert stats.change_percent == 0

    def test_to_dict(self):
        stats = compute_diff_stats(compute_diff("a", "b"))
        assert stats.to_dict() == {"added": 1, "removed": 1, "unchanged": 0, "changePercent": 100}
