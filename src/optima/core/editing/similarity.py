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
Optima -- Similarity Scorer

Positional line-by-line resemblance between the original and a candidate,
0..100. A rewrite that shares almost nothing with its input is more likely
a hallucination than an optimization.

Known quirk: the match ratio is divided by the longer length and then
multiplied by shorter/longer again, so length mismatches are penalised
twice. Kept as-is; thresholds are tuned against it.
"""

import math

from optima.core.config import FUZZY_PREFIX_LENGTH


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _content_lines(text: str) -> list[str]:
    return [line.strip() for line in text.split("\n") if line.strip()]


def lines_match(a: str, b: str, prefix_length: int = FUZZY_PREFIX_LENGTH) -> bool:
    """Exact match, or a shared prefix tolerant of reformatting."""
    if a == b:
        return True
    if len(a) > prefix_length and len(b) > prefix_length:
        return a[:prefix_length] in b or b[:prefix_length] in a
    return False


def similarity(original: str, candidate: str, prefix_length: int = FUZZY_PREFIX_LENGTH) -> int:
    """Score how closely ``candidate`` follows ``original`` line by line."""
    before = _content_lines(original)
    after = _content_lines(candidate)

    longer = max(len(before), len(after))
    shorter = min(len(before), len(after))
    if longer == 0:
        return 100
    if shorter == 0:
        return 0

    matches = sum(1 for a, b in zip(before, after) if lines_match(a, b, prefix_length))
    length_ratio = shorter / longer
    return round_half_up(matches / longer * length_ratio * 100)
