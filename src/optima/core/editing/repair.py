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
Optima -- Truncation Detector & Bracket Repair

Small models run out of tokens mid-structure. Output that merely stops
before its closing brackets can be recovered by appending the closers;
output that stops mid-thought (an ellipsis, a dangling arrow, a block
header with no body) cannot.

The scanner is string-literal aware: brackets inside quotes are ignored,
a backslash escapes the next character, '...' and "..." literals end at a
newline, `...` template literals may span lines.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger("optima.core.editing.repair")

BRACKET_PAIRS = {"(": ")", "[": "]", "{": "}"}
CLOSERS = frozenset(BRACKET_PAIRS.values())
QUOTES = frozenset({'"', "'", "`"})
MULTILINE_QUOTES = frozenset({"`"})

BLOCK_KEYWORDS = frozenset(
    {
        "def",
        "class",
        "if",
        "elif",
        "else",
        "for",
        "while",
        "try",
        "except",
        "finally",
        "with",
        "do",
        "switch",
        "case",
        "function",
        "fn",
        "func",
    }
)

_ELLIPSIS_END = re.compile(r"(?:\.\.\.|…)$")
_ARROW_END = re.compile(r"(?:=>|->)$")
_FIRST_WORD = re.compile(r"^([A-Za-z_]+)\b")
# Brace-language header with no body: "if (x)", "for (...; ...; ...)", "fn main()"
_CONDITION_START = re.compile(r"^(?:else\s+)?(?:if|for|while|switch)\s*\(")
_FUNCTION_HEADER = re.compile(r"^(?:function|fn|func)\b[^{;=]*\)$")


@dataclass
class BracketScan:
    """Outcome of one left-to-right bracket scan."""

    expected_closers: list[str] = field(default_factory=list)
    open_quote: Optional[str] = None

    @property
    def balanced(self) -> bool:
        return not self.expected_closers


@dataclass
class RepairResult:
    code: str
    was_repaired: bool
    appended: list[str] = field(default_factory=list)


# =============================================================================
# SCANNER
# =============================================================================


def scan_brackets(code: str) -> BracketScan:
    """Track unmatched openers outside string literals.

    A closer pops the stack only when it matches the top; stray closers are
    ignored.
    """
    stack: list[str] = []
    quote: Optional[str] = None
    escape = False

    for char in code:
        if quote is not None:
            if char == "\n" and quote not in MULTILINE_QUOTES:
                quote = None
                escape = False
            elif escape:
                escape = False
            elif char == "\\":
                escape = True
            elif char == quote:
                quote = None
            continue

        if char in QUOTES:
            quote = char
        elif char in BRACKET_PAIRS:
            stack.append(BRACKET_PAIRS[char])
        elif char in CLOSERS and stack and stack[-1] == char:
            stack.pop()

    return BracketScan(expected_closers=stack, open_quote=quote)


# =============================================================================
# DETECTION
# =============================================================================


def is_truncated(code: str) -> bool:
    """True if the code reads as cut off before it was finished."""
    stripped = code.rstrip()
    if not stripped:
        return False

    if _ELLIPSIS_END.search(stripped) or _ARROW_END.search(stripped):
        return True

    if _ends_with_open_block(stripped.split("\n")[-1].strip()):
        return True

    return not scan_brackets(stripped).balanced


def _ends_with_open_block(last_line: str) -> bool:
    match = _FIRST_WORD.match(last_line)
    if not match:
        return False
    keyword = match.group(1)
    if keyword == "else" and last_line.startswith("else if"):
        keyword = "if"
    if keyword not in BLOCK_KEYWORDS:
        return False

    if last_line == keyword or last_line.endswith(":"):
        return True
    if _FUNCTION_HEADER.match(last_line):
        return True
    return _condition_without_body(last_line)


def _condition_without_body(line: str) -> bool:
    """True when nothing follows the parenthesised condition of ``line``."""
    match = _CONDITION_START.match(line)
    if not match:
        return False
    depth = 0
    for index in range(match.end() - 1, len(line)):
        char = line[index]
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return not line[index + 1 :].strip()
    return False


# =============================================================================
# REPAIR
# =============================================================================


def repair_truncated_code(code: str) -> RepairResult:
    """Append the missing closers, innermost first, one per line.

    Never raises. When the scan ends inside a multi-line literal the closers
    would land inside the literal, so nothing is appended.
    """
    trimmed = code.strip()
    scan = scan_brackets(trimmed)

    if scan.balanced:
        return RepairResult(code=trimmed, was_repaired=False)

    if scan.open_quote in MULTILINE_QUOTES:
        logger.info("Cannot repair: output ends inside an unterminated %s literal", scan.open_quote)
        return RepairResult(code=trimmed, was_repaired=False)

    appended = list(reversed(scan.expected_closers))
    repaired = trimmed + "\n" + "\n".join(appended)
    logger.info("Repaired truncated output", extra={"fields": {"appended": "".join(appended)}})
    return RepairResult(code=repaired, was_repaired=True, appended=appended)
