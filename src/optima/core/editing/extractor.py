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
Optima -- Code Extractor

Pulls candidate code out of raw model output. Small models are told to
return bare code, but routinely wrap it in markdown, prepend a chatty
preamble, fall back to a JSON envelope, or get cut off mid-fence.

STRATEGIES (first success wins):
    1. JSON ENVELOPE    -- {"optimized_code": "..."} (with regex salvage)
    2. MARKER ENVELOPE  -- <<OPTIMA_JSON_START>> {...} <<OPTIMA_JSON_END>>
    3. FENCED BLOCK     -- ```lang ... ```
    4. OPEN FENCE       -- ```lang ... (never closed; left for repair)
    5. INLINE TOKEN     -- `code` alone on its own line
    6. RAW TEXT         -- preamble stripped, prose lines dropped
"""

import json
import logging
import re
from typing import Optional

logger = logging.getLogger("optima.core.editing.extractor")

# =============================================================================
# PATTERNS
# =============================================================================

JSON_CODE_FIELD = '"optimized_code"'
MARKER_START = "<<OPTIMA_JSON_START>>"
MARKER_END = "<<OPTIMA_JSON_END>>"

_JSON_FIELD_SALVAGE = re.compile(r'"optimized_code"\s*:\s*"((?:[^"\\]|\\.)*)"', re.DOTALL)

_FENCED_BLOCK = re.compile(r"```[\w+#.-]*[^\n`]*\n(.*?)```", re.DOTALL)
_SINGLE_LINE_FENCE = re.compile(r"^```([^\n`]*?)```\s*$")
_OPEN_FENCE = re.compile(r"^[ \t]*```[^\n]*\n?", re.MULTILINE)
_INLINE_TOKEN = re.compile(r"^\s*`([^`\n]+)`\s*$")

PREAMBLE_PATTERNS = (
    re.compile(
        r"^(?:here\s+is|here's|below\s+is|the\s+optimi[sz]ed|optimi[sz]ed\s+(?:code|version))"
        r"[^\n]*?:[ \t]*\n",
        re.IGNORECASE,
    ),
    re.compile(r"^(?:sure|certainly|of\s+course)\b[^\n]*\n", re.IGNORECASE),
    re.compile(r"^(?:output|result|answer)[^\n]*?:[ \t]*\n", re.IGNORECASE),
)

# Capitalised, multi-word, terminated like a sentence
PROSE_LINE = re.compile(r"^[A-Z][A-Za-z']*(?:[ \t]+[^\s]+)+[.!?:]$")
CODE_CHARS = re.compile(r"[{}()\[\];=<>_`$\\|&]")
COMMENT_LINE = re.compile(r"^(?://|#|/\*|\*|--|<!--)")


# =============================================================================
# PUBLIC API
# =============================================================================


def extract_code(raw_text: Optional[str]) -> Optional[str]:
    """Return candidate code from raw model output, or None if there is none."""
    if not raw_text or not raw_text.strip():
        return None

    text = raw_text.strip()

    if text.startswith("{") and JSON_CODE_FIELD in text:
        code = _extract_from_json(text)
        if code:
            logger.debug("Extracted code from JSON envelope")
            return code

    if MARKER_START in text:
        code = _extract_from_markers(text)
        if code:
            logger.debug("Extracted code from marker envelope")
            return code

    code = _extract_fenced(text)
    if code is not None:
        return code or None

    code = _extract_inline_token(text)
    if code:
        return code

    return _extract_raw(text)


def is_prose_line(line: str) -> bool:
    """True for a line that reads as an English sentence rather than code."""
    stripped = line.strip()
    if not stripped or COMMENT_LINE.match(stripped):
        return False
    if CODE_CHARS.search(stripped):
        return False
    return bool(PROSE_LINE.match(stripped))


def strip_code_fences(code: str) -> str:
    """Remove one outer ``` fence pair if the whole text is fenced."""
    stripped = code.strip()
    if not stripped.startswith("```"):
        return code
    match = re.match(r"^```[\w+#.-]*[^\n`]*\n(.*?)```\s*$", stripped, re.DOTALL)
    if match:
        return match.group(1).strip()
    match = _SINGLE_LINE_FENCE.match(stripped)
    if match:
        return match.group(1).strip()
    return code


# =============================================================================
# INTERNAL: STRATEGIES
# =============================================================================


def _unescape(value: str) -> str:
    # Models often double-escape inside JSON strings
    return (
        value.replace("\\n", "\n").replace('\\"', '"').replace("\\t", "\t").replace("\\\\", "\\")
    )


def _extract_from_json(text: str) -> Optional[str]:
    try:
        obj = json.loads(text)
    except json.JSONDecodeError:
        match = _JSON_FIELD_SALVAGE.search(text)
        if not match:
            return None
        code = _unescape(match.group(1)).strip()
        return code or None

    if not isinstance(obj, dict) or not isinstance(obj.get("optimized_code"), str):
        return None
    code = strip_code_fences(_unescape(obj["optimized_code"])).strip()
    return code or None


def _extract_from_markers(text: str) -> Optional[str]:
    start = text.index(MARKER_START) + len(MARKER_START)
    end = text.find(MARKER_END, start)
    if end == -1:
        return None
    try:
        obj = json.loads(text[start:end].strip())
    except json.JSONDecodeError:
        return None
    if not isinstance(obj, dict) or not isinstance(obj.get("optimized_code"), str):
        return None
    return _unescape(obj["optimized_code"]).strip() or None


def _extract_fenced(text: str) -> Optional[str]:
    """Interior of the first fence; "" when a fence is present but empty; None if no fence."""
    if "```" not in text:
        return None

    match = _FENCED_BLOCK.search(text)
    if match:
        return match.group(1).strip()

    match = _SINGLE_LINE_FENCE.match(text)
    if match:
        return match.group(1).strip()

    opening = _OPEN_FENCE.search(text)
    if opening:
        # Generation stopped before the closing fence
        logger.debug("Fence opened but never closed; returning interior for repair")
        return text[opening.end():].strip()

    return None


def _extract_inline_token(text: str) -> Optional[str]:
    tokens = [m.group(1).strip() for m in map(_INLINE_TOKEN.match, text.splitlines()) if m]
    if len(tokens) == 1:
        return tokens[0] or None
    return None


def _extract_raw(text: str) -> Optional[str]:
    for pattern in PREAMBLE_PATTERNS:
        text = pattern.sub("", text, count=1)

    kept = [line for line in text.split("\n") if not is_prose_line(line)]
    code = "\n".join(kept).strip()

    # A leftover bare JSON envelope is not code
    if code.startswith("{") and code.endswith("}") and JSON_CODE_FIELD in code:
        return None

    return code or None
