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
Optima -- Integrity Validator

Rejects candidates that silently dropped content.

CHECKS:
    1. SIZE     -- candidate must keep a minimum share of the original's
                   meaningful lines; the share scales with original size
    2. ELEMENTS -- every variable, function, class and import named in the
                   original must still be named in the candidate

Element extraction is per-line lexical matching, not parsing. It is tuned
for Python, JavaScript/TypeScript, the C family, Java, Go and Rust.
"""

import logging
import re
from dataclasses import dataclass, field

from optima.core.config import DEFAULT_CONFIG, TRIVIAL_VARIABLE_NAMES, ValidationConfig

logger = logging.getLogger("optima.core.editing.integrity")

# =============================================================================
# LINE CLASSIFICATION
# =============================================================================

_PREPROCESSOR = re.compile(r"^#\s*(?:include|define|undef|if|ifdef|ifndef|elif|else|endif|pragma)\b")
_COMMENT = re.compile(r"^(?://|#|/\*|\*/|\*(?=\s|$))")
_LONE_BRACE = re.compile(r"^[{}()\[\]]{1,3}[;,]?$")


def is_meaningful_line(line: str) -> bool:
    stripped = line.strip()
    if not stripped:
        return False
    if _PREPROCESSOR.match(stripped):
        return True
    if _COMMENT.match(stripped):
        return False
    return not _LONE_BRACE.match(stripped)


def count_meaningful_lines(text: str) -> int:
    return sum(1 for line in text.split("\n") if is_meaningful_line(line))


# =============================================================================
# NAMED ELEMENTS
# =============================================================================

_CONTROL_WORDS = frozenset(
    {
        "if",
        "for",
        "while",
        "switch",
        "catch",
        "return",
        "else",
        "new",
        "do",
        "sizeof",
        "elif",
        "function",
    }
)

_IDENT = r"[A-Za-z_$][\w$]*"
_NOT_STATEMENT = r"(?!(?:return|else|new|await|yield|throw|case|delete|typeof|do)\b)"

_FUNCTION_PATTERNS = (
    re.compile(rf"^\s*(?:async\s+)?def\s+({_IDENT})\s*\("),
    re.compile(rf"\bfunction\s*\*?\s+({_IDENT})\s*\("),
    re.compile(rf"^\s*(?:pub(?:\([\w:]+\))?\s+)?(?:async\s+)?(?:const\s+)?fn\s+({_IDENT})"),
    re.compile(rf"^\s*func\s+(?:\([^)]*\)\s*)?({_IDENT})\s*\("),
    re.compile(
        rf"^\s*(?:export\s+)?(?:const|let|var)\s+({_IDENT})\s*(?::[^=]+)?=\s*(?:async\s+)?"
        rf"(?:function\b|\([^)]*\)\s*(?::[^=]+)?=>|{_IDENT}\s*=>)"
    ),
    re.compile(rf"^\s*({_IDENT})\s*=\s*lambda\b"),
    # C / C++ / Java / C# definitions: "<type> name(...) {"
    re.compile(
        rf"^\s*{_NOT_STATEMENT}(?:(?:public|private|protected|static|final|inline|virtual|extern|"
        rf"override|synchronized|abstract|unsafe)\s+)*[\w<>\[\],:*&]+[\s*&]+({_IDENT})\s*"
        rf"\([^;]*\)\s*(?:const\s*)?(?:throws\s+[\w.,\s]+)?\{{\s*$"
    ),
    # JS / TS class methods: "name(...) {"
    re.compile(rf"^\s*(?:(?:static|async|get|set)\s+)*({_IDENT})\s*\([^;]*\)\s*\{{\s*$"),
)

_CLASS_PATTERN = re.compile(
    rf"^\s*(?:export\s+)?(?:default\s+)?(?:pub\s+)?(?:abstract\s+)?"
    rf"(?:class|struct|interface|enum|trait)\s+({_IDENT})"
)

_VARIABLE_PATTERNS = (
    re.compile(
        rf"^\s*(?:(?:final|static|const|unsigned|signed|long|short)\s+)*"
        rf"(?:int|long|float|double|char|bool|boolean|String|string|auto|size_t|byte|short)"
        rf"(?:\[\])?\s+\**({_IDENT})\s*(?:=|;|\[)"
    ),
    re.compile(rf"\b(?:const|let|var)\s+(?:mut\s+)?({_IDENT})"),
    re.compile(rf"^\s*({_IDENT})\s*:=(?!=)"),
    # Python assignment, optionally annotated; keyword arguments end in ","
    re.compile(rf"^\s*({_IDENT})\s*(?::\s*[\w\[\], .|]+)?=(?!=)(?!.*,\s*$)\s*\S"),
)

# Python "import a, b as c" and Java "import a.b.C;"
_MODULE_LIST_IMPORT = re.compile(
    r"^\s*import\s+(?:static\s+)?"
    r"([\w.]+(?:\.\*)?(?:\s+as\s+\w+)?(?:\s*,\s*[\w.]+(?:\s+as\s+\w+)?)*)\s*;?\s*$"
)

_IMPORT_PATTERNS = (
    re.compile(r"""^\s*import\s+(?:type\s+)?.*?\bfrom\s+['"]([^'"]+)['"]"""),
    re.compile(r"""^\s*import\s+['"]([^'"]+)['"]"""),
    re.compile(r"""\brequire\s*\(\s*['"]([^'"]+)['"]\s*\)"""),
    re.compile(r"^\s*from\s+([\w.]+)\s+import\b"),
    _MODULE_LIST_IMPORT,
    re.compile(r"""^\s*#\s*include\s*[<"]([^>"]+)[>"]"""),
    re.compile(r"^\s*(?:pub\s+)?use\s+([\w:]+)"),
    re.compile(r"^\s*using\s+(?:static\s+)?([\w.]+)\s*;"),
    re.compile(r"""^\s*import\s+(?:\w+\s+)?"([^"]+)\""""),
)

CATEGORY_LABELS = {
    "functions": "function(s)",
    "classes": "class(es)",
    "imports": "import(s)",
    "variables": "variable(s)",
}


@dataclass
class NamedElements:
    """Ordered, de-duplicated names declared in a code string."""

    variables: list[str] = field(default_factory=list)
    functions: list[str] = field(default_factory=list)
    classes: list[str] = field(default_factory=list)
    imports: list[str] = field(default_factory=list)


@dataclass
class SizeCheck:
    passed: bool
    original_lines: int
    candidate_lines: int
    ratio: float
    threshold: float
    reason: str = ""


@dataclass
class ElementCheck:
    passed: bool
    missing: dict[str, list[str]] = field(default_factory=dict)
    reason: str = ""


def _add(names: list[str], name: str):
    if name and name not in names:
        names.append(name)


def _first_group(match: re.Match) -> str:
    return next((g for g in match.groups() if g), "")


def extract_named_elements(text: str) -> NamedElements:
    """Collect declared names from each line of ``text``."""
    elements = NamedElements()

    for line in text.split("\n"):
        stripped = line.strip()
        if not stripped or _COMMENT.match(stripped) and not _PREPROCESSOR.match(stripped):
            continue

        for pattern in _IMPORT_PATTERNS:
            match = pattern.search(line)
            if match:
                if pattern is _MODULE_LIST_IMPORT:
                    for part in match.group(1).split(","):
                        _add(elements.imports, part.split()[0])
                else:
                    _add(elements.imports, match.group(1))
                break
        else:
            class_match = _CLASS_PATTERN.match(line)
            if class_match:
                _add(elements.classes, class_match.group(1))
                continue

            function_name = ""
            for pattern in _FUNCTION_PATTERNS:
                match = pattern.search(line)
                if match and match.group(1) not in _CONTROL_WORDS:
                    function_name = match.group(1)
                    break
            if function_name:
                _add(elements.functions, function_name)
                continue

            for pattern in _VARIABLE_PATTERNS:
                match = pattern.search(line)
                if match:
                    _add(elements.variables, _first_group(match))
                    break

    # A const-bound arrow function is a function, not a variable
    elements.variables = [v for v in elements.variables if v not in elements.functions]
    return elements


def is_trivial_variable(name: str, names: tuple[str, ...] = TRIVIAL_VARIABLE_NAMES) -> bool:
    return (len(name) == 1 and name.islower()) or name in names


# =============================================================================
# CHECKS
# =============================================================================


def check_size(original: str, candidate: str, config: ValidationConfig = DEFAULT_CONFIG) -> SizeCheck:
    """Fail when the candidate kept too small a share of the original."""
    original_lines = count_meaningful_lines(original)
    candidate_lines = count_meaningful_lines(candidate)
    ratio = candidate_lines / original_lines if original_lines > 0 else 1.0
    threshold = config.size_threshold(original_lines)

    if ratio < threshold:
        reason = (
            f"Output too short: {candidate_lines} meaningful line(s) vs {original_lines} "
            f"in the original (ratio {ratio:.2f} < {threshold:.2f})"
        )
        logger.info(reason)
        return SizeCheck(False, original_lines, candidate_lines, ratio, threshold, reason)

    return SizeCheck(True, original_lines, candidate_lines, ratio, threshold)


def check_elements(original: str, candidate: str, config: ValidationConfig = DEFAULT_CONFIG) -> ElementCheck:
    """Fail when a named element of the original is absent from the candidate."""
    before = extract_named_elements(original)
    after = extract_named_elements(candidate)
    # A name that moved category (e.g. variable -> function) is still present
    after_all = set(after.variables) | set(after.functions) | set(after.classes)

    missing: dict[str, list[str]] = {}
    for category in ("functions", "classes", "imports", "variables"):
        present = set(getattr(after, category))
        if category != "imports":
            present |= after_all
        gone = [name for name in getattr(before, category) if name not in present]
        if category == "variables":
            trivial = config.trivial_variable_names
            gone = [name for name in gone if not is_trivial_variable(name, trivial)]
        if gone:
            missing[category] = gone

    if not missing:
        return ElementCheck(True)

    parts = [f"{len(names)} {CATEGORY_LABELS[cat]}: {', '.join(names)}" for cat, names in missing.items()]
    reason = "Output dropped named elements: " + "; ".join(parts)
    logger.info(reason)
    return ElementCheck(False, missing, reason)
