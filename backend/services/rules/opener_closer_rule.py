"""
Structural classifier: marks lines that open and/or close a nested block.
"""

import re
from typing import Tuple

from services.codeline_types import AnalysisContext, Keep, ProcessedLine, RuleResult
from services.rules.base import CodelineRule

OPENING_TAG = re.compile(r'<(?!/)[^>/]+(?<!/)>', re.IGNORECASE)
CLOSING_TAG = re.compile(r'</[^>]+>', re.IGNORECASE)
SELF_CLOSING_TAG = re.compile(r'<[^>]+/>', re.IGNORECASE)


def classify_structure(text: str) -> Tuple[bool, bool]:
    """
    Return (is_opener, is_closer) for a single line of code.

    Only the line text is inspected, so the result is stable for a given text.
    """
    trimmed = text.strip()
    is_opener = False
    is_closer = False

    # <tag ...> that is neither </tag> nor <tag/>
    if OPENING_TAG.search(trimmed):
        if not trimmed.startswith("</") and not trimmed.rstrip(">").endswith("/"):
            is_opener = True

    if CLOSING_TAG.search(trimmed):
        is_closer = True

    last_char = trimmed[-1:] if trimmed else ""

    if last_char in ("{", "("):
        is_opener = True

    if trimmed.startswith(("}", ")")):
        is_closer = True

    # Trailing closer counts unless it belongs to an opener later on the line
    if last_char in ("}", ")"):
        last_close = max(trimmed.rfind("}"), trimmed.rfind(")"))
        if "{" not in trimmed or last_close > trimmed.rfind("{"):
            is_closer = True

    if SELF_CLOSING_TAG.search(trimmed):
        is_opener = True
        is_closer = True

    return is_opener, is_closer


class OpenerCloserRule(CodelineRule):
    """Sets is_opener / is_closer from bracket and tag heuristics."""

    def apply(self, line: ProcessedLine, context: AnalysisContext) -> RuleResult:
        is_opener, is_closer = classify_structure(line.text)
        line.is_opener = line.is_opener or is_opener
        line.is_closer = line.is_closer or is_closer
        return Keep(line)
