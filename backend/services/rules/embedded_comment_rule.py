"""
Embedded (inline) comment extractor.

Splits "code // comment" style lines into their code and comment parts.
"""

import re
from typing import Optional, Tuple

from services.codeline_types import AnalysisContext, Keep, ProcessedLine, RuleResult
from services.rules.base import CodelineRule
from services.rules.comment_markers import is_comment, merge_comments

LINE_COMMENT = re.compile(r'^(.*?)//(.*)$')
HASH_COMMENT = re.compile(r'^(.*?)#(.*)$')
BLOCK_COMMENT = re.compile(r'^(.*?)/\*(.*?)\*/(.*)$')
HTML_COMMENT = re.compile(r'^(.*?)<!--(.*?)-->(.*)$')
SQL_COMMENT = re.compile(r'^(.*?)--(.*)$')


def is_inside_string(code: str) -> bool:
    """
    Rough check whether the end of ``code`` sits inside a string literal.

    Counts unescaped quotes; an odd count means an open string.
    """
    single_quotes = code.count("'") - code.count("\\'")
    double_quotes = code.count('"') - code.count('\\"')
    return single_quotes % 2 != 0 or double_quotes % 2 != 0


def split_inline_comment(line: str) -> Optional[Tuple[str, str]]:
    """
    Return (code, comment) when the line carries a trailing comment.

    Markers are tried in order: //, #, /* */, <!-- -->, --.
    """
    for pattern in (LINE_COMMENT, HASH_COMMENT):
        match = pattern.match(line)
        if match and not is_inside_string(match.group(1)):
            return match.group(1).rstrip(), match.group(2).strip()

    for pattern in (BLOCK_COMMENT, HTML_COMMENT):
        match = pattern.match(line)
        if match and not is_inside_string(match.group(1)):
            code = f"{match.group(1)} {match.group(3)}".strip()
            return code, match.group(2).strip()

    match = SQL_COMMENT.match(line)
    if match and not is_inside_string(match.group(1)):
        return match.group(1).rstrip(), match.group(2).strip()

    return None


class EmbeddedCommentRule(CodelineRule):

    def apply(self, line: ProcessedLine, context: AnalysisContext) -> RuleResult:
        # Comment-only lines are attached to the next line later on
        if is_comment(line.text):
            return Keep(line)

        split = split_inline_comment(line.text)
        if split is None:
            return Keep(line)

        code, comment = split
        line.text = code
        line.comment = merge_comments(line.comment, comment) or None
        return Keep(line)
