"""
Consecutive comment combiner.

Adjacent comment-only lines are merged into one synthetic "// ..." line that
is emitted right before the next line of code.
"""

from typing import List, Optional

from services.codeline_types import AnalysisContext, Drop, Expand, Keep, ProcessedLine, RuleResult
from services.rules.base import CodelineRule
from services.rules.comment_markers import extract_comment_text, is_comment


class ConsecutiveCommentRule(CodelineRule):

    def __init__(self):
        self.buffer: List[str] = []
        self.first_line_number: Optional[int] = None
        self.language_tag: Optional[str] = None

    def apply(self, line: ProcessedLine, context: AnalysisContext) -> RuleResult:
        if is_comment(line.text):
            if not self.buffer:
                self.first_line_number = line.line_number
                self.language_tag = line.language_tag
            self.buffer.append(extract_comment_text(line.text))
            return Drop()

        if self.buffer:
            comment_line = self._flush(language_tag=line.language_tag)
            return Expand([comment_line, line])

        return Keep(line)

    def _flush(self, language_tag: Optional[str]) -> ProcessedLine:
        comment_line = ProcessedLine(
            text="// " + " ".join(self.buffer),
            line_number=self.first_line_number or 0,
            language_tag=language_tag,
        )
        self.buffer = []
        self.first_line_number = None
        self.language_tag = None
        return comment_line

    def finish(self, context: AnalysisContext) -> List[ProcessedLine]:
        if not self.buffer:
            return []
        return [self._flush(language_tag=self.language_tag)]
