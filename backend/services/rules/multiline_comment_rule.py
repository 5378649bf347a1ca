"""
Multiline comment detector.

Buffers every line of an HTML (<!-- -->) or block (/* */) comment that spans
several lines and collapses them into one codeline on the closing line.
"""

from typing import List, Optional

from services.codeline_types import AnalysisContext, Drop, Keep, ProcessedLine, RuleResult
from services.rules.base import CodelineRule

HTML_COMMENT = ("<!--", "-->")
BLOCK_COMMENT = ("/*", "*/")


class MultilineCommentRule(CodelineRule):

    def __init__(self):
        self.close_marker: Optional[str] = None
        self.buffer: List[ProcessedLine] = []

    @property
    def in_comment(self) -> bool:
        return self.close_marker is not None

    def apply(self, line: ProcessedLine, context: AnalysisContext) -> RuleResult:
        content = line.text.strip()

        if self.in_comment:
            self.buffer.append(line)
            if self.close_marker in content:
                return Keep(self._combine())
            return Drop()

        for open_marker, close_marker in (HTML_COMMENT, BLOCK_COMMENT):
            if open_marker in content and close_marker not in content:
                self.close_marker = close_marker
                self.buffer = [line]
                return Drop()

        return Keep(line)

    def _combine(self) -> ProcessedLine:
        first = self.buffer[0]
        combined = " ".join(buffered.text.strip() for buffered in self.buffer).strip()

        self.close_marker = None
        self.buffer = []

        return first.copy(text=combined)

    def finish(self, context: AnalysisContext) -> List[ProcessedLine]:
        # Unterminated comment at end of file is dropped
        self.close_marker = None
        self.buffer = []
        return []
