"""
Level tracker: nesting depth per codeline from opener/closer flags.
"""

from services.codeline_types import AnalysisContext, Keep, ProcessedLine, PurposeKey, RuleResult
from services.rules.base import CodelineRule


class CodelineLevelRule(CodelineRule):

    def __init__(self):
        self.current_level = 0

    def apply(self, line: ProcessedLine, context: AnalysisContext) -> RuleResult:
        if line.purpose == PurposeKey.PAGE_SETUP:
            line.level = 0
            self.current_level = 0
            return Keep(line)

        if line.is_closer and not line.is_opener:
            # e.g. "});" sits at the level of the block it closes
            self.current_level = max(0, self.current_level - 1)
            line.level = self.current_level
        else:
            line.level = self.current_level
            if line.is_opener and not line.is_closer:
                self.current_level += 1

        return Keep(line)
