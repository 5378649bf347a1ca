"""
Codeline rule contract.
"""

from typing import List

from services.codeline_types import AnalysisContext, Keep, ProcessedLine, RuleResult


class CodelineRule:
    """
    Base class for a pipeline rule.

    A rule instance belongs to exactly one processing run. Rules that track
    state across lines keep it on the instance.
    """

    def apply(self, line: ProcessedLine, context: AnalysisContext) -> RuleResult:
        return Keep(line)

    def finish(self, context: AnalysisContext) -> List[ProcessedLine]:
        """Called once after the last line; may emit trailing records."""
        return []
