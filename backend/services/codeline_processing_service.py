"""
Codeline Processing Service

Runs an ordered set of rules over the raw lines of one source file and
produces the processed codelines: structural flags, language context,
purpose key, variables, level and folded comments.
"""

import logging
from typing import Callable, Iterable, List, Optional, Sequence

from services.codeline_types import AnalysisContext, Drop, Expand, Keep, ProcessedLine
from services.rules import DEFAULT_RULES, CodelineRule, scan_variable_usage
from services.rules.comment_markers import extract_comment_text, is_comment, merge_comments

logger = logging.getLogger(__name__)

RuleFactory = Callable[[], CodelineRule]


class CodelineProcessingService:
    """
    Pipeline orchestrator.

    Rule *factories* are registered rather than rule instances: every call to
    ``process`` builds a fresh rule set, so two analyses never share state.
    """

    def __init__(self, rule_factories: Optional[Sequence[RuleFactory]] = None):
        self.rule_factories: List[RuleFactory] = list(
            DEFAULT_RULES if rule_factories is None else rule_factories
        )

    def add_rule(self, rule_factory: RuleFactory) -> "CodelineProcessingService":
        self.rule_factories.append(rule_factory)
        return self

    def process(
        self,
        lines: Iterable[str],
        file_path: Optional[str] = None,
        file_extension: Optional[str] = None,
        language_id: Optional[str] = None,
        context: Optional[AnalysisContext] = None,
    ) -> List[ProcessedLine]:
        """
        Classify the lines of one file.

        Args:
            lines: Raw lines, in file order
            file_path: Path of the file the lines come from
            file_extension: Extension without the leading dot
            language_id: Base language resolved from the extension
            context: Optional pre-built context; receives collected variables

        Returns:
            Processed codelines with comment-only lines folded into the
            ``comment`` of the following line
        """
        if context is None:
            context = AnalysisContext(
                file_path=file_path,
                file_extension=file_extension,
                language_id=language_id,
            )

        folded = self.apply_rules(lines, context)
        final_lines = self.attach_comments(folded)

        logger.debug(
            f"[CodelineProcessing] {context.file_path}: {len(final_lines)} codelines, "
            f"{len(context.collected_variables)} variables collected"
        )
        return final_lines

    def apply_rules(self, lines: Iterable[str], context: AnalysisContext) -> List[ProcessedLine]:
        """Run every rule over every line, without the comment attachment pass."""
        rules = [factory() for factory in self.rule_factories]
        processed: List[ProcessedLine] = []

        for index, content in enumerate(lines):
            record = ProcessedLine(
                text=content,
                line_number=index + 1,
                language_tag=context.language_id,
            )
            self._run_rules(rules, 0, record, context, processed)

        # Let stateful rules flush whatever they still buffer
        for position, rule in enumerate(rules):
            for record in rule.finish(context):
                self._run_rules(rules, position + 1, record, context, processed)

        return processed

    def _run_rules(
        self,
        rules: List[CodelineRule],
        start: int,
        record: ProcessedLine,
        context: AnalysisContext,
        output: List[ProcessedLine],
    ) -> None:
        for rule in rules[start:]:
            result = rule.apply(record, context)

            if isinstance(result, Drop):
                return

            if isinstance(result, Expand):
                if not result.records:
                    return
                output.extend(result.records[:-1])
                record = result.records[-1]
            elif isinstance(result, Keep):
                record = result.record

        output.append(record)

    def attach_comments(self, lines: List[ProcessedLine]) -> List[ProcessedLine]:
        """Move comment-only lines onto the next non-blank line of code and drop them."""
        final_lines: List[ProcessedLine] = []
        pending_comment: Optional[str] = None

        for line in lines:
            if is_comment(line.text, include_docstrings=False):
                pending_comment = merge_comments(pending_comment, extract_comment_text(line.text))
                continue

            # Blank lines never carry a comment
            if pending_comment is not None and line.text.strip():
                line.comment = merge_comments(pending_comment, line.comment)
                pending_comment = None

            final_lines.append(line)

        return final_lines

    def scan_variable_usage(
        self,
        lines: List[ProcessedLine],
        context: AnalysisContext,
    ) -> List[ProcessedLine]:
        """Second pass: flag mentions of every variable collected for the file."""
        return scan_variable_usage(lines, context.collected_variables)
