"""
Codeline Rules
==============

Rules applied, in order, to every line of a source file by the
CodelineProcessingService:

1. OpenerCloserRule     - structural opener / closer flags
2. VueLanguageRule      - template / script region and language tag
3. VuePurposeKeyRule    - semantic purpose key
4. VueVariableRule      - variables by purpose key
5. CodelineLevelRule    - nesting depth
6. MultilineCommentRule - collapse comments spanning several lines
7. ConsecutiveCommentRule - merge adjacent comment lines
8. EmbeddedCommentRule  - split trailing inline comments off code
"""

from .base import CodelineRule
from .opener_closer_rule import OpenerCloserRule, classify_structure
from .vue_language_rule import VueLanguageRule
from .vue_purpose_key_rule import VuePurposeKeyRule, classify_purpose, import_source
from .vue_variable_rule import VueVariableRule, extract_variables, scan_variable_usage
from .codeline_level_rule import CodelineLevelRule
from .multiline_comment_rule import MultilineCommentRule
from .consecutive_comment_rule import ConsecutiveCommentRule
from .embedded_comment_rule import EmbeddedCommentRule, split_inline_comment

DEFAULT_RULES = (
    OpenerCloserRule,
    VueLanguageRule,
    VuePurposeKeyRule,
    VueVariableRule,
    CodelineLevelRule,
    MultilineCommentRule,
    ConsecutiveCommentRule,
    EmbeddedCommentRule,
)

COMMENT_RULES = (
    MultilineCommentRule,
    ConsecutiveCommentRule,
    EmbeddedCommentRule,
)

__all__ = [
    "CodelineRule",
    "OpenerCloserRule",
    "VueLanguageRule",
    "VuePurposeKeyRule",
    "VueVariableRule",
    "CodelineLevelRule",
    "MultilineCommentRule",
    "ConsecutiveCommentRule",
    "EmbeddedCommentRule",
    "DEFAULT_RULES",
    "COMMENT_RULES",
    "classify_structure",
    "classify_purpose",
    "import_source",
    "extract_variables",
    "scan_variable_usage",
    "split_inline_comment",
]
