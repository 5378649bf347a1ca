"""
Purpose classifier: assigns a semantic category (purpose key) to a codeline.
"""

import re
from typing import Optional

from services.codeline_types import (
    SCRIPT_REGIONS, AnalysisContext, Keep, ProcessedLine, PurposeKey, RegionMarker, RuleResult,
)
from services.rules.base import CodelineRule

PAGE_SETUP = re.compile(r'^<(script|template|/script|/template)')
DIV_LINE = re.compile(r'^<div(?:\s+[^>]*)?>$')
DIV_CLOSE_LINE = re.compile(r'^</div>$')

IMPORT_FROM = re.compile(
    r'import\s+(?:\{[^}]+\}|\*\s+as\s+\w+|\w+)\s+from\s+[\'"]([^\'"]+)[\'"]'
)
DECLARATION = re.compile(r'^(const|let|var)\s+')
PROPS_DECLARATION = re.compile(r'^(const|let|var)\s+props\s*=')
PROP_PROPERTY = re.compile(r'^\s*([a-zA-Z_$][a-zA-Z0-9_$]*)\s*:\s*[{]')
FUNCTION_DECLARATION = re.compile(
    r'^(function\s+\w+|const\s+\w+\s*=\s*(?:async\s+)?(?:\([^)]*\)|\w+)\s*=>)'
)
REACTIVITY_CALL = re.compile(
    r'\b(ref|reactive|computed|watch|watchEffect|onMounted|onUnmounted|onUpdated)\s*\('
)
TYPE_DEFINITION = re.compile(r'^(interface|type)\s+\w+')

VUE_DIRECTIVE = re.compile(r'\bv-(if|for|show|else|else-if|model|on|bind|slot)\b')
COMPONENT_TAG = re.compile(r'<([A-Z][a-zA-Z0-9]+|[a-z]+(?:-[a-z]+)+)(?:\s|>|$)')
EVENT_HANDLER = re.compile(
    r'@(click|submit|input|change|focus|blur|keyup|keydown|mouseenter|mouseleave)'
)
DYNAMIC_BINDING = re.compile(r':(class|style)=')

LOCAL_IMPORT_PREFIXES = ("@/", "./", "../")


def import_source(text: str) -> Optional[str]:
    """Module source of an ``import ... from '...'`` statement, if any."""
    match = IMPORT_FROM.search(text.strip())
    return match.group(1) if match else None


def _classify_import(trimmed: str) -> PurposeKey:
    module = import_source(trimmed)
    if module is None:
        return PurposeKey.IMPORT_STATEMENT
    if module.startswith(LOCAL_IMPORT_PREFIXES):
        return PurposeKey.IMPORT_LOCAL
    if module.startswith("vue"):
        return PurposeKey.IMPORT_VUE
    return PurposeKey.IMPORT_EXTERNAL


def _classify_script(trimmed: str) -> Optional[PurposeKey]:
    if trimmed.startswith("import "):
        return _classify_import(trimmed)
    if trimmed.startswith("export "):
        return PurposeKey.EXPORT_STATEMENT
    if DECLARATION.match(trimmed):
        if PROPS_DECLARATION.match(trimmed):
            return PurposeKey.PROPS_DEFINITION
        return PurposeKey.VARIABLE_DECLARATION
    if PROP_PROPERTY.match(trimmed):
        return PurposeKey.PROP_PROPERTY
    if FUNCTION_DECLARATION.match(trimmed):
        return PurposeKey.FUNCTION_DECLARATION
    if REACTIVITY_CALL.search(trimmed):
        return PurposeKey.VUE_REACTIVITY
    if TYPE_DEFINITION.match(trimmed):
        return PurposeKey.TYPE_DEFINITION
    return None


def _classify_template(text: str, trimmed: str) -> Optional[PurposeKey]:
    if VUE_DIRECTIVE.search(text):
        return PurposeKey.VUE_DIRECTIVE
    if COMPONENT_TAG.search(trimmed):
        return PurposeKey.COMPONENT_USAGE
    if EVENT_HANDLER.search(text):
        return PurposeKey.EVENT_HANDLER
    if DYNAMIC_BINDING.search(text):
        return PurposeKey.DYNAMIC_BINDING
    return None


def classify_purpose(text: str, region_marker: Optional[RegionMarker]) -> Optional[PurposeKey]:
    """First matching purpose for a line in the given region, or None."""
    trimmed = text.strip()

    if PAGE_SETUP.match(trimmed):
        return PurposeKey.PAGE_SETUP

    if DIV_LINE.match(trimmed) or DIV_CLOSE_LINE.match(trimmed):
        return PurposeKey.PAGE_STRUCTURE

    if region_marker in SCRIPT_REGIONS:
        return _classify_script(trimmed)

    if region_marker == RegionMarker.TEMPLATE:
        return _classify_template(text, trimmed)

    return None


class VuePurposeKeyRule(CodelineRule):
    """Sets the purpose key from the line text and its region."""

    def apply(self, line: ProcessedLine, context: AnalysisContext) -> RuleResult:
        purpose = classify_purpose(line.text, line.region_marker)
        if purpose is not None:
            line.purpose = purpose
        return Keep(line)
