"""
Variable extractor.

Pulls identifier names out of a codeline according to its purpose key, and
provides the whole-file second pass that flags remaining variable usages.
"""

import re
from typing import Iterable, List

from services.codeline_types import (
    AnalysisContext, Keep, ProcessedLine, PurposeKey, RuleResult, VariableRef,
)
from services.rules.base import CodelineRule

IDENTIFIER = re.compile(r'^[a-zA-Z_$][a-zA-Z0-9_$]*')
FULL_IDENTIFIER = re.compile(r'^[a-zA-Z_$][a-zA-Z0-9_$]*$')

NAMED_IMPORT = re.compile(r'import\s+\{\s*([^}]+)\s*\}')
NAMED_IMPORT_FROM = re.compile(r'import\s+\{\s*([^}]+)\s*\}\s+from\s+[\'"]([^\'"]+)[\'"]')
DEFAULT_IMPORT_FROM = re.compile(r'import\s+([a-zA-Z_$][a-zA-Z0-9_$]*)\s+from\s+[\'"]([^\'"]+)[\'"]')

DESTRUCTURING = re.compile(r'^(const|let|var)\s+\{\s*([^}]+)\s*\}\s*=')
DECLARATION = re.compile(r'^(const|let|var)\s+([a-zA-Z_$][a-zA-Z0-9_$]*)\s*=\s*(.+)')
COMPUTED_BODY = re.compile(r'computed\s*\(\s*\(\)\s*=>\s*(.+)\)')
MEMBER_CHAIN = re.compile(
    r'([a-zA-Z_$][a-zA-Z0-9_$]*(?:\.[a-zA-Z_$][a-zA-Z0-9_$]*)*)\s*(?:\(|$|[^\w])'
)

TAG_NAME = re.compile(r'<([a-zA-Z_$][a-zA-Z0-9_$-]*)')
BOUND_ATTRIBUTE = re.compile(r'[@:]([a-zA-Z_$][a-zA-Z0-9_$-]*)(?=\s*=)')
DOUBLE_QUOTED = re.compile(r'"([^"]+)"')
PROP_NAME = re.compile(r'^\s*([a-zA-Z_$][a-zA-Z0-9_$]*)\s*:\s*[{]')


# =============================================================================
# EXTRACTORS
# =============================================================================

def _import_names(import_list: str) -> List[str]:
    names = []
    for part in import_list.split(","):
        match = IDENTIFIER.match(part.strip())
        if match:
            names.append(match.group(0))
    return names


def extract_import_vue(text: str) -> List[VariableRef]:
    match = NAMED_IMPORT.search(text)
    if not match:
        return []
    return [VariableRef(name, "composition_api") for name in _import_names(match.group(1))]


def extract_import_local(text: str) -> List[VariableRef]:
    match = NAMED_IMPORT_FROM.search(text)
    if match:
        source = match.group(2)
        return [
            VariableRef(name, "function_name", source)
            for name in _import_names(match.group(1))
        ]

    match = DEFAULT_IMPORT_FROM.search(text)
    if match:
        return [VariableRef(match.group(1), "vue_component", match.group(2))]

    return []


def extract_expression(expression: str) -> List[VariableRef]:
    """Every identifier in an expression; member chains are split on '.'."""
    variables = []
    for chain in MEMBER_CHAIN.findall(expression):
        for part in chain.split("."):
            if FULL_IDENTIFIER.match(part):
                variables.append(VariableRef(part, "expression_variable"))
    return variables


def extract_declaration(text: str) -> List[VariableRef]:
    match = DESTRUCTURING.match(text)
    if match:
        variables = []
        for part in re.split(r'[,:.]', match.group(2)):
            name = IDENTIFIER.match(part.strip())
            if name:
                variables.append(VariableRef(name.group(0), "variable_declaration"))
        return variables

    match = DECLARATION.match(text)
    if not match:
        return []

    variables = [VariableRef(match.group(2), "variable_declaration")]
    right_side = match.group(3)

    computed = COMPUTED_BODY.search(right_side)
    if computed:
        variables.append(VariableRef("computed", "vue_reactivity"))
        variables.extend(extract_expression(computed.group(1)))
    else:
        variables.extend(extract_expression(right_side))
    return variables


def extract_component_usage(text: str) -> List[VariableRef]:
    variables = []

    match = TAG_NAME.search(text)
    if match:
        variables.append(VariableRef(match.group(1), "component_usage"))

    for name in BOUND_ATTRIBUTE.findall(text):
        variables.append(VariableRef(name, "component_usage"))

    for literal in DOUBLE_QUOTED.findall(text):
        for part in literal.split("."):
            part = part.strip()
            if FULL_IDENTIFIER.match(part):
                variables.append(VariableRef(part, "component_usage"))

    return variables


def extract_props_definition(text: str) -> List[VariableRef]:
    variables = [VariableRef("props", "props_definition")]
    if "defineProps" in text:
        variables.append(VariableRef("defineProps", "props_definition"))
    return variables


def extract_prop_property(text: str) -> List[VariableRef]:
    match = PROP_NAME.match(text)
    if not match:
        return []
    return [VariableRef(match.group(1), "prop_property")]


EXTRACTORS = {
    PurposeKey.IMPORT_VUE: extract_import_vue,
    PurposeKey.IMPORT_LOCAL: extract_import_local,
    PurposeKey.VARIABLE_DECLARATION: extract_declaration,
    PurposeKey.COMPONENT_USAGE: extract_component_usage,
    PurposeKey.PROPS_DEFINITION: extract_props_definition,
    PurposeKey.PROP_PROPERTY: extract_prop_property,
}


def extract_variables(text: str, purpose) -> List[VariableRef]:
    """Variables declared or referenced on a line with the given purpose."""
    extractor = EXTRACTORS.get(purpose)
    if extractor is None:
        return []
    return extractor(text.strip())


# =============================================================================
# USAGE SCAN
# =============================================================================

def is_variable_used(name: str, text: str) -> bool:
    """Whole-word match, so 'id' does not match inside 'identification'."""
    return re.search(r'\b' + re.escape(name) + r'\b', text) is not None


def scan_variable_usage(lines: Iterable[ProcessedLine], names: Iterable[str]) -> List[ProcessedLine]:
    """
    Flag every mention of a known variable that the purpose-specific
    extractors missed.

    Args:
        lines: Processed lines of one file
        names: Every variable name collected while processing that file

    Returns:
        The same lines, with ``variable_usage`` entries appended in place
    """
    unique_names = list(dict.fromkeys(names))
    scanned = []
    for line in lines:
        existing = set(line.variable_names)
        for name in unique_names:
            if name in existing:
                continue
            if is_variable_used(name, line.text):
                line.add_variable(VariableRef(name, "variable_usage"))
                existing.add(name)
        scanned.append(line)
    return scanned


class VueVariableRule(CodelineRule):
    """Extracts variables by purpose key and records them in the run context."""

    def apply(self, line: ProcessedLine, context: AnalysisContext) -> RuleResult:
        for variable in extract_variables(line.text, line.purpose):
            line.add_variable(variable)
            context.collect_variable(variable.name)
        return Keep(line)
