"""
Codeline Types
Shared data structures for the codeline classification pipeline.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Union


# =============================================================================
# ENUMS
# =============================================================================

class LanguageTag(str, Enum):
    """Language context of a codeline"""
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    PHP = "php"
    CSS = "css"
    MARKDOWN = "markdown"
    JSON = "json"
    PYTHON = "python"
    POWERSHELL = "powershell"
    HTML = "html"
    VUE = "vue"              # generic <template> content
    VUE_JS = "vue-js"        # <script setup>
    VUE_TS = "vue-ts"        # <script setup lang="ts">
    TAILWIND = "tailwind"    # markup-styling (div tags)


class RegionMarker(str, Enum):
    """Syntactic zone of a file that produced a codeline"""
    TEMPLATE = "<template>"
    SCRIPT_SETUP = "<script setup>"
    SCRIPT_SETUP_TS = '<script setup lang="ts">'
    SCRIPT = "<script>"      # whole-file script (.js / .ts)


SCRIPT_REGIONS = {
    RegionMarker.SCRIPT_SETUP,
    RegionMarker.SCRIPT_SETUP_TS,
    RegionMarker.SCRIPT,
}


class PurposeKey(str, Enum):
    """Semantic category of a codeline"""
    PAGE_SETUP = "page_setup"
    PAGE_STRUCTURE = "page_structure"

    # Script region
    IMPORT_STATEMENT = "import_statement"
    IMPORT_LOCAL = "import_local"
    IMPORT_VUE = "import_vue"
    IMPORT_EXTERNAL = "import_external"
    EXPORT_STATEMENT = "export_statement"
    PROPS_DEFINITION = "props_definition"
    VARIABLE_DECLARATION = "variable_declaration"
    PROP_PROPERTY = "prop_property"
    FUNCTION_DECLARATION = "function_declaration"
    VUE_REACTIVITY = "vue_reactivity"
    TYPE_DEFINITION = "type_definition"

    # Template region
    VUE_DIRECTIVE = "vue_directive"
    COMPONENT_USAGE = "component_usage"
    EVENT_HANDLER = "event_handler"
    DYNAMIC_BINDING = "dynamic_binding"


# =============================================================================
# RECORDS
# =============================================================================

@dataclass(frozen=True)
class VariableRef:
    """A variable name discovered on a codeline"""
    name: str
    kind: str
    source: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"name": self.name, "type": self.kind}
        if self.source:
            data["source"] = self.source
        return data


@dataclass
class ProcessedLine:
    """Working record for one logical codeline of a file"""
    text: str
    line_number: int
    comment: Optional[str] = None
    language_tag: Optional[str] = None
    purpose: Optional[PurposeKey] = None
    region_marker: Optional[RegionMarker] = None
    is_opener: bool = False
    is_closer: bool = False
    level: int = 0
    variables: List[VariableRef] = field(default_factory=list)

    def add_variable(self, variable: VariableRef) -> bool:
        """Append a variable unless the same (name, kind) pair is already listed."""
        for existing in self.variables:
            if existing.name == variable.name and existing.kind == variable.kind:
                return False
        self.variables.append(variable)
        return True

    @property
    def variable_names(self) -> List[str]:
        names = []
        for variable in self.variables:
            if variable.name not in names:
                names.append(variable.name)
        return names

    def copy(self, **changes) -> "ProcessedLine":
        changes.setdefault("variables", list(self.variables))
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "codeline": self.text,
            "comment": self.comment,
            "language": self.language_tag,
            "purpose_key": self.purpose.value if self.purpose else None,
            "file_location": self.region_marker.value if self.region_marker else None,
            "is_opener": self.is_opener,
            "is_closer": self.is_closer,
            "level": self.level,
            "line_number": self.line_number,
            "variables": [v.to_dict() for v in self.variables],
        }


@dataclass
class AnalysisContext:
    """
    Per-run context threaded through every rule invocation.

    A new context is created for each processing call, so nothing learned
    about one file can leak into the analysis of another.
    """
    file_path: Optional[str] = None
    file_extension: Optional[str] = None
    language_id: Optional[str] = None
    collected_variables: List[str] = field(default_factory=list)

    def collect_variable(self, name: str) -> None:
        if name not in self.collected_variables:
            self.collected_variables.append(name)


# =============================================================================
# RULE RESULTS
# =============================================================================

@dataclass
class Keep:
    """Continue with this (possibly modified) record"""
    record: ProcessedLine


@dataclass
class Drop:
    """Remove the current line from the output"""


@dataclass
class Expand:
    """Emit several records in place of one; the last continues through the pipeline"""
    records: List[ProcessedLine]


RuleResult = Union[Keep, Drop, Expand]
