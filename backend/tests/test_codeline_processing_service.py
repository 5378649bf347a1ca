"""
Tests for CodelineProcessingService
===================================
Full rule pipeline over whole files.
"""

import os
import sys

# Ensure backend is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from services.codeline_processing_service import CodelineProcessingService
from services.codeline_types import (
    AnalysisContext, Drop, Expand, Keep, PurposeKey, RegionMarker,
)
from services.rules import CodelineRule


VUE_COMPONENT = [
    "<template>",
    '  <div class="card">',
    '    <UserCard :user="currentUser" @click="select" />',
    "  </div>",
    "</template>",
    "<script setup>",
    "// dependencies",
    "import { ref } from 'vue'",
    "import UserCard from './UserCard.vue'",
    "import axios from 'axios'",
    "const currentUser = ref(null) // selected",
    "function select() {",
    "  axios.get('/users');",
    "}",
    "</script>",
]


def _process(lines, file_path="Card.vue", language_id="vue"):
    service = CodelineProcessingService()
    context = AnalysisContext(file_path=file_path, file_extension=file_path.rsplit(".", 1)[-1],
                              language_id=language_id)
    return service.process(lines, context=context), context


class TestProcessVueComponent:

    def test_comment_lines_attach_to_next_line(self):
        lines, _ = _process(VUE_COMPONENT)
        texts = [line.text for line in lines]

        assert "// dependencies" not in texts
        import_line = next(line for line in lines if line.text == "import { ref } from 'vue'")
        assert import_line.comment == "dependencies"

    def test_comment_skips_blank_line(self):
        lines, _ = _process(["// section header", "", "const a = 1;"], file_path="a.js", language_id="javascript")
        declaration = next(line for line in lines if line.text == "const a = 1;")

        assert declaration.comment == "section header"
        assert all(line.comment is None for line in lines if not line.text.strip())

    def test_inline_comment_split(self):
        lines, _ = _process(VUE_COMPONENT)
        declaration = next(line for line in lines if line.text.startswith("const currentUser"))

        assert declaration.text == "const currentUser = ref(null)"
        assert declaration.comment == "selected"
        assert declaration.purpose == PurposeKey.VARIABLE_DECLARATION
        assert declaration.variable_names[0] == "currentUser"

    def test_regions_purposes_and_levels(self):
        lines, _ = _process(VUE_COMPONENT)
        by_text = {line.text.strip(): line for line in lines}

        assert by_text["<template>"].purpose == PurposeKey.PAGE_SETUP
        assert by_text['<div class="card">'].language_tag == "tailwind"
        assert by_text['<div class="card">'].level == 0

        usage = by_text['<UserCard :user="currentUser" @click="select" />']
        assert usage.purpose == PurposeKey.COMPONENT_USAGE
        assert usage.region_marker == RegionMarker.TEMPLATE
        assert usage.level == 1
        assert usage.variable_names == ["UserCard", "user", "click", "currentUser", "select"]

        assert by_text["import { ref } from 'vue'"].purpose == PurposeKey.IMPORT_VUE
        assert by_text["import UserCard from './UserCard.vue'"].purpose == PurposeKey.IMPORT_LOCAL
        assert by_text["import axios from 'axios'"].purpose == PurposeKey.IMPORT_EXTERNAL
        assert by_text["import axios from 'axios'"].language_tag == "vue-js"

        assert by_text["function select() {"].level == 0
        assert by_text["axios.get('/users');"].level == 1
        assert by_text["}"].level == 0

    def test_variables_collected_in_context(self):
        _, context = _process(VUE_COMPONENT)
        for name in ("UserCard", "currentUser", "select", "ref"):
            assert name in context.collected_variables

    def test_scan_variable_usage(self):
        service = CodelineProcessingService()
        context = AnalysisContext(file_path="Card.vue", language_id="vue")
        lines = service.scan_variable_usage(service.process(VUE_COMPONENT, context=context), context)

        function_line = next(line for line in lines if line.text == "function select() {")
        assert ("select", "variable_usage") in [(v.name, v.kind) for v in function_line.variables]


class TestProcessScripts:

    def test_levels_never_negative(self):
        lines, _ = _process(["}", ")", "});", "}"], file_path="broken.js", language_id="javascript")
        assert [line.level for line in lines] == [0, 0, 0, 0]

    def test_javascript_file_is_one_script_region(self):
        lines, context = _process(["const a = 1;", "const b = a + 1;"], file_path="calc.js",
                                  language_id="javascript")

        assert [line.variable_names for line in lines] == [["a"], ["b", "a"]]
        assert all(line.region_marker == RegionMarker.SCRIPT for line in lines)
        assert context.collected_variables == ["a", "b"]

    def test_multiline_comment_becomes_comment_of_next_line(self):
        lines, _ = _process(["/* multi", "line */", "let x = 2;"], file_path="x.js",
                            language_id="javascript")

        assert len(lines) == 1
        assert lines[0].text == "let x = 2;"
        assert lines[0].comment == "multi line"

    def test_unterminated_comment_swallows_rest(self):
        lines, _ = _process(["/* open", "const a = 1;"], file_path="x.js", language_id="javascript")
        assert lines == []

    def test_empty_input(self):
        lines, _ = _process([], file_path="empty.js", language_id="javascript")
        assert lines == []

    def test_line_numbers_preserved(self):
        lines, _ = _process(["// header", "", "let y = 3;"], file_path="y.js", language_id="javascript")
        assert [(line.line_number, line.text) for line in lines] == [(2, ""), (3, "let y = 3;")]
        assert lines[0].comment == "header"


class TestRuleRegistration:

    class DropBlankRule(CodelineRule):
        def apply(self, line, context):
            return Drop() if not line.text.strip() else Keep(line)

    class DuplicateRule(CodelineRule):
        def apply(self, line, context):
            return Expand([line.copy(text=line.text + " (copy)"), line])

    class UpperRule(CodelineRule):
        def apply(self, line, context):
            line.text = line.text.upper()
            return Keep(line)

    def test_drop(self):
        service = CodelineProcessingService(rule_factories=[self.DropBlankRule])
        lines = service.process(["a", "   ", "b"])
        assert [line.text for line in lines] == ["a", "b"]

    def test_expand_last_record_continues(self):
        service = CodelineProcessingService(rule_factories=[self.DuplicateRule])
        service.add_rule(self.UpperRule)

        lines = service.process(["x"])

        assert [line.text for line in lines] == ["x (copy)", "X"]

    def test_fresh_rules_per_call(self):
        """State left by one call never leaks into the next."""
        service = CodelineProcessingService()
        service.process(["<script setup>", "const a = 1"], file_path="a.vue", language_id="vue")

        lines = service.process(["const a = 1"], file_path="a.vue", language_id="vue")

        assert lines[0].region_marker is None
        assert lines[0].purpose is None
